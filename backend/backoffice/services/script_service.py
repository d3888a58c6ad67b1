from __future__ import annotations

import json
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.db.session import transaction
from backoffice.models.campaign import CampaignScript
from backoffice.models.script import Script
from backoffice.schemas.scripts import ScriptCopyRequest, ScriptCreateRequest, ScriptOut, ScriptUpdateRequest
from backoffice.services import system_log_service
from backoffice.services.campaign_usage import active_campaigns_linked, raise_in_use


def serialize_script(script: Script) -> dict[str, Any]:
    data = ScriptOut.model_validate(script).model_dump(mode="json")
    try:
        data["variables"] = json.loads(script.variables_json or "[]")
    except json.JSONDecodeError:
        data["variables"] = []
    return data


def get_script(db: Session, script_id: int) -> Script:
    script = db.get(Script, script_id)
    if script is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "스크립트를 찾을 수 없습니다.", "reason_code": "script_not_found", "id": script_id},
        )
    return script


def list_scripts(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    script_type: str | None = None,
    script_status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    query = db.query(Script)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Script.name.ilike(pattern), Script.content.ilike(pattern)))
    if script_type and script_type != "all":
        query = query.filter(Script.type == script_type)
    if script_status and script_status != "all":
        query = query.filter(Script.status == script_status.upper())
    total = query.count()
    rows = query.order_by(Script.created_at.desc(), Script.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return [serialize_script(row) for row in rows], total


def _ensure_unique_name(db: Session, name: str, *, exclude_id: int | None = None) -> None:
    query = db.query(Script.id).filter(Script.name == name)
    if exclude_id is not None:
        query = query.filter(Script.id != exclude_id)
    if query.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "이미 존재하는 스크립트명입니다.", "reason_code": "script_name_exists", "name": name},
        )


def create_script(db: Session, body: ScriptCreateRequest, *, actor: str, user_id: int | None = None) -> Script:
    name = body.name.strip()
    _ensure_unique_name(db, name)
    with transaction(db):
        script = Script(
            name=name,
            type=body.type,
            content=body.content,
            variables_json=json.dumps(body.variables, ensure_ascii=False),
            subject=body.subject,
            status=body.status,
            approval_status="PENDING",
            description=body.description,
            created_by=actor,
        )
        db.add(script)
        db.flush()
        system_log_service.write_system_log(
            db, level="info", message="스크립트 생성", category="script", user_id=user_id, context={"script_id": script.id}
        )
    db.refresh(script)
    return script


def update_script(db: Session, script_id: int, body: ScriptUpdateRequest, *, user_id: int | None = None) -> Script:
    script = get_script(db, script_id)
    name = body.name.strip()
    _ensure_unique_name(db, name, exclude_id=script.id)
    with transaction(db):
        script.name = name
        script.type = body.type
        script.content = body.content
        script.variables_json = json.dumps(body.variables, ensure_ascii=False)
        script.subject = body.subject
        script.status = body.status
        script.description = body.description
        if body.approval_status is not None:
            script.approval_status = body.approval_status
        system_log_service.write_system_log(
            db, level="info", message="스크립트 수정", category="script", user_id=user_id, context={"script_id": script.id}
        )
    db.refresh(script)
    return script


def copy_script(db: Session, script_id: int, body: ScriptCopyRequest, *, actor: str, user_id: int | None = None) -> Script:
    source = get_script(db, script_id)
    name = body.new_name.strip()
    _ensure_unique_name(db, name)
    with transaction(db):
        copy = Script(
            name=name,
            type=source.type,
            content=source.content,
            variables_json=source.variables_json,
            subject=source.subject,
            status="DRAFT",
            approval_status="PENDING",
            description=source.description,
            created_by=actor,
        )
        db.add(copy)
        db.flush()
        system_log_service.write_system_log(
            db,
            level="info",
            message="스크립트 복사",
            category="script",
            user_id=user_id,
            context={"script_id": copy.id, "source_script_id": source.id},
        )
    db.refresh(copy)
    return copy


def delete_script(db: Session, script_id: int, *, user_id: int | None = None) -> dict[str, Any]:
    script = get_script(db, script_id)
    raise_in_use(
        "이 스크립트를 사용하는 진행 중인 캠페인이 있어 삭제할 수 없습니다.",
        "script_in_use",
        active_campaigns_linked(db, "script", script.id),
    )
    name = script.name
    with transaction(db):
        db.query(CampaignScript).filter(CampaignScript.script_id == script_id).delete(synchronize_session=False)
        db.delete(script)
        system_log_service.write_system_log(
            db, level="info", message="스크립트 삭제", category="script", user_id=user_id, context={"script_id": script_id}
        )
    return {"id": script_id, "name": name}
