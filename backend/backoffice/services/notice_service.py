from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.db.session import transaction
from backoffice.models.notice import Notice
from backoffice.schemas.notices import NoticeCreateRequest, NoticeOut, NoticeUpdateRequest
from backoffice.services import system_log_service


TYPE_LABELS = {"general": "일반", "system": "시스템", "maintenance": "점검", "event": "이벤트", "urgent": "긴급"}
STATUS_LABELS = {"draft": "임시저장", "published": "게시", "archived": "보관"}


def serialize_notice(notice: Notice) -> dict[str, Any]:
    data = NoticeOut.model_validate(notice).model_dump(mode="json")
    data["type_label"] = TYPE_LABELS.get(notice.type, notice.type)
    data["status_label"] = STATUS_LABELS.get(notice.status, notice.status)
    return data


def get_notice(db: Session, notice_id: int) -> Notice:
    notice = db.get(Notice, notice_id)
    if notice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "공지사항을 찾을 수 없습니다.", "reason_code": "notice_not_found", "id": notice_id},
        )
    return notice


def view_notice(db: Session, notice_id: int) -> Notice:
    notice = get_notice(db, notice_id)
    notice.view_count = Notice.view_count + 1
    db.commit()
    db.refresh(notice)
    return notice


def list_notices(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    notice_type: str | None = None,
    notice_status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    query = db.query(Notice)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Notice.title.ilike(pattern), Notice.content.ilike(pattern)))
    if notice_type and notice_type != "all":
        query = query.filter(Notice.type == notice_type)
    if notice_status and notice_status != "all":
        query = query.filter(Notice.status == notice_status)
    total = query.count()
    rows = (
        query.order_by(Notice.is_important.desc(), Notice.created_at.desc(), Notice.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return [serialize_notice(row) for row in rows], total


def _apply(notice: Notice, body: NoticeCreateRequest) -> None:
    for field, value in body.model_dump().items():
        setattr(notice, field, value)


def create_notice(db: Session, body: NoticeCreateRequest, *, actor: str, user_id: int | None = None) -> Notice:
    with transaction(db):
        notice = Notice(created_by=actor, view_count=0)
        _apply(notice, body)
        db.add(notice)
        db.flush()
        system_log_service.write_system_log(
            db, level="info", message="공지사항 생성", category="notice", user_id=user_id, context={"notice_id": notice.id}
        )
    db.refresh(notice)
    return notice


def update_notice(db: Session, notice_id: int, body: NoticeUpdateRequest, *, user_id: int | None = None) -> Notice:
    notice = get_notice(db, notice_id)
    with transaction(db):
        _apply(notice, body)
        system_log_service.write_system_log(
            db, level="info", message="공지사항 수정", category="notice", user_id=user_id, context={"notice_id": notice.id}
        )
    db.refresh(notice)
    return notice


def delete_notice(db: Session, notice_id: int, *, user_id: int | None = None) -> dict[str, Any]:
    notice = get_notice(db, notice_id)
    title = notice.title
    with transaction(db):
        db.delete(notice)
        system_log_service.write_system_log(
            db, level="info", message="공지사항 삭제", category="notice", user_id=user_id, context={"notice_id": notice_id}
        )
    return {"id": notice_id, "title": title}
