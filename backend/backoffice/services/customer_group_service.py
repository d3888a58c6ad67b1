from __future__ import annotations

import json
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backoffice.db.session import transaction
from backoffice.models.customer_group import CustomerGroup
from backoffice.schemas.customer_groups import (
    CustomerGroupCreateRequest,
    CustomerGroupOut,
    CustomerGroupStatusRequest,
    CustomerGroupUpdateRequest,
)
from backoffice.services import system_log_service
from backoffice.services.campaign_usage import active_campaigns_linked, raise_in_use


STATUS_LABELS = {"active": "활성", "inactive": "비활성"}


def serialize_group(group: CustomerGroup) -> dict[str, Any]:
    data = CustomerGroupOut.model_validate(group).model_dump(mode="json")
    try:
        data["filter_criteria"] = json.loads(group.filter_criteria or "{}")
    except json.JSONDecodeError:
        data["filter_criteria"] = {}
    data["status_label"] = STATUS_LABELS.get(group.status, group.status)
    return data


def get_group(db: Session, group_id: int) -> CustomerGroup:
    group = db.query(CustomerGroup).filter(CustomerGroup.id == group_id, CustomerGroup.use_yn == "Y").first()
    if group is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "고객군을 찾을 수 없습니다.", "reason_code": "customer_group_not_found", "id": group_id},
        )
    return group


def list_groups(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    group_status: str | None = None,
) -> tuple[list[dict[str, Any]], int, dict[str, int]]:
    query = db.query(CustomerGroup).filter(CustomerGroup.use_yn == "Y")
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                CustomerGroup.group_name.ilike(pattern),
                CustomerGroup.created_dept.ilike(pattern),
                CustomerGroup.created_emp_no.ilike(pattern),
            )
        )
    if group_status and group_status != "all":
        query = query.filter(CustomerGroup.status == group_status.lower())

    total = query.count()
    active = query.filter(CustomerGroup.status == "active").count()
    customers = query.with_entities(func.coalesce(func.sum(CustomerGroup.customer_count), 0)).scalar() or 0
    rows = query.order_by(CustomerGroup.created_at.desc(), CustomerGroup.id.desc()).offset((page - 1) * limit).limit(limit).all()
    statistics = {"totalGroups": total, "activeGroups": active, "totalCustomerCount": int(customers)}
    return [serialize_group(row) for row in rows], total, statistics


def create_group(db: Session, body: CustomerGroupCreateRequest, *, actor: str, user_id: int | None = None) -> CustomerGroup:
    with transaction(db):
        group = CustomerGroup(
            group_name=body.group_name.strip(),
            description=body.description,
            customer_count=body.customer_count,
            filter_criteria=json.dumps(body.filter_criteria, ensure_ascii=False, sort_keys=True),
            use_yn="Y",
            status="active",
            created_dept=body.created_dept,
            created_emp_no=body.created_emp_no or actor,
        )
        db.add(group)
        db.flush()
        system_log_service.write_system_log(
            db,
            level="info",
            message="고객군 생성",
            category="customer_group",
            user_id=user_id,
            context={"customer_group_id": group.id},
        )
    db.refresh(group)
    return group


def update_group(
    db: Session,
    group_id: int,
    body: CustomerGroupUpdateRequest,
    *,
    user_id: int | None = None,
) -> CustomerGroup:
    group = get_group(db, group_id)
    with transaction(db):
        group.group_name = body.group_name.strip()
        group.description = body.description
        group.customer_count = body.customer_count
        group.filter_criteria = json.dumps(body.filter_criteria, ensure_ascii=False, sort_keys=True)
        group.created_dept = body.created_dept
        system_log_service.write_system_log(
            db,
            level="info",
            message="고객군 수정",
            category="customer_group",
            user_id=user_id,
            context={"customer_group_id": group.id},
        )
    db.refresh(group)
    return group


def change_status(
    db: Session,
    group_id: int,
    body: CustomerGroupStatusRequest,
    *,
    user_id: int | None = None,
) -> tuple[CustomerGroup, bool]:
    """Returns the group and whether anything changed."""
    group = get_group(db, group_id)
    if group.status == body.status:
        return group, False
    if body.status == "inactive":
        raise_in_use(
            "이 고객군을 사용하는 진행 중인 캠페인이 있어 비활성화할 수 없습니다.",
            "customer_group_in_use",
            active_campaigns_linked(db, "customer_group", group.id),
        )
    with transaction(db):
        group.status = body.status
        system_log_service.write_system_log(
            db,
            level="info",
            message="고객군 상태 변경",
            category="customer_group",
            user_id=user_id,
            context={"customer_group_id": group.id, "status": body.status},
        )
    db.refresh(group)
    return group, True


def delete_group(db: Session, group_id: int, *, user_id: int | None = None) -> dict[str, Any]:
    group = get_group(db, group_id)
    raise_in_use(
        "이 고객군을 사용하는 진행 중인 캠페인이 있어 삭제할 수 없습니다.",
        "customer_group_in_use",
        active_campaigns_linked(db, "customer_group", group.id),
    )
    with transaction(db):
        group.use_yn = "N"
        group.status = "inactive"
        system_log_service.write_system_log(
            db,
            level="info",
            message="고객군 삭제",
            category="customer_group",
            user_id=user_id,
            context={"customer_group_id": group.id},
        )
    return {"id": group_id, "group_name": group.group_name}
