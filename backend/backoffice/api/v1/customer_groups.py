from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import get_current_user
from backoffice.api.response import envelope, paginated
from backoffice.db.session import get_db
from backoffice.schemas.customer_groups import (
    CustomerGroupCreateRequest,
    CustomerGroupStatusRequest,
    CustomerGroupUpdateRequest,
)
from backoffice.services import customer_group_service
from backoffice.services.session_service import SessionUser

router = APIRouter(prefix="/customer-groups", tags=["customer-groups"])


@router.get("")
def list_customer_groups(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    status: str | None = None,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    items, total, statistics = customer_group_service.list_groups(
        db, page=page, limit=limit, search=search, group_status=status
    )
    return paginated(request, items, page=page, limit=limit, total=total, statistics=statistics)


@router.post("")
def create_customer_group(
    request: Request,
    body: CustomerGroupCreateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    group = customer_group_service.create_group(db, body, actor=user.email, user_id=user.id)
    return envelope(request, customer_group_service.serialize_group(group), "고객군이 성공적으로 생성되었습니다.")


@router.get("/{group_id}")
def get_customer_group(
    request: Request,
    group_id: int,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, customer_group_service.serialize_group(customer_group_service.get_group(db, group_id)))


@router.put("/{group_id}")
def update_customer_group(
    request: Request,
    group_id: int,
    body: CustomerGroupUpdateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    group = customer_group_service.update_group(db, group_id, body, user_id=user.id)
    return envelope(request, customer_group_service.serialize_group(group), "고객군이 성공적으로 수정되었습니다.")


@router.patch("/{group_id}/status")
def change_customer_group_status(
    request: Request,
    group_id: int,
    body: CustomerGroupStatusRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    group, changed = customer_group_service.change_status(db, group_id, body, user_id=user.id)
    label = customer_group_service.STATUS_LABELS[group.status]
    message = f"고객군이 {label} 상태로 변경되었습니다." if changed else f"고객군이 이미 {label} 상태입니다."
    return envelope(request, customer_group_service.serialize_group(group), message)


@router.delete("/{group_id}")
def delete_customer_group(
    request: Request,
    group_id: int,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    payload = customer_group_service.delete_group(db, group_id, user_id=user.id)
    return envelope(request, payload, "고객군이 성공적으로 삭제되었습니다.")
