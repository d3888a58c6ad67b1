from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import get_current_user
from backoffice.api.response import envelope, paginated
from backoffice.db.session import get_db
from backoffice.schemas.channels import ChannelCreateRequest, ChannelUpdateRequest
from backoffice.services import channel_service
from backoffice.services.session_service import SessionUser

router = APIRouter(prefix="/channels", tags=["channels"])


@router.get("")
def list_channels(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    search: str | None = None,
    type: str | None = None,
    status: str | None = None,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    items, total = channel_service.list_channels(
        db, page=page, limit=limit, search=search, channel_type=type, channel_status=status
    )
    return paginated(request, items, page=page, limit=limit, total=total)


@router.post("")
def create_channel(
    request: Request,
    body: ChannelCreateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    channel = channel_service.create_channel(db, body, actor=user.email, user_id=user.id)
    return envelope(request, channel_service.serialize_channel(channel), "채널이 생성되었습니다.")


@router.get("/{channel_id}")
def get_channel(
    request: Request,
    channel_id: int,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, channel_service.serialize_channel(channel_service.get_channel(db, channel_id)))


@router.put("/{channel_id}")
def update_channel(
    request: Request,
    channel_id: int,
    body: ChannelUpdateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    channel = channel_service.update_channel(db, channel_id, body, user_id=user.id)
    return envelope(request, channel_service.serialize_channel(channel), "채널이 수정되었습니다.")


@router.delete("/{channel_id}")
def delete_channel(
    request: Request,
    channel_id: int,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, channel_service.delete_channel(db, channel_id, user_id=user.id), "채널이 삭제되었습니다.")
