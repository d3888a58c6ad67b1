from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import get_current_user, require_admin
from backoffice.api.response import envelope, paginated
from backoffice.db.session import get_db
from backoffice.schemas.notices import NoticeCreateRequest, NoticeUpdateRequest
from backoffice.services import notice_service
from backoffice.services.session_service import SessionUser

router = APIRouter(prefix="/notices", tags=["notices"])


@router.get("")
def list_notices(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    type: str | None = None,
    status: str | None = None,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    items, total = notice_service.list_notices(
        db, page=page, limit=limit, search=search, notice_type=type, notice_status=status
    )
    return paginated(request, items, page=page, limit=limit, total=total)


@router.post("")
def create_notice(
    request: Request,
    body: NoticeCreateRequest,
    admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    notice = notice_service.create_notice(db, body, actor=admin.email, user_id=admin.id)
    return envelope(request, notice_service.serialize_notice(notice), "공지사항이 등록되었습니다.")


@router.get("/{notice_id}")
def get_notice(
    request: Request,
    notice_id: int,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, notice_service.serialize_notice(notice_service.view_notice(db, notice_id)))


@router.put("/{notice_id}")
def update_notice(
    request: Request,
    notice_id: int,
    body: NoticeUpdateRequest,
    admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    notice = notice_service.update_notice(db, notice_id, body, user_id=admin.id)
    return envelope(request, notice_service.serialize_notice(notice), "공지사항이 수정되었습니다.")


@router.delete("/{notice_id}")
def delete_notice(
    request: Request,
    notice_id: int,
    admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, notice_service.delete_notice(db, notice_id, user_id=admin.id), "공지사항이 삭제되었습니다.")
