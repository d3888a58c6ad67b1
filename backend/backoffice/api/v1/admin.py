from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import require_admin
from backoffice.api.response import envelope, paginated
from backoffice.db.session import get_db
from backoffice.schemas.auth import AdminPasswordResetIn, PasswordRequestUpdateIn, UserCreateRequest, UserUpdateRequest
from backoffice.services import auth_service, system_log_service
from backoffice.services.session_service import SessionUser

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
def list_users(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    role: str | None = None,
    status: str | None = None,
    _admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    items, total = auth_service.list_users(db, page=page, limit=limit, search=search, role=role, user_status=status)
    return paginated(request, items, page=page, limit=limit, total=total)


@router.post("/users")
def create_user(
    request: Request,
    body: UserCreateRequest,
    admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    user = auth_service.create_user(db, body, actor=admin)
    return envelope(request, auth_service.serialize_user(user), "사용자가 생성되었습니다.")


@router.put("/users/{user_id}")
def update_user(
    request: Request,
    user_id: int,
    body: UserUpdateRequest,
    admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    user = auth_service.update_user(db, user_id, body, actor=admin)
    return envelope(request, auth_service.serialize_user(user), "사용자 정보가 수정되었습니다.")


@router.get("/password-requests")
def list_password_requests(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str | None = None,
    _admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    items, total = auth_service.list_password_requests(db, page=page, limit=limit, request_status=status)
    return paginated(request, items, page=page, limit=limit, total=total)


@router.put("/password-requests/{request_id}")
def update_password_request(
    request: Request,
    request_id: int,
    body: PasswordRequestUpdateIn,
    admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    row = auth_service.update_password_request(db, request_id, body, actor=admin)
    return envelope(request, auth_service.serialize_password_request(row), "요청이 처리되었습니다.")


@router.post("/reset-password")
def reset_password(
    request: Request,
    body: AdminPasswordResetIn,
    admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    payload = auth_service.admin_reset_password(db, body, actor=admin)
    return envelope(request, payload, "비밀번호가 재설정되었습니다.")


@router.get("/logs")
def list_logs(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    level: str | None = None,
    category: str | None = None,
    search: str | None = None,
    _admin: SessionUser = Depends(require_admin()),
    db: Session = Depends(get_db),
) -> dict:
    items, total, level_counts = system_log_service.list_system_logs(
        db, page=page, limit=limit, level=level, category=category, search=search
    )
    return paginated(request, items, page=page, limit=limit, total=total, levelCounts=level_counts)
