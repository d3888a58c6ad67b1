from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.services import session_service
from backoffice.services.session_service import SessionCredential, SessionUser


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_session_credential(token: str | None = Depends(oauth2_scheme)) -> SessionCredential:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "로그인이 필요합니다.", "reason_code": "missing_bearer_token"},
        )
    return session_service.resolve_credential(token)


def get_current_user(
    request: Request,
    credential: SessionCredential = Depends(get_session_credential),
    db: Session = Depends(get_db),
) -> SessionUser:
    user = session_service.validate(db, credential)
    request.state.user_id = user.id
    return user


def require_admin() -> Callable:
    def _enforcer(user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if not user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": "관리자 권한이 필요합니다.", "reason_code": "admin_required"},
            )
        return user

    return _enforcer


def client_context(request: Request) -> dict[str, str | None]:
    return {
        "ip_address": request.client.host if request.client is not None else None,
        "user_agent": request.headers.get("user-agent"),
    }
