from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import client_context, get_current_user, get_session_credential
from backoffice.api.response import envelope
from backoffice.db.session import get_db
from backoffice.schemas.auth import LoginRequest, PasswordResetRequestIn, SignupRequest
from backoffice.services import auth_service, session_service
from backoffice.services.session_service import SessionCredential, SessionUser

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup")
def signup(request: Request, body: SignupRequest, db: Session = Depends(get_db)) -> dict:
    user = auth_service.signup(db, body, client=client_context(request))
    return envelope(request, auth_service.serialize_user(user), "회원가입이 완료되었습니다.")


@router.post("/login")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> dict:
    payload = auth_service.login(db, body, client=client_context(request))
    request.state.user_id = payload["user"]["id"]
    return envelope(request, payload, "로그인되었습니다.")


@router.post("/logout")
def logout(
    request: Request,
    credential: SessionCredential = Depends(get_session_credential),
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, auth_service.logout(db, credential, user), "로그아웃되었습니다.")


@router.post("/refresh")
def refresh(
    request: Request,
    credential: SessionCredential = Depends(get_session_credential),
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, auth_service.refresh(db, credential, user))


@router.get("/check")
def check(request: Request, user: SessionUser = Depends(get_current_user)) -> dict:
    return envelope(request, {"authenticated": True, "user": user.as_dict()})


@router.get("/validate-session")
def validate_session(
    request: Request,
    credential: SessionCredential = Depends(get_session_credential),
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    status_payload = session_service.session_status(db, credential)
    return envelope(request, {**status_payload, "user": user.as_dict()})


@router.post("/request-password-reset")
def request_password_reset(request: Request, body: PasswordResetRequestIn, db: Session = Depends(get_db)) -> dict:
    row = auth_service.request_password_reset(db, body, client=client_context(request))
    return envelope(request, {"id": row.id, "status": row.status}, "비밀번호 재설정 요청이 접수되었습니다.")


@router.get("/me")
def me(request: Request, user: SessionUser = Depends(get_current_user)) -> dict:
    return envelope(request, user.as_dict())
