from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.core.passwords import PASSWORD_MIN_LENGTH, hash_password, is_acceptable_password, verify_password
from backoffice.core.timeutil import isoformat_utc
from backoffice.db.session import transaction
from backoffice.models.password_reset import PasswordResetRequest
from backoffice.models.user import User
from backoffice.models.user_session import UserSession
from backoffice.schemas.auth import (
    AdminPasswordResetIn,
    LoginRequest,
    PasswordRequestUpdateIn,
    PasswordResetRequestIn,
    SignupRequest,
    UserCreateRequest,
    UserUpdateRequest,
)
from backoffice.services import session_service, system_log_service
from backoffice.services.session_service import SessionCredential, SessionUser


logger = logging.getLogger("backoffice.auth")

LOCAL_ADMIN_EMAIL = "admin@local.dev"
LOCAL_ADMIN_PASSWORD = "admin123!"


def seed_local_admin(db: Session) -> None:
    user = db.query(User).filter(User.email == LOCAL_ADMIN_EMAIL).first()
    if user is None:
        db.add(
            User(
                email=LOCAL_ADMIN_EMAIL,
                password_hash=hash_password(LOCAL_ADMIN_PASSWORD),
                name="관리자",
                role="admin",
                status="active",
            )
        )
        db.commit()


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "status": user.status,
        "last_login": isoformat_utc(user.last_login),
        "created_at": isoformat_utc(user.created_at),
    }


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password(password: str) -> None:
    if not is_acceptable_password(password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": f"비밀번호는 최소 {PASSWORD_MIN_LENGTH}자 이상이어야 합니다.",
                "reason_code": "password_too_short",
                "min_length": PASSWORD_MIN_LENGTH,
            },
        )


def _create_user(db: Session, *, email: str, password: str, name: str, role: str) -> User:
    _check_password(password)
    normalized = _normalize_email(email)
    if db.query(User.id).filter(User.email == normalized).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "이미 존재하는 이메일입니다.", "reason_code": "email_already_exists"},
        )
    user = User(email=normalized, password_hash=hash_password(password), name=name.strip(), role=role, status="active")
    db.add(user)
    db.flush()
    return user


def signup(db: Session, body: SignupRequest, *, client: dict[str, str | None] | None = None) -> User:
    client = client or {}
    with transaction(db):
        user = _create_user(db, email=body.email, password=body.password, name=body.name, role="user")
        system_log_service.write_system_log(
            db,
            level="info",
            message="회원가입 성공",
            category="auth",
            user_id=user.id,
            ip_address=client.get("ip_address"),
            user_agent=client.get("user_agent"),
            context={"email": user.email},
        )
    db.refresh(user)
    return user


def login(db: Session, body: LoginRequest, *, client: dict[str, str | None] | None = None) -> dict[str, Any]:
    client = client or {}
    email = _normalize_email(body.email)
    user = db.query(User).filter(User.email == email).first()
    if user is None or not verify_password(body.password, user.password_hash):
        system_log_service.write_system_log(
            db,
            level="warn",
            message="로그인 실패",
            category="auth",
            ip_address=client.get("ip_address"),
            user_agent=client.get("user_agent"),
            context={"email": email},
        )
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "이메일 또는 비밀번호가 올바르지 않습니다.", "reason_code": "invalid_credentials"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "비활성화된 계정입니다. 관리자에게 문의하세요.", "reason_code": "user_not_active"},
        )

    with transaction(db):
        token, expires_at = session_service.open_session(db, user, kind=body.session_mode)
        user.last_login = datetime.now(UTC)
        system_log_service.write_system_log(
            db,
            level="info",
            message="로그인 성공",
            category="auth",
            user_id=user.id,
            ip_address=client.get("ip_address"),
            user_agent=client.get("user_agent"),
            context={"session_kind": body.session_mode},
        )
    logger.info("auth.login", extra={"user_id": user.id})
    return {
        "token": token,
        "token_type": "bearer",
        "expires_at": expires_at.isoformat(),
        "session_kind": body.session_mode,
        "user": serialize_user(user),
    }


def logout(db: Session, credential: SessionCredential, user: SessionUser) -> dict[str, Any]:
    with transaction(db):
        revoked = session_service.close_session(db, credential)
        system_log_service.write_system_log(
            db,
            level="info",
            message="로그아웃",
            category="auth",
            user_id=user.id,
            context={"session_kind": user.kind, "revoked": revoked},
        )
    return {"revoked": revoked}


def refresh(db: Session, credential: SessionCredential, user: SessionUser) -> dict[str, Any]:
    token, expires_at = session_service.extend_session(db, credential, user)
    return {
        "token": token,
        "token_type": "bearer",
        "expires_at": expires_at.isoformat(),
        "session_kind": user.kind,
        "user": user.as_dict(),
    }


def request_password_reset(
    db: Session,
    body: PasswordResetRequestIn,
    *,
    client: dict[str, str | None] | None = None,
) -> PasswordResetRequest:
    client = client or {}
    email = _normalize_email(body.email)
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "등록되지 않은 이메일입니다.", "reason_code": "user_not_found"},
        )
    with transaction(db):
        row = PasswordResetRequest(user_id=user.id, email=user.email, reason=body.reason, status="pending")
        db.add(row)
        system_log_service.write_system_log(
            db,
            level="info",
            message="비밀번호 재설정 요청 접수",
            category="auth",
            user_id=user.id,
            ip_address=client.get("ip_address"),
            user_agent=client.get("user_agent"),
        )
    db.refresh(row)
    return row


def list_users(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    role: str | None = None,
    user_status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.email.ilike(pattern), User.name.ilike(pattern)))
    if role and role != "all":
        query = query.filter(User.role == role)
    if user_status and user_status != "all":
        query = query.filter(User.status == user_status)
    total = query.count()
    rows = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return [serialize_user(row) for row in rows], total


def create_user(db: Session, body: UserCreateRequest, *, actor: SessionUser) -> User:
    with transaction(db):
        user = _create_user(db, email=body.email, password=body.password, name=body.name, role=body.role)
        system_log_service.write_system_log(
            db,
            level="info",
            message="사용자 생성",
            category="admin",
            user_id=actor.id,
            context={"target_user_id": user.id, "role": user.role},
        )
    db.refresh(user)
    return user


def update_user(db: Session, user_id: int, body: UserUpdateRequest, *, actor: SessionUser) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "사용자를 찾을 수 없습니다.", "reason_code": "user_not_found", "user_id": user_id},
        )
    changes = body.model_dump(exclude_none=True)
    if user.id == actor.id and (changes.get("role", user.role) != "admin" or changes.get("status", user.status) != "active"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "자신의 권한이나 상태는 변경할 수 없습니다.", "reason_code": "cannot_modify_self"},
        )
    with transaction(db):
        for field, value in changes.items():
            setattr(user, field, value)
        if changes.get("status") == "inactive":
            db.query(UserSession).filter(UserSession.user_id == user.id).delete(synchronize_session=False)
        system_log_service.write_system_log(
            db,
            level="info",
            message="사용자 정보 변경",
            category="admin",
            user_id=actor.id,
            context={"target_user_id": user.id, **changes},
        )
    db.refresh(user)
    return user


def serialize_password_request(row: PasswordResetRequest, user_name: str | None = None) -> dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "email": row.email,
        "name": user_name,
        "status": row.status,
        "reason": row.reason,
        "processed_by": row.processed_by,
        "processed_at": isoformat_utc(row.processed_at),
        "created_at": isoformat_utc(row.created_at),
    }


def list_password_requests(
    db: Session,
    *,
    page: int,
    limit: int,
    request_status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    query = db.query(PasswordResetRequest, User.name).outerjoin(User, User.id == PasswordResetRequest.user_id)
    if request_status and request_status != "all":
        query = query.filter(PasswordResetRequest.status == request_status)
    total = query.count()
    rows = (
        query.order_by(PasswordResetRequest.created_at.desc(), PasswordResetRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return [serialize_password_request(row, name) for row, name in rows], total


def _pending_request(db: Session, request_id: int) -> PasswordResetRequest:
    row = db.get(PasswordResetRequest, request_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "비밀번호 재설정 요청을 찾을 수 없습니다.", "reason_code": "password_request_not_found"},
        )
    if row.status != "pending":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "이미 처리된 요청입니다.",
                "reason_code": "password_request_not_pending",
                "status": row.status,
            },
        )
    return row


def update_password_request(
    db: Session,
    request_id: int,
    body: PasswordRequestUpdateIn,
    *,
    actor: SessionUser,
) -> PasswordResetRequest:
    row = _pending_request(db, request_id)
    with transaction(db):
        row.status = body.status
        if body.reason:
            row.reason = body.reason
        row.processed_by = actor.email
        row.processed_at = datetime.now(UTC)
        system_log_service.write_system_log(
            db,
            level="info",
            message="비밀번호 재설정 요청 처리",
            category="admin",
            user_id=actor.id,
            context={"password_request_id": row.id, "status": body.status},
        )
    db.refresh(row)
    return row


def admin_reset_password(db: Session, body: AdminPasswordResetIn, *, actor: SessionUser) -> dict[str, Any]:
    _check_password(body.new_password)
    request_row: PasswordResetRequest | None = None
    if body.request_id is not None:
        request_row = _pending_request(db, body.request_id)
        user = db.get(User, request_row.user_id) if request_row.user_id is not None else None
    elif body.email:
        user = db.query(User).filter(User.email == _normalize_email(body.email)).first()
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "이메일 또는 요청 ID가 필요합니다.", "reason_code": "reset_target_required"},
        )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "사용자를 찾을 수 없습니다.", "reason_code": "user_not_found"},
        )

    now = datetime.now(UTC)
    with transaction(db):
        user.password_hash = hash_password(body.new_password)
        pending = db.query(PasswordResetRequest).filter(
            PasswordResetRequest.user_id == user.id,
            PasswordResetRequest.status == "pending",
        )
        completed = 0
        for row in pending.all():
            row.status = "completed"
            row.processed_by = actor.email
            row.processed_at = now
            completed += 1
        # Sessions opened with the old password are revoked.
        db.query(UserSession).filter(UserSession.user_id == user.id).delete(synchronize_session=False)
        system_log_service.write_system_log(
            db,
            level="info",
            message="관리자 비밀번호 재설정",
            category="admin",
            user_id=actor.id,
            context={"target_user_id": user.id, "completed_requests": completed},
        )
    logger.info("auth.password_reset", extra={"user_id": user.id})
    return {"user_id": user.id, "email": user.email, "completed_requests": completed}
