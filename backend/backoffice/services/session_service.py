from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.core.security import create_session_token, decode_token
from backoffice.core.timeutil import as_utc
from backoffice.models.user import User
from backoffice.models.user_session import UserSession
from backoffice.services.inactivity import InactivityTracker, SessionState


logger = logging.getLogger("backoffice.sessions")

STATELESS = "stateless"
PERSISTED = "persisted"
SESSION_KINDS = {STATELESS, PERSISTED}


@dataclass(frozen=True)
class StatelessSession:
    token: str
    claims: dict


@dataclass(frozen=True)
class PersistedSession:
    token: str
    claims: dict


SessionCredential = StatelessSession | PersistedSession


@dataclass(frozen=True)
class SessionUser:
    id: int
    email: str
    name: str
    role: str
    kind: str
    last_activity: datetime
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "session_kind": self.kind,
        }


def _unauthorized(message: str, reason_code: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message, "reason_code": reason_code},
    )


def build_tracker(*, last_activity: datetime, warned_at: datetime | None = None) -> InactivityTracker:
    settings = get_settings()
    tracker = InactivityTracker(
        timeout_seconds=settings.session_timeout_seconds,
        warning_seconds=settings.session_warning_seconds,
    )
    tracker.init(last_activity=last_activity, warned_at=warned_at)
    return tracker


def resolve_credential(token: str) -> SessionCredential:
    claims = decode_token(token)
    kind = claims.get("session_kind")
    if kind == PERSISTED:
        return PersistedSession(token=token, claims=claims)
    if kind == STATELESS:
        return StatelessSession(token=token, claims=claims)
    raise _unauthorized("유효하지 않은 인증 토큰입니다.", "invalid_session_kind")


def open_session(db: Session, user: User, *, kind: str = PERSISTED) -> tuple[str, datetime]:
    if kind not in SESSION_KINDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "지원하지 않는 세션 유형입니다.", "reason_code": "invalid_session_kind"},
        )
    now = datetime.now(UTC)
    token, expires_at = create_session_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        session_kind=kind,
        last_activity=now,
    )
    if kind == PERSISTED:
        db.add(UserSession(token=token, user_id=user.id, expires_at=expires_at, last_activity=now))
    return token, expires_at


def close_session(db: Session, credential: SessionCredential) -> bool:
    match credential:
        case PersistedSession(token=token):
            deleted = db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)
            return deleted > 0
        case StatelessSession():
            # Nothing server-side to revoke; the token lapses at its own expiry.
            return False


def _load_user(db: Session, user_id: object) -> User:
    if not isinstance(user_id, int):
        raise _unauthorized("유효하지 않은 인증 토큰입니다.", "invalid_token_subject")
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("비활성화된 계정입니다.", "user_not_active")
    return user


def _load_row(db: Session, token: str) -> UserSession:
    row = db.query(UserSession).filter(UserSession.token == token).first()
    if row is None:
        raise _unauthorized("세션이 종료되었습니다. 다시 로그인해주세요.", "session_revoked")
    return row


def _tracker_for(db: Session, credential: SessionCredential) -> tuple[InactivityTracker, UserSession | None]:
    match credential:
        case PersistedSession(token=token):
            row = _load_row(db, token)
            return build_tracker(last_activity=row.last_activity, warned_at=row.warned_at), row
        case StatelessSession(claims=claims):
            last_activity = datetime.fromtimestamp(int(claims.get("last_activity", 0)), UTC)
            return build_tracker(last_activity=last_activity), None


def validate(db: Session, credential: SessionCredential) -> SessionUser:
    """Resolve either session model to the user it authenticates."""
    user = _load_user(db, credential.claims.get("user_id"))
    tracker, row = _tracker_for(db, credential)
    if tracker.state() is SessionState.EXPIRED:
        if row is not None:
            db.delete(row)
            db.commit()
        raise _unauthorized("장시간 활동이 없어 세션이 만료되었습니다.", "session_inactive")
    if row is not None:
        expires_at = as_utc(row.expires_at)
        if expires_at <= datetime.now(UTC):
            db.delete(row)
            db.commit()
            raise _unauthorized("세션이 만료되었습니다. 다시 로그인해주세요.", "session_expired")
    else:
        expires_at = datetime.fromtimestamp(int(credential.claims["exp"]), UTC)
    return SessionUser(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        kind=PERSISTED if isinstance(credential, PersistedSession) else STATELESS,
        last_activity=tracker.last_activity,
        expires_at=expires_at,
    )


def session_status(db: Session, credential: SessionCredential) -> dict[str, object]:
    """Report the inactivity state, recording the first entry into the warning window."""
    tracker, row = _tracker_for(db, credential)
    snapshot = tracker.snapshot()
    if row is not None and row.warned_at is None and tracker.warned_at is not None:
        row.warned_at = tracker.warned_at
        db.commit()
    return {
        "valid": snapshot.state is not SessionState.EXPIRED,
        "session_kind": PERSISTED if row is not None else STATELESS,
        **snapshot.as_dict(),
    }


def extend_session(db: Session, credential: SessionCredential, user: SessionUser) -> tuple[str, datetime]:
    """Record activity and issue a fresh token. Refused once the warning window was entered."""
    tracker, row = _tracker_for(db, credential)
    if not tracker.record_activity():
        if row is not None and row.warned_at is None and tracker.warned_at is not None:
            row.warned_at = tracker.warned_at
            db.commit()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "세션 만료 경고 이후에는 세션을 연장할 수 없습니다.",
                "reason_code": "session_extension_refused",
                "state": tracker.state().value,
            },
        )
    settings = get_settings()
    token, expires_at = create_session_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        session_kind=user.kind,
        last_activity=tracker.last_activity,
    )
    if row is not None:
        row.token = token
        row.last_activity = tracker.last_activity
        row.expires_at = tracker.last_activity + timedelta(seconds=settings.session_timeout_seconds)
        expires_at = row.expires_at
        db.commit()
    logger.info("session.extended", extra={"user_id": user.id})
    return token, expires_at


def purge_expired_sessions(db: Session) -> int:
    now = datetime.now(UTC)
    deleted = db.query(UserSession).filter(UserSession.expires_at < now).delete(synchronize_session=False)
    db.commit()
    return deleted
