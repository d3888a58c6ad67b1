import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from fastapi import HTTPException, status

from backoffice.core.config import get_settings


SESSION_TOKEN_TYPE = "session"


def create_session_token(
    *,
    user_id: int,
    email: str,
    name: str | None,
    role: str,
    session_kind: str,
    last_activity: datetime | None = None,
    ttl_seconds: int | None = None,
) -> tuple[str, datetime]:
    settings = get_settings()
    now = datetime.now(UTC)
    activity = last_activity or now
    expires_at = now + timedelta(seconds=ttl_seconds or settings.session_timeout_seconds)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "user_id": user_id,
        "email": email,
        "name": name,
        "role": role,
        "type": SESSION_TOKEN_TYPE,
        "session_kind": session_kind,
        "last_activity": int(activity.timestamp()),
        "jti": uuid.uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires_at


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "세션이 만료되었습니다. 다시 로그인해주세요.", "reason_code": "session_expired"},
        ) from exc
    except jwt.PyJWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "유효하지 않은 인증 토큰입니다.", "reason_code": "invalid_token"},
        ) from exc
    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "유효하지 않은 인증 토큰입니다.", "reason_code": "invalid_token_type"},
        )
    return payload
