from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import case, or_
from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.core.crypto import CryptoError, decrypt, encrypt
from backoffice.core.timeutil import isoformat_utc
from backoffice.db.session import transaction
from backoffice.models.channel import Channel
from backoffice.schemas.channels import ChannelCreateRequest, ChannelUpdateRequest
from backoffice.services import system_log_service
from backoffice.services.campaign_usage import active_campaigns_on_channel, raise_in_use


logger = logging.getLogger("backoffice.channels")

TYPE_LABELS = {
    "email": "이메일",
    "sms": "SMS",
    "push": "푸시",
    "kakao": "카카오톡",
    "web": "웹",
    "mobile": "모바일",
}
STATUS_LABELS = {"active": "활성", "inactive": "비활성", "maintenance": "점검중"}
_STATUS_ORDER = {"active": 1, "maintenance": 2, "inactive": 3}


def mask_secret(value: str | None) -> str | None:
    if not value:
        return None
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * 8 + value[-4:]


def _percent(numerator: int | float, denominator: int | float) -> float | None:
    if not denominator:
        return None
    return round(numerator / denominator * 100, 2)


def _encrypt_credential(value: str | None) -> str | None:
    if not value:
        return None
    return encrypt(value, master_secret=get_settings().master_secret)


def reveal_credential(stored: str | None) -> str | None:
    if not stored:
        return None
    try:
        return decrypt(stored, master_secret=get_settings().master_secret)
    except CryptoError as exc:
        # Rows written under another master secret stay listable, just unreadable.
        logger.warning("channel.credential_unreadable", extra={"reason_code": exc.reason_code})
        return None


def serialize_channel(channel: Channel) -> dict[str, Any]:
    try:
        config = json.loads(channel.config_json or "{}")
    except json.JSONDecodeError:
        config = {}
    return {
        "id": channel.id,
        "name": channel.name,
        "type": channel.type,
        "type_label": TYPE_LABELS.get(channel.type, channel.type),
        "description": channel.description,
        "status": channel.status,
        "status_label": STATUS_LABELS.get(channel.status, channel.status),
        "api_endpoint": channel.api_endpoint,
        "api_key": mask_secret(reveal_credential(channel.api_key_encrypted)),
        "api_secret": mask_secret(reveal_credential(channel.api_secret_encrypted)),
        "has_api_key": bool(channel.api_key_encrypted),
        "has_api_secret": bool(channel.api_secret_encrypted),
        "config": config,
        "rate_limit": channel.rate_limit,
        "cost_per_message": channel.cost_per_message,
        "monthly_quota": channel.monthly_quota,
        "current_usage": channel.current_usage,
        "total_sent": channel.total_sent,
        "total_success": channel.total_success,
        "success_rate": _percent(channel.total_success, channel.total_sent),
        "quota_usage_percent": _percent(channel.current_usage, channel.monthly_quota),
        "created_by": channel.created_by,
        "created_at": isoformat_utc(channel.created_at),
        "updated_at": isoformat_utc(channel.updated_at),
    }


def get_channel(db: Session, channel_id: int) -> Channel:
    channel = db.get(Channel, channel_id)
    if channel is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "채널을 찾을 수 없습니다.", "reason_code": "channel_not_found", "id": channel_id},
        )
    return channel


def list_channels(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    channel_type: str | None = None,
    channel_status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    query = db.query(Channel)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Channel.name.ilike(pattern), Channel.description.ilike(pattern)))
    if channel_type and channel_type != "all":
        query = query.filter(Channel.type == channel_type)
    if channel_status and channel_status != "all":
        query = query.filter(Channel.status == channel_status)
    total = query.count()
    status_rank = case(_STATUS_ORDER, value=Channel.status, else_=4)
    rows = query.order_by(status_rank, Channel.type, Channel.name).offset((page - 1) * limit).limit(limit).all()
    return [serialize_channel(row) for row in rows], total


def create_channel(db: Session, body: ChannelCreateRequest, *, actor: str, user_id: int | None = None) -> Channel:
    with transaction(db):
        channel = Channel(
            name=body.name.strip(),
            type=body.type,
            description=body.description,
            status=body.status,
            api_endpoint=body.api_endpoint,
            api_key_encrypted=_encrypt_credential(body.api_key),
            api_secret_encrypted=_encrypt_credential(body.api_secret),
            config_json=json.dumps(body.config, ensure_ascii=False, sort_keys=True),
            rate_limit=body.rate_limit,
            cost_per_message=body.cost_per_message,
            monthly_quota=body.monthly_quota,
            created_by=actor,
        )
        db.add(channel)
        db.flush()
        system_log_service.write_system_log(
            db, level="info", message="채널 생성", category="channel", user_id=user_id, context={"channel_id": channel.id}
        )
    db.refresh(channel)
    return channel


def update_channel(db: Session, channel_id: int, body: ChannelUpdateRequest, *, user_id: int | None = None) -> Channel:
    channel = get_channel(db, channel_id)
    with transaction(db):
        channel.name = body.name.strip()
        channel.type = body.type
        channel.description = body.description
        channel.status = body.status
        channel.api_endpoint = body.api_endpoint
        # Omitted credentials keep the stored value.
        if body.api_key:
            channel.api_key_encrypted = _encrypt_credential(body.api_key)
        if body.api_secret:
            channel.api_secret_encrypted = _encrypt_credential(body.api_secret)
        channel.config_json = json.dumps(body.config, ensure_ascii=False, sort_keys=True)
        channel.rate_limit = body.rate_limit
        channel.cost_per_message = body.cost_per_message
        channel.monthly_quota = body.monthly_quota
        system_log_service.write_system_log(
            db, level="info", message="채널 수정", category="channel", user_id=user_id, context={"channel_id": channel.id}
        )
    db.refresh(channel)
    return channel


def delete_channel(db: Session, channel_id: int, *, user_id: int | None = None) -> dict[str, Any]:
    channel = get_channel(db, channel_id)
    raise_in_use(
        "이 채널을 사용하는 진행 중인 캠페인이 있어 삭제할 수 없습니다.",
        "channel_in_use",
        active_campaigns_on_channel(db, channel.type),
    )
    name = channel.name
    with transaction(db):
        db.delete(channel)
        system_log_service.write_system_log(
            db, level="info", message="채널 삭제", category="channel", user_id=user_id, context={"channel_id": channel_id}
        )
    return {"id": channel_id, "name": name}
