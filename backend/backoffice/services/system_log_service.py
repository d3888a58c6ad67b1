from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backoffice.core.timeutil import isoformat_utc
from backoffice.models.system_log import SystemLog


LOG_LEVELS = ("debug", "info", "warn", "error")
_PY_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}

logger = logging.getLogger("backoffice.audit")


def write_system_log(
    db: Session,
    *,
    level: str,
    message: str,
    category: str,
    user_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    context: dict[str, Any] | None = None,
) -> None:
    """Stage a system log row on ``db``; it commits with the caller's transaction."""
    payload = {"category": category, **(context or {})}
    db.add(
        SystemLog(
            level=level,
            message=message,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:500] or None,
            context_json=json.dumps(payload, sort_keys=True, default=str, ensure_ascii=False),
        )
    )
    logger.log(_PY_LEVELS.get(level, logging.INFO), message, extra={"user_id": user_id})


def serialize_system_log(row: SystemLog) -> dict[str, Any]:
    try:
        context = json.loads(row.context_json or "{}")
    except json.JSONDecodeError:
        context = {}
    return {
        "id": row.id,
        "level": row.level,
        "message": row.message,
        "user_id": row.user_id,
        "ip_address": row.ip_address,
        "user_agent": row.user_agent,
        "category": context.get("category"),
        "context": context,
        "created_at": isoformat_utc(row.created_at),
    }


def list_system_logs(
    db: Session,
    *,
    page: int,
    limit: int,
    level: str | None = None,
    category: str | None = None,
    search: str | None = None,
) -> tuple[list[dict[str, Any]], int, dict[str, int]]:
    query = db.query(SystemLog)
    if level and level != "all":
        query = query.filter(SystemLog.level == level)
    if category and category != "all":
        query = query.filter(SystemLog.context_json.like(f'%"category": {json.dumps(category)}%'))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(SystemLog.message.ilike(pattern), SystemLog.context_json.ilike(pattern)))

    total = query.count()
    rows = query.order_by(SystemLog.created_at.desc(), SystemLog.id.desc()).offset((page - 1) * limit).limit(limit).all()
    level_counts = {name: 0 for name in LOG_LEVELS}
    for row_level, count in db.query(SystemLog.level, func.count(SystemLog.id)).group_by(SystemLog.level).all():
        level_counts[row_level] = int(count)
    return [serialize_system_log(row) for row in rows], total, level_counts
