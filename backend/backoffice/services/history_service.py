from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backoffice.core.metrics import campaign_status_transitions_total
from backoffice.core.timeutil import isoformat_utc
from backoffice.models.campaign import Campaign
from backoffice.models.campaign_history import CampaignHistory
from backoffice.services.campaign_status import action_label, status_label


DATE_RANGES = ("today", "week", "month")


def record_history(
    db: Session,
    *,
    campaign_id: int,
    action_type: str,
    action_by: str,
    previous_status: str | None,
    new_status: str | None,
    comments: str | None,
) -> CampaignHistory:
    row = CampaignHistory(
        campaign_id=campaign_id,
        action_type=action_type,
        action_by=action_by or "unknown",
        previous_status=previous_status,
        new_status=new_status,
        comments=comments,
        action_date=datetime.now(UTC),
    )
    db.add(row)
    campaign_status_transitions_total.labels(action_type=action_type).inc()
    return row


def _range_start(date_range: str, now: datetime) -> datetime | None:
    if date_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range == "week":
        return now - timedelta(days=7)
    if date_range == "month":
        return now - timedelta(days=30)
    return None


def list_history(
    db: Session,
    *,
    page: int,
    limit: int,
    campaign_id: int | None = None,
    action_type: str | None = None,
    search: str | None = None,
    date_range: str | None = None,
    now: datetime | None = None,
) -> tuple[list[dict[str, Any]], int]:
    query = db.query(CampaignHistory, Campaign.name, Campaign.type).outerjoin(
        Campaign, Campaign.id == CampaignHistory.campaign_id
    )
    if campaign_id is not None:
        query = query.filter(CampaignHistory.campaign_id == campaign_id)
    if action_type and action_type != "all":
        query = query.filter(CampaignHistory.action_type == action_type)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Campaign.name.ilike(pattern),
                CampaignHistory.action_by.ilike(pattern),
                CampaignHistory.comments.ilike(pattern),
            )
        )
    if date_range and date_range != "all":
        start = _range_start(date_range, now or datetime.now(UTC))
        if start is not None:
            query = query.filter(CampaignHistory.action_date >= start)

    total = query.count()
    rows = (
        query.order_by(CampaignHistory.action_date.desc(), CampaignHistory.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return [serialize_history(row, campaign_name, campaign_type) for row, campaign_name, campaign_type in rows], total


def serialize_history(row: CampaignHistory, campaign_name: str | None = None, campaign_type: str | None = None) -> dict[str, Any]:
    return {
        "id": row.id,
        "campaign_id": row.campaign_id,
        "campaign_name": campaign_name,
        "campaign_type": campaign_type,
        "action_type": row.action_type,
        "action_label": action_label(row.action_type),
        "action_by": row.action_by,
        "previous_status": row.previous_status,
        "previous_status_label": status_label(row.previous_status),
        "new_status": row.new_status,
        "new_status_label": status_label(row.new_status),
        "comments": row.comments,
        "action_date": isoformat_utc(row.action_date),
    }


def statistics(db: Session, *, now: datetime | None = None) -> dict[str, int]:
    """Counters for the history screen, summed from per (action_type, day) buckets."""
    today = (now or datetime.now(UTC)).date().isoformat()
    buckets = (
        db.query(CampaignHistory.action_type, func.date(CampaignHistory.action_date), func.count(CampaignHistory.id))
        .group_by(CampaignHistory.action_type, func.date(CampaignHistory.action_date))
        .all()
    )
    per_action: dict[str, int] = defaultdict(int)
    total = 0
    today_activity = 0
    for action_type, day, count in buckets:
        count = int(count)
        total += count
        per_action[action_type] += count
        if str(day) == today:
            today_activity += count
    return {
        "totalHistory": total,
        "approvedCount": per_action["approved"],
        "updatedCount": per_action["updated"],
        "todayActivity": today_activity,
    }
