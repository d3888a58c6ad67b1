"""Dashboard and analytics read models.

Every section is computed on its own. A database failure in one section is
logged and replaced by placeholder content flagged ``degraded: True`` so the
rest of the screen still renders.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.timeutil import as_utc
from backoffice.db.database import Database
from backoffice.models.campaign import Campaign, CampaignOffer, CampaignStatus
from backoffice.models.channel import Channel
from backoffice.models.notice import Notice
from backoffice.models.offer import Offer
from backoffice.services import approval_service, history_service
from backoffice.services.campaign_service import serialize_campaign
from backoffice.services.campaign_status import TERMINAL_STATUSES, status_label
from backoffice.services.channel_service import TYPE_LABELS as CHANNEL_TYPE_LABELS
from backoffice.services.notice_service import serialize_notice


logger = logging.getLogger("backoffice.dashboard")

PERIOD_WINDOWS = {"daily": 14, "weekly": 12, "monthly": 12}
RECENT_LIMIT = 5

_CAMPAIGN_TOTALS_SQL = """
SELECT status, COUNT(*) AS campaign_count,
       COALESCE(SUM(budget), 0) AS budget_total,
       COALESCE(SUM(spent), 0) AS spent_total
FROM campaigns
GROUP BY status
"""


def _degradable(db: Session, name: str, build: Callable[[], dict[str, Any]], placeholder: dict[str, Any]) -> dict[str, Any]:
    try:
        section = build()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("dashboard.section_failed", extra={"section": name})
        return {**placeholder, "degraded": True}
    return {**section, "degraded": False}


def campaign_summary(db: Session) -> dict[str, Any]:
    rows = Database(db.get_bind()).execute(_CAMPAIGN_TOTALS_SQL)
    by_status = {value.value: 0 for value in CampaignStatus}
    budget_total = 0.0
    spent_total = 0.0
    for row in rows:
        by_status[row["status"]] = int(row["campaign_count"])
        budget_total += float(row["budget_total"] or 0)
        spent_total += float(row["spent_total"] or 0)
    return {
        "total": sum(by_status.values()),
        "running": by_status[CampaignStatus.RUNNING.value],
        "pendingApproval": by_status[CampaignStatus.PENDING_APPROVAL.value],
        "completed": by_status[CampaignStatus.COMPLETED.value],
        "byStatus": by_status,
        "statusLabels": {value: status_label(value) for value in by_status},
        "budgetTotal": round(budget_total, 2),
        "spentTotal": round(spent_total, 2),
        "budgetUtilization": round(spent_total / budget_total * 100, 2) if budget_total else 0.0,
    }


def recent_campaigns(db: Session) -> dict[str, Any]:
    rows = db.query(Campaign).order_by(Campaign.created_at.desc(), Campaign.id.desc()).limit(RECENT_LIMIT).all()
    return {"items": [serialize_campaign(db, row) for row in rows]}


def recent_history(db: Session) -> dict[str, Any]:
    items, _total = history_service.list_history(db, page=1, limit=RECENT_LIMIT)
    return {"items": items, "statistics": history_service.statistics(db)}


def pending_approvals(db: Session) -> dict[str, Any]:
    items, total = approval_service.list_pending(db, page=1, limit=RECENT_LIMIT)
    return {"items": items, "total": total}


def active_notices(db: Session, *, today: date | None = None) -> dict[str, Any]:
    today = today or datetime.now(UTC).date()
    rows = (
        db.query(Notice)
        .filter(
            Notice.status == "published",
            (Notice.start_date.is_(None)) | (Notice.start_date <= today),
            (Notice.end_date.is_(None)) | (Notice.end_date >= today),
        )
        .order_by(Notice.is_important.desc(), Notice.created_at.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    return {"items": [serialize_notice(row) for row in rows]}


def build_dashboard(db: Session) -> dict[str, Any]:
    empty_summary = {
        "total": 0,
        "running": 0,
        "pendingApproval": 0,
        "completed": 0,
        "byStatus": {},
        "budgetTotal": 0.0,
        "spentTotal": 0.0,
        "budgetUtilization": 0.0,
    }
    return {
        "campaignSummary": _degradable(db, "campaign_summary", lambda: campaign_summary(db), empty_summary),
        "recentCampaigns": _degradable(db, "recent_campaigns", lambda: recent_campaigns(db), {"items": []}),
        "recentHistory": _degradable(
            db,
            "recent_history",
            lambda: recent_history(db),
            {"items": [], "statistics": {"totalHistory": 0, "approvedCount": 0, "updatedCount": 0, "todayActivity": 0}},
        ),
        "pendingApprovals": _degradable(db, "pending_approvals", lambda: pending_approvals(db), {"items": [], "total": 0}),
        "notices": _degradable(db, "notices", lambda: active_notices(db), {"items": []}),
    }


def _percent(numerator: float, denominator: float) -> float:
    return round(numerator / denominator * 100, 2) if denominator else 0.0


def _channel_rows(db: Session, channel_type: str | None) -> dict[str, Any]:
    query = db.query(Channel)
    if channel_type and channel_type != "all":
        query = query.filter(Channel.type == channel_type)
    channels = query.order_by(Channel.type, Channel.name).all()
    live_campaigns = db.query(Campaign).filter(Campaign.status.notin_(list(TERMINAL_STATUSES))).all()

    items = []
    for channel in channels:
        campaign_count = sum(1 for campaign in live_campaigns if channel.type in campaign.channel_list)
        items.append(
            {
                "id": channel.id,
                "name": channel.name,
                "type": channel.type,
                "type_label": CHANNEL_TYPE_LABELS.get(channel.type, channel.type),
                "status": channel.status,
                "total_sent": channel.total_sent,
                "total_success": channel.total_success,
                "success_rate": _percent(channel.total_success, channel.total_sent),
                "cost": round(channel.total_sent * float(channel.cost_per_message or 0), 2),
                "quota_usage_percent": _percent(channel.current_usage, channel.monthly_quota),
                "active_campaigns": campaign_count,
            }
        )
    total_sent = sum(item["total_sent"] for item in items)
    total_success = sum(item["total_success"] for item in items)
    return {
        "items": items,
        "summary": {
            "channels": len(items),
            "totalSent": total_sent,
            "totalSuccess": total_success,
            "successRate": _percent(total_success, total_sent),
            "totalCost": round(sum(item["cost"] for item in items), 2),
        },
    }


def channel_analytics(db: Session, *, channel_type: str | None = None) -> dict[str, Any]:
    placeholder = {
        "items": [],
        "summary": {"channels": 0, "totalSent": 0, "totalSuccess": 0, "successRate": 0.0, "totalCost": 0.0},
    }
    return _degradable(db, "channel_analytics", lambda: _channel_rows(db, channel_type), placeholder)


def _bucket_start(value: date, period: str) -> date:
    if period == "weekly":
        return value - timedelta(days=value.weekday())
    if period == "monthly":
        return value.replace(day=1)
    return value


def _previous_bucket(start: date, period: str) -> date:
    if period == "weekly":
        return start - timedelta(days=7)
    if period == "monthly":
        return (start - timedelta(days=1)).replace(day=1)
    return start - timedelta(days=1)


def _bucket_label(start: date, period: str) -> str:
    if period == "monthly":
        return start.strftime("%Y-%m")
    if period == "weekly":
        return f"{start.isoformat()} 주"
    return start.isoformat()


def _period_rows(db: Session, period: str, today: date) -> dict[str, Any]:
    starts = [_bucket_start(today, period)]
    while len(starts) < PERIOD_WINDOWS[period]:
        starts.append(_previous_bucket(starts[-1], period))
    starts.reverse()
    window_start = datetime.combine(starts[0], datetime.min.time(), tzinfo=UTC)

    buckets: dict[date, dict[str, Any]] = {
        start: {
            "period_start": start.isoformat(),
            "label": _bucket_label(start, period),
            "campaigns": 0,
            "budget": 0.0,
            "spent": 0.0,
            "impressions": 0,
            "clicks": 0,
            "conversions": 0,
        }
        for start in starts
    }
    rows = db.query(Campaign).filter(Campaign.created_at >= window_start).all()
    for campaign in rows:
        key = _bucket_start(as_utc(campaign.created_at).date(), period)
        bucket = buckets.get(key)
        if bucket is None:
            continue
        bucket["campaigns"] += 1
        bucket["budget"] += float(campaign.budget or 0)
        bucket["spent"] += float(campaign.spent or 0)
        bucket["impressions"] += campaign.impressions
        bucket["clicks"] += campaign.clicks
        bucket["conversions"] += campaign.conversions

    items = []
    for start in starts:
        bucket = buckets[start]
        bucket["budget"] = round(bucket["budget"], 2)
        bucket["spent"] = round(bucket["spent"], 2)
        bucket["ctr"] = _percent(bucket["clicks"], bucket["impressions"])
        bucket["conversion_rate"] = _percent(bucket["conversions"], bucket["clicks"])
        items.append(bucket)
    return {"period": period, "items": items}


def period_analytics(db: Session, *, period: str = "daily", today: date | None = None) -> dict[str, Any]:
    today = today or datetime.now(UTC).date()
    return _degradable(db, "period_analytics", lambda: _period_rows(db, period, today), {"period": period, "items": []})


OFFER_PERIODS = ("all", "last30days", "last3months", "last6months")


def _months_back(value: date, months: int) -> date:
    month_index = value.year * 12 + value.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = (date(year + month // 12, month % 12 + 1, 1) - timedelta(days=1)).day
    return date(year, month, min(value.day, last_day))


def offer_window_start(period: str, today: date) -> date | None:
    if period == "last30days":
        return today - timedelta(days=30)
    if period == "last3months":
        return _months_back(today, 3)
    if period == "last6months":
        return _months_back(today, 6)
    return None


def _offer_rows(db: Session, period: str, today: date) -> dict[str, Any]:
    offers = db.query(Offer).order_by(Offer.id).all()
    query = db.query(CampaignOffer.offer_id, Campaign).join(Campaign, Campaign.id == CampaignOffer.campaign_id)
    window_start = offer_window_start(period, today)
    if window_start is not None:
        query = query.filter(Campaign.created_at >= datetime.combine(window_start, datetime.min.time(), tzinfo=UTC))

    linked: dict[int, list[Campaign]] = {}
    for offer_id, campaign in query.all():
        linked.setdefault(offer_id, []).append(campaign)

    items = []
    for offer in offers:
        campaigns = linked.get(offer.id, [])
        spent = round(sum(float(campaign.spent or 0) for campaign in campaigns), 2)
        clicks = sum(campaign.clicks for campaign in campaigns)
        conversions = sum(campaign.conversions for campaign in campaigns)
        items.append(
            {
                "offer_id": offer.id,
                "name": offer.name,
                "type": offer.type,
                "value": offer.value,
                "value_type": offer.value_type,
                "status": offer.status,
                "campaigns": len(campaigns),
                "active_campaigns": sum(1 for campaign in campaigns if campaign.status not in TERMINAL_STATUSES),
                "budget": round(sum(float(campaign.budget or 0) for campaign in campaigns), 2),
                "spent": spent,
                "clicks": clicks,
                "conversions": conversions,
                "conversion_rate": _percent(conversions, clicks),
                "cost_per_conversion": round(spent / conversions, 2) if conversions else 0.0,
            }
        )
    total_clicks = sum(item["clicks"] for item in items)
    total_conversions = sum(item["conversions"] for item in items)
    return {
        "period": period,
        "items": items,
        "summary": {
            "offers": len(items),
            "usedOffers": sum(1 for item in items if item["campaigns"]),
            "totalCampaigns": sum(item["campaigns"] for item in items),
            "totalSpent": round(sum(item["spent"] for item in items), 2),
            "totalConversions": total_conversions,
            "conversionRate": _percent(total_conversions, total_clicks),
        },
    }


def offer_analytics(db: Session, *, period: str = "all", today: date | None = None) -> dict[str, Any]:
    """Per-offer performance, summed over the campaigns each offer is attached to.

    ``period`` narrows the campaigns to those created inside the window.
    """
    today = today or datetime.now(UTC).date()
    placeholder = {
        "period": period,
        "items": [],
        "summary": {
            "offers": 0,
            "usedOffers": 0,
            "totalCampaigns": 0,
            "totalSpent": 0.0,
            "totalConversions": 0,
            "conversionRate": 0.0,
        },
    }
    return _degradable(db, "offer_analytics", lambda: _offer_rows(db, period, today), placeholder)
