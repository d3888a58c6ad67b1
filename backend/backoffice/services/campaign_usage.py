from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from backoffice.models.campaign import Campaign, CampaignCustomerGroup, CampaignOffer, CampaignScript
from backoffice.services.campaign_status import TERMINAL_STATUSES


_LINKS = {
    "customer_group": (CampaignCustomerGroup, CampaignCustomerGroup.customer_group_id),
    "offer": (CampaignOffer, CampaignOffer.offer_id),
    "script": (CampaignScript, CampaignScript.script_id),
}


def _describe(campaign: Campaign) -> dict[str, Any]:
    return {"id": campaign.id, "name": campaign.name, "status": campaign.status}


def active_campaigns_linked(db: Session, kind: str, target_id: int) -> list[dict[str, Any]]:
    """Non-terminal campaigns linked to the target through its join table."""
    link_model, column = _LINKS[kind]
    rows = (
        db.query(Campaign)
        .join(link_model, link_model.campaign_id == Campaign.id)
        .filter(column == target_id, Campaign.status.notin_(list(TERMINAL_STATUSES)))
        .distinct()
        .order_by(Campaign.id)
        .all()
    )
    return [_describe(row) for row in rows]


def active_campaigns_on_channel(db: Session, channel_type: str) -> list[dict[str, Any]]:
    rows = (
        db.query(Campaign)
        .filter(Campaign.channels.ilike(f"%{channel_type}%"), Campaign.status.notin_(list(TERMINAL_STATUSES)))
        .order_by(Campaign.id)
        .all()
    )
    # LIKE also matches substrings such as "sms" in "lms_sms"; compare the parsed list.
    return [_describe(row) for row in rows if channel_type in row.channel_list]


def raise_in_use(message: str, reason_code: str, campaigns: list[dict[str, Any]]) -> None:
    if campaigns:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": message,
                "reason_code": reason_code,
                "activeCampaigns": campaigns,
            },
        )
