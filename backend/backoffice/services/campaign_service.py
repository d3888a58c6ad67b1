from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backoffice.db.session import transaction
from backoffice.models.approval_request import APPROVAL_PENDING, CampaignApprovalRequest
from backoffice.models.campaign import Campaign, CampaignCustomerGroup, CampaignOffer, CampaignScript, CampaignStatus
from backoffice.models.customer_group import CustomerGroup
from backoffice.models.offer import Offer
from backoffice.models.script import Script
from backoffice.models.user import User
from backoffice.schemas.campaigns import CampaignCreateRequest, CampaignOut, CampaignUpdateRequest
from backoffice.services import history_service, system_log_service
from backoffice.services.campaign_status import (
    DELETABLE_STATUSES,
    TransitionLabeler,
    label_by_destination,
    normalize_status,
    status_label,
    type_label,
)


logger = logging.getLogger("backoffice.campaigns")

# Swappable so the history action can later depend on the (previous, new) pair.
transition_labeler: TransitionLabeler = label_by_destination

_LINK_MODELS = (
    ("customer_group_ids", CampaignCustomerGroup, "customer_group_id", CustomerGroup),
    ("offer_ids", CampaignOffer, "offer_id", Offer),
    ("script_ids", CampaignScript, "script_id", Script),
)


def _not_found(campaign_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"message": "캠페인을 찾을 수 없습니다.", "reason_code": "campaign_not_found", "campaign_id": campaign_id},
    )


def get_campaign(db: Session, campaign_id: int) -> Campaign:
    campaign = db.get(Campaign, campaign_id)
    if campaign is None:
        raise _not_found(campaign_id)
    return campaign


def campaign_links(db: Session, campaign_id: int) -> dict[str, list[int]]:
    links: dict[str, list[int]] = {}
    for key, link_model, column, _target in _LINK_MODELS:
        target_column = getattr(link_model, column)
        rows = db.query(target_column).filter(link_model.campaign_id == campaign_id).order_by(target_column).all()
        links[key] = [int(row[0]) for row in rows]
    return links


def serialize_campaign(db: Session, campaign: Campaign, *, with_links: bool = False) -> dict[str, Any]:
    data = CampaignOut.model_validate(campaign).model_dump(mode="json")
    data["status_label"] = status_label(campaign.status)
    data["type_label"] = type_label(campaign.type)
    if with_links:
        data.update(campaign_links(db, campaign.id))
    return data


def _validate_links(db: Session, body: CampaignCreateRequest) -> None:
    for key, _link_model, _column, target in _LINK_MODELS:
        requested = set(getattr(body, key))
        if not requested:
            continue
        found = {row[0] for row in db.query(target.id).filter(target.id.in_(requested)).all()}
        missing = sorted(requested - found)
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "존재하지 않는 항목이 포함되어 있습니다.", "reason_code": "invalid_reference", key: missing},
            )


def _replace_links(db: Session, campaign_id: int, body: CampaignCreateRequest) -> None:
    for key, link_model, column, _target in _LINK_MODELS:
        db.query(link_model).filter(link_model.campaign_id == campaign_id).delete(synchronize_session=False)
        for target_id in dict.fromkeys(getattr(body, key)):
            db.add(link_model(campaign_id=campaign_id, **{column: target_id}))


def _guard_approval_status(db: Session, campaign_id: int | None, previous_status: str | None, new_status: str) -> None:
    """Keep PENDING_APPROVAL owned by the approval workflow.

    Only a submitted request may move a campaign into it, and the campaign may not
    leave it by a plain edit while that request is still open.
    """
    pending = CampaignStatus.PENDING_APPROVAL.value
    if new_status == pending and previous_status != pending:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "승인 대기 상태는 승인 요청으로만 변경할 수 있습니다.",
                "reason_code": "approval_request_required",
                "status": new_status,
            },
        )
    if previous_status == pending and new_status != pending and campaign_id is not None:
        open_request = (
            db.query(CampaignApprovalRequest.id)
            .filter(
                CampaignApprovalRequest.campaign_id == campaign_id,
                CampaignApprovalRequest.status == APPROVAL_PENDING,
            )
            .first()
        )
        if open_request is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "message": "승인 대기 중인 요청이 있어 상태를 변경할 수 없습니다.",
                    "reason_code": "approval_request_pending",
                    "campaign_id": campaign_id,
                    "existing_request_id": open_request[0],
                },
            )


def create_campaign(db: Session, body: CampaignCreateRequest, *, actor: str, user_id: int | None = None) -> Campaign:
    initial_status = CampaignStatus.DRAFT.value if body.is_draft else normalize_status(body.status or CampaignStatus.PLANNING.value)
    _guard_approval_status(db, None, None, initial_status)
    _validate_links(db, body)
    with transaction(db):
        campaign = Campaign(
            name=body.name.strip(),
            type=body.type,
            description=body.description,
            status=initial_status,
            start_date=body.start_date,
            end_date=body.end_date,
            budget=body.budget,
            target_audience=body.target_audience,
            channels=",".join(body.channels) or None,
            created_by=actor,
        )
        db.add(campaign)
        db.flush()
        _replace_links(db, campaign.id, body)
        history_service.record_history(
            db,
            campaign_id=campaign.id,
            action_type="created",
            action_by=actor,
            previous_status=None,
            new_status=initial_status,
            comments="임시저장으로 캠페인 생성" if body.is_draft else "캠페인 생성",
        )
        system_log_service.write_system_log(
            db,
            level="info",
            message="캠페인 생성",
            category="campaign",
            user_id=user_id,
            context={"campaign_id": campaign.id, "name": campaign.name, "status": initial_status},
        )
    db.refresh(campaign)
    return campaign


def list_campaigns(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    status_filter: str | None = None,
    type_filter: str | None = None,
    channel: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[list[Campaign], int, dict[str, int]]:
    query = db.query(Campaign)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Campaign.name.ilike(pattern), Campaign.description.ilike(pattern), Campaign.created_by.ilike(pattern))
        )
    if type_filter and type_filter != "all":
        query = query.filter(Campaign.type == type_filter)
    if channel and channel != "all":
        query = query.filter(Campaign.channels.ilike(f"%{channel}%"))
    if start_date is not None:
        query = query.filter(Campaign.start_date >= start_date)
    if end_date is not None:
        query = query.filter(Campaign.end_date <= end_date)

    # Counts ignore the status filter so every tab shows its own total.
    status_counts = {value.value: 0 for value in CampaignStatus}
    counted = query.with_entities(Campaign.status, func.count(Campaign.id)).group_by(Campaign.status).all()
    for campaign_status, count in counted:
        status_counts[campaign_status] = int(count)
    status_counts["total"] = sum(status_counts.values())

    if status_filter and status_filter != "all":
        query = query.filter(Campaign.status == normalize_status(status_filter))
    total = query.count()
    rows = query.order_by(Campaign.created_at.desc(), Campaign.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total, status_counts


def update_campaign(
    db: Session,
    campaign_id: int,
    body: CampaignUpdateRequest,
    *,
    actor: str,
    user_id: int | None = None,
    labeler: TransitionLabeler | None = None,
) -> Campaign:
    new_status = normalize_status(body.status)
    campaign = get_campaign(db, campaign_id)
    _validate_links(db, body)
    previous_status = campaign.status
    _guard_approval_status(db, campaign.id, previous_status, new_status)
    with transaction(db):
        campaign.name = body.name.strip()
        campaign.type = body.type
        campaign.description = body.description
        campaign.status = new_status
        campaign.start_date = body.start_date
        campaign.end_date = body.end_date
        campaign.budget = body.budget
        campaign.channels = ",".join(body.channels) or None
        campaign.target_audience = body.target_audience
        _replace_links(db, campaign.id, body)
        if previous_status != new_status:
            action_type = (labeler or transition_labeler)(previous_status, new_status)
            history_service.record_history(
                db,
                campaign_id=campaign.id,
                action_type=action_type,
                action_by=actor,
                previous_status=previous_status,
                new_status=new_status,
                comments=f'캠페인 "{campaign.name}" 상태 변경: {status_label(previous_status)} → {status_label(new_status)}',
            )
        system_log_service.write_system_log(
            db,
            level="info",
            message="캠페인 수정",
            category="campaign",
            user_id=user_id,
            context={"campaign_id": campaign.id, "previous_status": previous_status, "status": new_status},
        )
    db.refresh(campaign)
    return campaign


def delete_campaign(db: Session, campaign_id: int, *, actor: str, user_id: int | None = None) -> dict[str, Any]:
    campaign = get_campaign(db, campaign_id)
    if campaign.status not in DELETABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "현재 상태에서는 캠페인을 삭제할 수 없습니다.",
                "reason_code": "campaign_not_deletable",
                "status": campaign.status,
                "deletable_statuses": sorted(DELETABLE_STATUSES),
            },
        )
    name = campaign.name
    previous_status = campaign.status
    with transaction(db):
        # The history row goes in first and keeps the id after the campaign row is gone.
        history_service.record_history(
            db,
            campaign_id=campaign.id,
            action_type="deleted",
            action_by=actor,
            previous_status=previous_status,
            new_status="DELETED",
            comments=f'캠페인 "{name}" 삭제됨',
        )
        db.flush()
        for _key, link_model, _column, _target in _LINK_MODELS:
            db.query(link_model).filter(link_model.campaign_id == campaign_id).delete(synchronize_session=False)
        db.query(CampaignApprovalRequest).filter(CampaignApprovalRequest.campaign_id == campaign_id).delete(
            synchronize_session=False
        )
        db.delete(campaign)
        system_log_service.write_system_log(
            db,
            level="info",
            message="캠페인 삭제",
            category="campaign",
            user_id=user_id,
            context={"campaign_id": campaign_id, "name": name, "previous_status": previous_status},
        )
    logger.info("campaign.deleted", extra={"campaign_id": campaign_id})
    return {"id": campaign_id, "name": name, "previous_status": previous_status}


def list_admins(db: Session) -> list[dict[str, Any]]:
    rows = (
        db.query(User)
        .filter(User.role == "admin", User.status == "active")
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )
    return [{"id": row.id, "name": row.name, "email": row.email, "role": row.role} for row in rows]
