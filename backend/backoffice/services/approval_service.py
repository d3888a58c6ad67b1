"""Two-party approval of campaigns.

A requester opens a request against an approver; the campaign moves to
``PENDING_APPROVAL``. The approver accepts or rejects it once, which moves the
campaign to ``APPROVED`` or ``REJECTED``. Each step is a single transaction that
also appends to the campaign history, so either every row changes or none does.

At most one ``PENDING`` request may exist per campaign. The pre-check gives a
friendly error; the partial unique index ``uq_campaign_approval_requests_pending``
catches the concurrent case and surfaces it as the same conflict.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from backoffice.core.metrics import approval_requests_total
from backoffice.core.timeutil import isoformat_utc
from backoffice.db.session import transaction
from backoffice.models.approval_request import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    CampaignApprovalRequest,
)
from backoffice.models.campaign import Campaign, CampaignStatus
from backoffice.models.user import User
from backoffice.schemas.campaigns import ApprovalResolveRequest, ApprovalSubmitRequest
from backoffice.services import history_service, system_log_service
from backoffice.services.campaign_status import SUBMITTABLE_STATUSES, status_label
from backoffice.services.session_service import SessionUser


logger = logging.getLogger("backoffice.approvals")

_DECISIONS = {
    "approved": (APPROVAL_APPROVED, CampaignStatus.APPROVED.value, "승인"),
    "rejected": (APPROVAL_REJECTED, CampaignStatus.REJECTED.value, "거부"),
}


def _duplicate(campaign_id: int, existing_id: int | None = None) -> HTTPException:
    details: dict[str, Any] = {
        "message": "이미 승인 대기 중인 요청이 있습니다.",
        "reason_code": "approval_request_duplicate",
        "campaign_id": campaign_id,
    }
    if existing_id is not None:
        details["existing_request_id"] = existing_id
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=details)


def _require_user(db: Session, user_id: int, role_name: str) -> User:
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": f"{role_name}를 찾을 수 없습니다.", "reason_code": "user_not_found", "user_id": user_id},
        )
    return user


def submit_approval(
    db: Session,
    body: ApprovalSubmitRequest,
    *,
    actor: str,
    client: dict[str, str | None] | None = None,
) -> CampaignApprovalRequest:
    campaign = db.get(Campaign, body.campaign_id)
    if campaign is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "캠페인을 찾을 수 없습니다.", "reason_code": "campaign_not_found", "campaign_id": body.campaign_id},
        )
    requester = _require_user(db, body.requester_id, "요청자")
    _require_user(db, body.approver_id, "승인자")

    existing = (
        db.query(CampaignApprovalRequest.id)
        .filter(
            CampaignApprovalRequest.campaign_id == campaign.id,
            CampaignApprovalRequest.status == APPROVAL_PENDING,
        )
        .first()
    )
    if existing is not None:
        approval_requests_total.labels(outcome="duplicate").inc()
        raise _duplicate(campaign.id, existing[0])
    if campaign.status not in SUBMITTABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "현재 상태에서는 승인을 요청할 수 없습니다.",
                "reason_code": "campaign_not_submittable",
                "status": campaign.status,
                "submittable_statuses": sorted(SUBMITTABLE_STATUSES),
            },
        )

    previous_status = campaign.status
    new_status = CampaignStatus.PENDING_APPROVAL.value
    client = client or {}
    try:
        with transaction(db):
            request_row = CampaignApprovalRequest(
                campaign_id=campaign.id,
                requester_id=requester.id,
                approver_id=body.approver_id,
                request_message=body.request_message,
                status=APPROVAL_PENDING,
            )
            db.add(request_row)
            db.flush()
            campaign.status = new_status
            history_service.record_history(
                db,
                campaign_id=campaign.id,
                action_type="updated",
                action_by=actor,
                previous_status=previous_status,
                new_status=new_status,
                comments=f'캠페인 "{campaign.name}" 승인 요청: {status_label(previous_status)} → {status_label(new_status)}',
            )
            system_log_service.write_system_log(
                db,
                level="info",
                message="캠페인 승인 요청",
                category="approval",
                user_id=requester.id,
                ip_address=client.get("ip_address"),
                user_agent=client.get("user_agent"),
                context={"campaign_id": campaign.id, "approval_request_id": request_row.id, "approver_id": body.approver_id},
            )
    except IntegrityError as exc:
        approval_requests_total.labels(outcome="duplicate").inc()
        logger.warning("approval.duplicate_race", extra={"campaign_id": body.campaign_id})
        raise _duplicate(body.campaign_id) from exc

    approval_requests_total.labels(outcome="submitted").inc()
    logger.info(
        "approval.submitted",
        extra={"campaign_id": campaign.id, "approval_request_id": request_row.id, "user_id": requester.id},
    )
    db.refresh(request_row)
    return request_row


def resolve_approval(
    db: Session,
    request_id: int,
    body: ApprovalResolveRequest,
    *,
    user: SessionUser,
    client: dict[str, str | None] | None = None,
) -> dict[str, Any]:
    request_row = db.get(CampaignApprovalRequest, request_id)
    if request_row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "승인 요청을 찾을 수 없습니다.", "reason_code": "approval_request_not_found", "id": request_id},
        )
    if request_row.status != APPROVAL_PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "이미 처리된 승인 요청입니다.",
                "reason_code": "approval_request_not_pending",
                "id": request_id,
                "status": request_row.status,
            },
        )
    if request_row.approver_id != user.id and not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "지정된 승인자만 처리할 수 있습니다.", "reason_code": "approver_mismatch"},
        )
    campaign = db.get(Campaign, request_row.campaign_id)
    if campaign is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "message": "캠페인을 찾을 수 없습니다.",
                "reason_code": "campaign_not_found",
                "campaign_id": request_row.campaign_id,
            },
        )
    if campaign.status != CampaignStatus.PENDING_APPROVAL.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "승인 대기 상태의 캠페인만 처리할 수 있습니다.",
                "reason_code": "campaign_not_pending_approval",
                "campaign_id": campaign.id,
                "status": campaign.status,
            },
        )

    request_status, new_status, verb = _DECISIONS[body.status]
    previous_status = campaign.status
    message = body.message
    comments = f'캠페인 "{campaign.name}" {verb}: {status_label(previous_status)} → {status_label(new_status)}'
    if message:
        comments = f"{comments} - {message}"
    client = client or {}
    with transaction(db):
        # Claim the request only if it is still pending; a concurrent resolve leaves nothing to update.
        claimed = (
            db.query(CampaignApprovalRequest)
            .filter(CampaignApprovalRequest.id == request_row.id, CampaignApprovalRequest.status == APPROVAL_PENDING)
            .update(
                {"status": request_status, "approval_comment": message, "updated_at": datetime.now(UTC)},
                synchronize_session=False,
            )
        )
        if claimed == 0:
            approval_requests_total.labels(outcome="conflict").inc()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "message": "이미 처리된 승인 요청입니다.",
                    "reason_code": "approval_request_not_pending",
                    "id": request_id,
                },
            )
        campaign.status = new_status
        history_service.record_history(
            db,
            campaign_id=campaign.id,
            action_type=body.status,
            action_by=body.approver_email or user.email,
            previous_status=previous_status,
            new_status=new_status,
            comments=comments,
        )
        system_log_service.write_system_log(
            db,
            level="info",
            message=f"캠페인 {verb}",
            category="approval",
            user_id=user.id,
            ip_address=client.get("ip_address"),
            user_agent=client.get("user_agent"),
            context={"campaign_id": campaign.id, "approval_request_id": request_row.id, "decision": body.status},
        )

    approval_requests_total.labels(outcome=body.status).inc()
    logger.info(
        "approval.resolved",
        extra={"campaign_id": campaign.id, "approval_request_id": request_row.id, "user_id": user.id},
    )
    return {
        "id": request_row.id,
        "campaign_id": campaign.id,
        "status": request_status,
        "previous_status": previous_status,
        "campaign_status": new_status,
        "message": f"캠페인이 {verb}되었습니다.",
    }


def list_pending(
    db: Session,
    *,
    page: int,
    limit: int,
    request_status: str | None = APPROVAL_PENDING,
    approver_id: int | None = None,
) -> tuple[list[dict[str, Any]], int]:
    requester = aliased(User)
    approver = aliased(User)
    query = (
        db.query(CampaignApprovalRequest, Campaign, requester.name, approver.name)
        .join(Campaign, Campaign.id == CampaignApprovalRequest.campaign_id)
        .outerjoin(requester, requester.id == CampaignApprovalRequest.requester_id)
        .outerjoin(approver, approver.id == CampaignApprovalRequest.approver_id)
    )
    if request_status and request_status.lower() != "all":
        query = query.filter(CampaignApprovalRequest.status == request_status.upper())
    if approver_id is not None:
        query = query.filter(CampaignApprovalRequest.approver_id == approver_id)

    total = query.count()
    rows = (
        query.order_by(CampaignApprovalRequest.created_at.desc(), CampaignApprovalRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    items = [
        {
            "id": request_row.id,
            "campaign_id": campaign.id,
            "campaign_name": campaign.name,
            "campaign_type": campaign.type,
            "campaign_status": campaign.status,
            "campaign_status_label": status_label(campaign.status),
            "budget": campaign.budget,
            "start_date": campaign.start_date.isoformat() if campaign.start_date else None,
            "end_date": campaign.end_date.isoformat() if campaign.end_date else None,
            "requester_id": request_row.requester_id,
            "requester_name": requester_name,
            "approver_id": request_row.approver_id,
            "approver_name": approver_name,
            "request_message": request_row.request_message,
            "status": request_row.status,
            "approval_comment": request_row.approval_comment,
            "created_at": isoformat_utc(request_row.created_at),
            "updated_at": isoformat_utc(request_row.updated_at),
        }
        for request_row, campaign, requester_name, approver_name in rows
    ]
    return items, total
