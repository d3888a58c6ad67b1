from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import client_context, get_current_user
from backoffice.api.response import envelope, paginated
from backoffice.db.session import get_db
from backoffice.schemas.campaigns import ApprovalResolveRequest, ApprovalSubmitRequest, PendingResolveRequest
from backoffice.services import approval_service
from backoffice.services.session_service import SessionUser

# Two route families serve the same service; older screens use /pending-campaigns.
approval_requests_router = APIRouter(prefix="/approval-requests", tags=["approvals"])
pending_campaigns_router = APIRouter(prefix="/pending-campaigns", tags=["approvals"])


def _submit(request: Request, body: ApprovalSubmitRequest, user: SessionUser, db: Session) -> dict:
    row = approval_service.submit_approval(db, body, actor=user.email, client=client_context(request))
    return envelope(
        request,
        {"id": row.id, "campaign_id": row.campaign_id, "status": row.status},
        "승인 요청이 등록되었습니다.",
    )


def _resolve(request: Request, request_id: int, body: ApprovalResolveRequest, user: SessionUser, db: Session) -> dict:
    payload = approval_service.resolve_approval(db, request_id, body, user=user, client=client_context(request))
    return envelope(request, payload, payload["message"])


@approval_requests_router.post("")
def submit_approval_request(
    request: Request,
    body: ApprovalSubmitRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return _submit(request, body, user, db)


@approval_requests_router.put("/{request_id}")
def resolve_approval_request(
    request: Request,
    request_id: int,
    body: ApprovalResolveRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return _resolve(request, request_id, body, user, db)


@pending_campaigns_router.get("")
def list_pending_campaigns(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str = "PENDING",
    approver_id: int | None = None,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    items, total = approval_service.list_pending(db, page=page, limit=limit, request_status=status, approver_id=approver_id)
    return paginated(request, items, page=page, limit=limit, total=total)


@pending_campaigns_router.post("")
def submit_pending_campaign(
    request: Request,
    body: ApprovalSubmitRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return _submit(request, body, user, db)


@pending_campaigns_router.put("")
def resolve_pending_campaign(
    request: Request,
    body: PendingResolveRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return _resolve(request, body.id, body, user, db)
