from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import get_current_user
from backoffice.api.response import envelope, paginated
from backoffice.db.session import get_db
from backoffice.schemas.campaigns import CampaignCreateRequest, CampaignUpdateRequest
from backoffice.services import campaign_service
from backoffice.services.session_service import SessionUser

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.get("")
def list_campaigns(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    status: str | None = None,
    type: str | None = None,
    channel: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    rows, total, status_counts = campaign_service.list_campaigns(
        db,
        page=page,
        limit=limit,
        search=search,
        status_filter=status,
        type_filter=type,
        channel=channel,
        start_date=start_date,
        end_date=end_date,
    )
    items = [campaign_service.serialize_campaign(db, row) for row in rows]
    return paginated(request, items, page=page, limit=limit, total=total, statusCounts=status_counts)


@router.post("")
def create_campaign(
    request: Request,
    body: CampaignCreateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    campaign = campaign_service.create_campaign(db, body, actor=user.email, user_id=user.id)
    message = "캠페인이 임시저장되었습니다." if body.is_draft else "캠페인이 생성되었습니다."
    return envelope(request, campaign_service.serialize_campaign(db, campaign, with_links=True), message)


@router.get("/admins")
def list_admins(
    request: Request,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, {"items": campaign_service.list_admins(db)})


@router.get("/{campaign_id}")
def get_campaign(
    request: Request,
    campaign_id: int,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    campaign = campaign_service.get_campaign(db, campaign_id)
    return envelope(request, campaign_service.serialize_campaign(db, campaign, with_links=True))


@router.put("/{campaign_id}")
def update_campaign(
    request: Request,
    campaign_id: int,
    body: CampaignUpdateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    campaign = campaign_service.update_campaign(db, campaign_id, body, actor=user.email, user_id=user.id)
    return envelope(request, campaign_service.serialize_campaign(db, campaign, with_links=True), "캠페인이 수정되었습니다.")


@router.delete("/{campaign_id}")
def delete_campaign(
    request: Request,
    campaign_id: int,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    payload = campaign_service.delete_campaign(db, campaign_id, actor=user.email, user_id=user.id)
    return envelope(request, payload, "캠페인이 삭제되었습니다.")
