from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import get_current_user
from backoffice.api.response import paginated
from backoffice.db.session import get_db
from backoffice.services import history_service
from backoffice.services.session_service import SessionUser

router = APIRouter(prefix="/campaign-history", tags=["campaign-history"])


@router.get("")
def list_campaign_history(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    campaign_id: int | None = None,
    action_type: str | None = None,
    search: str | None = None,
    date_range: Literal["all", "today", "week", "month"] = "all",
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    items, total = history_service.list_history(
        db,
        page=page,
        limit=limit,
        campaign_id=campaign_id,
        action_type=action_type,
        search=search,
        date_range=date_range,
    )
    return paginated(
        request,
        items,
        page=page,
        limit=limit,
        total=total,
        statistics=history_service.statistics(db),
    )
