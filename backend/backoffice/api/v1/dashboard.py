from typing import Literal

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import get_current_user
from backoffice.api.response import envelope
from backoffice.db.session import get_db
from backoffice.services import dashboard_service
from backoffice.services.session_service import SessionUser

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard")
def dashboard(
    request: Request,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, dashboard_service.build_dashboard(db))


@router.get("/analytics/channels")
def channel_analytics(
    request: Request,
    type: str | None = None,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, dashboard_service.channel_analytics(db, channel_type=type))


@router.get("/analytics/periods")
def period_analytics(
    request: Request,
    period: Literal["daily", "weekly", "monthly"] = "daily",
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, dashboard_service.period_analytics(db, period=period))


@router.get("/analytics/offers")
def offer_analytics(
    request: Request,
    period: Literal["all", "last30days", "last3months", "last6months"] = "all",
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, dashboard_service.offer_analytics(db, period=period))
