from fastapi import APIRouter

from backoffice.api.v1 import (
    admin,
    approvals,
    auth,
    campaign_history,
    campaigns,
    channels,
    customer_groups,
    dashboard,
    health,
    notices,
    offers,
    scripts,
)


def build_api_router() -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(auth.router)
    api_router.include_router(admin.router)
    api_router.include_router(campaigns.router)
    api_router.include_router(approvals.approval_requests_router)
    api_router.include_router(approvals.pending_campaigns_router)
    api_router.include_router(campaign_history.router)
    api_router.include_router(customer_groups.router)
    api_router.include_router(offers.router)
    api_router.include_router(scripts.router)
    api_router.include_router(channels.router)
    api_router.include_router(notices.router)
    api_router.include_router(dashboard.router)
    return api_router
