from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import get_current_user
from backoffice.api.response import envelope, paginated
from backoffice.db.session import get_db
from backoffice.schemas.offers import OfferCreateRequest, OfferUpdateRequest
from backoffice.services import offer_service
from backoffice.services.session_service import SessionUser

router = APIRouter(prefix="/offers", tags=["offers"])


@router.get("")
def list_offers(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    type: str | None = None,
    status: str | None = None,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    items, total = offer_service.list_offers(
        db, page=page, limit=limit, search=search, offer_type=type, offer_status=status
    )
    return paginated(request, items, page=page, limit=limit, total=total)


@router.post("")
def create_offer(
    request: Request,
    body: OfferCreateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    offer = offer_service.create_offer(db, body, actor=user.email, user_id=user.id)
    return envelope(request, offer_service.serialize_offer(offer), "오퍼가 생성되었습니다.")


@router.get("/{offer_id}")
def get_offer(
    request: Request,
    offer_id: int,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, offer_service.serialize_offer(offer_service.get_offer(db, offer_id)))


@router.put("/{offer_id}")
def update_offer(
    request: Request,
    offer_id: int,
    body: OfferUpdateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    offer = offer_service.update_offer(db, offer_id, body, user_id=user.id)
    return envelope(request, offer_service.serialize_offer(offer), "오퍼가 수정되었습니다.")


@router.delete("/{offer_id}")
def delete_offer(
    request: Request,
    offer_id: int,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, offer_service.delete_offer(db, offer_id, user_id=user.id), "오퍼가 삭제되었습니다.")
