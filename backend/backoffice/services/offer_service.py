from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.db.session import transaction
from backoffice.models.campaign import CampaignOffer
from backoffice.models.offer import Offer
from backoffice.schemas.offers import OfferCreateRequest, OfferOut, OfferUpdateRequest
from backoffice.services import system_log_service
from backoffice.services.campaign_usage import active_campaigns_linked, raise_in_use


VALUE_TYPE_LABELS = {"percentage": "할인율", "fixed": "정액 할인", "point": "포인트"}
STATUS_LABELS = {"active": "활성", "inactive": "비활성", "expired": "만료"}


def serialize_offer(offer: Offer, *, today: date | None = None) -> dict[str, Any]:
    data = OfferOut.model_validate(offer).model_dump(mode="json")
    today = today or date.today()
    data["value_type_label"] = VALUE_TYPE_LABELS.get(offer.value_type, offer.value_type)
    data["status_label"] = STATUS_LABELS.get(offer.status, offer.status)
    data["is_expired"] = offer.end_date is not None and offer.end_date < today
    return data


def get_offer(db: Session, offer_id: int) -> Offer:
    offer = db.get(Offer, offer_id)
    if offer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "오퍼를 찾을 수 없습니다.", "reason_code": "offer_not_found", "id": offer_id},
        )
    return offer


def list_offers(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    offer_type: str | None = None,
    offer_status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    query = db.query(Offer)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Offer.name.ilike(pattern), Offer.description.ilike(pattern)))
    if offer_type and offer_type != "all":
        query = query.filter(Offer.type == offer_type)
    if offer_status and offer_status != "all":
        query = query.filter(Offer.status == offer_status)
    total = query.count()
    rows = query.order_by(Offer.created_at.desc(), Offer.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return [serialize_offer(row) for row in rows], total


def _apply(offer: Offer, body: OfferCreateRequest) -> None:
    offer.name = body.name.strip()
    offer.type = body.type
    offer.description = body.description
    offer.value = body.value
    offer.value_type = body.value_type
    offer.start_date = body.start_date
    offer.end_date = body.end_date
    offer.status = body.status


def create_offer(db: Session, body: OfferCreateRequest, *, actor: str, user_id: int | None = None) -> Offer:
    with transaction(db):
        offer = Offer(created_by=actor)
        _apply(offer, body)
        db.add(offer)
        db.flush()
        system_log_service.write_system_log(
            db, level="info", message="오퍼 생성", category="offer", user_id=user_id, context={"offer_id": offer.id}
        )
    db.refresh(offer)
    return offer


def update_offer(db: Session, offer_id: int, body: OfferUpdateRequest, *, user_id: int | None = None) -> Offer:
    offer = get_offer(db, offer_id)
    with transaction(db):
        _apply(offer, body)
        system_log_service.write_system_log(
            db, level="info", message="오퍼 수정", category="offer", user_id=user_id, context={"offer_id": offer.id}
        )
    db.refresh(offer)
    return offer


def delete_offer(db: Session, offer_id: int, *, user_id: int | None = None) -> dict[str, Any]:
    offer = get_offer(db, offer_id)
    raise_in_use(
        "이 오퍼를 사용하는 진행 중인 캠페인이 있어 삭제할 수 없습니다.",
        "offer_in_use",
        active_campaigns_linked(db, "offer", offer.id),
    )
    name = offer.name
    with transaction(db):
        db.query(CampaignOffer).filter(CampaignOffer.offer_id == offer_id).delete(synchronize_session=False)
        db.delete(offer)
        system_log_service.write_system_log(
            db, level="info", message="오퍼 삭제", category="offer", user_id=user_id, context={"offer_id": offer_id}
        )
    return {"id": offer_id, "name": name}
