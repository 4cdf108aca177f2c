from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_offer_service
from helpers import envelope
from routers.params import ListQuery
from schemas import DiscountType, Offer, OfferUpdate, StatusUpdate
from services.promotions import OfferService

router = APIRouter(prefix="/offers", tags=["offers"])


@router.get("")
def list_offers(
    query: ListQuery = Depends(),
    is_active: Optional[bool] = None,
    discount_type: Optional[DiscountType] = None,
    free_shipping: Optional[bool] = None,
    includeProducts: bool = False,
    service: OfferService = Depends(get_offer_service),
):
    result = service.list(
        **query.as_kwargs(),
        filters={"is_active": is_active, "discount_type": discount_type, "free_shipping": free_shipping},
        expand={"products": includeProducts},
    )
    return envelope(200, "Offers retrieved successfully", result)


@router.get("/{offer_id}")
def get_offer(
    offer_id: str,
    fields: Optional[str] = Query(None),
    includeProducts: bool = False,
    service: OfferService = Depends(get_offer_service),
):
    offer = service.get_by_id(offer_id, fields, {"products": includeProducts})
    return envelope(200, "Offer retrieved successfully", {"data": offer})


@router.post("", status_code=201)
def create_offer(payload: Offer, service: OfferService = Depends(get_offer_service)):
    result = service.create(payload.model_dump(exclude_none=True))
    return envelope(201, "Offer created successfully", {"data": result})


@router.put("/{offer_id}")
def update_offer(offer_id: str, payload: OfferUpdate, service: OfferService = Depends(get_offer_service)):
    offer = service.update(offer_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Offer updated successfully", {"data": offer})


@router.patch("/{offer_id}/status")
def update_offer_status(
    offer_id: str,
    payload: StatusUpdate,
    service: OfferService = Depends(get_offer_service),
):
    offer = service.update_status(offer_id, payload.is_active)
    return envelope(200, "Offer status updated successfully", {"data": offer})


@router.delete("/{offer_id}")
def delete_offer(offer_id: str, service: OfferService = Depends(get_offer_service)):
    return envelope(200, "Offer deleted successfully", {"data": service.delete(offer_id)})
