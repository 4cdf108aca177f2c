from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_coupon_service
from helpers import envelope
from routers.params import ListQuery
from schemas import Coupon, CouponUpdate, DiscountType, StatusUpdate
from services.catalog import CouponService

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.get("")
def list_coupons(
    query: ListQuery = Depends(),
    is_active: Optional[bool] = None,
    discount_type: Optional[DiscountType] = None,
    service: CouponService = Depends(get_coupon_service),
):
    result = service.list(**query.as_kwargs(), filters={"is_active": is_active, "discount_type": discount_type})
    return envelope(200, "Coupons retrieved successfully", result)


@router.get("/{coupon_id}")
def get_coupon(coupon_id: str, fields: Optional[str] = Query(None), service: CouponService = Depends(get_coupon_service)):
    return envelope(200, "Coupon retrieved successfully", {"data": service.get_by_id(coupon_id, fields)})


@router.post("", status_code=201)
def create_coupon(payload: Coupon, service: CouponService = Depends(get_coupon_service)):
    result = service.create(payload.model_dump(exclude_none=True))
    return envelope(201, "Coupon created successfully", {"data": result})


@router.put("/{coupon_id}")
def update_coupon(coupon_id: str, payload: CouponUpdate, service: CouponService = Depends(get_coupon_service)):
    coupon = service.update(coupon_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Coupon updated successfully", {"data": coupon})


@router.patch("/{coupon_id}/status")
def update_coupon_status(coupon_id: str, payload: StatusUpdate, service: CouponService = Depends(get_coupon_service)):
    coupon = service.update_status(coupon_id, payload.is_active)
    return envelope(200, "Coupon status updated successfully", {"data": coupon})


@router.delete("/{coupon_id}")
def delete_coupon(coupon_id: str, service: CouponService = Depends(get_coupon_service)):
    return envelope(200, "Coupon deleted successfully", {"data": service.delete(coupon_id)})
