from typing import Any, Dict, Optional, Tuple

from bson import ObjectId

from database import as_utc, now
from errors import BadRequestError
from schemas import Brand, Category, Coupon, Store
from services.base import EntityService


def _refresh_embedded(service: EntityService, previous: Dict[str, Any], updated: Dict[str, Any]) -> None:
    # products embed the name and slug of their brand and category
    if (previous.get("name"), previous.get("slug")) != (updated.get("name"), updated.get("slug")):
        service.cache.invalidate("products:*")


class BrandService(EntityService):
    resource = "brands"
    collection_name = "brand"
    label = "Brand"
    schema = Brand
    search_fields = ("name", "description", "slug", "website")
    filter_fields = ("featured", "is_active")
    default_sort = "order"
    default_order = "asc"

    def _after_update(self, previous: Dict[str, Any], updated: Dict[str, Any]) -> None:
        _refresh_embedded(self, previous, updated)

class CategoryService(EntityService):
    resource = "categories"
    collection_name = "category"
    label = "Category"
    schema = Category
    search_fields = ("name", "description", "slug")
    filter_fields = ("featured", "is_active", "parent_id")
    reference_fields = ("parent_id",)
    default_sort = "order"
    default_order = "asc"

    def _prepare_create(self, data: Dict[str, Any]) -> None:
        self._references(data, self.reference_fields)
        if data.get("parent_id"):
            self._require(self.collection_name, data["parent_id"], "Parent category")

    def _prepare_update(self, data: Dict[str, Any], existing: Dict[str, Any]) -> None:
        self._references(data, self.reference_fields)
        if data.get("parent_id"):
            if data["parent_id"] == existing["_id"]:
                raise BadRequestError("A category cannot be its own parent")
            self._require(self.collection_name, data["parent_id"], "Parent category")

    def _after_update(self, previous: Dict[str, Any], updated: Dict[str, Any]) -> None:
        _refresh_embedded(self, previous, updated)

class StoreService(EntityService):
    resource = "stores"
    collection_name = "store"
    label = "Store"
    schema = Store
    search_fields = ("name", "description", "city")
    filter_fields = ("city", "division", "country", "is_active")

class CouponService(EntityService):
    resource = "coupons"
    collection_name = "coupon"
    label = "Coupon"
    schema = Coupon
    search_fields = ("name", "description", "code")
    filter_fields = ("is_active", "discount_type")
    unique_fields = ("code",)
    auto_slug = False

    def _prepare_create(self, data: Dict[str, Any]) -> None:
        data["code"] = data["code"].strip().upper()

    def _prepare_update(self, data: Dict[str, Any], existing: Dict[str, Any]) -> None:
        if data.get("code"):
            data["code"] = data["code"].strip().upper()

    def redeem(self, code: str, subtotal: float) -> Tuple[Optional[ObjectId], float]:
        """Validate ``code`` against an order subtotal and return (coupon id, discount)."""
        coupon = self.collection.find_one({"code": code.strip().upper()})
        if coupon is None or not coupon.get("is_active", True):
            raise BadRequestError("Invalid coupon code")
        if as_utc(coupon["expiration_date"]) < now():
            raise BadRequestError("Coupon has expired")
        minimum = coupon.get("minimum_purchase_amount", 0)
        if subtotal < minimum:
            raise BadRequestError(f"Coupon requires a minimum purchase of {minimum}")

        if coupon["discount_type"] == "percentage":
            discount = subtotal * coupon["discount_value"] / 100
        else:
            discount = coupon["discount_value"]
        return coupon["_id"], round(min(discount, subtotal), 2)
