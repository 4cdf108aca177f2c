"""
Orders: immutable item snapshots with a status lifecycle.

Orders carry a sequential numeric ``id`` next to their ObjectId and can be
fetched by either. Items and totals are fixed at creation; afterwards only
fulfilment fields (tracking, refunds, address) and the status change.
"""

from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import create_document, is_valid_object_id, next_sequence, now, serialize, to_object_id
from errors import BadRequestError, ConflictError, NotFoundError
from logger import get_logger
from schemas import Order
from services.base import EntityService
from services.cart import CartService
from services.catalog import CouponService
from services.references import ReferenceMaintainer

logger = get_logger(__name__)

TRANSITIONS = {
    "pending": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": {"returned"},
}

STATUS_DATES = {
    "shipped": "shipped_date",
    "delivered": "delivered_date",
    "cancelled": "cancellation_date",
    "returned": "return_date",
}


class OrderService(EntityService):
    resource = "orders"
    collection_name = "order"
    label = "Order"
    schema = Order
    extra_fields = (
        "id",
        "subtotal",
        "discount",
        "total_amount",
        "order_status",
        "shipped_date",
        "delivered_date",
        "cancellation_date",
        "return_date",
        "cancellation_reason",
        "return_reason",
        "is_returned",
        "refund_amount",
        "refund_status",
        "tracking_number",
        "is_active",
    )
    search_fields = ("transaction_id", "tracking_number")
    filter_fields = ("user_id", "order_status", "payment_method", "is_active", "is_returned")
    reference_fields = ("user_id",)
    unique_fields = ("transaction_id",)
    default_sort = "id"
    default_order = "desc"
    auto_slug = False

    def __init__(self, database, cache):
        super().__init__(database, cache)
        self.coupons = CouponService(database, cache)
        self.carts = CartService(database, cache)
        self.references = ReferenceMaintainer(database, cache)

    def _find_filter(self, entity_id: str) -> Dict[str, Any]:
        if is_valid_object_id(entity_id):
            return super()._find_filter(entity_id)
        if isinstance(entity_id, str) and entity_id.isdigit():
            return {"id": int(entity_id)}
        raise NotFoundError("Order not found")

    def _cache_id(self, query: Dict[str, Any]) -> str:
        return str(query["id"]) if "id" in query else str(query["_id"])

    def _detail_ids(self, doc: Dict[str, Any]) -> List[str]:
        ids = [str(doc["_id"])]
        if doc.get("id") is not None:
            ids.append(str(doc["id"]))
        return ids

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Snapshot the items, price the order and allocate its sequential number."""
        user_id = to_object_id(data["user_id"], "user ID")
        items = [
            {
                "product_id": to_object_id(item["product_id"], "product ID"),
                "quantity": item["quantity"],
                "price": item["price"],
            }
            for item in data["order_items"]
        ]
        self.references.ensure_products_exist([item["product_id"] for item in items])
        self._check_unique(data)

        subtotal = round(sum(item["price"] * item["quantity"] for item in items), 2)
        coupon_id, discount = None, 0.0
        if data.get("coupon"):
            coupon_id, discount = self.coupons.redeem(data["coupon"], subtotal)

        doc = {
            "id": next_sequence(self.db, "order"),
            "user_id": user_id,
            "coupon": coupon_id,
            "order_items": items,
            "subtotal": subtotal,
            "discount": discount,
            "total_amount": round(subtotal - discount, 2),
            "payment_method": data["payment_method"],
            "transaction_id": data["transaction_id"],
            "shipping_address": data["shipping_address"],
            "order_status": "pending",
            "is_returned": False,
            "is_active": True,
        }
        try:
            new_id = create_document(self.db, self.collection_name, doc)
        except DuplicateKeyError:
            raise ConflictError("Order transaction_id already exists")

        self.invalidate_lists()
        logger.info("Order created", id=doc["id"], user=str(user_id), total=doc["total_amount"])
        return {"_id": new_id, "id": doc["id"]}

    def update_order_status(self, order_id: str, status: str, reason: Optional[str] = None) -> Dict[str, Any]:
        order = self._get_doc(order_id)
        current = order.get("order_status", "pending")
        if status not in TRANSITIONS.get(current, set()):
            raise BadRequestError(f"Cannot change order status from {current} to {status}")

        stamp = now()
        changes: Dict[str, Any] = {"order_status": status, "updated_at": stamp}
        if status in STATUS_DATES:
            changes[STATUS_DATES[status]] = stamp
        if status == "cancelled":
            changes["cancellation_reason"] = reason
        elif status == "returned":
            changes["return_reason"] = reason
            changes["is_returned"] = True

        # conditional on the status we validated against
        updated = self.collection.find_one_and_update(
            {"_id": order["_id"], "order_status": current},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise ConflictError("Order status changed concurrently, please retry")

        self.invalidate_detail(updated)
        self.invalidate_lists()
        logger.info("Order status changed", id=updated.get("id"), previous=current, status=status)
        return serialize(updated)

    def checkout(self, user_id: str, request: Dict[str, Any]) -> Dict[str, Any]:
        uid = to_object_id(user_id, "user ID")
        cart = self.db["cart"].find_one({"user": uid})
        if not cart or not cart.get("items"):
            raise BadRequestError("Cart is empty")

        product_ids = [item["product"] for item in cart["items"]]
        products = {p["_id"]: p for p in self.db["product"].find({"_id": {"$in": product_ids}}, {"variants": 1})}
        missing = [str(pid) for pid in product_ids if pid not in products]
        if missing:
            raise NotFoundError("Product not found", {"missing": missing})

        order_items = []
        for item in cart["items"]:
            variant = (products[item["product"]].get("variants") or [{}])[0]
            order_items.append({
                "product_id": item["product"],
                "quantity": item["quantity"],
                "price": variant.get("sale_price") or variant.get("price", 0),
            })

        result = self.create({
            "user_id": uid,
            "coupon": request.get("coupon"),
            "order_items": order_items,
            "payment_method": request["payment_method"],
            "transaction_id": request["transaction_id"],
            "shipping_address": request["shipping_address"],
        })
        self.carts.consume(uid, [(item["_id"], item["quantity"]) for item in cart["items"]])
        return result
