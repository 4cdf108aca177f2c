"""
Per-user carts.

Each user owns at most one cart (unique index on ``user``), created lazily on
first access with an upsert. Item quantities change through positional
``$inc``/``$set`` updates, never by rewriting the item list.
"""

from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from cache import CacheClient
from database import now, serialize, to_object_id
from errors import ConflictError, NotFoundError
from helpers import pagination, parse_fields, projection
from logger import get_logger

logger = get_logger(__name__)

MAX_ATTEMPTS = 5


class UserItemsService:
    """Shared plumbing for one-document-per-user collections (cart, wishlist)."""

    resource = ""
    collection_name = ""
    label = ""

    def __init__(self, database: Database, cache: CacheClient):
        self.db = database
        self.cache = cache
        self.collection = database[self.collection_name]

    @property
    def fields(self) -> set:
        return {"_id", "user", "items", "created_at", "updated_at"}

    def _user(self, user_id: str) -> ObjectId:
        return to_object_id(user_id, "user ID")

    def _item_id(self, item_id: str) -> ObjectId:
        return to_object_id(item_id, "item ID")

    def _invalidate(self, uid: ObjectId) -> None:
        self.cache.invalidate(f"{self.resource}:{uid}:*")
        self.cache.invalidate(f"{self.resource}:all:*")

    def _get_or_create_doc(self, uid: ObjectId) -> Dict[str, Any]:
        stamp = now()
        try:
            return self.collection.find_one_and_update(
                {"user": uid},
                {"$setOnInsert": {"items": [], "created_at": stamp, "updated_at": stamp}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # a concurrent first access created it
            return self.collection.find_one({"user": uid})

    def _expand_products(self, docs: List[Dict[str, Any]]) -> None:
        wanted = {item["product"] for doc in docs for item in doc.get("items", []) if "product" in item}
        if not wanted:
            return
        products = {
            p["_id"]: p
            for p in self.db["product"].find({"_id": {"$in": list(wanted)}}, {"name": 1, "slug": 1, "variants.price": 1, "variants.sale_price": 1})
        }
        for doc in docs:
            for item in doc.get("items", []):
                item["product"] = products.get(item["product"], item["product"])

    @staticmethod
    def _select(doc: Dict[str, Any], selected: Optional[List[str]]) -> Dict[str, Any]:
        if not selected:
            return doc
        return {k: v for k, v in doc.items() if k == "_id" or k in selected}

    def get_or_create(self, user_id: str, fields: Optional[str] = None, include_products: bool = False) -> Dict[str, Any]:
        uid = self._user(user_id)
        selected = parse_fields(fields, self.fields)
        key = self.cache.derive_key(
            f"{self.resource}:{uid}", {"fields": selected, "include_products": include_products or None}
        )

        def load() -> Dict[str, Any]:
            doc = self._get_or_create_doc(uid)
            if include_products:
                self._expand_products([doc])
            return serialize(self._select(doc, selected))

        return self.cache.read_through(key, load)

    def _current(self, uid: ObjectId) -> Dict[str, Any]:
        return serialize(self.collection.find_one({"user": uid}))

    def _missing(self, uid: ObjectId) -> NotFoundError:
        if self.collection.count_documents({"user": uid}, limit=1) == 0:
            return NotFoundError(f"{self.label} not found")
        return NotFoundError(f"Item not found in {self.label.lower()}")

    def remove_item(self, user_id: str, item_id: str) -> Dict[str, Any]:
        uid, iid = self._user(user_id), self._item_id(item_id)
        result = self.collection.update_one(
            {"user": uid, "items._id": iid},
            {"$pull": {"items": {"_id": iid}}, "$set": {"updated_at": now()}},
        )
        if result.matched_count == 0:
            raise self._missing(uid)
        self._invalidate(uid)
        return self._current(uid)

    def clear(self, user_id: str) -> Dict[str, Any]:
        """Empty the item list. Clearing an empty or missing list is a no-op."""
        uid = self._user(user_id)
        self.collection.update_one({"user": uid}, {"$set": {"items": [], "updated_at": now()}})
        self._invalidate(uid)
        return {"message": f"{self.label} cleared successfully"}

    def list_all(
        self,
        page: int = 1,
        limit: int = 10,
        fields: Optional[str] = None,
        include_products: bool = False,
    ) -> Dict[str, Any]:
        selected = parse_fields(fields, self.fields)
        key = self.cache.derive_key(
            f"{self.resource}:all",
            {"page": page, "limit": limit, "fields": selected, "include_products": include_products or None},
        )

        def load() -> Dict[str, Any]:
            cursor = (
                self.collection.find({}, projection(selected))
                .sort([("_id", 1)])
                .skip((page - 1) * limit)
                .limit(limit)
            )
            docs = list(cursor)
            if include_products:
                self._expand_products(docs)
            total = self.collection.count_documents({})
            return {"data": serialize(docs), "pagination": pagination(total, page, limit)}

        return self.cache.read_through(key, load)


class CartService(UserItemsService):
    resource = "cart"
    collection_name = "cart"
    label = "Cart"

    def add_item(self, user_id: str, product_id: str, quantity: int) -> Dict[str, Any]:
        """Add ``quantity`` of a product, incrementing the existing line when there is one."""
        uid = self._user(user_id)
        pid = to_object_id(product_id, "product ID")
        if self.db["product"].count_documents({"_id": pid}, limit=1) == 0:
            raise NotFoundError("Product not found")
        self._get_or_create_doc(uid)

        for _ in range(MAX_ATTEMPTS):
            stamp = now()
            bumped = self.collection.update_one(
                {"user": uid, "items.product": pid},
                {"$inc": {"items.$.quantity": quantity}, "$set": {"items.$.updated_at": stamp, "updated_at": stamp}},
            )
            if bumped.matched_count:
                break
            item = {"_id": ObjectId(), "product": pid, "quantity": quantity, "created_at": stamp, "updated_at": stamp}
            pushed = self.collection.update_one(
                {"user": uid, "items.product": {"$ne": pid}},
                {"$push": {"items": item}, "$set": {"updated_at": stamp}},
            )
            if pushed.matched_count:
                break
        else:
            raise ConflictError("Cart is being modified concurrently, please retry")

        self._invalidate(uid)
        logger.info("Cart item added", user=str(uid), product=str(pid), quantity=quantity)
        return self._current(uid)

    def update_item(self, user_id: str, item_id: str, quantity: int) -> Dict[str, Any]:
        uid, iid = self._user(user_id), self._item_id(item_id)
        stamp = now()
        result = self.collection.update_one(
            {"user": uid, "items._id": iid},
            {"$set": {"items.$.quantity": quantity, "items.$.updated_at": stamp, "updated_at": stamp}},
        )
        if result.matched_count == 0:
            raise self._missing(uid)
        self._invalidate(uid)
        return self._current(uid)

    def consume(self, uid: ObjectId, lines: List[Tuple[ObjectId, int]]) -> None:
        """
        Take ordered quantities out of the cart.

        Each line is decremented by the quantity that was ordered and lines
        that reach zero are pulled. Items added or incremented after the cart
        was read survive.
        """
        for item_id, quantity in lines:
            self.collection.update_one(
                {"user": uid, "items._id": item_id},
                {"$inc": {"items.$.quantity": -quantity}},
            )
        self.collection.update_one(
            {"user": uid},
            {"$pull": {"items": {"quantity": {"$lte": 0}}}, "$set": {"updated_at": now()}},
        )
        self._invalidate(uid)
