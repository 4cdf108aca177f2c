from typing import Any, Dict

from bson import ObjectId

from database import now, serialize, to_object_id
from errors import NotFoundError
from logger import get_logger
from services.cart import UserItemsService

logger = get_logger(__name__)


class WishlistService(UserItemsService):
    resource = "wishlist"
    collection_name = "wishlist"
    label = "Wishlist"

    def add_item(self, user_id: str, product_id: str) -> Dict[str, Any]:
        """Add a product once; adding it again leaves the wishlist unchanged."""
        uid = self._user(user_id)
        pid = to_object_id(product_id, "product ID")
        if self.db["product"].count_documents({"_id": pid}, limit=1) == 0:
            raise NotFoundError("Product not found")
        self._get_or_create_doc(uid)

        stamp = now()
        result = self.collection.update_one(
            {"user": uid, "items.product": {"$ne": pid}},
            {"$push": {"items": {"_id": ObjectId(), "product": pid, "timestamp": stamp}}, "$set": {"updated_at": stamp}},
        )
        if result.modified_count:
            self._invalidate(uid)
            logger.info("Wishlist item added", user=str(uid), product=str(pid))
        return self._current(uid)

    def get_item(self, user_id: str, item_id: str) -> Dict[str, Any]:
        uid, iid = self._user(user_id), self._item_id(item_id)
        wishlist = self.collection.find_one({"user": uid})
        if wishlist is None:
            raise NotFoundError("Wishlist not found")
        for item in wishlist.get("items", []):
            if item.get("_id") == iid:
                return serialize(item)
        raise NotFoundError("Item not found in wishlist")
