"""
Keeps the product <-> campaign/offer reference sets consistent.

A campaign lists its products in ``applies_to.productsIds`` and each of those
products lists the campaign in ``campaigns``; offers use
``applicable_products`` / ``offers``. Every write here uses $addToSet/$pull so
repeated calls are idempotent.
"""

from typing import Dict, Iterable, List, NamedTuple, Tuple

from bson import ObjectId
from pymongo.database import Database

from cache import CacheClient
from errors import NotFoundError
from logger import get_logger

logger = get_logger(__name__)

PRODUCT_COLLECTION = "product"
PRODUCT_RESOURCE = "products"


class Link(NamedTuple):
    collection: str
    resource: str
    label: str
    promotion_field: str
    product_field: str


LINKS: Dict[str, Link] = {
    "campaign": Link("campaign", "campaigns", "Campaign", "applies_to.productsIds", "campaigns"),
    "offer": Link("offer", "offers", "Offer", "applicable_products", "offers"),
}


def referenced_products(doc: Dict, path: str) -> List[ObjectId]:
    """Read a dotted reference-set path out of a promotion document."""
    value = doc
    for part in path.split("."):
        value = (value or {}).get(part)
    return list(value or [])


class ReferenceMaintainer:
    def __init__(self, database: Database, cache: CacheClient):
        self.db = database
        self.cache = cache
        self.products = database[PRODUCT_COLLECTION]

    def _link(self, kind: str) -> Link:
        try:
            return LINKS[kind]
        except KeyError:
            raise ValueError(f"Unknown promotion kind: {kind}")

    def invalidate_products(self, product_ids: Iterable[ObjectId]) -> None:
        self.cache.invalidate(f"{PRODUCT_RESOURCE}:list:*")
        for pid in product_ids:
            self.cache.invalidate(f"{PRODUCT_RESOURCE}:{pid}:*")

    def invalidate_promotions(self, kind: str, promotion_ids: Iterable[ObjectId]) -> None:
        link = self._link(kind)
        self.cache.invalidate(f"{link.resource}:list:*")
        for promotion_id in promotion_ids:
            self.cache.invalidate(f"{link.resource}:{promotion_id}:*")

    def ensure_products_exist(self, product_ids: List[ObjectId]) -> None:
        if not product_ids:
            return
        found = {doc["_id"] for doc in self.products.find({"_id": {"$in": product_ids}}, {"_id": 1})}
        missing = [str(pid) for pid in product_ids if pid not in found]
        if missing:
            raise NotFoundError("Product not found", {"missing": missing})

    # Promotion side

    def attach(self, kind: str, promotion_id: ObjectId, product_ids: List[ObjectId]) -> int:
        """Add ``promotion_id`` to every listed product's reference set."""
        if not product_ids:
            return 0
        link = self._link(kind)
        result = self.products.update_many(
            {"_id": {"$in": product_ids}},
            {"$addToSet": {link.product_field: promotion_id}},
        )
        self.invalidate_products(product_ids)
        logger.info("Promotion attached", kind=kind, id=str(promotion_id), products=len(product_ids))
        return result.modified_count

    def detach(self, kind: str, promotion_id: ObjectId, product_ids: List[ObjectId]) -> int:
        if not product_ids:
            return 0
        link = self._link(kind)
        result = self.products.update_many(
            {"_id": {"$in": product_ids}},
            {"$pull": {link.product_field: promotion_id}},
        )
        self.invalidate_products(product_ids)
        logger.info("Promotion detached", kind=kind, id=str(promotion_id), products=len(product_ids))
        return result.modified_count

    def detach_everywhere(self, kind: str, promotion_id: ObjectId, known_ids: Iterable[ObjectId] = ()) -> None:
        """Pull ``promotion_id`` from every product still referencing it."""
        link = self._link(kind)
        holders = [doc["_id"] for doc in self.products.find({link.product_field: promotion_id}, {"_id": 1})]
        affected = list(dict.fromkeys(list(known_ids) + holders))
        if holders:
            self.products.update_many(
                {link.product_field: promotion_id},
                {"$pull": {link.product_field: promotion_id}},
            )
        if affected:
            self.invalidate_products(affected)
            logger.info("Promotion detached", kind=kind, id=str(promotion_id), products=len(affected))

    def sync(
        self,
        kind: str,
        promotion_id: ObjectId,
        old_ids: Iterable[ObjectId],
        new_ids: Iterable[ObjectId],
    ) -> Tuple[List[ObjectId], List[ObjectId]]:
        """Apply the difference between two reference sets; returns (removed, added)."""
        old_ids, new_ids = list(old_ids), list(new_ids)
        removed = [pid for pid in old_ids if pid not in new_ids]
        added = [pid for pid in new_ids if pid not in old_ids]
        if removed:
            self.detach(kind, promotion_id, removed)
        if added:
            self.attach(kind, promotion_id, added)
        return removed, added

    # Product side

    def link_from_product(self, kind: str, product_id: ObjectId, promotion_ids: List[ObjectId]) -> None:
        link = self._link(kind)
        promotions = self.db[link.collection]
        found = {doc["_id"] for doc in promotions.find({"_id": {"$in": promotion_ids}}, {"_id": 1})}
        missing = [str(pid) for pid in promotion_ids if pid not in found]
        if missing:
            raise NotFoundError(f"{link.label} not found", {"missing": missing})

        result = self.products.update_one(
            {"_id": product_id},
            {"$addToSet": {link.product_field: {"$each": promotion_ids}}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Product not found")
        promotions.update_many(
            {"_id": {"$in": promotion_ids}},
            {"$addToSet": {link.promotion_field: product_id}},
        )
        self.invalidate_products([product_id])
        self.invalidate_promotions(kind, promotion_ids)
        logger.info("Product linked", kind=kind, product=str(product_id), promotions=len(promotion_ids))

    def unlink_from_product(self, kind: str, product_id: ObjectId, promotion_id: ObjectId) -> None:
        link = self._link(kind)
        result = self.products.update_one(
            {"_id": product_id},
            {"$pull": {link.product_field: promotion_id}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Product not found")
        self.db[link.collection].update_one(
            {"_id": promotion_id},
            {"$pull": {link.promotion_field: product_id}},
        )
        self.invalidate_products([product_id])
        self.invalidate_promotions(kind, [promotion_id])
        logger.info("Product unlinked", kind=kind, product=str(product_id), promotion=str(promotion_id))

    def detach_product(self, product_id: ObjectId) -> None:
        """Remove a product from every promotion reference set before it is deleted."""
        for kind, link in LINKS.items():
            promotions = self.db[link.collection]
            holders = [doc["_id"] for doc in promotions.find({link.promotion_field: product_id}, {"_id": 1})]
            if not holders:
                continue
            promotions.update_many(
                {link.promotion_field: product_id},
                {"$pull": {link.promotion_field: product_id}},
            )
            self.invalidate_promotions(kind, holders)

