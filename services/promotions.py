from typing import Any, Dict, List

from bson import ObjectId

from cache import PROMOTION_TTL
from database import to_object_ids
from schemas import Campaign, Offer
from services.base import EntityService
from services.references import LINKS, ReferenceMaintainer, referenced_products


class PromotionService(EntityService):
    """Campaigns and offers: discount descriptors that reference products."""

    kind: str = ""
    search_fields = ("name", "description")
    filter_fields = ("is_active", "discount_type", "free_shipping")
    unique_fields = ()
    auto_slug = False
    cache_ttl = PROMOTION_TTL

    def __init__(self, database, cache):
        super().__init__(database, cache)
        self.references = ReferenceMaintainer(database, cache)
        self.link = LINKS[self.kind]

    def _product_ids(self, doc: Dict[str, Any]) -> List[ObjectId]:
        return referenced_products(doc, self.link.promotion_field)

    def _convert_products(self, data: Dict[str, Any]) -> None:
        if self.link.promotion_field not in data:
            return
        ids = to_object_ids(data[self.link.promotion_field] or [], "product ID")
        self.references.ensure_products_exist(ids)
        data[self.link.promotion_field] = ids

    def _prepare_create(self, data: Dict[str, Any]) -> None:
        self._convert_products(data)

    def _prepare_update(self, data: Dict[str, Any], existing: Dict[str, Any]) -> None:
        self._convert_products(data)

    def _after_create(self, entity_id: ObjectId, data: Dict[str, Any]) -> None:
        self.references.attach(self.kind, entity_id, data.get(self.link.promotion_field) or [])

    def _after_update(self, previous: Dict[str, Any], updated: Dict[str, Any]) -> None:
        self.references.sync(
            self.kind,
            updated["_id"],
            self._product_ids(previous),
            self._product_ids(updated),
        )

    def _before_delete(self, doc: Dict[str, Any]) -> None:
        # products must never reference a deleted record, so they are cleaned first
        self.references.detach_everywhere(self.kind, doc["_id"], self._product_ids(doc))

    def _expand(self, docs: List[Dict[str, Any]], expand: Dict[str, bool]) -> List[Dict[str, Any]]:
        if not expand.get("products"):
            return docs
        wanted = {pid for doc in docs for pid in self._product_ids(doc)}
        if not wanted:
            return docs
        products = {
            p["_id"]: p
            for p in self.db["product"].find({"_id": {"$in": list(wanted)}}, {"name": 1, "slug": 1, "variants.price": 1})
        }
        for doc in docs:
            ids = self._product_ids(doc)
            if ids:
                self._store_products(doc, [products[pid] for pid in ids if pid in products])
        return docs

    def _store_products(self, doc: Dict[str, Any], products: List[Dict[str, Any]]) -> None:
        doc[self.link.promotion_field] = products


class CampaignService(PromotionService):
    resource = "campaigns"
    collection_name = "campaign"
    label = "Campaign"
    kind = "campaign"
    schema = Campaign

    def _prepare_create(self, data: Dict[str, Any]) -> None:
        applies_to = dict(data.get("applies_to") or {})
        applies_to["productsIds"] = to_object_ids(applies_to.get("productsIds") or [], "product ID")
        applies_to["categoryIds"] = to_object_ids(applies_to.get("categoryIds") or [], "category ID")
        applies_to["brandIds"] = to_object_ids(applies_to.get("brandIds") or [], "brand ID")
        self.references.ensure_products_exist(applies_to["productsIds"])
        applies_to.setdefault("all_products", False)
        data["applies_to"] = applies_to

    def _prepare_update(self, data: Dict[str, Any], existing: Dict[str, Any]) -> None:
        # flatten so a partial applies_to never wipes its sibling fields
        applies_to = data.pop("applies_to", None) or {}
        for field, value in applies_to.items():
            if field in ("categoryIds", "brandIds"):
                value = to_object_ids(value, f"{field[:-3]} ID")
            data[f"applies_to.{field}"] = value
        self._convert_products(data)

    def _after_create(self, entity_id: ObjectId, data: Dict[str, Any]) -> None:
        self.references.attach(self.kind, entity_id, data["applies_to"]["productsIds"])

    def _store_products(self, doc: Dict[str, Any], products: List[Dict[str, Any]]) -> None:
        doc.setdefault("applies_to", {})["productsIds"] = products


class OfferService(PromotionService):
    resource = "offers"
    collection_name = "offer"
    label = "Offer"
    kind = "offer"
    schema = Offer
