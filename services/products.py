from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from database import now, serialize, to_object_id, to_object_ids
from errors import BadRequestError, ConflictError, NotFoundError
from schemas import Product
from services.base import EntityService
from services.references import ReferenceMaintainer

PROMOTION_SUMMARY = {
    "name": 1,
    "description": 1,
    "discount_type": 1,
    "discount_value": 1,
    "start_date": 1,
    "end_date": 1,
    "is_active": 1,
}


class ProductService(EntityService):
    resource = "products"
    collection_name = "product"
    label = "Product"
    schema = Product
    extra_fields = ("campaigns", "offers", "reviews", "faq")
    search_fields = ("name", "description", "slug")
    filter_fields = ("category", "brand", "featured", "is_active")
    reference_fields = ("category", "brand")
    default_sort = "name"
    default_order = "asc"

    def __init__(self, database, cache):
        super().__init__(database, cache)
        self.references = ReferenceMaintainer(database, cache)

    # CRUD hooks

    def _check_references(self, data: Dict[str, Any]) -> None:
        self._references(data, self.reference_fields)
        if data.get("category") is not None:
            self._require("category", data["category"], "Category")
        if data.get("brand") is not None:
            self._require("brand", data["brand"], "Brand")

    def _prepare_create(self, data: Dict[str, Any]) -> None:
        self._check_references(data)
        skus = [v["sku"] for v in data.get("variants", [])]
        if len(skus) != len(set(skus)):
            raise ConflictError("Variant SKUs must be unique")
        for sku in skus:
            self._check_sku(sku)
        data["variants"] = [self._new_variant(v) for v in data.get("variants", [])]
        data.update(campaigns=[], offers=[], reviews=[], faq=[])

    def _prepare_update(self, data: Dict[str, Any], existing: Dict[str, Any]) -> None:
        self._check_references(data)

    def _before_delete(self, doc: Dict[str, Any]) -> None:
        self.references.detach_product(doc["_id"])

    def _expand(self, docs: List[Dict[str, Any]], expand: Dict[str, bool]) -> List[Dict[str, Any]]:
        related = [("category", "category", {"name": 1, "slug": 1}), ("brand", "brand", {"name": 1, "slug": 1})]
        if expand.get("campaigns"):
            related.append(("campaigns", "campaign", PROMOTION_SUMMARY))
        if expand.get("offers"):
            related.append(("offers", "offer", PROMOTION_SUMMARY))

        for field, collection, fields in related:
            wanted = set()
            for doc in docs:
                value = doc.get(field)
                wanted.update(value if isinstance(value, list) else [value] if value else [])
            if not wanted:
                continue
            found = {d["_id"]: d for d in self.db[collection].find({"_id": {"$in": list(wanted)}}, fields)}
            for doc in docs:
                value = doc.get(field)
                if isinstance(value, list):
                    doc[field] = [found[v] for v in value if v in found]
                elif value in found:
                    doc[field] = found[value]
        return docs

    # Sub-document helpers

    def _new_variant(self, variant: Dict[str, Any]) -> Dict[str, Any]:
        inventory = dict(variant.get("inventory") or {})
        inventory["last_updated"] = now()
        return {**variant, "_id": ObjectId(), "inventory": inventory}

    def _check_sku(self, sku: str, product_id: Optional[ObjectId] = None, variant_id: Optional[ObjectId] = None) -> None:
        holder = self.collection.find_one({"variants.sku": sku}, {"variants": 1})
        if holder is None:
            return
        for variant in holder.get("variants", []):
            if variant.get("sku") != sku:
                continue
            if holder["_id"] == product_id and variant.get("_id") == variant_id:
                continue
            raise ConflictError("Variant with this SKU already exists")

    def _product_oid(self, product_id: str) -> ObjectId:
        return self._find_filter(product_id)["_id"]

    def _touch(self, product_id: ObjectId) -> None:
        self.cache.invalidate(f"{self.resource}:list:*")
        self.cache.invalidate(f"{self.resource}:{product_id}:*")

    def _modify(self, query: Dict[str, Any], update: Dict[str, Any], missing: str) -> Dict[str, Any]:
        update.setdefault("$set", {})["updated_at"] = now()
        result = self.collection.update_one(query, update)
        if result.matched_count == 0:
            raise NotFoundError(missing)
        product = self.collection.find_one({"_id": query["_id"]})
        self._touch(product["_id"])
        return serialize(product)

    @staticmethod
    def _sub_id(value: str, label: str) -> ObjectId:
        if not ObjectId.is_valid(value):
            raise NotFoundError(f"{label} not found")
        return ObjectId(value)

    @staticmethod
    def _positional(prefix: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return {f"{prefix}.$.{key}": value for key, value in data.items()}

    # Variants

    def add_variant(self, product_id: str, variant: Dict[str, Any]) -> Dict[str, Any]:
        oid = self._product_oid(product_id)
        self._check_sku(variant["sku"])
        return self._modify({"_id": oid}, {"$push": {"variants": self._new_variant(variant)}}, "Product not found")

    def update_variant(self, product_id: str, variant_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data:
            raise BadRequestError("At least one field must be provided")
        oid = self._product_oid(product_id)
        vid = self._sub_id(variant_id, "Variant")
        if data.get("sku"):
            self._check_sku(data["sku"], oid, vid)
        changes = {k: v for k, v in data.items() if k != "inventory"}
        if data.get("inventory") is not None:
            # counters not named in the update keep their stored values
            inventory = {k: v for k, v in data["inventory"].items() if v is not None}
            inventory["last_updated"] = now()
            changes.update({f"inventory.{k}": v for k, v in inventory.items()})
        if not changes:
            raise BadRequestError("At least one field must be provided")
        return self._modify(
            {"_id": oid, "variants._id": vid},
            {"$set": self._positional("variants", changes)},
            "Product or variant not found",
        )

    def delete_variant(self, product_id: str, variant_id: str) -> Dict[str, Any]:
        oid = self._product_oid(product_id)
        vid = self._sub_id(variant_id, "Variant")
        return self._modify(
            {"_id": oid, "variants._id": vid},
            {"$pull": {"variants": {"_id": vid}}},
            "Product or variant not found",
        )

    def update_inventory(self, product_id: str, variant_id: str, inventory: Dict[str, Any]) -> Dict[str, Any]:
        oid = self._product_oid(product_id)
        vid = self._sub_id(variant_id, "Variant")
        changes = {k: v for k, v in inventory.items() if v is not None}
        changes["last_updated"] = now()
        return self._modify(
            {"_id": oid, "variants._id": vid},
            {"$set": self._positional("variants", {f"inventory.{k}": v for k, v in changes.items()})},
            "Product or variant not found",
        )

    # Reviews

    def add_review(self, product_id: str, user_id: str, review: Dict[str, Any]) -> Dict[str, Any]:
        oid = self._product_oid(product_id)
        entry = {**review, "_id": ObjectId(), "user": to_object_id(user_id, "user ID"), "timestamp": now()}
        return self._modify({"_id": oid}, {"$push": {"reviews": entry}}, "Product not found")

    def _owned_review(self, product_id: str, review_id: str, user_id: str, action: str) -> Tuple[Dict[str, Any], ObjectId]:
        uid = to_object_id(user_id, "user ID")
        oid = self._product_oid(product_id)
        rid = self._sub_id(review_id, "Review")
        product = self.collection.find_one({"_id": oid, "reviews._id": rid}, {"reviews": 1})
        owned = product is not None and any(
            r.get("_id") == rid and r.get("user") == uid for r in product.get("reviews", [])
        )
        if not owned:
            raise NotFoundError(f"Product not found or you are not authorized to {action} this review")
        return {"_id": oid, "reviews._id": rid}, rid

    def update_review(self, product_id: str, review_id: str, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data:
            raise BadRequestError("At least one field must be provided")
        query, _ = self._owned_review(product_id, review_id, user_id, "update")
        return self._modify(
            query,
            {"$set": self._positional("reviews", data)},
            "Product not found or you are not authorized to update this review",
        )

    def delete_review(self, product_id: str, review_id: str, user_id: str) -> Dict[str, Any]:
        query, rid = self._owned_review(product_id, review_id, user_id, "delete")
        return self._modify(
            query,
            {"$pull": {"reviews": {"_id": rid}}},
            "Product not found or you are not authorized to delete this review",
        )

    # FAQ

    def add_faq(self, product_id: str, faq: Dict[str, Any]) -> Dict[str, Any]:
        oid = self._product_oid(product_id)
        entry = {**faq, "_id": ObjectId(), "timestamp": now()}
        return self._modify({"_id": oid}, {"$push": {"faq": entry}}, "Product not found")

    def update_faq(self, product_id: str, faq_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data:
            raise BadRequestError("At least one field must be provided")
        oid = self._product_oid(product_id)
        fid = self._sub_id(faq_id, "FAQ")
        return self._modify(
            {"_id": oid, "faq._id": fid},
            {"$set": self._positional("faq", data)},
            "Product or FAQ not found",
        )

    def delete_faq(self, product_id: str, faq_id: str) -> Dict[str, Any]:
        oid = self._product_oid(product_id)
        fid = self._sub_id(faq_id, "FAQ")
        return self._modify(
            {"_id": oid, "faq._id": fid},
            {"$pull": {"faq": {"_id": fid}}},
            "Product or FAQ not found",
        )

    # Promotions

    def link_promotions(self, product_id: str, kind: str, promotion_ids: List[str]) -> Dict[str, Any]:
        oid = self._product_oid(product_id)
        self.references.link_from_product(kind, oid, to_object_ids(promotion_ids, f"{kind} ID"))
        return serialize(self._get_doc(product_id))

    def unlink_promotion(self, product_id: str, kind: str, promotion_id: str) -> Dict[str, Any]:
        oid = self._product_oid(product_id)
        self.references.unlink_from_product(kind, oid, to_object_id(promotion_id, f"{kind} ID"))
        return serialize(self._get_doc(product_id))
