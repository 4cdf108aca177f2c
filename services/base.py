"""
Generic cache-aware CRUD service.

Subclasses declare the collection, cache resource, searchable/filterable
fields and uniqueness rules; hooks let them convert references, maintain
cross references and expand related documents.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from cache import CacheClient
from database import create_document, is_valid_object_id, now, serialize, to_object_id
from errors import BadRequestError, ConflictError, NotFoundError
from helpers import pagination, parse_fields, projection, search_filter, slugify, sort_spec
from logger import get_logger

logger = get_logger(__name__)


class EntityService:
    resource: str = ""
    collection_name: str = ""
    label: str = "Entity"
    schema: Type[BaseModel] = BaseModel
    extra_fields: Tuple[str, ...] = ()
    search_fields: Tuple[str, ...] = ("name",)
    filter_fields: Tuple[str, ...] = ("is_active",)
    reference_fields: Tuple[str, ...] = ()
    unique_fields: Tuple[str, ...] = ("name", "slug")
    default_sort: str = "created_at"
    default_order: str = "desc"
    auto_slug: bool = True
    cache_ttl: Optional[int] = None

    def __init__(self, database: Database, cache: CacheClient):
        self.db = database
        self.cache = cache
        self.collection = database[self.collection_name]

    @property
    def fields(self) -> set:
        return set(self.schema.model_fields) | set(self.extra_fields) | {"_id", "created_at", "updated_at"}

    # Cache keys

    def list_key(self, params: Dict[str, Any]) -> str:
        return self.cache.derive_key(f"{self.resource}:list", params)

    def detail_key(self, entity_id: str, params: Dict[str, Any]) -> str:
        return self.cache.derive_key(f"{self.resource}:{entity_id}", params)

    def invalidate_lists(self) -> None:
        self.cache.invalidate(f"{self.resource}:list:*")

    def invalidate_detail(self, doc: Dict[str, Any]) -> None:
        for entity_id in self._detail_ids(doc):
            self.cache.invalidate(f"{self.resource}:{entity_id}:*")

    def _detail_ids(self, doc: Dict[str, Any]) -> List[str]:
        return [str(doc["_id"])]

    # Lookup

    def _find_filter(self, entity_id: str) -> Dict[str, Any]:
        # A malformed id cannot name an existing record
        if not is_valid_object_id(entity_id):
            raise NotFoundError(f"{self.label} not found")
        return {"_id": ObjectId(entity_id)}

    def _cache_id(self, query: Dict[str, Any]) -> str:
        return str(query["_id"])

    def _get_doc(self, entity_id: str) -> Dict[str, Any]:
        doc = self.collection.find_one(self._find_filter(entity_id))
        if doc is None:
            raise NotFoundError(f"{self.label} not found")
        return doc

    # Hooks

    def _prepare_create(self, data: Dict[str, Any]) -> None:
        pass

    def _prepare_update(self, data: Dict[str, Any], existing: Dict[str, Any]) -> None:
        pass

    def _after_create(self, entity_id: ObjectId, data: Dict[str, Any]) -> None:
        pass

    def _after_update(self, previous: Dict[str, Any], updated: Dict[str, Any]) -> None:
        pass

    def _before_delete(self, doc: Dict[str, Any]) -> None:
        pass

    def _expand(self, docs: List[Dict[str, Any]], expand: Dict[str, bool]) -> List[Dict[str, Any]]:
        return docs

    # Helpers for subclasses

    def _references(self, data: Dict[str, Any], fields: Iterable[str]) -> None:
        for field in fields:
            if data.get(field) is not None:
                data[field] = to_object_id(data[field], f"{field} ID")

    def _require(self, collection_name: str, oid: ObjectId, label: str) -> None:
        if self.db[collection_name].count_documents({"_id": oid}, limit=1) == 0:
            raise NotFoundError(f"{label} not found")

    def _derive_slug(self, data: Dict[str, Any]) -> None:
        if self.auto_slug and not data.get("slug") and data.get("name"):
            data["slug"] = slugify(data["name"])

    def _check_unique(self, data: Dict[str, Any], exclude_id: Optional[ObjectId] = None) -> None:
        for field in self.unique_fields:
            value = data.get(field)
            if value is None:
                continue
            query: Dict[str, Any] = {field: value}
            if exclude_id is not None:
                query["_id"] = {"$ne": exclude_id}
            if self.collection.count_documents(query, limit=1):
                raise ConflictError(f"{self.label} {field} already exists")

    def _build_filter(self, search: Optional[str], filters: Dict[str, Any]) -> Dict[str, Any]:
        query = search_filter(search, self.search_fields)
        for field, value in filters.items():
            if field not in self.filter_fields:
                raise BadRequestError(f"Cannot filter {self.label.lower()} by {field}")
            query[field] = to_object_id(value, f"{field} ID") if field in self.reference_fields else value
        return query

    # Operations

    def list(
        self,
        *,
        search: Optional[str] = None,
        fields: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        expand: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        selected = parse_fields(fields, self.fields)
        sort_by = sort_by or self.default_sort
        sort_order = sort_order or self.default_order
        if sort_by not in self.fields:
            raise BadRequestError(f"Cannot sort {self.label.lower()} by {sort_by}")
        filters = {k: v for k, v in (filters or {}).items() if v is not None}
        expand = {k: True for k, v in (expand or {}).items() if v}

        key = self.list_key({
            "search": search,
            "fields": selected,
            "page": page,
            "limit": limit,
            "sort_by": sort_by,
            "sort_order": sort_order,
            "filters": filters,
            "expand": expand,
        })

        def load() -> Dict[str, Any]:
            query = self._build_filter(search, filters)
            cursor = (
                self.collection.find(query, projection(selected))
                .sort(sort_spec(sort_by, sort_order))
                .skip((page - 1) * limit)
                .limit(limit)
            )
            docs = self._expand(list(cursor), expand)
            total = self.collection.count_documents(query)
            return {"data": serialize(docs), "pagination": pagination(total, page, limit)}

        return self.cache.read_through(key, load, self.cache_ttl)

    def get_by_id(
        self,
        entity_id: str,
        fields: Optional[str] = None,
        expand: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        query = self._find_filter(entity_id)
        selected = parse_fields(fields, self.fields)
        expand = {k: True for k, v in (expand or {}).items() if v}
        key = self.detail_key(self._cache_id(query), {"fields": selected, "expand": expand})

        def load() -> Dict[str, Any]:
            doc = self.collection.find_one(query, projection(selected))
            if doc is None:
                raise NotFoundError(f"{self.label} not found")
            return serialize(self._expand([doc], expand)[0])

        return self.cache.read_through(key, load, self.cache_ttl)

    def create(self, data: Dict[str, Any]) -> Dict[str, str]:
        data = dict(data)
        self._derive_slug(data)
        self._prepare_create(data)
        self._check_unique(data)
        try:
            new_id = create_document(self.db, self.collection_name, data)
        except DuplicateKeyError:
            raise ConflictError(f"{self.label} already exists")
        self._after_create(ObjectId(new_id), data)
        self.invalidate_lists()
        logger.info("Entity created", resource=self.resource, id=new_id)
        return {"_id": new_id}

    def update(self, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data:
            raise BadRequestError("At least one field must be provided")
        existing = self._get_doc(entity_id)
        oid = existing["_id"]
        changes = dict(data)
        if self.auto_slug and changes.get("name") and not changes.get("slug"):
            changes["slug"] = slugify(changes["name"])
        self._prepare_update(changes, existing)
        self._check_unique(changes, exclude_id=oid)
        changes["updated_at"] = now()

        try:
            previous = self.collection.find_one_and_update(
                {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.BEFORE
            )
        except DuplicateKeyError:
            raise ConflictError(f"{self.label} already exists")
        if previous is None:
            raise NotFoundError(f"{self.label} not found")
        updated = self.collection.find_one({"_id": oid})

        self._after_update(previous, updated)
        self.invalidate_detail(updated)
        self.invalidate_lists()
        logger.info("Entity updated", resource=self.resource, id=str(oid), fields=sorted(data))
        return serialize(updated)

    def update_status(self, entity_id: str, is_active: bool) -> Dict[str, Any]:
        return self.update(entity_id, {"is_active": is_active})

    def delete(self, entity_id: str) -> Dict[str, str]:
        doc = self._get_doc(entity_id)
        self._before_delete(doc)
        self.collection.delete_one({"_id": doc["_id"]})
        self.invalidate_detail(doc)
        self.invalidate_lists()
        logger.info("Entity deleted", resource=self.resource, id=str(doc["_id"]))
        return {"_id": str(doc["_id"])}
