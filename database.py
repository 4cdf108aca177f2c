"""
MongoDB connection and document helpers.

Collections are named after the entity (product, brand, category, campaign,
offer, coupon, store, cart, wishlist, order). The client is created lazily by
pymongo, so importing this module never blocks on the network.
"""

import os
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List

from bson import ObjectId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.database import Database

from errors import BadRequestError
from logger import get_logger

logger = get_logger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "ecommerce")

client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
db: Database = client[DATABASE_NAME]


def get_db() -> Database:
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # pymongo hands back naive datetimes that are already UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or (isinstance(value, str) and ObjectId.is_valid(value))


def to_object_id(value: Any, label: str = "ID") -> ObjectId:
    """Convert a reference id, failing with BadRequest when it is malformed."""
    if isinstance(value, ObjectId):
        return value
    if not is_valid_object_id(value):
        raise BadRequestError(f"Invalid {label}")
    return ObjectId(value)


def to_object_ids(values: Iterable[Any], label: str = "ID") -> List[ObjectId]:
    """Convert and de-duplicate a list of reference ids, keeping their order."""
    result: List[ObjectId] = []
    for value in values:
        oid = to_object_id(value, label)
        if oid not in result:
            result.append(oid)
    return result


def serialize(value: Any) -> Any:
    """Make a document JSON-safe: ObjectId -> hex string, datetime -> ISO-8601."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def create_document(database: Database, collection_name: str, data: Dict[str, Any]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    doc = dict(data)
    stamp = now()
    doc.setdefault("created_at", stamp)
    doc["updated_at"] = stamp
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def next_sequence(database: Database, name: str) -> int:
    """Allocate the next value of a named counter atomically."""
    counter = database["counters"].find_one_and_update(
        {"_id": name},
        {"$inc": {"value": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(counter["value"])


def ensure_indexes(database: Database) -> None:
    """Create the unique indexes backing every uniqueness rule."""
    database["product"].create_index([("slug", ASCENDING)], unique=True)
    database["product"].create_index([("name", ASCENDING)], unique=True)
    database["product"].create_index(
        [("variants.sku", ASCENDING)],
        unique=True,
        partialFilterExpression={"variants.sku": {"$exists": True}},
    )
    for field in ("category", "brand", "campaigns", "offers", "is_active"):
        database["product"].create_index([(field, ASCENDING)])

    for collection in ("brand", "category", "store"):
        database[collection].create_index([("name", ASCENDING)], unique=True)
        database[collection].create_index([("slug", ASCENDING)], unique=True)
        database[collection].create_index([("is_active", ASCENDING)])

    database["coupon"].create_index([("code", ASCENDING)], unique=True)
    database["campaign"].create_index([("applies_to.productsIds", ASCENDING)])
    database["offer"].create_index([("applicable_products", ASCENDING)])

    database["cart"].create_index([("user", ASCENDING)], unique=True)
    database["cart"].create_index([("items.product", ASCENDING)])
    database["wishlist"].create_index([("user", ASCENDING)], unique=True)
    database["wishlist"].create_index([("items.product", ASCENDING)])

    database["order"].create_index([("id", ASCENDING)], unique=True)
    database["order"].create_index([("transaction_id", ASCENDING)], unique=True)
    database["order"].create_index([("user_id", ASCENDING)])
    database["order"].create_index([("order_status", ASCENDING)])
    logger.info("Indexes ensured", database=database.name)
