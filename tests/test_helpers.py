from datetime import datetime
from unittest.mock import MagicMock

import pytest
import structlog
from bson import ObjectId

from database import ensure_indexes, next_sequence, serialize, to_object_id, to_object_ids
from errors import BadRequestError, NotFoundError
from helpers import envelope, pagination, parse_fields, search_filter, slugify, sort_spec
from logger import bind_request_id


@pytest.mark.parametrize(
    "name, slug",
    [
        ("Summer Collection", "summer-collection"),
        ("  --Men's  T-Shirts!! ", "men-s-t-shirts"),
        ("100% Cotton", "100-cotton"),
    ],
)
def test_slugify(name, slug):
    assert slugify(name) == slug


def test_parse_fields():
    assert parse_fields(None, {"name"}) is None
    assert parse_fields(" name , slug ", {"name", "slug"}) == ["name", "slug"]
    with pytest.raises(BadRequestError) as excinfo:
        parse_fields("name,password", {"name", "slug"})
    assert excinfo.value.details == {"invalid": ["password"]}
    assert "name, slug" in excinfo.value.message


def test_pagination_rounds_up():
    assert pagination(21, 3, 10) == {"items": 21, "page": 3, "limit": 10, "totalPages": 3}
    assert pagination(0, 1, 10)["totalPages"] == 0


def test_search_filter_and_sort():
    assert search_filter(None, ["name"]) == {}
    assert search_filter("a.b", ["name", "slug"]) == {
        "$or": [{"name": {"$regex": r"a\.b", "$options": "i"}}, {"slug": {"$regex": r"a\.b", "$options": "i"}}]
    }
    assert sort_spec("name", "desc") == [("name", -1), ("_id", -1)]


def test_envelope():
    assert envelope(201, "Created") == {"statusCode": 201, "message": "Created", "payload": {}}


def test_object_id_conversion():
    oid = ObjectId()
    assert to_object_id(str(oid)) == oid
    assert to_object_ids([str(oid), oid]) == [oid]
    with pytest.raises(BadRequestError, match="Invalid product ID"):
        to_object_id("xyz", "product ID")


def test_serialize_nested_documents():
    oid = ObjectId()
    stamp = datetime(2024, 1, 2, 3, 4, 5)
    assert serialize({"_id": oid, "items": [{"at": stamp}]}) == {
        "_id": str(oid),
        "items": [{"at": "2024-01-02T03:04:05+00:00"}],
    }


def test_next_sequence_counts_up(db):
    assert [next_sequence(db, "order") for _ in range(3)] == [1, 2, 3]
    assert next_sequence(db, "invoice") == 1


def test_ensure_indexes_declares_unique_constraints():
    database = MagicMock()
    ensure_indexes(database)

    # MagicMock hands back one shared collection mock for every name
    collection = database.__getitem__.return_value
    unique = {
        call.args[0][0][0] for call in collection.create_index.call_args_list if call.kwargs.get("unique")
    }
    assert {"slug", "name", "variants.sku", "code", "user", "id", "transaction_id"} <= unique


def test_error_response_shape():
    error = NotFoundError("Cart not found", {"user": "u1"})
    assert error.status_code == 404
    assert error.to_response() == {"statusCode": 404, "message": "Cart not found", "details": {"user": "u1"}}
    assert "details" not in NotFoundError("x").to_response()


def test_bind_request_id():
    assert bind_request_id("req-1") == "req-1"
    assert structlog.contextvars.get_contextvars() == {"request_id": "req-1"}
    assert bind_request_id() != "req-1"
