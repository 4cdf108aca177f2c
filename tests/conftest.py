"""Shared fixtures: in-memory MongoDB (mongomock) and Redis (fakeredis)."""

import fakeredis
import mongomock
import pytest
from fastapi.testclient import TestClient

from cache import CacheClient
from dependencies import get_cache, get_database
from services.catalog import BrandService, CategoryService
from services.products import ProductService


@pytest.fixture
def db():
    return mongomock.MongoClient()["ecommerce_test"]


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def cache(redis_client):
    return CacheClient(redis_client, namespace="test", default_ttl=60)


@pytest.fixture
def client(db, cache):
    from main import app

    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def brand_id(db, cache):
    return BrandService(db, cache).create({"name": "Acme"})["_id"]


@pytest.fixture
def category_id(db, cache):
    return CategoryService(db, cache).create({"name": "Shirts"})["_id"]


@pytest.fixture
def make_product(db, cache, brand_id, category_id):
    """Factory creating products with a single priced variant."""
    service = ProductService(db, cache)
    counter = {"n": 0}

    def make(name=None, price=10.0, sale_price=None, **extra):
        counter["n"] += 1
        variant = {"sku": f"SKU-{counter['n']}", "price": price, "inventory": {"quantity_available": 5}}
        if sale_price is not None:
            variant["sale_price"] = sale_price
        data = {
            "name": name or f"Product {counter['n']}",
            "category": category_id,
            "brand": brand_id,
            "variants": [variant],
            **extra,
        }
        return service.create(data)["_id"]

    return make