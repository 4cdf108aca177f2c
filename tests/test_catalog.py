from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from bson import ObjectId

from errors import BadRequestError, ConflictError, NotFoundError
from services.catalog import BrandService, CategoryService, CouponService, StoreService
from services.products import ProductService


@pytest.fixture
def brands(db, cache):
    return BrandService(db, cache)


def test_create_derives_slug(brands):
    brand_id = brands.create({"name": "  Acme & Sons, Ltd.  "})["_id"]
    assert brands.get_by_id(brand_id)["slug"] == "acme-sons-ltd"


def test_duplicate_name_conflicts_without_writing(brands, db):
    brands.create({"name": "Acme"})
    with pytest.raises(ConflictError):
        brands.create({"name": "Acme"})
    assert db["brand"].count_documents({}) == 1


def test_duplicate_slug_conflicts(brands):
    brands.create({"name": "Acme", "slug": "shared"})
    with pytest.raises(ConflictError):
        brands.create({"name": "Other", "slug": "shared"})


def test_second_list_is_served_from_cache(brands):
    brands.create({"name": "Acme"})
    first = brands.list(page=1, limit=10)

    with patch.object(brands.collection, "find", side_effect=AssertionError("database queried")):
        second = brands.list(limit=10, page=1)

    assert first == second
    assert first["pagination"]["items"] == 1


def test_create_invalidates_list_cache(brands):
    brands.create({"name": "Acme"})
    assert brands.list()["pagination"]["items"] == 1
    brands.create({"name": "Globex"})
    assert brands.list()["pagination"]["items"] == 2


def test_page_beyond_last_is_empty_with_total(brands):
    for name in ("A", "B", "C"):
        brands.create({"name": name})
    result = brands.list(page=5, limit=2)
    assert result["data"] == []
    assert result["pagination"] == {"items": 3, "page": 5, "limit": 2, "totalPages": 2}


def test_search_is_case_insensitive_substring(brands):
    brands.create({"name": "Northwind", "description": "Outdoor gear"})
    brands.create({"name": "Contoso"})
    result = brands.list(search="OUTDOOR")
    assert [b["name"] for b in result["data"]] == ["Northwind"]


def test_search_escapes_regex(brands):
    brands.create({"name": "A+B"})
    brands.create({"name": "AAB"})
    assert [b["name"] for b in brands.list(search="a+b")["data"]] == ["A+B"]


def test_sort_and_field_selection(brands):
    brands.create({"name": "Beta", "order": 2})
    brands.create({"name": "Alpha", "order": 1})
    result = brands.list(fields="name", sort_by="name", sort_order="desc")
    assert [b["name"] for b in result["data"]] == ["Beta", "Alpha"]
    assert set(result["data"][0]) == {"_id", "name"}


def test_invalid_fields_sort_and_filter_are_rejected(brands):
    with pytest.raises(BadRequestError):
        brands.list(fields="name,password")
    with pytest.raises(BadRequestError):
        brands.list(sort_by="password")
    with pytest.raises(BadRequestError):
        brands.list(filters={"city": "Dhaka"})


def test_boolean_filter(brands):
    brands.create({"name": "Acme", "featured": True})
    brands.create({"name": "Globex", "featured": False})
    result = brands.list(filters={"featured": True})
    assert [b["name"] for b in result["data"]] == ["Acme"]


def test_get_by_id_not_found(brands):
    with pytest.raises(NotFoundError):
        brands.get_by_id("not-an-id")
    with pytest.raises(NotFoundError):
        brands.get_by_id(str(ObjectId()))


def test_update_invalidates_detail_cache(brands):
    brand_id = brands.create({"name": "Acme"})["_id"]
    assert brands.get_by_id(brand_id)["name"] == "Acme"

    updated = brands.update(brand_id, {"name": "Acme Global"})

    assert updated["slug"] == "acme-global"
    assert brands.get_by_id(brand_id)["name"] == "Acme Global"


def test_update_checks_uniqueness_against_others_only(brands):
    acme = brands.create({"name": "Acme"})["_id"]
    brands.create({"name": "Globex"})

    brands.update(acme, {"name": "Acme", "description": "same name"})
    with pytest.raises(ConflictError):
        brands.update(acme, {"name": "Globex"})


def test_update_requires_fields_and_existing_record(brands):
    brand_id = brands.create({"name": "Acme"})["_id"]
    with pytest.raises(BadRequestError):
        brands.update(brand_id, {})
    with pytest.raises(NotFoundError):
        brands.update(str(ObjectId()), {"name": "X"})


def test_update_status(brands):
    brand_id = brands.create({"name": "Acme"})["_id"]
    assert brands.update_status(brand_id, False)["is_active"] is False


def test_delete(brands):
    brand_id = brands.create({"name": "Acme"})["_id"]
    brands.get_by_id(brand_id)

    assert brands.delete(brand_id) == {"_id": brand_id}

    with pytest.raises(NotFoundError):
        brands.get_by_id(brand_id)
    with pytest.raises(NotFoundError):
        brands.delete(brand_id)


def test_category_parent_must_exist(db, cache):
    categories = CategoryService(db, cache)
    with pytest.raises(NotFoundError):
        categories.create({"name": "Shirts", "parent_id": str(ObjectId())})
    with pytest.raises(BadRequestError):
        categories.create({"name": "Shirts", "parent_id": "bogus"})

    parent = categories.create({"name": "Clothing"})["_id"]
    child = categories.create({"name": "Shirts", "parent_id": parent})["_id"]
    assert categories.list(filters={"parent_id": parent})["data"][0]["_id"] == child

    with pytest.raises(BadRequestError):
        categories.update(parent, {"parent_id": parent})


def test_store_filters(db, cache):
    stores = StoreService(db, cache)
    stores.create({"name": "Gulshan", "city": "Dhaka", "country": "Bangladesh"})
    stores.create({"name": "Agrabad", "city": "Chattogram", "country": "Bangladesh"})
    assert [s["name"] for s in stores.list(filters={"city": "Dhaka"})["data"]] == ["Gulshan"]


def _coupon(coupons, **overrides):
    data = {
        "name": "Launch",
        "description": "Launch discount",
        "code": "launch10",
        "discount_type": "percentage",
        "discount_value": 10,
        "expiration_date": datetime.now(timezone.utc) + timedelta(days=7),
        "minimum_purchase_amount": 50,
    }
    data.update(overrides)
    return coupons.create(data)["_id"]


def test_coupon_code_is_unique_and_upper_cased(db, cache):
    coupons = CouponService(db, cache)
    coupon_id = _coupon(coupons)
    assert coupons.get_by_id(coupon_id)["code"] == "LAUNCH10"
    with pytest.raises(ConflictError):
        _coupon(coupons, name="Other", code="LAUNCH10")


def test_coupon_redeem(db, cache):
    coupons = CouponService(db, cache)
    coupon_id = _coupon(coupons)
    _coupon(coupons, code="flat500", discount_type="fixed_amount", discount_value=500, minimum_purchase_amount=0)

    assert coupons.redeem("launch10", 200) == (ObjectId(coupon_id), 20.0)
    # fixed discounts never exceed the subtotal
    assert coupons.redeem("FLAT500", 120)[1] == 120
    with pytest.raises(BadRequestError):
        coupons.redeem("launch10", 20)
    with pytest.raises(BadRequestError):
        coupons.redeem("missing", 200)


def test_expired_or_inactive_coupon(db, cache):
    coupons = CouponService(db, cache)
    _coupon(coupons, code="old", expiration_date=datetime.now(timezone.utc) - timedelta(days=1))
    coupon_id = _coupon(coupons, code="off")
    coupons.update_status(coupon_id, False)

    with pytest.raises(BadRequestError, match="expired"):
        coupons.redeem("old", 200)
    with pytest.raises(BadRequestError, match="Invalid"):
        coupons.redeem("off", 200)


def test_brand_rename_refreshes_embedded_product_names(brands, make_product, brand_id, db, cache):
    products = ProductService(db, cache)
    product_id = make_product()
    assert products.get_by_id(product_id)["brand"]["name"] == "Acme"
    assert products.list()["data"][0]["brand"]["name"] == "Acme"

    brands.update(brand_id, {"name": "Acme Apparel"})

    assert products.get_by_id(product_id)["brand"]["slug"] == "acme-apparel"
    assert products.list()["data"][0]["brand"]["name"] == "Acme Apparel"
