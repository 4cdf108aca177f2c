from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from errors import BadRequestError, ConflictError, NotFoundError
from services.cart import CartService
from services.catalog import CouponService
from services.orders import OrderService

USER = str(ObjectId())

ADDRESS = {
    "street": "House 12, Road 5",
    "phone": "+8801700000000",
    "email": "buyer@example.com",
    "city": "Dhaka",
    "state": "Dhaka",
    "zip_code": "1212",
    "country": "Bangladesh",
}


@pytest.fixture
def orders(db, cache):
    return OrderService(db, cache)


def order_data(product_id, transaction_id="TX-1", **extra):
    data = {
        "user_id": USER,
        "order_items": [{"product_id": product_id, "quantity": 2, "price": 50.0}],
        "payment_method": "bkash",
        "transaction_id": transaction_id,
        "shipping_address": ADDRESS,
    }
    data.update(extra)
    return data


def test_ids_are_sequential(orders, make_product):
    product_id = make_product()
    first = orders.create(order_data(product_id, "TX-1"))
    second = orders.create(order_data(product_id, "TX-2"))
    assert second["id"] == first["id"] + 1


def test_create_prices_and_initialises_order(orders, make_product):
    result = orders.create(order_data(make_product()))
    order = orders.get_by_id(result["_id"])

    assert order["total_amount"] == 100.0
    assert order["order_status"] == "pending"
    assert order["is_returned"] is False
    assert order["user_id"] == USER


def test_lookup_by_number_or_object_id(orders, make_product):
    result = orders.create(order_data(make_product()))
    assert orders.get_by_id(str(result["id"]))["_id"] == result["_id"]
    assert orders.get_by_id(result["_id"])["id"] == result["id"]
    with pytest.raises(NotFoundError):
        orders.get_by_id("999")
    with pytest.raises(NotFoundError):
        orders.get_by_id("abc")


def test_transaction_id_is_unique(orders, make_product, db):
    product_id = make_product()
    orders.create(order_data(product_id))
    with pytest.raises(ConflictError):
        orders.create(order_data(product_id))
    assert db["order"].count_documents({}) == 1


def test_unknown_product_is_rejected(orders):
    with pytest.raises(NotFoundError):
        orders.create(order_data(str(ObjectId())))
    with pytest.raises(BadRequestError):
        orders.create(order_data("bad-id"))


def test_coupon_discount(orders, make_product, db, cache):
    CouponService(db, cache).create({
        "name": "Ten",
        "description": "10 off",
        "code": "TEN",
        "discount_type": "percentage",
        "discount_value": 10,
        "expiration_date": datetime.now(timezone.utc) + timedelta(days=1),
    })

    result = orders.create(order_data(make_product(), coupon="ten"))
    order = orders.get_by_id(result["_id"])

    assert order["discount"] == 10.0
    assert order["total_amount"] == 90.0
    with pytest.raises(BadRequestError):
        orders.create(order_data(make_product(), "TX-2", coupon="NOPE"))


def test_status_lifecycle(orders, make_product):
    order_id = orders.create(order_data(make_product()))["_id"]

    with pytest.raises(BadRequestError):
        orders.update_order_status(order_id, "delivered")

    orders.update_order_status(order_id, "processing")
    shipped = orders.update_order_status(order_id, "shipped")
    assert "shipped_date" in shipped
    orders.update_order_status(order_id, "delivered")
    returned = orders.update_order_status(order_id, "returned", "Wrong size")

    assert returned["is_returned"] is True
    assert returned["return_reason"] == "Wrong size"
    with pytest.raises(BadRequestError):
        orders.update_order_status(order_id, "cancelled")


def test_cancel_records_reason_and_refreshes_cache(orders, make_product):
    result = orders.create(order_data(make_product()))
    assert orders.get_by_id(str(result["id"]))["order_status"] == "pending"

    orders.update_order_status(result["_id"], "cancelled", "Changed mind")

    order = orders.get_by_id(str(result["id"]))
    assert order["order_status"] == "cancelled"
    assert order["cancellation_reason"] == "Changed mind"


def test_checkout_builds_order_from_cart(orders, make_product, db, cache):
    carts = CartService(db, cache)
    regular = make_product(price=40.0)
    discounted = make_product(price=100.0, sale_price=80.0)
    carts.add_item(USER, regular, 2)
    carts.add_item(USER, discounted, 1)

    result = orders.checkout(USER, {
        "shipping_address": ADDRESS,
        "payment_method": "cash_on_delivery",
        "transaction_id": "TX-CART",
    })

    order = orders.get_by_id(result["_id"])
    assert order["total_amount"] == 160.0
    assert [item["price"] for item in order["order_items"]] == [40.0, 80.0]
    assert carts.get_or_create(USER)["items"] == []


def test_checkout_keeps_items_added_while_ordering(orders, make_product, db, cache, monkeypatch):
    carts = CartService(db, cache)
    ordered, late = make_product(), make_product()
    carts.add_item(USER, ordered, 2)
    place_order = orders.create

    def create_while_shopping(data):
        result = place_order(data)
        carts.add_item(USER, late, 1)
        carts.add_item(USER, ordered, 1)
        return result

    monkeypatch.setattr(orders, "create", create_while_shopping)
    result = orders.checkout(USER, {"shipping_address": ADDRESS, "payment_method": "bkash", "transaction_id": "TX-RACE"})

    assert [item["quantity"] for item in orders.get_by_id(result["_id"])["order_items"]] == [2]
    remaining = {item["product"]: item["quantity"] for item in carts.get_or_create(USER)["items"]}
    assert remaining == {ordered: 1, late: 1}


def test_checkout_requires_items(orders):
    with pytest.raises(BadRequestError, match="Cart is empty"):
        orders.checkout(USER, {"shipping_address": ADDRESS, "payment_method": "bkash", "transaction_id": "T"})


def test_update_only_touches_fulfilment_fields(orders, make_product):
    order_id = orders.create(order_data(make_product()))["_id"]
    order = orders.update(order_id, {"tracking_number": "TRK-9", "refund_status": "pending"})
    assert order["tracking_number"] == "TRK-9"
    assert order["order_items"][0]["quantity"] == 2


def test_list_filters_by_user_and_status(orders, make_product):
    product_id = make_product()
    orders.create(order_data(product_id, "TX-1"))
    orders.create(order_data(product_id, "TX-2", user_id=str(ObjectId())))

    result = orders.list(filters={"user_id": USER, "order_status": "pending"})

    assert result["pagination"]["items"] == 1
    assert result["data"][0]["transaction_id"] == "TX-1"
