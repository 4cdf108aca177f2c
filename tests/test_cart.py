import pytest
from bson import ObjectId

from errors import BadRequestError, NotFoundError
from services.cart import CartService
from services.wishlist import WishlistService

USER = str(ObjectId())


@pytest.fixture
def carts(db, cache):
    return CartService(db, cache)


@pytest.fixture
def wishlists(db, cache):
    return WishlistService(db, cache)


def test_get_or_create_returns_the_same_cart(carts, db):
    first = carts.get_or_create(USER)
    second = carts.get_or_create(USER)

    assert first["items"] == []
    assert first["_id"] == second["_id"]
    assert db["cart"].count_documents({"user": ObjectId(USER)}) == 1


def test_add_same_product_increments_quantity(carts, make_product):
    product_id = make_product()

    carts.add_item(USER, product_id, 2)
    cart = carts.add_item(USER, product_id, 3)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["product"] == product_id
    assert cart["items"][0]["quantity"] == 5


def test_add_distinct_products_appends(carts, make_product):
    p1, p2 = make_product(), make_product()
    carts.add_item(USER, p1, 1)
    cart = carts.add_item(USER, p2, 1)
    assert [item["product"] for item in cart["items"]] == [p1, p2]


def test_add_item_refreshes_cached_cart(carts, make_product):
    product_id = make_product()
    assert carts.get_or_create(USER)["items"] == []
    carts.add_item(USER, product_id, 1)
    assert len(carts.get_or_create(USER)["items"]) == 1


def test_malformed_identifiers_are_bad_requests(carts, make_product):
    product_id = make_product()
    with pytest.raises(BadRequestError):
        carts.add_item("user-1", product_id, 1)
    with pytest.raises(BadRequestError):
        carts.add_item(USER, "product-1", 1)
    with pytest.raises(BadRequestError):
        carts.get_or_create("nope")


def test_unknown_product_is_not_found(carts):
    with pytest.raises(NotFoundError):
        carts.add_item(USER, str(ObjectId()), 1)


def test_update_and_remove_by_item_id(carts, make_product):
    product_id = make_product()
    item_id = carts.add_item(USER, product_id, 1)["items"][0]["_id"]

    assert carts.update_item(USER, item_id, 7)["items"][0]["quantity"] == 7
    assert carts.remove_item(USER, item_id)["items"] == []

    with pytest.raises(NotFoundError, match="Item not found"):
        carts.update_item(USER, item_id, 1)
    with pytest.raises(NotFoundError, match="Cart not found"):
        carts.remove_item(str(ObjectId()), item_id)


def test_clear_is_idempotent(carts, make_product):
    carts.add_item(USER, make_product(), 2)

    carts.clear(USER)
    carts.clear(USER)
    carts.clear(str(ObjectId()))

    assert carts.get_or_create(USER)["items"] == []


def test_list_all_with_products(carts, make_product):
    product_id = make_product(name="Denim")
    carts.add_item(USER, product_id, 1)
    carts.get_or_create(str(ObjectId()))

    result = carts.list_all(page=1, limit=10, include_products=True)

    assert result["pagination"]["items"] == 2
    expanded = [c for c in result["data"] if c["items"]][0]
    assert expanded["items"][0]["product"]["name"] == "Denim"


def test_list_all_is_refreshed_after_mutation(carts, make_product):
    assert carts.list_all()["pagination"]["items"] == 0
    carts.add_item(USER, make_product(), 1)
    assert carts.list_all()["pagination"]["items"] == 1


def test_wishlist_add_is_idempotent(wishlists, make_product):
    product_id = make_product()

    wishlists.add_item(USER, product_id)
    wishlist = wishlists.add_item(USER, product_id)

    assert len(wishlist["items"]) == 1
    assert "timestamp" in wishlist["items"][0]


def test_wishlist_item_lookup_and_removal(wishlists, make_product):
    item_id = wishlists.add_item(USER, make_product())["items"][0]["_id"]

    assert wishlists.get_item(USER, item_id)["_id"] == item_id

    wishlists.remove_item(USER, item_id)
    with pytest.raises(NotFoundError, match="Item not found"):
        wishlists.get_item(USER, item_id)
    with pytest.raises(NotFoundError, match="Wishlist not found"):
        wishlists.get_item(str(ObjectId()), item_id)


def test_wishlist_clear(wishlists, make_product):
    wishlists.add_item(USER, make_product())
    wishlists.clear(USER)
    assert wishlists.get_or_create(USER)["items"] == []
