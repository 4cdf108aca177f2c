from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_cart_service
from helpers import envelope
from schemas import CartItem, CartItemUpdate
from services.cart import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


@router.get("")
def list_carts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    fields: Optional[str] = Query(None),
    includeProducts: bool = False,
    service: CartService = Depends(get_cart_service),
):
    result = service.list_all(page, limit, fields, includeProducts)
    return envelope(200, "Carts retrieved successfully", result)


@router.get("/{user_id}")
def get_cart(
    user_id: str,
    fields: Optional[str] = Query(None),
    includeProducts: bool = False,
    service: CartService = Depends(get_cart_service),
):
    cart = service.get_or_create(user_id, fields, includeProducts)
    return envelope(200, "Cart retrieved successfully", {"data": cart})


@router.post("/{user_id}/items")
def add_cart_item(user_id: str, payload: CartItem, service: CartService = Depends(get_cart_service)):
    cart = service.add_item(user_id, payload.product, payload.quantity)
    return envelope(200, "Item added to cart successfully", {"data": cart})


@router.put("/{user_id}/items/{item_id}")
def update_cart_item(
    user_id: str,
    item_id: str,
    payload: CartItemUpdate,
    service: CartService = Depends(get_cart_service),
):
    cart = service.update_item(user_id, item_id, payload.quantity)
    return envelope(200, "Cart item updated successfully", {"data": cart})


@router.delete("/{user_id}/items/{item_id}")
def remove_cart_item(user_id: str, item_id: str, service: CartService = Depends(get_cart_service)):
    cart = service.remove_item(user_id, item_id)
    return envelope(200, "Item removed from cart successfully", {"data": cart})


@router.delete("/{user_id}")
def clear_cart(user_id: str, service: CartService = Depends(get_cart_service)):
    return envelope(200, "Cart cleared successfully", service.clear(user_id))
