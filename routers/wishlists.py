from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_wishlist_service
from helpers import envelope
from schemas import WishlistItem
from services.wishlist import WishlistService

router = APIRouter(prefix="/wishlists", tags=["wishlists"])


@router.get("")
def list_wishlists(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    fields: Optional[str] = Query(None),
    includeProducts: bool = False,
    service: WishlistService = Depends(get_wishlist_service),
):
    result = service.list_all(page, limit, fields, includeProducts)
    return envelope(200, "Wishlists retrieved successfully", result)


@router.get("/{user_id}")
def get_wishlist(
    user_id: str,
    fields: Optional[str] = Query(None),
    includeProducts: bool = False,
    service: WishlistService = Depends(get_wishlist_service),
):
    wishlist = service.get_or_create(user_id, fields, includeProducts)
    return envelope(200, "Wishlist retrieved successfully", {"data": wishlist})


@router.post("/{user_id}/items")
def add_wishlist_item(user_id: str, payload: WishlistItem, service: WishlistService = Depends(get_wishlist_service)):
    wishlist = service.add_item(user_id, payload.product)
    return envelope(200, "Item added to wishlist successfully", {"data": wishlist})


@router.get("/{user_id}/items/{item_id}")
def get_wishlist_item(user_id: str, item_id: str, service: WishlistService = Depends(get_wishlist_service)):
    return envelope(200, "Wishlist item retrieved successfully", {"data": service.get_item(user_id, item_id)})


@router.delete("/{user_id}/items/{item_id}")
def remove_wishlist_item(user_id: str, item_id: str, service: WishlistService = Depends(get_wishlist_service)):
    wishlist = service.remove_item(user_id, item_id)
    return envelope(200, "Item removed from wishlist successfully", {"data": wishlist})


@router.delete("/{user_id}")
def clear_wishlist(user_id: str, service: WishlistService = Depends(get_wishlist_service)):
    return envelope(200, "Wishlist cleared successfully", service.clear(user_id))
