"""
FastAPI dependency providers.

Routes never touch the module-level Mongo handle or cache directly; tests swap
both through ``app.dependency_overrides[get_database]`` / ``[get_cache]``.
"""

from typing import Optional

from fastapi import Depends, Header
from pymongo.database import Database

from cache import CacheClient, cache_client
from database import get_db
from errors import UnauthorizedError
from services.cart import CartService
from services.catalog import BrandService, CategoryService, CouponService, StoreService
from services.orders import OrderService
from services.products import ProductService
from services.promotions import CampaignService, OfferService
from services.wishlist import WishlistService


def get_database() -> Database:
    return get_db()


def get_cache() -> CacheClient:
    return cache_client


def current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """Caller identity for owner-scoped actions (reviews), set by the upstream auth gateway."""
    if not x_user_id:
        raise UnauthorizedError("Missing X-User-Id header")
    return x_user_id


def _provider(service_class):
    def provide(database: Database = Depends(get_database), cache: CacheClient = Depends(get_cache)):
        return service_class(database, cache)

    provide.__name__ = f"get_{service_class.__name__}"
    return provide


get_product_service = _provider(ProductService)
get_brand_service = _provider(BrandService)
get_category_service = _provider(CategoryService)
get_store_service = _provider(StoreService)
get_coupon_service = _provider(CouponService)
get_campaign_service = _provider(CampaignService)
get_offer_service = _provider(OfferService)
get_cart_service = _provider(CartService)
get_wishlist_service = _provider(WishlistService)
get_order_service = _provider(OrderService)
