from routers import (
    brands,
    campaigns,
    carts,
    categories,
    coupons,
    offers,
    orders,
    products,
    stores,
    wishlists,
)

ALL_ROUTERS = [
    products.router,
    brands.router,
    categories.router,
    stores.router,
    coupons.router,
    campaigns.router,
    offers.router,
    carts.router,
    wishlists.router,
    orders.router,
]
