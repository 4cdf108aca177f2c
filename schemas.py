"""
Database Schemas for the E‑Commerce App

Each Pydantic model represents a collection in MongoDB. The collection name is the
lowercase of the class name (e.g., Product -> "product"). The *Update models carry
the same fields, all optional, for partial updates.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

DiscountType = Literal["percentage", "fixed_amount"]
PaymentMethod = Literal["bkash", "rocket", "nagad", "credit_card", "debit_card", "cash_on_delivery"]
OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled", "returned"]
RefundStatus = Literal["pending", "processed", "failed"]

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class StatusUpdate(BaseModel):
    is_active: bool


# Products

class Inventory(BaseModel):
    quantity_available: int = Field(0, ge=0)
    quantity_reserved: int = Field(0, ge=0)
    quantity_damaged: int = Field(0, ge=0)


class InventoryPatch(BaseModel):
    quantity_available: Optional[int] = Field(None, ge=0)
    quantity_reserved: Optional[int] = Field(None, ge=0)
    quantity_damaged: Optional[int] = Field(None, ge=0)


class Variant(BaseModel):
    sku: str = Field(..., min_length=1, description="Globally unique stock keeping unit")
    attributes: Dict[str, str] = Field(default_factory=dict)
    price: float = Field(..., gt=0, description="Price")
    sale_price: Optional[float] = Field(None, gt=0)
    images: List[str] = Field(default_factory=list)
    inventory: Inventory = Field(default_factory=Inventory)


class VariantUpdate(BaseModel):
    sku: Optional[str] = Field(None, min_length=1)
    attributes: Optional[Dict[str, str]] = None
    price: Optional[float] = Field(None, gt=0)
    sale_price: Optional[float] = Field(None, gt=0)
    images: Optional[List[str]] = None
    inventory: Optional[InventoryPatch] = None


class InventoryUpdate(BaseModel):
    variantId: str = Field(..., min_length=1)
    inventory: InventoryPatch


class Review(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1)


class FAQ(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class FAQUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=1)
    answer: Optional[str] = Field(None, min_length=1)


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    name: str = Field(..., min_length=1, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    category: str = Field(..., min_length=1, description="Category id")
    brand: str = Field(..., min_length=1, description="Brand id")
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    featured: bool = False
    is_active: bool = True
    variants: List[Variant] = Field(..., min_length=1)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    featured: Optional[bool] = None
    is_active: Optional[bool] = None


class LinkCampaigns(BaseModel):
    campaigns: List[str] = Field(..., min_length=1)


class LinkOffers(BaseModel):
    offers: List[str] = Field(..., min_length=1)


# Catalog

class Brand(BaseModel):
    """
    Brands collection schema
    Collection name: "brand"
    """
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    logo: Optional[str] = None
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    featured: bool = False
    order: int = 0
    website: Optional[str] = None
    is_active: bool = True


class BrandUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    logo: Optional[str] = None
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    featured: Optional[bool] = None
    order: Optional[int] = None
    website: Optional[str] = None
    is_active: Optional[bool] = None


class Category(BaseModel):
    """
    Categories collection schema
    Collection name: "category"
    """
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[str] = None
    featured: bool = False
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[str] = None
    featured: Optional[bool] = None
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    order: Optional[int] = None
    is_active: Optional[bool] = None


class Store(BaseModel):
    """
    Stores collection schema
    Collection name: "store"
    """
    name: str = Field(..., min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    image: Optional[str] = None
    description: Optional[str] = None
    city: str
    country: str
    division: Optional[str] = None
    zip_code: Optional[str] = None
    map_location: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    working_hours: Optional[str] = None
    is_active: bool = True


class StoreUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    image: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    division: Optional[str] = None
    zip_code: Optional[str] = None
    map_location: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    working_hours: Optional[str] = None
    is_active: Optional[bool] = None


# Promotions

class Coupon(BaseModel):
    """
    Coupons collection schema
    Collection name: "coupon"
    """
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, description="Stored upper-case")
    discount_type: DiscountType
    discount_value: float = Field(..., ge=0)
    usage_limit_per_user: int = Field(1, ge=1)
    total_usage_limit: int = Field(0, ge=0)
    expiration_date: datetime
    minimum_purchase_amount: float = Field(0, ge=0)
    is_active: bool = True


class CouponUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    code: Optional[str] = Field(None, min_length=1)
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = Field(None, ge=0)
    usage_limit_per_user: Optional[int] = Field(None, ge=1)
    total_usage_limit: Optional[int] = Field(None, ge=0)
    expiration_date: Optional[datetime] = None
    minimum_purchase_amount: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None


class AppliesTo(BaseModel):
    all_products: bool = False
    productsIds: List[str] = Field(default_factory=list)
    categoryIds: List[str] = Field(default_factory=list)
    brandIds: List[str] = Field(default_factory=list)


class AppliesToUpdate(BaseModel):
    all_products: Optional[bool] = None
    productsIds: Optional[List[str]] = None
    categoryIds: Optional[List[str]] = None
    brandIds: Optional[List[str]] = None


class _Window(BaseModel):
    @model_validator(mode="after")
    def _check_window(self):
        start, end = getattr(self, "start_date", None), getattr(self, "end_date", None)
        if start and end and end < start:
            raise ValueError("end_date must not be before start_date")
        return self


class Campaign(_Window):
    """
    Campaigns collection schema
    Collection name: "campaign"
    """
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    start_date: datetime
    end_date: datetime
    discount_type: DiscountType
    discount_value: float = Field(..., ge=0)
    applies_to: AppliesTo = Field(default_factory=AppliesTo)
    minimum_purchase_amount: float = Field(0, ge=0)
    free_shipping: bool = False
    usage_limit: int = Field(0, ge=0)
    is_active: bool = True


class CampaignUpdate(_Window):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = Field(None, ge=0)
    applies_to: Optional[AppliesToUpdate] = None
    minimum_purchase_amount: Optional[float] = Field(None, ge=0)
    free_shipping: Optional[bool] = None
    usage_limit: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class Offer(_Window):
    """
    Offers collection schema
    Collection name: "offer"
    """
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    start_date: datetime
    end_date: datetime
    discount_type: DiscountType
    discount_value: float = Field(..., ge=0)
    applicable_products: List[str] = Field(default_factory=list)
    free_shipping: bool = False
    is_active: bool = True


class OfferUpdate(_Window):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = Field(None, ge=0)
    applicable_products: Optional[List[str]] = None
    free_shipping: Optional[bool] = None
    is_active: Optional[bool] = None


# Cart / Wishlist

class CartItem(BaseModel):
    product: str
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class WishlistItem(BaseModel):
    product: str


# Orders

class ShippingAddress(BaseModel):
    street: str
    phone: str
    email: EmailStr
    city: str
    state: str
    zip_code: str
    country: str


class OrderItem(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at purchase time")


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    user_id: str
    coupon: Optional[str] = None
    order_items: List[OrderItem] = Field(..., min_length=1)
    payment_method: PaymentMethod
    transaction_id: str = Field(..., min_length=1)
    shipping_address: ShippingAddress


class OrderUpdate(BaseModel):
    tracking_number: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = None
    refund_amount: Optional[float] = Field(None, ge=0)
    refund_status: Optional[RefundStatus] = None
    is_active: Optional[bool] = None


class OrderStatusUpdate(BaseModel):
    order_status: OrderStatus
    reason: Optional[str] = None


class CheckoutRequest(BaseModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    transaction_id: str = Field(..., min_length=1)
    coupon: Optional[str] = None
