from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import current_user_id, get_product_service
from helpers import envelope
from routers.params import ListQuery
from schemas import (
    FAQ,
    FAQUpdate,
    InventoryUpdate,
    LinkCampaigns,
    LinkOffers,
    Product,
    ProductUpdate,
    Review,
    ReviewUpdate,
    StatusUpdate,
    Variant,
    VariantUpdate,
)
from services.products import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products(
    query: ListQuery = Depends(),
    category: Optional[str] = None,
    brand: Optional[str] = None,
    featured: Optional[bool] = None,
    is_active: Optional[bool] = None,
    includeCampaigns: bool = False,
    includeOffers: bool = False,
    service: ProductService = Depends(get_product_service),
):
    result = service.list(
        **query.as_kwargs(),
        filters={"category": category, "brand": brand, "featured": featured, "is_active": is_active},
        expand={"campaigns": includeCampaigns, "offers": includeOffers},
    )
    return envelope(200, "Products retrieved successfully", result)


@router.get("/{product_id}")
def get_product(
    product_id: str,
    fields: Optional[str] = Query(None),
    includeCampaigns: bool = False,
    includeOffers: bool = False,
    service: ProductService = Depends(get_product_service),
):
    product = service.get_by_id(product_id, fields, {"campaigns": includeCampaigns, "offers": includeOffers})
    return envelope(200, "Product retrieved successfully", {"data": product})


@router.post("", status_code=201)
def create_product(payload: Product, service: ProductService = Depends(get_product_service)):
    result = service.create(payload.model_dump(exclude_none=True))
    return envelope(201, "Product created successfully", {"data": result})


@router.put("/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, service: ProductService = Depends(get_product_service)):
    product = service.update(product_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Product updated successfully", {"data": product})


@router.patch("/{product_id}/status")
def update_product_status(product_id: str, payload: StatusUpdate, service: ProductService = Depends(get_product_service)):
    product = service.update_status(product_id, payload.is_active)
    return envelope(200, "Product status updated successfully", {"data": product})


@router.delete("/{product_id}")
def delete_product(product_id: str, service: ProductService = Depends(get_product_service)):
    result = service.delete(product_id)
    return envelope(200, "Product deleted successfully", {"data": result})


# Variants

@router.post("/{product_id}/variants", status_code=201)
def add_variant(product_id: str, payload: Variant, service: ProductService = Depends(get_product_service)):
    product = service.add_variant(product_id, payload.model_dump(exclude_none=True))
    return envelope(201, "Variant added successfully", {"data": product})


@router.put("/{product_id}/variants/{variant_id}")
def update_variant(
    product_id: str,
    variant_id: str,
    payload: VariantUpdate,
    service: ProductService = Depends(get_product_service),
):
    product = service.update_variant(product_id, variant_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Variant updated successfully", {"data": product})


@router.delete("/{product_id}/variants/{variant_id}")
def delete_variant(product_id: str, variant_id: str, service: ProductService = Depends(get_product_service)):
    product = service.delete_variant(product_id, variant_id)
    return envelope(200, "Variant deleted successfully", {"data": product})


@router.patch("/{product_id}/inventory")
def update_inventory(product_id: str, payload: InventoryUpdate, service: ProductService = Depends(get_product_service)):
    product = service.update_inventory(
        product_id, payload.variantId, payload.inventory.model_dump(exclude_none=True)
    )
    return envelope(200, "Inventory updated successfully", {"data": product})


# Reviews

@router.post("/{product_id}/reviews", status_code=201)
def add_review(
    product_id: str,
    payload: Review,
    user_id: str = Depends(current_user_id),
    service: ProductService = Depends(get_product_service),
):
    product = service.add_review(product_id, user_id, payload.model_dump())
    return envelope(201, "Review added successfully", {"data": product})


@router.put("/{product_id}/reviews/{review_id}")
def update_review(
    product_id: str,
    review_id: str,
    payload: ReviewUpdate,
    user_id: str = Depends(current_user_id),
    service: ProductService = Depends(get_product_service),
):
    product = service.update_review(product_id, review_id, user_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Review updated successfully", {"data": product})


@router.delete("/{product_id}/reviews/{review_id}")
def delete_review(
    product_id: str,
    review_id: str,
    user_id: str = Depends(current_user_id),
    service: ProductService = Depends(get_product_service),
):
    product = service.delete_review(product_id, review_id, user_id)
    return envelope(200, "Review deleted successfully", {"data": product})


# FAQ

@router.post("/{product_id}/faq", status_code=201)
def add_faq(product_id: str, payload: FAQ, service: ProductService = Depends(get_product_service)):
    product = service.add_faq(product_id, payload.model_dump())
    return envelope(201, "FAQ added successfully", {"data": product})


@router.put("/{product_id}/faq/{faq_id}")
def update_faq(product_id: str, faq_id: str, payload: FAQUpdate, service: ProductService = Depends(get_product_service)):
    product = service.update_faq(product_id, faq_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "FAQ updated successfully", {"data": product})


@router.delete("/{product_id}/faq/{faq_id}")
def delete_faq(product_id: str, faq_id: str, service: ProductService = Depends(get_product_service)):
    product = service.delete_faq(product_id, faq_id)
    return envelope(200, "FAQ deleted successfully", {"data": product})


# Campaign / offer links

@router.post("/{product_id}/campaigns")
def link_campaigns(product_id: str, payload: LinkCampaigns, service: ProductService = Depends(get_product_service)):
    product = service.link_promotions(product_id, "campaign", payload.campaigns)
    return envelope(200, "Campaigns linked successfully", {"data": product})


@router.delete("/{product_id}/campaigns/{campaign_id}")
def unlink_campaign(product_id: str, campaign_id: str, service: ProductService = Depends(get_product_service)):
    product = service.unlink_promotion(product_id, "campaign", campaign_id)
    return envelope(200, "Campaign unlinked successfully", {"data": product})


@router.post("/{product_id}/offers")
def link_offers(product_id: str, payload: LinkOffers, service: ProductService = Depends(get_product_service)):
    product = service.link_promotions(product_id, "offer", payload.offers)
    return envelope(200, "Offers linked successfully", {"data": product})


@router.delete("/{product_id}/offers/{offer_id}")
def unlink_offer(product_id: str, offer_id: str, service: ProductService = Depends(get_product_service)):
    product = service.unlink_promotion(product_id, "offer", offer_id)
    return envelope(200, "Offer unlinked successfully", {"data": product})
