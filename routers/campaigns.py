from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_campaign_service
from helpers import envelope
from routers.params import ListQuery
from schemas import Campaign, CampaignUpdate, DiscountType, StatusUpdate
from services.promotions import CampaignService

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.get("")
def list_campaigns(
    query: ListQuery = Depends(),
    is_active: Optional[bool] = None,
    discount_type: Optional[DiscountType] = None,
    free_shipping: Optional[bool] = None,
    includeProducts: bool = False,
    service: CampaignService = Depends(get_campaign_service),
):
    result = service.list(
        **query.as_kwargs(),
        filters={"is_active": is_active, "discount_type": discount_type, "free_shipping": free_shipping},
        expand={"products": includeProducts},
    )
    return envelope(200, "Campaigns retrieved successfully", result)


@router.get("/{campaign_id}")
def get_campaign(
    campaign_id: str,
    fields: Optional[str] = Query(None),
    includeProducts: bool = False,
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = service.get_by_id(campaign_id, fields, {"products": includeProducts})
    return envelope(200, "Campaign retrieved successfully", {"data": campaign})


@router.post("", status_code=201)
def create_campaign(payload: Campaign, service: CampaignService = Depends(get_campaign_service)):
    result = service.create(payload.model_dump(exclude_none=True))
    return envelope(201, "Campaign created successfully", {"data": result})


@router.put("/{campaign_id}")
def update_campaign(campaign_id: str, payload: CampaignUpdate, service: CampaignService = Depends(get_campaign_service)):
    campaign = service.update(campaign_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Campaign updated successfully", {"data": campaign})


@router.patch("/{campaign_id}/status")
def update_campaign_status(
    campaign_id: str,
    payload: StatusUpdate,
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = service.update_status(campaign_id, payload.is_active)
    return envelope(200, "Campaign status updated successfully", {"data": campaign})


@router.delete("/{campaign_id}")
def delete_campaign(campaign_id: str, service: CampaignService = Depends(get_campaign_service)):
    return envelope(200, "Campaign deleted successfully", {"data": service.delete(campaign_id)})
