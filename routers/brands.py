from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_brand_service
from helpers import envelope
from routers.params import ListQuery
from schemas import Brand, BrandUpdate, StatusUpdate
from services.catalog import BrandService

router = APIRouter(prefix="/brands", tags=["brands"])


@router.get("")
def list_brands(
    query: ListQuery = Depends(),
    featured: Optional[bool] = None,
    is_active: Optional[bool] = None,
    service: BrandService = Depends(get_brand_service),
):
    result = service.list(**query.as_kwargs(), filters={"featured": featured, "is_active": is_active})
    return envelope(200, "Brands retrieved successfully", result)


@router.get("/{brand_id}")
def get_brand(brand_id: str, fields: Optional[str] = Query(None), service: BrandService = Depends(get_brand_service)):
    return envelope(200, "Brand retrieved successfully", {"data": service.get_by_id(brand_id, fields)})


@router.post("", status_code=201)
def create_brand(payload: Brand, service: BrandService = Depends(get_brand_service)):
    result = service.create(payload.model_dump(exclude_none=True))
    return envelope(201, "Brand created successfully", {"data": result})


@router.put("/{brand_id}")
def update_brand(brand_id: str, payload: BrandUpdate, service: BrandService = Depends(get_brand_service)):
    brand = service.update(brand_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Brand updated successfully", {"data": brand})


@router.patch("/{brand_id}/status")
def update_brand_status(brand_id: str, payload: StatusUpdate, service: BrandService = Depends(get_brand_service)):
    brand = service.update_status(brand_id, payload.is_active)
    return envelope(200, "Brand status updated successfully", {"data": brand})


@router.delete("/{brand_id}")
def delete_brand(brand_id: str, service: BrandService = Depends(get_brand_service)):
    return envelope(200, "Brand deleted successfully", {"data": service.delete(brand_id)})
