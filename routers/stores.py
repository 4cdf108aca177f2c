from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_store_service
from helpers import envelope
from routers.params import ListQuery
from schemas import StatusUpdate, Store, StoreUpdate
from services.catalog import StoreService

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("")
def list_stores(
    query: ListQuery = Depends(),
    city: Optional[str] = None,
    division: Optional[str] = None,
    country: Optional[str] = None,
    is_active: Optional[bool] = None,
    service: StoreService = Depends(get_store_service),
):
    result = service.list(
        **query.as_kwargs(),
        filters={"city": city, "division": division, "country": country, "is_active": is_active},
    )
    return envelope(200, "Stores retrieved successfully", result)


@router.get("/{store_id}")
def get_store(store_id: str, fields: Optional[str] = Query(None), service: StoreService = Depends(get_store_service)):
    return envelope(200, "Store retrieved successfully", {"data": service.get_by_id(store_id, fields)})


@router.post("", status_code=201)
def create_store(payload: Store, service: StoreService = Depends(get_store_service)):
    result = service.create(payload.model_dump(exclude_none=True))
    return envelope(201, "Store created successfully", {"data": result})


@router.put("/{store_id}")
def update_store(store_id: str, payload: StoreUpdate, service: StoreService = Depends(get_store_service)):
    store = service.update(store_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Store updated successfully", {"data": store})


@router.patch("/{store_id}/status")
def update_store_status(store_id: str, payload: StatusUpdate, service: StoreService = Depends(get_store_service)):
    store = service.update_status(store_id, payload.is_active)
    return envelope(200, "Store status updated successfully", {"data": store})


@router.delete("/{store_id}")
def delete_store(store_id: str, service: StoreService = Depends(get_store_service)):
    return envelope(200, "Store deleted successfully", {"data": service.delete(store_id)})
