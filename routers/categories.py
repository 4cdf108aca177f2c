from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_category_service
from helpers import envelope
from routers.params import ListQuery
from schemas import Category, CategoryUpdate, StatusUpdate
from services.catalog import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
def list_categories(
    query: ListQuery = Depends(),
    featured: Optional[bool] = None,
    is_active: Optional[bool] = None,
    parent_id: Optional[str] = None,
    service: CategoryService = Depends(get_category_service),
):
    result = service.list(
        **query.as_kwargs(),
        filters={"featured": featured, "is_active": is_active, "parent_id": parent_id},
    )
    return envelope(200, "Categories retrieved successfully", result)


@router.get("/{category_id}")
def get_category(
    category_id: str,
    fields: Optional[str] = Query(None),
    service: CategoryService = Depends(get_category_service),
):
    return envelope(200, "Category retrieved successfully", {"data": service.get_by_id(category_id, fields)})


@router.post("", status_code=201)
def create_category(payload: Category, service: CategoryService = Depends(get_category_service)):
    result = service.create(payload.model_dump(exclude_none=True))
    return envelope(201, "Category created successfully", {"data": result})


@router.put("/{category_id}")
def update_category(category_id: str, payload: CategoryUpdate, service: CategoryService = Depends(get_category_service)):
    category = service.update(category_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Category updated successfully", {"data": category})


@router.patch("/{category_id}/status")
def update_category_status(
    category_id: str,
    payload: StatusUpdate,
    service: CategoryService = Depends(get_category_service),
):
    category = service.update_status(category_id, payload.is_active)
    return envelope(200, "Category status updated successfully", {"data": category})


@router.delete("/{category_id}")
def delete_category(category_id: str, service: CategoryService = Depends(get_category_service)):
    return envelope(200, "Category deleted successfully", {"data": service.delete(category_id)})
