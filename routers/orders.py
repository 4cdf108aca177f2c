from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_order_service
from helpers import envelope
from routers.params import ListQuery
from schemas import CheckoutRequest, Order, OrderStatus, OrderStatusUpdate, OrderUpdate, PaymentMethod
from services.orders import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("")
def list_orders(
    query: ListQuery = Depends(),
    user_id: Optional[str] = None,
    order_status: Optional[OrderStatus] = None,
    payment_method: Optional[PaymentMethod] = None,
    is_active: Optional[bool] = None,
    is_returned: Optional[bool] = None,
    service: OrderService = Depends(get_order_service),
):
    result = service.list(
        **query.as_kwargs(),
        filters={
            "user_id": user_id,
            "order_status": order_status,
            "payment_method": payment_method,
            "is_active": is_active,
            "is_returned": is_returned,
        },
    )
    return envelope(200, "Orders retrieved successfully", result)


@router.get("/{order_id}")
def get_order(order_id: str, fields: Optional[str] = Query(None), service: OrderService = Depends(get_order_service)):
    """Fetch an order by ObjectId or by its sequential number."""
    return envelope(200, "Order retrieved successfully", {"data": service.get_by_id(order_id, fields)})


@router.post("", status_code=201)
def create_order(payload: Order, service: OrderService = Depends(get_order_service)):
    result = service.create(payload.model_dump())
    return envelope(201, "Order created successfully", {"data": result})


@router.post("/checkout/{user_id}", status_code=201)
def checkout(user_id: str, payload: CheckoutRequest, service: OrderService = Depends(get_order_service)):
    result = service.checkout(user_id, payload.model_dump())
    return envelope(201, "Order placed successfully", {"data": result})


@router.put("/{order_id}")
def update_order(order_id: str, payload: OrderUpdate, service: OrderService = Depends(get_order_service)):
    order = service.update(order_id, payload.model_dump(exclude_unset=True))
    return envelope(200, "Order updated successfully", {"data": order})


@router.patch("/{order_id}/status")
def update_order_status(order_id: str, payload: OrderStatusUpdate, service: OrderService = Depends(get_order_service)):
    order = service.update_order_status(order_id, payload.order_status, payload.reason)
    return envelope(200, "Order status updated successfully", {"data": order})


@router.delete("/{order_id}")
def delete_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return envelope(200, "Order deleted successfully", {"data": service.delete(order_id)})
