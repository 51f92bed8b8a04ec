# storefront/routers/orders.py
from typing import Any

from fastapi import APIRouter, Body, Depends, status

from storefront.deps import get_order_service
from storefront.schemas.order import Order, PriorityUpdate, StatusUpdate
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


# -------- Reads --------


@router.get("", response_model=list[Order])
def list_all_orders(service: OrderService = Depends(get_order_service)):
    """
    List all orders (admin screens; the backend enforces the role).
    """
    return service.list_all_orders()


@router.get("/me", response_model=list[Order])
def list_my_orders(service: OrderService = Depends(get_order_service)):
    """
    List the signed-in identity's orders.
    """
    return service.list_my_orders()


@router.get("/user/{user_id}", response_model=list[Order])
def list_user_orders(
    user_id: str,
    service: OrderService = Depends(get_order_service),
):
    """
    Orders of one user. Non-admins may only ask for their own.
    """
    return service.list_user_orders(user_id)


@router.get("/status/{order_status}", response_model=list[Order])
def list_orders_by_status(
    order_status: str,
    service: OrderService = Depends(get_order_service),
):
    return service.list_orders_by_status(order_status)


@router.get("/priority/{priority}", response_model=list[Order])
def list_orders_by_priority(
    priority: str,
    service: OrderService = Depends(get_order_service),
):
    return service.list_orders_by_priority(priority)


@router.get("/{order_id}", response_model=Order)
def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    return service.get_order(order_id)


# -------- Mutations --------


@router.post("", response_model=Order, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: dict[str, Any] = Body(...),
    service: OrderService = Depends(get_order_service),
):
    return service.create_order(payload)


@router.patch("/{order_id}", response_model=Order)
@router.put("/{order_id}", response_model=Order)
def update_order(
    order_id: str,
    payload: dict[str, Any] = Body(...),
    service: OrderService = Depends(get_order_service),
):
    """
    Partial update.

    System fields (id, user_id, shipped_at, delivered_at, ...) are dropped;
    status changes must follow:

      pending    -> confirmed, cancelled

      confirmed  -> processing, cancelled

      processing -> shipped, cancelled

      shipped    -> delivered, cancelled
    """
    return service.update_order(order_id, payload)


@router.patch("/{order_id}/status", response_model=Order)
def update_order_status(
    order_id: str,
    payload: StatusUpdate,
    service: OrderService = Depends(get_order_service),
):
    return service.update_status(order_id, payload.status)


@router.patch("/{order_id}/priority", response_model=Order)
def update_order_priority(
    order_id: str,
    payload: PriorityUpdate,
    service: OrderService = Depends(get_order_service),
):
    return service.update_priority(order_id, payload.priority)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    service.delete_order(order_id)
