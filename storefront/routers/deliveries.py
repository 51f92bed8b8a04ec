# storefront/routers/deliveries.py
from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status

from storefront.deps import get_delivery_service
from storefront.schemas.order import (
    AssignDriverRequest,
    AssignmentResult,
    Delivery,
    DeliverRequest,
    DeliveryLocation,
    FailRequest,
    StatusUpdate,
)
from storefront.services.delivery_service import DeliveryService

router = APIRouter(prefix="/deliveries", tags=["Deliveries"])
drivers_router = APIRouter(prefix="/drivers", tags=["Drivers"])


# -------- Reads --------


@router.get("", response_model=list[Delivery])
def list_deliveries(service: DeliveryService = Depends(get_delivery_service)):
    return service.list_deliveries()


@router.get("/user/{user_id}", response_model=list[Delivery])
def list_user_deliveries(
    user_id: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.list_for_user(user_id)


@router.get("/status/{delivery_status}", response_model=list[Delivery])
def list_deliveries_by_status(
    delivery_status: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.list_by_status(delivery_status)


@router.get("/priority/{priority}", response_model=list[Delivery])
def list_deliveries_by_priority(
    priority: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.list_by_priority(priority)


@router.get("/{delivery_id}", response_model=Delivery)
def get_delivery(
    delivery_id: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.get_delivery(delivery_id)


@router.get("/{delivery_id}/route")
def get_delivery_route(
    delivery_id: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    """Route payload from the backend, unmodified."""
    return service.get_route(delivery_id)


# -------- Mutations --------


@router.post("", response_model=Delivery, status_code=status.HTTP_201_CREATED)
def create_delivery(
    payload: dict[str, Any] = Body(...),
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.create_delivery(payload)


@router.patch("/{delivery_id}", response_model=Delivery)
@router.put("/{delivery_id}", response_model=Delivery)
def update_delivery(
    delivery_id: str,
    payload: dict[str, Any] = Body(...),
    service: DeliveryService = Depends(get_delivery_service),
):
    """
    Partial update; a move to 'failed' needs `failure_reason`.
    """
    return service.update_delivery(delivery_id, payload)


@router.patch("/{delivery_id}/status", response_model=Delivery)
def update_delivery_status(
    delivery_id: str,
    payload: StatusUpdate,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.update_delivery(delivery_id, {"status": payload.status})


@router.delete("/{delivery_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_delivery(
    delivery_id: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    service.delete_delivery(delivery_id)


# -------- Driver lifecycle --------


@router.put("/{delivery_id}/assign", response_model=AssignmentResult)
def assign_driver(
    delivery_id: str,
    payload: AssignDriverRequest,
    service: DeliveryService = Depends(get_delivery_service),
):
    """
    Assign a driver. Reassigning past 'pending' succeeds with a warning.
    """
    return service.assign_driver(delivery_id, payload.driver_id)


@router.put("/{delivery_id}/pickup", response_model=Delivery)
def mark_picked_up(
    delivery_id: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.mark_picked_up(delivery_id)


@router.put("/{delivery_id}/transit", response_model=Delivery)
def mark_in_transit(
    delivery_id: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.mark_in_transit(delivery_id)


@router.put("/{delivery_id}/deliver", response_model=Delivery)
def mark_delivered(
    delivery_id: str,
    payload: DeliverRequest | None = None,
    service: DeliveryService = Depends(get_delivery_service),
):
    note = payload.delivery_note if payload else None
    return service.mark_delivered(delivery_id, note)


@router.put("/{delivery_id}/fail", response_model=Delivery)
def mark_failed(
    delivery_id: str,
    payload: FailRequest,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.mark_failed(delivery_id, payload.failure_reason)


@router.put("/{delivery_id}/location", response_model=Delivery)
def update_location(
    delivery_id: str,
    payload: DeliveryLocation,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.update_location(delivery_id, payload.latitude, payload.longitude)


# -------- Driver views --------


@drivers_router.get("/{driver_id}/deliveries", response_model=list[Delivery])
def list_driver_deliveries(
    driver_id: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    """
    All deliveries of a driver. Drivers may only read their own.
    """
    return service.list_for_driver(driver_id)


@drivers_router.get("/{driver_id}/deliveries/active", response_model=list[Delivery])
def list_active_deliveries(
    driver_id: str,
    service: DeliveryService = Depends(get_delivery_service),
):
    return service.list_active_for_driver(driver_id)


@drivers_router.get("/{driver_id}/deliveries/completed", response_model=list[Delivery])
def list_completed_deliveries(
    driver_id: str,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    service: DeliveryService = Depends(get_delivery_service),
):
    """
    Delivered deliveries, optionally bounded by delivery date (inclusive).
    """
    return service.list_completed_for_driver(driver_id, date_from, date_to)
