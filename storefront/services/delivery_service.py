# storefront/services/delivery_service.py
import logging
import time
from datetime import date
from typing import Any, Iterator

from pydantic import ValidationError

from storefront.core.errors import MalformedResponse, MissingFailureReason
from storefront.core.session import SessionContext
from storefront.repositories.resource_client import ResourceClient
from storefront.schemas.common import EntityId
from storefront.schemas.order import (
    AssignmentResult,
    Delivery,
    DeliveryLocation,
    DeliveryStatus,
    Priority,
)
from storefront.services import order_state

logger = logging.getLogger("storefront.deliveries")

RESOURCE = "deliveries"

# Matches the driver dashboard refresh rate.
ACTIVE_POLL_SECONDS = 30.0


def parse_delivery(body: Any) -> Delivery:
    try:
        return Delivery.model_validate(body)
    except ValidationError as e:
        raise MalformedResponse(RESOURCE, body) from e


def parse_deliveries(rows: list[Any]) -> list[Delivery]:
    return [parse_delivery(row) for row in rows]


class DeliveryService:
    """
    Driver-side delivery lifecycle.

    Every status action reads the current record first and checks the
    delivery graph, so an illegal step (e.g. pickup of a delivered
    parcel) is rejected before the action endpoint is called.
    """

    def __init__(self, session: SessionContext, client: ResourceClient):
        self.session = session
        self.client = client

    # -------- Reads --------

    def list_deliveries(self) -> list[Delivery]:
        return parse_deliveries(self.client.list(RESOURCE))

    def get_delivery(self, delivery_id: EntityId) -> Delivery:
        return parse_delivery(self.client.get(RESOURCE, delivery_id))

    def list_for_driver(self, driver_id: EntityId) -> list[Delivery]:
        order_state.ensure_can_read(self.session.identity, driver_id)
        return parse_deliveries(
            self.client.list_at(f"drivers/{driver_id}/deliveries", RESOURCE)
        )

    def list_active_for_driver(self, driver_id: EntityId) -> list[Delivery]:
        """Assigned / picked up / in transit deliveries of a driver."""
        order_state.ensure_can_read(self.session.identity, driver_id)
        rows = self.client.list_at(f"drivers/{driver_id}/deliveries/active", RESOURCE)
        return order_state.active_deliveries(parse_deliveries(rows))

    def list_completed_for_driver(
        self,
        driver_id: EntityId,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Delivery]:
        order_state.ensure_can_read(self.session.identity, driver_id)
        params: dict[str, str] = {}
        if date_from:
            params["from"] = date_from.isoformat()
        if date_to:
            params["to"] = date_to.isoformat()
        rows = self.client.list_at(
            f"drivers/{driver_id}/deliveries/completed",
            RESOURCE,
            params=params or None,
        )
        return order_state.completed_deliveries(parse_deliveries(rows), date_from, date_to)

    def list_for_user(self, user_id: EntityId) -> list[Delivery]:
        order_state.ensure_can_read(self.session.identity, user_id)
        return parse_deliveries(self.client.list_at(f"{RESOURCE}/user/{user_id}", RESOURCE))

    def list_by_status(self, status: DeliveryStatus | str) -> list[Delivery]:
        parsed = order_state.parse_status("delivery", status)
        return parse_deliveries(
            self.client.list_at(f"{RESOURCE}/status/{parsed.value}", RESOURCE)
        )

    def list_by_priority(self, priority: Priority | str) -> list[Delivery]:
        parsed = order_state.parse_priority(priority)
        return parse_deliveries(
            self.client.list_at(f"{RESOURCE}/priority/{parsed.value}", RESOURCE)
        )

    def get_route(self, delivery_id: EntityId) -> Any:
        """Route / directions payload, passed through as-is."""
        return self.client.request("GET", f"{RESOURCE}/{delivery_id}/route")

    def watch_active_for_driver(
        self,
        driver_id: EntityId,
        interval: float = ACTIVE_POLL_SECONDS,
        max_polls: int | None = None,
    ) -> Iterator[list[Delivery]]:
        """
        Poll the driver's active deliveries every `interval` seconds.

        Yields one list per poll; stops after `max_polls` polls when given.
        """
        polls = 0
        while max_polls is None or polls < max_polls:
            if polls:
                time.sleep(interval)
            polls += 1
            yield self.list_active_for_driver(driver_id)

    # -------- Mutations --------

    def create_delivery(self, payload: dict[str, Any]) -> Delivery:
        clean = order_state.sanitize_update("delivery", payload)
        clean.setdefault("status", DeliveryStatus.PENDING.value)
        return parse_delivery(self.client.create(RESOURCE, clean))

    def update_delivery(self, delivery_id: EntityId, payload: dict[str, Any]) -> Delivery:
        """
        Partial update; same rules as orders plus the failure-reason rule.

        Raises:
            InvalidStatus / InvalidPriority / MissingFailureReason /
            InvalidTransition: before dispatch.
        """
        clean = order_state.sanitize_update("delivery", payload)
        if "status" in clean:
            current = self.get_delivery(delivery_id)
            order_state.ensure_transition("delivery", current.status, clean["status"])
        logger.info(f"Updating delivery {delivery_id}: {sorted(clean)}")
        return parse_delivery(self.client.update(RESOURCE, delivery_id, clean))

    def cancel_delivery(self, delivery_id: EntityId) -> Delivery:
        return self.update_delivery(delivery_id, {"status": DeliveryStatus.CANCELLED})

    def delete_delivery(self, delivery_id: EntityId) -> None:
        self.client.delete(RESOURCE, delivery_id)
        logger.info(f"Deleted delivery {delivery_id}")

    def assign_driver(self, delivery_id: EntityId, driver_id: EntityId) -> AssignmentResult:
        """
        Assign (or reassign) a driver.

        Reassigning once the delivery has left `pending` is allowed but
        reported through `AssignmentResult.warning`.
        """
        current = self.get_delivery(delivery_id)
        warning = order_state.reassignment_warning(current)
        if warning:
            logger.warning(warning)
        body = self.client.action(
            RESOURCE,
            f"{RESOURCE}/{delivery_id}/assign",
            {"driverId": driver_id},
        )
        return AssignmentResult(delivery=parse_delivery(body), warning=warning)

    def mark_picked_up(self, delivery_id: EntityId) -> Delivery:
        return self._transition(delivery_id, DeliveryStatus.PICKED_UP, "pickup")

    def mark_in_transit(self, delivery_id: EntityId) -> Delivery:
        return self._transition(delivery_id, DeliveryStatus.IN_TRANSIT, "transit")

    def mark_delivered(
        self,
        delivery_id: EntityId,
        delivery_note: str | None = None,
    ) -> Delivery:
        body = {"deliveryNote": delivery_note} if delivery_note else None
        return self._transition(delivery_id, DeliveryStatus.DELIVERED, "deliver", body)

    def mark_failed(self, delivery_id: EntityId, failure_reason: str) -> Delivery:
        if not failure_reason or not failure_reason.strip():
            raise MissingFailureReason()
        return self._transition(
            delivery_id,
            DeliveryStatus.FAILED,
            "fail",
            {"failureReason": failure_reason.strip()},
        )

    def update_location(
        self,
        delivery_id: EntityId,
        latitude: float,
        longitude: float,
    ) -> Delivery:
        """GPS update; independent of status."""
        location = DeliveryLocation(latitude=latitude, longitude=longitude)
        body = self.client.action(
            RESOURCE,
            f"{RESOURCE}/{delivery_id}/location",
            location.model_dump(),
        )
        return parse_delivery(body)

    # -------- Internal --------

    def _transition(
        self,
        delivery_id: EntityId,
        target: DeliveryStatus,
        endpoint: str,
        payload: dict[str, Any] | None = None,
    ) -> Delivery:
        current = self.get_delivery(delivery_id)
        order_state.ensure_transition("delivery", current.status, target)
        body = self.client.action(RESOURCE, f"{RESOURCE}/{delivery_id}/{endpoint}", payload)
        logger.info(f"Delivery {delivery_id}: {current.status.value} -> {target.value}")
        return parse_delivery(body)
