# storefront/services/order_service.py
import logging
from typing import Any

from pydantic import ValidationError

from storefront.core.errors import MalformedResponse, Unauthorized
from storefront.core.session import SessionContext
from storefront.repositories.resource_client import ResourceClient
from storefront.schemas.common import EntityId
from storefront.schemas.order import Order, OrderStatus, Priority
from storefront.services import order_state

logger = logging.getLogger("storefront.orders")

RESOURCE = "orders"


def parse_order(body: Any) -> Order:
    try:
        return Order.model_validate(body)
    except ValidationError as e:
        raise MalformedResponse(RESOURCE, body) from e


def parse_orders(rows: list[Any]) -> list[Order]:
    return [parse_order(row) for row in rows]


class OrderService:
    """
    Order reads and mutations on top of the resource client.

    Responsibilities:
      - guard reads of another identity's orders (UX guard, before dispatch)
      - validate and strip every outgoing update
      - enforce the order transition graph using the current record
    """

    def __init__(self, session: SessionContext, client: ResourceClient):
        self.session = session
        self.client = client

    # -------- Reads --------

    def list_all_orders(self) -> list[Order]:
        """List every order (admin screens)."""
        return parse_orders(self.client.list(RESOURCE))

    def get_order(self, order_id: EntityId) -> Order:
        return parse_order(self.client.get(RESOURCE, order_id))

    def list_user_orders(self, user_id: EntityId) -> list[Order]:
        """
        Orders owned by `user_id`.

        Raises:
            Unauthorized: a non-admin asked for someone else's orders
            (no request is sent).
        """
        order_state.ensure_can_read(self.session.identity, user_id)
        return parse_orders(self.client.list_at(f"{RESOURCE}/user/{user_id}", RESOURCE))

    def list_my_orders(self) -> list[Order]:
        identity = self.session.identity
        if identity is None:
            raise Unauthorized("Sign in to view orders")
        return self.list_user_orders(identity.id)

    def list_orders_by_status(self, status: OrderStatus | str) -> list[Order]:
        parsed = order_state.parse_status("order", status)
        return parse_orders(
            self.client.list_at(f"{RESOURCE}/status/{parsed.value}", RESOURCE)
        )

    def list_orders_by_priority(self, priority: Priority | str) -> list[Order]:
        parsed = order_state.parse_priority(priority)
        return parse_orders(
            self.client.list_at(f"{RESOURCE}/priority/{parsed.value}", RESOURCE)
        )

    # -------- Mutations --------

    def create_order(self, payload: dict[str, Any]) -> Order:
        """
        Create an order from an admin form.

        System fields are stripped; status defaults to 'pending'.
        """
        clean = order_state.sanitize_update("order", payload)
        clean.setdefault("status", OrderStatus.PENDING.value)
        clean.setdefault("priority", Priority.NORMAL.value)
        owner = payload.get("user_id", payload.get("userId"))
        if owner is not None:
            # Owner is settable at creation only.
            clean["user_id"] = owner
        return parse_order(self.client.create(RESOURCE, clean))

    def update_order(self, order_id: EntityId, payload: dict[str, Any]) -> Order:
        """
        Partial update of an order.

        Rules:
          - system fields (id, user_id, shipped_at, delivered_at, ...) are
            never sent
          - status / priority must be in their vocabularies
          - a status change must follow the order graph

        Raises:
            InvalidStatus / InvalidPriority / InvalidTransition: before dispatch.
        """
        clean = order_state.sanitize_update("order", payload)
        if "status" in clean:
            current = self.get_order(order_id)
            order_state.ensure_transition("order", current.status, clean["status"])
        logger.info(f"Updating order {order_id}: {sorted(clean)}")
        return parse_order(self.client.update(RESOURCE, order_id, clean))

    def update_status(self, order_id: EntityId, status: OrderStatus | str) -> Order:
        return self.update_order(order_id, {"status": status})

    def update_priority(self, order_id: EntityId, priority: Priority | str) -> Order:
        return self.update_order(order_id, {"priority": priority})

    def delete_order(self, order_id: EntityId) -> None:
        self.client.delete(RESOURCE, order_id)
        logger.info(f"Deleted order {order_id}")
