# storefront/services/order_state.py
"""
Order / delivery status rules.

Order graph:

    pending    -> confirmed, cancelled
    confirmed  -> processing, cancelled
    processing -> shipped, cancelled
    shipped    -> delivered, cancelled
    delivered, cancelled: terminal

Delivery graph (driver lifecycle):

    pending -> assigned -> picked_up -> in_transit -> delivered | failed
    cancelled from any non-terminal state
    delivered, failed, cancelled: terminal

Writing the current status again is accepted as a no-op transition.
Priority (low | normal | high | urgent) is orthogonal to status.
"""

import logging
from datetime import date, datetime
from typing import Any, Iterable, Literal, TypeVar

from storefront.core.errors import (
    InvalidPriority,
    InvalidStatus,
    InvalidTransition,
    MissingFailureReason,
    Unauthorized,
)
from storefront.schemas.common import EntityId, same_id
from storefront.schemas.order import (
    DELIVERY_STATUS_VALUES,
    DELIVERY_TO_ORDER_STATUS,
    ORDER_STATUS_VALUES,
    ORDER_TO_DELIVERY_STATUS,
    PRIORITY_VALUES,
    Delivery,
    DeliveryStatus,
    OrderStatus,
    Priority,
    normalize_priority_value,
    normalize_status_value,
)
from storefront.schemas.user import Identity

logger = logging.getLogger("storefront.order_state")

Kind = Literal["order", "delivery"]

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

DELIVERY_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.PENDING: frozenset({DeliveryStatus.ASSIGNED, DeliveryStatus.CANCELLED}),
    DeliveryStatus.ASSIGNED: frozenset({DeliveryStatus.PICKED_UP, DeliveryStatus.CANCELLED}),
    DeliveryStatus.PICKED_UP: frozenset({DeliveryStatus.IN_TRANSIT, DeliveryStatus.CANCELLED}),
    DeliveryStatus.IN_TRANSIT: frozenset(
        {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED, DeliveryStatus.CANCELLED}
    ),
    DeliveryStatus.DELIVERED: frozenset(),
    DeliveryStatus.FAILED: frozenset(),
    DeliveryStatus.CANCELLED: frozenset(),
}

ACTIVE_DELIVERY_STATUSES = frozenset(
    {DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT}
)

# System-assigned fields; never client-writable.
FORBIDDEN_UPDATE_FIELDS = frozenset(
    {
        "id",
        "user_id",
        "userId",
        "user",
        "shipped_at",
        "shippedAt",
        "delivered_at",
        "deliveredAt",
        "created_at",
        "createdAt",
    }
)

# -------- Vocabulary --------


def parse_status(kind: Kind, value: Any) -> OrderStatus | DeliveryStatus:
    """
    Parse `value` into the status enum of `kind`.

    Raises:
        InvalidStatus: value is not in the vocabulary of `kind`.
    """
    normalized = normalize_status_value(value)
    if not isinstance(normalized, str):
        raise InvalidStatus(value, kind)
    if kind == "order":
        if normalized in ORDER_STATUS_VALUES:
            return OrderStatus(normalized)
    elif normalized in DELIVERY_STATUS_VALUES:
        return DeliveryStatus(normalized)
    raise InvalidStatus(value, kind)


def parse_priority(value: Any) -> Priority:
    normalized = normalize_priority_value(value)
    if isinstance(normalized, str) and normalized in PRIORITY_VALUES:
        return Priority(normalized)
    raise InvalidPriority(value)


def order_to_delivery_status(status: OrderStatus) -> DeliveryStatus:
    return ORDER_TO_DELIVERY_STATUS[OrderStatus(status)]


def delivery_to_order_status(status: DeliveryStatus) -> OrderStatus:
    return DELIVERY_TO_ORDER_STATUS[DeliveryStatus(status)]


# -------- Transitions --------


def _transitions(kind: Kind) -> dict:
    return ORDER_TRANSITIONS if kind == "order" else DELIVERY_TRANSITIONS


def is_terminal(kind: Kind, status: Any) -> bool:
    return not _transitions(kind)[parse_status(kind, status)]


def allowed_transitions(kind: Kind, status: Any) -> frozenset:
    return _transitions(kind)[parse_status(kind, status)]


def can_transition(kind: Kind, current: Any, target: Any) -> bool:
    current_status = parse_status(kind, current)
    target_status = parse_status(kind, target)
    if current_status == target_status:
        return True
    return target_status in _transitions(kind)[current_status]


def ensure_transition(kind: Kind, current: Any, target: Any) -> None:
    """
    Raises:
        InvalidStatus: either value is outside the vocabulary.
        InvalidTransition: the edge current -> target is not in the graph.
    """
    if not can_transition(kind, current, target):
        raise InvalidTransition(
            kind,
            parse_status(kind, current).value,
            parse_status(kind, target).value,
        )


# -------- Outgoing payload validation --------


def sanitize_update(kind: Kind, payload: dict[str, Any]) -> dict[str, Any]:
    """
    Build the payload that may actually be dispatched for an update.

    Rules:
      - system-assigned fields (id, owner, shipped_at, delivered_at, ...)
        are stripped whatever the caller passed
      - `status` must be in the vocabulary of `kind`
      - `priority` must be low | normal | high | urgent
      - a delivery set to `failed` needs a non-empty failure reason

    Returns:
        A new dict; the input is not modified.
    """
    clean = {k: v for k, v in payload.items() if k not in FORBIDDEN_UPDATE_FIELDS}
    stripped = set(payload) - set(clean)
    if stripped:
        logger.debug(f"Stripped system fields from {kind} update: {sorted(stripped)}")

    # Unset form fields mean "leave unchanged".
    for key in ("status", "priority"):
        if key in clean and clean[key] is None:
            del clean[key]

    if "status" in clean:
        clean["status"] = parse_status(kind, clean["status"]).value

    if "priority" in clean:
        clean["priority"] = parse_priority(clean["priority"]).value

    if kind == "delivery":
        if "failureReason" in clean:
            clean.setdefault("failure_reason", clean.pop("failureReason"))
        if clean.get("status") == DeliveryStatus.FAILED.value:
            reason = clean.get("failure_reason")
            if not isinstance(reason, str) or not reason.strip():
                raise MissingFailureReason()
            clean["failure_reason"] = reason.strip()

    return clean


def reassignment_warning(delivery: Delivery) -> str | None:
    """
    Warning text for assigning a driver to a delivery that already left
    `pending`. Reassignment is allowed; the warning is for the UI.
    """
    if delivery.status == DeliveryStatus.PENDING:
        return None
    return (
        f"Delivery {delivery.order_number or delivery.id} is already "
        f"'{delivery.status.value}'; reassigning may disrupt the current driver"
    )


# -------- Role-gated read scoping --------


def _numeric_or_text(value: EntityId) -> int | str:
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return text


def ensure_can_read(requester: Identity | None, target_id: EntityId) -> None:
    """
    Local guard before reading another identity's orders / deliveries.

    Admins may read anyone's records; everybody else only their own.
    This is a UX guard, not a security boundary: the backend still
    authorizes every request.

    Raises:
        Unauthorized: before any request is dispatched.
    """
    if requester is None:
        raise Unauthorized("Sign in to view orders")
    if requester.role == "admin":
        return
    if _numeric_or_text(requester.id) != _numeric_or_text(target_id):
        raise Unauthorized("Access denied: you can only view your own records")


# -------- Derived queries (read-only) --------

T = TypeVar("T")


def filter_by_status(records: Iterable[T], status: Any, kind: Kind = "order") -> list[T]:
    """Records whose status equals `status`, parsed in the vocabulary of `kind`."""
    wanted = parse_status(kind, getattr(status, "value", status))
    return [r for r in records if r.status.value == wanted.value]


def filter_by_priority(records: Iterable[T], priority: Any) -> list[T]:
    wanted = parse_priority(priority)
    return [r for r in records if r.priority == wanted]


def filter_by_driver(records: Iterable[T], driver_id: EntityId) -> list[T]:
    return [r for r in records if same_id(r.assigned_driver_id, driver_id)]


def active_deliveries(deliveries: Iterable[Delivery]) -> list[Delivery]:
    """Deliveries a driver is currently working on."""
    return [d for d in deliveries if d.status in ACTIVE_DELIVERY_STATUSES]


def completed_deliveries(
    deliveries: Iterable[Delivery],
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[Delivery]:
    """
    Delivered deliveries, optionally bounded (inclusive) by delivery date.

    Records without `delivered_at` are kept only when no bound is given.
    """
    out: list[Delivery] = []
    for d in deliveries:
        if d.status != DeliveryStatus.DELIVERED:
            continue
        if date_from or date_to:
            if d.delivered_at is None:
                continue
            day = _as_date(d.delivered_at)
            if date_from and day < date_from:
                continue
            if date_to and day > date_to:
                continue
        out.append(d)
    return out


def _as_date(value: datetime | date) -> date:
    return value.date() if isinstance(value, datetime) else value
