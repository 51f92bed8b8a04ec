# storefront/schemas/order.py
from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.cart import CartLineItem
from storefront.schemas.common import EntityId, rename_legacy_keys, to_number


class OrderStatus(str, Enum):
    """Order-level lifecycle (customer / admin view)."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryStatus(str, Enum):
    """Delivery-level lifecycle (driver view)."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


ORDER_STATUS_VALUES = frozenset(s.value for s in OrderStatus)
DELIVERY_STATUS_VALUES = frozenset(s.value for s in DeliveryStatus)
PRIORITY_VALUES = frozenset(p.value for p in Priority)

# Alternative spellings seen from older backends.
STATUS_ALIASES: dict[str, str] = {
    "canceled": "cancelled",
    "in-transit": "in_transit",
    "picked-up": "picked_up",
}

PRIORITY_ALIASES: dict[str, str] = {
    "medium": "normal",
}

# Total mappings between the two vocabularies of the same entity.
ORDER_TO_DELIVERY_STATUS: dict[OrderStatus, DeliveryStatus] = {
    OrderStatus.PENDING: DeliveryStatus.PENDING,
    OrderStatus.CONFIRMED: DeliveryStatus.PENDING,
    OrderStatus.PROCESSING: DeliveryStatus.ASSIGNED,
    OrderStatus.SHIPPED: DeliveryStatus.IN_TRANSIT,
    OrderStatus.DELIVERED: DeliveryStatus.DELIVERED,
    OrderStatus.CANCELLED: DeliveryStatus.CANCELLED,
}

DELIVERY_TO_ORDER_STATUS: dict[DeliveryStatus, OrderStatus] = {
    DeliveryStatus.PENDING: OrderStatus.CONFIRMED,
    DeliveryStatus.ASSIGNED: OrderStatus.PROCESSING,
    DeliveryStatus.PICKED_UP: OrderStatus.SHIPPED,
    DeliveryStatus.IN_TRANSIT: OrderStatus.SHIPPED,
    DeliveryStatus.DELIVERED: OrderStatus.DELIVERED,
    # A failed delivery ends the order; re-delivery is a new order.
    DeliveryStatus.FAILED: OrderStatus.CANCELLED,
    DeliveryStatus.CANCELLED: OrderStatus.CANCELLED,
}

_LEGACY_KEYS = {
    "orderNumber": "order_number",
    "totalAmount": "total_amount",
    "shippingAddress": "shipping_address",
    "billingAddress": "billing_address",
    "userId": "user_id",
    "assignedDriverId": "assigned_driver_id",
    "driver_id": "assigned_driver_id",
    "driverId": "assigned_driver_id",
    "createdAt": "created_at",
    "shippedAt": "shipped_at",
    "deliveredAt": "delivered_at",
    "failureReason": "failure_reason",
    "deliveryNote": "delivery_note",
    "idempotencyKey": "idempotency_key",
}


def normalize_status_value(value):
    if isinstance(value, str):
        value = value.strip().lower()
        return STATUS_ALIASES.get(value, value)
    return value


def normalize_priority_value(value):
    if value is None:
        return Priority.NORMAL.value
    if isinstance(value, str):
        value = value.strip().lower()
        return PRIORITY_ALIASES.get(value, value)
    return value


class OrderBase(SQLModel):
    """
    Fields shared by orders and deliveries.

    Numeric and legacy-keyed fields are normalized once, here.
    """

    model_config = ConfigDict(extra="ignore")

    id: EntityId | None = None
    order_number: str | None = None
    total_amount: float = Field(default=0.0, ge=0)
    priority: Priority = Priority.NORMAL
    shipping_address: str | None = None
    billing_address: str | None = None
    user_id: EntityId | None = None
    assigned_driver_id: EntityId | None = None
    created_at: datetime | None = None
    delivered_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data):
        return rename_legacy_keys(data, _LEGACY_KEYS)

    @field_validator("total_amount", mode="before")
    @classmethod
    def coerce_total(cls, v) -> float:
        if v is None:
            return 0.0
        return to_number(v, "total_amount")

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v):
        return normalize_priority_value(v)


class Order(OrderBase):
    """
    Customer order as returned by the backend.

    `shipped_at` / `delivered_at` are only ever set by the backend as a
    side effect of transition endpoints.
    """

    status: OrderStatus = OrderStatus.PENDING
    items: list[CartLineItem] = Field(default_factory=list)
    shipped_at: datetime | None = None
    idempotency_key: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        v = normalize_status_value(v)
        if isinstance(v, str) and v not in ORDER_STATUS_VALUES:
            if v in DELIVERY_STATUS_VALUES:
                return DELIVERY_TO_ORDER_STATUS[DeliveryStatus(v)]
        return v


class DeliveryLocation(SQLModel):
    """Last-known GPS position of a delivery."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class Delivery(OrderBase):
    """
    Driver-facing projection of an order in transit.

    Records carrying an order-level status are mapped into the delivery
    vocabulary (e.g. "shipped" -> "in_transit").
    """

    status: DeliveryStatus = DeliveryStatus.PENDING
    failure_reason: str | None = None
    delivery_note: str | None = None
    location: DeliveryLocation | None = None

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        v = normalize_status_value(v)
        if isinstance(v, str) and v not in DELIVERY_STATUS_VALUES:
            if v in ORDER_STATUS_VALUES:
                return ORDER_TO_DELIVERY_STATUS[OrderStatus(v)]
        return v


class OrderCreate(SQLModel):
    """
    Order-creation request built by checkout.

    Backend derives:
      - id, created_at
      - shipped_at / delivered_at (transition side effects)
    """

    model_config = ConfigDict(extra="forbid")

    order_number: str
    total_amount: float = Field(ge=0)
    status: OrderStatus = OrderStatus.CONFIRMED
    priority: Priority = Priority.NORMAL
    shipping_address: str
    billing_address: str | None = None
    user_id: EntityId
    items: list[CartLineItem]
    idempotency_key: str


class StatusUpdate(SQLModel):
    # Checked against the order or delivery vocabulary by the service.
    status: str


class PriorityUpdate(SQLModel):
    priority: str


class AssignDriverRequest(SQLModel):
    driver_id: EntityId


class DeliverRequest(SQLModel):
    delivery_note: str | None = None


class FailRequest(SQLModel):
    # Empty is accepted here so the state machine reports the missing reason.
    failure_reason: str = ""


class AssignmentResult(SQLModel):
    """Assignment response; `warning` is set when reassigning past `pending`."""

    delivery: Delivery
    warning: str | None = None
