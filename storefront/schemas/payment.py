# storefront/schemas/payment.py
from typing import Any, Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.cart import PickupStation
from storefront.schemas.common import EntityId, to_number
from storefront.schemas.order import Order

PaymentOutcome = Literal["success", "cancelled"]


class PaymentCallback(SQLModel):
    """
    Result reported by the payment gateway popup.

    The gateway itself is opaque; only the outcome and its reference matter.
    """

    model_config = ConfigDict(extra="ignore")

    status: PaymentOutcome
    reference: str | None = None
    amount: float | None = Field(default=None, ge=0)
    pickup_station: PickupStation | None = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v == "canceled":
                return "cancelled"
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        if v is None:
            return v
        return to_number(v, "amount")


class PaymentCreate(SQLModel):
    """Payment record sent to the backend after a successful checkout."""

    order_id: EntityId | None = None
    amount: float = Field(ge=0)
    reference: str
    method: str = "paystack"
    status: str = "success"


class PaymentResult(SQLModel):
    order: Order
    payment: dict[str, Any]
