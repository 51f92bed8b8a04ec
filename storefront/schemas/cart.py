# storefront/schemas/cart.py
from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.common import EntityId, rename_legacy_keys, to_number

_LEGACY_KEYS = {
    "price": "unit_price",
    "unitPrice": "unit_price",
    "productName": "product_name",
    "imageUrl": "image_url",
}


class CartItemBase(SQLModel):
    """
    Product fields shared by add-to-cart payloads and cart lines.

    This is the single normalization boundary for prices: `unit_price`
    is coerced to a number here and nowhere else.
    """

    model_config = ConfigDict(extra="ignore")

    id: EntityId
    product_name: str
    unit_price: float = Field(ge=0)
    image_url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data):
        return rename_legacy_keys(data, _LEGACY_KEYS)

    @field_validator("unit_price", mode="before")
    @classmethod
    def coerce_price(cls, v) -> float:
        return to_number(v, "unit_price")


class CartItemAdd(CartItemBase):
    """
    Payload for adding one unit of a product to the cart.
    """

    pass


class CartLineItem(CartItemBase):
    """
    One product entry in a cart, unique by `id` within that cart.
    """

    quantity: int = Field(default=1, ge=1)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class CartItemPriceUpdate(SQLModel):
    """
    Refreshed price for a line already in the cart.
    """

    unit_price: float = Field(ge=0)

    @field_validator("unit_price", mode="before")
    @classmethod
    def coerce_price(cls, v) -> float:
        return to_number(v, "unit_price")


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    scope_key: str
    items: list[CartLineItem]
    total_quantity: int
    total_price: float
    checkout_blocked: bool = False


class PickupStation(SQLModel):
    """
    Pickup point chosen at checkout instead of the profile address.
    """

    name: str
    location: str
    district: str

    @field_validator("name", "location", "district")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    def as_shipping_address(self) -> str:
        return f"Pickup: {self.name}, {self.location}, {self.district}"


class CheckoutRequest(SQLModel):
    """
    Checkout options. Without a pickup station the profile address is used.
    """

    model_config = ConfigDict(extra="forbid")

    pickup_station: PickupStation | None = None
