# storefront/schemas/user.py
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.common import EntityId, rename_legacy_keys

# App-level roles. "guest" = no identity in the session, so it is not a Role.
Role = Literal["admin", "user", "driver"]

_LEGACY_KEYS = {
    "fullName": "full_name",
    "phoneNumber": "phone_number",
}


class Identity(SQLModel):
    """
    Authenticated identity mirrored from the backend.

    Owns orders (as `user_id`) and, for drivers, deliveries
    (as `assigned_driver_id`).
    """

    model_config = ConfigDict(extra="ignore")

    id: EntityId
    email: EmailStr
    full_name: str = Field(default="", max_length=200)
    address: str | None = None
    phone_number: str | None = None
    role: Role = "user"

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data):
        return rename_legacy_keys(data, _LEGACY_KEYS)

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return v.strip()


class IdentityUpdate(SQLModel):
    """
    Partial profile update for the current identity.
    `id`, `email` and `role` are not editable here.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, max_length=200)
    address: str | None = None
    phone_number: str | None = None

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class LoginPayload(SQLModel):
    """
    Identity and bearer token obtained from the backend's auth endpoint.
    Token issuance itself happens outside the storefront.
    """

    user: Identity
    token: str


class SessionRead(SQLModel):
    """Session view returned to the presentation layer (token is never echoed)."""

    is_authenticated: bool
    user: Identity | None = None
    scope_key: str
