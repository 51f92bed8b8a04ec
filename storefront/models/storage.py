# storefront/models/storage.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class StorageEntry(SQLModel, table=True):
    """
    One durable key-value pair of the local store.

    Keys in use:
      - "cart-items-<scope>" : JSON list of cart lines for an identity / "guest"
      - "auth-storage"       : JSON snapshot of the persisted session
    """

    __tablename__ = "storage_entries"

    key: str = Field(
        primary_key=True,
        max_length=200,
        description="Storage key",
    )

    value: str = Field(
        description="Serialized (JSON) value",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last write timestamp (UTC)",
    )
