# storefront/repositories/storage_repo.py
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from storefront.models.storage import StorageEntry


class KeyValueStore(Protocol):
    """Synchronous string key-value store (the local-storage contract)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class SqlKeyValueStore:
    """
    Key-value store persisted in the `storage_entries` table.

    Every call opens and commits its own session, so a write is durable
    before the call returns.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, key: str) -> str | None:
        with Session(self.engine) as session:
            entry = session.get(StorageEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        try:
            self._write(key, value)
        except IntegrityError:
            # Another writer inserted the key first; the retry finds the row and updates it.
            self._write(key, value)

    def _write(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(StorageEntry, key)
            if entry is None:
                entry = StorageEntry(key=key, value=value)
            else:
                entry.value = value
                entry.updated_at = datetime.now(timezone.utc)
            session.add(entry)
            session.commit()

    def delete(self, key: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(StorageEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()


class MemoryKeyValueStore:
    """Process-local store; used when durability is not wanted (tests, previews)."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)
