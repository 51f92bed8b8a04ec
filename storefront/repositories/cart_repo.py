# storefront/repositories/cart_repo.py
import json
import logging

from pydantic import ValidationError

from storefront.repositories.storage_repo import KeyValueStore
from storefront.schemas.cart import CartLineItem

logger = logging.getLogger("storefront.cart")

CART_KEY_PREFIX = "cart-items-"


class CartRepository:
    """
    Persistence adapter for carts.

    One record per scope key ("<identity id>" or "guest"), stored under
    "cart-items-<scope>" as the JSON list of lines.

    NOTE:
      - No business rules here; the cart service computes the new line
        sequence and hands it over to `save`.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def key_for(scope_key: str) -> str:
        return f"{CART_KEY_PREFIX}{scope_key}"

    def load(self, scope_key: str) -> list[CartLineItem]:
        raw = self.store.get(self.key_for(scope_key))
        if not raw:
            return []
        try:
            rows = json.loads(raw)
            return [CartLineItem.model_validate(row) for row in rows]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable cart record for scope '{scope_key}': {e}")
            return []

    def save(self, scope_key: str, items: list[CartLineItem]) -> None:
        payload = [item.model_dump(mode="json") for item in items]
        self.store.set(self.key_for(scope_key), json.dumps(payload))

    def delete(self, scope_key: str) -> None:
        self.store.delete(self.key_for(scope_key))
