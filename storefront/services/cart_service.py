# storefront/services/cart_service.py
import logging
import threading
import uuid

from pydantic import ValidationError

from storefront.core.errors import InvalidCheckoutState, MalformedResponse, RequestFailed
from storefront.core.session import SessionContext
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.resource_client import ResourceClient
from storefront.schemas.cart import (
    CartItemAdd,
    CartItemPriceUpdate,
    CartLineItem,
    CartSummary,
    PickupStation,
)
from storefront.schemas.common import EntityId, same_id
from storefront.schemas.order import Order, OrderCreate, OrderStatus
from storefront.schemas.user import Identity

logger = logging.getLogger("storefront.cart")


# -------- Pure line-sequence transitions --------
#
# Each function takes the current lines and returns a new list; the
# input list and its items are never mutated.


def add_line(lines: list[CartLineItem], item: CartItemAdd) -> list[CartLineItem]:
    """
    Merge one unit of `item` into the cart.

    Existing id => quantity + 1 (the stored price is kept).
    New id      => appended with quantity 1.
    """
    if any(same_id(line.id, item.id) for line in lines):
        return [
            line.model_copy(update={"quantity": line.quantity + 1})
            if same_id(line.id, item.id)
            else line
            for line in lines
        ]
    return [*lines, CartLineItem(**item.model_dump(), quantity=1)]


def decrement_line(lines: list[CartLineItem], item_id: EntityId) -> list[CartLineItem]:
    """Quantity - 1, or drop the line at quantity 1. Unknown id => unchanged."""
    out: list[CartLineItem] = []
    for line in lines:
        if not same_id(line.id, item_id):
            out.append(line)
        elif line.quantity > 1:
            out.append(line.model_copy(update={"quantity": line.quantity - 1}))
    return out


def remove_line(lines: list[CartLineItem], item_id: EntityId) -> list[CartLineItem]:
    return [line for line in lines if not same_id(line.id, item_id)]


def reprice_line(
    lines: list[CartLineItem],
    item_id: EntityId,
    unit_price: float,
) -> list[CartLineItem]:
    return [
        line.model_copy(update={"unit_price": float(unit_price)})
        if same_id(line.id, item_id)
        else line
        for line in lines
    ]


def cart_total(lines: list[CartLineItem]) -> float:
    return round(sum(line.unit_price * line.quantity for line in lines), 2)


def order_number_for(idempotency_key: str) -> str:
    return f"ORD-{idempotency_key.replace('-', '')[:8].upper()}"


def resolve_shipping_address(
    identity: Identity,
    pickup_station: PickupStation | None,
) -> str:
    if pickup_station is not None:
        return pickup_station.as_shipping_address()
    return (identity.address or "").strip()


class CartService:
    """
    Client-side cart engine.

    Responsibilities:
      - keep the current scope's lines in memory (identity id or "guest")
      - merge-on-add / decrement-or-remove semantics
      - persist after every mutation, before returning
      - reload synchronously when the session's identity changes
      - materialize the cart into a confirmed order at checkout

    Checkout sends an idempotency key that is reused while the cart is
    unchanged, so a retry after a failed attempt can be deduplicated by
    the backend. A failed checkout blocks further attempts until
    `acknowledge_checkout_failure()` is called.

    One instance is shared by the gateway's worker threads; every read,
    mutation, scope switch and checkout runs under `_lock`.
    """

    def __init__(
        self,
        session: SessionContext,
        cart_repo: CartRepository,
        client: ResourceClient,
    ):
        self.session = session
        self.cart_repo = cart_repo
        self.client = client

        self._lock = threading.RLock()
        self._scope_key = session.scope_key
        self._items: list[CartLineItem] = cart_repo.load(self._scope_key)
        self._checkout_key: str | None = None
        self._checkout_failure: str | None = None
        self._unsubscribe = session.subscribe(self._on_identity_change)

    # ---- Reads ----

    @property
    def scope_key(self) -> str:
        return self._scope_key

    @property
    def items(self) -> list[CartLineItem]:
        with self._lock:
            return [item.model_copy() for item in self._items]

    @property
    def total(self) -> float:
        with self._lock:
            return cart_total(self._items)

    @property
    def checkout_blocked(self) -> bool:
        return self._checkout_failure is not None

    def get_cart_summary(self) -> CartSummary:
        """
        Return full cart summary:
          - list of lines
          - total_quantity
          - total_price (recomputed, never stored)
        """
        with self._lock:
            return CartSummary(
                scope_key=self._scope_key,
                items=self.items,
                total_quantity=sum(item.quantity for item in self._items),
                total_price=self.total,
                checkout_blocked=self.checkout_blocked,
            )

    # ---- Mutations ----

    def add_to_cart(self, item: CartItemAdd | dict) -> CartSummary:
        """
        Add one unit of a product.

        `unit_price` is normalized by CartItemAdd (numeric strings accepted).
        """
        if not isinstance(item, CartItemAdd):
            item = CartItemAdd.model_validate(item)
        with self._lock:
            self._commit(add_line(self._items, item))
            return self.get_cart_summary()

    def decrement_from_cart(self, item_id: EntityId) -> CartSummary:
        with self._lock:
            updated = decrement_line(self._items, item_id)
            if updated != self._items:
                self._commit(updated)
            return self.get_cart_summary()

    def remove_from_cart(self, item_id: EntityId) -> CartSummary:
        with self._lock:
            self._commit(remove_line(self._items, item_id))
            return self.get_cart_summary()

    def update_item_price(self, item_id: EntityId, unit_price: float | str) -> CartSummary:
        """Overwrite the unit price of one line after upstream prices were refreshed."""
        price = CartItemPriceUpdate(unit_price=unit_price).unit_price
        with self._lock:
            updated = reprice_line(self._items, item_id, price)
            if updated != self._items:
                self._commit(updated)
            return self.get_cart_summary()

    def clear_cart(self) -> CartSummary:
        """
        Clear all lines and delete the durable record for the current scope.
        """
        with self._lock:
            self._items = []
            self._checkout_key = None
            self.cart_repo.delete(self._scope_key)
            return self.get_cart_summary()

    # ---- Checkout ----

    def checkout(self, pickup_station: PickupStation | None = None) -> Order:
        """
        Convert the current cart into a confirmed Order.

        Steps:
          1. Preconditions: no unacknowledged failure, authenticated
             identity, non-empty cart, resolvable shipping address.
          2. Compute total from the current lines.
          3. Resolve the shipping address (pickup station or profile).
          4. POST the order with a snapshot of the lines, status 'confirmed'
             and the idempotency key.
          5. Clear the cart only after a response carrying the new order's id.

        Raises:
            InvalidCheckoutState: preconditions not met (no request sent).
            RequestFailed / MalformedResponse: creation failed; the cart
            is left exactly as it was.
        """
        with self._lock:
            return self._checkout(pickup_station)

    def _checkout(self, pickup_station: PickupStation | None) -> Order:
        if self._checkout_failure is not None:
            raise InvalidCheckoutState(
                f"Previous checkout failed ({self._checkout_failure}). "
                "Acknowledge the failure before trying again."
            )

        identity = self.session.identity
        if identity is None or not self.session.is_authenticated:
            raise InvalidCheckoutState("Sign in to check out")
        if not self._items:
            raise InvalidCheckoutState("Cart is empty")

        shipping_address = resolve_shipping_address(identity, pickup_station)
        if not shipping_address:
            raise InvalidCheckoutState(
                "No shipping address on the profile; choose a pickup station"
            )

        if self._checkout_key is None:
            self._checkout_key = str(uuid.uuid4())
        key = self._checkout_key

        snapshot = self.items
        payload = OrderCreate(
            order_number=order_number_for(key),
            total_amount=cart_total(snapshot),
            status=OrderStatus.CONFIRMED,
            shipping_address=shipping_address,
            billing_address=(identity.address or "").strip() or shipping_address,
            user_id=identity.id,
            items=snapshot,
            idempotency_key=key,
        )

        try:
            body = self.client.create(
                "orders",
                payload.model_dump(mode="json", exclude_none=True),
                headers={"Idempotency-Key": key},
            )
            try:
                order = Order.model_validate(body)
            except ValidationError as e:
                raise MalformedResponse("orders", body) from e
            if order.id is None:
                # Nothing was created without an id to show for it.
                raise MalformedResponse("orders", body)
        except (RequestFailed, MalformedResponse) as e:
            self._checkout_failure = e.message
            logger.error(f"Checkout failed for scope '{self._scope_key}': {e.message}")
            raise

        if not order.items:
            order.items = snapshot
        if order.idempotency_key is None:
            order.idempotency_key = key

        self._items = []
        self._checkout_key = None
        self.cart_repo.delete(self._scope_key)
        logger.info(
            f"Checkout created order {order.order_number or order.id} "
            f"for user {identity.id} (total={payload.total_amount:.2f})"
        )
        return order

    def acknowledge_checkout_failure(self) -> None:
        """Unblock checkout after the user has seen the failure."""
        with self._lock:
            self._checkout_failure = None

    def close(self) -> None:
        """Stop following the session's identity."""
        self._unsubscribe()

    # ---- Internal ----

    def _commit(self, items: list[CartLineItem]) -> None:
        self._items = items
        self._checkout_key = None
        self.cart_repo.save(self._scope_key, items)

    def _on_identity_change(self, identity: Identity | None) -> None:
        with self._lock:
            self._scope_key = self.session.scope_key
            self._items = self.cart_repo.load(self._scope_key)
            self._checkout_key = None
            self._checkout_failure = None
            logger.info(
                f"Cart scope switched to '{self._scope_key}' ({len(self._items)} lines)"
            )
