# storefront/routers/cart.py
from fastapi import APIRouter, Depends

from storefront.deps import get_cart_service
from storefront.schemas.cart import (
    CartItemAdd,
    CartItemPriceUpdate,
    CartSummary,
    CheckoutRequest,
)
from storefront.schemas.order import Order
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartSummary)
def get_cart(service: CartService = Depends(get_cart_service)):
    """
    Get the active cart (current identity, or the guest cart).
    """
    return service.get_cart_summary()


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemAdd,
    service: CartService = Depends(get_cart_service),
):
    """
    Add one unit of a product.

    Adding a product already in the cart increments its quantity.
    """
    return service.add_to_cart(payload)


@router.post("/{item_id}/decrement", response_model=CartSummary)
def decrement_item(
    item_id: str,
    service: CartService = Depends(get_cart_service),
):
    """
    Remove one unit; the line disappears when its quantity reaches zero.
    """
    return service.decrement_from_cart(item_id)


@router.patch("/{item_id}/price", response_model=CartSummary)
def update_item_price(
    item_id: str,
    payload: CartItemPriceUpdate,
    service: CartService = Depends(get_cart_service),
):
    return service.update_item_price(item_id, payload.unit_price)


@router.delete("/{item_id}", response_model=CartSummary)
def remove_item(
    item_id: str,
    service: CartService = Depends(get_cart_service),
):
    return service.remove_from_cart(item_id)


@router.delete("", response_model=CartSummary)
def clear_cart(service: CartService = Depends(get_cart_service)):
    """
    Clear the entire cart.

    Returns an empty cart summary.
    """
    return service.clear_cart()


@router.post("/checkout", response_model=Order)
def checkout(
    payload: CheckoutRequest | None = None,
    service: CartService = Depends(get_cart_service),
):
    """
    Turn the cart into a confirmed order.

    On failure the cart is kept and checkout stays blocked until
    POST /cart/checkout/acknowledge.
    """
    pickup = payload.pickup_station if payload else None
    return service.checkout(pickup)


@router.post("/checkout/acknowledge", response_model=CartSummary)
def acknowledge_checkout_failure(service: CartService = Depends(get_cart_service)):
    service.acknowledge_checkout_failure()
    return service.get_cart_summary()
