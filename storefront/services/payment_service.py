# storefront/services/payment_service.py
import logging

from storefront.core.errors import InvalidCheckoutState
from storefront.repositories.resource_client import ResourceClient
from storefront.schemas.payment import PaymentCallback, PaymentCreate, PaymentResult
from storefront.services.cart_service import CartService

logger = logging.getLogger("storefront.payments")


class PaymentService:
    """
    Glue between the payment gateway callback and the cart engine.

    success   => checkout, then record the payment against the new order
    cancelled => nothing is dispatched, the cart stays as it is
    """

    def __init__(self, cart_service: CartService, client: ResourceClient):
        self.cart_service = cart_service
        self.client = client

    def handle_callback(self, callback: PaymentCallback) -> PaymentResult | None:
        if callback.status == "cancelled":
            logger.info(f"Payment cancelled (reference={callback.reference})")
            return None

        if not callback.reference:
            raise InvalidCheckoutState("Successful payment callback without a reference")

        order = self.cart_service.checkout(callback.pickup_station)

        payment = PaymentCreate(
            order_id=order.id,
            amount=callback.amount if callback.amount is not None else order.total_amount,
            reference=callback.reference,
        )
        # The order exists at this point; a failure here is surfaced as-is.
        recorded = self.client.create("payments", payment.model_dump(mode="json"))
        logger.info(f"Recorded payment {callback.reference} for order {order.order_number}")
        return PaymentResult(order=order, payment=recorded)
