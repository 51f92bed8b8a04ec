"""Tests for the payment callback glue."""

import pytest

from conftest import FakeBackend, echo_order
from storefront.core.errors import InvalidCheckoutState
from storefront.schemas.payment import PaymentCallback
from storefront.services.payment_service import PaymentService

AVOCADO = {"id": 3, "product_name": "Avocado", "unit_price": 0.8}


@pytest.fixture
def payment_service(cart_service, client):
    return PaymentService(cart_service, client)


def test_cancelled_payment_leaves_cart(payment_service, cart_service, backend, logged_in):
    cart_service.add_to_cart(AVOCADO)

    result = payment_service.handle_callback(PaymentCallback(status="canceled", reference="T-1"))

    assert result is None
    assert backend.requests == []
    assert len(cart_service.items) == 1


def test_success_checks_out_and_records_payment(payment_service, cart_service, backend, logged_in):
    backend.on("POST", "orders", echo_order(501))
    backend.on(
        "POST",
        "payments",
        lambda request: (201, {"payment": {**FakeBackend.body(request), "id": 77}}),
    )
    cart_service.add_to_cart(AVOCADO)
    cart_service.add_to_cart(AVOCADO)

    result = payment_service.handle_callback(
        PaymentCallback(status="success", reference="T-8842", amount="1.60")
    )

    assert backend.paths() == ["POST orders", "POST payments"]
    assert result.order.id == 501
    assert result.payment == {
        "order_id": 501,
        "amount": 1.6,
        "reference": "T-8842",
        "method": "paystack",
        "status": "success",
        "id": 77,
    }
    assert cart_service.items == []


def test_success_without_reference(payment_service, cart_service, backend, logged_in):
    cart_service.add_to_cart(AVOCADO)

    with pytest.raises(InvalidCheckoutState):
        payment_service.handle_callback(PaymentCallback(status="success"))
    assert backend.requests == []
