"""Pytest fixtures for storefront tests."""

import json
import time

import httpx
import pytest
from jose import jwt

from storefront.core.session import SessionContext
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.resource_client import ResourceClient
from storefront.repositories.storage_repo import MemoryKeyValueStore
from storefront.schemas.user import Identity
from storefront.services.cart_service import CartService
from storefront.services.delivery_service import DeliveryService
from storefront.services.order_service import OrderService

BACKEND_URL = "http://backend.test/api/v1"
API_PREFIX = "/api/v1/"


class FakeBackend:
    """
    In-process stand-in for the grocery REST backend.

    Routes are keyed by (method, path relative to the API prefix). Each
    route holds a queue of replies; the last reply is repeated once the
    queue is down to one. A reply is one of:
      - (status, body)  body may be JSON-able, a str (sent as text) or None
      - an httpx exception instance (raised as a transport failure)
      - a callable taking the request and returning one of the above
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *replies) -> None:
        self.routes[(method.upper(), path)] = list(replies)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})
        reply = queue[0] if len(queue) == 1 else queue.pop(0)
        if callable(reply) and not isinstance(reply, Exception):
            reply = reply(request)
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path[len(API_PREFIX):]}" for r in self.requests]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content) if request.content else None


def make_token(user_id: str = "1", expires_in: int = 3600) -> str:
    """Signed JWT with an `exp` claim relative to now."""
    return jwt.encode(
        {"sub": user_id, "exp": int(time.time()) + expires_in},
        "test-secret",
        algorithm="HS256",
    )


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def session(store):
    return SessionContext(store)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(session, backend):
    resource_client = ResourceClient(
        session,
        BACKEND_URL,
        read_retries=2,
        transport=httpx.MockTransport(backend.handler),
    )
    yield resource_client
    resource_client.close()


@pytest.fixture
def cart_service(session, store, client):
    service = CartService(session, CartRepository(store), client)
    yield service
    service.close()


@pytest.fixture
def order_service(session, client):
    return OrderService(session, client)


@pytest.fixture
def delivery_service(session, client):
    return DeliveryService(session, client)


@pytest.fixture
def customer():
    return Identity(
        id=1,
        email="amina@freshbasket.co.ke",
        full_name="Amina Njeri",
        address="12 Moi Avenue, Nairobi",
        phone_number="+254700000001",
        role="user",
    )


@pytest.fixture
def other_customer():
    return Identity(
        id=2,
        email="brian@freshbasket.co.ke",
        full_name="Brian Otieno",
        address="4 Ngong Road, Nairobi",
        role="user",
    )


@pytest.fixture
def driver():
    return Identity(
        id=9,
        email="driver9@freshbasket.co.ke",
        full_name="Kevin Mutua",
        role="driver",
    )


@pytest.fixture
def admin():
    return Identity(
        id=100,
        email="ops@freshbasket.co.ke",
        full_name="Ops Admin",
        role="admin",
    )


@pytest.fixture
def logged_in(session, customer):
    """Session signed in as the customer."""
    session.login(customer, make_token("1"))
    return session


def echo_order(order_id: int = 501):
    """Backend reply for POST orders that echoes the payload inside an envelope."""

    def reply(request: httpx.Request):
        payload = FakeBackend.body(request)
        data = {**payload, "id": order_id, "created_at": "2026-10-19T08:30:00Z"}
        return 201, {"success": True, "data": data}

    return reply


def order_body(order_id: int = 5, status: str = "pending", **overrides) -> dict:
    body = {
        "id": order_id,
        "orderNumber": f"ORD-{order_id:08d}",
        "totalAmount": "42.00",
        "status": status,
        "priority": "normal",
        "shippingAddress": "12 Moi Avenue, Nairobi",
        "userId": 1,
        "items": [],
    }
    body.update(overrides)
    return body


def delivery_body(delivery_id: int = 3, status: str = "pending", **overrides) -> dict:
    body = {
        "id": delivery_id,
        "orderNumber": f"ORD-{delivery_id:08d}",
        "totalAmount": 18.5,
        "status": status,
        "priority": "high",
        "shippingAddress": "Pickup: Westlands Hub, Westlands, Nairobi",
        "userId": 1,
        "driverId": 9,
    }
    body.update(overrides)
    return body
