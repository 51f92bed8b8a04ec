# storefront/deps.py
"""
Dependency providers for the gateway routers.

The storefront runs a single session per process, so every provider is
cached; tests replace them through `app.dependency_overrides`.
"""

from functools import lru_cache

from storefront.core.config import get_settings
from storefront.core.session import SessionContext
from storefront.database import engine
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.resource_client import ResourceClient
from storefront.repositories.storage_repo import KeyValueStore, SqlKeyValueStore
from storefront.services.cart_service import CartService
from storefront.services.delivery_service import DeliveryService
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService
from storefront.services.user_service import UserService


@lru_cache
def get_store() -> KeyValueStore:
    return SqlKeyValueStore(engine)


@lru_cache
def get_session_context() -> SessionContext:
    return SessionContext(get_store())


@lru_cache
def get_resource_client() -> ResourceClient:
    settings = get_settings()
    return ResourceClient(
        get_session_context(),
        settings.BACKEND_API_URL,
        timeout=settings.REQUEST_TIMEOUT_SECONDS,
        read_retries=settings.READ_RETRIES,
    )


@lru_cache
def get_cart_service() -> CartService:
    return CartService(
        get_session_context(),
        CartRepository(get_store()),
        get_resource_client(),
    )


@lru_cache
def get_order_service() -> OrderService:
    return OrderService(get_session_context(), get_resource_client())


@lru_cache
def get_delivery_service() -> DeliveryService:
    return DeliveryService(get_session_context(), get_resource_client())


@lru_cache
def get_payment_service() -> PaymentService:
    return PaymentService(get_cart_service(), get_resource_client())


@lru_cache
def get_user_service() -> UserService:
    return UserService(get_session_context(), get_resource_client())
