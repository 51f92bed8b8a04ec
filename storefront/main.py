# storefront/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.core.config import get_settings
from storefront.core.errors import (
    InvalidCheckoutState,
    MalformedResponse,
    RequestFailed,
    StorefrontError,
    Unauthorized,
    UpdateValidationError,
)
from storefront.database import create_db_and_tables
from storefront.deps import get_resource_client

# Import models so SQLModel metadata is populated before create_all()
from storefront.models import storage as _storage_models  # noqa: F401

# Routers
from storefront.routers.session import router as session_router
from storefront.routers.cart import router as cart_router
from storefront.routers.orders import router as orders_router
from storefront.routers.deliveries import router as deliveries_router
from storefront.routers.deliveries import drivers_router
from storefront.routers.payments import router as payments_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Create the local key-value table.

    Shutdown:
      - Close the backend HTTP client if one was opened.
    """
    logger.info("Startup: preparing local storage...")
    try:
        create_db_and_tables()
        logger.info("Startup: local storage ready.")
    except Exception as e:
        logger.error(f"Startup: local storage FAILED: {e}")
        raise
    yield
    if get_resource_client.cache_info().currsize:
        get_resource_client().close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_for(exc: StorefrontError) -> int:
    """HTTP status the gateway answers with for a storefront error."""
    if isinstance(exc, UpdateValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, InvalidCheckoutState):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, Unauthorized):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, RequestFailed) and exc.status:
        return exc.status
    # Malformed bodies and unreachable backend.
    return status.HTTP_502_BAD_GATEWAY


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    code = status_for(exc)
    if code >= 500 or isinstance(exc, MalformedResponse):
        logger.error(f"{request.method} {request.url.path} -> {code}: {exc.message}")
    return JSONResponse(status_code=code, content={"detail": exc.message})


# Versioned API prefix, e.g. /api/v1
app.include_router(session_router, prefix=settings.API_V1_STR)
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(deliveries_router, prefix=settings.API_V1_STR)
app.include_router(drivers_router, prefix=settings.API_V1_STR)
app.include_router(payments_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "grocery-storefront"}
