# storefront/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized storefront settings loaded from environment.

    Optional env vars (.env):
      - BACKEND_API_URL (base URL of the grocery REST backend)
      - STORAGE_URL (SQLAlchemy URL of the local key-value store)
      - REQUEST_TIMEOUT_SECONDS
      - READ_RETRIES (extra attempts for transient read failures)
      - CORS_ORIGINS (JSON list of presentation-layer origins)
    """

    PROJECT_NAME: str = "Grocery Storefront"
    API_V1_STR: str = "/api/v1"

    # Remote backend (token issuance, orders, deliveries, payments)
    BACKEND_API_URL: str = "http://localhost:8000/api/v1"
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    READ_RETRIES: int = 2

    # Durable local storage for carts and the persisted session
    STORAGE_URL: str = "sqlite:///./storefront.db"

    # Presentation layer (browser) origins allowed to call the gateway
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
