# storefront/database.py
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from storefront.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Local SQLite store backing carts and the persisted session.
#
# - check_same_thread=False: FastAPI runs sync endpoints in a
#   threadpool, so the connection may be used off the creating thread.
# ---------------------------------------------------------


def make_engine(url: str) -> Engine:
    """Create an engine for the key-value store at `url`."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine(settings.STORAGE_URL)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(bind or engine)
