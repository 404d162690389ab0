"""Engine and session factory for the SQL document store."""

from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from storefront.app.config import Settings


def create_engine_from_settings(settings: Settings) -> Engine:
    """Engine for DATABASE_URL.

    SQLite connections are shared across the threadpool FastAPI runs sync
    work on, so the same-thread check is turned off for them.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    if not settings.database_url:
        raise ValueError("DATABASE_URL is not set; the SQL document store needs a connection string")

    connect_args: dict[str, Any] = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    return create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Documents are returned to callers after commit
    return sessionmaker(bind=engine, expire_on_commit=False)
