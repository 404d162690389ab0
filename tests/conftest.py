"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.app.config import Settings
from storefront.app.db.context import TenantContext
from storefront.app.db.models import Base
from storefront.app.main import create_app
from storefront.app.models import Version, VersionStatus

FIXED_NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation instant."""
    return FIXED_NOW


@pytest.fixture
def tenant() -> TenantContext:
    """Default test tenant."""
    return TenantContext(tenant_id="tenant-a")


@pytest.fixture
def make_version() -> Callable[..., Version]:
    """Factory for versions with sensible defaults.

    Usage:
        v = make_version(2, status="published", tags={"segment": "vip"})
    """

    def _make(number: int, **overrides: Any) -> Version:
        data: dict[str, Any] = {
            "version": number,
            "status": VersionStatus.published,
            "created_at": FIXED_NOW,
            "last_saved_at": FIXED_NOW,
            "blocks": [{"id": f"block-{number}", "type": "rich-text"}],
        }
        data.update(overrides)
        return Version.model_validate(data)

    return _make


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment."""
    return Settings(database_url=None, redis_url=None, _env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """Application backed by the in-memory document store."""
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client for the in-memory application."""
    return TestClient(app)


@pytest.fixture
def sqlite_session() -> Generator[Session, None, None]:
    """Session on a fresh in-memory SQLite database with the schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)

    with factory() as session:
        yield session

    Base.metadata.drop_all(engine)
    engine.dispose()
