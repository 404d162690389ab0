"""FastAPI application."""

from fastapi import FastAPI

from storefront.app.api.routes.health import router as health_router
from storefront.app.api.routes.metrics import router as metrics_router
from storefront.app.api.routes.pages import router as pages_router
from storefront.app.api.routes.storefront import router as storefront_router
from storefront.app.config import Settings, get_settings
from storefront.app.db.engine import create_engine_from_settings, create_session_factory
from storefront.app.db.inmemory import InMemoryDocumentRepository
from storefront.app.middleware.visitor_context import VisitorContextBuilder, VisitorContextMiddleware
from storefront.app.ratelimit import create_rate_limits


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Documents live in SQL when DATABASE_URL is set, in memory otherwise.
    """
    settings = settings or get_settings()
    app = FastAPI(title="Storefront API", version="0.1.0")
    app.state.settings = settings

    app.state.documents = InMemoryDocumentRepository()
    app.state.session_factory = (
        create_session_factory(create_engine_from_settings(settings)) if settings.database_url else None
    )
    app.state.rate_limits = create_rate_limits(settings)

    app.add_middleware(VisitorContextMiddleware, builder=VisitorContextBuilder(settings))

    # Register routes; the storefront catch-all goes last
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(pages_router)
    app.include_router(storefront_router, tags=["storefront"])

    return app


app = create_app()
