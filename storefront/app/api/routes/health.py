"""Liveness and readiness probes.

``/health`` only proves the process serves requests. ``/healthz`` also
touches the document store and Redis when they are configured; an
unconfigured backend counts as healthy because the in-memory fallback
takes its place.
"""

from typing import Any

import redis
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

router = APIRouter()


async def check_db(session_factory: sessionmaker[Session] | None) -> tuple[bool, str]:
    """Run a trivial query through the document store's sessions."""
    if session_factory is None:
        return (True, "in_memory")

    try:
        with session_factory() as session:
            session.execute(text("SELECT 1"))
    except Exception as e:
        return (False, f"error: {type(e).__name__}")
    return (True, "ok")


async def check_redis(redis_url: str | None) -> tuple[bool, str]:
    """Ping the Redis instance backing the shared rate limits."""
    if not redis_url:
        return (True, "not_configured")

    try:
        redis.from_url(redis_url, decode_responses=True).ping()  # type: ignore[no-untyped-call]
    except Exception as e:
        return (False, f"error: {type(e).__name__}")
    return (True, "ok")


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness."""
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness: 200 when every configured backend answers, 503 otherwise."""
    db_ok, db_status = await check_db(request.app.state.session_factory)
    redis_ok, redis_status = await check_redis(request.app.state.settings.redis_url)

    body = {
        "status": "ok" if db_ok and redis_ok else "degraded",
        "components": {"db": db_status, "redis": redis_status},
    }
    if not (db_ok and redis_ok):
        return JSONResponse(body, status_code=503)
    return body
