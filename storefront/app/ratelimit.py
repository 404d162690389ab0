"""Per-tenant rate limits for the mutating endpoints.

Each bucket (currently only ``publish``) has its own limiter; keys are
scoped by tenant so one tenant's admins cannot exhaust another's quota.
"""

from collections.abc import Mapping
from datetime import UTC, datetime

import redis

from storefront.app.config import Settings
from storefront.app.db.context import TenantContext
from storefront.app.db.inmemory import InMemoryRateLimiter
from storefront.app.db.repositories import RateLimiter, RetryAfter

PUBLISH_BUCKET = "publish"


def make_rate_limit_key(ctx: TenantContext, bucket: str) -> str:
    """Rate limit key for a tenant and bucket, e.g. ``acme:publish``."""
    return f"{ctx.tenant_id}:{bucket}"


class RedisRateLimiter:
    """Redis-backed fixed window shared by every worker (INCR + EXPIRE)."""

    def __init__(self, redis_client: redis.Redis, max_requests: int, window_seconds: int = 60) -> None:
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Count the request and report when the window's quota is exhausted."""
        window_start = int(now.timestamp()) // self._window_seconds * self._window_seconds
        redis_key = f"ratelimit:{key}:{window_start}"

        count = self._redis.incr(redis_key)
        if count == 1:
            self._redis.expire(redis_key, self._window_seconds)

        if count <= self._max_requests:
            return None

        ttl = self._redis.ttl(redis_key)
        return RetryAfter(seconds=max(1, ttl))


def create_rate_limiter(settings: Settings, max_requests: int) -> RateLimiter:
    """Redis limiter when REDIS_URL is configured, in-memory otherwise."""
    if settings.redis_url:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        return RedisRateLimiter(client, max_requests=max_requests)
    return InMemoryRateLimiter(max_requests=max_requests)


class TenantRateLimits:
    """Quota checks by bucket name; buckets without a limiter are unlimited."""

    def __init__(self, limiters: Mapping[str, RateLimiter]) -> None:
        self._limiters = dict(limiters)

    def check(self, bucket: str, ctx: TenantContext, now: datetime | None = None) -> RetryAfter | None:
        """Consume one request from the tenant's bucket.

        Returns:
            RetryAfter if the tenant is over quota, None if allowed
        """
        limiter = self._limiters.get(bucket)
        if limiter is None:
            return None
        return limiter.check_quota(make_rate_limit_key(ctx, bucket), now or datetime.now(UTC))


def create_rate_limits(settings: Settings) -> TenantRateLimits:
    """Rate limits for the configured buckets."""
    return TenantRateLimits({PUBLISH_BUCKET: create_rate_limiter(settings, settings.publish_ops_per_min)})
