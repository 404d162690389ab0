"""In-memory implementations of repository interfaces."""

import threading
from datetime import UTC, datetime
from typing import Any

from storefront.app.db.context import TenantContext
from storefront.app.db.repositories import RetryAfter
from storefront.app.models.common import VersionStatus
from storefront.app.models.publishing import PublishingUpdate
from storefront.app.models.versions import Document, Version
from storefront.app.publishing import apply_publishing_update


class InMemoryDocumentRepository:
    """In-memory implementation of DocumentRepository.

    Documents are immutable snapshots replaced wholesale under a lock, so a
    publishing update (including the default-exclusivity clearing) is atomic.
    """

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], Document] = {}
        self._lock = threading.Lock()

    def get_document(self, slug: str, ctx: TenantContext) -> Document | None:
        """Get a document with all its versions."""
        return self._documents.get((ctx.tenant_id, slug))

    def create_document(
        self,
        slug: str,
        name: str,
        ctx: TenantContext,
        *,
        blocks: list[dict[str, Any]] | None = None,
        created_by: str | None = None,
        now: datetime | None = None,
    ) -> Document:
        """Create a document with an initial draft version 1."""
        now = now or datetime.now(UTC)
        key = (ctx.tenant_id, slug)

        with self._lock:
            if key in self._documents:
                raise ValueError(f"Document {slug!r} already exists")

            first = Version(
                version=1,
                blocks=blocks or [],
                status=VersionStatus.draft,
                created_at=now,
                last_saved_at=now,
                created_by=created_by,
            )
            document = Document(
                slug=slug,
                name=name,
                versions=[first],
                current_version=1,
                created_at=now,
                updated_at=now,
            )
            self._documents[key] = document
            return document

    def add_version(
        self,
        slug: str,
        ctx: TenantContext,
        *,
        blocks: list[dict[str, Any]],
        created_by: str | None = None,
        comment: str | None = None,
        now: datetime | None = None,
    ) -> Version | None:
        """Append a new draft version."""
        now = now or datetime.now(UTC)
        key = (ctx.tenant_id, slug)

        with self._lock:
            document = self._documents.get(key)
            if document is None:
                return None

            number = max((v.version for v in document.versions), default=0) + 1
            version = Version(
                version=number,
                blocks=blocks,
                status=VersionStatus.draft,
                created_at=now,
                last_saved_at=now,
                created_by=created_by,
                comment=comment,
            )
            self._documents[key] = document.model_copy(
                update={
                    "versions": [*document.versions, version],
                    "current_version": number,
                    "updated_at": now,
                    "revision": document.revision + 1,
                }
            )
            return version

    def apply_publishing(
        self, slug: str, update: PublishingUpdate, ctx: TenantContext, now: datetime
    ) -> Version | None:
        """Atomically apply a publishing update."""
        key = (ctx.tenant_id, slug)

        with self._lock:
            document = self._documents.get(key)
            if document is None:
                return None

            target = document.get_version(update.version_number)
            if target is None:
                return None

            updated = apply_publishing_update(target, update, now)

            versions: list[Version] = []
            for version in document.versions:
                if version.version == updated.version:
                    versions.append(updated)
                elif update.is_default is True and version.is_default:
                    versions.append(version.model_copy(update={"is_default": False}))
                else:
                    versions.append(version)

            changes: dict[str, Any] = {
                "versions": versions,
                "updated_at": now,
                "revision": document.revision + 1,
            }
            if update.status == VersionStatus.published:
                changes["current_published_version"] = updated.version

            self._documents[key] = document.model_copy(update=changes)
            return updated


class InMemoryRateLimiter:
    """Process-local fixed window aligned to the same boundaries as the Redis limiter."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._counts: dict[tuple[str, int], int] = {}
        self._lock = threading.Lock()

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Count the request and report when the window's quota is exhausted."""
        timestamp = now.timestamp()
        window_start = int(timestamp) // self._window_seconds * self._window_seconds

        with self._lock:
            # Drop counters of windows that have ended
            for stale in [k for k in self._counts if k[1] < window_start]:
                del self._counts[stale]

            count = self._counts.get((key, window_start), 0) + 1
            self._counts[(key, window_start)] = count

        if count <= self._max_requests:
            return None

        remaining = window_start + self._window_seconds - timestamp
        return RetryAfter(seconds=max(1, int(remaining)))
