"""Repository protocol interfaces for data access."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from storefront.app.db.context import TenantContext
from storefront.app.models.publishing import PublishingUpdate
from storefront.app.models.versions import Document, Version


class DocumentRepository(Protocol):
    """Repository for versioned documents (pages and the home page)."""

    def get_document(self, slug: str, ctx: TenantContext) -> Document | None:
        """Get a document with all its versions.

        Args:
            slug: Document slug
            ctx: Tenant context (enforces tenancy)

        Returns:
            Document or None if not found
        """
        ...

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
        """Create a document with an initial draft version 1.

        Raises:
            ValueError: If the slug already exists for the tenant
        """
        ...

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
        """Append a new draft version and move current_version to it.

        Returns:
            The new version, or None if the document does not exist
        """
        ...

    def apply_publishing(
        self, slug: str, update: PublishingUpdate, ctx: TenantContext, now: datetime
    ) -> Version | None:
        """Atomically apply a publishing update.

        Within one atomic step: clear is_default on sibling versions when the
        update sets it, write the target version, and move
        current_published_version when the update publishes.

        Returns:
            Updated version, or None (with no writes) on a miss

        Raises:
            InvalidActiveWindowError: If the resulting window is inverted
            ConcurrentPublishingError: If a concurrent writer won
        """
        ...


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
