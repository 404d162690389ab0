"""Page resolution - the resolver call sites for pages and the home document."""

import logging
from datetime import datetime
from typing import Any

from storefront.app.db.context import TenantContext
from storefront.app.db.repositories import DocumentRepository
from storefront.app.errors import StorageUnavailableError
from storefront.app.models.common import CamelModel, MatchedBy, VersionStatus
from storefront.app.models.context import TargetingTags
from storefront.app.models.versions import Document, Version, VersionTags
from storefront.app.targeting.resolver import resolve_version
from storefront.app.targeting.tags import serialize_tags_key, tags_from_version
from storefront.app.utils.metrics import record_resolution

logger = logging.getLogger(__name__)


class PageResolution(CamelModel):
    """Resolved version payload handed to presentation."""

    slug: str
    matched_by: MatchedBy
    version: int
    status: VersionStatus
    blocks: list[dict[str, Any]]
    tags: VersionTags | None = None
    priority: int = 0
    is_default: bool = False
    active_from: datetime | None = None
    active_to: datetime | None = None
    comment: str | None = None
    created_at: datetime
    last_saved_at: datetime
    published_at: datetime | None = None


def _payload(slug: str, matched_by: MatchedBy, version: Version) -> PageResolution:
    return PageResolution(
        slug=slug,
        matched_by=matched_by,
        version=version.version,
        status=version.status,
        blocks=version.blocks,
        tags=tags_from_version(version),
        priority=version.priority,
        is_default=version.is_default,
        active_from=version.active_from,
        active_to=version.active_to,
        comment=version.comment,
        created_at=version.created_at,
        last_saved_at=version.last_saved_at,
        published_at=version.published_at,
    )


def _load(repository: DocumentRepository, slug: str, ctx: TenantContext) -> Document | None:
    """Fetch a document, degrading to None when storage is unavailable."""
    try:
        return repository.get_document(slug, ctx)
    except StorageUnavailableError as e:
        logger.error(
            "Storage unavailable while loading %s",
            slug,
            extra={"structured": {"tenant": ctx.tenant_id, "slug": slug, "error": type(e).__name__}},
        )
        return None


def _resolve(
    document: Document,
    call_site: str,
    *,
    allowed_statuses: tuple[VersionStatus, ...],
    tags: TargetingTags | None,
    fallback_version_number: int | None,
    respect_active_window: bool,
    now: datetime | None,
) -> PageResolution | None:
    result = resolve_version(
        document.versions,
        allowed_statuses=allowed_statuses,
        tags=tags,
        fallback_version_number=fallback_version_number,
        respect_active_window=respect_active_window,
        now=now,
    )
    record_resolution(call_site, result.matched_by.value if result else None)
    if result is None:
        logger.info(
            "No version resolved for %s",
            document.slug,
            extra={"structured": {"slug": document.slug, "tags": serialize_tags_key(tags)}},
        )
        return None

    logger.info(
        "Resolved %s v%s by %s",
        document.slug,
        result.version.version,
        result.matched_by.value,
        extra={
            "structured": {
                "slug": document.slug,
                "version": result.version.version,
                "matched_by": result.matched_by.value,
                "tags": serialize_tags_key(tags),
            }
        },
    )
    return _payload(document.slug, result.matched_by, result.version)


def _resolve_published(
    repository: DocumentRepository,
    slug: str,
    ctx: TenantContext,
    call_site: str,
    *,
    tags: TargetingTags | None,
    include_draft: bool,
    respect_active_window: bool,
    now: datetime | None,
) -> PageResolution | None:
    document = _load(repository, slug, ctx)
    if document is None:
        record_resolution(call_site, None)
        return None

    allowed = (VersionStatus.draft, VersionStatus.published) if include_draft else (VersionStatus.published,)
    return _resolve(
        document,
        call_site,
        allowed_statuses=allowed,
        tags=tags,
        fallback_version_number=document.current_published_version,
        respect_active_window=respect_active_window,
        now=now,
    )


def resolve_page_version(
    repository: DocumentRepository,
    slug: str,
    ctx: TenantContext,
    *,
    tags: TargetingTags | None = None,
    include_draft: bool = False,
    respect_active_window: bool = True,
    now: datetime | None = None,
) -> PageResolution | None:
    """Resolve the version of a page to render for the visitor's tags.

    Falls back to the document's current_published_version pointer.

    Returns:
        Resolution payload, or None for "no content"
    """
    return _resolve_published(
        repository,
        slug,
        ctx,
        "page",
        tags=tags,
        include_draft=include_draft,
        respect_active_window=respect_active_window,
        now=now,
    )


def resolve_home_version(
    repository: DocumentRepository,
    home_slug: str,
    ctx: TenantContext,
    *,
    tags: TargetingTags | None = None,
    now: datetime | None = None,
) -> PageResolution | None:
    """Resolve the published home document version for the visitor's tags."""
    return _resolve_published(
        repository,
        home_slug,
        ctx,
        "home",
        tags=tags,
        include_draft=False,
        respect_active_window=True,
        now=now,
    )


def resolve_latest_version(
    repository: DocumentRepository,
    slug: str,
    ctx: TenantContext,
    *,
    tags: TargetingTags | None = None,
    allow_draft: bool = True,
) -> PageResolution | None:
    """Preview flavour: drafts allowed, window ignored, falls back to current_version."""
    document = _load(repository, slug, ctx)
    if document is None:
        record_resolution("preview", None)
        return None

    allowed = (VersionStatus.draft, VersionStatus.published) if allow_draft else (VersionStatus.published,)
    return _resolve(
        document,
        "preview",
        allowed_statuses=allowed,
        tags=tags,
        fallback_version_number=document.current_version,
        respect_active_window=False,
        now=None,
    )
