"""Publishing mutations - admin edits to one version of a document."""

import logging
from datetime import UTC, datetime
from typing import Any

from storefront.app.db.context import TenantContext
from storefront.app.db.repositories import DocumentRepository
from storefront.app.errors import ConcurrentPublishingError, InvalidActiveWindowError
from storefront.app.models.common import VersionStatus, as_utc
from storefront.app.models.publishing import PublishingUpdate
from storefront.app.models.versions import Version
from storefront.app.targeting.tags import normalize_version_tags
from storefront.app.utils.metrics import record_publishing

logger = logging.getLogger(__name__)

# Fields where an explicit null unsets the stored value
TRI_STATE_FIELDS = ("tags", "priority", "active_from", "active_to", "comment")


def apply_publishing_update(version: Version, update: PublishingUpdate, now: datetime) -> Version:
    """Apply an update to a single version without touching its siblings.

    Args:
        version: Stored version
        update: Partial update (tri-state fields read from model_fields_set)
        now: Timestamp for last_saved_at / published_at

    Returns:
        New Version instance; the input is not modified

    Raises:
        InvalidActiveWindowError: If the resulting window starts after it ends
    """
    changes: dict[str, Any] = {}

    if update.is_set("tags"):
        changes["tags"] = normalize_version_tags(update.tags)
        changes["tag"] = None  # explicit tags supersede the legacy single tag

    if update.is_set("priority"):
        changes["priority"] = update.priority if update.priority is not None else 0

    if update.is_default is not None:
        changes["is_default"] = update.is_default

    for name in ("active_from", "active_to", "comment"):
        if update.is_set(name):
            changes[name] = getattr(update, name)

    if update.status is not None:
        changes["status"] = update.status
        if update.status == VersionStatus.published:
            changes["published_at"] = now

    if not changes:
        return version

    active_from = changes.get("active_from", version.active_from)
    active_to = changes.get("active_to", version.active_to)
    if active_from is not None and active_to is not None and active_from > active_to:
        raise InvalidActiveWindowError(version.version)

    changes["last_saved_at"] = now
    return version.model_copy(update=changes)


class PublishingMutator:
    """Applies admin publishing edits through a document repository.

    The repository performs the target write, the default-exclusivity
    clearing and the current_published_version pointer move as one atomic
    step, so two versions are never simultaneously default.
    """

    def __init__(self, repository: DocumentRepository) -> None:
        self._repository = repository

    def update_publishing(
        self,
        slug: str,
        update: PublishingUpdate,
        ctx: TenantContext,
        now: datetime | None = None,
    ) -> Version | None:
        """Apply a publishing update to one (document, version) pair.

        Args:
            slug: Document slug
            update: Partial update
            ctx: Tenant context
            now: Write timestamp (defaults to the current UTC time)

        Returns:
            Updated version, or None if the document/version does not exist

        Raises:
            InvalidActiveWindowError: If the resulting window is inverted
            ConcurrentPublishingError: If another writer won the race
        """
        now = as_utc(now) if now is not None else datetime.now(UTC)

        if not update.has_changes():
            record_publishing("unchanged")
            document = self._repository.get_document(slug, ctx)
            return document.get_version(update.version_number) if document else None

        try:
            updated = self._repository.apply_publishing(slug, update, ctx, now)
        except InvalidActiveWindowError:
            record_publishing("invalid_window")
            raise
        except ConcurrentPublishingError:
            record_publishing("conflict")
            raise

        if updated is None:
            record_publishing("miss")
            logger.info(
                "Publishing update missed: %s v%s",
                slug,
                update.version_number,
                extra={"structured": {"tenant": ctx.tenant_id, "slug": slug}},
            )
            return None

        record_publishing("updated")
        log_data = {
            "tenant": ctx.tenant_id,
            "slug": slug,
            "version": updated.version,
            "fields": sorted(update.model_fields_set - {"version_number"}),
            "status": updated.status.value,
        }
        if update.is_default is True:
            # Default flips are the one multi-row write; surface them to operators
            logger.warning(
                "Default version of %s moved to v%s", slug, updated.version, extra={"structured": log_data}
            )
        else:
            logger.info("Publishing updated: %s v%s", slug, updated.version, extra={"structured": log_data})

        return updated
