"""SQL implementations of repository interfaces."""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from storefront.app.db.context import TenantContext
from storefront.app.db.models import DocumentRow, VersionRow
from storefront.app.db.queries import query_documents
from storefront.app.errors import ConcurrentPublishingError, StorageUnavailableError
from storefront.app.models.common import VersionStatus
from storefront.app.models.publishing import PublishingUpdate
from storefront.app.models.versions import Document, Version
from storefront.app.publishing import apply_publishing_update

logger = logging.getLogger(__name__)


def _to_version(row: VersionRow) -> Version:
    return Version(
        version=row.version,
        blocks=row.blocks or [],
        status=VersionStatus(row.status),
        created_at=row.created_at,
        last_saved_at=row.last_saved_at,
        published_at=row.published_at,
        created_by=row.created_by,
        comment=row.comment,
        tag=row.tag,
        tags=row.tags,
        priority=row.priority,
        is_default=row.is_default,
        active_from=row.active_from,
        active_to=row.active_to,
    )


def _to_document(row: DocumentRow) -> Document:
    return Document(
        slug=row.slug,
        name=row.name,
        versions=[_to_version(v) for v in row.versions],
        current_version=row.current_version,
        current_published_version=row.current_published_version,
        created_at=row.created_at,
        updated_at=row.updated_at,
        revision=row.revision,
    )


def _write_version(version: Version, row: VersionRow) -> None:
    """Copy publishing fields from a domain version onto its row."""
    row.status = version.status.value
    row.published_at = version.published_at
    row.last_saved_at = version.last_saved_at
    row.comment = version.comment
    row.tag = version.tag
    row.tags = version.tags.model_dump(by_alias=True, exclude_none=True) if version.tags else None
    row.priority = version.priority
    row.is_default = version.is_default
    row.active_from = version.active_from
    row.active_to = version.active_to


class SqlDocumentRepository:
    """SQL implementation of DocumentRepository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _find(self, slug: str, ctx: TenantContext) -> DocumentRow | None:
        return query_documents(self._session, ctx).filter(DocumentRow.slug == slug).first()

    def get_document(self, slug: str, ctx: TenantContext) -> Document | None:
        """Get a document with all its versions.

        Raises:
            StorageUnavailableError: If the database cannot be queried
        """
        try:
            row = self._find(slug, ctx)
        except OperationalError as e:
            raise StorageUnavailableError(f"Could not load document {slug!r}") from e
        if row is None:
            return None
        return _to_document(row)

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

        if self._find(slug, ctx) is not None:
            raise ValueError(f"Document {slug!r} already exists")

        row = DocumentRow(
            tenant_id=ctx.tenant_id,
            slug=slug,
            name=name,
            current_version=1,
            created_at=now,
            updated_at=now,
        )
        row.versions.append(
            VersionRow(
                version=1,
                blocks=blocks or [],
                status=VersionStatus.draft.value,
                created_at=now,
                last_saved_at=now,
                created_by=created_by,
                priority=0,
                is_default=False,
            )
        )

        self._session.add(row)
        self._session.commit()

        return _to_document(row)

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

        row = self._find(slug, ctx)
        if row is None:
            return None

        number = max((v.version for v in row.versions), default=0) + 1
        version_row = VersionRow(
            version=number,
            blocks=blocks,
            status=VersionStatus.draft.value,
            created_at=now,
            last_saved_at=now,
            created_by=created_by,
            comment=comment,
            priority=0,
            is_default=False,
        )
        row.versions.append(version_row)
        row.current_version = number
        row.updated_at = now

        try:
            self._session.commit()
        except (StaleDataError, IntegrityError) as e:
            self._session.rollback()
            raise ConcurrentPublishingError(slug) from e

        return _to_version(version_row)

    def apply_publishing(
        self, slug: str, update: PublishingUpdate, ctx: TenantContext, now: datetime
    ) -> Version | None:
        """Atomically apply a publishing update in a single transaction.

        The document row's revision is checked on flush; a concurrent writer
        that committed first makes this update fail instead of interleaving.
        """
        row = self._find(slug, ctx)
        if row is None:
            return None

        target = next((v for v in row.versions if v.version == update.version_number), None)
        if target is None:
            return None

        # Computed before any row is touched so a rejected update writes nothing
        updated = apply_publishing_update(_to_version(target), update, now)

        try:
            row.updated_at = now

            if update.is_default is True:
                for sibling in row.versions:
                    if sibling is not target and sibling.is_default:
                        sibling.is_default = False
                # Clear siblings before setting the target so the partial
                # unique index never sees two defaults
                self._session.flush()

            _write_version(updated, target)
            if update.status == VersionStatus.published:
                row.current_published_version = updated.version

            self._session.commit()
        except (StaleDataError, IntegrityError) as e:
            self._session.rollback()
            logger.warning(
                "Concurrent publishing write rejected for %s",
                slug,
                extra={"structured": {"tenant": ctx.tenant_id, "slug": slug, "error": type(e).__name__}},
            )
            raise ConcurrentPublishingError(slug) from e

        return updated
