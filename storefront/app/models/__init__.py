"""Models package - re-exports for convenience."""

from storefront.app.models.common import (
    CamelModel,
    MatchedBy,
    VersionStatus,
    as_utc,
    coerce_datetime,
)
from storefront.app.models.context import TargetingTags, UtmParams, VisitorContext
from storefront.app.models.publishing import PublishingUpdate
from storefront.app.models.resolution import ResolutionResult
from storefront.app.models.versions import Document, Version, VersionTags

__all__ = [
    # Common
    "CamelModel",
    "MatchedBy",
    "VersionStatus",
    "as_utc",
    "coerce_datetime",
    # Context
    "VisitorContext",
    "UtmParams",
    "TargetingTags",
    # Documents
    "Document",
    "Version",
    "VersionTags",
    # Resolution
    "ResolutionResult",
    # Publishing
    "PublishingUpdate",
]
