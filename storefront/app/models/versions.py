"""Document and version models."""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from storefront.app.models.common import CamelModel, VersionStatus, as_utc, coerce_datetime


class VersionTags(CamelModel):
    """Targeting constraints declared on a version.

    Every field is optional; a missing field is not a constraint.
    """

    campaign: str | None = None
    segment: str | None = None
    region: str | None = None
    device: str | None = None
    language: str | None = None
    address_states: list[str] | None = None
    attributes: dict[str, str] | None = None


class Version(CamelModel):
    """Snapshot of a document's content plus publishing metadata."""

    version: int = Field(..., ge=1)
    blocks: list[dict[str, Any]] = Field(default_factory=list)
    status: VersionStatus = VersionStatus.draft
    created_at: datetime
    last_saved_at: datetime
    published_at: datetime | None = None
    created_by: str | None = None
    comment: str | None = None
    tag: str | None = None  # legacy single campaign tag
    tags: VersionTags | None = None
    priority: int = 0
    is_default: bool = False
    active_from: datetime | None = None
    active_to: datetime | None = None

    @field_validator("active_from", "active_to", mode="before")
    @classmethod
    def _coerce_window(cls, value: object) -> datetime | None:
        return coerce_datetime(value)

    @field_validator("created_at", "last_saved_at", "published_at")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _window_ordered(self) -> "Version":
        if self.active_from and self.active_to and self.active_from > self.active_to:
            raise ValueError("active_from must not be after active_to")
        return self


class Document(CamelModel):
    """A page (or the home page) owning an ordered list of versions."""

    slug: str = Field(..., min_length=1)
    name: str
    versions: list[Version] = Field(default_factory=list)
    current_version: int = 0
    current_published_version: int | None = None
    created_at: datetime
    updated_at: datetime
    revision: int = 1

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _unique_version_numbers(self) -> "Document":
        numbers = [v.version for v in self.versions]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"duplicate version numbers in document {self.slug!r}")
        return self

    def get_version(self, version_number: int) -> Version | None:
        """Return the version with the given number, if any."""
        for version in self.versions:
            if version.version == version_number:
                return version
        return None
