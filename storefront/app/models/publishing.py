"""Publishing update payload with tri-state fields."""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from storefront.app.models.common import CamelModel, VersionStatus, coerce_datetime
from storefront.app.models.versions import VersionTags

# Flat targeting keys accepted from the admin publish form
_FLAT_TAG_KEYS = ("campaign", "segment", "region", "language", "device", "addressStates", "attributes")


class PublishingUpdate(CamelModel):
    """Partial update applied to one version of a document.

    Tri-state fields (tags, priority, active_from, active_to, comment):
    - absent from the payload: leave the stored value untouched
    - explicit null: unset the stored value
    - any other value: set it

    Presence is read from ``model_fields_set``, so construct instances with
    only the fields the caller actually sent.
    """

    version_number: int = Field(..., ge=1)
    tags: VersionTags | None = None
    priority: int | None = None
    is_default: bool | None = None
    active_from: datetime | None = None
    active_to: datetime | None = None
    comment: str | None = None
    status: VersionStatus | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_tags(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "tags" in data:
            return data

        flat = {key: data[key] for key in _FLAT_TAG_KEYS if key in data}
        if not flat:
            return data

        lifted = {key: value for key, value in data.items() if key not in _FLAT_TAG_KEYS}
        lifted["tags"] = flat
        return lifted

    @field_validator("active_from", "active_to", mode="before")
    @classmethod
    def _coerce_dates(cls, value: object) -> datetime | None:
        # Unparsable dates unset the field instead of rejecting the edit
        return coerce_datetime(value)

    def is_set(self, field_name: str) -> bool:
        """Whether the caller supplied a value (possibly null) for the field."""
        return field_name in self.model_fields_set

    def has_changes(self) -> bool:
        """Whether any field besides the version number was supplied."""
        return bool(self.model_fields_set - {"version_number"})
