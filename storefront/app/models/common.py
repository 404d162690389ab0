"""Common types and enums shared across all models."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON with the storefront clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VersionStatus(str, Enum):
    """Lifecycle status of a document version."""

    draft = "draft"
    published = "published"


class MatchedBy(str, Enum):
    """Which resolution rule selected the returned version."""

    tags = "tags"
    default = "default"
    fallback = "fallback"
    priority = "priority"


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def coerce_datetime(value: object) -> datetime | None:
    """Coerce a string or datetime into an aware UTC datetime.

    Anything that cannot be parsed (including empty strings) becomes None
    rather than an error.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None
