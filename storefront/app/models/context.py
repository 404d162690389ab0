"""Visitor context and targeting tag models."""

from typing import Literal

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from storefront.app.models.common import CamelModel


class UtmParams(CamelModel):
    """Campaign attribution captured from utm_* query parameters."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    content: str | None = None


class VisitorContext(CamelModel):
    """Per-session targeting state carried by the context cookie.

    Immutable: every request builds its own instance and merging produces
    a new object.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    campaign: str | None = None
    tag: str | None = None
    home_tag: str | None = None
    template_tag: str | None = None
    segment: str | None = None
    region: str | None = None
    language: str | None = None
    device: str | None = None
    utm: UtmParams | None = None
    landing_page: str | None = None
    landed_at: str | None = None
    source: Literal["url", "cookie"] | None = None


class TargetingTags(CamelModel):
    """Canonical tag bag the resolver compares versions against."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    campaign: str | None = None
    segment: str | None = None
    region: str | None = None
    device: str | None = None
    language: str | None = None
    address_state: str | None = None
    attributes: dict[str, str] | None = None
