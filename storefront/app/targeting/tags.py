"""Tag normalization - canonical shapes for the version resolver."""

from collections.abc import Iterable, Mapping
from typing import Any

from storefront.app.models.context import TargetingTags, VisitorContext
from storefront.app.models.versions import Version, VersionTags

# Attribute keys that are first-class targeting fields
ATTRIBUTE_FIELDS = ("region", "language", "device")
CAMPAIGN_ALIASES = ("campaign", "tag", "homeTag", "templateTag")


def normalize_value(value: object) -> str | None:
    """Trim a string value; non-strings and blank strings become None."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_attributes(attributes: Mapping[str, Any] | None) -> dict[str, str] | None:
    """Drop empty keys and blank values; None when nothing remains."""
    if not attributes:
        return None

    normalized: dict[str, str] = {}
    for key, raw in attributes.items():
        if not key:
            continue
        value = normalize_value(raw)
        if value:
            normalized[key] = value

    return normalized or None


def normalize_address_states(states: Iterable[Any] | None) -> list[str] | None:
    """Upper-case, trim and de-duplicate address states, keeping order."""
    if not states or isinstance(states, str):
        return None

    seen: list[str] = []
    for raw in states:
        value = normalize_value(raw)
        if value and value.upper() not in seen:
            seen.append(value.upper())
    return seen or None


def first_campaign(params: Mapping[str, Any]) -> str | None:
    """First non-empty value among the campaign aliases."""
    for key in CAMPAIGN_ALIASES:
        value = normalize_value(params.get(key))
        if value:
            return value
    return None


def normalize_version_tags(raw: VersionTags | Mapping[str, Any] | None) -> VersionTags | None:
    """Canonicalize a version's tag bag.

    Accepts both the flat shape and the legacy shape where region, language,
    device and addressStates are nested under ``attributes``.
    """
    if raw is None:
        return None
    data = raw.model_dump(by_alias=True) if isinstance(raw, VersionTags) else dict(raw)

    attributes = dict(data.get("attributes") or {})
    lifted: dict[str, Any] = {}
    for key in ATTRIBUTE_FIELDS:
        nested = attributes.pop(key, None)
        lifted[key] = normalize_value(data.get(key)) or normalize_value(nested)

    nested_states = attributes.pop("addressStates", None)
    address_states = normalize_address_states(
        data.get("addressStates") or data.get("address_states") or nested_states
    )

    tags = VersionTags(
        campaign=normalize_value(data.get("campaign")),
        segment=normalize_value(data.get("segment")),
        address_states=address_states,
        attributes=normalize_attributes(attributes),
        **lifted,
    )
    if not tags.model_dump(exclude_none=True):
        return None
    return tags


def tags_from_version(version: Version) -> VersionTags | None:
    """Normalized tags of a version, folding the legacy ``tag`` into campaign."""
    tags = normalize_version_tags(version.tags)
    legacy = normalize_value(version.tag)
    if legacy and (tags is None or tags.campaign is None):
        base = tags or VersionTags()
        return base.model_copy(update={"campaign": legacy})
    return tags


def _build_targeting(
    campaign: str | None,
    segment: str | None,
    region: str | None,
    device: str | None,
    language: str | None,
    address_state: str | None,
    attributes: Mapping[str, Any] | None,
) -> TargetingTags | None:
    tags = TargetingTags(
        campaign=campaign,
        segment=normalize_value(segment),
        region=normalize_value(region),
        device=normalize_value(device),
        language=normalize_value(language),
        address_state=normalize_value(address_state),
        attributes=normalize_attributes(
            {k: v for k, v in (attributes or {}).items() if k not in ATTRIBUTE_FIELDS}
        ),
    )
    if not tags.model_dump(exclude_none=True):
        return None
    return tags


def context_to_tags(
    context: VisitorContext | None, address_state: str | None = None
) -> TargetingTags | None:
    """Derive resolver tags from a visitor context."""
    if context is None:
        return _build_targeting(None, None, None, None, None, address_state, None)

    campaign = first_campaign(context.model_dump(by_alias=True))
    return _build_targeting(
        campaign,
        context.segment,
        context.region,
        context.device,
        context.language,
        address_state,
        None,
    )


def normalize_targeting_tags(payload: Mapping[str, Any] | None) -> TargetingTags | None:
    """Build resolver tags from a raw API payload (query params or JSON body)."""
    if not payload:
        return None

    attributes = payload.get("attributes")
    attributes = attributes if isinstance(attributes, Mapping) else {}

    return _build_targeting(
        first_campaign(payload),
        payload.get("segment"),
        payload.get("region") or attributes.get("region"),
        payload.get("device") or attributes.get("device"),
        payload.get("language") or attributes.get("language"),
        payload.get("addressState") or payload.get("address_state"),
        attributes,
    )


def serialize_tags_key(tags: TargetingTags | None) -> str:
    """Stable string key for a tag bag, used in logs."""
    if tags is None:
        return "default"

    parts: list[str] = []
    for prefix, value in (
        ("c", tags.campaign),
        ("s", tags.segment),
        ("r", tags.region),
        ("d", tags.device),
        ("l", tags.language),
        ("as", tags.address_state),
    ):
        if value:
            parts.append(f"{prefix}:{value}")

    if tags.attributes:
        attr_parts = [f"{key}:{value}" for key, value in sorted(tags.attributes.items()) if value]
        if attr_parts:
            parts.append("a:" + "|".join(attr_parts))

    return "|".join(parts) if parts else "default"
