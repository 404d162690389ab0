"""Visitor-context cookie codec.

Pure functions: build a context from query parameters, merge contexts,
and encode/decode the cookie payload. No I/O.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, unquote

from pydantic import ValidationError

from storefront.app.models.context import UtmParams, VisitorContext
from storefront.app.targeting.tags import first_campaign, normalize_value

logger = logging.getLogger(__name__)

_TARGETING_FIELDS = ("segment", "region", "language", "device")
_STRING_FIELDS = (
    "campaign",
    "tag",
    "home_tag",
    "template_tag",
    "segment",
    "region",
    "language",
    "device",
    "landing_page",
    "landed_at",
)


def build_context_from_params(
    params: Mapping[str, str | None], source: str = "url"
) -> VisitorContext | None:
    """Build a visitor context from campaign-like query parameters.

    The first non-empty of campaign/tag/homeTag/templateTag becomes the
    canonical ``campaign``. Only fields carrying data are set, so a merge can
    tell an absent field from a present one.

    Returns:
        Context, or None when no targeting field carries data
    """
    fields: dict[str, Any] = {}

    campaign = first_campaign(params)
    if campaign:
        fields["campaign"] = campaign

    for name in _TARGETING_FIELDS:
        value = normalize_value(params.get(name))
        if value:
            fields[name] = value

    if not fields:
        return None

    fields["source"] = source
    return VisitorContext(**fields)


def context_has_data(context: VisitorContext | None) -> bool:
    """Whether the context carries any field the resolver can match on."""
    if context is None:
        return False
    canonical = first_campaign(context.model_dump(by_alias=True))
    return bool(canonical or any(normalize_value(getattr(context, f)) for f in _TARGETING_FIELDS))


def _merge_utm(stored: UtmParams | None, incoming: UtmParams | None) -> UtmParams | None:
    if incoming is None:
        return stored

    merged = stored.model_dump() if stored else {}
    for name in incoming.model_fields_set:
        value = getattr(incoming, name)
        if value is not None:
            merged[name] = value

    merged = {key: value for key, value in merged.items() if value is not None}
    return UtmParams(**merged) if merged else None


def merge_contexts(stored: VisitorContext | None, incoming: VisitorContext | None) -> VisitorContext:
    """Merge an incoming (URL-derived) context over a stored one.

    Every field explicitly present on ``incoming`` overrides the stored
    value; absent fields keep the stored value. ``utm`` merges per
    sub-field. Neither argument is modified.
    """
    merged: dict[str, Any] = {}
    if stored is not None:
        merged = {name: getattr(stored, name) for name in VisitorContext.model_fields}

    if incoming is not None:
        for name in incoming.model_fields_set:
            value = getattr(incoming, name)
            if name == "utm":
                merged["utm"] = _merge_utm(merged.get("utm"), value)
            elif value is not None:
                merged[name] = value

    return VisitorContext(**{name: value for name, value in merged.items() if value is not None})


def encode_context(context: VisitorContext) -> str:
    """Serialize a context into a cookie-safe value (percent-encoded JSON)."""
    payload = context.model_dump_json(by_alias=True, exclude_none=True)
    return quote(payload, safe="")


def decode_context(raw: str | None) -> VisitorContext | None:
    """Parse a context cookie value.

    Malformed payloads are treated as "no context"; this never raises.

    Returns:
        Context, or None when the cookie is absent, malformed, or empty
    """
    if not raw:
        return None

    try:
        data = json.loads(unquote(raw))
    except (ValueError, RecursionError):
        # RecursionError: deeply nested arrays or objects
        logger.debug("Discarding malformed context cookie", extra={"structured": {"length": len(raw)}})
        return None

    if not isinstance(data, dict):
        return None

    for name in _STRING_FIELDS:
        alias = VisitorContext.model_fields[name].alias or name
        if alias in data:
            data[alias] = normalize_value(data[alias])

    if data.get("source") not in ("url", "cookie"):
        data["source"] = "cookie"

    try:
        context = VisitorContext.model_validate(data)
    except ValidationError:
        logger.debug("Context cookie failed validation", extra={"structured": {"keys": sorted(data)}})
        return None

    return context if context_has_data(context) else None
