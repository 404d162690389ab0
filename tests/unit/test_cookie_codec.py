"""Tests for the visitor-context cookie codec."""

import json
from urllib.parse import quote, unquote

import pytest

from storefront.app.models import UtmParams, VisitorContext
from storefront.app.targeting.cookie_codec import (
    build_context_from_params,
    context_has_data,
    decode_context,
    encode_context,
    merge_contexts,
)


def test_build_context_uses_first_campaign_alias() -> None:
    """Test the first non-empty alias becomes the canonical campaign."""
    context = build_context_from_params({"campaign": " ", "templateTag": "spring", "segment": "vip"})

    assert context is not None
    assert context.campaign == "spring"
    assert context.template_tag is None
    assert context.segment == "vip"
    assert context.source == "url"


def test_build_context_only_sets_present_fields() -> None:
    """Test fields without data are not marked as set."""
    context = build_context_from_params({"segment": "vip", "region": ""})

    assert context is not None
    assert context.model_fields_set == {"segment", "source"}


def test_build_context_without_data_is_none() -> None:
    """Test parameters with no targeting data produce no context."""
    assert build_context_from_params({}) is None
    assert build_context_from_params({"campaign": "  ", "device": None}) is None


def test_context_has_data() -> None:
    """Test only matchable fields count as data."""
    assert context_has_data(VisitorContext(tag="spring"))
    assert context_has_data(VisitorContext(device="mobile"))
    assert not context_has_data(VisitorContext(landing_page="/it", source="url"))
    assert not context_has_data(None)


def test_encode_decode_preserves_context() -> None:
    """Test a context survives the cookie encoding."""
    context = VisitorContext(
        campaign="spring",
        segment="vip",
        utm=UtmParams(source="newsletter"),
        landing_page="/it/products",
        landed_at="2026-06-15T12:00:00+00:00",
        source="url",
    )

    decoded = decode_context(encode_context(context))

    assert decoded is not None
    assert decoded.model_dump() == context.model_dump()


def test_encode_context_is_cookie_safe() -> None:
    """Test the encoded value has no characters that need quoting in a cookie."""
    encoded = encode_context(VisitorContext(campaign="spring sale; 50%", segment="a,b"))

    for char in (" ", ";", ",", '"', "{"):
        assert char not in encoded


def test_encode_context_uses_camel_case_and_omits_nulls() -> None:
    """Test the payload is camelCase JSON without null fields."""
    payload = json.loads(unquote(encode_context(VisitorContext(home_tag="winter"))))

    assert payload == {"homeTag": "winter"}


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "not-json",
        "%7B%22campaign%22",
        quote("[1, 2, 3]"),
        quote('"just a string"'),
        quote('{"campaign": 5}'),
        quote('{"utm": "oops"}'),
        quote('{"campaign": "   "}'),
        quote("{}"),
        "%E0%A4%A",
        quote("[" * 3000, safe=""),
        quote('{"a": ' * 3000, safe=""),
    ],
)
def test_decode_context_malformed_is_none(raw: str | None) -> None:
    """Test malformed or empty cookie values never raise and yield None."""
    assert decode_context(raw) is None


def test_decode_context_normalizes_strings_and_source() -> None:
    """Test string fields are trimmed and an unknown source becomes cookie."""
    raw = quote(json.dumps({"campaign": " spring ", "region": "", "source": "weird"}))

    context = decode_context(raw)

    assert context is not None
    assert context.campaign == "spring"
    assert context.region is None
    assert context.source == "cookie"


def test_merge_incoming_overrides_present_fields() -> None:
    """Test fields present on the incoming context override stored ones."""
    stored = VisitorContext(campaign="spring", segment="vip", region="north")
    incoming = VisitorContext(campaign="summer")

    merged = merge_contexts(stored, incoming)

    assert merged.campaign == "summer"
    assert merged.segment == "vip"
    assert merged.region == "north"


def test_merge_preserves_absent_fields() -> None:
    """Test absent or null incoming fields keep the stored value."""
    stored = VisitorContext(campaign="spring", device="desktop")
    incoming = VisitorContext(campaign=None, segment="vip")

    merged = merge_contexts(stored, incoming)

    assert merged.campaign == "spring"
    assert merged.device == "desktop"
    assert merged.segment == "vip"


def test_merge_utm_per_field() -> None:
    """Test utm merges field by field instead of being replaced."""
    stored = VisitorContext(campaign="spring", utm=UtmParams(source="google", medium="cpc"))
    incoming = VisitorContext(utm=UtmParams(medium="email", content="hero"))

    merged = merge_contexts(stored, incoming)

    assert merged.utm is not None
    assert merged.utm.model_dump(exclude_none=True) == {
        "source": "google",
        "medium": "email",
        "content": "hero",
    }


def test_merge_does_not_modify_arguments() -> None:
    """Test merging returns a new object and leaves the inputs untouched."""
    stored = VisitorContext(campaign="spring")
    incoming = VisitorContext(segment="vip")

    merged = merge_contexts(stored, incoming)

    assert merged is not stored
    assert merged is not incoming
    assert stored.segment is None
    assert incoming.campaign is None


def test_merge_with_missing_sides() -> None:
    """Test merging against a missing stored or incoming context."""
    incoming = VisitorContext(segment="vip")

    assert merge_contexts(None, incoming).segment == "vip"
    assert merge_contexts(incoming, None).segment == "vip"
    assert merge_contexts(None, None).model_dump(exclude_none=True) == {}
