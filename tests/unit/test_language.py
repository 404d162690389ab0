"""Tests for language matching and device detection."""

import pytest

from storefront.app.targeting.device import UserAgentDetector
from storefront.app.targeting.language import LanguageMatcher

LANGUAGES = ("it", "en", "de", "es", "ar", "he", "zh")


@pytest.fixture
def matcher() -> LanguageMatcher:
    """Matcher over the storefront locales with Italian fallback."""
    return LanguageMatcher(LANGUAGES, "it")


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("en", "en"),
        ("de-DE,de;q=0.9,en;q=0.8", "de"),
        ("fr-FR,fr;q=0.9,en;q=0.5", "en"),
        ("en;q=0.2,es;q=0.8", "es"),
        ("ZH-cn", "zh"),
        ("*", "it"),
        ("fr,*;q=0.1", "it"),
    ],
)
def test_match_accept_language(matcher: LanguageMatcher, header: str, expected: str) -> None:
    """Test Accept-Language values resolve to the best supported locale."""
    assert matcher.match(header) == expected


@pytest.mark.parametrize("header", [None, "", "fr,pt", "en;q=0", "en;q=abc"])
def test_match_nothing_acceptable(matcher: LanguageMatcher, header: str | None) -> None:
    """Test unsupported or zero-quality ranges yield None."""
    assert matcher.match(header) is None


def test_path_language(matcher: LanguageMatcher) -> None:
    """Test the locale prefix is read from the first path segment."""
    assert matcher.path_language("/en/products") == "en"
    assert matcher.path_language("/EN") == "en"
    assert matcher.path_language("/products/en") is None
    assert matcher.path_language("/") is None


def test_is_supported(matcher: LanguageMatcher) -> None:
    """Test supported checks are case-insensitive."""
    assert matcher.is_supported("De")
    assert not matcher.is_supported("fr")
    assert not matcher.is_supported(None)
    assert matcher.fallback == "it"


@pytest.mark.parametrize(
    ("user_agent", "device"),
    [
        ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)", "mobile"),
        ("Mozilla/5.0 (Linux; Android 14; Pixel 8)", "mobile"),
        ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) Mobile Safari", "mobile"),
        ("Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)", "desktop"),
    ],
)
def test_user_agent_detector(user_agent: str, device: str) -> None:
    """Test the User-Agent sniffer classifies mobile and desktop."""
    assert UserAgentDetector().detect({"user-agent": user_agent}) == {"device": device}


def test_user_agent_detector_without_header() -> None:
    """Test no User-Agent yields no attributes."""
    assert UserAgentDetector().detect({}) == {}
