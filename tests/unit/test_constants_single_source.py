"""Test that storefront constants are accessible from Settings and not duplicated."""

from storefront.app.config import get_settings


def test_settings_accessible() -> None:
    """Test that Settings can be imported and accessed."""
    settings = get_settings()
    assert settings is not None


def test_cookie_constants_accessible() -> None:
    """Test that cookie names and lifetimes are accessible."""
    settings = get_settings()
    assert settings.page_context_cookie == "page_context"
    assert settings.page_context_cookie_max_age == 24 * 60 * 60
    assert settings.language_cookie_max_age > settings.page_context_cookie_max_age


def test_reset_keywords_accessible() -> None:
    """Test that the campaign reset keywords are accessible."""
    settings = get_settings()
    assert set(settings.campaign_reset_values) == {"reset", "default", "none"}


def test_language_constants_accessible() -> None:
    """Test that the fallback language is one of the supported languages."""
    settings = get_settings()
    assert settings.fallback_language in settings.languages


def test_excluded_paths_accessible() -> None:
    """Test that the visitor-context exclusions cover API and static assets."""
    settings = get_settings()
    assert "/api/" in settings.excluded_path_prefixes
    assert "/assets/" in settings.excluded_path_prefixes
    assert "/favicon.ico" in settings.excluded_paths
    assert "/sw.js" in settings.excluded_paths


def test_rate_limit_accessible() -> None:
    """Test that the publishing rate limit is accessible."""
    settings = get_settings()
    assert settings.publish_ops_per_min > 0
