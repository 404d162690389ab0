"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None

    # Cache
    redis_url: str | None = None

    # Tenancy
    default_tenant_id: str = "default"

    # Visitor context cookie
    page_context_cookie: str = "page_context"
    page_context_cookie_max_age: int = 60 * 60 * 24  # 24 hours (seconds)
    campaign_reset_values: tuple[str, ...] = ("reset", "default", "none")

    # Locale
    language_cookie: str = "i18next"
    language_cookie_max_age: int = 365 * 24 * 60 * 60  # 1 year
    languages: tuple[str, ...] = ("it", "en", "de", "es", "ar", "he", "zh")
    fallback_language: str = "it"
    legacy_path_aliases: dict[str, str] = {"shop": "search"}

    # Paths the visitor-context middleware never touches
    excluded_path_prefixes: tuple[str, ...] = (
        "/api/",
        "/_next/static/",
        "/_next/image/",
        "/_next/webpack-hmr",
        "/assets/",
    )
    excluded_paths: tuple[str, ...] = (
        "/favicon.ico",
        "/sw.js",
        "/sitemap.xml",
        "/robots.txt",
        "/health",
        "/healthz",
        "/metrics",
        "/docs",
        "/redoc",
        "/openapi.json",
    )

    # Documents
    home_document_slug: str = "home-page"

    # Rate limiting (requests per minute)
    publish_ops_per_min: int = 30


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
