"""Prometheus metrics for version resolution and publishing."""

from prometheus_client import Counter

version_resolutions_total = Counter(
    "version_resolutions_total",
    "Total version resolutions by call site and matching rule",
    ["call_site", "matched_by"],
)

publishing_updates_total = Counter(
    "publishing_updates_total",
    "Total publishing updates by outcome",
    ["outcome"],
)


def record_resolution(call_site: str, matched_by: str | None) -> None:
    """Count one resolution; matched_by None means no content."""
    version_resolutions_total.labels(call_site=call_site, matched_by=matched_by or "none").inc()


def record_publishing(outcome: str) -> None:
    """Count one publishing update outcome."""
    publishing_updates_total.labels(outcome=outcome).inc()
