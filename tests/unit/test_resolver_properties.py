"""Property tests for the version resolver over seeded random version sets."""

import random
from datetime import UTC, datetime, timedelta

import pytest

from storefront.app.models import MatchedBy, TargetingTags, Version, VersionStatus
from storefront.app.targeting.resolver import is_version_active, resolve_version, score_version

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)
SEEDS = range(50)

_VALUES = {
    "campaign": ["spring", "summer", None],
    "segment": ["vip", "retail", None],
    "device": ["mobile", "desktop", None],
}


def _random_tags(rng: random.Random) -> dict[str, str] | None:
    tags = {key: value for key, options in _VALUES.items() if (value := rng.choice(options))}
    return tags or None


def _random_window(rng: random.Random) -> tuple[datetime | None, datetime | None]:
    kind = rng.choice(["open", "current", "past", "future"])
    if kind == "current":
        return (NOW - timedelta(days=1), NOW + timedelta(days=1))
    if kind == "past":
        return (NOW - timedelta(days=5), NOW - timedelta(days=1))
    if kind == "future":
        return (NOW + timedelta(days=1), None)
    return (None, None)


def _random_versions(rng: random.Random, count: int | None = None) -> list[Version]:
    versions = []
    for number in range(1, (count or rng.randint(1, 8)) + 1):
        active_from, active_to = _random_window(rng)
        versions.append(
            Version(
                version=number,
                status=rng.choice([VersionStatus.draft, VersionStatus.published]),
                created_at=NOW,
                last_saved_at=NOW,
                tags=_random_tags(rng),
                priority=rng.randint(0, 3),
                active_from=active_from,
                active_to=active_to,
            )
        )
    return versions


def _random_context(rng: random.Random) -> TargetingTags | None:
    tags = _random_tags(rng)
    return TargetingTags(**tags) if tags else None


@pytest.mark.parametrize("seed", SEEDS)
def test_never_returns_disallowed_status(seed: int) -> None:
    """Test the result status is always among the allowed statuses."""
    rng = random.Random(seed)
    versions = _random_versions(rng)

    result = resolve_version(versions, tags=_random_context(rng), respect_active_window=False, now=NOW)

    if result is not None:
        assert result.version.status == VersionStatus.published


@pytest.mark.parametrize("seed", SEEDS)
def test_never_returns_inactive_version(seed: int) -> None:
    """Test the result is inside its active window when windows are respected."""
    rng = random.Random(seed)
    versions = _random_versions(rng)

    result = resolve_version(
        versions,
        allowed_statuses=(VersionStatus.draft, VersionStatus.published),
        tags=_random_context(rng),
        now=NOW,
    )

    if result is not None:
        assert is_version_active(result.version, NOW)


@pytest.mark.parametrize("seed", SEEDS)
def test_result_has_maximal_score(seed: int) -> None:
    """Test no eligible version matches strictly more fields than the result."""
    rng = random.Random(seed)
    versions = _random_versions(rng)
    tags = _random_context(rng)

    result = resolve_version(versions, tags=tags, respect_active_window=False, now=NOW)
    if result is None:
        return

    eligible = [v for v in versions if v.status == VersionStatus.published]
    best = max(score_version(v, tags)[0] for v in eligible)
    assert score_version(result.version, tags)[0] == best


@pytest.mark.parametrize("seed", SEEDS)
def test_resolution_is_idempotent(seed: int) -> None:
    """Test identical inputs always produce the identical result."""
    rng = random.Random(seed)
    versions = _random_versions(rng)
    tags = _random_context(rng)

    first = resolve_version(versions, tags=tags, fallback_version_number=1, now=NOW)
    second = resolve_version(list(versions), tags=tags, fallback_version_number=1, now=NOW)

    if first is None:
        assert second is None
    else:
        assert second is not None
        assert first.version.version == second.version.version
        assert first.matched_by == second.matched_by


@pytest.mark.parametrize("seed", SEEDS)
def test_single_default_wins_without_overlap(seed: int) -> None:
    """Test the only default is returned when no version overlaps the context."""
    rng = random.Random(seed)
    versions = [
        v.model_copy(update={"status": VersionStatus.published, "active_from": None, "active_to": None})
        for v in _random_versions(rng, count=rng.randint(2, 6))
    ]
    default_number = rng.choice(versions).version
    versions = [v.model_copy(update={"is_default": v.version == default_number}) for v in versions]

    # No version declares a value the visitor carries
    tags = TargetingTags(campaign="autumn", segment="wholesale", device="tablet")

    result = resolve_version(versions, tags=tags, now=NOW)

    assert result is not None
    assert result.version.version == default_number
    assert result.matched_by == MatchedBy.default
