"""Tests for the version resolver cascade."""

from collections.abc import Callable
from datetime import datetime, timedelta

from storefront.app.models import MatchedBy, TargetingTags, Version, VersionStatus
from storefront.app.targeting.resolver import is_version_active, resolve_version, score_version

MakeVersion = Callable[..., Version]


def test_scenario_tags_beat_default(make_version: MakeVersion, now: datetime) -> None:
    """Test a tag match wins over the default version."""
    versions = [
        make_version(1, is_default=True, priority=0),
        make_version(2, tags={"segment": "vip"}, priority=5),
    ]

    result = resolve_version(versions, tags=TargetingTags(segment="vip"), now=now)

    assert result is not None
    assert result.version.version == 2
    assert result.matched_by == MatchedBy.tags
    assert result.score == 1
    assert result.matched_fields == ("segment",)


def test_scenario_default_when_no_tag_matches(make_version: MakeVersion, now: datetime) -> None:
    """Test the default version is returned when no tags match."""
    versions = [
        make_version(1, is_default=True, priority=0),
        make_version(2, tags={"segment": "vip"}, priority=5),
    ]

    result = resolve_version(versions, tags=TargetingTags(segment="retail"), now=now)

    assert result is not None
    assert result.version.version == 1
    assert result.matched_by == MatchedBy.default


def test_scenario_tie_breaks_on_version_number(make_version: MakeVersion, now: datetime) -> None:
    """Test equal score and priority resolve to the higher version number."""
    versions = [
        make_version(3, tags={"campaign": "spring"}, priority=1),
        make_version(7, tags={"campaign": "spring"}, priority=1),
        make_version(5, tags={"campaign": "spring"}, priority=1),
    ]

    result = resolve_version(versions, tags=TargetingTags(campaign="spring"), now=now)

    assert result is not None
    assert result.version.version == 7
    assert result.matched_by == MatchedBy.tags


def test_priority_breaks_equal_scores(make_version: MakeVersion, now: datetime) -> None:
    """Test priority decides between versions matching the same number of fields."""
    versions = [
        make_version(1, tags={"segment": "vip"}, priority=10),
        make_version(2, tags={"segment": "vip"}, priority=1),
    ]

    result = resolve_version(versions, tags=TargetingTags(segment="vip"), now=now)

    assert result is not None
    assert result.version.version == 1


def test_more_specific_match_beats_priority(make_version: MakeVersion, now: datetime) -> None:
    """Test a version matching more fields outranks a higher-priority one."""
    versions = [
        make_version(1, tags={"segment": "vip"}, priority=100),
        make_version(2, tags={"segment": "vip", "device": "mobile"}, priority=0),
    ]

    result = resolve_version(
        versions, tags=TargetingTags(segment="vip", device="mobile"), now=now
    )

    assert result is not None
    assert result.version.version == 2
    assert result.score == 2


def test_fallback_pointer(make_version: MakeVersion, now: datetime) -> None:
    """Test the fallback pointer is used when no tags match and no default exists."""
    versions = [make_version(1, priority=9), make_version(2, priority=0)]

    result = resolve_version(versions, fallback_version_number=2, now=now)

    assert result is not None
    assert result.version.version == 2
    assert result.matched_by == MatchedBy.fallback


def test_highest_priority_when_pointer_missing(make_version: MakeVersion, now: datetime) -> None:
    """Test the highest-priority survivor is returned as a last resort."""
    versions = [make_version(1, priority=9), make_version(2, priority=0)]

    result = resolve_version(versions, fallback_version_number=99, now=now)

    assert result is not None
    assert result.version.version == 1
    assert result.matched_by == MatchedBy.priority


def test_status_filter(make_version: MakeVersion, now: datetime) -> None:
    """Test drafts are excluded unless allowed."""
    versions = [make_version(1, status=VersionStatus.draft, is_default=True)]

    assert resolve_version(versions, now=now) is None

    result = resolve_version(
        versions, allowed_statuses=(VersionStatus.draft, VersionStatus.published), now=now
    )
    assert result is not None
    assert result.version.version == 1


def test_active_window_filter(make_version: MakeVersion, now: datetime) -> None:
    """Test versions outside their window are dropped unless the window is ignored."""
    expired = make_version(
        1,
        is_default=True,
        active_from=now - timedelta(days=10),
        active_to=now - timedelta(days=1),
    )
    upcoming = make_version(2, active_from=now + timedelta(days=1))

    assert resolve_version([expired, upcoming], now=now) is None

    result = resolve_version([expired, upcoming], respect_active_window=False, now=now)
    assert result is not None
    assert result.version.version == 1


def test_window_bounds_are_inclusive(make_version: MakeVersion, now: datetime) -> None:
    """Test a version is active exactly at its window bounds."""
    version = make_version(1, active_from=now, active_to=now)

    assert is_version_active(version, now)
    assert not is_version_active(version, now + timedelta(microseconds=1))
    assert not is_version_active(version, now - timedelta(microseconds=1))


def test_naive_now_is_treated_as_utc(make_version: MakeVersion, now: datetime) -> None:
    """Test a naive evaluation instant is compared as UTC."""
    version = make_version(1, active_from=now)

    assert is_version_active(version, now.replace(tzinfo=None))


def test_empty_input_is_none(now: datetime) -> None:
    """Test nothing to resolve yields None."""
    assert resolve_version([], now=now) is None


def test_matching_is_case_insensitive(make_version: MakeVersion, now: datetime) -> None:
    """Test tag values compare case-insensitively."""
    versions = [make_version(1, tags={"campaign": "Spring"}), make_version(2, is_default=True)]

    result = resolve_version(versions, tags=TargetingTags(campaign="spring "), now=now)

    assert result is not None
    assert result.version.version == 1


def test_legacy_tag_matches_campaign(make_version: MakeVersion, now: datetime) -> None:
    """Test a version with only the legacy single tag matches on campaign."""
    versions = [make_version(1, tag="spring"), make_version(2, is_default=True)]

    result = resolve_version(versions, tags=TargetingTags(campaign="spring"), now=now)

    assert result is not None
    assert result.version.version == 1
    assert result.matched_fields == ("campaign",)


def test_score_address_states_and_attributes(make_version: MakeVersion) -> None:
    """Test address state lists and custom attributes contribute to the score."""
    version = make_version(
        1, tags={"addressStates": ["CA", "NY"], "attributes": {"tier": "gold", "color": "red"}}
    )
    tags = TargetingTags(address_state="ny", attributes={"tier": "GOLD", "color": "blue"})

    assert score_version(version, tags) == (2, ("address_states", "attributes.tier"))


def test_score_without_tags(make_version: MakeVersion) -> None:
    """Test versions or visitors without tags score zero."""
    assert score_version(make_version(1), TargetingTags(segment="vip")) == (0, ())
    assert score_version(make_version(2, tags={"segment": "vip"}), None) == (0, ())


def test_multiple_defaults_pick_highest_priority(make_version: MakeVersion, now: datetime) -> None:
    """Test legacy data with several defaults still resolves deterministically."""
    versions = [
        make_version(1, is_default=True, priority=1),
        make_version(2, is_default=True, priority=3),
    ]

    result = resolve_version(versions, now=now)

    assert result is not None
    assert result.version.version == 2
    assert result.matched_by == MatchedBy.default
