"""Version resolver - picks the single version of a document to render.

Deterministic and side-effect-free: identical inputs (including ``now``)
always produce the identical result, so callers on the home document and
on generic pages get the same behavior.

Cascade:
1. Drop versions whose status is not allowed.
2. Drop versions outside their active window (when requested).
3. Score each remaining version by the number of declared tag fields that
   equal the visitor's value. Best score wins, then priority, then the
   higher version number. matched_by = tags
4. Otherwise the default version. matched_by = default
5. Otherwise the fallback pointer, if it survived filtering. matched_by = fallback
6. Otherwise the highest-priority survivor. matched_by = priority
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from storefront.app.models.common import MatchedBy, VersionStatus, as_utc
from storefront.app.models.context import TargetingTags
from storefront.app.models.resolution import ResolutionResult
from storefront.app.models.versions import Version
from storefront.app.targeting.tags import serialize_tags_key, tags_from_version

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = ("campaign", "segment", "region", "device", "language")


def is_version_active(version: Version, now: datetime) -> bool:
    """Whether ``now`` falls inside the version's [active_from, active_to] window."""
    now = as_utc(now)
    if version.active_from is not None and now < as_utc(version.active_from):
        return False
    if version.active_to is not None and now > as_utc(version.active_to):
        return False
    return True


def _same(left: str | None, right: str | None) -> bool:
    return bool(left) and bool(right) and left.strip().lower() == right.strip().lower()


def score_version(version: Version, tags: TargetingTags | None) -> tuple[int, tuple[str, ...]]:
    """Count the version's declared tag fields that match the visitor's tags.

    Fields missing on either side are not constraints and do not count.

    Returns:
        Tuple of (score, matched field names)
    """
    declared = tags_from_version(version)
    if declared is None or tags is None:
        return (0, ())

    matched: list[str] = []
    for name in _SCALAR_FIELDS:
        if _same(getattr(declared, name), getattr(tags, name)):
            matched.append(name)

    if declared.address_states and tags.address_state:
        if tags.address_state.strip().upper() in declared.address_states:
            matched.append("address_states")

    if declared.attributes and tags.attributes:
        for key in sorted(declared.attributes):
            if _same(declared.attributes[key], tags.attributes.get(key)):
                matched.append(f"attributes.{key}")

    return (len(matched), tuple(matched))


def _rank(version: Version) -> tuple[int, int]:
    return (version.priority, version.version)


def _best(versions: Iterable[Version]) -> Version | None:
    return max(versions, key=_rank, default=None)


def resolve_version(
    versions: Sequence[Version],
    allowed_statuses: Iterable[VersionStatus] = (VersionStatus.published,),
    tags: TargetingTags | None = None,
    fallback_version_number: int | None = None,
    respect_active_window: bool = True,
    now: datetime | None = None,
) -> ResolutionResult | None:
    """Resolve the version to render for a visitor.

    Args:
        versions: Candidate versions of one document (in-memory snapshot)
        allowed_statuses: Statuses eligible for rendering
        tags: Visitor targeting tags (normalized)
        fallback_version_number: Pointer used when nothing matches and no
            default exists (typically current_published_version)
        respect_active_window: Drop versions outside their active window
        now: Evaluation instant (defaults to the current UTC time)

    Returns:
        Resolution result, or None if no version survives filtering
    """
    allowed = set(allowed_statuses)
    candidates = [v for v in versions if v.status in allowed]

    if respect_active_window:
        instant = as_utc(now) if now is not None else datetime.now(UTC)
        candidates = [v for v in candidates if is_version_active(v, instant)]

    if not candidates:
        logger.debug(
            "No version survived filtering",
            extra={"structured": {"total": len(versions), "tags": serialize_tags_key(tags)}},
        )
        return None

    result = _pick(candidates, tags, fallback_version_number)

    logger.debug(
        "Resolved version %s by %s",
        result.version.version,
        result.matched_by.value,
        extra={
            "structured": {
                "version": result.version.version,
                "matched_by": result.matched_by.value,
                "score": result.score,
                "tags": serialize_tags_key(tags),
            }
        },
    )
    return result


def _pick(
    candidates: list[Version], tags: TargetingTags | None, fallback_version_number: int | None
) -> ResolutionResult:
    scored = [(version, *score_version(version, tags)) for version in candidates]
    matches = [entry for entry in scored if entry[1] > 0]
    if matches:
        version, score, fields = max(matches, key=lambda entry: (entry[1], *_rank(entry[0])))
        return ResolutionResult(
            version=version, matched_by=MatchedBy.tags, score=score, matched_fields=fields
        )

    default = _best(v for v in candidates if v.is_default)
    if default is not None:
        return ResolutionResult(version=default, matched_by=MatchedBy.default)

    if fallback_version_number is not None:
        for version in candidates:
            if version.version == fallback_version_number:
                return ResolutionResult(version=version, matched_by=MatchedBy.fallback)

    # candidates is non-empty, so _best always finds one here
    best = _best(candidates)
    assert best is not None
    return ResolutionResult(version=best, matched_by=MatchedBy.priority)
