"""Visitor attribute detection from request headers."""

from collections.abc import Mapping
from typing import Protocol

_MOBILE_MARKERS = ("mobile", "iphone", "android")


class VisitorAttributeDetector(Protocol):
    """Derives visitor attributes (device, ...) from request headers."""

    def detect(self, headers: Mapping[str, str]) -> dict[str, str]:
        """Return detected attributes keyed by targeting field name."""
        ...


class UserAgentDetector:
    """Classify the device as mobile or desktop from the User-Agent header."""

    def detect(self, headers: Mapping[str, str]) -> dict[str, str]:
        user_agent = headers.get("user-agent")
        if not user_agent:
            return {}

        lowered = user_agent.lower()
        device = "mobile" if any(marker in lowered for marker in _MOBILE_MARKERS) else "desktop"
        return {"device": device}
