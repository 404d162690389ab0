"""Accepted-language matching against the supported storefront locales."""

from collections.abc import Sequence


class LanguageMatcher:
    """Pick the best supported language for an Accept-Language style value.

    A bare locale code (the language cookie) is a valid input too.
    """

    def __init__(self, supported: Sequence[str], fallback: str) -> None:
        """Initialize matcher.

        Args:
            supported: Supported language codes, in preference order
            fallback: Language used when nothing matches
        """
        self._supported = tuple(code.lower() for code in supported)
        self._fallback = fallback.lower()

    @property
    def supported(self) -> tuple[str, ...]:
        return self._supported

    @property
    def fallback(self) -> str:
        return self._fallback

    def is_supported(self, code: str | None) -> bool:
        return bool(code) and code.lower() in self._supported

    def match(self, value: str | None) -> str | None:
        """Return the best supported language, or None if none is acceptable."""
        if not value:
            return None

        ranges: list[tuple[float, int, str]] = []
        for position, part in enumerate(value.split(",")):
            tag, _, params = part.strip().partition(";")
            tag = tag.strip().lower()
            if not tag:
                continue

            quality = 1.0
            for param in params.split(";"):
                key, _, raw = param.strip().partition("=")
                if key.strip() == "q":
                    try:
                        quality = float(raw)
                    except ValueError:
                        quality = 0.0
            if quality <= 0:
                continue
            ranges.append((-quality, position, tag))

        for _, _, tag in sorted(ranges):
            if tag == "*":
                return self._supported[0] if self._supported else None
            if tag in self._supported:
                return tag
            primary = tag.split("-", 1)[0]
            if primary in self._supported:
                return primary

        return None

    def path_language(self, path: str) -> str | None:
        """The supported language prefixing the path, if any."""
        segments = [segment for segment in path.split("/") if segment]
        if segments and segments[0].lower() in self._supported:
            return segments[0].lower()
        return None
