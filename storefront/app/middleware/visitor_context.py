"""Visitor-context middleware.

Runs on every storefront page request (not API or static assets):

- negotiates the language and redirects to a locale-prefixed path
- keeps the language cookie in sync with the referer's locale
- captures campaign/targeting query parameters into the context cookie,
  merging them over what the cookie already holds
- honours the reset keywords by deleting the context cookie
- slides the context cookie's expiry forward on plain requests

All decisions are made by ``VisitorContextBuilder`` from an immutable
``RequestSnapshot``; ``VisitorContextMiddleware`` only translates the
outcome into Starlette response operations.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from urllib.parse import urlsplit

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from storefront.app.config import Settings, get_settings
from storefront.app.models.context import UtmParams, VisitorContext
from storefront.app.targeting.cookie_codec import (
    build_context_from_params,
    context_has_data,
    decode_context,
    encode_context,
    merge_contexts,
)
from storefront.app.targeting.device import UserAgentDetector, VisitorAttributeDetector
from storefront.app.targeting.language import LanguageMatcher
from storefront.app.targeting.tags import first_campaign, normalize_value

logger = logging.getLogger(__name__)

CAMPAIGN_PARAMS = ("campaign", "tag", "homeTag", "templateTag", "segment", "region", "language", "device")
UTM_PARAMS = {"utm_source": "source", "utm_medium": "medium", "utm_campaign": "campaign", "utm_content": "content"}


@dataclass(frozen=True)
class RequestSnapshot:
    """The parts of an incoming request the builder looks at."""

    path: str
    query_string: str = ""
    query: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request: Request) -> "RequestSnapshot":
        """Snapshot a Starlette request; the first value wins for repeated query keys."""
        query: dict[str, str] = {}
        for key, value in request.query_params.multi_items():
            query.setdefault(key, value)

        return cls(
            path=request.url.path,
            query_string=request.url.query,
            query=query,
            cookies=dict(request.cookies),
            headers={key.lower(): value for key, value in request.headers.items()},
        )


@dataclass(frozen=True)
class CookieWrite:
    """A Set-Cookie operation."""

    name: str
    value: str
    max_age: int
    path: str = "/"
    samesite: str = "lax"


@dataclass(frozen=True)
class ContextOutcome:
    """What the middleware must do for one request."""

    context: VisitorContext | None
    stored_context: VisitorContext | None = None
    language: str | None = None
    redirect_url: str | None = None
    redirect_status: int = 308
    cookie_writes: tuple[CookieWrite, ...] = ()
    cookie_deletes: tuple[str, ...] = ()


@dataclass(frozen=True)
class _Persistence:
    context: VisitorContext | None
    stored: VisitorContext | None
    writes: tuple[CookieWrite, ...] = ()
    deletes: tuple[str, ...] = ()


class VisitorContextBuilder:
    """Builds the per-request visitor context and the cookie operations."""

    def __init__(
        self,
        settings: Settings,
        detector: VisitorAttributeDetector | None = None,
        matcher: LanguageMatcher | None = None,
    ) -> None:
        """Initialize builder.

        Args:
            settings: Application settings (cookie names, languages, ...)
            detector: Visitor attribute detector (defaults to user-agent sniffing)
            matcher: Language matcher (defaults to the configured languages)
        """
        self._settings = settings
        self._detector = detector or UserAgentDetector()
        self._matcher = matcher or LanguageMatcher(settings.languages, settings.fallback_language)
        self._reset_values = frozenset(value.lower() for value in settings.campaign_reset_values)

    def in_scope(self, path: str) -> bool:
        """Whether the middleware applies to the path."""
        if path in self._settings.excluded_paths:
            return False
        # A prefix also excludes its bare path, e.g. /api for /api/
        return not any(
            path == prefix.rstrip("/") or path.startswith(prefix) for prefix in self._settings.excluded_path_prefixes
        )

    def build(self, request: RequestSnapshot, now: datetime | None = None) -> ContextOutcome:
        """Decide language, redirect and context cookie operations for a request."""
        now = now or datetime.now(UTC)
        language = self._negotiate_language(request)
        persistence = self._persist_campaign(request, now)

        redirect = self._locale_redirect(request, language)
        if redirect is not None:
            redirect_url, language = redirect
            return ContextOutcome(
                context=persistence.context,
                stored_context=persistence.stored,
                language=language,
                redirect_url=redirect_url,
                cookie_writes=(self._language_cookie(language), *persistence.writes),
                cookie_deletes=persistence.deletes,
            )

        path_language = self._matcher.path_language(request.path) or language
        cookie_language = self._referer_language(request) or path_language

        return ContextOutcome(
            context=persistence.context,
            stored_context=persistence.stored,
            language=path_language,
            cookie_writes=(self._language_cookie(cookie_language), *persistence.writes),
            cookie_deletes=persistence.deletes,
        )

    def _negotiate_language(self, request: RequestSnapshot) -> str:
        language = None
        cookie_value = request.cookies.get(self._settings.language_cookie)
        if cookie_value:
            language = self._matcher.match(cookie_value)
        if not language:
            language = self._matcher.match(request.headers.get("accept-language"))
        if not language or not self._matcher.is_supported(language):
            language = self._matcher.fallback
        return language

    def _locale_redirect(self, request: RequestSnapshot, language: str) -> tuple[str, str] | None:
        """Redirect target for paths without a locale prefix or with a legacy alias."""
        segments = [segment for segment in request.path.split("/") if segment]
        aliases = self._settings.legacy_path_aliases

        if self._matcher.path_language(request.path) is None:
            if segments and segments[0] in aliases:
                segments[0] = aliases[segments[0]]
            target_language = language
        elif len(segments) >= 2 and segments[1] in aliases:
            target_language = segments[0].lower()
            segments = [aliases[segments[1]], *segments[2:]]
        else:
            return None

        path = "/" + "/".join(segments) if segments else ""
        query = f"?{request.query_string}" if request.query_string else ""
        return (f"/{target_language}{path}{query}", target_language)

    def _referer_language(self, request: RequestSnapshot) -> str | None:
        referer = request.headers.get("referer")
        if not referer:
            return None
        try:
            referer_path = urlsplit(referer).path
        except ValueError:
            logger.debug("Ignoring malformed referer", extra={"structured": {"referer": referer[:200]}})
            return None
        return self._matcher.path_language(referer_path)

    def _language_cookie(self, language: str) -> CookieWrite:
        return CookieWrite(
            name=self._settings.language_cookie,
            value=language,
            max_age=self._settings.language_cookie_max_age,
        )

    def _context_cookie(self, context: VisitorContext) -> CookieWrite:
        return CookieWrite(
            name=self._settings.page_context_cookie,
            value=encode_context(context),
            max_age=self._settings.page_context_cookie_max_age,
        )

    def _collect_params(self, request: RequestSnapshot) -> dict[str, str | None]:
        params: dict[str, str | None] = {name: request.query.get(name) for name in CAMPAIGN_PARAMS}
        if params["device"] is None:
            params["device"] = self._detector.detect(request.headers).get("device")
        return params

    def _collect_utm(self, request: RequestSnapshot) -> UtmParams | None:
        utm = {
            field_name: value
            for param, field_name in UTM_PARAMS.items()
            if (value := normalize_value(request.query.get(param)))
        }
        return UtmParams(**utm) if utm else None

    def _persist_campaign(self, request: RequestSnapshot, now: datetime) -> _Persistence:
        params = self._collect_params(request)
        cookie_name = self._settings.page_context_cookie

        campaign = first_campaign(params)
        if campaign and campaign.lower() in self._reset_values:
            logger.debug("Visitor context reset", extra={"structured": {"path": request.path}})
            return _Persistence(context=None, stored=None, deletes=(cookie_name,))

        stored = decode_context(request.cookies.get(cookie_name))
        url_context = build_context_from_params(params)

        if url_context is not None:
            incoming = url_context.model_dump(exclude_unset=True)
            incoming.update(
                landing_page=request.path,
                landed_at=now.isoformat(),
                source="url",
            )
            utm = self._collect_utm(request)
            if utm is not None:
                incoming["utm"] = utm

            merged = merge_contexts(stored, VisitorContext(**incoming))
            if not context_has_data(merged):
                return _Persistence(context=stored, stored=stored)

            return _Persistence(context=merged, stored=stored, writes=(self._context_cookie(merged),))

        if stored is not None and context_has_data(stored):
            # Rewrite unchanged to slide the expiry window forward
            return _Persistence(context=stored, stored=stored, writes=(self._context_cookie(stored),))

        return _Persistence(context=None, stored=stored)


def apply_outcome(response: Response, outcome: ContextOutcome) -> None:
    """Apply the outcome's cookie operations to a response."""
    for name in outcome.cookie_deletes:
        response.delete_cookie(name, path="/")
    for cookie in outcome.cookie_writes:
        response.set_cookie(
            cookie.name,
            cookie.value,
            max_age=cookie.max_age,
            path=cookie.path,
            samesite=cookie.samesite,  # type: ignore[arg-type]
        )


class VisitorContextMiddleware(BaseHTTPMiddleware):
    """Starlette adapter around VisitorContextBuilder.

    Exposes the per-request context as ``request.state.visitor_context``
    (None when the visitor has no targeting context).
    """

    def __init__(self, app: ASGIApp, builder: VisitorContextBuilder | None = None) -> None:
        super().__init__(app)
        self._builder = builder or VisitorContextBuilder(get_settings())

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.visitor_context = None
        if not self._builder.in_scope(request.url.path):
            return await call_next(request)

        outcome = self._builder.build(RequestSnapshot.from_request(request))
        request.state.visitor_context = outcome.context
        request.state.stored_visitor_context = outcome.stored_context
        request.state.language = outcome.language

        if outcome.redirect_url is not None:
            response: Response = RedirectResponse(outcome.redirect_url, status_code=outcome.redirect_status)
        else:
            response = await call_next(request)

        apply_outcome(response, outcome)
        return response
