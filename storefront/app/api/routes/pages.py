"""Page endpoints - version resolution and publishing."""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from storefront.app.api.tenant import get_document_repository, get_tenant_context
from storefront.app.db.context import TenantContext
from storefront.app.db.repositories import DocumentRepository
from storefront.app.errors import ConcurrentPublishingError, InvalidActiveWindowError
from storefront.app.models.publishing import PublishingUpdate
from storefront.app.models.versions import Version
from storefront.app.pages import PageResolution, resolve_home_version, resolve_page_version
from storefront.app.publishing import PublishingMutator
from storefront.app.ratelimit import PUBLISH_BUCKET
from storefront.app.targeting.tags import normalize_targeting_tags, tags_from_version

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["pages"])

_QUERY_TAG_KEYS = (
    "campaign",
    "tag",
    "homeTag",
    "templateTag",
    "segment",
    "region",
    "language",
    "device",
    "addressState",
)


async def _json_body(request: Request) -> dict[str, Any]:
    """Parse a JSON object body; anything else is treated as empty."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def _query_payload(request: Request) -> dict[str, Any]:
    params = request.query_params
    payload: dict[str, Any] = {key: params[key] for key in _QUERY_TAG_KEYS if key in params}
    payload["preview"] = params.get("preview") == "true"
    payload["includeDraft"] = params.get("includeDraft") == "true"
    return payload


def _resolution_response(resolution: PageResolution | None) -> JSONResponse:
    if resolution is None:
        return JSONResponse({"success": False, "error": "Page or version not found"}, status_code=404)
    return JSONResponse({"success": True, "data": resolution.model_dump(mode="json", by_alias=True)})


def _resolve_payload(
    payload: dict[str, Any], slug: str, repository: DocumentRepository, ctx: TenantContext
) -> JSONResponse:
    include_draft = payload.get("preview") is True or payload.get("includeDraft") is True
    resolution = resolve_page_version(
        repository,
        slug,
        ctx,
        tags=normalize_targeting_tags(payload),
        include_draft=include_draft,
        respect_active_window=True,
    )
    return _resolution_response(resolution)


@router.get("/pages/{slug}/resolve")
async def resolve_page_get(
    slug: str,
    request: Request,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
) -> JSONResponse:
    """Resolve the version of a page for tags given as query parameters."""
    return _resolve_payload(_query_payload(request), slug, repository, ctx)


@router.post("/pages/{slug}/resolve")
async def resolve_page_post(
    slug: str,
    request: Request,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
) -> JSONResponse:
    """Resolve the version of a page for tags given as a JSON body."""
    return _resolve_payload(await _json_body(request), slug, repository, ctx)


@router.get("/home/resolve")
async def resolve_home(
    request: Request,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
) -> JSONResponse:
    """Resolve the published home document version."""
    resolution = resolve_home_version(
        repository,
        request.app.state.settings.home_document_slug,
        ctx,
        tags=normalize_targeting_tags(_query_payload(request)),
    )
    return _resolution_response(resolution)


def _summary(version: Version) -> dict[str, Any]:
    tags = tags_from_version(version)
    return {
        "version": version.version,
        "status": version.status.value,
        "priority": version.priority,
        "isDefault": version.is_default,
        "tags": tags.model_dump(mode="json", by_alias=True, exclude_none=True) if tags else None,
        "activeFrom": version.active_from.isoformat() if version.active_from else None,
        "activeTo": version.active_to.isoformat() if version.active_to else None,
        "comment": version.comment,
        "createdAt": version.created_at.isoformat(),
        "lastSavedAt": version.last_saved_at.isoformat(),
        "publishedAt": version.published_at.isoformat() if version.published_at else None,
        "blocksCount": len(version.blocks),
    }


@router.get("/pages/{slug}/publish")
async def list_publishing(
    slug: str,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
) -> dict[str, Any]:
    """List the versions of a document with their publishing metadata."""
    document = repository.get_document(slug, ctx)
    versions = document.versions if document else []
    return {"slug": slug, "versions": [_summary(v) for v in versions]}


def _validation_message(error: ValidationError) -> str:
    fields = {str(part) for err in error.errors() for part in err["loc"][:1]}
    if "versionNumber" in fields or "version_number" in fields:
        return "versionNumber is required"
    if "priority" in fields:
        return "priority must be a number"
    return "Invalid publishing payload"


@router.post("/pages/{slug}/publish")
async def update_publishing(
    slug: str,
    request: Request,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
) -> JSONResponse:
    """Apply a publishing update to one version of a document."""
    retry_after = request.app.state.rate_limits.check(PUBLISH_BUCKET, ctx)
    if retry_after is not None:
        return JSONResponse(
            {"error": "Too many publishing requests"},
            status_code=429,
            headers={"Retry-After": str(retry_after.seconds)},
        )

    try:
        update = PublishingUpdate.model_validate(await _json_body(request))
    except ValidationError as e:
        return JSONResponse({"error": _validation_message(e)}, status_code=400)

    mutator = PublishingMutator(repository)
    try:
        updated = mutator.update_publishing(slug, update, ctx)
    except InvalidActiveWindowError as e:
        return JSONResponse({"error": str(e)}, status_code=422)
    except ConcurrentPublishingError as e:
        return JSONResponse({"error": str(e)}, status_code=409)

    if updated is None:
        return JSONResponse({"error": "Version could not be updated"}, status_code=404)

    return JSONResponse({"success": True, "version": _summary(updated)})
