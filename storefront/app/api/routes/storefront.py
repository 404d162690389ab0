"""Storefront page render path.

Resolves the version for the visitor context attached by the
visitor-context middleware and hands its blocks to presentation.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from storefront.app.api.tenant import get_document_repository, get_tenant_context
from storefront.app.db.context import TenantContext
from storefront.app.db.repositories import DocumentRepository
from storefront.app.pages import PageResolution, resolve_latest_version, resolve_page_version
from storefront.app.targeting.tags import context_to_tags

router = APIRouter()


def _render(
    slug: str,
    lang: str,
    request: Request,
    ctx: TenantContext,
    repository: DocumentRepository,
) -> dict[str, Any]:
    settings = request.app.state.settings
    if lang not in settings.languages:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown locale")

    tags = context_to_tags(getattr(request.state, "visitor_context", None))
    resolution: PageResolution | None
    if request.query_params.get("preview") == "true":
        resolution = resolve_latest_version(repository, slug, ctx, tags=tags)
    else:
        resolution = resolve_page_version(repository, slug, ctx, tags=tags)

    if resolution is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No content")

    return {
        "language": lang,
        "slug": resolution.slug,
        "version": resolution.version,
        "matchedBy": resolution.matched_by.value,
        "blocks": resolution.blocks,
    }


@router.get("/{lang}")
async def render_home(
    lang: str,
    request: Request,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
) -> dict[str, Any]:
    """Render the home document for the visitor."""
    return _render(request.app.state.settings.home_document_slug, lang, request, ctx, repository)


@router.get("/{lang}/{slug:path}")
async def render_page(
    lang: str,
    slug: str,
    request: Request,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    repository: Annotated[DocumentRepository, Depends(get_document_repository)],
) -> dict[str, Any]:
    """Render a generic page for the visitor."""
    return _render(slug, lang, request, ctx, repository)
