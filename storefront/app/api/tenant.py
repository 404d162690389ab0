"""Request-scoped dependencies: tenant identity and document storage.

Tenant identity is read from the X-Tenant-ID header set by the edge; the
configured default tenant is used when it is absent.
"""

import re
from collections.abc import Generator
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from storefront.app.db.context import TenantContext
from storefront.app.db.repositories import DocumentRepository
from storefront.app.db.sql_repositories import SqlDocumentRepository

_TENANT_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


async def get_tenant_context(
    request: Request,
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> TenantContext:
    """Extract tenant context from the X-Tenant-ID header.

    Raises:
        HTTPException: If the tenant id is malformed
    """
    if not x_tenant_id:
        return TenantContext(tenant_id=request.app.state.settings.default_tenant_id)

    if not _TENANT_ID.match(x_tenant_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Tenant-ID header",
        )

    return TenantContext(tenant_id=x_tenant_id)


def get_document_repository(request: Request) -> Generator[DocumentRepository, None, None]:
    """Per-request document repository.

    SQL-backed when the app was started with a session factory, otherwise
    the app's in-memory repository.
    """
    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        yield request.app.state.documents
        return

    with factory() as session:
        yield SqlDocumentRepository(session)
