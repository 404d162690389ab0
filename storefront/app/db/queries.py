"""Tenancy-safe query helpers."""

from sqlalchemy.orm import Query, Session

from storefront.app.db.context import TenantContext
from storefront.app.db.models import DocumentRow


def query_documents(session: Session, ctx: TenantContext) -> Query:
    """Query document table with tenant scoping enforced.

    Args:
        session: SQLAlchemy session
        ctx: Tenant context

    Returns:
        Query filtered by tenant_id
    """
    return session.query(DocumentRow).filter(DocumentRow.tenant_id == ctx.tenant_id)
