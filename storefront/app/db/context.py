"""Request context for tenancy enforcement."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TenantContext:
    """Tenant identity of the current request.

    Used to scope every storage operation to one tenant.
    """

    tenant_id: str
