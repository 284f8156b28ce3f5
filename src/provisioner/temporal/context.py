"""
Tenant context contract for Temporal workflows and activities.

The provisioning and teardown workflows read the tenant record once and pass
the resulting TenantCtx to every tenant-scoped activity. Activities never
re-derive names from the subdomain; the values stored on the tenant record
at creation time are authoritative.

Usage Example:
    ```python
    ctx: TenantCtx = await workflow.execute_activity(
        get_tenant_info, GetTenantInput(tenant_id=tenant_id), ...
    )
    await workflow.execute_activity(upsert_dns_record, DnsRecordInput(ctx=ctx), ...)
    ```
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TenantCtx:
    """
    Standardized tenant context for all tenant-scoped activities.

    Attributes:
        tenant_id: Tenant UUID as a string (isolation and routing key)
        subdomain: DNS label of the tenant
        domain: Base domain the tenant lives under
        database_name: Stored tenant database name
        url: Stored public URL of the tenant
    """

    tenant_id: str
    subdomain: str
    domain: str
    database_name: str
    url: str

    @property
    def hostname(self) -> str:
        return f"{self.subdomain}.{self.domain}"
