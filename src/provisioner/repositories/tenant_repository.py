"""Repository for Tenant entity."""

from collections.abc import Collection
from uuid import UUID

from sqlmodel import col, select

from src.provisioner.core.exceptions import StatusConflictError
from src.provisioner.models import Tenant, TenantStatus
from src.provisioner.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Repository for the tenant record store."""

    model = Tenant

    async def get_by_subdomain(self, subdomain: str) -> Tenant | None:
        """Get the non-deleted tenant owning a subdomain."""
        result = await self.session.execute(
            select(Tenant).where(
                Tenant.subdomain == subdomain,
                Tenant.status != TenantStatus.DELETED.value,
            )
        )
        return result.scalar_one_or_none()

    async def exists_by_subdomain(self, subdomain: str) -> bool:
        """Check if a non-deleted tenant with the given subdomain exists."""
        tenant = await self.get_by_subdomain(subdomain)
        return tenant is not None

    async def list_by_status(self, *statuses: TenantStatus) -> list[Tenant]:
        """List tenants in any of the given statuses, oldest first."""
        result = await self.session.execute(
            select(Tenant)
            .where(col(Tenant.status).in_([s.value for s in statuses]))
            .order_by(col(Tenant.created_at))
        )
        return list(result.scalars().all())

    async def list_all(self, include_deleted: bool = False) -> list[Tenant]:
        """List all tenants, newest first."""
        query = select(Tenant)
        if not include_deleted:
            query = query.where(Tenant.status != TenantStatus.DELETED.value)
        result = await self.session.execute(query.order_by(col(Tenant.created_at).desc()))
        return list(result.scalars().all())

    async def compare_and_set_status(
        self,
        tenant_id: UUID,
        expected: Collection[TenantStatus],
        status: TenantStatus,
        error_message: str | None = None,
    ) -> Tenant | None:
        """Move a tenant to ``status`` only if it is currently in ``expected``.

        The row is locked for the rest of the transaction; the caller commits.

        Returns:
            The updated tenant, or None if the tenant does not exist.

        Raises:
            StatusConflictError: If the current status is not in ``expected``.
            InvalidStatusTransitionError: If the lifecycle forbids the change.
        """
        tenant = await self.get_by_id(tenant_id, for_update=True)
        if tenant is None:
            return None

        if tenant.status_enum not in expected:
            allowed = ", ".join(sorted(s.value for s in expected))
            raise StatusConflictError(
                f"Tenant {tenant_id} is '{tenant.status}', expected one of: {allowed}"
            )

        tenant.apply_status(status, error_message)
        return tenant
