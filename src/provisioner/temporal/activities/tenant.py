"""Tenant record activities."""

import asyncio
from dataclasses import dataclass, field
from uuid import UUID

from sqlmodel import Session, select
from temporalio import activity

from src.provisioner.core.db import get_sync_engine
from src.provisioner.core.exceptions import StatusConflictError, TenantNotFoundError
from src.provisioner.models import Tenant, TenantStatus
from src.provisioner.temporal.context import TenantCtx


@dataclass
class GetTenantInput:
    tenant_id: str


@dataclass
class UpdateTenantStatusInput:
    tenant_id: str
    status: str
    # Statuses the record may be in for the write to apply; empty means any
    expected: list[str] = field(default_factory=list)
    error_message: str | None = None


def _sync_get_tenant_info(tenant_id: str) -> TenantCtx:
    """Synchronous tenant info retrieval logic."""
    engine = get_sync_engine()
    with Session(engine) as session:
        tenant = session.scalars(select(Tenant).where(Tenant.id == UUID(tenant_id))).first()

        if not tenant:
            raise TenantNotFoundError(tenant_id)

        return TenantCtx(
            tenant_id=str(tenant.id),
            subdomain=tenant.subdomain,
            domain=tenant.domain,
            database_name=tenant.database_name,
            url=tenant.url,
        )


@activity.defn
async def get_tenant_info(input: GetTenantInput) -> TenantCtx:
    """
    Load the stored tenant fields every other activity needs.

    Idempotency: Read-only, safe to retry unlimited times.

    Raises:
        TenantNotFoundError: If the tenant does not exist (not retried)
    """
    activity.logger.info(f"Getting tenant info for: {input.tenant_id}")
    ctx = await asyncio.to_thread(_sync_get_tenant_info, input.tenant_id)
    activity.logger.info(f"Tenant info retrieved: {ctx.tenant_id}, host: {ctx.hostname}")
    return ctx


def _sync_update_tenant_status(
    tenant_id: str,
    status: str,
    expected: list[str],
    error_message: str | None,
) -> bool:
    """Compare-and-swap the tenant status under a row lock."""
    target = TenantStatus(status)

    engine = get_sync_engine()
    with Session(engine) as session:
        stmt = select(Tenant).where(Tenant.id == UUID(tenant_id)).with_for_update()
        tenant = session.scalars(stmt).first()

        if not tenant:
            return False

        # A retried write finds the record already at the target status
        if tenant.status != target.value and expected and tenant.status not in expected:
            raise StatusConflictError(
                f"Tenant {tenant_id} is '{tenant.status}', "
                f"expected one of {sorted(expected)} before '{target.value}'"
            )

        tenant.apply_status(target, error_message)
        session.commit()
        return True


@activity.defn
async def update_tenant_status(input: UpdateTenantStatusInput) -> bool:
    """
    Persist a lifecycle transition.

    Idempotency: "Set to value" semantics. A retry that finds the record
    already at the target status rewrites it in place, which only refreshes
    updated_at and error_message.

    Ownership: when ``expected`` is given, the write only applies while the
    record is in one of those statuses. Any other status means another
    actor moved the tenant, and StatusConflictError (not retried) aborts
    the calling workflow.

    Returns:
        True if the record was written, False if the tenant no longer exists
    """
    activity.logger.info(f"Updating tenant {input.tenant_id} status to: {input.status}")
    result = await asyncio.to_thread(
        _sync_update_tenant_status,
        input.tenant_id,
        input.status,
        input.expected,
        input.error_message,
    )

    if not result:
        activity.logger.warning(f"Tenant {input.tenant_id} not found, status not written")
    else:
        activity.logger.info(f"Tenant {input.tenant_id} status updated to {input.status}")

    return result
