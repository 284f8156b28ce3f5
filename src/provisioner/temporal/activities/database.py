"""Tenant database activities."""

import asyncio
from dataclasses import dataclass

from temporalio import activity

from src.provisioner.temporal.context import TenantCtx

from ._clients import get_database_client


@dataclass
class DropDatabaseInput:
    ctx: TenantCtx
    # Record a failed drop and let teardown continue instead of raising
    isolate_errors: bool = True


@dataclass
class DropDatabaseOutput:
    dropped: bool
    error: str | None = None


def _sync_drop_tenant_database(database_name: str) -> bool:
    return get_database_client().drop_database(database_name)


@activity.defn
async def drop_tenant_database(input: DropDatabaseInput) -> DropDatabaseOutput:
    """
    Drop the tenant database.

    Idempotency: Uses `DROP DATABASE IF EXISTS`; a missing database returns
    dropped=False.

    Error isolation: with ``isolate_errors`` a failed drop is logged and
    returned as ``error`` so the rest of teardown still runs and the
    orphaned database is reported by the workflow. Without it the error
    propagates like any other step failure.
    """
    database_name = input.ctx.database_name
    activity.logger.info(f"Dropping database: {database_name}")
    try:
        dropped = await asyncio.to_thread(_sync_drop_tenant_database, database_name)
    except Exception as e:
        if not input.isolate_errors:
            raise
        activity.logger.error(f"Failed to drop database {database_name}, continuing: {e}")
        return DropDatabaseOutput(dropped=False, error=f"{type(e).__name__}: {e}")

    if dropped:
        activity.logger.info(f"Database {database_name} dropped")
    else:
        activity.logger.info(f"Database {database_name} did not exist (already clean)")
    return DropDatabaseOutput(dropped=dropped)
