"""DNS record activities."""

from dataclasses import dataclass

from temporalio import activity

from src.provisioner.temporal.context import TenantCtx

from ._clients import get_dns_client


@dataclass
class DnsRecordInput:
    ctx: TenantCtx


def _heartbeat(attempt: int) -> None:
    activity.heartbeat(attempt)


@activity.defn
async def upsert_dns_record(input: DnsRecordInput) -> bool:
    """
    Point the tenant hostname at the ingress load balancer.

    Idempotency: Route 53 UPSERT is create-or-replace, so retries converge
    on the same record. Heartbeats while waiting for propagation.

    Returns:
        True if the change propagated, False if the propagation wait ran out
    """
    ctx = input.ctx
    activity.logger.info(f"Upserting DNS record for {ctx.hostname}")
    in_sync = await get_dns_client().upsert(ctx.subdomain, ctx.domain, on_poll=_heartbeat)
    if not in_sync:
        activity.logger.warning(f"DNS record for {ctx.hostname} not yet propagated")
    return in_sync


@activity.defn
async def delete_dns_record(input: DnsRecordInput) -> bool:
    """
    Remove the tenant hostname record.

    Idempotency: A missing record is a no-op.

    Returns:
        True if a record was deleted, False if it was already gone
    """
    ctx = input.ctx
    activity.logger.info(f"Deleting DNS record for {ctx.hostname}")
    return await get_dns_client().delete(ctx.subdomain, ctx.domain)
