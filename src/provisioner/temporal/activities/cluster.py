"""Kubernetes resource activities: ingress, certificate and one-shot jobs."""

from dataclasses import dataclass

from temporalio import activity

from src.provisioner.clients import JobOwner
from src.provisioner.temporal.context import TenantCtx

from ._clients import get_cluster_client


@dataclass
class ClusterResourceInput:
    ctx: TenantCtx


@dataclass
class WaitForCertificateInput:
    ctx: TenantCtx
    timeout_seconds: int


@dataclass
class RunJobInput:
    ctx: TenantCtx
    timeout_seconds: int


def _heartbeat(attempt: int) -> None:
    activity.heartbeat(attempt)


def _job_owner(ctx: TenantCtx) -> JobOwner:
    return JobOwner(tenant_id=ctx.tenant_id, run_id=activity.info().workflow_run_id)


@activity.defn
async def create_ingress(input: ClusterResourceInput) -> bool:
    """
    Create the tenant ingress (host rule plus TLS section).

    Idempotency: An existing ingress (HTTP 409) counts as success.
    """
    activity.logger.info(f"Creating ingress for {input.ctx.hostname}")
    return await get_cluster_client().create_ingress(input.ctx.subdomain, input.ctx.domain)


@activity.defn
async def create_certificate(input: ClusterResourceInput) -> bool:
    """
    Request a TLS certificate for the tenant hostname.

    Idempotency: An existing certificate (HTTP 409) counts as success.
    """
    activity.logger.info(f"Requesting certificate for {input.ctx.hostname}")
    return await get_cluster_client().create_certificate(input.ctx.subdomain, input.ctx.domain)


@activity.defn
async def wait_for_certificate(input: WaitForCertificateInput) -> None:
    """
    Block until the certificate's TLS secret exists.

    Heartbeats on every poll. Timing out raises PollTimeoutError, which is
    not retried: the certificate wait is already bounded.
    """
    activity.logger.info(
        f"Waiting up to {input.timeout_seconds}s for certificate of {input.ctx.hostname}"
    )
    await get_cluster_client().wait_for_certificate(
        input.ctx.subdomain, timeout=input.timeout_seconds, on_poll=_heartbeat
    )


@activity.defn
async def run_database_init_job(input: RunJobInput) -> bool:
    """
    Create and initialize the tenant database through a cluster job.

    Idempotency: The job has a fixed name. A retry that finds the job this
    workflow run submitted waits on it; a job left by another run or an
    earlier tenant with the same subdomain is replaced.

    Raises:
        JobFailedError: The job failed (not retried)
        PollTimeoutError: The job did not finish in time (not retried)
    """
    ctx = input.ctx
    activity.logger.info(f"Initializing database {ctx.database_name}")
    return await get_cluster_client().run_database_init_job(
        ctx.subdomain,
        ctx.database_name,
        _job_owner(ctx),
        timeout=input.timeout_seconds,
        on_poll=_heartbeat,
    )


@activity.defn
async def run_base_url_job(input: RunJobInput) -> bool:
    """
    Pin the application's base URL to the tenant URL through a cluster job.

    Idempotency: Same fixed-name job semantics as run_database_init_job.
    """
    ctx = input.ctx
    activity.logger.info(f"Setting base URL of {ctx.database_name} to {ctx.url}")
    return await get_cluster_client().run_base_url_job(
        ctx.subdomain,
        ctx.database_name,
        ctx.url,
        _job_owner(ctx),
        timeout=input.timeout_seconds,
        on_poll=_heartbeat,
    )


@activity.defn
async def delete_ingress(input: ClusterResourceInput) -> bool:
    """Delete the tenant ingress. A missing ingress (HTTP 404) counts as success."""
    activity.logger.info(f"Deleting ingress for {input.ctx.hostname}")
    return await get_cluster_client().delete_ingress(input.ctx.subdomain)


@activity.defn
async def delete_certificate(input: ClusterResourceInput) -> bool:
    """Delete the tenant certificate. A missing certificate counts as success."""
    activity.logger.info(f"Deleting certificate for {input.ctx.hostname}")
    return await get_cluster_client().delete_certificate(input.ctx.subdomain)


@activity.defn
async def cleanup_filestore(input: RunJobInput) -> bool:
    """
    Remove the tenant's filestore directory through a cluster job.

    Idempotency: ``rm -rf`` of a missing directory succeeds, and the job
    follows the same ownership rules as run_database_init_job.
    """
    ctx = input.ctx
    activity.logger.info(f"Cleaning filestore of {ctx.database_name}")
    return await get_cluster_client().cleanup_filestore(
        ctx.subdomain,
        ctx.database_name,
        _job_owner(ctx),
        timeout=input.timeout_seconds,
        on_poll=_heartbeat,
    )
