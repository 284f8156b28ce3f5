"""
Temporal Worker - Separate process from API.

Run with:
    uv run python -m src.provisioner.temporal.worker
    uv run python -m src.provisioner.temporal.worker --max-concurrent-activities 10
"""

import argparse
import asyncio
from collections.abc import Sequence

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.worker import Worker

from src.provisioner.core.config import get_settings
from src.provisioner.core.db import dispose_sync_engine
from src.provisioner.core.logging import get_logger, setup_logging
from src.provisioner.temporal.activities import (
    PROVISIONING_ACTIVITIES,
    TEARDOWN_ACTIVITIES,
    dispose_clients,
)
from src.provisioner.temporal.routing import all_task_queues
from src.provisioner.temporal.workflows import (
    TenantDeletionWorkflow,
    TenantProvisioningWorkflow,
)

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001

TENANT_WORKFLOWS: list[type] = [TenantProvisioningWorkflow, TenantDeletionWorkflow]
TENANT_ACTIVITIES = [*PROVISIONING_ACTIVITIES, *TEARDOWN_ACTIVITIES]


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments for worker tuning."""
    parser = argparse.ArgumentParser(description="Tenant provisioning worker")
    parser.add_argument(
        "--max-concurrent-activities",
        type=int,
        default=20,
        help="Max concurrent activity executions per queue (default: 20)",
    )
    parser.add_argument(
        "--health-port",
        type=int,
        default=WORKER_HEALTH_PORT,
        help=f"Port for the health server (default: {WORKER_HEALTH_PORT})",
    )
    return parser.parse_args()


def create_worker(
    client: Client,
    task_queue: str,
    workflows: Sequence[type],
    activities: Sequence[object],  # type: ignore[type-arg]
    *,
    max_concurrent_activities: int = 20,
    max_concurrent_workflow_tasks: int = 20,
) -> Worker:
    """Create a worker with tuned settings.

    Activities mostly wait on the cluster, Route 53 or a job, so concurrency
    stays low: every running activity holds a thread or a poll loop.
    """
    return Worker(
        client,
        task_queue=task_queue,
        workflows=list(workflows),
        activities=list(activities),  # type: ignore[arg-type]
        max_concurrent_activities=max_concurrent_activities,
        max_concurrent_workflow_tasks=max_concurrent_workflow_tasks,
    )


async def run_tenant_workers(client: Client, task_queues: list[str], max_concurrent_activities: int) -> None:
    """Run one worker per tenant queue shard."""
    workers = []
    for tq in task_queues:
        worker = create_worker(
            client,
            tq,
            workflows=TENANT_WORKFLOWS,
            activities=TENANT_ACTIVITIES,
            max_concurrent_activities=max_concurrent_activities,
        )
        workers.append(worker)
        logger.info(f"Created tenant worker for queue: {tq}")

    logger.info(f"Starting {len(workers)} tenant worker(s)")
    await asyncio.gather(*(w.run() for w in workers))


def create_health_app(task_queues: list[str]) -> FastAPI:
    """Lightweight health app for K8s probes."""
    health_app = FastAPI(title="Provisioning Worker Health")

    @health_app.get("/health")
    async def health() -> dict[str, str | list[str]]:
        return {
            "status": "healthy",
            "service": "provisioning-worker",
            "task_queues": task_queues,
        }

    @health_app.get("/ready")
    async def ready() -> dict[str, str]:
        return {"status": "ready"}

    return health_app


async def run_health_server(task_queues: list[str], port: int = WORKER_HEALTH_PORT) -> None:
    config = uvicorn.Config(
        create_health_app(task_queues),
        host="0.0.0.0",
        port=port,
        log_level="warning",
    )
    server = uvicorn.Server(config)
    logger.info(f"Starting health server on port {port}")
    await server.serve()


async def main() -> None:
    """Main entry point for the Temporal worker."""
    args = parse_args()
    settings = get_settings()
    setup_logging(settings.debug)

    client = await Client.connect(
        settings.temporal_host,
        namespace=settings.temporal_namespace,
    )

    task_queues = all_task_queues(settings.temporal_queue_prefix, settings.temporal_queue_shards)
    logger.info(f"Polling task queues: {', '.join(task_queues)}")

    try:
        health_task = asyncio.create_task(run_health_server(task_queues, args.health_port))
        await run_tenant_workers(client, task_queues, args.max_concurrent_activities)
        # Wait for health server to finish (should never happen)
        await health_task
    finally:
        dispose_sync_engine()
        dispose_clients()


if __name__ == "__main__":
    asyncio.run(main())
