import hashlib
from dataclasses import dataclass
from enum import StrEnum


class QueueKind(StrEnum):
    """Workflow workload types for queue routing."""

    TENANT = "tenant"  # Provisioning and teardown workflows


@dataclass(frozen=True)
class TemporalRoute:
    """Routing result for workflow execution."""

    namespace: str
    task_queue: str


def _stable_shard(key: str, shards: int) -> int:
    """Compute stable shard from key using SHA256 (not Python hash())."""
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") % max(1, shards)


def task_queue_name(prefix: str, kind: QueueKind, shard: int) -> str:
    """Generate task queue name: {prefix}.{kind}.{shard:02d}"""
    return f"{prefix}.{kind}.{shard:02d}"


def route_for_tenant(
    *,
    tenant_id: str,
    namespace: str,
    prefix: str,
    shards: int,
    kind: QueueKind = QueueKind.TENANT,
) -> TemporalRoute:
    """
    Get routing info for a tenant-scoped workflow.

    All workflows of one tenant land on the same shard, so a tenant's
    provisioning and teardown are served by the same worker pool.

    Args:
        tenant_id: UUID string for tenant
        namespace: Temporal namespace
        prefix: Queue name prefix (e.g., "provisioner")
        shards: Number of queue shards
        kind: Workload type for queue selection

    Returns:
        TemporalRoute with namespace and task_queue
    """
    shard = _stable_shard(tenant_id, shards)
    return TemporalRoute(namespace=namespace, task_queue=task_queue_name(prefix, kind, shard))


def all_task_queues(prefix: str, shards: int, kind: QueueKind = QueueKind.TENANT) -> list[str]:
    """List every task queue of a workload, one per shard."""
    return [task_queue_name(prefix, kind, shard) for shard in range(max(1, shards))]
