"""Tests for the worker's health app and worker wiring."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.provisioner.temporal.worker import (
    TENANT_ACTIVITIES,
    TENANT_WORKFLOWS,
    create_health_app,
)

pytestmark = pytest.mark.unit


async def test_health_endpoint():
    app = create_health_app(["provisioner.tenant.00"])

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "provisioning-worker"
    assert data["task_queues"] == ["provisioner.tenant.00"]


async def test_ready_endpoint():
    app = create_health_app([])

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_worker_registers_every_activity_once():
    names = [fn.__temporal_activity_definition.name for fn in TENANT_ACTIVITIES]

    assert len(names) == len(set(names))
    assert {"upsert_dns_record", "wait_for_certificate", "drop_tenant_database"} <= set(names)


def test_worker_registers_both_workflows():
    assert {wf.__name__ for wf in TENANT_WORKFLOWS} == {
        "TenantProvisioningWorkflow",
        "TenantDeletionWorkflow",
    }
