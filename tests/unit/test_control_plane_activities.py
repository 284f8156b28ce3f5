"""Tests for DNS, cluster and database activities with mocked clients."""

import dataclasses
from unittest.mock import AsyncMock, MagicMock

import pytest
from temporalio.testing import ActivityEnvironment

from src.provisioner.clients import JobOwner
from src.provisioner.temporal.activities import (
    ClusterResourceInput,
    DnsRecordInput,
    DropDatabaseInput,
    RunJobInput,
    TenantCtx,
    WaitForCertificateInput,
    create_ingress,
    delete_dns_record,
    drop_tenant_database,
    run_database_init_job,
    upsert_dns_record,
    wait_for_certificate,
)

pytestmark = pytest.mark.unit

CTX = TenantCtx(
    tenant_id="550e8400-e29b-41d4-a716-446655440000",
    subdomain="alice",
    domain="example.com",
    database_name="alice.example.com",
    url="https://alice.example.com",
)


@pytest.fixture
def heartbeats() -> list:
    return []


@pytest.fixture
def env(heartbeats: list) -> ActivityEnvironment:
    env = ActivityEnvironment()
    env.on_heartbeat = lambda *details: heartbeats.append(details)
    return env


@pytest.fixture
def dns_client(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    client = AsyncMock()
    monkeypatch.setattr("src.provisioner.temporal.activities.dns.get_dns_client", lambda: client)
    return client


@pytest.fixture
def cluster_client(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    client = AsyncMock()
    monkeypatch.setattr(
        "src.provisioner.temporal.activities.cluster.get_cluster_client", lambda: client
    )
    return client


@pytest.fixture
def database_client(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    client = MagicMock()
    monkeypatch.setattr(
        "src.provisioner.temporal.activities.database.get_database_client", lambda: client
    )
    return client


async def test_upsert_dns_heartbeats_while_polling(env, dns_client, heartbeats):
    async def fake_upsert(subdomain, domain, on_poll=None):
        on_poll(1)
        on_poll(2)
        return True

    dns_client.upsert.side_effect = fake_upsert

    assert await env.run(upsert_dns_record, DnsRecordInput(ctx=CTX)) is True
    assert len(heartbeats) == 2


async def test_delete_dns_record(env, dns_client):
    dns_client.delete.return_value = False
    assert await env.run(delete_dns_record, DnsRecordInput(ctx=CTX)) is False
    dns_client.delete.assert_awaited_once_with("alice", "example.com")


async def test_create_ingress_passes_hostname_parts(env, cluster_client):
    cluster_client.create_ingress.return_value = True
    await env.run(create_ingress, ClusterResourceInput(ctx=CTX))
    cluster_client.create_ingress.assert_awaited_once_with("alice", "example.com")


async def test_wait_for_certificate_uses_timeout(env, cluster_client):
    await env.run(wait_for_certificate, WaitForCertificateInput(ctx=CTX, timeout_seconds=300))
    call = cluster_client.wait_for_certificate.await_args
    assert call.args == ("alice",)
    assert call.kwargs["timeout"] == 300


async def test_database_init_job(env, cluster_client):
    cluster_client.run_database_init_job.return_value = True
    env.info = dataclasses.replace(env.info, workflow_run_id="run-7")

    await env.run(run_database_init_job, RunJobInput(ctx=CTX, timeout_seconds=600))

    call = cluster_client.run_database_init_job.await_args
    owner = JobOwner(tenant_id=CTX.tenant_id, run_id="run-7")
    assert call.args == ("alice", "alice.example.com", owner)
    assert call.kwargs["timeout"] == 600


class TestDropTenantDatabase:
    async def test_drop(self, env, database_client):
        database_client.drop_database.return_value = True

        result = await env.run(drop_tenant_database, DropDatabaseInput(ctx=CTX))

        assert result.dropped is True
        assert result.error is None
        database_client.drop_database.assert_called_once_with("alice.example.com")

    async def test_failure_isolated(self, env, database_client):
        database_client.drop_database.side_effect = RuntimeError("database is being accessed")

        result = await env.run(drop_tenant_database, DropDatabaseInput(ctx=CTX))

        assert result.dropped is False
        assert result.error == "RuntimeError: database is being accessed"

    async def test_failure_propagates_without_isolation(self, env, database_client):
        database_client.drop_database.side_effect = RuntimeError("database is being accessed")

        with pytest.raises(RuntimeError):
            await env.run(
                drop_tenant_database, DropDatabaseInput(ctx=CTX, isolate_errors=False)
            )
