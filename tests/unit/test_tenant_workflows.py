"""Tests for the provisioning and deletion workflows with fake activities."""

import uuid
from collections.abc import AsyncGenerator

import pytest
from temporalio import activity
from temporalio.client import WorkflowFailureError
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from src.provisioner.core.exceptions import JobFailedError, PollTimeoutError, StatusConflictError
from src.provisioner.temporal.activities import (
    ClusterResourceInput,
    DnsRecordInput,
    DropDatabaseInput,
    DropDatabaseOutput,
    GetTenantInput,
    RecordWorkflowProgressInput,
    RunJobInput,
    TenantCtx,
    UpdateTenantStatusInput,
    UpdateWorkflowExecutionStatusInput,
    WaitForCertificateInput,
)
from src.provisioner.temporal.workflows import (
    DeleteTenantInput,
    DeletionOptions,
    ProvisionTenantInput,
    TenantDeletionWorkflow,
    TenantProvisioningWorkflow,
)

pytestmark = pytest.mark.unit

TASK_QUEUE = "test-tenant-queue"
TENANT_ID = "550e8400-e29b-41d4-a716-446655440000"


class FakeControlPlane:
    """In-memory tenant record plus a log of control-plane calls."""

    def __init__(self, status: str = "requested"):
        self.status = status
        self.status_trace = [status]
        self.error_message: str | None = None
        self.calls: list[str] = []
        self.executions: dict[str, str] = {}
        self.execution_errors: dict[str, str | None] = {}
        self.failures: dict[str, Exception] = {}

    def _maybe_fail(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def activities(self) -> list:
        plane = self

        @activity.defn(name="get_tenant_info")
        async def get_tenant_info(input: GetTenantInput) -> TenantCtx:
            return TenantCtx(
                tenant_id=input.tenant_id,
                subdomain="alice",
                domain="example.com",
                database_name="alice.example.com",
                url="https://alice.example.com",
            )

        @activity.defn(name="update_tenant_status")
        async def update_tenant_status(input: UpdateTenantStatusInput) -> bool:
            if (
                plane.status != input.status
                and input.expected
                and plane.status not in input.expected
            ):
                raise StatusConflictError(f"tenant is '{plane.status}'")
            plane.status = input.status
            plane.error_message = input.error_message
            if plane.status_trace[-1] != input.status:
                plane.status_trace.append(input.status)
            return True

        @activity.defn(name="update_workflow_execution_status")
        async def update_workflow_execution_status(
            input: UpdateWorkflowExecutionStatusInput,
        ) -> bool:
            plane.executions[input.workflow_id] = input.status
            plane.execution_errors[input.workflow_id] = input.error_message
            return True

        @activity.defn(name="record_workflow_progress")
        async def record_workflow_progress(input: RecordWorkflowProgressInput) -> bool:
            return True

        @activity.defn(name="upsert_dns_record")
        async def upsert_dns_record(input: DnsRecordInput) -> bool:
            plane._maybe_fail("upsert_dns_record")
            return True

        @activity.defn(name="create_ingress")
        async def create_ingress(input: ClusterResourceInput) -> bool:
            plane._maybe_fail("create_ingress")
            return True

        @activity.defn(name="create_certificate")
        async def create_certificate(input: ClusterResourceInput) -> bool:
            plane._maybe_fail("create_certificate")
            return True

        @activity.defn(name="wait_for_certificate")
        async def wait_for_certificate(input: WaitForCertificateInput) -> None:
            plane._maybe_fail("wait_for_certificate")

        @activity.defn(name="run_database_init_job")
        async def run_database_init_job(input: RunJobInput) -> bool:
            plane._maybe_fail("run_database_init_job")
            return True

        @activity.defn(name="run_base_url_job")
        async def run_base_url_job(input: RunJobInput) -> bool:
            plane._maybe_fail("run_base_url_job")
            return True

        @activity.defn(name="delete_ingress")
        async def delete_ingress(input: ClusterResourceInput) -> bool:
            plane._maybe_fail("delete_ingress")
            # Already removed by hand: a no-op delete
            return False

        @activity.defn(name="delete_certificate")
        async def delete_certificate(input: ClusterResourceInput) -> bool:
            plane._maybe_fail("delete_certificate")
            return True

        @activity.defn(name="drop_tenant_database")
        async def drop_tenant_database(input: DropDatabaseInput) -> DropDatabaseOutput:
            plane.calls.append("drop_tenant_database")
            failure = plane.failures.get("drop_tenant_database")
            if failure is None:
                return DropDatabaseOutput(dropped=True)
            if not input.isolate_errors:
                raise failure
            return DropDatabaseOutput(dropped=False, error=f"{type(failure).__name__}: {failure}")

        @activity.defn(name="cleanup_filestore")
        async def cleanup_filestore(input: RunJobInput) -> bool:
            plane._maybe_fail("cleanup_filestore")
            return True

        @activity.defn(name="delete_dns_record")
        async def delete_dns_record(input: DnsRecordInput) -> bool:
            plane._maybe_fail("delete_dns_record")
            return True

        return [
            get_tenant_info,
            update_tenant_status,
            update_workflow_execution_status,
            record_workflow_progress,
            upsert_dns_record,
            create_ingress,
            create_certificate,
            wait_for_certificate,
            run_database_init_job,
            run_base_url_job,
            delete_ingress,
            delete_certificate,
            drop_tenant_database,
            cleanup_filestore,
            delete_dns_record,
        ]


@pytest.fixture
async def env() -> AsyncGenerator[WorkflowEnvironment]:
    async with await WorkflowEnvironment.start_time_skipping() as env:
        yield env


async def _run(env: WorkflowEnvironment, plane: FakeControlPlane, workflow_run, arg):
    async with Worker(
        env.client,
        task_queue=TASK_QUEUE,
        workflows=[TenantProvisioningWorkflow, TenantDeletionWorkflow],
        activities=plane.activities(),
    ):
        return await env.client.execute_workflow(
            workflow_run,
            arg,
            id=f"test-{uuid.uuid4()}",
            task_queue=TASK_QUEUE,
        )


class TestProvisioningWorkflow:
    async def test_happy_path_status_trace(self, env):
        plane = FakeControlPlane()

        result = await _run(
            env, plane, TenantProvisioningWorkflow.run, ProvisionTenantInput(tenant_id=TENANT_ID)
        )

        assert plane.status_trace == [
            "requested",
            "dns_creating",
            "k8s_creating",
            "cert_pending",
            "db_initializing",
            "active",
        ]
        assert result.status == "active"
        assert result.completed_steps == [
            "dns",
            "ingress",
            "certificate",
            "tls_secret",
            "database_init",
            "base_url",
        ]
        assert list(plane.executions.values()) == ["completed"]

    async def test_database_init_runs_before_base_url(self, env):
        plane = FakeControlPlane()

        await _run(
            env, plane, TenantProvisioningWorkflow.run, ProvisionTenantInput(tenant_id=TENANT_ID)
        )

        assert plane.calls.index("run_database_init_job") < plane.calls.index("run_base_url_job")

    async def test_certificate_timeout_marks_failed(self, env):
        plane = FakeControlPlane()
        plane.failures["wait_for_certificate"] = PollTimeoutError(
            "Timed out waiting for TLS secret odoo-tls-alice after 300s"
        )

        with pytest.raises(WorkflowFailureError):
            await _run(
                env,
                plane,
                TenantProvisioningWorkflow.run,
                ProvisionTenantInput(tenant_id=TENANT_ID),
            )

        assert plane.status == "failed"
        assert plane.error_message
        assert "tls_secret" in plane.error_message
        assert "PollTimeoutError" in plane.error_message
        assert "dns, ingress, certificate" in plane.error_message
        # Fatal: the wait is not retried
        assert plane.calls.count("wait_for_certificate") == 1
        # No rollback of what was created
        assert "delete_ingress" not in plane.calls
        assert "run_database_init_job" not in plane.calls
        assert list(plane.executions.values()) == ["failed"]

    async def test_failed_job_marks_failed(self, env):
        plane = FakeControlPlane()
        plane.failures["run_database_init_job"] = JobFailedError("odoo-init-db-alice")

        with pytest.raises(WorkflowFailureError):
            await _run(
                env,
                plane,
                TenantProvisioningWorkflow.run,
                ProvisionTenantInput(tenant_id=TENANT_ID),
            )

        assert plane.status == "failed"
        assert "JobFailedError" in plane.error_message
        assert "run_base_url_job" not in plane.calls

    async def test_transient_errors_are_retried(self, env):
        plane = FakeControlPlane()
        attempts = {"count": 0}
        original = plane._maybe_fail

        def flaky(name: str) -> None:
            if name == "create_ingress" and attempts["count"] < 2:
                attempts["count"] += 1
                plane.calls.append(name)
                raise RuntimeError("connection reset")
            original(name)

        plane._maybe_fail = flaky

        result = await _run(
            env, plane, TenantProvisioningWorkflow.run, ProvisionTenantInput(tenant_id=TENANT_ID)
        )

        assert result.status == "active"
        assert plane.calls.count("create_ingress") == 3

    async def test_stops_when_tenant_taken_over(self, env):
        """A tenant moved to DELETING mid-flight is not overwritten."""
        plane = FakeControlPlane()
        original = plane._maybe_fail

        def teardown_starts(name: str) -> None:
            original(name)
            if name == "create_certificate":
                plane.status = "deleting"

        plane._maybe_fail = teardown_starts

        with pytest.raises(WorkflowFailureError):
            await _run(
                env,
                plane,
                TenantProvisioningWorkflow.run,
                ProvisionTenantInput(tenant_id=TENANT_ID),
            )

        assert plane.status == "deleting"
        assert "wait_for_certificate" not in plane.calls


class TestDeletionWorkflow:
    async def test_teardown_order_and_deleted(self, env):
        plane = FakeControlPlane(status="deleting")

        result = await _run(
            env, plane, TenantDeletionWorkflow.run, DeleteTenantInput(tenant_id=TENANT_ID)
        )

        assert plane.calls == [
            "delete_ingress",
            "delete_certificate",
            "drop_tenant_database",
            "cleanup_filestore",
            "delete_dns_record",
        ]
        assert plane.status == "deleted"
        assert result.deleted is True
        assert result.warnings == []

    async def test_database_failure_isolated(self, env):
        plane = FakeControlPlane(status="deleting")
        plane.failures["drop_tenant_database"] = RuntimeError("database is being accessed")

        result = await _run(
            env, plane, TenantDeletionWorkflow.run, DeleteTenantInput(tenant_id=TENANT_ID)
        )

        assert "cleanup_filestore" in plane.calls
        assert "delete_dns_record" in plane.calls
        assert plane.status == "deleted"
        assert len(result.warnings) == 1
        assert "alice.example.com" in result.warnings[0]
        assert "database" not in result.completed_steps
        # Orphaned database recorded on the execution
        assert "alice.example.com" in next(iter(plane.execution_errors.values()))

    async def test_database_failure_aborts_without_isolation(self, env):
        plane = FakeControlPlane(status="deleting")
        plane.failures["drop_tenant_database"] = RuntimeError("database is being accessed")

        with pytest.raises(WorkflowFailureError):
            await _run(
                env,
                plane,
                TenantDeletionWorkflow.run,
                DeleteTenantInput(
                    tenant_id=TENANT_ID,
                    options=DeletionOptions(isolate_database_errors=False),
                ),
            )

        assert "cleanup_filestore" not in plane.calls
        assert plane.status == "deleting"

    async def test_step_failure_leaves_deleting_with_error(self, env):
        plane = FakeControlPlane(status="deleting")
        plane.failures["cleanup_filestore"] = JobFailedError("cleanup-filestore-alice")

        with pytest.raises(WorkflowFailureError):
            await _run(
                env, plane, TenantDeletionWorkflow.run, DeleteTenantInput(tenant_id=TENANT_ID)
            )

        assert plane.status == "deleting"
        assert "filestore" in plane.error_message
        assert "JobFailedError" in plane.error_message
        assert "delete_dns_record" not in plane.calls
        assert list(plane.executions.values()) == ["failed"]
