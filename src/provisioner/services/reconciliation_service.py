"""Reconciliation of recorded workflow runs against Temporal."""

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession
from temporalio.client import WorkflowExecutionStatus as TemporalStatus
from temporalio.service import RPCError, RPCStatusCode

from src.provisioner.core.config import Settings, get_settings
from src.provisioner.core.exceptions import StatusConflictError
from src.provisioner.core.logging import get_logger
from src.provisioner.models import (
    PROVISIONING_STATUSES,
    TenantStatus,
    WorkflowExecution,
    WorkflowExecutionStatus,
)
from src.provisioner.models.base import utc_now
from src.provisioner.repositories import TenantRepository, WorkflowExecutionRepository
from src.provisioner.schemas import ReconcileReport
from src.provisioner.services.tenant_service import PROVISIONING_WORKFLOW
from src.provisioner.temporal.client import get_temporal_client

logger = get_logger(__name__)

_LIVE_EXECUTION_STATUSES = (
    WorkflowExecutionStatus.PENDING.value,
    WorkflowExecutionStatus.RUNNING.value,
)


class ReconciliationService:
    """Find workflow runs whose worker died and settle their tenants.

    A run is stale when its execution record has not been touched for
    ``workflow_stale_after_seconds``. Temporal is asked what became of it:

    - still running: left alone (a long job or certificate wait)
    - completed: the final ledger write was lost, record it
    - anything else, or unknown to Temporal: the run is abandoned. If it was
      the tenant's newest provisioning run and the tenant is still in a
      provisioning status, the tenant is marked FAILED

    DELETING tenants without a live deletion run are reported, not retried:
    teardown is caller-driven.
    """

    def __init__(
        self,
        tenant_repo: TenantRepository,
        workflow_exec_repo: WorkflowExecutionRepository,
        session: AsyncSession,
        settings: Settings | None = None,
    ):
        self.tenant_repo = tenant_repo
        self.workflow_exec_repo = workflow_exec_repo
        self.session = session
        self.settings = settings or get_settings()

    async def reconcile(self) -> ReconcileReport:
        report = ReconcileReport()
        cutoff = utc_now() - timedelta(seconds=self.settings.workflow_stale_after_seconds)
        stale = await self.workflow_exec_repo.list_stale(cutoff)
        report.checked = len(stale)

        if stale:
            client = await get_temporal_client()
            for execution in stale:
                temporal_status = await self._describe(client, execution.workflow_id)
                if temporal_status == TemporalStatus.RUNNING:
                    continue
                if temporal_status == TemporalStatus.COMPLETED:
                    execution.status = WorkflowExecutionStatus.COMPLETED.value
                    execution.completed_at = execution.completed_at or utc_now()
                    continue
                await self._abandon(execution, temporal_status, report)
            await self.session.commit()

        for tenant in await self.tenant_repo.list_by_status(TenantStatus.DELETING):
            executions = await self.workflow_exec_repo.list_by_entity(tenant.id)
            if not any(e.status in _LIVE_EXECUTION_STATUSES for e in executions):
                report.stuck_deletions.append(tenant.id)

        logger.info(
            "Reconciliation finished",
            checked=report.checked,
            abandoned=len(report.abandoned_workflows),
            failed_tenants=len(report.failed_tenants),
            stuck_deletions=len(report.stuck_deletions),
        )
        return report

    @staticmethod
    async def _describe(client, workflow_id: str) -> TemporalStatus | None:
        """Temporal's view of a run, or None if Temporal has no record of it."""
        try:
            description = await client.get_workflow_handle(workflow_id).describe()
        except RPCError as e:
            if e.status == RPCStatusCode.NOT_FOUND:
                return None
            raise
        return description.status

    async def _abandon(
        self,
        execution: WorkflowExecution,
        temporal_status: TemporalStatus | None,
        report: ReconcileReport,
    ) -> None:
        seen_as = temporal_status.name.lower() if temporal_status else "unknown to Temporal"
        detail = f"Workflow {execution.workflow_id} abandoned ({seen_as})"
        logger.warning("Abandoned workflow run", workflow_id=execution.workflow_id, state=seen_as)

        execution.status = WorkflowExecutionStatus.ABANDONED.value
        execution.error_message = detail
        execution.completed_at = utc_now()
        report.abandoned_workflows.append(execution.workflow_id)

        if execution.workflow_type != PROVISIONING_WORKFLOW:
            return
        if not await self._is_latest_provisioning_run(execution):
            logger.info(
                "Tenant owned by a newer run, not failed",
                workflow_id=execution.workflow_id,
                tenant_id=str(execution.entity_id),
            )
            return

        try:
            tenant = await self.tenant_repo.compare_and_set_status(
                execution.entity_id, PROVISIONING_STATUSES, TenantStatus.FAILED, detail
            )
        except StatusConflictError:
            # Tenant already settled or being deleted; nothing to fail
            return
        if tenant is not None:
            report.failed_tenants.append(tenant.id)

    async def _is_latest_provisioning_run(self, execution: WorkflowExecution) -> bool:
        executions = await self.workflow_exec_repo.list_by_entity(execution.entity_id)
        newest = next((e for e in executions if e.workflow_type == PROVISIONING_WORKFLOW), None)
        return newest is None or newest.id == execution.id
