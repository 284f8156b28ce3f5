"""Tenant lifecycle service."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from temporalio.client import WorkflowFailureError

from src.provisioner.core.config import Settings, get_settings
from src.provisioner.core.exceptions import (
    DuplicateTenantError,
    InvalidStatusTransitionError,
    StatusConflictError,
    TenantNotFoundError,
    TenantTeardownError,
)
from src.provisioner.core.logging import bind_tenant_context, get_logger
from src.provisioner.models import (
    DELETABLE_STATUSES,
    Tenant,
    TenantStatus,
    WorkflowExecution,
    WorkflowExecutionStatus,
)
from src.provisioner.models.base import utc_now
from src.provisioner.repositories import TenantRepository, WorkflowExecutionRepository
from src.provisioner.temporal.client import get_temporal_client
from src.provisioner.temporal.routing import QueueKind, TemporalRoute, route_for_tenant
from src.provisioner.temporal.workflows import (
    DeleteTenantInput,
    DeleteTenantOutput,
    DeletionOptions,
    ProvisioningOptions,
    ProvisionTenantInput,
    TenantDeletionWorkflow,
    TenantProvisioningWorkflow,
)
from src.provisioner.temporal.workflows._steps.common import describe_failure

logger = get_logger(__name__)

PROVISIONING_WORKFLOW = "TenantProvisioningWorkflow"
DELETION_WORKFLOW = "TenantDeletionWorkflow"


class TenantService:
    """Tenant lifecycle service - business logic only."""

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

    @staticmethod
    def get_workflow_id(kind: str, tenant_id: UUID, attempt: int) -> str:
        """Deterministic workflow ID: one per tenant, workflow kind and attempt."""
        return f"tenant-{kind}-{tenant_id}-{attempt}"

    def provisioning_options(self) -> ProvisioningOptions:
        s = self.settings
        return ProvisioningOptions(
            certificate_timeout_seconds=s.certificate_timeout_seconds,
            database_init_timeout_seconds=s.database_init_timeout_seconds,
            base_url_timeout_seconds=s.base_url_timeout_seconds,
            dns_timeout_seconds=int(
                s.dns_propagation_poll_interval_seconds * s.dns_propagation_max_attempts
            ),
        )

    def deletion_options(self) -> DeletionOptions:
        return DeletionOptions(
            filestore_cleanup_timeout_seconds=self.settings.filestore_cleanup_timeout_seconds,
            isolate_database_errors=self.settings.teardown_isolate_database_errors,
        )

    async def create_tenant(self, subdomain: str) -> Tenant:
        """
        Record a new tenant and start its provisioning workflow.

        Returns as soon as the workflow is scheduled; progress is visible
        through the tenant status.

        Args:
            subdomain: Validated DNS label

        Returns:
            The tenant in REQUESTED status

        Raises:
            DuplicateTenantError: If a non-deleted tenant owns the subdomain
            InvalidSubdomainError: If the derived database name is too long
        """
        if await self.tenant_repo.exists_by_subdomain(subdomain):
            raise DuplicateTenantError(subdomain)

        # Partial unique indexes handle the remaining races
        try:
            tenant = Tenant.for_subdomain(subdomain, self.settings.base_domain)
            self.tenant_repo.add(tenant)
            await self.session.commit()
            await self.session.refresh(tenant)
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateTenantError(subdomain) from e

        bind_tenant_context(tenant.id, subdomain)
        logger.info("Tenant requested", tenant_id=str(tenant.id), subdomain=subdomain)
        await self._start_provisioning(tenant)
        return tenant

    async def reprovision_tenant(self, tenant_id: UUID) -> Tenant:
        """
        Start a new provisioning run for a FAILED tenant.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            StatusConflictError: If the tenant is not FAILED
        """
        tenant = await self.tenant_repo.compare_and_set_status(
            tenant_id, {TenantStatus.FAILED}, TenantStatus.REQUESTED
        )
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        await self.session.commit()
        await self.session.refresh(tenant)
        bind_tenant_context(tenant.id, tenant.subdomain)

        logger.info("Tenant re-provision requested", tenant_id=str(tenant_id))
        await self._start_provisioning(tenant)
        return tenant

    async def _start_provisioning(self, tenant: Tenant) -> str:
        attempt = (
            await self.workflow_exec_repo.count_by_entity_and_type(tenant.id, PROVISIONING_WORKFLOW)
            + 1
        )
        workflow_id = self.get_workflow_id("provision", tenant.id, attempt)
        workflow_exec = await self._record_execution(workflow_id, PROVISIONING_WORKFLOW, tenant.id)

        try:
            client = await get_temporal_client()
            route = self._route(tenant.id)
            await client.start_workflow(
                TenantProvisioningWorkflow.run,
                ProvisionTenantInput(
                    tenant_id=str(tenant.id), options=self.provisioning_options()
                ),
                id=workflow_id,
                task_queue=route.task_queue,
            )
        except Exception as e:
            logger.error(
                "Could not schedule provisioning",
                tenant_id=str(tenant.id),
                workflow_id=workflow_id,
                error=str(e),
            )
            detail = f"Scheduling failed: {type(e).__name__}: {e}"
            await self.tenant_repo.compare_and_set_status(
                tenant.id, {TenantStatus.REQUESTED}, TenantStatus.FAILED, detail
            )
            workflow_exec.status = WorkflowExecutionStatus.FAILED.value
            workflow_exec.error_message = detail[:1000]
            workflow_exec.completed_at = utc_now()
            await self.session.commit()
            raise

        workflow_exec.status = WorkflowExecutionStatus.RUNNING.value
        workflow_exec.started_at = utc_now()
        await self.session.commit()

        logger.info("Provisioning started", tenant_id=str(tenant.id), workflow_id=workflow_id)
        return workflow_id

    async def delete_tenant(self, tenant_id: UUID) -> DeleteTenantOutput:
        """
        Tear a tenant down and wait for the result.

        The tenant is moved to DELETING and committed before any external
        call, so a concurrent provisioning run loses its next status write.

        Returns:
            The deletion workflow result (completed steps, orphaned resources)

        Raises:
            TenantNotFoundError: If the tenant does not exist
            InvalidStatusTransitionError: If the tenant is still being provisioned
                or already deleted
            TenantTeardownError: If a teardown step failed; the tenant stays DELETING
        """
        tenant = await self.tenant_repo.get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        bind_tenant_context(tenant.id, tenant.subdomain)
        if tenant.status_enum not in DELETABLE_STATUSES:
            raise InvalidStatusTransitionError(tenant.status, TenantStatus.DELETING.value)

        await self.tenant_repo.compare_and_set_status(
            tenant_id, DELETABLE_STATUSES, TenantStatus.DELETING
        )
        await self.session.commit()

        attempt = (
            await self.workflow_exec_repo.count_by_entity_and_type(tenant_id, DELETION_WORKFLOW) + 1
        )
        workflow_id = self.get_workflow_id("delete", tenant_id, attempt)
        try:
            workflow_exec = await self._record_execution(workflow_id, DELETION_WORKFLOW, tenant_id)
        except IntegrityError as e:
            await self.session.rollback()
            raise StatusConflictError(f"Deletion of tenant {tenant_id} already in progress") from e

        client = await get_temporal_client()
        route = self._route(tenant_id)
        workflow_exec.status = WorkflowExecutionStatus.RUNNING.value
        workflow_exec.started_at = utc_now()
        await self.session.commit()

        logger.info("Teardown started", tenant_id=str(tenant_id), workflow_id=workflow_id)
        try:
            result: DeleteTenantOutput = await client.execute_workflow(
                TenantDeletionWorkflow.run,
                DeleteTenantInput(tenant_id=str(tenant_id), options=self.deletion_options()),
                id=workflow_id,
                task_queue=route.task_queue,
            )
        except WorkflowFailureError as e:
            detail = describe_failure(e)
            logger.error("Teardown failed", tenant_id=str(tenant_id), error=detail)
            raise TenantTeardownError(f"Teardown of tenant {tenant_id} failed: {detail}") from e

        if result.warnings:
            logger.warning(
                "Teardown left resources behind",
                tenant_id=str(tenant_id),
                warnings=result.warnings,
            )
        logger.info("Tenant deleted", tenant_id=str(tenant_id))
        return result

    async def get_tenant(self, tenant_id: UUID) -> Tenant:
        tenant = await self.tenant_repo.get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    async def list_tenants(self, status: TenantStatus | None = None) -> list[Tenant]:
        """List tenants, optionally filtered by status.

        Without a filter every record is returned, DELETED ones included.
        """
        if status is not None:
            return await self.tenant_repo.list_by_status(status)
        return await self.tenant_repo.list_all(include_deleted=True)

    async def list_workflow_executions(self, tenant_id: UUID) -> list[WorkflowExecution]:
        await self.get_tenant(tenant_id)
        return await self.workflow_exec_repo.list_by_entity(tenant_id)

    async def _record_execution(
        self, workflow_id: str, workflow_type: str, tenant_id: UUID
    ) -> WorkflowExecution:
        """Create the workflow execution record before starting the workflow."""
        workflow_exec = WorkflowExecution(
            workflow_id=workflow_id,
            workflow_type=workflow_type,
            entity_type="tenant",
            entity_id=tenant_id,
            status=WorkflowExecutionStatus.PENDING.value,
        )
        self.workflow_exec_repo.add(workflow_exec)
        await self.session.commit()
        await self.session.refresh(workflow_exec)
        return workflow_exec

    def _route(self, tenant_id: UUID) -> TemporalRoute:
        return route_for_tenant(
            tenant_id=str(tenant_id),
            namespace=self.settings.temporal_namespace,
            prefix=self.settings.temporal_queue_prefix,
            shards=self.settings.temporal_queue_shards,
            kind=QueueKind.TENANT,
        )
