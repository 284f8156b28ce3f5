"""
Tenant Deletion Workflow.

Tear down everything a tenant owns, in reverse dependency order:
1. Delete ingress
2. Delete certificate
3. Drop tenant database (failure isolated by default)
4. Clean the filestore directory
5. Delete DNS record
6. Mark tenant DELETED

Every step treats "already gone" as success, so a partially torn down
tenant can be deleted again.
"""

from temporalio import workflow

with workflow.unsafe.imports_passed_through():
    from src.provisioner.models import TenantStatus
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
        cleanup_filestore,
        delete_certificate,
        delete_dns_record,
        delete_ingress,
        drop_tenant_database,
        get_tenant_info,
        record_workflow_progress,
        update_tenant_status,
        update_workflow_execution_status,
    )
    from src.provisioner.temporal.workflows._steps.common import (
        describe_failure,
        medium_activity_opts,
        polling_activity_opts,
        short_activity_opts,
    )
    from src.provisioner.temporal.workflows.options import (
        DeleteTenantInput,
        DeleteTenantOutput,
    )


@workflow.defn
class TenantDeletionWorkflow:
    """Remove a tenant's DNS, cluster resources, database and filestore."""

    def __init__(self) -> None:
        self._step: str | None = None
        self._completed_steps: list[str] = []
        self._warnings: list[str] = []

    @workflow.query
    def progress(self) -> dict[str, object]:
        return {
            "current_step": self._step,
            "completed_steps": list(self._completed_steps),
            "warnings": list(self._warnings),
        }

    @workflow.run
    async def run(self, input: DeleteTenantInput) -> DeleteTenantOutput:
        """
        Run tenant deletion workflow.

        The tenant is expected to be DELETING already; the caller moves it
        there before starting this workflow.

        Args:
            input: tenant_id plus teardown options

        Returns:
            DeleteTenantOutput with completed steps and any orphaned resources
        """
        tenant_id = input.tenant_id
        options = input.options

        try:
            self._step = "load"
            ctx: TenantCtx = await workflow.execute_activity(
                get_tenant_info,
                GetTenantInput(tenant_id=tenant_id),
                **short_activity_opts(),
            )
            workflow.logger.info(f"Deleting tenant {tenant_id}: {ctx.hostname}")

            # Step 1: ingress
            await self._begin("ingress")
            await workflow.execute_activity(
                delete_ingress,
                ClusterResourceInput(ctx=ctx),
                **medium_activity_opts(),
            )
            self._completed_steps.append("ingress")

            # Step 2: certificate
            await self._begin("certificate")
            await workflow.execute_activity(
                delete_certificate,
                ClusterResourceInput(ctx=ctx),
                **medium_activity_opts(),
            )
            self._completed_steps.append("certificate")

            # Step 3: database
            await self._begin("database")
            result: DropDatabaseOutput = await workflow.execute_activity(
                drop_tenant_database,
                DropDatabaseInput(ctx=ctx, isolate_errors=options.isolate_database_errors),
                **medium_activity_opts(),
            )
            if result.error:
                warning = f"Database '{ctx.database_name}' not dropped: {result.error}"
                workflow.logger.warning(f"Tenant {tenant_id}: {warning}")
                self._warnings.append(warning)
            else:
                self._completed_steps.append("database")

            # Step 4: filestore
            await self._begin("filestore")
            await workflow.execute_activity(
                cleanup_filestore,
                RunJobInput(ctx=ctx, timeout_seconds=options.filestore_cleanup_timeout_seconds),
                **polling_activity_opts(options.filestore_cleanup_timeout_seconds),
            )
            self._completed_steps.append("filestore")

            # Step 5: DNS
            await self._begin("dns")
            await workflow.execute_activity(
                delete_dns_record,
                DnsRecordInput(ctx=ctx),
                **medium_activity_opts(),
            )
            self._completed_steps.append("dns")

            # Step 6: deleted
            self._step = "deleted"
            await workflow.execute_activity(
                update_tenant_status,
                UpdateTenantStatusInput(
                    tenant_id=tenant_id,
                    status=TenantStatus.DELETED.value,
                    expected=[TenantStatus.DELETING.value],
                ),
                **short_activity_opts(),
            )

            await workflow.execute_activity(
                update_workflow_execution_status,
                UpdateWorkflowExecutionStatusInput(
                    workflow_id=workflow.info().workflow_id,
                    status="completed",
                    error_message="; ".join(self._warnings) or None,
                ),
                **short_activity_opts(),
            )

            workflow.logger.info(f"Tenant deleted: {tenant_id}")
            return DeleteTenantOutput(
                tenant_id=tenant_id,
                deleted=True,
                completed_steps=list(self._completed_steps),
                warnings=list(self._warnings),
            )

        except Exception as e:
            failed_step = self._step or "unknown"
            completed = ", ".join(self._completed_steps) or "none"
            detail = f"Teardown step '{failed_step}' failed: {describe_failure(e)} (completed: {completed})"
            workflow.logger.error(f"Deletion failed for {tenant_id}: {detail}")

            # Tenant stays DELETING so deletion can be retried
            try:
                await workflow.execute_activity(
                    update_tenant_status,
                    UpdateTenantStatusInput(
                        tenant_id=tenant_id,
                        status=TenantStatus.DELETING.value,
                        expected=[TenantStatus.DELETING.value],
                        error_message=detail,
                    ),
                    **short_activity_opts(),
                )
            except Exception as status_error:
                workflow.logger.warning(
                    f"Could not record teardown failure for {tenant_id}: "
                    f"{describe_failure(status_error)}"
                )

            await workflow.execute_activity(
                update_workflow_execution_status,
                UpdateWorkflowExecutionStatusInput(
                    workflow_id=workflow.info().workflow_id,
                    status="failed",
                    error_message=detail,
                ),
                **short_activity_opts(),
            )
            raise

    async def _begin(self, step: str) -> None:
        self._step = step
        await workflow.execute_activity(
            record_workflow_progress,
            RecordWorkflowProgressInput(
                workflow_id=workflow.info().workflow_id,
                current_step=step,
            ),
            **short_activity_opts(),
        )
