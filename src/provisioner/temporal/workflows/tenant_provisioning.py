"""
Tenant Provisioning Workflow.

Drive a REQUESTED tenant to ACTIVE, persisting status before each phase.

Steps:
1. DNS_CREATING    - upsert {subdomain}.{domain} -> ingress load balancer
2. K8S_CREATING    - create ingress and certificate request
3. CERT_PENDING    - wait for the TLS secret (bounded)
4. DB_INITIALIZING - run the database init job, then the base-URL job
5. ACTIVE

On failure: no rollback. The tenant is marked FAILED with the failing step,
the cause and the steps already completed, so an operator can see what
infrastructure exists. Every step is idempotent, so re-provisioning reuses
whatever the failed run created.
"""

from temporalio import workflow

with workflow.unsafe.imports_passed_through():
    from src.provisioner.models import PROVISIONING_STATUSES, TenantStatus
    from src.provisioner.temporal.activities import (
        ClusterResourceInput,
        DnsRecordInput,
        GetTenantInput,
        RecordWorkflowProgressInput,
        RunJobInput,
        TenantCtx,
        UpdateTenantStatusInput,
        UpdateWorkflowExecutionStatusInput,
        WaitForCertificateInput,
        create_certificate,
        create_ingress,
        get_tenant_info,
        record_workflow_progress,
        run_base_url_job,
        run_database_init_job,
        update_tenant_status,
        update_workflow_execution_status,
        upsert_dns_record,
        wait_for_certificate,
    )
    from src.provisioner.temporal.workflows._steps.common import (
        describe_failure,
        medium_activity_opts,
        polling_activity_opts,
        short_activity_opts,
    )
    from src.provisioner.temporal.workflows.options import (
        ProvisionTenantInput,
        ProvisionTenantOutput,
    )


@workflow.defn
class TenantProvisioningWorkflow:
    """
    Provision DNS, ingress, certificate and database for one tenant.

    Status is written with compare-and-swap against the previous status, so
    a workflow that lost ownership of the record (tenant moved to DELETING,
    for example) stops instead of overwriting it.
    """

    def __init__(self) -> None:
        self._status = TenantStatus.REQUESTED.value
        self._step: str | None = None
        self._completed_steps: list[str] = []

    @workflow.query
    def progress(self) -> dict[str, object]:
        """Current status, step and completed steps of this run."""
        return {
            "status": self._status,
            "current_step": self._step,
            "completed_steps": list(self._completed_steps),
        }

    @workflow.run
    async def run(self, input: ProvisionTenantInput) -> ProvisionTenantOutput:
        """
        Run tenant provisioning workflow.

        Args:
            input: tenant_id of the REQUESTED tenant plus wait bounds

        Returns:
            ProvisionTenantOutput with the final status and completed steps
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
            workflow.logger.info(f"Provisioning tenant {tenant_id}: {ctx.hostname}")

            # Step 1: DNS
            await self._advance(tenant_id, TenantStatus.DNS_CREATING, "dns")
            await workflow.execute_activity(
                upsert_dns_record,
                DnsRecordInput(ctx=ctx),
                **polling_activity_opts(options.dns_timeout_seconds),
            )
            self._completed_steps.append("dns")

            # Step 2: ingress + certificate request
            await self._advance(tenant_id, TenantStatus.K8S_CREATING, "ingress")
            await workflow.execute_activity(
                create_ingress,
                ClusterResourceInput(ctx=ctx),
                **medium_activity_opts(),
            )
            self._completed_steps.append("ingress")
            self._step = "certificate"
            await workflow.execute_activity(
                create_certificate,
                ClusterResourceInput(ctx=ctx),
                **medium_activity_opts(),
            )
            self._completed_steps.append("certificate")

            # Step 3: wait for TLS secret
            await self._advance(tenant_id, TenantStatus.CERT_PENDING, "tls_secret")
            await workflow.execute_activity(
                wait_for_certificate,
                WaitForCertificateInput(
                    ctx=ctx, timeout_seconds=options.certificate_timeout_seconds
                ),
                **polling_activity_opts(options.certificate_timeout_seconds),
            )
            self._completed_steps.append("tls_secret")

            # Step 4: database init, then base URL
            await self._advance(tenant_id, TenantStatus.DB_INITIALIZING, "database_init")
            await workflow.execute_activity(
                run_database_init_job,
                RunJobInput(ctx=ctx, timeout_seconds=options.database_init_timeout_seconds),
                **polling_activity_opts(options.database_init_timeout_seconds),
            )
            self._completed_steps.append("database_init")
            self._step = "base_url"
            await workflow.execute_activity(
                run_base_url_job,
                RunJobInput(ctx=ctx, timeout_seconds=options.base_url_timeout_seconds),
                **polling_activity_opts(options.base_url_timeout_seconds),
            )
            self._completed_steps.append("base_url")

            # Step 5: active
            await self._advance(tenant_id, TenantStatus.ACTIVE, "active")

            await workflow.execute_activity(
                update_workflow_execution_status,
                UpdateWorkflowExecutionStatusInput(
                    workflow_id=workflow.info().workflow_id,
                    status="completed",
                ),
                **short_activity_opts(),
            )

            workflow.logger.info(f"Tenant provisioning complete: {tenant_id}")
            return ProvisionTenantOutput(
                tenant_id=tenant_id,
                status=self._status,
                completed_steps=list(self._completed_steps),
            )

        except Exception as e:
            failed_step = self._step or "unknown"
            completed = ", ".join(self._completed_steps) or "none"
            detail = f"Step '{failed_step}' failed: {describe_failure(e)} (completed: {completed})"
            workflow.logger.error(f"Provisioning failed for {tenant_id}: {detail}")

            try:
                await workflow.execute_activity(
                    update_tenant_status,
                    UpdateTenantStatusInput(
                        tenant_id=tenant_id,
                        status=TenantStatus.FAILED.value,
                        expected=[s.value for s in PROVISIONING_STATUSES],
                        error_message=detail,
                    ),
                    **short_activity_opts(),
                )
                self._status = TenantStatus.FAILED.value
            except Exception as status_error:
                # Record moved on (e.g. teardown started); leave it to its new owner
                workflow.logger.warning(
                    f"Could not mark tenant {tenant_id} failed: {describe_failure(status_error)}"
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

    async def _advance(self, tenant_id: str, status: TenantStatus, step: str) -> None:
        """Persist the next status (CAS on the current one) and record progress."""
        await workflow.execute_activity(
            update_tenant_status,
            UpdateTenantStatusInput(
                tenant_id=tenant_id,
                status=status.value,
                expected=[self._status],
            ),
            **short_activity_opts(),
        )
        self._status = status.value
        self._step = step
        await workflow.execute_activity(
            record_workflow_progress,
            RecordWorkflowProgressInput(
                workflow_id=workflow.info().workflow_id,
                current_step=step,
            ),
            **short_activity_opts(),
        )
