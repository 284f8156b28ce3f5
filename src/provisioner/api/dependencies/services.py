"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.provisioner.api.dependencies.db import DBSession
from src.provisioner.api.dependencies.repositories import TenantRepo, WorkflowExecRepo
from src.provisioner.services import ReconciliationService, TenantService


def get_tenant_service(
    tenant_repo: TenantRepo,
    workflow_exec_repo: WorkflowExecRepo,
    session: DBSession,
) -> TenantService:
    """Get tenant service."""
    return TenantService(tenant_repo, workflow_exec_repo, session)


def get_reconciliation_service(
    tenant_repo: TenantRepo,
    workflow_exec_repo: WorkflowExecRepo,
    session: DBSession,
) -> ReconciliationService:
    """Get reconciliation service."""
    return ReconciliationService(tenant_repo, workflow_exec_repo, session)


TenantServiceDep = Annotated[TenantService, Depends(get_tenant_service)]
ReconciliationServiceDep = Annotated[ReconciliationService, Depends(get_reconciliation_service)]
