"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.provisioner.api.dependencies.db import DBSession
from src.provisioner.repositories import TenantRepository, WorkflowExecutionRepository


def get_tenant_repository(session: DBSession) -> TenantRepository:
    return TenantRepository(session)


def get_workflow_execution_repository(
    session: DBSession,
) -> WorkflowExecutionRepository:
    return WorkflowExecutionRepository(session)


TenantRepo = Annotated[TenantRepository, Depends(get_tenant_repository)]
WorkflowExecRepo = Annotated[
    WorkflowExecutionRepository, Depends(get_workflow_execution_repository)
]
