"""FastAPI dependency injection definitions."""

# Database
from src.provisioner.api.dependencies.db import DBSession, get_db_session

# Repositories
from src.provisioner.api.dependencies.repositories import (
    TenantRepo,
    WorkflowExecRepo,
    get_tenant_repository,
    get_workflow_execution_repository,
)

# Services
from src.provisioner.api.dependencies.services import (
    ReconciliationServiceDep,
    TenantServiceDep,
    get_reconciliation_service,
    get_tenant_service,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Repositories
    "TenantRepo",
    "WorkflowExecRepo",
    "get_tenant_repository",
    "get_workflow_execution_repository",
    # Services
    "ReconciliationServiceDep",
    "TenantServiceDep",
    "get_reconciliation_service",
    "get_tenant_service",
]
