"""Repository layer - data access abstraction."""

from src.provisioner.repositories.base import BaseRepository
from src.provisioner.repositories.tenant_repository import TenantRepository
from src.provisioner.repositories.workflow_execution_repository import (
    WorkflowExecutionRepository,
)

__all__ = [
    "BaseRepository",
    "TenantRepository",
    "WorkflowExecutionRepository",
]
