"""Model exports.

Import from here: `from src.provisioner.models import Tenant, TenantStatus`
"""

from src.provisioner.models.enums import (
    DELETABLE_STATUSES,
    PROVISIONING_STATUSES,
    TenantStatus,
    WorkflowExecutionStatus,
)
from src.provisioner.models.tenant import Tenant
from src.provisioner.models.workflow import WorkflowExecution

__all__ = [
    # Enums
    "DELETABLE_STATUSES",
    "PROVISIONING_STATUSES",
    "TenantStatus",
    "WorkflowExecutionStatus",
    # Models
    "Tenant",
    "WorkflowExecution",
]
