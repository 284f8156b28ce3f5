from src.provisioner.schemas.tenant import TenantCreate, TenantRead
from src.provisioner.schemas.workflow import ReconcileReport, WorkflowExecutionRead

__all__ = [
    # Tenant
    "TenantCreate",
    "TenantRead",
    # Workflow
    "ReconcileReport",
    "WorkflowExecutionRead",
]
