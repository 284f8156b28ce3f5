from src.provisioner.services.reconciliation_service import ReconciliationService
from src.provisioner.services.tenant_service import TenantService

__all__ = ["ReconciliationService", "TenantService"]
