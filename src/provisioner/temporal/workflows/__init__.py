"""Temporal Workflows - Re-exports for worker registration."""

from src.provisioner.temporal.workflows.options import (
    DeleteTenantInput,
    DeleteTenantOutput,
    DeletionOptions,
    ProvisioningOptions,
    ProvisionTenantInput,
    ProvisionTenantOutput,
)
from src.provisioner.temporal.workflows.tenant_deletion import TenantDeletionWorkflow
from src.provisioner.temporal.workflows.tenant_provisioning import TenantProvisioningWorkflow

__all__ = [
    # Inputs / outputs
    "DeleteTenantInput",
    "DeleteTenantOutput",
    "DeletionOptions",
    "ProvisionTenantInput",
    "ProvisionTenantOutput",
    "ProvisioningOptions",
    # Workflows
    "TenantDeletionWorkflow",
    "TenantProvisioningWorkflow",
]
