"""Workflow inputs and outputs.

Workflows must not read settings (they would not replay deterministically),
so every configurable bound travels in the workflow input.
"""

from dataclasses import dataclass, field


@dataclass
class ProvisioningOptions:
    certificate_timeout_seconds: int = 300
    database_init_timeout_seconds: int = 600
    base_url_timeout_seconds: int = 300
    # Covers the Route 53 propagation wait (30 polls x 10s by default)
    dns_timeout_seconds: int = 300


@dataclass
class ProvisionTenantInput:
    tenant_id: str
    options: ProvisioningOptions = field(default_factory=ProvisioningOptions)


@dataclass
class ProvisionTenantOutput:
    tenant_id: str
    status: str
    completed_steps: list[str] = field(default_factory=list)


@dataclass
class DeletionOptions:
    filestore_cleanup_timeout_seconds: int = 60
    isolate_database_errors: bool = True


@dataclass
class DeleteTenantInput:
    tenant_id: str
    options: DeletionOptions = field(default_factory=DeletionOptions)


@dataclass
class DeleteTenantOutput:
    tenant_id: str
    deleted: bool
    completed_steps: list[str] = field(default_factory=list)
    # Resources left behind under the error-isolation policy
    warnings: list[str] = field(default_factory=list)
