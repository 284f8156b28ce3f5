"""
Temporal Activities - Fine-grained, idempotent operations.

Activities should be:
1. Idempotent - Safe to retry
2. Fine-grained - Do one thing well
3. Side-effect aware - External calls go here, not in workflows
"""

from src.provisioner.temporal.activities._clients import dispose_clients
from src.provisioner.temporal.activities.cluster import (
    ClusterResourceInput,
    RunJobInput,
    WaitForCertificateInput,
    cleanup_filestore,
    create_certificate,
    create_ingress,
    delete_certificate,
    delete_ingress,
    run_base_url_job,
    run_database_init_job,
    wait_for_certificate,
)
from src.provisioner.temporal.activities.database import (
    DropDatabaseInput,
    DropDatabaseOutput,
    drop_tenant_database,
)
from src.provisioner.temporal.activities.dns import (
    DnsRecordInput,
    delete_dns_record,
    upsert_dns_record,
)
from src.provisioner.temporal.activities.tenant import (
    GetTenantInput,
    UpdateTenantStatusInput,
    get_tenant_info,
    update_tenant_status,
)
from src.provisioner.temporal.activities.workflow_executions import (
    RecordWorkflowProgressInput,
    UpdateWorkflowExecutionStatusInput,
    record_workflow_progress,
    update_workflow_execution_status,
)
from src.provisioner.temporal.context import TenantCtx

PROVISIONING_ACTIVITIES = [
    get_tenant_info,
    update_tenant_status,
    update_workflow_execution_status,
    record_workflow_progress,
    upsert_dns_record,
    create_ingress,
    create_certificate,
    wait_for_certificate,
    run_database_init_job,
    run_base_url_job,
]

TEARDOWN_ACTIVITIES = [
    delete_ingress,
    delete_certificate,
    drop_tenant_database,
    cleanup_filestore,
    delete_dns_record,
]

__all__ = [
    # Context
    "TenantCtx",
    # Dataclasses
    "ClusterResourceInput",
    "DnsRecordInput",
    "DropDatabaseInput",
    "DropDatabaseOutput",
    "GetTenantInput",
    "RecordWorkflowProgressInput",
    "RunJobInput",
    "UpdateTenantStatusInput",
    "UpdateWorkflowExecutionStatusInput",
    "WaitForCertificateInput",
    # Activities
    "cleanup_filestore",
    "create_certificate",
    "create_ingress",
    "delete_certificate",
    "delete_dns_record",
    "delete_ingress",
    "drop_tenant_database",
    "get_tenant_info",
    "record_workflow_progress",
    "run_base_url_job",
    "run_database_init_job",
    "update_tenant_status",
    "update_workflow_execution_status",
    "upsert_dns_record",
    "wait_for_certificate",
    # Registration
    "PROVISIONING_ACTIVITIES",
    "TEARDOWN_ACTIVITIES",
    "dispose_clients",
]
