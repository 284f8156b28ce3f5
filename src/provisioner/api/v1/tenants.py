"""Tenant lifecycle endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from src.provisioner.api.dependencies import TenantServiceDep
from src.provisioner.models import TenantStatus
from src.provisioner.schemas import TenantCreate, TenantRead, WorkflowExecutionRead

router = APIRouter(prefix="/tenants", tags=["tenants"])

_TENANT_EXAMPLE = {
    "id": "550e8400-e29b-41d4-a716-446655440000",
    "subdomain": "alice",
    "domain": "42khartoum.com",
    "database_name": "alice.42khartoum.com",
    "url": "https://alice.42khartoum.com",
    "status": "requested",
    "created_at": "2024-01-15T10:30:00",
    "updated_at": "2024-01-15T10:30:00",
    "activated_at": None,
    "error_message": None,
}


@router.post(
    "",
    response_model=TenantRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {
            "description": "Tenant recorded and provisioning started",
            "content": {"application/json": {"example": _TENANT_EXAMPLE}},
        },
        409: {"description": "Subdomain already in use"},
        422: {"description": "Invalid subdomain"},
    },
)
async def create_tenant(request: TenantCreate, service: TenantServiceDep) -> TenantRead:
    """
    Request a new tenant.

    Returns immediately; provisioning runs in the background. Poll
    GET /tenants/{id} for status.
    """
    tenant = await service.create_tenant(request.subdomain)
    return TenantRead.model_validate(tenant)


@router.get("", response_model=list[TenantRead])
async def list_tenants(
    service: TenantServiceDep,
    status_filter: Annotated[
        TenantStatus | None, Query(alias="status", description="Only tenants in this status")
    ] = None,
) -> list[TenantRead]:
    """List tenants, deleted ones included. Filter with ``status``."""
    tenants = await service.list_tenants(status_filter)
    return [TenantRead.model_validate(t) for t in tenants]


@router.get(
    "/{tenant_id}",
    response_model=TenantRead,
    responses={
        200: {
            "description": "Tenant details",
            "content": {
                "application/json": {
                    "example": {
                        **_TENANT_EXAMPLE,
                        "status": "failed",
                        "error_message": (
                            "Step 'tls_secret' failed: PollTimeoutError: Timed out after 300s "
                            "waiting for TLS secret odoo-tls-alice "
                            "(completed: dns, ingress, certificate)"
                        ),
                    }
                }
            },
        },
        404: {"description": "Tenant not found"},
    },
)
async def get_tenant(tenant_id: UUID, service: TenantServiceDep) -> TenantRead:
    tenant = await service.get_tenant(tenant_id)
    return TenantRead.model_validate(tenant)


@router.delete(
    "/{tenant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        204: {"description": "Tenant torn down and marked deleted"},
        404: {"description": "Tenant not found"},
        409: {"description": "Tenant is still being provisioned or already deleted"},
        502: {"description": "A teardown step failed; tenant left in 'deleting'"},
    },
)
async def delete_tenant(tenant_id: UUID, service: TenantServiceDep) -> Response:
    """
    Tear a tenant down.

    Blocks until teardown finishes. Safe to call again on a tenant left in
    'deleting' by an earlier failure.
    """
    await service.delete_tenant(tenant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{tenant_id}/reprovision",
    response_model=TenantRead,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        202: {"description": "New provisioning run started"},
        404: {"description": "Tenant not found"},
        409: {"description": "Tenant is not in 'failed' status"},
    },
)
async def reprovision_tenant(tenant_id: UUID, service: TenantServiceDep) -> TenantRead:
    """Retry provisioning of a failed tenant, reusing whatever the failed run created."""
    tenant = await service.reprovision_tenant(tenant_id)
    return TenantRead.model_validate(tenant)


@router.get(
    "/{tenant_id}/workflows",
    response_model=list[WorkflowExecutionRead],
    responses={404: {"description": "Tenant not found"}},
)
async def list_tenant_workflows(
    tenant_id: UUID, service: TenantServiceDep
) -> list[WorkflowExecutionRead]:
    """Recorded provisioning and deletion runs for a tenant, newest first."""
    executions = await service.list_workflow_executions(tenant_id)
    return [WorkflowExecutionRead.model_validate(e) for e in executions]
