"""Operator endpoints."""

from fastapi import APIRouter

from src.provisioner.api.dependencies import ReconciliationServiceDep
from src.provisioner.schemas import ReconcileReport

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/reconcile",
    response_model=ReconcileReport,
    summary="Reconcile workflow runs",
    description=(
        "Check stale workflow runs against Temporal, fail tenants whose "
        "provisioning run was abandoned and report stuck deletions."
    ),
    responses={
        200: {
            "description": "Reconciliation report",
            "content": {
                "application/json": {
                    "example": {
                        "checked": 2,
                        "abandoned_workflows": [
                            "tenant-provision-550e8400-e29b-41d4-a716-446655440000-1"
                        ],
                        "failed_tenants": ["550e8400-e29b-41d4-a716-446655440000"],
                        "stuck_deletions": [],
                    }
                }
            },
        },
    },
)
async def reconcile(service: ReconciliationServiceDep) -> ReconcileReport:
    return await service.reconcile()
