from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class WorkflowExecutionRead(BaseModel):
    id: UUID
    workflow_id: str
    workflow_type: str
    status: str
    current_step: str | None = None
    error_message: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    heartbeat_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class ReconcileReport(BaseModel):
    """Outcome of a reconciliation pass over recorded workflow runs."""

    checked: int = 0
    abandoned_workflows: list[str] = Field(default_factory=list)
    failed_tenants: list[UUID] = Field(default_factory=list)
    stuck_deletions: list[UUID] = Field(default_factory=list)
