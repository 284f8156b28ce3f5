"""Workflow execution tracking model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.provisioner.models.base import utc_now
from src.provisioner.models.enums import WorkflowExecutionStatus


class WorkflowExecution(SQLModel, table=True):
    """Workflow execution tracking - links workflows to tenants."""

    __tablename__ = "workflow_executions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    workflow_id: str = Field(max_length=255, unique=True, index=True)
    workflow_type: str = Field(max_length=100)
    entity_type: str = Field(default="tenant", max_length=50)
    entity_id: UUID = Field(index=True)
    status: str = Field(default=WorkflowExecutionStatus.PENDING.value, max_length=20, index=True)
    current_step: str | None = Field(default=None, max_length=50)
    error_message: str | None = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = Field(default=None)
    heartbeat_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def status_enum(self) -> WorkflowExecutionStatus:
        return WorkflowExecutionStatus(self.status)
