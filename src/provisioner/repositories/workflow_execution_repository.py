"""Repository for WorkflowExecution entity."""

from datetime import datetime
from uuid import UUID

from sqlmodel import col, func, select

from src.provisioner.models import WorkflowExecution, WorkflowExecutionStatus
from src.provisioner.repositories.base import BaseRepository


class WorkflowExecutionRepository(BaseRepository[WorkflowExecution]):
    """Repository for WorkflowExecution entity."""

    model = WorkflowExecution

    async def get_by_workflow_id(self, workflow_id: str) -> WorkflowExecution | None:
        """Get workflow execution by workflow_id."""
        result = await self.session.execute(
            select(WorkflowExecution).where(WorkflowExecution.workflow_id == workflow_id)
        )
        return result.scalar_one_or_none()

    async def list_by_entity(
        self, entity_id: UUID, entity_type: str = "tenant"
    ) -> list[WorkflowExecution]:
        """List workflow executions for a specific entity, newest first."""
        result = await self.session.execute(
            select(WorkflowExecution)
            .where(
                WorkflowExecution.entity_type == entity_type,
                WorkflowExecution.entity_id == entity_id,
            )
            .order_by(col(WorkflowExecution.created_at).desc())
        )
        return list(result.scalars().all())

    async def count_by_entity_and_type(self, entity_id: UUID, workflow_type: str) -> int:
        """Count recorded runs of one workflow type for an entity."""
        result = await self.session.execute(
            select(func.count())
            .select_from(WorkflowExecution)
            .where(
                WorkflowExecution.entity_id == entity_id,
                WorkflowExecution.workflow_type == workflow_type,
            )
        )
        return int(result.scalar_one())

    async def list_stale(self, older_than: datetime) -> list[WorkflowExecution]:
        """List pending/running executions with no sign of life since ``older_than``.

        Liveness is the latest of heartbeat, start and creation time.
        """
        last_seen = func.coalesce(
            WorkflowExecution.heartbeat_at,
            WorkflowExecution.started_at,
            WorkflowExecution.created_at,
        )
        result = await self.session.execute(
            select(WorkflowExecution)
            .where(
                col(WorkflowExecution.status).in_(
                    [WorkflowExecutionStatus.PENDING.value, WorkflowExecutionStatus.RUNNING.value]
                ),
                last_seen < older_than,
            )
            .order_by(col(WorkflowExecution.created_at))
        )
        return list(result.scalars().all())
