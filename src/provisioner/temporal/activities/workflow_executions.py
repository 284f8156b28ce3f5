"""Workflow execution tracking activities."""

import asyncio
from dataclasses import dataclass

from sqlmodel import Session, select
from temporalio import activity

from src.provisioner.core.db import get_sync_engine
from src.provisioner.models import WorkflowExecution, WorkflowExecutionStatus
from src.provisioner.models.base import utc_now

MAX_ERROR_LENGTH = 1000


@dataclass
class UpdateWorkflowExecutionStatusInput:
    workflow_id: str
    status: str
    error_message: str | None = None


@dataclass
class RecordWorkflowProgressInput:
    workflow_id: str
    current_step: str


def _sync_update_workflow_execution_status(
    workflow_id: str, status: str, error_message: str | None
) -> bool:
    """Synchronous workflow execution status update logic."""
    WorkflowExecutionStatus(status)

    engine = get_sync_engine()
    with Session(engine) as session:
        stmt = select(WorkflowExecution).where(WorkflowExecution.workflow_id == workflow_id)
        execution = session.scalars(stmt).first()

        if not execution:
            return False

        now = utc_now()
        execution.status = status
        execution.heartbeat_at = now
        if error_message:
            execution.error_message = error_message[:MAX_ERROR_LENGTH]
        if status == WorkflowExecutionStatus.RUNNING.value and execution.started_at is None:
            execution.started_at = now
        if status in (WorkflowExecutionStatus.COMPLETED.value, WorkflowExecutionStatus.FAILED.value):
            execution.completed_at = now

        session.commit()
        return True


@activity.defn
async def update_workflow_execution_status(
    input: UpdateWorkflowExecutionStatusInput,
) -> bool:
    """
    Update workflow_executions table with final status.

    Idempotency: Setting a field to a specific value is naturally idempotent.

    Returns:
        True if workflow execution was updated, False if not found
    """
    activity.logger.info(
        f"Updating workflow execution {input.workflow_id} status to: {input.status}"
    )
    result = await asyncio.to_thread(
        _sync_update_workflow_execution_status,
        input.workflow_id,
        input.status,
        input.error_message,
    )

    if not result:
        activity.logger.error(f"Workflow execution {input.workflow_id} not found")

    return result


def _sync_record_workflow_progress(workflow_id: str, current_step: str) -> bool:
    engine = get_sync_engine()
    with Session(engine) as session:
        stmt = select(WorkflowExecution).where(WorkflowExecution.workflow_id == workflow_id)
        execution = session.scalars(stmt).first()

        if not execution:
            return False

        now = utc_now()
        execution.current_step = current_step
        execution.heartbeat_at = now
        if execution.status == WorkflowExecutionStatus.PENDING.value:
            execution.status = WorkflowExecutionStatus.RUNNING.value
            execution.started_at = execution.started_at or now
        session.commit()
        return True


@activity.defn
async def record_workflow_progress(input: RecordWorkflowProgressInput) -> bool:
    """
    Record the step a workflow is on and refresh its heartbeat.

    Reconciliation uses heartbeat_at to tell a live run from one whose
    worker died.
    """
    result = await asyncio.to_thread(
        _sync_record_workflow_progress, input.workflow_id, input.current_step
    )
    if not result:
        activity.logger.warning(f"Workflow execution {input.workflow_id} not found")
    return result
