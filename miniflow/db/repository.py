"""Data access layer.

This is the ONLY layer that talks to the database.  It speaks pydantic
types (WorkflowDefinition, WorkflowRun) in and out; ORM rows never leave it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from miniflow.db.models import WorkflowModel, WorkflowRunModel
from miniflow.types import RunStatus, Trigger, WorkflowDefinition, WorkflowRun, dump_steps


def _to_workflow(row: WorkflowModel) -> WorkflowDefinition:
    return WorkflowDefinition(
        id=row.id,
        name=row.name,
        enabled=bool(row.enabled),
        trigger=Trigger(path=row.trigger_path),
        steps=row.steps,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_run(row: WorkflowRunModel) -> WorkflowRun:
    return WorkflowRun(
        id=row.id,
        workflow_id=row.workflow_id,
        status=RunStatus(row.status),
        ctx=row.ctx,
        error_message=row.error_message,
        error_details=row.error_details,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


class Repository:
    """All database operations for workflows and their runs."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Workflows ──

    async def save_workflow(self, workflow: WorkflowDefinition) -> WorkflowDefinition:
        """Insert a new workflow row."""
        now = datetime.now(timezone.utc)
        record = WorkflowModel(
            id=workflow.id,
            name=workflow.name,
            enabled=workflow.enabled,
            trigger_path=workflow.trigger.path,
            steps=dump_steps(workflow.steps),
            created_at=workflow.created_at or now,
            updated_at=workflow.updated_at or now,
        )
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        return _to_workflow(record)

    async def _get_workflow_row(self, workflow_id: str) -> Optional[WorkflowModel]:
        result = await self.session.execute(
            select(WorkflowModel).where(WorkflowModel.id == workflow_id)
        )
        return result.scalar_one_or_none()

    async def get_workflow(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        row = await self._get_workflow_row(workflow_id)
        return _to_workflow(row) if row is not None else None

    async def get_workflow_by_trigger_path(self, trigger_path: str) -> Optional[WorkflowDefinition]:
        result = await self.session.execute(
            select(WorkflowModel).where(WorkflowModel.trigger_path == trigger_path)
        )
        row = result.scalar_one_or_none()
        return _to_workflow(row) if row is not None else None

    async def list_workflows(self) -> list[WorkflowDefinition]:
        """All workflows, newest first."""
        result = await self.session.execute(
            select(WorkflowModel).order_by(desc(WorkflowModel.created_at))
        )
        return [_to_workflow(row) for row in result.scalars().all()]

    async def update_workflow(self, workflow_id: str, updates: dict) -> Optional[WorkflowDefinition]:
        """Apply partial updates. ``steps`` must already be validated models."""
        allowed = {"name", "enabled", "steps"}
        bad = set(updates) - allowed
        if bad:
            raise ValueError(f"Unknown workflow update keys: {bad}")
        row = await self._get_workflow_row(workflow_id)
        if row is None:
            return None
        for key, value in updates.items():
            setattr(row, key, dump_steps(value) if key == "steps" else value)
        row.updated_at = datetime.now(timezone.utc)
        await self.session.commit()
        await self.session.refresh(row)
        return _to_workflow(row)

    async def delete_workflow(self, workflow_id: str) -> bool:
        """Hard-delete a workflow and cascade to its runs."""
        row = await self._get_workflow_row(workflow_id)
        if row is None:
            return False
        await self.session.execute(
            delete(WorkflowRunModel).where(WorkflowRunModel.workflow_id == workflow_id)
        )
        await self.session.delete(row)
        await self.session.commit()
        return True

    # ── Runs ──

    async def create_run(self, run: WorkflowRun) -> WorkflowRun:
        """Persist one run record."""
        record = WorkflowRunModel(
            id=run.id,
            workflow_id=run.workflow_id,
            status=run.status.value,
            ctx=run.ctx,
            error_message=run.error_message,
            error_details=run.error_details,
            started_at=run.started_at,
            completed_at=run.completed_at,
        )
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        return _to_run(record)

    async def list_runs(self, workflow_id: str, limit: int = 50) -> list[WorkflowRun]:
        """Runs of one workflow, newest first."""
        result = await self.session.execute(
            select(WorkflowRunModel)
            .where(WorkflowRunModel.workflow_id == workflow_id)
            .order_by(desc(WorkflowRunModel.started_at))
            .limit(limit)
        )
        return [_to_run(row) for row in result.scalars().all()]

    async def get_run(self, run_id: str) -> Optional[WorkflowRun]:
        result = await self.session.execute(
            select(WorkflowRunModel).where(WorkflowRunModel.id == run_id)
        )
        row = result.scalar_one_or_none()
        return _to_run(row) if row is not None else None
