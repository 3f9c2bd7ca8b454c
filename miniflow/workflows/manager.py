"""
WorkflowManager — lifecycle management for workflows and their run records.

Supports both in-memory operation (no session factory, for tests and the
CLI) and full persistence when an async session factory is provided.  With
a session factory every call opens its own session, so one manager can be
shared by concurrent requests.
"""

from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional, Sequence
from uuid import uuid4

from miniflow.config import MiniflowConfig
from miniflow.engine.http import HttpDispatcher
from miniflow.engine.runner import Callback, execute_workflow
from miniflow.exceptions import RunNotFound, WorkflowDisabled, WorkflowNotFound, WorkflowValidationError
from miniflow.types import RunOutcome, Trigger, WorkflowDefinition, WorkflowRun

from .validator import WorkflowValidator


def generate_trigger_path(prefix: str = "/t") -> str:
    """Unguessable trigger path: ``<prefix>/<32 hex chars>``."""
    return f"{prefix.rstrip('/')}/{secrets.token_hex(16)}"


class WorkflowManager:
    """
    Args:
        session_factory: Optional async_sessionmaker.  When None, all state
                         is kept in-memory.
        dispatcher:      HttpDispatcher used by triggered runs.
        callbacks:       Run lifecycle callbacks passed to every run.
        validator:       WorkflowValidator.  A default instance is created if
                         not supplied.
        config:          MiniflowConfig.  A default instance is created if
                         not supplied.
    """

    def __init__(
        self,
        session_factory: Any = None,
        dispatcher: Optional[HttpDispatcher] = None,
        callbacks: Optional[Sequence[Callback]] = None,
        validator: Optional[WorkflowValidator] = None,
        config: Optional[MiniflowConfig] = None,
    ) -> None:
        self._session_factory = session_factory
        self._config = config or MiniflowConfig()
        self._dispatcher = dispatcher or HttpDispatcher(config=self._config)
        self._callbacks = list(callbacks or [])
        self._validator = validator or WorkflowValidator()

        # in-memory stores, used only when there is no session factory
        self._workflows: dict[str, WorkflowDefinition] = {}
        self._runs: dict[str, WorkflowRun] = {}

    @property
    def persistent(self) -> bool:
        return self._session_factory is not None

    @asynccontextmanager
    async def _repository(self) -> AsyncIterator[Any]:
        from miniflow.db.repository import Repository
        async with self._session_factory() as session:
            yield Repository(session)

    # ── Workflow CRUD ─────────────────────────────────────────────────────────

    async def create(self, name: Any, steps: Any, enabled: bool = True) -> WorkflowDefinition:
        """
        Validate and store a new workflow with a fresh trigger path.

        Raises:
            WorkflowValidationError: if the name or any step definition is invalid.
        """
        errors = self._validator.validate(name=name, steps=steps)
        if errors:
            raise WorkflowValidationError("Workflow validation failed", violations=errors)

        now = datetime.now(timezone.utc)
        workflow = WorkflowDefinition(
            id=f"wf_{uuid4().hex}",
            name=name,
            enabled=enabled,
            trigger=Trigger(path=generate_trigger_path(self._config.trigger_prefix)),
            steps=self._validator.parse(steps),
            created_at=now,
            updated_at=now,
        )

        if self.persistent:
            async with self._repository() as repo:
                return await repo.save_workflow(workflow)
        self._workflows[workflow.id] = workflow
        return workflow

    async def list(self) -> list[WorkflowDefinition]:
        """All workflows, newest first."""
        if self.persistent:
            async with self._repository() as repo:
                return await repo.list_workflows()
        return sorted(reversed(self._workflows.values()), key=lambda w: w.created_at, reverse=True)

    async def get(self, workflow_id: str) -> WorkflowDefinition:
        """
        Raises:
            WorkflowNotFound: if no workflow has this ID.
        """
        if self.persistent:
            async with self._repository() as repo:
                workflow = await repo.get_workflow(workflow_id)
        else:
            workflow = self._workflows.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFound(f"Workflow '{workflow_id}' not found.", workflow_id=workflow_id)
        return workflow

    async def get_by_trigger_path(self, trigger_path: str) -> WorkflowDefinition:
        """
        Raises:
            WorkflowNotFound: if no workflow owns this trigger path.
        """
        if self.persistent:
            async with self._repository() as repo:
                workflow = await repo.get_workflow_by_trigger_path(trigger_path)
        else:
            workflow = next(
                (w for w in self._workflows.values() if w.trigger.path == trigger_path), None
            )
        if workflow is None:
            raise WorkflowNotFound(f"No workflow for trigger path '{trigger_path}'.")
        return workflow

    async def update(
        self,
        workflow_id: str,
        name: Any = None,
        enabled: Optional[bool] = None,
        steps: Any = None,
    ) -> WorkflowDefinition:
        """
        Apply a partial update. The trigger path never changes.

        Raises:
            WorkflowNotFound: if the workflow does not exist.
            WorkflowValidationError: if a supplied field is invalid.
        """
        existing = await self.get(workflow_id)
        errors = self._validator.validate(
            name=name, steps=steps, require_name=False, require_steps=False
        )
        if errors:
            raise WorkflowValidationError("Workflow validation failed", violations=errors)

        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if enabled is not None:
            updates["enabled"] = enabled
        if steps is not None:
            updates["steps"] = self._validator.parse(steps)

        if self.persistent:
            async with self._repository() as repo:
                updated = await repo.update_workflow(workflow_id, updates)
            if updated is None:
                raise WorkflowNotFound(f"Workflow '{workflow_id}' not found.", workflow_id=workflow_id)
            return updated

        updates["updated_at"] = datetime.now(timezone.utc)
        updated = existing.model_copy(update=updates)
        self._workflows[workflow_id] = updated
        return updated

    async def delete(self, workflow_id: str) -> None:
        """
        Delete a workflow and all of its runs.

        Raises:
            WorkflowNotFound: if the workflow does not exist.
        """
        if self.persistent:
            async with self._repository() as repo:
                deleted = await repo.delete_workflow(workflow_id)
        else:
            deleted = self._workflows.pop(workflow_id, None) is not None
            if deleted:
                self._runs = {k: r for k, r in self._runs.items() if r.workflow_id != workflow_id}
        if not deleted:
            raise WorkflowNotFound(f"Workflow '{workflow_id}' not found.", workflow_id=workflow_id)

    # ── Runs ──────────────────────────────────────────────────────────────────

    async def record_run(
        self, workflow_id: str, outcome: RunOutcome, started_at: datetime
    ) -> WorkflowRun:
        """Store one RunOutcome as a WorkflowRun record."""
        run = WorkflowRun(
            id=f"run_{uuid4().hex}",
            workflow_id=workflow_id,
            status=outcome.status,
            ctx=outcome.context,
            error_message=outcome.error,
            error_details=outcome.error_details,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )
        if self.persistent:
            async with self._repository() as repo:
                return await repo.create_run(run)
        self._runs[run.id] = run
        return run

    async def list_runs(self, workflow_id: str, limit: Optional[int] = None) -> list[WorkflowRun]:
        """Runs of one workflow, newest first."""
        limit = limit or self._config.runs_default_limit
        if self.persistent:
            async with self._repository() as repo:
                return await repo.list_runs(workflow_id, limit)
        runs = [r for r in reversed(self._runs.values()) if r.workflow_id == workflow_id]
        runs.sort(key=lambda r: r.started_at, reverse=True)
        return runs[:limit]

    async def get_run(self, run_id: str) -> WorkflowRun:
        """
        Raises:
            RunNotFound: if no run has this ID.
        """
        if self.persistent:
            async with self._repository() as repo:
                run = await repo.get_run(run_id)
        else:
            run = self._runs.get(run_id)
        if run is None:
            raise RunNotFound(f"Run '{run_id}' not found.")
        return run

    # ── Trigger ───────────────────────────────────────────────────────────────

    async def trigger(self, trigger_path: str, body: Optional[dict]) -> tuple[RunOutcome, WorkflowRun]:
        """
        Resolve the workflow behind ``trigger_path``, run it, record the run.

        Raises:
            WorkflowNotFound: unknown trigger path.
            WorkflowDisabled: workflow exists but ``enabled`` is False.
        """
        workflow = await self.get_by_trigger_path(trigger_path)
        if not workflow.enabled:
            raise WorkflowDisabled("Workflow is disabled", workflow_id=workflow.id)

        started_at = datetime.now(timezone.utc)
        outcome = await execute_workflow(
            workflow.steps,
            body or {},
            workflow.id,
            dispatcher=self._dispatcher,
            callbacks=self._callbacks,
        )
        run = await self.record_run(workflow.id, outcome, started_at)
        return outcome, run
