"""
Workflow runner: drives one run through its steps and returns a RunOutcome.

State machine per run::

    Running -> Success   every step returned SUCCESS
    Running -> Skipped   a filter step did not pass
    Running -> Failed    a step raised

All three are terminal.  The context reported for Skipped and Failed is the
one the halting step received, never a partially mutated one.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Awaitable, Callable, Optional, Sequence

from miniflow.engine.context import clone_context
from miniflow.engine.http import HttpDispatcher
from miniflow.engine.steps import execute_step
from miniflow.exceptions import HttpDispatchError
from miniflow.types import RunOutcome, RunStatus, StepStatus

logger = logging.getLogger(__name__)

Callback = Callable[[str, dict], Awaitable[None]]


async def _emit(callbacks: Sequence[Callback], event: str, data: dict) -> None:
    for callback in callbacks:
        try:
            await callback(event, data)
        except Exception as exc:
            logger.warning("Callback %r failed on %s: %s", callback, event, exc)


def _error_details(step: Any, exc: Exception) -> dict[str, Any]:
    message = str(exc) or "Step execution failed"
    details: dict[str, Any] = {
        "step": getattr(step, "type", type(step).__name__),
        "error": message,
        "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }
    if isinstance(exc, HttpDispatchError) and exc.has_response:
        details["status"] = exc.status_code
        details["data"] = exc.response_body
    return details


async def execute_workflow(
    steps: Sequence[Any],
    initial_context: Optional[dict],
    workflow_id: str,
    *,
    dispatcher: Optional[HttpDispatcher] = None,
    callbacks: Optional[Sequence[Callback]] = None,
) -> RunOutcome:
    """
    Execute ``steps`` in order against a clone of ``initial_context``.

    Args:
        steps:           Validated step models, in execution order.
        initial_context: Trigger payload. None is treated as {}.
        workflow_id:     Exposed to http_request templates and bodies.
        dispatcher:      HttpDispatcher for http_request steps.  A default
                         instance is created if not supplied.
        callbacks:       Async ``cb(event, data)`` callables notified of
                         run_started / step_completed / run_completed /
                         run_skipped / run_failed.

    Returns:
        RunOutcome.  Step errors never escape; they become status=failed.
    """
    callbacks = list(callbacks or [])
    dispatcher = dispatcher or HttpDispatcher()
    ctx = clone_context(initial_context if initial_context is not None else {})

    await _emit(callbacks, "run_started", {"workflow_id": workflow_id, "steps": len(steps)})

    for index, step in enumerate(steps):
        try:
            result = await execute_step(step, ctx, workflow_id, dispatcher)
        except Exception as exc:
            details = _error_details(step, exc)
            logger.info(
                "Workflow %s failed at step %d (%s): %s",
                workflow_id, index, details["step"], details["error"],
            )
            await _emit(callbacks, "run_failed", {
                "workflow_id": workflow_id,
                "step_index": index,
                "step": details["step"],
                "error": details["error"],
            })
            return RunOutcome(
                status=RunStatus.FAILED,
                context=ctx,
                error=details["error"],
                error_details=details,
            )

        if result.status is StepStatus.SKIPPED:
            await _emit(callbacks, "run_skipped", {
                "workflow_id": workflow_id,
                "step_index": index,
            })
            return RunOutcome(status=RunStatus.SKIPPED, context=ctx)

        ctx = result.context
        await _emit(callbacks, "step_completed", {
            "workflow_id": workflow_id,
            "step_index": index,
            "step": step.type,
            "status": result.status.value,
        })

    await _emit(callbacks, "run_completed", {"workflow_id": workflow_id, "steps": len(steps)})
    return RunOutcome(status=RunStatus.SUCCESS, context=ctx)
