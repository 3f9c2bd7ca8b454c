"""
Step interpreter: dispatches one step over the closed set of step kinds.

Every handler either returns a StepResult or raises.  Errors are not caught
here; the runner turns them into a failed RunOutcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from miniflow.engine.context import clone_context, get_value, set_value
from miniflow.engine.http import HttpDispatcher, HttpResponseSummary
from miniflow.engine.template import render_template
from miniflow.exceptions import StepDefinitionError
from miniflow.types import (
    DefaultOp,
    FilterCondition,
    FilterStep,
    HttpRequestStep,
    PickOp,
    StepStatus,
    TemplateOp,
    TransformStep,
)

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    context: dict
    status: StepStatus
    response: Optional[HttpResponseSummary] = None


# ── transform ─────────────────────────────────────────────────────────────────


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, list) and not value)


def _apply_default(ctx: dict, op: DefaultOp) -> dict:
    if not op.path:
        raise StepDefinitionError(
            'Transform operation "default" requires a path', step_type="transform"
        )
    if _is_empty(get_value(ctx, op.path)):
        set_value(ctx, op.path, clone_context(op.value))
    return ctx


def _apply_template(ctx: dict, op: TemplateOp) -> dict:
    if not op.to or not op.template:
        raise StepDefinitionError(
            'Transform operation "template" requires "to" and "template"',
            step_type="transform",
        )
    set_value(ctx, op.to, render_template(op.template, ctx))
    return ctx


def _apply_pick(ctx: dict, op: PickOp) -> dict:
    if not op.paths:
        raise StepDefinitionError(
            'Transform operation "pick" requires "paths" array', step_type="transform"
        )
    picked: dict = {}
    for path in op.paths:
        value = get_value(ctx, path)
        if value is not None:
            set_value(picked, path, value)
    # All-or-nothing: every key that was not picked is discarded.
    return picked


_OP_HANDLERS = {
    DefaultOp: _apply_default,
    TemplateOp: _apply_template,
    PickOp: _apply_pick,
}


def apply_transform(step: TransformStep, context: dict) -> dict:
    """Apply ``step.ops`` in order to a single clone of ``context``."""
    ctx = clone_context(context)
    for op in step.ops:
        handler = _OP_HANDLERS.get(type(op))
        if handler is None:
            raise StepDefinitionError(
                f"Unknown transform operation: {getattr(op, 'op', op)!r}",
                step_type="transform",
            )
        ctx = handler(ctx, op)
    return ctx


# ── filter ────────────────────────────────────────────────────────────────────


def strict_equals(left: Any, right: Any) -> bool:
    """JSON equality where booleans never equal numbers (True != 1)."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(
            strict_equals(left[key], right[key]) for key in left
        )
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(
            strict_equals(a, b) for a, b in zip(left, right)
        )
    return type(left) is type(right) and left == right


def _condition_holds(context: dict, condition: FilterCondition) -> bool:
    equal = strict_equals(get_value(context, condition.path), condition.value)
    return equal if condition.op == "eq" else not equal


def evaluate_filter(step: FilterStep, context: dict) -> bool:
    """True when every condition holds; stops at the first that does not."""
    return all(_condition_holds(context, condition) for condition in step.conditions)


# ── dispatch ──────────────────────────────────────────────────────────────────


async def execute_step(
    step: Any,
    context: dict,
    workflow_id: str,
    dispatcher: Optional[HttpDispatcher] = None,
) -> StepResult:
    """
    Interpret one step against ``context``.

    Returns:
        StepResult with the context the next step should see.  A filter
        that does not pass returns SKIPPED with ``context`` unchanged.

    Raises:
        StepDefinitionError: malformed transform op or unknown step kind.
        HttpDispatchError:   http_request failed after classification/retries.
    """
    if isinstance(step, TransformStep):
        return StepResult(apply_transform(step, context), StepStatus.SUCCESS)

    if isinstance(step, FilterStep):
        if not evaluate_filter(step, context):
            logger.debug("filter step did not pass; skipping remaining steps")
            return StepResult(context, StepStatus.SKIPPED)
        return StepResult(context, StepStatus.SUCCESS)

    if isinstance(step, HttpRequestStep):
        dispatcher = dispatcher or HttpDispatcher()
        response = await dispatcher.dispatch(step, context, workflow_id)
        return StepResult(context, StepStatus.SUCCESS, response=response)

    raise StepDefinitionError(
        f"Unknown step type: {getattr(step, 'type', type(step).__name__)!r}"
    )
