"""
WorkflowValidator — definition-time checks for workflow name and steps.

Steps are validated against the closed step/op unions in miniflow.types, so
unknown step kinds, unknown op kinds, bad methods, relative URLs and
out-of-range timeouts/retries are rejected before a workflow is stored.
Missing fields *inside* transform ops are deliberately left to run time.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from miniflow.exceptions import WorkflowValidationError
from miniflow.types import parse_steps


def _format_error(error: dict) -> str:
    loc = ".".join(str(part) for part in error.get("loc", ()))
    return f"steps.{loc}: {error.get('msg', 'invalid')}" if loc else error.get("msg", "invalid")


class WorkflowValidator:
    """
    Usage::

        validator = WorkflowValidator()
        errors = validator.validate(name="Notify", steps=raw_steps)
        if errors:
            raise WorkflowValidationError("Invalid workflow", violations=errors)

    All checks run even if earlier ones fail, so callers get the full error
    list in one shot.
    """

    def validate(
        self,
        name: Optional[str] = None,
        steps: Any = None,
        require_name: bool = True,
        require_steps: bool = True,
    ) -> list[str]:
        """Return a list of violation strings. Empty means valid."""
        errors: list[str] = []

        if name is None:
            if require_name:
                errors.append("name: field required")
        elif not isinstance(name, str) or not name.strip():
            errors.append("name: must be a non-empty string")

        if steps is None:
            if require_steps:
                errors.append("steps: field required")
        elif not isinstance(steps, list) or not steps:
            errors.append("steps: must be a non-empty list")
        else:
            try:
                parse_steps(steps)
            except ValidationError as exc:
                errors.extend(_format_error(e) for e in exc.errors())

        return errors

    def parse(self, steps: Any) -> list:
        """Validate and return step models, or raise WorkflowValidationError."""
        errors = self.validate(steps=steps, require_name=False)
        if errors:
            raise WorkflowValidationError("Workflow validation failed", violations=errors)
        return parse_steps(steps)
