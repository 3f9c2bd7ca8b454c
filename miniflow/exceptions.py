"""Typed exception hierarchy. Every error miniflow can raise."""

from typing import Any, Optional


class MiniflowError(Exception):
    """Base exception for all miniflow errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


# ── Engine ───────────────────────────────────────────────────────────────────


class StepDefinitionError(MiniflowError):
    """A step or transform op is missing a required field at run time."""
    def __init__(self, message: str, step_type: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.step_type = step_type


class ContextError(MiniflowError):
    """Execution context holds a value that cannot be represented as JSON."""
    pass


class HttpDispatchError(MiniflowError):
    """An outbound http_request step failed.

    ``status_code`` and ``response_body`` are set when the remote end
    answered; both are None for transport failures (timeout, DNS, refused).
    """
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Any = None,
        attempts: int = 0,
        retryable: bool = False,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_body = response_body
        self.attempts = attempts
        self.retryable = retryable

    @property
    def has_response(self) -> bool:
        return self.status_code is not None


# ── Workflows ────────────────────────────────────────────────────────────────


class WorkflowError(MiniflowError):
    """Base exception for all workflow-related errors."""
    pass


class WorkflowNotFound(WorkflowError):
    """Requested workflow does not exist."""
    def __init__(self, message: str, workflow_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.workflow_id = workflow_id


class WorkflowDisabled(WorkflowError):
    """Workflow exists but is disabled, so its trigger does not fire."""
    def __init__(self, message: str, workflow_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.workflow_id = workflow_id


class WorkflowValidationError(WorkflowError):
    """Workflow definition is structurally invalid."""
    def __init__(self, message: str, violations: list = None, **kwargs):
        super().__init__(message, **kwargs)
        self.violations = violations or []


class RunNotFound(WorkflowError):
    """Requested run record does not exist."""
    pass
