"""miniflow — declarative HTTP-triggered workflows.

Usage:
    from miniflow import execute_workflow, parse_steps

    steps = parse_steps([
        {"type": "transform", "ops": [{"op": "default", "path": "message", "value": "hi"}]},
        {"type": "http_request", "method": "POST", "url": "https://example.com/hook",
         "body": {"mode": "ctx"}},
    ])
    outcome = await execute_workflow(steps, {}, "wf_demo")
"""

from miniflow.types import (
    RunStatus, StepStatus, RunOutcome, WorkflowRun, WorkflowDefinition, Trigger,
    TransformStep, FilterStep, HttpRequestStep, DefaultOp, TemplateOp, PickOp,
    FilterCondition, CtxBody, CustomBody, parse_steps, dump_steps,
)
from miniflow.exceptions import (
    MiniflowError, StepDefinitionError, ContextError, HttpDispatchError,
    WorkflowError, WorkflowNotFound, WorkflowDisabled, WorkflowValidationError, RunNotFound,
)
from miniflow.engine import execute_workflow, HttpDispatcher
from miniflow.version import __version__

__all__ = [
    "RunStatus", "StepStatus", "RunOutcome", "WorkflowRun", "WorkflowDefinition", "Trigger",
    "TransformStep", "FilterStep", "HttpRequestStep", "DefaultOp", "TemplateOp", "PickOp",
    "FilterCondition", "CtxBody", "CustomBody", "parse_steps", "dump_steps",
    "MiniflowError", "StepDefinitionError", "ContextError", "HttpDispatchError",
    "WorkflowError", "WorkflowNotFound", "WorkflowDisabled", "WorkflowValidationError",
    "RunNotFound",
    "execute_workflow", "HttpDispatcher",
    "__version__",
]
