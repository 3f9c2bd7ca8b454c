"""miniflow.engine — context model, templating, step interpreter, HTTP dispatch, runner."""

from .context import clone_context, get_value, set_value
from .http import HttpDispatcher, HttpResponseSummary, backoff_ms
from .runner import execute_workflow
from .steps import StepResult, execute_step
from .template import render_template, render_value

__all__ = [
    "clone_context", "get_value", "set_value",
    "render_template", "render_value",
    "execute_step", "StepResult",
    "HttpDispatcher", "HttpResponseSummary", "backoff_ms",
    "execute_workflow",
]
