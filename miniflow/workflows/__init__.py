"""miniflow.workflows — Workflow definition validation and lifecycle management."""

from .manager import WorkflowManager, generate_trigger_path
from .validator import WorkflowValidator

__all__ = ["WorkflowManager", "WorkflowValidator", "generate_trigger_path"]
