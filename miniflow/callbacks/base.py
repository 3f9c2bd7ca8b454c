"""Base callback protocol for miniflow run lifecycle hooks.

The runner accepts callbacks as plain async callables
``async def cb(event: str, data: dict)``.  Implement this protocol to get
named hooks instead of switching on the event string yourself.

Usage:
    class MyCallback(BaseCallback):
        async def on_run_finish(self, workflow_id, status, **kw):
            print(f"{workflow_id}: {status}")

    await execute_workflow(steps, ctx, wf_id, callbacks=[MyCallback()])
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MiniflowCallback(Protocol):
    """Named hooks for run lifecycle events. All async, all optional."""

    async def on_run_start(self, workflow_id: str, step_count: int, **kwargs: Any) -> None:
        """Called once before the first step executes."""
        ...

    async def on_step_complete(
        self, workflow_id: str, step_index: int, step_type: str, **kwargs: Any
    ) -> None:
        """Called after each step that returned SUCCESS."""
        ...

    async def on_run_finish(self, workflow_id: str, status: str, **kwargs: Any) -> None:
        """Called once with the terminal status (success, skipped, failed)."""
        ...


class BaseCallback:
    """No-op implementation. Subclass and override only the hooks you need."""

    _FINISH_STATUS = {
        "run_completed": "success",
        "run_skipped": "skipped",
        "run_failed": "failed",
    }

    async def __call__(self, event: str, data: dict) -> None:
        """Route runner events to the named hooks."""
        workflow_id = data.get("workflow_id", "")
        if event == "run_started":
            await self.on_run_start(workflow_id, data.get("steps", 0))
        elif event == "step_completed":
            await self.on_step_complete(
                workflow_id, data.get("step_index", 0), data.get("step", "")
            )
        elif event in self._FINISH_STATUS:
            extra = {k: v for k, v in data.items() if k != "workflow_id"}
            await self.on_run_finish(workflow_id, self._FINISH_STATUS[event], **extra)

    async def on_run_start(self, workflow_id: str, step_count: int, **kwargs: Any) -> None:
        pass

    async def on_step_complete(
        self, workflow_id: str, step_index: int, step_type: str, **kwargs: Any
    ) -> None:
        pass

    async def on_run_finish(self, workflow_id: str, status: str, **kwargs: Any) -> None:
        pass
