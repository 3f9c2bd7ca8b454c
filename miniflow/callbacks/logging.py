"""Structured JSON logging callback for miniflow run lifecycle events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from miniflow.callbacks.base import BaseCallback

logger = logging.getLogger("miniflow.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class LoggingCallback(BaseCallback):
    """Emits one self-contained JSON log line per lifecycle event.

    Fields: ``event``, ``ts`` (ISO-8601 UTC) and the event's own data.
    Log level: INFO for start/step/success/skip, WARNING for failures.
    Logger name: miniflow.audit (configure in your logging setup).

        await execute_workflow(steps, ctx, wf_id, callbacks=[LoggingCallback()])
    """

    async def on_run_start(self, workflow_id: str, step_count: int, **kwargs: Any) -> None:
        logger.info(json.dumps({
            "event": "run_start",
            "ts": _now(),
            "workflow_id": workflow_id,
            "step_count": step_count,
        }))

    async def on_step_complete(
        self, workflow_id: str, step_index: int, step_type: str, **kwargs: Any
    ) -> None:
        logger.info(json.dumps({
            "event": "step_complete",
            "ts": _now(),
            "workflow_id": workflow_id,
            "step_index": step_index,
            "step": step_type,
        }))

    async def on_run_finish(self, workflow_id: str, status: str, **kwargs: Any) -> None:
        record = {
            "event": "run_finish",
            "ts": _now(),
            "workflow_id": workflow_id,
            "status": status,
        }
        if "step_index" in kwargs:
            record["step_index"] = kwargs["step_index"]
        if status == "failed":
            record["step"] = kwargs.get("step", "")
            record["error"] = str(kwargs.get("error", ""))[:500]
            logger.warning(json.dumps(record))
        else:
            logger.info(json.dumps(record))
