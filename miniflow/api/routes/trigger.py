"""Trigger endpoint — an inbound request here starts one workflow run.

POST /t/<hex> runs the workflow that owns that trigger path with the JSON
request body as its initial context.  Success and skipped runs answer 200;
failed runs answer 500 with the error message.  Error details are stored
on the run record, not echoed back.

The router is built per app so it listens under that app's
``trigger_prefix``, the same prefix its WorkflowManager issues paths with.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from miniflow.api.deps import get_manager
from miniflow.exceptions import WorkflowDisabled, WorkflowNotFound
from miniflow.types import RunStatus

logger = logging.getLogger(__name__)


async def _read_context(request: Request):
    """Empty body -> {}; a JSON object -> itself; anything else -> ValueError."""
    raw = await request.body()
    if not raw.strip():
        return {}
    payload = json.loads(raw)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError("Trigger body must be a JSON object")
    return payload


def create_router(trigger_prefix: str = "/t") -> APIRouter:
    """Trigger router serving ``<trigger_prefix>/<path>``."""
    prefix = trigger_prefix.rstrip("/")
    router = APIRouter(tags=["trigger"])

    @router.post(prefix + "/{path:path}")
    async def trigger_workflow(path: str, request: Request, manager=Depends(get_manager)):
        trigger_path = f"{prefix}/{path}"

        try:
            initial_context = await _read_context(request)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError too
            return JSONResponse({"error": f"Invalid trigger body: {exc}"}, status_code=400)

        try:
            outcome, run = await manager.trigger(trigger_path, initial_context)
        except WorkflowNotFound:
            return JSONResponse({"error": "Workflow not found"}, status_code=404)
        except WorkflowDisabled:
            return JSONResponse({"error": "Workflow is disabled"}, status_code=403)

        logger.info("Trigger %s -> run %s (%s)", trigger_path, run.id, outcome.status.value)
        payload = {"status": outcome.status.value, "run_id": run.id}
        if outcome.status is RunStatus.FAILED:
            payload["error"] = outcome.error
            return JSONResponse(payload, status_code=500)
        return JSONResponse(payload, status_code=200)

    return router
