"""Workflow definition CRUD routes under /api/workflows."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from miniflow.api.deps import get_manager
from miniflow.exceptions import WorkflowNotFound, WorkflowValidationError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/workflows", tags=["workflows"])


# ── Request schemas ───────────────────────────────────────────────────────────
# Steps stay loosely typed here; WorkflowValidator reports every violation
# at once as a 400 instead of FastAPI's first-failure 422.

class WorkflowCreateRequest(BaseModel):
    name: Optional[str] = None
    enabled: bool = True
    steps: Optional[list[Any]] = None


class WorkflowUpdateRequest(BaseModel):
    name: Optional[str] = None
    enabled: Optional[bool] = None
    steps: Optional[list[Any]] = None


def _validation_response(exc: WorkflowValidationError) -> JSONResponse:
    return JSONResponse(
        {"error": "Validation error", "details": exc.violations}, status_code=400
    )


def _not_found() -> JSONResponse:
    return JSONResponse({"error": "Workflow not found"}, status_code=404)


# ── Routes ────────────────────────────────────────────────────────────────────

@router.post("", status_code=201)
async def create_workflow(body: WorkflowCreateRequest, manager=Depends(get_manager)):
    """Create a workflow; the trigger path is generated server-side."""
    try:
        workflow = await manager.create(name=body.name, steps=body.steps, enabled=body.enabled)
    except WorkflowValidationError as exc:
        return _validation_response(exc)
    logger.info("Created workflow %s (%s)", workflow.id, workflow.trigger.path)
    return workflow.to_api()


@router.get("")
async def list_workflows(manager=Depends(get_manager)):
    return [w.to_api() for w in await manager.list()]


@router.get("/{workflow_id}")
async def get_workflow(workflow_id: str, manager=Depends(get_manager)):
    try:
        workflow = await manager.get(workflow_id)
    except WorkflowNotFound:
        return _not_found()
    return workflow.to_api()


@router.api_route("/{workflow_id}", methods=["PATCH", "PUT"])
async def update_workflow(
    workflow_id: str, body: WorkflowUpdateRequest, manager=Depends(get_manager)
):
    """Partial update of name, enabled and/or steps."""
    try:
        workflow = await manager.update(
            workflow_id, name=body.name, enabled=body.enabled, steps=body.steps
        )
    except WorkflowNotFound:
        return _not_found()
    except WorkflowValidationError as exc:
        return _validation_response(exc)
    return workflow.to_api()


@router.delete("/{workflow_id}", status_code=204)
async def delete_workflow(workflow_id: str, manager=Depends(get_manager)):
    try:
        await manager.delete(workflow_id)
    except WorkflowNotFound:
        return _not_found()
    return Response(status_code=204)
