"""Run record routes under /api/runs."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from miniflow.api.deps import get_manager
from miniflow.exceptions import RunNotFound

router = APIRouter(prefix="/api/runs", tags=["runs"])


@router.get("/workflow/{workflow_id}")
async def list_runs(
    workflow_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    manager=Depends(get_manager),
):
    """Runs of one workflow, newest first."""
    runs = await manager.list_runs(workflow_id, limit=limit)
    return [r.model_dump(mode="json") for r in runs]


@router.get("/{run_id}")
async def get_run(run_id: str, manager=Depends(get_manager)):
    try:
        run = await manager.get_run(run_id)
    except RunNotFound:
        return JSONResponse({"error": "Run not found"}, status_code=404)
    return run.model_dump(mode="json")
