"""Shared FastAPI dependencies."""

from fastapi import HTTPException, Request


def get_manager(request: Request):
    mgr = getattr(request.app.state, "workflow_manager", None)
    if mgr is None:
        raise HTTPException(status_code=503, detail="WorkflowManager not initialised.")
    return mgr
