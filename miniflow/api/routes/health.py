"""GET /health and GET / — liveness and service banner."""

from fastapi import APIRouter

from miniflow.version import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    return {"status": "ok"}


@router.get("/")
async def service_info():
    return {"service": "miniflow", "status": "running", "version": __version__}
