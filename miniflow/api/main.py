"""FastAPI application factory with lifespan management."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from miniflow.config import MiniflowConfig, config as default_config
from miniflow.exceptions import MiniflowError
from miniflow.version import __version__


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    cfg: MiniflowConfig = app.state.config
    logging.basicConfig(
        level=cfg.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"miniflow v{__version__} starting...")

    # Database-backed manager unless one was injected (tests, embedding)
    engine = None
    if getattr(app.state, "workflow_manager", None) is None:
        from miniflow.callbacks import LoggingCallback
        from miniflow.db.database import create_engine, create_session_factory, init_db
        from miniflow.workflows.manager import WorkflowManager

        engine = create_engine(cfg)
        await init_db(engine)
        session_factory = create_session_factory(engine)
        app.state.async_session = session_factory
        app.state.workflow_manager = WorkflowManager(
            session_factory=session_factory,
            callbacks=[LoggingCallback()],
            config=cfg,
        )

    logger.info("miniflow ready")

    yield

    # ── Shutdown ──
    logger.info("miniflow shutting down...")
    if engine is not None:
        await engine.dispose()


def _mount_frontend(app: FastAPI, directory: str) -> None:
    """Serve a built single-page UI: real files as-is, everything else index.html."""
    root = Path(directory).resolve()
    index = root / "index.html"

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa_fallback(full_path: str):
        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and root in candidate.parents:
            return FileResponse(candidate)
        if index.is_file():
            return FileResponse(index)
        return JSONResponse({"error": "Not found"}, status_code=404)


def create_app(cfg: Optional[MiniflowConfig] = None, manager=None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        cfg:     MiniflowConfig; the module-level config when omitted.
        manager: Pre-built WorkflowManager.  When given, the lifespan skips
                 database setup and uses it as-is.
    """
    cfg = cfg or default_config
    app = FastAPI(
        title="miniflow",
        description="Declarative HTTP-triggered workflows.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg
    if manager is not None:
        app.state.workflow_manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    @app.exception_handler(MiniflowError)
    async def miniflow_error_handler(request: Request, exc: MiniflowError):
        logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse({"error": str(exc) or "Internal server error"}, status_code=500)

    # Routes
    from miniflow.api.routes import health, runs, trigger, workflows
    app.include_router(health.router)
    app.include_router(workflows.router)
    app.include_router(runs.router)
    app.include_router(trigger.create_router(cfg.trigger_prefix))

    if cfg.frontend_dir:
        _mount_frontend(app, cfg.frontend_dir)

    return app


app = create_app()
