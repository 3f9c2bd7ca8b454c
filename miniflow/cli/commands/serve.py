"""miniflow serve — start the API server."""

from typing import Optional

import typer
from rich.console import Console

from miniflow.config import config

console = Console()


def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to listen on"),
    reload: bool = typer.Option(False, help="Reload on code changes (development)"),
):
    """Start the miniflow API server with uvicorn."""
    import uvicorn
    host = host or config.host
    port = port or config.port
    console.print(f"[green]Starting miniflow on {host}:{port}[/green]")
    uvicorn.run("miniflow.api.main:app", host=host, port=port, reload=reload)
