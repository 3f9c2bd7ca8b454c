"""miniflow run — execute a workflow file from the command line."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from miniflow.cli.commands._files import load_json, split_workflow
from miniflow.config import MiniflowConfig
from miniflow.exceptions import WorkflowValidationError
from miniflow.types import RunStatus

console = Console()

_STATUS_COLOR = {
    RunStatus.SUCCESS: "green",
    RunStatus.SKIPPED: "yellow",
    RunStatus.FAILED: "red",
}


def run_workflow(
    workflow_file: Path = typer.Argument(..., help="Workflow JSON file (step list or object with 'steps')"),
    context_file: Optional[Path] = typer.Option(None, "--context", "-c", help="JSON file with the initial context"),
    workflow_id: Optional[str] = typer.Option(None, "--workflow-id", help="Value exposed to templates as {{workflow_id}}"),
    verbose: bool = typer.Option(False, "--verbose", help="Log lifecycle events and retries"),
):
    """Run every step locally against the given context and print the outcome."""
    from miniflow.callbacks import LoggingCallback
    from miniflow.engine import HttpDispatcher, execute_workflow
    from miniflow.workflows.validator import WorkflowValidator

    cfg = MiniflowConfig()
    logging.basicConfig(level="INFO" if verbose else cfg.log_level.upper())

    raw_steps, file_id, _ = split_workflow(load_json(workflow_file))
    try:
        steps = WorkflowValidator().parse(raw_steps)
    except WorkflowValidationError as exc:
        console.print("[bold red]Invalid workflow:[/bold red]")
        for error in exc.violations:
            console.print(f"  [red]•[/red] {error}")
        raise typer.Exit(code=2)

    initial_context = load_json(context_file) if context_file else {}
    if not isinstance(initial_context, dict):
        raise typer.BadParameter("Context file must hold a JSON object")

    outcome = asyncio.run(execute_workflow(
        steps,
        initial_context,
        workflow_id or file_id or "local",
        dispatcher=HttpDispatcher(config=cfg),
        callbacks=[LoggingCallback()] if verbose else None,
    ))

    color = _STATUS_COLOR[outcome.status]
    console.print(Panel(
        Syntax(json.dumps(outcome.context, indent=2, default=str), "json"),
        title=f"[bold {color}]{outcome.status.value}[/bold {color}]",
        subtitle="final context",
    ))
    if outcome.status is RunStatus.FAILED:
        step = (outcome.error_details or {}).get("step", "?")
        console.print(f"[red]Step '{step}' failed:[/red] {outcome.error}")
        raise typer.Exit(code=1)
