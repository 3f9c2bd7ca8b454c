"""miniflow validate — check step definitions without running them."""

from pathlib import Path

import typer
from rich.console import Console

from miniflow.cli.commands._files import load_json, split_workflow
from miniflow.workflows.validator import WorkflowValidator

console = Console()


def validate_workflow(
    workflow_file: Path = typer.Argument(..., help="Workflow JSON file"),
):
    """Validate a workflow file; exits 1 and lists every violation if invalid."""
    steps, _, name = split_workflow(load_json(workflow_file))
    errors = WorkflowValidator().validate(name=name, steps=steps, require_name=False)
    if errors:
        console.print(f"[bold red]✗ {workflow_file} is invalid[/bold red]")
        for error in errors:
            console.print(f"  [red]•[/red] {error}")
        raise typer.Exit(code=1)
    console.print(f"[bold green]✓ {workflow_file} is valid[/bold green] ({len(steps)} steps)")
