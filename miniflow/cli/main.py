"""miniflow CLI — Typer application."""

import typer
from rich.console import Console

from miniflow.version import __version__

app = typer.Typer(
    name="miniflow",
    help="miniflow — declarative HTTP-triggered workflows.",
    no_args_is_help=True,
)
console = Console()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", is_eager=True, help="Show version"),
):
    """miniflow CLI."""
    if version:
        console.print(f"miniflow v{__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


from miniflow.cli.commands import run, serve, validate  # noqa: E402

app.command(name="run", help="Execute a workflow file locally")(run.run_workflow)
app.command(name="validate", help="Validate the step definitions in a workflow file")(validate.validate_workflow)
app.command(name="serve", help="Start the API server")(serve.serve)


if __name__ == "__main__":
    app()
