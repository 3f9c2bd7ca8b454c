"""Helpers for reading workflow and context JSON files."""

import json
from pathlib import Path
from typing import Any, Optional

import typer


def load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise typer.BadParameter(f"File not found: {path}")
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc}")


def split_workflow(data: Any) -> tuple[Any, Optional[str], Optional[str]]:
    """Accept either a bare step list or an object with ``steps`` (and optional id/name)."""
    if isinstance(data, list):
        return data, None, None
    if isinstance(data, dict):
        return data.get("steps"), data.get("id"), data.get("name")
    raise typer.BadParameter("Workflow file must hold a JSON list of steps or an object with 'steps'")
