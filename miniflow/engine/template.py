"""``{{path}}`` placeholder rendering over an execution context."""

from __future__ import annotations

import json
import re
from typing import Any

from miniflow.engine.context import get_value

# Word paths only: no whitespace, dashes or list indices inside the braces.
_PLACEHOLDER = re.compile(r"\{\{([A-Za-z0-9_]+(?:\.[A-Za-z0-9_]+)*)\}\}")


def stringify(value: Any) -> str:
    """String form of a context value as it appears in rendered text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def render_template(template: str, context: Any) -> str:
    """Replace every placeholder in one pass; missing paths render as ""."""
    def _replace(match: re.Match) -> str:  # type: ignore[type-arg]
        return stringify(get_value(context, match.group(1)))

    return _PLACEHOLDER.sub(_replace, template)


def render_value(value: Any, context: Any) -> Any:
    """Render every string leaf of a JSON tree; other leaves pass through."""
    if isinstance(value, str):
        return render_template(value, context)
    if isinstance(value, list):
        return [render_value(item, context) for item in value]
    if isinstance(value, dict):
        return {key: render_value(item, context) for key, item in value.items()}
    return value
