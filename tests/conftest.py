"""Test fixtures: config, recording sleep, dispatcher, in-memory manager, sample steps.

All tests should use these fixtures for consistency.
"""

import pytest

from miniflow.config import MiniflowConfig
from miniflow.engine.http import HttpDispatcher
from miniflow.workflows.manager import WorkflowManager
from miniflow.workflows.validator import WorkflowValidator

HOOK_URL = "https://hooks.example.com/notify"


class RecordingSleep:
    """Stands in for asyncio.sleep; records every requested delay (seconds)."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def config():
    """Test configuration with safe defaults."""
    return MiniflowConfig(
        debug=True,
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def dispatcher(config, sleeps):
    """HttpDispatcher that never actually waits between attempts."""
    return HttpDispatcher(config=config, sleep=sleeps)


@pytest.fixture
def manager(config, dispatcher):
    """In-memory WorkflowManager (no session factory)."""
    return WorkflowManager(dispatcher=dispatcher, validator=WorkflowValidator(), config=config)


@pytest.fixture
def notify_steps():
    """Default a message, then POST the whole context to a hook."""
    return [
        {"type": "transform", "ops": [
            {"op": "default", "path": "message", "value": "Hello"},
            {"op": "template", "to": "greeting", "template": "{{message}}, {{user.name}}!"},
        ]},
        {"type": "filter", "conditions": [{"path": "user.active", "op": "eq", "value": True}]},
        {"type": "http_request", "method": "POST", "url": HOOK_URL, "body": {"mode": "ctx"}},
    ]
