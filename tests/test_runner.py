"""Workflow runner: run status, halting, error details, lifecycle events."""

import json

import httpx
import pytest
import respx

from miniflow.engine.runner import execute_workflow
from miniflow.types import RunStatus, parse_steps

HOOK_URL = "https://hooks.example.com/notify"


class EventRecorder:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def __call__(self, event: str, data: dict) -> None:
        self.events.append((event, data))

    @property
    def names(self):
        return [name for name, _ in self.events]


@pytest.mark.asyncio
async def test_transform_only_run_succeeds():
    steps = parse_steps([
        {"type": "transform", "ops": [{"op": "default", "path": "message", "value": "Hello"}]},
    ])
    outcome = await execute_workflow(steps, {}, "wf_1")

    assert outcome.status is RunStatus.SUCCESS
    assert outcome.context == {"message": "Hello"}
    assert outcome.error is None


@pytest.mark.asyncio
async def test_none_initial_context_is_empty():
    steps = parse_steps([{"type": "transform", "ops": [{"op": "default", "path": "x", "value": 1}]}])
    outcome = await execute_workflow(steps, None, "wf_1")
    assert outcome.context == {"x": 1}


@pytest.mark.asyncio
async def test_initial_context_is_not_mutated():
    initial = {"user": {"name": "Ada"}}
    steps = parse_steps([
        {"type": "transform", "ops": [{"op": "template", "to": "user.greeting", "template": "hi {{user.name}}"}]},
    ])
    outcome = await execute_workflow(steps, initial, "wf_1")

    assert outcome.context["user"]["greeting"] == "hi Ada"
    assert initial == {"user": {"name": "Ada"}}


@pytest.mark.asyncio
async def test_filter_skip_halts_remaining_steps():
    steps = parse_steps([
        {"type": "filter", "conditions": [{"path": "a", "op": "eq", "value": 1}]},
        {"type": "transform", "ops": [{"op": "default", "path": "reached", "value": True}]},
    ])
    recorder = EventRecorder()

    outcome = await execute_workflow(steps, {"a": 2}, "wf_1", callbacks=[recorder])

    assert outcome.status is RunStatus.SKIPPED
    assert outcome.context == {"a": 2}
    assert outcome.error is None
    assert recorder.names == ["run_started", "run_skipped"]


@pytest.mark.asyncio
async def test_skip_keeps_context_from_earlier_steps():
    steps = parse_steps([
        {"type": "transform", "ops": [{"op": "default", "path": "seen", "value": 1}]},
        {"type": "filter", "conditions": [{"path": "seen", "op": "neq", "value": 1}]},
    ])
    outcome = await execute_workflow(steps, {}, "wf_1")
    assert outcome.status is RunStatus.SKIPPED
    assert outcome.context == {"seen": 1}


@pytest.mark.asyncio
async def test_malformed_op_fails_run_with_details():
    steps = parse_steps([
        {"type": "transform", "ops": [{"op": "default", "path": "x", "value": 1}]},
        {"type": "transform", "ops": [{"op": "pick"}]},
        {"type": "transform", "ops": [{"op": "default", "path": "never", "value": 1}]},
    ])
    recorder = EventRecorder()

    outcome = await execute_workflow(steps, {}, "wf_1", callbacks=[recorder])

    assert outcome.status is RunStatus.FAILED
    assert outcome.context == {"x": 1}
    assert 'requires "paths" array' in outcome.error
    assert outcome.error_details["step"] == "transform"
    assert outcome.error_details["error"] == outcome.error
    assert "StepDefinitionError" in outcome.error_details["stack"]
    assert "status" not in outcome.error_details
    assert recorder.names == ["run_started", "step_completed", "run_failed"]
    assert recorder.events[-1][1]["step_index"] == 1


@pytest.mark.asyncio
@respx.mock
async def test_http_failure_details_carry_response(dispatcher):
    respx.post(HOOK_URL).mock(return_value=httpx.Response(422, json={"field": "email"}))
    steps = parse_steps([{"type": "http_request", "method": "POST", "url": HOOK_URL}])

    outcome = await execute_workflow(steps, {"a": 1}, "wf_1", dispatcher=dispatcher)

    assert outcome.status is RunStatus.FAILED
    assert outcome.error_details["step"] == "http_request"
    assert outcome.error_details["status"] == 422
    assert outcome.error_details["data"] == {"field": "email"}
    assert outcome.context == {"a": 1}


@pytest.mark.asyncio
@respx.mock
async def test_default_then_echo_end_to_end(dispatcher, sleeps):
    """Default a field, POST the context to an echo endpoint that fails once."""
    calls = []

    def echo(request):
        calls.append(json.loads(request.content))
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=calls[-1])

    respx.post(HOOK_URL).mock(side_effect=echo)
    steps = parse_steps([
        {"type": "transform", "ops": [{"op": "default", "path": "message", "value": "Hello"}]},
        {"type": "http_request", "method": "POST", "url": HOOK_URL, "body": {"mode": "ctx"}, "retries": 1},
    ])

    outcome = await execute_workflow(steps, {"user": "ada"}, "wf_42", dispatcher=dispatcher)

    assert outcome.status is RunStatus.SUCCESS
    assert outcome.context == {"user": "ada", "message": "Hello"}
    assert calls[-1] == {"user": "ada", "message": "Hello", "workflow_id": "wf_42"}
    assert len(calls) == 2
    assert sleeps.delays == [1.0]


@pytest.mark.asyncio
async def test_events_for_successful_run():
    steps = parse_steps([
        {"type": "transform", "ops": [{"op": "default", "path": "x", "value": 1}]},
        {"type": "filter", "conditions": [{"path": "x", "op": "eq", "value": 1}]},
    ])
    recorder = EventRecorder()

    await execute_workflow(steps, {}, "wf_1", callbacks=[recorder])

    assert recorder.names == ["run_started", "step_completed", "step_completed", "run_completed"]
    assert recorder.events[0][1] == {"workflow_id": "wf_1", "steps": 2}


@pytest.mark.asyncio
async def test_failing_callback_does_not_break_run():
    async def broken(event, data):
        raise RuntimeError("callback exploded")

    steps = parse_steps([{"type": "transform", "ops": [{"op": "default", "path": "x", "value": 1}]}])
    outcome = await execute_workflow(steps, {}, "wf_1", callbacks=[broken])

    assert outcome.status is RunStatus.SUCCESS
