"""HTTP dispatcher: request building, error classification, retry and backoff."""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest
import respx

from miniflow.config import MiniflowConfig
from miniflow.engine.http import HttpDispatcher, backoff_ms, build_request
from miniflow.exceptions import HttpDispatchError
from miniflow.types import HttpRequestStep

URL = "https://api.example.com/hook"


def _step(**overrides):
    fields = {"method": "POST", "url": URL}
    fields.update(overrides)
    return HttpRequestStep(**fields)


# ── backoff ──────────────────────────────────────────────────────────────────


def test_backoff_doubles_then_caps():
    assert [backoff_ms(a) for a in range(6)] == [1000, 2000, 4000, 8000, 10000, 10000]


def test_backoff_respects_custom_base_and_cap():
    assert backoff_ms(2, base_ms=10, cap_ms=35) == 35
    assert backoff_ms(1, base_ms=10, cap_ms=35) == 20


# ── build_request ────────────────────────────────────────────────────────────


def test_build_renders_url_and_headers():
    step = _step(
        url="https://api.example.com/users/{{user.id}}?wf={{workflow_id}}",
        headers={"X-Trace": "{{trace}}", "X-Static": "1"},
    )
    req = build_request(step, {"user": {"id": 7}, "trace": "abc"}, "wf_1")
    assert req.url == "https://api.example.com/users/7?wf=wf_1"
    assert req.headers == {"X-Trace": "abc", "X-Static": "1"}
    assert req.method == "POST"
    assert req.has_body is False


def test_build_ctx_body_adds_workflow_id():
    ctx = {"a": 1}
    req = build_request(_step(body={"mode": "ctx"}), ctx, "wf_1")
    assert req.body == {"a": 1, "workflow_id": "wf_1"}
    assert ctx == {"a": 1}


def test_build_custom_body_renders_string_leaves():
    step = _step(body={"mode": "custom", "value": {"text": "hi {{name}}", "n": 2, "tags": ["{{workflow_id}}"]}})
    req = build_request(step, {"name": "Ada"}, "wf_9")
    assert req.has_body is True
    assert req.body == {"text": "hi Ada", "n": 2, "tags": ["wf_9"]}


def test_build_timeout_in_seconds():
    assert build_request(_step(timeoutMs=250), {}, "wf").timeout_seconds == 0.25


# ── dispatch ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
@respx.mock
async def test_success_sends_json_body(dispatcher, sleeps):
    route = respx.post(URL).mock(return_value=httpx.Response(201, json={"ok": True}))

    result = await dispatcher.dispatch(_step(body={"mode": "ctx"}), {"a": 1}, "wf_1")

    assert result.status_code == 201
    assert result.body == {"ok": True}
    assert result.attempts == 1
    assert route.call_count == 1
    sent = route.calls.last.request
    assert json.loads(sent.content) == {"a": 1, "workflow_id": "wf_1"}
    assert sleeps.delays == []


@pytest.mark.asyncio
@respx.mock
async def test_no_body_when_body_absent(dispatcher):
    route = respx.get(URL).mock(return_value=httpx.Response(200, text="pong"))

    result = await dispatcher.dispatch(_step(method="GET"), {"a": 1}, "wf_1")

    assert result.body == "pong"
    assert route.calls.last.request.content == b""


@pytest.mark.asyncio
@respx.mock
async def test_rendered_headers_are_sent(dispatcher):
    route = respx.post(URL).mock(return_value=httpx.Response(204))

    await dispatcher.dispatch(_step(headers={"Authorization": "Bearer {{token}}"}), {"token": "t0k"}, "wf")

    assert route.calls.last.request.headers["Authorization"] == "Bearer t0k"


@pytest.mark.asyncio
@respx.mock
async def test_retries_5xx_with_exponential_backoff(dispatcher, sleeps):
    route = respx.post(URL).mock(side_effect=[
        httpx.Response(503),
        httpx.Response(503),
        httpx.Response(200, json={"done": True}),
    ])

    result = await dispatcher.dispatch(_step(retries=2), {}, "wf_1")

    assert result.status_code == 200
    assert result.attempts == 3
    assert route.call_count == 3
    assert sleeps.delays == [1.0, 2.0]


@pytest.mark.asyncio
@respx.mock
async def test_4xx_is_fatal_and_not_retried(dispatcher, sleeps):
    route = respx.post(URL).mock(return_value=httpx.Response(404, json={"error": "gone"}))

    with pytest.raises(HttpDispatchError) as exc_info:
        await dispatcher.dispatch(_step(retries=5), {}, "wf_1")

    err = exc_info.value
    assert route.call_count == 1
    assert sleeps.delays == []
    assert err.status_code == 404
    assert err.response_body == {"error": "gone"}
    assert err.attempts == 1
    assert err.retryable is False
    assert str(err).startswith("HTTP 404")


@pytest.mark.asyncio
@respx.mock
async def test_4xx_after_5xx_stops_retrying(dispatcher, sleeps):
    route = respx.post(URL).mock(side_effect=[httpx.Response(500), httpx.Response(400)])

    with pytest.raises(HttpDispatchError) as exc_info:
        await dispatcher.dispatch(_step(retries=3), {}, "wf_1")

    assert exc_info.value.status_code == 400
    assert route.call_count == 2
    assert sleeps.delays == [1.0]


@pytest.mark.asyncio
@respx.mock
async def test_exhausted_retries_raise_last_error(dispatcher, sleeps):
    route = respx.post(URL).mock(side_effect=[
        httpx.Response(500, text="first"),
        httpx.Response(502, text="second"),
    ])

    with pytest.raises(HttpDispatchError) as exc_info:
        await dispatcher.dispatch(_step(retries=1), {}, "wf_1")

    err = exc_info.value
    assert err.status_code == 502
    assert err.response_body == "second"
    assert err.attempts == 2
    assert err.retryable is True
    assert route.call_count == 2
    assert sleeps.delays == [1.0]


@pytest.mark.asyncio
@respx.mock
async def test_zero_retries_means_single_attempt(dispatcher, sleeps):
    route = respx.post(URL).mock(return_value=httpx.Response(500))

    with pytest.raises(HttpDispatchError):
        await dispatcher.dispatch(_step(), {}, "wf_1")

    assert route.call_count == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
@respx.mock
async def test_transport_errors_are_retried(dispatcher, sleeps):
    route = respx.post(URL).mock(side_effect=[
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
        httpx.Response(200),
    ])

    result = await dispatcher.dispatch(_step(retries=2), {}, "wf_1")

    assert result.status_code == 200
    assert route.call_count == 3
    assert sleeps.delays == [1.0, 2.0]


@pytest.mark.asyncio
@respx.mock
async def test_transport_error_without_response_has_no_status(dispatcher):
    respx.post(URL).mock(side_effect=httpx.ConnectError("connection refused"))

    with pytest.raises(HttpDispatchError) as exc_info:
        await dispatcher.dispatch(_step(), {}, "wf_1")

    err = exc_info.value
    assert err.has_response is False
    assert err.status_code is None
    assert "ConnectError" in str(err)


@pytest.mark.asyncio
@respx.mock
async def test_backoff_delays_capped_by_config(sleeps):
    cfg = MiniflowConfig(retry_backoff_base_ms=1000, retry_backoff_cap_ms=10000)
    dispatcher = HttpDispatcher(config=cfg, sleep=sleeps)
    respx.post(URL).mock(return_value=httpx.Response(503))

    with pytest.raises(HttpDispatchError) as exc_info:
        await dispatcher.dispatch(_step(retries=6), {}, "wf_1")

    assert exc_info.value.attempts == 7
    assert sleeps.delays == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


# ── non-HTTP failures ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_unsupported_scheme_is_fatal(dispatcher, sleeps):
    step = _step(url="ftp://files.example.com/{{name}}", retries=2)

    with pytest.raises(HttpDispatchError) as exc_info:
        await dispatcher.dispatch(step, {"name": "report.csv"}, "wf_1")

    assert exc_info.value.attempts == 1
    assert exc_info.value.retryable is False
    assert "Invalid request URL" in str(exc_info.value)
    assert sleeps.delays == []


@pytest.mark.asyncio
@respx.mock
async def test_redirect_loop_is_fatal(dispatcher, sleeps):
    respx.post(URL).mock(return_value=httpx.Response(307, headers={"Location": URL}))

    with pytest.raises(HttpDispatchError) as exc_info:
        await dispatcher.dispatch(_step(retries=2), {}, "wf_1")

    assert "TooManyRedirects" in str(exc_info.value)
    assert exc_info.value.attempts == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
@respx.mock
async def test_non_ascii_header_value_is_fatal(dispatcher, sleeps):
    step = _step(headers={"X-User": "{{name}}"}, retries=2)

    with pytest.raises(HttpDispatchError) as exc_info:
        await dispatcher.dispatch(step, {"name": "Zoë"}, "wf_1")

    assert "UnicodeEncodeError" in str(exc_info.value)
    assert exc_info.value.attempts == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_slow_attempt_times_out_and_retries(dispatcher, sleeps):
    async def stalled_request(self, *args, **kwargs):
        await asyncio.sleep(5)

    with patch.object(httpx.AsyncClient, "request", new=stalled_request):
        with pytest.raises(HttpDispatchError) as exc_info:
            await dispatcher.dispatch(_step(timeoutMs=20, retries=1), {}, "wf_1")

    err = exc_info.value
    assert "timed out after 20ms" in str(err)
    assert err.retryable is True
    assert err.attempts == 2
    assert sleeps.delays == [1.0]
