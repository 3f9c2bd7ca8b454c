"""HTTP dispatcher for http_request steps: request building, retry, backoff.

Every attempt is classified into an AttemptResult instead of raising, so
the retry loop in ``HttpDispatcher.dispatch`` is the only place that
decides whether to sleep, retry, or give up:

  - status < 400                 -> SUCCESS, returned immediately
  - 400 <= status < 500          -> FATAL, raised immediately, never retried
  - status >= 500, transport err -> RETRYABLE, retried after
    or attempt timeout              min(base * 2**attempt, cap) milliseconds
  - bad URL or scheme, redirect  -> FATAL
    loop, undecodable response,
    unencodable header value
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import httpx

from miniflow.config import MiniflowConfig
from miniflow.engine.context import clone_context
from miniflow.engine.template import render_template, render_value
from miniflow.exceptions import HttpDispatchError
from miniflow.types import CtxBody, CustomBody, HttpRequestStep

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class AttemptKind(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class HttpResponseSummary:
    status_code: int
    body: Any
    attempts: int = 1


@dataclass
class AttemptResult:
    kind: AttemptKind
    response: Optional[HttpResponseSummary] = None
    error: Optional[HttpDispatchError] = None


@dataclass
class PreparedRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    has_body: bool = False
    timeout_seconds: float = 5.0


def backoff_ms(attempt: int, base_ms: int = 1000, cap_ms: int = 10000) -> int:
    """Delay before the attempt after ``attempt`` (0-based)."""
    return min(base_ms * 2 ** attempt, cap_ms)


def build_request(step: HttpRequestStep, context: dict, workflow_id: str) -> PreparedRequest:
    """Render url, headers and body against ``context`` plus ``workflow_id``."""
    scope = {**context, "workflow_id": workflow_id}

    url = render_template(step.url, scope)
    headers = {
        name: render_template(value, scope)
        for name, value in (step.headers or {}).items()
    }

    body: Any = None
    has_body = False
    if isinstance(step.body, CtxBody):
        body, has_body = scope, True
    elif isinstance(step.body, CustomBody):
        body, has_body = render_value(clone_context(step.body.value), scope), True

    return PreparedRequest(
        method=step.method.value,
        url=url,
        headers=headers,
        body=body,
        has_body=has_body,
        timeout_seconds=step.timeout_ms / 1000,
    )


def _parse_response_body(response: httpx.Response) -> Any:
    """JSON when the payload parses as JSON, text otherwise."""
    content = response.content
    if not content:
        return None
    try:
        return json.loads(content)
    except (json.JSONDecodeError, ValueError):
        return content.decode(response.encoding or "utf-8", errors="replace")


def _describe_status(status_code: int, body: Any) -> str:
    return f"HTTP {status_code}: {json.dumps(body, default=str)}"


def _describe_exception(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__


class HttpDispatcher:
    """
    Sends one http_request step, retrying server-side and transport failures.

    Args:
        config: MiniflowConfig supplying the backoff base and cap.  A default
                instance is created if not supplied.
        sleep:  Awaitable sleep used between attempts (seconds).  Tests inject
                a recorder here instead of waiting for real.
    """

    def __init__(
        self,
        config: Optional[MiniflowConfig] = None,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        self._config = config or MiniflowConfig()
        self._sleep = sleep or asyncio.sleep

    async def dispatch(
        self, step: HttpRequestStep, context: dict, workflow_id: str
    ) -> HttpResponseSummary:
        """
        Run the attempt loop for one step.

        Returns:
            HttpResponseSummary of the first response with status < 400.

        Raises:
            HttpDispatchError: on the first 4xx, or with the last observed
                error once ``step.retries`` retries are exhausted.
        """
        request = build_request(step, context, workflow_id)
        last_error: Optional[HttpDispatchError] = None

        for attempt in range(step.retries + 1):
            result = await self._attempt(request)

            if result.kind is AttemptKind.SUCCESS:
                result.response.attempts = attempt + 1
                return result.response

            error = result.error
            error.attempts = attempt + 1
            if result.kind is AttemptKind.FATAL:
                logger.error(
                    "http_request %s %s failed permanently: %s",
                    request.method, request.url, error,
                )
                raise error

            last_error = error
            if attempt < step.retries:
                delay = backoff_ms(
                    attempt,
                    self._config.retry_backoff_base_ms,
                    self._config.retry_backoff_cap_ms,
                )
                logger.warning(
                    "http_request %s %s attempt %d/%d failed: %s; retrying in %dms",
                    request.method, request.url, attempt + 1, step.retries + 1, error, delay,
                )
                await self._sleep(delay / 1000)

        raise last_error

    async def _attempt(self, request: PreparedRequest) -> AttemptResult:
        """Send once and classify the result. Never raises for HTTP outcomes."""
        extra = {"json": request.body} if request.has_body else {}
        try:
            async with httpx.AsyncClient(
                timeout=request.timeout_seconds, follow_redirects=True
            ) as client:
                # httpx timeouts are per phase; this bounds the whole attempt
                response = await asyncio.wait_for(
                    client.request(
                        request.method, request.url, headers=request.headers, **extra
                    ),
                    timeout=request.timeout_seconds,
                )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            return AttemptResult(
                AttemptKind.FATAL,
                error=HttpDispatchError(f"Invalid request URL {request.url!r}: {exc}"),
            )
        except httpx.TransportError as exc:
            return AttemptResult(
                AttemptKind.RETRYABLE,
                error=HttpDispatchError(_describe_exception(exc), retryable=True),
            )
        except asyncio.TimeoutError:
            return AttemptResult(
                AttemptKind.RETRYABLE,
                error=HttpDispatchError(
                    f"Request timed out after {request.timeout_seconds * 1000:.0f}ms",
                    retryable=True,
                ),
            )
        except (httpx.RequestError, UnicodeEncodeError) as exc:
            # redirect loops, undecodable bodies, non-ASCII header values
            return AttemptResult(
                AttemptKind.FATAL,
                error=HttpDispatchError(_describe_exception(exc)),
            )

        body = _parse_response_body(response)
        status = response.status_code

        if status < 400:
            return AttemptResult(
                AttemptKind.SUCCESS,
                response=HttpResponseSummary(status_code=status, body=body),
            )
        if status < 500:
            return AttemptResult(
                AttemptKind.FATAL,
                error=HttpDispatchError(
                    _describe_status(status, body), status_code=status, response_body=body
                ),
            )
        return AttemptResult(
            AttemptKind.RETRYABLE,
            error=HttpDispatchError(
                _describe_status(status, body),
                status_code=status,
                response_body=body,
                retryable=True,
            ),
        )
