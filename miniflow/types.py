"""All shared types, enums, and type aliases. Everything imports from here."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter, field_validator


# ── Context ────────────────────────────────────────────────────────────

Context = dict[str, JsonValue]     # execution context threaded through a run


# ── Enums ──────────────────────────────────────────────────────────────

class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"   # a filter step stopped the run; not an error

class StepStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"

class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


# ── Transform ops ──────────────────────────────────────────────────────
# Required op fields are optional here on purpose: a definition missing them
# is storable and fails at interpretation time with StepDefinitionError.

class DefaultOp(BaseModel):
    """Write ``value`` at ``path`` when the current value is null, "" or []."""
    op: Literal["default"] = "default"
    path: Optional[str] = None
    value: JsonValue = None

class TemplateOp(BaseModel):
    """Render ``template`` against the context and write it at ``to``."""
    op: Literal["template"] = "template"
    to: Optional[str] = None
    template: Optional[str] = None

class PickOp(BaseModel):
    """Replace the whole context with only the listed paths."""
    op: Literal["pick"] = "pick"
    paths: Optional[list[str]] = None

TransformOp = Annotated[Union[DefaultOp, TemplateOp, PickOp], Field(discriminator="op")]


# ── Filter ─────────────────────────────────────────────────────────────

class FilterCondition(BaseModel):
    path: str
    op: Literal["eq", "neq"]
    value: JsonValue = None


# ── HTTP request body ──────────────────────────────────────────────────

class CtxBody(BaseModel):
    """Send the whole context (plus workflow_id) as the JSON payload."""
    mode: Literal["ctx"] = "ctx"

class CustomBody(BaseModel):
    """Send ``value`` with every string leaf rendered as a template."""
    mode: Literal["custom"] = "custom"
    value: JsonValue = None

HttpBody = Annotated[Union[CtxBody, CustomBody], Field(discriminator="mode")]


# ── Steps ──────────────────────────────────────────────────────────────

class TransformStep(BaseModel):
    type: Literal["transform"] = "transform"
    ops: list[TransformOp]

class FilterStep(BaseModel):
    type: Literal["filter"] = "filter"
    conditions: list[FilterCondition] = Field(..., min_length=1)

class HttpRequestStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["http_request"] = "http_request"
    method: HttpMethod
    url: str
    headers: Optional[dict[str, str]] = None
    body: Optional[HttpBody] = None
    timeout_ms: int = Field(5000, alias="timeoutMs", gt=0)
    retries: int = Field(0, ge=0, le=10)

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        # Kept as a plain string so {{placeholders}} survive until render time.
        try:
            parsed = httpx.URL(value)
        except (httpx.InvalidURL, TypeError) as exc:
            raise ValueError(f"Invalid url: {exc}") from exc
        if not parsed.scheme or not parsed.host:
            raise ValueError("url must be an absolute URL with scheme and host")
        return value

Step = Annotated[Union[TransformStep, FilterStep, HttpRequestStep], Field(discriminator="type")]

_steps_adapter = TypeAdapter(list[Step])


def parse_steps(raw: Any) -> list[Union[TransformStep, FilterStep, HttpRequestStep]]:
    """Validate raw JSON step definitions. Raises pydantic.ValidationError."""
    return _steps_adapter.validate_python(raw)


def dump_steps(steps: list) -> list[dict[str, Any]]:
    """Serialize steps to the JSON shape used for storage and the API."""
    return _steps_adapter.dump_python(steps, mode="json", by_alias=True, exclude_none=True)


# ── Workflows ──────────────────────────────────────────────────────────

class Trigger(BaseModel):
    type: Literal["http"] = "http"
    path: str

class WorkflowDefinition(BaseModel):
    """A named, ordered list of steps fired by an inbound HTTP trigger."""
    id: str
    name: str = Field(..., min_length=1)
    enabled: bool = True
    trigger: Trigger
    steps: list[Step] = Field(..., min_length=1)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_api(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude={"steps"})
        data["steps"] = dump_steps(self.steps)
        return data


# ── Runs ───────────────────────────────────────────────────────────────

class RunOutcome(BaseModel):
    """Terminal result of one execution, handed to persistence by the caller."""
    status: RunStatus
    context: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    error_details: Optional[dict[str, Any]] = None

class WorkflowRun(BaseModel):
    """Persisted record of one RunOutcome."""
    id: str
    workflow_id: str
    status: RunStatus
    ctx: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    error_details: Optional[dict[str, Any]] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
