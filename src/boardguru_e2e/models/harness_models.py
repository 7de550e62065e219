"""Data models for the E2E harness.

This module defines the Pydantic models shared by the harness components:
composite action results, performance measurements, accessibility
violations, network mock routes and their response policies, generated
test fixtures, and scenario outcomes.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, computed_field


class BrowserType(str, Enum):
    """Supported browser engines."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class Viewport(BaseModel):
    """Browser viewport configuration."""

    width: int = Field(default=1280, gt=0, description="Viewport width")
    height: int = Field(default=720, gt=0, description="Viewport height")
    device_scale_factor: float = Field(default=1.0, description="Device pixel ratio")
    is_mobile: bool = Field(default=False, description="Mobile viewport")
    has_touch: bool = Field(default=False, description="Touch support")

    @classmethod
    def mobile(cls, width: int = 375, height: int = 667) -> "Viewport":
        """iPhone SE sized viewport."""
        return cls(width=width, height=height, is_mobile=True, has_touch=True)


# ---------------------------------------------------------------------------
# Locator / action registry
# ---------------------------------------------------------------------------


class StepKind(str, Enum):
    """Primitive interactions a composite action can be built from."""

    CLICK = "click"
    FILL = "fill"
    CLEAR = "clear"
    PRESS = "press"
    SELECT = "select"
    CHECK = "check"
    UNCHECK = "uncheck"
    HOVER = "hover"
    WAIT_VISIBLE = "wait_visible"
    WAIT_HIDDEN = "wait_hidden"


_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class ActionStep(BaseModel):
    """One primitive interaction against a semantic element."""

    kind: StepKind = Field(description="Primitive interaction")
    target: str = Field(description="Semantic element name")
    value: Optional[str] = Field(
        default=None, description="Input value, may contain {placeholders}"
    )

    model_config = {"frozen": True}

    def render(self, params: Dict[str, Any]) -> "ActionStep":
        """Return a copy with placeholders in value filled from params.

        Only {name} placeholders whose name is in params are replaced; any
        other braces in the value are kept as literal text.
        """
        if self.value is None or not params:
            return self

        def substitute(match: "re.Match[str]") -> str:
            name = match.group(1)
            return str(params[name]) if name in params else match.group(0)

        return self.model_copy(update={"value": _PLACEHOLDER.sub(substitute, self.value)})

    @classmethod
    def click(cls, target: str) -> "ActionStep":
        return cls(kind=StepKind.CLICK, target=target)

    @classmethod
    def fill(cls, target: str, value: str) -> "ActionStep":
        return cls(kind=StepKind.FILL, target=target, value=value)

    @classmethod
    def clear(cls, target: str) -> "ActionStep":
        return cls(kind=StepKind.CLEAR, target=target)

    @classmethod
    def press(cls, target: str, key: str) -> "ActionStep":
        return cls(kind=StepKind.PRESS, target=target, value=key)

    @classmethod
    def select(cls, target: str, value: str) -> "ActionStep":
        return cls(kind=StepKind.SELECT, target=target, value=value)

    @classmethod
    def check(cls, target: str) -> "ActionStep":
        return cls(kind=StepKind.CHECK, target=target)

    @classmethod
    def uncheck(cls, target: str) -> "ActionStep":
        return cls(kind=StepKind.UNCHECK, target=target)

    @classmethod
    def hover(cls, target: str) -> "ActionStep":
        return cls(kind=StepKind.HOVER, target=target)

    @classmethod
    def wait_visible(cls, target: str) -> "ActionStep":
        return cls(kind=StepKind.WAIT_VISIBLE, target=target)

    @classmethod
    def wait_hidden(cls, target: str) -> "ActionStep":
        return cls(kind=StepKind.WAIT_HIDDEN, target=target)


class ActionStatus(str, Enum):
    """Outcome tag of a composite action."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ActionArtifact(BaseModel):
    """Artifact captured when a composite action fails."""

    screenshot: Optional[bytes] = Field(default=None, description="PNG bytes")
    error_detail: Optional[str] = Field(default=None, description="Error text")

    model_config = {"frozen": True}


class ActionResult(BaseModel):
    """Immutable outcome of a composite action."""

    action: str = Field(description="Action name")
    status: ActionStatus = Field(description="Outcome tag")
    duration_ms: float = Field(default=0.0, description="Elapsed duration")
    steps_completed: int = Field(default=0, description="Steps that succeeded")
    message: Optional[str] = Field(default=None, description="Human readable note")
    artifact: Optional[ActionArtifact] = Field(default=None)

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> bool:
        return self.status != ActionStatus.FAILED


# ---------------------------------------------------------------------------
# Performance
# ---------------------------------------------------------------------------


class PerformanceMeasurement(BaseModel):
    """Wall-clock duration of one operation compared with its budget."""

    operation_name: str = Field(description="Measured operation")
    duration_ms: float = Field(ge=0, description="Duration in milliseconds")
    budget_ms: float = Field(gt=0, description="Maximum allowed duration")
    succeeded: bool = Field(default=True, description="Operation completed without error")
    started_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}

    @computed_field  # type: ignore[misc]
    @property
    def passed(self) -> bool:
        return self.duration_ms <= self.budget_ms


# ---------------------------------------------------------------------------
# Accessibility
# ---------------------------------------------------------------------------


class Impact(str, Enum):
    """Accessibility violation severity, ordered from least to most severe."""

    MINOR = "minor"
    MODERATE = "moderate"
    SERIOUS = "serious"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _IMPACT_ORDER.index(self)


_IMPACT_ORDER = [Impact.MINOR, Impact.MODERATE, Impact.SERIOUS, Impact.CRITICAL]


class AccessibilityViolation(BaseModel):
    """A normalized accessibility rule failure."""

    rule_id: str = Field(description="Engine rule identifier")
    impact: Impact = Field(description="Severity")
    affected_node_selectors: Tuple[str, ...] = Field(
        default=(), description="Selectors of the failing nodes, in engine order"
    )
    description: str = Field(default="", description="Rule description")
    help_url: Optional[str] = Field(default=None, description="Rule documentation")
    tags: Tuple[str, ...] = Field(default=(), description="Rule tags")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Network interception
# ---------------------------------------------------------------------------

AbortReason = Literal[
    "aborted",
    "accessdenied",
    "addressunreachable",
    "blockedbyclient",
    "blockedbyresponse",
    "connectionaborted",
    "connectionclosed",
    "connectionfailed",
    "connectionrefused",
    "connectionreset",
    "internetdisconnected",
    "namenotresolved",
    "timedout",
    "failed",
]


class FulfillPolicy(BaseModel):
    """Answer the request with a synthetic HTTP response."""

    kind: Literal["fulfill"] = "fulfill"
    status: int = Field(default=200, ge=100, le=599, description="HTTP status")
    body: Optional[Any] = Field(default=None, description="Response body")
    headers: Dict[str, str] = Field(default_factory=dict)
    content_type: str = Field(default="application/json")

    model_config = {"frozen": True}


class AbortPolicy(BaseModel):
    """Fail the request at the network level, no HTTP response."""

    kind: Literal["abort"] = "abort"
    reason: AbortReason = Field(default="failed", description="Network error code")

    model_config = {"frozen": True}


class DelayedFulfillPolicy(FulfillPolicy):
    """Hold the request pending for delay_ms, then fulfill it."""

    kind: Literal["delay"] = "delay"  # type: ignore[assignment]
    delay_ms: int = Field(ge=0, description="Minimum time the response is held")


class PassthroughPolicy(BaseModel):
    """Let the request reach the real backend."""

    kind: Literal["passthrough"] = "passthrough"

    model_config = {"frozen": True}


ResponsePolicy = Annotated[
    Union[FulfillPolicy, AbortPolicy, DelayedFulfillPolicy, PassthroughPolicy],
    Field(discriminator="kind"),
]


class MockRoute(BaseModel):
    """Declarative rule intercepting requests that match a pattern."""

    url_pattern: str = Field(description="Playwright glob URL pattern")
    method: str = Field(default="*", description="HTTP method or * for any")
    policy: ResponsePolicy
    times: Optional[int] = Field(
        default=None, ge=1, description="Number of requests to serve before falling back"
    )
    registered_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        return f"{self.method.upper()} {self.url_pattern}"

    def matches_method(self, method: str) -> bool:
        return self.method == "*" or self.method.upper() == method.upper()


class InterceptedRequest(BaseModel):
    """A request handled by a registered mock route."""

    url: str
    method: str
    route_key: str
    policy_kind: str
    post_data: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class NetworkLogEntry(BaseModel):
    """One event of the scenario's network log."""

    event: Literal["request", "response", "requestfailed"]
    url: str
    method: str
    status: Optional[int] = None
    failure: Optional[str] = None
    resource_type: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


# ---------------------------------------------------------------------------
# Test data
# ---------------------------------------------------------------------------


class OrganizationData(BaseModel):
    name: str
    slug: str
    description: str


class UserData(BaseModel):
    full_name: str
    email: str
    password: str


class TestFixture(BaseModel):
    """Generated data for one scenario, unique across concurrent runs."""

    __test__ = False  # not a pytest test class

    suffix: str = Field(description="Uniqueness suffix shared by all identifiers")
    organization: OrganizationData
    user: UserData
    email: str
    slug: str
    created_at: datetime = Field(default_factory=datetime.now)


# ---------------------------------------------------------------------------
# Scenario orchestration
# ---------------------------------------------------------------------------


class ScenarioState(str, Enum):
    """Lifecycle of one scenario."""

    CREATED = "created"
    AUTHENTICATED_CONTEXT_READY = "authenticated_context_ready"
    EXECUTING = "executing"
    PASSED = "passed"
    FAILED = "failed"
    TORN_DOWN = "torn_down"


class AuthMode(str, Enum):
    """How a scenario obtains its session."""

    PRE_AUTHENTICATED = "pre_authenticated"
    SIGN_IN = "sign_in"
    ANONYMOUS = "anonymous"


class FailureArtifacts(BaseModel):
    """Paths of the artifacts persisted for a failed scenario."""

    directory: str
    screenshot_path: Optional[str] = None
    dom_snapshot_path: Optional[str] = None
    error_path: Optional[str] = None
    network_log_path: Optional[str] = None
    measurements_path: Optional[str] = None
    violations_path: Optional[str] = None
    capture_errors: List[str] = Field(default_factory=list)


class ScenarioOutcome(BaseModel):
    """Summary of one scenario run, in its final state."""

    name: str
    state: ScenarioState
    passed: bool
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    duration_ms: float = 0.0
    artifacts: Optional[FailureArtifacts] = None
    measurements: List[PerformanceMeasurement] = Field(default_factory=list)
    violations: List[AccessibilityViolation] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
