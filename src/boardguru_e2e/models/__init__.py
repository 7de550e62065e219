"""Models package for the E2E harness."""

from .harness_models import (
    BrowserType,
    Viewport,
    StepKind,
    ActionStep,
    ActionStatus,
    ActionArtifact,
    ActionResult,
    PerformanceMeasurement,
    Impact,
    AccessibilityViolation,
    FulfillPolicy,
    AbortPolicy,
    DelayedFulfillPolicy,
    PassthroughPolicy,
    ResponsePolicy,
    MockRoute,
    InterceptedRequest,
    NetworkLogEntry,
    OrganizationData,
    UserData,
    TestFixture,
    ScenarioState,
    AuthMode,
    FailureArtifacts,
    ScenarioOutcome,
)

__all__ = [
    # Browser
    "BrowserType",
    "Viewport",
    # Actions
    "StepKind",
    "ActionStep",
    "ActionStatus",
    "ActionArtifact",
    "ActionResult",
    # Performance
    "PerformanceMeasurement",
    # Accessibility
    "Impact",
    "AccessibilityViolation",
    # Network
    "FulfillPolicy",
    "AbortPolicy",
    "DelayedFulfillPolicy",
    "PassthroughPolicy",
    "ResponsePolicy",
    "MockRoute",
    "InterceptedRequest",
    "NetworkLogEntry",
    # Test data
    "OrganizationData",
    "UserData",
    "TestFixture",
    # Scenarios
    "ScenarioState",
    "AuthMode",
    "FailureArtifacts",
    "ScenarioOutcome",
]
