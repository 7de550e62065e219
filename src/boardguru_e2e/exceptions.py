"""Error taxonomy for the E2E harness.

Every failure the harness raises derives from HarnessError. Failures that
represent a failed expectation (timeouts, budgets, violations) also derive
from AssertionError so pytest reports them as assertion failures.
"""

from typing import Any, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from boardguru_e2e.models.harness_models import (
        AccessibilityViolation,
        ActionResult,
        PerformanceMeasurement,
    )


class HarnessError(Exception):
    """Base class for all harness errors."""

    #: Short machine-readable name used in scenario outcomes
    kind: str = "harness_error"


class LocatorNotFound(HarnessError):
    """Raised when a semantic element name is not declared on a screen.

    This is a programming error in a ScreenModel and is never retried.
    """

    kind = "locator_not_found"

    def __init__(self, screen: str, name: str):
        self.screen = screen
        self.name = name
        super().__init__(f"Locator '{name}' is not declared on screen '{screen}'")


class ActionStepFailed(HarnessError):
    """Raised when one step of a composite action fails."""

    kind = "action_step_failed"

    def __init__(
        self,
        action: str,
        step_index: int,
        cause: BaseException,
        result: Optional["ActionResult"] = None,
    ):
        self.action = action
        self.step_index = step_index
        self.cause = cause
        self.result = result
        super().__init__(
            f"Action '{action}' failed at step {step_index}: "
            f"{type(cause).__name__}: {cause}"
        )


class AssertionTimeout(HarnessError, AssertionError):
    """Raised when a polled expectation does not hold before its timeout."""

    kind = "assertion_timeout"

    def __init__(self, predicate: str, last_observed_state: Any, timeout_ms: int):
        self.predicate = predicate
        self.last_observed_state = last_observed_state
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Timed out after {timeout_ms}ms waiting for {predicate} "
            f"(last observed: {last_observed_state!r})"
        )


class BudgetExceeded(HarnessError, AssertionError):
    """Raised when a measured operation is slower than its budget."""

    kind = "budget_exceeded"

    def __init__(self, measurement: "PerformanceMeasurement"):
        self.measurement = measurement
        super().__init__(
            f"Operation '{measurement.operation_name}' took "
            f"{measurement.duration_ms:.1f}ms, budget is {measurement.budget_ms}ms"
        )


class ScanFailed(HarnessError):
    """Raised when the accessibility engine itself fails.

    Distinct from a scan that succeeded and reported violations.
    """

    kind = "scan_failed"

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Accessibility scan failed: {type(cause).__name__}: {cause}")


class AccessibilityViolationsFound(HarnessError, AssertionError):
    """Raised when a scan that must be clean reported violations."""

    kind = "accessibility_violations"

    def __init__(self, violations: List["AccessibilityViolation"]):
        self.violations = violations
        rules = ", ".join(sorted({v.rule_id for v in violations}))
        super().__init__(
            f"{len(violations)} accessibility violation(s) found: {rules}"
        )


class MockRouteConflict(HarnessError):
    """Raised when a second policy is registered for the same pattern and method."""

    kind = "mock_route_conflict"

    def __init__(self, url_pattern: str, method: str):
        self.url_pattern = url_pattern
        self.method = method
        super().__init__(
            f"A mock route is already registered for {method} {url_pattern}"
        )


class ScenarioStateError(HarnessError):
    """Raised on an illegal scenario state transition."""

    kind = "scenario_state_error"


class ConcurrentInteractionError(HarnessError):
    """Raised when two tasks drive the same browser session at once."""

    kind = "concurrent_interaction"


class AuthenticationFailed(HarnessError):
    """Raised when a scenario cannot establish an authenticated session."""

    kind = "authentication_failed"


class ArtifactCaptureError(HarnessError):
    """Raised internally when a failure artifact cannot be captured."""

    kind = "artifact_capture_error"
