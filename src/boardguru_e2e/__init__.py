"""BoardGuru end-to-end verification harness.

Drives a real browser through Playwright, asserts on rendered UI state,
measures operations against performance budgets, scans for accessibility
violations and simulates network failures, one isolated scenario at a time.
"""

from .config import HarnessConfig, load_config
from .exceptions import (
    AccessibilityViolationsFound,
    ActionStepFailed,
    ArtifactCaptureError,
    AssertionTimeout,
    AuthenticationFailed,
    BudgetExceeded,
    ConcurrentInteractionError,
    HarnessError,
    LocatorNotFound,
    MockRouteConflict,
    ScanFailed,
    ScenarioStateError,
)
from .models import AuthMode, ScenarioState, Viewport
from .orchestrator import ScenarioContext, ScenarioOrchestrator

__version__ = "0.1.0"

__all__ = [
    "HarnessConfig",
    "load_config",
    "HarnessError",
    "LocatorNotFound",
    "ActionStepFailed",
    "AssertionTimeout",
    "BudgetExceeded",
    "ScanFailed",
    "AccessibilityViolationsFound",
    "MockRouteConflict",
    "ScenarioStateError",
    "ConcurrentInteractionError",
    "AuthenticationFailed",
    "ArtifactCaptureError",
    "AuthMode",
    "ScenarioState",
    "Viewport",
    "ScenarioContext",
    "ScenarioOrchestrator",
]
