"""Browser-facing harness components.

This package provides:
- Playwright lifecycle management and isolated per-scenario sessions
- Network request interception, mocking and traffic recording
- Operation timing against performance budgets
- Accessibility scanning with axe-core
"""

from .playwright_integration import PlaywrightManager
from .browser_manager import BrowserSessionManager
from .network_interceptor import (
    NetworkInterceptor,
    NetworkRecorder,
    abort,
    delay,
    fulfill,
    passthrough,
)
from .performance_monitor import MeasurementHandle, PerformanceHarness
from .accessibility_tester import (
    AccessibilityEngine,
    AccessibilityScanner,
    AxeCoreEngine,
    WCAG_TAG_MAPPING,
    normalize_violations,
)

__all__ = [
    "PlaywrightManager",
    "BrowserSessionManager",
    "NetworkInterceptor",
    "NetworkRecorder",
    "abort",
    "delay",
    "fulfill",
    "passthrough",
    "MeasurementHandle",
    "PerformanceHarness",
    "AccessibilityEngine",
    "AccessibilityScanner",
    "AxeCoreEngine",
    "WCAG_TAG_MAPPING",
    "normalize_violations",
]
