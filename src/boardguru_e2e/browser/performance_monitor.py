"""Performance measurement for scenario operations.

This module provides the PerformanceHarness, which times user-visible
operations (page loads, submissions, wizard completion) against per-operation
budgets, and a helper collecting Navigation Timing metrics from a page.
"""

import logging
import statistics
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import Page

from ..config.harness_config import HarnessConfig
from ..exceptions import BudgetExceeded
from ..models.harness_models import PerformanceMeasurement

logger = logging.getLogger(__name__)


NAVIGATION_TIMING_SCRIPT = """
() => {
    const nav = performance.getEntriesByType('navigation')[0];
    if (!nav) {
        return {ttfb: 0, dom_content_loaded: 0, load_complete: 0};
    }
    return {
        ttfb: nav.responseStart - nav.requestStart,
        dom_content_loaded: nav.domContentLoadedEventEnd - nav.fetchStart,
        load_complete: nav.loadEventEnd - nav.fetchStart
    };
}
"""


class MeasurementHandle:
    """Holder for the measurement produced by PerformanceHarness.measure_block."""

    def __init__(self, operation_name: str, budget_ms: float):
        self.operation_name = operation_name
        self.budget_ms = budget_ms
        self.measurement: Optional[PerformanceMeasurement] = None


class PerformanceHarness:
    """Time operations and compare them with their budgets.

    Only the awaited operation is timed; setup done before calling measure()
    is excluded. Every measurement, including those of failed operations, is
    kept in ``measurements`` for the scenario report.

    Example:
        harness = PerformanceHarness(config)
        m = await harness.measure("dashboard", lambda: page.goto("/dashboard"))
        harness.expect_load_time(m)
    """

    def __init__(self, config: Optional[HarnessConfig] = None):
        self.config = config or HarnessConfig()
        self.measurements: List[PerformanceMeasurement] = []

    def _resolve_budget(self, operation_name: str, budget_ms: Optional[float]) -> float:
        if budget_ms is not None:
            if budget_ms <= 0:
                raise ValueError(f"budget_ms must be positive, got {budget_ms}")
            return budget_ms
        return self.config.budget_for(operation_name)

    def _record(
        self,
        operation_name: str,
        started: float,
        budget_ms: float,
        succeeded: bool,
    ) -> PerformanceMeasurement:
        duration_ms = (time.perf_counter() - started) * 1000.0
        measurement = PerformanceMeasurement(
            operation_name=operation_name,
            duration_ms=duration_ms,
            budget_ms=budget_ms,
            succeeded=succeeded,
        )
        self.measurements.append(measurement)

        if not succeeded:
            logger.error(f"Operation '{operation_name}' failed after {duration_ms:.1f}ms")
        else:
            logger.info(
                f"Measured '{operation_name}': {duration_ms:.1f}ms "
                f"(budget {budget_ms}ms, {'pass' if measurement.passed else 'over budget'})"
            )
        return measurement

    async def measure(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[Any]],
        budget_ms: Optional[float] = None,
    ) -> PerformanceMeasurement:
        """Await operation once and record how long it took.

        Args:
            operation_name: Name used for the budget lookup and the report
            operation: Zero-argument callable returning an awaitable
            budget_ms: Budget override, otherwise the configured budget

        Returns:
            The recorded measurement

        Raises:
            Exception: Whatever the operation raised, after the failed
                measurement has been recorded
        """
        budget = self._resolve_budget(operation_name, budget_ms)
        started = time.perf_counter()
        try:
            await operation()
        except BaseException:
            self._record(operation_name, started, budget, succeeded=False)
            raise
        return self._record(operation_name, started, budget, succeeded=True)

    @asynccontextmanager
    async def measure_block(
        self,
        operation_name: str,
        budget_ms: Optional[float] = None,
    ) -> AsyncIterator[MeasurementHandle]:
        """Measure the body of an ``async with`` block.

        Example:
            async with harness.measure_block("organization_creation") as timing:
                await screen.create_organization_complete(data)
            harness.expect_load_time(timing.measurement)
        """
        handle = MeasurementHandle(operation_name, self._resolve_budget(operation_name, budget_ms))
        started = time.perf_counter()
        try:
            yield handle
        except BaseException:
            handle.measurement = self._record(
                operation_name, started, handle.budget_ms, succeeded=False
            )
            raise
        handle.measurement = self._record(
            operation_name, started, handle.budget_ms, succeeded=True
        )

    def expect_load_time(
        self,
        measurement: PerformanceMeasurement,
        budget_ms: Optional[float] = None,
    ) -> None:
        """Fail if the measurement is over budget.

        Args:
            measurement: Measurement to check
            budget_ms: Stricter or looser budget than the recorded one

        Raises:
            BudgetExceeded: If duration_ms > budget_ms
        """
        if budget_ms is not None:
            measurement = measurement.model_copy(update={"budget_ms": budget_ms})
        if measurement.duration_ms > measurement.budget_ms:
            raise BudgetExceeded(measurement)

    async def collect_navigation_timing(self, page: Page) -> Dict[str, float]:
        """Read TTFB, DOMContentLoaded and load times of the last navigation.

        Returns zeros when the browser exposes no navigation entry.
        """
        timing = await page.evaluate(NAVIGATION_TIMING_SCRIPT)
        logger.debug(f"Navigation timing: {timing}")
        return {key: float(value) for key, value in timing.items()}

    def summary(self) -> Dict[str, Any]:
        """Aggregate statistics over the recorded measurements."""
        durations = [m.duration_ms for m in self.measurements]
        if not durations:
            return {"count": 0, "passed": 0, "failed": 0}

        ordered = sorted(durations)
        p95_index = max(0, int(round(0.95 * len(ordered))) - 1)
        return {
            "count": len(durations),
            "passed": sum(1 for m in self.measurements if m.passed and m.succeeded),
            "failed": sum(1 for m in self.measurements if not (m.passed and m.succeeded)),
            "mean_ms": statistics.mean(durations),
            "median_ms": statistics.median(durations),
            "p95_ms": ordered[p95_index],
            "slowest": max(self.measurements, key=lambda m: m.duration_ms).operation_name,
        }

    def reset(self) -> None:
        self.measurements.clear()
