"""Tests for PerformanceHarness."""

import asyncio

import pytest
from unittest.mock import AsyncMock
from playwright.async_api import Page

from boardguru_e2e.browser.performance_monitor import PerformanceHarness
from boardguru_e2e.config.harness_config import HarnessConfig
from boardguru_e2e.exceptions import BudgetExceeded
from boardguru_e2e.models.harness_models import PerformanceMeasurement


@pytest.fixture
def harness():
    config = HarnessConfig(
        default_budget_ms=3000,
        performance_budgets={"dashboard": 2000, "organization_creation": 5000},
    )
    return PerformanceHarness(config)


class TestMeasure:
    """Tests for timing operations."""

    @pytest.mark.asyncio
    async def test_measures_operation_duration(self, harness):
        measurement = await harness.measure("dashboard", lambda: asyncio.sleep(0.02))

        assert measurement.operation_name == "dashboard"
        assert measurement.duration_ms >= 15
        assert measurement.budget_ms == 2000
        assert measurement.passed is True
        assert measurement.succeeded is True
        assert harness.measurements == [measurement]

    @pytest.mark.asyncio
    async def test_unknown_operation_uses_default_budget(self, harness):
        measurement = await harness.measure("feedback_modal", AsyncMock())
        assert measurement.budget_ms == 3000

    @pytest.mark.asyncio
    async def test_explicit_budget_wins(self, harness):
        measurement = await harness.measure("dashboard", AsyncMock(), budget_ms=10)
        assert measurement.budget_ms == 10

    @pytest.mark.asyncio
    async def test_operation_runs_once(self, harness):
        operation = AsyncMock()

        await harness.measure("dashboard", operation)

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_operation_is_recorded_then_reraised(self, harness):
        operation = AsyncMock(side_effect=RuntimeError("navigation failed"))

        with pytest.raises(RuntimeError, match="navigation failed"):
            await harness.measure("dashboard", operation)

        assert len(harness.measurements) == 1
        assert harness.measurements[0].succeeded is False

    @pytest.mark.asyncio
    async def test_invalid_budget_rejected(self, harness):
        with pytest.raises(ValueError):
            await harness.measure("dashboard", AsyncMock(), budget_ms=0)

    @pytest.mark.asyncio
    async def test_measure_block(self, harness):
        async with harness.measure_block("organization_creation") as timing:
            await asyncio.sleep(0.01)

        assert timing.measurement is not None
        assert timing.measurement.budget_ms == 5000
        assert timing.measurement.succeeded is True


class TestExpectLoadTime:
    """Tests for budget assertions."""

    def test_within_budget_passes(self, harness):
        harness.expect_load_time(
            PerformanceMeasurement(operation_name="x", duration_ms=1999.0, budget_ms=2000)
        )

    def test_boundary_is_inclusive(self, harness):
        harness.expect_load_time(
            PerformanceMeasurement(operation_name="x", duration_ms=2000.0, budget_ms=2000)
        )

    def test_over_budget_raises(self, harness):
        measurement = PerformanceMeasurement(operation_name="x", duration_ms=2500.0, budget_ms=2000)

        with pytest.raises(BudgetExceeded) as exc_info:
            harness.expect_load_time(measurement)

        assert exc_info.value.measurement.duration_ms == 2500.0
        assert isinstance(exc_info.value, AssertionError)

    def test_override_budget(self, harness):
        measurement = PerformanceMeasurement(operation_name="x", duration_ms=1500.0, budget_ms=2000)

        with pytest.raises(BudgetExceeded):
            harness.expect_load_time(measurement, budget_ms=1000)


class TestReporting:
    """Tests for navigation timing and summaries."""

    @pytest.mark.asyncio
    async def test_collect_navigation_timing(self, harness):
        page = AsyncMock(spec=Page)
        page.evaluate = AsyncMock(
            return_value={"ttfb": 120, "dom_content_loaded": 800, "load_complete": 1400}
        )

        timing = await harness.collect_navigation_timing(page)

        assert timing == {"ttfb": 120.0, "dom_content_loaded": 800.0, "load_complete": 1400.0}

    def test_summary_empty(self, harness):
        assert harness.summary() == {"count": 0, "passed": 0, "failed": 0}

    @pytest.mark.asyncio
    async def test_summary_counts(self, harness):
        await harness.measure("dashboard", AsyncMock())
        await harness.measure("organizations", AsyncMock(), budget_ms=0.000001)

        summary = harness.summary()

        assert summary["count"] == 2
        assert summary["passed"] == 1
        assert summary["failed"] == 1
