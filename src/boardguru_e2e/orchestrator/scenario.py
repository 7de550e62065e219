"""Scenario orchestration.

ScenarioOrchestrator runs each scenario in its own browser context and
drives it through the lifecycle

    created -> authenticated_context_ready -> executing -> passed | failed -> torn_down

A scenario that raises (including on cancellation) is marked failed and then
has its failure artifacts captured. Teardown runs on every path, its own
errors are logged without replacing the scenario's error, and an outcome is
recorded even when the capture itself is cancelled.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from playwright.async_api import BrowserContext, Page

from ..assertions.expectations import Expectations
from ..browser.accessibility_tester import AccessibilityScanner
from ..browser.browser_manager import BrowserSessionManager
from ..browser.network_interceptor import NetworkInterceptor, NetworkRecorder
from ..browser.performance_monitor import PerformanceHarness
from ..browser.playwright_integration import PlaywrightManager
from ..config.harness_config import HarnessConfig
from ..exceptions import ScenarioStateError
from ..fixtures.data_factory import TestDataFactory
from ..models.harness_models import (
    AccessibilityViolation,
    AuthMode,
    FailureArtifacts,
    MockRoute,
    PerformanceMeasurement,
    ResponsePolicy,
    ScenarioOutcome,
    ScenarioState,
    TestFixture,
    Viewport,
)
from ..pages.base import ScreenModel, ScreenRegistry, SessionGuard
from .artifacts import ArtifactStore
from .auth import Authenticator

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=ScreenModel)

ALLOWED_TRANSITIONS: Dict[ScenarioState, FrozenSet[ScenarioState]] = {
    ScenarioState.CREATED: frozenset(
        {ScenarioState.AUTHENTICATED_CONTEXT_READY, ScenarioState.FAILED}
    ),
    ScenarioState.AUTHENTICATED_CONTEXT_READY: frozenset(
        {ScenarioState.EXECUTING, ScenarioState.FAILED}
    ),
    ScenarioState.EXECUTING: frozenset({ScenarioState.PASSED, ScenarioState.FAILED}),
    ScenarioState.PASSED: frozenset({ScenarioState.TORN_DOWN}),
    ScenarioState.FAILED: frozenset({ScenarioState.TORN_DOWN}),
    ScenarioState.TORN_DOWN: frozenset(),
}


class ScenarioLifecycle:
    """State of one scenario, rejecting illegal transitions."""

    def __init__(self, name: str):
        self.name = name
        self.state = ScenarioState.CREATED
        self.history: List[ScenarioState] = [ScenarioState.CREATED]

    def transition(self, new_state: ScenarioState) -> None:
        """Move to new_state.

        Raises:
            ScenarioStateError: If the transition is not allowed
        """
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise ScenarioStateError(
                f"Scenario '{self.name}' cannot go from {self.state.value} to {new_state.value}"
            )
        logger.info(f"Scenario '{self.name}': {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)


class ScenarioContext:
    """Everything a scenario needs, threaded explicitly.

    Attributes:
        name: Scenario name
        config: Harness configuration
        browser_context: Isolated browser context of this scenario
        page: Page of this scenario
        expect: Polling expectations
        network: Mock route registry for this scenario
        recorder: Network log of the page
        performance: Measurements of this scenario
        accessibility: Accessibility scanner
        data: Unique test data generated for this scenario
    """

    def __init__(
        self,
        name: str,
        config: HarnessConfig,
        browser_context: BrowserContext,
        page: Page,
        data: TestFixture,
        lifecycle: ScenarioLifecycle,
        network_log_size: Optional[int] = None,
        accessibility: Optional[AccessibilityScanner] = None,
    ):
        self.name = name
        self.config = config
        self.browser_context = browser_context
        self.page = page
        self.data = data
        self.lifecycle = lifecycle
        self.expect = Expectations(config)
        self.network = NetworkInterceptor()
        self.recorder = NetworkRecorder(network_log_size or config.network_log_size)
        self.performance = PerformanceHarness(config)
        self.accessibility = accessibility or AccessibilityScanner(config)
        self.guard = SessionGuard()
        self.screens = ScreenRegistry(page, config, expect=self.expect, guard=self.guard)
        self.violations: List[AccessibilityViolation] = []

    @property
    def state(self) -> ScenarioState:
        return self.lifecycle.state

    @property
    def measurements(self) -> List[PerformanceMeasurement]:
        return self.performance.measurements

    def screen(self, screen_cls: Type[S]) -> S:
        """Cached ScreenModel of this scenario's page."""
        return self.screens.get(screen_cls)

    async def goto(self, path: str, wait_until: str = "domcontentloaded") -> None:
        await self.page.goto(self.config.resolve_url(path), wait_until=wait_until)

    async def set_viewport(self, width: int, height: int) -> None:
        await self.page.set_viewport_size({"width": width, "height": height})

    async def measure(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[Any]],
        budget_ms: Optional[float] = None,
    ) -> PerformanceMeasurement:
        return await self.performance.measure(operation_name, operation, budget_ms)

    async def scan(
        self,
        scope: Optional[str] = None,
        tags: Union[str, Sequence[str], None] = None,
        rule_ids: Optional[Sequence[str]] = None,
    ) -> List[AccessibilityViolation]:
        """Scan the page and keep the violations for the scenario report."""
        violations = await self.accessibility.scan(self.page, scope, tags, rule_ids)
        self.record_violations(violations)
        return violations

    def record_violations(self, violations: Iterable[AccessibilityViolation]) -> None:
        self.violations.extend(violations)

    async def register_route(
        self,
        url_pattern: str,
        method: str = "*",
        policy: Optional[ResponsePolicy] = None,
        times: Optional[int] = None,
        replace: bool = False,
    ) -> MockRoute:
        """Mock requests of this scenario's browser context."""
        return await self.network.register_route(
            self.browser_context, url_pattern, method, policy, times=times, replace=replace
        )


class ScenarioOrchestrator:
    """Run scenarios with isolation and guaranteed teardown.

    Example:
        async with ScenarioOrchestrator(config) as orchestrator:
            async with orchestrator.run("submit feedback") as ctx:
                feedback = ctx.screen(FeedbackScreen)
                await feedback.goto()
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        playwright_manager: Optional[PlaywrightManager] = None,
        artifact_store: Optional[ArtifactStore] = None,
        authenticator: Optional[Authenticator] = None,
        data_factory: Optional[TestDataFactory] = None,
    ):
        self.config = config or HarnessConfig()
        self.playwright_manager = playwright_manager or PlaywrightManager(self.config)
        self.sessions = BrowserSessionManager(self.playwright_manager)
        self.artifact_store = artifact_store or ArtifactStore(self.config)
        self.authenticator = authenticator or Authenticator(self.config)
        self.data_factory = data_factory or TestDataFactory()
        self.outcomes: List[ScenarioOutcome] = []

    async def __aenter__(self) -> "ScenarioOrchestrator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self) -> None:
        await self.playwright_manager.start()

    async def stop(self) -> None:
        await self.playwright_manager.stop()

    @asynccontextmanager
    async def run(
        self,
        name: str,
        auth: AuthMode = AuthMode.PRE_AUTHENTICATED,
        viewport: Optional[Viewport] = None,
    ) -> AsyncIterator[ScenarioContext]:
        """Run one scenario.

        Args:
            name: Scenario name, used for logs and the artifact directory
            auth: How the session is established
            viewport: Viewport override, e.g. Viewport.mobile()

        Yields:
            The scenario's context, in the executing state
        """
        lifecycle = ScenarioLifecycle(name)
        started = time.perf_counter()
        browser_context: Optional[BrowserContext] = None
        page: Optional[Page] = None
        ctx: Optional[ScenarioContext] = None
        error: Optional[BaseException] = None
        artifacts: Optional[FailureArtifacts] = None

        try:
            storage_state = self.authenticator.storage_state_for(auth)
            browser_context, page = await self.sessions.open_session(
                viewport=viewport, storage_state=storage_state
            )
            ctx = ScenarioContext(
                name=name,
                config=self.config,
                browser_context=browser_context,
                page=page,
                data=self.data_factory.create_test_data(),
                lifecycle=lifecycle,
            )
            ctx.recorder.attach(page)
            await self.authenticator.authenticate(
                auth, browser_context, ctx.screens, used_storage_state=storage_state is not None
            )
            lifecycle.transition(ScenarioState.AUTHENTICATED_CONTEXT_READY)

            lifecycle.transition(ScenarioState.EXECUTING)
            yield ctx
            lifecycle.transition(ScenarioState.PASSED)

        except BaseException as e:
            error = e
            logger.error(f"Scenario '{name}' failed: {type(e).__name__}: {e}")
            # Marked failed before capture so a cancel during capture cannot skip it
            if lifecycle.state not in (ScenarioState.FAILED, ScenarioState.TORN_DOWN):
                lifecycle.transition(ScenarioState.FAILED)
            artifacts = await self._capture_failure(name, e, ctx, page)
            raise

        finally:
            try:
                await self._teardown(name, ctx, browser_context, page)
            except Exception as e:
                logger.error(f"Teardown of scenario '{name}' failed: {e}")
            finally:
                if lifecycle.state in (ScenarioState.PASSED, ScenarioState.FAILED):
                    lifecycle.transition(ScenarioState.TORN_DOWN)
                self.outcomes.append(
                    ScenarioOutcome(
                        name=name,
                        state=lifecycle.state,
                        passed=error is None,
                        error_kind=self._error_kind(error),
                        error_message=str(error) if error is not None else None,
                        duration_ms=(time.perf_counter() - started) * 1000.0,
                        artifacts=artifacts,
                        measurements=list(ctx.measurements) if ctx else [],
                        violations=list(ctx.violations) if ctx else [],
                    )
                )

    @staticmethod
    def _error_kind(error: Optional[BaseException]) -> Optional[str]:
        if error is None:
            return None
        return getattr(error, "kind", type(error).__name__)

    async def _capture_failure(
        self,
        name: str,
        error: BaseException,
        ctx: Optional[ScenarioContext],
        page: Optional[Page],
    ) -> Optional[FailureArtifacts]:
        try:
            return await self.artifact_store.capture_failure(
                name,
                error,
                page=page,
                network_log=ctx.recorder.entries if ctx else (),
                measurements=ctx.measurements if ctx else (),
                violations=ctx.violations if ctx else (),
            )
        except Exception as e:
            logger.warning(f"Could not save failure artifacts for '{name}': {e}")
            return None

    async def _teardown(
        self,
        name: str,
        ctx: Optional[ScenarioContext],
        browser_context: Optional[BrowserContext],
        page: Optional[Page],
    ) -> None:
        if ctx is not None:
            try:
                await ctx.network.clear_routes()
            except Exception as e:
                logger.warning(f"Error clearing routes for '{name}': {e}")
            ctx.recorder.detach()
            ctx.screens.clear()

        if browser_context is not None:
            await self.sessions.close_session(browser_context, page)
        logger.debug(f"Scenario '{name}' resources released")

    def summary(self) -> Dict[str, Any]:
        """Pass/fail counts over the scenarios run so far."""
        failed = [o for o in self.outcomes if not o.passed]
        return {
            "total": len(self.outcomes),
            "passed": len(self.outcomes) - len(failed),
            "failed": len(failed),
            "failures": {o.name: o.error_kind for o in failed},
        }
