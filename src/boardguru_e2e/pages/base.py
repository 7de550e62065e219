"""ScreenModel base class: semantic locators and composite actions.

A ScreenModel maps semantic element names to locator expressions and
declares composite actions as ordered step sequences. Step targets are
checked against the declared locators (plus the shared chrome locators) when
the ScreenModel class is defined, so a typo in an action fails at import
time instead of in the middle of a scenario.
"""

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    Iterator,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from playwright.async_api import Locator, Page

from ..assertions.expectations import Expectations
from ..config.harness_config import HarnessConfig
from ..exceptions import ActionStepFailed, ConcurrentInteractionError, LocatorNotFound
from ..models.harness_models import (
    ActionArtifact,
    ActionResult,
    ActionStatus,
    ActionStep,
    StepKind,
)

logger = logging.getLogger(__name__)

# A step is either a declarative ActionStep or a zero-argument coroutine
# function for interactions that cannot be expressed declaratively.
Step = Union[ActionStep, Callable[[], Awaitable[Any]]]

S = TypeVar("S", bound="ScreenModel")


def testid(value: str) -> str:
    """Locator expression for a data-testid attribute."""
    return f'[data-testid="{value}"]'


# Shared application chrome, available to every screen
CHROME_LOCATORS: Dict[str, str] = {
    "sidebar": testid("sidebar"),
    "mobile-menu-button": testid("mobile-menu-button"),
    "user-menu": testid("user-menu"),
    "modal": '[role="dialog"]',
    "modal-close-button": testid("modal-close-button"),
    "toast": testid("toast"),
    "loading-spinner": testid("loading-spinner"),
    "error-boundary": testid("error-boundary"),
    "error-message": testid("error-message"),
    "success-message": testid("success-message"),
    "retry-button": testid("retry-button"),
}


class SessionGuard:
    """Enforce sequential use of one browser session.

    The task that enters first owns the session until its outermost action
    finishes. Nested actions from the owner are allowed; any other task is
    rejected.
    """

    def __init__(self):
        self._owner: Optional["asyncio.Task[Any]"] = None
        self._depth = 0

    @property
    def busy(self) -> bool:
        return self._owner is not None

    @contextmanager
    def hold(self, action: str) -> Iterator[None]:
        task = asyncio.current_task()
        if self._owner is not None and self._owner is not task:
            raise ConcurrentInteractionError(
                f"Action '{action}' started while another task drives this session"
            )
        self._owner = task
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._owner = None


class ScreenModel:
    """Base class for all screens.

    Subclasses declare:
        NAME: Display name, defaults to the class name
        PATH: Application path of the screen, if it is directly reachable
        LOCATORS: semantic name -> locator expression
        ACTIONS: action name -> sequence of ActionStep
        INCLUDE_CHROME: Whether the shared chrome locators are available

    Example:
        class SignInScreen(ScreenModel):
            LOCATORS = {"email-input": testid("email-input"), ...}
            ACTIONS = {"sign_in": (ActionStep.fill("email-input", "{email}"), ...)}
    """

    NAME: ClassVar[str] = ""
    PATH: ClassVar[Optional[str]] = None
    LOCATORS: ClassVar[Dict[str, str]] = {}
    ACTIONS: ClassVar[Dict[str, Sequence[ActionStep]]] = {}
    INCLUDE_CHROME: ClassVar[bool] = True

    _locators: ClassVar[Dict[str, str]] = {}

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        if not cls.NAME:
            cls.NAME = cls.__name__

        # Later classes in the MRO are overridden by earlier ones
        merged: Dict[str, str] = dict(CHROME_LOCATORS) if cls.INCLUDE_CHROME else {}
        for klass in reversed(cls.__mro__):
            merged.update(klass.__dict__.get("LOCATORS", {}))
        cls._locators = merged

        for action, steps in cls.ACTIONS.items():
            for step in steps:
                if step.target not in merged:
                    raise LocatorNotFound(cls.NAME, step.target)

    def __init__(
        self,
        page: Page,
        config: Optional[HarnessConfig] = None,
        expect: Optional[Expectations] = None,
        guard: Optional[SessionGuard] = None,
    ):
        """Bind the screen to a page.

        Args:
            page: Page of the scenario's browser session
            config: Harness configuration
            expect: Expectation layer shared with the scenario
            guard: Session guard shared by all screens of the session
        """
        self.page = page
        self.config = config or HarnessConfig()
        self.expect = expect or Expectations(self.config)
        self.guard = guard or SessionGuard()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} page={getattr(self.page, 'url', '?')}>"

    @classmethod
    def declared_locators(cls) -> Dict[str, str]:
        return dict(cls._locators)

    def locate(self, name: str) -> Locator:
        """Return the locator declared under name.

        The locator is lazy: it resolves against the DOM when used, so this
        never fails because the element is missing.

        Raises:
            LocatorNotFound: If name is not declared on this screen
        """
        try:
            expression = self._locators[name]
        except KeyError:
            raise LocatorNotFound(self.NAME, name) from None
        return self.page.locator(expression)

    async def perform(self, action: str, **params: Any) -> ActionResult:
        """Run a declared composite action.

        Args:
            action: Name of an entry in ACTIONS
            **params: Values for {placeholders} in step values

        Raises:
            ValueError: If the action is not declared
            ActionStepFailed: If a step fails
        """
        try:
            steps = self.ACTIONS[action]
        except KeyError:
            raise ValueError(f"Action '{action}' is not declared on {self.NAME}") from None
        return await self.run_steps(action, steps, **params)

    async def run_steps(self, action: str, steps: Sequence[Step], **params: Any) -> ActionResult:
        """Run steps in order, stopping at the first failure.

        Raises:
            LocatorNotFound: Before anything runs, if a step targets an
                undeclared element
            ConcurrentInteractionError: If another task holds the session
            ActionStepFailed: If a step fails; the failed ActionResult is
                attached as ``result``
        """
        for step in steps:
            if isinstance(step, ActionStep) and step.target not in self._locators:
                raise LocatorNotFound(self.NAME, step.target)

        with self.guard.hold(action):
            started = time.perf_counter()
            logger.debug(f"{self.NAME}.{action}: {len(steps)} step(s)")

            for index, step in enumerate(steps):
                try:
                    if isinstance(step, ActionStep):
                        await self._execute(step.render(params))
                    else:
                        await step()
                except Exception as e:
                    result = await self._failed_result(action, index, started, e)
                    logger.error(f"{self.NAME}.{action} failed at step {index}: {e}")
                    raise ActionStepFailed(action, index, e, result) from e

            return ActionResult(
                action=action,
                status=ActionStatus.PASSED,
                duration_ms=(time.perf_counter() - started) * 1000.0,
                steps_completed=len(steps),
            )

    def skipped(self, action: str, message: str) -> ActionResult:
        """Result for an action that was a no-op in the current state."""
        logger.debug(f"{self.NAME}.{action} skipped: {message}")
        return ActionResult(action=action, status=ActionStatus.SKIPPED, message=message)

    async def _execute(self, step: ActionStep) -> None:
        locator = self.locate(step.target)
        timeout = self.config.action_timeout_ms

        if step.kind == StepKind.CLICK:
            await locator.click(timeout=timeout)
        elif step.kind == StepKind.FILL:
            await locator.fill(step.value or "", timeout=timeout)
        elif step.kind == StepKind.CLEAR:
            await locator.clear(timeout=timeout)
        elif step.kind == StepKind.PRESS:
            await locator.press(step.value or "Enter", timeout=timeout)
        elif step.kind == StepKind.SELECT:
            await locator.select_option(step.value, timeout=timeout)
        elif step.kind == StepKind.CHECK:
            await locator.check(timeout=timeout)
        elif step.kind == StepKind.UNCHECK:
            await locator.uncheck(timeout=timeout)
        elif step.kind == StepKind.HOVER:
            await locator.hover(timeout=timeout)
        elif step.kind == StepKind.WAIT_VISIBLE:
            await locator.wait_for(state="visible", timeout=timeout)
        elif step.kind == StepKind.WAIT_HIDDEN:
            await locator.wait_for(state="hidden", timeout=timeout)
        else:
            raise ValueError(f"Unsupported step kind: {step.kind}")

    async def _failed_result(
        self, action: str, index: int, started: float, error: Exception
    ) -> ActionResult:
        screenshot = None
        try:
            screenshot = await self.page.screenshot()
        except Exception as capture_error:
            logger.warning(f"Could not capture screenshot for {action}: {capture_error}")

        return ActionResult(
            action=action,
            status=ActionStatus.FAILED,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            steps_completed=index,
            message=f"step {index} failed",
            artifact=ActionArtifact(
                screenshot=screenshot,
                error_detail=f"{type(error).__name__}: {error}",
            ),
        )


def locate(screen: ScreenModel, name: str) -> Locator:
    """Resolve a semantic element name on a screen.

    Raises:
        LocatorNotFound: If name is not declared on the screen
    """
    return screen.locate(name)


class ScreenRegistry:
    """Per-session cache of ScreenModel instances keyed by class."""

    def __init__(
        self,
        page: Page,
        config: HarnessConfig,
        expect: Optional[Expectations] = None,
        guard: Optional[SessionGuard] = None,
    ):
        self.page = page
        self.config = config
        self.expect = expect or Expectations(config)
        self.guard = guard or SessionGuard()
        self._screens: Dict[Type[ScreenModel], ScreenModel] = {}

    def get(self, screen_cls: Type[S]) -> S:
        screen = self._screens.get(screen_cls)
        if screen is None:
            screen = screen_cls(self.page, self.config, expect=self.expect, guard=self.guard)
            self._screens[screen_cls] = screen
        return screen  # type: ignore[return-value]

    def clear(self) -> None:
        self._screens.clear()

    def __len__(self) -> int:
        return len(self._screens)
