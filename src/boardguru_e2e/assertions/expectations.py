"""Polling expectations on rendered UI state.

Every expectation repeatedly observes the page through a probe until its
predicate holds or the timeout elapses. The page is never assumed to be
settled: a probe that raises a driver error (element detached mid-render,
navigation in progress) counts as an observation and polling continues.
"""

import asyncio
import fnmatch
import logging
import re
from typing import Any, Awaitable, Callable, List, Optional, Pattern, Union

from playwright.async_api import Error as PlaywrightError, Locator, Page

from ..config.harness_config import HarnessConfig
from ..exceptions import AssertionTimeout

logger = logging.getLogger(__name__)

TextPattern = Union[str, Pattern[str]]


class ProbeError:
    """Observation recorded when the probe itself raised."""

    def __init__(self, error: Exception):
        self.error = error

    def __repr__(self) -> str:
        message = str(self.error).splitlines()[0] if str(self.error) else ""
        return f"<probe error: {type(self.error).__name__}: {message}>"


def _matches(pattern: TextPattern, text: str) -> bool:
    if isinstance(pattern, str):
        return pattern in text
    return pattern.search(text) is not None


def _url_matches(pattern: TextPattern, url: str) -> bool:
    if isinstance(pattern, str):
        if any(ch in pattern for ch in "*?["):
            return fnmatch.fnmatch(url, pattern)
        return pattern in url
    return pattern.search(url) is not None


def _describe(pattern: TextPattern) -> str:
    return repr(pattern.pattern) if isinstance(pattern, re.Pattern) else repr(pattern)


class Expectations:
    """Eventually-consistent assertions.

    Example:
        expect = Expectations(config)
        await expect.expect_visible(screen.locate("success-message"))
        await expect.expect_text(screen.locate("reference-id"), re.compile(r"FB-\\w+"))
    """

    def __init__(self, config: Optional[HarnessConfig] = None):
        self.config = config or HarnessConfig()

    async def poll_until(
        self,
        probe: Callable[[], Awaitable[Any]],
        predicate: Callable[[Any], bool],
        description: str,
        timeout_ms: Optional[int] = None,
        interval_ms: Optional[int] = None,
    ) -> Any:
        """Observe with probe until predicate holds.

        Args:
            probe: Zero-argument coroutine function returning an observation
            predicate: Returns True when the observation is acceptable
            description: Human readable predicate, used in the failure
            timeout_ms: Overall timeout, defaults to the configured timeout
            interval_ms: Time between observations

        Returns:
            The first observation satisfying predicate

        Raises:
            AssertionTimeout: With the last observed state
        """
        timeout_ms = self.config.default_timeout_ms if timeout_ms is None else timeout_ms
        interval_ms = self.config.poll_interval_ms if interval_ms is None else interval_ms
        interval = interval_ms / 1000.0

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000.0
        last_observed: Any = None
        attempts = 0

        while True:
            attempts += 1
            try:
                observed = await probe()
            except PlaywrightError as e:
                last_observed = ProbeError(e)
            else:
                last_observed = observed
                if predicate(observed):
                    logger.debug(f"{description} held after {attempts} observation(s)")
                    return observed

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.error(f"Expectation failed: {description} (last: {last_observed!r})")
                raise AssertionTimeout(description, last_observed, timeout_ms)
            await asyncio.sleep(min(interval, remaining))

    def _probe_timeout(self) -> int:
        # Per-probe driver timeout; polling supplies the overall wait
        return max(1, self.config.poll_interval_ms)

    async def expect_visible(self, locator: Locator, timeout_ms: Optional[int] = None) -> None:
        await self.poll_until(
            lambda: locator.first.is_visible(),
            lambda visible: visible is True,
            f"{locator} to be visible",
            timeout_ms,
        )

    async def expect_hidden(self, locator: Locator, timeout_ms: Optional[int] = None) -> None:
        await self.poll_until(
            lambda: locator.first.is_visible(),
            lambda visible: visible is False,
            f"{locator} to be hidden",
            timeout_ms,
        )

    async def expect_text(
        self,
        locator: Locator,
        pattern: TextPattern,
        timeout_ms: Optional[int] = None,
    ) -> str:
        """Wait until one of the matched elements has text matching pattern.

        A str pattern matches as a substring, a compiled pattern with search().

        Returns:
            The matching text
        """
        texts: List[str] = await self.poll_until(
            locator.all_inner_texts,
            lambda observed: any(_matches(pattern, text) for text in observed),
            f"{locator} to have text {_describe(pattern)}",
            timeout_ms,
        )
        return next(text for text in texts if _matches(pattern, text))

    async def expect_value(
        self,
        locator: Locator,
        expected: TextPattern,
        timeout_ms: Optional[int] = None,
    ) -> None:
        """Wait until an input's value equals a str or matches a compiled pattern."""

        def predicate(value: str) -> bool:
            if isinstance(expected, str):
                return value == expected
            return expected.search(value) is not None

        await self.poll_until(
            lambda: locator.first.input_value(timeout=self._probe_timeout()),
            predicate,
            f"{locator} to have value {_describe(expected)}",
            timeout_ms,
        )

    async def expect_count(
        self,
        locator: Locator,
        count: int,
        timeout_ms: Optional[int] = None,
    ) -> None:
        await self.poll_until(
            locator.count,
            lambda observed: observed == count,
            f"{locator} to match {count} element(s)",
            timeout_ms,
        )

    async def expect_enabled(
        self,
        locator: Locator,
        enabled: bool = True,
        timeout_ms: Optional[int] = None,
    ) -> None:
        await self.poll_until(
            lambda: locator.first.is_enabled(timeout=self._probe_timeout()),
            lambda observed: observed is enabled,
            f"{locator} to be {'enabled' if enabled else 'disabled'}",
            timeout_ms,
        )

    async def expect_attribute(
        self,
        locator: Locator,
        name: str,
        expected: Optional[TextPattern],
        timeout_ms: Optional[int] = None,
    ) -> None:
        """Wait until attribute name matches expected; None means absent."""

        def predicate(value: Optional[str]) -> bool:
            if expected is None:
                return value is None
            if value is None:
                return False
            if isinstance(expected, str):
                return value == expected
            return expected.search(value) is not None

        await self.poll_until(
            lambda: locator.first.get_attribute(name, timeout=self._probe_timeout()),
            predicate,
            f"{locator} to have attribute {name}={_describe(expected) if expected is not None else 'absent'}",
            timeout_ms,
        )

    async def expect_url(
        self,
        page: Page,
        pattern: TextPattern,
        timeout_ms: Optional[int] = None,
    ) -> str:
        """Wait until the page URL matches a substring, glob or regex."""

        async def probe() -> str:
            return page.url

        return await self.poll_until(
            probe,
            lambda url: _url_matches(pattern, url),
            f"page URL to match {_describe(pattern)}",
            timeout_ms,
        )

    async def expect_any_visible(
        self,
        *locators: Locator,
        timeout_ms: Optional[int] = None,
    ) -> int:
        """Wait until at least one locator is visible.

        Returns:
            Index of the first visible locator, in argument order
        """
        if not locators:
            raise ValueError("expect_any_visible needs at least one locator")

        async def probe() -> List[bool]:
            return [await self.probe_visible(locator) for locator in locators]

        states = await self.poll_until(
            probe,
            any,
            f"any of {len(locators)} element(s) to be visible",
            timeout_ms,
        )
        return states.index(True)

    async def probe_visible(self, locator: Locator) -> bool:
        """Single non-failing visibility observation."""
        try:
            return await locator.first.is_visible()
        except PlaywrightError:
            return False
