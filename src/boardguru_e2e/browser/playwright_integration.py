"""Playwright lifecycle management for the harness.

PlaywrightManager owns the Playwright engine and the launched browsers. It
hands out isolated browser contexts (one per scenario) and pages configured
with the harness timeouts, and tears everything down in reverse order.
"""

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
)
from typing import Optional, Dict, Any, List
import logging

from ..config.harness_config import HarnessConfig
from ..models.harness_models import BrowserType, Viewport

logger = logging.getLogger(__name__)


class PlaywrightManager:
    """Start Playwright, launch browsers and create isolated contexts.

    Browsers are launched once per engine type and reused; contexts are
    never shared between scenarios.

    Use as an async context manager, or call stop() when done.
    """

    def __init__(self, config: Optional[HarnessConfig] = None):
        """Initialize the manager.

        Args:
            config: Harness configuration, loaded from the environment if omitted
        """
        self.config = config or HarnessConfig()
        self.playwright: Optional[Playwright] = None
        self.browsers: Dict[str, Browser] = {}
        self.contexts: List[BrowserContext] = []
        self._started = False

    async def __aenter__(self) -> "PlaywrightManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Start the Playwright engine.

        Raises:
            RuntimeError: If Playwright cannot be started
        """
        if self._started:
            return

        try:
            self.playwright = await async_playwright().start()
            self._started = True
            logger.info("Playwright started")
        except Exception as e:
            logger.error(f"Failed to start Playwright: {e}")
            raise RuntimeError(f"Playwright start failed: {e}") from e

    async def launch_browser(
        self,
        browser_type: Optional[BrowserType] = None,
        headless: Optional[bool] = None,
        **options: Any,
    ) -> Browser:
        """Launch a browser, or return the one already running for that engine.

        Args:
            browser_type: Engine to launch, defaults to the configured browser
            headless: Headless mode, defaults to the configured value
            **options: Extra launch options

        Returns:
            Browser instance

        Raises:
            RuntimeError: If the browser fails to launch
        """
        if not self._started:
            await self.start()

        browser_type = browser_type or self.config.browser
        headless = self.config.headless if headless is None else headless

        existing = self.browsers.get(browser_type.value)
        if existing is not None and existing.is_connected():
            logger.debug(f"Reusing running {browser_type.value} browser")
            return existing

        try:
            launcher = getattr(self.playwright, browser_type.value)
            browser = await launcher.launch(headless=headless, **options)
            self.browsers[browser_type.value] = browser
            logger.info(f"Launched {browser_type.value} browser (headless={headless})")
            return browser
        except Exception as e:
            logger.error(f"Failed to launch {browser_type.value} browser: {e}")
            raise RuntimeError(f"Browser launch failed: {e}") from e

    async def new_context(
        self,
        viewport: Optional[Viewport] = None,
        storage_state: Optional[str] = None,
        **options: Any,
    ) -> BrowserContext:
        """Create an isolated browser context.

        Args:
            viewport: Viewport, defaults to the configured viewport
            storage_state: Path of a saved authenticated storage state
            **options: Extra context options

        Returns:
            Browser context with harness timeouts applied

        Raises:
            RuntimeError: If the context cannot be created
        """
        browser = await self.launch_browser()
        viewport = viewport or self.config.viewport

        context_options: Dict[str, Any] = {
            "viewport": {"width": viewport.width, "height": viewport.height},
            "device_scale_factor": viewport.device_scale_factor,
            "is_mobile": viewport.is_mobile,
            "has_touch": viewport.has_touch,
            "base_url": self.config.base_url,
        }
        if storage_state:
            context_options["storage_state"] = storage_state
        context_options.update(options)

        try:
            context = await browser.new_context(**context_options)
        except Exception as e:
            logger.error(f"Failed to create browser context: {e}")
            raise RuntimeError(f"Context creation failed: {e}") from e

        context.set_default_timeout(self.config.action_timeout_ms)
        context.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        self.contexts.append(context)
        logger.debug(
            f"Created browser context {viewport.width}x{viewport.height} "
            f"(storage_state={'yes' if storage_state else 'no'})"
        )
        return context

    async def new_page(self, context: BrowserContext) -> Page:
        """Open a page in the given context.

        Raises:
            RuntimeError: If the page cannot be created
        """
        try:
            page = await context.new_page()
        except Exception as e:
            logger.error(f"Failed to create page: {e}")
            raise RuntimeError(f"Page creation failed: {e}") from e

        page.set_default_timeout(self.config.action_timeout_ms)
        page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        return page

    async def close_context(self, context: BrowserContext) -> None:
        """Close a context created by this manager. Closing twice is a no-op."""
        if context in self.contexts:
            self.contexts.remove(context)
        await context.close()
        logger.debug("Closed browser context")

    async def stop(self) -> None:
        """Close every context and browser, then stop Playwright.

        Individual close failures are logged and do not prevent the rest of
        the shutdown.
        """
        errors = []

        for context in list(self.contexts):
            try:
                await context.close()
            except Exception as e:
                errors.append(f"context: {e}")
        self.contexts.clear()

        for name, browser in list(self.browsers.items()):
            try:
                await browser.close()
                logger.debug(f"Closed browser: {name}")
            except Exception as e:
                errors.append(f"browser {name}: {e}")
        self.browsers.clear()

        if self.playwright:
            try:
                await self.playwright.stop()
            except Exception as e:
                errors.append(f"playwright: {e}")
            self.playwright = None

        self._started = False

        if errors:
            logger.warning(f"Playwright shutdown completed with errors: {'; '.join(errors)}")
        else:
            logger.info("Playwright stopped")
