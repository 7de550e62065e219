"""Application chrome shared by every screen."""

import logging
from typing import Optional

from ..models.harness_models import ActionResult, ActionStep
from .base import CHROME_LOCATORS, ScreenModel

logger = logging.getLogger(__name__)


class ChromeModel(ScreenModel):
    """Sidebar, mobile menu, modals, toasts and global loading/error states."""

    NAME = "chrome"
    LOCATORS = CHROME_LOCATORS
    INCLUDE_CHROME = False
    ACTIONS = {
        "open_mobile_menu": (
            ActionStep.click("mobile-menu-button"),
            ActionStep.wait_visible("sidebar"),
        ),
        "close_modal": (
            ActionStep.click("modal-close-button"),
            ActionStep.wait_hidden("modal"),
        ),
        "retry": (ActionStep.click("retry-button"),),
    }

    async def wait_until_loaded(self, timeout_ms: Optional[int] = None) -> None:
        """Wait for the global loading spinner to disappear."""
        await self.expect.expect_hidden(self.locate("loading-spinner"), timeout_ms)

    async def expect_navigation_visible(self, timeout_ms: Optional[int] = None) -> str:
        """Wait until the sidebar or, on narrow viewports, the mobile menu trigger shows.

        Returns:
            Semantic name of the element that became visible
        """
        names = ("sidebar", "mobile-menu-button")
        index = await self.expect.expect_any_visible(
            *(self.locate(name) for name in names), timeout_ms=timeout_ms
        )
        logger.debug(f"Navigation available through {names[index]}")
        return names[index]

    async def open_mobile_menu(self) -> ActionResult:
        if await self.expect.probe_visible(self.locate("sidebar")):
            return self.skipped("open_mobile_menu", "sidebar already visible")
        return await self.perform("open_mobile_menu")

    async def close_modal(self) -> ActionResult:
        if not await self.expect.probe_visible(self.locate("modal")):
            return self.skipped("close_modal", "no modal open")
        return await self.perform("close_modal")

    async def has_error_boundary(self) -> bool:
        return await self.expect.probe_visible(self.locate("error-boundary"))

    async def expect_error(self, text=None, timeout_ms: Optional[int] = None) -> None:
        """Wait for the global error message, optionally matching text."""
        locator = self.locate("error-message")
        if text is None:
            await self.expect.expect_visible(locator, timeout_ms)
        else:
            await self.expect.expect_text(locator, text, timeout_ms)

    async def expect_success(self, text=None, timeout_ms: Optional[int] = None) -> None:
        locator = self.locate("success-message")
        if text is None:
            await self.expect.expect_visible(locator, timeout_ms)
        else:
            await self.expect.expect_text(locator, text, timeout_ms)
