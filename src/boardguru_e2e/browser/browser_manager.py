"""Per-scenario browser session acquisition.

BrowserSessionManager wraps PlaywrightManager in async context managers so a
scenario always gets a fresh context and page and always releases them.
"""

from typing import AsyncIterator, Optional, Tuple, Any
import logging
from contextlib import asynccontextmanager

from playwright.async_api import BrowserContext, Page

from .playwright_integration import PlaywrightManager
from ..models.harness_models import Viewport

logger = logging.getLogger(__name__)


class BrowserSessionManager:
    """Acquire isolated browser contexts and pages with guaranteed release."""

    def __init__(self, playwright_manager: PlaywrightManager):
        """Initialize the session manager.

        Args:
            playwright_manager: Manager that owns the browsers
        """
        self.playwright_manager = playwright_manager
        self._active: int = 0

    @property
    def active_sessions(self) -> int:
        return self._active

    async def open_session(
        self,
        viewport: Optional[Viewport] = None,
        storage_state: Optional[str] = None,
        **options: Any,
    ) -> Tuple[BrowserContext, Page]:
        """Open a new isolated context and its page.

        The caller owns the returned pair and must pass it to close_session().
        """
        context = await self.playwright_manager.new_context(
            viewport=viewport, storage_state=storage_state, **options
        )
        try:
            page = await self.playwright_manager.new_page(context)
        except Exception:
            await self.playwright_manager.close_context(context)
            raise
        self._active += 1
        return context, page

    async def close_session(self, context: BrowserContext, page: Optional[Page]) -> None:
        """Close the page, then its context. Errors are logged, not raised."""
        if page is not None:
            try:
                await page.close()
            except Exception as e:
                logger.warning(f"Error closing page: {e}")
        try:
            await self.playwright_manager.close_context(context)
        except Exception as e:
            logger.warning(f"Error closing context: {e}")
        self._active = max(0, self._active - 1)

    @asynccontextmanager
    async def session(
        self,
        viewport: Optional[Viewport] = None,
        storage_state: Optional[str] = None,
        **options: Any,
    ) -> AsyncIterator[Tuple[BrowserContext, Page]]:
        """Open a session for the duration of the block.

        Example:
            async with sessions.session(Viewport.mobile()) as (context, page):
                await page.goto("/dashboard")
        """
        context, page = await self.open_session(
            viewport=viewport, storage_state=storage_state, **options
        )
        try:
            yield context, page
        finally:
            await self.close_session(context, page)
