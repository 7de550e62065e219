"""Tests for PlaywrightManager and BrowserSessionManager.

Playwright itself is patched out; the tests cover launch reuse, context
options and the shutdown order.
"""

import pytest
from unittest.mock import AsyncMock, patch
from playwright.async_api import Browser, BrowserContext, Page

from boardguru_e2e.browser.browser_manager import BrowserSessionManager
from boardguru_e2e.browser.playwright_integration import PlaywrightManager
from boardguru_e2e.config.harness_config import HarnessConfig
from boardguru_e2e.models.harness_models import BrowserType, Viewport


@pytest.fixture
def config():
    return HarnessConfig(
        base_url="http://localhost:3000",
        headless=True,
        action_timeout_ms=10000,
        navigation_timeout_ms=30000,
    )


@pytest.fixture
def manager(config):
    """Create a PlaywrightManager instance for testing."""
    return PlaywrightManager(config)


@pytest.fixture
def mock_playwright():
    """Create a mock Playwright instance."""
    playwright = AsyncMock()
    playwright.chromium = AsyncMock()
    playwright.firefox = AsyncMock()
    playwright.webkit = AsyncMock()
    return playwright


@pytest.fixture
def mock_page():
    """Create a mock Page instance."""
    page = AsyncMock(spec=Page)
    page.close = AsyncMock()
    return page


@pytest.fixture
def mock_context(mock_page):
    """Create a mock BrowserContext instance."""
    context = AsyncMock(spec=BrowserContext)
    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock()
    return context


@pytest.fixture
def mock_browser(mock_context):
    """Create a mock Browser instance."""
    browser = AsyncMock(spec=Browser)
    browser.new_context = AsyncMock(return_value=mock_context)
    browser.is_connected.return_value = True
    browser.close = AsyncMock()
    return browser


@pytest.fixture
def started_manager(manager, mock_playwright, mock_browser):
    """A manager whose Playwright engine is already started."""
    manager.playwright = mock_playwright
    manager._started = True
    mock_playwright.chromium.launch = AsyncMock(return_value=mock_browser)
    return manager


class TestStart:
    """Tests for starting the Playwright engine."""

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, manager):
        with patch("boardguru_e2e.browser.playwright_integration.async_playwright") as mock_async_pw:
            mock_async_pw.return_value.start = AsyncMock(return_value=AsyncMock())

            await manager.start()
            await manager.start()

            mock_async_pw.return_value.start.assert_called_once()
            assert manager.started is True

    @pytest.mark.asyncio
    async def test_start_failure(self, manager):
        with patch("boardguru_e2e.browser.playwright_integration.async_playwright") as mock_async_pw:
            mock_async_pw.return_value.start = AsyncMock(side_effect=Exception("no driver"))

            with pytest.raises(RuntimeError, match="Playwright start failed"):
                await manager.start()

            assert manager.started is False


class TestLaunchBrowser:
    """Tests for browser launch and reuse."""

    @pytest.mark.asyncio
    async def test_launch_uses_configured_engine(self, started_manager, mock_playwright, mock_browser):
        browser = await started_manager.launch_browser()

        assert browser is mock_browser
        mock_playwright.chromium.launch.assert_called_once_with(headless=True)
        assert "chromium" in started_manager.browsers

    @pytest.mark.asyncio
    async def test_running_browser_is_reused(self, started_manager, mock_playwright):
        await started_manager.launch_browser()
        await started_manager.launch_browser()

        mock_playwright.chromium.launch.assert_called_once()

    @pytest.mark.asyncio
    async def test_disconnected_browser_is_relaunched(self, started_manager, mock_playwright, mock_browser):
        await started_manager.launch_browser()
        mock_browser.is_connected.return_value = False

        await started_manager.launch_browser()

        assert mock_playwright.chromium.launch.call_count == 2

    @pytest.mark.asyncio
    async def test_other_engine(self, started_manager, mock_playwright, mock_browser):
        mock_playwright.firefox.launch = AsyncMock(return_value=mock_browser)

        await started_manager.launch_browser(BrowserType.FIREFOX, headless=False)

        mock_playwright.firefox.launch.assert_called_once_with(headless=False)

    @pytest.mark.asyncio
    async def test_launch_failure(self, started_manager, mock_playwright):
        mock_playwright.chromium.launch = AsyncMock(side_effect=Exception("Executable missing"))

        with pytest.raises(RuntimeError, match="Browser launch failed"):
            await started_manager.launch_browser()


class TestContexts:
    """Tests for context and page creation."""

    @pytest.mark.asyncio
    async def test_new_context_options(self, started_manager, mock_browser, mock_context):
        context = await started_manager.new_context(Viewport.mobile(), storage_state="state.json")

        assert context is mock_context
        kwargs = mock_browser.new_context.call_args.kwargs
        assert kwargs["viewport"] == {"width": 375, "height": 667}
        assert kwargs["is_mobile"] is True
        assert kwargs["base_url"] == "http://localhost:3000"
        assert kwargs["storage_state"] == "state.json"
        mock_context.set_default_timeout.assert_called_once_with(10000)
        mock_context.set_default_navigation_timeout.assert_called_once_with(30000)
        assert started_manager.contexts == [mock_context]

    @pytest.mark.asyncio
    async def test_new_context_default_viewport(self, started_manager, mock_browser):
        await started_manager.new_context()

        kwargs = mock_browser.new_context.call_args.kwargs
        assert kwargs["viewport"] == {"width": 1280, "height": 720}
        assert "storage_state" not in kwargs

    @pytest.mark.asyncio
    async def test_new_page_applies_timeouts(self, started_manager, mock_context, mock_page):
        page = await started_manager.new_page(mock_context)

        assert page is mock_page
        mock_page.set_default_timeout.assert_called_once_with(10000)

    @pytest.mark.asyncio
    async def test_close_context(self, started_manager, mock_context):
        await started_manager.new_context()

        await started_manager.close_context(mock_context)

        mock_context.close.assert_called_once()
        assert started_manager.contexts == []


class TestStop:
    """Tests for shutdown."""

    @pytest.mark.asyncio
    async def test_stop_closes_everything(self, started_manager, mock_playwright, mock_browser, mock_context):
        await started_manager.new_context()

        await started_manager.stop()

        mock_context.close.assert_called_once()
        mock_browser.close.assert_called_once()
        mock_playwright.stop.assert_called_once()
        assert started_manager.browsers == {}
        assert started_manager.started is False

    @pytest.mark.asyncio
    async def test_stop_continues_after_errors(self, started_manager, mock_playwright, mock_browser, mock_context):
        await started_manager.new_context()
        mock_context.close = AsyncMock(side_effect=Exception("already closed"))

        await started_manager.stop()

        mock_browser.close.assert_called_once()
        mock_playwright.stop.assert_called_once()


class TestBrowserSessionManager:
    """Tests for per-scenario sessions."""

    @pytest.mark.asyncio
    async def test_session_opens_and_releases(self, started_manager, mock_context, mock_page):
        sessions = BrowserSessionManager(started_manager)

        async with sessions.session() as (context, page):
            assert context is mock_context
            assert page is mock_page
            assert sessions.active_sessions == 1

        mock_page.close.assert_called_once()
        mock_context.close.assert_called_once()
        assert sessions.active_sessions == 0

    @pytest.mark.asyncio
    async def test_session_released_on_error(self, started_manager, mock_context):
        sessions = BrowserSessionManager(started_manager)

        with pytest.raises(ValueError):
            async with sessions.session():
                raise ValueError("scenario failed")

        mock_context.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_page_failure_closes_context(self, started_manager, mock_context):
        mock_context.new_page = AsyncMock(side_effect=Exception("crashed"))
        sessions = BrowserSessionManager(started_manager)

        with pytest.raises(RuntimeError, match="Page creation failed"):
            await sessions.open_session()

        mock_context.close.assert_called_once()
        assert sessions.active_sessions == 0

    @pytest.mark.asyncio
    async def test_close_errors_are_not_raised(self, started_manager, mock_context, mock_page):
        sessions = BrowserSessionManager(started_manager)
        context, page = await sessions.open_session()
        mock_page.close = AsyncMock(side_effect=Exception("Target closed"))
        mock_context.close = AsyncMock(side_effect=Exception("Target closed"))

        await sessions.close_session(context, page)

        assert sessions.active_sessions == 0
