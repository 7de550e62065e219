"""Reusable screen capabilities.

Screens gain navigation, search and filtering by holding one of the
components below as an attribute instead of inheriting from a shared base.
The Protocols describe what scenario code may rely on.
"""

import logging
from typing import Dict, Optional, Protocol, runtime_checkable

from ..models.harness_models import ActionResult, ActionStep
from .base import ScreenModel

logger = logging.getLogger(__name__)


@runtime_checkable
class Navigable(Protocol):
    async def goto(self) -> None: ...

    def is_current(self) -> bool: ...


@runtime_checkable
class Searchable(Protocol):
    async def search(self, query: str) -> ActionResult: ...

    async def clear_search(self) -> ActionResult: ...


@runtime_checkable
class Filterable(Protocol):
    async def apply_filter(self, name: str, value: str) -> ActionResult: ...

    async def clear_filters(self) -> ActionResult: ...


class Navigator:
    """Navigate to a screen's path and wait until it is ready."""

    def __init__(self, screen: ScreenModel, path: str, ready: Optional[str] = None):
        """
        Args:
            screen: Screen that owns the navigator
            path: Application path, resolved against base_url
            ready: Semantic element that is visible once the screen rendered
        """
        self.screen = screen
        self.path = path
        self.ready = ready

    async def goto(self) -> None:
        url = self.screen.config.resolve_url(self.path)
        logger.debug(f"Navigating to {url}")
        await self.screen.page.goto(url, wait_until="domcontentloaded")
        if self.ready:
            await self.screen.expect.expect_visible(self.screen.locate(self.ready))

    def is_current(self) -> bool:
        current = self.screen.page.url.split("?", 1)[0].rstrip("/")
        return current.endswith(self.path.rstrip("/"))


class SearchBox:
    """Type a query into a search input and submit it."""

    def __init__(self, screen: ScreenModel, input_name: str, submit_key: str = "Enter"):
        self.screen = screen
        self.input_name = input_name
        self.submit_key = submit_key

    async def search(self, query: str) -> ActionResult:
        return await self.screen.run_steps(
            "search",
            (
                ActionStep.fill(self.input_name, "{query}"),
                ActionStep.press(self.input_name, self.submit_key),
            ),
            query=query,
        )

    async def clear_search(self) -> ActionResult:
        return await self.screen.run_steps(
            "clear_search",
            (
                ActionStep.clear(self.input_name),
                ActionStep.press(self.input_name, self.submit_key),
            ),
        )


class FilterPanel:
    """Select values in named filter dropdowns."""

    def __init__(
        self,
        screen: ScreenModel,
        filters: Dict[str, str],
        reset_value: str = "all",
    ):
        """
        Args:
            screen: Screen that owns the panel
            filters: filter name -> semantic name of its select element
            reset_value: Option value meaning "no filter"
        """
        self.screen = screen
        self.filters = filters
        self.reset_value = reset_value

    async def apply_filter(self, name: str, value: str) -> ActionResult:
        try:
            target = self.filters[name]
        except KeyError:
            raise ValueError(
                f"Unknown filter '{name}' on {self.screen.NAME}; "
                f"expected one of {sorted(self.filters)}"
            ) from None
        return await self.screen.run_steps(
            f"filter_by_{name}", (ActionStep.select(target, value),)
        )

    async def clear_filters(self) -> ActionResult:
        return await self.screen.run_steps(
            "clear_filters",
            tuple(ActionStep.select(target, self.reset_value) for target in self.filters.values()),
        )
