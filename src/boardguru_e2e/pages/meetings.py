"""Meetings screen: search, filters and grid/list/calendar views."""

from typing import Optional

from ..models.harness_models import ActionResult, ActionStep
from .base import ScreenModel, testid
from .capabilities import FilterPanel, Navigator, SearchBox

VIEWS = ("grid", "list", "calendar")


class MeetingsScreen(ScreenModel):
    NAME = "meetings"
    PATH = "/dashboard/meetings"
    LOCATORS = {
        "meetings-page": testid("meetings-page"),
        "meetings-grid": testid("meetings-grid"),
        "meetings-list": testid("meetings-list"),
        "meetings-calendar": testid("meetings-calendar"),
        "meeting-item": testid("meeting-item"),
        "meetings-empty-state": testid("meetings-empty-state"),
        "meetings-view-grid": testid("meetings-view-grid"),
        "meetings-view-list": testid("meetings-view-list"),
        "meetings-view-calendar": testid("meetings-view-calendar"),
        "meetings-search": testid("meetings-search"),
        "meetings-filter-status": testid("meetings-filter-status"),
        "meetings-filter-type": testid("meetings-filter-type"),
        "meetings-filter-date-range": testid("meetings-filter-date-range"),
        "meetings-sort-dropdown": testid("meetings-sort-dropdown"),
        "create-meeting-button": testid("create-meeting-button"),
    }
    ACTIONS = {
        f"switch_to_{view}_view": (
            ActionStep.click(f"meetings-view-{view}"),
            ActionStep.wait_visible(f"meetings-{view}"),
        )
        for view in VIEWS
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = Navigator(self, self.PATH, ready="meetings-page")
        self.search_box = SearchBox(self, "meetings-search")
        self.filters = FilterPanel(
            self,
            {
                "status": "meetings-filter-status",
                "type": "meetings-filter-type",
                "date_range": "meetings-filter-date-range",
            },
        )

    async def goto(self) -> None:
        await self.navigator.goto()

    def is_current(self) -> bool:
        return self.navigator.is_current()

    async def search(self, query: str) -> ActionResult:
        result = await self.search_box.search(query)
        await self.expect.expect_hidden(self.locate("loading-spinner"))
        return result

    async def clear_search(self) -> ActionResult:
        return await self.search_box.clear_search()

    async def apply_filter(self, name: str, value: str) -> ActionResult:
        result = await self.filters.apply_filter(name, value)
        await self.expect.expect_hidden(self.locate("loading-spinner"))
        return result

    async def clear_filters(self) -> ActionResult:
        return await self.filters.clear_filters()

    async def switch_view(self, view: str) -> ActionResult:
        if view not in VIEWS:
            raise ValueError(f"Unknown meetings view '{view}', expected one of {VIEWS}")
        return await self.perform(f"switch_to_{view}_view")

    async def meeting_count(self) -> int:
        return await self.locate("meeting-item").count()

    async def expect_meetings_or_empty_state(self, timeout_ms: Optional[int] = None) -> bool:
        """Wait for results or the empty state.

        Returns:
            True if meetings are listed
        """
        index = await self.expect.expect_any_visible(
            self.locate("meeting-item"),
            self.locate("meetings-empty-state"),
            timeout_ms=timeout_ms,
        )
        return index == 0
