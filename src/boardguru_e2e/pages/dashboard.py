"""Dashboard landing screen."""

import logging

from ..models.harness_models import ActionResult, ActionStep
from .base import ScreenModel, testid
from .capabilities import Navigator

logger = logging.getLogger(__name__)


class DashboardScreen(ScreenModel):
    NAME = "dashboard"
    PATH = "/dashboard"
    LOCATORS = {
        "dashboard-page": testid("dashboard-page"),
        "welcome-message": testid("welcome-message"),
        "quick-actions": testid("quick-actions"),
        "nav-organizations": testid("nav-organizations"),
        "nav-meetings": testid("nav-meetings"),
        "nav-feedback": testid("nav-feedback"),
    }
    ACTIONS = {
        "open_organizations": (ActionStep.click("nav-organizations"),),
        "open_meetings": (ActionStep.click("nav-meetings"),),
        "open_feedback": (ActionStep.click("nav-feedback"),),
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = Navigator(self, self.PATH, ready="dashboard-page")

    async def goto(self) -> None:
        await self.navigator.goto()

    def is_current(self) -> bool:
        return self.navigator.is_current()

    async def open_section(self, section: str) -> ActionResult:
        """Open organizations, meetings or feedback through the navigation.

        On narrow viewports the mobile menu is opened first.
        """
        action = f"open_{section}"
        if action not in self.ACTIONS:
            raise ValueError(f"Unknown dashboard section: {section}")

        if not await self.expect.probe_visible(self.locate("sidebar")):
            logger.debug("Sidebar hidden, opening mobile menu")
            await self.run_steps(
                "open_mobile_menu",
                (ActionStep.click("mobile-menu-button"), ActionStep.wait_visible("sidebar")),
            )
        return await self.perform(action)
