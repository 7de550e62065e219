"""Organizations screen and its four-step creation wizard.

Wizard steps, in order: basic information, member invitations, features,
review. ``proceed_to_next_step`` on the review step and
``go_back_to_previous_step`` on the first step leave the wizard where it is
and return a skipped ActionResult.
"""

import logging
import time
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models.harness_models import ActionResult, ActionStatus, ActionStep
from .base import ScreenModel, Step, testid
from .capabilities import FilterPanel, Navigator, SearchBox

logger = logging.getLogger(__name__)

WIZARD_STEPS: Tuple[str, ...] = (
    "basic-info-step",
    "members-step",
    "features-step",
    "review-step",
)

MEMBER_ROLES = ("owner", "admin", "director", "member", "viewer")

DEFAULT_FEATURES = ("vault-management", "board-chat", "document-annotations")


class OrganizationsScreen(ScreenModel):
    NAME = "organizations"
    PATH = "/dashboard/organizations"
    LOCATORS = {
        "organizations-page": testid("organizations-page"),
        "organization-item": testid("organization-item"),
        "organizations-empty-state": testid("organizations-empty-state"),
        "organizations-search": testid("organizations-search"),
        "organizations-filter-status": testid("organizations-filter-status"),
        "organizations-sort-dropdown": testid("organizations-sort-dropdown"),
        "create-organization-button": testid("create-organization-button"),
        # Wizard
        "create-org-wizard": testid("create-org-wizard"),
        "wizard-progress": testid("wizard-progress"),
        "wizard-next-button": testid("wizard-next-button"),
        "wizard-back-button": testid("wizard-back-button"),
        "basic-info-step": testid("basic-info-step"),
        "members-step": testid("members-step"),
        "features-step": testid("features-step"),
        "review-step": testid("review-step"),
        # Step 1
        "org-name-input": testid("org-name-input"),
        "org-slug-input": testid("org-slug-input"),
        "org-description-input": testid("org-description-input"),
        "slug-error": testid("slug-error"),
        # Step 2
        "member-email-input": testid("member-email-input"),
        "member-role-select": testid("member-role-select"),
        "add-member-button": testid("add-member-button"),
        "invite-item": testid("invite-item"),
        "remove-invite-button": testid("remove-invite-button"),
        # Step 4
        "review-org-name": testid("review-org-name"),
        "create-org-submit-button": testid("create-org-submit-button"),
    }
    ACTIONS = {
        "start_create_organization": (
            ActionStep.click("create-organization-button"),
            ActionStep.wait_visible("create-org-wizard"),
            ActionStep.wait_visible("basic-info-step"),
        ),
        "add_member_invitation": (
            ActionStep.fill("member-email-input", "{email}"),
            ActionStep.select("member-role-select", "{role}"),
            ActionStep.click("add-member-button"),
        ),
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = Navigator(self, self.PATH, ready="organizations-page")
        self.search_box = SearchBox(self, "organizations-search")
        self.filters = FilterPanel(
            self,
            {"status": "organizations-filter-status", "sort": "organizations-sort-dropdown"},
        )

    async def goto(self) -> None:
        await self.navigator.goto()

    def is_current(self) -> bool:
        return self.navigator.is_current()

    async def search(self, query: str) -> ActionResult:
        return await self.search_box.search(query)

    async def clear_search(self) -> ActionResult:
        return await self.search_box.clear_search()

    async def apply_filter(self, name: str, value: str) -> ActionResult:
        return await self.filters.apply_filter(name, value)

    async def clear_filters(self) -> ActionResult:
        return await self.filters.clear_filters()

    def organization_item(self, name: str):
        return self.locate("organization-item").filter(has_text=name)

    def invite_item(self, email: str):
        return self.locate("invite-item").filter(has_text=email)

    def feature_toggle(self, feature: str):
        return self.locate("features-step").locator(testid(f"feature-{feature}"))

    async def expect_organizations_displayed(self, timeout_ms: Optional[int] = None) -> None:
        await self.expect.expect_visible(self.locate("organization-item"), timeout_ms)

    # Wizard -----------------------------------------------------------------

    async def current_wizard_step(self, timeout_ms: Optional[int] = None) -> int:
        """Index of the visible wizard step in WIZARD_STEPS."""
        return await self.expect.expect_any_visible(
            *(self.locate(name) for name in WIZARD_STEPS), timeout_ms=timeout_ms
        )

    async def start_create_organization(self) -> ActionResult:
        return await self.perform("start_create_organization")

    async def fill_basic_information(
        self,
        name: str,
        slug: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ActionResult:
        """Fill step 1. The slug is left to the app's auto-generation when omitted."""
        steps: List[Step] = [
            ActionStep.wait_visible("basic-info-step"),
            ActionStep.fill("org-name-input", name),
        ]
        if slug is not None:
            steps += [ActionStep.clear("org-slug-input"), ActionStep.fill("org-slug-input", slug)]
        if description is not None:
            steps.append(ActionStep.fill("org-description-input", description))
        return await self.run_steps("fill_basic_information", steps)

    async def proceed_to_next_step(self) -> ActionResult:
        current = await self.current_wizard_step()
        if current == len(WIZARD_STEPS) - 1:
            return self.skipped("proceed_to_next_step", "already on the last wizard step")

        return await self.run_steps(
            "proceed_to_next_step",
            (
                ActionStep.click("wizard-next-button"),
                ActionStep.wait_visible(WIZARD_STEPS[current + 1]),
            ),
        )

    async def go_back_to_previous_step(self) -> ActionResult:
        current = await self.current_wizard_step()
        if current == 0:
            return self.skipped("go_back_to_previous_step", "already on the first wizard step")

        return await self.run_steps(
            "go_back_to_previous_step",
            (
                ActionStep.click("wizard-back-button"),
                ActionStep.wait_visible(WIZARD_STEPS[current - 1]),
            ),
        )

    async def add_member_invitation(self, email: str, role: str = "member") -> ActionResult:
        if role not in MEMBER_ROLES:
            raise ValueError(f"Unknown member role '{role}', expected one of {MEMBER_ROLES}")

        result = await self.perform("add_member_invitation", email=email, role=role)
        await self.expect.expect_visible(self.invite_item(email))
        return result

    async def remove_pending_invite(self, email: str) -> ActionResult:
        item = self.invite_item(email)

        async def click_remove() -> None:
            await item.locator(self._locators["remove-invite-button"]).click(
                timeout=self.config.action_timeout_ms
            )

        async def wait_removed() -> None:
            await self.expect.expect_hidden(item)

        return await self.run_steps("remove_pending_invite", (click_remove, wait_removed))

    async def configure_features(self, features: Iterable[str]) -> ActionResult:
        """Enable the given feature toggles on step 3."""
        steps: List[Step] = [ActionStep.wait_visible("features-step")]
        for feature in features:
            toggle = self.feature_toggle(feature)

            async def enable(toggle=toggle) -> None:
                await toggle.check(timeout=self.config.action_timeout_ms)

            steps.append(enable)
        return await self.run_steps("configure_features", steps)

    async def review_and_submit(self) -> ActionResult:
        async def wait_closed() -> None:
            await self.expect.expect_hidden(
                self.locate("create-org-wizard"), self.config.navigation_timeout_ms
            )

        return await self.run_steps(
            "review_and_submit",
            (
                ActionStep.wait_visible("review-step"),
                ActionStep.click("create-org-submit-button"),
                wait_closed,
            ),
        )

    async def create_organization_complete(
        self,
        name: str,
        members: Sequence[Tuple[str, str]] = (),
        features: Sequence[str] = DEFAULT_FEATURES,
        slug: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ActionResult:
        """Run the whole wizard.

        Args:
            name: Organization name
            members: (email, role) pairs to invite
            features: Feature toggles to enable
            slug: Explicit slug, auto-generated by the app when omitted
            description: Organization description

        Returns:
            Result whose steps_completed counts the wizard actions performed
        """
        started = time.perf_counter()
        with self.guard.hold("create_organization_complete"):
            results = [
                await self.start_create_organization(),
                await self.fill_basic_information(name, slug, description),
                await self.proceed_to_next_step(),
            ]
            for email, role in members:
                results.append(await self.add_member_invitation(email, role))
            results.append(await self.proceed_to_next_step())
            results.append(await self.configure_features(features))
            results.append(await self.proceed_to_next_step())
            results.append(await self.review_and_submit())

        logger.info(f"Created organization '{name}' through the wizard")
        return ActionResult(
            action="create_organization_complete",
            status=ActionStatus.PASSED,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            steps_completed=len(results),
        )
