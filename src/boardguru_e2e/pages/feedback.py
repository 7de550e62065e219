"""Feedback submission screen."""

import logging
import re
from typing import Optional

from ..models.harness_models import ActionResult, ActionStep
from .base import ScreenModel, testid
from .capabilities import Navigator

logger = logging.getLogger(__name__)

FEEDBACK_TYPES = ("bug", "feature", "improvement", "other")

REFERENCE_ID_PATTERN = re.compile(r"FB-[A-Z0-9]+")

FEEDBACK_API_PATTERN = "**/api/feedback**"


class FeedbackScreen(ScreenModel):
    NAME = "feedback"
    PATH = "/dashboard/feedback"
    LOCATORS = {
        "feedback-page": testid("feedback-page"),
        "feedback-form": testid("feedback-form"),
        "feedback-type-select": testid("feedback-type-select"),
        "feedback-title-input": testid("feedback-title-input"),
        "feedback-description-input": testid("feedback-description-input"),
        "screenshot-button": testid("screenshot-button"),
        "screenshot-preview": testid("screenshot-preview"),
        "remove-screenshot-button": testid("remove-screenshot-button"),
        "feedback-submit-button": testid("feedback-submit-button"),
        "feedback-success-message": testid("feedback-success-message"),
        "feedback-reference-id": testid("feedback-reference-id"),
        "feedback-error-message": testid("feedback-error-message"),
    }
    ACTIONS = {
        "fill_form": (
            ActionStep.select("feedback-type-select", "{type}"),
            ActionStep.fill("feedback-title-input", "{title}"),
            ActionStep.fill("feedback-description-input", "{description}"),
        ),
        "capture_screenshot": (
            ActionStep.click("screenshot-button"),
            ActionStep.wait_visible("screenshot-preview"),
        ),
        "remove_screenshot": (
            ActionStep.click("remove-screenshot-button"),
            ActionStep.wait_hidden("screenshot-preview"),
        ),
        "submit": (ActionStep.click("feedback-submit-button"),),
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = Navigator(self, self.PATH, ready="feedback-form")

    async def goto(self) -> None:
        await self.navigator.goto()

    def is_current(self) -> bool:
        return self.navigator.is_current()

    async def fill_form(self, title: str, description: str, type: str = "bug") -> ActionResult:
        if type not in FEEDBACK_TYPES:
            raise ValueError(f"Unknown feedback type '{type}', expected one of {FEEDBACK_TYPES}")
        return await self.perform("fill_form", title=title, description=description, type=type)

    async def capture_screenshot(self) -> ActionResult:
        return await self.perform("capture_screenshot")

    async def submit(self, timeout_ms: Optional[int] = None) -> ActionResult:
        """Submit the form and wait until the outcome is rendered.

        Waits for either the success or the error message instead of a fixed
        delay; which one appeared is left to the caller to assert.
        """
        result = await self.perform("submit")
        await self.expect.expect_any_visible(
            self.locate("feedback-success-message"),
            self.locate("feedback-error-message"),
            timeout_ms=timeout_ms,
        )
        return result

    async def reference_id(self, timeout_ms: Optional[int] = None) -> str:
        """Reference id shown after a successful submission, e.g. FB-1A2B3C."""
        text = await self.expect.expect_text(
            self.locate("feedback-reference-id"), REFERENCE_ID_PATTERN, timeout_ms
        )
        match = REFERENCE_ID_PATTERN.search(text)
        logger.info(f"Feedback submitted with reference {match.group(0)}")
        return match.group(0)

    async def expect_submitted(self, timeout_ms: Optional[int] = None) -> str:
        """Wait for the success message and the form reset.

        Returns:
            The reference id
        """
        await self.expect.expect_visible(self.locate("feedback-success-message"), timeout_ms)
        reference = await self.reference_id(timeout_ms)
        await self.expect_form_reset(timeout_ms)
        return reference

    async def expect_form_reset(self, timeout_ms: Optional[int] = None) -> None:
        await self.expect.expect_value(self.locate("feedback-title-input"), "", timeout_ms)
        await self.expect.expect_value(self.locate("feedback-description-input"), "", timeout_ms)

    async def expect_submission_error(self, timeout_ms: Optional[int] = None) -> None:
        await self.expect.expect_visible(self.locate("feedback-error-message"), timeout_ms)
