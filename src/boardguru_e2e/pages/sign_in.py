"""Sign-in screen."""

from typing import Optional

from ..models.harness_models import ActionResult, ActionStep
from .base import ScreenModel, testid
from .capabilities import Navigator


class SignInScreen(ScreenModel):
    NAME = "sign_in"
    LOCATORS = {
        "signin-form": testid("signin-form"),
        "email-input": testid("email-input"),
        "password-input": testid("password-input"),
        "signin-button": testid("signin-button"),
        "auth-error": testid("auth-error"),
    }
    ACTIONS = {
        "sign_in": (
            ActionStep.fill("email-input", "{email}"),
            ActionStep.fill("password-input", "{password}"),
            ActionStep.click("signin-button"),
        ),
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = Navigator(self, self.config.sign_in_path, ready="signin-form")

    async def goto(self) -> None:
        await self.navigator.goto()

    def is_current(self) -> bool:
        return self.navigator.is_current()

    async def sign_in(
        self, email: str, password: str, timeout_ms: Optional[int] = None
    ) -> ActionResult:
        """Submit credentials and wait until the app leaves the sign-in page.

        Raises:
            AssertionTimeout: If the browser is still on the sign-in page
        """
        result = await self.perform("sign_in", email=email, password=password)

        async def probe() -> str:
            return self.page.url

        await self.expect.poll_until(
            probe,
            lambda url: self.config.sign_in_path not in url,
            "sign-in to redirect away from the sign-in page",
            timeout_ms or self.config.navigation_timeout_ms,
        )
        return result
