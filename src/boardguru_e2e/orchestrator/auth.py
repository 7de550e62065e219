"""Session establishment for scenarios.

PRE_AUTHENTICATED scenarios start from a saved storage state when one
exists; otherwise they log in through the application's auth API with the
browser context's request client (sharing its cookie jar) and save the
resulting state for later scenarios. SIGN_IN scenarios drive the sign-in
screen. ANONYMOUS scenarios skip authentication.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from playwright.async_api import BrowserContext

from ..config.harness_config import HarnessConfig
from ..exceptions import AuthenticationFailed
from ..models.harness_models import AuthMode
from ..pages.base import ScreenRegistry
from ..pages.sign_in import SignInScreen

logger = logging.getLogger(__name__)


class Authenticator:
    """Establish the session a scenario asks for."""

    def __init__(self, config: Optional[HarnessConfig] = None):
        self.config = config or HarnessConfig()

    def storage_state_for(self, mode: AuthMode) -> Optional[str]:
        """Saved storage state to create the context with, if usable."""
        path = self.config.storage_state_path
        if mode == AuthMode.PRE_AUTHENTICATED and path and Path(path).is_file():
            return path
        return None

    def _credentials(self) -> Tuple[str, str]:
        if not self.config.auth_email or not self.config.auth_password:
            raise AuthenticationFailed(
                "E2E_AUTH_EMAIL and E2E_AUTH_PASSWORD must be set to authenticate"
            )
        return self.config.auth_email, self.config.auth_password

    async def authenticate(
        self,
        mode: AuthMode,
        context: BrowserContext,
        screens: ScreenRegistry,
        used_storage_state: bool = False,
    ) -> None:
        """Authenticate the session.

        Args:
            mode: Requested authentication mode
            context: Scenario browser context
            screens: Screen registry of the scenario
            used_storage_state: The context was created from a saved state

        Raises:
            AuthenticationFailed: If the session could not be established
        """
        if mode == AuthMode.ANONYMOUS:
            logger.debug("Anonymous scenario, skipping authentication")
            return

        if mode == AuthMode.PRE_AUTHENTICATED:
            if used_storage_state:
                logger.debug("Using saved storage state")
                return
            await self.api_login(context)
            return

        await self.sign_in(screens.get(SignInScreen))

    async def api_login(self, context: BrowserContext) -> None:
        """Log in through the auth API, bypassing the UI."""
        email, password = self._credentials()
        url = self.config.resolve_url(self.config.auth_api_path)

        try:
            response = await context.request.post(
                url, data={"email": email, "password": password}
            )
        except Exception as e:
            raise AuthenticationFailed(f"Login request to {url} failed: {e}") from e

        if not response.ok:
            raise AuthenticationFailed(
                f"Login request to {url} returned HTTP {response.status}"
            )
        logger.info(f"Authenticated {email} through {self.config.auth_api_path}")

        if self.config.storage_state_path:
            Path(self.config.storage_state_path).parent.mkdir(parents=True, exist_ok=True)
            await context.storage_state(path=self.config.storage_state_path)
            logger.debug(f"Saved storage state to {self.config.storage_state_path}")

    async def sign_in(self, screen: SignInScreen) -> None:
        """Sign in through the UI."""
        email, password = self._credentials()
        try:
            await screen.goto()
            await screen.sign_in(email, password)
        except Exception as e:
            raise AuthenticationFailed(f"Sign-in through the UI failed: {e}") from e
        logger.info(f"Signed in {email} through the sign-in page")
