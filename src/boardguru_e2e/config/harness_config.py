"""Harness configuration with environment variable loading."""

import json
import os
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

from ..models.harness_models import BrowserType, Viewport

# Load environment variables from .env file
load_dotenv()

DEFAULT_PERFORMANCE_BUDGETS: Dict[str, int] = {
    "dashboard": 2000,
    "organizations": 2000,
    "organization_creation": 5000,
    "feedback_submission": 3000,
}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def _env_budgets() -> Dict[str, int]:
    budgets = dict(DEFAULT_PERFORMANCE_BUDGETS)
    raw = os.getenv("E2E_PERFORMANCE_BUDGETS")
    if raw:
        budgets.update({k: int(v) for k, v in json.loads(raw).items()})
    return budgets


class HarnessConfig(BaseModel):
    """Configuration surface of the E2E harness."""

    # Values read from E2E_* variables go through the same validators
    model_config = {"validate_default": True}

    # Application
    base_url: str = Field(
        default_factory=lambda: os.getenv("E2E_BASE_URL", "http://localhost:3000"),
        description="Base URL of the application under test",
    )

    # Browser
    browser: BrowserType = Field(
        default_factory=lambda: BrowserType(os.getenv("E2E_BROWSER", "chromium")),
        description="Browser engine to launch",
    )
    headless: bool = Field(
        default_factory=lambda: _env_bool("E2E_HEADLESS", "true"),
        description="Run the browser headless",
    )
    viewport_width: int = Field(
        default_factory=lambda: int(os.getenv("E2E_VIEWPORT_WIDTH", "1280")),
        description="Default viewport width",
    )
    viewport_height: int = Field(
        default_factory=lambda: int(os.getenv("E2E_VIEWPORT_HEIGHT", "720")),
        description="Default viewport height",
    )

    # Timeouts (milliseconds)
    default_timeout_ms: int = Field(
        default_factory=lambda: int(os.getenv("E2E_DEFAULT_TIMEOUT_MS", "5000")),
        description="Default expectation timeout",
    )
    action_timeout_ms: int = Field(
        default_factory=lambda: int(os.getenv("E2E_ACTION_TIMEOUT_MS", "10000")),
        description="Timeout of each primitive interaction",
    )
    navigation_timeout_ms: int = Field(
        default_factory=lambda: int(os.getenv("E2E_NAVIGATION_TIMEOUT_MS", "30000")),
        description="Navigation timeout",
    )
    poll_interval_ms: int = Field(
        default_factory=lambda: int(os.getenv("E2E_POLL_INTERVAL_MS", "100")),
        description="Interval between expectation polls",
    )

    # Performance budgets
    default_budget_ms: int = Field(
        default_factory=lambda: int(os.getenv("E2E_DEFAULT_BUDGET_MS", "3000")),
        description="Budget for operations without a specific budget",
    )
    performance_budgets: Dict[str, int] = Field(
        default_factory=_env_budgets,
        description="Budgets per operation name (ms)",
    )

    # Accessibility
    accessibility_tags: List[str] = Field(
        default_factory=lambda: _env_list("E2E_A11Y_TAGS", "wcag2a,wcag2aa"),
        description="Default axe-core rule tags",
    )
    axe_script_url: str = Field(
        default_factory=lambda: os.getenv(
            "E2E_AXE_SCRIPT_URL",
            "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.7.2/axe.min.js",
        ),
        description="Where axe-core is loaded from",
    )

    # Artifacts
    artifacts_dir: str = Field(
        default_factory=lambda: os.getenv("E2E_ARTIFACTS_DIR", "test-results/artifacts"),
        description="Directory for failure artifacts",
    )
    network_log_size: int = Field(
        default_factory=lambda: int(os.getenv("E2E_NETWORK_LOG_SIZE", "200")),
        description="Network events kept per scenario",
    )

    # Authentication
    storage_state_path: Optional[str] = Field(
        default_factory=lambda: os.getenv("E2E_STORAGE_STATE"),
        description="Saved authenticated storage state",
    )
    auth_email: Optional[str] = Field(
        default_factory=lambda: os.getenv("E2E_AUTH_EMAIL"),
        description="Account used for pre-authentication and sign-in",
    )
    auth_password: Optional[str] = Field(
        default_factory=lambda: os.getenv("E2E_AUTH_PASSWORD"),
        description="Password of the test account",
    )
    auth_api_path: str = Field(
        default_factory=lambda: os.getenv("E2E_AUTH_API_PATH", "/api/auth/login"),
        description="Login endpoint used to bypass the UI flow",
    )
    sign_in_path: str = Field(
        default_factory=lambda: os.getenv("E2E_SIGN_IN_PATH", "/auth/signin"),
        description="Sign-in page path",
    )

    @field_validator(
        "default_timeout_ms",
        "action_timeout_ms",
        "navigation_timeout_ms",
        "poll_interval_ms",
        "default_budget_ms",
        "network_log_size",
    )
    @classmethod
    def _must_be_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL: {value}")
        return value.rstrip("/")

    @property
    def viewport(self) -> Viewport:
        return Viewport(width=self.viewport_width, height=self.viewport_height)

    def resolve_url(self, path: str) -> str:
        """Resolve an application path against base_url."""
        if path.startswith(("http://", "https://")):
            return path
        return urljoin(self.base_url + "/", path.lstrip("/"))

    def budget_for(self, operation_name: str) -> int:
        """Return the budget for an operation, or the default budget."""
        return self.performance_budgets.get(operation_name, self.default_budget_ms)


def load_config(**overrides: Any) -> HarnessConfig:
    """Build a HarnessConfig from the environment with explicit overrides."""
    return HarnessConfig(**overrides)
