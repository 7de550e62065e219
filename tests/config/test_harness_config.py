"""Tests for HarnessConfig environment loading and validation."""

import pytest
from pydantic import ValidationError

from boardguru_e2e.config.harness_config import (
    DEFAULT_PERFORMANCE_BUDGETS,
    HarnessConfig,
    load_config,
)
from boardguru_e2e.models.harness_models import BrowserType


@pytest.fixture
def clean_env(monkeypatch):
    """Remove E2E_* variables that could leak in from the shell or .env."""
    for name in (
        "E2E_BASE_URL",
        "E2E_BROWSER",
        "E2E_HEADLESS",
        "E2E_VIEWPORT_WIDTH",
        "E2E_VIEWPORT_HEIGHT",
        "E2E_DEFAULT_TIMEOUT_MS",
        "E2E_POLL_INTERVAL_MS",
        "E2E_PERFORMANCE_BUDGETS",
        "E2E_A11Y_TAGS",
        "E2E_DEFAULT_BUDGET_MS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    def test_defaults(self, clean_env):
        config = HarnessConfig()

        assert config.base_url == "http://localhost:3000"
        assert config.browser == BrowserType.CHROMIUM
        assert config.headless is True
        assert config.performance_budgets == DEFAULT_PERFORMANCE_BUDGETS
        assert config.accessibility_tags == ["wcag2a", "wcag2aa"]

    def test_budget_lookup(self, clean_env):
        config = HarnessConfig()

        assert config.budget_for("dashboard") == 2000
        assert config.budget_for("organization_creation") == 5000
        assert config.budget_for("unknown") == config.default_budget_ms


class TestEnvironment:
    def test_environment_overrides(self, clean_env):
        clean_env.setenv("E2E_BASE_URL", "https://staging.example.com/")
        clean_env.setenv("E2E_BROWSER", "firefox")
        clean_env.setenv("E2E_HEADLESS", "false")
        clean_env.setenv("E2E_A11Y_TAGS", "wcag2a, wcag21aa")

        config = load_config()

        assert config.base_url == "https://staging.example.com"
        assert config.browser == BrowserType.FIREFOX
        assert config.headless is False
        assert config.accessibility_tags == ["wcag2a", "wcag21aa"]

    def test_budgets_merge_with_defaults(self, clean_env):
        clean_env.setenv("E2E_PERFORMANCE_BUDGETS", '{"dashboard": 1500, "meetings": 2500}')

        config = HarnessConfig()

        assert config.budget_for("dashboard") == 1500
        assert config.budget_for("meetings") == 2500
        assert config.budget_for("feedback_submission") == 3000

    def test_explicit_overrides_win(self, clean_env):
        clean_env.setenv("E2E_VIEWPORT_WIDTH", "1920")

        config = load_config(viewport_width=1024)

        assert config.viewport.width == 1024


class TestValidation:
    def test_rejects_non_http_base_url(self, clean_env):
        with pytest.raises(ValidationError):
            HarnessConfig(base_url="localhost:3000")

    def test_rejects_non_positive_timeout(self, clean_env):
        with pytest.raises(ValidationError):
            HarnessConfig(default_timeout_ms=0)

    def test_resolve_url(self, clean_env):
        config = HarnessConfig(base_url="http://localhost:3000/")

        assert config.resolve_url("/dashboard") == "http://localhost:3000/dashboard"
        assert config.resolve_url("dashboard/feedback") == "http://localhost:3000/dashboard/feedback"
        assert config.resolve_url("https://other.example/x") == "https://other.example/x"

    def test_environment_values_are_validated(self, clean_env):
        clean_env.setenv("E2E_DEFAULT_TIMEOUT_MS", "-5")

        with pytest.raises(ValidationError):
            load_config()

    def test_zero_poll_interval_from_environment_rejected(self, clean_env):
        clean_env.setenv("E2E_POLL_INTERVAL_MS", "0")

        with pytest.raises(ValidationError):
            HarnessConfig()

    def test_non_http_base_url_from_environment_rejected(self, clean_env):
        clean_env.setenv("E2E_BASE_URL", "localhost:3000")

        with pytest.raises(ValidationError):
            load_config()
