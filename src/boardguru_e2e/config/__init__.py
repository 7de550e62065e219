"""Configuration package for the E2E harness."""

from .harness_config import DEFAULT_PERFORMANCE_BUDGETS, HarnessConfig, load_config

__all__ = ["DEFAULT_PERFORMANCE_BUDGETS", "HarnessConfig", "load_config"]
