"""Scenario orchestration: lifecycle, authentication and failure artifacts."""

from .artifacts import ArtifactStore, sanitize_name
from .auth import Authenticator
from .scenario import (
    ALLOWED_TRANSITIONS,
    ScenarioContext,
    ScenarioLifecycle,
    ScenarioOrchestrator,
)

__all__ = [
    "ArtifactStore",
    "sanitize_name",
    "Authenticator",
    "ALLOWED_TRANSITIONS",
    "ScenarioContext",
    "ScenarioLifecycle",
    "ScenarioOrchestrator",
]
