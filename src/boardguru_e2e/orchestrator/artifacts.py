"""Failure artifact persistence.

When a scenario fails, ArtifactStore writes everything needed to diagnose it
into ``<artifacts_dir>/<scenario>/<timestamp>/``:

- screenshot.png: full-page screenshot
- dom.html: DOM snapshot
- error.txt: exception type, message and traceback
- network.json: recent network events
- measurements.json: performance measurements so far
- violations.json: accessibility violations so far

Each artifact is captured independently; a capture that fails is noted in
``FailureArtifacts.capture_errors`` and never replaces the scenario's own
error.
"""

import json
import logging
import re
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional

from playwright.async_api import Page

from ..config.harness_config import HarnessConfig
from ..exceptions import ArtifactCaptureError
from ..models.harness_models import (
    AccessibilityViolation,
    FailureArtifacts,
    NetworkLogEntry,
    PerformanceMeasurement,
)

logger = logging.getLogger(__name__)


def sanitize_name(name: str) -> str:
    """Make a scenario name safe for use as a directory name."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", name).strip("-.")
    return cleaned[:100] or "scenario"


def _write_json(path: Path, items: Iterable[Any]) -> None:
    payload = [item.model_dump(mode="json") for item in items]
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class ArtifactStore:
    """Write failure artifacts for scenarios."""

    def __init__(self, config: Optional[HarnessConfig] = None):
        self.config = config or HarnessConfig()
        self.root = Path(self.config.artifacts_dir)

    def scenario_dir(self, scenario_name: str) -> Path:
        """Create and return a new timestamped directory for one failure."""
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        directory = self.root / sanitize_name(scenario_name) / timestamp
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    async def capture_failure(
        self,
        scenario_name: str,
        error: BaseException,
        page: Optional[Page] = None,
        network_log: Iterable[NetworkLogEntry] = (),
        measurements: Iterable[PerformanceMeasurement] = (),
        violations: Iterable[AccessibilityViolation] = (),
    ) -> FailureArtifacts:
        """Persist all artifacts for a failed scenario.

        Args:
            scenario_name: Name of the failed scenario
            error: The scenario's error
            page: Page to capture, skipped if None or closed
            network_log: Recent network events
            measurements: Measurements recorded so far
            violations: Accessibility violations recorded so far

        Returns:
            Paths of the written artifacts
        """
        directory = self.scenario_dir(scenario_name)
        artifacts = FailureArtifacts(directory=str(directory))
        capture_errors: List[str] = []

        error_path = directory / "error.txt"
        try:
            error_path.write_text(
                "".join(traceback.format_exception(type(error), error, error.__traceback__)),
                encoding="utf-8",
            )
            artifacts.error_path = str(error_path)
        except OSError as e:
            capture_errors.append(str(ArtifactCaptureError(f"error.txt: {e}")))

        if page is not None and not page.is_closed():
            screenshot_path = directory / "screenshot.png"
            try:
                await page.screenshot(path=str(screenshot_path), full_page=True)
                artifacts.screenshot_path = str(screenshot_path)
            except Exception as e:
                capture_errors.append(str(ArtifactCaptureError(f"screenshot: {e}")))

            dom_path = directory / "dom.html"
            try:
                dom_path.write_text(await page.content(), encoding="utf-8")
                artifacts.dom_snapshot_path = str(dom_path)
            except Exception as e:
                capture_errors.append(str(ArtifactCaptureError(f"dom snapshot: {e}")))
        else:
            capture_errors.append("page unavailable, screenshot and DOM skipped")

        for filename, items, field in (
            ("network.json", network_log, "network_log_path"),
            ("measurements.json", measurements, "measurements_path"),
            ("violations.json", violations, "violations_path"),
        ):
            path = directory / filename
            try:
                _write_json(path, items)
                setattr(artifacts, field, str(path))
            except (OSError, TypeError, ValueError) as e:
                capture_errors.append(str(ArtifactCaptureError(f"{filename}: {e}")))

        artifacts.capture_errors = capture_errors
        for problem in capture_errors:
            logger.warning(f"Artifact capture problem for '{scenario_name}': {problem}")
        logger.info(f"Saved failure artifacts for '{scenario_name}' to {directory}")
        return artifacts
