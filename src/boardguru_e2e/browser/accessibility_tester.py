"""Accessibility scanning using axe-core.

This module provides the AccessibilityScanner, which runs an accessibility
engine against a page (or a part of it) and normalizes the engine's raw
results into AccessibilityViolation models. The default engine injects
axe-core into the page and runs ``axe.run`` through ``page.evaluate``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from playwright.async_api import Page

from ..config.harness_config import HarnessConfig
from ..exceptions import AccessibilityViolationsFound, ScanFailed
from ..models.harness_models import AccessibilityViolation, Impact

logger = logging.getLogger(__name__)

# WCAG conformance level to axe-core tag mapping
WCAG_TAG_MAPPING = {
    "A": ["wcag2a"],
    "AA": ["wcag2a", "wcag2aa"],
    "AAA": ["wcag2a", "wcag2aa", "wcag2aaa"],
}

AXE_RUN_SCRIPT = """
({scope, tags}) => {
    const context = scope ? {include: [[scope]]} : document;
    const options = {runOnly: {type: 'tag', values: tags}};
    return axe.run(context, options).then(results => results.violations);
}
"""

# Separator between frame / shadow root levels of a nested axe target
NESTED_TARGET_SEPARATOR = " >>> "


class AccessibilityEngine(ABC):
    """Boundary to the accessibility rule engine."""

    @abstractmethod
    async def analyze(
        self, page: Page, scope: Optional[str], tags: List[str]
    ) -> List[Dict[str, Any]]:
        """Return the engine's raw violation records for the page."""


class AxeCoreEngine(AccessibilityEngine):
    """Run axe-core inside the page.

    The library is injected on first use in each document; a navigation
    replaces the document, so availability is checked before every run.
    """

    def __init__(self, script_url: str):
        self.script_url = script_url

    async def ensure_loaded(self, page: Page) -> None:
        """Inject axe-core unless the current document already has it.

        Raises:
            RuntimeError: If the library is still unavailable after injection
        """
        if await page.evaluate("() => typeof axe !== 'undefined'"):
            return

        logger.debug(f"Injecting axe-core from {self.script_url}")
        await page.add_script_tag(url=self.script_url)
        if not await page.evaluate("() => typeof axe !== 'undefined'"):
            raise RuntimeError("axe-core library failed to load")

    async def analyze(
        self, page: Page, scope: Optional[str], tags: List[str]
    ) -> List[Dict[str, Any]]:
        await self.ensure_loaded(page)
        return await page.evaluate(AXE_RUN_SCRIPT, {"scope": scope, "tags": tags})


def _normalize_impact(raw: Any) -> Impact:
    try:
        return Impact(raw)
    except ValueError:
        return Impact.MODERATE


def _flatten_target(target: Any) -> str:
    """Turn an axe node target into one selector string.

    axe reports ``["#id"]`` for plain nodes and nested lists for nodes inside
    iframes or shadow roots.
    """
    if isinstance(target, str):
        return target
    parts = [_flatten_target(part) for part in target]
    return NESTED_TARGET_SEPARATOR.join(part for part in parts if part)


def normalize_violations(raw_violations: Optional[Iterable[Dict[str, Any]]]) -> List[AccessibilityViolation]:
    """Convert raw axe-core violations into AccessibilityViolation models.

    Engine order is preserved and exact duplicates are dropped. A missing or
    unknown impact is reported as moderate.
    """
    violations: List[AccessibilityViolation] = []
    seen = set()

    for raw in raw_violations or []:
        selectors = []
        for node in raw.get("nodes") or []:
            selector = _flatten_target(node.get("target") or [])
            if selector and selector not in selectors:
                selectors.append(selector)

        violation = AccessibilityViolation(
            rule_id=raw.get("id", "unknown"),
            impact=_normalize_impact(raw.get("impact")),
            affected_node_selectors=tuple(selectors),
            description=raw.get("description") or raw.get("help") or "",
            help_url=raw.get("helpUrl"),
            tags=tuple(raw.get("tags") or ()),
        )
        if violation in seen:
            continue
        seen.add(violation)
        violations.append(violation)

    return violations


class AccessibilityScanner:
    """Scan pages for accessibility violations.

    Example:
        scanner = AccessibilityScanner(config)
        violations = await scanner.scan(page, scope="[data-testid='feedback-modal']")
        scanner.expect_no_violations(violations, min_impact=Impact.SERIOUS)
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        engine: Optional[AccessibilityEngine] = None,
    ):
        self.config = config or HarnessConfig()
        self.engine = engine or AxeCoreEngine(self.config.axe_script_url)

    def resolve_tags(self, tags: Union[str, Sequence[str], None]) -> List[str]:
        """Map a conformance level or tag list to axe tags."""
        if tags is None:
            return list(self.config.accessibility_tags)
        if isinstance(tags, str):
            return list(WCAG_TAG_MAPPING.get(tags.upper(), [tags]))
        return list(tags)

    async def scan(
        self,
        page: Page,
        scope: Optional[str] = None,
        tags: Union[str, Sequence[str], None] = None,
        rule_ids: Optional[Sequence[str]] = None,
    ) -> List[AccessibilityViolation]:
        """Run the engine and return the violations found.

        Args:
            page: Page to scan
            scope: CSS selector of the region to scan, whole document if None
            tags: Conformance level ("A", "AA", "AAA") or axe tags
            rule_ids: Keep only violations of these rules

        Returns:
            Violations in engine order, empty when the page is clean

        Raises:
            ScanFailed: If the engine could not run
        """
        resolved_tags = self.resolve_tags(tags)
        logger.info(
            f"Running accessibility scan on {scope or 'document'} (tags: {resolved_tags})"
        )

        try:
            raw = await self.engine.analyze(page, scope, resolved_tags)
        except Exception as e:
            logger.error(f"Accessibility scan failed: {e}")
            raise ScanFailed(e) from e

        violations = normalize_violations(raw)
        if rule_ids is not None:
            wanted = set(rule_ids)
            violations = [v for v in violations if v.rule_id in wanted]

        logger.info(
            f"Accessibility scan completed: {len(violations)} violation(s) "
            f"({self._count_by_impact(violations)})"
        )
        return violations

    def _count_by_impact(self, violations: List[AccessibilityViolation]) -> str:
        counts = {impact.value: 0 for impact in reversed(list(Impact))}
        for violation in violations:
            counts[violation.impact.value] += 1
        parts = [f"{count} {level}" for level, count in counts.items() if count]
        return ", ".join(parts) if parts else "clean"

    def filter_by_impact(
        self,
        violations: List[AccessibilityViolation],
        min_impact: Impact = Impact.MODERATE,
    ) -> List[AccessibilityViolation]:
        """Keep violations at least as severe as min_impact."""
        min_impact = Impact(min_impact)
        return [v for v in violations if v.impact.rank >= min_impact.rank]

    def group_by_rule(
        self, violations: List[AccessibilityViolation]
    ) -> Dict[str, List[AccessibilityViolation]]:
        grouped: Dict[str, List[AccessibilityViolation]] = {}
        for violation in violations:
            grouped.setdefault(violation.rule_id, []).append(violation)
        return grouped

    def expect_no_violations(
        self,
        violations: List[AccessibilityViolation],
        min_impact: Impact = Impact.MINOR,
    ) -> None:
        """Fail if any violation at or above min_impact was found.

        Raises:
            AccessibilityViolationsFound: With the offending violations
        """
        offending = self.filter_by_impact(violations, min_impact)
        if offending:
            raise AccessibilityViolationsFound(offending)
