"""Rule engine: filters the rule catalog and runs each rule in isolation."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence
from typing import Any

from cicd.rules.antipatterns import CommonAntiPatternsRule
from cicd.rules.base import CustomRule, Rule, RuleContext
from cicd.rules.compliance import ComplianceRule, SecurityScanningRule
from cicd.rules.cost import ConcurrencyRule, CostOptimizationRule
from cicd.rules.entropy import HighEntropyStringsRule
from cicd.rules.maintainability import (
    ComplexityRule,
    DocumentationRule,
    NamingConventionsRule,
)
from cicd.rules.models import (
    LEVEL_ORDER,
    Issue,
    IssueCategory,
    IssueSeverity,
    RuleFindings,
    RuleLevel,
)
from cicd.rules.performance import (
    BuildOptimizationRule,
    CachingRule,
    ParallelizationRule,
    ResourceOptimizationRule,
)
from cicd.rules.secrets import HardcodedSecretsRule
from cicd.rules.security import (
    BroadPermissionsRule,
    DangerousCommandsRule,
    FilePermissionsRule,
    InsecureEnvironmentVariablesRule,
    UnpinnedActionVersionsRule,
)

logger = logging.getLogger(__name__)

ALL_LEVELS = "all"

DEFAULT_RULES: tuple[Rule, ...] = (
    # Security
    HardcodedSecretsRule(),
    HighEntropyStringsRule(),
    DangerousCommandsRule(),
    FilePermissionsRule(),
    BroadPermissionsRule(),
    UnpinnedActionVersionsRule(),
    InsecureEnvironmentVariablesRule(),
    ComplianceRule(),
    SecurityScanningRule(),
    # Best practice
    CommonAntiPatternsRule(),
    # Performance
    CachingRule(),
    BuildOptimizationRule(),
    ParallelizationRule(),
    ResourceOptimizationRule(),
    # Cost
    CostOptimizationRule(),
    ConcurrencyRule(),
    # Maintainability
    DocumentationRule(),
    NamingConventionsRule(),
    ComplexityRule(),
)


def level_allows(rule_level: RuleLevel, target: RuleLevel | str) -> bool:
    """True if a rule at *rule_level* runs when *target* strictness is requested."""
    if target == ALL_LEVELS:
        return True
    return LEVEL_ORDER.index(rule_level) <= LEVEL_ORDER.index(RuleLevel(target))


def rule_error_issue(rule_id: str, title: str, error: Exception) -> Issue:
    return Issue(
        title=title,
        description=f"Error executing rule: {error}",
        severity=IssueSeverity.error,
        category=IssueCategory.linting,
        rule_id=f"rule-error-{rule_id}",
        fixable=False,
    )


class RuleEngine:
    """Runs a fixed, ordered rule catalog against one document per call.

    The engine holds no per-call state; every ``execute`` builds its own
    findings containers, so one instance can be shared between requests.
    """

    def __init__(self, rules: Sequence[Rule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def execute(
        self,
        document: Any,
        raw_text: str,
        platform: str,
        level: RuleLevel | str = ALL_LEVELS,
        skip_categories: Collection[IssueCategory] = (),
    ) -> RuleFindings:
        """Run every applicable rule once and return the merged findings.

        A rule that raises is logged and replaced by a single
        ``rule-error-<id>`` issue; the remaining rules still run.
        """
        findings = RuleFindings()
        ran = 0
        for rule in self._rules:
            if not rule.matches_platform(platform):
                continue
            if not level_allows(rule.level, level):
                continue
            if rule.category in skip_categories:
                continue

            context = RuleContext(raw_text, platform, findings)
            ran += 1
            try:
                rule.check(document, context)
            except Exception as exc:
                logger.exception("Error executing rule %s", rule.id)
                findings.issues.append(
                    rule_error_issue(rule.id, f"Rule execution error: {rule.name}", exc)
                )

        logger.debug(
            "Ran %d of %d rules for %s: %d issues, %d optimizations, %d vulnerabilities",
            ran,
            len(self._rules),
            platform,
            len(findings.issues),
            len(findings.optimizations),
            len(findings.vulnerabilities),
        )
        return findings

    def run_custom_rules(
        self,
        custom_rules: Iterable[CustomRule],
        document: Any,
        raw_text: str,
        platform: str,
        findings: RuleFindings,
    ) -> None:
        """Append the issues of caller-supplied rules to *findings*.

        Returned entries may be Issue objects or mappings that validate as
        one. A rule that raises, or returns anything malformed, contributes
        exactly one ``rule-error-<id>`` issue and nothing else.
        """
        for custom in custom_rules:
            try:
                produced = custom.check(document, raw_text, platform)
                if not isinstance(produced, (list, tuple)):
                    raise TypeError(
                        f"custom rule must return a list of issues, got {type(produced).__name__}"
                    )
                issues = [
                    item if isinstance(item, Issue) else Issue.model_validate(item)
                    for item in produced
                ]
            except Exception as exc:
                logger.exception("Error executing custom rule %s", custom.id)
                findings.issues.append(
                    rule_error_issue(custom.id, f"Custom rule error: {custom.name}", exc)
                )
                continue
            findings.issues.extend(issues)

    def rules_by_category(self) -> dict[str, list[Rule]]:
        grouped: dict[str, list[Rule]] = {}
        for rule in self._rules:
            grouped.setdefault(rule.category.value, []).append(rule)
        return grouped

    def rules_by_level(self) -> dict[str, list[Rule]]:
        grouped: dict[str, list[Rule]] = {}
        for rule in self._rules:
            grouped.setdefault(rule.level.value, []).append(rule)
        return grouped

    def rules_for_platform(self, platform: str) -> list[Rule]:
        return [rule for rule in self._rules if rule.matches_platform(platform)]
