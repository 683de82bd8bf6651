"""Cross-platform anti-patterns found in the raw configuration text."""

from __future__ import annotations

import re
from typing import Any, NamedTuple

from cicd.rules.base import Rule, RuleContext
from cicd.rules.models import Issue, IssueCategory, IssueSeverity, RuleLevel


class AntiPattern(NamedTuple):
    pattern: re.Pattern[str]
    title: str
    severity: IssueSeverity
    category: IssueCategory
    suggestion: str


ANTI_PATTERNS: tuple[AntiPattern, ...] = (
    AntiPattern(
        re.compile(r"localhost:\d+"),
        "Hardcoded localhost URLs",
        IssueSeverity.warning,
        IssueCategory.best_practice,
        "Use environment variables for URLs",
    ),
    AntiPattern(
        re.compile(r"127\.0\.0\.1:\d+"),
        "Hardcoded localhost IP addresses",
        IssueSeverity.warning,
        IssueCategory.best_practice,
        "Use environment variables for IP addresses",
    ),
    AntiPattern(
        re.compile(r"http://[^/\s]+"),
        "Insecure HTTP URLs",
        IssueSeverity.warning,
        IssueCategory.security,
        "Use HTTPS instead of HTTP",
    ),
    AntiPattern(
        re.compile(r":latest(?!\w)"),
        "Using 'latest' tag for Docker images",
        IssueSeverity.warning,
        IssueCategory.best_practice,
        "Pin Docker images to specific versions",
    ),
    AntiPattern(
        re.compile(r"sleep\s+\d+"),
        "Hard-coded sleep delays",
        IssueSeverity.info,
        IssueCategory.maintainability,
        "Use proper health checks instead of sleep",
    ),
    AntiPattern(
        re.compile(r"\b(?:TODO|FIXME|HACK|XXX)\b", re.IGNORECASE),
        "Unresolved TODO/FIXME comments",
        IssueSeverity.info,
        IssueCategory.maintainability,
        "Resolve or track these items in your issue tracker",
    ),
)


def slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", title.lower())


class CommonAntiPatternsRule(Rule):
    """One issue per anti-pattern, carrying every line it occurs on."""

    id = "common-anti-patterns"
    name = "Common Anti-Patterns"
    description = "Hardcoded hosts, plain HTTP, floating image tags, sleeps and TODO markers"
    category = IssueCategory.best_practice
    severity = IssueSeverity.warning
    level = RuleLevel.junior

    def check(self, document: Any, context: RuleContext) -> None:
        for anti in ANTI_PATTERNS:
            count = len(anti.pattern.findall(context.raw_text))
            if not count:
                continue
            context.add_issue(
                Issue(
                    title=anti.title,
                    description=f"Found {count} instance(s) of {anti.title.lower()}",
                    severity=anti.severity,
                    category=anti.category,
                    rule_id=slugify(anti.title),
                    suggestion=anti.suggestion,
                    line_numbers=tuple(context.find_pattern_lines(anti.pattern)),
                )
            )
