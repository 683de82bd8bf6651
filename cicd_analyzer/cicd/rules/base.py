"""Rule interface and the per-invocation rule context."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, ClassVar

from cicd.rules.models import (
    Issue,
    IssueCategory,
    IssueSeverity,
    Optimization,
    RuleFindings,
    RuleLevel,
    SecurityVulnerability,
)

ALL_PLATFORMS = "all"


class RuleContext:
    """What a rule sees while it runs: the raw text and append-only sinks.

    A context is built fresh for every rule invocation and writes straight
    into the findings containers of the current engine call.
    """

    def __init__(self, raw_text: str, platform: str, findings: RuleFindings) -> None:
        self._raw_text = raw_text
        self._lines = tuple(raw_text.split("\n"))
        self._platform = platform
        self._findings = findings

    @property
    def raw_text(self) -> str:
        return self._raw_text

    @property
    def lines(self) -> tuple[str, ...]:
        return self._lines

    @property
    def platform(self) -> str:
        return self._platform

    def add_issue(self, issue: Issue) -> None:
        self._findings.issues.append(issue)

    def add_optimization(self, optimization: Optimization) -> None:
        self._findings.optimizations.append(optimization)

    def add_vulnerability(self, vulnerability: SecurityVulnerability) -> None:
        self._findings.vulnerabilities.append(vulnerability)

    def find_pattern_lines(self, pattern: str | re.Pattern[str]) -> list[int]:
        """Return the 1-based numbers of lines matching *pattern*."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return [i + 1 for i, line in enumerate(self._lines) if regex.search(line)]


class Rule(ABC):
    """A stateless check producing findings through a RuleContext."""

    id: ClassVar[str]
    name: ClassVar[str]
    description: ClassVar[str] = ""
    category: ClassVar[IssueCategory]
    severity: ClassVar[IssueSeverity] = IssueSeverity.warning
    level: ClassVar[RuleLevel] = RuleLevel.junior
    platforms: ClassVar[tuple[str, ...]] = (ALL_PLATFORMS,)

    def matches_platform(self, platform: str) -> bool:
        return ALL_PLATFORMS in self.platforms or platform in self.platforms

    @abstractmethod
    def check(self, document: Any, context: RuleContext) -> None:
        """Inspect *document* and append findings via *context*."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


@dataclass(frozen=True)
class CustomRule:
    """An externally supplied rule.

    ``check`` receives ``(document, raw_text, platform)`` and returns a list of
    Issue objects (or mappings that validate as Issues).
    """

    id: str
    name: str
    check: Callable[[Any, str, str], list[Issue | dict]]
    description: str = ""
