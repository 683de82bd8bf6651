"""Data models for rule findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IssueSeverity(str, Enum):
    critical = "critical"
    error = "error"
    warning = "warning"
    info = "info"


class VulnerabilitySeverity(str, Enum):
    """Severity scale for security vulnerabilities (not interchangeable with IssueSeverity)."""

    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class IssueCategory(str, Enum):
    security = "security"
    performance = "performance"
    maintainability = "maintainability"
    cost = "cost"
    linting = "linting"
    best_practice = "best-practice"
    syntax = "syntax"
    structure = "structure"


class Impact(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class RuleLevel(str, Enum):
    junior = "junior"
    intermediate = "intermediate"
    senior = "senior"
    expert = "expert"


# Strictness ordering, lowest first
LEVEL_ORDER: tuple[RuleLevel, ...] = (
    RuleLevel.junior,
    RuleLevel.intermediate,
    RuleLevel.senior,
    RuleLevel.expert,
)


class Issue(BaseModel):
    """A discrete linting finding."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    severity: IssueSeverity
    category: IssueCategory
    rule_id: str | None = None
    suggestion: str | None = None
    example_code: str | None = None
    fixable: bool | None = None
    line: int | None = None
    line_numbers: tuple[int, ...] | None = None
    estimated_fix_time: str | None = None
    impact: str | None = None
    documentation_url: str | None = None


class Optimization(BaseModel):
    """A suggested improvement. Not a defect."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    impact: Impact
    effort: Impact
    category: IssueCategory
    suggestion: str
    example_code: str | None = None
    line_numbers: tuple[int, ...] | None = None


class SecurityVulnerability(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    severity: VulnerabilitySeverity
    recommendation: str
    line: int | None = None
    cve: str | None = None
    cvss_score: float | None = Field(default=None, ge=0, le=10)


@dataclass
class RuleFindings:
    """Per-call containers for the three finding streams."""

    issues: list[Issue] = field(default_factory=list)
    optimizations: list[Optimization] = field(default_factory=list)
    vulnerabilities: list[SecurityVulnerability] = field(default_factory=list)

    def extend(self, other: RuleFindings) -> None:
        self.issues.extend(other.issues)
        self.optimizations.extend(other.optimizations)
        self.vulnerabilities.extend(other.vulnerabilities)
