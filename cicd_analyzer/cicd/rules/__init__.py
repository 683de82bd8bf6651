"""Rule catalog and execution engine for pipeline configurations."""

from cicd.rules.base import CustomRule, Rule, RuleContext
from cicd.rules.engine import DEFAULT_RULES, RuleEngine
from cicd.rules.entropy import mask_secret, shannon_entropy
from cicd.rules.models import (
    Impact,
    Issue,
    IssueCategory,
    IssueSeverity,
    Optimization,
    RuleFindings,
    RuleLevel,
    SecurityVulnerability,
    VulnerabilitySeverity,
)

__all__ = [
    "CustomRule",
    "DEFAULT_RULES",
    "Impact",
    "Issue",
    "IssueCategory",
    "IssueSeverity",
    "Optimization",
    "Rule",
    "RuleContext",
    "RuleEngine",
    "RuleFindings",
    "RuleLevel",
    "SecurityVulnerability",
    "VulnerabilitySeverity",
    "mask_secret",
    "shannon_entropy",
]
