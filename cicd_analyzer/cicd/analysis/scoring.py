"""Health score, security report and prioritized recommendations."""

from __future__ import annotations

from cicd.analysis.metrics import security_score
from cicd.analysis.models import Recommendation, SecurityReport
from cicd.rules.models import (
    Impact,
    Issue,
    IssueCategory,
    IssueSeverity,
    Optimization,
    SecurityVulnerability,
    VulnerabilitySeverity,
)

ISSUE_DEDUCTIONS: dict[IssueSeverity, int] = {
    IssueSeverity.critical: 25,
    IssueSeverity.error: 15,
    IssueSeverity.warning: 8,
    IssueSeverity.info: 3,
}

VULNERABILITY_DEDUCTIONS: dict[VulnerabilitySeverity, int] = {
    VulnerabilitySeverity.critical: 30,
    VulnerabilitySeverity.high: 20,
    VulnerabilitySeverity.medium: 10,
    VulnerabilitySeverity.low: 5,
}

SECURITY_RECOMMENDATIONS = (
    "Use secret management systems instead of hardcoded values",
    "Pin action versions to specific commits for security",
    "Implement least privilege access principles",
    "Regular security audits of CI/CD configurations",
    "Enable branch protection rules",
    "Use signed commits where possible",
)

SECRET_TITLE_WORDS = ("secret", "key", "token")


def calculate_score(
    issues: list[Issue],
    vulnerabilities: list[SecurityVulnerability],
) -> int:
    """100 minus per-severity deductions, clamped to [0, 100] once at the end.

    Issues and vulnerabilities use separate deduction tables.
    """
    score = 100
    score -= sum(ISSUE_DEDUCTIONS[issue.severity] for issue in issues)
    score -= sum(VULNERABILITY_DEDUCTIONS[vuln.severity] for vuln in vulnerabilities)
    return max(0, min(100, score))


def build_security_report(
    issues: list[Issue],
    vulnerabilities: list[SecurityVulnerability],
) -> SecurityReport:
    exposed = sum(
        1
        for vuln in vulnerabilities
        if any(word in vuln.title.lower() for word in SECRET_TITLE_WORDS)
    )
    unsafe_permissions = sum(
        1
        for issue in issues
        if issue.category == IssueCategory.security and "permission" in issue.description.lower()
    )
    return SecurityReport(
        overall_score=security_score(vulnerabilities),
        vulnerabilities=list(vulnerabilities),
        exposed_secrets=exposed,
        unsafe_permissions=unsafe_permissions,
        recommendations=list(SECURITY_RECOMMENDATIONS),
    )


def build_recommendations(
    issues: list[Issue],
    optimizations: list[Optimization],
) -> list[Recommendation]:
    critical = sum(1 for i in issues if i.severity == IssueSeverity.critical)
    errors = sum(1 for i in issues if i.severity == IssueSeverity.error)
    security = sum(1 for i in issues if i.category == IssueCategory.security)
    high_impact = sum(1 for o in optimizations if o.impact == Impact.high)

    recommendations: list[Recommendation] = []
    if critical:
        recommendations.append(
            Recommendation(
                title="Fix Critical Issues",
                description=(
                    f"Address {critical} critical issues that prevent proper pipeline execution"
                ),
                priority=Impact.high,
                effort=Impact.high,
                impact=Impact.high,
                category=IssueCategory.linting,
            )
        )
    if errors:
        recommendations.append(
            Recommendation(
                title="Resolve Error Issues",
                description=f"Fix {errors} error-level issues",
                priority=Impact.high,
                effort=Impact.medium,
                impact=Impact.high,
                category=IssueCategory.linting,
            )
        )
    if security:
        recommendations.append(
            Recommendation(
                title="Improve Security Posture",
                description=f"Address {security} security-related issues",
                priority=Impact.high,
                effort=Impact.low,
                impact=Impact.high,
                category=IssueCategory.security,
            )
        )
    if high_impact:
        recommendations.append(
            Recommendation(
                title="Optimize Performance",
                description=f"Implement {high_impact} high-impact performance optimizations",
                priority=Impact.medium,
                effort=Impact.low,
                impact=Impact.high,
                category=IssueCategory.performance,
            )
        )
    return recommendations
