"""Compliance and security-tooling coverage rules."""

from __future__ import annotations

import re
from typing import Any

from cicd.rules.base import Rule, RuleContext
from cicd.rules.models import (
    Impact,
    Issue,
    IssueCategory,
    IssueSeverity,
    Optimization,
    RuleLevel,
)
from cicd.rules.tree import as_mapping, iter_jobs, iter_steps

SENSITIVE_DATA_PATTERNS = (
    re.compile(r"personal.*data", re.IGNORECASE),
    re.compile(r"\bpii\b", re.IGNORECASE),
    re.compile(r"gdpr", re.IGNORECASE),
    re.compile(r"customer.*data", re.IGNORECASE),
    re.compile(r"sensitive.*data", re.IGNORECASE),
)
ENCRYPTION_KEYWORDS = ("encrypt", "decrypt", "tls", "ssl", "https", "certificate")


class ComplianceRule(Rule):
    id = "compliance-standards"
    name = "Compliance Standards"
    description = "Checks compliance with industry standards (SOC2, GDPR, HIPAA, etc.)"
    category = IssueCategory.security
    severity = IssueSeverity.warning
    level = RuleLevel.expert

    def check(self, document: Any, context: RuleContext) -> None:
        raw = context.raw_text
        lowered = raw.lower()

        if "log" not in lowered and "audit" not in lowered:
            context.add_issue(
                Issue(
                    title="Missing audit logging",
                    description="No audit logging detected - required for compliance standards",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="missing-audit-logging",
                    suggestion="Implement comprehensive audit logging for compliance",
                    example_code=(
                        "# Add logging steps\n- name: Audit log\n"
                        '  run: echo "Job started at $(date)" >> audit.log'
                    ),
                )
            )

        if any(p.search(raw) for p in SENSITIVE_DATA_PATTERNS):
            context.add_issue(
                Issue(
                    title="Data handling detected",
                    description=(
                        "Pipeline handles sensitive data - ensure compliance measures are in place"
                    ),
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="data-handling-compliance",
                    suggestion=(
                        "Implement data protection measures (encryption, access controls, "
                        "retention policies)"
                    ),
                )
            )

        if not any(k in lowered for k in ENCRYPTION_KEYWORDS) and "deploy" in raw:
            context.add_issue(
                Issue(
                    title="Missing encryption configuration",
                    description="Deployment pipeline should use encryption for data in transit",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="missing-encryption",
                    suggestion="Ensure all communications use TLS/SSL encryption",
                )
            )

        if context.platform == "github-actions":
            self._check_environments(document, context)
            self._check_retention(document, context)

    def _check_environments(self, document: Any, context: RuleContext) -> None:
        for name, job in iter_jobs(document):
            environment = job.get("environment")
            if isinstance(environment, dict):
                environment = environment.get("name")
            if isinstance(environment, str) and "prod" in environment.lower():
                context.add_optimization(
                    Optimization(
                        title=(
                            f'Add protection rules for production environment in job "{name}"'
                        ),
                        description="Production deployments should have approval requirements",
                        impact=Impact.high,
                        effort=Impact.low,
                        category=IssueCategory.security,
                        suggestion=(
                            "Configure environment protection rules in GitHub repository settings"
                        ),
                    )
                )

    def _check_retention(self, document: Any, context: RuleContext) -> None:
        for name, job in iter_jobs(document):
            for step in iter_steps(job):
                uses = step.get("uses")
                if not isinstance(uses, str) or "upload-artifact" not in uses:
                    continue
                if as_mapping(step.get("with")).get("retention-days"):
                    continue
                context.add_optimization(
                    Optimization(
                        title=f'Add retention policy for artifacts in job "{name}"',
                        description=(
                            "Artifacts should have explicit retention policies for compliance"
                        ),
                        impact=Impact.low,
                        effort=Impact.low,
                        category=IssueCategory.security,
                        suggestion="Set appropriate retention-days for artifacts",
                        example_code="with:\n  retention-days: 30",
                    )
                )


VULNERABILITY_SCANNERS = (
    "snyk", "trivy", "clair", "anchore", "twistlock", "aqua",
    "veracode", "checkmarx", "sonarqube", "whitesource",
)
CODE_ANALYSIS_TOOLS = (
    "codeql", "sonarqube", "eslint", "bandit", "brakeman",
    "semgrep", "gosec", "safety", "flake8",
)
DEPENDENCY_SCANNERS = (
    "npm audit", "yarn audit", "pip-audit", "safety", "bundler-audit",
    "retire.js", "dependency-check", "snyk",
)
CONTAINER_SCANNERS = ("trivy", "clair", "anchore", "twistlock")
SECRET_SCANNERS = ("trufflehog", "gitleaks", "detect-secrets", "git-secrets")
PACKAGE_MANAGERS = ("npm", "yarn", "pip", "composer", "bundle", "go mod")

TRIVY_STEP = (
    "- name: Run Trivy vulnerability scanner\n"
    "  uses: aquasecurity/trivy-action@master\n"
    "  with:\n"
)


class SecurityScanningRule(Rule):
    id = "security-scanning"
    name = "Security Scanning"
    description = "Ensures proper security scanning is implemented"
    category = IssueCategory.security
    severity = IssueSeverity.warning
    level = RuleLevel.senior

    def check(self, document: Any, context: RuleContext) -> None:
        lowered = context.raw_text.lower()

        def uses_any(tools: tuple[str, ...]) -> bool:
            return any(tool in lowered for tool in tools)

        if not uses_any(VULNERABILITY_SCANNERS):
            context.add_issue(
                Issue(
                    title="Missing vulnerability scanning",
                    description="No vulnerability scanning tools detected",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="missing-vuln-scanning",
                    suggestion="Add vulnerability scanning to your pipeline",
                    example_code=TRIVY_STEP + "    scan-type: 'fs'\n    scan-ref: '.'",
                )
            )

        if not uses_any(CODE_ANALYSIS_TOOLS):
            context.add_optimization(
                Optimization(
                    title="Add static code analysis",
                    description="Static code analysis helps identify security vulnerabilities early",
                    impact=Impact.high,
                    effort=Impact.medium,
                    category=IssueCategory.security,
                    suggestion="Integrate static analysis tools into your pipeline",
                )
            )

        if not uses_any(DEPENDENCY_SCANNERS) and uses_any(PACKAGE_MANAGERS):
            context.add_issue(
                Issue(
                    title="Missing dependency vulnerability scanning",
                    description="Dependencies should be scanned for known vulnerabilities",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="missing-dep-scanning",
                    suggestion="Add dependency vulnerability scanning",
                    example_code="- name: Audit dependencies\n  run: npm audit --audit-level=high",
                )
            )

        if "docker" in lowered and not uses_any(CONTAINER_SCANNERS):
            context.add_issue(
                Issue(
                    title="Missing container security scanning",
                    description="Docker containers should be scanned for vulnerabilities",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="missing-container-scanning",
                    suggestion="Add container vulnerability scanning",
                    example_code=TRIVY_STEP + "    image-ref: 'myapp:latest'",
                )
            )

        if not uses_any(SECRET_SCANNERS):
            context.add_optimization(
                Optimization(
                    title="Add secrets scanning",
                    description="Scan for accidentally committed secrets",
                    impact=Impact.high,
                    effort=Impact.low,
                    category=IssueCategory.security,
                    suggestion="Add secrets scanning to prevent credential leaks",
                    example_code="- name: Run gitleaks\n  uses: zricethezav/gitleaks-action@master",
                )
            )
