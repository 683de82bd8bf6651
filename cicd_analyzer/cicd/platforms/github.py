"""GitHub Actions workflow structure checks."""

from __future__ import annotations

import re
from typing import Any

from cicd.platforms.base import PlatformAnalyzer
from cicd.rules.base import RuleContext
from cicd.rules.entropy import mask_secret
from cicd.rules.models import Issue, IssueCategory, IssueSeverity
from cicd.rules.security import grants_write
from cicd.rules.tree import as_list, as_mapping, trigger_map

SECRET_KEYWORDS = ("password", "token", "key", "secret", "auth", "credential", "pass")
SUSPICIOUS_VALUE_PATTERNS = (
    re.compile(r"^[A-Za-z0-9+/]{40,}={0,2}$"),  # base64
    re.compile(r"^[a-f0-9]{32,}$"),  # hex
    re.compile(r"^[A-Z0-9]{20,}$"),  # api key
)
PLACEHOLDER_MARKERS = (
    "example", "test", "demo", "placeholder", "your_", "my_", "sample",
    "dummy", "fake", "mock", "template", "replace_me", "change_me",
    "todo", "fixme", "xxx", "yyy", "zzz",
)
OUTDATED_CHECKOUT_REFS = ("@v1", "@v2")


def is_placeholder_value(value: str) -> bool:
    lowered = value.lower()
    return any(marker in lowered for marker in PLACEHOLDER_MARKERS)


def _raw_triggers(document: dict) -> Any:
    # YAML 1.1 reads a bare `on` key as boolean True
    if "on" in document:
        return document["on"]
    return document.get(True)


class GitHubActionsAnalyzer(PlatformAnalyzer):
    platform = "github-actions"

    def job_container(self, document: Any) -> Any:
        return as_mapping(document).get("jobs")

    def validate_structure(self, document: Any, context: RuleContext) -> list[Issue]:
        reported: list[Issue] = []
        root = as_mapping(document)

        if not root.get("name"):
            self._report(
                context,
                Issue(
                    title="Missing workflow name",
                    description="GitHub Actions workflows should have a descriptive name",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.maintainability,
                    rule_id="gh-missing-name",
                    suggestion='Add a "name" field at the root level',
                    example_code='name: "CI/CD Pipeline"',
                    fixable=True,
                    estimated_fix_time="1 minute",
                ),
                reported,
            )

        if not _raw_triggers(root):
            self._report(
                context,
                Issue(
                    title="Missing trigger events",
                    description="Workflow must specify when it should run",
                    severity=IssueSeverity.error,
                    category=IssueCategory.linting,
                    rule_id="gh-missing-triggers",
                    suggestion='Add an "on" field with trigger events',
                    example_code=(
                        "on:\n  push:\n    branches: [main]\n"
                        "  pull_request:\n    branches: [main]"
                    ),
                    fixable=True,
                    estimated_fix_time="2 minutes",
                ),
                reported,
            )

        if not as_mapping(root.get("jobs")):
            self._report(
                context,
                Issue(
                    title="Missing jobs",
                    description="Workflow must define at least one job",
                    severity=IssueSeverity.error,
                    category=IssueCategory.linting,
                    rule_id="gh-missing-jobs",
                    suggestion='Add a "jobs" section with at least one job',
                    example_code=(
                        "jobs:\n  build:\n    runs-on: ubuntu-latest\n    steps:\n"
                        "      - uses: actions/checkout@v4"
                    ),
                    fixable=True,
                ),
                reported,
            )

        if "pull_request_target" in trigger_map(root):
            self._report(
                context,
                Issue(
                    title="Potentially unsafe pull_request_target trigger",
                    description=(
                        "pull_request_target runs with write permissions and can be "
                        "dangerous with untrusted code"
                    ),
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="gh-unsafe-pr-target",
                    suggestion=(
                        "Consider using pull_request trigger instead, or add explicit "
                        "security measures"
                    ),
                    impact="high",
                    documentation_url=(
                        "https://securitylab.github.com/research/"
                        "github-actions-preventing-pwn-requests/"
                    ),
                ),
                reported,
            )

        return reported

    def analyze_jobs(self, jobs: Any, context: RuleContext) -> None:
        for job_name, job in as_mapping(jobs).items():
            label = f'job "{job_name}"'
            if not isinstance(job, dict):
                context.add_issue(
                    Issue(
                        title=f"Invalid definition for {label}",
                        description="Each job must be a mapping of job settings",
                        severity=IssueSeverity.error,
                        category=IssueCategory.linting,
                        rule_id="gh-invalid-job",
                        suggestion="Define the job as a mapping with runs-on and steps",
                    )
                )
                continue

            # Jobs calling a reusable workflow take neither runs-on nor steps
            if job.get("uses"):
                continue

            if not job.get("runs-on"):
                context.add_issue(
                    Issue(
                        title=f'Job "{job_name}" missing runs-on',
                        description="Every job must specify which runner to use",
                        severity=IssueSeverity.error,
                        category=IssueCategory.linting,
                        rule_id="gh-missing-runs-on",
                        suggestion='Add "runs-on" field with a runner',
                        example_code="runs-on: ubuntu-latest",
                        fixable=True,
                        estimated_fix_time="30 seconds",
                    )
                )

            if grants_write(job.get("permissions")):
                context.add_issue(
                    Issue(
                        title=f'Overly broad permissions in job "{job_name}"',
                        description="Job has broad write permissions which may be unnecessary",
                        severity=IssueSeverity.warning,
                        category=IssueCategory.security,
                        rule_id="gh-job-broad-permissions",
                        suggestion="Use minimal required permissions for this job",
                    )
                )

            steps = job.get("steps")
            if not isinstance(steps, list) or not steps:
                context.add_issue(
                    Issue(
                        title=f"Missing steps in {label}",
                        description="A job must define a non-empty list of steps",
                        severity=IssueSeverity.error,
                        category=IssueCategory.linting,
                        rule_id="gh-missing-steps",
                        suggestion="Add a steps list to the job",
                        example_code="steps:\n  - uses: actions/checkout@v4",
                    )
                )
                continue

            self.analyze_steps(steps, label, context)

    def analyze_steps(self, steps: Any, label: str, context: RuleContext) -> None:
        has_checkout = False
        has_run = False

        for index, step in enumerate(as_list(steps), start=1):
            step = as_mapping(step)
            uses = step.get("uses")
            run = step.get("run")
            where = f"{label}, step {index}"

            if isinstance(uses, str):
                if uses.startswith("actions/checkout"):
                    has_checkout = True
                    if "@" not in uses or any(ref in uses for ref in OUTDATED_CHECKOUT_REFS):
                        context.add_issue(
                            Issue(
                                title=f"Outdated checkout action in {label}",
                                description="Using outdated version of actions/checkout",
                                severity=IssueSeverity.warning,
                                category=IssueCategory.maintainability,
                                rule_id="gh-outdated-checkout",
                                suggestion="Update to actions/checkout@v4",
                                example_code="uses: actions/checkout@v4",
                            )
                        )
                if "@" not in uses:
                    context.add_issue(
                        Issue(
                            title=f"Unpinned action in {where}",
                            description=(
                                "Actions should be pinned to specific versions for security "
                                "and reproducibility"
                            ),
                            severity=IssueSeverity.warning,
                            category=IssueCategory.security,
                            rule_id="gh-unpinned-action",
                            suggestion="Pin action to a specific version or commit SHA",
                            example_code=f"uses: {uses}@v4",
                        )
                    )

            if run:
                has_run = True

            if not uses and not run:
                context.add_issue(
                    Issue(
                        title=f"Step without action in {where}",
                        description='Each step must either "uses" an action or "run" a command',
                        severity=IssueSeverity.error,
                        category=IssueCategory.linting,
                        rule_id="gh-empty-step",
                        suggestion='Add a "uses" or "run" field to the step',
                    )
                )
            elif not step.get("name") and not uses:
                context.add_issue(
                    Issue(
                        title=f"Missing step name in {where}",
                        description="Steps should have descriptive names for better readability",
                        severity=IssueSeverity.info,
                        category=IssueCategory.maintainability,
                        rule_id="gh-missing-step-name",
                        suggestion="Add a descriptive name to the step",
                        fixable=True,
                    )
                )

            env = step.get("env")
            if isinstance(env, dict):
                self._check_env(env, where, context)

        if has_run and not has_checkout:
            context.add_issue(
                Issue(
                    title=f"Missing checkout step in {label}",
                    description="Job has run steps but no checkout action to access repository code",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.linting,
                    rule_id="gh-missing-checkout",
                    suggestion="Add actions/checkout step at the beginning of the job",
                    example_code="- uses: actions/checkout@v4",
                )
            )

    def _check_env(self, env: dict, where: str, context: RuleContext) -> None:
        for key, value in env.items():
            if not isinstance(value, str):
                continue
            key = str(key)
            placeholder = is_placeholder_value(value)

            if (
                any(word in key.lower() for word in SECRET_KEYWORDS)
                and not value.startswith("$")
                and not value.startswith("{{")
                and "${" not in value
                and len(value) > 8
                and not placeholder
            ):
                context.add_issue(
                    Issue(
                        title=f"Potential hardcoded secret in {where}",
                        description=(
                            f'Variable "{key}" may contain a hardcoded secret: '
                            f'"{mask_secret(value)}"'
                        ),
                        severity=IssueSeverity.error,
                        category=IssueCategory.security,
                        rule_id="hardcoded-secret",
                        suggestion=(
                            "Use environment variables or secret management instead of "
                            "hardcoding secrets"
                        ),
                        impact="high",
                        example_code=f"{key}: ${{{{ secrets.{key.upper()} }}}}",
                    )
                )

            if not placeholder and any(p.match(value) for p in SUSPICIOUS_VALUE_PATTERNS):
                context.add_issue(
                    Issue(
                        title=f"Suspicious value pattern in {where}",
                        description=(
                            f'Variable "{key}" contains a suspicious pattern that might be a secret'
                        ),
                        severity=IssueSeverity.warning,
                        category=IssueCategory.security,
                        rule_id="suspicious-secret-pattern",
                        suggestion="Verify this is not a hardcoded secret",
                    )
                )
