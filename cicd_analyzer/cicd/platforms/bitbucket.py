"""Bitbucket Pipelines structure checks."""

from __future__ import annotations

from typing import Any

from cicd.platforms.base import PlatformAnalyzer
from cicd.rules.base import RuleContext
from cicd.rules.models import Issue, IssueCategory, IssueSeverity
from cicd.rules.tree import as_list, as_mapping

# Sections keyed by branch/tag/name, each holding a step list
NAMED_SECTIONS = (
    ("branches", "branch"),
    ("pull-requests", "pull-request"),
    ("tags", "tag"),
    ("custom", "custom"),
)


class BitbucketPipelinesAnalyzer(PlatformAnalyzer):
    platform = "bitbucket-pipelines"

    def job_container(self, document: Any) -> Any:
        return as_mapping(document).get("pipelines")

    def validate_structure(self, document: Any, context: RuleContext) -> list[Issue]:
        reported: list[Issue] = []
        if not as_mapping(as_mapping(document).get("pipelines")):
            self._report(
                context,
                Issue(
                    title="Missing pipelines section",
                    description="Bitbucket Pipelines configuration must contain a pipelines section",
                    severity=IssueSeverity.error,
                    category=IssueCategory.structure,
                    rule_id="bb-missing-pipelines",
                    suggestion="Add a pipelines section with your build configuration",
                    example_code=(
                        "pipelines:\n  default:\n    - step:\n        name: Build\n"
                        "        script:\n          - make build"
                    ),
                    fixable=True,
                ),
                reported,
            )
        return reported

    def analyze_jobs(self, jobs: Any, context: RuleContext) -> None:
        pipelines = as_mapping(jobs)
        if "default" in pipelines:
            self._analyze_section(pipelines["default"], "default", context)
        for key, prefix in NAMED_SECTIONS:
            for name, steps in as_mapping(pipelines.get(key)).items():
                self._analyze_section(steps, f"{prefix} {name}", context)

    def _analyze_section(self, steps: Any, label: str, context: RuleContext) -> None:
        if not isinstance(steps, list):
            context.add_issue(
                Issue(
                    title=f"Missing steps in {label}",
                    description="Each pipeline must be a list of steps",
                    severity=IssueSeverity.error,
                    category=IssueCategory.structure,
                    rule_id="bb-missing-steps",
                    suggestion="Define the pipeline as a list of step entries",
                    example_code="- step:\n    name: Build\n    script:\n      - make build",
                )
            )
            return
        self.analyze_steps(steps, label, context)

    def analyze_steps(self, steps: Any, label: str, context: RuleContext) -> None:
        for entry in as_list(steps):
            entry = as_mapping(entry)

            if "parallel" in entry:
                group = entry["parallel"]
                # newer syntax nests the list under parallel.steps
                if isinstance(group, dict):
                    group = group.get("steps")
                self.analyze_steps(group, f"{label} (parallel)", context)
                continue

            if "stage" in entry:
                stage = as_mapping(entry["stage"])
                self.analyze_steps(stage.get("steps"), f"{label} (stage)", context)
                continue

            if "step" not in entry:
                continue
            step = as_mapping(entry["step"])

            if not step.get("name"):
                context.add_issue(
                    Issue(
                        title=f"Missing step name in {label}",
                        description="Steps should have descriptive names",
                        severity=IssueSeverity.warning,
                        category=IssueCategory.maintainability,
                        rule_id="bb-missing-step-name",
                        suggestion="Add a descriptive name to the step",
                        fixable=True,
                    )
                )

            if not step.get("script"):
                context.add_issue(
                    Issue(
                        title=f"Missing script in {label}",
                        description="Each step must contain a script section",
                        severity=IssueSeverity.error,
                        category=IssueCategory.linting,
                        rule_id="bb-missing-script",
                        suggestion="Add a script section with commands to execute",
                        fixable=True,
                    )
                )
