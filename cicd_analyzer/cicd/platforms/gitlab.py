"""GitLab CI structure checks."""

from __future__ import annotations

from typing import Any

from cicd.platforms.base import PlatformAnalyzer
from cicd.rules.base import RuleContext
from cicd.rules.models import Issue, IssueCategory, IssueSeverity
from cicd.rules.tree import as_mapping

# Top-level keys that configure the pipeline rather than define a job
RESERVED_KEYWORDS = frozenset(
    {
        "stages",
        "variables",
        "image",
        "services",
        "before_script",
        "after_script",
        "cache",
        "include",
        "workflow",
        "default",
        "types",
    }
)


def gitlab_jobs(document: Any) -> dict[str, dict]:
    """Mapping-valued top-level entries that are jobs (hidden ``.templates`` excluded)."""
    return {
        str(key): value
        for key, value in as_mapping(document).items()
        if isinstance(value, dict)
        and str(key) not in RESERVED_KEYWORDS
        and not str(key).startswith(".")
    }


def image_name(image: Any) -> str | None:
    if isinstance(image, dict):
        image = image.get("name")
    return image if isinstance(image, str) and image else None


def is_untagged(image: str) -> bool:
    if "@" in image:
        return False
    # registry host may carry a port, so only the last path segment counts
    return ":" not in image.rsplit("/", 1)[-1]


class GitLabCIAnalyzer(PlatformAnalyzer):
    platform = "gitlab-ci"

    def job_container(self, document: Any) -> Any:
        return gitlab_jobs(document)

    def analyze(self, document: Any, context: RuleContext) -> None:
        super().analyze(document, context)
        image = image_name(as_mapping(document).get("image"))
        if image is not None:
            self._check_image(image, "the default image", context)

    def validate_structure(self, document: Any, context: RuleContext) -> list[Issue]:
        reported: list[Issue] = []
        root = as_mapping(document)
        has_script_job = any(job.get("script") for job in gitlab_jobs(root).values())

        if not root.get("stages") and not has_script_job:
            self._report(
                context,
                Issue(
                    title="No stages or jobs defined",
                    description="GitLab CI should define either stages or jobs with scripts",
                    severity=IssueSeverity.error,
                    category=IssueCategory.linting,
                    rule_id="gl-no-stages-jobs",
                    suggestion="Define stages or add jobs with script sections",
                    fixable=True,
                ),
                reported,
            )
        return reported

    def analyze_jobs(self, jobs: Any, context: RuleContext) -> None:
        for job_name, job in as_mapping(jobs).items():
            label = f'job "{job_name}"'
            extends = job.get("extends")

            if not job.get("stage") and not extends:
                context.add_issue(
                    Issue(
                        title=f'Job "{job_name}" missing stage',
                        description="Jobs should specify which stage they belong to",
                        severity=IssueSeverity.warning,
                        category=IssueCategory.maintainability,
                        rule_id="gl-missing-stage",
                        suggestion="Add stage field to organize job execution",
                        fixable=True,
                    )
                )

            if "script" not in job and not job.get("trigger") and not extends:
                context.add_issue(
                    Issue(
                        title=f"Missing script in {label}",
                        description=(
                            "Jobs must define a script, trigger a downstream pipeline "
                            "or extend a template"
                        ),
                        severity=IssueSeverity.error,
                        category=IssueCategory.linting,
                        rule_id="gl-missing-script",
                        suggestion="Add a script section with commands to execute",
                        example_code='script:\n  - echo "Hello"',
                        fixable=True,
                    )
                )

            if "script" in job:
                self.analyze_steps(job["script"], label, context)

            image = image_name(job.get("image"))
            if image is not None:
                self._check_image(image, label, context)

    def analyze_steps(self, steps: Any, label: str, context: RuleContext) -> None:
        if isinstance(steps, str):
            commands = [steps] if steps.strip() else []
        elif isinstance(steps, list):
            commands = [c for c in steps if c is not None and str(c).strip()]
        else:
            commands = []

        if not commands:
            context.add_issue(
                Issue(
                    title=f"Empty script in {label}",
                    description="Script section contains no commands",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.linting,
                    rule_id="gl-empty-script",
                    suggestion="Add commands to the script section or remove the job",
                )
            )

    @staticmethod
    def _check_image(image: str, where: str, context: RuleContext) -> None:
        if is_untagged(image):
            context.add_issue(
                Issue(
                    title=f"Untagged image in {where}",
                    description=f'Image "{image}" has no tag and resolves to latest',
                    severity=IssueSeverity.warning,
                    category=IssueCategory.best_practice,
                    rule_id="gl-untagged-image",
                    suggestion="Pin the image to a specific version tag or digest",
                    example_code=f"image: {image}:1.0.0",
                )
            )
