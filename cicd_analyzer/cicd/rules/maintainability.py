"""Maintainability rules: documentation, naming conventions and complexity."""

from __future__ import annotations

import math
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
from cicd.rules.tree import as_mapping, get_path, iter_jobs, iter_steps, matrix_size

MIN_JOB_NAME_LENGTH = 5
COMPLEX_RUN_LENGTH = 100
COMMENT_WINDOW = 3
MIN_COMMENT_RATIO = 0.1
MIN_LINES_FOR_COMMENTS = 20

_CONDITION_LINE = re.compile(r"if:|when:|condition:")
_SCRIPT_LINE = re.compile(r"^\s*- run:|script:")
_INLINE_LOGIC = re.compile(r"\$|\|\|")


def _is_comment(line: str) -> bool:
    return line.strip().startswith("#")


class DocumentationRule(Rule):
    id = "documentation-standards"
    name = "Documentation Standards"
    description = "Ensures proper documentation and naming conventions"
    category = IssueCategory.maintainability
    severity = IssueSeverity.info
    level = RuleLevel.junior

    def check(self, document: Any, context: RuleContext) -> None:
        self._check_jobs(document, context)
        self._check_steps(document, context)
        self._check_comment_coverage(context)
        self._check_comment_ratio(context)

    def _check_jobs(self, document: Any, context: RuleContext) -> None:
        for job_name, job in iter_jobs(document):
            name = job.get("name")
            if not isinstance(name, str) or len(name) < MIN_JOB_NAME_LENGTH:
                context.add_issue(
                    Issue(
                        title=f'Missing or too short name for job "{job_name}"',
                        description="Job names should be at least 5 characters long for clarity",
                        severity=IssueSeverity.info,
                        category=IssueCategory.maintainability,
                        rule_id="short-job-name",
                        suggestion=f"Use a more descriptive 'name' field for job \"{job_name}\"",
                        fixable=True,
                    )
                )

            if not job.get("description") and not self._has_nearby_comment(job_name, context):
                context.add_optimization(
                    Optimization(
                        title=f'Add description to job "{job_name}"',
                        description="Complex jobs should have descriptions explaining their purpose",
                        impact=Impact.low,
                        effort=Impact.low,
                        category=IssueCategory.maintainability,
                        suggestion="Add a description field or comment explaining the job's purpose",
                    )
                )

    def _check_steps(self, document: Any, context: RuleContext) -> None:
        for job_name, job in iter_jobs(document):
            for step in iter_steps(job):
                run = step.get("run")
                if isinstance(run, str) and len(run) > COMPLEX_RUN_LENGTH and not step.get("name"):
                    context.add_issue(
                        Issue(
                            title=f'Complex step without name in job "{job_name}"',
                            description="Complex run commands should have descriptive names",
                            severity=IssueSeverity.warning,
                            category=IssueCategory.maintainability,
                            rule_id="complex-step-no-name",
                            suggestion="Add a descriptive name to complex run commands",
                        )
                    )

    def _check_comment_coverage(self, context: RuleContext) -> None:
        if any(_is_comment(line) for line in context.lines):
            return
        complexity = 0
        for line in context.lines:
            stripped = line.strip()
            if _CONDITION_LINE.search(stripped):
                complexity += 1
            if _SCRIPT_LINE.search(stripped):
                complexity += 1
            if len(stripped) > COMPLEX_RUN_LENGTH and _INLINE_LOGIC.search(stripped):
                complexity += 1
        if complexity >= 3:
            context.add_optimization(
                Optimization(
                    title="Consider clarifying complex sections",
                    description=(
                        "The configuration includes logic or structures that may benefit "
                        "from inline clarification."
                    ),
                    impact=Impact.medium,
                    effort=Impact.low,
                    category=IssueCategory.maintainability,
                    suggestion=(
                        "Add brief comments to explain tricky conditions, scripts, or workflows."
                    ),
                )
            )

    def _check_comment_ratio(self, context: RuleContext) -> None:
        total = len(context.lines)
        comments = sum(1 for line in context.lines if _is_comment(line))
        if total > MIN_LINES_FOR_COMMENTS and comments / total < MIN_COMMENT_RATIO:
            context.add_optimization(
                Optimization(
                    title="Add documentation comments",
                    description="Configuration lacks sufficient documentation comments",
                    impact=Impact.medium,
                    effort=Impact.low,
                    category=IssueCategory.maintainability,
                    suggestion="Add comments explaining complex configurations and workflows",
                )
            )

    @staticmethod
    def _has_nearby_comment(job_name: str, context: RuleContext) -> bool:
        lines = context.lines
        marker = f"{job_name}:"
        index = next((i for i, line in enumerate(lines) if marker in line), -1)
        if index == -1:
            return False
        start = max(0, index - COMMENT_WINDOW)
        end = min(len(lines) - 1, index + COMMENT_WINDOW)
        return any(_is_comment(lines[i]) for i in range(start, end + 1))


_KEBAB_CASE = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")
_SNAKE_CASE = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")
_SCREAMING_SNAKE_CASE = re.compile(r"^[A-Z][A-Z0-9]*(_[A-Z0-9]+)*$")
_TITLE_CASE = re.compile(r"^[A-Z][a-z]*(\s[A-Z][a-z]*)*$")
_SENTENCE_CASE = re.compile(r"^[A-Z][a-z\s]*$")
_GENERIC_JOB_NAME = re.compile(r"^(job|step|task)\d*$", re.IGNORECASE)
_ENV_REFERENCE = re.compile(r"\$\{?([A-Z_][A-Z0-9_]*)\}?")

ACTION_VERBS = frozenset(
    {
        "build", "test", "deploy", "install", "setup", "configure", "run",
        "execute", "create", "generate", "validate", "check", "verify",
        "upload", "download", "publish", "release", "clean", "prepare",
    }
)


def is_kebab_or_snake(name: str) -> bool:
    return bool(_KEBAB_CASE.match(name) or _SNAKE_CASE.match(name))


def starts_with_action_verb(name: str) -> bool:
    return name.lower().split(" ")[0] in ACTION_VERBS


class NamingConventionsRule(Rule):
    id = "naming-conventions"
    name = "Naming Conventions"
    description = "Enforces consistent naming conventions across the pipeline"
    category = IssueCategory.maintainability
    severity = IssueSeverity.info
    level = RuleLevel.intermediate

    def check(self, document: Any, context: RuleContext) -> None:
        self._check_job_names(document, context)
        self._check_step_names(document, context)
        self._check_variable_names(document, context)
        self._check_environment_names(document, context)

    def _naming_issue(self, title: str, description: str, rule_id: str, suggestion: str) -> Issue:
        return Issue(
            title=title,
            description=description,
            severity=IssueSeverity.info,
            category=IssueCategory.maintainability,
            rule_id=rule_id,
            suggestion=suggestion,
        )

    def _check_job_names(self, document: Any, context: RuleContext) -> None:
        for job_name, _ in iter_jobs(document):
            if not is_kebab_or_snake(job_name):
                context.add_issue(
                    self._naming_issue(
                        f'Inconsistent job naming: "{job_name}"',
                        "Job names should use kebab-case or snake_case for consistency",
                        "job-naming-convention",
                        "Use kebab-case (my-job) or snake_case (my_job) for job names",
                    )
                )
            if len(job_name) < 3 or _GENERIC_JOB_NAME.match(job_name):
                context.add_issue(
                    self._naming_issue(
                        f'Non-descriptive job name: "{job_name}"',
                        "Job names should be descriptive of their purpose",
                        "non-descriptive-job-name",
                        "Use descriptive names like 'build-and-test' or 'deploy-to-staging'",
                    )
                )

    def _check_step_names(self, document: Any, context: RuleContext) -> None:
        for job_name, job in iter_jobs(document):
            for step in iter_steps(job):
                step_name = step.get("name")
                if not isinstance(step_name, str) or not step_name:
                    continue
                if not (_TITLE_CASE.match(step_name) or _SENTENCE_CASE.match(step_name)):
                    context.add_issue(
                        self._naming_issue(
                            f'Inconsistent step naming in job "{job_name}"',
                            f'Step "{step_name}" should use Title Case or Sentence case',
                            "step-naming-convention",
                            "Use 'Title Case' or 'Sentence case' for step names",
                        )
                    )
                if not starts_with_action_verb(step_name):
                    context.add_optimization(
                        Optimization(
                            title="Use action verbs in step names",
                            description=(
                                f'Step "{step_name}" could be more descriptive with an action verb'
                            ),
                            impact=Impact.low,
                            effort=Impact.low,
                            category=IssueCategory.maintainability,
                            suggestion=(
                                "Start step names with action verbs like 'Build', 'Test', 'Deploy'"
                            ),
                        )
                    )

    def _check_variable_names(self, document: Any, context: RuleContext) -> None:
        seen: set[str] = set()
        for match in _ENV_REFERENCE.finditer(context.raw_text):
            var_name = match.group(1)
            if var_name in seen or _SCREAMING_SNAKE_CASE.match(var_name):
                continue
            seen.add(var_name)
            context.add_issue(
                self._naming_issue(
                    f'Inconsistent environment variable naming: "{var_name}"',
                    "Environment variables should use SCREAMING_SNAKE_CASE",
                    "env-var-naming",
                    "Use SCREAMING_SNAKE_CASE for environment variables",
                )
            )

        for var_name in as_mapping(as_mapping(document).get("env")):
            var_name = str(var_name)
            if not _SCREAMING_SNAKE_CASE.match(var_name):
                context.add_issue(
                    self._naming_issue(
                        f'Inconsistent workflow variable naming: "{var_name}"',
                        "Workflow variables should use SCREAMING_SNAKE_CASE",
                        "workflow-var-naming",
                        "Use SCREAMING_SNAKE_CASE for workflow variables",
                    )
                )

    def _check_environment_names(self, document: Any, context: RuleContext) -> None:
        for _, job in iter_jobs(document):
            environment = job.get("environment")
            if isinstance(environment, dict):
                environment = environment.get("name")
            if isinstance(environment, str) and environment and not is_kebab_or_snake(environment):
                context.add_issue(
                    self._naming_issue(
                        f'Inconsistent environment naming: "{environment}"',
                        "Environment names should use kebab-case or snake_case",
                        "environment-naming",
                        "Use kebab-case or snake_case for environment names",
                    )
                )


MAX_JOB_COMPLEXITY = 20
MAX_NESTING_DEPTH = 6
MAX_CONDITIONALS = 10
CONDITIONAL_KEYS = frozenset({"if", "when", "condition"})


def nesting_depth(node: Any, depth: int = 0, _ancestors: frozenset[int] = frozenset()) -> int:
    """Deepest container level below *node*; scalars and empty containers add nothing.

    A container reached again through its own descendants is not re-entered.
    """
    if isinstance(node, dict):
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return depth
    if id(node) in _ancestors:
        return depth
    inner = _ancestors | {id(node)}
    return max((nesting_depth(child, depth + 1, inner) for child in children), default=depth)


def count_conditionals(node: Any, _ancestors: frozenset[int] = frozenset()) -> int:
    if not isinstance(node, (dict, list)) or id(node) in _ancestors:
        return 0
    inner = _ancestors | {id(node)}
    if isinstance(node, dict):
        return sum(
            (1 if key in CONDITIONAL_KEYS else 0) + count_conditionals(value, inner)
            for key, value in node.items()
        )
    return sum(count_conditionals(item, inner) for item in node)


def job_complexity(job: dict) -> float:
    score = 0.0
    steps = list(iter_steps(job))
    if isinstance(job.get("steps"), list):
        score += len(job["steps"])
    for step in steps:
        if step.get("if"):
            score += 2
        run = step.get("run")
        if isinstance(run, str) and len(run) > 200:
            score += 1
    matrix = get_path(job, "strategy.matrix")
    if isinstance(matrix, dict):
        size = matrix_size(matrix)
        if size > 0:
            score += math.log2(size)
    services = job.get("services")
    if isinstance(services, dict):
        score += len(services)
    return score


def _step_key(step: dict) -> str:
    uses = step.get("uses")
    if uses:
        return f"uses:{str(uses).split('@')[0]}"
    run = step.get("run")
    if run:
        return f"run:{str(run)[:50]}"
    return "unknown"


def duplicated_step_patterns(document: Any) -> dict[str, list[str]]:
    """Map each run of up to three consecutive step keys to the jobs sharing it."""
    patterns: dict[str, list[str]] = {}
    for job_name, job in iter_jobs(document):
        keys = [_step_key(step) for step in iter_steps(job)]
        for i in range(len(keys) - 1):
            jobs = patterns.setdefault(" -> ".join(keys[i:i + 3]), [])
            if job_name not in jobs:
                jobs.append(job_name)
    return {pattern: jobs for pattern, jobs in patterns.items() if len(jobs) > 1}


class ComplexityRule(Rule):
    id = "complexity-analysis"
    name = "Complexity Analysis"
    description = "Analyzes pipeline complexity and suggests simplifications"
    category = IssueCategory.maintainability
    severity = IssueSeverity.info
    level = RuleLevel.senior

    def check(self, document: Any, context: RuleContext) -> None:
        for job_name, job in iter_jobs(document):
            score = job_complexity(job)
            if score > MAX_JOB_COMPLEXITY:
                context.add_issue(
                    Issue(
                        title=f'High complexity in job "{job_name}"',
                        description=(
                            f"Job has complexity score of {math.floor(score + 0.5)} "
                            "- consider breaking it down"
                        ),
                        severity=IssueSeverity.warning,
                        category=IssueCategory.maintainability,
                        rule_id="high-job-complexity",
                        suggestion="Break complex jobs into smaller, focused jobs",
                    )
                )

        depth = nesting_depth(document)
        if depth > MAX_NESTING_DEPTH:
            context.add_issue(
                Issue(
                    title="Deep nesting detected",
                    description=f"Configuration has nesting depth of {depth} levels",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.maintainability,
                    rule_id="deep-nesting",
                    suggestion="Consider flattening the configuration structure",
                )
            )

        conditionals = count_conditionals(document)
        if conditionals > MAX_CONDITIONALS:
            context.add_issue(
                Issue(
                    title="High conditional complexity",
                    description=f"Configuration has {conditionals} conditional statements",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.maintainability,
                    rule_id="high-conditional-complexity",
                    suggestion=(
                        "Consider simplifying conditional logic or using reusable workflows"
                    ),
                )
            )

        for pattern, jobs in duplicated_step_patterns(document).items():
            if len(jobs) > 2:
                context.add_optimization(
                    Optimization(
                        title="Duplicated step patterns detected",
                        description=f'Pattern "{pattern}" is repeated in jobs: {", ".join(jobs)}',
                        impact=Impact.medium,
                        effort=Impact.medium,
                        category=IssueCategory.maintainability,
                        suggestion=(
                            "Consider extracting common steps into reusable workflows "
                            "or composite actions"
                        ),
                    )
                )
