"""Cost rules: trigger breadth, runner classes, matrix size, storage, concurrency."""

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
from cicd.rules.tree import (
    as_list,
    as_mapping,
    get_path,
    iter_jobs,
    iter_steps,
    matrix_size,
    trigger_map,
)

EXPENSIVE_RUNNERS = ("macos", "windows", "large", "xlarge", "2xlarge", "4xlarge")
EXPENSIVE_RUNNER_WORDS = ("macos", "windows", "gpu", "large")
MAX_MATRIX_JOBS = 20
LONG_JOB_MINUTES = 60

BROAD_ARTIFACT_PATTERNS = (
    re.compile(r"artifacts:[\s\S]*?- \*\*"),
    re.compile(r"artifacts:[\s\S]*?- \./\*\*"),
    re.compile(r"path:.*\*\*"),
)
LARGE_CACHE_PATTERNS = (
    re.compile(r"node_modules"),
    re.compile(r"\.git\b"),
    re.compile(r"target/debug"),
)


class CostOptimizationRule(Rule):
    id = "cost-optimization"
    name = "Cost Optimization"
    description = "Analyzes and suggests cost optimization opportunities"
    category = IssueCategory.cost
    severity = IssueSeverity.info
    level = RuleLevel.senior

    def check(self, document: Any, context: RuleContext) -> None:
        if context.platform == "github-actions":
            self._check_triggers(document, context)
            self._check_job_runners(document, context)
            self._check_matrix_size(document, context)
            self._check_long_jobs(document, context)
        else:
            self._check_runner_text(context)
        self._check_storage(context)

    def _check_triggers(self, document: Any, context: RuleContext) -> None:
        triggers = trigger_map(document)

        if "push" in triggers:
            push = as_mapping(triggers["push"])
            if not push.get("branches") and not push.get("paths"):
                context.add_optimization(
                    Optimization(
                        title="Optimize build triggers",
                        description="Builds trigger on all pushes without branch or path filters",
                        impact=Impact.high,
                        effort=Impact.low,
                        category=IssueCategory.cost,
                        suggestion="Add branch and path filters to reduce unnecessary builds",
                        example_code=(
                            "on:\n  push:\n    branches: [main, develop]\n    paths:\n"
                            "      - 'src/**'\n      - 'package.json'\n"
                            "      - '.github/workflows/**'"
                        ),
                    )
                )

        schedules = triggers.get("schedule")
        if isinstance(schedules, dict):
            schedules = [schedules]
        for schedule in as_list(schedules):
            cron = as_mapping(schedule).get("cron")
            if isinstance(cron, str):
                fields = cron.split()
                if len(fields) > 1 and fields[1] == "*":
                    context.add_optimization(
                        Optimization(
                            title="Optimize scheduled builds",
                            description="Hourly scheduled builds may be excessive",
                            impact=Impact.medium,
                            effort=Impact.low,
                            category=IssueCategory.cost,
                            suggestion="Consider reducing frequency of scheduled builds",
                        )
                    )

        if "pull_request" in triggers and not as_mapping(triggers["pull_request"]).get("paths"):
            context.add_optimization(
                Optimization(
                    title="Optimize pull request triggers",
                    description="PR builds run on all file changes",
                    impact=Impact.medium,
                    effort=Impact.low,
                    category=IssueCategory.cost,
                    suggestion="Add path filters to PR triggers to avoid unnecessary builds",
                )
            )

    def _check_job_runners(self, document: Any, context: RuleContext) -> None:
        for name, job in iter_jobs(document):
            runner = job.get("runs-on")
            if not isinstance(runner, str):
                continue
            if any(word in runner.lower() for word in EXPENSIVE_RUNNERS):
                context.add_optimization(
                    Optimization(
                        title=f'Expensive runner in job "{name}"',
                        description=(
                            f"Job uses {runner} - consider if cheaper alternatives are suitable"
                        ),
                        impact=Impact.high,
                        effort=Impact.low,
                        category=IssueCategory.cost,
                        suggestion="Use ubuntu-latest for platform-independent tasks",
                        example_code=f"runs-on: ubuntu-latest  # Instead of {runner}",
                    )
                )

    def _check_runner_text(self, context: RuleContext) -> None:
        lowered = context.raw_text.lower()
        if any(word in lowered for word in EXPENSIVE_RUNNER_WORDS):
            context.add_optimization(
                Optimization(
                    title="Consider cost-effective runners",
                    description=(
                        "Detected usage of expensive runners (macOS, Windows, GPU, or large instances)"
                    ),
                    impact=Impact.high,
                    effort=Impact.medium,
                    category=IssueCategory.cost,
                    suggestion=(
                        "Use Linux runners when possible and right-size your compute resources"
                    ),
                )
            )

    def _check_matrix_size(self, document: Any, context: RuleContext) -> None:
        for name, job in iter_jobs(document):
            matrix = get_path(job, "strategy.matrix")
            if not isinstance(matrix, dict):
                continue
            size = matrix_size(matrix)
            if size > MAX_MATRIX_JOBS:
                context.add_issue(
                    Issue(
                        title=f'Large matrix strategy in job "{name}"',
                        description=f"Matrix will create {size} jobs, which may be excessive",
                        severity=IssueSeverity.warning,
                        category=IssueCategory.cost,
                        rule_id="large-matrix-strategy",
                        suggestion="Consider reducing matrix dimensions or using include/exclude",
                        example_code=(
                            "strategy:\n  matrix:\n    node-version: [16, 18, 20]\n"
                            "    exclude:\n      - node-version: 16\n        os: windows-latest"
                        ),
                    )
                )

    def _check_long_jobs(self, document: Any, context: RuleContext) -> None:
        for name, job in iter_jobs(document):
            timeout = job.get("timeout-minutes")
            if not isinstance(timeout, (int, float)) or timeout <= LONG_JOB_MINUTES:
                continue
            optimized = any(
                "cache" in str(step.get("uses", ""))
                or "parallel" in str(step.get("run", ""))
                or "--jobs" in str(step.get("run", ""))
                for step in iter_steps(job)
            )
            if not optimized:
                context.add_optimization(
                    Optimization(
                        title=f'Optimize long-running job "{name}"',
                        description=(
                            f"Job has {timeout} minute timeout but no visible optimizations"
                        ),
                        impact=Impact.medium,
                        effort=Impact.medium,
                        category=IssueCategory.cost,
                        suggestion=(
                            "Add caching, parallelization, or other optimizations to reduce build time"
                        ),
                    )
                )

    def _check_storage(self, context: RuleContext) -> None:
        raw = context.raw_text
        if any(p.search(raw) for p in BROAD_ARTIFACT_PATTERNS):
            context.add_optimization(
                Optimization(
                    title="Optimize artifact storage",
                    description=(
                        "Detected potentially large artifact patterns that increase storage costs"
                    ),
                    impact=Impact.medium,
                    effort=Impact.low,
                    category=IssueCategory.cost,
                    suggestion="Be specific about which files to store as artifacts",
                    example_code=(
                        "artifacts:\n  paths:\n    - dist/\n    - build/\n  exclude:\n"
                        '    - "**/*.log"\n    - "**/node_modules/"\n    - "**/.git/"'
                    ),
                )
            )

        if "cache" in raw and any(p.search(raw) for p in LARGE_CACHE_PATTERNS):
            context.add_optimization(
                Optimization(
                    title="Optimize cache paths",
                    description="Cache includes potentially large directories",
                    impact=Impact.low,
                    effort=Impact.low,
                    category=IssueCategory.cost,
                    suggestion="Exclude unnecessary files from cache to reduce storage costs",
                )
            )


CONCURRENCY_EXAMPLE = (
    "concurrency:\n"
    "  group: ${{ github.workflow }}-${{ github.ref }}\n"
    "  cancel-in-progress: true"
)


class ConcurrencyRule(Rule):
    id = "concurrency-optimization"
    name = "Concurrency Optimization"
    description = "Optimizes concurrency settings to reduce costs and improve efficiency"
    category = IssueCategory.cost
    severity = IssueSeverity.info
    level = RuleLevel.intermediate
    platforms = ("github-actions",)

    def check(self, document: Any, context: RuleContext) -> None:
        root = as_mapping(document)
        concurrency = root.get("concurrency")

        if not concurrency:
            triggers = trigger_map(document)
            job_count = sum(1 for _ in iter_jobs(document))
            if (
                "pull_request" in triggers
                or "push" in triggers
                or ("workflow_dispatch" in triggers and job_count > 1)
            ):
                context.add_optimization(
                    Optimization(
                        title="Add concurrency control",
                        description=(
                            "Concurrency control can save resources by cancelling outdated runs"
                        ),
                        impact=Impact.medium,
                        effort=Impact.low,
                        category=IssueCategory.cost,
                        suggestion="Add concurrency group to cancel outdated runs",
                        example_code=CONCURRENCY_EXAMPLE,
                    )
                )
        elif isinstance(concurrency, dict) and not concurrency.get("cancel-in-progress"):
            context.add_optimization(
                Optimization(
                    title="Enable cancel-in-progress for concurrency",
                    description="Concurrency group should cancel outdated runs to save resources",
                    impact=Impact.low,
                    effort=Impact.low,
                    category=IssueCategory.cost,
                    suggestion="Add cancel-in-progress: true to concurrency configuration",
                )
            )

        for name, job in iter_jobs(document):
            job_concurrency = job.get("concurrency")
            if isinstance(job_concurrency, dict) and not job_concurrency.get("cancel-in-progress"):
                context.add_optimization(
                    Optimization(
                        title=f'Enable cancel-in-progress for job "{name}"',
                        description="Job-level concurrency should cancel outdated runs",
                        impact=Impact.low,
                        effort=Impact.low,
                        category=IssueCategory.cost,
                        suggestion="Add cancel-in-progress: true to job concurrency",
                    )
                )
