"""Performance rules: caching, parallelism, resource use and build speed."""

from __future__ import annotations

import re
from typing import Any, NamedTuple

from cicd.rules.base import Rule, RuleContext
from cicd.rules.models import (
    Impact,
    Issue,
    IssueCategory,
    IssueSeverity,
    Optimization,
    RuleLevel,
)
from cicd.rules.tree import as_list, as_mapping, iter_jobs, iter_steps, job_needs


class DependencyCommand(NamedTuple):
    command: str
    cache: str
    path: str
    lock_file: str


DEPENDENCY_COMMANDS: tuple[DependencyCommand, ...] = (
    DependencyCommand("npm install", "npm", "~/.npm", "package-lock.json"),
    DependencyCommand("npm ci", "npm", "~/.npm", "package-lock.json"),
    DependencyCommand("yarn install", "yarn", "~/.cache/yarn", "yarn.lock"),
    DependencyCommand("pnpm install", "pnpm", "~/.pnpm-store", "pnpm-lock.yaml"),
    DependencyCommand("pip install", "pip", "~/.cache/pip", "requirements.txt"),
    DependencyCommand("poetry install", "poetry", "~/.cache/pypoetry", "poetry.lock"),
    DependencyCommand("composer install", "composer", "~/.composer/cache", "composer.lock"),
    DependencyCommand("bundle install", "bundler", "vendor/bundle", "Gemfile.lock"),
    DependencyCommand("go mod download", "go", "~/go/pkg/mod", "go.sum"),
    DependencyCommand("cargo build", "cargo", "~/.cargo", "Cargo.lock"),
    DependencyCommand("mvn", "maven", "~/.m2", "pom.xml"),
    DependencyCommand("gradle", "gradle", "~/.gradle", "gradle.lock"),
    DependencyCommand("dotnet restore", "nuget", "~/.nuget/packages", "packages.lock.json"),
)

_CACHE_KEY = re.compile(r"^[ \t]*(?:-[ \t]*)?key:[ \t]*(\S.*)$", re.MULTILINE)


def cache_example(platform: str, dep: DependencyCommand) -> str:
    if platform == "github-actions":
        return (
            "- uses: actions/cache@v4\n"
            "  with:\n"
            f"    path: {dep.path}\n"
            f"    key: ${{{{ runner.os }}}}-{dep.cache}-${{{{ hashFiles('**/{dep.lock_file}') }}}}\n"
            "    restore-keys: |\n"
            f"      ${{{{ runner.os }}}}-{dep.cache}-"
        )
    if platform == "gitlab-ci":
        return f"cache:\n  key: $CI_COMMIT_REF_SLUG\n  paths:\n    - {dep.path}"
    if platform == "bitbucket-pipelines":
        return f"caches:\n  - {dep.cache}"
    return f"# Add {dep.cache} caching configuration for {platform}"


class CachingRule(Rule):
    id = "caching-optimization"
    name = "Caching Optimization"
    description = "Analyzes and suggests caching improvements"
    category = IssueCategory.performance
    severity = IssueSeverity.info
    level = RuleLevel.intermediate

    def check(self, document: Any, context: RuleContext) -> None:
        lowered = context.raw_text.lower()
        has_caching = "cache" in lowered

        if not has_caching:
            for dep in DEPENDENCY_COMMANDS:
                if dep.command not in lowered:
                    continue
                context.add_optimization(
                    Optimization(
                        title=f"Add {dep.cache} caching",
                        description=(
                            f"Detected {dep.command} without caching - this can "
                            "significantly slow down builds"
                        ),
                        impact=Impact.high,
                        effort=Impact.low,
                        category=IssueCategory.performance,
                        suggestion=(
                            f"Add caching for {dep.cache} dependencies to improve build performance"
                        ),
                        example_code=cache_example(context.platform, dep),
                    )
                )
        else:
            self._check_cache_keys(context)

        if context.platform == "github-actions":
            self._check_restore_keys(document, context)

    def _check_cache_keys(self, context: RuleContext) -> None:
        for found in _CACHE_KEY.finditer(context.raw_text):
            key = found.group(1).strip()
            if "hashFiles" in key or "${{" in key or "$CI_" in key:
                continue
            context.add_issue(
                Issue(
                    title="Static cache key detected",
                    description=(
                        "Cache key should include file hashes to ensure proper cache invalidation"
                    ),
                    severity=IssueSeverity.warning,
                    category=IssueCategory.performance,
                    rule_id="static-cache-key",
                    suggestion="Use hashFiles() function or commit SHA in cache keys",
                    example_code=(
                        "key: ${{ runner.os }}-deps-${{ hashFiles('**/package-lock.json') }}"
                    ),
                    line=context.raw_text.count("\n", 0, found.start()) + 1,
                )
            )

    def _check_restore_keys(self, document: Any, context: RuleContext) -> None:
        for job_name, job in iter_jobs(document):
            for step in iter_steps(job):
                uses = step.get("uses")
                if not isinstance(uses, str) or "cache" not in uses:
                    continue
                if as_mapping(step.get("with")).get("restore-keys"):
                    continue
                context.add_optimization(
                    Optimization(
                        title=f'Add restore-keys to cache in job "{job_name}"',
                        description=(
                            "Cache step missing restore-keys for fallback cache restoration"
                        ),
                        impact=Impact.medium,
                        effort=Impact.low,
                        category=IssueCategory.performance,
                        suggestion="Add restore-keys to improve cache hit rates",
                        example_code="restore-keys: |\n    ${{ runner.os }}-deps-",
                    )
                )


MATRIX_SIMILARITY = 0.7


def step_signature(job: Any) -> list[str]:
    """Coarse per-step fingerprint: the action name or the first run word."""
    signature = []
    for step in as_list(as_mapping(job).get("steps")):
        step = as_mapping(step)
        uses, run = step.get("uses"), step.get("run")
        if isinstance(uses, str) and uses:
            signature.append(f"uses:{uses.split('@')[0]}")
        elif isinstance(run, str) and run:
            signature.append(f"run:{run.split(' ')[0]}")
        else:
            signature.append("unknown")
    return signature


def steps_similar(first: list[str], second: list[str]) -> bool:
    if not first or len(first) != len(second):
        return False
    same = sum(1 for a, b in zip(first, second) if a == b)
    return same / len(first) >= MATRIX_SIMILARITY


def similar_job_groups(document: Any) -> list[list[str]]:
    jobs = [(name, step_signature(job)) for name, job in iter_jobs(document)]
    processed: set[str] = set()
    groups: list[list[str]] = []
    for name, signature in jobs:
        if name in processed:
            continue
        group = [name]
        for other, other_signature in jobs:
            if other != name and other not in processed and steps_similar(signature, other_signature):
                group.append(other)
        if len(group) > 1:
            groups.append(group)
            processed.update(group)
    return groups


class ParallelizationRule(Rule):
    id = "parallelization-analysis"
    name = "Parallelization Analysis"
    description = "Analyzes job dependencies and suggests parallelization improvements"
    category = IssueCategory.performance
    severity = IssueSeverity.info
    level = RuleLevel.senior
    platforms = ("github-actions", "gitlab-ci")

    def check(self, document: Any, context: RuleContext) -> None:
        if context.platform == "github-actions":
            self._check_github(document, context)
        elif context.platform == "gitlab-ci":
            self._check_gitlab(document, context)

    def _check_github(self, document: Any, context: RuleContext) -> None:
        dependencies = {name: job_needs(job) for name, job in iter_jobs(document)}
        if not dependencies:
            return

        independent = [name for name, needs in dependencies.items() if not needs]
        if len(independent) > 1:
            context.add_optimization(
                Optimization(
                    title="Good parallelization detected",
                    description=(
                        f"{len(independent)} jobs can run in parallel: {', '.join(independent)}"
                    ),
                    impact=Impact.low,
                    effort=Impact.low,
                    category=IssueCategory.performance,
                    suggestion="Current parallelization looks optimal",
                )
            )
        elif len(dependencies) > 1 and not independent:
            context.add_optimization(
                Optimization(
                    title="Consider reducing job dependencies",
                    description="All jobs have dependencies, limiting parallelization",
                    impact=Impact.medium,
                    effort=Impact.medium,
                    category=IssueCategory.performance,
                    suggestion="Review if all job dependencies are necessary",
                )
            )

        for name, needs in dependencies.items():
            if len(needs) == 1:
                context.add_optimization(
                    Optimization(
                        title=f'Review dependency for job "{name}"',
                        description=(
                            f'Job "{name}" depends only on "{needs[0]}" - verify if this '
                            "dependency is necessary"
                        ),
                        impact=Impact.low,
                        effort=Impact.low,
                        category=IssueCategory.performance,
                        suggestion="Remove unnecessary job dependencies to improve parallelization",
                    )
                )

        for group in similar_job_groups(document):
            context.add_optimization(
                Optimization(
                    title="Consider matrix strategy",
                    description=(
                        f"Jobs {', '.join(group)} appear similar and could use a matrix strategy"
                    ),
                    impact=Impact.medium,
                    effort=Impact.medium,
                    category=IssueCategory.performance,
                    suggestion="Use matrix strategy to reduce duplication and improve maintainability",
                    example_code=(
                        "strategy:\n  matrix:\n    version: [16, 18, 20]\n"
                        "    os: [ubuntu-latest, windows-latest]"
                    ),
                )
            )

    def _check_gitlab(self, document: Any, context: RuleContext) -> None:
        stages = as_list(as_mapping(document).get("stages"))
        if len(stages) > 5:
            context.add_optimization(
                Optimization(
                    title="Consider reducing pipeline stages",
                    description=(
                        f"Pipeline has {len(stages)} stages which may increase execution time"
                    ),
                    impact=Impact.medium,
                    effort=Impact.medium,
                    category=IssueCategory.performance,
                    suggestion=(
                        "Consider combining related stages or using parallel jobs within stages"
                    ),
                )
            )

        jobs_by_stage: dict[str, list[str]] = {}
        for key, value in as_mapping(document).items():
            stage = as_mapping(value).get("stage")
            if isinstance(stage, str) and stage:
                jobs_by_stage.setdefault(stage, []).append(str(key))

        for stage, jobs in jobs_by_stage.items():
            if len(jobs) > 1:
                context.add_optimization(
                    Optimization(
                        title=f'Parallel jobs in stage "{stage}"',
                        description=f'Stage "{stage}" has {len(jobs)} jobs that can run in parallel',
                        impact=Impact.low,
                        effort=Impact.low,
                        category=IssueCategory.performance,
                        suggestion="Jobs in the same stage run in parallel automatically",
                    )
                )


HEAVY_OPERATIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"docker build", re.IGNORECASE), "Docker build"),
    (re.compile(r"webpack", re.IGNORECASE), "Webpack bundling"),
    (re.compile(r"rollup", re.IGNORECASE), "Rollup bundling"),
    (re.compile(r"parcel build", re.IGNORECASE), "Parcel bundling"),
    (re.compile(r"ng build --prod", re.IGNORECASE), "Angular production build"),
    (re.compile(r"npm run build", re.IGNORECASE), "NPM build script"),
    (re.compile(r"yarn build", re.IGNORECASE), "Yarn build script"),
    (re.compile(r"mvn compile", re.IGNORECASE), "Maven compilation"),
    (re.compile(r"gradle build", re.IGNORECASE), "Gradle build"),
)

MAX_TIMEOUT_MINUTES = 360


class ResourceOptimizationRule(Rule):
    id = "resource-optimization"
    name = "Resource Optimization"
    description = "Analyzes resource usage and suggests optimizations"
    category = IssueCategory.performance
    severity = IssueSeverity.info
    level = RuleLevel.senior

    def check(self, document: Any, context: RuleContext) -> None:
        if context.platform == "github-actions":
            self._check_timeouts(document, context)
            self._check_runner_size(document, context)
        self._check_heavy_operations(context)

    def _check_timeouts(self, document: Any, context: RuleContext) -> None:
        for name, job in iter_jobs(document):
            timeout = job.get("timeout-minutes")
            if not timeout:
                context.add_optimization(
                    Optimization(
                        title=f'Add timeout to job "{name}"',
                        description="Jobs without timeouts can run indefinitely, wasting resources",
                        impact=Impact.medium,
                        effort=Impact.low,
                        category=IssueCategory.cost,
                        suggestion="Add timeout-minutes to prevent runaway jobs",
                        example_code="timeout-minutes: 30",
                    )
                )
            elif isinstance(timeout, (int, float)) and timeout > MAX_TIMEOUT_MINUTES:
                context.add_issue(
                    Issue(
                        title=f'Very long timeout in job "{name}"',
                        description=f"Job timeout of {timeout} minutes is unusually long",
                        severity=IssueSeverity.warning,
                        category=IssueCategory.performance,
                        rule_id="long-timeout",
                        suggestion="Consider optimizing the job or breaking it into smaller jobs",
                    )
                )

    def _check_runner_size(self, document: Any, context: RuleContext) -> None:
        for name, job in iter_jobs(document):
            runner = job.get("runs-on")
            if isinstance(runner, str) and "large" in runner:
                context.add_optimization(
                    Optimization(
                        title=f'Large runner usage in job "{name}"',
                        description=(
                            "Job uses large runners - verify if the extra resources are needed"
                        ),
                        impact=Impact.medium,
                        effort=Impact.low,
                        category=IssueCategory.cost,
                        suggestion="Use standard runners unless high compute is required",
                    )
                )

    def _check_heavy_operations(self, context: RuleContext) -> None:
        detected = [label for pattern, label in HEAVY_OPERATIONS if pattern.search(context.raw_text)]
        if detected and "timeout" not in context.raw_text:
            context.add_optimization(
                Optimization(
                    title="Add timeouts for resource-intensive operations",
                    description=f"Detected heavy operations: {', '.join(detected)}",
                    impact=Impact.medium,
                    effort=Impact.low,
                    category=IssueCategory.performance,
                    suggestion="Add timeout configurations to prevent runaway builds",
                )
            )
        if len(detected) > 1:
            context.add_optimization(
                Optimization(
                    title="Consider parallelizing build operations",
                    description=(
                        "Multiple build operations detected that might benefit from parallelization"
                    ),
                    impact=Impact.high,
                    effort=Impact.medium,
                    category=IssueCategory.performance,
                    suggestion="Split build operations into parallel jobs if they're independent",
                )
            )


BUILD_SHORTCUTS: tuple[tuple[re.Pattern[str], str, str], ...] = (
    (
        re.compile(r"npm install(?!\s+--production)"),
        "Use npm ci for faster installs",
        "Replace 'npm install' with 'npm ci' in CI environments",
    ),
    (
        re.compile(r"docker build(?!.*--cache-from)"),
        "Use Docker build cache",
        "Add --cache-from flag to Docker build commands",
    ),
    (
        re.compile(r"git clone(?!.*--depth)"),
        "Use shallow git clone",
        "Add --depth=1 to git clone for faster checkouts",
    ),
)


class BuildOptimizationRule(Rule):
    id = "build-optimization"
    name = "Build Optimization"
    description = "Faster equivalents for common install, image and clone commands"
    category = IssueCategory.performance
    severity = IssueSeverity.info
    level = RuleLevel.intermediate

    def check(self, document: Any, context: RuleContext) -> None:
        for pattern, title, suggestion in BUILD_SHORTCUTS:
            lines = context.find_pattern_lines(pattern)
            if not lines:
                continue
            context.add_optimization(
                Optimization(
                    title=title,
                    description="Detected opportunity for build optimization",
                    impact=Impact.medium,
                    effort=Impact.low,
                    category=IssueCategory.performance,
                    suggestion=suggestion,
                    line_numbers=tuple(lines),
                )
            )
