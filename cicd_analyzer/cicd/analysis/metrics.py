"""Heuristic metrics computed from the parsed document.

String indicators are searched in the compact JSON serialization of the
document; lines of code come from the two-space-indented serialization.
Percentages round half up.
"""

from __future__ import annotations

import math
import re
from typing import Any

from cicd.analysis.models import ComplexityMetrics, CoverageMetrics, Metrics, PerformanceMetrics
from cicd.rules.models import SecurityVulnerability
from cicd.rules.tree import as_list, as_mapping, compact_json, pretty_json

CACHE_INDICATORS = ("cache", "restore", "save")
CONDITIONAL_KEYWORDS = ("if", "when", "condition", "only", "except")
ERROR_HANDLING_INDICATORS = ("continue-on-error", "allow_failure", "on_failure", "catch", "try")
TEST_INDICATORS = ("test", "spec", "coverage", "junit")
MAX_COGNITIVE_COMPLEXITY = 50


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _jobs(document: Any) -> dict:
    return as_mapping(as_mapping(document).get("jobs"))


def _indicator_ratio(text: str, indicators: tuple[str, ...]) -> float:
    found = sum(1 for indicator in indicators if indicator in text)
    return min(100, found / len(indicators) * 100)


# ---------------------------------------------------------------------------
# Counts
# ---------------------------------------------------------------------------


def count_jobs(document: Any, platform: str) -> int:
    root = as_mapping(document)
    if platform == "github-actions":
        return len(_jobs(root))
    if platform == "gitlab-ci":
        return sum(1 for value in root.values() if isinstance(value, dict) and value.get("script"))
    if platform == "bitbucket-pipelines":
        pipelines = as_mapping(root.get("pipelines"))
        count = len(as_list(pipelines.get("default")))
        for steps in as_mapping(pipelines.get("branches")).values():
            count += len(as_list(steps))
        return count
    container = root.get("jobs") or root.get("stages")
    return len(container) if isinstance(container, (dict, list)) else 0


def count_steps(document: Any) -> int:
    return sum(
        len(as_list(as_mapping(job).get("steps"))) for job in _jobs(document).values()
    )


def count_triggers(document: Any) -> int:
    root = as_mapping(document)
    triggers = root.get("on", root.get(True))
    if isinstance(triggers, (list, dict)):
        return len(triggers)
    if isinstance(triggers, str) and triggers:
        return 1
    return 0


def count_parallelizable_jobs(document: Any) -> int:
    return sum(1 for job in _jobs(document).values() if not as_mapping(job).get("needs"))


def cache_usage(document: Any, platform: str) -> int:
    total = count_jobs(document, platform)
    if total == 0:
        return 0
    occurrences = compact_json(document).lower().count("cache")
    return min(100, round_half_up(occurrences / total * 100))


def security_score(vulnerabilities: list[SecurityVulnerability]) -> int:
    return max(0, 100 - 10 * len(vulnerabilities))


# ---------------------------------------------------------------------------
# Sub-bundles
# ---------------------------------------------------------------------------


def performance_metrics(document: Any) -> PerformanceMetrics:
    jobs = _jobs(document)
    text = compact_json(document).lower()

    total = len(jobs)
    if total <= 1:
        parallelization = 100
    else:
        dependent = sum(1 for job in jobs.values() if as_mapping(job).get("needs"))
        parallelization = round_half_up((total - dependent) / total * 100)

    utilization = 50
    if "ubuntu" in text:
        utilization += 20
    if "timeout" in text:
        utilization += 15
    if "matrix" in text:
        utilization += 10
    if "cache" in text:
        utilization += 5

    return PerformanceMetrics(
        estimated_build_time=max(5, total * 2 + count_steps(document) * 0.5),
        parallelization_score=parallelization,
        cache_efficiency=_indicator_ratio(text, CACHE_INDICATORS),
        resource_utilization=min(100, utilization),
    )


def cyclomatic_complexity(document: Any) -> int:
    text = compact_json(document)
    return 1 + sum(
        len(re.findall(keyword, text, re.IGNORECASE)) for keyword in CONDITIONAL_KEYWORDS
    )


def complexity_metrics(document: Any) -> ComplexityMetrics:
    cyclomatic = cyclomatic_complexity(document)
    lines_of_code = len(pretty_json(document).split("\n"))
    index = max(0.0, 171 - 5.2 * math.log(lines_of_code) - 0.23 * cyclomatic)
    return ComplexityMetrics(
        cyclomatic_complexity=cyclomatic,
        cognitive_complexity=min(cyclomatic * 1.2, MAX_COGNITIVE_COMPLEXITY),
        maintainability_index=round_half_up(index),
        lines_of_code=lines_of_code,
    )


def coverage_metrics(document: Any) -> CoverageMetrics:
    jobs = _jobs(document)
    text = compact_json(document).lower()

    if jobs:
        documented = sum(
            1
            for job in jobs.values()
            if as_mapping(job).get("name") or as_mapping(job).get("description")
        )
        documentation = round_half_up(documented / len(jobs) * 100)
    else:
        documentation = 100

    return CoverageMetrics(
        documentation_coverage=documentation,
        error_handling_coverage=_indicator_ratio(text, ERROR_HANDLING_INDICATORS),
        test_coverage=_indicator_ratio(text, TEST_INDICATORS),
    )


def compute_metrics(
    document: Any,
    platform: str,
    vulnerabilities: list[SecurityVulnerability],
) -> Metrics:
    return Metrics(
        jobs_count=count_jobs(document, platform),
        steps_count=count_steps(document),
        triggers_count=count_triggers(document),
        parallelizable_jobs=count_parallelizable_jobs(document),
        cache_usage=cache_usage(document, platform),
        security_score=security_score(vulnerabilities),
        performance=performance_metrics(document),
        complexity=complexity_metrics(document),
        coverage=coverage_metrics(document),
    )
