"""Tests for heuristic metrics, the cost model and the dependency graph."""

from __future__ import annotations

from datetime import date

import pytest

from cicd.analysis.cost import COST_RECOMMENDATIONS, estimate_cost
from cicd.analysis.graph import PLACEHOLDER_GRAPH, SINGLE_JOB_GRAPH, dependency_graph, node_id
from cicd.analysis.metrics import (
    cache_usage,
    complexity_metrics,
    compute_metrics,
    count_jobs,
    count_parallelizable_jobs,
    count_steps,
    count_triggers,
    coverage_metrics,
    cyclomatic_complexity,
    performance_metrics,
    round_half_up,
    security_score,
)
from cicd.rules.models import SecurityVulnerability, VulnerabilitySeverity
from cicd.rules.tree import compact_json, pretty_json

WORKFLOW = {
    "on": {"push": None, "pull_request": None},
    "jobs": {
        "build": {"name": "Build", "runs-on": "ubuntu-latest", "steps": [{"run": "a"}, {"run": "b"}]},
        "test": {"runs-on": "ubuntu-latest", "needs": "build", "steps": [{"run": "c"}]},
    },
}


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (66.666, 67)]
    )
    def test_rounding(self, value, expected) -> None:
        assert round_half_up(value) == expected


class TestCounts:
    def test_github_counts(self) -> None:
        assert count_jobs(WORKFLOW, "github-actions") == 2
        assert count_steps(WORKFLOW) == 3
        assert count_triggers(WORKFLOW) == 2
        assert count_parallelizable_jobs(WORKFLOW) == 1

    def test_trigger_shapes(self) -> None:
        assert count_triggers({"on": "push"}) == 1
        assert count_triggers({"on": ["push", "release"]}) == 2
        assert count_triggers({True: {"push": None}}) == 1
        assert count_triggers({}) == 0

    def test_gitlab_jobs_need_script(self) -> None:
        document = {"stages": ["a"], "build": {"script": ["make"]}, "docs": {"stage": "a"}}
        assert count_jobs(document, "gitlab-ci") == 1

    def test_bitbucket_default_and_branches(self) -> None:
        document = {
            "pipelines": {
                "default": [{"step": {}}, {"step": {}}],
                "branches": {"main": [{"step": {}}]},
                "tags": {"v*": [{"step": {}}]},
            }
        }
        assert count_jobs(document, "bitbucket-pipelines") == 3

    def test_other_platforms(self) -> None:
        assert count_jobs({"jobs": {"a": {}, "b": {}}}, "circleci") == 2
        assert count_jobs({"stages": ["x", "y", "z"]}, "azure-pipelines") == 3
        assert count_jobs({}, "unknown") == 0

    def test_cache_usage(self) -> None:
        document = {"jobs": {"a": {"steps": [{"uses": "actions/cache@v4"}]}, "b": {}}}
        assert cache_usage(document, "github-actions") == 50
        assert cache_usage({}, "github-actions") == 0

    def test_security_score(self) -> None:
        vuln = SecurityVulnerability(
            title="x", description="x", severity=VulnerabilitySeverity.low, recommendation="x"
        )
        assert security_score([]) == 100
        assert security_score([vuln] * 3) == 70
        assert security_score([vuln] * 11) == 0


class TestSubBundles:
    def test_performance(self) -> None:
        perf = performance_metrics(WORKFLOW)
        assert perf.estimated_build_time == 5.5
        assert perf.parallelization_score == 50
        assert perf.cache_efficiency == 0
        assert perf.resource_utilization == 70

    def test_performance_single_job(self) -> None:
        perf = performance_metrics({"jobs": {"a": {}}})
        assert perf.parallelization_score == 100
        assert perf.estimated_build_time == 5

    def test_cyclomatic(self) -> None:
        assert cyclomatic_complexity({}) == 1
        assert cyclomatic_complexity({"a": {"if": "x"}, "b": {"when": "manual"}}) == 3

    def test_complexity(self) -> None:
        metrics = complexity_metrics({"a": 1})
        assert metrics.lines_of_code == 3
        assert metrics.cyclomatic_complexity == 1
        assert metrics.cognitive_complexity == 1.2
        assert 0 <= metrics.maintainability_index <= 171

    def test_coverage(self) -> None:
        coverage = coverage_metrics(WORKFLOW)
        assert coverage.documentation_coverage == 50
        assert coverage.error_handling_coverage == 0
        assert coverage.test_coverage == 25

    def test_coverage_without_jobs(self) -> None:
        assert coverage_metrics({}).documentation_coverage == 100

    def test_compute_metrics(self) -> None:
        metrics = compute_metrics(WORKFLOW, "github-actions", [])
        assert metrics.jobs_count == 2
        assert metrics.steps_count == 3
        assert metrics.triggers_count == 2
        assert metrics.parallelizable_jobs == 1
        assert metrics.security_score == 100


class TestEstimateCost:
    def test_linear_model(self) -> None:
        cost = estimate_cost(WORKFLOW, "github-actions")
        # 2 jobs * 10 + 3 steps * 2 + storage 5 + network 2
        assert cost.current_monthly_cost == 33
        assert cost.optimized_monthly_cost == pytest.approx(23.1)
        assert cost.potential_savings == pytest.approx(9.9)
        assert cost.savings_percentage == 30
        assert cost.breakdown.compute == 26
        assert cost.breakdown.storage == 5
        assert cost.breakdown.network == 2
        assert cost.breakdown.other == 0
        assert cost.recommendations == list(COST_RECOMMENDATIONS)

    def test_empty_document(self) -> None:
        cost = estimate_cost({}, "github-actions")
        assert cost.current_monthly_cost == 7
        assert cost.breakdown.compute == 0


class TestDependencyGraph:
    def test_node_id(self) -> None:
        assert node_id("build-and test.1") == "build_and_test_1"

    def test_edges(self) -> None:
        graph = dependency_graph(WORKFLOW, "github-actions")
        assert graph == (
            "graph TD\n"
            '    build["build"]\n'
            '    build["build"] --> test["test"]\n'
        )

    def test_list_needs(self) -> None:
        document = {"jobs": {"a": {}, "b": {}, "c-d": {"needs": ["a", "b"]}}}
        graph = dependency_graph(document, "github-actions")
        assert '    a["a"] --> c_d["c-d"]\n' in graph
        assert '    b["b"] --> c_d["c-d"]\n' in graph

    def test_single_job(self) -> None:
        assert dependency_graph({"jobs": {"a": {}}}, "github-actions") == SINGLE_JOB_GRAPH

    def test_placeholders(self) -> None:
        assert dependency_graph({}, "github-actions") == PLACEHOLDER_GRAPH
        assert dependency_graph(WORKFLOW, "gitlab-ci") == PLACEHOLDER_GRAPH


class TestJsonSerialization:
    def test_non_string_keys(self) -> None:
        document = {"variables": {date(2024, 1, 1): "release", True: 1, 3: None}}
        assert compact_json(document) == (
            '{"variables":{"2024-01-01":"release","true":1,"3":null}}'
        )

    def test_date_values(self) -> None:
        assert pretty_json({"day": date(2024, 1, 1)}) == '{\n  "day": "2024-01-01"\n}'

    def test_self_reference_becomes_null(self) -> None:
        loop: list = [1]
        loop.append(loop)
        assert compact_json({"a": loop}) == '{"a":[1,null]}'

    def test_shared_subtree_is_not_a_cycle(self) -> None:
        shared = {"k": "v"}
        assert compact_json([shared, shared]) == '[{"k":"v"},{"k":"v"}]'

    def test_metrics_with_date_keys(self) -> None:
        document = {"variables": {date(2024, 1, 1): "release"}, "build": {"script": ["make"]}}
        assert cache_usage(document, "gitlab-ci") == 0
        assert complexity_metrics(document).lines_of_code == 10
