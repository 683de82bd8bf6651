"""Tests for cost and concurrency rules."""

from __future__ import annotations

from cicd.rules.cost import ConcurrencyRule, CostOptimizationRule
from cicd.rules.models import IssueCategory


def _titles(findings) -> list[str]:
    return [o.title for o in findings.optimizations]


def _workflow(triggers, **jobs) -> dict:
    return {"on": triggers, "jobs": jobs}


class TestCostOptimizationTriggers:
    def test_unfiltered_push(self, make_context, findings) -> None:
        CostOptimizationRule().check(_workflow({"push": None}), make_context(""))
        assert _titles(findings) == ["Optimize build triggers"]
        assert findings.optimizations[0].category == IssueCategory.cost

    def test_filtered_push(self, make_context, findings) -> None:
        document = _workflow({"push": {"branches": ["main"]}})
        CostOptimizationRule().check(document, make_context(""))
        assert findings.optimizations == []

    def test_string_trigger(self, make_context, findings) -> None:
        CostOptimizationRule().check(_workflow("push"), make_context(""))
        assert _titles(findings) == ["Optimize build triggers"]

    def test_hourly_schedule(self, make_context, findings) -> None:
        document = _workflow({"schedule": [{"cron": "0 * * * *"}, {"cron": "0 3 * * 1"}]})
        CostOptimizationRule().check(document, make_context(""))
        assert _titles(findings) == ["Optimize scheduled builds"]

    def test_pull_request_without_paths(self, make_context, findings) -> None:
        document = _workflow({"pull_request": {"branches": ["main"]}})
        CostOptimizationRule().check(document, make_context(""))
        assert _titles(findings) == ["Optimize pull request triggers"]


class TestCostOptimizationJobs:
    def test_expensive_runner(self, make_context, findings) -> None:
        document = _workflow(None, build={"runs-on": "macos-latest"})
        CostOptimizationRule().check(document, make_context(""))

        assert _titles(findings) == ['Expensive runner in job "build"']
        assert findings.optimizations[0].example_code == (
            "runs-on: ubuntu-latest  # Instead of macos-latest"
        )

    def test_large_matrix(self, make_context, findings) -> None:
        matrix = {"os": ["a", "b", "c"], "node": [16, 18, 20], "db": ["x", "y", "z"]}
        document = _workflow(None, test={"runs-on": "ubuntu-latest", "strategy": {"matrix": matrix}})
        CostOptimizationRule().check(document, make_context(""))

        assert [i.rule_id for i in findings.issues] == ["large-matrix-strategy"]
        assert "27 jobs" in findings.issues[0].description

    def test_long_job_without_optimizations(self, make_context, findings) -> None:
        job = {"runs-on": "ubuntu-latest", "timeout-minutes": 90, "steps": [{"run": "make"}]}
        CostOptimizationRule().check(_workflow(None, build=job), make_context(""))
        assert _titles(findings) == ['Optimize long-running job "build"']

    def test_long_job_with_cache(self, make_context, findings) -> None:
        job = {
            "runs-on": "ubuntu-latest",
            "timeout-minutes": 90,
            "steps": [{"uses": "actions/cache@v4"}, {"run": "make"}],
        }
        CostOptimizationRule().check(_workflow(None, build=job), make_context(""))
        assert findings.optimizations == []


class TestCostOptimizationText:
    def test_expensive_runner_keywords(self, make_context, findings) -> None:
        raw = "build:\n  tags:\n    - windows\n  script:\n    - make"
        CostOptimizationRule().check({}, make_context(raw, platform="gitlab-ci"))
        assert _titles(findings) == ["Consider cost-effective runners"]

    def test_broad_artifacts(self, make_context, findings) -> None:
        raw = "build:\n  artifacts:\n    paths:\n      - **/*"
        CostOptimizationRule().check({}, make_context(raw, platform="gitlab-ci"))
        assert _titles(findings) == ["Optimize artifact storage"]

    def test_large_cache_paths(self, make_context, findings) -> None:
        raw = "cache:\n  paths:\n    - node_modules/"
        CostOptimizationRule().check({}, make_context(raw, platform="gitlab-ci"))
        assert _titles(findings) == ["Optimize cache paths"]


class TestConcurrencyRule:
    def test_github_only(self) -> None:
        rule = ConcurrencyRule()
        assert rule.matches_platform("github-actions")
        assert not rule.matches_platform("gitlab-ci")

    def test_missing_concurrency(self, make_context, findings) -> None:
        ConcurrencyRule().check(_workflow({"pull_request": None}), make_context(""))
        assert _titles(findings) == ["Add concurrency control"]

    def test_single_job_manual_dispatch(self, make_context, findings) -> None:
        document = _workflow({"workflow_dispatch": None}, build={"runs-on": "ubuntu-latest"})
        ConcurrencyRule().check(document, make_context(""))
        assert findings.optimizations == []

    def test_multi_job_manual_dispatch(self, make_context, findings) -> None:
        document = _workflow({"workflow_dispatch": None}, a={}, b={})
        ConcurrencyRule().check(document, make_context(""))
        assert _titles(findings) == ["Add concurrency control"]

    def test_group_without_cancel(self, make_context, findings) -> None:
        document = _workflow({"push": None})
        document["concurrency"] = {"group": "ci-${{ github.ref }}"}
        ConcurrencyRule().check(document, make_context(""))
        assert _titles(findings) == ["Enable cancel-in-progress for concurrency"]

    def test_job_level_group_without_cancel(self, make_context, findings) -> None:
        document = _workflow(
            {"push": None},
            deploy={"runs-on": "ubuntu-latest", "concurrency": {"group": "deploy"}},
        )
        document["concurrency"] = {"group": "ci", "cancel-in-progress": True}
        ConcurrencyRule().check(document, make_context(""))
        assert _titles(findings) == ['Enable cancel-in-progress for job "deploy"']
