"""Tests for caching, parallelization, resource and build rules."""

from __future__ import annotations

from cicd.rules.models import Impact, IssueCategory
from cicd.rules.performance import (
    BuildOptimizationRule,
    CachingRule,
    ParallelizationRule,
    ResourceOptimizationRule,
    similar_job_groups,
    step_signature,
    steps_similar,
)


def _job(*steps: dict, **fields) -> dict:
    job = {"runs-on": "ubuntu-latest", "steps": list(steps)}
    job.update(fields)
    return job


def _titles(findings) -> list[str]:
    return [o.title for o in findings.optimizations]


class TestCachingRule:
    def test_suggests_cache_per_install_command(self, make_context, findings) -> None:
        raw = "run: npm install && npm ci\nrun: pip install -r requirements.txt"
        CachingRule().check({}, make_context(raw))

        assert _titles(findings) == ["Add npm caching", "Add npm caching", "Add pip caching"]
        assert findings.optimizations[0].description.startswith("Detected npm install ")
        assert findings.optimizations[1].description.startswith("Detected npm ci ")
        npm = findings.optimizations[0]
        assert npm.impact == Impact.high
        assert npm.effort == Impact.low
        assert "actions/cache@v4" in npm.example_code
        assert "package-lock.json" in npm.example_code

    def test_example_follows_platform(self, make_context, findings) -> None:
        CachingRule().check({}, make_context("script:\n  - npm install", platform="gitlab-ci"))
        assert findings.optimizations[0].example_code.startswith("cache:\n  key: $CI_COMMIT_REF_SLUG")

    def test_bitbucket_example(self, make_context, findings) -> None:
        CachingRule().check({}, make_context("- pip install .", platform="bitbucket-pipelines"))
        assert findings.optimizations[0].example_code == "caches:\n  - pip"

    def test_static_cache_key(self, make_context, findings) -> None:
        raw = "cache:\n  key: my-static-key\n  paths:\n    - .npm/"
        CachingRule().check({}, make_context(raw, platform="gitlab-ci"))

        assert [i.rule_id for i in findings.issues] == ["static-cache-key"]
        assert findings.issues[0].line == 2
        assert findings.optimizations == []

    def test_dynamic_cache_keys_accepted(self, make_context, findings) -> None:
        raw = "cache:\n  key: $CI_COMMIT_REF_SLUG\n  paths:\n    - .npm/"
        CachingRule().check({}, make_context(raw, platform="gitlab-ci"))
        assert findings.issues == []

    def test_missing_restore_keys(self, make_context, findings) -> None:
        document = {
            "jobs": {
                "build": _job(
                    {
                        "uses": "actions/cache@v4",
                        "with": {"path": "~/.npm", "key": "${{ hashFiles('**/package-lock.json') }}"},
                    }
                )
            }
        }
        raw = "- uses: actions/cache@v4\n  with:\n    key: ${{ hashFiles('x') }}"
        CachingRule().check(document, make_context(raw))
        assert _titles(findings) == ['Add restore-keys to cache in job "build"']


class TestStepSimilarity:
    def test_signature(self) -> None:
        job = _job({"uses": "actions/checkout@v4"}, {"run": "npm test --ci"}, {"name": "noop"})
        assert step_signature(job) == ["uses:actions/checkout", "run:npm", "unknown"]

    def test_similarity_threshold(self) -> None:
        assert steps_similar(["a", "b", "c"], ["a", "b", "c"]) is True
        assert steps_similar(["a", "b", "c"], ["a", "b", "x"]) is False
        assert steps_similar([], []) is False
        assert steps_similar(["a"], ["a", "b"]) is False

    def test_groups(self) -> None:
        steps = ({"uses": "actions/checkout@v4"}, {"run": "make test"})
        document = {"jobs": {"a": _job(*steps), "b": _job(*steps), "c": _job({"run": "deploy"})}}
        assert similar_job_groups(document) == [["a", "b"]]


class TestParallelizationRule:
    def test_platform_scope(self) -> None:
        rule = ParallelizationRule()
        assert rule.matches_platform("github-actions")
        assert rule.matches_platform("gitlab-ci")
        assert not rule.matches_platform("bitbucket-pipelines")

    def test_independent_jobs(self, make_context, findings) -> None:
        document = {"jobs": {name: {"runs-on": "ubuntu-latest"} for name in "abcde"}}
        ParallelizationRule().check(document, make_context(""))

        assert _titles(findings) == ["Good parallelization detected"]
        assert findings.optimizations[0].description == (
            "5 jobs can run in parallel: a, b, c, d, e"
        )

    def test_fully_dependent_jobs(self, make_context, findings) -> None:
        document = {
            "jobs": {
                "build": {"needs": "setup"},
                "deploy": {"needs": ["build", "test"]},
            }
        }
        ParallelizationRule().check(document, make_context(""))
        assert _titles(findings) == [
            "Consider reducing job dependencies",
            'Review dependency for job "build"',
        ]

    def test_matrix_suggestion(self, make_context, findings) -> None:
        steps = ({"uses": "actions/checkout@v4"}, {"run": "npm test"})
        document = {"jobs": {"node18": _job(*steps), "node20": _job(*steps)}}
        ParallelizationRule().check(document, make_context(""))
        assert "Consider matrix strategy" in _titles(findings)

    def test_gitlab_stages(self, make_context, findings) -> None:
        document = {
            "stages": ["lint", "build", "test", "package", "scan", "deploy"],
            "build-api": {"stage": "build", "script": ["make api"]},
            "build-web": {"stage": "build", "script": ["make web"]},
            "deploy": {"stage": "deploy", "script": ["make deploy"]},
        }
        ParallelizationRule().check(document, make_context("", platform="gitlab-ci"))
        assert _titles(findings) == [
            "Consider reducing pipeline stages",
            'Parallel jobs in stage "build"',
        ]


class TestResourceOptimizationRule:
    def test_missing_timeout(self, make_context, findings) -> None:
        document = {"jobs": {"build": _job({"run": "make"})}}
        ResourceOptimizationRule().check(document, make_context("timeout"))

        assert _titles(findings) == ['Add timeout to job "build"']
        assert findings.optimizations[0].category == IssueCategory.cost

    def test_very_long_timeout(self, make_context, findings) -> None:
        document = {"jobs": {"build": _job({"run": "make"}, **{"timeout-minutes": 400})}}
        ResourceOptimizationRule().check(document, make_context("timeout-minutes: 400"))
        assert [i.rule_id for i in findings.issues] == ["long-timeout"]

    def test_large_runner(self, make_context, findings) -> None:
        job = _job({"run": "make"}, **{"runs-on": "ubuntu-latest-large", "timeout-minutes": 30})
        ResourceOptimizationRule().check({"jobs": {"build": job}}, make_context("timeout"))
        assert _titles(findings) == ['Large runner usage in job "build"']

    def test_heavy_operations(self, make_context, findings) -> None:
        raw = "script:\n  - docker build -t app .\n  - npm run build"
        ResourceOptimizationRule().check({}, make_context(raw, platform="gitlab-ci"))

        assert _titles(findings) == [
            "Add timeouts for resource-intensive operations",
            "Consider parallelizing build operations",
        ]
        assert "Docker build, NPM build script" in findings.optimizations[0].description


class TestBuildOptimizationRule:
    def test_shortcuts(self, make_context, findings) -> None:
        raw = (
            "- npm install\n"
            "- docker build -t app .\n"
            "- git clone https://example.org/repo.git\n"
            "- git clone --depth=1 https://example.org/other.git"
        )
        BuildOptimizationRule().check({}, make_context(raw))

        by_title = {o.title: o for o in findings.optimizations}
        assert set(by_title) == {
            "Use npm ci for faster installs",
            "Use Docker build cache",
            "Use shallow git clone",
        }
        assert by_title["Use npm ci for faster installs"].line_numbers == (1,)
        assert by_title["Use shallow git clone"].line_numbers == (3,)

    def test_already_optimized(self, make_context, findings) -> None:
        raw = "- npm ci\n- docker build --cache-from app:prev -t app ."
        BuildOptimizationRule().check({}, make_context(raw))
        assert findings.optimizations == []
