"""Tests for the GitLab CI structure analyzer."""

from __future__ import annotations

from cicd.parser.yaml_loader import parse
from cicd.platforms import GitLabCIAnalyzer
from cicd.platforms.gitlab import gitlab_jobs, image_name, is_untagged


def _analyze(document, make_context, findings) -> list[str]:
    GitLabCIAnalyzer().analyze(document, make_context("", platform="gitlab-ci"))
    return [i.rule_id for i in findings.issues]


class TestHelpers:
    def test_jobs_exclude_reserved_and_hidden_keys(self) -> None:
        document = {
            "stages": ["build"],
            "variables": {"A": "1"},
            "default": {"image": "node:20"},
            ".template": {"script": ["echo"]},
            "build": {"script": ["make"]},
            "notes": "not a job",
        }
        assert list(gitlab_jobs(document)) == ["build"]

    def test_image_name(self) -> None:
        assert image_name("node:20") == "node:20"
        assert image_name({"name": "python:3.12", "entrypoint": [""]}) == "python:3.12"
        assert image_name("") is None
        assert image_name(None) is None

    def test_untagged(self) -> None:
        assert is_untagged("python")
        assert is_untagged("registry.example.com:5000/team/app")
        assert not is_untagged("registry.example.com:5000/team/app:1.4")
        assert not is_untagged("alpine@sha256:abcdef")


class TestGitLabCIAnalyzer:
    def test_valid_pipeline(self, gitlab_pipeline, make_context, findings) -> None:
        assert _analyze(parse(gitlab_pipeline), make_context, findings) == []

    def test_no_stages_or_jobs(self, make_context, findings) -> None:
        assert _analyze({"variables": {"A": "1"}}, make_context, findings) == [
            "gl-no-stages-jobs"
        ]

    def test_job_without_stage_or_script(self, make_context, findings) -> None:
        document = {"stages": ["build"], "build": {"image": "node:20"}}
        assert _analyze(document, make_context, findings) == [
            "gl-missing-stage",
            "gl-missing-script",
        ]
        assert findings.issues[1].title == 'Missing script in job "build"'

    def test_extends_and_trigger_jobs(self, make_context, findings) -> None:
        document = {
            "stages": ["test", "deploy"],
            ".base": {"stage": "test", "script": ["make test"]},
            "unit": {"extends": ".base"},
            "downstream": {"stage": "deploy", "trigger": "group/project"},
        }
        assert _analyze(document, make_context, findings) == []

    def test_empty_script(self, make_context, findings) -> None:
        document = {"stages": ["build"], "build": {"stage": "build", "script": [None, "  "]}}
        assert _analyze(document, make_context, findings) == ["gl-empty-script"]

    def test_string_script(self, make_context, findings) -> None:
        document = {"stages": ["build"], "build": {"stage": "build", "script": "make"}}
        assert _analyze(document, make_context, findings) == []

    def test_untagged_images(self, make_context, findings) -> None:
        document = {
            "image": "python",
            "stages": ["build"],
            "build": {"stage": "build", "image": {"name": "node"}, "script": ["make"]},
        }
        assert _analyze(document, make_context, findings) == [
            "gl-untagged-image",
            "gl-untagged-image",
        ]
        titles = [i.title for i in findings.issues]
        assert titles == ['Untagged image in job "build"', "Untagged image in the default image"]
