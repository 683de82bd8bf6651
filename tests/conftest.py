"""Shared test fixtures and configuration."""

import os
import sys
from pathlib import Path

# Add cicd_analyzer/ to Python path so `from cicd.xxx` imports work
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "cicd_analyzer"))

import pytest

os.environ["CICD_DEV_MODE"] = "true"

from cicd.rules.base import RuleContext
from cicd.rules.models import RuleFindings

GITHUB_WORKFLOW = """\
name: CI
on:
  push:
    branches: [main]
jobs:
  build:
    name: Build and test
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - name: Install dependencies
        run: npm ci
      - name: Run tests
        run: npm test
"""

GITLAB_PIPELINE = """\
stages:
  - build
  - test
build-app:
  stage: build
  image: node:20
  script:
    - npm ci
    - npm run build
test-app:
  stage: test
  image: node:20
  script:
    - npm test
"""

BITBUCKET_PIPELINE = """\
image: node:20
pipelines:
  default:
    - step:
        name: Build
        script:
          - npm ci
          - npm run build
"""


@pytest.fixture
def github_workflow() -> str:
    return GITHUB_WORKFLOW


@pytest.fixture
def gitlab_pipeline() -> str:
    return GITLAB_PIPELINE


@pytest.fixture
def bitbucket_pipeline() -> str:
    return BITBUCKET_PIPELINE


@pytest.fixture
def findings() -> RuleFindings:
    return RuleFindings()


@pytest.fixture
def make_context(findings: RuleFindings):
    """Build a RuleContext that writes into the ``findings`` fixture."""

    def _make(raw_text: str = "", platform: str = "github-actions") -> RuleContext:
        return RuleContext(raw_text, platform, findings)

    return _make
