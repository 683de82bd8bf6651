"""Guess the CI/CD platform of a configuration from its filename and shape."""

from __future__ import annotations

import logging
from typing import Any

from cicd.analysis.models import PlatformDetection
from cicd.rules.tree import as_mapping

logger = logging.getLogger(__name__)

UNKNOWN_PLATFORM = "unknown"
FILENAME_CONFIDENCE = 0.8
LOW_CONFIDENCE = 0.5


def _from_filename(filename: str) -> tuple[str, str] | None:
    """Return ``(platform, indicator)`` suggested by the file name, if any."""
    name = filename.lower().replace("\\", "/")
    basename = name.rsplit("/", 1)[-1]

    if ".github/workflows/" in name or "workflow" in name:
        return "github-actions", "github-workflow-path"
    if basename == ".gitlab-ci.yml" or "gitlab" in name:
        return "gitlab-ci", "gitlab-filename"
    if basename == "bitbucket-pipelines.yml":
        return "bitbucket-pipelines", "bitbucket-filename"
    if basename == "azure-pipelines.yml" or "azure" in name:
        return "azure-pipelines", "azure-filename"
    if ".circleci/config.yml" in name:
        return "circleci", "circleci-path"
    if basename == "jenkinsfile" or "jenkins" in name:
        return "jenkins", "jenkins-filename"
    return None


def _from_structure(root: dict) -> tuple[str, str, float] | None:
    """Return ``(platform, indicator, confidence)`` suggested by top-level keys."""
    has_triggers = root.get("on") or root.get(True)
    if has_triggers and root.get("jobs"):
        return "github-actions", "github-actions-structure", 0.9
    if root.get("pipelines"):
        return "bitbucket-pipelines", "bitbucket-pipelines-structure", 0.9
    if any(root.get(key) for key in ("stages", "before_script", "after_script", "script")):
        return "gitlab-ci", "gitlab-ci-structure", 0.7
    if root.get("trigger") or root.get("pool") or (root.get("variables") and root.get("jobs")):
        return "azure-pipelines", "azure-devops-structure", 0.6
    version = root.get("version")
    if isinstance(version, (int, float)) and not isinstance(version, bool) and root.get("jobs"):
        return "circleci", "circleci-structure", 0.7
    if root.get("pipeline") or root.get("agent"):
        return "jenkins", "jenkins-structure", 0.5
    return None


def detect_platform(document: Any, filename: str | None = None) -> PlatformDetection:
    """Detect the platform; document structure wins over the filename."""
    platform = UNKNOWN_PLATFORM
    confidence = 0.0
    indicators: list[str] = []

    if filename:
        hint = _from_filename(filename)
        if hint is not None:
            platform, indicator = hint
            indicators.append(indicator)
            confidence = FILENAME_CONFIDENCE

    shape = _from_structure(as_mapping(document))
    if shape is not None:
        platform, indicator, structure_confidence = shape
        indicators.append(indicator)
        confidence = max(confidence, structure_confidence)

    detection = PlatformDetection(
        platform=platform,
        confidence=min(1.0, confidence),
        indicators=indicators,
    )
    if detection.confidence < LOW_CONFIDENCE:
        logger.warning("Low confidence platform detection: %s", detection)
    return detection
