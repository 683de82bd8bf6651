"""Common interface for per-platform structural analyzers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from cicd.rules.base import RuleContext
from cicd.rules.models import Issue


class PlatformAnalyzer(ABC):
    """Validates the structure a CI/CD platform requires.

    Findings are written through the RuleContext sinks. ``validate_structure``
    also returns the issues it reported, for callers that want them directly,
    but the sink is the record of truth. Analyzers hold no state.
    """

    platform: ClassVar[str]

    def analyze(self, document: Any, context: RuleContext) -> None:
        self.validate_structure(document, context)
        self.analyze_jobs(self.job_container(document), context)

    @abstractmethod
    def job_container(self, document: Any) -> Any:
        """Return the part of *document* that holds the jobs."""
        ...

    @abstractmethod
    def validate_structure(self, document: Any, context: RuleContext) -> list[Issue]:
        """Check required top-level fields."""
        ...

    @abstractmethod
    def analyze_jobs(self, jobs: Any, context: RuleContext) -> None:
        """Per-job checks over the platform's job container."""
        ...

    @abstractmethod
    def analyze_steps(self, steps: Any, label: str, context: RuleContext) -> None:
        """Per-step checks; *label* names the enclosing job or pipeline."""
        ...

    @staticmethod
    def _report(context: RuleContext, issue: Issue, reported: list[Issue] | None = None) -> None:
        context.add_issue(issue)
        if reported is not None:
            reported.append(issue)
