"""Analysis entry point: validation, platform checks, rules, aggregation."""

from __future__ import annotations

import logging
from typing import Any

from cicd.analysis.cost import estimate_cost
from cicd.analysis.graph import dependency_graph
from cicd.analysis.metrics import compute_metrics
from cicd.analysis.models import AnalysisResult, CostEstimation, Metrics, SecurityReport
from cicd.analysis.scoring import build_recommendations, build_security_report, calculate_score
from cicd.config import AnalysisConfig
from cicd.platforms import PlatformAnalyzer, get_platform_analyzer
from cicd.rules.base import RuleContext
from cicd.rules.engine import RuleEngine
from cicd.rules.models import Issue, IssueCategory, IssueSeverity, RuleFindings

logger = logging.getLogger(__name__)

UNKNOWN_PLATFORM = "unknown"

_default_engine = RuleEngine()


def _is_empty(document: Any) -> bool:
    if document is None:
        return True
    return isinstance(document, (dict, list, str)) and len(document) == 0


def _validate_input(
    document: Any,
    raw_text: str,
    config: AnalysisConfig,
    context: RuleContext,
) -> None:
    size = len(raw_text.encode("utf-8"))
    if size > config.max_file_size:
        context.add_issue(
            Issue(
                title="File size exceeds limit",
                description=(
                    f"File size ({size} bytes) exceeds maximum allowed size "
                    f"({config.max_file_size} bytes)"
                ),
                severity=IssueSeverity.error,
                category=IssueCategory.linting,
                rule_id="file-size-limit",
                fixable=False,
            )
        )

    if _is_empty(document):
        context.add_issue(
            Issue(
                title="Empty configuration",
                description="The YAML configuration appears to be empty",
                severity=IssueSeverity.error,
                category=IssueCategory.syntax,
                rule_id="empty-config",
                fixable=True,
                suggestion="Add valid CI/CD configuration content",
            )
        )
    elif not isinstance(document, dict):
        context.add_issue(
            Issue(
                title="Invalid configuration root",
                description=(
                    f"Expected a mapping at the root level, got {type(document).__name__}"
                ),
                severity=IssueSeverity.error,
                category=IssueCategory.syntax,
                rule_id="invalid-root",
                fixable=False,
                suggestion="The top level of a pipeline configuration must be a mapping of keys",
            )
        )


def _unsupported_platform_issue(platform: str) -> Issue:
    return Issue(
        title="Unsupported platform",
        description=f"Analysis for platform '{platform}' is not supported",
        severity=IssueSeverity.warning,
        category=IssueCategory.linting,
        rule_id="unsupported-platform",
        fixable=False,
        suggestion="Use a supported platform: github-actions, gitlab-ci, or bitbucket-pipelines",
    )


def _run_platform_analysis(
    analyzer: PlatformAnalyzer,
    document: dict,
    context: RuleContext,
) -> None:
    platform = analyzer.platform
    try:
        analyzer.analyze(document, context)
    except Exception as exc:
        logger.exception("Platform analysis failed for %s", platform)
        context.add_issue(
            Issue(
                title=f"Platform analysis error for {platform}",
                description=f"Error during {platform} analysis: {exc}",
                severity=IssueSeverity.error,
                category=IssueCategory.linting,
                rule_id=f"{platform}-analysis-error",
                fixable=False,
            )
        )


def _build_result(platform: str, document: Any, findings: RuleFindings) -> AnalysisResult:
    return AnalysisResult(
        platform=platform,
        score=calculate_score(findings.issues, findings.vulnerabilities),
        issues=findings.issues,
        optimizations=findings.optimizations,
        security_report=build_security_report(findings.issues, findings.vulnerabilities),
        cost_estimation=estimate_cost(document, platform),
        recommendations=build_recommendations(findings.issues, findings.optimizations),
        dependency_graph=dependency_graph(document, platform),
        metrics=compute_metrics(document, platform, findings.vulnerabilities),
    )


def fallback_result(error: Exception) -> AnalysisResult:
    """Structurally valid result explaining an analysis that could not complete."""
    return AnalysisResult(
        platform=UNKNOWN_PLATFORM,
        score=0,
        issues=[
            Issue(
                title="Analysis Failed",
                description=str(error) or type(error).__name__,
                severity=IssueSeverity.error,
                category=IssueCategory.linting,
                rule_id="analysis-error",
                fixable=False,
            )
        ],
        security_report=SecurityReport(overall_score=0),
        cost_estimation=CostEstimation(),
        metrics=Metrics(),
    )


def _analyze(
    document: Any,
    platform: str,
    raw_text: str,
    config: AnalysisConfig,
    engine: RuleEngine,
) -> AnalysisResult:
    findings = RuleFindings()
    context = RuleContext(raw_text, platform, findings)

    _validate_input(document, raw_text, config, context)
    if _is_empty(document):
        return _build_result(platform, {}, findings)

    tree = document if isinstance(document, dict) else {}
    analyzer = get_platform_analyzer(platform)
    if analyzer is None:
        context.add_issue(_unsupported_platform_issue(platform))
    elif isinstance(document, dict):
        _run_platform_analysis(analyzer, document, context)

    findings.extend(
        engine.execute(
            tree,
            raw_text,
            platform,
            level=config.rule_level,
            skip_categories=config.skipped_categories,
        )
    )
    engine.run_custom_rules(config.custom_rules, tree, raw_text, platform, findings)

    logger.info(
        "Analyzed %s configuration: %d issues, %d optimizations, %d vulnerabilities",
        platform,
        len(findings.issues),
        len(findings.optimizations),
        len(findings.vulnerabilities),
    )
    return _build_result(platform, tree, findings)


def analyze(
    document: Any,
    platform: str,
    raw_text: str,
    config: AnalysisConfig | None = None,
    engine: RuleEngine | None = None,
) -> AnalysisResult:
    """Analyze one parsed pipeline configuration.

    Never raises: input problems become issues in the result, and an
    unexpected failure yields :func:`fallback_result`.
    """
    try:
        return _analyze(
            document,
            platform,
            raw_text or "",
            config or AnalysisConfig(),
            engine or _default_engine,
        )
    except Exception as exc:
        logger.exception("Analysis of %s configuration failed", platform)
        return fallback_result(exc)
