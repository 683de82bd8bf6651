"""Data models for aggregated analysis results."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from cicd.rules.models import Impact, Issue, IssueCategory, Optimization, SecurityVulnerability


class SecurityReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: int
    vulnerabilities: list[SecurityVulnerability] = Field(default_factory=list)
    exposed_secrets: int = 0
    unsafe_permissions: int = 0
    recommendations: list[str] = Field(default_factory=list)


class CostBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    compute: float = 0
    storage: float = 0
    network: float = 0
    other: float = 0


class CostEstimation(BaseModel):
    """Monthly cost estimate from a linear jobs/steps model (not a billing simulator)."""

    model_config = ConfigDict(frozen=True)

    current_monthly_cost: float = 0
    optimized_monthly_cost: float = 0
    potential_savings: float = 0
    savings_percentage: int = 0
    recommendations: list[str] = Field(default_factory=list)
    breakdown: CostBreakdown = Field(default_factory=CostBreakdown)


class PerformanceMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    estimated_build_time: float = 0
    parallelization_score: int = 0
    cache_efficiency: float = 0
    resource_utilization: int = 0


class ComplexityMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    cyclomatic_complexity: int = 0
    cognitive_complexity: float = 0
    maintainability_index: int = 0
    lines_of_code: int = 0


class CoverageMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    documentation_coverage: int = 0
    error_handling_coverage: float = 0
    test_coverage: float = 0


class Metrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    jobs_count: int = 0
    steps_count: int = 0
    triggers_count: int = 0
    parallelizable_jobs: int = 0
    cache_usage: int = 0
    security_score: int = 0
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    complexity: ComplexityMetrics = Field(default_factory=ComplexityMetrics)
    coverage: CoverageMetrics = Field(default_factory=CoverageMetrics)


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    priority: Impact
    effort: Impact
    impact: Impact
    category: IssueCategory


class PlatformDetection(BaseModel):
    """Outcome of guessing the platform from filename and structure."""

    model_config = ConfigDict(frozen=True)

    platform: str
    confidence: float = Field(ge=0, le=1)
    indicators: list[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Everything one analysis call produces.

    ``analyzed_at`` is the only wall-clock field; two analyses of the same
    input are otherwise identical.
    """

    model_config = ConfigDict(frozen=True)

    platform: str
    score: int = Field(ge=0, le=100)
    issues: list[Issue] = Field(default_factory=list)
    optimizations: list[Optimization] = Field(default_factory=list)
    security_report: SecurityReport
    cost_estimation: CostEstimation
    recommendations: list[Recommendation] = Field(default_factory=list)
    dependency_graph: str = ""
    metrics: Metrics = Field(default_factory=Metrics)
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
