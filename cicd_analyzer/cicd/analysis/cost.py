"""Linear monthly cost model."""

from __future__ import annotations

from typing import Any

from cicd.analysis.metrics import count_jobs, count_steps, round_half_up
from cicd.analysis.models import CostBreakdown, CostEstimation

COST_PER_JOB = 10
COST_PER_STEP = 2
STORAGE_COST = 5
NETWORK_COST = 2
OPTIMIZED_FACTOR = 0.7

COST_RECOMMENDATIONS = (
    "Use caching to reduce build times",
    "Optimize matrix builds to avoid redundancy",
    "Use appropriate runner sizes for workloads",
    "Implement conditional job execution",
    "Use path-based triggers to reduce unnecessary builds",
)


def estimate_cost(document: Any, platform: str) -> CostEstimation:
    compute = COST_PER_JOB * count_jobs(document, platform) + COST_PER_STEP * count_steps(document)
    current = compute + STORAGE_COST + NETWORK_COST
    optimized = current * OPTIMIZED_FACTOR
    savings = current - optimized
    return CostEstimation(
        current_monthly_cost=current,
        optimized_monthly_cost=optimized,
        potential_savings=savings,
        savings_percentage=round_half_up(savings / current * 100),
        recommendations=list(COST_RECOMMENDATIONS),
        breakdown=CostBreakdown(
            compute=compute,
            storage=STORAGE_COST,
            network=NETWORK_COST,
            other=0,
        ),
    )
