"""Analysis configuration and its loading from options file or environment."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cicd.rules.base import CustomRule
from cicd.rules.models import IssueCategory, RuleLevel

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 1024 * 1024  # 1 MiB


class AnalysisConfig(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    enable_security_analysis: bool = True
    enable_performance_analysis: bool = True
    enable_cost_analysis: bool = True
    max_file_size: int = Field(DEFAULT_MAX_FILE_SIZE, gt=0)
    strict_mode: bool = False
    custom_rules: list[CustomRule] = Field(default_factory=list)

    @property
    def rule_level(self) -> RuleLevel:
        """Strict mode runs every rule; otherwise expert-only rules are skipped."""
        return RuleLevel.expert if self.strict_mode else RuleLevel.senior

    @property
    def skipped_categories(self) -> frozenset[IssueCategory]:
        skipped = set()
        if not self.enable_security_analysis:
            skipped.add(IssueCategory.security)
        if not self.enable_performance_analysis:
            skipped.add(IssueCategory.performance)
        if not self.enable_cost_analysis:
            skipped.add(IssueCategory.cost)
        return frozenset(skipped)


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _load_options() -> dict[str, Any]:
    """Load options from /data/options.json or env fallback."""
    opts_path = os.environ.get("CICD_OPTIONS_PATH", "/data/options.json")
    if Path(opts_path).exists():
        return json.loads(Path(opts_path).read_text())
    return {
        "strict_mode": _env_flag("CICD_STRICT_MODE", False),
        "max_file_size": int(os.environ.get("CICD_MAX_FILE_SIZE", str(DEFAULT_MAX_FILE_SIZE))),
        "enable_security_analysis": _env_flag("CICD_ENABLE_SECURITY", True),
        "enable_performance_analysis": _env_flag("CICD_ENABLE_PERFORMANCE", True),
        "enable_cost_analysis": _env_flag("CICD_ENABLE_COST", True),
    }


def load_config() -> AnalysisConfig:
    """Build the service-wide AnalysisConfig. Unknown option keys are ignored."""
    options = _load_options()
    known = {
        k: v
        for k, v in options.items()
        if k in AnalysisConfig.model_fields and k != "custom_rules"
    }
    ignored = sorted(set(options) - set(known))
    if ignored:
        logger.warning("Ignoring unknown options: %s", ", ".join(ignored))
    return AnalysisConfig(**known)
