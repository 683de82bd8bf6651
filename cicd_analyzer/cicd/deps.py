"""Shared FastAPI dependencies."""

from __future__ import annotations

from cicd.config import AnalysisConfig
from cicd.rules.engine import RuleEngine

_config: AnalysisConfig | None = None
_rule_engine: RuleEngine | None = None


def get_config() -> AnalysisConfig:
    """FastAPI dependency: return the service-wide AnalysisConfig."""
    assert _config is not None, "AnalysisConfig not initialised"
    return _config


def get_rule_engine() -> RuleEngine:
    """FastAPI dependency: return the shared RuleEngine."""
    assert _rule_engine is not None, "RuleEngine not initialised"
    return _rule_engine
