"""Analysis API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from cicd.analysis.engine import analyze
from cicd.analysis.models import AnalysisResult, PlatformDetection
from cicd.config import AnalysisConfig
from cicd.deps import get_config, get_rule_engine
from cicd.parser.platform import detect_platform
from cicd.parser.yaml_loader import ParseError, parse
from cicd.platforms import SUPPORTED_PLATFORMS
from cicd.rules.engine import RuleEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analyze"])

AUTO_PLATFORM = "auto"
MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB


class AnalyzeRequest(BaseModel):
    content: str = Field(..., description="Raw pipeline configuration text")
    filename: str | None = Field(None, description="Original file name, used for detection")
    platform: str = Field(
        AUTO_PLATFORM,
        description="github-actions, gitlab-ci, bitbucket-pipelines or 'auto'",
    )
    strict_mode: bool | None = None
    enable_security_analysis: bool | None = None
    enable_performance_analysis: bool | None = None
    enable_cost_analysis: bool | None = None


class AnalyzeResponse(AnalysisResult):
    platform_detection: PlatformDetection


class ServiceInfo(BaseModel):
    message: str
    version: str
    endpoints: dict[str, str]


class PlatformsResponse(BaseModel):
    platforms: list[str]


def _effective_config(base: AnalysisConfig, body: AnalyzeRequest) -> AnalysisConfig:
    overrides = {
        field: value
        for field, value in body.model_dump(
            include={
                "strict_mode",
                "enable_security_analysis",
                "enable_performance_analysis",
                "enable_cost_analysis",
            }
        ).items()
        if value is not None
    }
    return base.model_copy(update=overrides) if overrides else base


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_configuration(
    body: AnalyzeRequest,
    config: AnalysisConfig = Depends(get_config),
    engine: RuleEngine = Depends(get_rule_engine),
) -> AnalyzeResponse:
    """Parse and analyze a pipeline configuration."""
    if not body.content.strip():
        raise HTTPException(status_code=400, detail="No content provided")

    if len(body.content.encode("utf-8")) > MAX_CONTENT_SIZE:
        raise HTTPException(
            status_code=413,
            detail="Content too large: YAML content must be less than 10MB",
        )

    try:
        document = parse(body.content)
    except ParseError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": e.message, "line": e.line, "column": e.column},
        )

    detection = detect_platform(document, body.filename)
    platform = detection.platform if body.platform == AUTO_PLATFORM else body.platform

    result = analyze(
        document,
        platform,
        body.content,
        _effective_config(config, body),
        engine,
    )
    logger.info(
        "Analysis of %s (%s) scored %d",
        body.filename or "inline content",
        result.platform,
        result.score,
    )
    return AnalyzeResponse(**result.model_dump(), platform_detection=detection)


@router.get("/analyze", response_model=ServiceInfo)
async def service_info() -> ServiceInfo:
    return ServiceInfo(
        message="CI/CD Analyzer API",
        version="0.1.0",
        endpoints={
            "analyze": "POST /api/analyze",
            "platforms": "GET /api/platforms",
        },
    )


@router.get("/platforms", response_model=PlatformsResponse)
async def list_platforms() -> PlatformsResponse:
    return PlatformsResponse(platforms=list(SUPPORTED_PLATFORMS))
