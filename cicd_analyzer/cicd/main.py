"""FastAPI application -- CI/CD Analyzer entrypoint."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

import cicd.deps as deps
from cicd.api.analyze import router as analyze_router
from cicd.config import load_config
from cicd.rules.engine import RuleEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init shared state on startup, clear it on shutdown."""
    log_level = logging.DEBUG if os.environ.get("CICD_DEV_MODE") else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    deps._config = load_config()
    logger.info(
        "CI/CD Analyzer starting with options: %s",
        deps._config.model_dump(exclude={"custom_rules"}),
    )

    deps._rule_engine = RuleEngine()
    logger.info("Rule engine loaded with %d rules", len(deps._rule_engine.rules))

    yield

    # Shutdown
    deps._config = None
    deps._rule_engine = None


app = FastAPI(
    title="CI/CD Analyzer",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(analyze_router)
