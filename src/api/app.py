"""
Collectibles Appraiser — FastAPI Application Factory

Usage:
    from src.api.app import create_app

    app = create_app()
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.errors import setup_error_handlers
from src.api.routes import router
from src.config import settings

logger = structlog.get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log configured capabilities once at startup. Credentials are never logged."""
    if not settings.ANTHROPIC_API_KEY:
        logger.warning("config_anthropic_api_key_missing", note="every appraisal request will answer 500")
    logger.info(
        "appraiser_startup_complete",
        version=VERSION,
        model=settings.ORACLE_MODEL_ID,
        tavily_enabled=bool(settings.TAVILY_API_KEY),
        serper_enabled=bool(settings.SERPER_API_KEY),
        pokemontcg_enabled=bool(settings.POKEMONTCG_API_KEY),
        deadline_seconds=settings.REQUEST_DEADLINE_SECONDS,
    )
    yield
    logger.info("appraiser_shutdown_complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    app = FastAPI(
        title="Collectibles Appraiser",
        description="Collectible identification, price enrichment and appraisal reports",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    setup_error_handlers(app)
    app.include_router(router)
    return app
