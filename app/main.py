"""
FastAPI application entrypoint for the candlestick pattern analyzer.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.dependencies import get_http_client, get_patterns, get_warmup_monitor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the taxonomy and kick off vision warmup before serving traffic."""
    get_patterns()
    # Unsupervised: a failed warmup stays failed until the process restarts.
    get_warmup_monitor().start()
    try:
        yield
    finally:
        await get_http_client().aclose()
        logger.info("Upstream HTTP client closed")


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Candlestick Pattern Analyzer",
        version="0.1.0",
        description="Vision plus reasoning pipeline that names candlestick patterns.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
