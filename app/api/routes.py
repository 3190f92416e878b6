"""
FastAPI routes for the candlestick pattern analyzer.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.core.errors import ModelNotReadyError, StageError
from app.dependencies import (
    get_chart_analysis_service,
    get_patterns,
    get_warmup_monitor,
)
from app.schemas import ChartAnalysisResponse, Pattern, WarmupStatus
from app.services import ChartAnalysisRequest, ChartAnalysisService, WarmupMonitor

router = APIRouter()
logger = logging.getLogger(__name__)

_DEFAULT_CONTENT_TYPE = "image/png"


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/warmup", response_model=WarmupStatus)
async def warmup_status(
    monitor: Annotated[WarmupMonitor, Depends(get_warmup_monitor)],
) -> WarmupStatus:
    """Report vision backend warmup progress for the front end to display."""
    return monitor.status()


@router.get("/patterns", response_model=list[Pattern])
async def list_patterns(
    patterns: Annotated[tuple[Pattern, ...], Depends(get_patterns)],
) -> list[Pattern]:
    return list(patterns)


@router.post("/analyze", response_model=ChartAnalysisResponse)
async def analyze_chart(
    service: Annotated[ChartAnalysisService, Depends(get_chart_analysis_service)],
    image: UploadFile | None = File(default=None),
) -> ChartAnalysisResponse:
    """Describe an uploaded chart and match it against the pattern taxonomy."""
    if image is None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="No image field in request"
        )

    image_bytes = await image.read()
    if not image_bytes:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="Empty image")

    request = ChartAnalysisRequest(
        image_bytes=image_bytes,
        content_type=image.content_type or _DEFAULT_CONTENT_TYPE,
    )

    try:
        return await service.analyze(request)
    except ModelNotReadyError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    except StageError as exc:
        logger.warning("Chart analysis failed: %s", exc)
        raise HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=str(exc)) from exc


__all__ = ["router"]
