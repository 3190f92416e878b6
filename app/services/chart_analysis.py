"""Orchestrates the vision and reasoning stages for one uploaded chart."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.core.errors import ModelNotReadyError, PipelineError, StageError
from app.schemas import ChartAnalysisResponse, WarmupState
from app.services.costs import build_cost_breakdown
from app.services.pattern_analysis import PatternAnalysisService
from app.services.vision import VisionService
from app.services.warmup import WarmupMonitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChartAnalysisRequest:
    """Raw chart upload handed over by the HTTP layer."""

    image_bytes: bytes
    content_type: str = "image/png"


class ChartAnalysisService:
    """Run vision then pattern analysis and price both legs."""

    def __init__(
        self,
        *,
        warmup_monitor: WarmupMonitor,
        vision_service: VisionService,
        pattern_service: PatternAnalysisService,
    ) -> None:
        self._warmup = warmup_monitor
        self._vision = vision_service
        self._patterns = pattern_service

    async def analyze(self, request: ChartAnalysisRequest) -> ChartAnalysisResponse:
        warmup = self._warmup.status()
        if warmup.state is not WarmupState.READY:
            raise ModelNotReadyError(f"Model not ready: {warmup.message}")

        logger.info(
            "Received image: %d bytes, type: %s",
            len(request.image_bytes),
            request.content_type,
        )

        try:
            vision = await self._vision.describe(request.image_bytes, request.content_type)
        except PipelineError as exc:
            logger.error("Vision stage failed: %s", exc)
            raise StageError("vision", exc) from exc

        logger.info("Chart description: %s", vision.description[:200])

        try:
            analysis = await self._patterns.analyze(vision.description)
        except PipelineError as exc:
            logger.error("Analysis stage failed: %s", exc)
            raise StageError("pattern", exc) from exc

        cost = build_cost_breakdown(vision, analysis)
        logger.info(
            "Total cost: $%.6f (vision %.1fs $%.6f + reasoner $%.6f)",
            cost.total_cost_usd,
            cost.vision_seconds,
            cost.vision_cost_usd,
            cost.reasoner_cost_usd,
        )

        return ChartAnalysisResponse(
            pattern=analysis.pattern,
            category=analysis.category,
            direction=analysis.direction,
            confidence=analysis.confidence,
            reasoning=analysis.reasoning,
            chain_of_thought=analysis.chain_of_thought,
            chart_description=vision.description,
            cost=cost,
        )


__all__ = ["ChartAnalysisRequest", "ChartAnalysisService"]
