"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

import httpx

from app.clients import DeepSeekClient, ReplicateClient
from app.dependencies.config import get_app_settings
from app.schemas import Pattern
from app.services import (
    ChartAnalysisService,
    PatternAnalysisService,
    PredictionPoller,
    VisionService,
    WarmupMonitor,
    load_patterns,
)
from app.utils.http import build_async_client


@lru_cache()
def get_http_client() -> httpx.AsyncClient:
    """Provide the process-wide HTTP client used for every upstream call."""
    settings = get_app_settings()
    return build_async_client(timeout_seconds=settings.polling.http_timeout_seconds)


@lru_cache()
def get_replicate_client() -> ReplicateClient:
    """Provide Replicate client instance."""
    return ReplicateClient(get_app_settings().replicate, get_http_client())


@lru_cache()
def get_deepseek_client() -> DeepSeekClient:
    """Provide DeepSeek client instance."""
    return DeepSeekClient(get_app_settings().deepseek, get_http_client())


@lru_cache()
def get_prediction_poller() -> PredictionPoller:
    """Provide the poller shared by the warmup and request paths."""
    return PredictionPoller(
        get_replicate_client(),
        interval_seconds=get_app_settings().polling.interval_seconds,
    )


@lru_cache()
def get_patterns() -> tuple[Pattern, ...]:
    """Load the pattern taxonomy once per process."""
    return tuple(load_patterns(get_app_settings().patterns_path))


@lru_cache()
def get_warmup_monitor() -> WarmupMonitor:
    """Provide the single warmup monitor for this process."""
    return WarmupMonitor(
        get_replicate_client(),
        get_prediction_poller(),
        max_attempts=get_app_settings().polling.warmup_max_attempts,
    )


def get_vision_service() -> VisionService:
    """Build the vision stage."""
    return VisionService(
        get_replicate_client(),
        get_prediction_poller(),
        max_attempts=get_app_settings().polling.vision_max_attempts,
    )


@lru_cache()
def get_pattern_analysis_service() -> PatternAnalysisService:
    """Build the reasoning stage; the system prompt is rendered once."""
    return PatternAnalysisService(get_deepseek_client(), get_patterns())


def get_chart_analysis_service() -> ChartAnalysisService:
    """Build the request orchestrator."""
    return ChartAnalysisService(
        warmup_monitor=get_warmup_monitor(),
        vision_service=get_vision_service(),
        pattern_service=get_pattern_analysis_service(),
    )


__all__ = [
    "get_chart_analysis_service",
    "get_deepseek_client",
    "get_http_client",
    "get_pattern_analysis_service",
    "get_patterns",
    "get_prediction_poller",
    "get_replicate_client",
    "get_vision_service",
    "get_warmup_monitor",
]
