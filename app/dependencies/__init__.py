"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_chart_analysis_service,
    get_deepseek_client,
    get_http_client,
    get_pattern_analysis_service,
    get_patterns,
    get_prediction_poller,
    get_replicate_client,
    get_vision_service,
    get_warmup_monitor,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
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
