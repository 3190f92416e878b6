"""Service layer exports."""

from .chart_analysis import ChartAnalysisRequest, ChartAnalysisService
from .pattern_analysis import AnalysisResult, PatternAnalysisService
from .predictions import PollTick, PredictionPoller
from .taxonomy import load_patterns
from .vision import VisionResult, VisionService
from .warmup import WarmupMonitor, WarmupStatusCell

__all__ = [
    "AnalysisResult",
    "ChartAnalysisRequest",
    "ChartAnalysisService",
    "PatternAnalysisService",
    "PollTick",
    "PredictionPoller",
    "VisionResult",
    "VisionService",
    "WarmupMonitor",
    "WarmupStatusCell",
    "load_patterns",
]
