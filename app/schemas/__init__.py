"""Public schema exports."""

from .analysis import (
    ChartAnalysisResponse,
    CostBreakdown,
    Pattern,
    WarmupState,
    WarmupStatus,
)
from .prediction import PredictionHandle, PredictionMetrics, PredictionStatus

__all__ = [
    "ChartAnalysisResponse",
    "CostBreakdown",
    "Pattern",
    "PredictionHandle",
    "PredictionMetrics",
    "PredictionStatus",
    "WarmupState",
    "WarmupStatus",
]
