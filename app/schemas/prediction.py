"""
Pydantic models mirroring the Replicate prediction resource.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PredictionStatus(str, Enum):
    """Statuses reported by the predictions API."""

    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_FAILURE_STATUSES = frozenset(
    {PredictionStatus.FAILED.value, PredictionStatus.CANCELED.value}
)


class PredictionMetrics(BaseModel):
    model_config = ConfigDict(extra="ignore")

    predict_time: Optional[float] = None


class PredictionHandle(BaseModel):
    """State of one asynchronous prediction as last reported upstream."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    status: str = Field(
        "",
        description="Raw status; values outside PredictionStatus count as pending.",
    )
    output: Any = None
    error: Any = None
    metrics: Optional[PredictionMetrics] = None

    @property
    def error_message(self) -> Optional[str]:
        """Server-reported error text, or ``None`` when the field is empty."""
        if self.error is None or self.error == "":
            return None
        return str(self.error)

    @property
    def succeeded(self) -> bool:
        return self.status == PredictionStatus.SUCCEEDED.value

    @property
    def failed(self) -> bool:
        return self.status in TERMINAL_FAILURE_STATUSES

    @property
    def predict_seconds(self) -> Optional[float]:
        if self.metrics is None:
            return None
        return self.metrics.predict_time


__all__ = [
    "PredictionHandle",
    "PredictionMetrics",
    "PredictionStatus",
    "TERMINAL_FAILURE_STATUSES",
]
