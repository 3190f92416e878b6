"""
Pydantic models for chart analysis requests, responses and warmup status.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Pattern(BaseModel):
    """One entry of the candlestick pattern taxonomy."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Pattern name, e.g. 'Bullish Engulfing'.")
    category: str = Field(
        ..., description="Single, Two, Three, Multi, Continuation or Special."
    )
    direction: str = Field(..., description="Bullish, Bearish or Neutral.")
    description: str = Field(..., description="How the formation looks.")


class WarmupState(str, Enum):
    """Lifecycle of the vision backend warmup."""

    STARTING = "starting"
    WARMING = "warming"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WarmupState.READY, WarmupState.FAILED)


class WarmupStatus(BaseModel):
    """Immutable snapshot of the vision backend warmup progress."""

    model_config = ConfigDict(frozen=True)

    state: WarmupState = WarmupState.STARTING
    message: str = "server starting..."
    elapsed_seconds: int = Field(0, ge=0)


class CostBreakdown(BaseModel):
    """Per-stage cost of a single chart analysis, in USD."""

    vision_seconds: float = Field(..., ge=0)
    vision_cost_usd: float = Field(..., ge=0)
    reasoner_prompt_tokens: int = Field(..., ge=0)
    reasoner_cache_hit_tokens: int = Field(0, ge=0)
    reasoner_completion_tokens: int = Field(..., ge=0)
    reasoner_reasoning_tokens: int = Field(..., ge=0)
    reasoner_cost_usd: float = Field(..., ge=0)
    total_cost_usd: float = Field(
        ..., ge=0, description="Sum of the vision and reasoner costs."
    )


class ChartAnalysisResponse(BaseModel):
    """Combined verdict returned for an uploaded chart."""

    pattern: str
    category: str
    direction: str
    confidence: str
    reasoning: str
    chain_of_thought: Optional[str] = Field(
        None, description="Reasoner's free-text rationale, when supplied."
    )
    chart_description: str = Field(
        ..., description="Description produced by the vision model."
    )
    cost: CostBreakdown


__all__ = [
    "ChartAnalysisResponse",
    "CostBreakdown",
    "Pattern",
    "WarmupState",
    "WarmupStatus",
]
