"""Cost accounting for the vision and reasoning inference stages.

Rates are fixed list prices. Nothing is rounded here; presentation layers
decide how many digits to show.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.schemas import CostBreakdown

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.services.pattern_analysis import AnalysisResult
    from app.services.vision import VisionResult


# Replicate DeepSeek-VL2 runs on an Nvidia A100 80GB.
VISION_GPU_RATE_PER_SECOND = 0.0014

# DeepSeek Reasoner list prices in USD per million tokens.
REASONER_INPUT_PRICE = 0.55
REASONER_CACHED_INPUT_PRICE = 0.14
REASONER_OUTPUT_PRICE = 2.19
REASONER_REASONING_PRICE = 2.19

_PER_TOKEN = 1_000_000


def vision_cost(predict_seconds: float) -> float:
    """Return the GPU cost of a vision prediction."""
    return max(predict_seconds, 0.0) * VISION_GPU_RATE_PER_SECOND


def reasoner_cost(
    *,
    prompt_tokens: int,
    cache_hit_tokens: int,
    completion_tokens: int,
    reasoning_tokens: int,
) -> float:
    """Return the cost of one reasoning call from its token usage."""
    cache_miss_tokens = max(prompt_tokens - cache_hit_tokens, 0)
    return (
        cache_miss_tokens * (REASONER_INPUT_PRICE / _PER_TOKEN)
        + cache_hit_tokens * (REASONER_CACHED_INPUT_PRICE / _PER_TOKEN)
        + completion_tokens * (REASONER_OUTPUT_PRICE / _PER_TOKEN)
        + reasoning_tokens * (REASONER_REASONING_PRICE / _PER_TOKEN)
    )


def build_cost_breakdown(
    vision: "VisionResult", analysis: "AnalysisResult"
) -> CostBreakdown:
    """Combine both stage costs into the reported breakdown."""
    vision_usd = vision_cost(vision.predict_seconds)
    return CostBreakdown(
        vision_seconds=vision.predict_seconds,
        vision_cost_usd=vision_usd,
        reasoner_prompt_tokens=analysis.prompt_tokens,
        reasoner_cache_hit_tokens=analysis.cache_hit_tokens,
        reasoner_completion_tokens=analysis.completion_tokens,
        reasoner_reasoning_tokens=analysis.reasoning_tokens,
        reasoner_cost_usd=analysis.cost_usd,
        total_cost_usd=vision_usd + analysis.cost_usd,
    )


__all__ = [
    "REASONER_CACHED_INPUT_PRICE",
    "REASONER_INPUT_PRICE",
    "REASONER_OUTPUT_PRICE",
    "REASONER_REASONING_PRICE",
    "VISION_GPU_RATE_PER_SECOND",
    "build_cost_breakdown",
    "reasoner_cost",
    "vision_cost",
]
