"""Vision stage: turn a chart image into a textual description."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from textwrap import dedent
from typing import Any, Union

from app.clients.replicate import ReplicateClient
from app.core.errors import ResponseParseError
from app.schemas import PredictionHandle
from app.services.predictions import PollTick, PredictionPoller

logger = logging.getLogger(__name__)


VISION_PROMPT = dedent(
    """\
    Describe this candlestick chart <image> in detail. Focus on:
    - Number of candles visible
    - Body colors (red/green) of each candle in order
    - Relative body sizes (large, medium, small, doji)
    - Wick/shadow lengths (long upper, long lower, short, none)
    - Gaps between candles (gap up, gap down, overlapping)
    - Overall trend direction before/during the pattern
    - Any notable features (engulfing, inside bars, identical highs/lows)

    Be precise and systematic. Describe each candle from left to right."""
)

SAMPLING_PARAMETERS: dict[str, Any] = {
    "temperature": 0.1,
    "top_p": 0.9,
    "max_length_tokens": 2048,
    "repetition_penalty": 1.1,
}


@dataclass(frozen=True, slots=True)
class VisionResult:
    """Description of one chart plus the GPU time it took."""

    description: str
    predict_seconds: float


@dataclass(frozen=True, slots=True)
class TextOutput:
    text: str


@dataclass(frozen=True, slots=True)
class TextFragments:
    fragments: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class OpaqueOutput:
    value: Any


PredictionOutput = Union[TextOutput, TextFragments, OpaqueOutput]


def classify_output(raw: Any) -> PredictionOutput:
    """Resolve the untyped prediction output into one of the known shapes."""
    if raw is None:
        raise ResponseParseError("Replicate returned no output")
    if isinstance(raw, str):
        return TextOutput(raw)
    if isinstance(raw, list):
        # Streaming models emit token fragments; anything else in the list is noise.
        return TextFragments(tuple(item for item in raw if isinstance(item, str)))
    return OpaqueOutput(raw)


def render_output(output: PredictionOutput) -> str:
    """Flatten a classified output into description text."""
    if isinstance(output, TextOutput):
        text = output.text
    elif isinstance(output, TextFragments):
        text = "".join(output.fragments)
        if not text:
            raise ResponseParseError("Replicate returned empty output array")
    else:
        text = json.dumps(output.value, separators=(",", ":"))

    if not text:
        raise ResponseParseError("Replicate returned empty output")
    return text


def extract_vision_result(handle: PredictionHandle) -> VisionResult:
    description = render_output(classify_output(handle.output))
    predict_seconds = handle.predict_seconds
    return VisionResult(
        description=description,
        predict_seconds=predict_seconds if predict_seconds is not None else 0.0,
    )


class VisionService:
    """Describe candlestick charts with the Replicate DeepSeek-VL2 model."""

    def __init__(
        self,
        replicate_client: ReplicateClient,
        poller: PredictionPoller,
        *,
        max_attempts: int = 100,
    ) -> None:
        self._replicate = replicate_client
        self._poller = poller
        self._max_attempts = max_attempts

    async def upload(self, image_bytes: bytes, content_type: str) -> str:
        """Stage the image where the vision model can fetch it."""
        return await self._replicate.upload_file(data=image_bytes, content_type=content_type)

    async def describe(self, image_bytes: bytes, content_type: str) -> VisionResult:
        """Upload the chart and wait for the model's description of it."""
        image_url = await self.upload(image_bytes, content_type)
        payload = {
            "version": self._replicate.model_version,
            "input": {
                "image": image_url,
                "prompt": VISION_PROMPT,
                **SAMPLING_PARAMETERS,
            },
        }

        logger.info("Sending image to Replicate DeepSeek-VL2...")
        handle = await self._poller.run(
            payload,
            max_attempts=self._max_attempts,
            wait=True,
            observer=self._log_progress,
        )
        return extract_vision_result(handle)

    @staticmethod
    def _log_progress(tick: PollTick) -> None:
        if tick.attempt % 10 == 0:
            logger.warning(
                "Still waiting for prediction (attempt %d/%d, status: %s)...",
                tick.attempt,
                tick.max_attempts,
                tick.status,
            )


__all__ = [
    "OpaqueOutput",
    "PredictionOutput",
    "TextFragments",
    "TextOutput",
    "VISION_PROMPT",
    "VisionResult",
    "VisionService",
    "classify_output",
    "extract_vision_result",
    "render_output",
]
