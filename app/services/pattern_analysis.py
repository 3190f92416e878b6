"""Reasoning stage: match a chart description against the pattern taxonomy."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from app.clients.deepseek import DeepSeekClient
from app.core.errors import ResponseParseError
from app.schemas import Pattern
from app.services.costs import reasoner_cost

logger = logging.getLogger(__name__)


UNKNOWN = "Unknown"
NO_REASONING = "No reasoning provided"

_LEADING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?```$")


@dataclass(frozen=True, slots=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    reasoning_tokens: int = 0
    cache_hit_tokens: int = 0


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Pattern verdict from the reasoning model with its token usage."""

    pattern: str
    category: str
    direction: str
    confidence: str
    reasoning: str
    chain_of_thought: Optional[str]
    prompt_tokens: int
    completion_tokens: int
    reasoning_tokens: int
    cache_hit_tokens: int
    cost_usd: float


def build_system_prompt(patterns: Sequence[Pattern]) -> str:
    lines = [
        "You are an expert candlestick pattern analyst. Given a text description "
        "of a candlestick chart, identify which pattern it most closely matches "
        "from the taxonomy below.",
        "",
        "PATTERN TAXONOMY:",
    ]
    lines.extend(
        f"- {p.name} | Category: {p.category} | Direction: {p.direction} | {p.description}"
        for p in patterns
    )
    lines.extend(
        [
            "",
            "INSTRUCTIONS:",
            "1. Carefully analyze the chart description",
            f"2. Compare against all {len(patterns)} patterns in the taxonomy",
            "3. Identify the best matching pattern",
            '4. If no pattern matches well, say "No Clear Pattern" with explanation',
            "",
            "Respond with ONLY a JSON object (no markdown, no code fences) in this "
            "exact format:",
            '{"pattern": "<pattern name>", '
            '"category": "<Single/Two/Three/Multi/Continuation/Special>", '
            '"direction": "<Bullish/Bearish/Neutral>", '
            '"confidence": "<High/Medium/Low>", '
            '"reasoning": "<brief explanation of why this pattern matches>"}',
        ]
    )
    return "\n".join(lines) + "\n"


def strip_code_fences(content: str) -> str:
    """Remove an optional leading and trailing markdown fence."""
    text = content.strip()
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


def parse_verdict(content: str) -> dict[str, str]:
    """Parse the model's JSON verdict, filling sentinels for missing fields."""
    try:
        parsed = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as exc:
        raise ResponseParseError(
            f"Failed to parse pattern JSON from DeepSeek: {exc} - content: {content}",
            raw=content,
        ) from exc
    if not isinstance(parsed, dict):
        raise ResponseParseError(
            f"DeepSeek verdict is not a JSON object - content: {content}",
            raw=content,
        )

    def _text(key: str, default: str) -> str:
        value = parsed.get(key)
        return value if isinstance(value, str) else default

    return {
        "pattern": _text("pattern", UNKNOWN),
        "category": _text("category", UNKNOWN),
        "direction": _text("direction", UNKNOWN),
        "confidence": _text("confidence", UNKNOWN),
        "reasoning": _text("reasoning", NO_REASONING),
    }


def extract_usage(payload: dict[str, Any]) -> TokenUsage:
    usage = payload.get("usage")
    if not isinstance(usage, dict):
        return TokenUsage()

    def _count(key: str) -> int:
        value = usage.get(key)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return 0
        return value

    prompt_tokens = _count("prompt_tokens")
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=_count("completion_tokens"),
        reasoning_tokens=_count("reasoning_tokens"),
        cache_hit_tokens=min(_count("prompt_cache_hit_tokens"), prompt_tokens),
    )


class PatternAnalysisService:
    """Ask the reasoning model which taxonomy pattern a description shows."""

    def __init__(self, deepseek_client: DeepSeekClient, patterns: Sequence[Pattern]) -> None:
        self._deepseek = deepseek_client
        self._patterns = tuple(patterns)
        self._system_prompt = build_system_prompt(self._patterns)

    @property
    def patterns(self) -> tuple[Pattern, ...]:
        return self._patterns

    async def analyze(self, description: str) -> AnalysisResult:
        messages = [
            {"role": "system", "content": self._system_prompt},
            {
                "role": "user",
                "content": (
                    "Analyze this candlestick chart description and identify the "
                    f"pattern:\n\n{description}"
                ),
            },
        ]

        logger.info("Sending chart description to DeepSeek Reasoner...")
        payload = await self._deepseek.chat_completion(messages)

        message = _first_message(payload)
        content = message.get("content")
        if not isinstance(content, str):
            raise ResponseParseError(
                f"DeepSeek message has no text content - body: {payload}",
                raw=json.dumps(payload),
            )
        chain_of_thought = message.get("reasoning_content")
        if not isinstance(chain_of_thought, str):
            chain_of_thought = None

        usage = extract_usage(payload)
        cost_usd = reasoner_cost(
            prompt_tokens=usage.prompt_tokens,
            cache_hit_tokens=usage.cache_hit_tokens,
            completion_tokens=usage.completion_tokens,
            reasoning_tokens=usage.reasoning_tokens,
        )
        logger.info(
            "DeepSeek usage: %d prompt (%d cached), %d completion, %d reasoning - $%.6f",
            usage.prompt_tokens,
            usage.cache_hit_tokens,
            usage.completion_tokens,
            usage.reasoning_tokens,
            cost_usd,
        )

        verdict = parse_verdict(content)
        return AnalysisResult(
            **verdict,
            chain_of_thought=chain_of_thought,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            reasoning_tokens=usage.reasoning_tokens,
            cache_hit_tokens=usage.cache_hit_tokens,
            cost_usd=cost_usd,
        )


def _first_message(payload: dict[str, Any]) -> dict[str, Any]:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ResponseParseError(
            f"DeepSeek returned no choices - body: {payload}", raw=json.dumps(payload)
        )
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        raise ResponseParseError(
            f"DeepSeek choice has no message - body: {payload}", raw=json.dumps(payload)
        )
    return message


__all__ = [
    "AnalysisResult",
    "NO_REASONING",
    "PatternAnalysisService",
    "TokenUsage",
    "UNKNOWN",
    "build_system_prompt",
    "extract_usage",
    "parse_verdict",
    "strip_code_fences",
]
