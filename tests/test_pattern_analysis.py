try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

try:
    from . import _fakes
except Exception:  # pragma: no cover - fallback for direct execution
    import _fakes  # type: ignore

import httpx
import pytest

from app.core.errors import ResponseParseError, UpstreamReportedError
from app.schemas import Pattern
from app.services.pattern_analysis import (
    NO_REASONING,
    UNKNOWN,
    PatternAnalysisService,
    build_system_prompt,
    strip_code_fences,
)

PATTERNS = [
    Pattern(
        name="Hammer",
        category="Single",
        direction="Bullish",
        description="Small body with a long lower shadow",
    ),
    Pattern(
        name="Bearish Engulfing",
        category="Two",
        direction="Bearish",
        description="Red body engulfs the prior green body",
    ),
]

VERDICT = (
    '{"pattern": "Hammer", "category": "Single", "direction": "Bullish", '
    '"confidence": "High", "reasoning": "Long lower wick after a decline"}'
)


class RecordingDeepSeek:
    def __init__(self, *replies: httpx.Response) -> None:
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.replies.pop(0)


def _service(handler: RecordingDeepSeek) -> PatternAnalysisService:
    return PatternAnalysisService(_fakes.make_deepseek_client(handler), PATTERNS)


@pytest.mark.parametrize(
    "content",
    [
        VERDICT,
        f"```json\n{VERDICT}\n```",
        f"```\n{VERDICT}\n```",
        f"  ```JSON {VERDICT}```  ",
        f"{VERDICT}\n```",
    ],
)
def test_strip_code_fences_recovers_json(content: str) -> None:
    assert strip_code_fences(content) == VERDICT


def test_system_prompt_embeds_taxonomy_and_format() -> None:
    prompt = build_system_prompt(PATTERNS)

    assert "- Hammer | Category: Single | Direction: Bullish | Small body" in prompt
    assert "- Bearish Engulfing | Category: Two | Direction: Bearish" in prompt
    assert "Compare against all 2 patterns" in prompt
    assert '"confidence": "<High/Medium/Low>"' in prompt


@pytest.mark.asyncio
async def test_analyze_parses_fenced_verdict_and_usage() -> None:
    handler = RecordingDeepSeek(
        httpx.Response(
            200,
            json=_fakes.completion(
                f"```json\n{VERDICT}\n```",
                reasoning="The lower shadow is three times the body...",
                usage={
                    "prompt_tokens": 1000,
                    "completion_tokens": 200,
                    "reasoning_tokens": 100,
                    "prompt_cache_hit_tokens": 400,
                },
            ),
        )
    )
    service = _service(handler)

    result = await service.analyze("Five candles, the last has a long lower wick.")

    assert result.pattern == "Hammer"
    assert result.direction == "Bullish"
    assert result.confidence == "High"
    assert result.reasoning == "Long lower wick after a decline"
    assert result.chain_of_thought == "The lower shadow is three times the body..."
    assert (result.prompt_tokens, result.cache_hit_tokens) == (1000, 400)
    assert (result.completion_tokens, result.reasoning_tokens) == (200, 100)
    assert result.cost_usd == pytest.approx(0.001043)

    body = _fakes.request_json(handler.requests[0])
    assert body["model"] == "deepseek-reasoner"
    assert body["stream"] is False
    assert [message["role"] for message in body["messages"]] == ["system", "user"]
    assert "Five candles" in body["messages"][1]["content"]
    assert handler.requests[0].headers["Authorization"] == "Bearer test-key"


@pytest.mark.asyncio
async def test_missing_fields_get_sentinels() -> None:
    handler = RecordingDeepSeek(
        httpx.Response(200, json=_fakes.completion('{"pattern": "Doji", "confidence": 0.8}'))
    )

    result = await _service(handler).analyze("one candle")

    assert result.pattern == "Doji"
    assert result.category == UNKNOWN
    assert result.direction == UNKNOWN
    assert result.confidence == UNKNOWN
    assert result.reasoning == NO_REASONING
    assert result.chain_of_thought is None


@pytest.mark.asyncio
async def test_missing_usage_defaults_to_zero_cost() -> None:
    handler = RecordingDeepSeek(httpx.Response(200, json=_fakes.completion(VERDICT)))

    result = await _service(handler).analyze("desc")

    assert result.prompt_tokens == 0
    assert result.completion_tokens == 0
    assert result.reasoning_tokens == 0
    assert result.cache_hit_tokens == 0
    assert result.cost_usd == 0.0


@pytest.mark.asyncio
async def test_cache_hits_never_exceed_prompt_tokens() -> None:
    handler = RecordingDeepSeek(
        httpx.Response(
            200,
            json=_fakes.completion(
                VERDICT,
                usage={"prompt_tokens": 10, "completion_tokens": 1, "prompt_cache_hit_tokens": 64},
            ),
        )
    )

    result = await _service(handler).analyze("desc")

    assert result.cache_hit_tokens == 10
    assert result.cache_hit_tokens <= result.prompt_tokens


@pytest.mark.asyncio
async def test_malformed_verdict_keeps_raw_content() -> None:
    handler = RecordingDeepSeek(
        httpx.Response(200, json=_fakes.completion("I think it is a hammer."))
    )

    with pytest.raises(ResponseParseError) as excinfo:
        await _service(handler).analyze("desc")

    assert excinfo.value.raw == "I think it is a hammer."
    assert "I think it is a hammer." in str(excinfo.value)


@pytest.mark.asyncio
async def test_response_without_choices_is_a_parse_error() -> None:
    handler = RecordingDeepSeek(httpx.Response(200, json={"choices": []}))

    with pytest.raises(ResponseParseError, match="no choices"):
        await _service(handler).analyze("desc")


@pytest.mark.asyncio
async def test_api_error_is_reported_with_body() -> None:
    handler = RecordingDeepSeek(
        httpx.Response(402, json={"error": {"message": "Insufficient Balance"}})
    )

    with pytest.raises(UpstreamReportedError, match="402"):
        await _service(handler).analyze("desc")
