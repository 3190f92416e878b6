try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

try:
    from . import _fakes
except Exception:  # pragma: no cover - fallback for direct execution
    import _fakes  # type: ignore

import pytest

from app.core.errors import ResponseParseError, UpstreamReportedError
from app.services.predictions import PredictionPoller
from app.services.vision import (
    OpaqueOutput,
    TextFragments,
    TextOutput,
    VISION_PROMPT,
    VisionService,
    classify_output,
    render_output,
)

UPLOAD_URL = "https://replicate.delivery/uploads/chart.png"


def _service(upstream: _fakes.ScriptedReplicate, max_attempts: int = 5) -> VisionService:
    client = _fakes.make_replicate_client(upstream)
    clock = _fakes.FakeClock()
    poller = PredictionPoller(client, clock=clock, sleep=clock.sleep)
    return VisionService(client, poller, max_attempts=max_attempts)


def test_output_fragments_concatenate_in_order() -> None:
    output = classify_output(["a", "b", "c"])
    assert output == TextFragments(("a", "b", "c"))
    assert render_output(output) == "abc"


def test_output_plain_string_passes_through() -> None:
    output = classify_output("Three green candles.")
    assert isinstance(output, TextOutput)
    assert render_output(output) == "Three green candles."


def test_output_structured_value_is_stringified_verbatim() -> None:
    output = classify_output({"text": "hello"})
    assert isinstance(output, OpaqueOutput)
    assert render_output(output) == '{"text":"hello"}'


@pytest.mark.parametrize("raw", [[], "", None, [None, 3]])
def test_empty_outputs_are_errors(raw) -> None:
    with pytest.raises(ResponseParseError):
        render_output(classify_output(raw))


@pytest.mark.asyncio
async def test_describe_uploads_then_submits_prediction() -> None:
    upstream = _fakes.ScriptedReplicate()
    upstream.uploads.append({"urls": {"get": UPLOAD_URL}})
    upstream.creates.append(_fakes.prediction("processing"))
    upstream.polls.append(
        _fakes.prediction(
            "succeeded",
            output=["Candle 1: ", "large red body."],
            metrics={"predict_time": 12.5},
        )
    )
    service = _service(upstream)

    result = await service.describe(b"\x89PNG-bytes", "image/png")

    assert result.description == "Candle 1: large red body."
    assert result.predict_seconds == 12.5

    upload_request = upstream.requests[0]
    assert upload_request.url.path.endswith("/files")
    assert b'name="content"; filename="chart.png"' in upload_request.content
    assert b"\x89PNG-bytes" in upload_request.content

    create_request = upstream.create_requests[0]
    assert create_request.headers["Prefer"] == "wait"
    body = _fakes.request_json(create_request)
    assert body["input"]["image"] == UPLOAD_URL
    assert body["input"]["prompt"] == VISION_PROMPT
    assert body["input"]["temperature"] == 0.1
    assert body["input"]["top_p"] == 0.9
    assert body["input"]["max_length_tokens"] == 2048
    assert body["input"]["repetition_penalty"] == 1.1


@pytest.mark.asyncio
async def test_describe_defaults_predict_seconds_to_zero() -> None:
    upstream = _fakes.ScriptedReplicate()
    upstream.uploads.append({"urls": {"get": UPLOAD_URL}})
    upstream.creates.append(_fakes.prediction("succeeded", output="cached answer"))
    service = _service(upstream)

    result = await service.describe(b"img", "image/jpeg")

    assert result.description == "cached answer"
    assert result.predict_seconds == 0.0
    assert upstream.poll_count == 0


@pytest.mark.asyncio
async def test_upload_failure_stops_before_prediction() -> None:
    upstream = _fakes.ScriptedReplicate()
    upstream.uploads.append(
        _fakes.raw_response('{"detail": "Unauthenticated"}', status_code=401)
    )
    service = _service(upstream)

    with pytest.raises(UpstreamReportedError, match="Unauthenticated"):
        await service.describe(b"img", "image/png")

    assert upstream.create_requests == []


@pytest.mark.asyncio
async def test_upload_without_url_is_a_parse_error() -> None:
    upstream = _fakes.ScriptedReplicate()
    upstream.uploads.append({"id": "file-1"})
    service = _service(upstream)

    with pytest.raises(ResponseParseError):
        await service.upload(b"img", "image/png")


@pytest.mark.asyncio
async def test_describe_reports_empty_output_array() -> None:
    upstream = _fakes.ScriptedReplicate()
    upstream.uploads.append({"urls": {"get": UPLOAD_URL}})
    upstream.creates.append(_fakes.prediction("succeeded", output=[]))
    service = _service(upstream)

    with pytest.raises(ResponseParseError, match="empty output"):
        await service.describe(b"img", "image/png")
