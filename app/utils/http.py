"""HTTP helpers shared by the upstream inference clients."""

from __future__ import annotations

import json
from typing import Any

import httpx

from app.core.errors import (
    ResponseParseError,
    UpstreamReportedError,
    UpstreamTransportError,
)


def build_async_client(*, timeout_seconds: float) -> httpx.AsyncClient:
    """Create the process-wide client used for every upstream call."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))


def bearer_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    source: str,
    **kwargs: Any,
) -> httpx.Response:
    """Issue a request, translating transport failures and non-2xx answers."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise UpstreamTransportError(f"{source} request failed: {exc}") from exc

    if response.is_error:
        detail = _error_detail(response)
        raise UpstreamReportedError(
            f"{source} API error ({response.status_code}): {detail}",
            detail=detail,
        )
    return response


def decode_json(response: httpx.Response, *, source: str) -> Any:
    """Decode a JSON body, keeping the raw text when it cannot be parsed."""
    body = response.text
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(
            f"Failed to parse {source} response: {exc} - body: {body}",
            raw=body,
        ) from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict) and payload.get("detail"):
        return str(payload["detail"])
    return response.text


__all__ = ["bearer_headers", "build_async_client", "decode_json", "send_request"]
