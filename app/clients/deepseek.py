"""Client wrapper for the DeepSeek chat completions API."""

from __future__ import annotations

from typing import Any

import httpx

from app.core.config import DeepSeekSettings
from app.core.errors import ResponseParseError
from app.utils.http import bearer_headers, decode_json, send_request


class DeepSeekClient:
    """Issue non-streaming chat completions against the reasoning model."""

    def __init__(self, settings: DeepSeekSettings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http_client
        self._base_url = str(settings.base_url).rstrip("/")

    async def chat_completion(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        """Send ``messages`` and return the decoded completion body."""
        request = {
            "model": self._settings.model_name,
            "messages": messages,
            "stream": False,
        }
        response = await send_request(
            self._http,
            "POST",
            f"{self._base_url}/chat/completions",
            source="DeepSeek",
            headers=bearer_headers(self._settings.api_key),
            json=request,
        )
        payload = decode_json(response, source="DeepSeek")
        if not isinstance(payload, dict):
            raise ResponseParseError(
                f"DeepSeek returned a non-object body: {response.text}",
                raw=response.text,
            )
        return payload


__all__ = ["DeepSeekClient"]
