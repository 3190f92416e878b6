"""Client wrapper for the Replicate files and predictions APIs."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.config import ReplicateSettings
from app.core.errors import ResponseParseError
from app.utils.http import bearer_headers, decode_json, send_request

logger = logging.getLogger(__name__)


class ReplicateClient:
    """Thin async wrapper around the Replicate REST endpoints.

    Every method raises the pipeline's typed errors: transport failures,
    non-2xx answers and unparseable bodies are never returned to the caller.
    How those errors are treated (fatal or retried on the next poll) is the
    caller's decision.
    """

    def __init__(self, settings: ReplicateSettings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http_client
        self._base_url = str(settings.base_url).rstrip("/")

    @property
    def model_version(self) -> str:
        return self._settings.model_version

    @property
    def warmup_image_url(self) -> str:
        return str(self._settings.warmup_image_url)

    async def upload_file(
        self,
        *,
        data: bytes,
        content_type: str,
        file_name: str = "chart.png",
    ) -> str:
        """Stage raw bytes in Replicate file storage and return their URL."""
        logger.info("Uploading %d bytes (%s) to Replicate file storage", len(data), content_type)
        response = await send_request(
            self._http,
            "POST",
            f"{self._base_url}/files",
            source="File upload",
            headers=self._headers(),
            files={"content": (file_name, data, content_type)},
        )
        payload = decode_json(response, source="file upload")
        try:
            url = payload["urls"]["get"]
        except (KeyError, TypeError) as exc:
            raise ResponseParseError(
                f"File upload response has no download URL - body: {response.text}",
                raw=response.text,
            ) from exc
        if not isinstance(url, str) or not url:
            raise ResponseParseError(
                f"File upload response has no download URL - body: {response.text}",
                raw=response.text,
            )
        logger.info("Image uploaded: %s", url)
        return url

    async def create_prediction(
        self, payload: dict[str, Any], *, wait: bool = False
    ) -> dict[str, Any]:
        """Create a prediction and return the decoded response body."""
        headers = self._headers()
        if wait:
            headers["Prefer"] = "wait"
        response = await send_request(
            self._http,
            "POST",
            f"{self._base_url}/predictions",
            source="Replicate",
            headers=headers,
            json=payload,
        )
        return self._expect_object(response)

    async def get_prediction(self, prediction_id: str) -> dict[str, Any]:
        """Fetch the current state of a prediction."""
        response = await send_request(
            self._http,
            "GET",
            f"{self._base_url}/predictions/{prediction_id}",
            source="Replicate poll",
            headers=self._headers(),
        )
        return self._expect_object(response)

    def _headers(self) -> dict[str, str]:
        return bearer_headers(self._settings.api_token)

    @staticmethod
    def _expect_object(response: httpx.Response) -> dict[str, Any]:
        payload = decode_json(response, source="Replicate")
        if not isinstance(payload, dict):
            raise ResponseParseError(
                f"Replicate returned a non-object body: {response.text}",
                raw=response.text,
            )
        return payload


__all__ = ["ReplicateClient"]
