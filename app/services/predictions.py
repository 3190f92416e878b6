"""Submit-then-poll protocol for asynchronous Replicate predictions."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from app.clients.replicate import ReplicateClient
from app.core.errors import (
    PipelineError,
    PredictionTimeoutError,
    ResponseParseError,
    UpstreamReportedError,
)
from app.schemas import PredictionHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PollTick:
    """Progress snapshot handed to poll observers after every attempt."""

    attempt: int
    max_attempts: int
    elapsed_seconds: int
    status: Optional[str]


PollObserver = Callable[[PollTick], None]


class PredictionPoller:
    """Create predictions and wait for them to reach a terminal status.

    Submission failures are fatal because no job is known to exist. Once a
    job id is known, a failed or unparseable poll only costs an attempt; the
    loop ends on an explicit terminal status, a reported error, or when the
    attempt budget runs out.
    """

    def __init__(
        self,
        client: ReplicateClient,
        *,
        interval_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._interval = interval_seconds
        self._clock = clock
        self._sleep = sleep

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    async def submit(self, payload: dict[str, Any], *, wait: bool = False) -> PredictionHandle:
        """Create a prediction; raises on any failure to confirm the job."""
        body = await self._client.create_prediction(payload, wait=wait)
        _raise_for_error_field(body, body.get("id"))
        try:
            handle = PredictionHandle.model_validate(body)
        except ValidationError as exc:
            raise ResponseParseError(
                f"Failed to parse Replicate response: {exc} - body: {body}",
                raw=str(body),
            ) from exc
        return handle

    async def poll_until_terminal(
        self,
        prediction_id: str,
        *,
        max_attempts: int,
        interval_seconds: float | None = None,
        observer: PollObserver | None = None,
        started_at: float | None = None,
    ) -> PredictionHandle:
        """Poll ``prediction_id`` until it succeeds, fails or times out."""
        interval = self._interval if interval_seconds is None else interval_seconds
        start = self._clock() if started_at is None else started_at
        last_status: Optional[str] = None

        for attempt in range(1, max_attempts + 1):
            await self._sleep(interval)
            body = await self._fetch(prediction_id)
            handle = None if body is None else _parse_handle(body, prediction_id)
            if handle is not None:
                last_status = handle.status

            if observer is not None:
                observer(
                    PollTick(
                        attempt=attempt,
                        max_attempts=max_attempts,
                        elapsed_seconds=int(max(self._clock() - start, 0)),
                        status=last_status,
                    )
                )

            if body is not None:
                _raise_for_error_field(body, prediction_id)
            if handle is None:
                continue
            if handle.succeeded:
                return handle
            if handle.failed:
                raise UpstreamReportedError(f"Prediction {handle.id} {handle.status}")

        raise PredictionTimeoutError(
            f"Prediction {prediction_id} did not finish after {max_attempts} polls"
        )

    async def run(
        self,
        payload: dict[str, Any],
        *,
        max_attempts: int,
        wait: bool = False,
        observer: PollObserver | None = None,
    ) -> PredictionHandle:
        """Submit ``payload`` and return the prediction once it succeeded."""
        started_at = self._clock()
        handle = await self.submit(payload, wait=wait)
        if handle.succeeded:
            return handle
        if handle.failed:
            raise UpstreamReportedError(f"Prediction {handle.id} {handle.status}")

        logger.info("Prediction %s still running (%s), polling...", handle.id, handle.status)
        return await self.poll_until_terminal(
            handle.id,
            max_attempts=max_attempts,
            observer=observer,
            started_at=started_at,
        )

    async def _fetch(self, prediction_id: str) -> dict[str, Any] | None:
        """Return the refreshed body, or ``None`` when this attempt failed."""
        try:
            return await self._client.get_prediction(prediction_id)
        except PipelineError as exc:
            logger.debug("Poll of prediction %s failed: %s", prediction_id, exc)
            return None


def _parse_handle(body: dict[str, Any], prediction_id: str) -> PredictionHandle | None:
    try:
        return PredictionHandle.model_validate(body)
    except ValidationError as exc:
        logger.debug("Poll of prediction %s returned an unexpected body: %s", prediction_id, exc)
        return None


def _raise_for_error_field(body: dict[str, Any], prediction_id: Optional[str]) -> None:
    """Raise when the body carries an error, whatever its status or shape."""
    error = body.get("error")
    if error is None or error == "":
        return
    message = str(error)
    raise UpstreamReportedError(
        f"Prediction {prediction_id or 'unknown'} failed: {message}", detail=message
    )


__all__ = ["PollObserver", "PollTick", "PredictionPoller"]
