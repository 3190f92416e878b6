"""Background warmup of the Replicate vision backend.

A cold DeepSeek-VL2 deployment can take minutes to boot, so the service sends
a tiny synthetic prediction at startup and keeps rejecting analyses until it
completes. The monitor runs once per process and is never restarted: a failed
warmup stays failed until the process is restarted.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

from app.clients.replicate import ReplicateClient
from app.core.errors import (
    PredictionTimeoutError,
    ResponseParseError,
    UpstreamReportedError,
    UpstreamTransportError,
)
from app.schemas import WarmupState, WarmupStatus
from app.services.predictions import PollTick, PredictionPoller

logger = logging.getLogger(__name__)


class WarmupStatusCell:
    """Holds the current warmup snapshot; writers replace it whole."""

    def __init__(self, initial: WarmupStatus | None = None) -> None:
        self._lock = threading.Lock()
        self._status = initial or WarmupStatus()

    def snapshot(self) -> WarmupStatus:
        with self._lock:
            return self._status

    def replace(self, status: WarmupStatus) -> None:
        with self._lock:
            self._status = status


class WarmupMonitor:
    """Drive the ``starting -> warming -> ready | failed`` warmup lifecycle."""

    def __init__(
        self,
        replicate_client: ReplicateClient,
        poller: PredictionPoller,
        *,
        max_attempts: int = 120,
        poll_interval_seconds: float | None = None,
        cell: WarmupStatusCell | None = None,
    ) -> None:
        self._replicate = replicate_client
        self._poller = poller
        self._max_attempts = max_attempts
        self._poll_interval = poll_interval_seconds
        self._cell = cell or WarmupStatusCell()
        self._task: Optional[asyncio.Task[None]] = None
        self._started_at = 0.0

    def status(self) -> WarmupStatus:
        """Return the current warmup snapshot."""
        return self._cell.snapshot()

    def start(self) -> asyncio.Task[None]:
        """Launch the warmup task; later calls return the same task."""
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="vision-warmup")
        return self._task

    async def run(self) -> None:
        if self.status().state is not WarmupState.STARTING:
            logger.debug("Warmup already ran; ignoring")
            return

        self._started_at = self._poller.clock()
        self._publish(WarmupState.WARMING, "sending warmup request to replicate...", 0)
        logger.info("Warmup: sending dummy prediction to wake VL2 model...")

        try:
            await self._warm()
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Warmup crashed")
            self._fail(f"warmup crashed: {exc}")

    async def _warm(self) -> None:
        payload = {
            "version": self._replicate.model_version,
            "input": {
                "image": self._replicate.warmup_image_url,
                "prompt": "Say OK <image>",
                "max_length_tokens": 10,
            },
        }

        try:
            handle = await self._poller.submit(payload)
        except UpstreamTransportError as exc:
            self._fail(f"warmup request failed: {exc}")
            return
        except ResponseParseError as exc:
            self._fail(f"warmup parse error: {exc}")
            return
        except UpstreamReportedError as exc:
            self._fail(f"replicate error: {exc.detail or exc}")
            return

        if handle.succeeded:
            elapsed = self._elapsed()
            self._publish(WarmupState.READY, "model ready", elapsed)
            logger.info("Warmup: model already warm, ready in %ds", elapsed)
            return
        if handle.failed:
            self._fail(f"warmup failed: {handle.error_message or 'unknown'}")
            return

        logger.info("Warmup: prediction %s created, polling...", handle.id)
        try:
            await self._poller.poll_until_terminal(
                handle.id,
                max_attempts=self._max_attempts,
                interval_seconds=self._poll_interval,
                observer=self._on_tick,
                started_at=self._started_at,
            )
        except UpstreamReportedError as exc:
            self._fail(f"warmup failed: {exc.detail or 'unknown'}")
            return
        except PredictionTimeoutError:
            self._fail(f"warmup timed out after {self._max_attempts} polling attempts")
            return

        elapsed = self._elapsed()
        self._publish(WarmupState.READY, f"model ready ({elapsed}s)", elapsed)
        logger.info("Warmup: model ready in %ds", elapsed)

    def _on_tick(self, tick: PollTick) -> None:
        elapsed = max(tick.elapsed_seconds, self.status().elapsed_seconds)
        self._publish(WarmupState.WARMING, f"warming up model... {elapsed}s", elapsed)
        if tick.attempt % 10 == 0:
            logger.warning(
                "Warmup: still waiting (%ds, status: %s)...", elapsed, tick.status
            )

    def _fail(self, message: str) -> None:
        self._publish(WarmupState.FAILED, message, self._elapsed())
        logger.error("Warmup failed: %s", message)

    def _elapsed(self) -> int:
        current = int(max(self._poller.clock() - self._started_at, 0))
        return max(current, self.status().elapsed_seconds)

    def _publish(self, state: WarmupState, message: str, elapsed_seconds: int) -> None:
        if self.status().state.is_terminal:
            return
        self._cell.replace(
            WarmupStatus(state=state, message=message, elapsed_seconds=elapsed_seconds)
        )


__all__ = ["WarmupMonitor", "WarmupStatusCell"]
