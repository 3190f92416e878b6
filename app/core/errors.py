"""Exception hierarchy shared by the inference pipeline."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for every failure surfaced by the analysis pipeline."""


class ModelNotReadyError(PipelineError):
    """Raised when an analysis is requested before warmup has completed."""


class UpstreamTransportError(PipelineError):
    """Raised when an upstream endpoint could not be reached."""


class UpstreamReportedError(PipelineError):
    """Raised when an upstream endpoint reports a failure on its own.

    ``detail`` holds the server-supplied message verbatim when there is one.
    """

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail


class ResponseParseError(PipelineError):
    """Raised when an upstream response does not have the expected shape.

    The offending payload is kept on ``raw`` for operator inspection.
    """

    def __init__(self, message: str, *, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class PredictionTimeoutError(PipelineError):
    """Raised when a prediction never reached a terminal state."""


class StageError(PipelineError):
    """Wraps a failure with the pipeline stage it happened in."""

    def __init__(self, stage: str, cause: PipelineError) -> None:
        super().__init__(f"{stage} analysis failed: {cause}")
        self.stage = stage
        self.cause = cause


__all__ = [
    "ModelNotReadyError",
    "PipelineError",
    "PredictionTimeoutError",
    "ResponseParseError",
    "StageError",
    "UpstreamReportedError",
    "UpstreamTransportError",
]
