"""Exception types raised by hlsforge components."""

from __future__ import annotations


class EncoderError(RuntimeError):
    """Base class for hlsforge failures."""


class AnalysisError(EncoderError):
    """Probing a media file failed."""


class AnalysisTimeoutError(AnalysisError, TimeoutError):
    """The probe tool did not answer within the allowed window after retrying."""


class MalformedOutputError(AnalysisError, ValueError):
    """The probe tool produced output that could not be parsed."""


class UnsupportedCodecError(EncoderError, ValueError):
    """A requested codec family is unknown."""


class NoProfileFoundError(EncoderError, ValueError):
    """An encoder profile lacks a sub-profile for a required stream type."""


class PermitTimeoutError(EncoderError, TimeoutError):
    """A probe permit could not be acquired in time."""


class ModelUnavailableError(EncoderError):
    """An OCR language model is missing and could not be fetched."""


class TaskTimeoutError(EncoderError, TimeoutError):
    """A probe task ran past its deadline."""


class TaskCancelledError(EncoderError):
    """A probe task was cancelled before it finished."""


class ProcessExecutionError(EncoderError):
    """An external tool exited with a non-zero status."""

    def __init__(self, message: str, *, exit_code: int, stderr_tail: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail


__all__ = [
    "AnalysisError",
    "AnalysisTimeoutError",
    "EncoderError",
    "MalformedOutputError",
    "ModelUnavailableError",
    "NoProfileFoundError",
    "PermitTimeoutError",
    "ProcessExecutionError",
    "TaskCancelledError",
    "TaskTimeoutError",
    "UnsupportedCodecError",
]
