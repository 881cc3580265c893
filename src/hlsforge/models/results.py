"""Progress and result records returned across the execution boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from .hls import HLSOutputStructure

type ProgressId = int | str

STDERR_TAIL_LINES = 20


def tail(text: str, lines: int = STDERR_TAIL_LINES) -> str:
    """Return the last ``lines`` non-empty lines of ``text``."""
    kept = [line for line in text.splitlines() if line.strip()]
    return "\n".join(kept[-lines:])


@dataclass(frozen=True)
class EncodingProgress:
    """A single progress sample pushed while an encode runs."""

    percentage: float
    elapsed: float
    remaining: float
    fps: float = 0.0
    bitrate: float = 0.0
    frame: int = 0
    speed: float = 0.0
    progress_id: ProgressId | None = None
    finished: bool = False


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one external process run."""

    success: bool
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    cancelled: bool = False

    @property
    def stderr_tail(self) -> str:
        """Last lines of the diagnostic output."""
        return tail(self.stderr)

    @property
    def error_message(self) -> str | None:
        """Human-readable failure text or ``None`` on success or cancellation."""
        if self.success or self.cancelled:
            return None
        detail = self.stderr_tail
        return f"Process exited with code {self.exit_code}" + (f": {detail}" if detail else "")


@dataclass(frozen=True)
class RenditionFailure:
    """A rendition that failed during separate-stream encoding."""

    folder_name: str
    exit_code: int
    error_message: str


@dataclass(frozen=True)
class EncodingResult:
    """Terminal value of one encode invocation."""

    success: bool
    output_path: Path | None = None
    duration: float = 0.0
    error_message: str | None = None
    exit_code: int = 0
    hls_output: HLSOutputStructure | None = None
    cancelled: bool = False
    rendition_failures: tuple[RenditionFailure, ...] = field(default_factory=tuple)

    @classmethod
    def failure(cls, message: str, *, exit_code: int = -1, duration: float = 0.0) -> EncodingResult:
        """Build a failed result."""
        return cls(success=False, error_message=message, exit_code=exit_code, duration=duration)


class ControlResult(str, Enum):
    """Outcome of a pause, resume or cancel request."""

    OK = "ok"
    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


__all__ = [
    "ControlResult",
    "EncodingProgress",
    "EncodingResult",
    "ExecutionResult",
    "ProgressId",
    "RenditionFailure",
    "tail",
]
