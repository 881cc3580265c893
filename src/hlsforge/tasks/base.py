"""Common shape of single-purpose probe tasks."""

from __future__ import annotations

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from hlsforge.models.errors import ProcessExecutionError, TaskCancelledError, TaskTimeoutError
from hlsforge.models.results import tail
from hlsforge.models.types import Verbosity
from hlsforge.tools.cli import capture_ffmpeg, capture_ffprobe, join_command
from hlsforge.tools.helpers import emit_status, format_action_label
from hlsforge.tools.throttle import ProbeThrottle, default_throttle

if TYPE_CHECKING:
    import threading
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from hlsforge.models.context import RuntimeContext

logger = logging.getLogger(__name__)


class Deadline:
    """Time budget and cancellation flag shared by the steps of one task run."""

    def __init__(self, timeout: float | None = None, cancel: threading.Event | None = None) -> None:
        self.expires = None if timeout is None else time.monotonic() + timeout
        self.cancel = cancel

    def check(self) -> None:
        """Raise if the run was cancelled or has run out of time.

        Raises:
            TaskCancelledError: If the cancel flag is set.
            TaskTimeoutError: If the deadline has passed.

        """
        if self.cancel is not None and self.cancel.is_set():
            raise TaskCancelledError("Task cancelled")
        if self.expires is not None and time.monotonic() >= self.expires:
            raise TaskTimeoutError("Task deadline exceeded")

    def remaining(self) -> float | None:
        """Seconds left, or ``None`` without a deadline."""
        self.check()
        return None if self.expires is None else self.expires - time.monotonic()


class ProbeTask[T](ABC):
    """Construct with inputs, ``run`` with a deadline, then read ``result``.

    ``run_static`` does all three in one call. Tool invocations share the
    probe throttle and are checked against the deadline before they start;
    a running tool is stopped when the remaining time elapses.
    """

    label: ClassVar[str] = "task"

    def __init__(self, ctx: RuntimeContext, *, throttle: ProbeThrottle | None = None) -> None:
        self.ctx = ctx
        self.throttle = throttle or default_throttle()
        self.result: T | None = None

    @abstractmethod
    def execute(self, deadline: Deadline) -> T:
        """Do the work and return the result."""

    def run(self, *, timeout: float | None = None, cancel: threading.Event | None = None) -> T:
        """Execute the task, store and return its result.

        Raises:
            TaskCancelledError: If ``cancel`` is set before a step starts.
            TaskTimeoutError: If ``timeout`` seconds pass first.
            ProcessExecutionError: If a tool exits with a non-zero status.

        """
        deadline = Deadline(timeout, cancel)
        deadline.check()
        try:
            self.result = self.execute(deadline)
        except subprocess.TimeoutExpired as e:
            raise TaskTimeoutError(f"{self.label} timed out after {e.timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise ProcessExecutionError(
                f"{self.label} failed with exit code {e.returncode}",
                exit_code=e.returncode,
                stderr_tail=tail(e.stderr or e.output or ""),
            ) from e
        return self.result

    @classmethod
    def run_static(
        cls,
        ctx: RuntimeContext,
        *args: Any,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        **kwargs: Any,
    ) -> T:
        """Construct a task and run it once."""
        return cls(ctx, *args, **kwargs).run(timeout=timeout, cancel=cancel)

    def _banner(self, exe: str, args: Sequence[str | Path]) -> None:
        if self.ctx.verbosity >= Verbosity.COMMANDS:
            emit_status(
                f"{format_action_label(dry_run=False)}: {join_command(exe, args)}",
                status_callback=self.ctx.status_callback,
            )

    def ffmpeg(
        self,
        args: Sequence[str | Path],
        deadline: Deadline,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run ``ffmpeg`` under a probe permit."""
        self._banner("ffmpeg", args)
        with self.throttle.permit(timeout=deadline.remaining()):
            return capture_ffmpeg(args, timeout=deadline.remaining(), cwd=cwd, env=env, check=check)

    def ffprobe(self, args: Sequence[str | Path], deadline: Deadline) -> subprocess.CompletedProcess[str]:
        """Run ``ffprobe`` under a probe permit."""
        self._banner("ffprobe", args)
        with self.throttle.permit(timeout=deadline.remaining()):
            return capture_ffprobe(args, timeout=deadline.remaining())


__all__ = ["Deadline", "ProbeTask"]
