"""Execute FFmpeg with live progress, cancellation and job control."""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING

from hlsforge.models.results import ControlResult, ExecutionResult
from hlsforge.models.types import Verbosity
from hlsforge.tools.cli import capture_ffmpeg, ffmpeg_executable, format_ffmpeg_cmd
from hlsforge.tools.helpers import emit_status, format_action_label

from .builder.command_args import PROGRESS
from .control import ProcessController, controller_for_platform
from .progress import ProgressParser

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from hlsforge.models.context import RuntimeContext
    from hlsforge.models.results import EncodingProgress, ProgressId

CANCEL_POLL_S = 0.1

logger = logging.getLogger(__name__)


class ProcessExecutor:
    """Spawn FFmpeg processes and track them by pid until they exit."""

    def __init__(self, ctx: RuntimeContext, controller: ProcessController | None = None) -> None:
        self.ctx = ctx
        self.controller = controller or controller_for_platform()
        self._lock = threading.Lock()
        self._processes: dict[int, subprocess.Popen[str]] = {}
        self._cancelled: set[int] = set()

    @property
    def running_pids(self) -> tuple[int, ...]:
        """Pids of processes started by this executor that are still tracked."""
        with self._lock:
            return tuple(self._processes)

    def _banner(self, args: Sequence[str]) -> None:
        if self.ctx.verbosity >= Verbosity.COMMANDS or self.ctx.dry_run:
            emit_status(
                f"{format_action_label(dry_run=self.ctx.dry_run)}: {format_ffmpeg_cmd(args)}",
                status_callback=self.ctx.status_callback,
            )

    def _drain_stderr(self, proc: subprocess.Popen[str], parser: ProgressParser, chunks: list[str]) -> None:
        if proc.stderr is None:  # pragma: no cover - defensive
            return
        verbose = self.ctx.verbosity >= Verbosity.OUTPUT
        for line in iter(proc.stderr.readline, ""):
            chunks.append(line)
            parser.feed_stderr(line)
            if verbose:
                emit_status(line.rstrip("\n"), status_callback=self.ctx.status_callback)

    def _watch_cancel(self, proc: subprocess.Popen[str], cancel: threading.Event) -> None:
        while proc.poll() is None:
            if cancel.wait(CANCEL_POLL_S):
                self.cancel(proc.pid)
                return

    def execute(
        self,
        args: Sequence[str],
        *,
        working_dir: Path | None = None,
        progress_callback: Callable[[EncodingProgress], None] | None = None,
        cancel: threading.Event | None = None,
        total_duration: float | None = None,
        progress_id: ProgressId | None = None,
    ) -> ExecutionResult:
        """Run ``ffmpeg`` with ``args`` and push progress samples as they complete.

        Cancellation kills the process tree and returns a result with
        ``cancelled=True`` instead of raising. Partial output stays on disk.
        """
        full_args = [*PROGRESS, *args]
        self._banner(full_args)
        if self.ctx.dry_run:
            return ExecutionResult(success=True, exit_code=0)
        if cancel is not None and cancel.is_set():
            return ExecutionResult(success=False, exit_code=-1, cancelled=True)

        parser = ProgressParser(total_duration, progress_id)
        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []
        started = time.monotonic()
        try:
            proc = subprocess.Popen(  # noqa: S603
                [ffmpeg_executable(), *full_args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                bufsize=1,
                cwd=working_dir,
                **self.controller.popen_kwargs(),
            )
        except OSError as e:
            logger.error("Could not start ffmpeg: %s", e)
            return ExecutionResult(success=False, exit_code=-1, stderr=str(e))

        with self._lock:
            self._processes[proc.pid] = proc
        stderr_thread = threading.Thread(target=self._drain_stderr, args=(proc, parser, stderr_chunks), daemon=True)
        stderr_thread.start()
        if cancel is not None:
            threading.Thread(target=self._watch_cancel, args=(proc, cancel), daemon=True).start()
        try:
            if proc.stdout is None:  # pragma: no cover - defensive
                raise RuntimeError("Failed to capture subprocess stdout")
            for line in iter(proc.stdout.readline, ""):
                stdout_chunks.append(line)
                sample = parser.feed_stdout(line)
                if sample is not None and progress_callback is not None:
                    try:
                        progress_callback(sample)
                    except Exception:
                        logger.exception("Progress callback failed")
            proc.wait()
            stderr_thread.join()
        finally:
            with self._lock:
                self._processes.pop(proc.pid, None)
                was_cancelled = proc.pid in self._cancelled
                self._cancelled.discard(proc.pid)
            if proc.poll() is None:
                self.controller.kill(proc.pid)
                proc.wait()

        elapsed = time.monotonic() - started
        stdout, stderr = "".join(stdout_chunks), "".join(stderr_chunks)
        if was_cancelled:
            logger.info("ffmpeg process %d cancelled", proc.pid)
            return ExecutionResult(
                success=False, exit_code=-1, stdout=stdout, stderr=stderr, duration=elapsed, cancelled=True
            )
        result = ExecutionResult(
            success=proc.returncode == 0,
            exit_code=proc.returncode,
            stdout=stdout,
            stderr=stderr,
            duration=elapsed,
        )
        if not result.success:
            logger.warning("ffmpeg exited with %d: %s", proc.returncode, result.stderr_tail)
        return result

    def execute_silent(
        self,
        args: Sequence[str],
        *,
        working_dir: Path | None = None,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """Run a short diagnostic ``ffmpeg`` call without a progress stream."""
        self._banner(args)
        if self.ctx.dry_run:
            return ExecutionResult(success=True, exit_code=0)
        started = time.monotonic()
        try:
            proc = capture_ffmpeg(args, cwd=working_dir, timeout=timeout, check=False)
        except subprocess.TimeoutExpired as e:
            return ExecutionResult(
                success=False, exit_code=-1, stderr=f"Timed out after {e.timeout}s", duration=time.monotonic() - started
            )
        except OSError as e:
            return ExecutionResult(success=False, exit_code=-1, stderr=str(e))
        return ExecutionResult(
            success=proc.returncode == 0,
            exit_code=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
            duration=time.monotonic() - started,
        )

    def _control(self, pid: int, action: Callable[[int], ControlResult]) -> ControlResult:
        with self._lock:
            known = pid in self._processes
        if not known:
            return ControlResult.NOT_FOUND
        return action(pid)

    def pause(self, pid: int) -> ControlResult:
        """Suspend a running encode."""
        return self._control(pid, self.controller.pause)

    def resume(self, pid: int) -> ControlResult:
        """Continue a suspended encode."""
        return self._control(pid, self.controller.resume)

    def cancel(self, pid: int) -> ControlResult:
        """Kill a running encode and its children."""
        with self._lock:
            if pid not in self._processes:
                return ControlResult.NOT_FOUND
            self._cancelled.add(pid)
        return self.controller.kill(pid)

    def cancel_all(self) -> dict[int, ControlResult]:
        """Kill every tracked process."""
        return {pid: self.cancel(pid) for pid in self.running_pids}


__all__ = ["ProcessExecutor"]
