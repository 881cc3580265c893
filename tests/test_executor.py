"""Tests for the FFmpeg process executor."""

from __future__ import annotations

import os
import signal
import subprocess
import sys
import threading
from typing import TYPE_CHECKING

import pytest

from hlsforge.backend import executor
from hlsforge.backend.executor import ProcessExecutor
from hlsforge.models import ControlResult, EncodingProgress, ExecutionResult, Verbosity

if TYPE_CHECKING:
    from pathlib import Path

    from hlsforge.models import RuntimeContext

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake ffmpeg is a POSIX shell script")

PROGRESS_SCRIPT = """#!/bin/sh
echo "  Duration: 00:00:10.00, start: 0.000000, bitrate: 1000 kb/s" >&2
printf 'frame=120\\nfps=60.0\\nout_time_us=5000000\\nspeed=2.0x\\nprogress=continue\\n'
printf 'frame=240\\nfps=60.0\\nout_time_us=10000000\\nspeed=2.0x\\nprogress=end\\n'
exit 0
"""

FAILING_SCRIPT = """#!/bin/sh
echo "Unknown encoder 'libnope'" >&2
exit 3
"""

SLEEPING_SCRIPT = """#!/bin/sh
exec sleep 30
"""


def _fake_ffmpeg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, body: str) -> Path:
    script = tmp_path / "ffmpeg"
    script.write_text(body, encoding="utf-8")
    script.chmod(0o755)
    monkeypatch.setattr(executor, "ffmpeg_executable", lambda: str(script))
    return script


class FakeController:
    """Controller recording job-control calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int]] = []

    def popen_kwargs(self) -> dict[str, object]:
        return {}

    def pause(self, pid: int) -> ControlResult:
        self.calls.append(("pause", pid))
        return ControlResult.OK

    def resume(self, pid: int) -> ControlResult:
        self.calls.append(("resume", pid))
        return ControlResult.OK

    def kill(self, pid: int) -> ControlResult:
        self.calls.append(("kill", pid))
        os.kill(pid, signal.SIGKILL)
        return ControlResult.OK


def test_execute_reports_progress(ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Samples are pushed per record and the result carries the output."""
    _fake_ffmpeg(tmp_path, monkeypatch, PROGRESS_SCRIPT)
    samples: list[EncodingProgress] = []
    result = ProcessExecutor(ctx).execute(
        ["-i", "in.mkv", "out.m3u8"], progress_callback=samples.append, total_duration=10.0, progress_id=7
    )
    assert result.success
    assert result.exit_code == 0
    assert "progress=end" in result.stdout
    assert "Duration" in result.stderr
    assert result.error_message is None
    assert [round(s.percentage) for s in samples] == [50, 100]
    assert samples[0].remaining == pytest.approx(2.5)
    assert samples[-1].finished
    assert {s.progress_id for s in samples} == {7}


def test_execute_failure(ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A non-zero exit code yields a failed result with the stderr tail."""
    _fake_ffmpeg(tmp_path, monkeypatch, FAILING_SCRIPT)
    result = ProcessExecutor(ctx).execute(["-i", "in.mkv"])
    assert not result.success
    assert result.exit_code == 3
    assert result.error_message == "Process exited with code 3: Unknown encoder 'libnope'"


def test_progress_callback_errors_are_contained(
    ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A failing callback does not abort the encode."""
    _fake_ffmpeg(tmp_path, monkeypatch, PROGRESS_SCRIPT)

    def broken(_sample: EncodingProgress) -> None:
        raise RuntimeError("sink down")

    assert ProcessExecutor(ctx).execute(["-i", "in.mkv"], progress_callback=broken).success


def test_cancel_kills_process(ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Setting the cancel event ends the run with a cancelled result."""
    _fake_ffmpeg(tmp_path, monkeypatch, SLEEPING_SCRIPT)
    cancel = threading.Event()
    timer = threading.Timer(0.3, cancel.set)
    timer.start()
    try:
        result = ProcessExecutor(ctx).execute(["-i", "in.mkv"], cancel=cancel)
    finally:
        timer.cancel()
    assert result.cancelled
    assert not result.success
    assert result.exit_code == -1
    assert result.error_message is None


def test_cancel_all(ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """cancel_all kills every tracked process and reports each pid."""
    _fake_ffmpeg(tmp_path, monkeypatch, SLEEPING_SCRIPT)
    controller = FakeController()
    proc = ProcessExecutor(ctx, controller)
    assert proc.cancel_all() == {}
    results: list[ExecutionResult] = []
    workers = [threading.Thread(target=lambda: results.append(proc.execute(["-i", "in.mkv"]))) for _ in range(2)]
    for worker in workers:
        worker.start()
    try:
        for _ in range(50):
            if len(proc.running_pids) == 2:
                break
            threading.Event().wait(0.05)
        pids = proc.running_pids
        assert len(pids) == 2
        assert proc.cancel_all() == dict.fromkeys(pids, ControlResult.OK)
    finally:
        for worker in workers:
            worker.join(5)
    assert sorted(pid for _, pid in controller.calls) == sorted(pids)
    assert all(r.cancelled for r in results)
    assert len(results) == 2
    assert proc.running_pids == ()


def test_pre_cancelled(ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """An already set cancel event never starts the process."""
    _fake_ffmpeg(tmp_path, monkeypatch, FAILING_SCRIPT)
    cancel = threading.Event()
    cancel.set()
    result = ProcessExecutor(ctx).execute(["-i", "in.mkv"], cancel=cancel)
    assert result.cancelled
    assert result.stderr == ""


def test_dry_run(ctx: RuntimeContext, monkeypatch: pytest.MonkeyPatch) -> None:
    """Dry runs announce the command without spawning anything."""
    lines: list[str] = []
    ctx.dry_run = True
    ctx.status_callback = lines.append

    def no_spawn(*_args: object, **_kwargs: object) -> None:
        raise AssertionError("process spawned during dry run")

    monkeypatch.setattr(executor.subprocess, "Popen", no_spawn)
    result = ProcessExecutor(ctx).execute(["-i", "in.mkv", "out.m3u8"])
    assert result.success
    assert len(lines) == 1
    assert "out.m3u8" in lines[0]


def test_verbose_output_streams_stderr(ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """At output verbosity diagnostic lines reach the status callback."""
    _fake_ffmpeg(tmp_path, monkeypatch, FAILING_SCRIPT)
    lines: list[str] = []
    ctx.verbosity = Verbosity.OUTPUT
    ctx.status_callback = lines.append
    ProcessExecutor(ctx).execute(["-i", "in.mkv"])
    assert "Unknown encoder 'libnope'" in lines


def test_missing_executable(ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A missing ffmpeg binary is reported as a failed result."""
    monkeypatch.setattr(executor, "ffmpeg_executable", lambda: str(tmp_path / "nope"))
    result = ProcessExecutor(ctx).execute(["-version"])
    assert not result.success
    assert result.exit_code == -1


def test_control_unknown_pid(ctx: RuntimeContext) -> None:
    """Job control on untracked pids reports NOT_FOUND."""
    controller = FakeController()
    proc = ProcessExecutor(ctx, controller)
    assert proc.pause(999_999) is ControlResult.NOT_FOUND
    assert proc.resume(999_999) is ControlResult.NOT_FOUND
    assert proc.cancel(999_999) is ControlResult.NOT_FOUND
    assert controller.calls == []


def test_control_running_process(ctx: RuntimeContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Pause, resume and cancel reach the controller for tracked pids."""
    _fake_ffmpeg(tmp_path, monkeypatch, SLEEPING_SCRIPT)
    controller = FakeController()
    proc = ProcessExecutor(ctx, controller)
    results: list[ExecutionResult] = []
    worker = threading.Thread(target=lambda: results.append(proc.execute(["-i", "in.mkv"])))
    worker.start()
    try:
        for _ in range(50):
            if proc.running_pids:
                break
            threading.Event().wait(0.05)
        (pid,) = proc.running_pids
        assert proc.pause(pid) is ControlResult.OK
        assert proc.resume(pid) is ControlResult.OK
        assert proc.cancel(pid) is ControlResult.OK
    finally:
        worker.join(5)
    assert [c for c, _ in controller.calls] == ["pause", "resume", "kill"]
    assert results[0].cancelled
    assert proc.running_pids == ()


def test_execute_silent(ctx: RuntimeContext, monkeypatch: pytest.MonkeyPatch) -> None:
    """Short diagnostic runs map the completed process to a result."""

    def fake_capture(args: list[str], **_kwargs: object) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(["ffmpeg", *args], 1, stdout="", stderr="boom\n")

    monkeypatch.setattr(executor, "capture_ffmpeg", fake_capture)
    result = ProcessExecutor(ctx).execute_silent(["-i", "in.mkv", "-f", "null", "-"])
    assert not result.success
    assert result.stderr_tail == "boom"


def test_execute_silent_timeout(ctx: RuntimeContext, monkeypatch: pytest.MonkeyPatch) -> None:
    """Timeouts become failed results."""

    def slow_capture(args: list[str], **_kwargs: object) -> subprocess.CompletedProcess[str]:
        raise subprocess.TimeoutExpired(["ffmpeg", *args], 1.0)

    monkeypatch.setattr(executor, "capture_ffmpeg", slow_capture)
    result = ProcessExecutor(ctx).execute_silent(["-version"], timeout=1.0)
    assert not result.success
    assert "Timed out" in result.stderr
