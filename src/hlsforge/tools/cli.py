"""Helpers for executing FFmpeg and ffprobe commands."""

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from functools import partial
from pathlib import Path
from typing import Any

_FFMPEG = os.getenv("HLSFORGE_FFMPEG_PATH", "ffmpeg")
_FFPROBE = os.getenv("HLSFORGE_FFPROBE_PATH", "ffprobe")

#: Flags whose value is always quoted when a command is displayed.
_FILTER_FLAGS = frozenset({"-vf", "-af", "-filter_complex"})

logger = logging.getLogger(__name__)


def cache_key(cmd: Sequence[str | Path]) -> tuple[Any, ...]:
    """Return a cache key for ``cmd`` based on tokens and file metadata."""
    key_parts: list[Any] = []
    for token in cmd:
        s = str(token)
        key_parts.append(s)
        if s.startswith("-"):
            continue
        path = Path(s)
        if path.is_file():
            try:
                stat = path.stat()
            except OSError:
                continue
            key_parts.extend([int(stat.st_mtime_ns), stat.st_size])
    return tuple(key_parts)


def _subprocess_kwargs(
    cwd: Path | None, env: Mapping[str, str] | None, timeout: float | None
) -> dict[str, Any]:
    return {
        "text": True,
        "errors": "replace",
        "creationflags": getattr(subprocess, "CREATE_NO_WINDOW", 0),
        "timeout": timeout,
        "cwd": cwd,
        "env": None if env is None else {**os.environ, **env},
    }


def run(
    exe: str | Path,
    args: Sequence[str | Path],
    *,
    timeout: float | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> str:
    """Run an executable and return its combined stdout/stderr.

    Raises:
        subprocess.CalledProcessError: If the tool exits with a non-zero status.
        subprocess.TimeoutExpired: If ``timeout`` elapses first.
        FileNotFoundError: If the executable does not exist.

    """
    cmd = [str(exe), *[str(a) for a in args]]
    logger.debug("Running: %s", join_command(exe, args))
    proc = subprocess.run(  # noqa: S603
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        check=True,
        **_subprocess_kwargs(cwd, env, timeout),
    )
    return proc.stdout


def capture(
    exe: str | Path,
    args: Sequence[str | Path],
    *,
    timeout: float | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run an executable keeping stdout and stderr apart.

    Used where the tool writes its payload to stdout and diagnostics to
    stderr, such as ``-f chromaprint -`` or ``cropdetect`` logging.
    """
    cmd = [str(exe), *[str(a) for a in args]]
    logger.debug("Capturing: %s", join_command(exe, args))
    return subprocess.run(  # noqa: S603
        cmd,
        capture_output=True,
        check=check,
        **_subprocess_kwargs(cwd, env, timeout),
    )


run_ffmpeg = partial(run, _FFMPEG)
run_ffprobe = partial(run, _FFPROBE)
capture_ffmpeg = partial(capture, _FFMPEG)
capture_ffprobe = partial(capture, _FFPROBE)


def ffmpeg_executable() -> str:
    """Return the configured ``ffmpeg`` executable."""
    return _FFMPEG


def quote_arg(arg: str, *, force: bool = False) -> str:
    """Quote ``arg`` for the current shell, always when ``force`` is set."""
    quoted = subprocess.list2cmdline([arg]) if os.name == "nt" else shlex.quote(arg)
    if force and quoted == arg:
        mark = '"' if os.name == "nt" else "'"
        return f"{mark}{arg}{mark}"
    return quoted


def join_command(exe: str | Path, args: Sequence[str | Path]) -> str:
    """Format a command for display."""
    parts = [str(exe), *[str(a) for a in args]]
    return " ".join(quote_arg(part, force=i > 0 and parts[i - 1] in _FILTER_FLAGS) for i, part in enumerate(parts))


def format_ffmpeg_cmd(args: Sequence[str | Path]) -> str:
    """Format an ``ffmpeg`` command for display."""
    return join_command(_FFMPEG, args)


__all__ = [
    "cache_key",
    "capture",
    "capture_ffmpeg",
    "capture_ffprobe",
    "ffmpeg_executable",
    "format_ffmpeg_cmd",
    "join_command",
    "quote_arg",
    "run",
    "run_ffmpeg",
    "run_ffprobe",
]
