"""Cached ``ffprobe`` queries for single facts about a file."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hlsforge.models.types import Verbosity

from .cli import cache_key, join_command, run_ffprobe
from .helpers import emit_status, format_action_label, parse_frame_rate
from .throttle import ProbeThrottle, default_throttle

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from hlsforge.models.context import RuntimeContext

_ERRORS_ONLY = ["-v", "error"]
_BARE_OUTPUT = ["-of", "default=noprint_wrappers=1:nokey=1"]
_SHOW_ENTRIES = ["-show_entries"]
_SELECT_STREAMS = ["-select_streams"]
_KEYED_OUTPUT = ["-of", "default=noprint_wrappers=1"]
_UNKNOWN = "unknown"
VIDEO_CODEC_ENTRIES = "stream=codec_name,profile,level,pix_fmt,r_frame_rate"

_CACHE_FAILURE_ENTRY: tuple[bool, str | None] = (False, None)

logger = logging.getLogger(__name__)


def _log_cmd(ctx: RuntimeContext, cmd: list[str], *, cached: bool = False) -> None:
    action = format_action_label(dry_run=ctx.dry_run, cached=cached)
    emit_status(f"{action}: {join_command('ffprobe', cmd)}", status_callback=ctx.status_callback)


def run(ctx: RuntimeContext, cmd: list[str], *, throttle: ProbeThrottle | None = None) -> str | None:
    """Run ``ffprobe`` with ``cmd`` and return stripped output or ``None``.

    Results, including failures, are cached against the command tokens and
    the size and mtime of any file arguments.
    """
    key = cache_key(["ffprobe", *cmd])
    if key in ctx.cache:
        ok, payload = ctx.cache[key]
        if ctx.verbosity >= Verbosity.COMMANDS:
            _log_cmd(ctx, cmd, cached=True)
        return payload if ok else None
    if ctx.verbosity >= Verbosity.COMMANDS:
        _log_cmd(ctx, cmd)
    settings = ctx.settings
    try:
        with (throttle or default_throttle()).permit(timeout=settings.probe_timeout_s):
            out = run_ffprobe(cmd, timeout=settings.probe_timeout_s).strip()
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as exc:
        logger.warning("ffprobe command failed: %s", join_command("ffprobe", cmd), exc_info=exc)
        ctx.cache[key] = _CACHE_FAILURE_ENTRY
        return None
    result = out or None
    ctx.cache[key] = (True, result)
    return result


def query[T](
    ctx: RuntimeContext,
    path: str | Path,
    entries: str,
    stream: str = "",
    *,
    convert: Callable[[str], T] | None = None,
    throttle: ProbeThrottle | None = None,
) -> T | str | None:
    """Execute a ``-show_entries`` query and optionally convert the answer."""
    cmd = (
        _ERRORS_ONLY
        + ([*_SELECT_STREAMS, stream] if stream else [])
        + _SHOW_ENTRIES
        + [entries]
        + _BARE_OUTPUT
        + [str(path)]
    )
    out = run(ctx, cmd, throttle=throttle)
    if not out:
        return None
    if convert is None:
        return out
    try:
        return convert(out)
    except (ValueError, TypeError):
        return None


def get_duration_sec(ctx: RuntimeContext, path: str | Path, *, throttle: ProbeThrottle | None = None) -> float | None:
    """Get container duration in seconds."""
    dur = query(ctx, path, "format=duration", convert=float, throttle=throttle)
    return dur if isinstance(dur, float) else None


@dataclass(frozen=True)
class VideoCodecInfo:
    """Codec facts of a video stream needed for a ``CODECS`` attribute."""

    codec_name: str | None = None
    profile: str | None = None
    level: int | None = None
    pix_fmt: str | None = None
    frame_rate: float = 0.0


def _keyed_fields(out: str | None) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in (out or "").splitlines():
        key, sep, value = line.strip().partition("=")
        if sep and value and value != _UNKNOWN:
            fields[key] = value
    return fields


def get_video_codec_info(
    ctx: RuntimeContext, path: str | Path, *, throttle: ProbeThrottle | None = None
) -> VideoCodecInfo:
    """Return the codec facts of the first video stream.

    Fields ffprobe leaves out or reports as unknown stay ``None``; a negative
    level such as ``-99`` counts as unknown.
    """
    cmd = (
        _ERRORS_ONLY
        + [*_SELECT_STREAMS, "v:0"]
        + _SHOW_ENTRIES
        + [VIDEO_CODEC_ENTRIES]
        + _KEYED_OUTPUT
        + [str(path)]
    )
    fields = _keyed_fields(run(ctx, cmd, throttle=throttle))
    try:
        level: int | None = int(fields.get("level", ""))
    except ValueError:
        level = None
    return VideoCodecInfo(
        codec_name=fields.get("codec_name"),
        profile=fields.get("profile"),
        level=level if level is not None and level >= 0 else None,
        pix_fmt=fields.get("pix_fmt"),
        frame_rate=parse_frame_rate(fields.get("r_frame_rate")),
    )


__all__ = ["VideoCodecInfo", "get_duration_sec", "get_video_codec_info", "query", "run"]
