"""Probe media files into structured stream descriptions."""

from __future__ import annotations

import json
import logging
import subprocess
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from hlsforge.models.analysis import (
    AudioStreamInfo,
    ChapterInfo,
    StreamAnalysis,
    SubtitleStreamInfo,
    VideoStreamInfo,
)
from hlsforge.models.errors import AnalysisError, AnalysisTimeoutError, MalformedOutputError
from hlsforge.models.types import Verbosity

from .cli import cache_key, join_command, run_ffprobe
from .helpers import emit_status, format_action_label, parse_frame_rate
from .throttle import ProbeThrottle, default_throttle

if TYPE_CHECKING:
    from hlsforge.models.context import RuntimeContext

ANALYZE_ARGS: tuple[str, ...] = (
    "-v",
    "quiet",
    "-print_format",
    "json",
    "-show_format",
    "-show_streams",
    "-show_chapters",
)  #: Full JSON description of format, streams and chapters.
DURATION_ARGS: tuple[str, ...] = (
    "-v",
    "error",
    "-show_entries",
    "format=duration",
    "-of",
    "default=noprint_wrappers=1:nokey=1",
)  #: Bare format duration in seconds.
FORMAT_NAME_ARGS: tuple[str, ...] = (
    "-v",
    "error",
    "-show_entries",
    "format=format_name",
    "-of",
    "default=noprint_wrappers=1:nokey=1",
)  #: Bare container format name.

_ANALYSIS_KEY = "__analysis__"

logger = logging.getLogger(__name__)


def _int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _flag(disposition: dict[str, Any], name: str) -> bool:
    return bool(_int(disposition.get(name)))


def _video(stream: dict[str, Any]) -> VideoStreamInfo:
    tags = stream.get("tags") or {}
    disposition = stream.get("disposition") or {}
    field_order = stream.get("field_order")
    frame_rate = parse_frame_rate(stream.get("r_frame_rate")) or parse_frame_rate(stream.get("avg_frame_rate"))
    return VideoStreamInfo(
        index=_int(stream.get("index")) or 0,
        codec=stream.get("codec_name", ""),
        width=_int(stream.get("width")) or 0,
        height=_int(stream.get("height")) or 0,
        profile=stream.get("profile"),
        frame_rate=frame_rate,
        bit_rate=_int(stream.get("bit_rate")),
        pix_fmt=stream.get("pix_fmt"),
        color_space=stream.get("color_space"),
        color_transfer=stream.get("color_transfer"),
        color_primaries=stream.get("color_primaries"),
        language=tags.get("language"),
        title=tags.get("title"),
        is_default=_flag(disposition, "default"),
        is_forced=_flag(disposition, "forced"),
        is_interlaced=field_order not in {None, "progressive", "unknown"},
    )


def _audio(stream: dict[str, Any]) -> AudioStreamInfo:
    tags = stream.get("tags") or {}
    disposition = stream.get("disposition") or {}
    return AudioStreamInfo(
        index=_int(stream.get("index")) or 0,
        codec=stream.get("codec_name", ""),
        channels=_int(stream.get("channels")) or 0,
        channel_layout=stream.get("channel_layout"),
        sample_rate=_int(stream.get("sample_rate")) or 0,
        bit_rate=_int(stream.get("bit_rate")),
        profile=stream.get("profile"),
        language=tags.get("language"),
        title=tags.get("title"),
        is_default=_flag(disposition, "default"),
        is_forced=_flag(disposition, "forced"),
    )


def _subtitle(stream: dict[str, Any]) -> SubtitleStreamInfo:
    tags = stream.get("tags") or {}
    disposition = stream.get("disposition") or {}
    return SubtitleStreamInfo(
        index=_int(stream.get("index")) or 0,
        codec=stream.get("codec_name", ""),
        language=tags.get("language"),
        title=tags.get("title"),
        is_default=_flag(disposition, "default"),
        is_forced=_flag(disposition, "forced"),
        is_hearing_impaired=_flag(disposition, "hearing_impaired"),
    )


def _chapter(i: int, chapter: dict[str, Any]) -> ChapterInfo:
    tags = chapter.get("tags") or {}
    return ChapterInfo(
        id=_int(chapter.get("id")) or i,
        title=tags.get("title") or f"Chapter {i + 1}",
        start=_float(chapter.get("start_time")) or 0.0,
        end=_float(chapter.get("end_time")) or 0.0,
    )


def parse_chapters(text: str) -> tuple[ChapterInfo, ...]:
    """Read the chapter list from ``ffprobe -show_chapters`` JSON output.

    Raises:
        MalformedOutputError: If ``text`` is not a JSON object.

    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Unparseable chapter output: {e}") from e
    if not isinstance(data, dict):
        raise MalformedOutputError("Chapter output is not a JSON object")
    return tuple(_chapter(i, c) for i, c in enumerate(data.get("chapters") or []))


def parse_analysis(path: Path, text: str) -> StreamAnalysis:
    """Convert ``ffprobe`` JSON output into a :class:`StreamAnalysis`.

    Video streams flagged as attached pictures (cover art) are skipped.

    Raises:
        MalformedOutputError: If ``text`` is not the expected JSON document.

    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Unparseable ffprobe output for {path}: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("format"), dict):
        raise MalformedOutputError(f"ffprobe output for {path} has no format section")

    videos: list[VideoStreamInfo] = []
    audios: list[AudioStreamInfo] = []
    subtitles: list[SubtitleStreamInfo] = []
    for stream in data.get("streams") or []:
        kind = stream.get("codec_type")
        if kind == "video":
            if _flag(stream.get("disposition") or {}, "attached_pic"):
                continue
            videos.append(_video(stream))
        elif kind == "audio":
            audios.append(_audio(stream))
        elif kind == "subtitle":
            subtitles.append(_subtitle(stream))

    fmt = data["format"]
    size = _int(fmt.get("size"))
    if size is None:
        size = path.stat().st_size if path.is_file() else 0
    return StreamAnalysis(
        path=path,
        duration=_float(fmt.get("duration")) or 0.0,
        size=size,
        format_name=fmt.get("format_name", ""),
        bit_rate=_int(fmt.get("bit_rate")),
        video_streams=tuple(videos),
        audio_streams=tuple(audios),
        subtitle_streams=tuple(subtitles),
        chapters=tuple(_chapter(i, c) for i, c in enumerate(data.get("chapters") or [])),
    )


class MediaAnalyzer:
    """Run ``ffprobe`` with retries, bounded by the shared probe throttle."""

    def __init__(self, ctx: RuntimeContext, throttle: ProbeThrottle | None = None) -> None:
        self.ctx = ctx
        self.throttle = throttle or default_throttle()

    def _probe(self, args: list[str]) -> str:
        """Run ``ffprobe`` retrying on timeouts and failures.

        Raises:
            AnalysisTimeoutError: If every attempt timed out.
            AnalysisError: If the last attempt failed for another reason.

        """
        settings = self.ctx.settings
        last_error: Exception | None = None
        for attempt in range(settings.probe_retries):
            if self.ctx.verbosity >= Verbosity.COMMANDS:
                emit_status(
                    f"{format_action_label(dry_run=False)}: {join_command('ffprobe', args)}",
                    status_callback=self.ctx.status_callback,
                )
            try:
                with self.throttle.permit(timeout=settings.probe_timeout_s):
                    return run_ffprobe(args, timeout=settings.probe_timeout_s)
            except (subprocess.TimeoutExpired, subprocess.CalledProcessError, TimeoutError) as e:
                last_error = e
                logger.debug("ffprobe attempt %d/%d failed: %s", attempt + 1, settings.probe_retries, e)
            if attempt + 1 < settings.probe_retries:
                time.sleep(settings.probe_backoff_ms * (attempt + 1) / 1000)
        command = join_command("ffprobe", args)
        if isinstance(last_error, (subprocess.TimeoutExpired, TimeoutError)):
            raise AnalysisTimeoutError(
                f"ffprobe timed out after {settings.probe_retries} attempts: {command}"
            ) from last_error
        raise AnalysisError(f"ffprobe failed after {settings.probe_retries} attempts: {command}") from last_error

    def analyze(self, path: str | Path) -> StreamAnalysis:
        """Describe every stream and chapter in ``path``.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            AnalysisTimeoutError: If probing keeps timing out.
            MalformedOutputError: If the probe output cannot be parsed.

        """
        source = Path(path)
        if not source.is_file():
            raise FileNotFoundError(f"Input file not found: {source}")
        key = cache_key([_ANALYSIS_KEY, source])
        cached = self.ctx.cache.get(key)
        if isinstance(cached, StreamAnalysis):
            if self.ctx.verbosity >= Verbosity.COMMANDS:
                emit_status(
                    f"{format_action_label(dry_run=False, cached=True)}: analysis of {source}",
                    status_callback=self.ctx.status_callback,
                )
            return cached
        analysis = parse_analysis(source, self._probe([*ANALYZE_ARGS, str(source)]))
        self.ctx.cache[key] = analysis
        return analysis

    def get_duration(self, path: str | Path) -> float:
        """Return the container duration in seconds.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            MalformedOutputError: If no numeric duration is reported.

        """
        source = Path(path)
        if not source.is_file():
            raise FileNotFoundError(f"Input file not found: {source}")
        out = self._probe([*DURATION_ARGS, str(source)]).strip()
        try:
            return float(out.splitlines()[0])
        except (IndexError, ValueError) as e:
            raise MalformedOutputError(f"No duration reported for {source}: {out!r}") from e

    def is_valid_media_file(self, path: str | Path) -> bool:
        """Return True when ``ffprobe`` recognizes a container format in ``path``."""
        source = Path(path)
        if not source.is_file():
            return False
        try:
            return bool(self._probe([*FORMAT_NAME_ARGS, str(source)]).strip())
        except AnalysisError:
            return False


__all__ = ["MediaAnalyzer", "parse_analysis", "parse_chapters"]
