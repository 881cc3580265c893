"""Parse FFmpeg ``-progress`` records into progress samples."""

from __future__ import annotations

import re

from hlsforge.models.results import EncodingProgress, ProgressId

DURATION_RE = re.compile(r"Duration:\s*(\d{2}):(\d{2}):(\d{2}(?:\.\d+)?)")
BITRATE_RE = re.compile(r"([\d.]+)\s*kbits/s")
OUT_TIME_RE = re.compile(r"(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
PROGRESS_KEY = "progress"
END_VALUE = "end"


def _number(value: str | None) -> float:
    if not value:
        return 0.0
    try:
        return float(value.strip().rstrip("x"))
    except ValueError:
        return 0.0


def _hms(match: re.Match[str]) -> float:
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_duration_line(line: str) -> float | None:
    """Return the ``Duration: HH:MM:SS.ff`` value in seconds, if present."""
    match = DURATION_RE.search(line)
    return _hms(match) if match else None


def elapsed_seconds(record: dict[str, str]) -> float:
    """Return encoded media time in seconds from a progress record.

    ``out_time_us`` and ``out_time_ms`` both carry microseconds.
    """
    for key in ("out_time_us", "out_time_ms"):
        value = record.get(key)
        if value and value.lstrip("-").isdigit():
            return max(0.0, int(value) / 1_000_000)
    match = OUT_TIME_RE.match(record.get("out_time", ""))
    return _hms(match) if match else 0.0


class ProgressParser:
    """Accumulate ``key=value`` lines until a ``progress=`` sentinel.

    The total duration can be given up front (for windowed encodes) or is
    taken from the first ``Duration:`` line seen on the diagnostic stream.
    """

    def __init__(self, total_duration: float | None = None, progress_id: ProgressId | None = None) -> None:
        self.total_duration = total_duration
        self.progress_id = progress_id
        self._record: dict[str, str] = {}

    def feed_stderr(self, line: str) -> None:
        """Look for the input duration on a diagnostic line."""
        if self.total_duration:
            return
        duration = parse_duration_line(line)
        if duration:
            self.total_duration = duration

    def feed_stdout(self, line: str) -> EncodingProgress | None:
        """Add a progress line, returning a sample when a record completes."""
        key, sep, value = line.strip().partition("=")
        if not sep:
            return None
        key, value = key.strip(), value.strip()
        if key != PROGRESS_KEY:
            self._record[key] = value
            return None
        record, self._record = self._record, {}
        return self.build(record, finished=value == END_VALUE)

    def build(self, record: dict[str, str], *, finished: bool = False) -> EncodingProgress:
        """Convert one complete record into an :class:`EncodingProgress`."""
        elapsed = elapsed_seconds(record)
        total = self.total_duration or 0.0
        percentage = min(100.0, elapsed / total * 100) if total > 0 else 0.0
        if finished:
            percentage = 100.0
        speed = _number(record.get("speed"))
        remaining = max(0.0, total - elapsed) / speed if speed > 0 and total > 0 else 0.0
        bitrate_match = BITRATE_RE.search(record.get("bitrate", ""))
        return EncodingProgress(
            percentage=percentage,
            elapsed=elapsed,
            remaining=0.0 if finished else remaining,
            fps=_number(record.get("fps")),
            bitrate=float(bitrate_match.group(1)) if bitrate_match else 0.0,
            frame=int(_number(record.get("frame"))),
            speed=speed,
            progress_id=self.progress_id,
            finished=finished,
        )


__all__ = ["ProgressParser", "elapsed_seconds", "parse_duration_line"]
