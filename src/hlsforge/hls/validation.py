"""Sanity checks for written master and media playlists."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

HEADER = "#EXTM3U"
STREAM_INF = "#EXT-X-STREAM-INF:"
TARGET_DURATION = "#EXT-X-TARGETDURATION:"
EXTINF = "#EXTINF:"
MEDIA = "#EXT-X-MEDIA:"
URI_RE = re.compile(r'URI="([^"]+)"')

logger = logging.getLogger(__name__)


@dataclass
class PlaylistReport:
    """Problems found in one playlist. ``errors`` make it unusable."""

    path: Path
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    entries: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors

    def log(self) -> None:
        """Log warnings and errors against the playlist path."""
        for warning in self.warnings:
            logger.warning("%s: %s", self.path, warning)
        for error in self.errors:
            logger.error("%s: %s", self.path, error)


def _read_lines(path: Path, report: PlaylistReport) -> list[str] | None:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        report.errors.append(f"cannot read playlist: {e}")
        return None
    lines = [line.strip() for line in text.splitlines()]
    if not lines or lines[0] != HEADER:
        report.errors.append(f"does not start with {HEADER}")
        return None
    return lines


def _seconds(value: str, report: PlaylistReport) -> float:
    try:
        return float(value)
    except ValueError:
        report.errors.append(f"malformed duration {value!r}")
        return 0.0


def validate_media(path: Path) -> PlaylistReport:
    """Check a media playlist has segments that fit its target duration."""
    report = PlaylistReport(path)
    lines = _read_lines(path, report)
    if lines is None:
        return report
    target = 0.0
    for line in lines:
        if line.startswith(TARGET_DURATION):
            target = _seconds(line.removeprefix(TARGET_DURATION), report)
        elif line.startswith(EXTINF):
            report.entries += 1
            duration = _seconds(line.removeprefix(EXTINF).split(",", 1)[0], report)
            # Target duration bounds the rounded segment length.
            if target and round(duration) > target:
                report.warnings.append(f"segment of {duration:g}s exceeds target duration {target:g}s")
    if not target:
        report.warnings.append(f"missing {TARGET_DURATION.rstrip(':')}")
    if not report.entries:
        report.errors.append("contains no segments")
    return report


def validate_master(path: Path) -> PlaylistReport:
    """Check a master playlist lists renditions whose playlists exist and are valid.

    Audio-only packages carry no ``#EXT-X-STREAM-INF`` entries, so
    ``#EXT-X-MEDIA`` renditions also count as variants.
    """
    report = PlaylistReport(path)
    lines = _read_lines(path, report)
    if lines is None:
        return report
    variants = [lines[i + 1] for i, line in enumerate(lines[:-1]) if line.startswith(STREAM_INF)]
    media = [m.group(1) for line in lines if line.startswith(MEDIA) and (m := URI_RE.search(line))]
    report.entries = len(variants)
    if not variants and not media:
        report.errors.append("contains no variants")
    uris = variants + media
    for uri in dict.fromkeys(uris):
        variant = path.parent / uri
        if not variant.is_file():
            report.errors.append(f"variant playlist not found: {uri}")
            continue
        child = validate_media(variant)
        report.errors.extend(f"{uri}: {error}" for error in child.errors)
        report.warnings.extend(f"{uri}: {warning}" for warning in child.warnings)
    return report


__all__ = ["PlaylistReport", "validate_master", "validate_media"]
