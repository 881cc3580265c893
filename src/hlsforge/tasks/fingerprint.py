"""Chromaprint audio fingerprint."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from hlsforge.models.errors import MalformedOutputError

from .base import Deadline, ProbeTask

if TYPE_CHECKING:
    from hlsforge.models.context import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle

SAMPLE_RATE = 11025
MAX_SECONDS = 120


class FingerprintTask(ProbeTask[str]):
    """Fingerprint the first audio stream with FFmpeg's ``chromaprint`` muxer."""

    label = "fingerprint"

    def __init__(self, ctx: RuntimeContext, path: str | Path, *, throttle: ProbeThrottle | None = None) -> None:
        super().__init__(ctx, throttle=throttle)
        self.path = Path(path)

    def args(self) -> list[str]:
        return [
            "-hide_banner",
            "-i",
            str(self.path),
            "-map",
            "0:a:0",
            "-ar",
            str(SAMPLE_RATE),
            "-f",
            "chromaprint",
            "-t",
            str(MAX_SECONDS),
            "-",
        ]

    def execute(self, deadline: Deadline) -> str:
        if not self.path.is_file():
            raise FileNotFoundError(f"Input file not found: {self.path}")
        fingerprint = self.ffmpeg(self.args(), deadline).stdout.strip()
        if not fingerprint:
            raise MalformedOutputError(f"No fingerprint produced for {self.path}")
        return fingerprint


__all__ = ["FingerprintTask"]
