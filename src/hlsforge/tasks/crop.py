"""Detect black borders by sampling the file at several offsets."""

from __future__ import annotations

import logging
import re
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

from hlsforge.models.errors import MalformedOutputError

from .base import Deadline, ProbeTask
from .duration import DurationTask

if TYPE_CHECKING:
    from hlsforge.models.context import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle

SECTIONS = 10
FRAMES_PER_SECTION = 10
CROP_RE = re.compile(r"crop=(\d+:\d+:\d+:\d+)")

logger = logging.getLogger(__name__)


def section_offsets(duration: float, sections: int = SECTIONS) -> list[int]:
    """Evenly spaced whole-second offsets across the first half of the file."""
    step = int(duration // 2) // sections
    return [i * step for i in range(sections)]


def section_args(path: Path, offset: int) -> list[str]:
    """``cropdetect`` over a few frames starting at ``offset`` seconds."""
    return [
        "-threads",
        "1",
        "-nostats",
        "-hide_banner",
        "-ss",
        str(offset),
        "-i",
        str(path),
        "-vframes",
        str(FRAMES_PER_SECTION),
        "-vf",
        "cropdetect",
        "-t",
        "1",
        "-f",
        "null",
        "-",
    ]


def majority_crop(outputs: list[str]) -> str:
    """Return the crop rectangle reported most often across ``outputs``.

    Raises:
        MalformedOutputError: If no output contains a crop rectangle.

    """
    votes = Counter(match for text in outputs for match in CROP_RE.findall(text))
    if not votes:
        raise MalformedOutputError("cropdetect reported no crop rectangle")
    return votes.most_common(1)[0][0]


class CropDetectTask(ProbeTask[str]):
    """Return the most frequent ``W:H:X:Y`` crop across sampled sections."""

    label = "crop detection"

    def __init__(
        self,
        ctx: RuntimeContext,
        path: str | Path,
        *,
        sections: int = SECTIONS,
        throttle: ProbeThrottle | None = None,
    ) -> None:
        super().__init__(ctx, throttle=throttle)
        self.path = Path(path)
        self.sections = sections

    def _section(self, offset: int, deadline: Deadline) -> str:
        proc = self.ffmpeg(section_args(self.path, offset), deadline, check=False)
        if proc.returncode:
            logger.warning("cropdetect at %ds exited with %d", offset, proc.returncode)
        return proc.stderr

    def execute(self, deadline: Deadline) -> str:
        duration = DurationTask(self.ctx, self.path, throttle=self.throttle).execute(deadline)
        offsets = section_offsets(duration, self.sections)
        with ThreadPoolExecutor(max_workers=max(1, len(offsets)), thread_name_prefix="cropdetect") as pool:
            outputs = list(pool.map(lambda offset: self._section(offset, deadline), offsets))
        crop = majority_crop(outputs)
        logger.debug("Crop for %s: %s", self.path, crop)
        return crop


__all__ = ["CropDetectTask", "majority_crop", "section_offsets"]
