"""Write embedded chapter markers as a WebVTT track."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from hlsforge.tools.analyzer import parse_chapters
from hlsforge.tools.helpers import format_time

from .base import Deadline, ProbeTask

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hlsforge.models.analysis import ChapterInfo
    from hlsforge.models.context import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle

CHAPTERS_FILENAME = "chapters.vtt"
CHAPTER_ARGS: tuple[str, ...] = ("-v", "quiet", "-print_format", "json", "-show_chapters")

logger = logging.getLogger(__name__)


def chapters_vtt(chapters: Sequence[ChapterInfo]) -> str:
    """Render chapters as numbered WebVTT cues."""
    lines = ["WEBVTT", ""]
    for number, chapter in enumerate(chapters, start=1):
        lines.extend(
            (
                f"Chapter {number}",
                f"{format_time(chapter.start)} --> {format_time(chapter.end)}",
                chapter.title,
                "",
            )
        )
    return "\n".join(lines) + "\n"


class ExtractChaptersTask(ProbeTask[Path | None]):
    """Probe chapters and write ``chapters.vtt`` into ``destination``.

    The result is the written file, or ``None`` when the input has no
    chapters.
    """

    label = "chapter extraction"

    def __init__(
        self,
        ctx: RuntimeContext,
        path: str | Path,
        destination: str | Path,
        *,
        throttle: ProbeThrottle | None = None,
    ) -> None:
        super().__init__(ctx, throttle=throttle)
        self.path = Path(path)
        self.destination = Path(destination)

    @property
    def output_path(self) -> Path:
        return self.destination / CHAPTERS_FILENAME

    def execute(self, deadline: Deadline) -> Path | None:
        if not self.path.is_file():
            raise FileNotFoundError(f"Input file not found: {self.path}")
        chapters = parse_chapters(self.ffprobe([*CHAPTER_ARGS, str(self.path)], deadline).stdout)
        if not chapters:
            logger.info("No chapters in %s", self.path)
            return None
        self.destination.mkdir(parents=True, exist_ok=True)
        self.output_path.write_text(chapters_vtt(chapters), encoding="utf-8")
        logger.info("Wrote %d chapters to %s", len(chapters), self.output_path)
        return self.output_path


__all__ = ["ExtractChaptersTask", "chapters_vtt"]
