"""Tile extracted thumbnails into a sprite sheet with a WebVTT index."""

from __future__ import annotations

import logging
import math
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image

from hlsforge.tools.helpers import format_time

from .base import Deadline, ProbeTask

if TYPE_CHECKING:
    from hlsforge.models.context import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle

FRAME_GLOB = "*.jpg"

logger = logging.getLogger(__name__)


def grid_size(count: int) -> tuple[int, int]:
    """Columns and rows of the smallest near-square grid holding ``count`` tiles."""
    if count <= 0:
        return 0, 0
    columns = math.ceil(math.sqrt(count))
    return columns, math.ceil(count / columns)


def sprite_vtt(
    sprite_name: str, count: int, columns: int, tile_width: int, tile_height: int, interval: int
) -> str:
    """One cue per tile, ``interval`` seconds long, pointing into the sprite."""
    lines = ["WEBVTT", ""]
    for i in range(count):
        x = (i % columns) * tile_width
        y = (i // columns) * tile_height
        lines.extend(
            (
                str(i + 1),
                f"{format_time(i * interval)} --> {format_time((i + 1) * interval)}",
                f"{sprite_name}#xywh={x},{y},{tile_width},{tile_height}",
                "",
            )
        )
    return "\n".join(lines) + "\n"


class GenerateSpriteTask(ProbeTask[Path | None]):
    """Combine ``thumbs_{W}x{H}/thumbs_{W}x{H}-NNNN.jpg`` into a ``.webp`` sprite.

    Writes ``thumbs_{W}x{H}.webp`` and ``thumbs_{W}x{H}.vtt`` next to the
    frame folder and deletes the folder afterwards. The result is the VTT
    path, or ``None`` when there are no frames.
    """

    label = "sprite generation"

    def __init__(
        self,
        ctx: RuntimeContext,
        destination: str | Path,
        width: int,
        height: int,
        interval: int,
        *,
        throttle: ProbeThrottle | None = None,
    ) -> None:
        super().__init__(ctx, throttle=throttle)
        self.destination = Path(destination)
        self.base_name = f"thumbs_{width}x{height}"
        self.interval = interval

    @property
    def frames_dir(self) -> Path:
        return self.destination / self.base_name

    @property
    def sprite_path(self) -> Path:
        return self.destination / f"{self.base_name}.webp"

    @property
    def vtt_path(self) -> Path:
        return self.destination / f"{self.base_name}.vtt"

    def frames(self) -> list[Path]:
        if not self.frames_dir.is_dir():
            return []
        return sorted(self.frames_dir.glob(FRAME_GLOB))

    def args(self, columns: int, rows: int) -> list[str]:
        return [
            "-i",
            str(self.frames_dir / f"{self.base_name}-%04d.jpg"),
            "-filter_complex",
            f"tile={columns}x{rows}",
            "-y",
            self.sprite_path.name,
        ]

    def execute(self, deadline: Deadline) -> Path | None:
        frames = self.frames()
        if not frames:
            logger.info("No thumbnails in %s, skipping sprite", self.frames_dir)
            return None
        columns, rows = grid_size(len(frames))
        self.ffmpeg(self.args(columns, rows), deadline, cwd=self.destination)
        with Image.open(frames[0]) as first:
            tile_width, tile_height = first.size
        self.vtt_path.write_text(
            sprite_vtt(self.sprite_path.name, len(frames), columns, tile_width, tile_height, self.interval),
            encoding="utf-8",
        )
        logger.debug("Deleting frame folder %s", self.frames_dir)
        shutil.rmtree(self.frames_dir)
        return self.vtt_path


__all__ = ["GenerateSpriteTask", "grid_size", "sprite_vtt"]
