"""Dump embedded font attachments and describe them in a manifest."""

from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from hlsforge.models.errors import MalformedOutputError

from .base import Deadline, ProbeTask

if TYPE_CHECKING:
    from hlsforge.models.context import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle

FONTS_FOLDER = "fonts"
MANIFEST_FILENAME = "fonts.json"
ATTACHMENT_ARGS: tuple[str, ...] = ("-v", "quiet", "-print_format", "json", "-show_streams", "-select_streams", "t")
DUMP_ARGS: tuple[str, ...] = (
    "-dump_attachment:t",
    "",
    "-y",
    "-hide_banner",
    "-t",
    "0",
    "-f",
    "null",
    "null",
)  #: Write every attachment under its own file name; the input goes after the first two.
FONT_MIME_TYPES: frozenset[str] = frozenset(
    {
        "application/x-font-truetype",
        "application/x-font-opentype",
        "application/font-woff",
        "application/font-woff2",
        "application/vnd.ms-fontobject",
        "font/ttf",
        "font/otf",
        "font/woff",
        "font/woff2",
    }
)
FONT_EXTENSIONS: frozenset[str] = frozenset({".ttf", ".otf", ".woff", ".woff2", ".eot"})
FONT_CODECS: frozenset[str] = frozenset({"ttf", "otf"})
FALLBACK_MIME = "application/octet-stream"

logger = logging.getLogger(__name__)


class FontAttachment(BaseModel):
    """An attachment stream as reported by ``ffprobe``."""

    index: int
    codec_name: str = ""
    filename: str = ""
    mimetype: str = ""

    @property
    def is_font(self) -> bool:
        """Match by MIME type, then file extension, then codec."""
        if self.mimetype.lower() in FONT_MIME_TYPES:
            return True
        if Path(self.filename).suffix.lower() in FONT_EXTENSIONS:
            return True
        return self.codec_name.lower() in FONT_CODECS


class FontEntry(BaseModel):
    """One extracted font in ``fonts.json``."""

    file: str
    filename: str
    mime_type: str = Field(alias="mimeType")
    size: int
    source_index: int = Field(alias="sourceIndex")

    model_config = ConfigDict(populate_by_name=True)


_MANIFEST = TypeAdapter(list[FontEntry])


def parse_attachments(text: str) -> list[FontAttachment]:
    """Read attachment streams from ``ffprobe`` JSON output.

    Raises:
        MalformedOutputError: If ``text`` is not valid JSON.

    """
    try:
        data: dict[str, Any] = json.loads(text or "{}")
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Unparseable attachment output: {e}") from e
    attachments: list[FontAttachment] = []
    for stream in data.get("streams") or []:
        tags = stream.get("tags") or {}
        attachments.append(
            FontAttachment(
                index=stream.get("index", -1),
                codec_name=stream.get("codec_name") or "",
                filename=tags.get("filename") or "",
                mimetype=tags.get("mimetype") or "",
            )
        )
    return attachments


def guess_mime(path: Path, fallback: str = "") -> str:
    """MIME type from the file extension, else ``fallback``."""
    mime, _ = mimetypes.guess_type(path.name)
    return mime or fallback or FALLBACK_MIME


def write_manifest(path: Path, fonts: list[FontEntry]) -> None:
    """Write ``fonts`` as a camel-cased JSON array."""
    path.write_bytes(_MANIFEST.dump_json(fonts, by_alias=True, indent=2))


class ExtractFontsTask(ProbeTask[list[FontEntry]]):
    """Dump font attachments into ``{destination}/fonts`` and write ``fonts.json``."""

    label = "font extraction"

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
    def fonts_dir(self) -> Path:
        return self.destination / FONTS_FOLDER

    @property
    def manifest_path(self) -> Path:
        return self.destination / MANIFEST_FILENAME

    def execute(self, deadline: Deadline) -> list[FontEntry]:
        if not self.path.is_file():
            raise FileNotFoundError(f"Input file not found: {self.path}")
        attachments = [
            a for a in parse_attachments(self.ffprobe([*ATTACHMENT_ARGS, str(self.path)], deadline).stdout) if a.is_font
        ]
        if not attachments:
            logger.info("No font attachments in %s", self.path)
            return []
        self.fonts_dir.mkdir(parents=True, exist_ok=True)
        # Attachments are dumped even when ffmpeg then fails on the empty output.
        self.ffmpeg(
            [*DUMP_ARGS[:2], "-i", str(self.path.resolve()), *DUMP_ARGS[2:]],
            deadline,
            cwd=self.fonts_dir,
            check=False,
        )
        by_name = {a.filename: a for a in attachments}
        fonts: list[FontEntry] = []
        for file in sorted(p for p in self.fonts_dir.iterdir() if p.is_file()):
            deadline.check()
            source = by_name.get(file.name)
            fonts.append(
                FontEntry(
                    file=f"{FONTS_FOLDER}/{file.name}",
                    filename=file.name,
                    mime_type=guess_mime(file, source.mimetype if source else ""),
                    size=file.stat().st_size,
                    source_index=source.index if source else -1,
                )
            )
        write_manifest(self.manifest_path, fonts)
        logger.info("Extracted %d fonts to %s", len(fonts), self.fonts_dir)
        return fonts


__all__ = ["ExtractFontsTask", "FontAttachment", "FontEntry", "parse_attachments", "write_manifest"]
