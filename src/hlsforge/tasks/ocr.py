"""Convert image-based subtitles to WebVTT with Tesseract OCR."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from hlsforge.events import TASK_COMPLETED, TASK_SKIPPED, TASK_STARTED, Event, EventPublisher, LoggingPublisher
from hlsforge.models.errors import ModelUnavailableError
from hlsforge.tools.helpers import format_time

from .base import Deadline, ProbeTask

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hlsforge.models.context import RuntimeContext
    from hlsforge.models.results import ProgressId
    from hlsforge.models.settings import Settings
    from hlsforge.tools.throttle import ProbeThrottle

SUBTITLES_FOLDER = "subtitles"
OCR_TEXT_FILE = "temp.txt"
MODEL_SUFFIX = ".traineddata"
DOWNLOAD_TIMEOUT_S = 60.0
DOWNLOAD_CHUNK = 1 << 16

OCR_CUE_RE = re.compile(
    r"pts_time:(?P<start>\d+(\.\d+)?)\nlavfi\.ocr\.text=(?P<text>.+(\n.+)?)\n\n.*?pts_time:(?P<end>\d+(\.\d+)?)",
    re.MULTILINE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cue:
    """A timed line of recognized text."""

    start: float
    end: float
    text: str


def model_path(settings: Settings, language: str) -> Path:
    """Local path of the Tesseract model for ``language``."""
    return settings.tessdata_dir / f"{language}{MODEL_SUFFIX}"


def ensure_language_model(settings: Settings, language: str, *, timeout: float | None = None) -> Path:
    """Return the local model for ``language``, downloading it on first use.

    Raises:
        ModelUnavailableError: If the model is missing and cannot be fetched.

    """
    target = model_path(settings, language)
    if target.is_file():
        return target
    url = settings.tessdata_url.format(lang=language)
    partial = target.with_suffix(target.suffix + ".part")
    logger.info("Downloading OCR model %s from %s", language, url)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with httpx.stream("GET", url, follow_redirects=True, timeout=timeout or DOWNLOAD_TIMEOUT_S) as response:
            response.raise_for_status()
            with partial.open("wb") as fh:
                for chunk in response.iter_bytes(DOWNLOAD_CHUNK):
                    fh.write(chunk)
        partial.replace(target)
    except (httpx.HTTPError, OSError) as e:
        partial.unlink(missing_ok=True)
        raise ModelUnavailableError(f"OCR model {language!r} unavailable: {e}") from e
    return target


def parse_ocr_output(text: str) -> list[Cue]:
    """Extract cues from ``metadata=print`` output of the ``ocr`` filter."""
    return [
        Cue(float(m.group("start")), float(m.group("end")), m.group("text").strip())
        for m in OCR_CUE_RE.finditer(text.replace("\r\n", "\n"))
    ]


def cues_vtt(cues: Sequence[Cue]) -> str:
    """Render cues as a WebVTT document."""
    lines = ["WEBVTT", ""]
    for cue in cues:
        lines.extend((f"{format_time(cue.start)} --> {format_time(cue.end)}", cue.text, ""))
    return "\n".join(lines) + "\n"


class ConvertSubtitleTask(ProbeTask[Path | None]):
    """OCR the first subtitle stream of ``path`` into ``{name}.{lang}.{kind}.vtt``.

    A missing language model skips the conversion and yields ``None``.
    Start, skip and completion are published as events.
    """

    label = "subtitle OCR"

    def __init__(
        self,
        ctx: RuntimeContext,
        path: str | Path,
        destination: str | Path,
        file_name: str,
        language: str,
        kind: str = "full",
        *,
        publisher: EventPublisher | None = None,
        progress_id: ProgressId | None = None,
        throttle: ProbeThrottle | None = None,
    ) -> None:
        super().__init__(ctx, throttle=throttle)
        self.path = Path(path)
        self.destination = Path(destination)
        self.file_name = file_name
        self.language = language
        self.kind = kind
        self.publisher = publisher or LoggingPublisher()
        self.progress_id = progress_id

    @property
    def subtitles_dir(self) -> Path:
        return self.destination / SUBTITLES_FOLDER

    @property
    def output_path(self) -> Path:
        return self.destination / f"{self.file_name}.{self.language}.{self.kind}.vtt"

    def args(self) -> list[str]:
        return [
            "-i",
            str(self.path.resolve()),
            "-f",
            "lavfi",
            "-i",
            "color=black:s=hd720",
            "-filter_complex",
            f"[0:s:0]ocr=language={self.language},metadata=print:key=lavfi.ocr.text:file={OCR_TEXT_FILE}",
            "-an",
            "-f",
            "null",
            "-",
        ]

    def _publish(self, name: str, **payload: object) -> None:
        self.publisher.publish(
            Event(name, self.progress_id, {"task": self.label, "language": self.language, **payload})
        )

    def execute(self, deadline: Deadline) -> Path | None:
        if not self.path.is_file():
            raise FileNotFoundError(f"Input file not found: {self.path}")
        self._publish(TASK_STARTED, input=str(self.path))
        settings = self.ctx.settings
        try:
            ensure_language_model(settings, self.language, timeout=deadline.remaining())
        except ModelUnavailableError as e:
            logger.warning("Skipping OCR for %s: %s", self.path, e)
            self._publish(TASK_SKIPPED, reason=str(e))
            return None
        self.subtitles_dir.mkdir(parents=True, exist_ok=True)
        self.ffmpeg(
            self.args(),
            deadline,
            cwd=self.subtitles_dir,
            env={"TESSDATA_PREFIX": str(settings.tessdata_dir)},
        )
        ocr_file = self.subtitles_dir / OCR_TEXT_FILE
        if not ocr_file.is_file():
            logger.warning("OCR produced no text for %s", self.path)
            self._publish(TASK_SKIPPED, reason="no text recognized")
            return None
        cues = parse_ocr_output(ocr_file.read_text(encoding="utf-8", errors="replace"))
        self.output_path.write_text(cues_vtt(cues), encoding="utf-8")
        ocr_file.unlink()
        self._publish(TASK_COMPLETED, output=str(self.output_path), cues=len(cues))
        return self.output_path


__all__ = ["ConvertSubtitleTask", "Cue", "cues_vtt", "ensure_language_model", "parse_ocr_output"]
