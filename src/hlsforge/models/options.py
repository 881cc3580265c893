"""Command-line option models."""

from __future__ import annotations

from functools import cached_property
from pathlib import Path
from typing import Annotated, ClassVar

from cyclopts import Group, Parameter
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hlsforge.tools.helpers import parse_timespan

from .profile import EncoderProfile
from .types import OutputMode, Verbosity

SOURCE_GROUP = Group.create_ordered("Source")
OUTPUT_GROUP = Group.create_ordered("Output")
TIME_GROUP = Group.create_ordered("Time")
THUMBNAIL_GROUP = Group.create_ordered("Thumbnails")
RUNTIME_GROUP = Group.create_ordered("Runtime")


def _existing_file(v: Path) -> Path:
    path = Path(v).expanduser().absolute()
    if not path.is_file():
        raise ValueError(f"Input path is not a file: {path}")
    return path


@Parameter(group=RUNTIME_GROUP)
class RuntimeOptions(BaseModel):
    """Runtime behavior options."""

    verbosity: Verbosity = Field(
        default=Verbosity.QUIET,
        description="Commands: show FFmpeg commands; Output: also show FFmpeg output.",
    )
    dry_run: bool = Field(default=False, description="Print FFmpeg commands without executing them.")
    timeout: float | None = Field(default=None, gt=0, description="Give up on probe tasks after this many seconds.")

    @field_validator("verbosity", mode="before")
    @classmethod
    def _parse_verbosity(cls, v: object) -> Verbosity:
        """Accept ``quiet``/``commands``/``output`` as well as ``0``/``1``/``2``."""
        if isinstance(v, Verbosity):
            return v
        if isinstance(v, int):
            return Verbosity(v)
        if isinstance(v, str):
            token = v.strip()
            if token.upper() in Verbosity.__members__:
                return Verbosity[token.upper()]
            if token.isdigit() and int(token) in {m.value for m in Verbosity}:
                return Verbosity(int(token))
        raise ValueError("verbosity must be one of quiet, commands, output, or 0/1/2")


@Parameter(group=TIME_GROUP)
class TimeOptions(BaseModel):
    """Window of the source to encode."""

    TIME_DESC_TEMPLATE: ClassVar[str] = "{} of the preview. Examples: '90s', '1m20s', '00:01:30'."

    start: str | None = Field(None, description=TIME_DESC_TEMPLATE.format("Start timestamp"))
    duration: str | None = Field(None, description=TIME_DESC_TEMPLATE.format("Length"))

    @field_validator("start", "duration")
    @classmethod
    def validate_time_format(cls, v: str | None) -> str | None:
        """Ensure time strings are parseable."""
        if v is None:
            return v
        try:
            parse_timespan(v)
        except ValueError as exc:
            raise ValueError(f"Invalid time format: {v}") from exc
        return v

    @cached_property
    def start_s(self) -> float:
        """Start offset in seconds, ``0`` when unset."""
        return parse_timespan(self.start) or 0.0

    @cached_property
    def duration_s(self) -> float | None:
        """Window length in seconds."""
        return parse_timespan(self.duration)


@Parameter(name="*")
class ProbeOptions(BaseModel):
    """Options shared by commands that inspect one source file."""

    source: Annotated[Path, Parameter(group=SOURCE_GROUP)] = Field(description="Path to the source media file.")
    runtime: RuntimeOptions = Field(default_factory=RuntimeOptions)

    model_config = ConfigDict(extra="forbid")

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: Path) -> Path:
        """Ensure the source exists."""
        return _existing_file(v)


@Parameter(name="*")
class ExtractOptions(ProbeOptions):
    """Options for commands that write files extracted from a source."""

    output: Annotated[Path | None, Parameter(group=OUTPUT_GROUP)] = Field(
        default=None,
        description="Destination folder. Defaults to the folder holding the source.",
    )

    @property
    def destination(self) -> Path:
        return (self.output or self.source.parent).expanduser().absolute()


@Parameter(name="*")
class OcrOptions(ExtractOptions):
    """Options for subtitle OCR."""

    language: Annotated[str, Parameter(group=SOURCE_GROUP)] = Field(
        default="eng", description="Three-letter Tesseract language code."
    )
    name: Annotated[str | None, Parameter(group=OUTPUT_GROUP)] = Field(
        default=None, description="Output file name stem. Defaults to the source name."
    )
    kind: Annotated[str, Parameter(group=OUTPUT_GROUP)] = Field(
        default="full", description="Subtitle kind written into the file name, e.g. 'full' or 'forced'."
    )

    @property
    def file_name(self) -> str:
        return self.name or self.source.stem


@Parameter(name="*")
class EncodeOptions(BaseModel):
    """Options for encoding a source into an HLS package."""

    source: Annotated[Path, Parameter(group=SOURCE_GROUP)] = Field(description="Path to the source media file.")
    profile: Annotated[Path, Parameter(group=SOURCE_GROUP)] = Field(description="Encoder profile JSON file.")
    output: Annotated[Path | None, Parameter(group=OUTPUT_GROUP)] = Field(
        default=None,
        description="Output folder. Defaults to a folder named after the source, next to it.",
    )
    name: Annotated[str | None, Parameter(group=OUTPUT_GROUP)] = Field(
        default=None, description="Base name of the master playlist. Defaults to the source name."
    )
    mode: Annotated[OutputMode, Parameter(group=OUTPUT_GROUP)] = Field(
        default=OutputMode.COMBINED,
        description="'combined' muxes one stream; 'separate-streams' writes one folder per rendition.",
    )
    auto_crop: Annotated[bool, Parameter(group=OUTPUT_GROUP)] = Field(
        default=False, description="Detect black borders and crop them before scaling."
    )
    runtime: RuntimeOptions = Field(default_factory=RuntimeOptions)

    model_config = ConfigDict(extra="forbid")

    @field_validator("source", "profile")
    @classmethod
    def validate_inputs(cls, v: Path) -> Path:
        """Ensure the source and profile exist."""
        return _existing_file(v)

    @property
    def output_folder(self) -> Path:
        if self.output is not None:
            return self.output.expanduser().absolute()
        return self.source.with_suffix("")

    @property
    def base_name(self) -> str:
        return self.name or self.source.stem

    def load_profile(self) -> EncoderProfile:
        """Read and validate the encoder profile, applying ``--auto-crop``.

        Raises:
            pydantic.ValidationError: If the file is not a valid profile.

        """
        profile = EncoderProfile.from_file(self.profile)
        if self.auto_crop:
            return profile.model_copy(update={"auto_crop": True})
        return profile


@Parameter(name="*")
class PreviewOptions(EncodeOptions):
    """Options for encoding a short window of a source."""

    time: TimeOptions = Field(default_factory=TimeOptions)

    @model_validator(mode="after")
    def validate_window(self) -> PreviewOptions:
        """Require a positive preview length."""
        if self.time.duration_s is None or self.time.duration_s <= 0:
            raise ValueError("preview requires a positive --time.duration")
        return self


@Parameter(name="*")
class PlaylistOptions(BaseModel):
    """Options for rebuilding the master playlist of an encoded package."""

    folder: Annotated[Path, Parameter(group=SOURCE_GROUP)] = Field(description="Folder holding rendition folders.")
    name: Annotated[str | None, Parameter(group=OUTPUT_GROUP)] = Field(
        default=None, description="Master playlist name. Defaults to the folder name."
    )
    duration: Annotated[str | None, Parameter(group=TIME_GROUP)] = Field(
        default=None, description="Media duration used when segment durations cannot be probed."
    )
    runtime: RuntimeOptions = Field(default_factory=RuntimeOptions)

    model_config = ConfigDict(extra="forbid")

    @field_validator("folder")
    @classmethod
    def validate_folder(cls, v: Path) -> Path:
        """Ensure the folder exists."""
        path = Path(v).expanduser().absolute()
        if not path.is_dir():
            raise ValueError(f"Not a directory: {path}")
        return path

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: str | None) -> str | None:
        """Ensure the duration is parseable."""
        if v is not None:
            parse_timespan(v)
        return v

    @property
    def master_name(self) -> str:
        return self.name or self.folder.name

    @property
    def duration_s(self) -> float:
        return parse_timespan(self.duration) or 0.0


@Parameter(name="*")
class SpriteOptions(BaseModel):
    """Options for tiling extracted thumbnails into a sprite sheet."""

    folder: Annotated[Path, Parameter(group=SOURCE_GROUP)] = Field(
        description="Folder holding the thumbs_{W}x{H} frame folder."
    )
    width: Annotated[int, Parameter(group=THUMBNAIL_GROUP)] = Field(gt=0, description="Thumbnail width.")
    height: Annotated[int, Parameter(group=THUMBNAIL_GROUP)] = Field(gt=0, description="Thumbnail height.")
    interval: Annotated[int, Parameter(group=THUMBNAIL_GROUP)] = Field(
        default=10, gt=0, description="Seconds between thumbnails."
    )
    runtime: RuntimeOptions = Field(default_factory=RuntimeOptions)

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "OUTPUT_GROUP",
    "RUNTIME_GROUP",
    "SOURCE_GROUP",
    "THUMBNAIL_GROUP",
    "TIME_GROUP",
    "EncodeOptions",
    "ExtractOptions",
    "OcrOptions",
    "PlaylistOptions",
    "PreviewOptions",
    "ProbeOptions",
    "RuntimeOptions",
    "SpriteOptions",
    "TimeOptions",
]
