"""Encoder profile models supplied by the profile store."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .types import Container

CROP_PATTERN = re.compile(r"^\d+:\d+:\d+:\d+$")
MAX_FRAME_RATE = 120
MAX_CHANNELS = 8
MAX_NAME_LENGTH = 100

#: Text subtitle codecs FFmpeg can write into the supported containers.
SUBTITLE_CODECS = frozenset({"ass", "ssa", "webvtt", "srt", "subrip", "mov_text"})


class VideoProfile(BaseModel):
    """One video rendition of an encoder profile."""

    codec: str = Field(default="h264", description="Codec family or concrete FFmpeg encoder name.")
    bitrate: int | None = Field(default=None, gt=0, description="Target bitrate in kbit/s.")
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    crf: int | None = Field(default=None, ge=0, le=63)
    preset: str | None = None
    profile: str | None = None
    tune: str | None = None
    frame_rate: float | None = Field(default=None, gt=0, le=MAX_FRAME_RATE)
    keyint: int | None = Field(default=None, gt=0, description="GOP length in frames.")
    convert_hdr_to_sdr: bool = Field(default=True, description="Tone-map HDR sources to SDR.")
    crop: str | None = Field(default=None, description="Crop rectangle as W:H:X:Y.")
    options: dict[str, str] = Field(default_factory=dict, description="Extra encoder options.")

    model_config = ConfigDict(extra="forbid")

    @field_validator("crop")
    @classmethod
    def validate_crop(cls, v: str | None) -> str | None:
        """Accept only ``W:H:X:Y`` crop rectangles."""
        if v is None or CROP_PATTERN.match(v):
            return v
        raise ValueError(f"crop must look like W:H:X:Y, got {v!r}")

    def target_size(self, source_width: int, source_height: int, crop: str | None = None) -> tuple[int, int]:
        """Return output dimensions, keeping aspect when only one side is set.

        A crop rectangle replaces the source size. The profile's own crop wins
        over a detected ``crop``. Dimensions are rounded down to even values
        as required by 4:2:0 encoders.
        """
        crop = self.crop or crop
        if crop:
            source_width, source_height = (int(part) for part in crop.split(":")[:2])
        width, height = self.width, self.height
        if width is None and height is None:
            width, height = source_width, source_height
        elif width is None and source_height:
            width = round(source_width * height / source_height)
        elif height is None and source_width:
            height = round(source_height * width / source_width)
        return (width or 0) // 2 * 2, (height or 0) // 2 * 2


class AudioProfile(BaseModel):
    """One audio rendition of an encoder profile."""

    codec: str = Field(default="aac", description="FFmpeg audio encoder name.")
    channels: int | None = Field(default=2, gt=0, le=MAX_CHANNELS)
    sample_rate: int | None = Field(default=48000, gt=0)
    bitrate: int | None = Field(default=None, gt=0, description="Target bitrate in kbit/s.")
    options: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class SubtitleProfile(BaseModel):
    """Subtitle handling for an encoder profile."""

    codec: str = "webvtt"

    model_config = ConfigDict(extra="forbid")

    @field_validator("codec")
    @classmethod
    def validate_codec(cls, v: str) -> str:
        if v.lower() not in SUBTITLE_CODECS:
            raise ValueError(f"unsupported subtitle codec {v!r}, expected one of {sorted(SUBTITLE_CODECS)}")
        return v.lower()


class EncoderProfile(BaseModel):
    """Read-only description of the renditions to produce."""

    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    container: Container = Field(default=Container.HLS, description="Combined-mode output: hls, mp4 or mkv.")
    auto_crop: bool = Field(default=False, description="Detect black borders and crop them before scaling.")
    video_profiles: list[VideoProfile] = Field(default_factory=list)
    audio_profiles: list[AudioProfile] = Field(default_factory=list)
    subtitle_profiles: list[SubtitleProfile] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_has_streams(self) -> EncoderProfile:
        """Require at least one video or audio rendition."""
        if not self.video_profiles and not self.audio_profiles:
            raise ValueError(f"Profile '{self.name}' defines no video or audio renditions")
        return self

    @classmethod
    def from_file(cls, path: Path) -> EncoderProfile:
        """Load a profile from a JSON file."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))


__all__ = ["AudioProfile", "EncoderProfile", "SubtitleProfile", "VideoProfile"]
