"""Dataclasses describing probed media streams."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

HDR_TRANSFERS: frozenset[str] = frozenset({"smpte2084", "arib-std-b67", "bt2020-10", "bt2020-12"})
WIDE_GAMUT_SPACES: frozenset[str] = frozenset({"bt2020nc", "bt2020c"})
HIGH_DEPTH_PIX_FMT_MARKERS: tuple[str, ...] = ("10le", "10be", "12le", "12be")
IMAGE_SUBTITLE_CODECS: frozenset[str] = frozenset({"hdmv_pgs_subtitle", "dvd_subtitle", "dvb_subtitle", "xsub"})


@dataclass(frozen=True)
class VideoStreamInfo:
    """Video stream metadata."""

    index: int
    codec: str
    width: int = 0
    height: int = 0
    profile: str | None = None
    frame_rate: float = 0.0
    bit_rate: int | None = None
    pix_fmt: str | None = None
    color_space: str | None = None
    color_transfer: str | None = None
    color_primaries: str | None = None
    language: str | None = None
    title: str | None = None
    is_default: bool = False
    is_forced: bool = False
    is_interlaced: bool = False

    @property
    def bit_depth(self) -> int:
        """Bits per component implied by the pixel format."""
        fmt = self.pix_fmt or ""
        if "12le" in fmt or "12be" in fmt:
            return 12
        if "10le" in fmt or "10be" in fmt:
            return 10
        return 8

    @property
    def is_hdr(self) -> bool:
        """Whether color metadata or bit depth marks this stream as HDR."""
        if (self.color_transfer or "") in HDR_TRANSFERS:
            return True
        if (self.color_space or "") in WIDE_GAMUT_SPACES:
            return True
        fmt = self.pix_fmt or ""
        return any(marker in fmt for marker in HIGH_DEPTH_PIX_FMT_MARKERS)


@dataclass(frozen=True)
class AudioStreamInfo:
    """Audio stream metadata."""

    index: int
    codec: str
    channels: int = 0
    channel_layout: str | None = None
    sample_rate: int = 0
    bit_rate: int | None = None
    profile: str | None = None
    language: str | None = None
    title: str | None = None
    is_default: bool = False
    is_forced: bool = False


@dataclass(frozen=True)
class SubtitleStreamInfo:
    """Subtitle stream metadata."""

    index: int
    codec: str
    language: str | None = None
    title: str | None = None
    is_default: bool = False
    is_forced: bool = False
    is_hearing_impaired: bool = False

    @property
    def is_image_based(self) -> bool:
        """Whether the subtitle is a bitmap format that needs OCR."""
        return self.codec in IMAGE_SUBTITLE_CODECS


@dataclass(frozen=True)
class ChapterInfo:
    """A chapter marker in seconds."""

    id: int
    title: str
    start: float
    end: float


def _primary[T: (VideoStreamInfo, AudioStreamInfo, SubtitleStreamInfo)](streams: tuple[T, ...]) -> T | None:
    for stream in streams:
        if stream.is_default:
            return stream
    return streams[0] if streams else None


@dataclass(frozen=True)
class StreamAnalysis:
    """Structured description of a probed media file."""

    path: Path
    duration: float
    size: int
    format_name: str
    bit_rate: int | None = None
    video_streams: tuple[VideoStreamInfo, ...] = field(default_factory=tuple)
    audio_streams: tuple[AudioStreamInfo, ...] = field(default_factory=tuple)
    subtitle_streams: tuple[SubtitleStreamInfo, ...] = field(default_factory=tuple)
    chapters: tuple[ChapterInfo, ...] = field(default_factory=tuple)

    @property
    def is_hdr(self) -> bool:
        """Whether any video stream carries HDR content."""
        return any(v.is_hdr for v in self.video_streams)

    @property
    def has_media(self) -> bool:
        """Whether at least one video or audio stream is present."""
        return bool(self.video_streams or self.audio_streams)

    @property
    def primary_video(self) -> VideoStreamInfo | None:
        """Default video stream, else the first one."""
        return _primary(self.video_streams)

    @property
    def primary_audio(self) -> AudioStreamInfo | None:
        """Default audio stream, else the first one."""
        return _primary(self.audio_streams)

    @property
    def primary_subtitle(self) -> SubtitleStreamInfo | None:
        """Default subtitle stream, else the first one."""
        return _primary(self.subtitle_streams)


__all__ = [
    "HDR_TRANSFERS",
    "WIDE_GAMUT_SPACES",
    "AudioStreamInfo",
    "ChapterInfo",
    "StreamAnalysis",
    "SubtitleStreamInfo",
    "VideoStreamInfo",
]
