"""Dataclasses describing the on-disk HLS rendition layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

SEGMENT_SUFFIX = "_%05d.ts"
PLAYLIST_SUFFIX = ".m3u8"


@dataclass(frozen=True)
class _Rendition:
    folder_name: str
    base_path: Path
    profile_index: int
    stream_index: int

    @property
    def folder_path(self) -> Path:
        """Directory holding this rendition's playlist and segments."""
        return self.base_path / self.folder_name

    @property
    def playlist_filename(self) -> str:
        """File name of the rendition playlist."""
        return f"{self.folder_name}{PLAYLIST_SUFFIX}"

    @property
    def playlist_path(self) -> Path:
        """Absolute path of the rendition playlist."""
        return self.folder_path / self.playlist_filename

    @property
    def segment_pattern(self) -> str:
        """``printf``-style segment file name pattern."""
        return f"{self.folder_name}{SEGMENT_SUFFIX}"

    @property
    def segment_path_pattern(self) -> Path:
        """Segment pattern joined with the rendition folder."""
        return self.folder_path / self.segment_pattern


@dataclass(frozen=True)
class HLSVideoOutput(_Rendition):
    """A video rendition folder."""

    width: int = 0
    height: int = 0
    is_hdr: bool = False

    @property
    def resolution(self) -> str:
        """Resolution as ``WxH``."""
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class HLSAudioOutput(_Rendition):
    """An audio rendition folder."""

    language: str = "und"
    codec: str = "aac"
    channels: int = 2


@dataclass(frozen=True)
class HLSOutputStructure:
    """Complete rendition layout for one encode job."""

    base_path: Path
    base_name: str
    video_outputs: tuple[HLSVideoOutput, ...] = field(default_factory=tuple)
    audio_outputs: tuple[HLSAudioOutput, ...] = field(default_factory=tuple)

    @property
    def master_playlist_path(self) -> Path:
        """Path of the master playlist."""
        return self.base_path / f"{self.base_name}{PLAYLIST_SUFFIX}"

    @property
    def renditions(self) -> tuple[_Rendition, ...]:
        """All renditions, video first."""
        return (*self.video_outputs, *self.audio_outputs)


__all__ = ["HLSAudioOutput", "HLSOutputStructure", "HLSVideoOutput"]
