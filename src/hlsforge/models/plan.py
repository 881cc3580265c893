"""Resolved encode plan shared by the command builder and the service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import NoProfileFoundError

if TYPE_CHECKING:
    from pathlib import Path

    from .analysis import StreamAnalysis
    from .profile import AudioProfile, EncoderProfile, VideoProfile
    from .types import HardwareAccel

NO_VIDEO_PROFILE = "No video profile found"
NO_AUDIO_PROFILE = "No audio profile found"


@dataclass(frozen=True)
class EncodePlan:
    """Everything needed to synthesize encoder commands for one job.

    ``video_encoders`` holds the concrete encoder chosen for each entry of
    ``profile.video_profiles``; ``accelerators`` maps each of those encoders
    to the backend that provides it, or ``None`` for software. ``crop`` is the
    detected crop rectangle used by renditions that set none themselves.
    """

    input_path: Path
    analysis: StreamAnalysis
    profile: EncoderProfile
    output_folder: Path
    base_name: str
    video_encoders: tuple[str, ...] = ()
    accelerators: tuple[HardwareAccel | None, ...] = ()
    threads: int = 1
    segment_duration: int = 6
    start: float | None = None
    duration: float | None = None
    crop: str | None = None

    @property
    def source_video_index(self) -> int:
        """Type-relative index of the primary video stream."""
        primary = self.analysis.primary_video
        return self.analysis.video_streams.index(primary) if primary else 0

    def video_profile(self, index: int = 0) -> VideoProfile:
        """Return the video sub-profile at ``index``.

        Raises:
            NoProfileFoundError: If the profile has no such video rendition.

        """
        try:
            return self.profile.video_profiles[index]
        except IndexError:
            raise NoProfileFoundError(NO_VIDEO_PROFILE) from None

    def audio_profile(self, index: int = 0) -> AudioProfile:
        """Return the audio sub-profile at ``index``.

        Raises:
            NoProfileFoundError: If the profile has no such audio rendition.

        """
        try:
            return self.profile.audio_profiles[index]
        except IndexError:
            raise NoProfileFoundError(NO_AUDIO_PROFILE) from None

    def video_encoder(self, index: int = 0) -> str:
        """Concrete encoder for the video rendition at ``index``."""
        if index < len(self.video_encoders):
            return self.video_encoders[index]
        return self.video_profile(index).codec

    def accelerator(self, index: int = 0) -> HardwareAccel | None:
        """Backend used by the video rendition at ``index``."""
        return self.accelerators[index] if index < len(self.accelerators) else None


__all__ = ["NO_AUDIO_PROFILE", "NO_VIDEO_PROFILE", "EncodePlan"]
