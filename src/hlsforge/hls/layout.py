"""Rendition folder layout and post-encode playlist generation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from hlsforge.models.hls import HLSAudioOutput, HLSOutputStructure, HLSVideoOutput
from hlsforge.models.types import AudioCodec, DynamicRange

from .playlist import UNDETERMINED_LANGUAGE, PlaylistGenerator, write_media_playlist

if TYPE_CHECKING:
    from hlsforge.models.analysis import StreamAnalysis
    from hlsforge.models.context import RuntimeContext
    from hlsforge.models.profile import EncoderProfile

logger = logging.getLogger(__name__)


def video_folder_name(width: int, height: int, is_hdr: bool) -> str:
    """Return ``video_{W}x{H}_{SDR|HDR}``."""
    tag = DynamicRange.HDR if is_hdr else DynamicRange.SDR
    return f"video_{width}x{height}_{tag.value}"


def audio_folder_name(language: str | None, codec: str) -> str:
    """Return ``audio_{lang}_{codec}``."""
    return f"audio_{(language or UNDETERMINED_LANGUAGE).lower()}_{codec}"


class HLSOutputOrchestrator:
    """Plan rendition folders before encoding and write playlists afterwards."""

    def __init__(self, ctx: RuntimeContext, generator: PlaylistGenerator | None = None) -> None:
        self.ctx = ctx
        self.generator = generator or PlaylistGenerator(ctx)

    def _video_outputs(
        self, base_path: Path, analysis: StreamAnalysis, profile: EncoderProfile, crop: str | None
    ) -> list[HLSVideoOutput]:
        source = analysis.primary_video
        if source is None:
            return []
        outputs: list[HLSVideoOutput] = []
        seen: set[str] = set()
        stream_index = analysis.video_streams.index(source)
        for i, video in enumerate(profile.video_profiles):
            width, height = video.target_size(source.width, source.height, crop)
            is_hdr = analysis.is_hdr and not video.convert_hdr_to_sdr
            name = video_folder_name(width, height, is_hdr)
            if name in seen:
                logger.warning("Video profile %d duplicates rendition %s, skipping", i, name)
                continue
            seen.add(name)
            outputs.append(
                HLSVideoOutput(
                    folder_name=name,
                    base_path=base_path,
                    profile_index=i,
                    stream_index=stream_index,
                    width=width,
                    height=height,
                    is_hdr=is_hdr,
                )
            )
        return outputs

    def _audio_outputs(self, base_path: Path, analysis: StreamAnalysis, profile: EncoderProfile) -> list[HLSAudioOutput]:
        outputs: list[HLSAudioOutput] = []
        seen: set[str] = set()
        for stream_index, stream in enumerate(analysis.audio_streams):
            for i, audio in enumerate(profile.audio_profiles):
                codec = AudioCodec.from_encoder(audio.codec).value
                name = audio_folder_name(stream.language, codec)
                if name in seen:
                    logger.warning("Audio stream %d duplicates rendition %s, skipping", stream.index, name)
                    continue
                seen.add(name)
                outputs.append(
                    HLSAudioOutput(
                        folder_name=name,
                        base_path=base_path,
                        profile_index=i,
                        stream_index=stream_index,
                        language=(stream.language or UNDETERMINED_LANGUAGE).lower(),
                        codec=codec,
                        channels=audio.channels or stream.channels,
                    )
                )
        return outputs

    def create_output_structure(
        self,
        output_folder: str | Path,
        base_name: str,
        analysis: StreamAnalysis,
        profile: EncoderProfile,
        *,
        crop: str | None = None,
    ) -> HLSOutputStructure:
        """Compute the rendition layout for one encode job.

        One folder is planned per video profile and one per pair of source
        audio stream and audio profile. ``crop`` is a detected crop rectangle
        that sizes video renditions without a crop of their own. Nothing is
        written to disk.
        """
        base_path = Path(output_folder)
        structure = HLSOutputStructure(
            base_path=base_path,
            base_name=base_name,
            video_outputs=tuple(self._video_outputs(base_path, analysis, profile, crop)),
            audio_outputs=tuple(self._audio_outputs(base_path, analysis, profile)),
        )
        logger.debug(
            "Planned %d video and %d audio renditions under %s",
            len(structure.video_outputs),
            len(structure.audio_outputs),
            base_path,
        )
        return structure

    def prepare(self, structure: HLSOutputStructure) -> None:
        """Create the rendition folders."""
        for rendition in structure.renditions:
            rendition.folder_path.mkdir(parents=True, exist_ok=True)

    def generate_playlists(self, structure: HLSOutputStructure, duration: float) -> Path | None:
        """Write missing rendition playlists, then the master playlist."""
        segment_duration = self.ctx.settings.segment_duration
        for rendition in structure.renditions:
            if rendition.folder_path.is_dir():
                write_media_playlist(rendition.folder_path, rendition.playlist_path, duration, segment_duration)
        return self.generator.build(structure.base_path, structure.base_name, duration)


__all__ = ["HLSOutputOrchestrator", "audio_folder_name", "video_folder_name"]
