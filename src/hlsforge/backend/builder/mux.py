"""Container muxing flags for combined output."""

from pathlib import Path

from hlsforge.models.plan import EncodePlan
from hlsforge.models.types import Container, VideoCodec
from hlsforge.tools.codecs import family_of

from . import hls

MP4_FORMAT: tuple[str, ...] = ("-f", "mp4")  #: ISO base media file.
MKV_FORMAT: tuple[str, ...] = ("-f", "matroska")  #: Matroska file.
FASTSTART: tuple[str, ...] = ("-movflags", "+faststart")  #: Move the index to the front for progressive playback.
TAG_HVC1: tuple[str, ...] = ("-tag:v", "hvc1")  #: Tag HEVC streams for QuickTime compatibility.
SEGMENT_SUFFIX = "_%05d.ts"


def output_path(plan: EncodePlan) -> Path:
    """Main output of a combined encode: the playlist for HLS, else the media file."""
    return plan.output_folder / f"{plan.base_name}{plan.profile.container.extension}"


def build(plan: EncodePlan) -> tuple[str, ...]:
    """Return muxer args ending with the output path."""
    target = output_path(plan)
    container = plan.profile.container
    if container == Container.HLS:
        segments = plan.output_folder / f"{plan.base_name}{SEGMENT_SUFFIX}"
        return hls.build(segments, target, plan.segment_duration)
    if container == Container.MKV:
        return MKV_FORMAT + (str(target),)
    args = MP4_FORMAT + FASTSTART
    if plan.analysis.video_streams and family_of(plan.video_encoder(0)) is VideoCodec.HEVC:
        args = args + TAG_HVC1
    return args + (str(target),)


__all__ = ["FASTSTART", "build", "output_path"]
