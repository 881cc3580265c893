"""Build FFmpeg command arguments from an encode plan."""

from __future__ import annotations

from typing import TYPE_CHECKING

from hlsforge.models.types import HardwareAccel, OutputMode
from hlsforge.tools.hardware import input_args

from . import audio, hls, mux, subs, video, window
from .command_args import (
    ANALYZE_DURATION,
    HIDE_BANNER,
    INPUT_FLAG,
    OVERWRITE_OUTPUT,
    PROBE_SIZE,
    STRIP_METADATA,
    THREADS,
)

if TYPE_CHECKING:
    from hlsforge.models.hls import HLSAudioOutput, HLSOutputStructure, HLSVideoOutput
    from hlsforge.models.plan import EncodePlan

# Read deep into the input so late-starting streams are still detected.
GLOBAL_FLAGS: tuple[str, ...] = HIDE_BANNER + PROBE_SIZE + ANALYZE_DURATION

_OUTPUT_FORMAT_FLAG = "-hwaccel_output_format"

type RenditionCommand = tuple[HLSVideoOutput | HLSAudioOutput, tuple[str, ...]]


def decode_args(kind: HardwareAccel | None) -> tuple[str, ...]:
    """Return hardware decode args that leave frames in system memory.

    Every rendition runs CPU filters (scale, pixel format, tone-mapping),
    so the device output format from the acceleration table is dropped and
    FFmpeg downloads decoded frames automatically.
    """
    args = input_args(kind)
    if _OUTPUT_FORMAT_FLAG not in args:
        return args
    i = args.index(_OUTPUT_FORMAT_FLAG)
    return args[:i] + args[i + 2 :]


def _head(plan: EncodePlan, accel: HardwareAccel | None) -> tuple[str, ...]:
    """Global, hardware, window and input arguments shared by all commands."""
    return (
        GLOBAL_FLAGS
        + THREADS
        + (str(plan.threads),)
        + decode_args(accel)
        + OVERWRITE_OUTPUT
        + window.build(plan)
        + INPUT_FLAG
        + (str(plan.input_path),)
        + STRIP_METADATA
    )


def build_combined(plan: EncodePlan) -> tuple[str, ...]:
    """Return one command muxing the first video and audio rendition together.

    The profile container picks HLS segments, an MP4 or a Matroska file.

    Raises:
        NoProfileFoundError: If the source has a stream type the profile does
            not describe.

    """
    analysis = plan.analysis
    args = _head(plan, plan.accelerator(0) if analysis.video_streams else None)
    args = args + (video.encode(plan, 0) if analysis.video_streams else video.DISABLE)
    if analysis.audio_streams:
        primary = analysis.primary_audio
        source_index = analysis.audio_streams.index(primary) if primary else 0
        args = args + audio.encode(plan.audio_profile(0), source_index)
    else:
        args = args + audio.DISABLE
    return args + subs.build(plan.profile) + mux.build(plan)


def build_video_rendition(plan: EncodePlan, output: HLSVideoOutput) -> tuple[str, ...]:
    """Return a video-only command for one rendition folder."""
    index = output.profile_index
    return (
        _head(plan, plan.accelerator(index))
        + video.encode(plan, index)
        + audio.DISABLE
        + subs.DISABLE
        + hls.build(output.segment_path_pattern, output.playlist_path, plan.segment_duration)
    )


def build_audio_rendition(plan: EncodePlan, output: HLSAudioOutput) -> tuple[str, ...]:
    """Return an audio-only command for one rendition folder."""
    return (
        _head(plan, None)
        + video.DISABLE
        + audio.encode(plan.audio_profile(output.profile_index), output.stream_index)
        + subs.DISABLE
        + hls.build(output.segment_path_pattern, output.playlist_path, plan.segment_duration)
    )


def separate_commands(plan: EncodePlan, structure: HLSOutputStructure) -> tuple[RenditionCommand, ...]:
    """Return each rendition paired with the command that produces it."""
    commands: list[RenditionCommand] = [(v, build_video_rendition(plan, v)) for v in structure.video_outputs]
    commands.extend((a, build_audio_rendition(plan, a)) for a in structure.audio_outputs)
    return tuple(commands)


def build_commands(
    plan: EncodePlan,
    mode: OutputMode = OutputMode.COMBINED,
    structure: HLSOutputStructure | None = None,
) -> tuple[tuple[str, ...], ...]:
    """Return the argument sequences for ``mode``.

    ``OutputMode.COMBINED`` yields a single command; ``SEPARATE_STREAMS``
    yields one per rendition in ``structure``.

    Raises:
        ValueError: If separate streams are requested without a structure.
        NoProfileFoundError: If a needed sub-profile is missing.

    """
    if mode is OutputMode.COMBINED:
        return (build_combined(plan),)
    if structure is None:
        raise ValueError("Separate-stream output requires an HLS output structure")
    return tuple(args for _, args in separate_commands(plan, structure))


__all__ = [
    "GLOBAL_FLAGS",
    "build_audio_rendition",
    "build_combined",
    "build_commands",
    "build_video_rendition",
    "decode_args",
    "separate_commands",
]
