"""Audio stream argument helpers."""

from hlsforge.models.profile import AudioProfile

from .stream_args import bitrate, codec, disable, map_stream, options

CHANNELS: tuple[str, ...] = ("-ac",)  #: Output channel count.
SAMPLE_RATE: tuple[str, ...] = ("-ar",)  #: Output sample rate.
DISABLE: tuple[str, ...] = disable("a")  #: Drop all audio streams.


def encode(profile: AudioProfile, source_index: int = 0) -> tuple[str, ...]:
    """Return args to encode the audio stream at ``source_index`` with ``profile``."""
    args = map_stream("a", source_index) + codec("a", profile.codec)
    if profile.bitrate:
        args = args + bitrate("a", profile.bitrate)
    if profile.channels:
        args = args + CHANNELS + (str(profile.channels),)
    if profile.sample_rate:
        args = args + SAMPLE_RATE + (str(profile.sample_rate),)
    return args + options(profile.options)


__all__ = ["DISABLE", "encode"]
