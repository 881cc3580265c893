"""Subtitle stream argument helpers."""

from hlsforge.models.profile import EncoderProfile
from hlsforge.models.types import Container

from .stream_args import codec, disable, map_stream

MAP: tuple[str, ...] = map_stream("s", None, optional=True)  #: Map every subtitle stream if any exist.
DISABLE: tuple[str, ...] = disable("s")  #: Drop all subtitle streams.
MOV_TEXT = "mov_text"  #: The only text subtitle codec MP4 carries.


def build(profile: EncoderProfile) -> tuple[str, ...]:
    """Return subtitle args for the first subtitle sub-profile, or drop subtitles.

    MP4 output converts to ``mov_text`` whatever the sub-profile asks for.
    """
    if not profile.subtitle_profiles:
        return DISABLE
    name = MOV_TEXT if profile.container == Container.MP4 else profile.subtitle_profiles[0].codec
    return MAP + codec("s", name)


__all__ = ["DISABLE", "MAP", "build"]
