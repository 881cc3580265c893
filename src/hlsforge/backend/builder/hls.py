"""HLS muxer arguments."""

from pathlib import Path

FORMAT: tuple[str, ...] = ("-f", "hls")  #: Segmenting HLS muxer.
SEGMENT_TIME: tuple[str, ...] = ("-hls_time",)  #: Target segment duration in seconds.
PLAYLIST_TYPE_VOD: tuple[str, ...] = ("-hls_playlist_type", "vod")  #: Complete playlist with ENDLIST.
SEGMENT_FILENAME: tuple[str, ...] = ("-hls_segment_filename",)  #: Segment path pattern.


def build(segment_pattern: Path, playlist: Path, segment_duration: int = 6) -> tuple[str, ...]:
    """Return muxer args writing ``playlist`` and segments matching ``segment_pattern``."""
    return (
        FORMAT
        + SEGMENT_TIME
        + (str(segment_duration),)
        + PLAYLIST_TYPE_VOD
        + SEGMENT_FILENAME
        + (str(segment_pattern), str(playlist))
    )


__all__ = ["build"]
