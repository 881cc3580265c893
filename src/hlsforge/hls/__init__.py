"""HLS rendition layout, playlists and playlist checks."""

from .layout import HLSOutputOrchestrator, audio_folder_name, video_folder_name
from .playlist import PlaylistGenerator, h264_codec_string, write_media_playlist
from .validation import PlaylistReport, validate_master, validate_media

__all__ = [
    "HLSOutputOrchestrator",
    "PlaylistGenerator",
    "PlaylistReport",
    "audio_folder_name",
    "h264_codec_string",
    "validate_master",
    "validate_media",
    "video_folder_name",
    "write_media_playlist",
]
