"""FFmpeg-related helper utilities."""

from . import probe
from .analyzer import MediaAnalyzer
from .cli import capture_ffmpeg, capture_ffprobe, format_ffmpeg_cmd, run_ffmpeg, run_ffprobe
from .codecs import CodecSelector
from .hardware import HardwareAccelerationDetector
from .helpers import format_time, parse_frame_rate, parse_timespan
from .throttle import ProbeThrottle, default_throttle

__all__ = [
    "CodecSelector",
    "HardwareAccelerationDetector",
    "MediaAnalyzer",
    "ProbeThrottle",
    "capture_ffmpeg",
    "capture_ffprobe",
    "default_throttle",
    "format_ffmpeg_cmd",
    "format_time",
    "parse_frame_rate",
    "parse_timespan",
    "probe",
    "run_ffmpeg",
    "run_ffprobe",
]
