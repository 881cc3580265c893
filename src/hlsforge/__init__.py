"""Core package for hlsforge transcoding."""

from .backend import EncodingService, ProcessExecutor
from .hls import HLSOutputOrchestrator, PlaylistGenerator
from .models import EncoderProfile, EncodingResult, RuntimeContext, StreamAnalysis
from .tools import CodecSelector, HardwareAccelerationDetector, MediaAnalyzer

__version__ = "0.1.0"

__all__ = [
    "CodecSelector",
    "EncoderProfile",
    "EncodingResult",
    "EncodingService",
    "HLSOutputOrchestrator",
    "HardwareAccelerationDetector",
    "MediaAnalyzer",
    "PlaylistGenerator",
    "ProcessExecutor",
    "RuntimeContext",
    "StreamAnalysis",
    "__version__",
]
