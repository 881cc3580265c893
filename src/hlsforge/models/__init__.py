"""Expose models and type definitions."""

from .analysis import AudioStreamInfo, ChapterInfo, StreamAnalysis, SubtitleStreamInfo, VideoStreamInfo
from .context import RuntimeContext
from .errors import (
    AnalysisError,
    AnalysisTimeoutError,
    EncoderError,
    MalformedOutputError,
    ModelUnavailableError,
    NoProfileFoundError,
    PermitTimeoutError,
    ProcessExecutionError,
    TaskCancelledError,
    TaskTimeoutError,
    UnsupportedCodecError,
)
from .hardware import GpuAccelerator
from .hls import HLSAudioOutput, HLSOutputStructure, HLSVideoOutput
from .plan import EncodePlan
from .profile import AudioProfile, EncoderProfile, SubtitleProfile, VideoProfile
from .results import ControlResult, EncodingProgress, EncodingResult, ExecutionResult, ProgressId, RenditionFailure
from .settings import Settings
from .types import AudioCodec, Container, DynamicRange, GpuVendor, HardwareAccel, OutputMode, Verbosity, VideoCodec

__all__ = [
    "AnalysisError",
    "AnalysisTimeoutError",
    "AudioCodec",
    "AudioProfile",
    "AudioStreamInfo",
    "ChapterInfo",
    "Container",
    "ControlResult",
    "DynamicRange",
    "EncoderError",
    "EncodePlan",
    "EncoderProfile",
    "EncodingProgress",
    "EncodingResult",
    "ExecutionResult",
    "GpuAccelerator",
    "GpuVendor",
    "HLSAudioOutput",
    "HLSOutputStructure",
    "HLSVideoOutput",
    "HardwareAccel",
    "MalformedOutputError",
    "ModelUnavailableError",
    "NoProfileFoundError",
    "OutputMode",
    "PermitTimeoutError",
    "ProcessExecutionError",
    "ProgressId",
    "RenditionFailure",
    "RuntimeContext",
    "Settings",
    "StreamAnalysis",
    "SubtitleProfile",
    "SubtitleStreamInfo",
    "TaskCancelledError",
    "TaskTimeoutError",
    "UnsupportedCodecError",
    "Verbosity",
    "VideoCodec",
    "VideoProfile",
    "VideoStreamInfo",
]
