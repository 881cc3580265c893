"""Hardware acceleration discovery."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading

from hlsforge.models.hardware import GpuAccelerator
from hlsforge.models.types import HardwareAccel, VideoCodec

from .cli import run_ffmpeg

HWACCELS_ARGS: tuple[str, ...] = ("-hide_banner", "-hwaccels")  #: List compiled-in hwaccel backends.
HWACCELS_TIMEOUT_S: float = 10.0

PLATFORM_CANDIDATES: dict[str, tuple[HardwareAccel, ...]] = {
    "win32": (
        HardwareAccel.CUDA,
        HardwareAccel.NVENC,
        HardwareAccel.QSV,
        HardwareAccel.AMF,
        HardwareAccel.DXVA2,
    ),
    "linux": (HardwareAccel.CUDA, HardwareAccel.NVENC, HardwareAccel.VAAPI, HardwareAccel.QSV),
    "darwin": (HardwareAccel.VIDEOTOOLBOX,),
}  #: Backends worth probing per platform.

RECOMMENDED_ORDER: dict[str, tuple[HardwareAccel, ...]] = {
    "win32": (HardwareAccel.NVENC, HardwareAccel.QSV, HardwareAccel.AMF, HardwareAccel.DXVA2),
    "linux": (HardwareAccel.NVENC, HardwareAccel.VAAPI, HardwareAccel.QSV),
    "darwin": (HardwareAccel.VIDEOTOOLBOX,),
}  #: Preferred backend order per platform.
FALLBACK_ORDER: tuple[HardwareAccel, ...] = (HardwareAccel.CUDA, HardwareAccel.NVENC)

HARDWARE_ENCODERS: dict[VideoCodec, dict[HardwareAccel, str]] = {
    VideoCodec.H264: {
        HardwareAccel.NVENC: "h264_nvenc",
        HardwareAccel.CUDA: "h264_nvenc",
        HardwareAccel.QSV: "h264_qsv",
        HardwareAccel.VAAPI: "h264_vaapi",
        HardwareAccel.VIDEOTOOLBOX: "h264_videotoolbox",
        HardwareAccel.AMF: "h264_amf",
    },
    VideoCodec.HEVC: {
        HardwareAccel.NVENC: "hevc_nvenc",
        HardwareAccel.CUDA: "hevc_nvenc",
        HardwareAccel.QSV: "hevc_qsv",
        HardwareAccel.VAAPI: "hevc_vaapi",
        HardwareAccel.VIDEOTOOLBOX: "hevc_videotoolbox",
        HardwareAccel.AMF: "hevc_amf",
    },
    VideoCodec.VP9: {
        HardwareAccel.QSV: "vp9_qsv",
        HardwareAccel.VAAPI: "vp9_vaapi",
    },
    VideoCodec.AV1: {
        HardwareAccel.NVENC: "av1_nvenc",
        HardwareAccel.CUDA: "av1_nvenc",
        HardwareAccel.QSV: "av1_qsv",
        HardwareAccel.VAAPI: "av1_vaapi",
        HardwareAccel.AMF: "av1_amf",
    },
}  #: Concrete hardware encoder per (codec family, backend).

_CUDA_INPUT: tuple[str, ...] = ("-hwaccel", "cuda", "-hwaccel_output_format", "cuda", "-extra_hw_frames", "8")
INPUT_ARGS: dict[HardwareAccel, tuple[str, ...]] = {
    HardwareAccel.CUDA: _CUDA_INPUT,
    HardwareAccel.NVENC: _CUDA_INPUT,
    HardwareAccel.QSV: ("-hwaccel", "qsv", "-hwaccel_output_format", "qsv"),
    HardwareAccel.VAAPI: (
        "-hwaccel",
        "vaapi",
        "-hwaccel_device",
        "/dev/dri/renderD128",
        "-hwaccel_output_format",
        "vaapi",
    ),
    HardwareAccel.VIDEOTOOLBOX: ("-hwaccel", "videotoolbox"),
    HardwareAccel.DXVA2: ("-hwaccel", "dxva2"),
    HardwareAccel.AMF: ("-hwaccel", "amf"),
}  #: Input-side arguments that activate each backend.

UPLOAD_FILTERS: dict[HardwareAccel, str] = {
    HardwareAccel.CUDA: "hwupload_cuda",
    HardwareAccel.NVENC: "hwupload_cuda",
    HardwareAccel.QSV: "hwupload=extra_hw_frames=64,format=qsv",
    HardwareAccel.VAAPI: "format=nv12,hwupload",
}  #: Filters that move software frames onto the device.

logger = logging.getLogger(__name__)


def _platform_key(platform: str) -> str:
    if platform.startswith("win"):
        return "win32"
    if platform.startswith("linux"):
        return "linux"
    return platform


class HardwareAccelerationDetector:
    """Detect usable acceleration backends once per instance.

    Detection runs lazily on first use. Concurrent callers wait for the
    first detection instead of probing again, and :meth:`refresh` replaces
    the cached list as a whole.
    """

    def __init__(self, *, platform: str | None = None) -> None:
        self.platform = _platform_key(platform or sys.platform)
        self._lock = threading.Lock()
        self._available: tuple[HardwareAccel, ...] | None = None

    def _list_hwaccels(self) -> str:
        """Return the ``-hwaccels`` listing or an empty string on any failure."""
        try:
            return run_ffmpeg(list(HWACCELS_ARGS), timeout=HWACCELS_TIMEOUT_S)
        except (FileNotFoundError, subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            logger.warning("Hardware acceleration probe failed, using software encoders: %s", e)
            return ""

    def _detect(self) -> tuple[HardwareAccel, ...]:
        listing = self._list_hwaccels().lower()
        names = {line.strip() for line in listing.splitlines()}
        found = tuple(
            kind for kind in PLATFORM_CANDIDATES.get(self.platform, ()) if kind.hwaccel_name in names
        )
        if found:
            logger.info("Detected hardware acceleration: %s", ", ".join(k.value for k in found))
        else:
            logger.info("No hardware acceleration detected on %s", self.platform)
        return found

    def get_available_accelerators(self) -> tuple[HardwareAccel, ...]:
        """Return the detected backends, probing on first call only."""
        available = self._available
        if available is None:
            with self._lock:
                if self._available is None:
                    self._available = self._detect()
                available = self._available
        return available

    def refresh(self) -> tuple[HardwareAccel, ...]:
        """Re-run detection and replace the cached list."""
        detected = self._detect()
        with self._lock:
            self._available = detected
        return detected

    def is_available(self, kind: HardwareAccel) -> bool:
        """Return True if ``kind`` was detected."""
        return kind in self.get_available_accelerators()

    def get_recommended(self) -> HardwareAccel | None:
        """Return the highest-priority usable backend for this platform."""
        available = self.get_available_accelerators()
        for kind in RECOMMENDED_ORDER.get(self.platform, FALLBACK_ORDER):
            if kind in available:
                return kind
        return available[0] if available else None

    def get_accelerators(self) -> tuple[GpuAccelerator, ...]:
        """Return one accelerator record per distinct device pathway."""
        records: dict[str, GpuAccelerator] = {}
        for kind in self.get_available_accelerators():
            if kind.hwaccel_name in records:
                continue
            records[kind.hwaccel_name] = GpuAccelerator(
                vendor=kind.vendor,
                kind=kind,
                ffmpeg_args=input_args(kind),
                accelerator=kind.hwaccel_name,
                filter=UPLOAD_FILTERS.get(kind),
            )
        return tuple(records.values())


def hardware_encoder(codec: VideoCodec, kind: HardwareAccel) -> str | None:
    """Return the hardware encoder for ``codec`` on ``kind`` if one exists."""
    return HARDWARE_ENCODERS.get(codec, {}).get(kind)


def input_args(kind: HardwareAccel | None) -> tuple[str, ...]:
    """Return the input-side arguments that activate ``kind``."""
    if kind is None:
        return ()
    return INPUT_ARGS.get(kind, ())


__all__ = [
    "HARDWARE_ENCODERS",
    "INPUT_ARGS",
    "HardwareAccelerationDetector",
    "hardware_encoder",
    "input_args",
]
