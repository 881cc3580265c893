"""Codec selection with hardware preference and software fallback."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hlsforge.models.errors import UnsupportedCodecError
from hlsforge.models.types import GpuVendor, HardwareAccel, VideoCodec

from .hardware import HARDWARE_ENCODERS

if TYPE_CHECKING:
    from .hardware import HardwareAccelerationDetector

VENDOR_PRIORITY: tuple[GpuVendor, ...] = (
    GpuVendor.NVIDIA,
    GpuVendor.AMD,
    GpuVendor.INTEL,
    GpuVendor.APPLE,
)  #: Vendors tried in order before falling back to software.

VENDOR_ENCODERS: dict[VideoCodec, dict[GpuVendor, str]] = {
    VideoCodec.H264: {
        GpuVendor.NVIDIA: "h264_nvenc",
        GpuVendor.AMD: "h264_amf",
        GpuVendor.INTEL: "h264_qsv",
        GpuVendor.APPLE: "h264_videotoolbox",
    },
    VideoCodec.HEVC: {
        GpuVendor.NVIDIA: "hevc_nvenc",
        GpuVendor.AMD: "hevc_amf",
        GpuVendor.INTEL: "hevc_qsv",
        GpuVendor.APPLE: "hevc_videotoolbox",
    },
    VideoCodec.VP9: {
        GpuVendor.INTEL: "vp9_qsv",
    },
    VideoCodec.AV1: {
        GpuVendor.NVIDIA: "av1_nvenc",
        GpuVendor.AMD: "av1_amf",
        GpuVendor.INTEL: "av1_qsv",
    },
}  #: Hardware encoder per codec family and vendor.

EXTRA_SOFTWARE_ENCODERS: dict[str, VideoCodec] = {
    "libsvtav1": VideoCodec.AV1,
    "libaom-av1": VideoCodec.AV1,
    "libvpx": VideoCodec.VP9,
}  #: Alternate software encoders that map onto a family.

logger = logging.getLogger(__name__)


def _encoder_families() -> dict[str, VideoCodec]:
    families: dict[str, VideoCodec] = dict(EXTRA_SOFTWARE_ENCODERS)
    for codec in VideoCodec:
        families[codec.software_encoder] = codec
        families.update(dict.fromkeys(VENDOR_ENCODERS[codec].values(), codec))
        families.update(dict.fromkeys(HARDWARE_ENCODERS[codec].values(), codec))
    return families


ENCODER_FAMILIES: dict[str, VideoCodec] = _encoder_families()  #: Concrete encoder name to family.


def family_of(name: str) -> VideoCodec | None:
    """Return the codec family of a family alias or concrete encoder name."""
    token = name.strip().lower()
    if token in ENCODER_FAMILIES:
        return ENCODER_FAMILIES[token]
    try:
        return VideoCodec.from_name(token)
    except UnsupportedCodecError:
        return None


class CodecSelector:
    """Map codec families to the best encoder the host supports."""

    def __init__(self, detector: HardwareAccelerationDetector) -> None:
        self.detector = detector

    def select(self, codec: VideoCodec) -> str:
        """Return the first hardware encoder by vendor priority, else software.

        Backends without a known vendor (VAAPI, DXVA2) are tried after the
        vendor table, in detection order.
        """
        accelerators = self.detector.get_accelerators()
        vendors = {acc.vendor for acc in accelerators}
        table = VENDOR_ENCODERS.get(codec, {})
        for vendor in VENDOR_PRIORITY:
            if vendor in vendors and vendor in table:
                return table[vendor]
        by_backend = HARDWARE_ENCODERS.get(codec, {})
        for acc in accelerators:
            if acc.vendor is GpuVendor.UNKNOWN and acc.kind in by_backend:
                return by_backend[acc.kind]
        if vendors:
            logger.warning("No hardware %s encoder for %s, using software", codec.value, sorted(vendors))
        return codec.software_encoder

    def select_h264(self) -> str:
        """Best H.264 encoder."""
        return self.select(VideoCodec.H264)

    def select_h265(self) -> str:
        """Best HEVC encoder."""
        return self.select(VideoCodec.HEVC)

    def select_vp9(self) -> str:
        """Best VP9 encoder."""
        return self.select(VideoCodec.VP9)

    def select_av1(self) -> str:
        """Best AV1 encoder."""
        return self.select(VideoCodec.AV1)

    def select_best_codec(self, family: str) -> str:
        """Return the best encoder for a family name such as ``"h.265"``.

        Raises:
            UnsupportedCodecError: If ``family`` is not a known codec family.

        """
        return self.select(VideoCodec.from_name(family))

    def resolve_best_codec(self, requested: str) -> str:
        """Normalize a family or concrete encoder name for this host.

        A software encoder upgrades to hardware when available and a pinned
        hardware encoder falls back when its vendor is missing. Names that
        map to no known family are returned unchanged.
        """
        codec = family_of(requested)
        if codec is None:
            logger.warning("Unknown codec '%s', passing it through unchanged", requested)
            return requested
        return self.select(codec)

    def backend_for(self, encoder: str) -> HardwareAccel | None:
        """Return the detected backend that provides ``encoder``, if any."""
        codec = ENCODER_FAMILIES.get(encoder)
        if codec is None:
            return None
        for acc in self.detector.get_accelerators():
            if HARDWARE_ENCODERS[codec].get(acc.kind) == encoder:
                return acc.kind
        return None


__all__ = ["ENCODER_FAMILIES", "VENDOR_ENCODERS", "VENDOR_PRIORITY", "CodecSelector", "family_of"]
