"""Codec, hardware and output-mode type definitions."""

from enum import Enum, IntEnum

from .errors import UnsupportedCodecError


class Verbosity(IntEnum):
    """Logging verbosity levels."""

    QUIET = 0
    COMMANDS = 1
    OUTPUT = 2


class VideoCodec(str, Enum):
    """Video codec families an encoder profile may request."""

    H264 = "h264"
    HEVC = "hevc"
    VP9 = "vp9"
    AV1 = "av1"

    @property
    def software_encoder(self) -> str:
        """FFmpeg software encoder used when no hardware backend matches."""
        return _SOFTWARE_ENCODERS[self]

    @classmethod
    def from_name(cls, name: str) -> "VideoCodec":
        """Return the family for ``name`` accepting common aliases.

        Raises:
            UnsupportedCodecError: If ``name`` is not a known family.

        """
        try:
            return _FAMILY_ALIASES[name.strip().lower()]
        except KeyError:
            raise UnsupportedCodecError(f"Unsupported codec family: {name}") from None


_SOFTWARE_ENCODERS: dict[VideoCodec, str] = {
    VideoCodec.H264: "libx264",
    VideoCodec.HEVC: "libx265",
    VideoCodec.VP9: "libvpx-vp9",
    VideoCodec.AV1: "librav1e",
}

_FAMILY_ALIASES: dict[str, VideoCodec] = {
    "h264": VideoCodec.H264,
    "h.264": VideoCodec.H264,
    "avc": VideoCodec.H264,
    "h265": VideoCodec.HEVC,
    "h.265": VideoCodec.HEVC,
    "hevc": VideoCodec.HEVC,
    "vp9": VideoCodec.VP9,
    "av1": VideoCodec.AV1,
}


class AudioCodec(str, Enum):
    """Audio codecs that can be segmented into HLS renditions."""

    AAC = "aac"
    EAC3 = "eac3"
    AC3 = "ac3"
    OPUS = "opus"

    @property
    def codec_string(self) -> str:
        """RFC 6381 codec identifier used in the master playlist."""
        return {
            AudioCodec.AAC: "mp4a.40.2",
            AudioCodec.EAC3: "ec-3",
            AudioCodec.AC3: "ac-3",
            AudioCodec.OPUS: "opus",
        }[self]

    @classmethod
    def from_encoder(cls, name: str | None) -> "AudioCodec":
        """Map an FFmpeg encoder or codec name to a rendition codec.

        Unknown names fall back to AAC.
        """
        token = (name or "").lower()
        for codec in (cls.EAC3, cls.AC3, cls.OPUS, cls.AAC):
            if codec.value in token:
                return codec
        return cls.AAC


class HardwareAccel(str, Enum):
    """Hardware acceleration backends FFmpeg can expose."""

    CUDA = "cuda"
    NVENC = "nvenc"
    QSV = "qsv"
    VAAPI = "vaapi"
    VIDEOTOOLBOX = "videotoolbox"
    AMF = "amf"
    DXVA2 = "dxva2"

    @property
    def hwaccel_name(self) -> str:
        """Name reported by ``ffmpeg -hwaccels`` for this backend."""
        return "cuda" if self is HardwareAccel.NVENC else self.value

    @property
    def vendor(self) -> "GpuVendor":
        """GPU vendor that ships this backend."""
        return {
            HardwareAccel.CUDA: GpuVendor.NVIDIA,
            HardwareAccel.NVENC: GpuVendor.NVIDIA,
            HardwareAccel.QSV: GpuVendor.INTEL,
            HardwareAccel.VAAPI: GpuVendor.UNKNOWN,
            HardwareAccel.VIDEOTOOLBOX: GpuVendor.APPLE,
            HardwareAccel.AMF: GpuVendor.AMD,
            HardwareAccel.DXVA2: GpuVendor.UNKNOWN,
        }[self]


class GpuVendor(str, Enum):
    """GPU vendors, ordered by encoder preference."""

    NVIDIA = "nvidia"
    AMD = "amd"
    INTEL = "intel"
    APPLE = "apple"
    UNKNOWN = "unknown"


class Container(str, Enum):
    """Output container of a combined encode."""

    HLS = "hls"
    MP4 = "mp4"
    MKV = "mkv"

    @property
    def extension(self) -> str:
        """File suffix of the main output, the playlist for HLS."""
        return ".m3u8" if self is Container.HLS else f".{self.value}"


class OutputMode(str, Enum):
    """How renditions are produced by the encoding tool."""

    COMBINED = "combined"
    SEPARATE_STREAMS = "separate"


class DynamicRange(str, Enum):
    """Dynamic range tag used in rendition folder names."""

    SDR = "SDR"
    HDR = "HDR"


__all__ = [
    "AudioCodec",
    "Container",
    "DynamicRange",
    "GpuVendor",
    "HardwareAccel",
    "OutputMode",
    "Verbosity",
    "VideoCodec",
]
