"""Video stream argument helpers."""

from hlsforge.models.analysis import VideoStreamInfo
from hlsforge.models.plan import EncodePlan
from hlsforge.models.types import HardwareAccel
from hlsforge.tools.hardware import UPLOAD_FILTERS

from .stream_args import bitrate, codec, disable, map_stream, options

FILTER: tuple[str, ...] = ("-vf",)  #: Filter graph flag for video processing steps.
MAXRATE: tuple[str, ...] = ("-maxrate",)  #: Peak video bitrate to constrain rate control.
BUFSIZE: tuple[str, ...] = ("-bufsize",)  #: Rate control buffer size.
CRF: tuple[str, ...] = ("-crf",)  #: Constant rate factor for software encoders.
CQ: tuple[str, ...] = ("-cq",)  #: Constant quality for NVENC.
GLOBAL_QUALITY: tuple[str, ...] = ("-global_quality",)  #: Constant quality for QSV.
PRESET: tuple[str, ...] = ("-preset",)  #: Encoder speed/quality preset.
PROFILE: tuple[str, ...] = ("-profile:v",)  #: Codec profile.
TUNE: tuple[str, ...] = ("-tune",)  #: Encoder tuning.
FRAME_RATE: tuple[str, ...] = ("-r",)  #: Output frame rate.
GOP: tuple[str, ...] = ("-g",)  #: Keyframe interval in frames.
DISABLE: tuple[str, ...] = disable("v")  #: Drop all video streams.
SDR_FORMAT: str = "format=yuv420p"  #: 8-bit planar output for SDR renditions.
HDR_FORMAT: str = "format=yuv420p10le"  #: 10-bit planar output when HDR is kept.
TONEMAP_ZSCALE: str = (
    "zscale=tin=smpte2084:min=bt2020nc:pin=bt2020:rin=tv:t=smpte2084:m=bt2020nc:p=bt2020:r=tv,"
    "zscale=t=linear:npl=100,"
    "format=gbrpf32le,"
    "zscale=p=bt709,"
    "tonemap=tonemap=hable:desat=0,"
    "zscale=t=bt709:m=bt709:r=tv,"
    "format=yuv420p"
)  #: Linearize PQ, convert to BT.709 primaries, tone-map and return to 8-bit SDR.
TONEMAP_HLG: str = TONEMAP_ZSCALE.replace("tin=smpte2084", "tin=arib-std-b67").replace(
    "t=smpte2084", "t=arib-std-b67"
)  #: Same chain for HLG sources.

MAXRATE_MULTIPLIER: float = 1.1  #: Ratio of peak to average bitrate.
BUFSIZE_MULTIPLIER: int = 2  #: Buffer size relative to the average bitrate.
SOFTWARE_PREFIX: str = "lib"

# Encoders that only accept frames already uploaded to the device.
DEVICE_FRAME_BACKENDS: frozenset[HardwareAccel] = frozenset({HardwareAccel.VAAPI, HardwareAccel.QSV})


def needs_tonemap(plan: EncodePlan, index: int = 0) -> bool:
    """Whether rendition ``index`` converts an HDR source to SDR."""
    return plan.analysis.is_hdr and plan.video_profile(index).convert_hdr_to_sdr


def is_hdr_output(plan: EncodePlan, index: int = 0) -> bool:
    """Whether rendition ``index`` keeps HDR."""
    return plan.analysis.is_hdr and not plan.video_profile(index).convert_hdr_to_sdr


def _tonemap_chain(source: VideoStreamInfo | None) -> str:
    if source is not None and source.color_transfer == "arib-std-b67":
        return TONEMAP_HLG
    return TONEMAP_ZSCALE


def filters(plan: EncodePlan, index: int = 0) -> tuple[str, ...]:
    """Return the filter steps for video rendition ``index``.

    Order is crop, scale, then either the tone-mapping chain or a pixel
    format conversion, and finally a device upload when the encoder
    needs hardware frames.
    """
    profile = plan.video_profile(index)
    source = plan.analysis.primary_video
    steps: list[str] = []
    crop = profile.crop or plan.crop
    if crop:
        steps.append(f"crop={crop}")
    if source is not None:
        width, height = profile.target_size(source.width, source.height, crop)
        if width and height:
            steps.append(f"scale={width}:{height}")
    if needs_tonemap(plan, index):
        steps.append(_tonemap_chain(source))
    elif is_hdr_output(plan, index):
        steps.append(HDR_FORMAT)
    else:
        steps.append(SDR_FORMAT)
    backend = plan.accelerator(index)
    if backend in DEVICE_FRAME_BACKENDS:
        steps.append(UPLOAD_FILTERS[backend])
    return tuple(steps)


def _quality(encoder: str, crf: int) -> tuple[str, ...]:
    if encoder.startswith(SOFTWARE_PREFIX):
        return (*CRF, str(crf))
    if encoder.endswith("_nvenc"):
        return (*CQ, str(crf))
    if encoder.endswith("_qsv"):
        return (*GLOBAL_QUALITY, str(crf))
    return ()


def encode(plan: EncodePlan, index: int = 0) -> tuple[str, ...]:
    """Return args to encode video rendition ``index`` of ``plan``."""
    profile = plan.video_profile(index)
    encoder = plan.video_encoder(index)
    args = map_stream("v", plan.source_video_index) + codec("v", encoder)
    if profile.bitrate:
        args = args + bitrate("v", profile.bitrate)
        args = args + MAXRATE + (f"{int(profile.bitrate * MAXRATE_MULTIPLIER)}k",)
        args = args + BUFSIZE + (f"{profile.bitrate * BUFSIZE_MULTIPLIER}k",)
    if profile.crf is not None:
        args = args + _quality(encoder, profile.crf)
    if profile.preset:
        args = args + PRESET + (profile.preset,)
    if profile.profile:
        args = args + PROFILE + (profile.profile,)
    if profile.tune:
        args = args + TUNE + (profile.tune,)
    if profile.frame_rate:
        args = args + FRAME_RATE + (f"{profile.frame_rate:g}",)
    if profile.keyint:
        args = args + GOP + (str(profile.keyint),)
    args = args + options(profile.options)
    return args + FILTER + (",".join(filters(plan, index)),)


__all__ = ["DISABLE", "TONEMAP_ZSCALE", "encode", "filters", "is_hdr_output", "needs_tonemap"]
