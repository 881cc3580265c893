"""Master and media playlist generation for HLS rendition folders."""

from __future__ import annotations

import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from hlsforge.models.types import AudioCodec
from hlsforge.tools import probe

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from hlsforge.models.context import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle

MASTER_VERSION = 6
MEDIA_VERSION = 3
VIDEO_PREFIX = "video_"
AUDIO_PREFIX = "audio_"
SEGMENT_GLOB = "*.ts"
PLAYLIST_GLOB = "*.m3u8"
SUBTITLES_FOLDER = "subtitles"
SUBTITLE_GLOB = "*.vtt"
SUBTITLE_GROUP = "subs"
DEFAULT_SUBTITLE_KIND = "full"
FORCED_KIND = "forced"
UNDETERMINED_LANGUAGE = "und"
DEFAULT_LEVEL = 40
MAX_BANDWIDTH_FACTOR = 1.1

VIDEO_FOLDER_RE = re.compile(r"video_(\d+)x(\d+)(?:_(.+))?", re.IGNORECASE)

#: ``profile_idc`` byte of ``avc1.PPCCLL`` for each H.264 profile name.
H264_PROFILE_IDC: dict[str, str] = {
    "Baseline": "42",
    "Constrained Baseline": "42",
    "Main": "4D",
    "Extended": "58",
    "High": "64",
    "High 10": "6E",
    "High 4:2:2": "7A",
    "High 4:4:4": "F4",
}
DEFAULT_PROFILE_IDC = "4D"

#: ``general_profile_idc`` and compatibility flags for each HEVC profile name.
HEVC_PROFILES: dict[str, tuple[int, int]] = {
    "Main": (1, 6),
    "Main 10": (2, 4),
    "Main Still Picture": (3, 8),
}
DEFAULT_HEVC_LEVEL = 120

#: ``seq_profile`` for each AV1 profile name.
AV1_PROFILES: dict[str, int] = {"Main": 0, "High": 1, "Professional": 2}
DEFAULT_AV1_LEVEL = 8
PIX_FMT_DEPTH_RE = re.compile(r"p(\d+)(?:le|be)$")

#: Display names for ISO 639-2 codes commonly found in media files.
LANGUAGE_NAMES: dict[str, str] = {
    "ara": "arabic",
    "chi": "chinese",
    "zho": "chinese",
    "dan": "danish",
    "dut": "dutch",
    "nld": "dutch",
    "eng": "english",
    "fin": "finnish",
    "fre": "french",
    "fra": "french",
    "ger": "german",
    "deu": "german",
    "hin": "hindi",
    "ita": "italian",
    "jpn": "japanese",
    "kor": "korean",
    "nor": "norwegian",
    "pol": "polish",
    "por": "portuguese",
    "rus": "russian",
    "spa": "spanish",
    "swe": "swedish",
    "tha": "thai",
    "tur": "turkish",
    "und": "undetermined",
}

logger = logging.getLogger(__name__)


def h264_codec_string(profile: str | None, level: int | None) -> str:
    """Return the ``avc1.PPCCLL`` codec string for an H.264 stream."""
    name = (profile or "").strip()
    profile_idc = H264_PROFILE_IDC.get(name, DEFAULT_PROFILE_IDC)
    constraints = "40" if "constrained" in name.lower() else "00"
    return f"avc1.{profile_idc}{constraints}{(level if level is not None else DEFAULT_LEVEL):02X}"


def hevc_codec_string(profile: str | None, level: int | None) -> str:
    """Return the ``hvc1.P.C.LXX.B0`` codec string for a main-tier HEVC stream.

    ``level`` is ``general_level_idc`` as ffprobe reports it, 30 times the
    level number.
    """
    profile_idc, compat = HEVC_PROFILES.get((profile or "").strip(), HEVC_PROFILES["Main"])
    return f"hvc1.{profile_idc}.{compat}.L{level if level is not None else DEFAULT_HEVC_LEVEL}.B0"


def av1_codec_string(profile: str | None, level: int | None, pix_fmt: str | None) -> str:
    """Return the ``av01.P.LLM.DD`` codec string for a main-tier AV1 stream."""
    profile_idc = AV1_PROFILES.get((profile or "").strip(), 0)
    return f"av01.{profile_idc}.{(level if level is not None else DEFAULT_AV1_LEVEL):02d}M.{bit_depth(pix_fmt):02d}"


def bit_depth(pix_fmt: str | None) -> int:
    """Bits per component of a planar pixel format such as ``yuv420p10le``."""
    match = PIX_FMT_DEPTH_RE.search(pix_fmt or "")
    return int(match.group(1)) if match else 8


def video_codec_string(info: probe.VideoCodecInfo) -> str | None:
    """Return the ``CODECS`` entry for a probed video stream.

    ``None`` when the codec has no HLS codec string this module knows, so
    the attribute lists audio only instead of a wrong video codec.
    """
    name = (info.codec_name or "").lower()
    if name in {"h264", "avc"}:
        return h264_codec_string(info.profile, info.level)
    if name in {"hevc", "h265"}:
        return hevc_codec_string(info.profile, info.level)
    if name == "av1":
        return av1_codec_string(info.profile, info.level, info.pix_fmt)
    logger.warning("No CODECS string for video codec %r, leaving it out", info.codec_name)
    return None


def audio_codec_string(codec: str) -> str:
    """Return the ``CODECS`` entry for an audio group name."""
    return AudioCodec.from_encoder(codec).codec_string


def audio_group_id(codec: str) -> str:
    """``GROUP-ID`` shared by the audio renditions of one codec."""
    return f"audio_{codec.lower()}"


def language_display(language: str) -> str:
    """Human-readable, title-cased language name."""
    return LANGUAGE_NAMES.get(language.lower(), language).title()


def folder_size(folder: Path) -> int:
    """Total size in bytes of the segments in ``folder``."""
    total = 0
    for segment in folder.glob(SEGMENT_GLOB):
        try:
            total += segment.stat().st_size
        except OSError:
            continue
    return total


def classify_dynamic_range(folder_names: Iterable[str]) -> dict[str, bool]:
    """Map each video folder name to ``True`` when it holds HDR content.

    Folders ending in ``_SDR`` are SDR and folders containing ``_HDR`` are
    HDR. When no folder carries either tag everything is treated as SDR;
    otherwise untagged folders count as HDR.
    """
    names = list(folder_names)
    lowered = [name.lower() for name in names]
    has_explicit = any(name.endswith("_sdr") or "_hdr" in name for name in lowered)
    result: dict[str, bool] = {}
    for name, low in zip(names, lowered, strict=True):
        if low.endswith("_sdr"):
            result[name] = False
        elif "_hdr" in low:
            result[name] = True
        else:
            result[name] = has_explicit
    return result


def media_playlist(segments: Sequence[str], total_duration: float, segment_duration: int) -> str:
    """Render a VOD media playlist for ``segments`` in playback order.

    Every segment but the last is assumed to span ``segment_duration``;
    the last one takes whatever remains of ``total_duration``.
    """
    durations = [float(segment_duration)] * len(segments)
    if segments and total_duration > 0:
        remainder = total_duration - segment_duration * (len(segments) - 1)
        durations[-1] = remainder if remainder > 0 else float(segment_duration)
    target = max([segment_duration, *(math.ceil(d) for d in durations)])
    lines = [
        "#EXTM3U",
        f"#EXT-X-VERSION:{MEDIA_VERSION}",
        f"#EXT-X-TARGETDURATION:{target}",
        "#EXT-X-MEDIA-SEQUENCE:0",
        "#EXT-X-PLAYLIST-TYPE:VOD",
    ]
    for name, duration in zip(segments, durations, strict=True):
        lines.extend((f"#EXTINF:{duration:.6f},", name))
    lines.append("#EXT-X-ENDLIST")
    return "\n".join(lines) + "\n"


def write_media_playlist(
    folder: Path, playlist: Path, total_duration: float, segment_duration: int, *, overwrite: bool = False
) -> bool:
    """Write ``playlist`` from the segments in ``folder``.

    Returns ``False`` without touching the disk when the folder has no
    segments or a playlist already exists and ``overwrite`` is not set.
    """
    segments = sorted(p.name for p in folder.glob(SEGMENT_GLOB))
    if not segments:
        logger.warning("No segments in %s, skipping media playlist", folder)
        return False
    if playlist.exists() and not overwrite:
        return False
    playlist.write_text(media_playlist(segments, total_duration, segment_duration), encoding="utf-8")
    logger.debug("Wrote media playlist %s with %d segments", playlist, len(segments))
    return True


@dataclass(frozen=True)
class AudioVariant:
    """One audio rendition folder as it appears in the master playlist."""

    folder_name: str
    playlist_name: str
    language: str
    codec: str
    size: int

    @property
    def uri(self) -> str:
        """Playlist URI relative to the master playlist."""
        return f"{self.folder_name}/{self.playlist_name}"

    @classmethod
    def from_playlist(cls, playlist: Path) -> AudioVariant:
        """Derive language and codec from an ``audio_{lang}_{codec}`` folder."""
        folder = playlist.parent
        parts = folder.name.split("_")
        return cls(
            folder_name=folder.name,
            playlist_name=playlist.name,
            language=parts[1] if len(parts) > 1 else UNDETERMINED_LANGUAGE,
            codec=parts[2] if len(parts) > 2 else AudioCodec.AAC.value,  # noqa: PLR2004
            size=folder_size(folder),
        )


@dataclass(frozen=True)
class SubtitleVariant:
    """One WebVTT file under ``subtitles/`` named ``{name}.{lang}.{kind}.vtt``."""

    file_name: str
    language: str
    kind: str

    @property
    def playlist_name(self) -> str:
        return f"{Path(self.file_name).stem}.m3u8"

    @property
    def uri(self) -> str:
        """Subtitle playlist URI relative to the master playlist."""
        return f"{SUBTITLES_FOLDER}/{self.playlist_name}"

    @property
    def forced(self) -> bool:
        return self.kind.lower() == FORCED_KIND

    def media(self) -> str:
        """``#EXT-X-MEDIA`` line in the subtitle group."""
        return (
            f'#EXT-X-MEDIA:TYPE=SUBTITLES,GROUP-ID="{SUBTITLE_GROUP}",LANGUAGE="{self.language}",'
            f'NAME="{language_display(self.language)} {self.kind}",AUTOSELECT=YES,DEFAULT=NO,'
            f'FORCED={"YES" if self.forced else "NO"},URI="{self.uri}"'
        )

    @classmethod
    def from_file(cls, path: Path) -> SubtitleVariant:
        """Read language and kind from the suffixes before ``.vtt``."""
        parts = path.stem.split(".")[1:]
        language = parts[0] if parts else UNDETERMINED_LANGUAGE
        kind = parts[1] if len(parts) > 1 else DEFAULT_SUBTITLE_KIND
        return cls(file_name=path.name, language=language.lower(), kind=kind)


def write_subtitle_playlist(folder: Path, variant: SubtitleVariant, duration: float) -> Path:
    """Wrap one WebVTT file in a single-segment media playlist."""
    playlist = folder / variant.playlist_name
    target = max(1, math.ceil(duration))
    playlist.write_text(media_playlist([variant.file_name], duration, target), encoding="utf-8")
    return playlist


@dataclass(frozen=True)
class VideoVariant:
    """Probed metadata for one video rendition folder."""

    folder_name: str
    playlist_name: str
    width: int
    height: int
    is_hdr: bool
    codec_string: str | None
    frame_rate: float
    average_bandwidth: int
    max_bandwidth: int
    bandwidth: int

    @property
    def resolution(self) -> str:
        """Resolution as ``WxH``."""
        return f"{self.width}x{self.height}"

    @property
    def uri(self) -> str:
        """Playlist URI relative to the master playlist."""
        return f"{self.folder_name}/{self.playlist_name}"

    def stream_inf(self, audio_codec: str, *, subtitles: bool = False) -> str:
        """``#EXT-X-STREAM-INF`` line pairing this rendition with an audio group.

        ``BANDWIDTH`` is the peak video rate plus the audio allowance.
        """
        attrs = [f"BANDWIDTH={self.bandwidth}"]
        if self.average_bandwidth > 0:
            attrs.append(f"AVERAGE-BANDWIDTH={self.average_bandwidth}")
        attrs.append(f"RESOLUTION={self.resolution}")
        if self.frame_rate > 0:
            attrs.append(f"FRAME-RATE={self.frame_rate:.3f}")
        codecs = [c for c in (self.codec_string, audio_codec_string(audio_codec)) if c]
        attrs.append(f'CODECS="{",".join(codecs)}"')
        attrs.append(f'AUDIO="{audio_group_id(audio_codec)}"')
        if subtitles:
            attrs.append(f'SUBTITLES="{SUBTITLE_GROUP}"')
        if self.is_hdr:
            attrs.append("VIDEO-RANGE=PQ,COLOUR-SPACE=BT.2020,REQ-VIDEO-LAYOUT=BYTE")
        else:
            attrs.append("VIDEO-RANGE=SDR,COLOUR-SPACE=BT.709")
        attrs.append(f'NAME="{self.resolution} {"HDR" if self.is_hdr else "SDR"}"')
        return "#EXT-X-STREAM-INF:" + ",".join(attrs)


class PlaylistGenerator:
    """Build a master playlist by scanning rendition folders.

    Video folders are probed for codec profile, level, frame rate and
    duration with at most ``playlist_probe_concurrency`` probes in flight.
    """

    def __init__(self, ctx: RuntimeContext, *, throttle: ProbeThrottle | None = None) -> None:
        self.ctx = ctx
        self.throttle = throttle

    @property
    def priority_languages(self) -> list[str]:
        """Languages listed first in the audio groups."""
        return self.ctx.settings.priority_languages

    def order_audio(self, variants: Iterable[AudioVariant]) -> list[AudioVariant]:
        """Sort by priority language, then language code, then encoded size."""
        priority = self.priority_languages

        def key(v: AudioVariant) -> tuple[int, str, int]:
            rank = priority.index(v.language) if v.language in priority else len(priority)
            return rank, v.language, v.size

        return sorted(variants, key=key)

    def probe_video(self, playlist: Path, is_hdr: bool, fallback_duration: float = 0.0) -> VideoVariant | None:
        """Collect the master-playlist attributes of one video rendition."""
        folder = playlist.parent
        match = VIDEO_FOLDER_RE.match(folder.name)
        if not match:
            logger.warning("Cannot read a resolution from folder %s", folder.name)
            return None
        first_segment = next(iter(sorted(folder.glob(SEGMENT_GLOB))), None)
        target = first_segment or playlist
        info = probe.get_video_codec_info(self.ctx, target, throttle=self.throttle)
        duration = probe.get_duration_sec(self.ctx, playlist, throttle=self.throttle) or fallback_duration
        average = round(folder_size(folder) * 8 / duration) if duration > 0 else 0
        peak = int(average * MAX_BANDWIDTH_FACTOR)
        logger.debug(
            "%s: %s, %s profile=%s level=%s",
            folder.name,
            "HDR" if is_hdr else "SDR",
            info.codec_name,
            info.profile,
            info.level,
        )
        return VideoVariant(
            folder_name=folder.name,
            playlist_name=playlist.name,
            width=int(match.group(1)),
            height=int(match.group(2)),
            is_hdr=is_hdr,
            codec_string=video_codec_string(info),
            frame_rate=info.frame_rate,
            average_bandwidth=average,
            max_bandwidth=peak,
            bandwidth=peak + self.ctx.settings.audio_bandwidth_overhead,
        )

    def subtitle_variants(self, base_path: Path, duration: float) -> list[SubtitleVariant]:
        """Write a playlist for every WebVTT file under ``subtitles/``."""
        folder = base_path / SUBTITLES_FOLDER
        if not folder.is_dir():
            return []
        variants = [SubtitleVariant.from_file(p) for p in sorted(folder.glob(SUBTITLE_GLOB))]
        for variant in variants:
            write_subtitle_playlist(folder, variant, duration)
        logger.debug("Found %d subtitle tracks in %s", len(variants), folder)
        return variants

    def probe_videos(self, playlists: Sequence[Path], fallback_duration: float = 0.0) -> list[VideoVariant]:
        """Probe every video rendition with bounded concurrency."""
        ranges = classify_dynamic_range(p.parent.name for p in playlists)
        workers = max(1, min(self.ctx.settings.playlist_probe_concurrency, len(playlists)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="playlist-probe") as pool:
            results = pool.map(
                lambda p: self.probe_video(p, ranges[p.parent.name], fallback_duration),
                playlists,
            )
            return [v for v in results if v is not None]

    def render(
        self,
        videos: Sequence[VideoVariant],
        audios: Sequence[AudioVariant],
        subtitles: Sequence[SubtitleVariant] = (),
    ) -> str:
        """Render master playlist text.

        Resolutions are listed largest first and SDR precedes HDR within a
        resolution. Each video rendition is repeated once per audio codec group
        and references the subtitle group when there are subtitles.
        """
        lines = ["#EXTM3U", f"#EXT-X-VERSION:{MASTER_VERSION}", ""]
        groups: dict[str, list[AudioVariant]] = {}
        for index, audio in enumerate(audios):
            groups.setdefault(audio.codec.lower(), []).append(audio)
            lines.append(
                f'#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="{audio_group_id(audio.codec)}",LANGUAGE="{audio.language}",'
                f'AUTOSELECT=YES,DEFAULT={"YES" if index == 0 else "NO"},URI="{audio.uri}",'
                f'NAME="{language_display(audio.language)} {audio.codec}"'
            )
        lines.extend(subtitle.media() for subtitle in subtitles)
        lines.append("")
        audio_codecs = list(groups) or [AudioCodec.AAC.value]
        ordered = sorted(videos, key=lambda v: (-v.width * v.height, -v.width, v.is_hdr))
        for video in ordered:
            for codec in audio_codecs:
                lines.extend((video.stream_inf(codec, subtitles=bool(subtitles)), video.uri, ""))
        return "\n".join(lines)

    def build(self, base_path: Path, name: str, duration: float = 0.0) -> Path | None:
        """Write ``{base_path}/{name}.m3u8`` from the rendition folders found there.

        WebVTT files under ``subtitles/`` get a single-segment playlist each
        and join the subtitle group.

        Returns the master playlist path, or ``None`` when ``base_path`` does
        not exist.
        """
        if not base_path.is_dir():
            logger.warning("Output folder %s does not exist", base_path)
            return None
        folders = sorted(p for p in base_path.iterdir() if p.is_dir())
        video_playlists = [
            pl for f in folders if f.name.lower().startswith(VIDEO_PREFIX) for pl in sorted(f.glob(PLAYLIST_GLOB))
        ]
        audio_playlists = [
            pl for f in folders if f.name.lower().startswith(AUDIO_PREFIX) for pl in sorted(f.glob(PLAYLIST_GLOB))
        ]
        audios = self.order_audio(AudioVariant.from_playlist(p) for p in audio_playlists)
        videos = self.probe_videos(video_playlists, duration) if video_playlists else []
        master = base_path / f"{name}.m3u8"
        master.write_text(self.render(videos, audios, self.subtitle_variants(base_path, duration)), encoding="utf-8")
        logger.info("Master playlist written to %s", master)
        return master


__all__ = [
    "AudioVariant",
    "PlaylistGenerator",
    "SubtitleVariant",
    "VideoVariant",
    "audio_group_id",
    "classify_dynamic_range",
    "h264_codec_string",
    "media_playlist",
    "video_codec_string",
    "write_media_playlist",
    "write_subtitle_playlist",
]
