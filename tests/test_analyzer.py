"""Tests for ffprobe output parsing and the media analyzer."""

from __future__ import annotations

import json
import subprocess
from typing import TYPE_CHECKING, Never

import pytest

from hlsforge.models import AnalysisError, AnalysisTimeoutError, MalformedOutputError
from hlsforge.tools import analyzer, probe
from hlsforge.tools.analyzer import MediaAnalyzer, parse_analysis, parse_chapters

if TYPE_CHECKING:
    from pathlib import Path

    from hlsforge.models import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle

PROBE_OUTPUT = {
    "format": {"duration": "123.456", "size": "2048", "format_name": "matroska,webm", "bit_rate": "8000000"},
    "streams": [
        {
            "index": 0,
            "codec_type": "video",
            "codec_name": "hevc",
            "profile": "Main 10",
            "width": 3840,
            "height": 2160,
            "r_frame_rate": "24000/1001",
            "pix_fmt": "yuv420p10le",
            "color_transfer": "smpte2084",
            "color_space": "bt2020nc",
            "field_order": "progressive",
            "disposition": {"default": 1, "attached_pic": 0},
        },
        {
            "index": 1,
            "codec_type": "video",
            "codec_name": "mjpeg",
            "width": 600,
            "height": 600,
            "disposition": {"attached_pic": 1},
        },
        {
            "index": 2,
            "codec_type": "audio",
            "codec_name": "eac3",
            "channels": 6,
            "channel_layout": "5.1(side)",
            "sample_rate": "48000",
            "tags": {"language": "eng", "title": "Surround"},
            "disposition": {"default": 1},
        },
        {
            "index": 3,
            "codec_type": "subtitle",
            "codec_name": "hdmv_pgs_subtitle",
            "tags": {"language": "ger"},
            "disposition": {"forced": 1, "hearing_impaired": 1},
        },
    ],
    "chapters": [
        {"id": 0, "start_time": "0.000000", "end_time": "60.000000", "tags": {"title": "Opening"}},
        {"id": 1, "start_time": "60.000000", "end_time": "123.456000", "tags": {}},
    ],
}


def test_parse_analysis(media_file: Path) -> None:
    """Map streams, skip cover art and detect HDR."""
    analysis = parse_analysis(media_file, json.dumps(PROBE_OUTPUT))
    assert analysis.duration == pytest.approx(123.456)
    assert analysis.size == 2048
    assert analysis.bit_rate == 8_000_000
    assert [v.codec for v in analysis.video_streams] == ["hevc"]
    video = analysis.video_streams[0]
    assert video.frame_rate == pytest.approx(23.976, abs=1e-3)
    assert video.bit_depth == 10
    assert not video.is_interlaced
    assert analysis.is_hdr
    audio = analysis.audio_streams[0]
    assert (audio.channels, audio.sample_rate, audio.language) == (6, 48000, "eng")
    subtitle = analysis.subtitle_streams[0]
    assert subtitle.is_forced
    assert subtitle.is_hearing_impaired
    assert subtitle.is_image_based
    assert [c.title for c in analysis.chapters] == ["Opening", "Chapter 2"]


def test_parse_analysis_size_falls_back_to_file(media_file: Path) -> None:
    """Use the file size when the format section lacks one."""
    analysis = parse_analysis(media_file, json.dumps({"format": {"duration": "1"}, "streams": []}))
    assert analysis.size == media_file.stat().st_size
    assert not analysis.has_media


@pytest.mark.parametrize("text", ["not json", "[]", '{"streams": []}'])
def test_parse_analysis_malformed(media_file: Path, text: str) -> None:
    """Reject output without a format section."""
    with pytest.raises(MalformedOutputError):
        parse_analysis(media_file, text)


def test_parse_chapters() -> None:
    """Read chapters on their own."""
    chapters = parse_chapters(json.dumps({"chapters": PROBE_OUTPUT["chapters"]}))
    assert [(c.id, c.start, c.end) for c in chapters] == [(0, 0.0, 60.0), (1, 60.0, 123.456)]
    assert parse_chapters("{}") == ()
    with pytest.raises(MalformedOutputError):
        parse_chapters("oops")


def test_analyze_missing_file(ctx: RuntimeContext, tmp_path: Path) -> None:
    """Missing inputs raise FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        MediaAnalyzer(ctx).analyze(tmp_path / "missing.mkv")


def test_analyze_retries_then_caches(
    ctx: RuntimeContext, throttle: ProbeThrottle, media_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Retry failed probes and reuse the cached analysis afterwards."""
    calls = {"count": 0}

    def flaky_ffprobe(args: list[str], **_kwargs: object) -> str:
        calls["count"] += 1
        if calls["count"] == 1:
            raise subprocess.CalledProcessError(1, ["ffprobe", *args])
        return json.dumps(PROBE_OUTPUT)

    monkeypatch.setattr(analyzer, "run_ffprobe", flaky_ffprobe)
    first = MediaAnalyzer(ctx, throttle).analyze(media_file)
    second = MediaAnalyzer(ctx, throttle).analyze(media_file)
    assert calls["count"] == 2
    assert first == second
    assert throttle.active == 0


def test_analyze_timeout(
    ctx: RuntimeContext, throttle: ProbeThrottle, media_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Raise AnalysisTimeoutError once every attempt timed out."""
    calls = {"count": 0}

    def slow_ffprobe(args: list[str], **_kwargs: object) -> Never:
        calls["count"] += 1
        raise subprocess.TimeoutExpired(["ffprobe", *args], 30)

    monkeypatch.setattr(analyzer, "run_ffprobe", slow_ffprobe)
    with pytest.raises(AnalysisTimeoutError):
        MediaAnalyzer(ctx, throttle).analyze(media_file)
    assert calls["count"] == ctx.settings.probe_retries


def test_get_duration_and_validity(
    ctx: RuntimeContext, throttle: ProbeThrottle, media_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Narrow probes return one fact each."""
    outputs = {"format=duration": "42.5\n", "format=format_name": "matroska,webm\n"}

    def fake_ffprobe(args: list[str], **_kwargs: object) -> str:
        return next(out for key, out in outputs.items() if key in args)

    monkeypatch.setattr(analyzer, "run_ffprobe", fake_ffprobe)
    media = MediaAnalyzer(ctx, throttle)
    assert media.get_duration(media_file) == 42.5
    assert media.is_valid_media_file(media_file)
    assert not media.is_valid_media_file(media_file.with_name("missing.mkv"))


def test_invalid_media_file(
    ctx: RuntimeContext, throttle: ProbeThrottle, media_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Probe failures mean the file is not valid media."""

    def failing_ffprobe(args: list[str], **_kwargs: object) -> Never:
        raise subprocess.CalledProcessError(1, ["ffprobe", *args])

    monkeypatch.setattr(analyzer, "run_ffprobe", failing_ffprobe)
    assert not MediaAnalyzer(ctx, throttle).is_valid_media_file(media_file)
    with pytest.raises(AnalysisError):
        MediaAnalyzer(ctx, throttle).get_duration(media_file)


@pytest.mark.parametrize(
    ("output", "expected"),
    [
        (
            "codec_name=hevc\nprofile=Main 10\npix_fmt=yuv420p10le\nlevel=150\nr_frame_rate=24000/1001\n",
            probe.VideoCodecInfo("hevc", "Main 10", 150, "yuv420p10le", 24000 / 1001),
        ),
        (
            "codec_name=vp9\nprofile=unknown\npix_fmt=yuv420p\nlevel=-99\nr_frame_rate=25/1\n",
            probe.VideoCodecInfo("vp9", None, None, "yuv420p", 25.0),
        ),
        ("", probe.VideoCodecInfo()),
    ],
)
def test_video_codec_info(
    ctx: RuntimeContext,
    throttle: ProbeThrottle,
    media_file: Path,
    monkeypatch: pytest.MonkeyPatch,
    output: str,
    expected: probe.VideoCodecInfo,
) -> None:
    """Keyed ffprobe output maps onto codec facts with unknowns left empty."""
    monkeypatch.setattr(probe, "run_ffprobe", lambda args, **_kwargs: output)
    assert probe.get_video_codec_info(ctx, media_file, throttle=throttle) == expected
