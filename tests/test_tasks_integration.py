"""Probe tasks against synthetic media generated with ffmpeg."""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING

import pytest

from hlsforge.models import ProcessExecutionError
from hlsforge.tasks import CropDetectTask, DurationTask, ExtractChaptersTask, FingerprintTask
from hlsforge.tools.analyzer import MediaAnalyzer

from .conftest import TONE_DURATION_SEC

if TYPE_CHECKING:
    from pathlib import Path

    from hlsforge.models import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle

pytestmark = pytest.mark.integration


def _has_chromaprint() -> bool:
    try:
        out = subprocess.run(
            ["ffmpeg", "-hide_banner", "-muxers"],  # noqa: S607
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return False
    return "chromaprint" in out.stdout


def test_duration(ctx: RuntimeContext, throttle: ProbeThrottle, tone_file: Path) -> None:
    """Report the tone length."""
    assert DurationTask(ctx, tone_file, throttle=throttle).run(timeout=30) == pytest.approx(TONE_DURATION_SEC, abs=0.2)


def test_crop_detect(ctx: RuntimeContext, throttle: ProbeThrottle, letterboxed_video: Path) -> None:
    """Find the picture inside the black padding."""
    assert CropDetectTask(ctx, letterboxed_video, throttle=throttle).run(timeout=120) == "992:592:104:64"


def test_fingerprint(ctx: RuntimeContext, throttle: ProbeThrottle, tone_file: Path) -> None:
    """Produce a compressed chromaprint fingerprint."""
    if not _has_chromaprint():
        pytest.skip("ffmpeg built without chromaprint")
    assert FingerprintTask(ctx, tone_file, throttle=throttle).run(timeout=60).startswith("AQAA")


def test_fingerprint_without_audio(ctx: RuntimeContext, throttle: ProbeThrottle, letterboxed_video: Path) -> None:
    """A file without audio fails the fingerprint run."""
    if not _has_chromaprint():
        pytest.skip("ffmpeg built without chromaprint")
    with pytest.raises(ProcessExecutionError):
        FingerprintTask(ctx, letterboxed_video, throttle=throttle).run(timeout=60)


def test_extract_chapters(ctx: RuntimeContext, throttle: ProbeThrottle, chapters_file: Path, tmp_path: Path) -> None:
    """Write both chapters to WebVTT."""
    out = ExtractChaptersTask(ctx, chapters_file, tmp_path / "out", throttle=throttle).run(timeout=30)
    assert out is not None
    text = out.read_text(encoding="utf-8")
    assert "Chapter 1\n00:00:00.000 --> 00:00:02.000\nIntro" in text
    assert "Chapter 2\n00:00:02.000 --> 00:00:05.000\nMain" in text


def test_analyze(ctx: RuntimeContext, throttle: ProbeThrottle, letterboxed_video: Path) -> None:
    """Analyze a real file end to end."""
    analysis = MediaAnalyzer(ctx, throttle).analyze(letterboxed_video)
    video = analysis.primary_video
    assert video is not None
    assert (video.width, video.height) == (1280, 720)
    assert video.codec == "h264"
    assert not analysis.is_hdr
    assert analysis.audio_streams == ()
