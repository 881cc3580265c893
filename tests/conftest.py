"""Shared pytest fixtures.

Synthetic media is generated with ffmpeg lavfi sources. Tests that need it
are skipped when ffmpeg is not on PATH.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Iterator
from pathlib import Path

import pytest
from diskcache import Cache

from hlsforge.models import RuntimeContext, Settings
from hlsforge.models.analysis import AudioStreamInfo, StreamAnalysis, VideoStreamInfo
from hlsforge.tools.throttle import ProbeThrottle

# Duration in seconds of the synthetic tone.
TONE_DURATION_SEC: float = 5.0
# Duration in seconds of the letterboxed test pattern.
PATTERN_DURATION_SEC: float = 20.0

CHAPTER_METADATA = """;FFMETADATA1
[CHAPTER]
TIMEBASE=1/1000
START=0
END=2000
title=Intro
[CHAPTER]
TIMEBASE=1/1000
START=2000
END=5000
title=Main
"""


def _ffmpeg() -> str:
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg or not shutil.which("ffprobe"):
        pytest.skip("ffmpeg and ffprobe must be available in PATH")
    return ffmpeg


def _generate(out: Path, *args: str) -> Path:
    out.parent.mkdir(parents=True, exist_ok=True)
    subprocess.run([_ffmpeg(), "-v", "error", *args, "-y", str(out)], check=True)  # noqa: S603
    return out


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings without retry backoff and with a private OCR model folder."""
    return Settings(probe_backoff_ms=0, probe_retries=2, tessdata_dir=tmp_path / "tessdata", threads=2)


@pytest.fixture
def ctx(tmp_path: Path, settings: Settings) -> Iterator[RuntimeContext]:
    """Runtime context backed by a throwaway cache."""
    context = RuntimeContext(settings=settings, cache=Cache(str(tmp_path / "cache")))
    yield context
    context.close()


@pytest.fixture
def throttle() -> ProbeThrottle:
    """A private permit pool."""
    return ProbeThrottle(4)


@pytest.fixture
def media_file(tmp_path: Path) -> Path:
    """An empty placeholder standing in for a media file."""
    path = tmp_path / "input.mkv"
    path.write_bytes(b"\0")
    return path


@pytest.fixture
def sample_analysis(media_file: Path) -> StreamAnalysis:
    """A 1080p SDR source with English and Japanese audio."""
    return StreamAnalysis(
        path=media_file,
        duration=60.0,
        size=1_000_000,
        format_name="matroska,webm",
        video_streams=(VideoStreamInfo(index=0, codec="h264", width=1920, height=1080, pix_fmt="yuv420p"),),
        audio_streams=(
            AudioStreamInfo(index=1, codec="aac", channels=2, sample_rate=48000, language="eng", is_default=True),
            AudioStreamInfo(index=2, codec="ac3", channels=6, sample_rate=48000, language="jpn"),
        ),
    )


@pytest.fixture
def letterboxed_video(tmp_path: Path) -> Path:
    """A 992x592 test pattern padded to 1280x720 with black borders."""
    return _generate(
        tmp_path / "data" / "letterboxed.mp4",
        "-f",
        "lavfi",
        "-i",
        f"testsrc=s=992x592:d={PATTERN_DURATION_SEC},pad=1280:720:104:64:black",
        "-c:v",
        "libx264",
        "-pix_fmt",
        "yuv420p",
    )


@pytest.fixture
def tone_file(tmp_path: Path) -> Path:
    """A mono 440 Hz tone at 44.1 kHz."""
    return _generate(
        tmp_path / "data" / "tone.wav",
        "-f",
        "lavfi",
        "-i",
        f"sine=frequency=440:sample_rate=44100:duration={TONE_DURATION_SEC}",
        "-ac",
        "1",
    )


@pytest.fixture
def chapters_file(tmp_path: Path) -> Path:
    """A tone with two chapters, Intro and Main."""
    metadata = tmp_path / "data" / "chapters.txt"
    metadata.parent.mkdir(parents=True, exist_ok=True)
    metadata.write_text(CHAPTER_METADATA, encoding="utf-8")
    return _generate(
        tmp_path / "data" / "chapters.mkv",
        "-f",
        "lavfi",
        "-i",
        f"sine=frequency=440:duration={TONE_DURATION_SEC}",
        "-f",
        "ffmetadata",
        "-i",
        str(metadata),
        "-map",
        "0:a",
        "-map_metadata",
        "1",
        "-map_chapters",
        "1",
        "-c:a",
        "aac",
    )
