"""Tests for the written-playlist sanity checks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from hlsforge.hls.playlist import media_playlist
from hlsforge.hls.validation import validate_master, validate_media

if TYPE_CHECKING:
    from pathlib import Path

MASTER = """#EXTM3U
#EXT-X-VERSION:6
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="audio_aac",LANGUAGE="eng",URI="audio_eng_aac/audio_eng_aac.m3u8",NAME="English aac"

#EXT-X-STREAM-INF:BANDWIDTH=1000,RESOLUTION=1280x720,AUDIO="audio_aac"
video_1280x720_SDR/video_1280x720_SDR.m3u8
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _package(base: Path) -> Path:
    for name in ("video_1280x720_SDR", "audio_eng_aac"):
        _write(base / name / f"{name}.m3u8", media_playlist([f"{name}_00000.ts", f"{name}_00001.ts"], 10.0, 6))
    return _write(base / "movie.m3u8", MASTER)


def test_generated_media_playlist_is_valid(tmp_path: Path) -> None:
    """Playlists written by the generator pass without findings."""
    report = validate_media(_write(tmp_path / "a.m3u8", media_playlist(["a.ts", "b.ts", "c.ts"], 15.0, 6)))
    assert report.ok
    assert report.warnings == []
    assert report.entries == 3


@pytest.mark.parametrize(
    ("text", "error"),
    [
        ("", "does not start with #EXTM3U"),
        ("#EXT-X-VERSION:3\n#EXTM3U\n", "does not start with #EXTM3U"),
        ("#EXTM3U\n#EXT-X-TARGETDURATION:6\n#EXT-X-ENDLIST\n", "contains no segments"),
    ],
)
def test_media_playlist_errors(tmp_path: Path, text: str, error: str) -> None:
    """Missing header or segments make the playlist unusable."""
    report = validate_media(_write(tmp_path / "a.m3u8", text))
    assert not report.ok
    assert report.errors == [error]


def test_media_playlist_warnings(tmp_path: Path) -> None:
    """Long segments and a missing target duration are only warnings."""
    long = validate_media(_write(tmp_path / "long.m3u8", "#EXTM3U\n#EXT-X-TARGETDURATION:6\n#EXTINF:9.2,\na.ts\n"))
    assert long.ok
    assert long.warnings == ["segment of 9.2s exceeds target duration 6s"]
    untargeted = validate_media(_write(tmp_path / "bare.m3u8", "#EXTM3U\n#EXTINF:6.0,\na.ts\n"))
    assert untargeted.ok
    assert untargeted.warnings == ["missing #EXT-X-TARGETDURATION"]


def test_media_playlist_unreadable(tmp_path: Path) -> None:
    """A missing file is reported instead of raised."""
    report = validate_media(tmp_path / "gone.m3u8")
    assert not report.ok
    assert report.errors[0].startswith("cannot read playlist")


def test_master_playlist_valid(tmp_path: Path) -> None:
    """Every referenced rendition playlist is checked."""
    report = validate_master(_package(tmp_path))
    assert report.ok
    assert report.entries == 1


def test_master_playlist_missing_rendition(tmp_path: Path) -> None:
    """A variant whose playlist is gone is an error."""
    master = _package(tmp_path)
    (tmp_path / "audio_eng_aac" / "audio_eng_aac.m3u8").unlink()
    report = validate_master(master)
    assert report.errors == ["variant playlist not found: audio_eng_aac/audio_eng_aac.m3u8"]


def test_master_playlist_empty_rendition(tmp_path: Path) -> None:
    """Rendition errors are prefixed with the rendition URI."""
    master = _package(tmp_path)
    _write(tmp_path / "video_1280x720_SDR" / "video_1280x720_SDR.m3u8", "#EXTM3U\n#EXT-X-TARGETDURATION:6\n")
    report = validate_master(master)
    assert report.errors == ["video_1280x720_SDR/video_1280x720_SDR.m3u8: contains no segments"]


def test_master_playlist_without_variants(tmp_path: Path) -> None:
    """A master listing nothing is rejected."""
    report = validate_master(_write(tmp_path / "movie.m3u8", "#EXTM3U\n#EXT-X-VERSION:6\n"))
    assert report.errors == ["contains no variants"]


def test_audio_only_master_is_valid(tmp_path: Path) -> None:
    """Audio renditions alone count as variants."""
    _write(tmp_path / "audio_eng_aac" / "audio_eng_aac.m3u8", media_playlist(["a.ts"], 4.0, 6))
    text = '#EXTM3U\n#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="audio_aac",URI="audio_eng_aac/audio_eng_aac.m3u8"\n'
    report = validate_master(_write(tmp_path / "movie.m3u8", text))
    assert report.ok
    assert report.entries == 0


def test_report_logs_findings(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Warnings and errors are logged against the playlist path."""
    report = validate_media(_write(tmp_path / "a.m3u8", "#EXTM3U\n"))
    with caplog.at_level(logging.WARNING, logger="hlsforge.hls.validation"):
        report.log()
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.endswith("missing #EXT-X-TARGETDURATION") for m in messages)
    assert any(m.endswith("contains no segments") for m in messages)


def test_media_playlist_malformed_duration(tmp_path: Path) -> None:
    """Unparseable durations are errors rather than exceptions."""
    report = validate_media(_write(tmp_path / "a.m3u8", "#EXTM3U\n#EXT-X-TARGETDURATION:6\n#EXTINF:abc,\na.ts\n"))
    assert report.errors == ["malformed duration 'abc'"]
