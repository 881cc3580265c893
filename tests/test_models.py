"""Tests for profile, settings and stream models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from hlsforge.models import (
    AudioCodec,
    AudioProfile,
    EncoderProfile,
    EncodingResult,
    ExecutionResult,
    Settings,
    StreamAnalysis,
    SubtitleProfile,
    UnsupportedCodecError,
    VideoCodec,
    VideoProfile,
)
from hlsforge.models.analysis import AudioStreamInfo, SubtitleStreamInfo, VideoStreamInfo
from hlsforge.models.results import tail


@pytest.mark.parametrize(
    ("profile", "expected"),
    [
        (VideoProfile(), (1920, 1080)),
        (VideoProfile(height=720), (1280, 720)),
        (VideoProfile(width=853), (852, 480)),
        (VideoProfile(width=641, height=361), (640, 360)),
        (VideoProfile(crop="1920:800:0:140"), (1920, 800)),
        (VideoProfile(crop="1920:800:0:140", width=1280), (1280, 532)),
    ],
)
def test_target_size(profile: VideoProfile, expected: tuple[int, int]) -> None:
    """Keep aspect ratio, honor crops and round down to even sizes."""
    assert profile.target_size(1920, 1080) == expected


def test_crop_must_be_rectangle() -> None:
    """Reject crop strings that are not W:H:X:Y."""
    with pytest.raises(ValidationError):
        VideoProfile(crop="1920x800")


def test_profile_requires_streams() -> None:
    """A profile without renditions is invalid."""
    with pytest.raises(ValidationError, match="defines no video or audio"):
        EncoderProfile(name="empty")


@pytest.mark.parametrize("name", ["", "x" * 101])
def test_profile_name_length(name: str) -> None:
    """Profile names are required and at most 100 characters."""
    with pytest.raises(ValidationError, match="name"):
        EncoderProfile(name=name, audio_profiles=[AudioProfile()])


def test_rendition_limits() -> None:
    """Frame rates above 120 and more than eight channels are rejected."""
    with pytest.raises(ValidationError, match="frame_rate"):
        VideoProfile(frame_rate=144)
    with pytest.raises(ValidationError, match="channels"):
        AudioProfile(channels=12)
    assert VideoProfile(frame_rate=120).frame_rate == 120
    assert AudioProfile(channels=8).channels == 8


@pytest.mark.parametrize(("codec", "expected"), [("webvtt", "webvtt"), ("SRT", "srt"), ("mov_text", "mov_text")])
def test_subtitle_codec_accepted(codec: str, expected: str) -> None:
    """Text subtitle codecs are normalised to lower case."""
    assert SubtitleProfile(codec=codec).codec == expected


def test_subtitle_codec_rejected() -> None:
    """Image subtitle codecs cannot be encoded."""
    with pytest.raises(ValidationError, match="unsupported subtitle codec"):
        SubtitleProfile(codec="hdmv_pgs_subtitle")


def test_profile_from_file(tmp_path: Path) -> None:
    """Load a profile from JSON."""
    path = tmp_path / "profile.json"
    path.write_text(
        '{"name": "web", "video_profiles": [{"codec": "h264", "height": 720, "bitrate": 3000}],'
        ' "audio_profiles": [{"codec": "aac", "bitrate": 128}]}',
        encoding="utf-8",
    )
    profile = EncoderProfile.from_file(path)
    assert profile.name == "web"
    assert profile.video_profiles[0].bitrate == 3000
    assert profile.audio_profiles[0].channels == 2


def test_settings_from_env() -> None:
    """Read HLSFORGE_* variables and split language lists."""
    settings = Settings.from_env(
        {
            "HLSFORGE_PROBE_TIMEOUT_S": "5",
            "HLSFORGE_PRIORITY_LANGUAGES": "jpn, eng",
            "HLSFORGE_SEGMENT_DURATION": "4",
            "UNRELATED": "1",
        }
    )
    assert settings.probe_timeout_s == 5.0
    assert settings.priority_languages == ["jpn", "eng"]
    assert settings.segment_duration == 4
    assert settings.probe_retries == 3


def test_settings_probe_permits_clamped() -> None:
    """Default permit count stays within bounds."""
    assert 2 <= Settings().probe_permits <= 16


@pytest.mark.parametrize(
    ("stream", "expected"),
    [
        (VideoStreamInfo(index=0, codec="hevc", color_transfer="smpte2084"), True),
        (VideoStreamInfo(index=0, codec="hevc", color_transfer="arib-std-b67"), True),
        (VideoStreamInfo(index=0, codec="hevc", color_space="bt2020nc"), True),
        (VideoStreamInfo(index=0, codec="hevc", pix_fmt="yuv420p10le"), True),
        (VideoStreamInfo(index=0, codec="h264", pix_fmt="yuv420p", color_space="bt709"), False),
    ],
)
def test_hdr_detection(stream: VideoStreamInfo, expected: bool) -> None:
    """Transfer, color space or bit depth mark a stream as HDR."""
    assert stream.is_hdr is expected


def test_primary_streams_prefer_default(media_file: Path) -> None:
    """Default-flagged streams win, otherwise the first is primary."""
    analysis = StreamAnalysis(
        path=media_file,
        duration=1.0,
        size=1,
        format_name="matroska",
        audio_streams=(
            AudioStreamInfo(index=1, codec="aac", language="eng"),
            AudioStreamInfo(index=2, codec="aac", language="jpn", is_default=True),
        ),
        subtitle_streams=(SubtitleStreamInfo(index=3, codec="hdmv_pgs_subtitle"),),
    )
    assert analysis.primary_audio is not None
    assert analysis.primary_audio.language == "jpn"
    assert analysis.primary_video is None
    assert analysis.primary_subtitle is not None
    assert analysis.primary_subtitle.is_image_based
    assert analysis.has_media
    assert not analysis.is_hdr


@pytest.mark.parametrize(
    ("name", "expected"),
    [("libfdk_aac", AudioCodec.AAC), ("eac3", AudioCodec.EAC3), ("libopus", AudioCodec.OPUS), ("flac", AudioCodec.AAC)],
)
def test_audio_codec_from_encoder(name: str, expected: AudioCodec) -> None:
    """Map encoder names to rendition codecs, defaulting to AAC."""
    assert AudioCodec.from_encoder(name) is expected


def test_video_codec_aliases() -> None:
    """Accept common family spellings and reject unknown ones."""
    assert VideoCodec.from_name("H.265") is VideoCodec.HEVC
    assert VideoCodec.from_name("avc") is VideoCodec.H264
    with pytest.raises(UnsupportedCodecError):
        VideoCodec.from_name("mpeg2")


def test_execution_result_error_message() -> None:
    """Failed results carry the exit code and the stderr tail."""
    stderr = "\n".join(f"line {i}" for i in range(30))
    result = ExecutionResult(success=False, exit_code=1, stderr=stderr)
    assert result.error_message is not None
    assert result.error_message.startswith("Process exited with code 1: ")
    assert "line 9\n" not in result.error_message
    assert result.stderr_tail == tail(stderr)
    assert len(result.stderr_tail.splitlines()) == 20
    assert ExecutionResult(success=False, exit_code=-1, cancelled=True).error_message is None


def test_encoding_result_failure() -> None:
    """Failure results default to exit code -1."""
    result = EncodingResult.failure("boom")
    assert not result.success
    assert result.exit_code == -1
    assert result.error_message == "boom"
