"""Tests for FFmpeg progress parsing."""

from __future__ import annotations

import pytest

from hlsforge.backend.progress import ProgressParser, elapsed_seconds, parse_duration_line

RECORD = """frame=240
fps=48.00
stream_0_0_q=28.0
bitrate=1024.5kbits/s
total_size=1280000
out_time_us=10000000
out_time_ms=10000000
out_time=00:00:10.000000
dup_frames=0
drop_frames=0
speed=2.00x
progress=continue
"""


def _feed(parser: ProgressParser, text: str) -> list:
    return [s for s in (parser.feed_stdout(line) for line in text.splitlines()) if s is not None]


def test_progress_record() -> None:
    """Emit one sample per completed record."""
    parser = ProgressParser(total_duration=40.0, progress_id="job-1")
    (sample,) = _feed(parser, RECORD)
    assert sample.percentage == pytest.approx(25.0)
    assert sample.elapsed == pytest.approx(10.0)
    assert sample.remaining == pytest.approx(15.0)
    assert sample.fps == 48.0
    assert sample.bitrate == 1024.5
    assert sample.frame == 240
    assert sample.speed == 2.0
    assert sample.progress_id == "job-1"
    assert not sample.finished


def test_progress_end() -> None:
    """The final record reports completion."""
    parser = ProgressParser(total_duration=40.0)
    (sample,) = _feed(parser, RECORD.replace("progress=continue", "progress=end"))
    assert sample.finished
    assert sample.percentage == 100.0
    assert sample.remaining == 0.0


def test_duration_from_stderr() -> None:
    """Pick up the input duration from diagnostics when not given."""
    parser = ProgressParser()
    parser.feed_stderr("  Duration: 00:01:20.00, start: 0.000000, bitrate: 1000 kb/s")
    assert parser.total_duration == 80.0
    (sample,) = _feed(parser, RECORD)
    assert sample.percentage == pytest.approx(12.5)


def test_unknown_duration() -> None:
    """Without a duration percentage and remaining stay at zero."""
    (sample,) = _feed(ProgressParser(), RECORD.replace("speed=2.00x", "speed=N/A"))
    assert sample.percentage == 0.0
    assert sample.remaining == 0.0
    assert sample.speed == 0.0


@pytest.mark.parametrize(
    ("record", "expected"),
    [
        ({"out_time_us": "2500000"}, 2.5),
        ({"out_time_ms": "1500000"}, 1.5),
        ({"out_time": "01:00:01.500000"}, 3601.5),
        ({"out_time_us": "N/A"}, 0.0),
        ({}, 0.0),
    ],
)
def test_elapsed_seconds(record: dict[str, str], expected: float) -> None:
    """Read encoded time from whichever key is present."""
    assert elapsed_seconds(record) == pytest.approx(expected)


def test_parse_duration_line() -> None:
    """Ignore lines without a duration."""
    assert parse_duration_line("Stream #0:0: Video: h264") is None
    assert parse_duration_line("Duration: 01:02:03.50") == pytest.approx(3723.5)
