"""Tests for event publishing."""

from __future__ import annotations

import logging

import pytest

from hlsforge.events import (
    ENCODE_PROGRESS,
    ENCODE_STARTED,
    Event,
    LoggingPublisher,
    QueuedPublisher,
    progress_event,
)
from hlsforge.models import EncodingProgress


def test_queued_publisher_delivers_in_order() -> None:
    """Events reach the sink in publish order."""
    received: list[Event] = []
    with QueuedPublisher(received.append) as publisher:
        for i in range(20):
            publisher.publish(Event(ENCODE_STARTED, i))
        publisher.flush()
        assert [e.progress_id for e in received] == list(range(20))


def test_sink_failures_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    """A failing sink is counted and logged without stopping delivery."""
    received: list[Event] = []

    def flaky(event: Event) -> None:
        if event.progress_id == 1:
            raise ConnectionError("notifier down")
        received.append(event)

    with caplog.at_level(logging.ERROR, logger="hlsforge.events"), QueuedPublisher(flaky) as publisher:
        for i in range(3):
            publisher.publish(Event(ENCODE_STARTED, i))
        publisher.flush()
    assert publisher.failures == 1
    assert [e.progress_id for e in received] == [0, 2]
    assert "Event delivery failed" in caplog.text


def test_publish_after_close() -> None:
    """A closed publisher rejects new events."""
    publisher = QueuedPublisher(lambda _e: None)
    publisher.close()
    publisher.close()
    with pytest.raises(RuntimeError, match="closed"):
        publisher.publish(Event(ENCODE_STARTED))


def test_close_drains_queue() -> None:
    """Closing delivers everything queued first."""
    received: list[Event] = []
    publisher = QueuedPublisher(received.append)
    for i in range(5):
        publisher.publish(Event(ENCODE_STARTED, i))
    publisher.close()
    assert len(received) == 5


def test_progress_event() -> None:
    """Progress samples become progress events keyed by their id."""
    event = progress_event(EncodingProgress(percentage=50.0, elapsed=5.0, remaining=5.0, progress_id="job"))
    assert event.name == ENCODE_PROGRESS
    assert event.progress_id == "job"
    assert event.payload["percentage"] == 50.0


def test_logging_publisher(caplog: pytest.LogCaptureFixture) -> None:
    """Progress logs at DEBUG and other events at INFO."""
    with caplog.at_level(logging.DEBUG, logger="hlsforge.events"):
        LoggingPublisher().publish(Event(ENCODE_STARTED, 3, {"input": "a.mkv"}))
        LoggingPublisher().publish(progress_event(EncodingProgress(percentage=1.0, elapsed=1.0, remaining=9.0)))
    levels = [(r.levelno, r.getMessage().split(" ")[0]) for r in caplog.records]
    assert levels == [(logging.INFO, ENCODE_STARTED), (logging.DEBUG, ENCODE_PROGRESS)]
