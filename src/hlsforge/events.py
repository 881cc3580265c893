"""Publish encoding and task events to an external notifier."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Self

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from hlsforge.models.results import EncodingProgress, ProgressId

ENCODE_STARTED = "encode.started"
ENCODE_PROGRESS = "encode.progress"
ENCODE_FINISHED = "encode.finished"
TASK_STARTED = "task.started"
TASK_COMPLETED = "task.completed"
TASK_SKIPPED = "task.skipped"

QUEUE_POLL_S = 0.5

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """A named notification correlated with a job or task id."""

    name: str
    progress_id: ProgressId | None = None
    payload: dict[str, Any] = field(default_factory=dict)


def progress_event(progress: EncodingProgress) -> Event:
    """Wrap a progress sample."""
    return Event(ENCODE_PROGRESS, progress.progress_id, asdict(progress))


class EventPublisher(Protocol):
    """Anything that accepts events for delivery."""

    def publish(self, event: Event) -> None:
        """Hand ``event`` off for delivery."""
        ...


class LoggingPublisher:
    """Write events to the log."""

    def publish(self, event: Event) -> None:
        """Log progress at DEBUG and everything else at INFO."""
        level = logging.DEBUG if event.name == ENCODE_PROGRESS else logging.INFO
        logger.log(level, "%s [%s] %s", event.name, event.progress_id, event.payload)


_STOP = object()


class QueuedPublisher:
    """Deliver events to ``sink`` from a dedicated notifier thread.

    ``publish`` never blocks on delivery. Sink failures are logged with a
    traceback and do not stop the notifier. ``flush`` waits until every
    queued event has been handed to the sink.
    """

    def __init__(self, sink: Callable[[Event], None], *, maxsize: int = 0) -> None:
        self.sink = sink
        self.failures = 0
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self._thread = threading.Thread(target=self._run, name="event-notifier", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while True:
            try:
                item = self._queue.get(timeout=QUEUE_POLL_S)
            except queue.Empty:
                continue
            try:
                if item is _STOP:
                    return
                self.sink(item)  # type: ignore[arg-type]
            except Exception:
                self.failures += 1
                logger.exception("Event delivery failed")
            finally:
                self._queue.task_done()

    def publish(self, event: Event) -> None:
        """Queue ``event`` for the notifier thread."""
        if not self._thread.is_alive():
            raise RuntimeError("Publisher is closed")
        self._queue.put(event)

    def flush(self) -> None:
        """Block until all queued events were delivered or failed."""
        self._queue.join()

    def close(self) -> None:
        """Deliver what is queued, then stop the notifier."""
        if self._thread.is_alive():
            self._queue.put(_STOP)
            self._thread.join()

    def __enter__(self) -> Self:
        """Return ``self`` when entering a context."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Stop the notifier when exiting a context."""
        self.close()


__all__ = [
    "ENCODE_FINISHED",
    "ENCODE_PROGRESS",
    "ENCODE_STARTED",
    "TASK_COMPLETED",
    "TASK_SKIPPED",
    "TASK_STARTED",
    "Event",
    "EventPublisher",
    "LoggingPublisher",
    "QueuedPublisher",
    "progress_event",
]
