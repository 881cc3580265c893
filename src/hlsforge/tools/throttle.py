"""Counting permit pool bounding concurrent probe invocations."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

from hlsforge.models.errors import PermitTimeoutError
from hlsforge.models.settings import default_probe_permits

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


class ProbeThrottle:
    """Bounded semaphore with usage bookkeeping.

    Permits are always returned when the ``permit()`` block exits, whether
    it completes, raises or is interrupted by cancellation.
    """

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit or default_probe_permits()
        self._semaphore = threading.BoundedSemaphore(self.limit)
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    @property
    def active(self) -> int:
        """Number of permits currently held."""
        return self._active

    @property
    def peak(self) -> int:
        """Highest number of permits held at once."""
        return self._peak

    @contextmanager
    def permit(self, timeout: float | None = None) -> Iterator[None]:
        """Hold one permit for the duration of the block.

        Raises:
            PermitTimeoutError: If no permit frees up within ``timeout`` seconds.

        """
        if not self._semaphore.acquire(timeout=timeout):
            raise PermitTimeoutError(f"No probe permit available within {timeout}s")
        with self._lock:
            self._active += 1
            self._peak = max(self._peak, self._active)
        try:
            yield
        finally:
            with self._lock:
                self._active -= 1
            self._semaphore.release()


_default: ProbeThrottle | None = None
_default_lock = threading.Lock()


def default_throttle() -> ProbeThrottle:
    """Return the process-wide throttle, creating it on first use."""
    global _default  # noqa: PLW0603
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = ProbeThrottle()
                logger.debug("Probe throttle sized to %d permits", _default.limit)
    return _default


__all__ = ["ProbeThrottle", "default_throttle"]
