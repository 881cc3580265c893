"""Tests for the probe permit pool."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from hlsforge.models import PermitTimeoutError
from hlsforge.tools.throttle import ProbeThrottle, default_throttle


def test_peak_never_exceeds_limit() -> None:
    """At most ``limit`` permits are held at once."""
    throttle = ProbeThrottle(3)

    def hold() -> None:
        with throttle.permit(timeout=5):
            time.sleep(0.01)

    with ThreadPoolExecutor(max_workers=12) as pool:
        list(pool.map(lambda _: hold(), range(48)))
    assert 1 <= throttle.peak <= 3
    assert throttle.active == 0


def test_permit_timeout() -> None:
    """Raise when no permit frees up in time."""
    throttle = ProbeThrottle(1)
    release = threading.Event()
    held = threading.Event()

    def holder() -> None:
        with throttle.permit():
            held.set()
            release.wait(5)

    t = threading.Thread(target=holder)
    t.start()
    held.wait(5)
    try:
        with pytest.raises(PermitTimeoutError), throttle.permit(timeout=0.05):
            pass
    finally:
        release.set()
        t.join()
    assert throttle.active == 0


def test_permit_released_on_error() -> None:
    """Exceptions inside the block return the permit."""
    throttle = ProbeThrottle(1)
    with pytest.raises(ValueError), throttle.permit():
        raise ValueError("boom")
    with throttle.permit(timeout=0.05):
        assert throttle.active == 1


def test_default_throttle_is_shared() -> None:
    """The process-wide pool is created once."""
    assert default_throttle() is default_throttle()
