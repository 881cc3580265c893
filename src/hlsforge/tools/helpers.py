"""Utility functions for time parsing, formatting and status emission."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Callable
else:
    from collections import abc

    Callable = abc.Callable

from pytimeparse2 import parse as parse_duration

logger = logging.getLogger(__name__)


def parse_timespan(s: str | None) -> float | None:
    """Convert a time string to seconds.

    Args:
        s: Timespan such as ``"90s"``, ``"1m30s"`` or ``"00:01:30"``. ``None``
            or an empty string returns ``None``.

    Returns:
        The parsed duration in seconds.

    Raises:
        ValueError: If ``s`` cannot be parsed.

    """
    if not s:
        return None
    parsed = parse_duration(s)
    if parsed is None:
        raise ValueError(f"Unable to parse timespan: {s}")
    return float(parsed)


def parse_frame_rate(value: str | None) -> float:
    """Parse ``num/den`` or decimal frame rates, returning ``0.0`` if unknown."""
    if not value:
        return 0.0
    num, sep, den = value.partition("/")
    try:
        if not sep:
            return float(num)
        denominator = float(den)
        return float(num) / denominator if denominator else 0.0
    except ValueError:
        return 0.0


def format_time(
    seconds: float,
    *,
    places: int = 3,
    mode: Literal["ceil", "floor", "round"] = "round",
) -> str:
    """Format seconds as ``HH:MM:SS.F`` with configurable precision."""
    q = 10**places
    if mode == "ceil":
        seconds = math.ceil(round(seconds * q, 6)) / q
    elif mode == "floor":
        seconds = math.floor(round(seconds * q, 6)) / q
    else:
        seconds = round(seconds, places)

    h, remainder = divmod(seconds, 3600)
    m, s = divmod(remainder, 60)
    if places == 0:
        return f"{int(h):02d}:{int(m):02d}:{int(s):02d}"
    return f"{int(h):02d}:{int(m):02d}:{s:0{2 + 1 + places}.{places}f}"


def emit_status(message: str, *, status_callback: Callable[[str], None] | None) -> None:
    """Send ``message`` to the CLI, logger, or a custom callback.

    The caller controls where status lines go:

    * ``print`` - used by the CLI for direct terminal updates.
    * ``None`` - route messages through ``logger.info``.
    * Any other ``Callable[[str], None]`` - for event sinks or tests that
      capture status output.
    """
    if status_callback is None:
        logger.info(message)
        return
    if status_callback is print:
        print(  # noqa: T201
            message,
            end="" if "\r" in message and "\n" not in message else "\n",
            flush=True,
        )
        return
    status_callback(message)


def format_action_label(*, dry_run: bool, cached: bool = False) -> str:
    """Return a short action label for command banners."""
    if cached:
        return "Cached"
    if dry_run:
        return "Command"
    return "Running"


__all__ = [
    "emit_status",
    "format_action_label",
    "format_time",
    "parse_frame_rate",
    "parse_timespan",
]
