"""Container duration probe."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from hlsforge.models.errors import MalformedOutputError
from hlsforge.tools.analyzer import DURATION_ARGS

from .base import Deadline, ProbeTask

if TYPE_CHECKING:
    from hlsforge.models.context import RuntimeContext
    from hlsforge.tools.throttle import ProbeThrottle


def parse_duration(text: str) -> float:
    """Return the first numeric line of ``text``.

    Raises:
        MalformedOutputError: If no number is found.

    """
    for line in text.splitlines():
        value = line.strip()
        if not value or value == "N/A":
            continue
        try:
            return float(value)
        except ValueError:
            continue
    raise MalformedOutputError(f"No duration in probe output: {text!r}")


class DurationTask(ProbeTask[float]):
    """Read ``format=duration`` in seconds."""

    label = "duration probe"

    def __init__(self, ctx: RuntimeContext, path: str | Path, *, throttle: ProbeThrottle | None = None) -> None:
        super().__init__(ctx, throttle=throttle)
        self.path = Path(path)

    def execute(self, deadline: Deadline) -> float:
        if not self.path.is_file():
            raise FileNotFoundError(f"Input file not found: {self.path}")
        proc = self.ffprobe([*DURATION_ARGS, str(self.path)], deadline)
        return parse_duration(proc.stdout)


__all__ = ["DurationTask", "parse_duration"]
