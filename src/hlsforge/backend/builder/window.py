"""Input time-window arguments for preview encodes."""

from hlsforge.models.plan import EncodePlan
from hlsforge.tools.helpers import format_time

from .command_args import DURATION, SEEK


def build(plan: EncodePlan) -> tuple[str, ...]:
    """Return ``-ss``/``-t`` args placed before the input, or nothing.

    Times keep millisecond precision. The start rounds down and the length
    rounds up so the requested window is always covered.
    """
    args: tuple[str, ...] = ()
    if plan.start is not None:
        args = args + SEEK + (format_time(plan.start, mode="floor"),)
    if plan.duration is not None:
        args = args + DURATION + (format_time(plan.duration, mode="ceil"),)
    return args


__all__ = ["build"]
