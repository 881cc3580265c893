"""Hardware accelerator records."""

from __future__ import annotations

from dataclasses import dataclass

from .types import GpuVendor, HardwareAccel


@dataclass(frozen=True)
class GpuAccelerator:
    """A usable GPU pathway and the FFmpeg arguments that activate it."""

    vendor: GpuVendor
    kind: HardwareAccel
    ffmpeg_args: tuple[str, ...]
    accelerator: str
    filter: str | None = None


__all__ = ["GpuAccelerator"]
