"""Runtime context shared across hlsforge components."""

from __future__ import annotations

import os
import tempfile
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Self

from diskcache import Cache

from .settings import Settings
from .types import Verbosity

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

_CACHE_DIR = Path(os.getenv("HLSFORGE_CACHE", tempfile.gettempdir())) / "hlsforge-cache"


def _default_cache() -> Cache:
    """Return the on-disk cache for probe results."""
    return Cache(str(_CACHE_DIR))


@dataclass(slots=True)
class RuntimeContext:
    """Settings, status routing and cache for probing and encoding."""

    settings: Settings = field(default_factory=Settings)
    verbosity: Verbosity = Verbosity.QUIET
    dry_run: bool = False
    status_callback: Callable[[str], None] | None = None
    cache: Cache = field(default_factory=_default_cache)

    def close(self) -> None:
        """Close any open resources."""
        self.cache.close()

    def __enter__(self) -> Self:
        """Return ``self`` when entering a context."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close resources when exiting a context."""
        self.close()

    def __del__(self) -> None:  # pragma: no cover - cleanup
        """Ensure cache is closed on garbage collection."""
        with suppress(Exception):
            self.cache.close()


__all__ = ["RuntimeContext"]
