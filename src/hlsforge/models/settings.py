"""Process-wide settings for timeouts, limits and output layout."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_PROBE_PERMITS = 2
MAX_PROBE_PERMITS = 16
ENV_PREFIX = "HLSFORGE_"
TESSDATA_URL = "https://github.com/tesseract-ocr/tessdata_fast/raw/main/{lang}.traineddata"


def default_probe_permits() -> int:
    """Core count clamped to a sane range of concurrent probes."""
    return max(MIN_PROBE_PERMITS, min(os.cpu_count() or MIN_PROBE_PERMITS, MAX_PROBE_PERMITS))


def _default_tessdata_dir() -> Path:
    return Path(tempfile.gettempdir()) / "hlsforge-tessdata"


class Settings(BaseModel):
    """Tunable behavior shared by analyzers, builders and executors."""

    probe_timeout_s: float = Field(default=30.0, gt=0)
    probe_retries: int = Field(default=3, ge=1)
    probe_backoff_ms: int = Field(default=100, ge=0)
    probe_permits: int = Field(default_factory=default_probe_permits, ge=1)
    playlist_probe_concurrency: int = Field(default=3, ge=1)
    segment_duration: int = Field(default=6, gt=0)
    audio_bandwidth_overhead: int = Field(default=128_000, ge=0)
    priority_languages: list[str] = Field(default_factory=lambda: ["eng", "jpn"])
    threads: int = Field(default_factory=lambda: os.cpu_count() or 1, ge=1)
    tessdata_dir: Path = Field(default_factory=_default_tessdata_dir)
    tessdata_url: str = TESSDATA_URL

    model_config = ConfigDict(extra="forbid")

    @field_validator("priority_languages", mode="before")
    @classmethod
    def _split_languages(cls, v: object) -> object:
        """Accept a comma separated string as well as a list."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from ``HLSFORGE_*`` environment variables."""
        env = os.environ if environ is None else environ
        values = {
            name: env[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in env
        }
        return cls.model_validate(values)


__all__ = ["MAX_PROBE_PERMITS", "MIN_PROBE_PERMITS", "Settings", "default_probe_permits"]
