"""Single-purpose probe and extraction tasks."""

from .base import Deadline, ProbeTask
from .chapters import ExtractChaptersTask
from .crop import CropDetectTask
from .duration import DurationTask
from .fingerprint import FingerprintTask
from .fonts import ExtractFontsTask, FontEntry
from .ocr import ConvertSubtitleTask, ensure_language_model
from .sprite import GenerateSpriteTask

__all__ = [
    "ConvertSubtitleTask",
    "CropDetectTask",
    "Deadline",
    "DurationTask",
    "ExtractChaptersTask",
    "ExtractFontsTask",
    "FingerprintTask",
    "FontEntry",
    "GenerateSpriteTask",
    "ProbeTask",
    "ensure_language_model",
]
