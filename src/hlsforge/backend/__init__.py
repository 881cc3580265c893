"""Command building, process execution and the encoding façade."""

from .builder import build_commands, separate_commands
from .control import ProcessController, controller_for_platform
from .executor import ProcessExecutor
from .progress import ProgressParser
from .service import EncodingService

__all__ = [
    "EncodingService",
    "ProcessController",
    "ProcessExecutor",
    "ProgressParser",
    "build_commands",
    "controller_for_platform",
    "separate_commands",
]
