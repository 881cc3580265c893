"""FFmpeg command synthesis."""

from .command_builder import build_commands, separate_commands
from .mux import output_path

__all__ = ["build_commands", "output_path", "separate_commands"]
