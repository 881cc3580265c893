"""Platform strategies for pausing, resuming and killing encoder processes."""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import sys
from typing import TYPE_CHECKING, Protocol

from hlsforge.models.results import ControlResult

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class ProcessController(Protocol):
    """Job-control operations on a spawned process tree."""

    def popen_kwargs(self) -> Mapping[str, object]:
        """Extra ``Popen`` arguments so the tree can be addressed as a group."""
        ...

    def pause(self, pid: int) -> ControlResult:
        """Suspend the process tree rooted at ``pid``."""
        ...

    def resume(self, pid: int) -> ControlResult:
        """Continue a suspended process tree."""
        ...

    def kill(self, pid: int) -> ControlResult:
        """Terminate the whole process tree immediately."""
        ...


def _signal_group(pid: int, signum: int) -> ControlResult:
    try:
        os.killpg(pid, signum)
    except ProcessLookupError:
        return ControlResult.NOT_FOUND
    except OSError as e:
        logger.warning("Signal %s to process group %d failed: %s", signum, pid, e)
        return ControlResult.FAILED
    return ControlResult.OK


class PosixSignalController:
    """Job control through process-group signals."""

    def popen_kwargs(self) -> Mapping[str, object]:
        """Start each process in its own session so its group id equals its pid."""
        return {"start_new_session": True}

    def pause(self, pid: int) -> ControlResult:
        """Send ``SIGSTOP`` to the group."""
        return _signal_group(pid, signal.SIGSTOP)

    def resume(self, pid: int) -> ControlResult:
        """Send ``SIGCONT`` to the group."""
        return _signal_group(pid, signal.SIGCONT)

    def kill(self, pid: int) -> ControlResult:
        """Send ``SIGKILL`` to the group."""
        return _signal_group(pid, signal.SIGKILL)


class WindowsController:
    """Tree kill through ``taskkill``; suspension is not available."""

    def popen_kwargs(self) -> Mapping[str, object]:
        """Hide the console window of spawned tools."""
        return {"creationflags": getattr(subprocess, "CREATE_NO_WINDOW", 0)}

    def pause(self, pid: int) -> ControlResult:
        """Report that suspension is unsupported."""
        logger.warning("Pausing process %d is not supported on Windows", pid)
        return ControlResult.UNSUPPORTED

    def resume(self, pid: int) -> ControlResult:
        """Report that resumption is unsupported."""
        logger.warning("Resuming process %d is not supported on Windows", pid)
        return ControlResult.UNSUPPORTED

    def kill(self, pid: int) -> ControlResult:
        """Kill the tree with ``taskkill /T /F``."""
        cmd = shutil.which("taskkill")
        if cmd is None:  # pragma: no cover - system-dependent
            return ControlResult.FAILED
        proc = subprocess.run(  # noqa: S603
            [cmd, "/PID", str(pid), "/T", "/F"],
            capture_output=True,
            text=True,
            check=False,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
        return ControlResult.OK if proc.returncode == 0 else ControlResult.NOT_FOUND


def controller_for_platform(platform: str | None = None) -> ProcessController:
    """Return the job-control strategy for ``platform``."""
    if (platform or sys.platform).startswith("win"):
        return WindowsController()
    return PosixSignalController()


__all__ = ["PosixSignalController", "ProcessController", "WindowsController", "controller_for_platform"]
