"""Error types raised by the process engine.

All of these are fatal from the engine's point of view; the engine never
retries. ``CommandFailedError`` is the only one a caller can avoid, by
asking for failure to be returned as a status instead.
"""
from __future__ import annotations

from collections.abc import Sequence

from cmdgraph.errors import CmdgraphError


def _render(argv: Sequence[str]) -> str:
    return " ".join(argv)


class ProcessError(CmdgraphError, RuntimeError):
    """Base class for failures while running a child process.

    Parameters
    ----------
    argv:
        The full argument vector that was being run.
    """

    def __init__(self, message: str, argv: Sequence[str]) -> None:
        self.argv = list(argv)
        super().__init__(message)


class ProcessStartError(ProcessError):
    """Raised when the child could not be forked or could not exec."""

    def __init__(self, argv: Sequence[str], reason: str) -> None:
        self.reason = reason
        super().__init__(f"Failed to start {_render(argv)}: {reason}", argv)


class AbnormalTerminationError(ProcessError):
    """Raised when the child was killed by a signal or dumped core.

    Parameters
    ----------
    signal:
        Number of the terminating signal, if any.
    core_dumped:
        ``True`` if the child dumped core.
    """

    def __init__(self, argv: Sequence[str], signal: int = 0, core_dumped: bool = False) -> None:
        self.signal = signal
        self.core_dumped = core_dumped
        if core_dumped:
            message = f"Command dumped core: {_render(argv)}"
        else:
            message = f"Command killed with signal {signal}: {_render(argv)}"
        super().__init__(message, argv)


class CommandFailedError(ProcessError):
    """Raised for a non-zero exit when failure is not returned as a status.

    The captured output (if any) is attached so callers can report it.
    """

    def __init__(
        self,
        argv: Sequence[str],
        status: int,
        stdout: str | list[str] | None = None,
        stderr: str | list[str] | None = None,
    ) -> None:
        self.status = status
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"Command {_render(argv)} failed with status {status}", argv)
