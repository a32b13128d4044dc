"""Base exception types shared across cmdgraph.

Subsystem-specific errors live next to the code that raises them
(``cmdgraph.process.errors``, ``cmdgraph.records.parser``,
``cmdgraph.config``) and all derive from ``CmdgraphError`` so callers
can catch everything raised by the library in one place.
"""
from __future__ import annotations


class CmdgraphError(Exception):
    """Root of the cmdgraph exception hierarchy."""


class UsageError(CmdgraphError, ValueError):
    """Raised when the library is called incorrectly.

    Usage errors are programmer mistakes: an undeclared option flag, a
    flag that needs a value but got none, a typed value of the wrong
    kind, or an unknown run-option override. They are always raised
    before any child process is spawned.

    Parameters
    ----------
    message:
        Human-readable description of the mistake.
    command:
        Name of the command being prepared, if any.
    """

    def __init__(self, message: str, command: str | None = None) -> None:
        self.command = command
        if command is not None:
            message = f"{command}: {message}"
        super().__init__(message)
