"""Run options and results for the process engine.

``RunOptions`` says how one child process should be wired up and what
the caller wants back; ``RunResult`` carries what came back. Because
the set of things returned depends on the options (status only when
failure is returned as data, each stream only when captured),
iterating a ``RunResult`` yields exactly the requested parts::

    status, lines = engine.run(argv, return_failure_as_status=True, leave_stderr=True)
"""
from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from cmdgraph.errors import UsageError

Output = str | list[str] | None


@dataclass(frozen=True)
class RunOptions:
    """How to run one child process.

    Parameters
    ----------
    return_failure_as_status:
        Return the exit code instead of raising ``CommandFailedError``
        on a non-zero exit.
    leave_stdout:
        Leave the child's stdout attached to ours instead of capturing it.
    split_stdout:
        Return captured stdout as a list of lines rather than one string.
    trim_stdout:
        Strip the line terminator from each split stdout line.
    leave_stderr, split_stderr, trim_stderr:
        The same three switches for stderr.
    pseudo_terminal:
        Run the child with a pseudo-terminal as its controlling terminal
        and standard streams. Everything the child writes is returned as
        stdout, so stdout must be captured and stderr left attached.
    environment:
        Variables to set in the child; a value of ``None`` unsets the
        variable.
    verbose:
        Echo the command line and exit status. ``None`` defers to the
        engine's ``EngineConfig``.
    debug:
        Like ``verbose``, plus live echo of captured output.
    """

    return_failure_as_status: bool = False
    leave_stdout: bool = False
    split_stdout: bool = True
    trim_stdout: bool = True
    leave_stderr: bool = False
    split_stderr: bool = True
    trim_stderr: bool = True
    pseudo_terminal: bool = False
    environment: Mapping[str, str | None] = field(default_factory=dict)
    verbose: bool | None = None
    debug: bool | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))

    @classmethod
    def field_names(cls) -> frozenset[str]:
        """Return the names accepted by :meth:`merged`."""
        return frozenset(f.name for f in dataclasses.fields(cls))

    def merged(self, overrides: Mapping[str, Any]) -> RunOptions:
        """Return a copy with ``overrides`` applied.

        ``environment`` overrides are merged into the existing mapping
        rather than replacing it.

        Raises
        ------
        UsageError
            If ``overrides`` names an option that does not exist.
        """
        unknown = sorted(set(overrides) - self.field_names())
        if unknown:
            raise UsageError(f"Unknown run option(s): {', '.join(unknown)}")
        changes = dict(overrides)
        if "environment" in changes:
            changes["environment"] = {**self.environment, **changes["environment"]}
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        """Reject combinations the engine cannot honour."""
        if self.pseudo_terminal and self.leave_stdout:
            raise UsageError("A pseudo-terminal requires stdout to be captured")
        if self.pseudo_terminal and not self.leave_stderr:
            raise UsageError(
                "A pseudo-terminal merges stderr into stdout; leave_stderr must be set"
            )


@dataclass
class RunResult:
    """Outcome of one child process run.

    ``status`` is the child's exit code (a run that raised never
    produces a result); ``stdout``/``stderr`` are ``None`` when the
    stream was left attached.
    """

    argv: list[str]
    options: RunOptions
    status: int = 0
    stdout: Output = None
    stderr: Output = None

    @property
    def succeeded(self) -> bool:
        """Return True if the child exited with status 0."""
        return self.status == 0

    def parts(self) -> tuple[Any, ...]:
        """Return only the pieces the options asked for, in order."""
        parts: list[Any] = []
        if self.options.return_failure_as_status:
            parts.append(self.status)
        if not self.options.leave_stdout:
            parts.append(self.stdout)
        if not self.options.leave_stderr:
            parts.append(self.stderr)
        return tuple(parts)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.parts())
