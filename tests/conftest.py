"""Shared test fixtures for cmdgraph.

Fixtures defined here are available to all tests in the suite without
needing an explicit import. ``ScriptedTool`` stands in for an external
tool: it records every argument vector it is asked to run and answers
from a script instead of spawning a process.
"""
from __future__ import annotations

import io
import sys
from collections.abc import Callable, Iterable
from typing import Any

import pytest

from cmdgraph.command.tool import Tool
from cmdgraph.process.engine import split_lines
from cmdgraph.process.errors import CommandFailedError
from cmdgraph.process.options import RunOptions, RunResult

Handler = Callable[[list[str]], tuple[int, str]]


def render_records(records: Iterable[dict[str, str]]) -> str:
    """Render records the way a listing subcommand prints them."""
    blocks = ["".join(f"{label}: {value}\n" for label, value in record.items()) for record in records]
    return "\n".join(blocks)


class ScriptedTool(Tool):
    """A ``Tool`` that answers from a script instead of running anything.

    Responses queued with :meth:`respond` are used first, in order;
    after that ``handler`` is called with the subcommand argv.
    """

    def __init__(self, path: str = "/opt/tool/bin/tool") -> None:
        super().__init__(path)
        self.calls: list[list[str]] = []
        self.queued: list[tuple[int, str]] = []
        self.handler: Handler = lambda argv: (0, "")

    def respond(self, status: int = 0, stdout: str = "") -> None:
        self.queued.append((status, stdout))

    def run(self, argv: Iterable[str], options: RunOptions | None = None, **overrides: Any) -> RunResult:
        opts = options if options is not None else RunOptions()
        if overrides:
            opts = opts.merged(overrides)
        opts.validate()
        command = list(argv)
        self.calls.append(command)
        status, text = self.queued.pop(0) if self.queued else self.handler(command)

        stdout: Any = None
        if not opts.leave_stdout:
            stdout = split_lines(text, opts.trim_stdout) if opts.split_stdout else text
        stderr: Any = None
        if not opts.leave_stderr:
            stderr = [] if opts.split_stderr else ""

        full = [self.path, *command]
        if status != 0 and not opts.return_failure_as_status:
            raise CommandFailedError(full, status, stdout, stderr)
        return RunResult(argv=full, options=opts, status=status, stdout=stdout, stderr=stderr)


@pytest.fixture()
def tool() -> ScriptedTool:
    """Return a fresh scripted tool with no queued responses."""
    return ScriptedTool()


@pytest.fixture()
def render() -> Callable[[Iterable[dict[str, str]]], str]:
    """Return the helper that renders records as listing output."""
    return render_records


@pytest.fixture()
def python() -> str:
    """Return the interpreter used as a real child process in engine tests."""
    return sys.executable


@pytest.fixture()
def echo() -> io.StringIO:
    """Return a buffer to collect verbose/debug echo."""
    return io.StringIO()


@pytest.fixture()
def package_name() -> str:
    """Return the importable package name for assertions."""
    return "cmdgraph"


@pytest.fixture()
def expected_version() -> str:
    """Return the current expected version string.

    Update this fixture when cutting a release so that the version
    test immediately catches stale ``__version__`` values.
    """
    return "0.1.0"
