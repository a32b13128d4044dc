"""Binding of one external tool executable to a process engine."""
from __future__ import annotations

import os
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from cmdgraph.config import ConfigError, EngineConfig
from cmdgraph.process.engine import ProcessEngine
from cmdgraph.process.options import RunOptions, RunResult

if TYPE_CHECKING:
    from cmdgraph.command.invoker import Command, InvocationResult
    from cmdgraph.command.spec import InvocationSpec


class Tool:
    """An external command-line tool driven through a ``ProcessEngine``.

    Every argument vector passed to :meth:`run` starts with a subcommand;
    the tool path is prepended before the engine sees it.

    Parameters
    ----------
    path:
        Executable to run, either absolute or looked up on ``PATH``.
    engine:
        Engine used for every invocation. A default engine is created
        when omitted.
    """

    def __init__(self, path: str | os.PathLike[str], engine: ProcessEngine | None = None) -> None:
        self.path = os.fspath(path)
        self.engine = engine if engine is not None else ProcessEngine()

    @classmethod
    def from_config(cls, config: EngineConfig) -> Tool:
        """Build a tool from ``config.tool_path`` with an engine sharing ``config``."""
        if not config.tool_path:
            raise ConfigError("No tool path configured (set tool_path or CMDGRAPH_TOOL)")
        return cls(config.tool_path, ProcessEngine(config))

    def __repr__(self) -> str:
        return f"Tool(path={self.path!r})"

    def run(
        self,
        argv: Iterable[str],
        options: RunOptions | None = None,
        **overrides: Any,
    ) -> RunResult:
        """Run ``[path, *argv]`` through the engine."""
        return self.engine.run([self.path, *argv], options, **overrides)

    def command(self, name: str, spec: InvocationSpec | None = None) -> Command:
        """Return an unprepared ``Command`` for subcommand ``name``."""
        from cmdgraph.command.invoker import Command

        return Command(self, name, spec or {})

    def run_command(
        self,
        name: str,
        spec: InvocationSpec | None = None,
        *args: Any,
    ) -> InvocationResult:
        """Prepare and run subcommand ``name`` in one step.

        Equivalent to ``tool.command(name, spec).prepare(*args).run()``.

        Raises
        ------
        UsageError
            If ``args`` do not fit ``spec``; nothing is run in that case.
        """
        return self.command(name, spec).prepare(*args).run()
