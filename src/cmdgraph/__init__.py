"""cmdgraph: drive a stateful command-line tool as a cached object graph.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
::

    import cmdgraph
    from cmdgraph import FLAG, STRING, Collection, Entity, Root, Tool

    class Branch(Entity):
        name_field = "Name"

    class BranchCollection(Collection[Branch]):
        item_class = Branch

        def listing_command(self, names):
            return ["branches", "--long", *names]

    class Repo(Root):
        def __init__(self, tool):
            super().__init__(tool)
            self.branches = BranchCollection(self)

    repo = Repo(Tool("/usr/local/bin/vcs"))
    main = repo.branches.get_one("main")

    # Run any command directly
    status, lines = cmdgraph.run(["uname", "-a"], return_failure_as_status=True,
                                 leave_stderr=True)

    cmdgraph.__version__
    '0.1.0'
"""
from __future__ import annotations

from typing import Any

__version__: str = "0.1.0"

from cmdgraph.command import (  # noqa: E402
    FLAG,
    STRING,
    Command,
    Identifiable,
    InvocationResult,
    OptionKind,
    Tool,
    TypedArg,
)
from cmdgraph.config import ConfigError, EngineConfig, load_config  # noqa: E402
from cmdgraph.entity import (  # noqa: E402
    Collection,
    Entity,
    EntryState,
    RemoveMixin,
    RenameMixin,
    Root,
    Thing,
    derived,
    memoized,
)
from cmdgraph.errors import CmdgraphError, UsageError  # noqa: E402
from cmdgraph.process import (  # noqa: E402
    AbnormalTerminationError,
    CommandFailedError,
    ProcessEngine,
    ProcessError,
    ProcessStartError,
    RunOptions,
    RunResult,
)
from cmdgraph.records import RecordParseError, parse_records  # noqa: E402


def run(argv: list[str], **options: Any) -> RunResult:
    """Run ``argv`` with a default ``ProcessEngine``.

    Parameters
    ----------
    argv:
        Program and arguments.
    **options:
        ``RunOptions`` fields, e.g. ``return_failure_as_status=True``.

    Returns
    -------
    RunResult
        Status and captured output; unpacks to the requested parts.
    """
    from cmdgraph.process.engine import run as _run

    return _run(argv, **options)


__all__ = [
    "__version__",
    "run",
    "ProcessEngine",
    "RunOptions",
    "RunResult",
    "Tool",
    "Command",
    "InvocationResult",
    "OptionKind",
    "FLAG",
    "STRING",
    "TypedArg",
    "Identifiable",
    "Thing",
    "Root",
    "Entity",
    "Collection",
    "EntryState",
    "RenameMixin",
    "RemoveMixin",
    "derived",
    "memoized",
    "parse_records",
    "EngineConfig",
    "load_config",
    "CmdgraphError",
    "UsageError",
    "ConfigError",
    "ProcessError",
    "ProcessStartError",
    "AbnormalTerminationError",
    "CommandFailedError",
    "RecordParseError",
]
