"""Process engine module.

Exports the ``ProcessEngine`` class, the ``run`` convenience function,
run options/results and the engine's error types.
"""
from __future__ import annotations

from cmdgraph.process.engine import ProcessEngine, run, split_lines
from cmdgraph.process.errors import (
    AbnormalTerminationError,
    CommandFailedError,
    ProcessError,
    ProcessStartError,
)
from cmdgraph.process.options import RunOptions, RunResult

__all__ = [
    "ProcessEngine",
    "run",
    "split_lines",
    "RunOptions",
    "RunResult",
    "ProcessError",
    "ProcessStartError",
    "AbnormalTerminationError",
    "CommandFailedError",
]
