#!/usr/bin/env python3
"""Example: Quickstart: cmdgraph

Minimal working example: run commands through the process engine and
unpack exactly the parts of the result you asked for.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install cmdgraph
"""
from __future__ import annotations

import cmdgraph
from cmdgraph import CommandFailedError, EngineConfig, ProcessEngine


def main() -> None:
    print(f"cmdgraph version: {cmdgraph.__version__}")

    # Step 1: Capture stdout as lines; a failure comes back as a status
    status, lines = cmdgraph.run(
        ["uname", "-a"], return_failure_as_status=True, leave_stderr=True
    )
    print(f"uname exited with {status}: {lines}")

    # Step 2: Without return_failure_as_status a non-zero exit raises
    try:
        cmdgraph.run(["ls", "/no/such/directory"])
    except CommandFailedError as exc:
        print(f"{exc} (stderr: {exc.stderr})")

    # Step 3: Run on a pseudo-terminal; everything arrives as stdout
    (lines,) = cmdgraph.run(["tty"], pseudo_terminal=True, leave_stderr=True)
    print(f"tty reports: {lines}")

    # Step 4: Echo every command line and status
    engine = ProcessEngine(EngineConfig(verbose=True))
    engine.run(["true"], leave_stdout=True, leave_stderr=True)


if __name__ == "__main__":
    main()
