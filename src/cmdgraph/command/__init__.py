"""Command invoker module.

Exports the ``Command`` builder, the ``Tool`` binding, option kinds and
the ``Identifiable`` capability used to coerce domain objects.
"""
from __future__ import annotations

from cmdgraph.command.invoker import Command, InvocationResult
from cmdgraph.command.spec import (
    FLAG,
    STRING,
    Identifiable,
    InvocationSpec,
    OptionKind,
    TypedArg,
    canonical,
)
from cmdgraph.command.tool import Tool

__all__ = [
    "Command",
    "InvocationResult",
    "Tool",
    "FLAG",
    "STRING",
    "TypedArg",
    "OptionKind",
    "InvocationSpec",
    "Identifiable",
    "canonical",
]
