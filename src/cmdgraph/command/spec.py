"""Option kinds and value coercion for declarative command specs.

An invocation spec is a plain mapping from option flag to the kind of
value that flag takes::

    from cmdgraph.command.spec import FLAG, STRING, TypedArg

    MKVIEW_SPEC = {
        "-tag": STRING,
        "-region": TypedArg(Region),
        "-snapshot": FLAG,
    }

Domain objects are reduced to strings through the single
``Identifiable.canonical_identifier()`` capability; anything else must
already be a string, an integer or a path.
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from cmdgraph.errors import UsageError


@runtime_checkable
class Identifiable(Protocol):
    """Anything that can stand in for its own name on a command line.

    Implementations return the identifier the external tool accepts for
    the object, which may be a compound form such as ``kind:name@scope``
    rather than the bare name.
    """

    def canonical_identifier(self) -> str:
        """Return the identifier to pass to the external tool."""
        ...  # pragma: no cover


@dataclass(frozen=True)
class OptionKind:
    """What kind of value an option flag takes.

    Parameters
    ----------
    label:
        ``"flag"``, ``"string"`` or ``"typed"``.
    entity_class:
        For typed options, the class a non-string value must be an
        instance of.
    """

    label: str
    entity_class: type | None = None

    @property
    def takes_value(self) -> bool:
        """Return True if the flag must be followed by a value."""
        return self.label != "flag"

    def __repr__(self) -> str:
        if self.entity_class is not None:
            return f"TypedArg({self.entity_class.__name__})"
        return self.label.upper()


FLAG = OptionKind("flag")
STRING = OptionKind("string")


def TypedArg(entity_class: type) -> OptionKind:  # noqa: N802
    """Return the kind for an option taking an ``entity_class`` or a name."""
    return OptionKind("typed", entity_class)


InvocationSpec = Mapping[str, OptionKind]


def canonical(value: object, command: str | None = None) -> str:
    """Reduce ``value`` to the string that goes on the command line.

    Raises
    ------
    UsageError
        If ``value`` is neither a string, an ``Identifiable``, an integer
        nor a path.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, Identifiable):
        return value.canonical_identifier()
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    raise UsageError(
        f"Cannot use {value!r} as a command-line value: "
        "it has no canonical identifier",
        command,
    )
