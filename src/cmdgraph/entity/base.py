"""Base classes for the cached object graph.

Every object in a graph is a ``Thing`` with a ``parent``. Walking up the
parents always ends at a ``Root``, which owns the ``Tool`` used to talk
to the external program. Entities are created by their owning
collection from a parsed record, so an entity's parent is the
``Collection`` that caches it, and that collection's parent is the
entity (or root) the collection belongs to.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from cmdgraph.command.spec import InvocationSpec, canonical
from cmdgraph.config import EngineConfig
from cmdgraph.errors import UsageError

if TYPE_CHECKING:
    from cmdgraph.command.invoker import Command
    from cmdgraph.command.tool import Tool
    from cmdgraph.process.options import RunResult

E = TypeVar("E", bound="Entity")


class Thing:
    """A node in the object graph.

    Parameters
    ----------
    parent:
        The owning node; ``None`` only for a ``Root``.
    """

    def __init__(self, parent: Thing | None) -> None:
        self.parent = parent

    @property
    def root(self) -> Root:
        """Return the ``Root`` at the top of this object's graph."""
        node: Thing | None = self
        while node is not None:
            if isinstance(node, Root):
                return node
            node = node.parent
        raise UsageError(f"{self!r} is not attached to a Root")

    @property
    def tool(self) -> Tool:
        """Return the tool shared by the whole graph."""
        return self.root.tool

    def command(self, name: str, spec: InvocationSpec | None = None) -> Command:
        """Return an unprepared ``Command`` bound to the graph's tool."""
        return self.tool.command(name, spec)

    def run_tool(self, *argv: object, **overrides: Any) -> RunResult:
        """Run a subcommand directly, coercing objects to identifiers.

        ``overrides`` are ``RunOptions`` fields; by default failure raises
        and both streams are captured and split into lines.
        """
        return self.tool.run([canonical(arg) for arg in argv], **overrides)


class Root(Thing):
    """Top of an object graph; owns the tool and the run configuration.

    Subclasses create their top-level collections in ``__init__``.

    Parameters
    ----------
    tool:
        The external tool every object in the graph talks to.
    """

    def __init__(self, tool: Tool) -> None:
        super().__init__(None)
        self._tool = tool

    @classmethod
    def from_config(cls, config: EngineConfig) -> Root:
        """Build a root whose tool and engine come from ``config``."""
        from cmdgraph.command.tool import Tool

        return cls(Tool.from_config(config))

    @property
    def root(self) -> Root:
        return self

    @property
    def tool(self) -> Tool:
        return self._tool

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tool={self._tool!r})"


class Entity(Thing):
    """One named object managed by the external tool.

    An entity wraps the record it was parsed from. Field labels are kept
    exactly as the tool printed them; subclasses add typed accessors.

    Parameters
    ----------
    parent:
        Normally the ``Collection`` caching this entity.
    fields:
        The parsed ``label -> value`` record. Must contain ``name_field``.
    """

    name_field: ClassVar[str] = "Name"

    def __init__(self, parent: Thing | None, fields: Mapping[str, str]) -> None:
        super().__init__(parent)
        if self.name_field not in fields:
            raise UsageError(
                f"{type(self).__name__} needs a {self.name_field!r} field, got {sorted(fields)}"
            )
        self._fields = dict(fields)

    @classmethod
    def from_record(cls: type[E], parent: Thing | None, record: Mapping[str, str]) -> E:
        """Build an entity from a parsed record."""
        return cls(parent, record)

    @property
    def name(self) -> str:
        """Return the entity's name, the value of its ``name_field``."""
        return self._fields[self.name_field]

    @property
    def fields(self) -> dict[str, str]:
        """Return a copy of every field parsed for this entity."""
        return dict(self._fields)

    def field(self, label: str, default: str | None = None) -> str | None:
        """Return the raw value printed for ``label``."""
        return self._fields.get(label, default)

    def canonical_identifier(self) -> str:
        """Return the identifier the tool accepts; the bare name by default."""
        return self.name

    def _set_name(self, name: str) -> None:
        self._fields[self.name_field] = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
