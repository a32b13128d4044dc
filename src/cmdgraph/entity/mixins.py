"""Reusable entity behaviours that keep the owning collection in step.

Mix these into ``Entity`` subclasses whose tool supports the operation.
Each mixin declares the subcommand and option spec it runs as class
attributes, so a subclass adapts it to its tool by overriding data
rather than code::

    class Stream(RenameMixin, RemoveMixin, Entity):
        remove_command = "rmstream"
        remove_spec = {"-force": FLAG, "-comment": STRING}
"""
from __future__ import annotations

import logging
from typing import Any, ClassVar

from cmdgraph.command.invoker import InvocationResult
from cmdgraph.command.spec import STRING, InvocationSpec
from cmdgraph.entity.base import Entity
from cmdgraph.entity.collection import Collection
from cmdgraph.errors import UsageError

logger = logging.getLogger(__name__)


def _owning_collection(entity: Entity) -> Collection[Any] | None:
    parent = entity.parent
    return parent if isinstance(parent, Collection) else None


class RenameMixin:
    """Provides :meth:`rename`.

    Renaming updates only this entity and its own collection entry: the
    old name is forgotten and the new name is marked pending. Other
    cached objects that refer to the old name are not updated; build a
    new ``Root`` if they matter.
    """

    rename_command: ClassVar[str] = "rename"
    rename_spec: ClassVar[InvocationSpec] = {"-comment": STRING}

    def rename(self: Any, *args: Any) -> InvocationResult:
        """Rename this entity.

        ``args`` are the rename options followed by the new name. Only
        the first positional argument is used as the new name; any
        others are dropped. The entity supplies its own identifier ahead
        of the new name.

        Raises
        ------
        UsageError
            If no new name is given.
        """
        cmd = self.command(self.rename_command, self.rename_spec).prepare(*args)
        if not cmd.args:
            raise UsageError("no new name given", self.rename_command)
        new_name = cmd.args[0]
        old_name = self.name
        cmd.set_args(self, new_name)
        result = cmd.run()
        if not cmd.status:
            return result

        self._set_name(new_name)
        collection = _owning_collection(self)
        if collection is not None:
            collection.forget(old_name)
            collection.add(new_name)
        logger.debug("Renamed %r to %r", old_name, new_name)
        return cmd.retval()


class RemoveMixin:
    """Provides :meth:`remove`, which deletes the entity and forgets it."""

    remove_command: ClassVar[str] = "remove"
    remove_spec: ClassVar[InvocationSpec] = {}

    def remove(self: Any, *args: Any) -> InvocationResult:
        """Delete this entity through the tool.

        ``args`` are options for the removal subcommand; the entity's own
        identifier is appended as the positional argument. On success the
        entity is evicted from its collection.
        """
        cmd = self.command(self.remove_command, self.remove_spec).prepare(*args)
        cmd.set_args(self)
        result = cmd.run()
        if not cmd.status:
            return result
        collection = _owning_collection(self)
        if collection is not None:
            collection.forget(self.name)
        return cmd.retval()
