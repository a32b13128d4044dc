"""Lazy, partially-populated per-parent entity caches.

A ``Collection`` holds the entities of one kind that belong to one
parent. It fetches entities from the external tool only when asked for
them, and only those it does not already hold:

- :meth:`Collection.get_all` issues one bulk listing the first time and
  afterwards only re-fetches names that are pending.
- :meth:`Collection.get_one` / :meth:`Collection.get_many` issue one
  batch listing restricted to the requested names that are missing.
- :meth:`Collection.add` marks a just-created name as pending without a
  round trip; :meth:`Collection.forget` evicts a name.

Batch listings commonly exit non-zero when any one requested name does
not exist while still printing records for the others. Every record
that parses is kept regardless of the exit status.

Subclasses say how to list their entities::

    class ViewCollection(Collection[View]):
        item_class = View

        def listing_command(self, names):
            return ["lsview", "-long", *names]
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, ClassVar, Generic, TypeVar

from cmdgraph.command.invoker import InvocationResult
from cmdgraph.command.spec import InvocationSpec
from cmdgraph.entity.base import Entity, Thing
from cmdgraph.process.options import RunOptions
from cmdgraph.records.parser import (
    Record,
    RecordParseError,
    record_name,
    split_records,
    unpack_record,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class EntryState(Enum):
    """What a collection knows about one name.

    ABSENT
        Not known to exist. Once the full listing has been fetched this
        means the name is known not to exist.
    PENDING
        Known to exist (typically just created) but not yet fetched.
    POPULATED
        Fetched; an entity instance is cached.
    """

    ABSENT = auto()
    PENDING = auto()
    POPULATED = auto()


@dataclass
class CacheEntry(Generic[E]):
    """Tagged state of one name in a collection."""

    state: EntryState
    item: E | None = None


class Collection(Thing, ABC, Generic[E]):
    """Cache of the entities of one kind belonging to one parent.

    Parameters
    ----------
    parent:
        The entity or root that owns this collection.
    """

    item_class: ClassVar[type[Entity]]
    listing_options: ClassVar[RunOptions] = RunOptions(
        return_failure_as_status=True,
        split_stdout=False,
    )

    def __init__(self, parent: Thing) -> None:
        super().__init__(parent)
        self._entries: dict[str, CacheEntry[E]] = {}
        self._got_all = False

    def __repr__(self) -> str:
        populated = sum(1 for e in self._entries.values() if e.state is EntryState.POPULATED)
        return (
            f"{type(self).__name__}(populated={populated}, "
            f"pending={len(self.pending_names())}, got_all={self._got_all})"
        )

    # ------------------------------------------------------------------
    # Customization hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def listing_command(self, names: Sequence[str]) -> list[str]:
        """Return the subcommand argv that lists ``names``, or everything if empty."""

    @property
    def name_field(self) -> str:
        """Return the record label that names an entity."""
        return self.item_class.name_field

    def split_output(self, stdout: str) -> list[str]:
        """Split listing output into one text block per entity."""
        return split_records(stdout)

    def unpack(self, block: str) -> Record:
        """Parse one text block into a record."""
        return unpack_record(block.splitlines())

    def key_for(self, name: str) -> str:
        """Return the cache key for a requested name.

        Override when callers may ask for an entity by a compound
        identifier while the listing prints the bare name.
        """
        return name

    def make_item(self, record: Record) -> E:
        """Instantiate the entity for a freshly parsed record."""
        return self.item_class.from_record(self, record)  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def got_all(self) -> bool:
        """Return True once the full listing has been fetched."""
        return self._got_all

    def state(self, name: str) -> EntryState:
        """Return what the collection currently knows about ``name``."""
        entry = self._entries.get(self.key_for(name))
        return entry.state if entry is not None else EntryState.ABSENT

    def pending_names(self) -> list[str]:
        """Return the names marked pending, in the order they were added."""
        return [k for k, e in self._entries.items() if e.state is EntryState.PENDING]

    def get_all(self) -> list[E]:
        """Return every entity, fetching the full listing on first use."""
        if not self._got_all:
            self._fetch(None)
        else:
            pending = self.pending_names()
            if pending:
                self._fetch(pending)
        return [e.item for e in self._entries.values() if e.item is not None]

    def get_many(self, *names: str) -> list[E | None]:
        """Return the entities for ``names`` in request order.

        Names not already cached are fetched in a single batch listing.
        ``None`` stands in for a name the tool did not report.
        """
        missing: dict[str, str] = {}
        for name in names:
            key = self.key_for(name)
            if key in missing or self._is_resolved(key):
                continue
            missing[key] = name
        if missing:
            self._fetch(list(missing.values()))
        return [self._item(self.key_for(name)) for name in names]

    def get_one(self, *names: str) -> Any:
        """Return one entity (or ``None``) for one name, else a list.

        With exactly one name this returns the entity or ``None``; with
        several it behaves like :meth:`get_many`; with none it returns an
        empty list without a round trip.
        """
        if not names:
            return []
        items = self.get_many(*names)
        if len(names) == 1:
            return items[0]
        return items

    def forget(self, name: str) -> None:
        """Evict ``name``, typically after the tool deleted it."""
        if self._entries.pop(self.key_for(name), None) is not None:
            logger.debug("%s: forgot %r", type(self).__name__, name)

    def add(self, name: str) -> None:
        """Mark ``name`` as existing without fetching its details.

        A name that is already populated is left as it is.
        """
        key = self.key_for(name)
        if self.state(name) is not EntryState.POPULATED:
            self._entries[key] = CacheEntry(EntryState.PENDING)
            logger.debug("%s: %r pending", type(self).__name__, name)

    def create(
        self,
        subcommand: str,
        spec: InvocationSpec,
        *args: Any,
        name_option: str | None = None,
        fetch: bool = True,
    ) -> InvocationResult:
        """Run a creation subcommand and register what it created.

        The new name is the value of ``name_option`` if given, else the
        last positional argument. On success the name is added as
        pending and, when ``fetch`` is set, fetched and substituted for
        the boolean status in the returned result.
        """
        cmd = self.command(subcommand, spec).prepare(*args)
        result = cmd.run()
        if not cmd.status:
            return result
        if name_option is not None:
            name = cmd.actual_options.get(name_option)
        else:
            name = cmd.args[-1] if cmd.args else None
        if not name:
            return result
        self.add(name)
        if not fetch:
            return result
        return cmd.retval(self.get_one(name))

    def __contains__(self, name: object) -> bool:
        """Support ``name in collection`` for names known to exist."""
        return isinstance(name, str) and self.state(name) is not EntryState.ABSENT

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_resolved(self, key: str) -> bool:
        """Return True if ``key`` needs no fetch to answer a lookup."""
        entry = self._entries.get(key)
        if entry is not None:
            return entry.state is EntryState.POPULATED
        # After a full listing an unknown name is known not to exist.
        return self._got_all

    def _item(self, key: str) -> E | None:
        entry = self._entries.get(key)
        return entry.item if entry is not None else None

    def _fetch(self, names: list[str] | None) -> list[E]:
        """Fetch ``names`` (or everything) and merge the records into the cache."""
        argv = self.listing_command(names or [])
        logger.debug("%s: fetching %s", type(self).__name__, names if names else "all")
        result = self.tool.run(argv, self.listing_options)
        if not result.succeeded:
            logger.info(
                "%s: listing exited with status %d; keeping the records it printed",
                type(self).__name__,
                result.status,
            )
            if result.stderr:
                logger.debug("%s: listing stderr: %s", type(self).__name__, result.stderr)

        gotten: list[E] = []
        stdout = result.stdout if isinstance(result.stdout, str) else "\n".join(result.stdout or [])
        for block in self.split_output(stdout):
            record = self.unpack(block)
            try:
                name = record_name(record, self.name_field)
            except RecordParseError as exc:
                logger.warning("%s: skipping record: %s", type(self).__name__, exc)
                continue
            key = self.key_for(name)
            entry = self._entries.get(key)
            if entry is None or entry.item is None:
                entry = CacheEntry(EntryState.POPULATED, self.make_item(record))
                self._entries[key] = entry
            gotten.append(entry.item)  # type: ignore[arg-type]

        if names is None:
            self._got_all = True
        return gotten
