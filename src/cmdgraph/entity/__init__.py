"""Entity model module.

Exports the graph base classes, the ``Collection`` cache, the
derived-value memoizer and the reusable entity mixins.
"""
from __future__ import annotations

from cmdgraph.entity.base import Entity, Root, Thing
from cmdgraph.entity.collection import CacheEntry, Collection, EntryState
from cmdgraph.entity.memo import derived, is_computed, memoized
from cmdgraph.entity.mixins import RemoveMixin, RenameMixin

__all__ = [
    "Thing",
    "Root",
    "Entity",
    "Collection",
    "CacheEntry",
    "EntryState",
    "derived",
    "memoized",
    "is_computed",
    "RenameMixin",
    "RemoveMixin",
]
