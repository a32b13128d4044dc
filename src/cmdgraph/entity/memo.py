"""Compute-once caching for expensive derived values on entities.

Some entity properties need an extra round trip to the external tool
(attributes, locks, space usage, timestamps). ``derived`` computes such
a property the first time it is read and stores the value on the
instance; later reads return the stored value. ``memoized`` does the
same for methods that take arguments, keyed by the arguments.

There is no invalidation. If the underlying state changes,
discard the instance and fetch a fresh one from its collection.

Example
-------
::

    class Stream(Entity):
        @derived
        def baseline_names(self) -> list[str]:
            return self.run_tool("lsbl", "-short", "-stream", self).stdout

        @memoized
        def baseline(self, name: str) -> Baseline | None:
            return self.root.baselines.get_one(name)
"""
from __future__ import annotations

import functools
from collections.abc import Callable, Hashable
from typing import Any, Final, Generic, TypeVar, overload

T = TypeVar("T")

_MISSING: Final[Any] = object()
_SLOT_PREFIX: Final[str] = "_derived_"
_METHOD_CACHE: Final[str] = "_memoized_calls"


def _slot(name: str) -> str:
    return f"{_SLOT_PREFIX}{name}"


class derived(Generic[T]):  # noqa: N801
    """Property computed on first access and kept for the instance's lifetime.

    The value is stored in an instance attribute named
    ``_derived_<property name>``; the property is read-only.
    """

    def __init__(self, compute: Callable[[Any], T]) -> None:
        self.compute = compute
        self.name = compute.__name__
        self.__doc__ = compute.__doc__

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    @overload
    def __get__(self, instance: None, owner: type | None = None) -> derived[T]: ...

    @overload
    def __get__(self, instance: object, owner: type | None = None) -> T: ...

    def __get__(self, instance: object | None, owner: type | None = None) -> T | derived[T]:
        if instance is None:
            return self
        slot = _slot(self.name)
        value = instance.__dict__.get(slot, _MISSING)
        if value is _MISSING:
            value = self.compute(instance)
            instance.__dict__[slot] = value
        return value

    def __set__(self, instance: object, value: T) -> None:
        raise AttributeError(f"{self.name} is a derived value and cannot be assigned")


def memoized(method: Callable[..., T]) -> Callable[..., T]:
    """Cache a method's result per instance and per (hashable) arguments."""

    @functools.wraps(method)
    def wrapper(self: Any, *args: Hashable, **kwargs: Hashable) -> T:
        cache: dict[tuple[Any, ...], Any] = self.__dict__.setdefault(_METHOD_CACHE, {})
        key = (method.__name__, args, tuple(sorted(kwargs.items())))
        if key not in cache:
            cache[key] = method(self, *args, **kwargs)
        return cache[key]

    return wrapper


def is_computed(instance: object, name: str) -> bool:
    """Return True if the ``derived`` property ``name`` has been computed."""
    return _slot(name) in instance.__dict__
