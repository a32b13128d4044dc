"""Run-wide configuration for cmdgraph.

An ``EngineConfig`` is built once at startup and passed explicitly to
the ``ProcessEngine``, the ``Tool`` and the ``Root`` of an object graph.
Nothing in the library reads the environment on its own; use
:func:`load_config` to combine a YAML file with ``CMDGRAPH_*``
environment variables.

Example
-------
::

    from cmdgraph.config import load_config

    config = load_config("cmdgraph.yaml")
    config.verbose
    False

Recognised environment variables:

``CMDGRAPH_TOOL``
    Path to the external tool executable.
``CMDGRAPH_VERBOSE``
    Echo each command line and its exit status.
``CMDGRAPH_DEBUG``
    As verbose, and also echo all captured output as it arrives.
"""
from __future__ import annotations

import dataclasses
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, TextIO

import yaml

from cmdgraph.errors import CmdgraphError

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"true", "yes", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"", "false", "no", "off"})

_ENV_KEYS: Final[dict[str, str]] = {
    "CMDGRAPH_TOOL": "tool_path",
    "CMDGRAPH_VERBOSE": "verbose",
    "CMDGRAPH_DEBUG": "debug",
}


class ConfigError(CmdgraphError, ValueError):
    """Raised when a configuration file or variable cannot be understood."""


@dataclass(frozen=True)
class EngineConfig:
    """Settings shared by every invocation in one run.

    Parameters
    ----------
    tool_path:
        Executable prepended to every command issued through a ``Tool``.
    verbose:
        Echo the command line and exit status of every run.
    debug:
        Echo like ``verbose`` and also copy captured output to the echo
        stream as it is read.
    encoding:
        Codec used to decode captured output.
    errors:
        Error handler passed to ``bytes.decode``.
    echo:
        Stream used for verbose/debug echo; ``None`` means ``sys.stdout``
        at the time of writing.
    """

    tool_path: str = ""
    verbose: bool = False
    debug: bool = False
    encoding: str = "utf-8"
    errors: str = "replace"
    echo: TextIO | None = field(default=None, compare=False, repr=False)

    @property
    def echo_stream(self) -> TextIO:
        """Return the stream that verbose/debug output is written to."""
        return self.echo if self.echo is not None else sys.stdout

    def replace(self, **changes: Any) -> EngineConfig:
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source: str = "<mapping>") -> EngineConfig:
        """Build a config from a plain mapping of field names to values.

        Raises
        ------
        ConfigError
            If ``data`` contains an unknown key or a value of the wrong type.
        """
        known = {f.name for f in dataclasses.fields(cls) if f.name != "echo"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"{source}: unknown configuration key(s): {', '.join(unknown)}")
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key in ("verbose", "debug"):
                values[key] = _coerce_bool(value, f"{source}: {key}")
            elif not isinstance(value, str):
                raise ConfigError(f"{source}: {key} must be a string, got {value!r}")
            else:
                values[key] = value
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str | os.PathLike[str]) -> EngineConfig:
        """Load a config from a YAML file containing a single mapping."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"{path}: invalid YAML: {exc}") from exc
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        return cls.from_mapping(data, source=str(path))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a config from ``CMDGRAPH_*`` environment variables."""
        return cls().with_env(environ)

    def with_env(self, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Return a copy with any ``CMDGRAPH_*`` variables applied on top."""
        env = os.environ if environ is None else environ
        changes: dict[str, Any] = {}
        for var, key in _ENV_KEYS.items():
            if var not in env:
                continue
            if key == "tool_path":
                changes[key] = env[var]
            else:
                changes[key] = _coerce_bool(env[var], var)
        return self.replace(**changes) if changes else self


def load_config(
    path: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Load configuration from an optional YAML file, then the environment.

    Environment variables take precedence over values read from ``path``.
    """
    base = EngineConfig.from_yaml(path) if path is not None else EngineConfig()
    return base.with_env(environ)


def _coerce_bool(value: object, where: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value >= 1
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        try:
            return int(word) >= 1
        except ValueError:
            pass
    raise ConfigError(f"{where}: expected a boolean, got {value!r}")
