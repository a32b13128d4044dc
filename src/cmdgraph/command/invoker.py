"""Declarative command builder and invoker.

A ``Command`` is declared with a subcommand name and an invocation spec,
then used in two steps:

1. :meth:`Command.prepare` parses a caller's mixed argument list (flags,
   flag values, positional arguments, domain objects and at most one
   run-option mapping) without doing any I/O. Mistakes raise
   ``UsageError`` here, before anything is spawned.
2. :meth:`Command.run` assembles the argument vector and runs it.

Between the two, call sites may inspect or adjust options and arguments
(``opt``, ``set_opt``, ``set_args``), e.g. to fill in the object's own
identifier as the positional argument.

Example
-------
::

    cmd = tool.command("mkview", {"-tag": STRING, "-region": TypedArg(Region)})
    cmd.prepare("-tag", "view1", "-region", region, "/storage/view1.vws")
    result = cmd.run()
    if result:
        new_view = region.views.get_one(cmd.opt("-tag"))
        return cmd.retval(new_view)
    return cmd.retval()
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from cmdgraph.command.spec import InvocationSpec, canonical
from cmdgraph.errors import UsageError
from cmdgraph.process.options import Output, RunOptions

if TYPE_CHECKING:
    from cmdgraph.command.tool import Tool

_UNSET: Any = object()


@dataclass
class InvocationResult:
    """Outcome of running a prepared ``Command``.

    ``status`` is a success boolean when failure is returned as a status,
    and may have been replaced by a richer value through
    :meth:`Command.retval`. ``exit_code`` always holds the raw code.
    """

    argv: list[str]
    options: RunOptions
    status: Any
    exit_code: int
    stdout: Output = None
    stderr: Output = None

    def parts(self) -> tuple[Any, ...]:
        """Return only the pieces the run options asked for, in order."""
        parts: list[Any] = []
        if self.options.return_failure_as_status:
            parts.append(self.status)
        if not self.options.leave_stdout:
            parts.append(self.stdout)
        if not self.options.leave_stderr:
            parts.append(self.stderr)
        return tuple(parts)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.parts())

    def __bool__(self) -> bool:
        return bool(self.status)


class Command:
    """One external subcommand with a declared set of options.

    Parameters
    ----------
    tool:
        The tool that runs the assembled argument vector.
    name:
        Subcommand name, the first element of the argument vector.
    spec:
        Mapping of every accepted option flag to its ``OptionKind``.
    options:
        Run options; by default failure is returned as a status and both
        streams stay attached to the caller's own.
    """

    comment_flag: ClassVar[str] = "-comment"
    no_comment_flag: ClassVar[str] = "-nc"
    default_options: ClassVar[RunOptions] = RunOptions(
        return_failure_as_status=True,
        leave_stdout=True,
        leave_stderr=True,
    )

    def __init__(
        self,
        tool: Tool,
        name: str,
        spec: InvocationSpec,
        options: RunOptions | None = None,
    ) -> None:
        self.tool = tool
        self.name = name
        self.spec: dict[str, Any] = dict(spec)
        self.base_options = options if options is not None else self.default_options
        self.options = self.base_options
        self._actual: dict[str, str | None] = {}
        self._original: dict[str, object] = {}
        self._args: list[str] = []
        self._result: InvocationResult | None = None

    def __repr__(self) -> str:
        return f"Command(name={self.name!r}, argv={self.argv!r})"

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def prepare(self, *args: Any) -> Command:
        """Parse and validate a caller argument list.

        Strings starting with ``-`` are option flags and must be
        declared in the invocation spec; a flag whose kind takes a value
        consumes the next item.
        Any mapping is merged into the run options. Everything else is a
        positional argument.

        Returns
        -------
        Command
            ``self``, so ``prepare`` can be chained with ``run``.

        Raises
        ------
        UsageError
            For an undeclared flag, a missing value, a typed value of the
            wrong class, an unknown run option, or a value with no
            canonical identifier.
        """
        actual: dict[str, str | None] = {}
        original: dict[str, object] = {}
        positional: list[str] = []
        options = self.base_options
        got_comment = False

        items = iter(args)
        for item in items:
            if isinstance(item, Mapping):
                options = options.merged(item)
                continue
            if not (isinstance(item, str) and item.startswith("-")):
                positional.append(canonical(item, self.name))
                continue

            flag = item
            if flag == self.comment_flag:
                got_comment = True
            if flag not in self.spec:
                raise UsageError(f"undeclared option {flag}", self.name)
            kind = self.spec[flag]
            if not kind.takes_value:
                actual[flag] = None
                continue

            value = next(items, _UNSET)
            if value is _UNSET:
                raise UsageError(f"no value supplied for option {flag}", self.name)

            if kind.entity_class is None or isinstance(value, str):
                # A plain string for a typed option is taken to be a name.
                actual[flag] = canonical(value, self.name)
            elif isinstance(value, kind.entity_class):
                original[flag] = value
                actual[flag] = canonical(value, self.name)
            else:
                raise UsageError(
                    f"option {flag} needs {kind.entity_class.__name__}, got {value!r}",
                    self.name,
                )

        if self.comment_flag in self.spec and not got_comment:
            actual[self.no_comment_flag] = None

        self._actual = actual
        self._original = original
        self._args = positional
        self.options = options
        self._result = None
        return self

    def opt(self, flag: str) -> Any:
        """Return the value used for ``flag``.

        The original typed object is preferred over its string form;
        ``None`` is returned for boolean flags and absent options.
        """
        if flag in self._original:
            return self._original[flag]
        return self._actual.get(flag)

    def has_opt(self, flag: str) -> bool:
        """Return True if ``flag`` will be passed on the command line."""
        return flag in self._actual

    def set_opt(self, flag: str, value: object = None) -> None:
        """Set ``flag`` explicitly, bypassing invocation spec validation."""
        if value is None:
            self._actual[flag] = None
            self._original.pop(flag, None)
            return
        self._actual[flag] = canonical(value, self.name)
        if isinstance(value, str):
            self._original.pop(flag, None)
        else:
            self._original[flag] = value

    @property
    def actual_options(self) -> dict[str, str | None]:
        """Return a copy of the coerced option map."""
        return dict(self._actual)

    @property
    def original_options(self) -> dict[str, object]:
        """Return a copy of the map of options given as typed objects."""
        return dict(self._original)

    @property
    def args(self) -> list[str]:
        """Return a copy of the positional arguments."""
        return list(self._args)

    def set_args(self, *args: object) -> None:
        """Replace the positional arguments."""
        self._args = [canonical(arg, self.name) for arg in args]

    @property
    def argv(self) -> list[str]:
        """Return the argument vector: name, options with values, positionals."""
        argv = [self.name]
        for flag, value in self._actual.items():
            argv.append(flag)
            if value is not None:
                argv.append(value)
        argv.extend(self._args)
        return argv

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self) -> InvocationResult:
        """Run the prepared command through the tool.

        With failure returned as a status, the status is normalized to
        ``True`` for exit code 0 and ``False`` otherwise.
        """
        outcome = self.tool.run(self.argv, self.options)
        if self.options.return_failure_as_status:
            status: Any = outcome.status == 0
        else:
            status = True
        self._result = InvocationResult(
            argv=outcome.argv,
            options=self.options,
            status=status,
            exit_code=outcome.status,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
        )
        return self._result

    @property
    def status(self) -> Any:
        """Return ``None`` before :meth:`run`, else the (possibly overridden) status."""
        if self._result is None:
            return None
        if self.options.return_failure_as_status:
            return self._result.status
        # Failure would have raised, so reaching here means success.
        return True

    def retval(self, override: Any = _UNSET) -> InvocationResult:
        """Return the result, optionally substituting a richer status.

        ``override`` replaces the boolean status only when failure is
        returned as a status; it is typically the entity a creation
        command just made.

        Raises
        ------
        UsageError
            If the command has not been run yet.
        """
        if self._result is None:
            raise UsageError("retval() called before run()", self.name)
        if override is not _UNSET and self.options.return_failure_as_status:
            self._result.status = override
        return self._result
