"""Process engine: fork, wire up, multiplex, reap.

The engine runs one external command at a time. Each captured stream
gets its own pipe (or, with ``pseudo_terminal``, the child gets a pty
and everything it writes arrives on the master side). The parent reads
all capture descriptors through a ``selectors`` multiplexer until each
reaches end-of-file, then waits for the child and decodes its wait
status.

Exec failures are reported back to the parent through a close-on-exec
pipe: if the pipe closes without data the exec succeeded, otherwise the
child wrote the reason before exiting.

There is no timeout. A child that never exits blocks ``run`` forever.
"""
from __future__ import annotations

import codecs
import errno
import logging
import os
import re
import selectors
import signal
import termios
from collections.abc import Iterable, Mapping
from typing import Any, Final

from cmdgraph.config import EngineConfig
from cmdgraph.errors import UsageError
from cmdgraph.process.errors import (
    AbnormalTerminationError,
    CommandFailedError,
    ProcessStartError,
)
from cmdgraph.process.options import Output, RunOptions, RunResult

logger = logging.getLogger(__name__)

_READ_SIZE: Final[int] = 4096
_PTY_ROWS: Final[int] = 24
_PTY_COLS: Final[int] = 80
_EXEC_FAILED: Final[int] = 127
_LINE: Final[re.Pattern[str]] = re.compile(r"[^\n]*\n|[^\n]+")

STDOUT: Final[str] = "stdout"
STDERR: Final[str] = "stderr"


def split_lines(text: str, trim: bool) -> list[str]:
    """Split ``text`` after every newline, optionally dropping terminators.

    A trailing ``\\r`` is dropped along with the ``\\n`` so pty output,
    which uses CRLF, trims the same way as pipe output.
    """
    lines = _LINE.findall(text)
    if trim:
        return [line.removesuffix("\n").removesuffix("\r") for line in lines]
    return lines


class _Child:
    """Descriptors and pid for one spawned child, owned by the parent."""

    __slots__ = ("pid", "readers")

    def __init__(self, pid: int, readers: dict[int, str]) -> None:
        self.pid = pid
        self.readers = readers

    def close(self) -> None:
        for fd in self.readers:
            _close_quietly(fd)
        self.readers = {}


class ProcessEngine:
    """Runs external commands and returns their status and output.

    Parameters
    ----------
    config:
        Run-wide settings; supplies the verbose/debug defaults, the
        output encoding and the echo stream.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config if config is not None else EngineConfig()

    def __repr__(self) -> str:
        return f"ProcessEngine(config={self.config!r})"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        argv: Iterable[str | os.PathLike[str]],
        options: RunOptions | None = None,
        **overrides: Any,
    ) -> RunResult:
        """Run ``argv`` and return what the options asked for.

        Parameters
        ----------
        argv:
            Program followed by its arguments. The program is looked up
            on ``PATH`` when it contains no slash.
        options:
            How to wire up the child; defaults to ``RunOptions()``.
        **overrides:
            Individual ``RunOptions`` fields applied on top of ``options``.

        Returns
        -------
        RunResult
            Exit status and captured output. Iterating it yields only the
            parts requested by the options.

        Raises
        ------
        UsageError
            If ``argv`` is empty or the options are inconsistent.
        ProcessStartError
            If the child could not be forked or the program not executed.
        AbnormalTerminationError
            If the child was killed by a signal or dumped core.
        CommandFailedError
            If the child exited non-zero and failure is not returned as
            a status.
        """
        opts = options if options is not None else RunOptions()
        if overrides:
            opts = opts.merged(overrides)
        opts.validate()
        command = [os.fspath(arg) for arg in argv]
        if not command:
            raise UsageError("Cannot run an empty command")

        debug = self.config.debug if opts.debug is None else opts.debug
        verbose = debug or (self.config.verbose if opts.verbose is None else opts.verbose)
        if verbose:
            self._echo(f"Running command: {' '.join(command)}\n")
        logger.debug("Running %s", command)

        child = self._spawn(command, opts)
        try:
            raw = self._drain(child, debug)
        except BaseException:
            _kill_and_reap(child.pid)
            raise
        finally:
            child.close()
        status = self._reap(child.pid, command)

        if verbose:
            self._echo(f"Status: {status}\n")
        logger.debug("%s exited with status %d", command[0], status)

        stdout: Output = None
        stderr: Output = None
        if not opts.leave_stdout:
            stdout = self._decode(raw[STDOUT], opts.split_stdout, opts.trim_stdout)
        if not opts.leave_stderr:
            stderr = self._decode(raw[STDERR], opts.split_stderr, opts.trim_stderr)

        if status != 0 and not opts.return_failure_as_status:
            raise CommandFailedError(command, status, stdout, stderr)

        return RunResult(argv=command, options=opts, status=status, stdout=stdout, stderr=stderr)

    # ------------------------------------------------------------------
    # Spawning
    # ------------------------------------------------------------------

    def _spawn(self, argv: list[str], opts: RunOptions) -> _Child:
        """Fork and exec ``argv``; return the parent's view of the child."""
        env = self._child_environment(opts)
        readers: dict[int, str] = {}
        redirects: dict[int, int] = {}  # child fd -> write end
        parent_only: list[int] = []
        child_only: list[int] = []
        master = slave = -1

        try:
            if opts.pseudo_terminal:
                master, slave = os.openpty()
                termios.tcsetwinsize(master, (_PTY_ROWS, _PTY_COLS))
                readers[master] = STDOUT
                child_only.append(slave)
            else:
                if not opts.leave_stdout:
                    read_end, write_end = os.pipe()
                    readers[read_end] = STDOUT
                    redirects[1] = write_end
                    child_only.append(write_end)
            if not opts.leave_stderr:
                read_end, write_end = os.pipe()
                readers[read_end] = STDERR
                redirects[2] = write_end
                child_only.append(write_end)
            status_read, status_write = os.pipe()
            parent_only.append(status_read)
            child_only.append(status_write)
        except OSError as exc:
            for fd in [*readers, *child_only, *parent_only]:
                _close_quietly(fd)
            raise ProcessStartError(argv, f"cannot create pipes: {exc}") from exc

        try:
            pid = os.fork()
        except OSError as exc:
            for fd in [*readers, *child_only, *parent_only]:
                _close_quietly(fd)
            raise ProcessStartError(argv, f"fork failed: {exc}") from exc

        if pid == 0:
            self._exec_child(argv, env, slave, redirects, status_write)

        for fd in child_only:
            _close_quietly(fd)
        child = _Child(pid, readers)

        reason = _read_all(status_read)
        _close_quietly(status_read)
        if reason:
            child.close()
            os.waitpid(pid, 0)
            raise ProcessStartError(argv, reason.decode("utf-8", "replace"))
        return child

    @staticmethod
    def _exec_child(
        argv: list[str],
        env: dict[str, str],
        slave: int,
        redirects: Mapping[int, int],
        status_write: int,
    ) -> None:
        """Runs in the forked child; never returns."""
        try:
            if slave >= 0:
                os.login_tty(slave)
            for target, fd in redirects.items():
                os.dup2(fd, target)
            os.execvpe(argv[0], argv, env)
        except BaseException as exc:  # noqa: BLE001
            try:
                os.write(status_write, str(exc).encode("utf-8", "replace") or b"exec failed")
            finally:
                os._exit(_EXEC_FAILED)

    @staticmethod
    def _child_environment(opts: RunOptions) -> dict[str, str]:
        env = dict(os.environ)
        if opts.pseudo_terminal:
            env["TERM"] = "xterm"
        for key, value in opts.environment.items():
            if value is None:
                env.pop(key, None)
            else:
                env[key] = value
        return env

    # ------------------------------------------------------------------
    # Reading and reaping
    # ------------------------------------------------------------------

    def _drain(self, child: _Child, debug: bool) -> dict[str, bytes]:
        """Read every capture descriptor until end-of-file."""
        buffers = {STDOUT: bytearray(), STDERR: bytearray()}
        decoders = {
            name: codecs.getincrementaldecoder(self.config.encoding)(self.config.errors)
            for name in buffers
        }
        with selectors.DefaultSelector() as selector:
            for fd, name in child.readers.items():
                selector.register(fd, selectors.EVENT_READ, name)
            while selector.get_map():
                for key, _ in selector.select():
                    try:
                        chunk = os.read(key.fd, _READ_SIZE)
                    except OSError as exc:
                        # Linux reports EIO on a pty master once the slave side is gone.
                        if exc.errno != errno.EIO:
                            raise
                        chunk = b""
                    if not chunk:
                        selector.unregister(key.fd)
                        continue
                    buffers[key.data] += chunk
                    if debug:
                        self._echo(decoders[key.data].decode(chunk))
        return {name: bytes(buf) for name, buf in buffers.items()}

    @staticmethod
    def _reap(pid: int, argv: list[str]) -> int:
        _, wait_status = os.waitpid(pid, 0)
        if os.WIFSIGNALED(wait_status):
            raise AbnormalTerminationError(
                argv,
                signal=os.WTERMSIG(wait_status),
                core_dumped=os.WCOREDUMP(wait_status),
            )
        return os.WEXITSTATUS(wait_status)

    def _decode(self, raw: bytes, split: bool, trim: bool) -> str | list[str]:
        text = raw.decode(self.config.encoding, self.config.errors)
        if split:
            return split_lines(text, trim)
        return text

    def _echo(self, text: str) -> None:
        if not text:
            return
        stream = self.config.echo_stream
        stream.write(text)
        stream.flush()


def _read_all(fd: int) -> bytes:
    chunks = []
    while chunk := os.read(fd, _READ_SIZE):
        chunks.append(chunk)
    return b"".join(chunks)


def _close_quietly(fd: int) -> None:
    try:
        os.close(fd)
    except OSError:
        pass


def _kill_and_reap(pid: int) -> None:
    """Kill and wait for a child whose output could not be read."""
    try:
        os.kill(pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    try:
        os.waitpid(pid, 0)
    except ChildProcessError:
        pass


def run(
    argv: Iterable[str | os.PathLike[str]],
    options: RunOptions | None = None,
    **overrides: Any,
) -> RunResult:
    """Run ``argv`` with a default-configured ``ProcessEngine``."""
    return ProcessEngine().run(argv, options, **overrides)
