"""Parsing of ``Label: value`` record listings.

Bulk listing output is a sequence of records separated by blank lines;
each record is a sequence of ``Label: value`` lines. Labels may contain
spaces, and only the first colon on a line separates label from value::

    Name: main_int
    Created: 2011-03-01T10:22:05Z
    View owner: builds

    Name: rel_1.2
    Created: 2012-07-14T08:00:00Z

Values are kept as strings; no field is interpreted here.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from typing import Final

from cmdgraph.errors import CmdgraphError

_RECORD_BREAK: Final[re.Pattern[str]] = re.compile(r"^\s*$", re.MULTILINE)
_FIELD: Final[re.Pattern[str]] = re.compile(r"\s*(.*?):\s*(.*)")

Record = dict[str, str]


class RecordParseError(CmdgraphError, ValueError):
    """Raised when a record has no line for the expected name field.

    Parameters
    ----------
    name_field:
        Label that was expected to name the record.
    record:
        The fields that were parsed from the block.
    """

    def __init__(self, name_field: str, record: Record) -> None:
        self.name_field = name_field
        self.record = record
        super().__init__(f"Record has no {name_field!r} field: {sorted(record)}")


def split_records(text: str) -> list[str]:
    """Split listing output into record blocks on blank lines.

    Blocks that contain only whitespace are dropped.
    """
    return [block for block in _RECORD_BREAK.split(text) if block.strip()]


def unpack_record(lines: Iterable[str]) -> Record:
    """Build a record from ``Label: value`` lines.

    Lines without a colon are ignored. A repeated label keeps the last
    value.
    """
    record: Record = {}
    for line in lines:
        match = _FIELD.match(line)
        if match is not None:
            record[match.group(1)] = match.group(2).rstrip("\r")
    return record


def record_name(record: Record, name_field: str) -> str:
    """Return the value of ``name_field`` in ``record``.

    Raises
    ------
    RecordParseError
        If the field is missing or empty.
    """
    name = record.get(name_field)
    if not name:
        raise RecordParseError(name_field, record)
    return name


def parse_records(text: str, name_field: str) -> Iterator[tuple[str, Record]]:
    """Yield ``(name, record)`` for each block in ``text``.

    Raises
    ------
    RecordParseError
        When a block has no ``name_field`` line. Blocks before it have
        already been yielded; callers that want to skip bad blocks should
        use :func:`split_records` and :func:`record_name` directly.
    """
    for block in split_records(text):
        record = unpack_record(block.splitlines())
        yield record_name(record, name_field), record
