"""Record parsing module.

Exports the listing parsers, the ``RecordParseError`` type and the
``RecordSerializer``.
"""
from __future__ import annotations

from cmdgraph.records.parser import (
    Record,
    RecordParseError,
    parse_records,
    record_name,
    split_records,
    unpack_record,
)
from cmdgraph.records.serializer import RecordSerializer

__all__ = [
    "Record",
    "RecordParseError",
    "parse_records",
    "record_name",
    "split_records",
    "unpack_record",
    "RecordSerializer",
]
