"""Serialization of parsed records to and from JSON and YAML.

The serialized form is a mapping from record name to the record's
fields, which maps naturally to both formats.

Usage
-----
::

    from cmdgraph.records.serializer import RecordSerializer

    serializer = RecordSerializer()
    yaml_text = serializer.to_yaml(records)
    assert serializer.from_yaml(yaml_text) == records
"""
from __future__ import annotations

import json
from collections.abc import Iterable, Mapping

import yaml

from cmdgraph.records.parser import Record

Records = dict[str, Record]


class RecordSerializer:
    """Converts parsed records between plain dicts, JSON and YAML.

    Records are keyed by entity name; each maps field labels to string
    values. The dict form is the common representation both text
    formats go through.
    """

    # ------------------------------------------------------------------
    # Plain data
    # ------------------------------------------------------------------

    def to_dict(self, records: Mapping[str, Record] | Iterable[tuple[str, Record]]) -> Records:
        """Return a fresh ``{name: {label: value}}`` dict."""
        items = records.items() if isinstance(records, Mapping) else records
        return {name: dict(fields) for name, fields in items}

    def from_dict(self, data: object) -> Records:
        """Validate and copy a ``{name: {label: value}}`` structure.

        Raises
        ------
        ValueError
            If ``data`` is not a mapping of mappings of strings.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Expected a mapping of records, got {type(data).__name__}")
        records: Records = {}
        for name, fields in data.items():
            if not isinstance(fields, Mapping):
                raise ValueError(f"Record {name!r} is not a mapping")
            records[str(name)] = {str(k): "" if v is None else str(v) for k, v in fields.items()}
        return records

    # ------------------------------------------------------------------
    # JSON helpers
    # ------------------------------------------------------------------

    def to_json(self, records: Mapping[str, Record], indent: int = 2) -> str:
        """Serialize records to a JSON string."""
        return json.dumps(self.to_dict(records), indent=indent, ensure_ascii=False)

    def from_json(self, text: str) -> Records:
        """Deserialize records from a JSON string."""
        return self.from_dict(json.loads(text))

    # ------------------------------------------------------------------
    # YAML helpers
    # ------------------------------------------------------------------

    def to_yaml(self, records: Mapping[str, Record]) -> str:
        """Serialize records to a YAML string."""
        return yaml.dump(self.to_dict(records), default_flow_style=False, allow_unicode=True)

    def from_yaml(self, text: str) -> Records:
        """Deserialize records from a YAML string."""
        return self.from_dict(yaml.safe_load(text) or {})
