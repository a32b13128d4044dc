"""Unit tests for cmdgraph.records.parser."""
from __future__ import annotations

import pytest

from cmdgraph.errors import CmdgraphError
from cmdgraph.records.parser import (
    RecordParseError,
    parse_records,
    record_name,
    split_records,
    unpack_record,
)

LISTING = """\
Name: main_int
Created: 2011-03-01T10:22:05Z
View owner: builds

Name: rel_1.2
Created: 2012-07-14T08:00:00Z
"""


class TestSplitRecords:
    def test_blocks_split_on_blank_lines(self) -> None:
        blocks = split_records(LISTING)
        assert len(blocks) == 2
        assert "main_int" in blocks[0]
        assert "rel_1.2" in blocks[1]

    def test_whitespace_only_lines_separate_blocks(self) -> None:
        assert len(split_records("Name: a\n   \nName: b\n")) == 2

    def test_several_blank_lines_give_no_empty_blocks(self) -> None:
        assert len(split_records("\n\nName: a\n\n\n\nName: b\n\n")) == 2

    def test_empty_output_has_no_blocks(self) -> None:
        assert split_records("") == []


class TestUnpackRecord:
    def test_labels_with_spaces(self) -> None:
        record = unpack_record(["Name: main_int", "View owner: builds"])
        assert record == {"Name": "main_int", "View owner": "builds"}

    def test_only_first_colon_separates(self) -> None:
        assert unpack_record(["Time: 10:22:05"]) == {"Time": "10:22:05"}

    def test_surrounding_whitespace_is_dropped(self) -> None:
        assert unpack_record(["   Owner:    builds"]) == {"Owner": "builds"}

    def test_carriage_returns_are_stripped(self) -> None:
        assert unpack_record(["Name: a\r"]) == {"Name": "a"}

    def test_lines_without_colon_are_ignored(self) -> None:
        assert unpack_record(["Name: a", "no colon here"]) == {"Name": "a"}

    def test_empty_value(self) -> None:
        assert unpack_record(["Comment:"]) == {"Comment": ""}

    def test_repeated_label_keeps_last(self) -> None:
        assert unpack_record(["Tag: a", "Tag: b"]) == {"Tag": "b"}


class TestRecordName:
    def test_returns_name(self) -> None:
        assert record_name({"Name": "a"}, "Name") == "a"

    def test_missing_field_raises(self) -> None:
        with pytest.raises(RecordParseError) as info:
            record_name({"Owner": "x"}, "Name")
        assert info.value.name_field == "Name"
        assert info.value.record == {"Owner": "x"}
        assert "Name" in str(info.value)

    def test_empty_name_raises(self) -> None:
        with pytest.raises(RecordParseError):
            record_name({"Name": ""}, "Name")

    def test_error_is_a_cmdgraph_error(self) -> None:
        assert issubclass(RecordParseError, CmdgraphError)
        assert issubclass(RecordParseError, ValueError)


class TestParseRecords:
    def test_yields_name_and_record(self) -> None:
        parsed = dict(parse_records(LISTING, "Name"))
        assert list(parsed) == ["main_int", "rel_1.2"]
        assert parsed["main_int"]["View owner"] == "builds"

    def test_other_name_field(self) -> None:
        parsed = dict(parse_records("Tag: v1\nHost: a\n\nTag: v2\n", "Tag"))
        assert list(parsed) == ["v1", "v2"]

    def test_bad_block_raises_after_good_ones(self) -> None:
        gen = parse_records("Name: a\n\nOwner: b\n", "Name")
        assert next(gen)[0] == "a"
        with pytest.raises(RecordParseError):
            next(gen)
