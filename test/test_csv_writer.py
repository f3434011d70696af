from __future__ import annotations

import csv
import io
from pathlib import Path

from workflows_dump.normalization.csv_writer import CsvWriter, render_value, write_csv
from workflows_dump.normalization.records import normalize_rows


def _read_rows(path: Path) -> list[list[str]]:
    with path.open(newline="", encoding="utf-8") as handle:
        return list(csv.reader(handle))


def test_write_round_trips_through_csv_reader(tmp_path: Path) -> None:
    headers = ["name", "note", "count"]
    records = [
        {"name": "Smith, Jane", "note": 'said "hi"', "count": 3},
        {"name": "multi\nline", "note": None, "count": 0},
        {"name": "carriage\r\nreturn", "count": 1.5},
    ]
    target = tmp_path / "nested" / "dir" / "people.csv"

    write_csv(target, headers, records)

    rows = _read_rows(target)
    assert rows[0] == headers
    assert rows[1:] == [
        ["Smith, Jane", 'said "hi"', "3"],
        ["multi\nline", "", "0"],
        ["carriage\r\nreturn", "", "1.5"],
    ]


def test_quotes_only_fields_that_need_it() -> None:
    text = CsvWriter(line_terminator="\n").render(
        ["a", "b", "c"],
        [{"a": "plain", "b": "x,y", "c": 'q"q'}],
    )

    assert text == 'a,b,c\nplain,"x,y","q""q"\n'


def test_header_row_uses_same_escaping() -> None:
    text = CsvWriter(line_terminator="\n").render(['col "1"', "col,2"], [])

    assert text == '"col ""1""","col,2"\n'


def test_column_order_follows_headers_and_extra_keys_are_dropped() -> None:
    text = CsvWriter(line_terminator="\n").render(
        ["b", "a"],
        [{"a": 1, "b": 2, "z": "ignored"}, {"a": 3}],
    )

    assert text.splitlines() == ["b,a", "2,1", ",3"]


def test_excluded_headers_are_not_written() -> None:
    text = CsvWriter({"system"}, line_terminator="\n").render(["system", "a"], [{"system": 1, "a": 2}])

    assert text.splitlines() == ["a", "2"]


def test_render_value_formats_json_values() -> None:
    assert render_value(None) == ""
    assert render_value(True) == "true"
    assert render_value(False) == "false"
    assert render_value(7) == "7"
    assert render_value({"k": [1, 2]}) == '{"k":[1,2]}'
    assert render_value("ünïcode") == "ünïcode"


def test_write_overwrites_existing_file(tmp_path: Path) -> None:
    target = tmp_path / "table.csv"
    target.write_text("stale", encoding="utf-8")

    CsvWriter().write(target, ["value"], [{"value": "fresh"}])

    assert _read_rows(target) == [["value"], ["fresh"]]


def test_normalized_array_rows_round_trip(tmp_path: Path) -> None:
    table = normalize_rows({"data": [[1, 2], [3]]})
    target = tmp_path / "rows.csv"

    CsvWriter().write(target, table.headers, table.records)

    assert _read_rows(target) == [["col1", "col2"], ["1", "2"], ["3", ""]]


def test_render_keeps_everything_in_one_buffer() -> None:
    text = CsvWriter(line_terminator="\r\n").render(["v"], [{"v": "a"}, {"v": "b"}])

    assert list(csv.reader(io.StringIO(text, newline=""))) == [["v"], ["a"], ["b"]]
