"""CSV materialization for normalized tables."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from workflows_dump.core.config import DEFAULT_EXCLUDED_COLUMNS

RFC4180_LINE_TERMINATOR = "\r\n"


def render_value(value: Any) -> str:
    """Render a single JSON value as CSV field text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


class CsvWriter:
    """Writes headers and records as RFC 4180 CSV.

    Record keys that are not headers are dropped, missing keys become empty
    fields. The whole document is rendered before the file is touched.
    """

    def __init__(
        self,
        excluded_columns: Iterable[str] = DEFAULT_EXCLUDED_COLUMNS,
        *,
        line_terminator: str = RFC4180_LINE_TERMINATOR,
    ) -> None:
        self._excluded = frozenset(excluded_columns)
        self._line_terminator = line_terminator

    def render(self, headers: Sequence[str], records: Iterable[Mapping[str, Any]]) -> str:
        fieldnames = [header for header in headers if header not in self._excluded]
        buffer = io.StringIO(newline="")
        writer = csv.DictWriter(
            buffer,
            fieldnames=fieldnames,
            restval="",
            extrasaction="ignore",
            lineterminator=self._line_terminator,
            quoting=csv.QUOTE_MINIMAL,
        )
        writer.writeheader()
        for record in records:
            writer.writerow({key: render_value(value) for key, value in record.items()})
        return buffer.getvalue()

    def write(
        self,
        path: Path,
        headers: Sequence[str],
        records: Iterable[Mapping[str, Any]],
    ) -> Path:
        text = self.render(headers, records)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8", newline="")
        return path


def write_csv(
    path: Path,
    headers: Sequence[str],
    records: Iterable[Mapping[str, Any]],
    *,
    excluded_columns: Iterable[str] = DEFAULT_EXCLUDED_COLUMNS,
) -> Path:
    """Functional wrapper around CsvWriter."""
    return CsvWriter(excluded_columns).write(path, headers, records)
