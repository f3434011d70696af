"""Row payload normalization for table (stash) exports.

The stash row endpoints have no stable response contract. Depending on the
table and API version the payload is a list of row objects, a list of
positional row arrays, a list of bare values, a single value, or any of those
wrapped under ``rows``/``data``/``items``/``result``. ``RecordNormalizer``
inspects the shape once and turns every variant into an ordered header list
plus flat records.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from workflows_dump.core.config import DEFAULT_EXCLUDED_COLUMNS
from workflows_dump.core.models import NormalizedTable

WRAPPER_KEYS: tuple[str, ...] = ("rows", "data", "items", "result")
VALUE_COLUMN = "value"


class RowShape(Enum):
    OBJECT_ROWS = "object_rows"
    ARRAY_ROWS = "array_rows"
    SCALAR_ROWS = "scalar_rows"
    SINGLE_SCALAR = "single_scalar"


def unwrap_rows(payload: Any) -> Any:
    """Return the array held under the first recognised wrapper key, if any."""
    if isinstance(payload, Mapping):
        for key in WRAPPER_KEYS:
            inner = payload.get(key)
            if isinstance(inner, list):
                return inner
    return payload


def classify_rows(payload: Any) -> RowShape:
    """Classify an already unwrapped payload."""
    if not isinstance(payload, list):
        return RowShape.SINGLE_SCALAR
    if payload and all(isinstance(row, Mapping) for row in payload):
        return RowShape.OBJECT_ROWS
    if payload and all(isinstance(row, list) for row in payload):
        return RowShape.ARRAY_ROWS
    return RowShape.SCALAR_ROWS


def column_names(meta: Any) -> list[str]:
    """Extract raw column names from table metadata (``columns`` or ``schema.columns``)."""
    if not isinstance(meta, Mapping):
        return []
    columns = meta.get("columns")
    if not isinstance(columns, list):
        schema = meta.get("schema")
        columns = schema.get("columns") if isinstance(schema, Mapping) else None
    if not isinstance(columns, list):
        return []
    names: list[str] = []
    for column in columns:
        if isinstance(column, Mapping):
            name = column.get("name")
        elif column is None:
            name = None
        else:
            name = column
        if name is not None and name != "":
            names.append(str(name))
    return names


class RecordNormalizer:
    """Turns raw stash rows and optional metadata into headers and records."""

    def __init__(self, excluded_columns: Iterable[str] = DEFAULT_EXCLUDED_COLUMNS) -> None:
        self._excluded = frozenset(excluded_columns)

    @property
    def excluded_columns(self) -> frozenset[str]:
        return self._excluded

    def normalize(self, rows_payload: Any, meta: Any = None) -> NormalizedTable:
        meta_columns = self._keep(column_names(meta))
        meta_headers = self._unique(meta_columns)
        rows = unwrap_rows(rows_payload)
        shape = classify_rows(rows)

        if shape is RowShape.OBJECT_ROWS:
            records = [self._strip(row) for row in rows]
        elif shape is RowShape.ARRAY_ROWS:
            records = self._positional_records(rows, meta_columns)
        elif shape is RowShape.SCALAR_ROWS:
            records = [{VALUE_COLUMN: value} for value in rows] if self._value_allowed else []
        else:
            records = [{VALUE_COLUMN: rows}] if self._value_allowed else []

        headers = self._resolve_headers(meta_headers, records)
        return NormalizedTable(headers=self._keep(headers), records=records)

    @property
    def _value_allowed(self) -> bool:
        return VALUE_COLUMN not in self._excluded

    def _keep(self, names: Iterable[str]) -> list[str]:
        return [name for name in names if name not in self._excluded]

    def _strip(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in row.items() if key not in self._excluded}

    def _positional_records(
        self, rows: list[list[Any]], meta_columns: list[str]
    ) -> list[dict[str, Any]]:
        width = max(len(row) for row in rows)
        if meta_columns:
            headers = meta_columns[:width]
            # Metadata narrower than the widest row: name the remaining positions.
            headers += [f"col{index + 1}" for index in range(len(headers), width)]
        else:
            headers = [f"col{index + 1}" for index in range(width)]
        headers = self._keep(headers)
        # Positions are assigned before deduplication; a repeated name keeps its last value.
        return [
            {header: row[index] if index < len(row) else None for index, header in enumerate(headers)}
            for row in rows
        ]

    def _resolve_headers(
        self, meta_headers: list[str], records: list[dict[str, Any]]
    ) -> list[str]:
        if meta_headers:
            return meta_headers
        headers = self._unique(key for record in records for key in record if key not in self._excluded)
        if not headers and self._value_allowed:
            headers = [VALUE_COLUMN]
        return headers

    @staticmethod
    def _unique(names: Iterable[str]) -> list[str]:
        return list(dict.fromkeys(names))


def normalize_rows(
    rows_payload: Any,
    meta: Any = None,
    *,
    excluded_columns: Iterable[str] = DEFAULT_EXCLUDED_COLUMNS,
) -> NormalizedTable:
    """Functional wrapper around RecordNormalizer."""
    return RecordNormalizer(excluded_columns).normalize(rows_payload, meta)
