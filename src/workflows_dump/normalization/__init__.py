"""Stash row normalization and CSV output."""

from .csv_writer import CsvWriter, render_value, write_csv
from .records import RecordNormalizer, RowShape, classify_rows, normalize_rows, unwrap_rows

__all__ = [
    "CsvWriter",
    "RecordNormalizer",
    "RowShape",
    "classify_rows",
    "normalize_rows",
    "render_value",
    "unwrap_rows",
    "write_csv",
]
