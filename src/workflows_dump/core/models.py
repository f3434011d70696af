"""Shared data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping


@dataclass(slots=True, frozen=True)
class Group:
    id: int
    name: str

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(slots=True, frozen=True)
class TableRef:
    """A table (stash) entry as listed for a group."""

    id: str
    name: str | None = None


@dataclass(slots=True)
class NormalizedTable:
    headers: list[str]
    records: list[dict[str, Any]] = field(default_factory=list)


@dataclass(slots=True)
class PackRecord:
    group_id: int
    group_name: str
    file: Path

    def as_dict(self) -> dict[str, Any]:
        return {"groupId": self.group_id, "groupName": self.group_name, "file": str(self.file)}


@dataclass(slots=True)
class TableExport:
    group_id: int
    table_id: str
    name: str
    file: Path
    rows: int
    columns: int


@dataclass(slots=True)
class Manifest:
    source_base: str
    csv_root: Path
    org_id: int
    org_raw: Mapping[str, Any] | Any
    groups: list[Group]
    packs: list[PackRecord]

    def as_dict(self) -> dict[str, Any]:
        return {
            "sourceBase": self.source_base,
            "csvRoot": str(self.csv_root),
            "org": {"id": self.org_id, "raw": self.org_raw},
            "groups_count": len(self.groups),
            "groups": [group.as_dict() for group in self.groups],
            "packs_exported": len(self.packs),
            "packs": [pack.as_dict() for pack in self.packs],
        }


@dataclass(slots=True)
class ExportSummary:
    manifest: Manifest
    tables: list[TableExport] = field(default_factory=list)
    manifest_path: Path | None = None
