"""Manifest serialization."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from workflows_dump.core.models import Manifest


def dump_json(data: Any, path: Path) -> None:
    """Write JSON to disk with UTF-8 encoding, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def write_manifest(manifest: Manifest, path: Path) -> Path:
    dump_json(manifest.as_dict(), path)
    return path
