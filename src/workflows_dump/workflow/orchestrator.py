"""End-to-end export of bundles, tables and the run manifest."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Callable

from workflows_dump.api.client import WorkflowsApiClient, extract_org_id
from workflows_dump.auth.tokens import TokenProvider
from workflows_dump.core.config import Settings, get_settings
from workflows_dump.core.exceptions import AuthenticationError, ExportError, WorkflowsDumpError
from workflows_dump.core.logging import get_logger
from workflows_dump.core.models import ExportSummary, Group, Manifest, PackRecord, TableExport, TableRef
from workflows_dump.core.uris import sanitize_name
from workflows_dump.normalization.csv_writer import CsvWriter
from workflows_dump.normalization.records import RecordNormalizer

from .manifest import write_manifest
from .pool import WorkerPool

LOGGER = get_logger(__name__)

UNNAMED_TABLE = "(unnamed_stash)"
BUNDLE_SUFFIX = ".folder"


class ExportOrchestrator:
    """Discovers the org and its groups, then exports bundles and table CSVs."""

    def __init__(
        self,
        client: WorkflowsApiClient,
        settings: Settings | None = None,
        *,
        normalizer: RecordNormalizer | None = None,
        csv_writer: CsvWriter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        excluded = self._settings.excluded_columns
        self._normalizer = normalizer or RecordNormalizer(excluded)
        self._csv_writer = csv_writer or CsvWriter(excluded)
        self._sleep = sleep
        self._out_dir = Path(self._settings.out_dir).resolve()
        self._reserved_paths: set[Path] = set()
        self._paths_lock = threading.Lock()

    @property
    def out_dir(self) -> Path:
        return self._out_dir

    def run(self) -> ExportSummary:
        self._out_dir.mkdir(parents=True, exist_ok=True)

        LOGGER.info("export.fetch_org")
        org_payload = self._client.fetch_org()
        org_id = extract_org_id(org_payload)
        LOGGER.info("export.org", org_id=org_id)

        LOGGER.info("export.fetch_groups")
        groups = self._client.fetch_groups(org_id, name_filter=self._settings.group_filter)
        LOGGER.info("export.groups", count=len(groups))
        group_dirs = self._prepare_group_dirs(groups)

        LOGGER.info("export.bundles_start")
        packs: list[PackRecord] = []
        for position, group in enumerate(groups, start=1):
            pack = self.export_bundle(org_id, group, group_dirs[group.id], position=position, total=len(groups))
            if pack is not None:
                packs.append(pack)
            self._pause()

        LOGGER.info("export.tables_start")
        tables: list[TableExport] = []
        for group in groups:
            tables.extend(self.export_tables(org_id, group, group_dirs[group.id]))

        manifest = Manifest(
            source_base=self._client.base_url,
            csv_root=self._out_dir,
            org_id=org_id,
            org_raw=org_payload,
            groups=groups,
            packs=packs,
        )
        summary = ExportSummary(manifest=manifest, tables=tables)
        manifest_path = Path(self._settings.out_json).resolve()
        try:
            summary.manifest_path = write_manifest(manifest, manifest_path)
            LOGGER.info("export.manifest_written", path=str(manifest_path))
        except OSError as exc:
            LOGGER.warning("export.manifest_failed", path=str(manifest_path), error=str(exc))

        LOGGER.info(
            "export.summary",
            groups=len(groups),
            bundles=len(packs),
            tables=len(tables),
            csv_root=str(self._out_dir),
        )
        return summary

    def _prepare_group_dirs(self, groups: list[Group]) -> dict[Any, Path]:
        group_dirs: dict[Any, Path] = {}
        for group in groups:
            group_dir = self._out_dir / sanitize_name(group.name)
            group_dir.mkdir(parents=True, exist_ok=True)
            group_dirs[group.id] = group_dir
        return group_dirs

    def export_bundle(
        self,
        org_id: int,
        group: Group,
        group_dir: Path,
        *,
        position: int = 1,
        total: int = 1,
    ) -> PackRecord | None:
        """Download one group's ``.folder`` bundle; failures are logged and yield ``None``."""
        target = group_dir / f"{sanitize_name(group.name)}{BUNDLE_SUFFIX}"
        LOGGER.info(
            "export.bundle",
            position=f"{position}/{total}",
            group=group.name,
            group_id=group.id,
            file=target.name,
        )
        try:
            blob = self._client.download_bundle(org_id, group.id)
            self.write_bundle(target, blob)
        except WorkflowsDumpError as exc:
            LOGGER.warning("export.bundle_failed", group=group.name, group_id=group.id, error=str(exc))
            return None
        LOGGER.info("export.bundle_saved", group=group.name, bytes=len(blob))
        return PackRecord(group_id=group.id, group_name=group.name, file=target)

    @staticmethod
    def write_bundle(target: Path, blob: bytes) -> None:
        try:
            target.write_bytes(blob)
        except OSError as exc:
            raise ExportError(f"Failed to write {target.name}: {exc}") from exc

    def reserve_csv_path(self, group_dir: Path, table_name: str) -> Path:
        """Claim a CSV path in ``group_dir``; names already taken get a ``_2``, ``_3`` ... suffix."""
        stem = sanitize_name(table_name)
        with self._paths_lock:
            candidate = group_dir / f"{stem}.csv"
            counter = 1
            while candidate in self._reserved_paths:
                counter += 1
                candidate = group_dir / f"{stem}_{counter}.csv"
            self._reserved_paths.add(candidate)
        return candidate

    def export_tables(self, org_id: int, group: Group, group_dir: Path) -> list[TableExport]:
        tables = self._client.list_tables(org_id, group.id)
        if not tables:
            return []
        LOGGER.info("export.group_tables", group=group.name, count=len(tables))

        def worker(table: TableRef, _index: int, cancel_event: threading.Event) -> TableExport | None:
            if cancel_event.is_set():
                return None
            exported = self.export_table(org_id, group, table, group_dir)
            self._pause()
            return exported

        pool: WorkerPool[TableRef, TableExport | None] = WorkerPool(self._settings.pool_limit, name="tables")
        return [result for result in pool.run(tables, worker) if result is not None]

    def export_table(self, org_id: int, group: Group, table: TableRef, group_dir: Path) -> TableExport | None:
        """Fetch, normalize and write one table; failures are logged and yield ``None``."""
        name = table.name or UNNAMED_TABLE
        try:
            meta = self._client.fetch_table_meta(org_id, table.id)
            if isinstance(meta, dict) and meta.get("name"):
                name = str(meta["name"])
            rows_payload = self._client.fetch_table_rows(org_id, table.id)
            normalized = self._normalizer.normalize(rows_payload, meta)
            target = self.reserve_csv_path(group_dir, name)
            try:
                self._csv_writer.write(target, normalized.headers, normalized.records)
            except OSError as exc:
                raise ExportError(f"Failed to write {target.name}: {exc}") from exc
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.warning(
                "export.table_failed",
                group=group.name,
                table=name,
                table_id=table.id,
                error=str(exc),
            )
            return None
        LOGGER.info(
            "export.table_saved",
            group=group.name,
            file=target.name,
            rows=len(normalized.records),
            columns=len(normalized.headers),
        )
        return TableExport(
            group_id=group.id,
            table_id=table.id,
            name=name,
            file=target,
            rows=len(normalized.records),
            columns=len(normalized.headers),
        )

    def _pause(self) -> None:
        if self._settings.sleep > 0:
            self._sleep(self._settings.sleep)


def export_workflows(
    base_url: str,
    hostname: str,
    settings: Settings | None = None,
    *,
    token_provider: TokenProvider | None = None,
) -> ExportSummary:
    """Authenticate against ``base_url`` and run a full export."""
    resolved_settings = settings or get_settings()
    provider = token_provider or TokenProvider(resolved_settings)
    LOGGER.info("export.target", base_url=base_url)
    LOGGER.info("auth.obtaining_token")
    token = provider.obtain_token(hostname, base_url)
    if not token:
        raise AuthenticationError("Could not obtain auth_token.")
    LOGGER.debug("auth.token_obtained", length=len(token))
    with WorkflowsApiClient(base_url, token, resolved_settings) as client:
        return ExportOrchestrator(client, resolved_settings).run()
