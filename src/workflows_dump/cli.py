"""Command line entry point: ``workflows-dump [URL]``."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from workflows_dump.core.config import Settings, get_settings
from workflows_dump.core.exceptions import WorkflowsDumpError
from workflows_dump.core.logging import configure_logging, get_logger
from workflows_dump.core.uris import hostname_of, workflows_base_from_url
from workflows_dump.workflow.orchestrator import export_workflows

LOGGER = get_logger(__name__)

EXIT_FATAL = 1
EXIT_USAGE = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export workflow .folder bundles, table CSVs and a JSON manifest.",
    )
    parser.add_argument(
        "url",
        nargs="?",
        help="Any tenant URL (e.g. https://acme.okta.com/admin); used when WF_BASE/WF_HOST are unset.",
    )
    parser.add_argument("--out-dir", type=Path, help="Root directory for bundles and CSVs (WF_OUT_DIR).")
    parser.add_argument("--out-json", type=Path, help="Manifest path (WF_OUT_JSON).")
    parser.add_argument("--group-filter", help="Only export groups whose name contains this text.")
    parser.add_argument("--max-workers", type=int, help="Concurrent table exports per group (1-8).")
    parser.add_argument("--no-playwright", action="store_true", help="Skip browser automation for login.")
    parser.add_argument("--debug", action="store_true", help="Verbose logging.")
    return parser.parse_args(argv)


def resolve_target(settings: Settings, url: str | None) -> tuple[str, str]:
    """Return ``(base_url, hostname)`` from settings, falling back to the positional URL."""
    if settings.base:
        base = settings.base.rstrip("/")
        return base, hostname_of(base) or settings.host
    if settings.host:
        return f"https://{settings.host}", settings.host
    if url:
        return workflows_base_from_url(url)
    raise ValueError("Provide any Okta URL or set WF_HOST or WF_BASE")


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    updates: dict[str, Any] = {}
    if args.out_dir is not None:
        updates["out_dir"] = args.out_dir
    if args.out_json is not None:
        updates["out_json"] = args.out_json
    if args.group_filter is not None:
        updates["group_filter"] = args.group_filter.strip()
    if args.max_workers is not None:
        updates["max_workers"] = args.max_workers
    if args.no_playwright:
        updates["use_playwright"] = False
    if args.debug:
        updates["debug"] = True
    return settings.model_copy(update=updates) if updates else settings


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = _apply_overrides(get_settings(), args)
    configure_logging(settings=settings)

    try:
        base_url, hostname = resolve_target(settings, args.url)
    except (ValueError, WorkflowsDumpError) as exc:
        LOGGER.error("cli.usage", error=str(exc))
        return EXIT_USAGE

    try:
        summary = export_workflows(base_url, hostname, settings)
    except WorkflowsDumpError as exc:
        LOGGER.error("export.fatal", error=str(exc))
        return EXIT_FATAL

    manifest = summary.manifest
    LOGGER.info(
        "export.complete",
        groups=len(manifest.groups),
        folder_exports=len(manifest.packs),
        csv_root=str(manifest.csv_root),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
