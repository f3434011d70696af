"""Export orchestration (worker pool, manifest, end-to-end run)."""

from .manifest import dump_json, write_manifest
from .orchestrator import ExportOrchestrator, export_workflows
from .pool import WorkerPool, run_pool

__all__ = [
    "ExportOrchestrator",
    "WorkerPool",
    "dump_json",
    "export_workflows",
    "run_pool",
    "write_manifest",
]
