"""Shared core utilities for the workflows export."""

from .config import DEFAULT_EXCLUDED_COLUMNS, Settings, get_settings
from .exceptions import (
    ApiError,
    AuthenticationError,
    ExportError,
    OrgDiscoveryError,
    UnauthorizedError,
    WorkflowsDumpError,
)
from .logging import configure_logging, get_logger
from .models import (
    ExportSummary,
    Group,
    Manifest,
    NormalizedTable,
    PackRecord,
    TableExport,
    TableRef,
)
from .uris import sanitize_name, workflows_base_from_url

__all__ = [
    "DEFAULT_EXCLUDED_COLUMNS",
    "Settings",
    "get_settings",
    "WorkflowsDumpError",
    "ApiError",
    "UnauthorizedError",
    "AuthenticationError",
    "OrgDiscoveryError",
    "ExportError",
    "configure_logging",
    "get_logger",
    "Group",
    "TableRef",
    "NormalizedTable",
    "PackRecord",
    "TableExport",
    "Manifest",
    "ExportSummary",
    "sanitize_name",
    "workflows_base_from_url",
]
