"""Workflows web API access."""

from .client import WorkflowsApiClient, default_headers, extract_org_id

__all__ = ["WorkflowsApiClient", "default_headers", "extract_org_id"]
