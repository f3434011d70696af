"""Custom exception hierarchy for the export."""

from __future__ import annotations


class WorkflowsDumpError(Exception):
    """Base error for the workflows export."""


class ApiError(WorkflowsDumpError):
    """Raised when the workflows API returns a non-success response."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class UnauthorizedError(ApiError):
    """Raised on 401/403 responses; the token is missing, stale or lacks rights."""


class AuthenticationError(WorkflowsDumpError):
    """Raised when no auth token could be obtained from any source."""


class OrgDiscoveryError(WorkflowsDumpError):
    """Raised when the org id cannot be determined from the org response."""


class ExportError(WorkflowsDumpError):
    """Raised when a bundle or table cannot be exported."""
