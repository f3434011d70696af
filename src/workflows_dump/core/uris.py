"""Helpers for resolving workflows base URLs and output file names."""

from __future__ import annotations

import re
from typing import Final
from urllib.parse import urlsplit

from .exceptions import WorkflowsDumpError

MAX_NAME_LENGTH: Final[int] = 200
UNNAMED: Final[str] = "unnamed"

_UNSAFE_RUN = re.compile(r"[^A-Za-z0-9._\\-]+")


def sanitize_name(name: str | None) -> str:
    """Return a filesystem-safe name shared by bundle and CSV files."""
    cleaned = (name or "").strip().replace(" ", "_")
    cleaned = _UNSAFE_RUN.sub("_", cleaned)[:MAX_NAME_LENGTH]
    return cleaned or UNNAMED


def workflows_base_from_url(any_okta_url: str) -> tuple[str, str]:
    """Derive the workflows base URL and hostname from any tenant URL.

    ``https://acme-admin.okta.com/...`` and ``https://acme.okta.com`` both map to
    ``https://acme-admin.workflows.okta.com`` / ``https://acme.workflows.okta.com``;
    preview tenants keep the ``oktapreview`` domain.
    """
    host = urlsplit(any_okta_url).hostname or ""
    parts = host.split(".")
    if len(parts) < 2:
        raise WorkflowsDumpError(f"Cannot parse hostname from URL: {any_okta_url}")
    if len(parts) == 2:
        raise WorkflowsDumpError(f"Could not find Okta subdomain in: {any_okta_url}")
    env = "oktapreview" if "oktapreview" in parts else "okta"
    hostname = f"{parts[0]}.workflows.{env}.com"
    return f"https://{hostname}", hostname


def hostname_of(base_url: str) -> str:
    return urlsplit(base_url).hostname or ""
