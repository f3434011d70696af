"""HTTP client for the workflows internal web API."""

from __future__ import annotations

import json
from contextlib import AbstractContextManager
from typing import Any, Iterable, Mapping

import httpx

from workflows_dump.core.config import Settings, get_settings
from workflows_dump.core.exceptions import ApiError, OrgDiscoveryError, UnauthorizedError
from workflows_dump.core.logging import get_logger
from workflows_dump.core.models import Group, TableRef

LOGGER = get_logger(__name__)

UNAUTHORIZED_STATUSES = frozenset({401, 403})

GROUP_LIST_PATHS: tuple[tuple[str, ...], ...] = (
    ("groups",),
    ("data", "groups"),
    ("org", "groups"),
    ("organization", "groups"),
)


def default_headers(base_url: str, auth_token: str, *, user_agent: str) -> dict[str, str]:
    return {
        "accept": "application/json",
        "x-requested-with": "XMLHttpRequest",
        "referer": f"{base_url}/app/",
        "user-agent": user_agent,
        "cookie": f"auth_token={auth_token}",
    }


class WorkflowsApiClient(AbstractContextManager["WorkflowsApiClient"]):
    """Thin wrapper around the ``/app/api`` endpoints used by the export."""

    def __init__(
        self,
        base_url: str,
        auth_token: str,
        settings: Settings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._settings.timeout,
            headers=default_headers(self._base_url, auth_token, user_agent=self._settings.user_agent),
            follow_redirects=True,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    # Context manager API -----------------------------------------------------
    def __enter__(self) -> "WorkflowsApiClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:  # type: ignore[override]
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    # Transport ---------------------------------------------------------------
    def get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET a JSON document; non-JSON bodies that do not look like an object yield ``{}``."""
        response = self._get(path, params)
        content_type = response.headers.get("content-type", "")
        try:
            if "application/json" in content_type:
                return response.json()
            text = response.text.strip()
            return json.loads(text) if text.startswith("{") else {}
        except ValueError as exc:
            # Also covers bodies that are not valid UTF-8 (UnicodeDecodeError).
            raise ApiError(f"GET {response.request.url} -> invalid JSON", url=str(response.request.url)) from exc

    def get_blob(self, path: str, params: Mapping[str, Any] | None = None) -> bytes:
        return self._get(path, params).content

    def _get(self, path: str, params: Mapping[str, Any] | None) -> httpx.Response:
        try:
            response = self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise ApiError(f"GET {path} failed: {exc}", url=path) from exc
        url = str(response.request.url)
        if response.status_code in UNAUTHORIZED_STATUSES:
            LOGGER.error(
                "api.unauthorized",
                url=url,
                status=response.status_code,
                header_names=sorted(self._client.headers.keys()),
            )
            raise UnauthorizedError(
                f"GET {url} -> {response.status_code} (unauthorized or forbidden)",
                status_code=response.status_code,
                url=url,
            )
        if response.is_error:
            raise ApiError(f"GET {url} -> {response.status_code}", status_code=response.status_code, url=url)
        return response

    # Org & groups ------------------------------------------------------------
    def fetch_org(self) -> Any:
        return self.get_json("/app/api/org")

    def fetch_groups(self, org_id: int, *, name_filter: str = "") -> list[Group]:
        """Try the known group endpoints in order until one yields a non-empty list."""
        candidates: list[tuple[str, dict[str, Any] | None]] = [
            ("/app/api/group", {"org_id": org_id}),
            ("/app/api/groups", {"orgId": org_id}),
            ("/app/api/groups", None),
            (f"/app/api/org/{org_id}/groups", None),
        ]
        raw_groups: list[Any] = []
        for path, params in candidates:
            try:
                data = self.get_json(path, params)
            except ApiError as exc:
                LOGGER.debug("api.groups_endpoint_failed", path=path, error=str(exc))
                continue
            raw_groups = _find_group_list(data)
            if raw_groups:
                break
        groups = list(_parse_groups(raw_groups))
        needle = name_filter.strip().lower()
        if needle:
            groups = [group for group in groups if needle in str(group.name).lower()]
        return groups

    # Tables ------------------------------------------------------------------
    def list_tables(self, org_id: int, group_id: int) -> list[TableRef]:
        try:
            data = self.get_json("/app/api/stash", {"orgId": org_id, "groupId": group_id})
        except ApiError as exc:
            LOGGER.warning("api.list_tables_failed", group_id=group_id, error=str(exc))
            return []
        if not isinstance(data, list):
            return []
        return list(_parse_tables(data))

    def fetch_table_meta(self, org_id: int, table_id: str) -> Any:
        try:
            return self.get_json(f"/app/api/stash/{table_id}", {"orgId": org_id})
        except ApiError as exc:
            LOGGER.debug("api.table_meta_failed", table_id=table_id, error=str(exc))
            return {}

    def fetch_table_rows(self, org_id: int, table_id: str) -> Any:
        """Fetch stash rows, retrying once with the ``OrgId`` spelling of the query key."""
        path = f"/app/api/stash/{table_id}/row"
        try:
            return self.get_json(path, {"orgId": org_id})
        except ApiError as exc:
            LOGGER.debug("api.table_rows_retry", table_id=table_id, error=str(exc))
        return self.get_json(path, {"OrgId": org_id})

    # Bundles -----------------------------------------------------------------
    def download_bundle(self, org_id: int, group_id: int) -> bytes:
        return self.get_blob(
            "/app/api/publisher/flopack/export",
            {"orgId": org_id, "groupId": group_id, "includeSubfolders": "true"},
        )


def extract_org_id(payload: Any) -> int:
    """Return the org id from any of the known ``/app/api/org`` response shapes."""
    if isinstance(payload, Mapping):
        for key in ("orgId", "org_id", "id"):
            if _is_int(payload.get(key)):
                return payload[key]
        for key in ("org", "organization"):
            inner = payload.get(key)
            if isinstance(inner, Mapping):
                for inner_key in ("id", "orgId"):
                    if _is_int(inner.get(inner_key)):
                        return inner[inner_key]
    raise OrgDiscoveryError("Could not determine orgId from /app/api/org response")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _find_group_list(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if not isinstance(data, Mapping):
        return []
    for path in GROUP_LIST_PATHS:
        current: Any = data
        for segment in path:
            if not isinstance(current, Mapping) or segment not in current:
                current = None
                break
            current = current[segment]
        if isinstance(current, list):
            return current
    return []


def _first_present(entry: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def _parse_groups(raw_groups: Iterable[Any]) -> Iterable[Group]:
    for entry in raw_groups:
        if not isinstance(entry, Mapping):
            continue
        group_id = _first_present(entry, "id", "groupId")
        name = _first_present(entry, "name", "groupName")
        if group_id is not None and name:
            yield Group(id=group_id, name=str(name))


def _parse_tables(raw_tables: Iterable[Any]) -> Iterable[TableRef]:
    for entry in raw_tables:
        if not isinstance(entry, Mapping):
            continue
        table_id = _first_present(entry, "stashId", "id")
        if table_id is None or str(table_id) == "":
            continue
        name = entry.get("name")
        yield TableRef(id=str(table_id), name=str(name) if name else None)
