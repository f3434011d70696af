from __future__ import annotations

from typing import Callable

import httpx
import pytest

from workflows_dump.api.client import WorkflowsApiClient, extract_org_id
from workflows_dump.core.config import Settings
from workflows_dump.core.exceptions import ApiError, OrgDiscoveryError, UnauthorizedError
from workflows_dump.core.models import Group, TableRef

BASE = "https://acme.workflows.okta.com"


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> WorkflowsApiClient:
    settings = Settings(timeout=5, auth_token="tok")
    return WorkflowsApiClient(BASE, "tok%3D", settings, transport=httpx.MockTransport(handler))


def test_requests_carry_session_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"orgId": 7})

    with _client(handler) as client:
        assert client.fetch_org() == {"orgId": 7}

    request = seen[0]
    assert str(request.url) == f"{BASE}/app/api/org"
    assert request.headers["cookie"] == "auth_token=tok%3D"
    assert request.headers["x-requested-with"] == "XMLHttpRequest"
    assert request.headers["referer"] == f"{BASE}/app/"
    assert request.headers["accept"] == "application/json"


@pytest.mark.parametrize("status", [401, 403])
def test_unauthorized_statuses_raise_unauthorized(status: int) -> None:
    with _client(lambda request: httpx.Response(status)) as client:
        with pytest.raises(UnauthorizedError) as excinfo:
            client.fetch_org()
    assert excinfo.value.status_code == status


def test_other_errors_raise_api_error() -> None:
    with _client(lambda request: httpx.Response(500)) as client:
        with pytest.raises(ApiError) as excinfo:
            client.get_json("/app/api/org")
    assert not isinstance(excinfo.value, UnauthorizedError)
    assert excinfo.value.status_code == 500


def test_transport_errors_are_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with _client(handler) as client:
        with pytest.raises(ApiError, match="timed out"):
            client.get_json("/app/api/org")


def test_non_json_bodies() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/object"):
            return httpx.Response(200, text=' {"a": 1}', headers={"content-type": "text/plain"})
        return httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})

    with _client(handler) as client:
        assert client.get_json("/object") == {"a": 1}
        assert client.get_json("/html") == {}


def test_undecodable_json_body_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b'{"groups": ["\xff"]}', headers={"content-type": "application/json"})

    with _client(handler) as client:
        with pytest.raises(ApiError, match="invalid JSON"):
            client.get_json("/app/api/groups")
        assert client.fetch_groups(1) == []


def test_get_blob_returns_raw_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["includeSubfolders"] == "true"
        assert request.url.params["groupId"] == "12"
        return httpx.Response(200, content=b"\x00PK-bundle")

    with _client(handler) as client:
        assert client.download_bundle(7, 12) == b"\x00PK-bundle"


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"orgId": 1}, 1),
        ({"org_id": 2, "id": 9}, 2),
        ({"id": 3}, 3),
        ({"org": {"id": 4}}, 4),
        ({"organization": {"orgId": 5}}, 5),
        ({"orgId": "6", "org": {"id": 6}}, 6),
    ],
)
def test_extract_org_id(payload, expected: int) -> None:
    assert extract_org_id(payload) == expected


@pytest.mark.parametrize("payload", [{}, [], None, {"orgId": True}, {"org": {"name": "x"}}])
def test_extract_org_id_failure(payload) -> None:
    with pytest.raises(OrgDiscoveryError):
        extract_org_id(payload)


def test_fetch_groups_falls_through_endpoints_and_shapes() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/app/api/group":
            return httpx.Response(404)
        if request.url.path == "/app/api/groups" and "orgId" in request.url.params:
            return httpx.Response(200, json={"groups": []})
        return httpx.Response(
            200,
            json={
                "data": {
                    "groups": [
                        {"id": 1, "name": "Sales Ops"},
                        {"groupId": 2, "groupName": "HR"},
                        {"id": 3},
                        "junk",
                    ]
                }
            },
        )

    with _client(handler) as client:
        groups = client.fetch_groups(42)

    assert groups == [Group(id=1, name="Sales Ops"), Group(id=2, name="HR")]
    assert calls == ["/app/api/group", "/app/api/groups", "/app/api/groups"]


def test_fetch_groups_applies_case_insensitive_filter() -> None:
    payload = [{"id": 1, "name": "Sales Ops"}, {"id": 2, "name": "HR"}, {"id": 3, "name": "sales-eu"}]

    with _client(lambda request: httpx.Response(200, json=payload)) as client:
        groups = client.fetch_groups(42, name_filter=" SALES ")

    assert [group.id for group in groups] == [1, 3]


def test_fetch_groups_returns_empty_when_every_endpoint_fails() -> None:
    with _client(lambda request: httpx.Response(403)) as client:
        assert client.fetch_groups(42) == []


def test_list_tables_parses_entries_and_tolerates_errors() -> None:
    payload = [{"stashId": "s1", "name": "Orders"}, {"id": 9}, {"name": "no id"}, {"stashId": ""}]

    with _client(lambda request: httpx.Response(200, json=payload)) as client:
        assert client.list_tables(1, 2) == [TableRef(id="s1", name="Orders"), TableRef(id="9", name=None)]

    with _client(lambda request: httpx.Response(500)) as client:
        assert client.list_tables(1, 2) == []

    with _client(lambda request: httpx.Response(200, json={"unexpected": True})) as client:
        assert client.list_tables(1, 2) == []


def test_fetch_table_rows_falls_back_to_capitalised_query_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "OrgId" in request.url.params:
            return httpx.Response(200, json={"rows": [{"a": 1}]})
        return httpx.Response(400)

    with _client(handler) as client:
        assert client.fetch_table_rows(1, "s1") == {"rows": [{"a": 1}]}


def test_fetch_table_rows_raises_when_both_variants_fail() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.extend(request.url.params.keys())
        return httpx.Response(502)

    with _client(handler) as client:
        with pytest.raises(ApiError) as excinfo:
            client.fetch_table_rows(1, "s1")

    assert seen == ["orgId", "OrgId"]
    assert excinfo.value.status_code == 502
    assert "OrgId" in str(excinfo.value)


def test_fetch_table_meta_defaults_to_empty_mapping() -> None:
    with _client(lambda request: httpx.Response(404)) as client:
        assert client.fetch_table_meta(1, "s1") == {}
