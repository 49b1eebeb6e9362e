"""Tests for the Management API client over httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from edcctl.infrastructure.edc import (
    ConnectorConfig,
    EdcApiError,
    ManagementClient,
    fetch_endpoint,
    management_path,
)
from tests.conftest import EdcApi


def _client(api: EdcApi, *, api_key: str = "secret") -> ManagementClient:
    config = ConnectorConfig(base_url="https://provider.test/", api_key=api_key, name="provider")
    return ManagementClient(config, transport=api.transport)


class TestManagementPath:
    def test_joins_under_v3(self) -> None:
        assert management_path("assets", "/asset-1") == "/management/v3/assets/asset-1"


class TestRequest:
    def test_sends_api_key_and_json(self) -> None:
        api = EdcApi().route("POST", "/management/v3/assets", body={"@id": "asset-1"})
        with _client(api) as client:
            result = client.request(
                "POST", management_path("assets"), json={"@id": "asset-1"}
            )
        assert result == {"@id": "asset-1"}
        sent = api.sent("POST", "/management/v3/assets")[0]
        assert sent.headers["X-Api-Key"] == "secret"
        assert json.loads(sent.content) == {"@id": "asset-1"}

    def test_no_key_header_when_empty(self) -> None:
        api = EdcApi().route("GET", "/api/check/liveness", body={"ok": True})
        with _client(api, api_key="") as client:
            client.liveness()
        assert "X-Api-Key" not in api.requests[0].headers

    def test_text_body_returned_verbatim(self) -> None:
        api = EdcApi().route("GET", "/api/check/liveness", body="alive")
        with _client(api) as client:
            assert client.liveness() == "alive"

    def test_error_status(self) -> None:
        api = EdcApi().route("POST", "/management/v3/catalog/request", status=502, body="bad")
        with _client(api) as client, pytest.raises(EdcApiError) as exc_info:
            client.request("POST", "/management/v3/catalog/request", description="Catalog")
        assert exc_info.value.status == 502
        assert exc_info.value.body == "bad"
        assert str(exc_info.value) == "Catalog failed (HTTP 502)"

    def test_transport_error(self) -> None:
        api = EdcApi()

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        api.handle("GET", "/api/check/liveness", refuse)
        with _client(api) as client, pytest.raises(EdcApiError) as exc_info:
            client.liveness()
        assert exc_info.value.status is None
        assert "no response" in str(exc_info.value)

    def test_base_url_required(self) -> None:
        with pytest.raises(ValueError, match="base URL"):
            ManagementClient(ConnectorConfig(base_url="  "))


class TestProbeAndDelete:
    def test_probe_found(self) -> None:
        api = EdcApi().route("GET", "/management/v3/assets/a", body={"@id": "a"})
        with _client(api) as client:
            assert client.probe("/management/v3/assets/a")

    def test_probe_absent(self) -> None:
        with _client(EdcApi()) as client:
            assert not client.probe("/management/v3/assets/a")

    def test_probe_other_status_raises(self) -> None:
        api = EdcApi().route("GET", "/management/v3/assets/a", status=401)
        with _client(api) as client, pytest.raises(EdcApiError) as exc_info:
            client.probe("/management/v3/assets/a")
        assert exc_info.value.status == 401

    @pytest.mark.parametrize("status", [200, 204, 404, 500])
    def test_delete_returns_status(self, status: int) -> None:
        api = EdcApi().route("DELETE", "/management/v3/assets/a", status=status)
        with _client(api) as client:
            assert client.delete("/management/v3/assets/a") == status


class TestFetchEndpoint:
    def test_raw_body_and_authorization(self) -> None:
        api = EdcApi().route("GET", "/public", body='{"raw": true}')
        body = fetch_endpoint(
            "https://dataplane.test/public", "token-1", transport=api.transport
        )
        assert body == '{"raw": true}'
        assert api.requests[0].headers["Authorization"] == "token-1"

    def test_failure(self) -> None:
        api = EdcApi().route("GET", "/public", status=403, body="denied")
        with pytest.raises(EdcApiError) as exc_info:
            fetch_endpoint("https://dataplane.test/public", "t", transport=api.transport)
        assert exc_info.value.status == 403
