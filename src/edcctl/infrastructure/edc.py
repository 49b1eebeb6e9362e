"""EDC Management API v3 client.

One persistent synchronous ``httpx.Client`` per connector, authenticated
with the ``X-Api-Key`` header.  Unexpected statuses surface as
:class:`EdcApiError`; callers decide which statuses are meaningful.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Self

import httpx
import structlog

logger = structlog.get_logger(__name__)

MANAGEMENT_PREFIX = "/management/v3"
LIVENESS_PATH = "/api/check/liveness"


class EdcApiError(Exception):
    """An EDC request failed.

    ``status`` is None when the request never produced a response
    (connection refused, DNS failure, timeout).
    """

    def __init__(self, description: str, *, status: int | None = None, body: str = "") -> None:
        self.description = description
        self.status = status
        self.body = body
        where = f"HTTP {status}" if status is not None else "no response"
        super().__init__(f"{description} failed ({where})")


@dataclass
class ConnectorConfig:
    """Connection settings for one EDC controlplane."""

    base_url: str  # connector root, e.g. https://provider-controlplane.example.com
    api_key: str = ""
    timeout: float = 30.0
    name: str = "connector"


def management_path(*parts: str) -> str:
    """Join *parts* under the Management API v3 prefix."""
    return "/".join([MANAGEMENT_PREFIX, *(p.strip("/") for p in parts)])


class ManagementClient:
    """Synchronous client for one connector's Management API."""

    def __init__(
        self,
        config: ConnectorConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        base = (config.base_url or "").strip()
        if not base:
            raise ValueError("EDC base URL is required")
        self.config = config
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["X-Api-Key"] = config.api_key
        self._http = httpx.Client(
            base_url=base.rstrip("/"),
            headers=headers,
            timeout=config.timeout,
            transport=transport,
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _send(self, method: str, path: str, description: str, **kwargs: Any) -> httpx.Response:
        logger.debug("edc_request", connector=self.config.name, method=method, path=path)
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("edc_transport_error", connector=self.config.name, error=str(exc))
            raise EdcApiError(description, body=str(exc)) from exc
        logger.debug("edc_response", path=path, status=response.status_code)
        return response

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        description: str = "EDC request",
    ) -> Any:
        """Send a request; return parsed JSON (or text) on any 2xx status."""
        response = self._send(method, path, description, json=json)
        if not response.is_success:
            raise EdcApiError(description, status=response.status_code, body=response.text)
        try:
            return response.json()
        except ValueError:
            return response.text

    def probe(self, path: str, *, description: str = "Existence check") -> bool:
        """True on 200, False on 404; any other status raises."""
        response = self._send("GET", path, description)
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise EdcApiError(description, status=response.status_code, body=response.text)

    def delete(self, path: str, *, description: str = "Delete") -> int:
        """Issue a DELETE and return the raw status code."""
        return self._send("DELETE", path, description).status_code

    def liveness(self) -> Any:
        return self.request("GET", LIVENESS_PATH, description=f"{self.config.name} liveness")


def fetch_endpoint(
    url: str,
    authorization: str,
    *,
    timeout: float = 30.0,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """GET a data plane endpoint with an EDR token; return the body verbatim."""
    description = "Data fetch"
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url, headers={"Authorization": authorization})
    except httpx.HTTPError as exc:
        raise EdcApiError(description, body=str(exc)) from exc
    if not response.is_success:
        raise EdcApiError(description, status=response.status_code, body=response.text)
    return response.text
