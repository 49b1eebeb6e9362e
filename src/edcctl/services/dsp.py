"""DspWorkflowService: end-to-end Dataspace Protocol run.

Pipeline:
    ENVIRONMENT → HEALTH → ASSET → POLICY → CONTRACT DEFINITION →
    CATALOG → EDR NEGOTIATION → POLL → DATA ADDRESS → FETCH

Provider resources are created idempotently: each is probed first and only
POSTed when the probe returns 404.  Nothing is retried and nothing created
is rolled back when a later step fails.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import structlog

from edcctl.config.logging import enable_debug
from edcctl.domain.catalog import CatalogError, select_offer
from edcctl.domain.ids import ProviderResourceIds
from edcctl.domain.payloads import (
    asset_payload,
    bpn_policy_payload,
    catalog_request_payload,
    contract_definition_payload,
    contract_request_payload,
    edr_query_payload,
)
from edcctl.infrastructure.edc import (
    ConnectorConfig,
    EdcApiError,
    ManagementClient,
    fetch_endpoint,
    management_path,
)
from edcctl.infrastructure.envfile import DspEnvironment, load_env_file
from edcctl.services.base import Operation, StepFailed
from edcctl.services.result import ServiceResult
from edcctl.services.telemetry import trace_span, traced

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], None]


@dataclass(frozen=True)
class ProviderResource:
    """One idempotently created provider resource."""

    label: str
    collection: str
    resource_id: str
    payload: dict[str, Any]


def poll_edr_entries(
    fetch: Callable[[], Any],
    *,
    attempts: int,
    interval: float,
    sleep: Sleep = time.sleep,
) -> tuple[list[Any], int]:
    """Call *fetch* until it returns a non-empty list.

    Sleeps *interval* seconds between attempts only, so the total wait is
    bounded by ``attempts * interval``.  Returns the entries and the attempt
    number that produced them.

    Raises:
        StepFailed: ``NEGOTIATION_TIMEOUT`` once *attempts* are exhausted.
    """
    for attempt in range(1, attempts + 1):
        entries = fetch()
        logger.debug("edr_poll", attempt=attempt, found=bool(entries))
        if isinstance(entries, list) and entries:
            return entries, attempt
        if attempt < attempts:
            sleep(interval)
    raise StepFailed(
        "NEGOTIATION_TIMEOUT",
        f"Negotiation did not produce an EDR after {attempts} attempts",
        attempts=attempts,
        interval=interval,
    )


class DspWorkflowService:
    """Provider setup plus consumer negotiation and data fetch."""

    def __init__(
        self,
        *,
        request_timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        self._timeout = request_timeout
        self._transport = transport
        self._sleep = sleep

    def _client(self, name: str, url: str, api_key: str) -> ManagementClient:
        return ManagementClient(
            ConnectorConfig(base_url=url, api_key=api_key, timeout=self._timeout, name=name),
            transport=self._transport,
        )

    @traced
    def run(
        self,
        *,
        env_file: Path | str,
        data_source_url: str,
        poll_attempts: int,
        poll_interval: float,
        skip_health: bool = False,
    ) -> ServiceResult:
        def body(op: Operation) -> None:
            op.begin("environment")
            env = load_env_file(env_file)
            if env.debug:
                enable_debug()
            op.step("environment", detail=str(env.source), asset_id=env.asset_id)

            provider = self._client("provider", env.provider_url, env.provider_api_key)
            consumer = self._client("consumer", env.consumer_url, env.consumer_api_key)
            with provider, consumer:
                if skip_health:
                    op.step("health", "skipped", "Health check disabled")
                else:
                    self._health(op, provider, consumer)

                with trace_span("dsp.provider_setup"):
                    self.setup_provider(op, provider, env, data_source_url)
                with trace_span("dsp.consumer"):
                    body_text = self._consume(op, consumer, env, poll_attempts, poll_interval)

            op.data["body"] = body_text

        return Operation("dsp_workflow").execute(body)

    def _health(
        self, op: Operation, provider: ManagementClient, consumer: ManagementClient
    ) -> None:
        op.begin("health")
        for client in (provider, consumer):
            try:
                client.liveness()
            except EdcApiError as exc:
                raise StepFailed(
                    "HEALTH_CHECK_FAILED",
                    f"{client.config.name.capitalize()} connector is not accessible "
                    f"at {client.config.base_url}",
                    status=exc.status,
                ) from exc
        op.step("health", detail="Provider and consumer connectors are live")

    # --- provider ---

    def setup_provider(
        self,
        op: Operation,
        client: ManagementClient,
        env: DspEnvironment,
        data_source_url: str,
    ) -> ProviderResourceIds:
        """Ensure asset, policy and contract definition exist, in that order."""
        ids = ProviderResourceIds.from_asset(env.asset_id)
        resources = (
            ProviderResource(
                "asset", "assets", ids.asset_id, asset_payload(ids.asset_id, data_source_url)
            ),
            ProviderResource(
                "policy",
                "policydefinitions",
                ids.policy_id,
                bpn_policy_payload(ids.policy_id, env.consumer_bpn),
            ),
            ProviderResource(
                "contract_definition",
                "contractdefinitions",
                ids.contract_definition_id,
                contract_definition_payload(
                    ids.contract_definition_id, ids.policy_id, ids.asset_id
                ),
            ),
        )
        for resource in resources:
            self.ensure_resource(op, client, resource)
        op.data["provider"] = {
            "asset_id": ids.asset_id,
            "policy_id": ids.policy_id,
            "contract_definition_id": ids.contract_definition_id,
        }
        return ids

    def ensure_resource(
        self, op: Operation, client: ManagementClient, resource: ProviderResource
    ) -> bool:
        """Create *resource* unless it exists; True when a POST was issued."""
        op.begin(resource.label)
        exists = client.probe(
            management_path(resource.collection, resource.resource_id),
            description=f"Check {resource.label} {resource.resource_id}",
        )
        if exists:
            op.step(
                resource.label,
                "skipped",
                f"{resource.resource_id} already exists",
                id=resource.resource_id,
            )
            return False
        client.request(
            "POST",
            management_path(resource.collection),
            json=resource.payload,
            description=f"Create {resource.label}",
        )
        op.step(resource.label, detail=f"Created {resource.resource_id}", id=resource.resource_id)
        return True

    # --- consumer ---

    def _consume(
        self,
        op: Operation,
        consumer: ManagementClient,
        env: DspEnvironment,
        poll_attempts: int,
        poll_interval: float,
    ) -> str:
        op.begin("catalog")
        catalog = consumer.request(
            "POST",
            management_path("catalog", "request"),
            json=catalog_request_payload(env.provider_bpn, env.provider_url),
            description="Catalog request",
        )
        try:
            offer = select_offer(catalog if isinstance(catalog, dict) else {}, env.asset_id)
        except CatalogError as exc:
            raise StepFailed("CATALOG_ERROR", str(exc), asset_id=env.asset_id) from exc
        op.step("catalog", detail=f"Offer {offer.offer_id}", offer_id=offer.offer_id)

        op.begin("negotiation")
        negotiation = consumer.request(
            "POST",
            management_path("edrs"),
            json=contract_request_payload(
                provider_url=env.provider_url,
                provider_bpn=env.provider_bpn,
                asset_id=env.asset_id,
                offer_id=offer.offer_id,
                permissions=offer.permissions,
                prohibitions=offer.prohibitions,
                obligations=offer.obligations,
            ),
            description="EDR negotiation",
        )
        negotiation_id = negotiation.get("@id", "") if isinstance(negotiation, dict) else ""
        if not negotiation_id:
            raise StepFailed("NEGOTIATION_FAILED", "No negotiation ID returned")
        op.step("negotiation", detail=f"Negotiation {negotiation_id}", id=negotiation_id)

        op.begin("poll")
        entries, attempt = poll_edr_entries(
            lambda: consumer.request(
                "POST",
                management_path("edrs", "request"),
                json=edr_query_payload(negotiation_id),
                description="EDR query",
            ),
            attempts=poll_attempts,
            interval=poll_interval,
            sleep=self._sleep,
        )
        first = entries[0] if isinstance(entries[0], dict) else {}
        transfer_id = str(first.get("transferProcessId") or "")
        if not transfer_id:
            raise StepFailed("EDR_INCOMPLETE", "No transferProcessId in EDR entry")
        op.step("poll", detail=f"EDR ready after {attempt} attempt(s)", transfer_id=transfer_id)

        op.begin("dataaddress")
        address = consumer.request(
            "GET",
            management_path("edrs", transfer_id, "dataaddress"),
            description="EDR data address",
        )
        address = address if isinstance(address, dict) else {}
        token = str(address.get("authorization") or "")
        endpoint = str(address.get("endpoint") or "")
        if not token or not endpoint:
            raise StepFailed(
                "EDR_INCOMPLETE", "Data address is missing the authorization token or endpoint"
            )
        op.step("dataaddress", detail=endpoint)

        op.begin("fetch")
        body_text = fetch_endpoint(
            endpoint, token, timeout=self._timeout, transport=self._transport
        )
        op.step("fetch", detail=f"{len(body_text.encode())} bytes")
        op.data.update(
            offer_id=offer.offer_id,
            negotiation_id=negotiation_id,
            transfer_process_id=transfer_id,
            endpoint=endpoint,
        )
        return body_text
