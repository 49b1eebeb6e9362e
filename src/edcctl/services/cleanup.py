"""CleanupService: delete the provider resources of one asset.

Deletion runs contract definition → policy → asset so nothing is removed
while something else still references it.  Every deletion is attempted
even after a failure.
"""

from __future__ import annotations

import httpx

from edcctl.domain.ids import ProviderResourceIds
from edcctl.infrastructure.edc import (
    ConnectorConfig,
    EdcApiError,
    ManagementClient,
    management_path,
)
from edcctl.services.base import Confirm, Operation, StepFailed, always_yes
from edcctl.services.result import ServiceResult
from edcctl.services.telemetry import traced

DELETE_TIMEOUT = 30.0

_STATUS_ERRORS = {
    401: "Authentication failed - check API key",
    403: "Access forbidden - insufficient permissions",
}


def _validate(asset_id: str, base_url: str, api_key: str) -> None:
    problems: list[str] = []
    if not asset_id.strip():
        problems.append("ASSET_ID cannot be empty")
    if not base_url.strip():
        problems.append("EDC_BASE_URL cannot be empty")
    elif not base_url.startswith(("http://", "https://")):
        problems.append("EDC_BASE_URL must start with http:// or https://")
    if not api_key.strip():
        problems.append("EDC_API_KEY cannot be empty")
    if problems:
        raise StepFailed("INVALID_ARGUMENT", "; ".join(problems), problems=problems)


class CleanupService:
    def __init__(
        self,
        *,
        timeout: float = DELETE_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    @traced
    def run(
        self,
        asset_id: str,
        *,
        base_url: str,
        api_key: str,
        dry_run: bool = False,
        confirm: Confirm = always_yes,
    ) -> ServiceResult:
        def body(op: Operation) -> None:
            op.begin("validate")
            _validate(asset_id, base_url, api_key)

            ids = ProviderResourceIds.from_asset(asset_id)
            targets = (
                ("contract_definition", "contractdefinitions", ids.contract_definition_id),
                ("policy", "policydefinitions", ids.policy_id),
                ("asset", "assets", ids.asset_id),
            )
            op.data.update(
                endpoint=base_url,
                asset_id=ids.asset_id,
                policy_id=ids.policy_id,
                contract_definition_id=ids.contract_definition_id,
                dry_run=dry_run,
            )

            if dry_run:
                for label, collection, resource_id in targets:
                    op.dry(
                        label,
                        f"Would delete {resource_id}",
                        url=f"{base_url.rstrip('/')}{management_path(collection, resource_id)}",
                    )
                return

            op.confirm(confirm, f"Delete the EDC resources of asset '{asset_id}'?")

            config = ConnectorConfig(
                base_url=base_url, api_key=api_key, timeout=self._timeout, name="provider"
            )
            failures: list[str] = []
            with ManagementClient(config, transport=self._transport) as client:
                for label, collection, resource_id in targets:
                    if not self._delete(op, client, label, collection, resource_id):
                        failures.append(resource_id)

            if failures:
                op.begin("summary")
                raise StepFailed(
                    "CLEANUP_FAILED",
                    f"Cleanup completed with {len(failures)} error(s)",
                    failed=failures,
                )
            op.step("summary", detail="All resources cleaned up")

        return Operation("dsp_cleanup").execute(body)

    def _delete(
        self,
        op: Operation,
        client: ManagementClient,
        label: str,
        collection: str,
        resource_id: str,
    ) -> bool:
        """Delete one resource; False when the deletion is an error."""
        try:
            status = client.delete(
                management_path(collection, resource_id), description=f"Delete {label}"
            )
        except EdcApiError as exc:
            op.step(label, "failed", f"{resource_id}: {exc}", id=resource_id)
            return False

        if status in (200, 204):
            op.step(label, detail=f"Deleted {resource_id}", id=resource_id, status=status)
            return True
        if status == 404:
            op.warn(
                label,
                f"{label} {resource_id} not found (may have been already deleted)",
                id=resource_id,
                status=status,
            )
            return True
        message = _STATUS_ERRORS.get(status, f"Failed to delete {label}: {resource_id}")
        op.step(label, "failed", f"{message} (HTTP {status})", id=resource_id, status=status)
        return False
