"""Deterministic resource identifiers for provider-side EDC resources.

The policy and contract definition belonging to an asset are derived from
the asset ID by suffix.  They double as idempotency keys: re-running the
workflow with the same asset finds the existing resources instead of
creating duplicates.
"""

from __future__ import annotations

from dataclasses import dataclass

POLICY_SUFFIX = "-policy"
CONTRACT_SUFFIX = "-contract"


def policy_id_for(asset_id: str) -> str:
    return f"{asset_id}{POLICY_SUFFIX}"


def contract_definition_id_for(asset_id: str) -> str:
    return f"{asset_id}{CONTRACT_SUFFIX}"


@dataclass(frozen=True)
class ProviderResourceIds:
    """The three provider resource IDs derived from one asset ID."""

    asset_id: str
    policy_id: str
    contract_definition_id: str

    @classmethod
    def from_asset(cls, asset_id: str) -> ProviderResourceIds:
        return cls(
            asset_id=asset_id,
            policy_id=policy_id_for(asset_id),
            contract_definition_id=contract_definition_id_for(asset_id),
        )
