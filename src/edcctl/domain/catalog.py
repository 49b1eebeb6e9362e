"""Catalog response parsing: locate an asset's dataset and its first offer.

DCAT/ODRL JSON-LD compaction collapses single-element arrays to objects,
so ``dcat:dataset`` and ``odrl:hasPolicy`` may each be either shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class CatalogError(ValueError):
    """Raised when the catalog does not contain a usable offer."""


@dataclass(frozen=True)
class ContractOffer:
    """The offer chosen from a catalog, with its policy fragments untouched."""

    offer_id: str
    permissions: Any
    prohibitions: Any
    obligations: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "offer_id": self.offer_id,
            "permissions": self.permissions,
            "prohibitions": self.prohibitions,
            "obligations": self.obligations,
        }


def as_list(value: Any) -> list[Any]:
    """Normalize a JSON-LD value that may be a single object or an array."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def find_dataset(catalog: dict[str, Any], asset_id: str) -> dict[str, Any]:
    """Return the dataset whose ``id`` or ``@id`` equals *asset_id*."""
    for dataset in as_list(catalog.get("dcat:dataset")):
        if not isinstance(dataset, dict):
            continue
        if dataset.get("id") == asset_id or dataset.get("@id") == asset_id:
            return dataset
    raise CatalogError(f"Asset {asset_id} not found in catalog")


def first_offer(dataset: dict[str, Any]) -> ContractOffer:
    """Extract the first policy of *dataset* as a contract offer."""
    policies = as_list(dataset.get("odrl:hasPolicy"))
    policy: dict[str, Any] = policies[0] if policies and isinstance(policies[0], dict) else {}

    offer_id = str(policy.get("@id") or "")
    if not offer_id:
        raise CatalogError("No offer ID found in catalog response")

    return ContractOffer(
        offer_id=offer_id,
        permissions=policy.get("odrl:permission", []),
        prohibitions=policy.get("odrl:prohibition", []),
        obligations=policy.get("odrl:obligation", []),
    )


def select_offer(catalog: dict[str, Any], asset_id: str) -> ContractOffer:
    return first_offer(find_dataset(catalog, asset_id))
