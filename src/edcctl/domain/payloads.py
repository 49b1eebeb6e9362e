"""JSON-LD request bodies for the Tractus-X EDC Management API v3.

Each builder returns a plain dict ready for ``httpx`` ``json=``.  The
shapes are the literal templates the connector expects; values are only
substituted, never interpreted.
"""

from __future__ import annotations

from typing import Any

EDC_NAMESPACE = "https://w3id.org/edc/v0.0.1/ns/"
ODRL_JSONLD = "http://www.w3.org/ns/odrl.jsonld"
DSP_PROTOCOL = "dataspace-protocol-http"
DSP_PATH = "/api/v1/dsp"


def dsp_address(connector_url: str) -> str:
    """Return the DSP protocol endpoint of a connector."""
    return f"{connector_url.rstrip('/')}{DSP_PATH}"


# ---------------------------------------------------------------------------
# Provider resources
# ---------------------------------------------------------------------------


def asset_payload(asset_id: str, data_source_url: str) -> dict[str, Any]:
    """HttpData asset proxying path, method, query params and body."""
    return {
        "@id": asset_id,
        "@type": "Asset",
        "properties": {
            "dct:type": {"@id": "asset.prop.type"},
            "id": asset_id,
        },
        "dataAddress": {
            "@type": "DataAddress",
            "proxyPath": "true",
            "type": "HttpData",
            "proxyMethod": "true",
            "proxyQueryParams": "true",
            "proxyBody": "true",
            "baseUrl": data_source_url,
        },
        "@context": {
            "@vocab": EDC_NAMESPACE,
            "cx-common": "https://w3id.org/catenax/ontology/common#",
            "cx-taxo": "https://w3id.org/catenax/taxonomy#",
            "dct": "http://purl.org/dc/terms/",
        },
    }


def bpn_policy_payload(policy_id: str, consumer_bpn: str) -> dict[str, Any]:
    """Usage policy granting ``use`` to a single Business Partner Number."""
    return {
        "@context": [
            "https://w3id.org/tractusx/edc/v0.0.1",
            ODRL_JSONLD,
            {
                "edc": EDC_NAMESPACE,
                "cx-policy": "https://w3id.org/catenax/policy/",
            },
        ],
        "@type": "PolicyDefinition",
        "@id": policy_id,
        "edc:policy": {
            "@type": "Set",
            "profile": "cx-policy:profile2405",
            "permission": [
                {
                    "action": "use",
                    "constraint": {
                        "and": [
                            {
                                "odrl:leftOperand": {"@id": "BusinessPartnerNumber"},
                                "odrl:operator": {"@id": "odrl:eq"},
                                "odrl:rightOperand": consumer_bpn,
                            }
                        ]
                    },
                }
            ],
        },
    }


def contract_definition_payload(
    contract_definition_id: str, policy_id: str, asset_id: str
) -> dict[str, Any]:
    """Contract definition binding one asset to one access/contract policy."""
    return {
        "@context": {},
        "@id": contract_definition_id,
        "@type": "ContractDefinition",
        "accessPolicyId": policy_id,
        "contractPolicyId": policy_id,
        "assetsSelector": {
            "@type": "CriterionDto",
            "operandLeft": f"{EDC_NAMESPACE}id",
            "operator": "=",
            "operandRight": asset_id,
        },
    }


# ---------------------------------------------------------------------------
# Consumer requests
# ---------------------------------------------------------------------------


def catalog_request_payload(provider_bpn: str, provider_url: str) -> dict[str, Any]:
    return {
        "@context": {
            "@vocab": EDC_NAMESPACE,
            "odrl": "http://www.w3.org/ns/odrl/2/",
            "dct": "http://purl.org/dc/terms/",
        },
        "@type": "CatalogRequest",
        "counterPartyId": provider_bpn,
        "counterPartyAddress": dsp_address(provider_url),
        "protocol": DSP_PROTOCOL,
    }


def contract_request_payload(
    *,
    provider_url: str,
    provider_bpn: str,
    asset_id: str,
    offer_id: str,
    permissions: Any,
    prohibitions: Any,
    obligations: Any,
) -> dict[str, Any]:
    """EDR negotiation request; policy fragments are passed through verbatim."""
    return {
        "@context": [
            "https://w3id.org/tractusx/policy/v1.0.0",
            ODRL_JSONLD,
            {"@vocab": EDC_NAMESPACE},
        ],
        "@type": "ContractRequest",
        "counterPartyAddress": dsp_address(provider_url),
        "protocol": DSP_PROTOCOL,
        "policy": {
            "@id": offer_id,
            "@type": "odrl:Offer",
            "assigner": provider_bpn,
            "target": asset_id,
            "odrl:permission": permissions,
            "odrl:prohibition": prohibitions,
            "odrl:obligation": obligations,
        },
        "callbackAddresses": [],
    }


def edr_query_payload(negotiation_id: str) -> dict[str, Any]:
    """QuerySpec selecting cached EDR entries of one negotiation."""
    return {
        "@context": {"@vocab": EDC_NAMESPACE},
        "@type": "QuerySpec",
        "filterExpression": [
            {
                "operandLeft": "contractNegotiationId",
                "operator": "=",
                "operandRight": negotiation_id,
            }
        ],
    }
