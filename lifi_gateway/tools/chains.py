"""Chain directory tools served from the chain cache."""

from __future__ import annotations

from typing import Any, Mapping

from lifi_gateway.core.arguments import get_string
from lifi_gateway.core.context import RequestContext
from lifi_gateway.core.errors import ValidationError
from lifi_gateway.core.utils import is_ascii_digits
from lifi_gateway.tools.base import Gateway, ToolSpec, object_schema, string


def get_chains(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    """Unfiltered listings come from the cache; a chain type filter goes upstream."""
    chain_types = get_string(arguments, "chainTypes")
    if chain_types:
        return gateway.http.get_json(gateway.url("/v1/chains"), context, params={"chainTypes": chain_types})
    return {"chains": [record.to_dict() for record in gateway.chains.records(context)]}


def get_chain_by_id(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    chain_id = get_string(arguments, "id")
    if not chain_id:
        raise ValidationError("id", "ID parameter is required")
    if not is_ascii_digits(chain_id) or int(chain_id) <= 0:
        raise ValidationError("id", f"invalid ID format. Expected a positive integer, got: {chain_id}")
    return gateway.chains.find(chain_id, context).to_dict()


def get_chain_by_name(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    name = get_string(arguments, "name")
    if not name:
        raise ValidationError("name", "name parameter is required")
    return gateway.chains.find(name, context).to_dict()


TOOLS = [
    ToolSpec(
        "get-chains",
        "List every chain LI.FI supports, with chain IDs, native tokens and RPC URLs.",
        get_chains,
        object_schema({"chainTypes": string("Filter by chain type: 'EVM', 'SVM', comma-separated.")}),
    ),
    ToolSpec(
        "get-chain-by-id",
        "Look up a chain by its numeric ID.",
        get_chain_by_id,
        object_schema({"id": string("Numeric chain ID (e.g. '1', '137', '42161').")}, required=["id"]),
    ),
    ToolSpec(
        "get-chain-by-name",
        "Look up a chain by name (e.g. 'Ethereum'), key (e.g. 'eth') or ID.",
        get_chain_by_name,
        object_schema({"name": string("Chain name, key or ID.")}, required=["name"]),
    ),
]


__all__ = ["TOOLS", "get_chain_by_id", "get_chain_by_name", "get_chains"]
