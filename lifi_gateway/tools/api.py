"""LI.FI REST passthrough tools: quotes, routes, status and discovery."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from lifi_gateway.core.arguments import get_array, get_object, get_string, join_array
from lifi_gateway.core.context import RequestContext
from lifi_gateway.core.errors import ValidationError
from lifi_gateway.core.utils import is_ascii_digits
from lifi_gateway.core.validation import (
    validate_amount,
    validate_chain_id,
    validate_recipient_address,
    validate_slippage,
    validate_token_address,
)
from lifi_gateway.tools.base import Gateway, ToolSpec, array, obj, object_schema, string

ORDERS = ("RECOMMENDED", "FASTEST", "CHEAPEST", "SAFEST")

_NATIVE_HINT = "Use '0x0000000000000000000000000000000000000000' for native tokens."


def _params(arguments: Mapping[str, Any], *keys: str) -> Dict[str, str]:
    """Copy the non-empty string arguments named by ``keys``."""
    params: Dict[str, str] = {}
    for key in keys:
        value = get_string(arguments, key)
        if value:
            params[key] = value
    return params


def _add_joined(params: Dict[str, str], arguments: Mapping[str, Any], key: str) -> None:
    joined = join_array(get_array(arguments, key))
    if joined:
        params[key] = joined


def _order(arguments: Mapping[str, Any]) -> str:
    order = get_string(arguments, "order").upper()
    if order and order not in ORDERS:
        raise ValidationError("order", f"must be one of {', '.join(ORDERS)}")
    return order


def _chain_number(value: str) -> Any:
    return int(value) if is_ascii_digits(value) else value


def get_tokens(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    params = _params(arguments, "chains", "chainTypes", "minPriceUSD")
    return gateway.http.get_json(gateway.url("/v1/tokens"), context, params=params)


def get_token(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    chain = get_string(arguments, "chain")
    token = get_string(arguments, "token")
    if not chain or not token:
        raise ValidationError("chain/token", "both chain and token parameters are required")
    return gateway.http.get_json(gateway.url("/v1/token"), context, params={"chain": chain, "token": token})


def get_quote(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    params = {
        "fromChain": validate_chain_id("fromChain", get_string(arguments, "fromChain")),
        "toChain": validate_chain_id("toChain", get_string(arguments, "toChain")),
        "fromToken": validate_token_address("fromToken", get_string(arguments, "fromToken")),
        "toToken": validate_token_address("toToken", get_string(arguments, "toToken")),
        "fromAddress": validate_recipient_address("fromAddress", get_string(arguments, "fromAddress")),
        "fromAmount": str(validate_amount("fromAmount", get_string(arguments, "fromAmount"))),
    }
    to_address = get_string(arguments, "toAddress")
    if to_address:
        params["toAddress"] = validate_recipient_address("toAddress", to_address)
    slippage = validate_slippage(get_string(arguments, "slippage"))
    if slippage:
        params["slippage"] = slippage
    params.update(_params(arguments, "integrator"))
    order = _order(arguments)
    if order:
        params["order"] = order
    _add_joined(params, arguments, "allowBridges")
    _add_joined(params, arguments, "allowExchanges")
    return gateway.http.get_json(gateway.url("/v1/quote"), context, params=params)


def get_status(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    tx_hash = get_string(arguments, "txHash")
    if not tx_hash:
        raise ValidationError("txHash", "txHash parameter is required")
    params = {"txHash": tx_hash}
    params.update(_params(arguments, "bridge", "fromChain", "toChain"))
    return gateway.http.get_json(gateway.url("/v1/status"), context, params=params)


def get_connections(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    params = _params(arguments, "fromChain", "toChain", "fromToken", "toToken", "chainTypes")
    _add_joined(params, arguments, "allowBridges")
    return gateway.http.get_json(gateway.url("/v1/connections"), context, params=params)


def get_tools(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    params: Dict[str, str] = {}
    _add_joined(params, arguments, "chains")
    return gateway.http.get_json(gateway.url("/v1/tools"), context, params=params)


def get_routes(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    body: Dict[str, Any] = {
        "fromChainId": _chain_number(validate_chain_id("fromChainId", get_string(arguments, "fromChainId"))),
        "toChainId": _chain_number(validate_chain_id("toChainId", get_string(arguments, "toChainId"))),
        "fromTokenAddress": validate_token_address("fromTokenAddress", get_string(arguments, "fromTokenAddress")),
        "toTokenAddress": validate_token_address("toTokenAddress", get_string(arguments, "toTokenAddress")),
        "fromAddress": validate_recipient_address("fromAddress", get_string(arguments, "fromAddress")),
        "fromAmount": str(validate_amount("fromAmount", get_string(arguments, "fromAmount"))),
    }
    to_address = get_string(arguments, "toAddress")
    if to_address:
        body["toAddress"] = validate_recipient_address("toAddress", to_address)
    options: Dict[str, Any] = {}
    slippage = validate_slippage(get_string(arguments, "slippage"))
    if slippage:
        options["slippage"] = float(slippage)
    order = _order(arguments)
    if order:
        options["order"] = order
    if options:
        body["options"] = options
    return gateway.http.post_json(gateway.url("/v1/advanced/routes"), body, context)


def _contract_calls(arguments: Mapping[str, Any]) -> List[Dict[str, Any]]:
    calls = get_array(arguments, "contractCalls")
    if not calls:
        raise ValidationError("contractCalls", "at least one contract call is required")
    result = []
    for index, call in enumerate(calls):
        if not isinstance(call, Mapping):
            raise ValidationError(f"contractCalls[{index}]", "must be an object")
        for key in ("toContractAddress", "toContractCallData", "toContractGasLimit"):
            if not call.get(key):
                raise ValidationError(f"contractCalls[{index}].{key}", "is required")
        validate_recipient_address(f"contractCalls[{index}].toContractAddress", str(call["toContractAddress"]))
        result.append(dict(call))
    return result


def get_quote_with_calls(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    body: Dict[str, Any] = {
        "fromChain": _chain_number(validate_chain_id("fromChain", get_string(arguments, "fromChain"))),
        "toChain": _chain_number(validate_chain_id("toChain", get_string(arguments, "toChain"))),
        "fromToken": validate_token_address("fromToken", get_string(arguments, "fromToken")),
        "toToken": validate_token_address("toToken", get_string(arguments, "toToken")),
        "fromAddress": validate_recipient_address("fromAddress", get_string(arguments, "fromAddress")),
        "fromAmount": str(validate_amount("fromAmount", get_string(arguments, "fromAmount"))),
        "contractCalls": _contract_calls(arguments),
    }
    slippage = validate_slippage(get_string(arguments, "slippage"))
    if slippage:
        body["slippage"] = float(slippage)
    return gateway.http.post_json(gateway.url("/v1/quote/contractCalls"), body, context)


def get_step_transaction(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    step = get_object(arguments, "step")
    if not step:
        raise ValidationError("step", "a step object from get-routes is required")
    return gateway.http.post_json(gateway.url("/v1/advanced/stepTransaction"), step, context)


def get_gas_prices(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    return gateway.http.get_json(gateway.url("/v1/gas/prices"), context)


def get_gas_suggestion(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    chain_id = validate_chain_id("chainId", get_string(arguments, "chainId"))
    return gateway.http.get_json(gateway.url(f"/v1/gas/suggestion/{chain_id}"), context)


def check_api_key(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    if not context.api_key:
        raise ValidationError(
            "apiKey",
            "no API key provided; send 'Authorization: Bearer <key>' or 'x-lifi-api-key', or set LIFI_API_KEY",
        )
    return gateway.http.get_json(gateway.url("/v1/keys/test"), context)


TOOLS = [
    ToolSpec(
        "get-tokens",
        "Retrieve all tokens supported by LI.FI, optionally filtered by chain, chain type or minimum USD price.",
        get_tokens,
        object_schema(
            {
                "chains": string("Comma-separated chain IDs (e.g. '1,137,42161'). Omit for all chains."),
                "chainTypes": string("Chain types, comma-separated: 'EVM', 'SVM'."),
                "minPriceUSD": string("Minimum token price in USD (e.g. '0.01')."),
            }
        ),
    ),
    ToolSpec(
        "get-token",
        "Get detailed information about one token (address, symbol, decimals, USD price).",
        get_token,
        object_schema(
            {
                "chain": string("Chain ID (e.g. '1') or name (e.g. 'ethereum')."),
                "token": string("Token address or symbol. " + _NATIVE_HINT),
            },
            required=["chain", "token"],
        ),
    ),
    ToolSpec(
        "get-quote",
        "Get a quote for swapping or bridging tokens. Returns the best route and a transactionRequest "
        "that can be passed to execute-quote. ERC20 sources may need approve-token first.",
        get_quote,
        object_schema(
            {
                "fromChain": string("Source chain ID (e.g. '1' for Ethereum)."),
                "toChain": string("Destination chain ID. Same as fromChain for same-chain swaps."),
                "fromToken": string("Source token address. " + _NATIVE_HINT),
                "toToken": string("Destination token address. " + _NATIVE_HINT),
                "fromAddress": string("Sender wallet address."),
                "fromAmount": string("Amount in the token's smallest unit (e.g. '1000000' for 1 USDC)."),
                "toAddress": string("Recipient address. Defaults to fromAddress."),
                "slippage": string("Maximum slippage as a decimal (e.g. '0.005' for 0.5%)."),
                "integrator": string("Integrator identifier for tracking and fee sharing."),
                "order": string("Route preference: RECOMMENDED, FASTEST, CHEAPEST or SAFEST."),
                "allowBridges": array("Bridges to allow (e.g. ['stargate', 'across'])."),
                "allowExchanges": array("Exchanges to allow (e.g. ['uniswap', '1inch'])."),
            },
            required=["fromChain", "toChain", "fromToken", "toToken", "fromAddress", "fromAmount"],
        ),
    ),
    ToolSpec(
        "get-status",
        "Check the status of a cross-chain transfer by its source transaction hash.",
        get_status,
        object_schema(
            {
                "txHash": string("Transaction hash on the source chain."),
                "bridge": string("Bridge used for the transfer, if known."),
                "fromChain": string("Source chain ID."),
                "toChain": string("Destination chain ID."),
            },
            required=["txHash"],
        ),
    ),
    ToolSpec(
        "get-connections",
        "List possible token transfer connections between chains.",
        get_connections,
        object_schema(
            {
                "fromChain": string("Source chain ID."),
                "toChain": string("Destination chain ID."),
                "fromToken": string("Source token address."),
                "toToken": string("Destination token address."),
                "chainTypes": string("Chain types, comma-separated: 'EVM', 'SVM'."),
                "allowBridges": array("Only show these bridges."),
            }
        ),
    ),
    ToolSpec(
        "get-tools",
        "List the bridges and exchanges LI.FI can route through.",
        get_tools,
        object_schema({"chains": array("Only tools available on these chain IDs.")}),
    ),
    ToolSpec(
        "get-routes",
        "Get several alternative routes for a transfer. Convert a chosen step with get-step-transaction.",
        get_routes,
        object_schema(
            {
                "fromChainId": string("Source chain ID."),
                "toChainId": string("Destination chain ID."),
                "fromTokenAddress": string("Source token address. " + _NATIVE_HINT),
                "toTokenAddress": string("Destination token address."),
                "fromAddress": string("Sender wallet address."),
                "fromAmount": string("Amount in the token's smallest unit."),
                "toAddress": string("Recipient address. Defaults to fromAddress."),
                "slippage": string("Maximum slippage as a decimal."),
                "order": string("Route ranking: RECOMMENDED, FASTEST, CHEAPEST or SAFEST."),
            },
            required=["fromChainId", "toChainId", "fromTokenAddress", "toTokenAddress", "fromAddress", "fromAmount"],
        ),
    ),
    ToolSpec(
        "get-quote-with-calls",
        "Get a quote that bridges tokens and then executes contract calls on the destination chain.",
        get_quote_with_calls,
        object_schema(
            {
                "fromChain": string("Source chain ID."),
                "toChain": string("Destination chain ID where the calls execute."),
                "fromToken": string("Source token address."),
                "toToken": string("Token received on the destination chain before the calls."),
                "fromAddress": string("Sender wallet address."),
                "fromAmount": string("Amount in the token's smallest unit."),
                "contractCalls": array(
                    "Calls to execute. Each needs toContractAddress, toContractCallData and toContractGasLimit.",
                    {"type": "object"},
                ),
                "slippage": string("Maximum slippage as a decimal."),
            },
            required=["fromChain", "toChain", "fromToken", "toToken", "fromAddress", "fromAmount", "contractCalls"],
        ),
    ),
    ToolSpec(
        "get-step-transaction",
        "Turn a step from get-routes into transaction data (same transactionRequest format as get-quote).",
        get_step_transaction,
        object_schema({"step": obj("A complete step object from a get-routes response.")}, required=["step"]),
    ),
    ToolSpec(
        "get-gas-prices",
        "Current gas prices for all supported chains.",
        get_gas_prices,
    ),
    ToolSpec(
        "get-gas-suggestion",
        "Gas price suggestion for one chain.",
        get_gas_suggestion,
        object_schema({"chainId": string("Chain ID (e.g. '137').")}, required=["chainId"]),
    ),
    ToolSpec(
        "test-api-key",
        "Check that the LI.FI API key sent with this request is valid.",
        check_api_key,
    ),
]


__all__ = [
    "TOOLS",
    "get_connections",
    "get_gas_prices",
    "get_gas_suggestion",
    "get_quote",
    "get_quote_with_calls",
    "get_routes",
    "get_status",
    "get_step_transaction",
    "get_token",
    "get_tokens",
    "get_tools",
    "check_api_key",
]
