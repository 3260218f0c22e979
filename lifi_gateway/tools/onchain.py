"""Tools that talk to a blockchain RPC endpoint: balances and transactions."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from web3 import Web3

from lifi_gateway.core.arguments import get_object, get_string
from lifi_gateway.core.context import RequestContext
from lifi_gateway.core.errors import GatewayError, ValidationError
from lifi_gateway.core.tokens import allowance_of, balance_of, token_info
from lifi_gateway.core.transactions import FeeQuote, TransactionDescriptor
from lifi_gateway.core.utils import get_logger
from lifi_gateway.core.validation import (
    validate_address,
    validate_amount,
    validate_amount_allow_zero,
    validate_recipient_address,
)
from lifi_gateway.tools.base import Gateway, ToolSpec, obj, object_schema, string

LOGGER = get_logger("lifi_gateway.tools.onchain")

NATIVE_FALLBACK = ("Native Token", 18)

_CHAIN = string("Chain ID (e.g. '1') or name (e.g. 'ethereum'). The RPC URL is looked up automatically.")
_RPC_URL = string("Optional RPC endpoint overriding the chain's default.")


def _rpc_url(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext, chain: str = "") -> str:
    return gateway.chains.resolve_rpc_url(
        chain or get_string(arguments, "chain"),
        context,
        get_string(arguments, "rpcUrl"),
    )


def _native_info(gateway: Gateway, chain_id: int, context: RequestContext) -> Tuple[str, int]:
    try:
        return gateway.chains.native_token_info(chain_id, context)
    except GatewayError as exc:
        LOGGER.info("No native token metadata for chain %s: %s", chain_id, exc)
        return NATIVE_FALLBACK


def _token_details(web3: Web3, token_address: str) -> Dict[str, Any]:
    symbol, decimals = token_info(web3, token_address)
    return {"tokenSymbol": symbol, "decimals": decimals}


def get_native_token_balance(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    address = validate_address("address", get_string(arguments, "address"))
    web3 = gateway.engine.connect(_rpc_url(gateway, arguments, context))
    balance = web3.eth.get_balance(Web3.to_checksum_address(address))
    chain_id = int(web3.eth.chain_id)
    symbol, decimals = _native_info(gateway, chain_id, context)
    return {
        "address": address,
        "balance": str(balance),
        "tokenSymbol": symbol,
        "chainId": str(chain_id),
        "decimals": decimals,
    }


def get_token_balance(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    token = validate_address("tokenAddress", get_string(arguments, "tokenAddress"))
    wallet = validate_address("walletAddress", get_string(arguments, "walletAddress"))
    web3 = gateway.engine.connect(_rpc_url(gateway, arguments, context))
    balance = balance_of(web3, token, wallet)
    result = {
        "walletAddress": wallet,
        "tokenAddress": token,
        "balance": str(balance),
    }
    result.update(_token_details(web3, token))
    result["chainId"] = str(int(web3.eth.chain_id))
    return result


def get_allowance(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    token = validate_address("tokenAddress", get_string(arguments, "tokenAddress"))
    owner = validate_address("ownerAddress", get_string(arguments, "ownerAddress"))
    spender = validate_address("spenderAddress", get_string(arguments, "spenderAddress"))
    web3 = gateway.engine.connect(_rpc_url(gateway, arguments, context))
    allowance = allowance_of(web3, token, owner, spender)
    result = {
        "tokenAddress": token,
        "ownerAddress": owner,
        "spenderAddress": spender,
        "allowance": str(allowance),
    }
    result.update(_token_details(web3, token))
    result["chainId"] = str(int(web3.eth.chain_id))
    return result


def get_wallet_address(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    return {"address": gateway.engine.require_account().address}


def execute_quote(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    gateway.engine.require_account()
    request = get_object(arguments, "transactionRequest")
    if request is None:
        raise ValidationError("transactionRequest", "transactionRequest object is required")
    descriptor = TransactionDescriptor.from_request(request)
    chain = get_string(arguments, "chain")
    if not chain and descriptor.chain_id is not None:
        chain = str(descriptor.chain_id)
    rpc_url = _rpc_url(gateway, arguments, context, chain)
    return gateway.engine.execute(descriptor, rpc_url, context)


def approve_token(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    gateway.engine.require_account()
    token = validate_recipient_address("tokenAddress", get_string(arguments, "tokenAddress"))
    spender = validate_recipient_address("spenderAddress", get_string(arguments, "spenderAddress"))
    amount = validate_amount_allow_zero("amount", get_string(arguments, "amount"))
    rpc_url = _rpc_url(gateway, arguments, context)
    return gateway.engine.approve(
        token,
        spender,
        amount,
        rpc_url,
        context,
        preflight=lambda web3, fees, sender: _token_details(web3, token),
    )


def transfer_token(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    gateway.engine.require_account()
    token = validate_recipient_address("tokenAddress", get_string(arguments, "tokenAddress"))
    recipient = validate_recipient_address("to", get_string(arguments, "to"))
    amount = validate_amount("amount", get_string(arguments, "amount"))
    rpc_url = _rpc_url(gateway, arguments, context)
    return gateway.engine.transfer_token(
        token,
        recipient,
        amount,
        rpc_url,
        context,
        preflight=lambda web3, fees, sender: _token_details(web3, token),
    )


def transfer_native(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    gateway.engine.require_account()
    recipient = validate_recipient_address("to", get_string(arguments, "to"))
    amount = validate_amount("amount", get_string(arguments, "amount"))
    rpc_url = _rpc_url(gateway, arguments, context)

    def native_details(web3: Web3, fees: FeeQuote, sender: str) -> Optional[Dict[str, Any]]:
        symbol, decimals = _native_info(gateway, int(web3.eth.chain_id), context)
        return {"tokenSymbol": symbol, "decimals": decimals}

    return gateway.engine.transfer_native(recipient, amount, rpc_url, context, preflight=native_details)


TOOLS = [
    ToolSpec(
        "get-native-token-balance",
        "Native token balance (ETH, MATIC, ...) of an address, in the smallest unit.",
        get_native_token_balance,
        object_schema(
            {"chain": _CHAIN, "rpcUrl": _RPC_URL, "address": string("Wallet address to check.")},
            required=["chain", "address"],
        ),
    ),
    ToolSpec(
        "get-token-balance",
        "ERC20 token balance of a wallet, with the token's symbol and decimals.",
        get_token_balance,
        object_schema(
            {
                "chain": _CHAIN,
                "rpcUrl": _RPC_URL,
                "tokenAddress": string("ERC20 token contract address."),
                "walletAddress": string("Wallet address to check."),
            },
            required=["chain", "tokenAddress", "walletAddress"],
        ),
    ),
    ToolSpec(
        "get-allowance",
        "How much of a token a spender may move on behalf of an owner. Check this before executing an ERC20 quote.",
        get_allowance,
        object_schema(
            {
                "chain": _CHAIN,
                "rpcUrl": _RPC_URL,
                "tokenAddress": string("ERC20 token contract address."),
                "ownerAddress": string("Wallet that owns the tokens."),
                "spenderAddress": string("Contract allowed to spend, e.g. transactionRequest.to of a quote."),
            },
            required=["chain", "tokenAddress", "ownerAddress", "spenderAddress"],
        ),
    ),
    ToolSpec(
        "get-wallet-address",
        "Address of the wallet loaded into this server.",
        get_wallet_address,
    ),
    ToolSpec(
        "execute-quote",
        "Sign and broadcast the transactionRequest returned by get-quote or get-step-transaction.",
        execute_quote,
        object_schema(
            {
                "transactionRequest": obj("The transactionRequest object from a quote, passed unchanged."),
                "chain": string("Chain ID or name. Defaults to transactionRequest.chainId."),
                "rpcUrl": _RPC_URL,
            },
            required=["transactionRequest"],
        ),
    ),
    ToolSpec(
        "approve-token",
        "Approve a spender to move ERC20 tokens from the loaded wallet. An amount of 0 revokes the approval.",
        approve_token,
        object_schema(
            {
                "chain": _CHAIN,
                "rpcUrl": _RPC_URL,
                "tokenAddress": string("ERC20 token contract address."),
                "spenderAddress": string("Address to approve, e.g. transactionRequest.to of a quote."),
                "amount": string("Amount in the token's smallest unit."),
            },
            required=["chain", "tokenAddress", "spenderAddress", "amount"],
        ),
    ),
    ToolSpec(
        "transfer-token",
        "Send ERC20 tokens from the loaded wallet.",
        transfer_token,
        object_schema(
            {
                "chain": _CHAIN,
                "rpcUrl": _RPC_URL,
                "tokenAddress": string("ERC20 token contract address."),
                "to": string("Recipient address."),
                "amount": string("Amount in the token's smallest unit."),
            },
            required=["chain", "tokenAddress", "to", "amount"],
        ),
    ),
    ToolSpec(
        "transfer-native",
        "Send the chain's native token from the loaded wallet.",
        transfer_native,
        object_schema(
            {
                "chain": _CHAIN,
                "rpcUrl": _RPC_URL,
                "to": string("Recipient address."),
                "amount": string("Amount in wei."),
            },
            required=["chain", "to", "amount"],
        ),
    ),
]


__all__ = [
    "TOOLS",
    "approve_token",
    "execute_quote",
    "get_allowance",
    "get_native_token_balance",
    "get_token_balance",
    "get_wallet_address",
    "transfer_native",
    "transfer_token",
]
