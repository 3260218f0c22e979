"""ERC-20 view calls and calldata helpers."""

from __future__ import annotations

from typing import Tuple

from web3 import Web3
from web3.contract import Contract

from lifi_gateway.contracts import load_contract_abi
from lifi_gateway.core.utils import get_logger

LOGGER = get_logger("lifi_gateway.tokens")

UNKNOWN_SYMBOL = "Unknown"
DEFAULT_DECIMALS = 18


def get_contract(web3: Web3, token_address: str) -> Contract:
    """Return an ERC-20 contract bound to ``token_address``."""
    return web3.eth.contract(address=Web3.to_checksum_address(token_address), abi=load_contract_abi("erc20.json"))


def balance_of(web3: Web3, token_address: str, owner: str) -> int:
    """Fetch the ERC-20 balance."""
    contract = get_contract(web3, token_address)
    return int(contract.functions.balanceOf(Web3.to_checksum_address(owner)).call())


def allowance_of(web3: Web3, token_address: str, owner: str, spender: str) -> int:
    """Fetch the ERC-20 allowance."""
    contract = get_contract(web3, token_address)
    return int(
        contract.functions.allowance(
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(spender),
        ).call()
    )


def token_info(web3: Web3, token_address: str) -> Tuple[str, int]:
    """Return ``(symbol, decimals)``, degrading to ``Unknown``/18 on failure.

    Plenty of tokens implement these getters loosely, and the metadata is only
    decoration on balance results, so a failure here never fails the call.
    """
    contract = get_contract(web3, token_address)
    try:
        symbol = contract.functions.symbol().call()
    except Exception as exc:  # non-standard tokens revert or return bytes32
        LOGGER.debug("symbol() failed for %s: %s", token_address, exc)
        return UNKNOWN_SYMBOL, DEFAULT_DECIMALS
    try:
        decimals = int(contract.functions.decimals().call())
    except Exception as exc:
        LOGGER.debug("decimals() failed for %s: %s", token_address, exc)
        decimals = DEFAULT_DECIMALS
    return str(symbol), decimals


def encode_approve(web3: Web3, token_address: str, spender: str, amount: int) -> str:
    """Calldata for ``approve(spender, amount)``."""
    contract = get_contract(web3, token_address)
    return contract.encode_abi("approve", args=[Web3.to_checksum_address(spender), amount])


def encode_transfer(web3: Web3, token_address: str, recipient: str, amount: int) -> str:
    """Calldata for ``transfer(recipient, amount)``."""
    contract = get_contract(web3, token_address)
    return contract.encode_abi("transfer", args=[Web3.to_checksum_address(recipient), amount])


__all__ = [
    "DEFAULT_DECIMALS",
    "UNKNOWN_SYMBOL",
    "allowance_of",
    "balance_of",
    "encode_approve",
    "encode_transfer",
    "get_contract",
    "token_info",
]
