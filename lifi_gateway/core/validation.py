"""Validation helpers for tool arguments.

Each validator raises :class:`ValidationError` naming the offending field, and
returns the normalized value on success.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from lifi_gateway.core.errors import ValidationError
from lifi_gateway.core.utils import is_ascii_digits

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_AMOUNT_DIGITS = 78
MAX_UINT256 = 2**256 - 1

_ADDRESS_PATTERN = re.compile(r"^(0[xX])?[0-9a-fA-F]{40}$")
_SIGNED_INTEGER_PATTERN = re.compile(r"^-?[0-9]+$")
_CHAIN_KEY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")


def is_hex_address(address: str) -> bool:
    return bool(_ADDRESS_PATTERN.match(address))


def is_zero_address(address: str) -> bool:
    return is_hex_address(address) and int(address[-40:], 16) == 0


def validate_address(field: str, address: str) -> str:
    """Accept any 20-byte hex address regardless of case."""
    if not address:
        raise ValidationError(field, "address is required")
    if not is_hex_address(address):
        raise ValidationError(field, f"invalid address format: {address}")
    return address


def validate_recipient_address(field: str, address: str) -> str:
    """Like :func:`validate_address` but refuses the zero (burn) address."""
    validate_address(field, address)
    if is_zero_address(address):
        raise ValidationError(field, "cannot send to zero address (burn address); this would permanently destroy funds")
    return address


def validate_token_address(field: str, address: str) -> str:
    """The zero address is allowed here, it denotes the native asset."""
    if not address:
        raise ValidationError(field, "token address is required")
    if not is_hex_address(address):
        raise ValidationError(field, f"invalid token address format: {address}")
    return address


def validate_chain_id(field: str, chain_id: str) -> str:
    """Numeric ids must be positive integers; otherwise a chain key like ``eth``."""
    if not chain_id:
        raise ValidationError(field, "chain ID is required")
    if _SIGNED_INTEGER_PATTERN.match(chain_id):
        if int(chain_id) <= 0:
            raise ValidationError(field, "chain ID must be a positive integer")
        return str(int(chain_id))
    if not _CHAIN_KEY_PATTERN.match(chain_id):
        raise ValidationError(field, f"invalid chain ID format: {chain_id}")
    return chain_id


def _parse_amount(field: str, amount: str) -> int:
    if not amount:
        raise ValidationError(field, "amount is required")
    if len(amount) > MAX_AMOUNT_DIGITS:
        raise ValidationError(field, "amount exceeds maximum allowed digits")
    if amount.startswith("-") and is_ascii_digits(amount[1:]):
        raise ValidationError(field, "amount cannot be negative")
    if not is_ascii_digits(amount):
        raise ValidationError(field, f"invalid amount format: {amount}")
    value = int(amount, 10)
    if value > MAX_UINT256:
        raise ValidationError(field, "amount exceeds maximum uint256 value")
    return value


def validate_amount(field: str, amount: str) -> int:
    """Base-10 unsigned integer, at most 78 digits, strictly positive."""
    value = _parse_amount(field, amount)
    if value == 0:
        raise ValidationError(field, "amount cannot be zero")
    return value


def validate_amount_allow_zero(field: str, amount: str) -> int:
    return _parse_amount(field, amount)


def validate_slippage(slippage: str) -> str:
    """Optional decimal fraction in ``[0, 1]``."""
    if not slippage:
        return slippage
    try:
        value = Decimal(slippage)
    except InvalidOperation as exc:
        raise ValidationError("slippage", f"invalid slippage format: {slippage}") from exc
    if not value.is_finite():
        raise ValidationError("slippage", f"invalid slippage format: {slippage}")
    if value < 0:
        raise ValidationError("slippage", "slippage cannot be negative")
    if value > 1:
        raise ValidationError("slippage", "slippage cannot exceed 1 (100%)")
    return slippage


__all__ = [
    "MAX_AMOUNT_DIGITS",
    "MAX_UINT256",
    "ZERO_ADDRESS",
    "is_hex_address",
    "is_zero_address",
    "validate_address",
    "validate_amount",
    "validate_amount_allow_zero",
    "validate_chain_id",
    "validate_recipient_address",
    "validate_slippage",
    "validate_token_address",
]
