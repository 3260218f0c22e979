"""Utility helpers shared across gateway core modules."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional, Union

REVERT_MARKER = "execution reverted:"
UNKNOWN_REVERT_REASON = "Unknown reason"

_HEX_QUANTITY = re.compile(r"^0[xX][0-9a-fA-F]*$")


def get_logger(name: str = "lifi_gateway") -> logging.Logger:
    """Return a configured logger that prints to stderr.

    stdout carries the MCP stdio transport, so log records must never go there.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def set_log_level(level: str) -> None:
    """Apply ``level`` to every gateway logger created so far."""
    numeric = logging.getLevelName(level.upper())
    for name, logger in logging.Logger.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and name.startswith("lifi_gateway"):
            logger.setLevel(numeric)


def is_ascii_digits(text: str) -> bool:
    """True for a non-empty run of 0-9; unicode digits such as ``'²'`` do not count."""
    return text.isascii() and text.isdigit()


def parse_quantity(value: Union[int, str, None], *, field_name: str) -> Optional[int]:
    """Parse an integer quantity given as int, ``0x`` hex or decimal string.

    Empty values return ``None`` so callers can treat them as absent.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer quantity")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"{field_name} cannot be negative")
        return value
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be an integer quantity")
    text = value.strip()
    if not text:
        return None
    if _HEX_QUANTITY.match(text):
        return int(text, 16) if len(text) > 2 else 0
    if is_ascii_digits(text):
        return int(text, 10)
    raise ValueError(f"{field_name} is not a valid quantity: {value!r}")


def extract_revert_reason(error: Union[BaseException, str]) -> str:
    """Return the text after ``execution reverted:`` in a provider error."""
    # web3 keeps the provider message on .message; str() of the exception adds its data
    message = getattr(error, "message", None)
    text = message if isinstance(message, str) else str(error)
    index = text.find(REVERT_MARKER)
    if index < 0:
        return UNKNOWN_REVERT_REASON
    reason = text[index + len(REVERT_MARKER):].strip().strip("'\"(),{}").strip()
    return reason or UNKNOWN_REVERT_REASON


def to_json(data: Any) -> str:
    """Serialize tool output, stringifying anything JSON does not know."""
    return json.dumps(data, indent=2, default=str)


__all__ = [
    "REVERT_MARKER",
    "UNKNOWN_REVERT_REASON",
    "extract_revert_reason",
    "get_logger",
    "is_ascii_digits",
    "parse_quantity",
    "set_log_level",
    "to_json",
]
