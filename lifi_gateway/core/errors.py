"""Error types raised by the gateway core.

Every message on these exceptions is safe to return to a tool caller. None of
them ever carries the upstream API key.
"""

from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """Base class for errors that are reported back to the caller."""


class ValidationError(GatewayError, ValueError):
    """An argument failed validation before any network call."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"invalid {field}: {message}")
        self.field = field
        self.reason = message


class UpstreamError(GatewayError):
    """The LI.FI API failed, either terminally or after retries ran out."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        retryable: bool = False,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable
        self.retry_after = retry_after


class ChainNotFoundError(GatewayError):
    """No chain in the directory matches the identifier."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"chain not found: {identifier}")
        self.identifier = identifier


class ChainUnusableError(GatewayError):
    """The chain exists but has no RPC endpoint to talk to."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"chain {identifier} has no RPC URLs configured; pass rpcUrl explicitly")
        self.identifier = identifier


class TransactionError(GatewayError):
    """A transaction was rejected before or during broadcast."""


class KeyNotLoadedError(TransactionError):
    def __init__(self) -> None:
        super().__init__("no private key loaded; start the server with PRIVATE_KEY or a keystore")


class SimulationError(TransactionError):
    """The pre-broadcast ``eth_call`` reverted."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"transaction simulation failed: {reason}")
        self.reason = reason


class InsufficientBalanceError(TransactionError):
    pass


class RequestCancelled(GatewayError):
    """The caller went away while the request was waiting."""

    def __init__(self) -> None:
        super().__init__("request cancelled")


__all__ = [
    "ChainNotFoundError",
    "ChainUnusableError",
    "GatewayError",
    "InsufficientBalanceError",
    "KeyNotLoadedError",
    "RequestCancelled",
    "SimulationError",
    "TransactionError",
    "UpstreamError",
    "ValidationError",
]
