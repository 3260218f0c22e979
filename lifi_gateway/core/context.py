"""Per-call request context: the caller's API key and a cancellation flag."""

from __future__ import annotations

import threading
from typing import Mapping, Optional

from lifi_gateway.core.errors import RequestCancelled

BEARER_PREFIX = "bearer "
API_KEY_HEADER = "x-lifi-api-key"


def api_key_from_headers(headers: Optional[Mapping[str, str]]) -> str:
    """Pull the caller's key from transport headers.

    ``Authorization: Bearer <key>`` wins over ``x-lifi-api-key``. No header
    at all is valid and yields ``""`` (anonymous upstream tier).
    """
    if not headers:
        return ""
    lowered = {str(name).lower(): str(value) for name, value in headers.items()}
    authorization = lowered.get("authorization", "").strip()
    if authorization.lower().startswith(BEARER_PREFIX):
        key = authorization[len(BEARER_PREFIX):].strip()
        if key:
            return key
    return lowered.get(API_KEY_HEADER, "").strip()


class RequestContext:
    """Carries one call's credential and lets waits observe cancellation."""

    __slots__ = ("_api_key", "_cancelled")

    def __init__(self, api_key: str = "") -> None:
        self._api_key = api_key
        self._cancelled = threading.Event()

    @property
    def api_key(self) -> str:
        return self._api_key

    def __repr__(self) -> str:
        # never render the key itself
        return f"RequestContext(has_api_key={bool(self._api_key)}, cancelled={self.cancelled})"

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def check(self) -> None:
        """Raise :class:`RequestCancelled` if the call was cancelled."""
        if self._cancelled.is_set():
            raise RequestCancelled()

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``, waking early and raising on cancellation."""
        self.check()
        if seconds > 0 and self._cancelled.wait(seconds):
            raise RequestCancelled()


__all__ = ["API_KEY_HEADER", "RequestContext", "api_key_from_headers"]
