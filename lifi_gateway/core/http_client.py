"""Rate-limited, retrying HTTP client for the LI.FI REST API.

Every upstream call passes through :class:`HttpClient`. Each attempt, retries
included, first takes one token from a process-wide :class:`TokenBucket`.
Network failures, HTTP 429 and 5xx responses are retried with jittered
exponential backoff; any other 4xx is returned to the caller immediately.
"""

from __future__ import annotations

import json
import random
import threading
import time
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from lifi_gateway.core.context import API_KEY_HEADER, RequestContext
from lifi_gateway.core.errors import UpstreamError
from lifi_gateway.core.utils import get_logger, is_ascii_digits

LOGGER = get_logger("lifi_gateway.http")

DEFAULT_RATE_LIMIT = 200
DEFAULT_RATE_PERIOD = 2 * 60 * 60.0
DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
BASE_RETRY_DELAY = 0.5
MAX_RETRY_DELAY = 30.0
RETRY_JITTER_RATIO = 0.3
_ERROR_BODY_LIMIT = 512

Sleeper = Callable[[float], None]


class TokenBucket:
    """Token bucket shared by every call in the process.

    Tokens refill one at a time every ``period / max_tokens`` seconds. A caller
    that finds the bucket empty waits outside the lock and tries again, so it
    is never rejected, only delayed.
    """

    def __init__(
        self,
        max_tokens: int = DEFAULT_RATE_LIMIT,
        period: float = DEFAULT_RATE_PERIOD,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if period <= 0:
            raise ValueError("period must be positive")
        self._lock = threading.Lock()
        self._clock = clock
        self._sleep = sleep
        self.max_tokens = max_tokens
        self.refill_interval = period / max_tokens
        self._tokens = max_tokens
        self._last_refill = clock()

    @property
    def tokens(self) -> int:
        with self._lock:
            self._refill(self._clock())
            return self._tokens

    def _refill(self, now: float) -> None:
        elapsed = now - self._last_refill
        added = int(elapsed // self.refill_interval)
        if added <= 0:
            return
        if self._tokens + added >= self.max_tokens:
            self._tokens = self.max_tokens
            self._last_refill = now
        else:
            self._tokens += added
            self._last_refill += added * self.refill_interval

    def try_acquire(self) -> Optional[float]:
        """Take a token and return ``None``, or return the seconds until one is due."""
        with self._lock:
            now = self._clock()
            self._refill(now)
            if self._tokens > 0:
                self._tokens -= 1
                return None
            # _refill leaves less than one interval since the last refill
            return self.refill_interval - (now - self._last_refill)

    def acquire(self, context: Optional[RequestContext] = None) -> None:
        """Block until a token is available, observing cancellation."""
        while True:
            if context is not None:
                context.check()
            wait = self.try_acquire()
            if wait is None:
                return
            LOGGER.debug("Rate limiter empty, waiting %.2fs", wait)
            if self._sleep is not None:
                self._sleep(wait)
            elif context is not None:
                context.sleep(wait)
            else:
                time.sleep(wait)


def parse_retry_after(header: Optional[str], *, now: Optional[float] = None) -> float:
    """Seconds to wait according to a ``Retry-After`` header.

    Accepts integer seconds or an HTTP-date; anything else falls back to the
    base retry delay.
    """
    if not header:
        return BASE_RETRY_DELAY
    header = header.strip()
    if is_ascii_digits(header):
        return float(int(header))
    try:
        when = parsedate_to_datetime(header)
    except (TypeError, ValueError, IndexError):
        return BASE_RETRY_DELAY
    if when is None:
        return BASE_RETRY_DELAY
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    current = time.time() if now is None else now
    return max(when.timestamp() - current, 0.0)


class HttpClient:
    """The single chokepoint for upstream REST calls."""

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        limiter: Optional[TokenBucket] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_RETRY_DELAY,
        max_delay: float = MAX_RETRY_DELAY,
        sleep: Optional[Sleeper] = None,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.session = session or requests.Session()
        self.limiter = limiter or TokenBucket()
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._rng = rng

    def get(
        self,
        url: str,
        context: RequestContext,
        params: Optional[Mapping[str, Any]] = None,
    ) -> bytes:
        """GET ``url`` and return the raw response body."""
        return self._request_with_retry("GET", url, context, params=params)

    def post(self, url: str, body: Any, context: RequestContext) -> bytes:
        """POST ``body`` as JSON to ``url`` and return the raw response body."""
        payload = body if isinstance(body, (bytes, str)) else json.dumps(body)
        return self._request_with_retry("POST", url, context, data=payload)

    def get_json(self, url: str, context: RequestContext, params: Optional[Mapping[str, Any]] = None) -> Any:
        return decode_json(self.get(url, context, params=params), url)

    def post_json(self, url: str, body: Any, context: RequestContext) -> Any:
        return decode_json(self.post(url, body, context), url)

    def backoff_delay(self, attempt: int) -> float:
        """``base * 2**attempt`` capped at ``max_delay``, with +-30% jitter."""
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        return delay + delay * RETRY_JITTER_RATIO * (2 * self._rng() - 1)

    def _request_with_retry(
        self,
        method: str,
        url: str,
        context: RequestContext,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Any = None,
    ) -> bytes:
        attempt = 0
        while True:
            self.limiter.acquire(context)
            try:
                return self._send(method, url, context, params=params, data=data)
            except UpstreamError as exc:
                if not exc.retryable or attempt >= self.max_retries:
                    raise
                last_error = exc
            delay = self.backoff_delay(attempt)
            LOGGER.debug(
                "Retrying %s %s (attempt %s/%s) in %.2fs: %s",
                method,
                url,
                attempt + 1,
                self.max_retries,
                delay,
                last_error,
            )
            if self._sleep is not None:
                context.check()
                self._sleep(delay)
            else:
                context.sleep(delay)
            attempt += 1

    def _send(
        self,
        method: str,
        url: str,
        context: RequestContext,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Any = None,
    ) -> bytes:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if method == "POST":
            headers["Content-Type"] = "application/json"
        if context.api_key:
            headers[API_KEY_HEADER] = context.api_key

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError(f"request to {url} failed: {exc.__class__.__name__}", retryable=True) from exc

        status = response.status_code
        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            LOGGER.warning("Rate limited by LI.FI API (retry after %.1fs): %s", retry_after, url)
            raise UpstreamError(
                f"rate limited (429): retry after {retry_after:.1f}s",
                status=status,
                retryable=True,
                retry_after=retry_after,
            )
        if status >= 500:
            raise UpstreamError(f"HTTP {status}: {_body_excerpt(response)}", status=status, retryable=True)
        if status >= 400:
            raise UpstreamError(f"HTTP {status}: {_body_excerpt(response)}", status=status)
        return response.content


def _body_excerpt(response: requests.Response) -> str:
    text = response.content.decode("utf-8", errors="replace") if response.content else ""
    if len(text) > _ERROR_BODY_LIMIT:
        return text[:_ERROR_BODY_LIMIT] + "..."
    return text


def decode_json(body: bytes, url: str = "") -> Any:
    """Decode an upstream body; a malformed one is a terminal upstream error."""
    try:
        return json.loads(body)
    except (TypeError, ValueError) as exc:
        raise UpstreamError(f"malformed JSON response from {url or 'upstream'}") from exc


__all__ = [
    "BASE_RETRY_DELAY",
    "DEFAULT_RATE_LIMIT",
    "DEFAULT_RATE_PERIOD",
    "HttpClient",
    "MAX_RETRIES",
    "MAX_RETRY_DELAY",
    "TokenBucket",
    "decode_json",
    "parse_retry_after",
]
