"""Chain directory cache backed by ``GET /v1/chains``.

The cache is owned by the server instance and handed to whatever needs chain
metadata. Readers share a lock; a refresh fetches and parses the new directory
without holding it, then swaps the whole snapshot in under the write lock. A
reader therefore sees either the empty initial state or one complete
directory, never a mix.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from lifi_gateway.core.context import RequestContext
from lifi_gateway.core.errors import (
    ChainNotFoundError,
    ChainUnusableError,
    GatewayError,
    UpstreamError,
    ValidationError,
)
from lifi_gateway.core.http_client import HttpClient
from lifi_gateway.core.utils import get_logger, is_ascii_digits

LOGGER = get_logger("lifi_gateway.chains")

DEFAULT_NATIVE_DECIMALS = 18


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class NativeToken:
    symbol: str
    decimals: int
    address: str = ""


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _strings(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item for item in value if isinstance(item, str) and item)


def _native_from(data: Mapping[str, Any]) -> Optional[NativeToken]:
    symbol = data.get("symbol")
    if not isinstance(symbol, str) or not symbol:
        return None
    decimals = data.get("decimals")
    if not isinstance(decimals, int) or isinstance(decimals, bool):
        decimals = DEFAULT_NATIVE_DECIMALS
    address = data.get("address")
    return NativeToken(symbol=symbol, decimals=decimals, address=address if isinstance(address, str) else "")


@dataclass(frozen=True)
class ChainRecord:
    """One entry of the LI.FI chain directory."""

    id: int
    key: str
    name: str
    native_token: Optional[NativeToken]
    rpc_urls: Tuple[str, ...]
    explorer_urls: Tuple[str, ...]
    chain_name: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ChainRecord":
        chain_id = data.get("id")
        if not isinstance(chain_id, int) or isinstance(chain_id, bool):
            raise ValueError(f"chain entry has no integer id: {data.get('id')!r}")
        metamask = _mapping(data.get("metamask"))
        native = (
            _native_from(_mapping(data.get("nativeToken")))
            or _native_from(_mapping(data.get("nativeCurrency")))
            or _native_from(_mapping(metamask.get("nativeCurrency")))
        )
        chain_name = metamask.get("chainName")
        return cls(
            id=chain_id,
            key=str(data.get("key") or ""),
            name=str(data.get("name") or ""),
            native_token=native,
            rpc_urls=_strings(metamask.get("rpcUrls")),
            explorer_urls=_strings(metamask.get("blockExplorerUrls")),
            chain_name=chain_name if isinstance(chain_name, str) else "",
            raw=dict(data),
        )

    def matches(self, identifier: str) -> bool:
        """Numeric identifiers match the id exactly; names match case-insensitively."""
        text = identifier.strip()
        if is_ascii_digits(text):
            return self.id == int(text)
        lowered = text.lower()
        return lowered in (self.name.lower(), self.key.lower(), self.chain_name.lower()) and bool(lowered)

    def native_token_info(self) -> Optional[Tuple[str, int]]:
        """Native symbol and decimals, falling back to the wallet chain name."""
        if self.native_token is not None:
            return self.native_token.symbol, self.native_token.decimals
        if self.chain_name:
            return self.chain_name.split(" ")[0], DEFAULT_NATIVE_DECIMALS
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Return the upstream JSON object this record was built from."""
        return dict(self.raw)


def parse_chain_directory(payload: Any) -> Tuple[ChainRecord, ...]:
    """Turn a ``/v1/chains`` response into records, skipping malformed entries."""
    chains = payload.get("chains") if isinstance(payload, Mapping) else None
    if not isinstance(chains, list):
        raise UpstreamError("chain directory response has no 'chains' list")

    records: List[ChainRecord] = []
    seen = set()
    for entry in chains:
        if not isinstance(entry, Mapping):
            continue
        try:
            record = ChainRecord.from_json(entry)
        except ValueError as exc:
            LOGGER.warning("Skipping chain entry: %s", exc)
            continue
        if record.id in seen:
            LOGGER.warning("Skipping duplicate chain id %s", record.id)
            continue
        seen.add(record.id)
        records.append(record)
    return tuple(records)


class ChainCache:
    """Read-through cache of the LI.FI chain directory."""

    def __init__(self, http_client: HttpClient, base_url: str) -> None:
        self._http = http_client
        self._url = f"{base_url.rstrip('/')}/v1/chains"
        self._lock = ReadWriteLock()
        self._refresh_lock = threading.Lock()
        self._records: Tuple[ChainRecord, ...] = ()
        self._initialized = False
        self._generation = 0

    @property
    def initialized(self) -> bool:
        with self._lock.read():
            return self._initialized

    @property
    def generation(self) -> int:
        """Bumped every time a new snapshot is swapped in."""
        with self._lock.read():
            return self._generation

    def peek(self) -> Tuple[ChainRecord, ...]:
        """Current snapshot without triggering a refresh."""
        with self._lock.read():
            return self._records

    def load(self, records: Iterable[ChainRecord]) -> None:
        """Replace the cache with ``records`` and mark it initialized."""
        snapshot = tuple(records)
        with self._lock.write():
            self._records = snapshot
            self._initialized = True
            self._generation += 1

    def refresh(self, context: RequestContext) -> Tuple[ChainRecord, ...]:
        """Fetch the directory and swap it in. Failure keeps the old snapshot."""
        with self._refresh_lock:
            return self._fetch(context)

    def refresh_if_unchanged(self, generation: int, context: RequestContext) -> bool:
        """Refresh unless a newer snapshot than ``generation`` landed meanwhile.

        Callers that missed on the same snapshot queue on the refresh lock;
        the first one fetches and the rest reuse its result.
        """
        with self._refresh_lock:
            if self.generation != generation:
                return False
            self._fetch(context)
        return True

    def _fetch(self, context: RequestContext) -> Tuple[ChainRecord, ...]:
        payload = self._http.get_json(self._url, context)
        snapshot = parse_chain_directory(payload)
        self.load(snapshot)
        LOGGER.info("Loaded %s chains from LI.FI", len(snapshot))
        return snapshot

    def _ensure_initialized(self, context: RequestContext) -> bool:
        """Refresh if nothing was loaded yet. Returns True if a refresh ran."""
        if self.initialized:
            return False
        with self._refresh_lock:
            # another caller may have finished the first load meanwhile
            if self.initialized:
                return False
            self._fetch(context)
        return True

    def records(self, context: RequestContext) -> Tuple[ChainRecord, ...]:
        self._ensure_initialized(context)
        return self.peek()

    def _search(self, identifier: str) -> Tuple[Optional[ChainRecord], int]:
        with self._lock.read():
            records, generation = self._records, self._generation
        for record in records:
            if record.matches(identifier):
                return record, generation
        return None, generation

    def find(self, identifier: str, context: RequestContext) -> ChainRecord:
        """Look a chain up by id, name, key or wallet chain name.

        A miss on an already-loaded cache triggers one forced refresh and one
        more search, in case the directory changed since startup. Concurrent
        misses on the same snapshot share a single refresh.
        """
        identifier = identifier.strip()
        if not identifier:
            raise ValidationError("chain", "chain identifier is required")
        just_loaded = self._ensure_initialized(context)
        record, generation = self._search(identifier)
        if record is None and not just_loaded:
            LOGGER.info("Chain %s not cached, refreshing directory", identifier)
            self.refresh_if_unchanged(generation, context)
            record, _ = self._search(identifier)
        if record is None:
            raise ChainNotFoundError(identifier)
        return record

    def resolve_rpc_url(self, chain: str, context: RequestContext, rpc_url: str = "") -> str:
        """Explicit ``rpc_url`` wins; otherwise the chain's first RPC URL."""
        if rpc_url:
            return rpc_url
        if not chain:
            raise ValidationError("chain", "either 'chain' or 'rpcUrl' parameter is required")
        record = self.find(chain, context)
        if not record.rpc_urls:
            raise ChainUnusableError(chain)
        return record.rpc_urls[0]

    def native_token_info(self, chain_id: int, context: RequestContext) -> Tuple[str, int]:
        record = self.find(str(chain_id), context)
        info = record.native_token_info()
        if info is None:
            raise GatewayError(f"chain {chain_id} has no native token metadata")
        return info


__all__ = [
    "ChainCache",
    "ChainRecord",
    "NativeToken",
    "ReadWriteLock",
    "parse_chain_directory",
]
