"""Core request execution layer: HTTP client, chain cache and transaction engine."""

from .chains import ChainCache, ChainRecord
from .context import RequestContext, api_key_from_headers
from .http_client import HttpClient, TokenBucket
from .transactions import TransactionDescriptor, TransactionEngine

__all__ = [
    "ChainCache",
    "ChainRecord",
    "HttpClient",
    "RequestContext",
    "TokenBucket",
    "TransactionDescriptor",
    "TransactionEngine",
    "api_key_from_headers",
]
