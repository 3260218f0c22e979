"""Shared types for tool definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from lifi_gateway.config import GatewayConfig
from lifi_gateway.core.chains import ChainCache
from lifi_gateway.core.context import RequestContext
from lifi_gateway.core.http_client import HttpClient
from lifi_gateway.core.transactions import TransactionEngine
from lifi_gateway.core.utils import to_json


@dataclass
class Gateway:
    """Services a tool handler may use, owned by one server instance."""

    config: GatewayConfig
    http: HttpClient
    chains: ChainCache
    engine: TransactionEngine

    def url(self, path: str) -> str:
        return f"{self.config.upstream.base_url}{path}"


Handler = Callable[[Gateway, Mapping[str, Any], RequestContext], Any]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    handler: Handler
    input_schema: Dict[str, Any] = field(default_factory=lambda: object_schema())


@dataclass(frozen=True)
class ToolResult:
    """Text payload handed back to the MCP layer."""

    text: str
    is_error: bool = False

    @classmethod
    def ok(cls, data: Any) -> "ToolResult":
        return cls(text=data if isinstance(data, str) else to_json(data))

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(text=to_json({"error": message}), is_error=True)


def string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


def array(description: str, items: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"type": "array", "description": description, "items": items or {"type": "string"}}


def obj(description: str) -> Dict[str, Any]:
    return {"type": "object", "description": description}


def object_schema(properties: Optional[Dict[str, Any]] = None, required: Iterable[str] = ()) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": dict(properties or {})}
    required = list(required)
    if required:
        schema["required"] = required
    return schema


__all__ = [
    "Gateway",
    "Handler",
    "ToolResult",
    "ToolSpec",
    "array",
    "obj",
    "object_schema",
    "string",
]
