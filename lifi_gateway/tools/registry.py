"""Tool table and the dispatcher that runs handlers behind a recovery boundary."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests
from web3.exceptions import Web3Exception

import lifi_gateway
from lifi_gateway.core.context import RequestContext
from lifi_gateway.core.errors import GatewayError, RequestCancelled
from lifi_gateway.core.utils import get_logger
from lifi_gateway.tools import api, chains, onchain
from lifi_gateway.tools.base import Gateway, ToolResult, ToolSpec

LOGGER = get_logger("lifi_gateway.dispatch")

INTERNAL_ERROR = "internal error: handler panic"


def health_check(gateway: Gateway, arguments: Mapping[str, Any], context: RequestContext) -> Any:
    status: Dict[str, Any] = {
        "status": "ok",
        "version": lifi_gateway.__version__,
        "walletLoaded": gateway.engine.address is not None,
        "apiKeyConfigured": bool(context.api_key),
    }
    try:
        status["chains"] = len(gateway.chains.records(context))
        status["api"] = "reachable"
    except GatewayError as exc:
        status["status"] = "degraded"
        status["api"] = f"unreachable: {exc}"
    return status


HEALTH_CHECK = ToolSpec(
    "health-check",
    "Server version, whether a wallet is loaded, and LI.FI API connectivity.",
    health_check,
)


def default_tools() -> List[ToolSpec]:
    return [HEALTH_CHECK, *api.TOOLS, *chains.TOOLS, *onchain.TOOLS]


class Dispatcher:
    """Routes tool calls to handlers and turns every outcome into a ToolResult.

    No exception escapes :meth:`invoke`: gateway errors become their message,
    RPC transport failures a short description, and anything else is logged
    with its traceback and reported as a generic internal error.
    """

    def __init__(self, gateway: Gateway, tools: Optional[Iterable[ToolSpec]] = None) -> None:
        self.gateway = gateway
        self._tools: Dict[str, ToolSpec] = {}
        for spec in tools if tools is not None else default_tools():
            if spec.name in self._tools:
                raise ValueError(f"duplicate tool name: {spec.name}")
            self._tools[spec.name] = spec

    @property
    def tools(self) -> List[ToolSpec]:
        return list(self._tools.values())

    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]], context: RequestContext) -> ToolResult:
        spec = self._tools.get(name)
        if spec is None:
            return ToolResult.error(f"unknown tool: {name}")
        if arguments is not None and not isinstance(arguments, Mapping):
            arguments = None

        try:
            result = spec.handler(self.gateway, arguments or {}, context)
        except RequestCancelled as exc:
            LOGGER.info("Tool %s cancelled", name)
            return ToolResult.error(str(exc))
        except GatewayError as exc:
            LOGGER.info("Tool %s failed: %s", name, exc)
            return ToolResult.error(str(exc))
        except Web3Exception as exc:
            LOGGER.warning("Tool %s RPC error: %s", name, exc)
            return ToolResult.error(f"blockchain RPC error: {exc}")
        except requests.RequestException as exc:
            # the message may embed a provider URL with credentials in it
            LOGGER.warning("Tool %s RPC transport error: %s", name, exc.__class__.__name__)
            return ToolResult.error(f"blockchain RPC request failed: {exc.__class__.__name__}")
        except Exception:
            LOGGER.exception("Unexpected failure in tool %s", name)
            return ToolResult.error(INTERNAL_ERROR)
        return ToolResult.ok(result)


__all__ = ["Dispatcher", "HEALTH_CHECK", "INTERNAL_ERROR", "default_tools", "health_check"]
