"""MCP server binding for the gateway.

Tool calls arrive through the MCP low-level :class:`mcp.server.Server` and run
on worker threads, so handlers stay synchronous. Two transports are offered:
stdio for a single local client, and stateless streamable HTTP where each
request may carry its own LI.FI API key in its headers.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

import uvicorn
from eth_account.signers.local import LocalAccount
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.types import TextContent, Tool
from starlette.applications import Starlette
from starlette.routing import Mount
from starlette.types import Receive, Scope, Send

import lifi_gateway
from lifi_gateway.config import GatewayConfig
from lifi_gateway.core.chains import ChainCache
from lifi_gateway.core.context import RequestContext, api_key_from_headers
from lifi_gateway.core.http_client import HttpClient, TokenBucket
from lifi_gateway.core.transactions import TransactionEngine, Web3Factory, default_web3_factory
from lifi_gateway.core.utils import get_logger
from lifi_gateway.tools.base import Gateway, ToolResult
from lifi_gateway.tools.registry import Dispatcher

LOGGER = get_logger("lifi_gateway.server")

SERVER_NAME = "lifi-gateway"


class ToolCallFailed(Exception):
    """Raised into the MCP layer so the result is flagged ``isError``."""


class GatewayServer:
    """Owns the shared services and exposes them as MCP tools."""

    def __init__(
        self,
        config: GatewayConfig,
        *,
        account: Optional[LocalAccount] = None,
        http_client: Optional[HttpClient] = None,
        web3_factory: Web3Factory = default_web3_factory,
    ) -> None:
        self.config = config
        upstream = config.upstream
        self.http = http_client or HttpClient(
            limiter=TokenBucket(upstream.rate_limit, upstream.rate_period),
            timeout=upstream.timeout,
            max_retries=upstream.max_retries,
        )
        self.chains = ChainCache(self.http, upstream.base_url)
        self.engine = TransactionEngine(account, web3_factory=web3_factory)
        self.gateway = Gateway(config=config, http=self.http, chains=self.chains, engine=self.engine)
        self.dispatcher = Dispatcher(self.gateway)
        self.app = self._build_app()

    def context_for(self, headers: Optional[Mapping[str, str]]) -> RequestContext:
        """Single-tenant servers ignore per-call headers."""
        if self.config.single_tenant:
            return RequestContext(self.config.api_key)
        return RequestContext(api_key_from_headers(headers))

    async def call(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]],
        headers: Optional[Mapping[str, str]] = None,
    ) -> ToolResult:
        """Run one tool on a worker thread; cancelling the await cancels the call."""
        context = self.context_for(headers)
        try:
            return await asyncio.to_thread(self.dispatcher.invoke, name, arguments, context)
        except asyncio.CancelledError:
            context.cancel()
            raise

    def _build_app(self) -> Server:
        app: Server = Server(SERVER_NAME, version=lifi_gateway.__version__)

        @app.list_tools()
        async def list_tools() -> List[Tool]:
            return [
                Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema)
                for spec in self.dispatcher.tools
            ]

        @app.call_tool()
        async def call_tool(name: str, arguments: Any) -> List[TextContent]:
            result = await self.call(name, arguments, _request_headers(app))
            if result.is_error:
                raise ToolCallFailed(result.text)
            return [TextContent(type="text", text=result.text)]

        return app


def _request_headers(app: Server) -> Optional[Mapping[str, str]]:
    """Headers of the HTTP request behind the current call, if there is one."""
    try:
        request_context = app.request_context
    except LookupError:
        return None
    request = getattr(request_context, "request", None)
    return getattr(request, "headers", None)


async def serve_stdio(server: GatewayServer) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.app.run(read_stream, write_stream, server.app.create_initialization_options())


def create_http_app(server: GatewayServer) -> Starlette:
    """Starlette app serving the MCP streamable HTTP transport at the configured path."""
    session_manager = StreamableHTTPSessionManager(
        app=server.app,
        event_store=None,
        json_response=False,
        stateless=True,
    )

    async def handle_mcp(scope: Scope, receive: Receive, send: Send) -> None:
        await session_manager.handle_request(scope, receive, send)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run():
            LOGGER.info("MCP streamable HTTP transport ready at %s", server.config.transport.path)
            yield

    return Starlette(routes=[Mount(server.config.transport.path, app=handle_mcp)], lifespan=lifespan)


def run(server: GatewayServer) -> None:
    """Serve until interrupted, on the configured transport."""
    transport = server.config.transport
    mode = "single-tenant" if server.config.single_tenant else "multi-tenant"
    if transport.transport == "http":
        LOGGER.info("Serving %s over HTTP on %s:%s (%s)", SERVER_NAME, transport.host, transport.port, mode)
        uvicorn.run(
            create_http_app(server),
            host=transport.host,
            port=transport.port,
            log_level=server.config.log_level.lower(),
        )
    else:
        LOGGER.info("Serving %s over stdio (%s)", SERVER_NAME, mode)
        asyncio.run(serve_stdio(server))


__all__ = ["GatewayServer", "ToolCallFailed", "create_http_app", "run", "serve_stdio"]
