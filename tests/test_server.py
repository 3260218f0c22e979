import asyncio
import json

from conftest import CHAIN_DIRECTORY, make_response
from lifi_gateway.config import GatewayConfig, TransportConfig
from lifi_gateway.server import GatewayServer, create_http_app


def test_multi_tenant_context_uses_headers(http_client):
    server = GatewayServer(GatewayConfig(), http_client=http_client)
    context = server.context_for({"Authorization": "Bearer caller-key"})
    assert context.api_key == "caller-key"
    assert server.context_for(None).api_key == ""


def test_single_tenant_ignores_headers(http_client):
    server = GatewayServer(GatewayConfig(api_key="server-key"), http_client=http_client)
    assert server.context_for({"x-lifi-api-key": "caller-key"}).api_key == "server-key"


def test_call_runs_tool_with_caller_key(http_client, session):
    session.request.return_value = make_response(payload=CHAIN_DIRECTORY)
    server = GatewayServer(GatewayConfig(), http_client=http_client)

    result = asyncio.run(server.call("get-chain-by-name", {"name": "polygon"}, {"x-lifi-api-key": "k"}))

    assert json.loads(result.text)["id"] == 137
    assert session.request.call_args.kwargs["headers"]["x-lifi-api-key"] == "k"


def test_http_app_mounts_configured_path(http_client):
    config = GatewayConfig(transport=TransportConfig(transport="http", path="/lifi"))
    app = create_http_app(GatewayServer(config, http_client=http_client))
    assert [route.path for route in app.routes] == ["/lifi"]
