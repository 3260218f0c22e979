import pytest

from lifi_gateway.config import ConfigError, load_config


def test_defaults():
    config = load_config({})
    assert config.upstream.base_url == "https://li.quest"
    assert config.upstream.rate_limit == 200
    assert config.upstream.rate_period == 7200.0
    assert config.upstream.max_retries == 3
    assert config.transport.transport == "stdio"
    assert config.log_level == "INFO"
    assert not config.single_tenant
    assert not config.wallet.configured


def test_environment_values():
    config = load_config(
        {
            "LIFI_API_BASE": "https://staging.li.quest/",
            "LIFI_API_KEY": "server-key",
            "LIFI_RATE_LIMIT": "10",
            "LIFI_MCP_TRANSPORT": "HTTP",
            "LIFI_MCP_PORT": "9000",
            "LIFI_LOG_LEVEL": "debug",
        }
    )
    assert config.upstream.base_url == "https://staging.li.quest"
    assert config.upstream.rate_limit == 10
    assert config.transport.transport == "http"
    assert config.transport.port == 9000
    assert config.log_level == "DEBUG"
    assert config.single_tenant


def test_overrides_win_and_none_falls_through():
    config = load_config({"LIFI_MCP_PORT": "9000"}, port=None, host="127.0.0.1", api_key="cli-key")
    assert config.transport.port == 9000
    assert config.transport.host == "127.0.0.1"
    assert config.api_key == "cli-key"


def test_secrets_stay_out_of_repr():
    config = load_config({"LIFI_API_KEY": "server-key", "PRIVATE_KEY": "0x" + "11" * 32})
    assert "server-key" not in repr(config)
    assert "11" * 32 not in repr(config)


@pytest.mark.parametrize(
    "environ, message",
    [
        ({"LIFI_API_BASE": "ftp://li.quest"}, "http"),
        ({"LIFI_RATE_LIMIT": "many"}, "integer"),
        ({"LIFI_RATE_PERIOD": "0"}, "positive"),
        ({"LIFI_MCP_TRANSPORT": "websocket"}, "transport"),
        ({"LIFI_MCP_PORT": "70000"}, "port"),
        ({"LIFI_LOG_LEVEL": "LOUD"}, "log level"),
        ({"PRIVATE_KEY": "0x01", "LIFI_KEYSTORE": "main", "LIFI_KEYSTORE_PASSWORD": "pw"}, "mutually exclusive"),
        ({"LIFI_KEYSTORE": "main"}, "PASSWORD"),
    ],
)
def test_invalid(environ, message):
    with pytest.raises(ConfigError, match=message):
        load_config(environ)


def test_unknown_override():
    with pytest.raises(ConfigError, match="Unknown configuration overrides"):
        load_config({}, colour="blue")
