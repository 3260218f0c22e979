"""Config loader for the gateway process."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

DEFAULT_API_BASE = "https://li.quest"
TRANSPORTS = ("stdio", "http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when configuration data is invalid or missing."""


def _env_str(environ: Mapping[str, str], key: str, default: str = "") -> str:
    value = environ.get(key)
    if value is None:
        return default
    return value.strip()


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = _env_str(environ, key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = _env_str(environ, key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class UpstreamConfig:
    """Settings for the LI.FI REST API client."""

    base_url: str = DEFAULT_API_BASE
    timeout: float = 30.0
    rate_limit: int = 200
    rate_period: float = 7200.0
    max_retries: int = 3


@dataclass(frozen=True)
class TransportConfig:
    """How the MCP server is exposed."""

    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 8080
    path: str = "/mcp"


@dataclass(frozen=True)
class WalletConfig:
    """Signing key sources. Values here are secrets and are never logged."""

    private_key: str = field(default="", repr=False)
    keystore: str = ""
    keystore_password: str = field(default="", repr=False)
    keystore_dir: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.private_key or self.keystore)


@dataclass(frozen=True)
class GatewayConfig:
    """Typed wrapper around the gateway configuration."""

    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    api_key: str = field(default="", repr=False)
    log_level: str = "INFO"

    @property
    def single_tenant(self) -> bool:
        """A process-wide key means per-call headers are ignored."""
        return bool(self.api_key)


def _validate(config: GatewayConfig) -> GatewayConfig:
    upstream = config.upstream
    if not upstream.base_url.startswith(("http://", "https://")):
        raise ConfigError(f"LIFI_API_BASE must be an http(s) URL, got {upstream.base_url!r}")
    if upstream.timeout <= 0:
        raise ConfigError("LIFI_HTTP_TIMEOUT must be positive")
    if upstream.rate_limit <= 0:
        raise ConfigError("LIFI_RATE_LIMIT must be positive")
    if upstream.rate_period <= 0:
        raise ConfigError("LIFI_RATE_PERIOD must be positive")
    if upstream.max_retries < 0:
        raise ConfigError("LIFI_MAX_RETRIES cannot be negative")

    transport = config.transport
    if transport.transport not in TRANSPORTS:
        raise ConfigError(f"transport must be one of {', '.join(TRANSPORTS)}, got {transport.transport!r}")
    if not 0 < transport.port < 65536:
        raise ConfigError(f"port out of range: {transport.port}")
    if not transport.path.startswith("/"):
        raise ConfigError("HTTP path must start with '/'")

    if config.log_level not in LOG_LEVELS:
        raise ConfigError(f"log level must be one of {', '.join(LOG_LEVELS)}, got {config.log_level!r}")

    wallet = config.wallet
    if wallet.private_key and wallet.keystore:
        raise ConfigError("PRIVATE_KEY and LIFI_KEYSTORE are mutually exclusive")
    if wallet.keystore and not wallet.keystore_password:
        raise ConfigError("LIFI_KEYSTORE_PASSWORD is required when a keystore is configured")
    return config


def load_config(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> GatewayConfig:
    """Build the gateway configuration from the environment.

    ``environ`` defaults to ``os.environ`` after loading a ``.env`` file.
    Keyword overrides (typically from the CLI) replace individual fields; a
    ``None`` override is ignored so unset flags fall through to the
    environment.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    upstream = UpstreamConfig(
        base_url=_env_str(environ, "LIFI_API_BASE", DEFAULT_API_BASE).rstrip("/"),
        timeout=_env_float(environ, "LIFI_HTTP_TIMEOUT", 30.0),
        rate_limit=_env_int(environ, "LIFI_RATE_LIMIT", 200),
        rate_period=_env_float(environ, "LIFI_RATE_PERIOD", 7200.0),
        max_retries=_env_int(environ, "LIFI_MAX_RETRIES", 3),
    )
    transport = TransportConfig(
        transport=_env_str(environ, "LIFI_MCP_TRANSPORT", "stdio").lower(),
        host=_env_str(environ, "LIFI_MCP_HOST", "0.0.0.0"),
        port=_env_int(environ, "LIFI_MCP_PORT", 8080),
        path=_env_str(environ, "LIFI_MCP_PATH", "/mcp"),
    )
    wallet = WalletConfig(
        private_key=_env_str(environ, "PRIVATE_KEY"),
        keystore=_env_str(environ, "LIFI_KEYSTORE"),
        keystore_password=_env_str(environ, "LIFI_KEYSTORE_PASSWORD"),
        keystore_dir=_env_str(environ, "LIFI_KEYSTORE_DIR"),
    )

    transport_overrides = {
        key: overrides.pop(key) for key in ("transport", "host", "port", "path") if overrides.get(key) is not None
    }
    if transport_overrides:
        transport = replace(transport, **transport_overrides)

    wallet_overrides = {
        key: overrides.pop(key)
        for key in ("private_key", "keystore", "keystore_password", "keystore_dir")
        if overrides.get(key) is not None
    }
    if wallet_overrides:
        wallet = replace(wallet, **wallet_overrides)

    api_key = overrides.pop("api_key", None)
    log_level = overrides.pop("log_level", None)
    unknown = [key for key, value in overrides.items() if value is not None]
    if unknown:
        raise ConfigError(f"Unknown configuration overrides: {', '.join(sorted(unknown))}")

    config = GatewayConfig(
        upstream=upstream,
        transport=transport,
        wallet=wallet,
        api_key=(api_key if api_key is not None else _env_str(environ, "LIFI_API_KEY")).strip(),
        log_level=(log_level or _env_str(environ, "LIFI_LOG_LEVEL", "INFO")).upper(),
    )
    return _validate(config)


__all__ = [
    "ConfigError",
    "DEFAULT_API_BASE",
    "GatewayConfig",
    "TransportConfig",
    "UpstreamConfig",
    "WalletConfig",
    "load_config",
]
