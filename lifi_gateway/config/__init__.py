"""Configuration utilities for the gateway."""

from .loader import (
    DEFAULT_API_BASE,
    ConfigError,
    GatewayConfig,
    TransportConfig,
    UpstreamConfig,
    WalletConfig,
    load_config,
)

__all__ = [
    "ConfigError",
    "DEFAULT_API_BASE",
    "GatewayConfig",
    "TransportConfig",
    "UpstreamConfig",
    "WalletConfig",
    "load_config",
]
