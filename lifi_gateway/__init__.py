"""MCP gateway exposing LI.FI cross-chain swap operations as tools."""

from importlib import metadata


def __getattr__(name: str) -> str:
    """Expose the distribution version via ``lifi_gateway.__version__``."""
    if name == "__version__":
        try:
            return metadata.version("lifi-gateway")
        except metadata.PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)


__all__ = ["__version__"]
