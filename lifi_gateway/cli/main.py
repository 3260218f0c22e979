"""CLI entrypoint: run the MCP gateway or create a keystore wallet."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from lifi_gateway.config import ConfigError, load_config
from lifi_gateway.core.utils import get_logger, set_log_level
from lifi_gateway.core.wallet import create_keystore, keystore_dir, load_signer
from lifi_gateway.server import GatewayServer, run

LOGGER = get_logger("lifi_gateway.cli")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="lifi-gateway", description="MCP gateway for the LI.FI cross-chain API")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the MCP server (default)")
    serve.add_argument("--transport", choices=["stdio", "http"], help="MCP transport (env LIFI_MCP_TRANSPORT)")
    serve.add_argument("--host", help="HTTP listen address (env LIFI_MCP_HOST)")
    serve.add_argument("--port", type=int, help="HTTP listen port (env LIFI_MCP_PORT)")
    serve.add_argument("--path", help="HTTP path of the MCP endpoint (env LIFI_MCP_PATH)")
    serve.add_argument("--api-key", help="Use one LI.FI API key for every call (env LIFI_API_KEY)")
    serve.add_argument("--keystore", help="Name of a keystore file to load the signing key from")
    serve.add_argument("--password", help="Keystore password (env LIFI_KEYSTORE_PASSWORD)")
    serve.add_argument("--keystore-dir", help="Directory holding keystore files")
    serve.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR (env LIFI_LOG_LEVEL)")

    wallet = subparsers.add_parser("new-wallet", help="Create an encrypted keystore wallet")
    wallet.add_argument("--name", required=True, help="Name embedded in the keystore filename")
    wallet.add_argument("--password", required=True, help="Password used to encrypt the key")
    wallet.add_argument("--keystore-dir", help="Directory to write the keystore to")

    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] not in ("serve", "new-wallet", "-h", "--help"):
        argv = ["serve", *argv]
    return parser.parse_args(argv)


def _serve(args: argparse.Namespace) -> None:
    config = load_config(
        transport=args.transport,
        host=args.host,
        port=args.port,
        path=args.path,
        api_key=args.api_key,
        keystore=args.keystore,
        keystore_password=args.password,
        keystore_dir=args.keystore_dir,
        log_level=args.log_level,
    )
    set_log_level(config.log_level)
    account = load_signer(config.wallet)
    run(GatewayServer(config, account=account))


def _new_wallet(args: argparse.Namespace) -> None:
    address, path = create_keystore(args.name, args.password, keystore_dir(args.keystore_dir or ""))
    print(f"Created wallet {address}")
    print(f"Keystore: {path}")
    print(f"Start the server with: lifi-gateway serve --keystore {args.name} --password <password>")


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        if args.command == "new-wallet":
            _new_wallet(args)
        else:
            _serve(args)
    except ConfigError as exc:
        print(f"❌ Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        LOGGER.info("Shutting down")


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
