"""Signing key loading: raw private key or an encrypted keystore file."""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount

from lifi_gateway.config import ConfigError, WalletConfig
from lifi_gateway.core.utils import get_logger

LOGGER = get_logger("lifi_gateway.wallet")


def keystore_dir(override: str = "") -> Path:
    """Default geth keystore location for the current OS."""
    if override:
        return Path(override).expanduser()
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Ethereum" / "keystore"
    if sys.platform.startswith("win"):
        return home / "AppData" / "Roaming" / "Ethereum" / "keystore"
    return home / ".ethereum" / "keystore"


def find_keystore(name: str, directory: Path) -> Path:
    """First keystore file (sorted) whose name contains ``name``."""
    try:
        candidates = sorted(p for p in directory.iterdir() if p.is_file() and name in p.name)
    except FileNotFoundError as exc:
        raise ConfigError(f"Keystore directory not found: {directory}") from exc
    if not candidates:
        raise ConfigError(f"Keystore not found with name: {name}")
    return candidates[0]


def load_keystore(name: str, password: str, directory: Optional[Path] = None) -> LocalAccount:
    """Decrypt the keystore matching ``name``."""
    path = find_keystore(name, directory or keystore_dir())
    try:
        with path.open("r", encoding="utf-8") as fh:
            encrypted = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Keystore file contains invalid JSON: {path}") from exc
    try:
        private_key = Account.decrypt(encrypted, password)
    except ValueError as exc:
        raise ConfigError(f"Failed to decrypt keystore {path.name}: wrong password or corrupt file") from exc
    return Account.from_key(private_key)


def load_signer(wallet: WalletConfig) -> Optional[LocalAccount]:
    """Return the configured signer, or ``None`` when running read-only."""
    if wallet.private_key:
        try:
            account = Account.from_key(wallet.private_key)
        except ValueError as exc:
            # never echo the key itself
            raise ConfigError("PRIVATE_KEY is not a valid private key") from exc
    elif wallet.keystore:
        directory = keystore_dir(wallet.keystore_dir)
        account = load_keystore(wallet.keystore, wallet.keystore_password, directory)
    else:
        LOGGER.info("No signing key configured; transaction tools are disabled")
        return None
    LOGGER.info("Loaded signing key for %s", account.address)
    return account


def create_keystore(name: str, password: str, directory: Optional[Path] = None) -> Tuple[str, Path]:
    """Generate a key, encrypt it with ``password`` and write it to the keystore.

    Returns the new address and the file path.
    """
    if not name:
        raise ConfigError("Wallet name is required")
    if not password:
        raise ConfigError("Wallet password is required")
    directory = directory or keystore_dir()
    directory.mkdir(mode=0o700, parents=True, exist_ok=True)

    account = Account.create()
    encrypted = Account.encrypt(account.key, password)
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S.%fZ")
    path = directory / f"UTC--{timestamp}--{name}--{account.address[2:].lower()}.json"

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        json.dump(encrypted, fh)
    return account.address, path


__all__ = ["create_keystore", "find_keystore", "keystore_dir", "load_keystore", "load_signer"]
