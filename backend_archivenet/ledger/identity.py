"""
Service identity: load, validate or provision the Solana keypair.

- Production: SERVICE_KEYPAIR_PATH and SERVICE_WALLET_ADDRESS are both required.
  The keypair's derived address must equal the configured one exactly; any
  failure is fatal (fail closed).
- Development: reuse ./dev-wallet.json if present, otherwise generate a new
  keypair and persist it for the next restart (fail open by self-provisioning).

Keypair file formats read: JSON object {"public_key", "secret_key"}, Solana CLI
JSON array of 64 bytes, or a bare base58 secret. Dev files are written as the
JSON object.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import base58
from solders.keypair import Keypair

from backend_archivenet.archivenet_logging import get_logger
from backend_archivenet.config.settings import BootstrapSettings
from backend_archivenet.core.exceptions import (
    FatalConfigurationError,
    FatalIdentityError,
    IdentityMismatchError,
    KeypairLoadError,
)
from backend_archivenet.ledger.network import ExecutionTarget

logger = get_logger(__name__)

SECRET_KEY_LEN = 64


@dataclass(frozen=True)
class Identity:
    """Service keypair and its address; immutable once loaded."""

    keypair: Keypair
    address: str
    source: str
    generated: bool = False


def _keypair_from_secret(secret: Any) -> Keypair:
    if isinstance(secret, list):
        if len(secret) != SECRET_KEY_LEN:
            raise ValueError(f"secret key must be {SECRET_KEY_LEN} bytes, got {len(secret)}")
        return Keypair.from_bytes(bytes(secret))
    if isinstance(secret, str):
        raw = base58.b58decode(secret.strip())
        if len(raw) != SECRET_KEY_LEN:
            raise ValueError(f"secret key must be {SECRET_KEY_LEN} bytes, got {len(raw)}")
        return Keypair.from_bytes(raw)
    raise ValueError(f"unsupported secret key type: {type(secret).__name__}")


def parse_keypair(text: str) -> Keypair:
    """Parse keypair file content in any of the accepted formats."""
    raw = text.strip()
    if not raw:
        raise ValueError("keypair file is empty")
    if raw[0] in "[{":
        data = json.loads(raw)
        if isinstance(data, dict):
            if "secret_key" not in data:
                raise ValueError("keypair object has no 'secret_key' field")
            keypair = _keypair_from_secret(data["secret_key"])
            public_key = data.get("public_key")
            if public_key and str(keypair.pubkey()) != public_key:
                raise ValueError("'public_key' does not match 'secret_key'")
            return keypair
        return _keypair_from_secret(data)
    return _keypair_from_secret(raw)


def read_keypair(path: str | Path) -> Keypair:
    """Read and parse a keypair file; any failure becomes KeypairLoadError."""
    source = str(path)
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise KeypairLoadError(source, e.strerror or str(e)) from e
    try:
        # UnicodeDecodeError is a ValueError
        return parse_keypair(raw.decode("utf-8"))
    except (ValueError, TypeError) as e:
        raise KeypairLoadError(source, str(e)) from e


def serialize_keypair(keypair: Keypair) -> str:
    return json.dumps(
        {
            "public_key": str(keypair.pubkey()),
            "secret_key": list(bytes(keypair)),
        },
        indent=2,
    )


def write_keypair(path: str | Path, keypair: Keypair) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(serialize_keypair(keypair), encoding="utf-8")
    try:
        p.chmod(0o600)
    except OSError as e:
        logger.warning("dev_keypair_chmod_failed", path=str(p), error=str(e))


def validate_wallet_address(
    keypair: Keypair,
    expected_address: str,
    source: str,
    target: ExecutionTarget,
) -> str:
    """Derive the keypair's address on `target` and require an exact match."""
    address = target.derive_address(keypair)
    if address != expected_address:
        logger.error(
            "wallet_address_mismatch",
            expected=expected_address,
            loaded=address,
            source=source,
        )
        raise IdentityMismatchError(expected_address, address, source)
    return address


def load_production_identity(settings: BootstrapSettings, target: ExecutionTarget) -> Identity:
    missing = [
        name
        for name, value in (
            ("SERVICE_WALLET_ADDRESS", settings.service_wallet_address),
            ("SERVICE_KEYPAIR_PATH", settings.service_keypair_path),
        )
        if not value
    ]
    if missing:
        logger.error("production_identity_config_missing", missing=missing)
        raise FatalConfigurationError(missing)

    source = str(settings.service_keypair_path)
    try:
        keypair = read_keypair(source)
    except KeypairLoadError as e:
        logger.error("production_keypair_load_failed", source=source, reason=e.reason)
        raise
    address = validate_wallet_address(
        keypair, str(settings.service_wallet_address), source, target
    )
    logger.info(
        "production_keypair_loaded",
        source=source,
        address=address,
        message="Wallet validation passed.",
    )
    return Identity(keypair=keypair, address=address, source=source)


def load_development_identity(settings: BootstrapSettings, target: ExecutionTarget) -> Identity:
    path = settings.dev_keypair_path
    source = str(path)
    if path.exists():
        try:
            keypair = read_keypair(path)
        except KeypairLoadError as e:
            logger.warning("dev_keypair_unreadable", source=source, reason=e.reason)
        else:
            address = target.derive_address(keypair)
            logger.info("dev_keypair_loaded", source=source, address=address)
            return Identity(keypair=keypair, address=address, source=source)

    logger.info("dev_keypair_creating", source=source)
    try:
        keypair = target.generate_keypair()
        address = target.derive_address(keypair)
        write_keypair(path, keypair)
    except Exception as e:
        logger.error("dev_keypair_provision_failed", source=source, error=str(e))
        raise FatalIdentityError(f"Could not provision development keypair at '{source}': {e}") from e

    logger.info("dev_keypair_created", source=source, address=address)
    logger.info(
        "dev_keypair_production_hint",
        message="For production deployment, set SERVICE_WALLET_ADDRESS and SERVICE_KEYPAIR_PATH",
    )
    return Identity(keypair=keypair, address=address, source=source, generated=True)


def load_identity(settings: BootstrapSettings, target: ExecutionTarget) -> Identity:
    """Resolve the service identity after the target is known. Raises only BootstrapError subclasses."""
    if settings.is_production:
        return load_production_identity(settings, target)
    return load_development_identity(settings, target)
