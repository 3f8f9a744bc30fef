"""
Environment variable loading for the ArchiveNET ledger bootstrap.

- APP_ENV: production | anything else (default: development)
- REDIS_URL: optional Redis connection string for the contract-state cache
- SERVICE_KEYPAIR_PATH / SERVICE_WALLET_ADDRESS: production identity (both required)
- LOCAL_VALIDATOR_PORT: solana-test-validator RPC port probed in development
- SOLANA_MAINNET_RPC_URL / SOLANA_DEVNET_RPC_URL: optional RPC overrides
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_archivenet/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

PRODUCTION = "production"
DEVELOPMENT = "development"

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
DEVNET_RPC_URL = "https://api.devnet.solana.com"
DEFAULT_LOCAL_VALIDATOR_PORT = 8899
DEFAULT_DEV_KEYPAIR_PATH = "./dev-wallet.json"
DEFAULT_STATE_CACHE_PATH = "./cache/ledger-state.db"


def load_archivenet_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    v = (os.getenv(name) or "").strip()
    return v or default


def env_optional(name: str) -> str | None:
    """Return the trimmed value, or None when unset or blank."""
    v = (os.getenv(name) or "").strip()
    return v or None


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_deployment_mode() -> str:
    """
    Return APP_ENV normalised to production | development.
    Only the literal value 'production' selects strict mode.
    """
    load_archivenet_env()
    raw = (os.getenv("APP_ENV") or "").strip().lower()
    return PRODUCTION if raw == PRODUCTION else DEVELOPMENT


def mask_url(url: str | None) -> str:
    """Hide credentials in Redis/RPC URLs before logging them."""
    if not url:
        return ""
    if "@" in url and "://" in url:
        scheme, rest = url.split("://", 1)
        return f"{scheme}://***@{rest.split('@', 1)[1]}"
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
