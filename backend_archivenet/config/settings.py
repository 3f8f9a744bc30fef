"""
Bootstrap settings.

Responsibilities:
- Read every variable the ledger bootstrap needs from the environment (and .env) once.
- Provide defaults for optional ones; required production variables are
  checked by the identity loader, not here, so that the error is raised
  at the point in the startup sequence where it matters.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from backend_archivenet.config.env import (
    DEFAULT_DEV_KEYPAIR_PATH,
    DEFAULT_LOCAL_VALIDATOR_PORT,
    DEFAULT_STATE_CACHE_PATH,
    DEVNET_RPC_URL,
    MAINNET_RPC_URL,
    PRODUCTION,
    env_float,
    env_int,
    env_optional,
    env_str,
    get_deployment_mode,
    load_archivenet_env,
)

DEFAULT_REDIS_CONNECT_TIMEOUT_SEC = 10.0
DEFAULT_REDIS_COMMAND_TIMEOUT_SEC = 5.0
DEFAULT_REDIS_MAX_RETRIES = 2
DEFAULT_REDIS_WATCH_INTERVAL_SEC = 15.0
DEFAULT_LOCAL_PROBE_TIMEOUT_SEC = 1.0
DEFAULT_HEALTH_CACHE_TTL_SEC = 30.0
DEFAULT_HEALTH_PROBE_TIMEOUT_SEC = 2.0


@dataclass(frozen=True)
class BootstrapSettings:
    """
    Everything the bootstrap reads from the environment.

    deployment_mode: 'production' or 'development'.
    redis_url: None means run without the distributed cache.
    service_keypair_path / service_wallet_address: production identity, both required there.
    local_validator_port: probed on 127.0.0.1 in development only.
    """

    deployment_mode: str = "development"
    redis_url: str | None = None
    service_keypair_path: str | None = None
    service_wallet_address: str | None = None
    local_validator_port: int = DEFAULT_LOCAL_VALIDATOR_PORT
    dev_keypair_path: Path = Path(DEFAULT_DEV_KEYPAIR_PATH)
    state_cache_path: Path = Path(DEFAULT_STATE_CACHE_PATH)
    mainnet_rpc_url: str = MAINNET_RPC_URL
    devnet_rpc_url: str = DEVNET_RPC_URL
    redis_connect_timeout_sec: float = DEFAULT_REDIS_CONNECT_TIMEOUT_SEC
    redis_command_timeout_sec: float = DEFAULT_REDIS_COMMAND_TIMEOUT_SEC
    redis_max_retries: int = DEFAULT_REDIS_MAX_RETRIES
    redis_watch_interval_sec: float = DEFAULT_REDIS_WATCH_INTERVAL_SEC
    local_probe_timeout_sec: float = DEFAULT_LOCAL_PROBE_TIMEOUT_SEC
    health_cache_ttl_sec: float = DEFAULT_HEALTH_CACHE_TTL_SEC
    health_probe_timeout_sec: float = DEFAULT_HEALTH_PROBE_TIMEOUT_SEC

    def __post_init__(self) -> None:
        # Local probe must stay bounded at one second
        if self.local_probe_timeout_sec <= 0 or self.local_probe_timeout_sec > 1.0:
            object.__setattr__(self, "local_probe_timeout_sec", DEFAULT_LOCAL_PROBE_TIMEOUT_SEC)
        if self.redis_watch_interval_sec <= 0:
            object.__setattr__(self, "redis_watch_interval_sec", DEFAULT_REDIS_WATCH_INTERVAL_SEC)
        if self.redis_max_retries < 0:
            object.__setattr__(self, "redis_max_retries", 0)
        object.__setattr__(self, "dev_keypair_path", Path(self.dev_keypair_path))
        object.__setattr__(self, "state_cache_path", Path(self.state_cache_path))

    @property
    def is_production(self) -> bool:
        return self.deployment_mode == PRODUCTION

    @classmethod
    def from_env(cls) -> "BootstrapSettings":
        load_archivenet_env()
        return cls(
            deployment_mode=get_deployment_mode(),
            redis_url=env_optional("REDIS_URL"),
            service_keypair_path=env_optional("SERVICE_KEYPAIR_PATH"),
            service_wallet_address=env_optional("SERVICE_WALLET_ADDRESS"),
            local_validator_port=env_int("LOCAL_VALIDATOR_PORT", DEFAULT_LOCAL_VALIDATOR_PORT),
            dev_keypair_path=Path(env_str("DEV_KEYPAIR_PATH", DEFAULT_DEV_KEYPAIR_PATH)),
            state_cache_path=Path(env_str("STATE_CACHE_PATH", DEFAULT_STATE_CACHE_PATH)),
            mainnet_rpc_url=env_str("SOLANA_MAINNET_RPC_URL", MAINNET_RPC_URL),
            devnet_rpc_url=env_str("SOLANA_DEVNET_RPC_URL", DEVNET_RPC_URL),
            redis_watch_interval_sec=env_float(
                "REDIS_WATCH_INTERVAL_SEC", DEFAULT_REDIS_WATCH_INTERVAL_SEC
            ),
        )


def get_settings() -> BootstrapSettings:
    """
    Return the current bootstrap settings read from the environment.

    Returns:
        BootstrapSettings with deployment_mode, redis_url, identity paths,
        local validator port, RPC URLs and timeouts.
    """
    return BootstrapSettings.from_env()
