"""
Execution target resolution: which Solana cluster this process talks to.

- production: mainnet-beta, always.
- anything else: local solana-test-validator if it answers within one second,
  otherwise devnet (REMOTE_FALLBACK).

The fallback chain is an ordered list of NetworkCandidate; the first whose
probe succeeds wins. The probe is injectable so the chain can be tested
without a validator. Resolution never raises for network reasons.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

import httpx
from solders.keypair import Keypair

from backend_archivenet.archivenet_logging import get_logger
from backend_archivenet.config.settings import BootstrapSettings

logger = get_logger(__name__)

CLUSTER_MAINNET = "mainnet-beta"
CLUSTER_LOCALNET = "localnet"
CLUSTER_DEVNET = "devnet"

# Contract deployment is available on every cluster
DEPLOY_CAPABILITY = "deploy"

LOCAL_VALIDATOR_HOST = "127.0.0.1"

LocalProbe = Callable[[int, float], Awaitable[bool]]


class ExecutionMode(str, Enum):
    PRODUCTION = "production"
    LOCAL_PREFERRED = "local_preferred"
    REMOTE_FALLBACK = "remote_fallback"


@dataclass(frozen=True)
class ExecutionTarget:
    """Selected cluster; created once at startup and shared read-only."""

    mode: ExecutionMode
    cluster: str
    rpc_url: str
    uses_distributed_cache: bool = False
    capabilities: frozenset[str] = field(default_factory=frozenset)

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    def derive_address(self, keypair: Keypair) -> str:
        """Public address of a keypair on this cluster (base58 pubkey)."""
        return str(keypair.pubkey())

    def generate_keypair(self) -> Keypair:
        return Keypair()

    def open_client(self):
        """Return a solana-py AsyncClient bound to this cluster's RPC endpoint."""
        from solana.rpc.async_api import AsyncClient

        return AsyncClient(self.rpc_url)


def local_validator_url(port: int) -> str:
    return f"http://{LOCAL_VALIDATOR_HOST}:{port}"


async def probe_local_validator(port: int, timeout_sec: float) -> bool:
    """GET /health on the local validator; reachable iff it answers 2xx in time."""
    async with httpx.AsyncClient(timeout=timeout_sec) as client:
        response = await client.get(f"{local_validator_url(port)}/health")
    return response.is_success


@dataclass(frozen=True)
class NetworkCandidate:
    """One entry of the fallback chain. probe=None means always selectable."""

    mode: ExecutionMode
    cluster: str
    rpc_url: str
    probe: Callable[[], Awaitable[bool]] | None = None


@dataclass(frozen=True)
class CandidateOutcome:
    candidate: NetworkCandidate
    reason: str | None = None


async def _run_probe(candidate: NetworkCandidate, timeout_sec: float) -> tuple[bool, str | None]:
    if candidate.probe is None:
        return True, None
    try:
        ok = await asyncio.wait_for(candidate.probe(), timeout=timeout_sec)
    except asyncio.TimeoutError:
        return False, f"no response within {timeout_sec}s"
    except Exception as e:
        return False, str(e) or type(e).__name__
    if not ok:
        return False, "health check returned a non-success status"
    return True, None


async def select_candidate(
    candidates: list[NetworkCandidate],
    timeout_sec: float,
) -> tuple[NetworkCandidate, list[CandidateOutcome]]:
    """
    Evaluate candidates in order with a per-candidate deadline.
    Returns (winner, rejected outcomes). The last candidate must not have a probe.
    """
    rejected: list[CandidateOutcome] = []
    for candidate in candidates:
        ok, reason = await _run_probe(candidate, timeout_sec)
        if ok:
            return candidate, rejected
        rejected.append(CandidateOutcome(candidate, reason))
    raise ValueError("candidate chain must end with an unprobed candidate")


def build_candidates(
    settings: BootstrapSettings,
    probe: LocalProbe = probe_local_validator,
) -> list[NetworkCandidate]:
    if settings.is_production:
        return [
            NetworkCandidate(ExecutionMode.PRODUCTION, CLUSTER_MAINNET, settings.mainnet_rpc_url),
        ]
    port = settings.local_validator_port
    timeout = settings.local_probe_timeout_sec
    return [
        NetworkCandidate(
            ExecutionMode.LOCAL_PREFERRED,
            CLUSTER_LOCALNET,
            local_validator_url(port),
            probe=lambda: probe(port, timeout),
        ),
        NetworkCandidate(ExecutionMode.REMOTE_FALLBACK, CLUSTER_DEVNET, settings.devnet_rpc_url),
    ]


_redis_hint_emitted = False


def _warn_local_without_redis_once() -> None:
    global _redis_hint_emitted
    if _redis_hint_emitted:
        return
    _redis_hint_emitted = True
    logger.warning(
        "localnet_search_requires_redis",
        message="search and query routes need the Redis cache to function fully on localnet",
    )


async def resolve_execution_target(
    settings: BootstrapSettings,
    *,
    redis_attached: bool,
    probe: LocalProbe = probe_local_validator,
) -> ExecutionTarget:
    """Pick the cluster for this process. Never raises for network reasons."""
    candidates = build_candidates(settings, probe)
    winner, rejected = await select_candidate(candidates, settings.local_probe_timeout_sec)

    for outcome in rejected:
        if outcome.candidate.mode is ExecutionMode.LOCAL_PREFERRED:
            port = settings.local_validator_port
            logger.warning(
                "local_validator_unreachable",
                rpc_url=outcome.candidate.rpc_url,
                reason=outcome.reason,
            )
            logger.warning(
                "local_validator_start_hint",
                message=f"To start a local validator, run: solana-test-validator --rpc-port {port}",
            )

    target = ExecutionTarget(
        mode=winner.mode,
        cluster=winner.cluster,
        rpc_url=winner.rpc_url,
        uses_distributed_cache=redis_attached,
        capabilities=frozenset({DEPLOY_CAPABILITY}),
    )

    if target.mode is ExecutionMode.REMOTE_FALLBACK:
        logger.warning(
            "network_fallback_devnet",
            cluster=target.cluster,
            rpc_url=target.rpc_url,
            redis=redis_attached,
        )
        logger.warning(
            "network_fallback_inconsistent",
            message="some operations may behave inconsistently on the devnet fallback",
        )
        return target

    logger.info(
        "network_configured",
        cluster=target.cluster,
        rpc_url=target.rpc_url,
        redis=redis_attached,
    )
    if target.mode is ExecutionMode.LOCAL_PREFERRED:
        _warn_local_without_redis_once()
    return target
