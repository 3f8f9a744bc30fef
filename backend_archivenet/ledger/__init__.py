"""
Ledger package — cluster selection, service identity, and the bootstrap
that composes them with the cache layer into one LedgerRuntime.
"""

from backend_archivenet.ledger.bootstrap import LedgerRuntime, initialize_ledger
from backend_archivenet.ledger.identity import Identity, load_identity
from backend_archivenet.ledger.network import (
    DEPLOY_CAPABILITY,
    ExecutionMode,
    ExecutionTarget,
    resolve_execution_target,
)

__all__ = [
    "DEPLOY_CAPABILITY",
    "ExecutionMode",
    "ExecutionTarget",
    "Identity",
    "LedgerRuntime",
    "initialize_ledger",
    "load_identity",
    "resolve_execution_target",
]
