"""
Backend ArchiveNET — ledger bootstrap for the ArchiveNET API.

Resolves which Solana cluster to talk to, loads or provisions the service
keypair, and connects the optional Redis tier of the contract-state cache.
The result is one immutable LedgerRuntime handed to the HTTP layer.
"""

__version__ = "0.1.0"
