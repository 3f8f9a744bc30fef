"""
Configuration management for the ArchiveNET ledger bootstrap.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for network, identity and cache configuration.
"""

from backend_archivenet.config.settings import BootstrapSettings, get_settings  # noqa: F401

__all__ = ["BootstrapSettings", "get_settings"]
