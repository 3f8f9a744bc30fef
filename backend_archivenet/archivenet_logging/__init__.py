"""
Structured logging for the ArchiveNET backend.

JSON logs with timestamp, event_type, masked endpoint URLs and ledger context.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_archivenet.archivenet_logging.logger import get_logger, ledger_context

__all__ = ["get_logger", "ledger_context"]
