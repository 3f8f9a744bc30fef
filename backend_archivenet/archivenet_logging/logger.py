"""
Structured logging for the ledger bootstrap.

One structlog pipeline shared by every module:
- snake_case event name emitted as event_type, ISO-8601 UTC timestamp, level
- every *_url field passed through mask_url, so Redis and RPC credentials
  never reach the log stream whatever the call site logs
- ledger context (environment, cluster, mode) merged from contextvars once
  the execution target is known; see ledger_context()

LOG_LEVEL and LOG_FORMAT (json | console) are read when configure_logging() runs.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Iterator, TextIO

import structlog

from backend_archivenet.config.env import mask_url

URL_FIELD_SUFFIX = "_url"


def _mask_url_fields(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Hide credentials in redis_url, rpc_url and any other *_url field."""
    for key, value in event_dict.items():
        if key.endswith(URL_FIELD_SUFFIX) and isinstance(value, str):
            event_dict[key] = mask_url(value)
    return event_dict


def _event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if "event" in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def build_processors(fmt: str = "json") -> list[Any]:
    """Processor chain for the given output format (json | console)."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _mask_url_fields,
    ]
    if fmt == "json":
        processors.append(_event_type)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # ConsoleRenderer prints the event key as the headline
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()
    structlog.configure(
        processors=build_processors(fmt),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("redis_connecting", redis_url=url)

    Output (JSON): {"redis_url": "redis://***@host:6379/0", "event_type":
    "redis_connecting", "level": "info", "logger": "module.name", "timestamp": "..."}
    """
    return structlog.get_logger(name).bind(logger=name)


@contextmanager
def ledger_context(*, environment: str, cluster: str, mode: str) -> Iterator[None]:
    """Attach environment, cluster and mode to every log emitted inside the block."""
    with structlog.contextvars.bound_contextvars(
        environment=environment, cluster=cluster, mode=mode
    ):
        yield
