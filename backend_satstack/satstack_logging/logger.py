"""
structlog setup for SatStack sync passes, providers and the API.

Every record carries event_type, level, an ISO-8601 UTC timestamp and the
emitting module; sync passes add the tracked address (shortened) and its id,
provider clients add the provider name. LOG_FORMAT=json (default) renders one
JSON object per line; any other value renders console output for local runs.

Imports nothing from backend_satstack so config and database can log freely.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

# Addresses are logged truncated to this many characters
ADDRESS_LOG_CHARS = 16

EventDict = dict[str, Any]


def _utc_timestamp(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    """sync_completed etc. are emitted as event_type; message mirrors it unless given."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    event_dict.setdefault("message", str(event_dict.get("event_type", "")))
    return event_dict


def _renderer() -> Any:
    if LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _utc_timestamp,
            _event_type,
            _renderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger for a module; the name is bound as "logger".

        logger = get_logger(__name__)
        logger.warning("provider_fetch_failed", provider="mempool", error="HTTP 503")
    """
    return structlog.get_logger(name).bind(logger=name)


def _short(address: str) -> str:
    if len(address) <= ADDRESS_LOG_CHARS:
        return address
    return address[:ADDRESS_LOG_CHARS] + "..."


def bind_address(address: str, **context: Any) -> structlog.BoundLogger:
    """Sync-pass logger with the shortened address and any extra keys (address_id) bound."""
    return get_logger("backend_satstack.sync").bind(address=_short(address), **context)
