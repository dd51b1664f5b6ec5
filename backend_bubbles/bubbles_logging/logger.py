"""
structlog setup for the analysis service.

Every line is one JSON object carrying event_type (the snake_case event
name), level, an ISO-8601 UTC timestamp and the emitting logger. Addresses
are logged truncated via short_address(); bind_wallet() attaches the
queried address to a logger for the rest of a run.

LOG_LEVEL picks the threshold, LOG_FORMAT=console switches to the dev
renderer. This module must not import other backend_bubbles modules.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _rename_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type; message mirrors it."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
    if "event_type" in event_dict:
        event_dict.setdefault("message", str(event_dict["event_type"]))
    return event_dict


def configure_structlog(level: str = LOG_LEVEL, fmt: str = LOG_FORMAT) -> None:
    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            _rename_event,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> Any:
    """
    Module logger; the first positional argument is the event_type.

        logger = get_logger(__name__)
        logger.info("fetcher_started", wallet_id=short_address(addr), batches=5)
    """
    return structlog.get_logger(name).bind(logger=name)


def short_address(address: str, keep: int = 8) -> str:
    return address[:keep] + "..." if len(address) > keep else address


def bind_wallet(wallet_id: str) -> Any:
    """Logger with the (truncated) analyzed address bound as wallet_id."""
    return get_logger("backend_bubbles").bind(wallet_id=short_address(wallet_id))
