"""Structured logging helpers for the survivor app and ingestion scripts."""

from __future__ import annotations

import logging
import sys

import structlog

_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return

    logging.basicConfig(stream=sys.stderr, level=logging.INFO, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
    _configured = True


def get_logger(name: str = "survivor") -> structlog.BoundLogger:
    """Return a structured logger with a consistent configuration."""
    _configure()
    return structlog.get_logger(name)
