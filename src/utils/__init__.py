"""
Utilities module.

Provides common utilities for logging, timing and score arithmetic.
"""

from __future__ import annotations

import logging
import sys
import time
import structlog

from config import config


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structured logging."""

    level_name = (level or config.log_level).upper()
    fmt = log_format or config.log_format

    # Configure structlog
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Also configure standard logging
    logging.basicConfig(
        level=getattr(logging, level_name),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )


# Timing / scoring utilities

def elapsed_ms(start: float) -> int:
    """Milliseconds elapsed since a ``time.perf_counter()`` reading."""
    return max(0, int((time.perf_counter() - start) * 1000))


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def ratio(numerator: int | float, denominator: int | float, default: float = 0.0) -> float:
    """Safe division returning ``default`` when the denominator is zero."""
    if not denominator:
        return default
    return numerator / denominator
