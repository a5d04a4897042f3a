"""Structured logging setup."""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: str = "info") -> None:
    """Configure structlog to drop events below the given level.

    Args:
        level: Log level name (debug, info, warning, error).

    Raises:
        ValueError: If the level name is not recognised.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
