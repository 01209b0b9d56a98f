"""
kbchat - Logging
=================
Provides a pre-configured logger factory for consistent, readable
log output across all kbchat modules.

Logging verbosity is driven by the ``ENV`` environment variable:
  • ``"dev"``  → DEBUG level  (maximum detail)
  • ``"prod"`` → WARNING level (errors & warnings only)

The level is read from the process environment rather than from
``Settings`` so that a configuration failure can itself be logged.

Usage:
    from kbchat.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Something happened")
"""

import logging
import os
import sys

# ── Resolve default level from environment mode ───────────────────────
_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}


def _default_level() -> int:
    return _ENV_LEVEL_MAP.get(os.getenv("ENV", "dev").strip().lower(), logging.INFO)


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Create and return a named logger with a standardised formatter.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit logging level override.
               If *None*, the level is derived from ``ENV``.

    Returns:
        A configured ``logging.Logger`` instance.
    """
    resolved_level = level if level is not None else _default_level()
    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers if the logger already exists
    if not logger.handlers:
        logger.setLevel(resolved_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(resolved_level)

        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        logger.propagate = False

    return logger


def mask_secret(value: str) -> str:
    """Return ``****`` plus the last four characters of *value*."""
    return f"****{value[-4:]}" if len(value) > 4 else "****"
