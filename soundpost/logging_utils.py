"""Logging helpers shared by the CLI and the pipeline.

Components never configure logging; they take a logger from the caller
(usually ``ctx.logger``) and fall back to ``get_logger(__name__)``.
"""

import logging
import os


DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_CONFIGURED = False


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once with a consistent, readable format.

    Args:
        level: Optional log level name (e.g., "INFO", "DEBUG"). If omitted,
               reads LOG_LEVEL env or defaults to INFO.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    log_level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    log_level = getattr(logging, log_level_name, logging.INFO)

    logging.basicConfig(level=log_level, format=DEFAULT_FORMAT)

    _CONFIGURED = True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module logger without touching global configuration."""
    return logging.getLogger(name if name else "soundpost")
