"""Logging configuration for the Microsoft Teams agent."""

import logging
import sys
from typing import Optional

LOGGER_NAMESPACE = "msteams_agent"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging for the msteams_agent package.

    Log records go to stderr so they never interleave with the
    conversation printed on stdout.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional file path to write logs
        format_string: Custom format string for log messages

    Returns:
        Configured package logger
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True
    )

    # Third-party clients are chatty at INFO; keep them one notch quieter.
    for noisy in ("httpx", "httpcore", "openai", "arcadepy"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    return logging.getLogger(LOGGER_NAMESPACE)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name for the logger

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")
