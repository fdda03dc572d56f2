"""
Logging configuration for the takeaway bot.

Usage:
    from takeaway_bot.logging_config import setup_logging
    setup_logging()  # Call once at application startup

Environment variables:
    LOG_LEVEL: Set to DEBUG, INFO, WARNING, ERROR, or CRITICAL (default: INFO)
"""
import logging
import os
import sys


def setup_logging(level: str = None) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If not provided, reads from LOG_LEVEL env var, defaults to INFO.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    level = level.upper()

    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if level not in valid_levels:
        level = "INFO"

    numeric_level = getattr(logging, level)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    logging.getLogger("takeaway_bot").setLevel(numeric_level)

    # Dialog turns are chatty at DEBUG; keep library noise out of them
    if level != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Logging configured at %s level", level)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the bound key=value pairs, e.g. ``[caller=+3912345]``."""

    def process(self, msg, kwargs):
        if self.extra:
            prefix = " ".join(f"{key}={value}" for key, value in self.extra.items())
            msg = f"[{prefix}] {msg}"
        return msg, kwargs


def bind_logger(logger: logging.Logger, **context) -> ContextLoggerAdapter:
    """
    Return a logger that carries per-session context on every record.

    Args:
        logger: The underlying logger (usually injected into a component)
        **context: Values to prefix, such as caller id or dialog state

    Returns:
        A LoggerAdapter usable anywhere a Logger is expected
    """
    if isinstance(logger, ContextLoggerAdapter):
        merged = dict(logger.extra)
        merged.update(context)
        return ContextLoggerAdapter(logger.logger, merged)
    return ContextLoggerAdapter(logger, context)
