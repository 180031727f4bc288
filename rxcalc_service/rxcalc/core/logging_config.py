"""
Logging setup for the rxcalc service.
Every module logs through logging.getLogger(__name__); this attaches a single
console handler to the package logger so the format is the same everywhere.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = "INFO", name: str = "rxcalc") -> logging.Logger:
    """
    Configure and return the package logger.

    Args:
        level (str | int): Logging level name or number (default "INFO").
        name (str): Logger to configure (default the package root).

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Calling twice must not duplicate output
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    return logger
