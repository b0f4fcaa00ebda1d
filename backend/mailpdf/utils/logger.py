"""
Logging helpers shared by every module.
"""
import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str = None) -> None:
    """
    Configure the root logger once.

    Args:
        level: Log level name; falls back to LOG_LEVEL, then INFO
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)
