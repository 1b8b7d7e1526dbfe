"""
Logging setup shared by every module.

Modules obtain a logger with get_logger(__name__); setup_logging() is
called once from the application entry point.
"""
import logging
import sys

from app.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_configured = False


def setup_logging() -> None:
    """Configure the root logger (idempotent)."""
    global _configured
    if _configured:
        return

    settings = get_settings()
    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)


def mask(value: str, keep: int = 6) -> str:
    """Shorten a credential reference for log output."""
    if not value:
        return ""
    if len(value) <= keep:
        return "***"
    return f"{value[:keep]}..."
