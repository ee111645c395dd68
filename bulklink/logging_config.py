"""Logging setup and log-safe helpers for the bulk-link service."""
import logging
import sys
from typing import Optional, Union

from bulklink.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Link tokens are bearer capabilities; only this many characters reach the logs
TOKEN_LOG_CHARS = 8


def setup_logging(level: Optional[Union[int, str]] = None) -> None:
    """
    Configure root logging to stdout.

    Args:
        level: Logging level name or number. Defaults to DEBUG when
               ``settings.DEBUG`` is set, INFO otherwise.
    """
    if level is None:
        level = logging.DEBUG if settings.DEBUG else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    logging.getLogger("uvicorn").setLevel(level)
    # Requests are logged by our own middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def mask_token(token: Optional[str]) -> str:
    """Shorten a link token for log output."""
    if not token:
        return ""
    return f"{token[:TOKEN_LOG_CHARS]}..."
