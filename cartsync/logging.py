"""
Logging setup for cartsync.

Every module does ``logger = get_logger(__name__)``. The root logger is
configured on first import from LOG_LEVEL and ENVIRONMENT.
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Request lines from the remote cart client and Supabase
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")

# CWE-117: owner and item ids come from clients
_LOG_INJECTION = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def configure_logging(level: str | None = None, production: bool | None = None) -> None:
    """Attach a stdout handler to the root logger unless one is already there."""
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    if production is None:
        production = os.environ.get("ENVIRONMENT", "").lower() in ("production", "prod")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if production else LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | None, length: int = 8) -> str:
    """Owner/item id prefix safe to interpolate into a log line ("N/A" when empty)."""
    if not id_value:
        return "N/A"
    return str(id_value).translate(_LOG_INJECTION)[:length]


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """Like sanitize_id_for_logging, but marks truncation with an ellipsis."""
    if not value:
        return "N/A"
    safe_value = str(value).translate(_LOG_INJECTION)
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."
