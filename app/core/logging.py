"""Process-wide logging setup."""

import logging

from app.core.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_log_level(settings: Settings) -> int:
    """LOG_LEVEL wins when valid; otherwise DEBUG in debug mode, INFO elsewhere."""
    if settings.LOG_LEVEL:
        level = logging.getLevelName(settings.LOG_LEVEL.strip().upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if settings.DEBUG else logging.INFO


def configure_logging(settings: Settings) -> None:
    """Attach a single stream handler to the root logger."""
    level = resolve_log_level(settings)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    root.setLevel(level)
    # pymongo is chatty at DEBUG
    logging.getLogger("pymongo").setLevel(max(level, logging.INFO))
