# backend/travel_itinerary/core/logger.py

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from travel_itinerary.core.config_loader import settings


# -------------------------------------------------------------------
# FORMATTER
# -------------------------------------------------------------------
LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)

formatter = logging.Formatter(LOG_FORMAT)


def _file_handler(log_dir: str) -> Optional[RotatingFileHandler]:
    """Rotating file handler under ``log_dir``; None when file logging is off."""
    if not log_dir:
        return None

    path = Path(log_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None

    handler = RotatingFileHandler(
        path / "app.log",
        maxBytes=5 * 1024 * 1024,   # 5 MB
        backupCount=5,              # keep 5 files
        encoding="utf-8"
    )
    handler.setFormatter(formatter)
    handler.setLevel(logging.INFO)
    return handler


# -------------------------------------------------------------------
# HANDLER: CONSOLE
# -------------------------------------------------------------------
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
console_handler.setLevel(logging.DEBUG)


# -------------------------------------------------------------------
# GLOBAL LOGGER
# -------------------------------------------------------------------
logger = logging.getLogger("travel_itinerary")
logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

# Prevent duplicate handlers when reloading app
if not logger.handlers:
    logger.addHandler(console_handler)
    file_handler = _file_handler(settings.LOG_DIR)
    if file_handler is not None:
        logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Child of the application logger, e.g. ``travel_itinerary.cache``."""
    return logger.getChild(name)
