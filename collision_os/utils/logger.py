# collision_os/utils/logger.py
"""
Logging setup shared by every module.
Console output always; a rotating file under LOG_DIR unless LOG_FILE is blank.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from collision_os.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def log_path() -> Optional[str]:
    if not settings.LOG_FILE:
        return None
    log_dir = settings.LOG_DIR or os.path.join(
        os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "logs"
    )
    return os.path.join(log_dir, settings.LOG_FILE)


def _file_handler(level: str, fmt: logging.Formatter) -> Optional[RotatingFileHandler]:
    path = log_path()
    if path is None:
        return None
    os.makedirs(os.path.dirname(path), exist_ok=True)
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    level = settings.LOG_LEVEL.upper()
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(console)
    file_handler = _file_handler(level, fmt)
    if file_handler is not None:
        root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Named logger; configures the root logger on first use."""
    _configure_root_logger()
    return logging.getLogger(name)
