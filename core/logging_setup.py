from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from core.settings import LOGGING


def get_logger(name: str = "tralok.sync", path: Optional[Path] = None) -> logging.Logger:
    """Return ``name`` with the rotating sync log attached exactly once."""

    logger = logging.getLogger(name)
    if not logger.handlers:
        log_path = Path(path or LOGGING.path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_path,
            maxBytes=LOGGING.max_bytes,
            backupCount=LOGGING.backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(LOGGING.fmt))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, LOGGING.level.upper(), logging.INFO))
    return logger


__all__ = ["get_logger"]
