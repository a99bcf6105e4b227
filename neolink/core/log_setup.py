"""
Logging setup for the neolink package: one handler on the "neolink" logger, file or stderr.
"""
import logging
from pathlib import Path
from typing import Optional

from neolink.core.settings import _project_root, get_settings

LOGGER_NAME = "neolink"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _log_path(log_file: str) -> Optional[Path]:
    if not log_file or not log_file.strip():
        return None
    p = Path(log_file)
    if not p.is_absolute():
        p = _project_root() / p
    return p


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """Configure and return the package logger. Safe to call more than once."""
    settings = get_settings()
    level = (level or settings.log_level).upper()
    log_path = _log_path(settings.log_file if log_file is None else log_file)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not logger.handlers:
        if log_path:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_path, encoding="utf-8")
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
