"""Logging configuration from the [logging] config section.

Logs go to a size-rotated file when the safety gate allows local writes,
and to stderr while read-only mode is in effect.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from lazycompass.config import Config, ConfigPaths, log_file_path
from lazycompass.safety import LOCAL_WRITE, SafetyOverrides, evaluate
from lazycompass.security import FILE_MODE, ensure_secure_dir

logger = logging.getLogger(__name__)

ROOT_LOGGER = "lazycompass"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(name: str) -> tuple[int, str | None]:
    """Map a config level name to a logging level.

    Returns:
        Tuple of (level, warning). Unknown names fall back to INFO with a
        warning message.
    """
    level = _LEVELS.get(name.strip().lower())
    if level is None:
        return logging.INFO, f"unknown log level '{name}', using info"
    return level, None


def configure_logging(
    paths: ConfigPaths,
    config: Config,
    overrides: SafetyOverrides | None = None,
) -> Path | None:
    """Install the lazycompass log handler.

    Calling this again replaces the handler installed by a previous call.

    Returns:
        The log file path, or None when logging to stderr.
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    level, warning = parse_log_level(config.logging.level)
    root.setLevel(level)

    decision = evaluate(config, overrides or SafetyOverrides(), LOCAL_WRITE)
    log_path: Path | None = None
    if decision.allowed:
        log_path = log_file_path(paths, config)
        ensure_secure_dir(log_path.parent)
        os.close(os.open(log_path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, FILE_MODE))
        handler: logging.Handler = RotatingFileHandler(
            log_path,
            maxBytes=config.logging.max_size_bytes,
            backupCount=config.logging.max_backups,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    if warning:
        logger.warning(warning)
    return log_path
