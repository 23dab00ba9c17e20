"""Logging setup for the tab tree engine and its CLI."""

from __future__ import annotations

import logging as py_logging
import sys
from pathlib import Path
from typing import TextIO

LOGGER_NAME = "tabtree"
LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
DEFAULT_LOG_PATH = Path("~/.config/tabtree/logs/tabtree.log")
_CWD_LOG_PATH = Path(".tabtree/logs/tabtree.log")
_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"


def normalize_level(level: str) -> str:
    """Map user input to a key of LOG_LEVELS, or "" when unknown."""
    normalized = level.strip().upper()
    if normalized == "WARNING":
        normalized = "WARN"
    return normalized if normalized in LOG_LEVELS else ""


def _absolute(path: str | Path) -> Path:
    try:
        resolved = Path(path).expanduser()
    except RuntimeError:
        resolved = Path(path)
    if not resolved.is_absolute():
        resolved = resolved.resolve()
    return resolved


def default_log_path() -> Path:
    try:
        return DEFAULT_LOG_PATH.expanduser().resolve()
    except RuntimeError:
        # No resolvable home directory.
        return (Path.cwd() / _CWD_LOG_PATH).resolve()


def _file_handler(log_file: str | Path) -> py_logging.Handler | None:
    log_path = _absolute(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return py_logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        return None


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = LOG_LEVELS.get(normalize_level(level), py_logging.INFO)
    formatter = py_logging.Formatter(_FORMAT)

    logger = py_logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    logger.handlers.clear()

    console = py_logging.StreamHandler(stream or sys.stderr)
    console.setLevel(resolved)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        handler = _file_handler(log_file)
        if handler is not None:
            handler.setLevel(py_logging.DEBUG)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    logger.propagate = False
    return logger
