"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/logger.py
Version:        1.0.0
Description:    Logging setup shared by all SpellBook components. Every module
                logs below the 'spellbook' namespace; individual components can
                be made more verbose than the global level, e.g. to trace the
                migration of an old settings file.
------------------------------------------------------------------------------
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional

APP_LOGGER_NAME = "spellbook"

# Components that log under spellbook.<name>
COMPONENTS = (
    "core", "controller", "document", "exchange", "gui", "migration",
    "pagination", "persistence", "session",
)

# Thread name matters once render workers log
LOG_FORMAT = "%(asctime)s [%(levelname).4s] %(name)s (%(threadName)s): %(message)s"
DATE_FORMAT = "%H:%M:%S"

# The tray app may run for days; keep the file bounded
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUPS = 2


def _level(name: Optional[str], fallback: int) -> int:
    value = getattr(logging, str(name or "").upper(), None)
    return value if isinstance(value, int) else fallback


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    component_levels: Optional[Dict[str, str]] = None,
    console: bool = True,
) -> logging.Logger:
    """
    (Re)configures the 'spellbook' logger tree. Safe to call repeatedly:
    handlers and per-component overrides of an earlier call are discarded.

    Args:
        level: Global threshold name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional rotating log file; parent directories are created.
        component_levels: Overrides such as {"migration": "DEBUG"}.
        console: Whether to also log to stderr.

    Returns:
        The configured root 'spellbook' logger.
    """
    root = logging.getLogger(APP_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(_level(level, logging.WARNING))
    root.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        root.addHandler(stream)
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            str(path), maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8")
        rotating.setFormatter(formatter)
        root.addHandler(rotating)

    for child in _children():
        child.setLevel(logging.NOTSET)
    for component, component_level in (component_levels or {}).items():
        set_component_level(component, component_level)
    return root


def _children() -> Iterable[logging.Logger]:
    prefix = APP_LOGGER_NAME + "."
    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith(prefix) and isinstance(logger, logging.Logger):
            yield logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a component; 'session' and 'spellbook.session' are the same."""
    if name == APP_LOGGER_NAME or name.startswith(APP_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


def set_component_level(component: str, level: str) -> None:
    """Overrides the threshold of one component. Unknown level names are ignored."""
    numeric = _level(level, -1)
    if numeric >= 0:
        get_logger(component).setLevel(numeric)


def log_migration_stage(stage: str, blob: dict) -> None:
    """Traces one applied migration stage on 'spellbook.migration.stages'."""
    logger = get_logger("migration.stages")
    if not logger.isEnabledFor(logging.DEBUG):
        return
    categories = blob.get("categories")
    count = len(categories) if isinstance(categories, list) else 0
    logger.debug(f"Stage '{stage}' applied | categories: {count} | root keys: {sorted(blob)}")


def log_persistence_write(path: str, size: int) -> None:
    """Traces one settings file write on 'spellbook.persistence.io'."""
    get_logger("persistence.io").debug(f"WRITE: {path} | BYTES: {size}")
