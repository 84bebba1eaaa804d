"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           tests/unit/test_logger.py
Version:        1.0.0
Description:    Unit tests for the centralized logging system.
------------------------------------------------------------------------------
"""

import logging

from core.logger import (
    get_logger,
    log_migration_stage,
    log_persistence_write,
    set_component_level,
    setup_logging,
)


def _flush():
    for handler in logging.getLogger("spellbook").handlers:
        handler.flush()


def test_logger_namespace():
    """Verify that get_logger returns a child of the spellbook root."""
    logger = get_logger("migration")
    assert logger.name == "spellbook.migration"
    assert isinstance(logger, logging.Logger)
    assert get_logger("spellbook.session").name == "spellbook.session"


def test_logging_to_file(tmp_path):
    log_file = tmp_path / "app.log"
    setup_logging(level="DEBUG", log_file=str(log_file))

    get_logger("document").debug("Logging to file test message")
    _flush()

    assert log_file.exists()
    assert "Logging to file test message" in log_file.read_text()


def test_component_level_overrides(tmp_path):
    """A component can be more verbose than the global level."""
    log_file = tmp_path / "component.log"
    setup_logging(level="INFO", log_file=str(log_file), component_levels={"pagination": "DEBUG"})

    get_logger("pagination").debug("PAGINATION DEBUG MESSAGE")
    get_logger("session").debug("SESSION DEBUG MESSAGE")
    _flush()

    content = log_file.read_text()
    assert "PAGINATION DEBUG MESSAGE" in content
    assert "SESSION DEBUG MESSAGE" not in content


def test_setup_resets_previous_overrides(tmp_path):
    setup_logging(level="INFO")
    set_component_level("exchange", "DEBUG")
    assert get_logger("exchange").level == logging.DEBUG

    setup_logging(level="INFO", log_file=str(tmp_path / "reset.log"))
    assert get_logger("exchange").level == logging.NOTSET


def test_quiet_default_mode(tmp_path):
    log_file = tmp_path / "quiet.log"
    setup_logging(level="WARNING", log_file=str(log_file))

    get_logger("core").info("THIS SHOULD NOT APPEAR")
    _flush()

    assert "THIS SHOULD NOT APPEAR" not in log_file.read_text()


def test_specialized_debug_helpers(tmp_path):
    log_file = tmp_path / "debug.log"
    setup_logging(level="DEBUG", log_file=str(log_file))

    log_migration_stage("backfill_defaults", {"categories": [{}, {}], "isEnabled": True})
    log_persistence_write("/tmp/spellbook.json", 42)
    _flush()

    content = log_file.read_text()
    assert "Stage 'backfill_defaults' applied | categories: 2" in content
    assert "WRITE: /tmp/spellbook.json | BYTES: 42" in content
