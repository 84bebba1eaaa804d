"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/errors.py
Version:        1.0.0
Description:    Error taxonomy shared by the document model, migration engine,
                session manager and import/export service. Every failure
                degrades to "operation ignored"; none of these is fatal.
------------------------------------------------------------------------------
"""


class SpellBookError(Exception):
    """Base class for all SpellBook domain errors."""


class InvalidImport(SpellBookError):
    """A backup file is malformed or has an unrecognized shape. Nothing was changed."""


class PreconditionFailed(SpellBookError):
    """An operation was refused (e.g. deleting the last category). State is unchanged."""


class StaleReference(SpellBookError):
    """An event or async result references a category/entry that no longer exists."""


class MigrationUnrecognizedShape(SpellBookError):
    """A persisted blob matches none of the known shapes; treated as current and backfilled."""
