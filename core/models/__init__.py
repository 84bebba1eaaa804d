"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/models/__init__.py
Version:        1.0.0
Description:    Package initializer for core data models. Exports the
                persisted document types for easy access.
------------------------------------------------------------------------------
"""

from .document import (
    SCHEMA_VERSION,
    Background,
    BoundaryConfig,
    Category,
    EdgeConstraint,
    Entry,
    Page,
    SpellBookSettings,
    WindowState,
)
from .types import Edge, FlipStyle, NotifyLevel, ShortcutOutcome
