"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/models/types.py
Version:        1.0.0
Description:    Centralized enumeration and type definitions.
------------------------------------------------------------------------------
"""

from enum import Enum


class FlipStyle(str, Enum):
    """Page-turn animation styles offered by the view layer."""
    FLIP = "flip"
    FADE = "fade"
    SLIDE = "slide"


class Edge(str, Enum):
    """The four viewport edges a window can be constrained to."""
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


class ShortcutOutcome(str, Enum):
    """Result of dispatching a keyboard chord to the session manager."""
    IGNORED = "ignored"
    OPENED = "opened"
    FOCUSED = "focused"
    CLOSED = "closed"


class NotifyLevel(str, Enum):
    """Severity of a user-facing, non-blocking notification."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
