"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/models/document.py
Version:        1.0.0
Description:    Pydantic data models for the persisted settings blob:
                categories, entries, pages, per-category window state and the
                global configuration surface. Attributes are snake_case in
                Python, persisted keys stay camelCase for backward
                compatibility with existing settings files.
------------------------------------------------------------------------------
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.models.types import Edge, FlipStyle

# Current shape of the persisted blob. Bumped whenever a migration stage is added.
SCHEMA_VERSION: int = 3

DEFAULT_ICON: str = "fa-hat-wizard"
NEW_PAGE_CONTENT: str = "# New Page\n\n..."
NEW_CATEGORY_CONTENT: str = "# New Spell Book\n\nStart your journey here..."
MIN_SIDEBAR_WIDTH: int = 150
MAX_SIDEBAR_WIDTH: int = 600

# Geometry fallbacks used when a persisted value cannot be parsed
DEFAULT_GEOMETRY = {
    "top": 100,
    "left": 100,
    "width": 650,
    "height": 550,
    "sidebar_width": 180,
}


def parse_pixels(value: Any, fallback: int) -> int:
    """
    Converts a CSS-style length ('120px', '120', 120.4) to an int.
    Unparsable values yield the fallback.
    """
    if isinstance(value, bool) or value is None:
        return fallback
    if isinstance(value, (int, float)):
        return int(round(value))
    text = str(value).strip().lower()
    if text.endswith("px"):
        text = text[:-2].strip()
    try:
        return int(round(float(text)))
    except ValueError:
        return fallback


class SpellBookModel(BaseModel):
    """Common configuration: camelCase persistence, unknown keys preserved."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
    )


class Background(SpellBookModel):
    """Background image for a category or entry window."""
    url: str
    position: str = "50% 50%"
    blur_radius: int = 15

    @field_validator("blur_radius", mode="before")
    @classmethod
    def _coerce_blur(cls, v: Any) -> int:
        return max(0, parse_pixels(v, 15))


class Page(SpellBookModel):
    """A single unit of free-text (markdown) content."""
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, v: Any) -> str:
        return "" if v is None else str(v)


class Entry(SpellBookModel):
    """Named sub-collection of pages within a category."""
    id: str
    name: str = "Untitled"
    pages: List[Page] = Field(default_factory=list)
    icon: Optional[str] = None
    background: Optional[Background] = None


class WindowState(SpellBookModel):
    """Persisted layout/focus/lock data for one category's window."""
    is_open: bool = False
    top: int = DEFAULT_GEOMETRY["top"]
    left: int = DEFAULT_GEOMETRY["left"]
    width: int = DEFAULT_GEOMETRY["width"]
    height: int = DEFAULT_GEOMETRY["height"]
    is_fullscreen: bool = False
    is_locked: bool = False
    sidebar_width: int = DEFAULT_GEOMETRY["sidebar_width"]
    active_entry_id: Optional[str] = None
    active_page_index: int = 0

    @field_validator("top", "left", "width", "height", "sidebar_width", mode="before")
    @classmethod
    def _coerce_pixels(cls, v: Any, info) -> int:
        return parse_pixels(v, DEFAULT_GEOMETRY[info.field_name])

    @field_validator("sidebar_width")
    @classmethod
    def _clamp_sidebar(cls, v: int) -> int:
        return max(MIN_SIDEBAR_WIDTH, min(MAX_SIDEBAR_WIDTH, v))

    @field_validator("active_page_index", mode="before")
    @classmethod
    def _coerce_index(cls, v: Any) -> int:
        try:
            return max(0, int(v or 0))
        except (TypeError, ValueError):
            return 0


class Category(SpellBookModel):
    """Top-level collection with its own window, icon and optional shortcut."""
    id: str
    name: str = "Untitled"
    icon: str = DEFAULT_ICON
    entries: List[Entry] = Field(default_factory=list)
    window_state: WindowState = Field(default_factory=WindowState)
    background: Optional[Background] = None
    shortcut: Optional[str] = None

    def find_entry(self, entry_id: Optional[str]) -> Optional[Entry]:
        if entry_id is None:
            return None
        return next((e for e in self.entries if e.id == entry_id), None)

    def entry_index(self, entry_id: str) -> int:
        for i, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return i
        return -1


class EdgeConstraint(SpellBookModel):
    """Whether a viewport edge is enforced, and how far inside it windows must stay."""
    enabled: bool = True
    offset: int = Field(default=0, ge=0)


class BoundaryConfig(SpellBookModel):
    top: EdgeConstraint = Field(default_factory=EdgeConstraint)
    right: EdgeConstraint = Field(default_factory=EdgeConstraint)
    bottom: EdgeConstraint = Field(default_factory=EdgeConstraint)
    left: EdgeConstraint = Field(default_factory=EdgeConstraint)

    def for_edge(self, edge: Edge) -> EdgeConstraint:
        return getattr(self, edge.value)


def default_categories() -> List[Category]:
    """The single starter category shipped with a fresh installation."""
    welcome = Entry(
        id="default-entry",
        name="Welcome",
        pages=[
            Page(content=(
                "# Welcome to Spell Book! 📖\n\n"
                "Your own floating spell book, or a fancy notepad.\n\n"
                "## Getting Started\n\n"
                "- **Switch categories** via the title in the header\n"
                "- **Double-click** content to edit, or use the pencil button\n"
                "- **Drag entries** in the sidebar to reorder them\n"
                "- Access **settings** via the gear icon"
            )),
            Page(content=(
                "# Features ✨\n\n"
                "- **Multi-category** organization\n"
                "- **Page pagination** for long entries\n"
                "- **Custom backgrounds** per category/entry\n"
                "- **Keyboard shortcuts** for quick access\n"
                "- **Several windows** open side by side\n"
                "- **Per-window locking** to prevent accidental moves\n"
                "- **Full Markdown** support"
            )),
        ],
    )
    return [
        Category(
            id="default-cat",
            name="Spell Book",
            icon=DEFAULT_ICON,
            entries=[welcome],
            window_state=WindowState(active_entry_id="default-entry"),
        )
    ]


class SpellBookSettings(SpellBookModel):
    """
    The whole persisted blob. Owned by the DocumentModel for the lifetime of
    the process: loaded once, migrated, then mutated only through the
    document and session operations.
    """
    schema_version: int = SCHEMA_VERSION
    categories: List[Category] = Field(default_factory=default_categories)

    # Pagination
    book_mode_enabled: bool = True
    auto_paginate: bool = True
    paginate_limit: int = Field(default=3000, ge=100)

    # Windows
    always_on_top: bool = True
    lock_layout: bool = False
    default_category_id: Optional[str] = None
    boundaries: BoundaryConfig = Field(default_factory=BoundaryConfig)
    is_enabled: bool = True

    # Appearance (consumed by the view layer only)
    opacity: float = Field(default=0.1, ge=0.0, le=1.0)
    font_scale: float = Field(default=1.3, gt=0.0)
    theme_color: Optional[str] = None
    page_flip_animation: bool = True
    page_flip_speed: float = Field(default=0.2, gt=0.0)
    page_flip_style: FlipStyle = FlipStyle.FLIP

    def to_blob(self) -> dict:
        """Serializes to the camelCase JSON-compatible persisted form."""
        return self.model_dump(by_alias=True, mode="json")


def default_settings_blob() -> dict:
    """A fresh camelCase copy of the default settings (never aliased)."""
    return SpellBookSettings().to_blob()


def default_window_state_blob() -> dict:
    return WindowState().model_dump(by_alias=True, mode="json")
