"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/document.py
Version:        1.0.0
Description:    The in-memory document: lookup, active entry/page resolution
                and every mutation primitive on categories, entries and pages.
                Each mutation re-establishes the document invariants before
                returning control to the caller.
------------------------------------------------------------------------------
"""

import uuid
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from core.errors import PreconditionFailed, StaleReference
from core.logger import get_logger
from core.migration import MigrationEngine
from core.models.document import (
    DEFAULT_ICON,
    NEW_CATEGORY_CONTENT,
    NEW_PAGE_CONTENT,
    Background,
    Category,
    Entry,
    Page,
    SpellBookSettings,
    WindowState,
    default_categories,
)
from core.pagination import join_pages, paginate, repaginate_entry
from core.shortcuts import normalize_chord

logger = get_logger("document")

# Settings that must never be replaced through update_settings()
PROTECTED_SETTINGS = {"categories", "schema_version"}


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ContentTicket:
    """
    Snapshot of what a window was showing when an async job started.
    The job's result is applied only if the snapshot still matches.
    """
    category_id: str
    entry_id: Optional[str]
    entry_name: Optional[str]
    page_index: int
    content: Optional[str] = None


class DocumentModel:
    """
    Owns the SpellBookSettings handle. All view events that change content
    end up here; callers persist by marking the saver dirty afterwards.
    """

    def __init__(self, settings: Optional[SpellBookSettings] = None) -> None:
        self.settings: SpellBookSettings = settings if settings is not None else SpellBookSettings()
        repairs = self.ensure_invariants()
        if repairs:
            logger.warning(f"Repaired {len(repairs)} inconsistencies on load: {repairs}")

    @classmethod
    def from_blob(cls, raw: Any, engine: Optional[MigrationEngine] = None) -> "DocumentModel":
        """Migrates a raw persisted blob of any vintage and wraps it."""
        engine = engine or MigrationEngine()
        return cls(engine.load(raw))

    def to_blob(self) -> dict:
        return self.settings.to_blob()

    # --- Lookup ---

    @property
    def categories(self) -> List[Category]:
        return self.settings.categories

    def get_category(self, category_id: Optional[str]) -> Optional[Category]:
        if category_id is None:
            return None
        return next((c for c in self.settings.categories if c.id == category_id), None)

    def require_category(self, category_id: Optional[str]) -> Category:
        category = self.get_category(category_id)
        if category is None:
            raise StaleReference(f"Category '{category_id}' no longer exists")
        return category

    def get_entry(self, category_id: str, entry_id: str) -> Optional[Entry]:
        category = self.get_category(category_id)
        return category.find_entry(entry_id) if category else None

    def require_entry(self, category_id: str, entry_id: str) -> Entry:
        entry = self.require_category(category_id).find_entry(entry_id)
        if entry is None:
            raise StaleReference(f"Entry '{entry_id}' no longer exists in '{category_id}'")
        return entry

    def active_entry(self, category: Category) -> Optional[Entry]:
        """The stored active entry, falling back to the first one if the reference is stale."""
        if not category.entries:
            return None
        return category.find_entry(category.window_state.active_entry_id) or category.entries[0]

    def active_page(self, category: Category) -> Optional[Page]:
        entry = self.active_entry(category)
        if entry is None or not entry.pages:
            return None
        index = category.window_state.active_page_index
        return entry.pages[index] if 0 <= index < len(entry.pages) else entry.pages[0]

    def default_category(self) -> Optional[Category]:
        """The configured default category, or the first one."""
        return self.get_category(self.settings.default_category_id) or \
            (self.settings.categories[0] if self.settings.categories else None)

    def find_category_by_shortcut(self, chord: Optional[str]) -> Optional[Category]:
        chord = normalize_chord(chord)
        if chord is None:
            return None
        return next((c for c in self.settings.categories if c.shortcut == chord), None)

    # --- Categories ---

    def add_category(self, name: str, icon: Optional[str] = None) -> Category:
        """Creates a category with a starter entry. Its window starts closed."""
        name = (name or "").strip()
        if not name:
            raise PreconditionFailed("A category needs a name.")

        category_id = _new_id()
        entry = Entry(
            id=f"{category_id}-entry",
            name="Starting Point",
            pages=[Page(content=NEW_CATEGORY_CONTENT)],
        )

        # New windows appear where the first window lives
        template = self.settings.categories[0].window_state if self.settings.categories else WindowState()
        state = WindowState(
            top=template.top,
            left=template.left,
            width=template.width,
            height=template.height,
            sidebar_width=template.sidebar_width,
            active_entry_id=entry.id,
        )

        category = Category(id=category_id, name=name, icon=icon or DEFAULT_ICON,
                            entries=[entry], window_state=state)
        self.settings.categories.append(category)
        logger.info(f"Category added: '{name}' ({category_id})")
        self.ensure_invariants()
        return category

    def rename_category(self, category_id: str, name: str) -> Category:
        category = self.require_category(category_id)
        category.name = (name or "").strip() or category.name
        return category

    def delete_category(self, category_id: str) -> Category:
        category = self.require_category(category_id)
        if len(self.settings.categories) <= 1:
            raise PreconditionFailed("Cannot delete the last category.")

        self.settings.categories = [c for c in self.settings.categories if c.id != category_id]
        if self.settings.default_category_id == category_id:
            self.settings.default_category_id = None
        logger.info(f"Category deleted: '{category.name}' ({category_id}, {len(category.entries)} entries)")
        self.ensure_invariants()
        return category

    def reorder_category(self, from_index: int, to_index: int) -> None:
        categories = self.settings.categories
        if not (0 <= from_index < len(categories) and 0 <= to_index < len(categories)):
            raise StaleReference(f"Category position {from_index} -> {to_index} is out of range")
        if from_index == to_index:
            return
        moved = categories.pop(from_index)
        categories.insert(to_index, moved)

    def set_category_icon(self, category_id: str, icon: str) -> None:
        self.require_category(category_id).icon = icon or DEFAULT_ICON

    def set_category_background(self, category_id: str, background: Optional[Background]) -> None:
        self.require_category(category_id).background = background

    def set_shortcut(self, category_id: str, chord: Optional[str]) -> Optional[str]:
        """
        Binds a chord to a category; None or an invalid chord clears it.
        A chord belongs to one category only, so rebinding takes it away
        from its previous owner.
        """
        category = self.require_category(category_id)
        normalized = normalize_chord(chord)
        if normalized is not None:
            for other in self.settings.categories:
                if other.id != category_id and other.shortcut == normalized:
                    logger.info(f"Shortcut {normalized} moved from '{other.name}' to '{category.name}'")
                    other.shortcut = None
        category.shortcut = normalized
        return normalized

    def set_default_category(self, category_id: Optional[str]) -> None:
        if category_id is not None:
            self.require_category(category_id)
        self.settings.default_category_id = category_id

    # --- Entries ---

    def add_entry(self, category_id: str, name: Optional[str] = None) -> Entry:
        category = self.require_category(category_id)
        entry = Entry(
            id=_new_id(),
            name=(name or "").strip() or f"New Entry {len(category.entries) + 1}",
            pages=[Page(content=NEW_PAGE_CONTENT)],
        )
        category.entries.append(entry)
        category.window_state.active_entry_id = entry.id
        category.window_state.active_page_index = 0
        return entry

    def rename_entry(self, category_id: str, entry_id: str, name: str) -> Entry:
        entry = self.require_entry(category_id, entry_id)
        entry.name = (name or "").strip() or entry.name
        return entry

    def delete_entry(self, category_id: str, entry_id: str) -> Entry:
        category = self.require_category(category_id)
        entry = self.require_entry(category_id, entry_id)
        category.entries = [e for e in category.entries if e.id != entry_id]
        self._release_active_entry(category, entry_id)
        logger.info(f"Entry deleted: '{entry.name}' from '{category.name}'")
        return entry

    def move_entry(self, source_id: str, entry_id: str, target_id: str) -> Entry:
        """Transfers an entry to another category in one step (removed, then appended)."""
        source = self.require_category(source_id)
        entry = self.require_entry(source_id, entry_id)
        target = self.require_category(target_id)
        if source is target:
            return entry

        source.entries = [e for e in source.entries if e.id != entry_id]
        self._release_active_entry(source, entry_id)

        if target.find_entry(entry.id) is not None:
            entry.id = _new_id()
        target.entries.append(entry)
        logger.info(f"Entry '{entry.name}' moved from '{source.name}' to '{target.name}'")
        self.ensure_invariants()
        return entry

    def reorder_entry(self, category_id: str, from_index: int, to_index: int) -> None:
        entries = self.require_category(category_id).entries
        if not (0 <= from_index < len(entries) and 0 <= to_index < len(entries)):
            raise StaleReference(f"Entry position {from_index} -> {to_index} is out of range")
        if from_index == to_index:
            return
        moved = entries.pop(from_index)
        entries.insert(to_index, moved)

    def select_entry(self, category_id: str, entry_id: str) -> Entry:
        category = self.require_category(category_id)
        entry = self.require_entry(category_id, entry_id)
        category.window_state.active_entry_id = entry.id
        category.window_state.active_page_index = 0
        return entry

    def set_entry_background(self, category_id: str, entry_id: str,
                             background: Optional[Background]) -> None:
        self.require_entry(category_id, entry_id).background = background

    def _release_active_entry(self, category: Category, entry_id: str) -> None:
        state = category.window_state
        if state.active_entry_id == entry_id:
            state.active_entry_id = category.entries[0].id if category.entries else None
            state.active_page_index = 0

    # --- Pages ---

    def _require_active_entry(self, category: Category) -> Entry:
        entry = self.active_entry(category)
        if entry is None:
            raise PreconditionFailed(f"'{category.name}' has no entries yet.")
        return entry

    def add_page(self, category_id: str) -> int:
        category = self.require_category(category_id)
        entry = self._require_active_entry(category)
        entry.pages.append(Page(content=NEW_PAGE_CONTENT))
        category.window_state.active_entry_id = entry.id
        category.window_state.active_page_index = len(entry.pages) - 1
        return category.window_state.active_page_index

    def delete_page(self, category_id: str) -> int:
        """Removes the active page and shows the one before it."""
        category = self.require_category(category_id)
        entry = self._require_active_entry(category)
        if len(entry.pages) <= 1:
            raise PreconditionFailed("Cannot delete the last page of an entry.")

        state = category.window_state
        index = min(state.active_page_index, len(entry.pages) - 1)
        del entry.pages[index]
        state.active_page_index = max(0, index - 1)
        return state.active_page_index

    def next_page(self, category_id: str) -> bool:
        category = self.require_category(category_id)
        entry = self.active_entry(category)
        state = category.window_state
        if entry is None or state.active_page_index >= len(entry.pages) - 1:
            return False
        state.active_page_index += 1
        return True

    def prev_page(self, category_id: str) -> bool:
        category = self.require_category(category_id)
        state = category.window_state
        if state.active_page_index <= 0:
            return False
        state.active_page_index -= 1
        return True

    def edit_page(self, category_id: str, content: str) -> bool:
        """
        Writes the active page. With auto-pagination on, an entry whose
        joined content outgrows the limit is re-flowed as a whole, so an edit
        may push text onto the following pages.

        Returns:
            True if the entry was re-paginated.
        """
        category = self.require_category(category_id)
        entry = self._require_active_entry(category)
        page = self.active_page(category)
        page.content = content if content is not None else ""

        paginated = False
        limit = self.settings.paginate_limit
        if self.settings.auto_paginate and len(join_pages(entry.pages)) > limit:
            entry.pages = paginate(join_pages(entry.pages), limit)
            paginated = True
            logger.info(f"Auto-paginated '{entry.name}' into {len(entry.pages)} pages")

        self._clamp_page_index(category, entry)
        return paginated

    def apply_auto_pagination(self, category_ids: Iterable[str]) -> List[str]:
        """
        Bulk re-pagination of the active entry of each given category.
        Used when auto-pagination is switched on or the limit changes.
        """
        if not self.settings.auto_paginate:
            return []

        changed: List[str] = []
        for category_id in category_ids:
            category = self.get_category(category_id)
            if category is None:
                continue
            entry = self.active_entry(category)
            if entry is not None and repaginate_entry(entry, self.settings.paginate_limit):
                self._clamp_page_index(category, entry)
                changed.append(category_id)
        return changed

    @staticmethod
    def _clamp_page_index(category: Category, entry: Entry) -> None:
        if category.window_state.active_page_index >= len(entry.pages):
            category.window_state.active_page_index = 0

    # --- Settings ---

    def update_settings(self, **changes: Any) -> None:
        """Applies validated global settings changes atomically."""
        for key in changes:
            if key in PROTECTED_SETTINGS or key not in SpellBookSettings.model_fields:
                raise PreconditionFailed(f"Unknown or read-only setting: {key}")

        candidate = self.settings.model_copy()
        try:
            for key, value in changes.items():
                setattr(candidate, key, value)
        except ValidationError as e:
            raise PreconditionFailed(f"Invalid setting value: {e.errors()[0].get('msg')}") from e

        for key in changes:
            setattr(self.settings, key, getattr(candidate, key))
        logger.debug(f"Settings updated: {sorted(changes)}")

    def reset(self) -> None:
        """Restores factory defaults (all user content is discarded)."""
        fresh = SpellBookSettings()
        for name in SpellBookSettings.model_fields:
            setattr(self.settings, name, getattr(fresh, name))
        logger.warning("Settings reset to defaults")

    # --- Backgrounds ---

    def resolve_background(self, category: Category) -> Optional[Background]:
        """Entry background overrides the category background."""
        entry = self.active_entry(category)
        if entry is not None and entry.background is not None:
            return entry.background
        return category.background

    # --- Async results ---

    def content_ticket(self, category_id: str) -> ContentTicket:
        category = self.require_category(category_id)
        entry = self.active_entry(category)
        page = self.active_page(category)
        return ContentTicket(
            category_id=category_id,
            entry_id=entry.id if entry else None,
            entry_name=entry.name if entry else None,
            page_index=category.window_state.active_page_index,
            content=page.content if page else None,
        )

    def resolve_ticket(self, ticket: ContentTicket) -> Page:
        """
        Returns the page a ticket was issued for.

        Raises:
            StaleReference: The category, entry (by id and name), page
                pointer or page text changed since the ticket was issued.
        """
        category = self.require_category(ticket.category_id)
        entry = self.active_entry(category)
        if entry is None or entry.id != ticket.entry_id or entry.name != ticket.entry_name:
            raise StaleReference(f"Active entry of '{ticket.category_id}' changed")
        index = category.window_state.active_page_index
        if index != ticket.page_index or index >= len(entry.pages):
            raise StaleReference(f"Active page of '{ticket.category_id}' changed")
        page = entry.pages[index]
        if page.content != ticket.content:
            raise StaleReference(f"Page {index} of '{entry.name}' was edited")
        return page

    # --- Invariants ---

    def ensure_invariants(self) -> List[str]:
        """
        Re-establishes the structural invariants: unique ids, a valid
        active entry/page pointer per window, no empty entries and at least
        one category. Returns a description of every repair made.
        """
        repairs: List[str] = []

        if not self.settings.categories:
            self.settings.categories = default_categories()
            repairs.append("no categories: seeded defaults")

        seen_categories = set()
        for category in self.settings.categories:
            if category.id in seen_categories:
                old = category.id
                category.id = self._unique(old, seen_categories)
                repairs.append(f"duplicate category id {old} -> {category.id}")
            seen_categories.add(category.id)

            seen_entries = set()
            for entry in category.entries:
                if entry.id in seen_entries:
                    old = entry.id
                    entry.id = self._unique(old, seen_entries)
                    repairs.append(f"duplicate entry id {old} -> {entry.id}")
                seen_entries.add(entry.id)
                if not entry.pages:
                    entry.pages = [Page(content="")]
                    repairs.append(f"empty entry {entry.id} re-seeded")

            state = category.window_state
            if state.active_entry_id is not None and category.find_entry(state.active_entry_id) is None:
                state.active_entry_id = category.entries[0].id if category.entries else None
                state.active_page_index = 0
                repairs.append(f"stale active entry in {category.id}")

            entry = self.active_entry(category)
            max_index = len(entry.pages) - 1 if entry else 0
            if state.active_page_index > max_index:
                state.active_page_index = max_index
                repairs.append(f"active page clamped in {category.id}")

        if self.settings.default_category_id and self.get_category(self.settings.default_category_id) is None:
            self.settings.default_category_id = None
            repairs.append("stale default category")

        return repairs

    @staticmethod
    def _unique(candidate: str, used: set) -> str:
        n = 2
        while f"{candidate}-{n}" in used:
            n += 1
        return f"{candidate}-{n}"
