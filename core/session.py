"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/session.py
Version:        1.0.0
Description:    Multi-window session manager. Tracks at most one open window
                per category, assigns z-order, mediates focus, applies the
                viewport boundary rules to drags and resizes and dispatches
                category keyboard shortcuts. Geometry is written to the
                persisted WindowState only when a gesture ends.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from core.document import DocumentModel
from core.layout import Rect, Viewport, clamp_rect
from core.logger import get_logger
from core.models.document import Category
from core.models.types import ShortcutOutcome
from core.shortcuts import normalize_chord

logger = get_logger("session")

BASE_Z_ON_TOP: int = 3003
BASE_Z_NORMAL: int = 2100
FULLSCREEN_Z: int = 60000
FOCUS_Z_BOOST: int = 10


@dataclass
class WindowHandle:
    """Live (not yet committed) state of one open window."""
    category_id: str
    rect: Rect
    focused: bool = False
    z_order: int = 0
    focus_stamp: int = 0
    # Pointer position and window origin at drag start
    drag_anchor: Optional[Tuple[int, int, int, int]] = None


class SessionManager(QObject):
    """
    Owns the set of open windows. Every operation on a category id that no
    longer exists is a silent no-op.
    """
    window_opened = pyqtSignal(str)
    window_closed = pyqtSignal(str)
    window_focused = pyqtSignal(str)
    geometry_changed = pyqtSignal(str)
    z_order_changed = pyqtSignal(str, int)

    def __init__(
        self,
        document: DocumentModel,
        viewport: Viewport,
        on_commit: Optional[Callable[[], None]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.document = document
        self.viewport = viewport
        self._on_commit = on_commit
        self._handles: Dict[str, WindowHandle] = {}
        self._focus_counter = 0

    # --- Queries ---

    @property
    def base_z(self) -> int:
        return BASE_Z_ON_TOP if self.document.settings.always_on_top else BASE_Z_NORMAL

    @property
    def open_ids(self) -> List[str]:
        return list(self._handles)

    def handle(self, category_id: str) -> Optional[WindowHandle]:
        return self._handles.get(category_id)

    def is_open(self, category_id: str) -> bool:
        return category_id in self._handles

    def focused_id(self) -> Optional[str]:
        return next((cid for cid, h in self._handles.items() if h.focused), None)

    def is_locked(self, category_id: str) -> bool:
        """A window is locked by its own flag or by the global layout lock."""
        category = self.document.get_category(category_id)
        if category is None:
            return False
        return category.window_state.is_locked or self.document.settings.lock_layout

    def _commit(self) -> None:
        if self._on_commit is not None:
            self._on_commit()

    def _clamped(self, rect: Rect, cap_to_viewport: bool = False) -> Rect:
        return clamp_rect(rect, self.viewport, self.document.settings.boundaries,
                          cap_to_viewport=cap_to_viewport)

    @staticmethod
    def _store_rect(category: Category, rect: Rect) -> None:
        state = category.window_state
        state.left = rect.left
        state.top = rect.top
        state.width = rect.width
        state.height = rect.height

    # --- Lifecycle ---

    def open(self, category_id: str) -> Optional[WindowHandle]:
        """Opens the category's window, or focuses it if it is already open."""
        category = self.document.get_category(category_id)
        if category is None:
            logger.debug(f"open ignored: unknown category {category_id}")
            return None

        existing = self._handles.get(category_id)
        if existing is not None:
            self.focus(category_id)
            return existing

        state = category.window_state
        rect = Rect.from_window_state(state)
        if not state.is_fullscreen:
            rect = self._clamped(rect)
            self._store_rect(category, rect)
        state.is_open = True

        handle = WindowHandle(category_id=category_id, rect=rect)
        self._handles[category_id] = handle
        logger.info(f"Window opened: '{category.name}' ({category_id})")
        self.window_opened.emit(category_id)
        self.focus(category_id)
        self._commit()
        return handle

    def close(self, category_id: str) -> bool:
        """Closes the window and hands focus to the most recently focused remaining one."""
        handle = self._handles.pop(category_id, None)
        category = self.document.get_category(category_id)
        if category is not None:
            category.window_state.is_open = False
        if handle is None:
            return False

        logger.info(f"Window closed: {category_id}")
        self.window_closed.emit(category_id)
        if handle.focused and self._handles:
            successor = max(self._handles.values(), key=lambda h: h.focus_stamp)
            self.focus(successor.category_id)
        self._commit()
        return True

    def focus(self, category_id: str) -> None:
        handle = self._handles.get(category_id)
        if handle is None:
            return
        self._focus_counter += 1
        for other in self._handles.values():
            other.focused = other is handle
        handle.focus_stamp = self._focus_counter
        self.refresh_z_order()
        self.window_focused.emit(category_id)

    def refresh_z_order(self) -> None:
        """Recomputes every window's z-order (also after always-on-top changes)."""
        base = self.base_z
        for cid, handle in self._handles.items():
            category = self.document.get_category(cid)
            fullscreen = category is not None and category.window_state.is_fullscreen
            z = FULLSCREEN_Z if fullscreen else base
            if handle.focused:
                z += FOCUS_Z_BOOST
            if z != handle.z_order:
                handle.z_order = z
                self.z_order_changed.emit(cid, z)

    # --- Window flags ---

    def toggle_fullscreen(self, category_id: str) -> Optional[bool]:
        """
        Fullscreen windows bypass geometry and clamping. The stored bounds are
        left untouched, so leaving fullscreen restores them (re-clamped to the
        current viewport).
        """
        category = self.document.get_category(category_id)
        handle = self._handles.get(category_id)
        if category is None or handle is None:
            return None

        state = category.window_state
        state.is_fullscreen = not state.is_fullscreen
        handle.drag_anchor = None
        if not state.is_fullscreen:
            handle.rect = self._clamped(Rect.from_window_state(state))
            self._store_rect(category, handle.rect)
        self.refresh_z_order()
        self.geometry_changed.emit(category_id)
        self._commit()
        return state.is_fullscreen

    def toggle_lock(self, category_id: str) -> Optional[bool]:
        category = self.document.get_category(category_id)
        if category is None:
            return None
        state = category.window_state
        state.is_locked = not state.is_locked
        handle = self._handles.get(category_id)
        if handle is not None:
            handle.drag_anchor = None
        self._commit()
        return state.is_locked

    def set_sidebar_width(self, category_id: str, width: int) -> Optional[int]:
        category = self.document.get_category(category_id)
        if category is None:
            return None
        category.window_state.sidebar_width = width
        self._commit()
        return category.window_state.sidebar_width

    # --- Gestures ---

    def _gesture_blocked(self, category_id: str) -> bool:
        category = self.document.get_category(category_id)
        return category is None or self.is_locked(category_id) or category.window_state.is_fullscreen

    def drag_start(self, category_id: str, x: int, y: int) -> bool:
        handle = self._handles.get(category_id)
        if handle is None or self._gesture_blocked(category_id):
            return False
        handle.drag_anchor = (x, y, handle.rect.left, handle.rect.top)
        return True

    def drag_move(self, category_id: str, x: int, y: int) -> Optional[Rect]:
        """Updates live geometry only; nothing is persisted until drag_end."""
        handle = self._handles.get(category_id)
        if handle is None or handle.drag_anchor is None:
            return None
        start_x, start_y, origin_left, origin_top = handle.drag_anchor
        if self._gesture_blocked(category_id):
            # Locked mid-drag: abandon the gesture and snap back
            handle.drag_anchor = None
            handle.rect = handle.rect.moved_to(origin_left, origin_top)
            self.geometry_changed.emit(category_id)
            return None
        moved = handle.rect.moved_to(origin_left + (x - start_x), origin_top + (y - start_y))
        handle.rect = self._clamped(moved)
        self.geometry_changed.emit(category_id)
        return handle.rect

    def drag_end(self, category_id: str) -> bool:
        handle = self._handles.get(category_id)
        category = self.document.get_category(category_id)
        if handle is None or category is None or handle.drag_anchor is None:
            return False
        handle.drag_anchor = None
        self._store_rect(category, handle.rect)
        self._commit()
        return True

    def resize_end(self, category_id: str, width: int, height: int) -> Optional[Rect]:
        handle = self._handles.get(category_id)
        category = self.document.get_category(category_id)
        if handle is None or category is None or self._gesture_blocked(category_id):
            return None
        resized = Rect(left=handle.rect.left, top=handle.rect.top, width=width, height=height)
        handle.rect = self._clamped(resized, cap_to_viewport=True)
        self._store_rect(category, handle.rect)
        self.geometry_changed.emit(category_id)
        self._commit()
        return handle.rect

    def set_viewport(self, width: int, height: int) -> List[str]:
        """Re-clamps every open, non-fullscreen window to a new viewport size."""
        self.viewport = Viewport(width=width, height=height)
        moved: List[str] = []
        for cid, handle in self._handles.items():
            category = self.document.get_category(cid)
            if category is None or category.window_state.is_fullscreen:
                continue
            clamped = self._clamped(handle.rect, cap_to_viewport=True)
            if clamped != handle.rect:
                handle.rect = clamped
                self._store_rect(category, clamped)
                moved.append(cid)
                self.geometry_changed.emit(cid)
        if moved:
            logger.debug(f"Viewport {width}x{height}: re-clamped {moved}")
            self._commit()
        return moved

    # --- Shortcuts ---

    def _toggle(self, category_id: str) -> ShortcutOutcome:
        handle = self._handles.get(category_id)
        if handle is None:
            self.open(category_id)
            return ShortcutOutcome.OPENED
        if handle.focused:
            self.close(category_id)
            return ShortcutOutcome.CLOSED
        self.focus(category_id)
        return ShortcutOutcome.FOCUSED

    def handle_shortcut(self, chord: Optional[str], from_text_input: bool = False) -> ShortcutOutcome:
        """
        Resolves a key chord to its category: open and focused closes the
        window, open and unfocused focuses it, closed opens it.
        """
        if from_text_input or not self.document.settings.is_enabled:
            return ShortcutOutcome.IGNORED
        category = self.document.find_category_by_shortcut(normalize_chord(chord))
        if category is None:
            return ShortcutOutcome.IGNORED
        outcome = self._toggle(category.id)
        logger.debug(f"Shortcut {chord} -> {category.id}: {outcome.value}")
        return outcome

    def toggle_default(self) -> ShortcutOutcome:
        """Toolbar/tray toggle for the default (or first) category."""
        if not self.document.settings.is_enabled:
            return ShortcutOutcome.IGNORED
        category = self.document.default_category()
        if category is None:
            return ShortcutOutcome.IGNORED
        return self._toggle(category.id)

    # --- Category switching and document sync ---

    def switch_category(self, window_category_id: str, target_category_id: str) -> Optional[str]:
        """
        Shows another category in an existing window. The target takes over
        the window's geometry. An already open target is focused instead.
        """
        source = self._handles.get(window_category_id)
        target = self.document.get_category(target_category_id)
        if source is None or target is None:
            return None
        if window_category_id == target_category_id:
            return window_category_id
        if target_category_id in self._handles:
            self.focus(target_category_id)
            return target_category_id

        self._store_rect(target, source.rect)
        self.open(target_category_id)
        self.close(window_category_id)
        return target_category_id

    def restore_open_windows(self) -> List[str]:
        """Re-opens every window that was open when the application last ran."""
        restored = [c.id for c in self.document.categories if c.window_state.is_open]
        for cid in restored:
            self.open(cid)
        if restored:
            logger.info(f"Restored {len(restored)} open windows")
        return restored

    def sync_with_document(self) -> List[str]:
        """Drops windows whose category has disappeared from the document."""
        gone = [cid for cid in self._handles if self.document.get_category(cid) is None]
        lost_focus = False
        for cid in gone:
            handle = self._handles.pop(cid)
            lost_focus = lost_focus or handle.focused
            self.window_closed.emit(cid)
        if lost_focus and self._handles:
            successor = max(self._handles.values(), key=lambda h: h.focus_stamp)
            self.focus(successor.category_id)
        return gone
