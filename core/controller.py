"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/controller.py
Version:        1.0.0
Description:    Routes ViewEvents to the session manager and document model
                through a transition table, schedules persistence after every
                mutation and turns refused operations into user notifications.
------------------------------------------------------------------------------
"""

from typing import Any, Callable, Dict, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal
from pydantic import ValidationError

from core.commands import ViewCommand, ViewEvent
from core.document import DocumentModel
from core.errors import InvalidImport, PreconditionFailed, StaleReference
from core.exchange import ExchangeService
from core.logger import get_logger
from core.models.document import Background
from core.models.types import NotifyLevel
from core.persistence import DebouncedSaver
from core.session import SessionManager

logger = get_logger("controller")

NotifyCallback = Callable[[str, NotifyLevel], None]
Handler = Callable[[ViewEvent], Any]

# Settings whose change requires the open windows to be re-paginated
PAGINATION_SETTINGS = {"auto_paginate", "paginate_limit"}


class SpellBookController(QObject):
    """
    The single entry point of the view layer into the core.

    Handlers marked as persisting cause a mark_dirty() after they succeed.
    Session operations that commit geometry do so themselves through the
    session's commit callback.
    """
    # Category id whose content changed, "" for global changes
    content_changed = pyqtSignal(str)

    def __init__(
        self,
        document: DocumentModel,
        session: SessionManager,
        saver: Optional[DebouncedSaver] = None,
        exchange: Optional[ExchangeService] = None,
        notify: Optional[NotifyCallback] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.document = document
        self.session = session
        self.saver = saver
        self.exchange = exchange or ExchangeService()
        self.notify = notify

        s, d = self.session, self.document
        self._table: Dict[ViewCommand, Tuple[Handler, bool]] = {
            # Windows (the session commits its own changes)
            ViewCommand.OPEN: (lambda e: s.open(e.category_id), False),
            ViewCommand.CLOSE: (lambda e: s.close(e.category_id), False),
            ViewCommand.FOCUS: (lambda e: s.focus(e.category_id), False),
            ViewCommand.DRAG_START: (lambda e: s.drag_start(e.category_id, e.arg("x"), e.arg("y")), False),
            ViewCommand.DRAG_MOVE: (lambda e: s.drag_move(e.category_id, e.arg("x"), e.arg("y")), False),
            ViewCommand.DRAG_END: (lambda e: s.drag_end(e.category_id), False),
            ViewCommand.RESIZE_END: (lambda e: s.resize_end(e.category_id, e.arg("width"), e.arg("height")), False),
            ViewCommand.TOGGLE_LOCK: (lambda e: s.toggle_lock(e.category_id), False),
            ViewCommand.TOGGLE_FULLSCREEN: (lambda e: s.toggle_fullscreen(e.category_id), False),
            ViewCommand.SET_SIDEBAR_WIDTH: (lambda e: s.set_sidebar_width(e.category_id, e.arg("width")), False),
            ViewCommand.SWITCH_CATEGORY: (lambda e: s.switch_category(e.category_id, e.arg("target_id")), False),
            ViewCommand.SHORTCUT: (
                lambda e: s.handle_shortcut(e.arg("chord"), e.arg("from_text_input", False)), False),
            ViewCommand.TOGGLE_DEFAULT: (lambda e: s.toggle_default(), False),
            ViewCommand.SET_VIEWPORT: (lambda e: s.set_viewport(e.arg("width"), e.arg("height")), False),

            # Entries
            ViewCommand.ADD_ENTRY: (lambda e: d.add_entry(e.category_id, e.arg("name")), True),
            ViewCommand.DELETE_ENTRY: (lambda e: d.delete_entry(e.category_id, e.arg("entry_id")), True),
            ViewCommand.MOVE_ENTRY: (self._move_entry, True),
            ViewCommand.REORDER_ENTRY: (
                lambda e: d.reorder_entry(e.category_id, e.arg("from_index"), e.arg("to_index")), True),
            ViewCommand.SELECT_ENTRY: (lambda e: d.select_entry(e.category_id, e.arg("entry_id")), True),
            ViewCommand.RENAME_ENTRY: (
                lambda e: d.rename_entry(e.category_id, e.arg("entry_id"), e.arg("name")), True),

            # Pages
            ViewCommand.ADD_PAGE: (lambda e: d.add_page(e.category_id), True),
            ViewCommand.DELETE_PAGE: (lambda e: d.delete_page(e.category_id), True),
            ViewCommand.NEXT_PAGE: (lambda e: d.next_page(e.category_id), True),
            ViewCommand.PREV_PAGE: (lambda e: d.prev_page(e.category_id), True),
            ViewCommand.EDIT_PAGE: (lambda e: d.edit_page(e.category_id, e.arg("content", "")), True),

            # Categories
            ViewCommand.ADD_CATEGORY: (lambda e: d.add_category(e.arg("name"), e.arg("icon")), True),
            ViewCommand.DELETE_CATEGORY: (self._delete_category, True),
            ViewCommand.REORDER_CATEGORY: (
                lambda e: d.reorder_category(e.arg("from_index"), e.arg("to_index")), True),
            ViewCommand.RENAME_CATEGORY: (lambda e: d.rename_category(e.category_id, e.arg("name")), True),
            ViewCommand.SET_BACKGROUND: (self._set_background, True),
            ViewCommand.SET_ICON: (lambda e: d.set_category_icon(e.category_id, e.arg("icon")), True),
            ViewCommand.SET_SHORTCUT: (lambda e: d.set_shortcut(e.category_id, e.arg("chord")), True),
            ViewCommand.SET_DEFAULT_CATEGORY: (lambda e: d.set_default_category(e.category_id), True),

            # Global
            ViewCommand.UPDATE_SETTINGS: (self._update_settings, True),
            ViewCommand.RESET_SETTINGS: (self._reset, True),
            ViewCommand.IMPORT_BACKUP: (self._import_backup, True),
            ViewCommand.EXPORT_BACKUP: (self._export_backup, False),
        }

    def _notify(self, message: str, level: NotifyLevel) -> None:
        if self.notify is not None:
            self.notify(message, level)

    def dispatch(self, event: ViewEvent) -> Any:
        """
        Executes one view event.

        Returns:
            The handler's result, or None if the event was refused or
            referenced something that no longer exists.
        """
        entry = self._table.get(event.command)
        if entry is None:
            logger.warning(f"No handler for {event.command}")
            return None
        handler, persists = entry

        try:
            result = handler(event)
        except (PreconditionFailed, InvalidImport) as e:
            logger.warning(f"{event.command.value} refused: {e}")
            level = NotifyLevel.ERROR if isinstance(e, InvalidImport) else NotifyLevel.WARNING
            self._notify(str(e), level)
            return None
        except StaleReference as e:
            logger.debug(f"{event.command.value} dropped: {e}")
            return None

        if persists:
            if self.saver is not None:
                self.saver.mark_dirty()
            self.content_changed.emit(event.category_id or "")
        return result

    # --- Handlers with side effects on both document and session ---

    def _move_entry(self, event: ViewEvent) -> Any:
        entry = self.document.move_entry(event.category_id, event.arg("entry_id"), event.arg("target_id"))
        self.content_changed.emit(event.arg("target_id"))
        return entry

    def _delete_category(self, event: ViewEvent) -> Any:
        category = self.document.delete_category(event.category_id)
        self.session.sync_with_document()
        return category

    def _set_background(self, event: ViewEvent) -> Any:
        raw = event.arg("background")
        try:
            background = Background.model_validate(raw) if raw else None
        except ValidationError as e:
            raise PreconditionFailed(f"Invalid background: {e.errors()[0].get('msg')}") from e

        entry_id = event.arg("entry_id")
        if entry_id:
            self.document.set_entry_background(event.category_id, entry_id, background)
        else:
            self.document.set_category_background(event.category_id, background)
        return background

    def _update_settings(self, event: ViewEvent) -> Any:
        changes = dict(event.arg("changes") or {})
        self.document.update_settings(**changes)

        if "always_on_top" in changes:
            self.session.refresh_z_order()
        if "boundaries" in changes:
            self.session.set_viewport(self.session.viewport.width, self.session.viewport.height)
        if PAGINATION_SETTINGS & changes.keys():
            changed = self.document.apply_auto_pagination(self.session.open_ids)
            for cid in changed:
                self.content_changed.emit(cid)
        return changes

    def _reset(self, event: ViewEvent) -> Any:
        for cid in self.session.open_ids:
            self.session.close(cid)
        self.document.reset()
        self.session.sync_with_document()
        self._notify("Settings reset to defaults.", NotifyLevel.INFO)
        return True

    def _import_backup(self, event: ViewEvent) -> Any:
        count = self.exchange.import_into(self.document, event.arg("path"))
        self.session.sync_with_document()
        self._notify(f"Imported {count} category(s)", NotifyLevel.SUCCESS)
        return count

    def _export_backup(self, event: ViewEvent) -> Any:
        try:
            target = self.exchange.save_to_file(self.document, event.arg("path"))
        except OSError as e:
            raise PreconditionFailed(f"Export failed: {e}") from e
        self._notify(f"Exported to {target.name}", NotifyLevel.SUCCESS)
        return target
