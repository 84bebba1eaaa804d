"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           gui/window_host.py
Version:        1.0.0
Description:    Bridges the session manager and the Qt windows. Creates and
                destroys BookWindows on session signals, applies geometry
                and stacking, listens for category shortcuts application-wide
                and offers a tray menu for global actions.
------------------------------------------------------------------------------
"""

from pathlib import Path
from typing import Dict, Optional

from PyQt6.QtCore import QEvent, QObject, Qt
from PyQt6.QtGui import QAction, QIcon, QKeyEvent, QKeySequence
from PyQt6.QtWidgets import (
    QAbstractSpinBox, QApplication, QComboBox, QFileDialog, QLineEdit, QMenu,
    QMessageBox, QPlainTextEdit, QSystemTrayIcon, QTextEdit, QWidget
)

from core.commands import ViewCommand, ViewEvent
from core.controller import SpellBookController
from core.exchange import ExchangeService
from core.logger import get_logger
from core.models.types import NotifyLevel, ShortcutOutcome
from core.rendering import MarkupRenderer
from core.shortcuts import format_chord
from gui.book_window import BookWindow
from gui.toast import ToastOverlay

logger = get_logger("gui")

# QKeyEvent.key() reports plain ints
MODIFIER_KEYS = {
    k.value for k in (
        Qt.Key.Key_Control, Qt.Key.Key_Shift, Qt.Key.Key_Alt, Qt.Key.Key_Meta,
        Qt.Key.Key_AltGr, Qt.Key.Key_CapsLock, Qt.Key.Key_unknown,
    )
}


def chord_from_key_event(event: QKeyEvent) -> Optional[str]:
    """Canonical chord for a key press, None for modifier-only presses."""
    key = event.key()
    if key in MODIFIER_KEYS:
        return None
    mods = event.modifiers()
    names = []
    if mods & Qt.KeyboardModifier.ControlModifier:
        names.append("Ctrl")
    if mods & Qt.KeyboardModifier.AltModifier:
        names.append("Alt")
    if mods & Qt.KeyboardModifier.ShiftModifier:
        names.append("Shift")
    if mods & Qt.KeyboardModifier.MetaModifier:
        names.append("Meta")
    return format_chord(names, QKeySequence(key).toString())


def is_text_input(widget: Optional[QWidget]) -> bool:
    """True for widgets where typing must not trigger shortcuts."""
    if widget is None:
        return False
    if isinstance(widget, (QTextEdit, QPlainTextEdit)):
        return not widget.isReadOnly()
    if isinstance(widget, QLineEdit):
        return not widget.isReadOnly()
    if isinstance(widget, QComboBox):
        return widget.isEditable()
    return isinstance(widget, QAbstractSpinBox)


class WindowHost(QObject):
    """
    Owns one BookWindow per open category and keeps it in sync with the
    session manager's live state.
    """

    def __init__(
        self,
        controller: SpellBookController,
        renderer: Optional[MarkupRenderer] = None,
        backup_dir: Optional[Path] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.controller = controller
        self.session = controller.session
        self.renderer = renderer or MarkupRenderer()
        self.backup_dir = backup_dir
        self.windows: Dict[str, BookWindow] = {}
        self.tray: Optional[QSystemTrayIcon] = None

        controller.notify = self.notify

        self.session.window_opened.connect(self._on_window_opened)
        self.session.window_closed.connect(self._on_window_closed)
        self.session.window_focused.connect(self._on_window_focused)
        self.session.geometry_changed.connect(self._on_geometry_changed)
        controller.content_changed.connect(self._on_content_changed)

        app = QApplication.instance()
        if app is not None:
            app.installEventFilter(self)

    def send(self, command: ViewCommand, category_id: Optional[str] = None, **payload):
        return self.controller.dispatch(ViewEvent(command=command, category_id=category_id, payload=payload))

    # --- Session signals ---

    def _on_window_opened(self, category_id: str) -> None:
        window = BookWindow(category_id, self.controller, self.renderer)
        self.windows[category_id] = window
        self._place(category_id)
        window.show()
        logger.debug(f"BookWindow created for {category_id}")

    def _on_window_closed(self, category_id: str) -> None:
        window = self.windows.pop(category_id, None)
        if window is not None:
            window.close_from_session()
            window.deleteLater()

    def _on_window_focused(self, category_id: str) -> None:
        window = self.windows.get(category_id)
        if window is not None:
            window.raise_()

    def _on_geometry_changed(self, category_id: str) -> None:
        self._place(category_id)

    def _place(self, category_id: str) -> None:
        window = self.windows.get(category_id)
        handle = self.session.handle(category_id)
        category = self.controller.document.get_category(category_id)
        if window is None or handle is None or category is None:
            return
        window.apply_geometry(handle.rect, category.window_state.is_fullscreen)

    def _on_content_changed(self, category_id: str) -> None:
        if category_id and category_id in self.windows:
            self.windows[category_id].refresh()
            return
        for window in self.windows.values():
            window.refresh()

    # --- Notifications ---

    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None:
        focused = self.session.focused_id()
        window = self.windows.get(focused) if focused else None
        if window is not None:
            toast = window.findChild(ToastOverlay) or ToastOverlay(window)
            toast.show_message(message, level)
        elif self.tray is not None:
            icon = QSystemTrayIcon.MessageIcon.Warning if level in (NotifyLevel.WARNING, NotifyLevel.ERROR) \
                else QSystemTrayIcon.MessageIcon.Information
            self.tray.showMessage("Spell Book", message, icon, ToastOverlay.DISPLAY_MS)
        else:
            logger.info(f"Notification ({level.value}): {message}")

    # --- Shortcuts ---

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        if event.type() == QEvent.Type.KeyPress and not event.isAutoRepeat():
            chord = chord_from_key_event(event)
            if chord is not None:
                outcome = self.send(
                    ViewCommand.SHORTCUT,
                    chord=chord,
                    from_text_input=is_text_input(QApplication.focusWidget()),
                )
                if outcome is not None and outcome != ShortcutOutcome.IGNORED:
                    return True
        return super().eventFilter(obj, event)

    # --- Tray ---

    def install_tray(self, icon: QIcon) -> bool:
        """Adds a system tray entry with global actions, when the platform has a tray."""
        if not QSystemTrayIcon.isSystemTrayAvailable():
            logger.info("No system tray available")
            return False

        settings = self.controller.document.settings
        menu = QMenu()
        menu.addAction(self.tr("Toggle Spell Book"), lambda: self.send(ViewCommand.TOGGLE_DEFAULT))
        menu.addSeparator()

        for label, key in ((self.tr("Always on Top"), "always_on_top"),
                           (self.tr("Lock Layout"), "lock_layout"),
                           (self.tr("Auto-Paginate"), "auto_paginate"),
                           (self.tr("Book Mode"), "book_mode_enabled")):
            action = QAction(label, menu)
            action.setCheckable(True)
            action.setChecked(bool(getattr(settings, key)))
            action.toggled.connect(lambda checked, k=key: self.send(ViewCommand.UPDATE_SETTINGS,
                                                                    changes={k: checked}))
            menu.addAction(action)

        menu.addSeparator()
        menu.addAction(self.tr("Export Backup..."), self.export_backup)
        menu.addAction(self.tr("Import Backup..."), self.import_backup)
        menu.addAction(self.tr("Reset to Defaults..."), self.reset_settings)
        menu.addSeparator()
        menu.addAction(self.tr("Quit"), QApplication.quit)

        self.tray = QSystemTrayIcon(icon, self)
        self.tray.setContextMenu(menu)
        self.tray.activated.connect(self._on_tray_activated)
        self.tray.show()
        self._tray_menu = menu
        return True

    def _on_tray_activated(self, reason: QSystemTrayIcon.ActivationReason) -> None:
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            self.send(ViewCommand.TOGGLE_DEFAULT)

    def export_backup(self) -> None:
        start = str((self.backup_dir or Path.home()) / ExchangeService.backup_filename())
        path, _ = QFileDialog.getSaveFileName(None, self.tr("Export Backup"), start, self.tr("JSON (*.json)"))
        if path:
            self.send(ViewCommand.EXPORT_BACKUP, path=path)

    def import_backup(self) -> None:
        start = str(self.backup_dir or Path.home())
        path, _ = QFileDialog.getOpenFileName(None, self.tr("Import Backup"), start, self.tr("JSON (*.json)"))
        if path:
            self.send(ViewCommand.IMPORT_BACKUP, path=path)

    def reset_settings(self) -> None:
        reply = QMessageBox.question(
            None, self.tr("Reset Spell Book"),
            self.tr("Reset all settings and delete every category?\nThis cannot be undone."),
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.send(ViewCommand.RESET_SETTINGS)

    def shutdown(self) -> None:
        """Closes all windows without touching the persisted open state."""
        app = QApplication.instance()
        if app is not None:
            app.removeEventFilter(self)
        for window in list(self.windows.values()):
            window.close_from_session()
        self.windows.clear()
