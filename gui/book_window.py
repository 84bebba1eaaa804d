"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           gui/book_window.py
Version:        1.0.0
Description:    Floating window showing one category: header bar (drag,
                lock, fullscreen, close), entry sidebar, rendered page view
                with pagination controls and a markdown editor with a
                formatting toolbar. All user intents are reported to the
                controller as ViewEvents.
------------------------------------------------------------------------------
"""

from pathlib import Path
from typing import Any, Optional, Set

from PyQt6.QtCore import QEvent, QModelIndex, QPoint, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QCloseEvent, QFont, QMouseEvent, QResizeEvent, QTextCursor
from PyQt6.QtWidgets import (
    QAbstractItemView, QComboBox, QFileDialog, QFrame, QHBoxLayout, QInputDialog,
    QLabel, QListWidget, QListWidgetItem, QMenu, QPlainTextEdit, QPushButton,
    QSizeGrip, QSplitter, QStackedWidget, QTextBrowser, QVBoxLayout, QWidget
)

from core.commands import ViewCommand, ViewEvent
from core.controller import SpellBookController
from core.document import ContentTicket
from core.errors import StaleReference
from core.layout import Rect
from core.logger import get_logger
from core.models.document import Category
from core.rendering import MarkupRenderer
from core.utils.formatting import apply_heading, apply_inline_format, apply_line_format
from gui.workers import RenderWorker

logger = get_logger("gui")

RESIZE_COMMIT_MS = 300
BASE_FONT_PT = 10


class HeaderBar(QFrame):
    """Window title bar; reports drag gestures in global coordinates."""
    drag_started = pyqtSignal(QPoint)
    drag_moved = pyqtSignal(QPoint)
    drag_finished = pyqtSignal()

    def __init__(self, parent: QWidget) -> None:
        super().__init__(parent)
        self._dragging = False

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self._dragging = True
            self.drag_started.emit(event.globalPosition().toPoint())
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if self._dragging:
            self.drag_moved.emit(event.globalPosition().toPoint())
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if self._dragging and event.button() == Qt.MouseButton.LeftButton:
            self._dragging = False
            self.drag_finished.emit()
        super().mouseReleaseEvent(event)


class PageView(QTextBrowser):
    """Read-only page display; a double click switches the window to the editor."""
    double_clicked = pyqtSignal()

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        self.double_clicked.emit()
        super().mouseDoubleClickEvent(event)


class BookWindow(QWidget):
    """
    View of a single category. Holds no document state of its own: every
    refresh() re-reads the category from the document model.
    """

    def __init__(
        self,
        category_id: str,
        controller: SpellBookController,
        renderer: MarkupRenderer,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent, Qt.WindowType.Tool | Qt.WindowType.FramelessWindowHint)
        self.category_id = category_id
        self.controller = controller
        self.renderer = renderer

        self._workers: Set[RenderWorker] = set()
        self._applying_geometry = False
        self._closing_from_session = False
        self._rendered_html = ""

        self._resize_timer = QTimer(self)
        self._resize_timer.setSingleShot(True)
        self._resize_timer.setInterval(RESIZE_COMMIT_MS)
        self._resize_timer.timeout.connect(self._commit_resize)

        self._init_ui()
        self.refresh()

    # --- Helpers ---

    @property
    def document(self):
        return self.controller.document

    def category(self) -> Optional[Category]:
        return self.document.get_category(self.category_id)

    def send(self, command: ViewCommand, **payload: Any) -> Any:
        return self.controller.dispatch(ViewEvent(command=command, category_id=self.category_id, payload=payload))

    # --- UI ---

    def _init_ui(self) -> None:
        self.setObjectName("bookWindow")
        self.setMinimumSize(300, 200)
        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)

        # Header
        self.header = HeaderBar(self)
        self.header.setObjectName("bookHeader")
        header_layout = QHBoxLayout(self.header)
        header_layout.setContentsMargins(8, 4, 4, 4)

        self.title_label = QLabel()
        self.title_label.setObjectName("bookTitle")
        self.title_label.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.title_label.customContextMenuRequested.connect(self._show_category_menu)
        header_layout.addWidget(self.title_label, 1)

        self.btn_lock = QPushButton()
        self.btn_lock.setCheckable(True)
        self.btn_lock.setToolTip(self.tr("Lock window position"))
        self.btn_lock.clicked.connect(self._toggle_lock)
        header_layout.addWidget(self.btn_lock)

        self.btn_fullscreen = QPushButton("⛶")
        self.btn_fullscreen.setToolTip(self.tr("Toggle fullscreen"))
        self.btn_fullscreen.clicked.connect(lambda: self.send(ViewCommand.TOGGLE_FULLSCREEN))
        header_layout.addWidget(self.btn_fullscreen)

        self.btn_close = QPushButton("✕")
        self.btn_close.setToolTip(self.tr("Close"))
        self.btn_close.clicked.connect(lambda: self.send(ViewCommand.CLOSE))
        header_layout.addWidget(self.btn_close)

        self.header.drag_started.connect(lambda p: self.send(ViewCommand.DRAG_START, x=p.x(), y=p.y()))
        self.header.drag_moved.connect(lambda p: self.send(ViewCommand.DRAG_MOVE, x=p.x(), y=p.y()))
        self.header.drag_finished.connect(lambda: self.send(ViewCommand.DRAG_END))
        root.addWidget(self.header)

        # Body: sidebar | content
        self.splitter = QSplitter(Qt.Orientation.Horizontal, self)
        self.splitter.splitterMoved.connect(self._on_splitter_moved)

        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        sidebar_layout.setContentsMargins(4, 4, 4, 4)
        self.entry_list = QListWidget()
        self.entry_list.setDragDropMode(QAbstractItemView.DragDropMode.InternalMove)
        self.entry_list.itemClicked.connect(self._on_entry_clicked)
        self.entry_list.model().rowsMoved.connect(self._on_entries_moved)
        self.entry_list.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.entry_list.customContextMenuRequested.connect(self._show_entry_menu)
        sidebar_layout.addWidget(self.entry_list)
        self.btn_add_entry = QPushButton(self.tr("+ Entry"))
        self.btn_add_entry.clicked.connect(lambda: self.send(ViewCommand.ADD_ENTRY))
        sidebar_layout.addWidget(self.btn_add_entry)
        self.splitter.addWidget(sidebar)

        self.content = QFrame()
        self.content.setObjectName("bookContent")
        content_layout = QVBoxLayout(self.content)
        content_layout.setContentsMargins(4, 4, 4, 4)

        self.stack = QStackedWidget()
        self.viewer = PageView()
        self.viewer.setOpenExternalLinks(True)
        self.viewer.double_clicked.connect(self.enter_edit_mode)
        self.stack.addWidget(self.viewer)
        self.stack.addWidget(self._build_editor())
        content_layout.addWidget(self.stack, 1)

        # Page navigation
        self.nav_bar = QWidget()
        nav = QHBoxLayout(self.nav_bar)
        nav.setContentsMargins(0, 0, 0, 0)
        self.btn_prev = QPushButton("‹")
        self.btn_prev.clicked.connect(lambda: self.send(ViewCommand.PREV_PAGE))
        self.page_label = QLabel()
        self.page_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.btn_next = QPushButton("›")
        self.btn_next.clicked.connect(lambda: self.send(ViewCommand.NEXT_PAGE))
        self.btn_add_page = QPushButton("+")
        self.btn_add_page.setToolTip(self.tr("Add page"))
        self.btn_add_page.clicked.connect(lambda: self.send(ViewCommand.ADD_PAGE))
        self.btn_delete_page = QPushButton("🗑")
        self.btn_delete_page.setToolTip(self.tr("Delete page"))
        self.btn_delete_page.clicked.connect(lambda: self.send(ViewCommand.DELETE_PAGE))
        self.btn_edit = QPushButton("✎")
        self.btn_edit.setToolTip(self.tr("Edit page"))
        self.btn_edit.clicked.connect(self.enter_edit_mode)
        for w in (self.btn_prev, self.page_label, self.btn_next, self.btn_add_page,
                  self.btn_delete_page, self.btn_edit):
            nav.addWidget(w)
        content_layout.addWidget(self.nav_bar)

        grip_row = QHBoxLayout()
        grip_row.addStretch()
        grip_row.addWidget(QSizeGrip(self))
        content_layout.addLayout(grip_row)

        self.splitter.addWidget(self.content)
        self.splitter.setStretchFactor(1, 1)
        root.addWidget(self.splitter, 1)

    def _build_editor(self) -> QWidget:
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)

        toolbar = QHBoxLayout()
        for fmt, label in (("bold", "B"), ("italic", "I"), ("strikethrough", "S"),
                           ("link", "🔗"), ("image", "🖼"), ("code", "<>")):
            btn = QPushButton(label)
            btn.setToolTip(self.tr(fmt.capitalize()))
            btn.clicked.connect(lambda checked=False, f=fmt: self._apply_inline(f))
            toolbar.addWidget(btn)
        for fmt, label in (("quote", "❝"), ("bullet", "•"), ("number", "1."), ("task", "☐")):
            btn = QPushButton(label)
            btn.setToolTip(self.tr(fmt.capitalize()))
            btn.clicked.connect(lambda checked=False, f=fmt: self._apply_line(f))
            toolbar.addWidget(btn)

        self.heading_combo = QComboBox()
        self.heading_combo.addItem(self.tr("Heading"), "")
        for level in ("h1", "h2", "h3"):
            self.heading_combo.addItem(level.upper(), level)
        self.heading_combo.activated.connect(self._apply_heading)
        toolbar.addWidget(self.heading_combo)
        toolbar.addStretch()

        btn_cancel = QPushButton(self.tr("Cancel"))
        btn_cancel.clicked.connect(self.leave_edit_mode)
        toolbar.addWidget(btn_cancel)
        btn_save = QPushButton(self.tr("Save"))
        btn_save.clicked.connect(self.save_edit)
        toolbar.addWidget(btn_save)
        layout.addLayout(toolbar)

        self.editor = QPlainTextEdit()
        self.editor.setPlaceholderText(self.tr("Type your markdown here..."))
        layout.addWidget(self.editor, 1)
        return container

    # --- Refresh ---

    def refresh(self) -> None:
        """Re-reads the category and updates every widget."""
        category = self.category()
        if category is None:
            return
        settings = self.document.settings
        state = category.window_state

        self.title_label.setText(category.name)
        self._update_lock_button()
        on_top = bool(self.windowFlags() & Qt.WindowType.WindowStaysOnTopHint)
        if on_top != settings.always_on_top:
            # Changing window flags hides a visible window
            visible = self.isVisible()
            self.setWindowFlag(Qt.WindowType.WindowStaysOnTopHint, settings.always_on_top)
            if visible:
                self.show()

        self.entry_list.blockSignals(True)
        self.entry_list.clear()
        active = self.document.active_entry(category)
        for entry in category.entries:
            item = QListWidgetItem(entry.name)
            item.setData(Qt.ItemDataRole.UserRole, entry.id)
            self.entry_list.addItem(item)
            if active is not None and entry.id == active.id:
                self.entry_list.setCurrentItem(item)
        self.entry_list.blockSignals(False)

        sizes = self.splitter.sizes()
        if len(sizes) == 2 and sum(sizes) > state.sidebar_width:
            self.splitter.setSizes([state.sidebar_width, sum(sizes) - state.sidebar_width])

        page_count = len(active.pages) if active else 0
        index = state.active_page_index
        self.nav_bar.setVisible(settings.book_mode_enabled)
        self.page_label.setText(f"{index + 1} / {page_count}" if page_count else "-")
        self.btn_prev.setEnabled(index > 0)
        self.btn_next.setEnabled(index < page_count - 1)
        self.btn_delete_page.setEnabled(page_count > 1)
        self.btn_edit.setEnabled(active is not None)

        font = QFont(self.viewer.font())
        font.setPointSizeF(BASE_FONT_PT * settings.font_scale)
        self.viewer.setFont(font)
        self._apply_background(category)
        self.request_render()

    def _toggle_lock(self) -> None:
        self.send(ViewCommand.TOGGLE_LOCK)
        self._update_lock_button()

    def _update_lock_button(self) -> None:
        category = self.category()
        if category is None:
            return
        locked = self.controller.session.is_locked(self.category_id)
        self.btn_lock.setChecked(category.window_state.is_locked)
        self.btn_lock.setText("🔒" if locked else "🔓")

    def _apply_background(self, category: Category) -> None:
        background = self.document.resolve_background(category)
        if background is not None and Path(background.url).is_file():
            url = Path(background.url).as_posix()
            self.content.setStyleSheet(
                f"#bookContent {{ border-image: url({url}) 0 0 0 0 stretch stretch; }}")
        else:
            self.content.setStyleSheet("")

    # --- Rendering ---

    def request_render(self) -> None:
        category = self.category()
        if category is None:
            return
        page = self.document.active_page(category)
        if page is None:
            self.viewer.setHtml("")
            return
        ticket = self.document.content_ticket(self.category_id)
        worker = RenderWorker(self.renderer, ticket, ticket.content)
        worker.finished_render.connect(self._on_rendered)
        worker.finished.connect(lambda w=worker: self._workers.discard(w))
        self._workers.add(worker)
        worker.start()

    def _on_rendered(self, ticket: ContentTicket, html: str) -> None:
        try:
            self.document.resolve_ticket(ticket)
        except StaleReference as e:
            logger.debug(f"Dropped stale render for {self.category_id}: {e}")
            return
        self._rendered_html = html
        self.viewer.setHtml(html)

    def wait_for_renders(self, timeout_ms: int = 2000) -> None:
        for worker in list(self._workers):
            worker.wait(timeout_ms)

    # --- Editing ---

    def enter_edit_mode(self) -> None:
        category = self.category()
        page = self.document.active_page(category) if category else None
        if page is None:
            return
        self.editor.setPlainText(page.content)
        self.stack.setCurrentIndex(1)
        self.editor.setFocus()

    def leave_edit_mode(self) -> None:
        self.stack.setCurrentIndex(0)

    def is_editing(self) -> bool:
        return self.stack.currentIndex() == 1

    def save_edit(self) -> None:
        self.send(ViewCommand.EDIT_PAGE, content=self.editor.toPlainText())
        self.leave_edit_mode()

    def _apply_result(self, result) -> None:
        if result is None:
            return
        self.editor.setPlainText(result.text)
        cursor = self.editor.textCursor()
        cursor.setPosition(result.selection_start)
        cursor.setPosition(result.selection_end, QTextCursor.MoveMode.KeepAnchor)
        self.editor.setTextCursor(cursor)
        self.editor.setFocus()

    def _selection(self):
        cursor = self.editor.textCursor()
        return self.editor.toPlainText(), cursor.selectionStart(), cursor.selectionEnd()

    def _apply_inline(self, fmt: str) -> None:
        self._apply_result(apply_inline_format(*self._selection(), fmt))

    def _apply_line(self, fmt: str) -> None:
        self._apply_result(apply_line_format(*self._selection(), fmt))

    def _apply_heading(self, index: int) -> None:
        level = self.heading_combo.itemData(index)
        self.heading_combo.setCurrentIndex(0)
        if level:
            text, start, _ = self._selection()
            self._apply_result(apply_heading(text, start, level))

    # --- Sidebar ---

    def _on_entry_clicked(self, item: QListWidgetItem) -> None:
        self.send(ViewCommand.SELECT_ENTRY, entry_id=item.data(Qt.ItemDataRole.UserRole))

    def _on_entries_moved(self, parent: QModelIndex, start: int, end: int,
                          destination: QModelIndex, row: int) -> None:
        to_index = row - 1 if row > start else row
        self.send(ViewCommand.REORDER_ENTRY, from_index=start, to_index=to_index)

    def _on_splitter_moved(self, pos: int, index: int) -> None:
        self.send(ViewCommand.SET_SIDEBAR_WIDTH, width=self.splitter.sizes()[0])

    def _show_entry_menu(self, pos: QPoint) -> None:
        item = self.entry_list.itemAt(pos)
        if item is None:
            return
        entry_id = item.data(Qt.ItemDataRole.UserRole)
        menu = QMenu(self)
        rename_action = menu.addAction(self.tr("Rename..."))
        background_action = menu.addAction(self.tr("Set Background..."))
        move_menu = menu.addMenu(self.tr("Move to"))
        for other in self.document.categories:
            if other.id != self.category_id:
                action = move_menu.addAction(other.name)
                action.setData(other.id)
        menu.addSeparator()
        delete_action = menu.addAction(self.tr("Delete Entry"))

        chosen = menu.exec(self.entry_list.mapToGlobal(pos))
        if chosen is None:
            return
        if chosen == rename_action:
            name, ok = QInputDialog.getText(self, self.tr("Rename Entry"), self.tr("Name:"), text=item.text())
            if ok:
                self.send(ViewCommand.RENAME_ENTRY, entry_id=entry_id, name=name)
        elif chosen == background_action:
            self._choose_background(entry_id)
        elif chosen == delete_action:
            self.send(ViewCommand.DELETE_ENTRY, entry_id=entry_id)
        elif chosen.data():
            self.send(ViewCommand.MOVE_ENTRY, entry_id=entry_id, target_id=chosen.data())

    def _show_category_menu(self, pos: QPoint) -> None:
        category = self.category()
        if category is None:
            return
        menu = QMenu(self)
        rename_action = menu.addAction(self.tr("Rename Category..."))
        shortcut_action = menu.addAction(self.tr("Set Shortcut..."))
        background_action = menu.addAction(self.tr("Set Background..."))
        default_action = menu.addAction(self.tr("Use as Default"))
        switch_menu = menu.addMenu(self.tr("Switch to"))
        for other in self.document.categories:
            if other.id != self.category_id:
                action = switch_menu.addAction(other.name)
                action.setData(other.id)
        menu.addSeparator()
        new_action = menu.addAction(self.tr("New Category..."))
        delete_action = menu.addAction(self.tr("Delete Category"))

        chosen = menu.exec(self.title_label.mapToGlobal(pos))
        if chosen is None:
            return
        if chosen == rename_action:
            name, ok = QInputDialog.getText(self, self.tr("Rename Category"), self.tr("Name:"), text=category.name)
            if ok:
                self.send(ViewCommand.RENAME_CATEGORY, name=name)
        elif chosen == shortcut_action:
            chord, ok = QInputDialog.getText(self, self.tr("Shortcut"), self.tr("Chord (e.g. Ctrl+Alt+K):"),
                                             text=category.shortcut or "")
            if ok:
                self.send(ViewCommand.SET_SHORTCUT, chord=chord or None)
        elif chosen == background_action:
            self._choose_background(None)
        elif chosen == default_action:
            self.send(ViewCommand.SET_DEFAULT_CATEGORY)
        elif chosen == new_action:
            name, ok = QInputDialog.getText(self, self.tr("New Category"), self.tr("Name:"))
            if ok:
                self.send(ViewCommand.ADD_CATEGORY, name=name)
        elif chosen == delete_action:
            self.send(ViewCommand.DELETE_CATEGORY)
        elif chosen.data():
            self.send(ViewCommand.SWITCH_CATEGORY, target_id=chosen.data())

    def _choose_background(self, entry_id: Optional[str]) -> None:
        path, _ = QFileDialog.getOpenFileName(self, self.tr("Choose Background"), "",
                                              self.tr("Images (*.png *.jpg *.jpeg *.webp *.gif)"))
        if path:
            self.send(ViewCommand.SET_BACKGROUND, entry_id=entry_id, background={"url": path})

    # --- Geometry ---

    def apply_geometry(self, rect: Rect, fullscreen: bool) -> None:
        """Places the window as instructed by the session manager."""
        self._applying_geometry = True
        try:
            if fullscreen:
                self.showFullScreen()
            else:
                if self.isFullScreen():
                    self.showNormal()
                self.setGeometry(rect.left, rect.top, rect.width, rect.height)
        finally:
            self._applying_geometry = False

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        if not self._applying_geometry and not self.isFullScreen() and self.isVisible():
            self._resize_timer.start()

    def _commit_resize(self) -> None:
        if self.send(ViewCommand.RESIZE_END, width=self.width(), height=self.height()) is None:
            # Refused (locked window): snap back to the committed geometry
            handle = self.controller.session.handle(self.category_id)
            category = self.category()
            if handle is not None and category is not None:
                self.apply_geometry(handle.rect, category.window_state.is_fullscreen)

    def changeEvent(self, event) -> None:
        super().changeEvent(event)
        if event.type() == QEvent.Type.ActivationChange and self.isActiveWindow():
            self.send(ViewCommand.FOCUS)

    def close_from_session(self) -> None:
        self._closing_from_session = True
        self.wait_for_renders()
        self.close()

    def closeEvent(self, event: QCloseEvent) -> None:
        if not self._closing_from_session:
            # Window manager close: route through the session so state is persisted
            self.send(ViewCommand.CLOSE)
        super().closeEvent(event)
