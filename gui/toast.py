"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           gui/toast.py
Version:        1.0.0
Description:    Non-blocking notification overlay used to report refused
                operations and import/export results.
------------------------------------------------------------------------------
"""

from PyQt6.QtCore import QPropertyAnimation, Qt, QTimer
from PyQt6.QtWidgets import QGraphicsOpacityEffect, QLabel, QWidget

from core.models.types import NotifyLevel

LEVEL_COLORS = {
    NotifyLevel.INFO: "#3b82f6",
    NotifyLevel.SUCCESS: "#22c55e",
    NotifyLevel.WARNING: "#f59e0b",
    NotifyLevel.ERROR: "#ef4444",
}


class ToastOverlay(QLabel):
    """
    Floating notification overlay for non-intrusive user feedback.
    """
    DISPLAY_MS = 2500

    def __init__(self, parent: QWidget) -> None:
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setWordWrap(True)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.hide()

        self._opacity = QGraphicsOpacityEffect(self)
        self.setGraphicsEffect(self._opacity)
        self._fade_anim = QPropertyAnimation(self._opacity, b"opacity", self)
        self._fade_anim.setDuration(400)
        self._fade_anim.setStartValue(1.0)
        self._fade_anim.setEndValue(0.0)
        self._fade_anim.finished.connect(self.hide)

        self._hide_timer = QTimer(self)
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self._fade_anim.start)

    def show_message(self, text: str, level: NotifyLevel = NotifyLevel.INFO) -> None:
        """
        Displays a temporary message at the bottom of the parent widget.

        Args:
            text: The message to display.
            level: Severity, selects the accent colour.
        """
        self._fade_anim.stop()
        self._opacity.setOpacity(1.0)
        self.setStyleSheet(f"""
            background: rgba(20, 20, 28, 230);
            color: white;
            border-left: 4px solid {LEVEL_COLORS.get(level, LEVEL_COLORS[NotifyLevel.INFO])};
            border-radius: 6px;
            padding: 6px 10px;
        """)
        self.setText(text)

        parent = self.parentWidget()
        width = min(320, max(160, parent.width() - 40)) if parent else 240
        self.setFixedWidth(width)
        self.adjustSize()
        if parent is not None:
            self.move((parent.width() - self.width()) // 2, parent.height() - self.height() - 24)
        self.show()
        self.raise_()
        self._hide_timer.start(self.DISPLAY_MS)
