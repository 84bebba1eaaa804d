"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/persistence.py
Version:        1.0.0
Description:    Persistence gateway. SettingsStore reads and atomically writes
                the JSON settings blob; DebouncedSaver coalesces many logical
                mutations into a single write after a quiet period.
------------------------------------------------------------------------------
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, Union

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from core.logger import get_logger, log_persistence_write

logger = get_logger("persistence")

DEFAULT_DEBOUNCE_MS: int = 1000


class SettingsStore:
    """File-backed storage for the settings blob."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> dict:
        """
        Reads the persisted blob.

        Returns:
            The decoded JSON value, or an empty dict when the file is missing
            or unreadable. A corrupt file is moved aside to '<name>.corrupt' so
            the next save does not destroy it.
        """
        if not self.path.exists():
            logger.info(f"No settings file at {self.path}, starting with defaults")
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            corrupt = self.path.with_name(self.path.name + ".corrupt")
            logger.error(f"Settings file {self.path} is corrupt ({e}); moving it to {corrupt.name}")
            try:
                os.replace(self.path, corrupt)
            except OSError as move_error:
                logger.error(f"Could not move corrupt settings file aside: {move_error}")
            return {}
        except OSError as e:
            logger.error(f"Cannot read settings file {self.path}: {e}")
            return {}

    def save(self, blob: dict) -> None:
        """Writes the blob atomically (temp file in the same directory, then rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(blob, indent=2, ensure_ascii=False)

        fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        log_persistence_write(str(self.path), len(data))


class DebouncedSaver(QObject):
    """
    Explicit mark-dirty/flush scheduler. Each mark_dirty() restarts a
    single-shot timer; when it fires the current blob is fetched from the
    provider and written once.
    """
    saved = pyqtSignal()
    save_failed = pyqtSignal(str)

    def __init__(
        self,
        store: SettingsStore,
        provider: Callable[[], dict],
        interval_ms: int = DEFAULT_DEBOUNCE_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.store = store
        self.provider = provider
        self._dirty = False

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.flush)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        self._dirty = True
        self._timer.start()

    def flush(self) -> bool:
        """
        Writes immediately if anything is pending (also used on shutdown).

        Returns:
            True if a write happened.
        """
        self._timer.stop()
        if not self._dirty:
            return False
        try:
            self.store.save(self.provider())
        except OSError as e:
            logger.error(f"Saving settings failed: {e}")
            self.save_failed.emit(str(e))
            return False
        self._dirty = False
        self.saved.emit()
        return True
