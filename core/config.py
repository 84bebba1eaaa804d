"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/config.py
Version:        1.0.0
Description:    Application-level options (logging, save debounce, headless
                viewport) kept in QSettings, plus the XDG directories the
                notebook file, backups and the log file live in. The notebook
                document itself is not stored here.
------------------------------------------------------------------------------
"""

import json
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional, Tuple

from PyQt6.QtCore import QSettings, QStandardPaths

from core.logger import COMPONENTS


class Option(NamedTuple):
    group: str
    key: str
    default: Any


class AppConfig:
    """
    QSettings facade. The first instance created with a profile makes that
    profile active for every later AppConfig() in the process, so 'dev' runs
    never touch the real notebook.
    """

    KEY_LOG_LEVEL: str = "log_level"
    KEY_LOG_COMPONENTS: str = "log_components"
    KEY_SAVE_DEBOUNCE: str = "save_debounce_ms"
    KEY_VIEWPORT_WIDTH: str = "viewport_width"
    KEY_VIEWPORT_HEIGHT: str = "viewport_height"

    OPTIONS: Dict[str, Option] = {
        KEY_LOG_LEVEL: Option("Logging", KEY_LOG_LEVEL, "WARNING"),
        KEY_LOG_COMPONENTS: Option("Logging", KEY_LOG_COMPONENTS, "{}"),
        KEY_SAVE_DEBOUNCE: Option("Storage", KEY_SAVE_DEBOUNCE, 1000),
        KEY_VIEWPORT_WIDTH: Option("Windows", KEY_VIEWPORT_WIDTH, 1280),
        KEY_VIEWPORT_HEIGHT: Option("Windows", KEY_VIEWPORT_HEIGHT, 800),
    }

    APP_ID: str = "spellbook"
    SETTINGS_FILE: str = "spellbook.json"
    LOG_FILE: str = "app.log"
    _active_profile: Optional[str] = None

    def __init__(self, profile: Optional[str] = None) -> None:
        if profile is not None:
            AppConfig._active_profile = profile
        self.profile = AppConfig._active_profile
        self.active_id = f"{self.APP_ID}-{self.profile}" if self.profile else self.APP_ID
        self.settings = QSettings(self.active_id, self.active_id)

    # --- Directories ---

    def _location(self, kind: QStandardPaths.StandardLocation, *parts: str) -> Path:
        # Flat layout: <xdg base>/spellbook[-profile]/...
        path = Path(QStandardPaths.writableLocation(kind), self.active_id, *parts)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_config_dir(self) -> Path:
        return self._location(QStandardPaths.StandardLocation.ConfigLocation)

    def get_data_dir(self) -> Path:
        """~/.local/share/spellbook[-profile]/ on Linux."""
        return self._location(QStandardPaths.StandardLocation.GenericDataLocation)

    def get_settings_path(self) -> Path:
        """The JSON file holding the whole notebook."""
        return self.get_data_dir() / self.SETTINGS_FILE

    def get_backup_dir(self) -> Path:
        """Where the export dialog starts."""
        return self._location(QStandardPaths.StandardLocation.GenericDataLocation, "backups")

    def get_log_file_path(self) -> Path:
        return self.get_data_dir() / self.LOG_FILE

    # --- Raw access ---

    def _get_setting(self, group: str, key: str, default: Any = None) -> Any:
        path = f"{group}/{key}" if group else key
        return self.settings.value(path, default)

    def _set_setting(self, group: str, key: str, value: Any) -> None:
        if isinstance(value, str):
            value = value.strip()
        path = f"{group}/{key}" if group else key
        self.settings.setValue(path, value)

    def _get_int(self, group: str, key: str, default: int) -> int:
        # QSettings hands back strings for values read from the ini file
        try:
            return int(self._get_setting(group, key, default))
        except (TypeError, ValueError):
            return default

    def _read(self, name: str) -> Any:
        option = self.OPTIONS[name]
        if isinstance(option.default, int):
            return self._get_int(*option)
        return self._get_setting(*option)

    def _write(self, name: str, value: Any) -> None:
        option = self.OPTIONS[name]
        self._set_setting(option.group, option.key, value)

    # --- Logging ---

    def get_log_level(self) -> str:
        return str(self._read(self.KEY_LOG_LEVEL)).upper()

    def set_log_level(self, level: str) -> None:
        self._write(self.KEY_LOG_LEVEL, level.upper())

    def get_log_components(self) -> dict:
        """
        Per-component level overrides, e.g. {"migration": "DEBUG"}.
        Entries for components SpellBook does not have are dropped, as is
        anything that is not a JSON object.
        """
        try:
            data = json.loads(str(self._read(self.KEY_LOG_COMPONENTS)))
        except json.JSONDecodeError:
            return {}
        if not isinstance(data, dict):
            return {}
        return {name: str(level).upper() for name, level in data.items() if name in COMPONENTS}

    def set_log_components(self, components: dict) -> None:
        self._write(self.KEY_LOG_COMPONENTS, json.dumps(components))

    # --- Storage ---

    def get_save_debounce_ms(self) -> int:
        """Quiet period in ms before pending edits are written; never negative."""
        return max(0, self._read(self.KEY_SAVE_DEBOUNCE))

    def set_save_debounce_ms(self, interval: int) -> None:
        self._write(self.KEY_SAVE_DEBOUNCE, int(interval))

    # --- Windows ---

    def get_viewport_fallback(self) -> Tuple[int, int]:
        """Viewport assumed when no screen geometry is available (headless runs)."""
        return self._read(self.KEY_VIEWPORT_WIDTH), self._read(self.KEY_VIEWPORT_HEIGHT)

    def set_viewport_fallback(self, width: int, height: int) -> None:
        self._write(self.KEY_VIEWPORT_WIDTH, int(width))
        self._write(self.KEY_VIEWPORT_HEIGHT, int(height))
