"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/commands.py
Version:        1.0.0
Description:    Typed view events. The view layer reports every user intent as
                a ViewEvent carrying one ViewCommand and its arguments.
------------------------------------------------------------------------------
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ViewCommand(str, Enum):
    # Windows
    OPEN = "open"
    CLOSE = "close"
    FOCUS = "focus"
    DRAG_START = "drag_start"
    DRAG_MOVE = "drag_move"
    DRAG_END = "drag_end"
    RESIZE_END = "resize_end"
    TOGGLE_LOCK = "toggle_lock"
    TOGGLE_FULLSCREEN = "toggle_fullscreen"
    SET_SIDEBAR_WIDTH = "set_sidebar_width"
    SWITCH_CATEGORY = "switch_category"
    SHORTCUT = "shortcut"
    TOGGLE_DEFAULT = "toggle_default"
    SET_VIEWPORT = "set_viewport"

    # Entries
    ADD_ENTRY = "add_entry"
    DELETE_ENTRY = "delete_entry"
    MOVE_ENTRY = "move_entry"
    REORDER_ENTRY = "reorder_entry"
    SELECT_ENTRY = "select_entry"
    RENAME_ENTRY = "rename_entry"

    # Pages
    ADD_PAGE = "add_page"
    DELETE_PAGE = "delete_page"
    NEXT_PAGE = "next_page"
    PREV_PAGE = "prev_page"
    EDIT_PAGE = "edit_page"

    # Categories
    ADD_CATEGORY = "add_category"
    DELETE_CATEGORY = "delete_category"
    REORDER_CATEGORY = "reorder_category"
    RENAME_CATEGORY = "rename_category"
    SET_BACKGROUND = "set_background"
    SET_ICON = "set_icon"
    SET_SHORTCUT = "set_shortcut"
    SET_DEFAULT_CATEGORY = "set_default_category"

    # Global
    UPDATE_SETTINGS = "update_settings"
    RESET_SETTINGS = "reset_settings"
    IMPORT_BACKUP = "import_backup"
    EXPORT_BACKUP = "export_backup"


class ViewEvent(BaseModel):
    """One user intent. `category_id` names the window the event came from."""
    command: ViewCommand
    category_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    def arg(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)
