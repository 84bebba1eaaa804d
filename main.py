"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           main.py
Version:        1.0.0
Description:    Application entry point. Initializes the Qt environment and
                logging, loads and migrates the persisted document, wires the
                session manager, persistence and controller together and
                restores the windows that were open on the last run.
------------------------------------------------------------------------------
"""

import argparse
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication, QTimer
from PyQt6.QtGui import QGuiApplication, QIcon
from PyQt6.QtWidgets import QApplication

from core.config import AppConfig
from core.controller import SpellBookController
from core.document import DocumentModel
from core.layout import Viewport
from core.logger import get_logger, setup_logging
from core.persistence import DebouncedSaver, SettingsStore
from core.session import SessionManager
from gui.window_host import WindowHost


def detect_viewport(app_config: AppConfig) -> Viewport:
    """Available geometry of the primary screen, or the configured fallback."""
    screen = QGuiApplication.primaryScreen()
    if screen is not None:
        geometry = screen.availableGeometry()
        if geometry.width() > 0 and geometry.height() > 0:
            return Viewport(width=geometry.width(), height=geometry.height())
    width, height = app_config.get_viewport_fallback()
    return Viewport(width=width, height=height)


def main() -> None:
    """
    SpellBook Entry Point.
    Initializes infrastructure and launches the GUI.
    """
    parser = argparse.ArgumentParser(description="SpellBook - Floating Markdown Notebook")
    parser.add_argument("-P", "--profile", type=str, help="Application profile for isolation (e.g. 'dev')")
    parser.add_argument("--open-default", action="store_true", help="Open the default category on start")
    args, unknown = parser.parse_known_args()

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    app_id = "spellbook"
    if args.profile:
        app_id = f"spellbook-{args.profile}"
    QCoreApplication.setApplicationName(app_id)

    icon_path = Path(__file__).resolve().parent / "resources" / "icon.png"
    icon = QIcon(str(icon_path)) if icon_path.exists() else QIcon()
    app.setWindowIcon(icon)

    app_config = AppConfig(profile=args.profile)

    setup_logging(
        level=app_config.get_log_level(),
        log_file=str(app_config.get_log_file_path()),
        component_levels=app_config.get_log_components()
    )
    logger = get_logger("core")
    logger.info(f"SpellBook started (Profile: {args.profile or 'default'})")

    # 1. Load + migrate the document
    store = SettingsStore(app_config.get_settings_path())
    document = DocumentModel.from_blob(store.load())

    # 2. Persistence and session
    saver = DebouncedSaver(store, document.to_blob, interval_ms=app_config.get_save_debounce_ms())
    session = SessionManager(document, detect_viewport(app_config), on_commit=saver.mark_dirty)
    controller = SpellBookController(document, session, saver=saver)

    # Persist whatever the migration changed
    saver.mark_dirty()

    # 3. GUI
    host = WindowHost(controller, backup_dir=app_config.get_backup_dir())
    host.install_tray(icon)

    screen = QGuiApplication.primaryScreen()
    if screen is not None:
        screen.availableGeometryChanged.connect(
            lambda rect: session.set_viewport(rect.width(), rect.height()))

    restored = session.restore_open_windows()
    if not restored and (args.open_default or host.tray is None):
        session.toggle_default()

    if host.tray is None:
        # Without a tray there is no way back once the last window is gone
        session.window_closed.connect(
            lambda _cid: QTimer.singleShot(0, lambda: session.open_ids or app.quit()))

    def _shutdown() -> None:
        host.shutdown()
        saver.flush()
        logger.info("SpellBook stopped")

    app.aboutToQuit.connect(_shutdown)

    # 4. Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
