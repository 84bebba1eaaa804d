import os

# Must be set before the first QApplication is created
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtCore import QLocale, QSettings, QStandardPaths

from core.config import AppConfig
from core.document import DocumentModel
from core.layout import Viewport
from core.session import SessionManager


@pytest.fixture(autouse=True)
def force_english_locale():
    """Ensures tests run in English locale to avoid label mismatches."""
    original_locale = QLocale.system()
    QLocale.setDefault(QLocale(QLocale.Language.English, QLocale.Country.UnitedStates))
    yield
    QLocale.setDefault(original_locale)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Redirects QSettings and the XDG locations into the test's temp dir."""
    QStandardPaths.setTestModeEnabled(True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for fmt in (QSettings.Format.NativeFormat, QSettings.Format.IniFormat):
        QSettings.setPath(fmt, QSettings.Scope.UserScope, str(tmp_path / "qsettings"))
    AppConfig._active_profile = None
    yield
    AppConfig._active_profile = None


@pytest.fixture
def document():
    return DocumentModel()


@pytest.fixture
def commits():
    """Collects session commit callbacks."""
    return []


@pytest.fixture
def viewport():
    return Viewport(width=1280, height=800)


@pytest.fixture
def session(document, viewport, commits):
    return SessionManager(document, viewport, on_commit=lambda: commits.append(True))

