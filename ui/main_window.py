"""Main window hosting the restore tab and the shared log pane."""
from __future__ import annotations

import sys
from datetime import datetime

from PySide6.QtCore import QThreadPool
from PySide6.QtGui import QAction
from PySide6.QtWidgets import QApplication, QLabel, QMainWindow, QPlainTextEdit, QTabWidget, QVBoxLayout, QWidget

from services import privilege
from settings_restore.environment import RestoreEnvironment, resolve_environment
from settings_restore.user_settings import SettingsStore
from ui.restore_tab import RestoreTab
from ui.settings_dialog import SettingsDialog
from ui.theme import apply_dark_theme


class MainWindow(QMainWindow):
    def __init__(self, store: SettingsStore | None = None) -> None:
        super().__init__()
        self._store = store or SettingsStore()
        self._settings = self._store.load()
        self._thread_pool = QThreadPool.globalInstance()
        self.setWindowTitle("Windows Settings Restore")
        self.resize(980, 760)
        self._build_ui()

    def _build_ui(self) -> None:
        central = QWidget()
        layout = QVBoxLayout(central)

        admin_text = "Running as administrator" if privilege.is_admin() else "Not elevated: HKLM and system features may fail"
        layout.addWidget(QLabel(admin_text))

        tabs = QTabWidget()
        tabs.addTab(RestoreTab(self._current_environment, self.append_log, self._thread_pool), "Settings")
        layout.addWidget(tabs)

        self._log_view = QPlainTextEdit()
        self._log_view.setReadOnly(True)
        self._log_view.setMinimumHeight(200)
        layout.addWidget(self._log_view)
        self.setCentralWidget(central)

        settings_action = QAction("Settings...", self)
        settings_action.triggered.connect(self._open_settings)
        self.menuBar().addAction(settings_action)
        if not privilege.is_admin():
            elevate_action = QAction("Restart as administrator", self)
            elevate_action.triggered.connect(self._relaunch_elevated)
            self.menuBar().addAction(elevate_action)

    def _current_environment(self) -> RestoreEnvironment:
        return resolve_environment(settings=self._settings)

    def _open_settings(self) -> None:
        dialog = SettingsDialog(self._settings, self._store, self)
        if dialog.exec():
            self.append_log("Settings saved.")

    def _relaunch_elevated(self) -> None:
        if privilege.relaunch_as_admin(["-m", "settings_restore", "gui"]):
            self.close()
        else:
            self.append_log("[ERROR] Elevation was cancelled or is unavailable.")

    def append_log(self, message: str) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        self._log_view.appendPlainText(f"[{stamp}] {message}")


def run_app() -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    apply_dark_theme()
    window = MainWindow()
    window.show()
    return app.exec()
