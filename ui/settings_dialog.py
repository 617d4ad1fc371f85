"""Settings dialog for the backup location and machine name."""
from __future__ import annotations

from pathlib import Path

from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from settings_restore.environment import resolve_machine_name
from settings_restore.user_settings import SettingsStore, UserSettings


class SettingsDialog(QDialog):
    def __init__(self, settings: UserSettings, store: SettingsStore, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._settings = settings
        self._store = store
        self.setWindowTitle("Backup Settings")
        self.setMinimumWidth(560)
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self._backup_root = QLineEdit(self._settings.backup_root)
        self._backup_root.setPlaceholderText("e.g. D:\\SettingsBackup or \\\\server\\share\\backups")
        form.addRow("Backup root", self._make_folder_picker(self._backup_root, "Select backup root"))

        self._machine_name = QLineEdit(self._settings.machine_name)
        self._machine_name.setPlaceholderText(resolve_machine_name())
        form.addRow("Machine name", self._machine_name)

        self._shared_fallback = QCheckBox("Fall back to the shared folder when no machine backup exists")
        self._shared_fallback.setChecked(self._settings.use_shared_fallback)
        form.addRow("", self._shared_fallback)

        layout.addLayout(form)
        hint = QLabel("BACKUP_ROOT and MACHINE_NAME environment variables take precedence over these values.")
        hint.setWordWrap(True)
        layout.addWidget(hint)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _make_folder_picker(self, field: QLineEdit, title: str) -> QWidget:
        container = QWidget()
        row = QHBoxLayout(container)
        row.setContentsMargins(0, 0, 0, 0)
        row.addWidget(field)
        browse = QPushButton("Browse")
        browse.clicked.connect(lambda: self._browse_for_folder(field, title))
        row.addWidget(browse)
        return container

    def _browse_for_folder(self, field: QLineEdit, title: str) -> None:
        current = field.text().strip()
        start_dir = current if current and Path(current).is_dir() else str(Path.home())
        path = QFileDialog.getExistingDirectory(self, title, start_dir)
        if path:
            field.setText(path)

    def _save(self) -> None:
        backup_root = self._backup_root.text().strip()
        if backup_root and not Path(backup_root).is_dir():
            answer = QMessageBox.question(
                self,
                "Folder Missing",
                f"{backup_root} does not exist yet. Save anyway?",
            )
            if answer != QMessageBox.Yes:
                return
        self._settings.backup_root = backup_root
        self._settings.machine_name = self._machine_name.text().strip()
        self._settings.use_shared_fallback = self._shared_fallback.isChecked()
        self._store.save(self._settings)
        self.accept()
