"""Feature list with per-feature restore/backup status."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

from PySide6.QtCore import Qt, QThreadPool
from PySide6.QtWidgets import (
    QCheckBox,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from services.backup import BackupResult, BackupService
from services.restore import RestoreOptions, RestoreResult, RestoreService
from settings_restore.environment import RestoreEnvironment
from settings_restore.feature_registry import list_features
from ui.theme import status_style
from ui.workers import ServiceWorker

LogCallback = Callable[[str], None]
EnvironmentProvider = Callable[[], RestoreEnvironment]


@dataclass
class FeatureOutcome:
    key: str
    result: RestoreResult | BackupResult | None = None
    error: str = ""


class RestoreTab(QWidget):
    def __init__(
        self,
        environment_provider: EnvironmentProvider,
        log_callback: LogCallback,
        thread_pool: QThreadPool,
    ) -> None:
        super().__init__()
        self._environment_provider = environment_provider
        self._log = log_callback
        self._thread_pool = thread_pool
        self._status_labels: Dict[str, QLabel] = {}
        self._feature_checks: Dict[str, QCheckBox] = {}
        self._workers: set[ServiceWorker] = set()
        self._busy = False
        self._build_ui()

    def _track_worker(self, worker: ServiceWorker) -> None:
        self._workers.add(worker)
        worker.signals.finished.connect(lambda *_: self._workers.discard(worker))
        worker.signals.error.connect(lambda *_: self._workers.discard(worker))

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.addWidget(QLabel("Select the settings to restore from, or back up to, the backup root"))

        grid_host = QWidget()
        grid = QGridLayout(grid_host)
        grid.addWidget(QLabel("Select"), 0, 0)
        grid.addWidget(QLabel("Feature"), 0, 1)
        grid.addWidget(QLabel("Status"), 0, 2)
        for row, feature in enumerate(list_features(), start=1):
            checkbox = QCheckBox()
            label = QLabel(feature.name)
            label.setToolTip(feature.description)
            status = QLabel("Idle")
            status.setAlignment(Qt.AlignLeft)
            status.setStyleSheet(status_style("idle"))
            grid.addWidget(checkbox, row, 0, alignment=Qt.AlignCenter)
            grid.addWidget(label, row, 1)
            grid.addWidget(status, row, 2)
            self._feature_checks[feature.key] = checkbox
            self._status_labels[feature.key] = status
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(grid_host)
        layout.addWidget(scroll)

        options_row = QHBoxLayout()
        self._force = QCheckBox("Force")
        self._force.setToolTip("Continue past missing backups and failed items")
        self._what_if = QCheckBox("What-If")
        self._what_if.setToolTip("Report what would change without touching the system")
        self._skip_verification = QCheckBox("Skip verification")
        for widget in (self._force, self._what_if, self._skip_verification):
            options_row.addWidget(widget)
        options_row.addStretch()
        layout.addLayout(options_row)

        button_row = QHBoxLayout()
        self._btn_select_all = QPushButton("Select All")
        self._btn_select_all.clicked.connect(lambda: self._set_all_selection(True))
        button_row.addWidget(self._btn_select_all)

        self._btn_deselect_all = QPushButton("Deselect All")
        self._btn_deselect_all.clicked.connect(lambda: self._set_all_selection(False))
        button_row.addWidget(self._btn_deselect_all)

        self._btn_restore = QPushButton("Restore Selected")
        self._btn_restore.clicked.connect(lambda: self._start_operation("restore"))
        button_row.addWidget(self._btn_restore)

        self._btn_backup = QPushButton("Backup Selected")
        self._btn_backup.clicked.connect(lambda: self._start_operation("backup"))
        button_row.addWidget(self._btn_backup)
        layout.addLayout(button_row)

    def _start_operation(self, mode: str) -> None:
        if self._busy:
            QMessageBox.information(self, "In Progress", "Please wait for current operation to finish.")
            return
        selected = [key for key, checkbox in self._feature_checks.items() if checkbox.isChecked()]
        if not selected:
            QMessageBox.information(self, "No Selection", "Select at least one feature.")
            return
        try:
            environment = self._environment_provider()
        except ValueError as exc:
            QMessageBox.warning(self, "Backup Root Missing", str(exc))
            return
        options = RestoreOptions.build(
            force=self._force.isChecked(),
            skip_verification=self._skip_verification.isChecked(),
            what_if=self._what_if.isChecked(),
        )
        self._busy = True
        self._set_controls_enabled(False)
        for key in selected:
            self._status_labels[key].setText("Queued...")
            self._status_labels[key].setStyleSheet(status_style("idle"))
        self._log(f"Starting {mode} of {', '.join(selected)} ({environment.machine_name})")
        worker = ServiceWorker(self._run_operation, mode, environment, selected, options, report_progress=True)
        worker.signals.progress.connect(self._log)
        worker.signals.finished.connect(self._handle_finished)
        worker.signals.error.connect(self._handle_error)
        self._track_worker(worker)
        self._thread_pool.start(worker)

    def _run_operation(
        self,
        mode: str,
        environment: RestoreEnvironment,
        keys: list[str],
        options: RestoreOptions,
        progress_callback: LogCallback | None = None,
    ) -> list[FeatureOutcome]:
        if mode == "restore":
            operation = RestoreService(environment, progress_callback=progress_callback).restore
        else:
            operation = BackupService(environment, progress_callback=progress_callback).backup
        outcomes = []
        for key in keys:
            try:
                outcomes.append(FeatureOutcome(key, operation(key, options)))
            except Exception as exc:  # surfaced per feature in the status grid
                outcomes.append(FeatureOutcome(key, error=str(exc)))
        return outcomes

    def _handle_finished(self, outcomes: list[FeatureOutcome]) -> None:
        failures = 0
        for outcome in outcomes:
            label = self._status_labels.get(outcome.key)
            if label is None:
                continue
            text, state = self._format_outcome(outcome)
            label.setText(text)
            label.setStyleSheet(status_style(state))
            if state == "error":
                failures += 1
            if outcome.result is not None:
                for error in outcome.result.errors:
                    self._log(f"[ERROR] {outcome.result.feature}: {error}")
                for warning in outcome.result.warnings:
                    self._log(f"[WARN] {outcome.result.feature}: {warning}")
            elif outcome.error:
                self._log(f"[ERROR] {outcome.key}: {outcome.error}")
        summary = "All selected features completed." if failures == 0 else f"{failures} feature(s) need attention."
        self._log(summary)
        self._busy = False
        self._set_controls_enabled(True)

    def _format_outcome(self, outcome: FeatureOutcome) -> tuple[str, str]:
        result = outcome.result
        if result is None:
            return f"✗ {outcome.error}", "error"
        processed = result.items_restored if isinstance(result, RestoreResult) else result.items_backed_up
        text = f"{len(processed)} processed, {len(result.items_skipped)} skipped"
        if result.errors or not result.success:
            return f"✗ {text}, {len(result.errors)} error(s)", "error"
        if result.warnings:
            return f"! {text}, {len(result.warnings)} warning(s)", "warning"
        return f"✓ {text}", "ok"

    def _set_all_selection(self, selected: bool) -> None:
        for checkbox in self._feature_checks.values():
            checkbox.setChecked(selected)

    def _set_controls_enabled(self, enabled: bool) -> None:
        for widget in (
            self._btn_restore,
            self._btn_backup,
            self._btn_select_all,
            self._btn_deselect_all,
            self._force,
            self._what_if,
            self._skip_verification,
        ):
            widget.setEnabled(enabled)
        for checkbox in self._feature_checks.values():
            checkbox.setEnabled(enabled)

    def _handle_error(self, message: str) -> None:
        self._log(f"[ERROR] {message}")
        self._busy = False
        self._set_controls_enabled(True)
