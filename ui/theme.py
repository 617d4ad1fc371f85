"""Dark theme styling and status colours."""
from __future__ import annotations

from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication, QStyleFactory

STATUS_COLORS = {
    "ok": "#4caf50",
    "warning": "#ffb300",
    "error": "#f44336",
    "idle": "#9e9e9e",
}


def status_style(state: str) -> str:
    return f"color: {STATUS_COLORS.get(state, STATUS_COLORS['idle'])}; font-weight: bold;"


def apply_dark_theme() -> None:
    app = QApplication.instance()
    if app is None:
        return

    app.setStyle(QStyleFactory.create("Fusion"))

    window = QColor("#1b1d21")
    panel = QColor("#25282e")
    text = QColor("#e4e6eb")
    muted = QColor("#7d838c")
    accent = QColor("#3d8bd9")

    palette = QPalette()
    palette.setColor(QPalette.Window, window)
    palette.setColor(QPalette.WindowText, text)
    palette.setColor(QPalette.Base, QColor("#141518"))
    palette.setColor(QPalette.AlternateBase, panel)
    palette.setColor(QPalette.ToolTipBase, panel)
    palette.setColor(QPalette.ToolTipText, text)
    palette.setColor(QPalette.Text, text)
    palette.setColor(QPalette.Button, panel)
    palette.setColor(QPalette.ButtonText, text)
    palette.setColor(QPalette.Link, accent)
    palette.setColor(QPalette.Highlight, accent)
    palette.setColor(QPalette.HighlightedText, QColor("#ffffff"))
    for role in (QPalette.Text, QPalette.ButtonText, QPalette.WindowText):
        palette.setColor(QPalette.Disabled, role, muted)
    app.setPalette(palette)
