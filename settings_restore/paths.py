"""Filesystem locations owned by the application."""
from __future__ import annotations

import os
from pathlib import Path

from settings_restore.constants import APP_DIRECTORY_NAME

SETTINGS_FILE_NAME = "settings.json"


def get_application_directory() -> Path:
    base = os.environ.get("APPDATA") or os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / APP_DIRECTORY_NAME


def get_settings_path() -> Path:
    return get_application_directory() / SETTINGS_FILE_NAME
