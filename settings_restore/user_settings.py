"""Persisted user preferences edited through the settings dialog."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from settings_restore.paths import get_settings_path

logger = logging.getLogger(__name__)


@dataclass
class UserSettings:
    backup_root: str = ""
    machine_name: str = ""
    use_shared_fallback: bool = True


class SettingsStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path) if path is not None else get_settings_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UserSettings:
        if not self._path.exists():
            return UserSettings()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self._path, exc)
            return UserSettings()
        if not isinstance(raw, dict):
            return UserSettings()
        known = {item.name for item in fields(UserSettings)}
        values = {key: value for key, value in raw.items() if key in known}
        settings = UserSettings(**values)
        settings.use_shared_fallback = bool(settings.use_shared_fallback)
        return settings

    def save(self, settings: UserSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(asdict(settings), indent=2), encoding="utf-8")
