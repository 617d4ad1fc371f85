"""Registry access through winreg and reg.exe."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol

from services.commands import CommandRunner, run_checked

try:  # Windows-only dependency, optional for test doubles
    import winreg  # type: ignore
except ImportError:  # pragma: no cover - not available on Linux runners
    winreg = None  # type: ignore

HIVE_ALIASES = {
    "HKEY_LOCAL_MACHINE": "HKLM",
    "HKEY_CURRENT_USER": "HKCU",
    "HKEY_CLASSES_ROOT": "HKCR",
    "HKEY_USERS": "HKU",
    "HKEY_CURRENT_CONFIG": "HKCC",
}
UNSAFE_FILENAME_CHARS = re.compile(r"[\\/:*?\"<>|\s]+")


class RegistryAccessor(Protocol):
    def get_value(self, path: str, value_name: str) -> str | int | None:  # pragma: no cover - protocol
        ...

    def set_value(self, path: str, value_name: str, value: str | int) -> None:  # pragma: no cover - protocol
        ...

    def key_exists(self, path: str) -> bool:  # pragma: no cover - protocol
        ...


def split_registry_path(path: str) -> tuple[str, str]:
    """Return ``(hive abbreviation, subkey)`` for ``HKCU\\...`` or ``HKCU:\\...`` paths."""
    cleaned = path.replace("/", "\\").strip()
    if ":\\" in cleaned:
        hive_name, subkey = cleaned.split(":\\", 1)
    elif "\\" in cleaned:
        hive_name, subkey = cleaned.split("\\", 1)
    else:
        hive_name, subkey = cleaned, ""
    hive = hive_name.upper()
    hive = HIVE_ALIASES.get(hive, hive)
    if hive not in HIVE_ALIASES.values():
        raise ValueError(f"Unsupported hive in registry path: {path}")
    return hive, subkey.strip("\\")


def registry_key_filename(key: str) -> str:
    """File name used for a key's export, e.g. ``HKCU_Software_Microsoft_Office_16.0_Excel.reg``."""
    hive, subkey = split_registry_path(key)
    stem = UNSAFE_FILENAME_CHARS.sub("_", f"{hive}\\{subkey}").strip("_")
    return f"{stem}.reg"


class WindowsRegistryAccessor:
    """Minimal registry helper backed by winreg."""

    def __init__(self) -> None:
        if winreg is None:
            raise RuntimeError("winreg not available on this platform")

    def get_value(self, path: str, value_name: str) -> str | int | None:
        hive, subkey = self._open_args(path)
        try:
            with winreg.OpenKey(hive, subkey) as key:  # type: ignore[arg-type]
                value, _ = winreg.QueryValueEx(key, value_name)
                return value
        except FileNotFoundError:
            return None

    def set_value(self, path: str, value_name: str, value: str | int) -> None:
        hive, subkey = self._open_args(path)
        value_type = winreg.REG_DWORD if isinstance(value, int) else winreg.REG_SZ
        with winreg.CreateKeyEx(hive, subkey) as key:  # type: ignore[arg-type]
            winreg.SetValueEx(key, value_name, 0, value_type, value)

    def key_exists(self, path: str) -> bool:
        hive, subkey = self._open_args(path)
        try:
            with winreg.OpenKey(hive, subkey):  # type: ignore[arg-type]
                return True
        except OSError:
            return False

    def _open_args(self, path: str) -> tuple[object, str]:
        hive_name, subkey = split_registry_path(path)
        hive_map = {
            "HKLM": winreg.HKEY_LOCAL_MACHINE,
            "HKCU": winreg.HKEY_CURRENT_USER,
            "HKCR": winreg.HKEY_CLASSES_ROOT,
            "HKU": winreg.HKEY_USERS,
            "HKCC": winreg.HKEY_CURRENT_CONFIG,
        }
        return hive_map[hive_name], subkey


class RegTool:
    """Wrapper around ``reg import`` and ``reg export``."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def import_file(self, path: Path) -> None:
        run_checked(self._runner, ["reg", "import", str(path)])

    def export_key(self, key: str, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        hive, subkey = split_registry_path(key)
        run_checked(self._runner, ["reg", "export", f"{hive}\\{subkey}", str(destination), "/y"])
