"""Handler protocol and shared context for items that need more than a copy."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol

from services.commands import CommandRunner
from services.registry import RegistryAccessor, RegTool, WindowsRegistryAccessor
from settings_restore.environment import expand_path
from settings_restore.errors import HandlerError

ProgressCallback = Callable[[str], None]


class SourceMissingError(HandlerError):
    """Raised by a handler's backup when there is nothing on the system to capture."""


@dataclass
class HandlerContext:
    runner: CommandRunner
    registry_factory: Callable[[], RegistryAccessor] = WindowsRegistryAccessor
    env: Mapping[str, str] | None = None
    progress_callback: ProgressCallback | None = None
    _registry: RegistryAccessor | None = field(default=None, init=False, repr=False)

    @property
    def registry(self) -> RegistryAccessor:
        if self._registry is None:
            self._registry = self.registry_factory()
        return self._registry

    @property
    def reg_tool(self) -> RegTool:
        return RegTool(self.runner)

    def expand(self, template: str) -> Path:
        return expand_path(template, self.env)

    def env_value(self, name: str) -> str:
        environ = os.environ if self.env is None else self.env
        return environ.get(name, "")

    def log(self, message: str) -> None:
        if self.progress_callback:
            self.progress_callback(message)


class FeatureHandler(Protocol):
    def backup(self, context: HandlerContext, destination: Path) -> list[str]:  # pragma: no cover - protocol
        ...

    def restore(self, context: HandlerContext, source: Path) -> list[str]:  # pragma: no cover - protocol
        ...


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")


def read_json(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HandlerError(f"{path.name} is not UTF-8 text: {exc}") from exc
    except OSError as exc:
        raise HandlerError(f"{path.name} could not be read: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise HandlerError(f"{path.name} is not valid JSON: {exc}") from exc


def read_json_object(path: Path, label: str) -> dict[str, Any]:
    data = read_json(path)
    if not isinstance(data, dict):
        raise HandlerError(f"{path.name} does not contain {label}")
    return data


def require_records(value: Any, path: Path, label: str) -> list[dict[str, Any]]:
    """Return *value* when it is a list of JSON objects, else raise naming *path*."""
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(entry, dict) for entry in value):
        raise HandlerError(f"{path.name} does not contain a {label} list")
    return value


def read_json_records(path: Path, label: str) -> list[dict[str, Any]]:
    return require_records(read_json(path), path, label)


def raise_for_failures(label: str, failures: list[str]) -> None:
    if failures:
        raise HandlerError(f"{label}: " + "; ".join(failures))


def default_handlers() -> dict[str, FeatureHandler]:
    from services import devices, network, packages, security, shell_settings, windows_features
    from settings_restore import feature_registry

    return {
        "touchpad_devices": devices.PnpDeviceStateHandler(("Mouse", "HIDClass"), r"touch ?pad|synaptics|elan"),
        "touchscreen_devices": devices.PnpDeviceStateHandler(("HIDClass",), r"touch ?screen"),
        "mouse_devices": devices.PnpDeviceStateHandler(("Mouse",)),
        "keyboard_devices": devices.PnpDeviceStateHandler(("Keyboard",)),
        "display_info": devices.InventoryHandler(devices.DISPLAY_QUERIES),
        "printer_info": devices.InventoryHandler(devices.PRINTER_QUERIES),
        "driver_list": devices.InventoryHandler(devices.DRIVER_QUERIES),
        "sound_devices": devices.InventoryHandler(devices.SOUND_QUERIES),
        "vpn_connections": network.VpnConnectionsHandler(),
        "vpn_certificates": network.CertificatesHandler(),
        "wlan_profiles": network.WlanProfilesHandler(),
        "start_layout": shell_settings.StartLayoutHandler(),
        "power_scheme": shell_settings.PowerSchemeHandler(),
        "explorer_values": shell_settings.RegistryValuesHandler(feature_registry.EXPLORER_VALUES),
        "system_values": shell_settings.RegistryValuesHandler(feature_registry.SYSTEM_VALUES),
        "mouse_values": shell_settings.RegistryValuesHandler(feature_registry.MOUSE_VALUES),
        "ssh_directory": shell_settings.SshDirectoryHandler(),
        "winget_packages": packages.WingetPackagesHandler(),
        "choco_packages": packages.ChocoPackagesHandler(),
        "scoop_packages": packages.ScoopPackagesHandler(),
        "windows_capabilities": windows_features.CapabilitiesHandler(),
        "optional_features": windows_features.OptionalFeaturesHandler(),
        "defender_preferences": security.DefenderPreferencesHandler(),
        "rdp_server_info": devices.InventoryHandler(security.RDP_SERVER_QUERIES),
        "update_history": devices.InventoryHandler(windows_features.UPDATE_QUERIES),
        "store_apps": devices.InventoryHandler(windows_features.STORE_APP_QUERIES),
        "wsl_distributions": devices.InventoryHandler(windows_features.WSL_QUERIES),
    }
