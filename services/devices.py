"""Plug and Play device state and hardware inventory."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Mapping

from services.commands import ps_quote, run_powershell, run_powershell_json
from services.handlers import HandlerContext, raise_for_failures, read_json_object, read_json_records, write_json
from settings_restore.errors import CommandFailedError, HandlerError

ENABLED_STATUS = "OK"

DISPLAY_QUERIES = {
    "video_controllers": (
        "Get-CimInstance Win32_VideoController | Select-Object Name, DriverVersion, "
        "CurrentHorizontalResolution, CurrentVerticalResolution, CurrentRefreshRate"
    ),
    "monitors": (
        "Get-CimInstance -Namespace root\\wmi -ClassName WmiMonitorID | Select-Object InstanceName, Active, "
        "@{Name='Name';Expression={[System.Text.Encoding]::ASCII.GetString(($_.UserFriendlyName | Where-Object { $_ -ne 0 }))}}"
    ),
}
PRINTER_QUERIES = {
    "printers": "Get-Printer | Select-Object Name, DriverName, PortName, Shared, @{Name='Type';Expression={\"$($_.Type)\"}}",
}
DRIVER_QUERIES = {
    "drivers": (
        "Get-CimInstance Win32_PnPSignedDriver | Where-Object { $_.DeviceName } | "
        "Select-Object DeviceName, DeviceClass, DriverVersion, Manufacturer, InfName"
    ),
}
SOUND_QUERIES = {
    "sound_devices": "Get-CimInstance Win32_SoundDevice | Select-Object Name, Manufacturer, Status",
}


class PnpDeviceStateHandler:
    """Captures and replays the enabled/disabled state of a device family."""

    def __init__(self, classes: tuple[str, ...], name_pattern: str | None = None) -> None:
        self._classes = classes
        self._name_pattern = name_pattern

    def query_script(self) -> str:
        class_list = ", ".join(ps_quote(name) for name in self._classes)
        condition = f"$_.Class -in @({class_list})"
        if self._name_pattern:
            condition = f"{condition} -and $_.FriendlyName -match {ps_quote(self._name_pattern)}"
        return (
            f"Get-PnpDevice -PresentOnly | Where-Object {{ {condition} }} | "
            "Select-Object FriendlyName, InstanceId, Class, @{Name='Status';Expression={\"$($_.Status)\"}}"
        )

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        devices = run_powershell_json(context.runner, self.query_script())
        write_json(destination, devices)
        return [f"{len(devices)} device(s) captured"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        saved = read_json_records(source, "device")
        present: dict[str, dict[str, Any]] = {}
        for device in run_powershell_json(context.runner, self.query_script()):
            name = str(device.get("FriendlyName") or "").lower()
            if name:
                present.setdefault(name, device)

        details: list[str] = []
        failures: list[str] = []
        for device in saved:
            name = str(device.get("FriendlyName") or "")
            current = present.get(name.lower())
            if current is None:
                details.append(f"{name}: not present")
                continue
            wanted_enabled = device.get("Status") == ENABLED_STATUS
            if (current.get("Status") == ENABLED_STATUS) == wanted_enabled:
                details.append(f"{name}: unchanged")
                continue
            verb = "Enable-PnpDevice" if wanted_enabled else "Disable-PnpDevice"
            instance_id = str(current.get("InstanceId") or "")
            try:
                run_powershell(context.runner, f"{verb} -InstanceId {ps_quote(instance_id)} -Confirm:$false")
            except CommandFailedError as exc:
                failures.append(f"{name}: {exc}")
                continue
            state = "enabled" if wanted_enabled else "disabled"
            details.append(f"{name}: {state}")
            context.log(f"{name} {state}")
        raise_for_failures("device state", failures)
        return details


class InventoryHandler:
    """Read-only hardware inventory captured for reference."""

    def __init__(self, queries: Mapping[str, str]) -> None:
        self._queries = dict(queries)

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        inventory = {section: run_powershell_json(context.runner, script) for section, script in self._queries.items()}
        write_json(destination, inventory)
        return self.summarize(inventory)

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        inventory = read_json_object(source, "an inventory")
        lines = self.summarize(inventory, source.name)
        for line in lines:
            context.log(line)
        return lines

    def summarize(self, inventory: Mapping[str, Any], origin: str = "inventory") -> list[str]:
        lines = []
        for section in self._queries:
            entries = inventory.get(section) or []
            if not isinstance(entries, list):
                raise HandlerError(f"{origin}: section {section} is not a list")
            label = re.sub(r"_+", " ", section)
            lines.append(f"{len(entries)} {label} recorded")
        return lines
