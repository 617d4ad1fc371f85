"""Windows capabilities, optional features, and update, Store and WSL inventories."""
from __future__ import annotations

from pathlib import Path

from services.commands import ps_quote, run_powershell, run_powershell_json
from services.handlers import HandlerContext, raise_for_failures, read_json_records, write_json
from settings_restore.errors import CommandFailedError

INSTALLED_CAPABILITIES = (
    "Get-WindowsCapability -Online | Where-Object { \"$($_.State)\" -eq 'Installed' } | "
    "Select-Object Name, @{Name='State';Expression={\"$($_.State)\"}}"
)
ENABLED_FEATURES = (
    "Get-WindowsOptionalFeature -Online | Where-Object { \"$($_.State)\" -eq 'Enabled' } | "
    "Select-Object FeatureName, @{Name='State';Expression={\"$($_.State)\"}}"
)

UPDATE_QUERIES = {
    "installed_updates": (
        "Get-HotFix | Select-Object HotFixID, Description, InstalledBy, "
        "@{Name='InstalledOn';Expression={if ($_.InstalledOn) { $_.InstalledOn.ToString('yyyy-MM-dd') }}}"
    ),
}
STORE_APP_QUERIES = {
    "store_apps": "Get-AppxPackage | Select-Object Name, PackageFullName, Version, Publisher",
}
WSL_QUERIES = {
    "distributions": (
        "Get-ChildItem 'HKCU:\\Software\\Microsoft\\Windows\\CurrentVersion\\Lxss' -ErrorAction SilentlyContinue | "
        "ForEach-Object { Get-ItemProperty $_.PSPath } | Select-Object DistributionName, Version, BasePath"
    ),
}


class _OnlineComponentHandler:
    label = ""
    name_field = ""
    query = ""

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        entries = run_powershell_json(context.runner, self.query)
        write_json(destination, entries)
        return [f"{len(entries)} {self.label} recorded"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        present = {
            str(entry.get(self.name_field, "")).lower() for entry in run_powershell_json(context.runner, self.query)
        }
        details: list[str] = []
        failures: list[str] = []
        for entry in read_json_records(source, self.label):
            name = str(entry.get(self.name_field) or "")
            if not name:
                continue
            if name.lower() in present:
                details.append(f"{name}: already present")
                continue
            try:
                run_powershell(context.runner, self.install_script(name))
            except CommandFailedError as exc:
                failures.append(f"{name}: {exc}")
                continue
            details.append(f"{name}: enabled")
            context.log(f"{name} enabled")
        raise_for_failures(self.label, failures)
        return details

    def install_script(self, name: str) -> str:
        raise NotImplementedError


class CapabilitiesHandler(_OnlineComponentHandler):
    label = "capabilities"
    name_field = "Name"
    query = INSTALLED_CAPABILITIES

    def install_script(self, name: str) -> str:
        return f"Add-WindowsCapability -Online -Name {ps_quote(name)} | Out-Null"


class OptionalFeaturesHandler(_OnlineComponentHandler):
    label = "optional features"
    name_field = "FeatureName"
    query = ENABLED_FEATURES

    def install_script(self, name: str) -> str:
        return f"Enable-WindowsOptionalFeature -Online -FeatureName {ps_quote(name)} -All -NoRestart | Out-Null"
