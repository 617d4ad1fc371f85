"""Windows Defender preferences and Remote Desktop server inventory."""
from __future__ import annotations

from pathlib import Path
from typing import Any

from services.commands import ps_quote, run_powershell, run_powershell_json
from services.handlers import HandlerContext, SourceMissingError, raise_for_failures, read_json_object, write_json
from settings_restore.errors import CommandFailedError, HandlerError

DEFENDER_EXCLUSIONS = ("ExclusionPath", "ExclusionExtension", "ExclusionProcess")
DEFENDER_SETTINGS = (
    "DisableRealtimeMonitoring",
    "DisableBehaviorMonitoring",
    "MAPSReporting",
    "SubmitSamplesConsent",
    "PUAProtection",
    "ScanScheduleDay",
    "ScanScheduleTime",
)
DEFENDER_QUERY = "Get-MpPreference | Select-Object " + ", ".join(DEFENDER_EXCLUSIONS + DEFENDER_SETTINGS)

RDP_SERVER_QUERIES = {
    "services": (
        "Get-Service -Name TermService, UmRdpService -ErrorAction SilentlyContinue | "
        "Select-Object Name, @{Name='Status';Expression={\"$($_.Status)\"}}, "
        "@{Name='StartType';Expression={\"$($_.StartType)\"}}"
    ),
    "firewall_rules": (
        "Get-NetFirewallRule -DisplayGroup 'Remote Desktop' -ErrorAction SilentlyContinue | "
        "Select-Object DisplayName, Enabled, @{Name='Direction';Expression={\"$($_.Direction)\"}}"
    ),
}


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(entry) for entry in value if entry is not None]
    raise HandlerError(f"unexpected exclusion value: {value!r}")


def _ps_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "$true" if value else "$false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return ps_quote(value)
    raise HandlerError(f"unsupported Defender setting value: {value!r}")


class DefenderPreferencesHandler:
    """Exclusions are merged into the current list; scalar settings are set when they differ."""

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        preferences = run_powershell_json(context.runner, DEFENDER_QUERY)
        if not preferences:
            raise SourceMissingError("Get-MpPreference returned nothing")
        write_json(destination, preferences[0])
        count = sum(len(_as_list(preferences[0].get(kind))) for kind in DEFENDER_EXCLUSIONS)
        return [f"{count} exclusion(s) captured"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        saved = read_json_object(source, "Defender preferences")
        current_entries = run_powershell_json(context.runner, DEFENDER_QUERY)
        current = current_entries[0] if current_entries else {}

        details: list[str] = []
        failures: list[str] = []
        for kind in DEFENDER_EXCLUSIONS:
            present = {value.lower() for value in _as_list(current.get(kind))}
            for value in _as_list(saved.get(kind)):
                if value.lower() in present:
                    continue
                try:
                    run_powershell(context.runner, f"Add-MpPreference -{kind} {ps_quote(value)}")
                except CommandFailedError as exc:
                    failures.append(f"{kind} {value}: {exc}")
                    continue
                details.append(f"{kind} {value}: added")
        for name in DEFENDER_SETTINGS:
            if name not in saved or saved[name] is None or saved[name] == current.get(name):
                continue
            try:
                run_powershell(context.runner, f"Set-MpPreference -{name} {_ps_literal(saved[name])}")
            except CommandFailedError as exc:
                failures.append(f"{name}: {exc}")
                continue
            details.append(f"{name} = {saved[name]}")
            context.log(f"Defender {name} set to {saved[name]}")
        raise_for_failures("Defender preferences", failures)
        return details
