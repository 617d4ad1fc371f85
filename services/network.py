"""VPN connections, client certificates and wireless profiles."""
from __future__ import annotations

from pathlib import Path
from typing import Any

from services.commands import ps_quote, run_checked, run_powershell, run_powershell_json
from services.handlers import (
    HandlerContext,
    SourceMissingError,
    raise_for_failures,
    read_json_object,
    require_records,
    write_json,
)
from settings_restore.errors import CommandFailedError

VPN_PROPERTIES = (
    "Name, ServerAddress, SplitTunneling, RememberCredential, "
    "@{Name='TunnelType';Expression={\"$($_.TunnelType)\"}}, "
    "@{Name='EncryptionLevel';Expression={\"$($_.EncryptionLevel)\"}}, "
    "@{Name='AuthenticationMethod';Expression={@($_.AuthenticationMethod | ForEach-Object { \"$_\" })}}"
)
CERTIFICATE_SUFFIXES = {".cer", ".crt"}


class VpnConnectionsHandler:
    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        data = {
            "user": run_powershell_json(context.runner, f"Get-VpnConnection | Select-Object {VPN_PROPERTIES}"),
            "all_users": run_powershell_json(
                context.runner, f"Get-VpnConnection -AllUserConnection | Select-Object {VPN_PROPERTIES}"
            ),
        }
        if not data["user"] and not data["all_users"]:
            raise SourceMissingError("no VPN connections configured")
        write_json(destination, data)
        return [f"{len(data['user'])} user and {len(data['all_users'])} all-user connection(s) captured"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        data = read_json_object(source, "VPN connections")
        details: list[str] = []
        failures: list[str] = []
        for scope, all_users in (("user", False), ("all_users", True)):
            suffix = " -AllUserConnection" if all_users else ""
            existing = {
                str(entry.get("Name", "")).lower()
                for entry in run_powershell_json(context.runner, f"Get-VpnConnection{suffix} | Select-Object Name")
            }
            for connection in require_records(data.get(scope), source, "VPN connection"):
                name = str(connection.get("Name") or "")
                if not name:
                    continue
                if name.lower() in existing:
                    details.append(f"{name}: already present")
                    continue
                try:
                    run_powershell(context.runner, self.add_command(connection, all_users))
                except CommandFailedError as exc:
                    failures.append(f"{name}: {exc}")
                    continue
                details.append(f"{name}: added")
                context.log(f"VPN connection {name} added")
        raise_for_failures("VPN connections", failures)
        return details

    def add_command(self, connection: dict[str, Any], all_users: bool) -> str:
        parts = [
            "Add-VpnConnection",
            f"-Name {ps_quote(str(connection['Name']))}",
            f"-ServerAddress {ps_quote(str(connection.get('ServerAddress') or ''))}",
        ]
        tunnel = connection.get("TunnelType")
        if tunnel:
            parts.append(f"-TunnelType {ps_quote(str(tunnel))}")
        encryption = connection.get("EncryptionLevel")
        if encryption:
            parts.append(f"-EncryptionLevel {ps_quote(str(encryption))}")
        methods = connection.get("AuthenticationMethod")
        if isinstance(methods, str):
            methods = [methods]
        if methods:
            parts.append("-AuthenticationMethod " + ",".join(ps_quote(str(method)) for method in methods))
        if connection.get("SplitTunneling"):
            parts.append("-SplitTunneling")
        if connection.get("RememberCredential"):
            parts.append("-RememberCredential")
        if all_users:
            parts.append("-AllUserConnection")
        parts.append("-Force")
        return " ".join(parts)


class CertificatesHandler:
    def __init__(self, store: str = "Cert:\\CurrentUser\\My") -> None:
        self._store = store

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        destination.mkdir(parents=True, exist_ok=True)
        script = (
            f"Get-ChildItem {ps_quote(self._store)} | ForEach-Object {{ "
            f"Export-Certificate -Cert $_ -FilePath (Join-Path {ps_quote(str(destination))} ($_.Thumbprint + '.cer')) | Out-Null; "
            "$_.Thumbprint }"
        )
        completed = run_powershell(context.runner, script)
        thumbprints = [line for line in (completed.stdout or "").splitlines() if line.strip()]
        return [f"{len(thumbprints)} certificate(s) exported"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        files = sorted(path for path in source.iterdir() if path.suffix.lower() in CERTIFICATE_SUFFIXES)
        details: list[str] = []
        failures: list[str] = []
        for path in files:
            try:
                run_powershell(
                    context.runner,
                    f"Import-Certificate -FilePath {ps_quote(str(path))} -CertStoreLocation {ps_quote(self._store)} | Out-Null",
                )
            except CommandFailedError as exc:
                failures.append(f"{path.name}: {exc}")
                continue
            details.append(f"{path.name}: imported")
        raise_for_failures("certificates", failures)
        return details


class WlanProfilesHandler:
    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        destination.mkdir(parents=True, exist_ok=True)
        run_checked(context.runner, ["netsh", "wlan", "export", "profile", "key=clear", f"folder={destination}"])
        exported = sorted(destination.glob("*.xml"))
        return [f"{len(exported)} wireless profile(s) exported"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        details: list[str] = []
        failures: list[str] = []
        for path in sorted(source.glob("*.xml")):
            try:
                run_checked(context.runner, ["netsh", "wlan", "add", "profile", f"filename={path}", "user=all"])
            except CommandFailedError as exc:
                failures.append(f"{path.stem}: {exc}")
                continue
            details.append(f"{path.stem}: added")
        raise_for_failures("wireless profiles", failures)
        return details
