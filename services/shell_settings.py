"""Start layout, power scheme, registry value sets and the user's SSH folder."""
from __future__ import annotations

import re
from pathlib import Path

from services.commands import ps_quote, run_checked, run_powershell
from services.file_copy import copy_directory, is_excluded
from services.handlers import HandlerContext, SourceMissingError, read_json_records, write_json
from settings_restore.constants import EXCLUDED_COPY_PATTERNS, RegistrySetting
from settings_restore.errors import HandlerError

POWERCFG_GUID_PATTERN = re.compile(r"Power Scheme GUID:\s*([0-9a-fA-F-]{36})\s*\((.*?)\)\s*(\*)?")
GUID_PATTERN = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")
SSH_PRIVATE_KEY_PATTERNS = ("id_*", "*.pem", "*.ppk", "*.key")
SSH_DIRECTORY = "%USERPROFILE%/.ssh"


class StartLayoutHandler:
    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        destination.parent.mkdir(parents=True, exist_ok=True)
        run_powershell(context.runner, f"Export-StartLayout -Path {ps_quote(str(destination))}")
        return ["start layout exported"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        run_powershell(
            context.runner,
            f"Import-StartLayout -LayoutPath {ps_quote(str(source))} -MountPath \"$env:SystemDrive\\\"",
        )
        return ["start layout imported"]


class PowerSchemeHandler:
    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        completed = run_checked(context.runner, ["powercfg", "/getactivescheme"])
        match = POWERCFG_GUID_PATTERN.search(completed.stdout or "")
        if not match:
            raise HandlerError(f"could not determine the active power scheme from: {(completed.stdout or '').strip()}")
        guid, name = match.group(1), match.group(2).strip()
        destination.parent.mkdir(parents=True, exist_ok=True)
        run_checked(context.runner, ["powercfg", "/export", str(destination), guid])
        return [f"active scheme {name} ({guid}) exported"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        completed = run_checked(context.runner, ["powercfg", "/import", str(source)])
        match = GUID_PATTERN.search(completed.stdout or "")
        if not match:
            raise HandlerError(f"powercfg /import did not report a scheme GUID: {(completed.stdout or '').strip()}")
        guid = match.group(0)
        run_checked(context.runner, ["powercfg", "/setactive", guid])
        return [f"scheme {guid} imported and activated"]


class RegistryValuesHandler:
    """Individual registry values captured to JSON and written back one by one."""

    def __init__(self, settings: tuple[RegistrySetting, ...]) -> None:
        self._settings = settings

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        values = []
        for setting in self._settings:
            value = context.registry.get_value(setting.path, setting.value_name)
            if value is None:
                continue
            values.append(
                {"path": setting.path, "name": setting.value_name, "type": setting.value_type, "value": value}
            )
        if not values:
            raise SourceMissingError("none of the registry values are set")
        write_json(destination, values)
        return [f"{len(values)} value(s) captured"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        details = []
        for entry in read_json_records(source, "registry value"):
            if not {"path", "name", "value"} <= entry.keys():
                raise HandlerError(f"{source.name}: entry is missing path, name or value")
            value = entry["value"]
            if entry.get("type") == "REG_DWORD":
                value = int(value)
            context.registry.set_value(entry["path"], entry["name"], value)
            details.append(f"{entry['name']} = {value}")
        return details


def _ssh_ignore(_directory: str, names: list[str]) -> set[str]:
    ignored = set()
    for name in names:
        if is_excluded(name, EXCLUDED_COPY_PATTERNS):
            ignored.add(name)
        elif is_excluded(name, SSH_PRIVATE_KEY_PATTERNS) and not name.lower().endswith(".pub"):
            ignored.add(name)
    return ignored


class SshDirectoryHandler:
    """Copies ~/.ssh without private keys and tightens its ACL on restore."""

    def __init__(self, directory: str = SSH_DIRECTORY) -> None:
        self._directory = directory

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        source = context.expand(self._directory)
        if not source.is_dir():
            raise SourceMissingError(f"{source} does not exist")
        count = copy_directory(source, destination, ignore=_ssh_ignore)
        return [f"{count} file(s) copied, private keys excluded"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        target = context.expand(self._directory)
        count = copy_directory(source, target, ignore=_ssh_ignore)
        user = context.env_value("USERNAME")
        command = ["icacls", str(target), "/inheritance:r", "/grant:r", "SYSTEM:(OI)(CI)F"]
        if user:
            command.extend(["/grant:r", f"{user}:(OI)(CI)F"])
        run_checked(context.runner, command)
        return [f"{count} file(s) restored", "permissions restricted to owner"]
