"""winget, Chocolatey and Scoop package lists."""
from __future__ import annotations

import json
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from services.commands import CommandRunner, format_command_detail
from services.handlers import (
    HandlerContext,
    SourceMissingError,
    raise_for_failures,
    read_json_object,
    read_json_records,
    require_records,
    write_json,
)
from settings_restore.errors import HandlerError


@dataclass
class CommandExecutionResult:
    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


class PackageManagerError(HandlerError):
    pass


class PackageManagerClient:
    """Base for thin CLI wrappers that locate their executable lazily."""

    name = ""

    def __init__(
        self,
        runner: CommandRunner,
        executable: str | None = None,
        *,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._runner = runner
        exe_path = executable or which(self.name)
        if not exe_path:
            fallback = self._find_fallback()
            exe_path = str(fallback) if fallback else None
        self._executable = exe_path

    def is_available(self) -> bool:
        return self._executable is not None

    def _find_fallback(self) -> Path | None:
        return None

    def _run(self, *args: str) -> CommandExecutionResult:
        if not self._executable:
            raise PackageManagerError(f"{self.name} executable not found in PATH")
        cmd = [self._executable, *args]
        completed = self._runner.run(cmd)
        return CommandExecutionResult(cmd, completed.returncode, completed.stdout or "", completed.stderr or "")

    def _run_checked(self, *args: str) -> CommandExecutionResult:
        result = self._run(*args)
        if not result.succeeded:
            raise PackageManagerError(f"{self.name} {args[0]} failed: {format_command_detail(result)}")
        return result


class WingetClient(PackageManagerClient):
    name = "winget"

    def export(self, destination: Path) -> CommandExecutionResult:
        destination.parent.mkdir(parents=True, exist_ok=True)
        return self._run_checked("export", "-o", str(destination), "--accept-source-agreements")

    def is_installed(self, package_id: str) -> bool:
        result = self._run("list", "--id", package_id, "--exact", "--accept-source-agreements")
        return result.succeeded and package_id.lower() in result.stdout.lower()

    def install_package(self, package_id: str, *, source: str | None = None) -> CommandExecutionResult:
        cmd = ["install", "--id", package_id, "--exact", "--silent"]
        cmd.extend(["--accept-package-agreements", "--accept-source-agreements"])
        if source:
            cmd.extend(["--source", source])
        return self._run(*cmd)

    def _find_fallback(self) -> Path | None:
        local_appdata = os.environ.get("LOCALAPPDATA")
        if local_appdata:
            candidate = Path(local_appdata) / "Microsoft" / "WindowsApps" / "winget.exe"
            if candidate.exists():
                return candidate
        return None


class ChocoClient(PackageManagerClient):
    name = "choco"
    LINE_PATTERN = re.compile(r"^([^|\s]+)\|(\S+)$")

    def list_installed(self) -> list[dict[str, str]]:
        result = self._run_checked("list", "-r")
        packages = []
        for line in result.stdout.splitlines():
            match = self.LINE_PATTERN.match(line.strip())
            if match:
                packages.append({"name": match.group(1), "version": match.group(2)})
        return packages

    def install_package(self, name: str) -> CommandExecutionResult:
        return self._run("install", name, "-y", "--no-progress")

    def _find_fallback(self) -> Path | None:
        program_data = os.environ.get("ProgramData")
        if program_data:
            candidate = Path(program_data) / "chocolatey" / "bin" / "choco.exe"
            if candidate.exists():
                return candidate
        return None


class ScoopClient(PackageManagerClient):
    name = "scoop"

    def export(self) -> dict:
        result = self._run_checked("export")
        try:
            data = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise PackageManagerError(f"scoop export returned invalid JSON: {exc}") from exc
        return data if isinstance(data, dict) else {}

    def add_bucket(self, name: str, source: str | None = None) -> CommandExecutionResult:
        args = ["bucket", "add", name]
        if source:
            args.append(source)
        return self._run(*args)

    def install_package(self, name: str) -> CommandExecutionResult:
        return self._run("install", name)

    def _find_fallback(self) -> Path | None:
        profile = os.environ.get("USERPROFILE")
        if profile:
            candidate = Path(profile) / "scoop" / "shims" / "scoop.cmd"
            if candidate.exists():
                return candidate
        return None


def _winget_package_ids(manifest: dict, path: Path) -> list[tuple[str, str | None]]:
    packages = []
    for source in require_records(manifest.get("Sources"), path, "winget source"):
        details = source.get("SourceDetails")
        source_name = details.get("Name") if isinstance(details, dict) else None
        for package in require_records(source.get("Packages"), path, "winget package"):
            package_id = package.get("PackageIdentifier")
            if package_id:
                packages.append((package_id, source_name))
    return packages


class WingetPackagesHandler:
    def __init__(self, client_factory: Callable[[CommandRunner], WingetClient] = WingetClient) -> None:
        self._client_factory = client_factory

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        client = self._client_factory(context.runner)
        client.export(destination)
        if not destination.exists():
            raise SourceMissingError("winget export produced no manifest")
        count = len(_winget_package_ids(read_json_object(destination, "a winget manifest"), destination))
        return [f"{count} winget package(s) exported"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        client = self._client_factory(context.runner)
        if not client.is_available():
            raise PackageManagerError("winget executable not found in PATH")
        details: list[str] = []
        failures: list[str] = []
        for package_id, source_name in _winget_package_ids(read_json_object(source, "a winget manifest"), source):
            if client.is_installed(package_id):
                details.append(f"{package_id}: already installed")
                continue
            result = client.install_package(package_id, source=source_name)
            if not result.succeeded:
                failures.append(f"{package_id}: {format_command_detail(result)}")
                continue
            details.append(f"{package_id}: installed")
            context.log(f"Installed {package_id}")
        raise_for_failures("winget", failures)
        return details


class ChocoPackagesHandler:
    def __init__(self, client_factory: Callable[[CommandRunner], ChocoClient] = ChocoClient) -> None:
        self._client_factory = client_factory

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        client = self._client_factory(context.runner)
        if not client.is_available():
            raise SourceMissingError("Chocolatey is not installed")
        packages = client.list_installed()
        write_json(destination, packages)
        return [f"{len(packages)} Chocolatey package(s) listed"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        client = self._client_factory(context.runner)
        if not client.is_available():
            raise PackageManagerError("choco executable not found in PATH")
        wanted = []
        for package in read_json_records(source, "Chocolatey package"):
            name = package.get("name")
            if not isinstance(name, str) or not name:
                raise HandlerError(f"{source.name}: package entry without a name")
            wanted.append(name)
        installed = {package["name"].lower() for package in client.list_installed()}
        details: list[str] = []
        failures: list[str] = []
        for name in wanted:
            if name.lower() in installed or name.lower() == "chocolatey":
                details.append(f"{name}: already installed")
                continue
            result = client.install_package(name)
            if not result.succeeded:
                failures.append(f"{name}: {format_command_detail(result)}")
                continue
            details.append(f"{name}: installed")
            context.log(f"Installed {name}")
        raise_for_failures("choco", failures)
        return details


class ScoopPackagesHandler:
    def __init__(self, client_factory: Callable[[CommandRunner], ScoopClient] = ScoopClient) -> None:
        self._client_factory = client_factory

    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        client = self._client_factory(context.runner)
        if not client.is_available():
            raise SourceMissingError("Scoop is not installed")
        data = client.export()
        write_json(destination, data)
        return [f"{len(data.get('apps') or [])} Scoop app(s) and {len(data.get('buckets') or [])} bucket(s) exported"]

    def restore(self, context: HandlerContext, source: Path) -> list[str]:
        client = self._client_factory(context.runner)
        if not client.is_available():
            raise PackageManagerError("scoop executable not found in PATH")
        data = read_json_object(source, "a Scoop export")
        current = client.export()
        known_buckets = {str(bucket.get("Name", "")).lower() for bucket in current.get("buckets") or []}
        installed = {str(app.get("Name", "")).lower() for app in current.get("apps") or []}
        details: list[str] = []
        failures: list[str] = []
        for bucket in require_records(data.get("buckets"), source, "Scoop bucket"):
            name = str(bucket.get("Name") or "")
            if not name or name.lower() in known_buckets:
                continue
            result = client.add_bucket(name, bucket.get("Source"))
            if not result.succeeded:
                failures.append(f"bucket {name}: {format_command_detail(result)}")
                continue
            details.append(f"bucket {name}: added")
        for app in require_records(data.get("apps"), source, "Scoop app"):
            name = str(app.get("Name") or "")
            if not name:
                continue
            if name.lower() in installed:
                details.append(f"{name}: already installed")
                continue
            bucket = app.get("Source")
            result = client.install_package(f"{bucket}/{name}" if bucket else name)
            if not result.succeeded:
                failures.append(f"{name}: {format_command_detail(result)}")
                continue
            details.append(f"{name}: installed")
            context.log(f"Installed {name}")
        raise_for_failures("scoop", failures)
        return details
