"""Process execution seam shared by every service that shells out."""
from __future__ import annotations

import json
import subprocess
from typing import Any, Protocol, Sequence

from settings_restore.errors import CommandFailedError

POWERSHELL = ("powershell", "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command")


class CommandRunner(Protocol):
    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:  # pragma: no cover - protocol
        ...


class SubprocessRunner:
    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(list(command), capture_output=True, text=True, check=False)


class CommandOutcome(Protocol):
    returncode: int
    stdout: str | None
    stderr: str | None


def format_command_detail(completed: CommandOutcome) -> str:
    detail_parts = [f"exit={completed.returncode}"]
    stdout = (completed.stdout or "").strip()
    stderr = (completed.stderr or "").strip()
    if stdout:
        detail_parts.append(f"stdout: {stdout}")
    if stderr:
        detail_parts.append(f"stderr: {stderr}")
    return ", ".join(detail_parts)


def ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def powershell_command(script: str) -> list[str]:
    return [*POWERSHELL, script]


def run_checked(runner: CommandRunner, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
    completed = runner.run(command)
    if completed.returncode != 0:
        raise CommandFailedError(
            command,
            completed.returncode,
            completed.stdout or "",
            completed.stderr or "",
            detail=format_command_detail(completed),
        )
    return completed


def run_powershell(runner: CommandRunner, script: str) -> subprocess.CompletedProcess[str]:
    return run_checked(runner, powershell_command(script))


def run_powershell_json(runner: CommandRunner, script: str, *, depth: int = 4) -> list[dict[str, Any]]:
    """Run *script* piped through ``ConvertTo-Json`` and return a list of objects.

    PowerShell emits a bare object when the pipeline yields one item and
    nothing at all when it yields none; both are normalised to a list.
    """
    completed = run_powershell(runner, f"{script} | ConvertTo-Json -Depth {depth} -Compress")
    output = (completed.stdout or "").strip()
    if not output:
        return []
    try:
        data = json.loads(output)
    except json.JSONDecodeError as exc:
        raise CommandFailedError(
            powershell_command(script), completed.returncode, output, detail=f"invalid JSON: {exc}"
        ) from exc
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [entry for entry in data if isinstance(entry, dict)]
    return []
