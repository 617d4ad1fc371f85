"""Backup location and machine identity resolution."""
from __future__ import annotations

import os
import re
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from settings_restore.constants import BACKUP_ROOT_ENV, MACHINE_NAME_ENV, SHARED_MACHINE_NAME
from settings_restore.errors import PathResolutionError
from settings_restore.user_settings import UserSettings

ENV_VAR_PATTERN = re.compile(r"%([A-Za-z_][A-Za-z0-9_()]*)%")


@dataclass(frozen=True)
class RestoreEnvironment:
    backup_root: Path
    machine_name: str
    use_shared_fallback: bool = True

    @property
    def machine_path(self) -> Path:
        return self.backup_root / self.machine_name

    @property
    def shared_path(self) -> Path:
        return self.backup_root / SHARED_MACHINE_NAME


def resolve_machine_name(
    explicit: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    settings: UserSettings | None = None,
) -> str:
    environ = os.environ if env is None else env
    for candidate in (
        explicit,
        environ.get(MACHINE_NAME_ENV),
        settings.machine_name if settings else None,
        environ.get("COMPUTERNAME"),
    ):
        if candidate and candidate.strip():
            return candidate.strip()
    return socket.gethostname()


def resolve_environment(
    backup_root: str | Path | None = None,
    machine_name: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    settings: UserSettings | None = None,
) -> RestoreEnvironment:
    """Combine explicit arguments, environment variables and saved settings.

    Explicit arguments win, then ``BACKUP_ROOT``/``MACHINE_NAME``, then the
    user's saved settings. A backup root is mandatory; the machine name
    falls back to ``COMPUTERNAME`` and finally the host name.
    """
    environ = os.environ if env is None else env
    root_value = backup_root or environ.get(BACKUP_ROOT_ENV) or (settings.backup_root if settings else "")
    if not root_value:
        raise ValueError(f"No backup root given; pass one explicitly or set {BACKUP_ROOT_ENV}")
    name = resolve_machine_name(machine_name, env=environ, settings=settings)
    use_shared = settings.use_shared_fallback if settings else True
    return RestoreEnvironment(Path(root_value), name, use_shared)


def expand_path(template: str, env: Mapping[str, str] | None = None) -> Path:
    """Expand ``%VAR%`` references (case-insensitive) into an absolute path.

    Raises :class:`PathResolutionError` when a variable is unset or empty, or
    when the expanded path is still relative.
    """
    environ = os.environ if env is None else env
    lowered = {key.lower(): value for key, value in environ.items()}
    missing: list[str] = []

    def replace(match: re.Match[str]) -> str:
        value = lowered.get(match.group(1).lower())
        if not value:
            missing.append(match.group(0))
            return match.group(0)
        return value

    expanded = ENV_VAR_PATTERN.sub(replace, template)
    if missing:
        raise PathResolutionError(f"Cannot expand {template}: {', '.join(missing)} not set")
    path = Path(expanded)
    if not path.is_absolute():
        raise PathResolutionError(f"{template} does not expand to an absolute path: {expanded}")
    return path
