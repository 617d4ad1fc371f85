"""Immutable descriptors shared by the feature tables and the restore engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

ITEM_KINDS = ("registry", "file", "directory", "handler", "info")
PREREQUISITE_KINDS = ("registry_key", "path", "admin", "script")
ON_MISSING_ACTIONS = ("warn", "fail", "skip")

SHARED_MACHINE_NAME = "shared"
BACKUP_ROOT_ENV = "BACKUP_ROOT"
MACHINE_NAME_ENV = "MACHINE_NAME"
APP_DIRECTORY_NAME = "WindowsSettingsRestore"

EXCLUDED_COPY_PATTERNS = ("*.tmp", "*.temp", "*.bak", "*.old", "~$*", "Thumbs.db", "desktop.ini")
REGISTRY_FILE_SUFFIX = ".reg"


@dataclass(frozen=True)
class RegistrySetting:
    path: str
    value_name: str
    value_type: str = "REG_DWORD"


@dataclass(frozen=True)
class Prerequisite:
    name: str
    kind: str
    target: str = ""
    on_missing: str = "warn"
    expected_output: str = ""

    def __post_init__(self) -> None:
        if self.kind not in PREREQUISITE_KINDS:
            raise ValueError(f"Unsupported prerequisite kind: {self.kind}")
        if self.kind == "script" and not (self.target and self.expected_output):
            raise ValueError(f"{self.name}: script prerequisites need a script and its expected output")
        if self.on_missing not in ON_MISSING_ACTIONS:
            raise ValueError(f"Unsupported on_missing action: {self.on_missing}")


@dataclass(frozen=True)
class RestoreItem:
    name: str
    backup_path: str
    description: str
    kind: str
    target: str = ""
    registry_keys: Tuple[str, ...] = ()
    handler: str = ""

    def __post_init__(self) -> None:
        if self.kind not in ITEM_KINDS:
            raise ValueError(f"Unsupported item kind for {self.name}: {self.kind}")
        if self.kind in {"file", "directory"} and not self.target:
            raise ValueError(f"{self.name}: {self.kind} items need a target path")
        if self.kind in {"handler", "info"} and not self.handler:
            raise ValueError(f"{self.name}: {self.kind} items need a handler")


@dataclass(frozen=True)
class FeatureDefinition:
    key: str
    name: str
    backup_folder: str
    description: str
    items: Tuple[RestoreItem, ...]
    prerequisites: Tuple[Prerequisite, ...] = field(default_factory=tuple)

    def item_names(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.items)
