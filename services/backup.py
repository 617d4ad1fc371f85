"""Backup engine: the inverse of the restore engine over the same tables."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping, Sequence

from services.commands import CommandRunner, SubprocessRunner
from services.file_copy import copy_directory, copy_file
from services.handlers import FeatureHandler, HandlerContext, ProgressCallback, SourceMissingError, default_handlers
from services.registry import RegistryAccessor, WindowsRegistryAccessor, registry_key_filename
from services.restore import RestoreOptions, RunLog, selection_reason
from settings_restore.constants import FeatureDefinition, RestoreItem
from settings_restore.environment import RestoreEnvironment
from settings_restore.errors import BackupNotFoundError, HandlerError, ItemRestoreError, describe_exception
from settings_restore.feature_registry import get_feature

logger = logging.getLogger(__name__)

NOT_ON_SYSTEM = "not found on system"


@dataclass(frozen=True)
class BackupResult:
    success: bool
    backup_path: Path
    feature: str
    timestamp: datetime
    items_backed_up: tuple[str, ...] = ()
    items_skipped: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class BackupService:
    def __init__(
        self,
        environment: RestoreEnvironment,
        *,
        command_runner: CommandRunner | None = None,
        registry_factory: Callable[[], RegistryAccessor] | None = None,
        handlers: Mapping[str, FeatureHandler] | None = None,
        env: Mapping[str, str] | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._environment = environment
        self._progress_callback = progress_callback
        self._context = HandlerContext(
            command_runner or SubprocessRunner(),
            registry_factory or WindowsRegistryAccessor,
            env,
            progress_callback,
        )
        self._handlers = dict(handlers) if handlers is not None else default_handlers()

    def backup(self, feature_key: str, options: RestoreOptions | None = None) -> BackupResult:
        options = options or RestoreOptions()
        try:
            feature = get_feature(feature_key)
            return self._backup_feature(feature, options)
        except Exception as exc:
            logger.error("Backup of %s failed\n%s", feature_key, describe_exception(exc))
            raise

    def backup_many(self, feature_keys: Sequence[str], options: RestoreOptions | None = None) -> list[BackupResult]:
        return [self.backup(key, options) for key in feature_keys]

    def _backup_feature(self, feature: FeatureDefinition, options: RestoreOptions) -> BackupResult:
        root = self._environment.backup_root
        if not root.is_dir():
            raise BackupNotFoundError(f"Backup root not found: {root}")
        feature_dir = self._environment.machine_path / feature.backup_folder
        run = RunLog()
        self._emit(f"Backing up {feature.name} to {feature_dir}")
        for item in feature.items:
            reason = selection_reason(item, options)
            if reason:
                run.skip(item, reason)
                continue
            if options.what_if:
                self._emit(f"What if: would back up {item.name} to {feature_dir / item.backup_path}")
                run.skip(item, "what-if")
                continue
            try:
                run.processed.extend(self._backup_item(item, feature_dir / item.backup_path))
            except SourceMissingError as exc:
                self._emit(f"{item.name}: {exc}")
                run.skip(item, NOT_ON_SYSTEM)
            except Exception as exc:
                message = f"Failed to back up {item.name}: {exc}"
                run.errors.append(message)
                self._emit(message)
                if not options.force:
                    raise ItemRestoreError(feature.name, item.name, str(exc)) from exc
        self._emit(
            f"{feature.name}: {len(run.processed)} backed up, {len(run.skipped)} skipped, {len(run.errors)} error(s)"
        )
        return BackupResult(
            success=True,
            backup_path=feature_dir,
            feature=feature.name,
            timestamp=run.started,
            items_backed_up=tuple(run.processed),
            items_skipped=tuple(run.skipped),
            errors=tuple(run.errors),
            warnings=tuple(run.warnings),
        )

    def _backup_item(self, item: RestoreItem, destination: Path) -> list[str]:
        if item.kind == "registry":
            exported = []
            for key in item.registry_keys:
                if not self._context.registry.key_exists(key):
                    continue
                filename = registry_key_filename(key)
                self._context.reg_tool.export_key(key, destination / filename)
                exported.append(f"{item.name}\\{filename}")
            if not exported:
                raise SourceMissingError("no registry keys present")
            return exported
        if item.kind in {"file", "directory"}:
            source = self._context.expand(item.target)
            if not source.exists():
                raise SourceMissingError(f"{source} does not exist")
            if source.is_dir():
                copy_directory(source, destination)
            else:
                copy_file(source, destination)
            return [item.name]
        handler = self._handlers.get(item.handler)
        if handler is None:
            raise HandlerError(f"No handler registered for {item.handler}")
        for line in handler.backup(self._context, destination):
            self._emit(f"{item.name}: {line}")
        return [item.name]

    def _emit(self, message: str) -> None:
        logger.debug(message)
        if self._progress_callback:
            self._progress_callback(message)
