"""Restore engine driven by the declarative feature tables."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from services import privilege
from services.commands import CommandRunner, SubprocessRunner, run_powershell
from services.file_copy import copy_directory, copy_file
from services.handlers import FeatureHandler, HandlerContext, ProgressCallback, default_handlers
from services.registry import RegistryAccessor, WindowsRegistryAccessor
from settings_restore.constants import FeatureDefinition, Prerequisite, REGISTRY_FILE_SUFFIX, RestoreItem
from settings_restore.environment import RestoreEnvironment, resolve_environment
from settings_restore.errors import (
    BackupNotFoundError,
    CommandFailedError,
    HandlerError,
    ItemRestoreError,
    PathResolutionError,
    PrerequisiteError,
    describe_exception,
)
from settings_restore.feature_registry import get_feature
from settings_restore.user_settings import SettingsStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RestoreOptions:
    force: bool = False
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    skip_verification: bool = False
    what_if: bool = False

    @classmethod
    def build(
        cls,
        *,
        force: bool = False,
        include: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
        skip_verification: bool = False,
        what_if: bool = False,
    ) -> "RestoreOptions":
        return cls(force, tuple(include or ()), tuple(exclude or ()), skip_verification, what_if)


@dataclass(frozen=True)
class RestoreResult:
    success: bool
    backup_path: Path | None
    feature: str
    timestamp: datetime
    items_restored: tuple[str, ...] = ()
    items_skipped: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass
class RunLog:
    """Mutable accumulator for one feature run, frozen into a result at the end."""

    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    started: datetime = field(default_factory=datetime.now)

    def skip(self, item: RestoreItem, reason: str) -> None:
        self.skipped.append(f"{item.name} ({reason})")

    def to_restore_result(self, success: bool, backup_path: Path | None, feature: FeatureDefinition) -> RestoreResult:
        return RestoreResult(
            success=success,
            backup_path=backup_path,
            feature=feature.name,
            timestamp=self.started,
            items_restored=tuple(self.processed),
            items_skipped=tuple(self.skipped),
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
        )


def selection_reason(item: RestoreItem, options: RestoreOptions) -> str | None:
    """Return why *item* is filtered out by the include/exclude lists, if it is."""
    name = item.name.lower()
    if options.include and name not in {entry.lower() for entry in options.include}:
        return "not in include list"
    if name in {entry.lower() for entry in options.exclude}:
        return "in exclude list"
    return None


def registry_files(source: Path) -> list[Path]:
    if source.is_file():
        return [source] if source.suffix.lower() == REGISTRY_FILE_SUFFIX else []
    if source.is_dir():
        return sorted(path for path in source.rglob("*") if path.is_file() and path.suffix.lower() == REGISTRY_FILE_SUFFIX)
    return []


class RestoreService:
    def __init__(
        self,
        environment: RestoreEnvironment,
        *,
        command_runner: CommandRunner | None = None,
        registry_factory: Callable[[], RegistryAccessor] | None = None,
        handlers: Mapping[str, FeatureHandler] | None = None,
        env: Mapping[str, str] | None = None,
        progress_callback: ProgressCallback | None = None,
        is_admin: Callable[[], bool] = privilege.is_admin,
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
        self._is_admin = is_admin

    @property
    def environment(self) -> RestoreEnvironment:
        return self._environment

    def restore(self, feature_key: str, options: RestoreOptions | None = None) -> RestoreResult:
        options = options or RestoreOptions()
        try:
            feature = get_feature(feature_key)
            return self._restore_feature(feature, options)
        except Exception as exc:
            logger.error("Restore of %s failed\n%s", feature_key, describe_exception(exc))
            raise

    def restore_many(self, feature_keys: Sequence[str], options: RestoreOptions | None = None) -> list[RestoreResult]:
        return [self.restore(key, options) for key in feature_keys]

    def _restore_feature(self, feature: FeatureDefinition, options: RestoreOptions) -> RestoreResult:
        root = self._environment.backup_root
        if not root.is_dir():
            raise BackupNotFoundError(f"Backup root not found: {root}")
        run = RunLog()
        feature_dir = self.resolve_feature_directory(feature)
        if feature_dir is None:
            machine = self._environment.machine_path / feature.backup_folder
            shared = self._environment.shared_path / feature.backup_folder
            message = f"{feature.name} backup not found at {machine} or {shared}"
            run.errors.append(message)
            self._emit(message)
            if not options.force:
                raise BackupNotFoundError(message)
            return run.to_restore_result(False, None, feature)

        self._emit(f"Restoring {feature.name} from {feature_dir}")
        blocked_by = None
        if not options.skip_verification:
            blocked_by = self._check_prerequisites(feature.prerequisites, options, run)

        copied_targets: list[tuple[RestoreItem, Path]] = []
        for item in feature.items:
            reason = selection_reason(item, options)
            if reason:
                run.skip(item, reason)
                continue
            if blocked_by:
                run.skip(item, f"prerequisite not met: {blocked_by}")
                continue
            source = feature_dir / item.backup_path
            if not self._source_available(item, source):
                run.skip(item, "not found in backup")
                continue
            if item.kind == "info":
                self._summarize_info(item, source, run)
                run.skip(item, "informational only")
                continue
            if options.what_if:
                self._emit(f"What if: would restore {item.name} from {source}")
                run.skip(item, "what-if")
                continue
            try:
                run.processed.extend(self._restore_item(item, source))
            except Exception as exc:
                message = f"Failed to restore {item.name}: {exc}"
                run.errors.append(message)
                self._emit(message)
                if not options.force:
                    raise ItemRestoreError(feature.name, item.name, str(exc)) from exc
                continue
            if item.kind in {"file", "directory"}:
                copied_targets.append((item, self._context.expand(item.target)))

        if not options.skip_verification:
            for item, target in copied_targets:
                if not target.exists():
                    run.warnings.append(f"{item.name}: {target} missing after restore")

        self._emit(
            f"{feature.name}: {len(run.processed)} restored, {len(run.skipped)} skipped, {len(run.errors)} error(s)"
        )
        return run.to_restore_result(True, feature_dir, feature)

    def resolve_feature_directory(self, feature: FeatureDefinition) -> Path | None:
        candidates = [self._environment.machine_path / feature.backup_folder]
        if self._environment.use_shared_fallback:
            candidates.append(self._environment.shared_path / feature.backup_folder)
        for candidate in candidates:
            if candidate.is_dir():
                return candidate
        return None

    def _source_available(self, item: RestoreItem, source: Path) -> bool:
        if item.kind == "registry":
            return bool(registry_files(source))
        return source.exists()

    def _restore_item(self, item: RestoreItem, source: Path) -> list[str]:
        if item.kind == "registry":
            restored = []
            for path in registry_files(source):
                relative = path.name if path == source else "\\".join(path.relative_to(source).parts)
                self._context.reg_tool.import_file(path)
                restored.append(f"{item.name}\\{relative}")
                self._emit(f"Imported {relative}")
            return restored
        if item.kind in {"file", "directory"}:
            target = self._context.expand(item.target)
            if source.is_dir():
                count = copy_directory(source, target)
                self._emit(f"Copied {count} file(s) to {target}")
            else:
                copy_file(source, target)
                self._emit(f"Copied {source.name} to {target}")
            return [item.name]
        for line in self._handler_for(item).restore(self._context, source):
            self._emit(f"{item.name}: {line}")
        return [item.name]

    def _summarize_info(self, item: RestoreItem, source: Path, run: RunLog) -> None:
        try:
            self._handler_for(item).restore(self._context, source)
        except Exception as exc:
            logger.warning("Could not summarize %s from %s: %s", item.name, source, exc)
            run.warnings.append(f"{item.name}: {exc}")

    def _handler_for(self, item: RestoreItem) -> FeatureHandler:
        handler = self._handlers.get(item.handler)
        if handler is None:
            raise HandlerError(f"No handler registered for {item.handler}")
        return handler

    def _check_prerequisites(
        self, prerequisites: Iterable[Prerequisite], options: RestoreOptions, run: RunLog
    ) -> str | None:
        for prerequisite in prerequisites:
            met, detail = self._prerequisite_met(prerequisite)
            if met:
                continue
            message = f"Prerequisite not met: {prerequisite.name}"
            if detail:
                message = f"{message} ({detail})"
            self._emit(message)
            if prerequisite.on_missing == "warn":
                run.warnings.append(message)
            elif prerequisite.on_missing == "skip":
                run.warnings.append(message)
                return prerequisite.name
            else:
                run.errors.append(message)
                if not options.force:
                    raise PrerequisiteError(message)
        return None

    def _prerequisite_met(self, prerequisite: Prerequisite) -> tuple[bool, str]:
        if prerequisite.kind == "admin":
            return self._is_admin(), ""
        if prerequisite.kind == "path":
            try:
                path = self._context.expand(prerequisite.target)
            except PathResolutionError as exc:
                return False, str(exc)
            return path.exists(), "" if path.exists() else f"{path} missing"
        if prerequisite.kind == "script":
            try:
                output = (run_powershell(self._context.runner, prerequisite.target).stdout or "").strip()
            except (CommandFailedError, OSError) as exc:
                return False, str(exc)
            if prerequisite.expected_output.lower() in output.lower():
                return True, ""
            return False, output or "no output"
        try:
            return self._context.registry.key_exists(prerequisite.target), ""
        except (OSError, RuntimeError, ValueError) as exc:
            return False, str(exc)

    def _emit(self, message: str) -> None:
        logger.debug(message)
        if self._progress_callback:
            self._progress_callback(message)


def restore_settings(
    feature: str,
    backup_root: str | Path | None = None,
    *,
    machine_name: str | None = None,
    force: bool = False,
    include: Iterable[str] | None = None,
    exclude: Iterable[str] | None = None,
    skip_verification: bool = False,
    what_if: bool = False,
    command_runner: CommandRunner | None = None,
    registry_factory: Callable[[], RegistryAccessor] | None = None,
    progress_callback: ProgressCallback | None = None,
) -> RestoreResult:
    """Restore one feature without building a service by hand.

    The backup root and machine name follow the usual resolution order:
    explicit argument, environment variable, saved user settings.
    """
    environment = resolve_environment(backup_root, machine_name, settings=SettingsStore().load())
    service = RestoreService(
        environment,
        command_runner=command_runner,
        registry_factory=registry_factory,
        progress_callback=progress_callback,
    )
    options = RestoreOptions.build(
        force=force, include=include, exclude=exclude, skip_verification=skip_verification, what_if=what_if
    )
    return service.restore(feature, options)
