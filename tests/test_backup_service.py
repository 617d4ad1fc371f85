from __future__ import annotations

import json
from pathlib import Path

import pytest

from fakes import FakeRegistry, FakeRunner
from services.backup import BackupService
from services.handlers import HandlerContext
from services.restore import RestoreOptions
from settings_restore.environment import RestoreEnvironment
from settings_restore.errors import BackupNotFoundError, HandlerError, ItemRestoreError

EXCEL_KEY = r"HKCU\Software\Microsoft\Office\16.0\Excel"


class ExplodingHandler:
    def backup(self, context: HandlerContext, destination: Path) -> list[str]:
        raise HandlerError("device query failed")

    def restore(self, context: HandlerContext, source: Path) -> list[str]:  # pragma: no cover - unused
        return []


@pytest.fixture
def backup_root(tmp_path: Path) -> Path:
    root = tmp_path / "backups"
    root.mkdir()
    return root


@pytest.fixture
def env(tmp_path: Path) -> dict[str, str]:
    home = tmp_path / "home"
    return {"APPDATA": str(home / "AppData" / "Roaming"), "USERPROFILE": str(home)}


def make_service(
    root: Path,
    env: dict[str, str],
    runner: FakeRunner | None = None,
    registry: FakeRegistry | None = None,
    handlers: dict | None = None,
) -> BackupService:
    registry = registry or FakeRegistry()
    return BackupService(
        RestoreEnvironment(root, "PC1"),
        command_runner=runner or FakeRunner(),
        registry_factory=lambda: registry,
        handlers=handlers,
        env=env,
    )


def test_registry_export_only_for_existing_keys(backup_root: Path, env: dict[str, str]) -> None:
    runner = FakeRunner()
    service = make_service(backup_root, env, runner, FakeRegistry(keys={EXCEL_KEY}))

    result = service.backup("excel", RestoreOptions(include=("Registry",)))

    destination = backup_root / "PC1" / "Excel" / "Registry" / "HKCU_Software_Microsoft_Office_16.0_Excel.reg"
    assert result.items_backed_up == ("Registry\\HKCU_Software_Microsoft_Office_16.0_Excel.reg",)
    assert runner.commands == [("reg", "export", EXCEL_KEY, str(destination), "/y")]
    assert result.backup_path == backup_root / "PC1" / "Excel"


def test_registry_item_without_keys_is_skipped(backup_root: Path, env: dict[str, str]) -> None:
    runner = FakeRunner()

    result = make_service(backup_root, env, runner).backup("excel", RestoreOptions(include=("Registry",)))

    assert result.items_backed_up == ()
    assert result.items_skipped[0] == "Registry (not found on system)"
    assert runner.commands == []


def test_directory_backup_copies_target_into_machine_folder(backup_root: Path, env: dict[str, str]) -> None:
    xlstart = Path(env["APPDATA"]) / "Microsoft" / "Excel" / "XLSTART"
    xlstart.mkdir(parents=True)
    (xlstart / "Personal.xlsb").write_text("macros", encoding="utf-8")
    (xlstart / "~$Personal.xlsb").write_text("lock", encoding="utf-8")

    result = make_service(backup_root, env).backup("excel", RestoreOptions(include=("XLSTART",)))

    copied = backup_root / "PC1" / "Excel" / "XLSTART"
    assert result.items_backed_up == ("XLSTART",)
    assert (copied / "Personal.xlsb").read_text(encoding="utf-8") == "macros"
    assert not (copied / "~$Personal.xlsb").exists()


def test_missing_targets_are_skipped_as_not_on_system(backup_root: Path, env: dict[str, str]) -> None:
    result = make_service(backup_root, env).backup("excel")

    assert result.success is True
    assert result.items_backed_up == ()
    assert "Templates (not found on system)" in result.items_skipped
    assert "AppData (not found on system)" in result.items_skipped


def test_backup_requires_existing_root(tmp_path: Path, env: dict[str, str]) -> None:
    with pytest.raises(BackupNotFoundError):
        make_service(tmp_path / "missing", env).backup("excel")


def test_handler_values_are_written_as_json(backup_root: Path, env: dict[str, str]) -> None:
    advanced = r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced"
    registry = FakeRegistry(values={(advanced, "HideFileExt"): 0, (advanced, "Hidden"): 1})

    result = make_service(backup_root, env, registry=registry).backup(
        "explorer", RestoreOptions(include=("Explorer Values",))
    )

    saved = json.loads((backup_root / "PC1" / "Explorer" / "explorer_values.json").read_text(encoding="utf-8"))
    assert result.items_backed_up == ("Explorer Values",)
    assert {entry["name"]: entry["value"] for entry in saved} == {"HideFileExt": 0, "Hidden": 1}


def test_handler_failure_with_force_is_recorded(backup_root: Path, env: dict[str, str]) -> None:
    service = make_service(backup_root, env, handlers={"touchpad_devices": ExplodingHandler()})

    result = service.backup("touchpad", RestoreOptions(force=True, include=("Devices",)))

    assert result.success is True
    assert result.errors == ("Failed to back up Devices: device query failed",)


def test_handler_failure_without_force_raises(backup_root: Path, env: dict[str, str]) -> None:
    service = make_service(backup_root, env, handlers={"touchpad_devices": ExplodingHandler()})

    with pytest.raises(ItemRestoreError, match="device query failed"):
        service.backup("touchpad", RestoreOptions(include=("Devices",)))


def test_what_if_writes_nothing(backup_root: Path, env: dict[str, str]) -> None:
    runner = FakeRunner()
    service = make_service(backup_root, env, runner, FakeRegistry(keys={EXCEL_KEY}))

    result = service.backup("excel", RestoreOptions(what_if=True))

    assert result.items_backed_up == ()
    assert all(entry.endswith("(what-if)") for entry in result.items_skipped)
    assert runner.commands == []
    assert not (backup_root / "PC1").exists()


def test_unresolved_target_variable_is_recorded_under_force(
    backup_root: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    result = make_service(backup_root, {}).backup("keepassxc", RestoreOptions(force=True))

    assert result.items_backed_up == ()
    assert result.items_skipped == ("Registry (not found on system)",)
    assert result.errors == ("Failed to back up Config: Cannot expand %APPDATA%/KeePassXC: %APPDATA% not set",)
    assert list(workdir.iterdir()) == []
