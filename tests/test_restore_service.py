from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from fakes import FakeRegistry, FakeRunner
from services import restore as restore_module
from services.restore import RestoreOptions, RestoreService, restore_settings
from settings_restore.constants import FeatureDefinition, Prerequisite, RestoreItem
from settings_restore.environment import RestoreEnvironment
from settings_restore.errors import BackupNotFoundError, ItemRestoreError, PrerequisiteError, UnknownFeatureError

OFFICE_KEY = r"HKCU\Software\Microsoft\Office"
EXCEL_MISSING = (
    "AppData (not found in backup)",
    "Templates (not found in backup)",
    "XLSTART (not found in backup)",
    "AddIns (not found in backup)",
    "Recent (not found in backup)",
)


@pytest.fixture
def backup_root(tmp_path: Path) -> Path:
    root = tmp_path / "backups"
    root.mkdir()
    return root


@pytest.fixture
def env(tmp_path: Path) -> dict[str, str]:
    home = tmp_path / "home"
    return {
        "APPDATA": str(home / "AppData" / "Roaming"),
        "LOCALAPPDATA": str(home / "AppData" / "Local"),
        "USERPROFILE": str(home),
        "USERNAME": "tester",
    }


def make_service(
    root: Path,
    env: dict[str, str],
    runner: FakeRunner | None = None,
    registry: FakeRegistry | None = None,
    *,
    is_admin: bool = True,
    progress: list[str] | None = None,
) -> RestoreService:
    registry = registry or FakeRegistry(keys={OFFICE_KEY})
    return RestoreService(
        RestoreEnvironment(root, "PC1"),
        command_runner=runner or FakeRunner(),
        registry_factory=lambda: registry,
        env=env,
        progress_callback=progress.append if progress is not None else None,
        is_admin=lambda: is_admin,
    )


def write_excel_registry(root: Path, machine: str = "PC1") -> Path:
    path = root / machine / "Excel" / "Registry" / "Excel.reg"
    path.parent.mkdir(parents=True)
    path.write_text("Windows Registry Editor Version 5.00\n", encoding="utf-8")
    return path


def test_excel_registry_only_backup_restores_single_file(backup_root: Path, env: dict[str, str]) -> None:
    reg_file = write_excel_registry(backup_root)
    runner = FakeRunner()
    service = make_service(backup_root, env, runner)

    result = service.restore("excel")

    assert result.success is True
    assert result.feature == "Excel"
    assert result.backup_path == backup_root / "PC1" / "Excel"
    assert result.items_restored == ("Registry\\Excel.reg",)
    assert result.items_skipped == EXCEL_MISSING
    assert result.errors == ()
    assert result.warnings == ()
    assert runner.commands == [("reg", "import", str(reg_file))]


def test_nested_registry_files_report_relative_paths(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)
    nested = backup_root / "PC1" / "Excel" / "Registry" / "Security" / "TrustCenter.reg"
    nested.parent.mkdir()
    nested.write_text("", encoding="utf-8")

    result = make_service(backup_root, env).restore("excel", RestoreOptions(include=("Registry",)))

    assert result.items_restored == ("Registry\\Excel.reg", "Registry\\Security\\TrustCenter.reg")


def test_include_list_limits_processing(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)
    (backup_root / "PC1" / "Excel" / "Templates").mkdir()

    result = make_service(backup_root, env).restore("excel", RestoreOptions(include=("registry",)))

    assert result.items_restored == ("Registry\\Excel.reg",)
    assert result.items_skipped == tuple(
        f"{name} (not in include list)" for name in ("AppData", "Templates", "XLSTART", "AddIns", "Recent")
    )


def test_excluded_item_is_never_touched(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)
    runner = FakeRunner()

    result = make_service(backup_root, env, runner).restore("excel", RestoreOptions(exclude=("Registry",)))

    assert result.items_skipped[0] == "Registry (in exclude list)"
    assert result.items_restored == ()
    assert runner.commands == []


def test_restore_is_idempotent(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)
    service = make_service(backup_root, env)

    first = service.restore("excel")
    second = service.restore("excel")

    assert first.items_restored == second.items_restored
    assert first.items_skipped == second.items_skipped


def test_missing_feature_backup_raises_without_force(backup_root: Path, env: dict[str, str]) -> None:
    with pytest.raises(BackupNotFoundError, match="Excel backup not found"):
        make_service(backup_root, env).restore("excel")


def test_missing_feature_backup_with_force_returns_failed_result(backup_root: Path, env: dict[str, str]) -> None:
    result = make_service(backup_root, env).restore("excel", RestoreOptions(force=True))

    assert result.success is False
    assert result.backup_path is None
    assert len(result.errors) == 1
    assert "not found" in result.errors[0]
    assert str(backup_root / "PC1" / "Excel") in result.errors[0]
    assert str(backup_root / "shared" / "Excel") in result.errors[0]


def test_missing_backup_root_is_fatal_even_with_force(tmp_path: Path, env: dict[str, str]) -> None:
    service = make_service(tmp_path / "absent", env)

    with pytest.raises(BackupNotFoundError, match="Backup root not found"):
        service.restore("excel", RestoreOptions(force=True))


def test_shared_backup_is_used_when_machine_backup_missing(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root, machine="shared")

    result = make_service(backup_root, env).restore("excel")

    assert result.backup_path == backup_root / "shared" / "Excel"
    assert result.items_restored == ("Registry\\Excel.reg",)


def test_machine_backup_wins_over_shared(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)
    write_excel_registry(backup_root, machine="shared")

    result = make_service(backup_root, env).restore("excel")

    assert result.backup_path == backup_root / "PC1" / "Excel"


def test_shared_fallback_can_be_disabled(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root, machine="shared")
    service = RestoreService(
        RestoreEnvironment(backup_root, "PC1", use_shared_fallback=False),
        command_runner=FakeRunner(),
        registry_factory=lambda: FakeRegistry(keys={OFFICE_KEY}),
        env=env,
    )

    with pytest.raises(BackupNotFoundError):
        service.restore("excel")


def test_reg_failure_with_force_records_error_and_succeeds(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)
    runner = FakeRunner([("reg import", 1, "ERROR: Access is denied.")])

    result = make_service(backup_root, env, runner).restore("excel", RestoreOptions(force=True))

    assert result.success is True
    assert result.items_restored == ()
    assert result.errors == ("Failed to restore Registry: reg failed: exit=1, stderr: ERROR: Access is denied.",)
    assert result.items_skipped == EXCEL_MISSING


def test_reg_failure_without_force_raises(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)
    runner = FakeRunner([("reg import", 1, "ERROR: Access is denied.")])

    with pytest.raises(ItemRestoreError, match="Registry") as excinfo:
        make_service(backup_root, env, runner).restore("excel")

    assert excinfo.value.feature == "Excel"
    assert excinfo.value.item == "Registry"


def test_what_if_reports_without_mutating(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)
    runner = FakeRunner()
    progress: list[str] = []

    result = make_service(backup_root, env, runner, progress=progress).restore("excel", RestoreOptions(what_if=True))

    assert result.items_restored == ()
    assert result.items_skipped[0] == "Registry (what-if)"
    assert runner.commands == []
    assert any(message.startswith("What if: would restore Registry") for message in progress)


def test_directory_copy_skips_temporary_files(backup_root: Path, env: dict[str, str]) -> None:
    source = backup_root / "PC1" / "Excel" / "AppData"
    (source / "sub").mkdir(parents=True)
    (source / "Book.xlsx").write_text("book", encoding="utf-8")
    (source / "~$Book.xlsx").write_text("lock", encoding="utf-8")
    (source / "scratch.tmp").write_text("tmp", encoding="utf-8")
    (source / "sub" / "Thumbs.db").write_text("thumbs", encoding="utf-8")
    (source / "sub" / "custom.xlsm").write_text("macro", encoding="utf-8")
    target = Path(env["APPDATA"]) / "Microsoft" / "Excel"
    target.mkdir(parents=True)
    (target / "Book.xlsx").write_text("old", encoding="utf-8")

    result = make_service(backup_root, env).restore("excel", RestoreOptions(include=("AppData",)))

    assert result.items_restored == ("AppData",)
    assert result.warnings == ()
    assert (target / "Book.xlsx").read_text(encoding="utf-8") == "book"
    assert (target / "sub" / "custom.xlsm").exists()
    assert not (target / "~$Book.xlsx").exists()
    assert not (target / "scratch.tmp").exists()
    assert not (target / "sub" / "Thumbs.db").exists()


def test_file_item_is_copied_to_expanded_target(backup_root: Path, env: dict[str, str]) -> None:
    source = backup_root / "PC1" / "RDP" / "Default.rdp"
    source.parent.mkdir(parents=True)
    source.write_text("full address:s:host", encoding="utf-8")

    result = make_service(backup_root, env).restore("rdp-client")

    target = Path(env["USERPROFILE"]) / "Documents" / "Default.rdp"
    assert result.items_restored == ("Default Connection",)
    assert result.items_skipped == ("Registry (not found in backup)",)
    assert target.read_text(encoding="utf-8") == "full address:s:host"


def test_informational_items_are_summarised_not_applied(backup_root: Path, env: dict[str, str]) -> None:
    inventory = backup_root / "PC1" / "Drivers" / "drivers.json"
    inventory.parent.mkdir(parents=True)
    inventory.write_text(json.dumps({"drivers": [{"DeviceName": "A"}, {"DeviceName": "B"}]}), encoding="utf-8")
    runner = FakeRunner()
    progress: list[str] = []

    result = make_service(backup_root, env, runner, progress=progress).restore("drivers")

    assert result.items_restored == ()
    assert result.items_skipped == ("Driver List (informational only)",)
    assert runner.commands == []
    assert "2 drivers recorded" in progress


def test_unmet_warn_prerequisite_records_warning(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)

    result = make_service(backup_root, env, registry=FakeRegistry()).restore("excel")

    assert result.warnings == ("Prerequisite not met: Office installed",)
    assert result.items_restored == ("Registry\\Excel.reg",)


def test_skip_verification_bypasses_prerequisites(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)

    def broken_registry() -> FakeRegistry:
        raise RuntimeError("winreg not available on this platform")

    service = RestoreService(
        RestoreEnvironment(backup_root, "PC1"),
        command_runner=FakeRunner(),
        registry_factory=broken_registry,
        env=env,
    )

    verified = service.restore("excel")
    skipped = service.restore("excel", RestoreOptions(skip_verification=True))

    assert verified.warnings == ("Prerequisite not met: Office installed (winreg not available on this platform)",)
    assert skipped.warnings == ()
    assert skipped.items_restored == ("Registry\\Excel.reg",)


def test_admin_prerequisite_warns_and_handler_runs(backup_root: Path, env: dict[str, str]) -> None:
    manifest = backup_root / "PC1" / "WindowsCapabilities" / "capabilities.json"
    manifest.parent.mkdir(parents=True)
    manifest.write_text(json.dumps([{"Name": "OpenSSH.Client~~~~0.0.1.0", "State": "Installed"}]), encoding="utf-8")
    runner = FakeRunner([("Get-WindowsCapability", 0, "[]")])

    result = make_service(backup_root, env, runner, is_admin=False).restore("windows-capabilities")

    assert result.warnings == ("Prerequisite not met: Administrative privileges",)
    assert result.items_restored == ("Capabilities",)
    assert any("Add-WindowsCapability -Online -Name 'OpenSSH.Client~~~~0.0.1.0'" in line for line in runner.joined())


def test_restore_many_with_force_continues_past_missing_feature(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)

    results = make_service(backup_root, env).restore_many(["excel", "ssh"], RestoreOptions(force=True))

    assert [result.feature for result in results] == ["Excel", "SSH"]
    assert results[0].success is True
    assert results[1].success is False


def test_restore_many_without_force_stops_at_first_failure(backup_root: Path, env: dict[str, str]) -> None:
    write_excel_registry(backup_root)

    with pytest.raises(BackupNotFoundError, match="SSH"):
        make_service(backup_root, env).restore_many(["excel", "ssh", "vpn"])


def test_unknown_feature_raises(backup_root: Path, env: dict[str, str]) -> None:
    with pytest.raises(UnknownFeatureError):
        make_service(backup_root, env).restore("fax-settings")


def test_failures_are_logged_with_diagnostics(
    backup_root: Path, env: dict[str, str], caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.ERROR, logger="services.restore"):
        with pytest.raises(BackupNotFoundError):
            make_service(backup_root, env).restore("excel")

    assert "Restore of excel failed" in caplog.text
    assert "Exception type: settings_restore.errors.BackupNotFoundError" in caplog.text
    assert "Stack trace:" in caplog.text


def test_restore_settings_library_entry_point(
    backup_root: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("APPDATA", str(tmp_path / "appdata"))
    write_excel_registry(backup_root)
    runner = FakeRunner()

    result = restore_settings(
        "excel",
        backup_root,
        machine_name="PC1",
        include=["Registry"],
        command_runner=runner,
        registry_factory=lambda: FakeRegistry(keys={OFFICE_KEY}),
    )

    assert result.items_restored == ("Registry\\Excel.reg",)
    assert runner.commands[0][:2] == ("reg", "import")


def write_driver_inventory(root: Path, content: bytes) -> None:
    inventory = root / "PC1" / "Drivers" / "drivers.json"
    inventory.parent.mkdir(parents=True)
    inventory.write_bytes(content)


def test_undecodable_info_file_becomes_warning_under_force(backup_root: Path, env: dict[str, str]) -> None:
    write_driver_inventory(backup_root, b"\xff\xfe\xfa")

    result = make_service(backup_root, env).restore("drivers", RestoreOptions(force=True))

    assert result.success is True
    assert result.errors == ()
    assert result.items_skipped == ("Driver List (informational only)",)
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("Driver List: drivers.json is not UTF-8 text")


def test_malformed_info_section_becomes_warning(backup_root: Path, env: dict[str, str]) -> None:
    write_driver_inventory(backup_root, json.dumps({"drivers": 5}).encode("utf-8"))

    result = make_service(backup_root, env).restore("drivers")

    assert result.success is True
    assert result.warnings == ("Driver List: drivers.json: section drivers is not a list",)


def write_keepassxc_config(root: Path) -> None:
    config = root / "PC1" / "KeePassXC" / "Config" / "keepassxc.ini"
    config.parent.mkdir(parents=True)
    config.write_text("[General]\n", encoding="utf-8")


def test_unresolved_target_variable_is_an_item_error(
    backup_root: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    write_keepassxc_config(backup_root)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    result = make_service(backup_root, {}).restore("keepassxc", RestoreOptions(force=True))

    assert result.items_restored == ()
    assert result.errors == ("Failed to restore Config: Cannot expand %APPDATA%/KeePassXC: %APPDATA% not set",)
    assert list(workdir.iterdir()) == []


def test_unresolved_target_variable_without_force_raises(backup_root: Path) -> None:
    write_keepassxc_config(backup_root)

    with pytest.raises(ItemRestoreError, match="%APPDATA% not set"):
        make_service(backup_root, {}).restore("keepassxc")


def use_feature(monkeypatch: pytest.MonkeyPatch, feature: FeatureDefinition) -> None:
    monkeypatch.setattr(restore_module, "get_feature", lambda _key: feature)


def gated_feature(*prerequisites: Prerequisite) -> FeatureDefinition:
    return FeatureDefinition(
        key="gated",
        name="Gated",
        backup_folder="Gated",
        description="Feature guarded by prerequisites",
        items=(
            RestoreItem("Registry", "Registry", "Gated registry settings", "registry"),
            RestoreItem("Config", "Config", "Gated config", "directory", target="%APPDATA%/Gated"),
        ),
        prerequisites=prerequisites,
    )


def write_gated_backup(root: Path) -> None:
    registry = root / "PC1" / "Gated" / "Registry" / "Gated.reg"
    registry.parent.mkdir(parents=True)
    registry.write_text("Windows Registry Editor Version 5.00\n", encoding="utf-8")
    config = root / "PC1" / "Gated" / "Config" / "settings.ini"
    config.parent.mkdir(parents=True)
    config.write_text("x=1\n", encoding="utf-8")


def test_skip_prerequisite_skips_every_item(
    backup_root: Path, env: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    write_gated_backup(backup_root)
    use_feature(monkeypatch, gated_feature(Prerequisite("Gated app", "registry_key", r"HKCU\Software\Gated", "skip")))
    runner = FakeRunner()

    result = make_service(backup_root, env, runner, FakeRegistry()).restore("gated")

    assert result.success is True
    assert result.items_restored == ()
    assert result.items_skipped == (
        "Registry (prerequisite not met: Gated app)",
        "Config (prerequisite not met: Gated app)",
    )
    assert result.warnings == ("Prerequisite not met: Gated app",)
    assert runner.commands == []


def test_fail_prerequisite_raises_without_force(
    backup_root: Path, env: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    write_gated_backup(backup_root)
    use_feature(monkeypatch, gated_feature(Prerequisite("Gated app", "registry_key", r"HKCU\Software\Gated", "fail")))
    runner = FakeRunner()

    with pytest.raises(PrerequisiteError, match="Gated app"):
        make_service(backup_root, env, runner, FakeRegistry()).restore("gated")
    assert runner.commands == []


def test_fail_prerequisite_with_force_records_error_and_continues(
    backup_root: Path, env: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    write_gated_backup(backup_root)
    use_feature(monkeypatch, gated_feature(Prerequisite("Gated app", "registry_key", r"HKCU\Software\Gated", "fail")))

    result = make_service(backup_root, env, registry=FakeRegistry()).restore("gated", RestoreOptions(force=True))

    assert result.success is True
    assert result.errors == ("Prerequisite not met: Gated app",)
    assert result.items_restored == ("Registry\\Gated.reg", "Config")


def test_script_prerequisite_compares_output(
    backup_root: Path, env: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    write_gated_backup(backup_root)
    check = Prerequisite("Gated tool", "script", "Test-GatedTool", "skip", expected_output="Gated tool available")
    use_feature(monkeypatch, gated_feature(check))

    present = make_service(backup_root, env, FakeRunner([("Test-GatedTool", 0, "Gated tool available\r\n")]))
    absent = make_service(backup_root, env, FakeRunner([("Test-GatedTool", 0, "Gated tool not available")]))

    assert present.restore("gated").items_restored == ("Registry\\Gated.reg", "Config")
    skipped = absent.restore("gated")
    assert skipped.items_restored == ()
    assert skipped.warnings == ("Prerequisite not met: Gated tool (Gated tool not available)",)


def test_windows_updates_lists_are_informational(backup_root: Path, env: dict[str, str]) -> None:
    folder = backup_root / "PC1" / "WindowsUpdates"
    folder.mkdir(parents=True)
    (folder / "installed_updates.json").write_text(
        json.dumps({"installed_updates": [{"HotFixID": "KB5034441"}]}), encoding="utf-8"
    )
    (folder / "store_apps.json").write_text(json.dumps({"store_apps": []}), encoding="utf-8")
    runner = FakeRunner([("Win32_OperatingSystem", 0, "System access confirmed")])
    progress: list[str] = []

    result = make_service(backup_root, env, runner, progress=progress).restore("windows-updates")

    assert result.items_restored == ()
    assert result.items_skipped == (
        "Registry (not found in backup)",
        "Installed Updates (informational only)",
        "Store Apps (informational only)",
    )
    assert result.warnings == ()
    assert "1 installed updates recorded" in progress
    assert len(runner.commands) == 1
