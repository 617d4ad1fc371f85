from __future__ import annotations

from pathlib import Path

import pytest

from settings_restore import cli


@pytest.fixture(autouse=True)
def isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
    monkeypatch.setenv("APPDATA", str(tmp_path / "appdata"))
    monkeypatch.delenv("BACKUP_ROOT", raising=False)
    monkeypatch.delenv("MACHINE_NAME", raising=False)


def test_list_prints_features_and_their_items(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["list"]) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "excel" in out
    assert "XLSTART" in out


def test_restore_copies_directory_item(tmp_path: Path) -> None:
    root = tmp_path / "backups"
    source = root / "PC1" / "Excel" / "AppData"
    source.mkdir(parents=True)
    (source / "Excel15.xlb").write_text("toolbar", encoding="utf-8")

    code = cli.main(
        [
            "restore",
            "excel",
            "--backup-root",
            str(root),
            "--machine-name",
            "PC1",
            "--include",
            "AppData",
            "--skip-verification",
        ]
    )

    assert code == cli.EXIT_OK
    assert (tmp_path / "appdata" / "Microsoft" / "Excel" / "Excel15.xlb").exists()


def test_missing_backup_root_exits_fatal(tmp_path: Path) -> None:
    code = cli.main(["restore", "excel", "--backup-root", str(tmp_path / "missing"), "--machine-name", "PC1"])
    assert code == cli.EXIT_FATAL


def test_missing_feature_backup_with_force_exits_with_errors(tmp_path: Path) -> None:
    root = tmp_path / "backups"
    root.mkdir()
    code = cli.main(["restore", "ssh", "--backup-root", str(root), "--machine-name", "PC1", "--force"])
    assert code == cli.EXIT_ERRORS


def test_unknown_feature_exits_fatal(tmp_path: Path) -> None:
    code = cli.main(["restore", "fax", "--backup-root", str(tmp_path)])
    assert code == cli.EXIT_FATAL


def test_restore_requires_a_feature(tmp_path: Path) -> None:
    assert cli.main(["restore", "--backup-root", str(tmp_path)]) == cli.EXIT_FATAL


def test_backup_what_if_reports_without_writing(tmp_path: Path) -> None:
    root = tmp_path / "backups"
    root.mkdir()
    code = cli.main(["backup", "terminal", "--backup-root", str(root), "--machine-name", "PC1", "--what-if"])
    assert code == cli.EXIT_OK
    assert not (root / "PC1").exists()
