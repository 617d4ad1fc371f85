"""Command-line entry point: list, restore, backup and gui."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from rich.console import Console
from rich.table import Table

from services.backup import BackupResult, BackupService
from services.restore import RestoreOptions, RestoreResult, RestoreService
from settings_restore.environment import resolve_environment
from settings_restore.errors import BackupNotFoundError, RestoreError, UnknownFeatureError
from settings_restore.feature_registry import list_features, resolve_features
from settings_restore.logging_setup import setup_logging
from settings_restore.user_settings import SettingsStore

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_FATAL = 2

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="settings-restore", description="Back up and restore Windows settings.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List the features that can be backed up and restored")

    for name, verb in (("restore", "Restore"), ("backup", "Back up")):
        sub = subparsers.add_parser(name, help=f"{verb} one or more features")
        sub.add_argument("features", nargs="*", help="Feature keys, e.g. excel ssh vpn")
        sub.add_argument("--all", action="store_true", help="Process every feature")
        sub.add_argument("--backup-root", help="Backup root directory (defaults to BACKUP_ROOT)")
        sub.add_argument("--machine-name", help="Machine folder name (defaults to MACHINE_NAME/COMPUTERNAME)")
        sub.add_argument("--force", action="store_true", help="Continue past missing backups and item failures")
        sub.add_argument("--include", nargs="+", default=[], metavar="ITEM", help="Only process these items")
        sub.add_argument("--exclude", nargs="+", default=[], metavar="ITEM", help="Never process these items")
        sub.add_argument("--skip-verification", action="store_true", help="Skip prerequisite and target checks")
        sub.add_argument("--what-if", action="store_true", help="Report what would happen without changing anything")

    subparsers.add_parser("gui", help="Open the desktop interface")
    return parser


def print_features() -> None:
    table = Table(title="Features", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Folder", style="green")
    table.add_column("Description")
    table.add_column("Items", style="dim")
    for feature in list_features():
        table.add_row(feature.key, feature.backup_folder, feature.description, ", ".join(feature.item_names()))
    console.print(table)


def print_summary(results: Sequence[RestoreResult | BackupResult], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Feature", style="cyan")
    table.add_column("Processed", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Warnings", justify="right", style="yellow")
    for result in results:
        processed = result.items_restored if isinstance(result, RestoreResult) else result.items_backed_up
        table.add_row(
            result.feature,
            str(len(processed)),
            str(len(result.items_skipped)),
            str(len(result.errors)),
            str(len(result.warnings)),
        )
    console.print(table)
    for result in results:
        for error in result.errors:
            console.print(f"[bold red]Error:[/bold red] {result.feature}: {error}")
        for warning in result.warnings:
            console.print(f"[bold yellow]Warning:[/bold yellow] {result.feature}: {warning}")


def _progress(message: str) -> None:
    console.print(f"[dim]{message}[/dim]")


def _run_operation(args: argparse.Namespace) -> int:
    if args.all:
        keys = [feature.key for feature in list_features()]
    elif args.features:
        keys = [feature.key for feature in resolve_features(args.features)]
    else:
        console.print("[bold red]Error:[/bold red] name at least one feature or pass --all")
        return EXIT_FATAL

    environment = resolve_environment(args.backup_root, args.machine_name, settings=SettingsStore().load())
    options = RestoreOptions.build(
        force=args.force,
        include=args.include,
        exclude=args.exclude,
        skip_verification=args.skip_verification,
        what_if=args.what_if,
    )
    if args.command == "restore":
        service: RestoreService | BackupService = RestoreService(environment, progress_callback=_progress)
        results = service.restore_many(keys, options)
        print_summary(results, f"Restore from {environment.backup_root}")
    else:
        service = BackupService(environment, progress_callback=_progress)
        results = service.backup_many(keys, options)
        print_summary(results, f"Backup to {environment.machine_path}")
    if any(result.errors or not result.success for result in results):
        return EXIT_ERRORS
    return EXIT_OK


def _run_gui() -> int:
    from ui.main_window import run_app

    return run_app()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, console)

    if args.command == "list":
        print_features()
        return EXIT_OK
    if args.command == "gui":
        return _run_gui()
    try:
        return _run_operation(args)
    except (BackupNotFoundError, UnknownFeatureError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        return EXIT_FATAL
    except RestoreError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        return EXIT_ERRORS
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
