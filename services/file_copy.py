"""File and folder replication between the live system and a backup tree."""
from __future__ import annotations

import fnmatch
import shutil
from pathlib import Path
from typing import Callable, Iterable

from settings_restore.constants import EXCLUDED_COPY_PATTERNS

IgnoreFunc = Callable[[str, list[str]], Iterable[str]]


def is_excluded(name: str, patterns: Iterable[str] = EXCLUDED_COPY_PATTERNS) -> bool:
    lowered = name.lower()
    return any(fnmatch.fnmatchcase(lowered, pattern.lower()) for pattern in patterns)


def _ignore_for(patterns: Iterable[str]) -> IgnoreFunc:
    pattern_list = tuple(patterns)

    def ignore(_directory: str, names: list[str]) -> set[str]:
        return {name for name in names if is_excluded(name, pattern_list)}

    return ignore


def copy_file(source: Path, destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    return Path(shutil.copy2(source, destination))


def copy_directory(
    source: Path,
    destination: Path,
    *,
    patterns: Iterable[str] = EXCLUDED_COPY_PATTERNS,
    ignore: IgnoreFunc | None = None,
) -> int:
    """Copy *source* over *destination*, overwriting existing files.

    Returns the number of files written. Names matching *patterns*
    (temp files, Office lock files, backups) are never copied.
    """
    destination.mkdir(parents=True, exist_ok=True)
    ignore_func = ignore or _ignore_for(patterns)
    copied: list[str] = []

    def record(src: str, dst: str) -> str:
        copied.append(dst)
        return shutil.copy2(src, dst)

    shutil.copytree(source, destination, ignore=ignore_func, copy_function=record, dirs_exist_ok=True)
    return len(copied)
