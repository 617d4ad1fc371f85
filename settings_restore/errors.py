"""Exception taxonomy for backup and restore runs."""
from __future__ import annotations

import traceback
from typing import Sequence


class RestoreError(RuntimeError):
    pass


class BackupNotFoundError(RestoreError):
    pass


class UnknownFeatureError(RestoreError):
    pass


class PrerequisiteError(RestoreError):
    pass


class ItemRestoreError(RestoreError):
    def __init__(self, feature: str, item: str, message: str) -> None:
        super().__init__(f"{feature}: failed to process {item}: {message}")
        self.feature = feature
        self.item = item


class HandlerError(RestoreError):
    pass


class PathResolutionError(RestoreError):
    pass


class CommandFailedError(RestoreError):
    def __init__(
        self, command: Sequence[str], returncode: int, stdout: str = "", stderr: str = "", *, detail: str = ""
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        program = self.command[0] if self.command else "command"
        super().__init__(f"{program} failed: {detail or f'exit={returncode}'}")


def describe_exception(exc: BaseException) -> str:
    """Build the multi-line diagnostic logged before a failure propagates.

    Covers the message, exception type, the innermost source location, the
    chain of causes and the formatted traceback.
    """
    lines = [
        f"Error: {exc}",
        f"Exception type: {type(exc).__module__}.{type(exc).__qualname__}",
    ]
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if frames:
        last = frames[-1]
        lines.append(f"Location: {last.filename}:{last.lineno} in {last.name}")
    cause = exc.__cause__ or exc.__context__
    depth = 0
    while cause is not None and depth < 5:
        lines.append(f"Inner exception: {type(cause).__name__}: {cause}")
        cause = cause.__cause__ or cause.__context__
        depth += 1
    if frames:
        lines.append("Stack trace:")
        lines.extend(line.rstrip() for line in traceback.format_list(frames))
    return "\n".join(lines)
