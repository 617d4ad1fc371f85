from __future__ import annotations

import subprocess
from typing import Sequence


class FakeRunner:
    """Records commands; the first response whose marker occurs in the joined command wins."""

    def __init__(self, responses: list[tuple[str, int, str]] | None = None) -> None:
        self.responses = responses or []
        self.commands: list[tuple[str, ...]] = []

    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        self.commands.append(tuple(command))
        joined = " ".join(command)
        for marker, returncode, output in self.responses:
            if marker in joined:
                if returncode == 0:
                    return subprocess.CompletedProcess(command, 0, output, "")
                return subprocess.CompletedProcess(command, returncode, "", output)
        return subprocess.CompletedProcess(command, 0, "", "")

    def joined(self) -> list[str]:
        return [" ".join(command) for command in self.commands]


class FakeRegistry:
    def __init__(
        self,
        values: dict[tuple[str, str], str | int] | None = None,
        keys: set[str] | None = None,
    ) -> None:
        self.values = values or {}
        self.keys = {key.lower() for key in (keys or set())}

    def get_value(self, path: str, value_name: str) -> str | int | None:
        return self.values.get((path, value_name))

    def set_value(self, path: str, value_name: str, value: str | int) -> None:
        self.values[(path, value_name)] = value

    def key_exists(self, path: str) -> bool:
        return path.lower() in self.keys or any(key_path == path for key_path, _ in self.values)
