"""Administrator detection and elevation for features that touch HKLM or system state."""
from __future__ import annotations

import ctypes
import sys
from typing import Final, Sequence

SHELLEXECUTE_SUCCESS: Final[int] = 42


def is_admin() -> bool:
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except AttributeError:
        return False


def relaunch_as_admin(arguments: Sequence[str] | None = None) -> bool:
    """Start an elevated copy of the current command; True when the UAC prompt was accepted."""
    args = sys.argv[1:] if arguments is None else list(arguments)
    params = " ".join(f'"{arg}"' for arg in args)
    try:
        result = ctypes.windll.shell32.ShellExecuteW(None, "runas", sys.executable, params, None, 1)  # type: ignore[attr-defined]
    except AttributeError:
        return False
    return int(result) > 32
