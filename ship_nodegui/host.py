from __future__ import annotations

import sys
from typing import FrozenSet

MACOS = "macos"
LINUX = "linux"
WINDOWS = "windows"

PLATFORMS: FrozenSet[str] = frozenset({MACOS, LINUX, WINDOWS})


def current_platform() -> str:
    """Return the platform of the host running the tool."""

    if sys.platform == "darwin":
        return MACOS
    if sys.platform in {"win32", "cygwin"}:
        return WINDOWS
    return LINUX
