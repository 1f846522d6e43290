from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Mapping, Optional

from ..errors import CommandNotStarted

if TYPE_CHECKING:
    from ..logging_utils import Reporter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    command: str
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# Signature shared by run_shell and the test doubles that replace it.
Runner = Callable[..., CmdResult]


def run_shell(
    command: str,
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
) -> CmdResult:
    """Run a command line through the system shell with consistent logging.

    - Always logs the command.
    - Captures stdout and stderr together for diagnostics.
    - Raises CommandNotStarted if the process cannot be spawned.
    """

    logger.info("CMD %s", command)

    try:
        p = subprocess.run(
            command,
            shell=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
    except OSError as e:
        raise CommandNotStarted(f"Unable to start '{command}': {e}") from e

    if p.stdout:
        logger.debug("OUTPUT %s", p.stdout.strip())

    return CmdResult(command=command, returncode=p.returncode, output=p.stdout or "")


def find_executable(name: str) -> Optional[str]:
    return shutil.which(name)


def check_which_command(name: str, report: "Reporter") -> bool:
    """Report whether an external tool can be located on PATH."""

    path = find_executable(name)
    if path:
        report.check_ok(f"Found '{name}' command at: {path}")
        return True
    report.check_error(f"Unable to find the '{name}' command on PATH.")
    return False


def check_command_version(command: str, report: "Reporter", runner: Runner = run_shell) -> bool:
    """Probe a tool by running its version command, e.g. ``git --version``."""

    try:
        result = runner(command)
    except CommandNotStarted as e:
        report.check_error(str(e))
        return False

    if result.ok:
        report.check_ok(f"Found '{command.split()[0]}' command version: {result.output.strip()}")
        return True
    report.check_error(f"Unable to run '{command}'. Command reported: {result.output.strip()}")
    return False


def shell_executable() -> Optional[str]:
    """Locate the shell that run_shell hands command lines to."""

    if os.name == "nt":
        return os.environ.get("COMSPEC") or find_executable("cmd")
    return find_executable("sh")
