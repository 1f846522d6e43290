from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional

from .errors import CommandNotStarted, ConfigurationError, MissingVariable
from .host import PLATFORMS, current_platform
from .lib.command import Runner, run_shell, shell_executable
from .logging_utils import Reporter

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\$\{([^{}]*)\}")

# How much captured output is repeated in the report when a command fails.
MAX_REPORTED_OUTPUT = 4000


def parse_platforms(value: Any, *, where: str) -> Optional[FrozenSet[str]]:
    """Parse a platform restriction: a name, a list of names, or None for all."""

    if value is None:
        return None
    names = [value] if isinstance(value, str) else value
    if not isinstance(names, list) or not names:
        raise ConfigurationError(f"{where}: 'platform' must be a platform name or a non-empty list of names")
    for name in names:
        if name not in PLATFORMS:
            raise ConfigurationError(
                f"{where}: unknown platform {name!r} (expected one of {', '.join(sorted(PLATFORMS))})"
            )
    return frozenset(names)


@dataclass(frozen=True)
class CommandSpec:
    command: str
    platforms: Optional[FrozenSet[str]] = None

    @classmethod
    def from_config(cls, raw: Any, *, where: str) -> "CommandSpec":
        if isinstance(raw, str):
            return cls(command=raw)
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"{where}: a command must be a string or a mapping")
        unknown = set(raw) - {"platform", "command"}
        if unknown:
            raise ConfigurationError(f"{where}: unknown command keys: {', '.join(sorted(unknown))}")
        command = raw.get("command")
        if not isinstance(command, str):
            raise ConfigurationError(f"{where}: 'command' must be a string")
        return cls(command=command, platforms=parse_platforms(raw.get("platform"), where=where))

    def applies_to(self, platform: str) -> bool:
        return self.platforms is None or platform in self.platforms

    def describe_platforms(self) -> str:
        return "all platforms" if self.platforms is None else ", ".join(sorted(self.platforms))


def malformed_reason(command: str) -> Optional[str]:
    if not command.strip():
        return "command is empty"
    stripped = PLACEHOLDER_RE.sub("", command)
    if "${" in stripped:
        return "unterminated '${' placeholder"
    for key in PLACEHOLDER_RE.findall(command):
        if not key.strip():
            return "empty '${}' placeholder"
    return None


def substitute(command: str, environment: Mapping[str, str]) -> str:
    """Replace every ${namespace.key} with its value.

    Single pass: substituted values are never scanned again.
    """

    def repl(m: "re.Match[str]") -> str:
        key = m.group(1)
        if key not in environment:
            raise MissingVariable(key)
        return environment[key]

    return PLACEHOLDER_RE.sub(repl, command)


class CommandList:
    """Ordered shell commands run at one stage extension point."""

    def __init__(self, specs: Iterable[CommandSpec] = ()) -> None:
        self.specs: List[CommandSpec] = list(specs)

    @classmethod
    def from_config(cls, raw: Any, *, where: str) -> "CommandList":
        if raw is None:
            return cls()
        if not isinstance(raw, list):
            raise ConfigurationError(f"{where}: expected a list of commands")
        return cls(CommandSpec.from_config(item, where=f"{where}[{i}]") for i, item in enumerate(raw))

    def __len__(self) -> int:
        return len(self.specs)

    def applicable(self, platform: str) -> List[CommandSpec]:
        return [s for s in self.specs if s.applies_to(platform)]

    def preflight_check(self, report: Reporter, label: str, *, platform: Optional[str] = None) -> bool:
        platform = platform or current_platform()
        if not self.specs:
            return True

        ok = True
        if self.applicable(platform):
            shell = shell_executable()
            if shell:
                report.check_ok(f"'{label}' commands will run through shell: {shell}")
            else:
                report.check_error(f"'{label}' commands need a shell but none could be found.")
                ok = False

        for i, spec in enumerate(self.specs):
            if not spec.applies_to(platform):
                report.info(f"'{label}' command {i + 1} is for {spec.describe_platforms()}; skipping on {platform}.")
                continue
            reason = malformed_reason(spec.command)
            if reason:
                report.check_error(f"'{label}' command {i + 1} is malformed ({reason}): {spec.command!r}")
                ok = False
            else:
                report.check_ok(f"'{label}' command {i + 1}: {spec.command}")
        return ok

    def execute(
        self,
        report: Reporter,
        environment: Mapping[str, str],
        *,
        platform: Optional[str] = None,
        cwd: Optional[str] = None,
        runner: Runner = run_shell,
    ) -> bool:
        platform = platform or current_platform()
        for spec in self.specs:
            if not spec.applies_to(platform):
                logger.debug("Skipping %r on %s", spec.command, platform)
                continue

            try:
                command = substitute(spec.command, environment)
            except MissingVariable as e:
                report.error(f"{e} in command '{spec.command}'")
                return False

            report.info(f"Running command '{command}'")
            try:
                result = runner(command, cwd=cwd)
            except CommandNotStarted as e:
                report.error(f"Command '{command}' could not be started: {e}")
                return False

            if not result.ok:
                report.error(f"Command '{command}' failed with exit status {result.returncode}.")
                report_output(report, result.output)
                return False
        return True


def report_output(report: Reporter, output: str) -> None:
    output = output.strip()
    if not output:
        return
    if len(output) > MAX_REPORTED_OUTPUT:
        output = "...\n" + output[-MAX_REPORTED_OUTPUT:]
    report.error(f"Command output:\n{output}")
