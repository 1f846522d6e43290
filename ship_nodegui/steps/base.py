from __future__ import annotations

import enum
import logging
import os
import shutil
from dataclasses import dataclass
from typing import ClassVar, Dict, FrozenSet, Optional

from ..command_list import CommandList, report_output
from ..config import SectionConfig
from ..errors import CommandNotStarted, ExecutionError, MissingVariable, PreconditionError
from ..lib.command import Runner, run_shell
from ..logging_utils import Reporter
from ..variables import VariableEnvironment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepContext:
    """Everything a step may use while it runs.

    cwd is the canonical working directory of the run. Steps may chdir
    internally; the pipeline restores cwd before every step.
    """

    report: Reporter
    env: VariableEnvironment
    cwd: str
    platform: str
    runner: Runner = run_shell


class StepState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    PREFLIGHTED = "preflighted"
    EXECUTED = "executed"
    SKIPPED = "skipped"
    FAILED = "failed"


class Step:
    """A single packaging stage.

    Subclasses implement _preflight_check, _execute and _variables. The public
    methods apply the skip policy and turn stage errors into a False return.
    """

    step_id: ClassVar[str] = ""
    title: ClassVar[str] = ""
    namespace: ClassVar[str] = ""
    # Platforms the stage can produce output on; None means every platform.
    target_platforms: ClassVar[Optional[FrozenSet[str]]] = None
    # Config key of the stage's command list and the label used in reports.
    commands_key: ClassVar[str] = ""

    def __init__(self, config: SectionConfig) -> None:
        self.config = config
        self.commands = config.commands(self.commands_key) if self.commands_key else CommandList()
        self.state = StepState.UNINITIALIZED

    @property
    def platforms(self) -> Optional[FrozenSet[str]]:
        configured = self.config.platforms
        if self.target_platforms is None:
            return configured
        if configured is None:
            return self.target_platforms
        return self.target_platforms & configured

    def is_skip(self, platform: str) -> bool:
        platforms = self.platforms
        return self.config.skip or (platforms is not None and platform not in platforms)

    def preflight_check(self, ctx: StepContext) -> bool:
        if self.is_skip(ctx.platform):
            ctx.report.subsection(f"{self.title} step (skipping)")
            self.state = StepState.SKIPPED
            return True
        ctx.report.subsection(f"{self.title} step")

        try:
            ok = self._preflight_check(ctx)
        except PreconditionError as e:
            ctx.report.check_error(str(e))
            ok = False

        if ok and self.commands_key:
            ok = self.commands.preflight_check(ctx.report, self.commands_key, platform=ctx.platform)

        self.state = StepState.PREFLIGHTED if ok else StepState.FAILED
        return ok

    def execute(self, ctx: StepContext) -> bool:
        if self.is_skip(ctx.platform):
            ctx.report.subsection(f"{self.title} step (skipping)")
            self.state = StepState.SKIPPED
            return True
        ctx.report.subsection(f"{self.title} step")

        try:
            ok = self._execute(ctx)
        except (ExecutionError, OSError, shutil.Error, ValueError) as e:
            ctx.report.error(str(e))
            ok = False

        if not ok:
            self.state = StepState.FAILED
            return False

        self.add_variables(ctx.env)
        self.state = StepState.EXECUTED
        return True

    def add_variables(self, env: VariableEnvironment) -> None:
        for key, value in self._variables().items():
            env.set(f"{self.namespace}.{key}", value)

    def run_commands(self, ctx: StepContext, *, cwd: Optional[str] = None) -> bool:
        """Run this step's command list after exporting what it knows so far."""

        self.add_variables(ctx.env)
        return self.commands.execute(
            ctx.report,
            ctx.env,
            platform=ctx.platform,
            cwd=cwd,
            runner=ctx.runner,
        )

    def run_tool(self, ctx: StepContext, command: str, *, cwd: Optional[str] = None) -> None:
        """Run one of the step's own tool invocations, raising on failure."""

        ctx.report.info(f"Running command '{command}'")
        try:
            result = ctx.runner(command, cwd=cwd)
        except CommandNotStarted as e:
            raise ExecutionError(f"Command '{command}' could not be started: {e}") from e
        if not result.ok:
            report_output(ctx.report, result.output)
            raise ExecutionError(f"Something went wrong while running command '{command}' (exit status {result.returncode})")

    def chdir(self, path: str) -> None:
        logger.debug("[%s] cd %s", self.step_id, path)
        os.chdir(path)

    def _preflight_check(self, ctx: StepContext) -> bool:
        return True

    def _execute(self, ctx: StepContext) -> bool:
        raise NotImplementedError

    def _variables(self) -> Dict[str, str]:
        return {}


def require(env: VariableEnvironment, key: str) -> str:
    """Read a variable another step must have exported."""

    try:
        return env.get(key)
    except MissingVariable as e:
        raise ExecutionError(f"{e}; the step that produces it did not run") from e
