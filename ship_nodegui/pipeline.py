from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Type

from .config import REQUIRED_SECTIONS, ShipConfig
from .errors import ConfigurationError
from .host import current_platform
from .lib.command import Runner, run_shell
from .logging_utils import Reporter
from .steps import (
    AddLauncherStep,
    BuildStep,
    DebianStep,
    DmgStep,
    FetchStep,
    InstallerStep,
    PrepareStep,
    PruneStep,
    Step,
    StepContext,
    ZipStep,
)
from .variables import VariableEnvironment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepRow:
    key: str
    step_cls: Type[Step]
    active: Callable[[ShipConfig, str, "StepRow"], bool]


def _always(config: ShipConfig, platform: str, row: StepRow) -> bool:
    return True


def _when_configured(config: ShipConfig, platform: str, row: StepRow) -> bool:
    if not config.has_section(row.key):
        return False
    # Package formats tied to one platform are left out on every other host.
    targets = row.step_cls.target_platforms
    return targets is None or platform in targets


# Fixed execution order.
STEP_TABLE: Sequence[StepRow] = (
    StepRow("prepare", PrepareStep, _always),
    StepRow("fetch", FetchStep, _always),
    StepRow("build", BuildStep, _always),
    StepRow("prune", PruneStep, _always),
    StepRow("addLauncher", AddLauncherStep, _when_configured),
    StepRow("zip", ZipStep, _when_configured),
    StepRow("debian", DebianStep, _when_configured),
    StepRow("dmg", DmgStep, _when_configured),
    StepRow("installer", InstallerStep, _when_configured),
)


def build_steps(config: ShipConfig, platform: str) -> List[Step]:
    """Instantiate the active steps for one run, in execution order."""

    steps: List[Step] = []
    for row in STEP_TABLE:
        if not row.active(config, platform, row):
            logger.debug("Step %s not active on %s", row.step_cls.step_id, platform)
            continue
        section = config.section(row.key)
        if section is None:
            raise ConfigurationError(f"Configuration file doesn't have a '{row.key}' section.")
        steps.append(row.step_cls(section))
    return steps


class Pipeline:
    """Runs the fixed sequence of steps: preflight everything, then execute."""

    def __init__(
        self,
        config: ShipConfig,
        *,
        report: Optional[Reporter] = None,
        runner: Runner = run_shell,
        platform: Optional[str] = None,
    ) -> None:
        for name in REQUIRED_SECTIONS:
            if not config.has_section(name):
                raise ConfigurationError(f"Configuration file doesn't have a '{name}' section.")

        self.config = config
        self.report = report or Reporter()
        self.runner = runner
        self.platform = platform or current_platform()
        self.steps = build_steps(config, self.platform)
        self.environment = VariableEnvironment()

    def _context(self, cwd: str) -> StepContext:
        return StepContext(
            report=self.report,
            env=self.environment,
            cwd=cwd,
            platform=self.platform,
            runner=self.runner,
        )

    def preflight_check(self) -> bool:
        self.report.section("Preflight Check")
        self.report.check_ok(f"Using configuration file '{self.config.path}'")
        self.report.check_ok(f"Packaging for platform '{self.platform}'")

        ctx = self._context(os.getcwd())
        for step in self.steps:
            if not step.preflight_check(ctx):
                return False
        return True

    def execute(self) -> bool:
        cwd = os.getcwd()
        try:
            # Preflight runs again here even after a separate 'check' run.
            if not self.preflight_check():
                return False
            os.chdir(cwd)

            self.report.section("Packaging")
            self.environment = VariableEnvironment()
            ctx = self._context(cwd)

            for step in self.steps:
                os.chdir(cwd)
                logger.info("Running step %s", step.step_id)
                if not step.execute(ctx):
                    self.report.error(f"{step.title} step failed.")
                    return False

            self.report.section("Done")
            for key, value in sorted(self.environment.items()):
                if key.endswith(("File", "Directory")):
                    self.report.info(f"{key} = {value}")
            return True
        finally:
            os.chdir(cwd)
