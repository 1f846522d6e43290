from __future__ import annotations

import logging
import os
import shlex
from typing import Dict, Optional

from ..errors import ExecutionError, PreconditionError
from ..lib.command import check_command_version
from .base import Step, StepContext, require

logger = logging.getLogger(__name__)

SOURCE_DIR_NAME = "source"


class FetchStep(Step):
    step_id = "20_fetch"
    title = "Fetch"
    namespace = "fetchStep"
    commands_key = "commands"

    _source_directory: Optional[str] = None

    def _preflight_check(self, ctx: StepContext) -> bool:
        git_url = self.config.get_str("gitUrl")
        if git_url is None and not self.config.has("commands"):
            raise PreconditionError("Neither 'gitUrl' nor 'commands' were specified in the 'fetch' section.")

        if git_url is None:
            ctx.report.check_ok("Will fetch project using commands")
            return True

        ctx.report.check_ok(f"Will fetch project from git repository at '{git_url}'")
        return check_command_version("git --version", ctx.report, ctx.runner)

    def _clone_command(self) -> str:
        argv = ["git", "clone", "--depth", "1"]
        branch = self.config.get_str("gitBranch")
        if branch:
            argv += ["--branch", branch]
        argv += [self.config.get_str("gitUrl") or "", SOURCE_DIR_NAME]
        return " ".join(shlex.quote(a) for a in argv)

    def _execute(self, ctx: StepContext) -> bool:
        temp_dir = require(ctx.env, "prepareStep.tempDirectory")
        self._source_directory = os.path.join(temp_dir, SOURCE_DIR_NAME)

        self.chdir(temp_dir)
        if self.config.has("gitUrl"):
            command = self._clone_command()
            ctx.report.info(f"Cloning repository with command '{command}'")
            self.run_tool(ctx, command, cwd=temp_dir)

        if not self.run_commands(ctx, cwd=temp_dir):
            return False

        if not os.path.isdir(self._source_directory):
            raise ExecutionError(f"Fetch did not produce a source directory at '{self._source_directory}'")
        return True

    def _variables(self) -> Dict[str, str]:
        if self._source_directory is None:
            return {}
        return {"sourceDirectory": self._source_directory}
