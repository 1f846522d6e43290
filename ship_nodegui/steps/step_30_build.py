from __future__ import annotations

import json
import logging
import shlex
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import ExecutionError
from ..lib.command import check_which_command
from .base import Step, StepContext, require

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_MANAGER = "npm"
DEFAULT_SCRIPT_NAME = "build"


class BuildStep(Step):
    step_id = "30_build"
    title = "Build"
    namespace = "buildStep"
    commands_key = "postBuild"

    _application_name: Optional[str] = None
    _application_version: Optional[str] = None

    @property
    def package_manager(self) -> str:
        return self.config.get_str("packageManager", DEFAULT_PACKAGE_MANAGER) or DEFAULT_PACKAGE_MANAGER

    @property
    def script_name(self) -> Optional[str]:
        # An explicit null disables running a build script.
        if "scriptName" in self.config.raw:
            return self.config.get_str("scriptName")
        return DEFAULT_SCRIPT_NAME

    def execute(self, ctx: StepContext) -> bool:
        if not self.is_skip(ctx.platform):
            return super().execute(ctx)

        super().execute(ctx)
        # A skipped build still exports the application name and version.
        source_dir = ctx.env.get("fetchStep.sourceDirectory", None)
        if source_dir is not None:
            try:
                self._read_package_json(source_dir)
            except ExecutionError as e:
                ctx.report.info(f"Application name and version not available: {e}")
        self.add_variables(ctx.env)
        return True

    def _preflight_check(self, ctx: StepContext) -> bool:
        if not check_which_command(self.package_manager, ctx.report):
            return False
        if self.script_name:
            ctx.report.check_ok(f"Will build using '{self.package_manager} run {self.script_name}'")
        else:
            ctx.report.check_ok("No build script configured; only dependencies will be installed")
        return True

    def _execute(self, ctx: StepContext) -> bool:
        source_dir = require(ctx.env, "fetchStep.sourceDirectory")
        self.chdir(source_dir)

        pm = shlex.quote(self.package_manager)
        self.run_tool(ctx, f"{pm} install", cwd=source_dir)
        if self.script_name:
            self.run_tool(ctx, f"{pm} run {shlex.quote(self.script_name)}", cwd=source_dir)

        self._read_package_json(source_dir)
        ctx.report.info(f"Built {self._application_name} version {self._application_version}")

        return self.run_commands(ctx, cwd=source_dir)

    def _read_package_json(self, source_dir: str) -> None:
        path = Path(source_dir) / "package.json"
        if not path.exists():
            raise ExecutionError(f"Unable to find '{path}'")
        try:
            data: Any = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ExecutionError(f"Unable to parse '{path}': {e}") from e
        if not isinstance(data, dict):
            raise ExecutionError(f"'{path}' must contain an object")

        name = data.get("productName") or data.get("name")
        version = data.get("version")
        if not name or not version:
            raise ExecutionError(f"'{path}' must define 'name' and 'version'")
        self._application_name = str(name)
        self._application_version = str(version)

    def _variables(self) -> Dict[str, str]:
        out = {"packageManager": self.package_manager}
        if self._application_name is not None:
            out["applicationName"] = self._application_name
        if self._application_version is not None:
            out["applicationVersion"] = self._application_version
        return out
