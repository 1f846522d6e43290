from __future__ import annotations

import logging
import os
import re
import stat
from pathlib import Path
from typing import Dict, Optional

from ..errors import PreconditionError
from ..host import WINDOWS
from .base import Step, StepContext, require

logger = logging.getLogger(__name__)

DEFAULT_JS_ENTRY_POINT = "dist/index.js"
DEFAULT_RUNTIME = "node_modules/@nodegui/qode/binaries/qode"

POSIX_LAUNCHER = """#!/bin/sh
# Launcher generated by ship-nodegui
DIR="$(cd "$(dirname "$0")" && pwd)"
exec "$DIR/{runtime}" "$DIR/{entry}" "$@"
"""

WINDOWS_LAUNCHER = """@echo off
rem Launcher generated by ship-nodegui
"%~dp0{runtime}" "%~dp0{entry}" %*
"""


def launcher_base_name(application_name: str) -> str:
    """Turn an application name into a file name safe on every platform."""

    name = re.sub(r"[^A-Za-z0-9._-]+", "-", application_name).strip("-.")
    return name or "launcher"


class AddLauncherStep(Step):
    step_id = "50_add_launcher"
    title = "Add Launcher"
    namespace = "addLauncherStep"
    commands_key = "postAdd"

    _launcher_name: Optional[str] = None
    _launcher_path: Optional[str] = None

    def _preflight_check(self, ctx: StepContext) -> bool:
        name = self.config.get_str("launcherName")
        if name is not None and (not name.strip() or "/" in name or "\\" in name):
            raise PreconditionError(f"'addLauncher.launcherName' must be a plain file name, got {name!r}")

        for key in ("jsEntryPoint", "runtime"):
            value = self.config.get_str(key)
            if value is not None and (os.path.isabs(value) or ".." in Path(value).parts):
                raise PreconditionError(f"'addLauncher.{key}' must be relative to the application directory")

        entry = self.config.get_str("jsEntryPoint", DEFAULT_JS_ENTRY_POINT)
        ctx.report.check_ok(f"Launcher will start '{entry}'")
        return True

    def _execute(self, ctx: StepContext) -> bool:
        source_dir = require(ctx.env, "fetchStep.sourceDirectory")
        app_name = require(ctx.env, "buildStep.applicationName")

        entry = self.config.get_str("jsEntryPoint", DEFAULT_JS_ENTRY_POINT) or DEFAULT_JS_ENTRY_POINT
        runtime = self.config.get_str("runtime", DEFAULT_RUNTIME) or DEFAULT_RUNTIME
        base = self.config.get_str("launcherName") or launcher_base_name(app_name)

        if ctx.platform == WINDOWS:
            if not runtime.lower().endswith(".exe"):
                runtime += ".exe"
            self._launcher_name = f"{base}.cmd"
            text = WINDOWS_LAUNCHER.format(runtime=runtime.replace("/", "\\"), entry=entry.replace("/", "\\"))
        else:
            self._launcher_name = base
            text = POSIX_LAUNCHER.format(runtime=runtime, entry=entry)

        path = Path(source_dir) / self._launcher_name
        path.write_text(text, encoding="utf-8")
        if ctx.platform != WINDOWS:
            path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        self._launcher_path = str(path)
        ctx.report.info(f"Wrote launcher '{self._launcher_path}'")

        return self.run_commands(ctx, cwd=source_dir)

    def _variables(self) -> Dict[str, str]:
        if self._launcher_path is None or self._launcher_name is None:
            return {}
        return {"launcherName": self._launcher_name, "launcherPath": self._launcher_path}
