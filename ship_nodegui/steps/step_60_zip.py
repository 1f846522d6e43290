from __future__ import annotations

import logging
import os
import shutil
from typing import Dict, Optional

from ..lib.assets import copy_tree
from .base import Step, StepContext, require

logger = logging.getLogger(__name__)

ZIP_SOURCE_NAME = "zip_source"


class ZipStep(Step):
    step_id = "60_zip"
    title = "Zip"
    namespace = "zipStep"
    commands_key = "prePack"

    _zip_source_directory: Optional[str] = None
    _zip_file: Optional[str] = None

    def _execute(self, ctx: StepContext) -> bool:
        temp_dir = require(ctx.env, "prepareStep.tempDirectory")
        source_dir = require(ctx.env, "fetchStep.sourceDirectory")
        app_name = require(ctx.env, "buildStep.applicationName")
        app_version = require(ctx.env, "buildStep.applicationVersion")

        folder_name = f"{app_name}-{app_version}"
        self._zip_source_directory = os.path.join(temp_dir, ZIP_SOURCE_NAME)
        self._zip_file = os.path.join(temp_dir, f"{folder_name}-{ctx.platform}.zip")

        ctx.report.info("Copying source to zip directory.")
        copy_tree(source_dir, os.path.join(self._zip_source_directory, folder_name))

        if not self.run_commands(ctx, cwd=self._zip_source_directory):
            return False

        base_name = self._zip_file[: -len(".zip")]
        shutil.make_archive(base_name, "zip", root_dir=self._zip_source_directory, base_dir=folder_name)
        ctx.report.info(f"Created zip file '{self._zip_file}'")
        return True

    def _variables(self) -> Dict[str, str]:
        if self._zip_source_directory is None or self._zip_file is None:
            return {}
        return {"zipSourceDirectory": self._zip_source_directory, "zipFile": self._zip_file}
