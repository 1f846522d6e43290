from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Dict, Optional

from ..errors import PreconditionError
from .base import Step, StepContext

logger = logging.getLogger(__name__)

TEMP_DIRECTORY_PREFIX = "ship-nodegui-"


class PrepareStep(Step):
    step_id = "10_prepare"
    title = "Prepare"
    namespace = "prepareStep"

    _temp_directory: Optional[str] = None

    def _configured_directory(self, ctx: StepContext) -> Optional[Path]:
        configured = self.config.get_str("tempDirectory")
        if configured is None:
            return None
        return Path(ctx.cwd) / Path(configured).expanduser()

    def _preflight_check(self, ctx: StepContext) -> bool:
        temp_dir = self._configured_directory(ctx)
        if temp_dir is None:
            ctx.report.check_ok("A fresh temporary directory will be created for packaging")
            return True

        if temp_dir.exists():
            if not temp_dir.is_dir():
                raise PreconditionError(f"Temp directory '{temp_dir}' exists and is not a directory.")
            if any(temp_dir.iterdir()):
                raise PreconditionError(f"Temp directory '{temp_dir}' is not empty. Remove it or choose another.")
        ctx.report.check_ok(f"Using temp directory '{temp_dir}'")
        return True

    def _execute(self, ctx: StepContext) -> bool:
        temp_dir = self._configured_directory(ctx)
        if temp_dir is None:
            self._temp_directory = tempfile.mkdtemp(prefix=TEMP_DIRECTORY_PREFIX)
        else:
            temp_dir.mkdir(parents=True, exist_ok=True)
            self._temp_directory = str(temp_dir.resolve())

        ctx.report.info(f"Using temp directory '{self._temp_directory}'")
        return True

    def _variables(self) -> Dict[str, str]:
        if self._temp_directory is None:
            return {}
        return {"tempDirectory": self._temp_directory}
