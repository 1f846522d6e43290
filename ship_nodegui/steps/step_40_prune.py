from __future__ import annotations

import logging
from typing import Dict, Optional

from ..errors import PreconditionError
from ..lib.assets import is_safe_pattern, prune_empty_directories, remove_matching
from .base import Step, StepContext, require

logger = logging.getLogger(__name__)


class PruneStep(Step):
    step_id = "40_prune"
    title = "Prune"
    namespace = "pruneStep"
    commands_key = "postPrune"

    _removed_count: Optional[int] = None

    def _preflight_check(self, ctx: StepContext) -> bool:
        patterns = self.config.get_list("patterns")
        for pattern in patterns:
            if not is_safe_pattern(pattern):
                raise PreconditionError(f"Prune pattern {pattern!r} must be relative to the source directory.")
        if patterns:
            ctx.report.check_ok(f"Will remove files matching: {', '.join(patterns)}")
        return True

    def _execute(self, ctx: StepContext) -> bool:
        source_dir = require(ctx.env, "fetchStep.sourceDirectory")
        self.chdir(source_dir)

        patterns = self.config.get_list("patterns")
        self._removed_count = remove_matching(source_dir, patterns) if patterns else 0
        ctx.report.info(f"Removed {self._removed_count} files and directories")

        if self.config.get_bool("pruneEmptyDirectories", True):
            prune_empty_directories(source_dir, keep_root=True)

        return self.run_commands(ctx, cwd=source_dir)

    def _variables(self) -> Dict[str, str]:
        if self._removed_count is None:
            return {}
        return {"removedCount": str(self._removed_count)}
