from .base import Step, StepContext, StepState
from .step_10_prepare import PrepareStep
from .step_20_fetch import FetchStep
from .step_30_build import BuildStep
from .step_40_prune import PruneStep
from .step_50_add_launcher import AddLauncherStep
from .step_60_zip import ZipStep
from .step_70_debian import DebianStep
from .step_80_dmg import DmgStep
from .step_90_installer import InstallerStep

__all__ = [
    "Step",
    "StepContext",
    "StepState",
    "PrepareStep",
    "FetchStep",
    "BuildStep",
    "PruneStep",
    "AddLauncherStep",
    "ZipStep",
    "DebianStep",
    "DmgStep",
    "InstallerStep",
]
