from __future__ import annotations

import logging
import os
import re
import shlex
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import PreconditionError
from ..host import LINUX
from ..lib.assets import copy_tree
from ..lib.command import check_which_command
from .base import Step, StepContext, require

logger = logging.getLogger(__name__)

DEBIAN_SOURCE_NAME = "debian_source"
DEFAULT_ARCHITECTURE = "amd64"
DEFAULT_SECTION = "utils"
DEFAULT_PRIORITY = "optional"

PACKAGE_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9+.-]+$")


def debian_package_name(application_name: str) -> str:
    name = re.sub(r"[^a-z0-9+.-]+", "-", application_name.lower()).strip("-.+")
    return name if len(name) >= 2 else f"{name}-app".lstrip("-")


def control_file(fields: Dict[str, str]) -> str:
    lines: List[str] = []
    for key, value in fields.items():
        if not value:
            continue
        first, *rest = value.splitlines() or [""]
        lines.append(f"{key}: {first}")
        # Continuation lines of a multi-line field start with a space; blank ones are " .".
        lines.extend(f" {line}" if line.strip() else " ." for line in rest)
    return "\n".join(lines) + "\n"


class DebianStep(Step):
    step_id = "70_debian"
    title = "Debian"
    namespace = "debianStep"
    target_platforms = frozenset({LINUX})
    commands_key = "prePack"

    _debian_source_directory: Optional[str] = None
    _deb_file: Optional[str] = None

    def _preflight_check(self, ctx: StepContext) -> bool:
        name = self.config.get_str("packageName")
        if name is not None and not PACKAGE_NAME_RE.match(name):
            raise PreconditionError(f"'debian.packageName' {name!r} is not a valid Debian package name.")
        install_path = self.config.get_str("installPath")
        if install_path is not None and not install_path.startswith("/"):
            raise PreconditionError("'debian.installPath' must be an absolute path.")
        return check_which_command("dpkg-deb", ctx.report)

    def _execute(self, ctx: StepContext) -> bool:
        temp_dir = require(ctx.env, "prepareStep.tempDirectory")
        source_dir = require(ctx.env, "fetchStep.sourceDirectory")
        app_name = require(ctx.env, "buildStep.applicationName")
        app_version = require(ctx.env, "buildStep.applicationVersion")

        package = self.config.get_str("packageName") or debian_package_name(app_name)
        arch = self.config.get_str("architecture", DEFAULT_ARCHITECTURE) or DEFAULT_ARCHITECTURE
        install_path = self.config.get_str("installPath") or f"/opt/{package}"

        root = Path(temp_dir) / DEBIAN_SOURCE_NAME
        self._debian_source_directory = str(root)
        self._deb_file = os.path.join(temp_dir, f"{package}_{app_version}_{arch}.deb")

        ctx.report.info("Copying source to Debian package directory.")
        app_dir = root / install_path.lstrip("/")
        copy_tree(source_dir, str(app_dir))

        launcher = ctx.env.get("addLauncherStep.launcherName", None)
        if launcher:
            bin_dir = root / "usr/bin"
            bin_dir.mkdir(parents=True, exist_ok=True)
            link = bin_dir / package
            if link.is_symlink() or link.exists():
                link.unlink()
            link.symlink_to(f"{install_path.rstrip('/')}/{launcher}")

        fields = {
            "Package": package,
            "Version": app_version,
            "Section": self.config.get_str("section", DEFAULT_SECTION) or DEFAULT_SECTION,
            "Priority": self.config.get_str("priority", DEFAULT_PRIORITY) or DEFAULT_PRIORITY,
            "Architecture": arch,
            "Depends": ", ".join(self.config.get_list("depends")),
            "Maintainer": self.config.get_str("maintainer", "") or "",
            "Description": self.config.get_str("description") or app_name,
        }
        control_dir = root / "DEBIAN"
        control_dir.mkdir(parents=True, exist_ok=True)
        (control_dir / "control").write_text(control_file(fields), encoding="utf-8")

        if not self.run_commands(ctx, cwd=str(root)):
            return False

        command = f"dpkg-deb --build --root-owner-group {shlex.quote(str(root))} {shlex.quote(self._deb_file)}"
        self.chdir(temp_dir)
        self.run_tool(ctx, command, cwd=temp_dir)
        ctx.report.info(f"Created Debian package '{self._deb_file}'")
        return True

    def _variables(self) -> Dict[str, str]:
        if self._debian_source_directory is None or self._deb_file is None:
            return {}
        return {"debianSourceDirectory": self._debian_source_directory, "debFile": self._deb_file}
