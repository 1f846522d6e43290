from __future__ import annotations

import logging
import os
import plistlib
import shlex
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import PreconditionError
from ..host import MACOS
from ..lib.assets import copy_tree
from ..lib.command import check_which_command
from .base import Step, StepContext, require

logger = logging.getLogger(__name__)

DMG_SOURCE_NAME = "dmg_source"
MINIMUM_SYSTEM_VERSION = "10.15"

MACOS_LAUNCHER = """#!/bin/sh
exec "$(dirname "$0")/../Resources/{launcher}" "$@"
"""


class DmgStep(Step):
    step_id = "80_dmg"
    title = "DMG"
    namespace = "dmgStep"
    target_platforms = frozenset({MACOS})
    commands_key = "prePack"

    _dmg_source_directory: Optional[str] = None
    _dmg_file: Optional[str] = None

    def _preflight_check(self, ctx: StepContext) -> bool:
        for key in ("volumeIcon", "background"):
            value = self.config.get_str(key)
            if value is not None and not (Path(ctx.cwd) / value).is_file():
                raise PreconditionError(f"'dmg.{key}' file '{value}' does not exist.")
        return check_which_command("hdiutil", ctx.report)

    def info_plist(self, app_title: str, app_version: str, executable: str) -> Dict[str, Any]:
        c = self.config
        plist: Dict[str, Any] = {
            "CFBundleDisplayName": c.get_str("cfBundleDisplayName", app_title),
            "CFBundleDevelopmentRegion": c.get_str("cfBundleDevelopmentRegion", "en"),
            "CFBundleExecutable": c.get_str("cfBundleExecutable", executable),
            "CFBundleIdentifier": c.get_str("cfBundleIdentifier", app_title),
            "CFBundleInfoDictionaryVersion": "6.0",
            "CFBundleName": c.get_str("cfBundleName", app_title),
            "CFBundlePackageType": "APPL",
            "CFBundleShortVersionString": c.get_str("cfBundleShortVersionString", app_version),
            "CFBundleVersion": c.get_str("cfBundleVersion", app_version),
            "CFBundleSupportedPlatforms": ["MacOSX"],
            "LSMinimumSystemVersion": MINIMUM_SYSTEM_VERSION,
            "NSHumanReadableCopyright": c.get_str("nsHumanReadableCopyright", ""),
            "NSHighResolutionCapable": True,
        }
        icon = c.get_str("cfBundleIconFile")
        if icon:
            plist["CFBundleIconFile"] = icon
        return plist

    def _execute(self, ctx: StepContext) -> bool:
        temp_dir = require(ctx.env, "prepareStep.tempDirectory")
        source_dir = require(ctx.env, "fetchStep.sourceDirectory")
        app_title = require(ctx.env, "buildStep.applicationName")
        app_version = require(ctx.env, "buildStep.applicationVersion")

        dmg_source = Path(temp_dir) / DMG_SOURCE_NAME
        self._dmg_source_directory = str(dmg_source)
        self._dmg_file = os.path.join(temp_dir, f"{app_title}_{app_version}.dmg")

        ctx.report.info("Copying source to DMG directory.")
        contents = dmg_source / f"{app_title}.app" / "Contents"
        resources = contents / "Resources"
        copy_tree(source_dir, str(resources))

        self.chdir(str(dmg_source))
        applications = dmg_source / "Applications"
        if not applications.is_symlink():
            applications.symlink_to("/Applications")

        volume_icon = self.config.get_str("volumeIcon")
        if volume_icon:
            shutil.copy2(Path(ctx.cwd) / volume_icon, dmg_source / ".VolumeIcon.icns")
        background = self.config.get_str("background")
        if background:
            (dmg_source / ".background").mkdir(exist_ok=True)
            shutil.copy2(Path(ctx.cwd) / background, dmg_source / ".background" / "background.png")

        executable = app_title
        launcher = ctx.env.get("addLauncherStep.launcherName", None)
        if launcher:
            executable = self.config.get_str("cfBundleExecutable", launcher) or launcher
            macos_dir = contents / "MacOS"
            macos_dir.mkdir(parents=True, exist_ok=True)
            stub = macos_dir / executable
            stub.write_text(MACOS_LAUNCHER.format(launcher=launcher), encoding="utf-8")
            stub.chmod(0o755)

        with (contents / "Info.plist").open("wb") as f:
            plistlib.dump(self.info_plist(app_title, app_version, executable), f)

        if not self.run_commands(ctx, cwd=str(dmg_source)):
            return False

        command = (
            f"hdiutil create -volname {shlex.quote(app_title)} -srcfolder {shlex.quote(str(dmg_source))} "
            f"-ov -format UDZO {shlex.quote(self._dmg_file)}"
        )
        self.run_tool(ctx, command, cwd=temp_dir)
        ctx.report.info("Created DMG file")
        return True

    def _variables(self) -> Dict[str, str]:
        if self._dmg_source_directory is None or self._dmg_file is None:
            return {}
        return {"dmgSourceDirectory": self._dmg_source_directory, "dmgFile": self._dmg_file}
