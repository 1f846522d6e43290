from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Optional

from ..errors import PreconditionError
from ..host import WINDOWS
from ..lib.assets import copy_tree
from ..lib.command import check_which_command
from .base import Step, StepContext, require

logger = logging.getLogger(__name__)

INSTALLER_SOURCE_NAME = "installer_source"
INSTALLER_SCRIPT_NAME = "installer.nsi"

NSIS_SCRIPT = """; Installer script generated by ship-nodegui
Unicode true
!include "MUI2.nsh"

Name "{name}"
OutFile "{out_file}"
InstallDir "$PROGRAMFILES64\\{install_dir}"
RequestExecutionLevel admin

!insertmacro MUI_PAGE_DIRECTORY
!insertmacro MUI_PAGE_INSTFILES
!insertmacro MUI_UNPAGE_CONFIRM
!insertmacro MUI_UNPAGE_INSTFILES
!insertmacro MUI_LANGUAGE "English"

Section "Install"
  SetOutPath "$INSTDIR"
  File /r "{app_dir}\\*.*"
  WriteUninstaller "$INSTDIR\\uninstall.exe"
  WriteRegStr HKLM "Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\{install_dir}" "DisplayName" "{name}"
  WriteRegStr HKLM "Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\{install_dir}" "DisplayVersion" "{version}"
  WriteRegStr HKLM "Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\{install_dir}" "Publisher" "{publisher}"
  WriteRegStr HKLM "Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\{install_dir}" "UninstallString" "$INSTDIR\\uninstall.exe"
{shortcut}SectionEnd

Section "Uninstall"
  Delete "$SMPROGRAMS\\{name}.lnk"
  RMDir /r "$INSTDIR"
  DeleteRegKey HKLM "Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\{install_dir}"
SectionEnd
"""


def nsis_escape(value: str) -> str:
    # NSIS uses $ for variables and $\" to embed quotes.
    return value.replace("$", "$$").replace('"', '$\\"')


class InstallerStep(Step):
    step_id = "90_installer"
    title = "Installer"
    namespace = "installerStep"
    target_platforms = frozenset({WINDOWS})
    commands_key = "prePack"

    _installer_source_directory: Optional[str] = None
    _installer_file: Optional[str] = None

    def _preflight_check(self, ctx: StepContext) -> bool:
        install_dir = self.config.get_str("installDirectoryName")
        if install_dir is not None and (not install_dir.strip() or any(c in install_dir for c in '\\/:*?"<>|')):
            raise PreconditionError(f"'installer.installDirectoryName' {install_dir!r} is not a valid folder name.")
        return check_which_command("makensis", ctx.report)

    def nsis_script(self, app_name: str, app_version: str, launcher: Optional[str], out_file: str) -> str:
        install_dir = self.config.get_str("installDirectoryName") or app_name
        shortcut = ""
        if launcher:
            shortcut = f'  CreateShortCut "$SMPROGRAMS\\{nsis_escape(app_name)}.lnk" "$INSTDIR\\{nsis_escape(launcher)}"\n'
        return NSIS_SCRIPT.format(
            name=nsis_escape(app_name),
            version=nsis_escape(app_version),
            publisher=nsis_escape(self.config.get_str("publisher", "") or ""),
            install_dir=nsis_escape(install_dir),
            app_dir=nsis_escape(app_name),
            out_file=nsis_escape(out_file),
            shortcut=shortcut,
        )

    def _execute(self, ctx: StepContext) -> bool:
        temp_dir = require(ctx.env, "prepareStep.tempDirectory")
        source_dir = require(ctx.env, "fetchStep.sourceDirectory")
        app_name = require(ctx.env, "buildStep.applicationName")
        app_version = require(ctx.env, "buildStep.applicationVersion")

        staging = Path(temp_dir) / INSTALLER_SOURCE_NAME
        self._installer_source_directory = str(staging)
        self._installer_file = os.path.join(temp_dir, f"{app_name}-setup-{app_version}.exe")

        ctx.report.info("Copying source to installer directory.")
        copy_tree(source_dir, str(staging / app_name))

        launcher = ctx.env.get("addLauncherStep.launcherName", None)
        script = self.nsis_script(app_name, app_version, launcher, self._installer_file)
        (staging / INSTALLER_SCRIPT_NAME).write_text(script, encoding="utf-8")

        if not self.run_commands(ctx, cwd=str(staging)):
            return False

        self.chdir(str(staging))
        self.run_tool(ctx, f"makensis {INSTALLER_SCRIPT_NAME}", cwd=str(staging))
        ctx.report.info(f"Created installer '{self._installer_file}'")
        return True

    def _variables(self) -> Dict[str, str]:
        if self._installer_source_directory is None or self._installer_file is None:
            return {}
        return {
            "installerSourceDirectory": self._installer_source_directory,
            "installerFile": self._installer_file,
        }
