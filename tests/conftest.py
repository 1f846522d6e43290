from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from ship_nodegui.config import parse_config
from ship_nodegui.lib.command import CmdResult
from ship_nodegui.logging_utils import Reporter


class RecordingRunner:
    """Stands in for run_shell: records every command and fakes its result.

    ``failures`` maps a command prefix to the exit status to return.
    ``effects`` maps a command prefix to a callable(cwd) run before returning,
    used to fake what the real tool would leave on disk.
    """

    def __init__(
        self,
        failures: Optional[Dict[str, int]] = None,
        effects: Optional[Dict[str, Callable[[Optional[str]], None]]] = None,
    ) -> None:
        self.failures = failures or {}
        self.effects = effects or {}
        self.calls: List[str] = []
        self.cwds: List[Optional[str]] = []

    def __call__(self, command: str, *, cwd: Optional[str] = None, env=None) -> CmdResult:
        self.calls.append(command)
        self.cwds.append(cwd)
        for prefix, effect in self.effects.items():
            if command.startswith(prefix):
                effect(cwd)
        for prefix, status in self.failures.items():
            if command.startswith(prefix):
                return CmdResult(command=command, returncode=status, output=f"{prefix}: boom")
        return CmdResult(command=command, returncode=0, output="ok 1.0\n")

    def matching(self, prefix: str) -> List[str]:
        return [c for c in self.calls if c.startswith(prefix)]


def fake_clone(package: Optional[dict] = None) -> Callable[[Optional[str]], None]:
    """Effect for 'git clone': create the source directory with a package.json."""

    data = package or {"name": "hello-app", "version": "1.2.3"}

    def effect(cwd: Optional[str]) -> None:
        assert cwd is not None
        src = Path(cwd) / "source"
        (src / "dist").mkdir(parents=True, exist_ok=True)
        (src / "package.json").write_text(json.dumps(data), encoding="utf-8")
        (src / "dist" / "index.js").write_text("console.log('hi');\n", encoding="utf-8")
        (src / "dist" / "index.js.map").write_text("{}", encoding="utf-8")

    return effect


@pytest.fixture(autouse=True)
def _capture_logs(caplog):
    caplog.set_level(logging.DEBUG)


@pytest.fixture
def report() -> Reporter:
    return Reporter()


@pytest.fixture
def all_tools(monkeypatch):
    """Pretend every external tool is installed."""

    monkeypatch.setattr("shutil.which", lambda name, *a, **kw: f"/usr/bin/{name}")


@pytest.fixture
def no_tools(monkeypatch):
    monkeypatch.setattr("shutil.which", lambda name, *a, **kw: None)


@pytest.fixture
def make_config(tmp_path):
    def _make(**sections):
        raw = {
            "prepare": {"tempDirectory": str(tmp_path / "work")},
            "fetch": {"gitUrl": "https://example.com/hello.git"},
            "build": {},
            "prune": {},
        }
        for name, value in sections.items():
            if value is None:
                raw.pop(name, None)
            else:
                raw[name] = value
        return parse_config(raw, path=str(tmp_path / "ship-nodegui.json"))

    return _make


@pytest.fixture
def in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def _restore_cwd(monkeypatch):
    # Steps chdir into their working directories.
    monkeypatch.chdir(os.getcwd())
