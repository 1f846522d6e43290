import sys

import pytest

from ship_nodegui.command_list import CommandList, CommandSpec, malformed_reason, substitute
from ship_nodegui.errors import CommandNotStarted, ConfigurationError, MissingVariable
from ship_nodegui.lib.command import run_shell
from ship_nodegui.variables import VariableEnvironment

from .conftest import RecordingRunner


def _commands(*raw):
    return CommandList.from_config(list(raw), where="zip.prePack")


def test_parse_string_and_mapping_specs():
    cl = _commands("echo all", {"platform": "linux", "command": "echo linux"}, {"platform": ["macos", "windows"], "command": "x"})

    assert cl.specs[0] == CommandSpec(command="echo all")
    assert cl.specs[1].platforms == frozenset({"linux"})
    assert cl.specs[2].platforms == frozenset({"macos", "windows"})


@pytest.mark.parametrize(
    "raw",
    [
        {"platform": "beos", "command": "x"},
        {"platform": [], "command": "x"},
        {"command": 3},
        {"command": "x", "shell": "bash"},
        42,
    ],
)
def test_parse_rejects_bad_specs(raw):
    with pytest.raises(ConfigurationError):
        _commands(raw)


def test_execute_skips_commands_for_other_platforms(report):
    runner = RecordingRunner()
    cl = _commands(
        "echo one",
        {"platform": "windows", "command": "echo windows-only"},
        {"platform": ["linux", "macos"], "command": "echo two"},
    )

    assert cl.execute(report, VariableEnvironment(), platform="linux", runner=runner)
    assert runner.calls == ["echo one", "echo two"]


def test_execute_is_fail_fast(report, caplog):
    runner = RecordingRunner(failures={"false": 1})
    cl = _commands("echo one", "false", "echo never")

    assert not cl.execute(report, VariableEnvironment(), platform="linux", runner=runner)
    assert runner.calls == ["echo one", "false"]
    assert "Command 'false' failed with exit status 1." in caplog.text


def test_execute_substitutes_placeholders_once(report):
    runner = RecordingRunner()
    env = VariableEnvironment(
        {
            "buildStep.applicationName": "${zipStep.zipFile}",
            "prepareStep.tempDirectory": "/tmp/work",
        }
    )
    cl = _commands("cp ${buildStep.applicationName} ${prepareStep.tempDirectory}/out")

    assert cl.execute(report, env, platform="linux", runner=runner)
    assert runner.calls == ["cp ${zipStep.zipFile} /tmp/work/out"]


def test_missing_variable_stops_execution(report, caplog):
    runner = RecordingRunner()
    cl = _commands("echo ${nope.missing}", "echo after")

    assert not cl.execute(report, VariableEnvironment(), platform="linux", runner=runner)
    assert runner.calls == []
    assert "${nope.missing}" in caplog.text


def test_command_that_cannot_start_is_reported(report, caplog):
    def runner(command, *, cwd=None, env=None):
        raise CommandNotStarted("no such file")

    cl = _commands("frobnicate", "echo after")

    assert not cl.execute(report, VariableEnvironment(), platform="linux", runner=runner)
    assert "could not be started" in caplog.text


def test_execute_passes_working_directory(report, tmp_path):
    runner = RecordingRunner()
    _commands("ls").execute(report, VariableEnvironment(), platform="linux", cwd=str(tmp_path), runner=runner)

    assert runner.cwds == [str(tmp_path)]


def test_substitute_missing_key():
    with pytest.raises(MissingVariable):
        substitute("${a.b}", {})


@pytest.mark.parametrize(
    "command,reason",
    [
        ("", "command is empty"),
        ("   ", "command is empty"),
        ("echo ${a.b", "unterminated '${' placeholder"),
        ("echo ${}", "empty '${}' placeholder"),
        ("echo ${a.b} $HOME", None),
    ],
)
def test_malformed_reason(command, reason):
    assert malformed_reason(command) == reason


def test_preflight_reports_malformed_entries(report, all_tools, caplog):
    cl = _commands("echo ok", "", {"platform": "windows", "command": ""}, "echo ${x")

    assert not cl.preflight_check(report, "prePack", platform="linux")
    assert "'prePack' command 2 is malformed (command is empty)" in caplog.text
    assert "'prePack' command 3 is for windows; skipping on linux." in caplog.text
    assert "'prePack' command 4 is malformed (unterminated" in caplog.text


def test_preflight_ignores_entries_for_other_platforms(report, all_tools):
    cl = _commands({"platform": "windows", "command": ""})

    assert cl.preflight_check(report, "prePack", platform="linux")


def test_preflight_requires_a_shell(report, no_tools, monkeypatch, caplog):
    monkeypatch.delenv("COMSPEC", raising=False)
    cl = _commands("echo ok")

    assert not cl.preflight_check(report, "prePack", platform="linux")
    assert "need a shell" in caplog.text


def test_preflight_never_runs_commands(report, all_tools, tmp_path):
    marker = tmp_path / "marker"
    cl = _commands(f"touch {marker}")

    assert cl.preflight_check(report, "prePack", platform="linux")
    assert not marker.exists()


def test_run_shell_reports_exit_status_and_output():
    result = run_shell(f'"{sys.executable}" -c "import sys; print(\'hello\'); sys.exit(3)"')

    assert result.returncode == 3
    assert not result.ok
    assert "hello" in result.output


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX printf")
def test_output_that_is_not_utf8_does_not_fail_the_command(report):
    cl = _commands("printf '\\377\\376 ok\\n'")

    assert cl.execute(report, VariableEnvironment(), platform="linux")


def test_run_shell_replaces_undecodable_output():
    result = run_shell(f'"{sys.executable}" -c "import sys; sys.stdout.buffer.write(b\'\\xff ok\')"')

    assert result.ok
    assert result.output == "\ufffd ok"
