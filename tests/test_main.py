import json

import pytest

from ship_nodegui import main as cli


class FakePipeline:
    instances = []
    preflight_result = True
    execute_result = True

    def __init__(self, config, *, report=None):
        self.config = config
        self.calls = []
        FakePipeline.instances.append(self)

    def preflight_check(self):
        self.calls.append("preflight_check")
        return self.preflight_result

    def execute(self):
        self.calls.append("execute")
        return self.execute_result


@pytest.fixture
def fake_pipeline(monkeypatch):
    FakePipeline.instances = []
    monkeypatch.setattr(cli, "Pipeline", FakePipeline)
    monkeypatch.setattr(cli, "configure_logging", lambda **kw: None)
    return FakePipeline


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "ship-nodegui.json"
    path.write_text(
        json.dumps({"fetch": {"gitUrl": "https://example.com/a.git"}, "build": {}, "prune": {}}),
        encoding="utf-8",
    )
    return str(path)


def test_package_is_the_default_action(fake_pipeline, config_file):
    assert cli.main(["--config", config_file]) == 0
    assert fake_pipeline.instances[0].calls == ["execute"]
    assert fake_pipeline.instances[0].config.path == config_file


def test_check_action_only_preflights(fake_pipeline, config_file):
    assert cli.main(["--config", config_file, "check"]) == 0
    assert fake_pipeline.instances[0].calls == ["preflight_check"]


def test_failed_run_exits_with_one(fake_pipeline, config_file, monkeypatch):
    monkeypatch.setattr(FakePipeline, "execute_result", False)

    assert cli.main(["--config", config_file, "package"]) == 1


def test_failed_check_exits_with_one(fake_pipeline, config_file, monkeypatch):
    monkeypatch.setattr(FakePipeline, "preflight_result", False)

    assert cli.run(config_path=config_file, action="check") == 1


def test_missing_config_exits_with_two(fake_pipeline, tmp_path, caplog):
    missing = str(tmp_path / "nope.json")

    assert cli.main(["--config", missing]) == 2
    assert fake_pipeline.instances == []
    assert "Configuration file not found" in caplog.text


def test_invalid_config_exits_with_two(fake_pipeline, tmp_path, caplog):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"build": {}, "prune": {}}), encoding="utf-8")

    assert cli.main(["--config", str(path)]) == 2
    assert "doesn't have a 'fetch' section" in caplog.text


def test_interrupt_exits_with_130(fake_pipeline, config_file, monkeypatch):
    def interrupted(self):
        raise KeyboardInterrupt

    monkeypatch.setattr(FakePipeline, "execute", interrupted)

    assert cli.main(["--config", config_file]) == 130


def test_unknown_action_is_rejected():
    with pytest.raises(SystemExit) as excinfo:
        cli.build_parser().parse_args(["deploy"])
    assert excinfo.value.code == 2


def test_undecodable_config_exits_with_two(fake_pipeline, tmp_path, caplog):
    path = tmp_path / "ship-nodegui.json"
    path.write_bytes(b'{"fetch": {"gitUrl": "\xff"}, "build": {}, "prune": {}}')

    assert cli.main(["--config", str(path), "check"]) == 2
    assert fake_pipeline.instances == []
    assert "Unable to read configuration file" in caplog.text


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.build_parser().parse_args(["--version"])

    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == "ship-nodegui 0.1.0"
