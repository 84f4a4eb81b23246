import json
import sys

import pytest
import yaml
from click.testing import CliRunner

from runfromyaml.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


def write(path, text):
    path.write_text(text)
    return str(path)


def test_run_writes_config_file(runner, tmp_path):
    dest = tmp_path / "out.conf"
    doc = write(
        tmp_path / "commands.yaml",
        f"cmd:\n  - type: conf\n    desc: generated\n    confdata: hello\n    confdest: {dest}\n",
    )
    result = runner.invoke(cli, ["run", "--file", doc])
    assert result.exit_code == 0, result.output
    assert dest.read_text() == "# generated\nhello"
    assert "RESULTS" in result.output


def test_run_missing_file(runner, tmp_path):
    result = runner.invoke(cli, ["run", "--file", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_run_invalid_document_exits_before_running(runner, tmp_path):
    dest = tmp_path / "never.conf"
    doc = write(
        tmp_path / "c.yaml",
        f"cmd:\n  - type: conf\n    confdata: x\n    confdest: {dest}\n  - type: nope\n",
    )
    result = runner.invoke(cli, ["run", "--file", doc])
    assert result.exit_code == 1
    assert not dest.exists()


def test_run_failed_operation_exits_1(runner, tmp_path):
    doc = write(
        tmp_path / "c.yaml",
        f'cmd:\n  - type: exec\n    values: ["{sys.executable} -c exit(4)"]\n',
    )
    result = runner.invoke(cli, ["run", "--file", doc])
    assert result.exit_code == 1
    assert "FAILED" in result.output


def test_run_rest_option_starts_server(runner, tmp_path, monkeypatch):
    started = []
    monkeypatch.setattr("runfromyaml.restapi.serve", lambda settings: started.append(settings))
    doc = write(tmp_path / "c.yaml", "options:\n  - key: rest\n    value: true\n  - key: port\n    value: 9001\ncmd: []\n")
    result = runner.invoke(cli, ["run", "--file", doc])
    assert result.exit_code == 0, result.output
    assert started[0].port == 9001


def test_validate(runner, tmp_path):
    good = write(tmp_path / "good.yaml", "cmd:\n  - type: exec\n    values: [ls]\n")
    bad = write(tmp_path / "bad.yaml", "cmd:\n  - type: docker\n    values: [ls]\n")
    assert runner.invoke(cli, ["validate", good]).exit_code == 0
    result = runner.invoke(cli, ["validate", bad])
    assert result.exit_code == 1
    assert "command block 1" in result.output


def test_explain(runner, tmp_path):
    doc = write(tmp_path / "c.yaml", "cmd:\n  - type: ssh\n    name: remote\n")
    result = runner.invoke(cli, ["explain", doc])
    assert result.exit_code == 0
    assert "1. remote (ssh)" in result.output


def test_generate_prints_yaml(runner):
    result = runner.invoke(cli, ["generate", "docker compose stack"])
    assert result.exit_code == 0
    assert yaml.safe_load(result.output)["cmd"][0]["type"] == "docker-compose"


def test_serve_passes_flags(runner, monkeypatch):
    started = []
    monkeypatch.setattr("runfromyaml.restapi.serve", lambda settings: started.append(settings))
    result = runner.invoke(cli, ["serve", "--port", "9999", "--no-auth", "--user", "ops"])
    assert result.exit_code == 0, result.output
    assert started[0].port == 9999
    assert started[0].no_auth is True
    assert started[0].user == "ops"
    assert started[0].restout is False


def test_mcp_over_stdio(runner):
    request = json.dumps({"jsonrpc": "2.0", "id": 7, "method": "tools/list"}) + "\n"
    result = runner.invoke(cli, ["mcp"], input=request)
    assert result.exit_code == 0
    assert json.loads(result.output.strip().splitlines()[-1])["id"] == 7


def test_shell_records_commands(runner, tmp_path):
    out = tmp_path / "recorded.yaml"
    result = runner.invoke(cli, ["shell", "--out", str(out)], input="ls\npwd\nexit\n")
    assert result.exit_code == 0, result.output
    doc = yaml.safe_load(out.read_text())
    assert [b["values"] for b in doc["cmd"]] == [["ls"], ["pwd"]]
