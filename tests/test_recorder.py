import io

import yaml

from runfromyaml.document import load_document
from runfromyaml.recorder import commands_to_document, record_commands, write_document


def test_record_until_exit():
    stdin = io.StringIO("ls -l\n\n  pwd  \nexit\nnever read\n")
    stdout = io.StringIO()
    assert record_commands(stdin, stdout) == ["ls -l", "pwd"]
    assert "> " in stdout.getvalue()


def test_record_until_eof():
    assert record_commands(io.StringIO("whoami"), io.StringIO()) == ["whoami"]


def test_commands_to_document_is_runnable():
    doc = commands_to_document(["ls", "pwd"], shell_type="zsh")
    assert [b["values"] for b in doc["cmd"]] == [["ls"], ["pwd"]]
    assert all(b["type"] == "shell" for b in doc["cmd"])
    assert "zsh" in doc["cmd"][0]["desc"]
    load_document(yaml.safe_dump(doc))


def test_write_document(tmp_path):
    path = write_document(commands_to_document(["echo hi"]), tmp_path / "commands.yaml")
    assert yaml.safe_load(path.read_text())["cmd"][0]["values"] == ["echo hi"]
