import os
import stat
import sys

import pytest

from runfromyaml import execute
from runfromyaml.document import load_document, parse_document
from runfromyaml.engine import prepare
from runfromyaml.errors import ValidationError

from conftest import RecordingSink, StubExecutor

PIPELINE = """
env:
  - key: GREETING
    value: hello
cmd:
  - type: exec
    name: first
    values: ["echo one"]
  - type: shell
    name: second
    expandenv: true
    values: ["echo $GREETING;", "echo world"]
  - type: docker-compose
    name: third
    command: up
    cmdoptions: ["-d"]
    values: []
  - type: exec
    name: fourth
    values: ["echo two; echo three"]
"""


def test_operations_run_in_document_order(stub, sink):
    report = execute(PIPELINE, executor=stub, sink=sink)
    assert [r.index for r in report.results] == [1, 2, 3, 4]
    assert [d[1] for d in sink.of("describe")] == [1, 2, 3, 4]
    assert stub.argvs == [
        ["echo", "one"],
        ["bash", "-c", "echo hello; echo world"],
        ["docker", "compose", "up", "-d"],
        ["echo", "two"],
        ["echo", "three"],
    ]
    assert report.ok


def test_same_document_twice_builds_identical_sequences(sink):
    doc = load_document(PIPELINE)
    first, second = StubExecutor(), StubExecutor()
    execute(doc, executor=first, sink=sink)
    execute(doc, executor=second, sink=sink)
    assert first.calls == second.calls


def test_env_is_applied_before_first_operation(stub, sink):
    execute(PIPELINE, executor=stub, sink=sink)
    assert os.environ["GREETING"] == "hello"


def test_failure_is_reported_and_run_continues(sink):
    stub = StubExecutor(fail_on=lambda argv: argv == ["echo", "one"])
    report = execute(PIPELINE, executor=stub, sink=sink)
    assert [r.status for r in report.results] == ["failed", "ok", "ok", "ok"]
    assert not report.ok
    assert report.failed[0].error.exit_code == 1
    assert sink.of("error") == [("error", "execution", 1)]
    assert len(stub.argvs) == 5


def test_failed_fragment_abandons_rest_of_operation(sink):
    stub = StubExecutor(fail_on=lambda argv: argv == ["echo", "two"])
    report = execute(PIPELINE, executor=stub, sink=sink)
    assert ["echo", "three"] not in stub.argvs
    assert report.results[-1].status == "failed"


def test_validation_error_aborts_before_anything_runs(stub, sink):
    text = PIPELINE + "  - type: nonsense\n"
    with pytest.raises(ValidationError) as exc:
        execute(text, executor=stub, sink=sink)
    assert exc.value.index == 5
    assert stub.calls == []
    assert sink.events == []


def test_empty_values_are_skipped_with_warning(stub, sink):
    report = execute("cmd:\n  - type: shell\n    values: []", executor=stub, sink=sink)
    assert report.results[0].status == "skipped"
    assert report.ok
    assert stub.calls == []
    assert sink.of("warning")


def test_command_announced_before_execution(stub, sink):
    execute("cmd:\n  - type: exec\n    desc: list\n    values: [ls]", executor=stub, sink=sink)
    assert sink.events == [("describe", 1, "list"), ("command", ["ls"])]


def test_describe_callable_augments_text(stub, sink):
    execute(
        "cmd:\n  - type: exec\n    desc: list\n    values: [ls]",
        executor=stub,
        sink=sink,
        describe=lambda op: f"{op.desc} (explained)",
    )
    assert sink.of("describe") == [("describe", 1, "list (explained)")]


def test_conf_goes_through_write(stub, sink):
    execute(
        "cmd:\n  - type: conf\n    desc: demo\n    confdata: X\n    confdest: /tmp/f\n    confperm: 0600",
        executor=stub,
        sink=sink,
    )
    assert stub.calls == [("write", "/tmp/f", b"# demo\nX", 0o600)]
    assert sink.of("created") == [("created", "/tmp/f")]


def test_conf_writes_real_file(tmp_path, sink):
    dest = tmp_path / "app.conf"
    text = f"""
cmd:
  - type: conf
    desc: app settings
    confdata: "port=8080\\n"
    confdest: {dest}
    confperm: 0644
"""
    report = execute(text, sink=sink)
    assert report.ok
    assert dest.read_text() == "# app settings\nport=8080\n"
    assert stat.S_IMODE(dest.stat().st_mode) == 0o644


def test_real_subprocess_through_response_sink():
    import io
    import json

    buf = io.StringIO()
    text = f"""
logging:
  - output: rest
cmd:
  - type: exec
    values: ["{sys.executable} -c print(42)"]
"""
    report = execute(text, stream=buf)
    assert report.ok
    records = [json.loads(line) for line in buf.getvalue().splitlines()]
    assert any(r["msg"].strip() == "42" for r in records)


def test_caller_sink_is_not_closed(stub, sink):
    execute("cmd: []", executor=stub, sink=sink)
    assert sink.closed is False


def test_engine_owns_the_sink_it_creates(stub):
    ctx = prepare("cmd: []", executor=stub, output="stdout")
    assert ctx.owns_sink is True


def test_debug_prints_operations_and_actions(stub):
    sink = RecordingSink(debug=True)
    execute("cmd:\n  - type: exec\n    values: [ls]", debug=True, executor=stub, sink=sink)
    messages = [m for _, m in sink.of("debug")]
    assert any(m.startswith("operation 1") for m in messages)
    assert any(m.startswith("action: ls") for m in messages)


def test_parsed_document_is_validated_before_running(stub, sink):
    doc = parse_document(PIPELINE + "  - type: nonsense\n")
    with pytest.raises(ValidationError) as exc:
        execute(doc, executor=stub, sink=sink)
    assert exc.value.index == 5
    assert stub.calls == []


def test_rest_output_without_response_runs_on_console(stub, capsys):
    report = execute("logging:\n  - output: rest\ncmd:\n  - type: exec\n    values: [ls]", executor=stub)
    assert report.ok
    assert stub.argvs == [["ls"]]
    assert "using stdout" in capsys.readouterr().out
