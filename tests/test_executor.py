from pathlib import Path
from typing import List

from opsmith.slave.dispatcher import dispatch
from opsmith.slave.executor import run_batch
from opsmith.slave.primitives import Primitive
from opsmith.slave.protocol import STATUS_ERROR, STATUS_OK, Batch, Command
from opsmith.slave.registry import PrimitiveRegistry, default_registry


class Explode(Primitive):
    name = "Explode"
    arg_names = ()

    def execute(self, args: List[str]) -> str:
        raise ZeroDivisionError("boom")


def _batch(*cmds) -> Batch:
    return Batch(commands=[Command(name=n, args=list(a)) for n, a in cmds])


def test_unknown_primitive_message_ignores_args():
    reg = default_registry()
    for args in ([], ["a"], ["a", "b", "c"]):
        r = dispatch(Command(name="Foo", args=args), reg)
        assert (r.data, r.error, r.status) == ("", "primitive Foo is not implemented", STATUS_ERROR)


def test_empty_name():
    r = dispatch(Command(name="", args=[]), default_registry())
    assert r.status == STATUS_ERROR
    assert "name cannot be empty" in r.error


def test_primitive_failure_is_wrapped_with_name():
    r = dispatch(Command(name="ReadFile", args=["/nonexistent/path"]), default_registry())
    assert r.status == STATUS_ERROR
    assert r.error.startswith("error running primitive ReadFile: ")
    assert "/nonexistent/path" in r.error
    assert r.data == ""


def test_unexpected_exception_does_not_escape():
    reg = PrimitiveRegistry([Explode()])
    r = dispatch(Command(name="Explode", args=[]), reg)
    assert r.status == STATUS_ERROR
    assert "boom" in r.error


def test_scenario_create_write_read(tmp_path: Path):
    p = str(tmp_path / "t1.txt")
    resp = run_batch(_batch(("CreateFile", [p]), ("WriteFile", [p, "hi"]), ("ReadFile", [p])), default_registry())
    assert [r.status for r in resp.results] == [STATUS_OK] * 3
    assert resp.results[2].data == "hi"
    assert resp.status == STATUS_OK


def test_scenario_read_missing():
    resp = run_batch(_batch(("ReadFile", ["/nonexistent/path"])), default_registry())
    assert resp.status == STATUS_ERROR
    assert "/nonexistent/path" in resp.results[0].error
    assert "could not open file" in resp.results[0].error


def test_scenario_unknown():
    resp = run_batch(_batch(("Foo", [])), default_registry())
    assert resp.results[0].error == "primitive Foo is not implemented"
    assert resp.status == STATUS_ERROR


def test_scenario_empty_exec():
    resp = run_batch(_batch(("CommandExec", [""])), default_registry())
    assert resp.status == STATUS_ERROR
    assert "command cannot be empty" in resp.results[0].error


def test_scenario_append_missing(tmp_path: Path):
    resp = run_batch(_batch(("AppendFile", [str(tmp_path / "nope.txt"), "x"])), default_registry())
    assert resp.status == STATUS_ERROR
    assert not (tmp_path / "nope.txt").exists()


def test_scenario_mixed_keeps_going_and_order(tmp_path: Path):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.txt"
    a.write_text("A", encoding="utf-8")
    b.write_text("B", encoding="utf-8")
    resp = run_batch(
        _batch(("ReadFile", [str(a)]), ("ReadFile", [str(tmp_path / "missing")]), ("ReadFile", [str(b)])),
        default_registry(),
    )
    assert len(resp.results) == 3
    assert [r.status for r in resp.results] == [STATUS_OK, STATUS_ERROR, STATUS_OK]
    assert resp.results[0].data == "A"
    assert resp.results[2].data == "B"
    assert resp.status == STATUS_ERROR


def test_empty_batch():
    resp = run_batch(Batch(commands=[]), default_registry())
    assert resp.results == []
    assert resp.status == STATUS_OK


def test_on_result_hook_sees_every_command_in_order():
    seen = []
    batch = _batch(("Foo", []), ("Bar", ["x"]), ("Baz", []))
    run_batch(batch, default_registry(), on_result=lambda i, c, r, ms: seen.append((i, c.name, r.status, ms >= 0)))
    assert seen == [(0, "Foo", -1, True), (1, "Bar", -1, True), (2, "Baz", -1, True)]


def test_nul_byte_path_reports_path_without_traceback(caplog):
    caplog.set_level("ERROR", logger="opsmith.slave.dispatcher")
    r = dispatch(Command(name="ReadFile", args=["/tmp/a\x00b"]), default_registry())
    assert r.status == STATUS_ERROR
    assert r.error.startswith("error running primitive ReadFile: could not open file /tmp/a\x00b")
    assert "raised unexpectedly" not in caplog.text
