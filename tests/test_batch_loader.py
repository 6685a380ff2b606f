from pathlib import Path

import pytest

from opsmith.master.batch_loader import build_batch, load_batch, parse_command_line


def test_load_yaml_batch(tmp_path: Path):
    f = tmp_path / "batch.yaml"
    f.write_text(
        """
commands:
  - {name: CreateFile, args: [/tmp/t1.txt]}
  - name: WriteFile
    args: [/tmp/t1.txt, "hi"]
  - {name: ReadFile, args: [/tmp/t1.txt]}
""".lstrip(),
        encoding="utf-8",
    )
    b = load_batch(f)
    assert [c.name for c in b.commands] == ["CreateFile", "WriteFile", "ReadFile"]
    assert b.commands[1].args == ("/tmp/t1.txt", "hi")


def test_load_json_batch(tmp_path: Path):
    f = tmp_path / "batch.json"
    f.write_text('{"commands":[{"name":"ReadFile","args":["/tmp/a.txt"]}]}', encoding="utf-8")
    assert load_batch(f).commands[0].args == ("/tmp/a.txt",)


def test_load_batch_missing_args_is_invalid(tmp_path: Path):
    f = tmp_path / "bad.yaml"
    f.write_text("commands:\n  - {name: ReadFile}\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid batch file"):
        load_batch(f)


def test_load_batch_bad_yaml(tmp_path: Path):
    f = tmp_path / "bad.yaml"
    f.write_text("commands: [\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_batch(f)


def test_parse_command_line_quoting():
    c = parse_command_line("WriteFile '/tmp/my file.txt' 'hello world'")
    assert c.name == "WriteFile"
    assert c.args == ("/tmp/my file.txt", "hello world")
    assert parse_command_line("CommandExec ''").args == ("",)
    assert parse_command_line("Foo").args == ()


def test_parse_command_line_errors():
    with pytest.raises(ValueError):
        parse_command_line("   ")
    with pytest.raises(ValueError):
        parse_command_line("ReadFile 'unterminated")


def test_build_batch_keeps_order():
    b = build_batch(["ReadFile /a", "ReadFile /b", "DeleteFile /c"])
    assert [(c.name, c.args) for c in b.commands] == [("ReadFile", ("/a",)), ("ReadFile", ("/b",)), ("DeleteFile", ("/c",))]
