import builtins

import pytest

import smoke


def feed_input(monkeypatch, lines):
    remaining = iter(lines)

    def fake_input(prompt=""):
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr(builtins, "input", fake_input)


def test_rejects_wrong_suffix(tmp_path, capsys):
    path = tmp_path / "prog.txt"
    path.write_text("+++*", encoding="utf-8")
    assert smoke.run_cli([str(path)]) == 1
    captured = capsys.readouterr()
    assert "You should use .sk file suffix only !" in captured.err
    assert captured.out == ""


def test_runs_file(tmp_path, capsys):
    path = tmp_path / "count.sk"
    path.write_text("# three\n+++*\n+*\n", encoding="utf-8")
    assert smoke.run_cli([str(path)]) == 0
    assert capsys.readouterr().out == "3 4 "


def test_missing_file(tmp_path, capsys):
    assert smoke.run_cli([str(tmp_path / "absent.sk")]) == 1
    assert "Failed to read" in capsys.readouterr().err


def test_literal_source(capsys):
    assert smoke.run_cli(["-source", "++*"]) == 0
    assert capsys.readouterr().out == "2 "


def test_syntax_error_aborts_file(tmp_path, capsys):
    path = tmp_path / "bad.sk"
    path.write_text("+*\n?", encoding="utf-8")
    assert smoke.run_cli([str(path)]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "SyntaxErr: unknown char: ?" in captured.err


def test_runtime_error_emits_json_traceback(monkeypatch, capsys):
    feed_input(monkeypatch, ["twelve"])
    assert smoke.run_cli(["--source", "--traceback-json", ","]) == 1
    err = capsys.readouterr().err
    assert "Traceback (most recent call last):" in err
    assert '"type": "SmokeInputError"' in err


def test_bounds_flag(capsys):
    assert smoke.run_cli(["--source", "--tape-size", "2", "--bounds", "saturate", ">>>+*"]) == 0
    assert capsys.readouterr().out == "1 "
    assert smoke.run_cli(["--source", "--tape-size", "2", ">>"]) == 1
    assert "SmokeBoundsError" in capsys.readouterr().err


def test_tape_size_must_be_positive():
    with pytest.raises(SystemExit):
        smoke.run_cli(["--tape-size", "0"])


def test_repl_carries_state_and_meta_commands(monkeypatch, capsys):
    feed_input(monkeypatch, ["+++", "", "*", "help", "license", "exit", "*"])
    assert smoke.run_cli([]) == 0
    out = capsys.readouterr().out
    assert out.startswith(smoke.BANNER)
    assert "more information.\n3\n" in out
    assert "Welcome to Smoke's help utility" in out
    assert "Smoke is open source" in out


def test_repl_rolls_back_failed_line(monkeypatch, capsys):
    # The second entry answers the ',' inside the first line.
    feed_input(monkeypatch, ["+++,", "abc", "*", "copyright"])
    assert smoke.run_cli([]) == 0
    captured = capsys.readouterr()
    assert "more information.\n0\n" in captured.out
    assert "Apache License" in captured.out
    assert "Please input a number." in captured.err


def test_repl_ends_on_eof(monkeypatch, capsys):
    feed_input(monkeypatch, [])
    assert smoke.run_cli([]) == 0


def test_undecodable_file_reported(tmp_path, capsys):
    path = tmp_path / "binary.sk"
    path.write_bytes(b"+\xff\xfe+")
    assert smoke.run_cli([str(path)]) == 1
    assert "Failed to read" in capsys.readouterr().err
