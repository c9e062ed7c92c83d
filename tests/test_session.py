import io

from session import Session


def make_session(inputs=(), **kwargs):
    feed = iter(inputs)
    out = []
    errors = io.StringIO()
    session = Session(
        tape_size=kwargs.pop("tape_size", 8),
        input_provider=lambda: next(feed),
        output_sink=out.append,
        error_stream=errors,
        **kwargs,
    )
    return session, out, errors


def test_state_carries_between_lines():
    session, out, _ = make_session()
    assert session.execute("+++")
    assert session.execute(".")
    assert session.execute("*")
    assert out == ["\x03\n", "3\n"]


def test_pointer_carries_between_lines():
    session, _, _ = make_session()
    assert session.execute(">>")
    assert session.execute("+")
    assert session.pointer == 2
    assert list(session.tape[:3]) == [0, 0, 1]


def test_runtime_error_rolls_back_whole_line():
    session, out, errors = make_session(inputs=["abc"])
    assert session.execute("+")
    before = session.tape
    assert not session.execute(">+++,")
    assert session.tape is before
    assert session.pointer == 0
    assert list(session.tape[:2]) == [1, 0]
    assert "SmokeInputError: Please input a number." in errors.getvalue()
    assert session.execute("*")
    assert out == ["1\n"]


def test_bounds_fault_rolls_back():
    session, _, errors = make_session(tape_size=3)
    assert not session.execute("+>>>")
    assert session.pointer == 0
    assert session.tape[0] == 0
    assert "SmokeBoundsError" in errors.getvalue()


def test_bounds_policy_is_forwarded():
    session, _, _ = make_session(tape_size=3, bounds="wrap")
    assert session.execute(">>>+")
    assert session.pointer == 0
    assert session.tape[0] == 1


def test_syntax_error_discards_line():
    session, out, errors = make_session()
    assert session.execute("++")
    assert not session.execute("+@+")
    assert not session.execute("+[")
    assert session.tape[0] == 2
    assert out == []
    reported = errors.getvalue()
    assert "SyntaxErr: unknown char: @ at <stdin>:1:2" in reported
    assert "SyntaxErr: expect right bracket that program was end" in reported


def test_failed_run_leaves_engine_for_inspection():
    session, _, _ = make_session(inputs=["nope"])
    session.execute("+,")
    assert session.last_interpreter is not None
    assert session.last_interpreter.tape[0] == 1
    assert session.tape[0] == 0
