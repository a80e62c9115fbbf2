import pytest

from eso.eso_brainfuck import BFOp, BrainfuckEngine, parse_brainfuck
from eso.eso_datatypes import DocumentRange
from eso.eso_errors import ParseError

HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]"
    ">>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++."
)


def prepared(code, user_input=""):
    engine = BrainfuckEngine()
    assert engine.prepare(code, user_input) is None
    return engine


def run_to_end(engine, max_steps=100_000):
    output = []
    results = []
    for _ in range(max_steps):
        result = engine.execute_step()
        results.append(result)
        if result.output:
            output.append(result.output)
        if result.error is not None or result.next_location is None:
            return "".join(output), results
    raise AssertionError("program did not finish")


def test_hello_world():
    output, results = run_to_end(prepared(HELLO_WORLD))
    assert output == "Hello World!\n"
    assert results[-1].error is None


def test_parse_resolves_bracket_pairs():
    ast = parse_brainfuck("+[->[-]<]")
    assert ast[1].op is BFOp.LOOPIN and ast[1].jump == 8
    assert ast[8].jump == 1
    assert ast[4].jump == 6
    assert ast[6].jump == 4


def test_parse_keeps_source_positions():
    ast = parse_brainfuck("comment +\n  >.")
    assert [(i.op, i.line, i.col) for i in ast] == [
        (BFOp.INCR, 0, 8), (BFOp.RIGHT, 1, 2), (BFOp.OUT, 1, 3),
    ]


@pytest.mark.parametrize("code, message, location", [
    ("+]", "Unmatched ']'", DocumentRange.cell(0, 1)),
    ("[\n+[-]", "Unmatched '['", DocumentRange.cell(0, 0)),
])
def test_parse_errors(code, message, location):
    with pytest.raises(ParseError) as exc:
        parse_brainfuck(code)
    assert exc.value.message == message
    assert exc.value.range == location


def test_first_step_points_at_first_instruction():
    engine = prepared("\n  +")
    result = engine.execute_step()
    assert result.next_location == DocumentRange.cell(1, 2)
    assert result.display_state.tape == {}


def test_cells_wrap_around():
    _, results = run_to_end(prepared("-"))
    assert results[-1].display_state.tape == {0: -1}
    _, results = run_to_end(prepared("-" * 129))
    assert results[-1].display_state.tape == {0: 127}
    _, results = run_to_end(prepared("+" * 128))
    assert results[-1].display_state.tape == {0: -128}


def test_input_and_eof():
    output, results = run_to_end(prepared(",.>,.>,", "hi"))
    assert output == "hi"
    assert results[-1].display_state.tape == {0: 104, 1: 105, 2: 0}


def test_moving_left_of_cell_zero_fails():
    _, results = run_to_end(prepared("+<"))
    last = results[-1]
    assert last.error.message == "Tape pointer out of bounds"
    assert last.next_location == DocumentRange.cell(0, 1)
    assert last.display_state.pointer == 0


def test_empty_program_finishes_on_first_step():
    engine = prepared("no commands here")
    result = engine.execute_step()
    assert result.next_location is None
