import pytest

from eso.eso_befunge import (
    COLSIZE, ROWSIZE, Befunge93Engine, Direction, parse_befunge, to_safe_printable_char,
)
from eso.eso_datatypes import DocumentEdit, DocumentRange
from eso.eso_errors import ParseError

HELLO_WORLD = "\n".join([
    '"!dlroW ,olleH">:v',
    "               |,<",
    "               @",
])

CAT = "~:1+!#@_,"


def prepared(code, user_input=""):
    engine = Befunge93Engine()
    assert engine.prepare(code, user_input) is None
    return engine


def run_to_end(engine, max_steps=10_000):
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
    # The final ':' duplicates an empty stack, printing a NUL before exiting
    assert output == "Hello, World!\x00"
    last = results[-1]
    assert last.error is None
    assert last.display_state.direction == Direction.DOWN
    assert last.display_state.stack == ()


def test_cat_echoes_input():
    output, results = run_to_end(prepared(CAT, "ab\n"))
    assert output == "ab\n"
    last = results[-1]
    assert last.display_state.stack == (-1,)
    assert last.display_state.direction == Direction.LEFT


def test_first_step_pads_grid_and_points_at_origin():
    engine = prepared("1.@")
    first = engine.execute_step()
    assert first.next_location == DocumentRange.cell(0, 0)
    assert first.output is None
    edits = first.source_edits
    assert edits[0] == DocumentEdit(range=DocumentRange(start_line=0, start_col=3, end_col=3), text=" " * 77)
    # One row padded, 24 rows added
    assert len(edits) == COLSIZE
    assert edits[1].text == "\n" + " " * ROWSIZE


def test_wrap_uses_occupied_row_bounds():
    engine = prepared("<@")
    engine.execute_step()
    result = engine.execute_step()
    # Stepping left off column 0 lands on the last occupied column, not column 79
    assert result.next_location == DocumentRange.cell(0, 1)
    assert result.display_state.direction == Direction.LEFT
    assert engine.execute_step().next_location is None


def test_vertical_wrap_uses_column_bounds():
    code = "\n".join(["^", "@"])
    engine = prepared(code)
    engine.execute_step()
    result = engine.execute_step()
    assert result.next_location == DocumentRange.cell(1, 0)


def test_string_mode_pushes_character_codes():
    output, results = run_to_end(prepared('"ab"@'))
    assert results[-1].display_state.stack == (97, 98)
    assert output == ""


def test_arithmetic_and_output():
    output, _ = run_to_end(prepared("92-.73*.95/.75%.@"))
    assert output == "7 21 1 2 "


def test_modulo_keeps_sign_of_dividend():
    output, _ = run_to_end(prepared("07-3%.@"))
    assert output == "-1 "


def test_put_modifies_grid_and_reports_edit():
    engine = prepared('"A"00p@')
    _, results = run_to_end(engine)
    edits = [r.source_edits for r in results[1:] if r.source_edits]
    assert edits == [[DocumentEdit(range=DocumentRange(start_line=0, start_col=0, end_col=1), text="A")]]
    assert engine.state.grid[0][0] == "A"


def test_get_reads_grid():
    output, _ = run_to_end(prepared("20g,@"))
    assert output == "g"


def test_put_widens_bounds():
    engine = prepared("55+55+5p@")
    run_to_end(engine)
    assert engine.state.bounds.x[5] == 10
    assert engine.state.bounds.y[10] == 5
    assert engine.state.grid[5][10] == "\n"


def test_divide_by_zero_restores_stack():
    output, results = run_to_end(prepared("10/@"))
    last = results[-1]
    assert last.error is not None
    assert last.error.message == "cannot divide by zero"
    assert last.display_state.stack == (1, 0)
    assert last.next_location == DocumentRange.cell(0, 2)


@pytest.mark.parametrize("code, message, stack, col", [
    ("/@", "cannot divide by zero", (), 0),
    ("50%@", "cannot divide by zero", (5, 0), 2),
    ("01-0g@", "Coordinates out of bounds", (-1, 0), 4),
    ("9001-p@", "Coordinates out of bounds", (9, 0, -1), 5),
    ("01-,@", "Invalid character code: -1", (-1,), 3),
])
def test_failing_instruction_leaves_stack_untouched(code, message, stack, col):
    _, results = run_to_end(prepared(code))
    last = results[-1]
    assert last.error.message == message
    assert last.display_state.stack == stack
    assert last.next_location == DocumentRange.cell(0, col)


def test_invalid_instruction():
    _, results = run_to_end(prepared("1x@"))
    assert results[-1].error.message == "Invalid instruction"


def test_get_out_of_bounds():
    _, results = run_to_end(prepared("99*9*0g@"))
    assert results[-1].error.message == "Coordinates out of bounds"


def test_bridge_skips_next_cell():
    output, _ = run_to_end(prepared("#@1.@"))
    assert output == "1 "


def test_input_number():
    output, _ = run_to_end(prepared("&&+.@", " 12 30"))
    assert output == "42 "


def test_input_number_at_end_of_input_fails():
    _, results = run_to_end(prepared("&@", ""))
    assert results[-1].error.message == "Unexpected end of input"


def test_parse_rejects_oversized_programs():
    with pytest.raises(ParseError) as exc:
        parse_befunge("\n" * COLSIZE)
    assert exc.value.message == "Code is longer than 25 lines"
    assert exc.value.range.start_line == COLSIZE

    with pytest.raises(ParseError) as exc:
        parse_befunge("@\n" + "1" * (ROWSIZE + 1))
    assert exc.value.message == "Line is longer than 80 characters"
    assert exc.value.range == DocumentRange(start_line=1, start_col=ROWSIZE)


def test_engine_validate_code_returns_error():
    engine = Befunge93Engine()
    err = engine.validate_code("1" * 81)
    assert isinstance(err, ParseError)
    assert engine.validate_code(HELLO_WORLD) is None


@pytest.mark.parametrize("code, char", [(10, "↵"), (13, "␍"), (9, "⇆"), (65, "A")])
def test_safe_printable_char(code, char):
    assert to_safe_printable_char(code) == char
