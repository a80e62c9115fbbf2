"""
Befunge-93: a self-modifying program on an 80x25 grid, walked by a 2D
instruction pointer.

Two details matter for real programs to terminate correctly:

- Outside string mode, the pointer wraps around the *occupied* part of the
  current row or column, not around the full 80x25 grid.
- `p` writes into the grid the program is running from. Each write is also
  reported as a DocumentEdit so a host can keep its copy of the source in sync.
"""
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from eso.eso_datatypes import DocumentEdit, DocumentRange, StepResult
from eso.eso_engine import LanguageEngine
from eso.eso_errors import EsoRuntimeError, ParseError
from eso.eso_input import InputStream

ROWSIZE = 80  # Maximum size of a single grid row
COLSIZE = 25  # Maximum size of a single grid column


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class Bfg93Op(str, Enum):
    NOOP = " "
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"
    NOT = "!"
    GREATER = "`"
    RIGHT = ">"
    LEFT = "<"
    UP = "^"
    DOWN = "v"
    RANDOM = "?"
    H_IF = "_"
    V_IF = "|"
    TOGGLE_STR = '"'
    DUPLICATE = ":"
    SWAP = "\\"
    POP_DELETE = "$"
    POP_OUTINT = "."
    POP_OUTCHAR = ","
    BRIDGE = "#"
    GET_DATA = "g"
    PUT_DATA = "p"
    STDIN_INT = "&"
    STDIN_CHAR = "~"
    END = "@"


OP_CHARS = {op.value for op in Bfg93Op}
DIGITS = "0123456789"

_DELTAS = {
    Direction.RIGHT: (1, 0),
    Direction.LEFT: (-1, 0),
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
}


def to_safe_printable_char(ascii_val: int) -> str:
    """Character to show in the source for a `p` write, keeping the grid aligned."""
    if ascii_val == 10:
        return "↵"
    if ascii_val == 13:
        return "␍"
    if ascii_val == 9:
        return "⇆"
    return chr(ascii_val)


@dataclass
class CodeBounds:
    """
    Highest occupied index on each row (`x`) and on each column (`y`);
    -1 for an empty row/column.
    """
    x: List[int] = field(default_factory=lambda: [-1] * COLSIZE)
    y: List[int] = field(default_factory=lambda: [-1] * ROWSIZE)


@dataclass(frozen=True)
class Bfg93Program:
    grid: List[List[str]]
    bounds: CodeBounds
    padding: List[DocumentEdit]


@dataclass(frozen=True)
class Bfg93DisplayState:
    stack: Tuple[int, ...]
    direction: Direction
    str_mode: bool


@dataclass
class Bfg93State:
    grid: List[List[str]] = field(default_factory=list)
    bounds: CodeBounds = field(default_factory=CodeBounds)
    stack: List[int] = field(default_factory=list)
    pc: Tuple[int, int] = (-1, -1)
    direction: Direction = Direction.RIGHT
    str_mode: bool = False
    input: InputStream = field(default_factory=InputStream)
    padding: List[DocumentEdit] = field(default_factory=list)


def parse_befunge(code: str) -> Bfg93Program:
    """
    Lay the program out on the grid. Any character is legal in Befunge, so
    the only check is that the program fits inside 80x25.
    """
    lines = code.split("\n")
    if len(lines) > COLSIZE:
        raise ParseError(f"Code is longer than {COLSIZE} lines", DocumentRange(start_line=COLSIZE))
    for idx, line in enumerate(lines):
        if len(line) > ROWSIZE:
            raise ParseError(
                f"Line is longer than {ROWSIZE} characters",
                DocumentRange(start_line=idx, start_col=ROWSIZE),
            )

    max_x = max(len(line) for line in lines) - 1
    max_y = len(lines) - 1
    bounds = CodeBounds()
    for i, line in enumerate(lines):
        bounds.x[i] = len(line) - 1
    for j in range(max_x + 1):
        bounds.y[j] = max_y

    grid = [list(line.ljust(ROWSIZE)) for line in lines]
    grid.extend([" "] * ROWSIZE for _ in range(COLSIZE - len(lines)))
    return Bfg93Program(grid=grid, bounds=bounds, padding=_grid_padding_edits(lines))


def _grid_padding_edits(lines: List[str]) -> List[DocumentEdit]:
    """Edits that pad the displayed source up to the full 80x25 grid."""
    edits = []
    for i in range(COLSIZE):
        if i < len(lines):
            length = len(lines[i])
            if length == ROWSIZE:
                continue
            edits.append(DocumentEdit(
                range=DocumentRange(start_line=i, start_col=length, end_col=length),
                text=" " * (ROWSIZE - length),
            ))
        else:
            edits.append(DocumentEdit(
                range=DocumentRange(start_line=i, start_col=0, end_col=0),
                text="\n" + " " * ROWSIZE,
            ))
    return edits


class Befunge93Engine(LanguageEngine):
    name = "befunge93"

    def _fresh_state(self) -> Bfg93State:
        return Bfg93State()

    def _parse(self, code: str) -> Bfg93Program:
        return parse_befunge(code)

    def _load(self, program: Bfg93Program, user_input: str) -> None:
        self.state.grid = program.grid
        self.state.bounds = program.bounds
        self.state.padding = program.padding
        self.state.input = InputStream(user_input)

    def _step(self) -> StepResult:
        st = self.state
        output = None
        edits = None
        end = False
        if st.pc == (-1, -1):
            st.pc = (0, 0)
            edits = st.padding
        else:
            output, edit, end = self._process_op()
            edits = [edit] if edit else None

        return StepResult(
            display_state=self._display_state(),
            next_location=None if end else self._current_location(),
            output=output,
            source_edits=edits,
        )

    def _display_state(self) -> Bfg93DisplayState:
        st = self.state
        return Bfg93DisplayState(stack=tuple(st.stack), direction=st.direction, str_mode=st.str_mode)

    def _current_location(self) -> Optional[DocumentRange]:
        x, y = self.state.pc
        return DocumentRange.cell(y, x)

    def _process_op(self) -> Tuple[Optional[str], Optional[DocumentEdit], bool]:
        """Execute the cell under the pointer, then advance the pointer."""
        st = self.state
        x, y = st.pc
        char = self._get_grid_cell(x, y)
        if st.str_mode and char != Bfg93Op.TOGGLE_STR.value:
            st.stack.append(ord(char))
            self._update_pointer()
            return None, None, False

        if char in DIGITS:
            st.stack.append(int(char))
            self._update_pointer()
            return None, None, False
        if char not in OP_CHARS:
            raise EsoRuntimeError("Invalid instruction")

        # A failing instruction leaves the stack as it was before it ran
        saved = list(st.stack)
        try:
            output, edit, end = self._apply_op(Bfg93Op(char))
        except EsoRuntimeError:
            st.stack[:] = saved
            raise

        self._update_pointer()
        return output, edit, end

    def _apply_op(self, op: Bfg93Op) -> Tuple[Optional[str], Optional[DocumentEdit], bool]:
        st = self.state
        output = None
        edit = None
        end = False

        match op:
            case Bfg93Op.NOOP:
                pass
            case Bfg93Op.ADD:
                a, b = self._pop(), self._pop()
                st.stack.append(b + a)
            case Bfg93Op.SUBTRACT:
                a, b = self._pop(), self._pop()
                st.stack.append(b - a)
            case Bfg93Op.MULTIPLY:
                a, b = self._pop(), self._pop()
                st.stack.append(b * a)
            case Bfg93Op.DIVIDE:
                a, b = self._pop_divisor_pair()
                st.stack.append(b // a)
            case Bfg93Op.MODULO:
                a, b = self._pop_divisor_pair()
                st.stack.append(int(math.fmod(b, a)))
            case Bfg93Op.NOT:
                st.stack.append(1 if self._pop() == 0 else 0)
            case Bfg93Op.GREATER:
                a, b = self._pop(), self._pop()
                st.stack.append(1 if b > a else 0)
            case Bfg93Op.RIGHT:
                st.direction = Direction.RIGHT
            case Bfg93Op.LEFT:
                st.direction = Direction.LEFT
            case Bfg93Op.UP:
                st.direction = Direction.UP
            case Bfg93Op.DOWN:
                st.direction = Direction.DOWN
            case Bfg93Op.RANDOM:
                st.direction = random.choice(list(Direction))
            case Bfg93Op.H_IF:
                st.direction = Direction.RIGHT if self._pop() == 0 else Direction.LEFT
            case Bfg93Op.V_IF:
                st.direction = Direction.DOWN if self._pop() == 0 else Direction.UP
            case Bfg93Op.TOGGLE_STR:
                st.str_mode = not st.str_mode
            case Bfg93Op.DUPLICATE:
                val = self._pop()
                st.stack.extend((val, val))
            case Bfg93Op.SWAP:
                top, other = self._pop(), self._pop()
                st.stack.extend((top, other))
            case Bfg93Op.POP_DELETE:
                self._pop()
            case Bfg93Op.POP_OUTINT:
                output = f"{self._pop()} "
            case Bfg93Op.POP_OUTCHAR:
                output = self._to_char(self._pop())
            case Bfg93Op.BRIDGE:
                self._update_pointer()
            case Bfg93Op.GET_DATA:
                gy, gx = self._pop(), self._pop()
                st.stack.append(ord(self._get_grid_cell(gx, gy)))
            case Bfg93Op.PUT_DATA:
                py, px = self._pop(), self._pop()
                edit = self._set_grid_cell(px, py, self._pop())
            case Bfg93Op.STDIN_INT:
                st.stack.append(st.input.get_number())
            case Bfg93Op.STDIN_CHAR:
                st.stack.append(st.input.get_char())
            case Bfg93Op.END:
                end = True
        return output, edit, end

    def _pop(self) -> int:
        """Pop the value stack. An empty stack yields 0."""
        return self.state.stack.pop() if self.state.stack else 0

    def _pop_divisor_pair(self) -> Tuple[int, int]:
        a, b = self._pop(), self._pop()
        if a == 0:
            raise EsoRuntimeError("cannot divide by zero")
        return a, b

    def _to_char(self, code: int) -> str:
        try:
            return chr(code)
        except (ValueError, OverflowError):
            raise EsoRuntimeError(f"Invalid character code: {code}")

    def _get_grid_cell(self, x: int, y: int) -> str:
        if not self._is_in_grid(x, y):
            raise EsoRuntimeError("Coordinates out of bounds")
        return self.state.grid[y][x]

    def _set_grid_cell(self, x: int, y: int, ascii_val: int) -> DocumentEdit:
        """Overwrite a grid cell in place and widen the occupied bounds to include it."""
        st = self.state
        if not self._is_in_grid(x, y):
            raise EsoRuntimeError("Coordinates out of bounds")
        char = self._to_char(ascii_val)
        st.grid[y][x] = char
        st.bounds.x[y] = max(st.bounds.x[y], x)
        st.bounds.y[x] = max(st.bounds.y[x], y)
        return DocumentEdit(
            range=DocumentRange(start_line=y, start_col=x, end_col=x + 1),
            text=to_safe_printable_char(ascii_val),
        )

    def _update_pointer(self) -> None:
        dx, dy = _DELTAS[self.state.direction]
        x, y = self.state.pc
        self.state.pc = self._wrap(x + dx, y + dy)

    def _wrap(self, x: int, y: int) -> Tuple[int, int]:
        """
        Wrap a pointer that just stepped off the edge. Only one coordinate can
        be out of range at a time.
        """
        st = self.state
        if st.str_mode:
            return x % ROWSIZE, y % COLSIZE
        if st.direction in (Direction.LEFT, Direction.RIGHT):
            last = max(st.bounds.x[y], 0)
            if x < 0:
                x = last
            elif x > last:
                x = 0
        else:
            last = max(st.bounds.y[x], 0)
            if y < 0:
                y = last
            elif y > last:
                y = 0
        return x, y

    @staticmethod
    def _is_in_grid(x: int, y: int) -> bool:
        return 0 <= x < ROWSIZE and 0 <= y < COLSIZE
