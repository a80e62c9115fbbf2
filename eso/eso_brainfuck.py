"""
Brainfuck: a sparse tape of byte-sized cells and eight single-character commands.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from eso.eso_datatypes import DocumentRange, StepResult
from eso.eso_engine import LanguageEngine
from eso.eso_errors import EsoRuntimeError, ParseError

# Value boundaries for Brainfuck cells
CELL_MIN = -128
CELL_MAX = 127


class BFOp(str, Enum):
    LEFT = "<"
    RIGHT = ">"
    INCR = "+"
    DECR = "-"
    OUT = "."
    IN = ","
    LOOPIN = "["
    LOOPOUT = "]"


OP_CHARS = {op.value for op in BFOp}


@dataclass(frozen=True)
class BFInstruction:
    op: BFOp
    line: int
    col: int
    # Index of the opposite bracket, for loop instructions
    jump: Optional[int] = None

    @property
    def location(self) -> DocumentRange:
        return DocumentRange.cell(self.line, self.col)


@dataclass(frozen=True)
class BFDisplayState:
    tape: Dict[int, int]
    pointer: int


@dataclass
class BFState:
    ast: List[BFInstruction] = field(default_factory=list)
    tape: Dict[int, int] = field(default_factory=dict)
    ptr: int = 0
    pc: int = -1
    input: str = ""


def parse_brainfuck(code: str) -> List[BFInstruction]:
    """Collect command characters, resolving bracket pairs to instruction indices."""
    ast: List[BFInstruction] = []
    loop_stack: List[int] = []

    for l_idx, line in enumerate(code.split("\n")):
        for c_idx, char in enumerate(line):
            if char not in OP_CHARS:
                continue
            op = BFOp(char)
            jump = None
            if op is BFOp.LOOPIN:
                # Closing index is filled in when the matching ']' shows up
                loop_stack.append(len(ast))
            elif op is BFOp.LOOPOUT:
                if not loop_stack:
                    raise ParseError("Unmatched ']'", DocumentRange.cell(l_idx, c_idx))
                jump = loop_stack.pop()
                opener = ast[jump]
                ast[jump] = BFInstruction(opener.op, opener.line, opener.col, jump=len(ast))
            ast.append(BFInstruction(op, l_idx, c_idx, jump))

    if loop_stack:
        opener = ast[loop_stack[-1]]
        raise ParseError("Unmatched '['", opener.location)
    return ast


class BrainfuckEngine(LanguageEngine):
    name = "brainfuck"

    def _fresh_state(self) -> BFState:
        return BFState()

    def _parse(self, code: str) -> List[BFInstruction]:
        return parse_brainfuck(code)

    def _load(self, program: List[BFInstruction], user_input: str) -> None:
        self.state.ast = program
        self.state.input = user_input

    def _step(self) -> StepResult:
        st = self.state
        output = None
        if st.pc == -1:
            st.pc = 0
        else:
            instr = st.ast[st.pc]
            new_pc, output = self._process_op(instr)
            st.pc = st.pc + 1 if new_pc is None else new_pc

        return StepResult(
            display_state=self._display_state(),
            next_location=self._current_location(),
            output=output,
        )

    def _display_state(self) -> BFDisplayState:
        return BFDisplayState(tape=dict(self.state.tape), pointer=self.state.ptr)

    def _current_location(self) -> Optional[DocumentRange]:
        st = self.state
        if 0 <= st.pc < len(st.ast):
            return st.ast[st.pc].location
        return None

    def _process_op(self, instr: BFInstruction):
        """Apply one instruction. Returns (new_pc or None, output or None)."""
        st = self.state
        match instr.op:
            case BFOp.LEFT:
                if st.ptr <= 0:
                    raise EsoRuntimeError("Tape pointer out of bounds")
                st.ptr -= 1
                self._get_cell(st.ptr)
            case BFOp.RIGHT:
                st.ptr += 1
                self._get_cell(st.ptr)
            case BFOp.INCR:
                value = self._get_cell(st.ptr) + 1
                st.tape[st.ptr] = CELL_MIN if value > CELL_MAX else value
            case BFOp.DECR:
                value = self._get_cell(st.ptr) - 1
                st.tape[st.ptr] = CELL_MAX if value < CELL_MIN else value
            case BFOp.OUT:
                return None, chr(self._get_cell(st.ptr) % 0x10000)
            case BFOp.IN:
                if st.input:
                    st.tape[st.ptr] = ord(st.input[0])
                    st.input = st.input[1:]
                else:
                    # EOF is treated as a zero
                    st.tape[st.ptr] = 0
            case BFOp.LOOPIN:
                if self._get_cell(st.ptr) == 0:
                    return instr.jump + 1, None
            case BFOp.LOOPOUT:
                if self._get_cell(st.ptr) != 0:
                    return instr.jump, None
        return None, None

    def _get_cell(self, cell_id: int) -> int:
        """Value of a tape cell, initializing it on first use."""
        return self.state.tape.setdefault(cell_id, 0)
