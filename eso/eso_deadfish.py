"""
Deadfish: one accumulator, four commands.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from eso.eso_datatypes import DocumentRange, StepResult
from eso.eso_engine import LanguageEngine

INCR, DECR, SQUARE, OUT = "i", "d", "s", "o"
OP_CHARS = (INCR, DECR, SQUARE, OUT)

# (op, line, col)
DFInstruction = Tuple[str, int, int]


@dataclass(frozen=True)
class DFDisplayState:
    value: int


@dataclass
class DFState:
    ast: List[DFInstruction] = field(default_factory=list)
    value: int = 0
    pc: int = -1


class DeadfishEngine(LanguageEngine):
    name = "deadfish"

    def _fresh_state(self) -> DFState:
        return DFState()

    def _parse(self, code: str) -> List[DFInstruction]:
        # Every character that is not a command is ignored, so parsing never fails
        return [
            (char, l_idx, c_idx)
            for l_idx, line in enumerate(code.split("\n"))
            for c_idx, char in enumerate(line)
            if char in OP_CHARS
        ]

    def _load(self, program: List[DFInstruction], user_input: str) -> None:
        self.state.ast = program

    def _step(self) -> StepResult:
        st = self.state
        output = None
        if st.pc != -1:
            output = self._process_op(st.ast[st.pc][0])
        st.pc += 1
        return StepResult(
            display_state=self._display_state(),
            next_location=self._current_location(),
            output=output,
        )

    def _process_op(self, op: str) -> Optional[str]:
        st = self.state
        if op == OUT:
            return str(st.value)
        if op == INCR:
            st.value += 1
        elif op == DECR:
            st.value -= 1
        elif op == SQUARE:
            st.value = st.value * st.value
        if st.value == -1 or st.value == 256:
            st.value = 0
        return None

    def _display_state(self) -> DFDisplayState:
        return DFDisplayState(value=self.state.value)

    def _current_location(self) -> Optional[DocumentRange]:
        st = self.state
        if 0 <= st.pc < len(st.ast):
            _, line, col = st.ast[st.pc]
            return DocumentRange.cell(line, col)
        return None
