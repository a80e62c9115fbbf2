"""
Chef: programs written as cooking recipes.

Each recipe call runs in its own kitchen. "Serve with" forks a new call-stack
frame holding fresh copies of the auxiliary recipe's ingredients and of the
caller's bowls and dishes. When a frame finishes, its first mixing bowl is
poured onto the caller's first mixing bowl ("folding" the stack). This
repeats for as long as the caller itself has nothing left to execute, so a
chain of calls that each end on their "Serve with" collapses in one step.
"""
import copy
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from eso.eso_chef_datatypes import (
    ChefOperation, ChefProgram, ChefRecipe, EndOp, FnCallOp, LoopBreakOp, LoopCloseOp,
    LoopOpenOp,
)
from eso.eso_chef_kitchen import ChefKitchenState, Kitchen
from eso.eso_chef_parser import parse_chef
from eso.eso_datatypes import DocumentRange, StepResult
from eso.eso_engine import LanguageEngine
from eso.eso_errors import UnexpectedError
from eso.eso_input import InputStream

MAIN_FRAME_NAME = "Main recipe"
END_OF_PROGRAM = "End of program"


@dataclass
class CallStackFrame:
    recipe: ChefRecipe
    kitchen: Kitchen
    pc: int
    aux_name: Optional[str] = None

    @property
    def completed(self) -> bool:
        """Whether nothing is left to execute, "Serves" statement included."""
        length = len(self.recipe.method)
        if self.pc < length:
            return False
        if self.pc > length:
            return True
        return self.recipe.serves is None


@dataclass(frozen=True)
class ChefDisplayState:
    stack: Tuple[str, ...]
    current_kitchen: ChefKitchenState


@dataclass
class ChefState:
    program: ChefProgram = field(default_factory=ChefProgram.empty)
    stack: List[CallStackFrame] = field(default_factory=list)
    input: InputStream = field(default_factory=InputStream)
    # Kitchen shown once the call stack has emptied
    last_kitchen: Optional[Kitchen] = None


class ChefEngine(LanguageEngine):
    name = "chef"

    def _fresh_state(self) -> ChefState:
        return ChefState()

    def _parse(self, code: str) -> ChefProgram:
        return parse_chef(code)

    def _load(self, program: ChefProgram, user_input: str) -> None:
        st = self.state
        st.program = program
        st.input = InputStream(user_input)
        kitchen = Kitchen(st.input, copy.deepcopy(program.main.ingredients))
        # pc of -1 makes the first step a no-op that lands on the first instruction
        st.stack.append(CallStackFrame(recipe=program.main, kitchen=kitchen, pc=-1))
        st.last_kitchen = kitchen

    @property
    def current_frame(self) -> CallStackFrame:
        if not self.state.stack:
            raise UnexpectedError("call stack is empty")
        return self.state.stack[-1]

    def _step(self) -> StepResult:
        output = None
        frame = self.current_frame
        method_length = len(frame.recipe.method)

        if frame.pc == -1:
            frame.pc += 1
        elif frame.pc == method_length:
            # The "Serves" statement
            output = self._serve_dishes(frame.kitchen, frame.recipe.serves.num)
            frame.pc += 1
        else:
            output = self._process_op(frame.recipe.method[frame.pc].op)

        frame = self.current_frame
        if frame.completed:
            self._fold_call_stack()

        return StepResult(
            display_state=self._display_state(),
            next_location=self._current_location(),
            output=output or None,
        )

    def _process_op(self, op: ChefOperation) -> Optional[str]:
        """Execute one method instruction and move the frame's pc."""
        frame = self.current_frame
        kitchen = frame.kitchen

        match op:
            case LoopOpenOp(ing=ing, closer=closer):
                if kitchen.get_ingredient(ing, assert_value=True).value == 0:
                    frame.pc = closer + 1
                else:
                    frame.pc += 1
            case LoopBreakOp(closer=closer):
                frame.pc = closer + 1
            case LoopCloseOp(ing=ing, opener=opener_idx):
                if ing:
                    kitchen.get_ingredient(ing, assert_value=True).value -= 1
                opener = frame.recipe.method[opener_idx].op
                if not isinstance(opener, LoopOpenOp):
                    raise UnexpectedError("bad jump address")
                if kitchen.get_ingredient(opener.ing, assert_value=True).value == 0:
                    frame.pc += 1
                else:
                    frame.pc = opener_idx
            case FnCallOp(recipe=recipe):
                frame.pc += 1
                self._fork_to_aux_recipe(kitchen, recipe)
            case EndOp(num=num):
                frame.pc = len(frame.recipe.method)
                if num:
                    return self._serve_dishes(kitchen, num)
            case _:
                kitchen.process_op(op)
                frame.pc += 1
        return None

    def _serve_dishes(self, kitchen: Kitchen, num_dishes: int) -> str:
        return "".join(kitchen.serialize_and_clear_dish(i) for i in range(1, num_dishes + 1))

    def _fork_to_aux_recipe(self, kitchen: Kitchen, name: str) -> None:
        st = self.state
        recipe = st.program.auxes[name]
        self._dbg("serve with", repr(name), "at depth", len(st.stack))
        aux_kitchen = Kitchen(
            st.input,
            copy.deepcopy(recipe.ingredients),
            bowls=copy.deepcopy(kitchen.bowls),
            dishes=copy.deepcopy(kitchen.dishes),
        )
        st.stack.append(CallStackFrame(recipe=recipe, kitchen=aux_kitchen, pc=0, aux_name=name))

    def _fold_call_stack(self) -> None:
        """
        Pop the finished top frame and pour its first bowl onto the caller's first
        bowl, repeating while the new top frame is finished as well.
        """
        st = self.state
        while True:
            popped = st.stack.pop()
            if not st.stack:
                st.last_kitchen = popped.kitchen
                break
            parent = st.stack[-1]
            parent.kitchen.get_bowl(1).extend(popped.kitchen.get_bowl(1))
            self._dbg("folded", repr(popped.aux_name), "into", repr(parent.aux_name or MAIN_FRAME_NAME))
            if not parent.completed:
                break

    def _display_state(self) -> ChefDisplayState:
        st = self.state
        if st.stack:
            names = tuple(frame.aux_name or MAIN_FRAME_NAME for frame in st.stack)
            kitchen = st.stack[-1].kitchen
        else:
            names = (END_OF_PROGRAM,)
            kitchen = st.last_kitchen
        if kitchen is None:
            kitchen = Kitchen(st.input, {})
        return ChefDisplayState(stack=names, current_kitchen=kitchen.snapshot())

    def _current_location(self) -> Optional[DocumentRange]:
        st = self.state
        if not st.stack:
            return None
        frame = st.stack[-1]
        if frame.pc < 0:
            return None
        if frame.pc >= len(frame.recipe.method):
            serves = frame.recipe.serves
            return DocumentRange(start_line=serves.line) if serves else None
        return frame.recipe.method[frame.pc].location
