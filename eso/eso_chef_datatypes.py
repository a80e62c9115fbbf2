"""
Data types for Chef programs: the parsed recipe structure, the kitchen's
stack items, and one frozen dataclass per method operation.

Control-flow operations refer to each other through plain indices into the
recipe's method list, resolved once by the parser.
"""
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Literal, Optional, Union

from eso.eso_datatypes import DocumentRange

StackItemType = Literal['dry', 'liquid', 'unknown']

#: Placeholder for loop jump addresses until the parser resolves them
JUMP_ADDRESS_PLACEHOLDER = -1


@dataclass(frozen=True)
class StackItem:
    """An element of a mixing bowl or a baking dish."""
    value: int
    type: StackItemType


@dataclass
class IngredientItem:
    """Kind and (possibly undefined) value of an ingredient."""
    type: StackItemType
    value: Optional[int] = None


IngredientBox = Dict[str, IngredientItem]


# =================================================================
# Method operations
# =================================================================

@dataclass(frozen=True)
class StdinOp:
    """Take `ing` from refrigerator: read a number from input into `ing`."""
    code: ClassVar[str] = "STDIN"
    ing: str


@dataclass(frozen=True)
class PushOp:
    """Put `ing` into the bowl."""
    code: ClassVar[str] = "PUSH"
    ing: str
    bowl_id: int = 1


@dataclass(frozen=True)
class PopOp:
    """Fold `ing` into the bowl: pop the bowl's top into `ing`."""
    code: ClassVar[str] = "POP"
    ing: str
    bowl_id: int = 1


@dataclass(frozen=True)
class ArithmeticOp:
    """Add / Remove / Combine / Divide, applied to the top of the bowl."""
    code: Literal['ADD', 'SUBTRACT', 'MULTIPLY', 'DIVIDE']
    ing: str
    bowl_id: int = 1


@dataclass(frozen=True)
class AddDryOp:
    code: ClassVar[str] = "ADD-DRY"
    bowl_id: int = 1


@dataclass(frozen=True)
class LiquefyIngOp:
    code: ClassVar[str] = "LIQ-ING"
    ing: str


@dataclass(frozen=True)
class LiquefyBowlOp:
    code: ClassVar[str] = "LIQ-BOWL"
    bowl_id: int = 1


@dataclass(frozen=True)
class RollBowlOp:
    """Stir the bowl for `num` minutes."""
    code: ClassVar[str] = "ROLL-BOWL"
    bowl_id: int
    num: int


@dataclass(frozen=True)
class RollIngOp:
    """Stir `ing` into the bowl."""
    code: ClassVar[str] = "ROLL-ING"
    bowl_id: int
    ing: str


@dataclass(frozen=True)
class RandomizeOp:
    """Mix the bowl well."""
    code: ClassVar[str] = "RANDOM"
    bowl_id: int = 1


@dataclass(frozen=True)
class ClearOp:
    """Clean the bowl."""
    code: ClassVar[str] = "CLEAR"
    bowl_id: int = 1


@dataclass(frozen=True)
class CopyToDishOp:
    """Pour contents of the bowl into the baking dish."""
    code: ClassVar[str] = "COPY"
    bowl_id: int = 1
    dish_id: int = 1


@dataclass(frozen=True)
class LoopOpenOp:
    code: ClassVar[str] = "LOOP-OPEN"
    verb: str
    ing: str
    closer: int = JUMP_ADDRESS_PLACEHOLDER


@dataclass(frozen=True)
class LoopCloseOp:
    code: ClassVar[str] = "LOOP-CLOSE"
    verb: str
    ing: Optional[str] = None
    opener: int = JUMP_ADDRESS_PLACEHOLDER


@dataclass(frozen=True)
class LoopBreakOp:
    """Set aside."""
    code: ClassVar[str] = "LOOP-BREAK"
    closer: int = JUMP_ADDRESS_PLACEHOLDER


@dataclass(frozen=True)
class FnCallOp:
    """Serve with `recipe`."""
    code: ClassVar[str] = "FNCALL"
    recipe: str


@dataclass(frozen=True)
class EndOp:
    """Refrigerate [for `num` hours]."""
    code: ClassVar[str] = "END"
    num: Optional[int] = None


ChefKitchenOp = Union[
    StdinOp, PushOp, PopOp, ArithmeticOp, AddDryOp, LiquefyIngOp, LiquefyBowlOp,
    RollBowlOp, RollIngOp, RandomizeOp, ClearOp, CopyToDishOp,
]
ChefFlowControlOp = Union[LoopOpenOp, LoopCloseOp, LoopBreakOp, FnCallOp, EndOp]
ChefOperation = Union[ChefKitchenOp, ChefFlowControlOp]

FLOW_CONTROL_OPS = (LoopOpenOp, LoopCloseOp, LoopBreakOp, FnCallOp, EndOp)


def is_flow_control_op(op: ChefOperation) -> bool:
    return isinstance(op, FLOW_CONTROL_OPS)


# =================================================================
# Program structure
# =================================================================

@dataclass(frozen=True)
class ChefStep:
    """A method operation and where it sits in the source."""
    op: ChefOperation
    location: DocumentRange


@dataclass(frozen=True)
class ChefRecipeServes:
    line: int  # Line number of the "Serves" statement
    num: int   # Number of servings


@dataclass
class ChefRecipe:
    name: str
    ingredients: IngredientBox = field(default_factory=dict)
    method: List[ChefStep] = field(default_factory=list)
    serves: Optional[ChefRecipeServes] = None


@dataclass
class ChefProgram:
    main: ChefRecipe
    auxes: Dict[str, ChefRecipe] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> 'ChefProgram':
        return cls(main=ChefRecipe(name=""))
