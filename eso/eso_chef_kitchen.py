"""
The kitchen of a single Chef recipe call: its ingredients, mixing bowls and
baking dishes, plus the implementation of every non-control-flow operation.
"""
import copy
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from eso.eso_chef_datatypes import (
    AddDryOp, ArithmeticOp, ChefKitchenOp, ClearOp, CopyToDishOp, IngredientBox,
    IngredientItem, LiquefyBowlOp, LiquefyIngOp, PopOp, PushOp, RandomizeOp, RollBowlOp,
    RollIngOp, StackItem, StdinOp,
)
from eso.eso_errors import EsoRuntimeError, UnexpectedError
from eso.eso_input import InputStream

Bowl = List[StackItem]  # top of the bowl is the end of the list


@dataclass(frozen=True)
class ChefKitchenState:
    """Snapshot of a kitchen, as shown to the host."""
    ingredients: IngredientBox
    bowls: Dict[int, Bowl]
    dishes: Dict[int, Bowl]


class Kitchen:
    def __init__(self, input_stream: InputStream, ingredients: IngredientBox,
                 bowls: Optional[Dict[int, Bowl]] = None,
                 dishes: Optional[Dict[int, Bowl]] = None):
        self._input = input_stream
        self.ingredients = ingredients
        self.bowls: Dict[int, Bowl] = bowls if bowls is not None else {}
        self.dishes: Dict[int, Bowl] = dishes if dishes is not None else {}

    def get_bowl(self, bowl_id: int) -> Bowl:
        """Bowl by 1-indexed id, creating it empty on first use."""
        return self.bowls.setdefault(bowl_id, [])

    def get_dish(self, dish_id: int) -> Bowl:
        return self.dishes.setdefault(dish_id, [])

    def get_ingredient(self, name: str, assert_value: bool = False) -> IngredientItem:
        item = self.ingredients.get(name)
        if item is None:
            raise EsoRuntimeError(f"Ingredient '{name}' does not exist")
        if assert_value and item.value is None:
            raise EsoRuntimeError(f"Ingredient '{name}' is undefined")
        return item

    def serialize_and_clear_dish(self, dish_id: int) -> str:
        """Serve a baking dish: print its items top to bottom and empty it."""
        dish = self.get_dish(dish_id)
        out = []
        while dish:
            item = dish.pop()
            if item.type == 'liquid':
                try:
                    out.append(chr(item.value))
                except (ValueError, OverflowError):
                    raise EsoRuntimeError(f"Invalid character code: {item.value}")
            else:
                out.append(" " + str(item.value))
        return "".join(out)

    def snapshot(self) -> ChefKitchenState:
        return ChefKitchenState(
            ingredients=copy.deepcopy(self.ingredients),
            bowls={k: list(v) for k, v in self.bowls.items()},
            dishes={k: list(v) for k, v in self.dishes.items()},
        )

    def process_op(self, op: ChefKitchenOp) -> None:
        match op:
            case StdinOp(ing=ing):
                self.get_ingredient(ing).value = self._input.get_number()
            case PushOp(ing=ing, bowl_id=bowl_id):
                item = self.get_ingredient(ing, assert_value=True)
                self.get_bowl(bowl_id).append(StackItem(value=item.value, type=item.type))
            case PopOp(ing=ing, bowl_id=bowl_id):
                item = self.get_ingredient(ing)
                top = self._pop_bowl(bowl_id)
                item.value, item.type = top.value, top.type
            case ArithmeticOp():
                self._arithmetic(op)
            case AddDryOp(bowl_id=bowl_id):
                total = 0
                for name, item in self.ingredients.items():
                    if item.type == 'dry':
                        total += self.get_ingredient(name, assert_value=True).value
                self.get_bowl(bowl_id).append(StackItem(value=total, type='dry'))
            case LiquefyIngOp(ing=ing):
                self.get_ingredient(ing).type = 'liquid'
            case LiquefyBowlOp(bowl_id=bowl_id):
                bowl = self.get_bowl(bowl_id)
                bowl[:] = [StackItem(value=item.value, type='liquid') for item in bowl]
            case RollBowlOp(bowl_id=bowl_id, num=num):
                self._roll(bowl_id, num)
            case RollIngOp(bowl_id=bowl_id, ing=ing):
                self._roll(bowl_id, self.get_ingredient(ing, assert_value=True).value)
            case RandomizeOp(bowl_id=bowl_id):
                random.shuffle(self.get_bowl(bowl_id))
            case ClearOp(bowl_id=bowl_id):
                self.get_bowl(bowl_id).clear()
            case CopyToDishOp(bowl_id=bowl_id, dish_id=dish_id):
                self.get_dish(dish_id).extend(self.get_bowl(bowl_id))
            case _:
                raise UnexpectedError(f"unknown kitchen op {op!r}")

    def _pop_bowl(self, bowl_id: int) -> StackItem:
        bowl = self.get_bowl(bowl_id)
        if not bowl:
            raise EsoRuntimeError(f"Bowl {bowl_id} is empty")
        return bowl.pop()

    def _arithmetic(self, op: ArithmeticOp) -> None:
        value = self.get_ingredient(op.ing, assert_value=True).value
        bowl = self.get_bowl(op.bowl_id)
        if not bowl:
            raise EsoRuntimeError(f"Bowl {op.bowl_id} is empty")
        if op.code == "DIVIDE" and value == 0:
            raise EsoRuntimeError("Cannot divide by zero")
        top = bowl.pop().value
        if op.code == "ADD":
            result = top + value
        elif op.code == "SUBTRACT":
            result = top - value
        elif op.code == "MULTIPLY":
            result = top * value
        else:
            result = top // value
        bowl.append(StackItem(value=result, type='unknown'))

    def _roll(self, bowl_id: int, num: int) -> None:
        """Sink the top item of the bowl `num` places down."""
        bowl = self.get_bowl(bowl_id)
        if not bowl:
            return
        top = bowl.pop()
        bowl.insert(max(len(bowl) - num, 0), top)
