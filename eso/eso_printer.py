"""
A pretty-printer for engine display states and step results.
"""
import collections.abc

import pystache

from eso.eso_befunge import Bfg93DisplayState
from eso.eso_brainfuck import BFDisplayState
from eso.eso_chef import ChefDisplayState
from eso.eso_chef_datatypes import IngredientItem, StackItem
from eso.eso_datatypes import DocumentEdit, DocumentRange, StepResult
from eso.eso_deadfish import DFDisplayState
from eso.eso_errors import EsoRuntimeError, ParseError

REPORT_TEMPLATE = (
    "[{{language}}] {{status}}"
    "{{#location}} at line {{line}}{{#col}}, col {{col}}{{/col}}{{/location}}"
    "{{#output}} | output: {{output}}{{/output}}"
    "{{#error}} | {{error}}{{/error}}"
)


class Printer:
    """Formats display states into readable text panels."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()
        self._renderer = pystache.Renderer(escape=lambda u: u)

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def report(self, result: StepResult, language: str = "") -> str:
        """One-line summary of a step result."""
        if result.error is not None:
            status = "error"
        elif result.next_location is None:
            status = "done"
        elif result.signal == 'paused':
            status = "paused"
        else:
            status = "running"
        loc = result.next_location
        context = {
            "language": language or "?",
            "status": status,
            "location": {
                "line": loc.start_line + 1,
                "col": loc.start_col + 1 if loc.start_col is not None else None,
            } if loc is not None else None,
            "output": repr(result.output) if result.output else None,
            "error": result.error.format_error() if result.error is not None else None,
        }
        return self._renderer.render(REPORT_TEMPLATE, context)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, collections.abc.Mapping): return self._pformat_dict
        if isinstance(obj, (list, tuple)): return self._pformat_list
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            str: self._pformat_primitive,
            int: self._pformat_primitive,
            type(None): self._pformat_none,
            DocumentRange: self._pformat_range,
            DocumentEdit: self._pformat_edit,
            StepResult: self._pformat_step_result,
            ParseError: self._pformat_error,
            EsoRuntimeError: self._pformat_error,
            StackItem: self._pformat_stack_item,
            IngredientItem: self._pformat_ingredient,
            ChefDisplayState: self._pformat_chef,
            Bfg93DisplayState: self._pformat_befunge,
            BFDisplayState: self._pformat_brainfuck,
            DFDisplayState: self._pformat_deadfish,
        }

    def _indent(self, level):
        return self._indent_char * level

    def _pformat_primitive(self, obj, level):
        return str(obj)

    def _pformat_none(self, obj, level):
        return "none"

    def _pformat_list(self, obj, level):
        if not obj:
            return "[]"
        return "[" + ", ".join(self.pformat(x, level) for x in obj) + "]"

    def _pformat_dict(self, obj, level):
        if not obj:
            return "{}"
        ind = self._indent(level + 1)
        lines = [f"{ind}{k}: {self.pformat(v, level + 1)}" for k, v in obj.items()]
        return "\n" + "\n".join(lines)

    def _pformat_range(self, obj, level):
        col = f":{obj.start_col + 1}" if obj.start_col is not None else ""
        return f"{obj.start_line + 1}{col}"

    def _pformat_edit(self, obj, level):
        return f"edit@{self.pformat(obj.range)} {obj.text!r}"

    def _pformat_error(self, obj, level):
        return obj.format_error()

    def _pformat_step_result(self, obj, level):
        ind = self._indent(level + 1)
        parts = [
            f"{ind}next: {self.pformat(obj.next_location)}",
            f"{ind}output: {obj.output!r}" if obj.output else None,
            f"{ind}signal: {obj.signal}" if obj.signal else None,
            f"{ind}error: {self.pformat(obj.error)}" if obj.error is not None else None,
            f"{ind}state:{self._panel(self.pformat(obj.display_state, level + 1))}",
        ]
        return "step\n" + "\n".join(p for p in parts if p)

    def _panel(self, text):
        return text if text.startswith("\n") else " " + text

    # --- Language panels ---

    def _pformat_stack_item(self, obj, level):
        return f"{obj.value}({obj.type[0]})"

    def _pformat_ingredient(self, obj, level):
        value = "?" if obj.value is None else str(obj.value)
        return f"{value} ({obj.type})"

    def _pformat_chef(self, obj, level):
        ind = self._indent(level + 1)
        kitchen = obj.current_kitchen
        lines = [f"{ind}call stack: {' > '.join(obj.stack)}"]
        lines.append(f"{ind}ingredients:{self._panel(self.pformat(kitchen.ingredients, level + 1))}")
        for bowl_id, bowl in sorted(kitchen.bowls.items()):
            lines.append(f"{ind}bowl {bowl_id}: {self.pformat(bowl, level + 1)}")
        for dish_id, dish in sorted(kitchen.dishes.items()):
            lines.append(f"{ind}dish {dish_id}: {self.pformat(dish, level + 1)}")
        return "\n" + "\n".join(lines)

    def _pformat_befunge(self, obj, level):
        mode = " (string mode)" if obj.str_mode else ""
        return f"stack: {self.pformat(list(obj.stack))} | direction: {obj.direction.value}{mode}"

    def _pformat_brainfuck(self, obj, level):
        if not obj.tape:
            return f"tape: [] | pointer: {obj.pointer}"
        cells = []
        for idx in range(max(obj.tape) + 1):
            cell = str(obj.tape.get(idx, 0))
            cells.append(f"*{cell}" if idx == obj.pointer else cell)
        return f"tape: [{' '.join(cells)}] | pointer: {obj.pointer}"

    def _pformat_deadfish(self, obj, level):
        return f"value: {obj.value}"
