"""
Parser for Chef recipes.

A Chef program is read top-down as a sequence of sections. The source lines
are kept in a reversed list ("code stack") so each section parser simply pops
the lines it consumes:

    Title.
    <blank>
    [comments paragraph, <blank>]
    Ingredients.
    <ingredient lines>
    <blank>
    [Cooking time: N minutes., <blank>]
    [Pre-heat oven to N degrees Celsius., <blank>]
    Method.
    <method lines, period-separated statements>
    [<blanks>, Serves N.]

The first recipe is the main one; any that follow are auxiliary recipes,
keyed by title.
"""
import re
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from eso.eso_chef_datatypes import (
    AddDryOp, ArithmeticOp, ChefOperation, ChefProgram, ChefRecipe, ChefRecipeServes,
    ChefStep, ClearOp, CopyToDishOp, EndOp, FnCallOp, IngredientBox, IngredientItem,
    LiquefyBowlOp, LiquefyIngOp, LoopBreakOp, LoopCloseOp, LoopOpenOp, PopOp, PushOp,
    RandomizeOp, RollBowlOp, RollIngOp, StackItemType, StdinOp,
)
from eso.eso_datatypes import DocumentRange
from eso.eso_errors import ParseError

DRY_MEASURES = ("g", "kg", "pinch", "pinches")
LIQUID_MEASURES = ("ml", "l", "dash", "dashes")
UNKNOWN_MEASURES = ("cup", "cups", "teaspoon", "teaspoons", "tablespoon", "tablespoons")
MEASURE_TYPES = ("heaped", "level")

ARITHMETIC_CODES = {"Add": "ADD", "Remove": "SUBTRACT", "Combine": "MULTIPLY", "Divide": "DIVIDE"}
ARITHMETIC_PREPOSITIONS = {"Add": "to", "Remove": "from", "Combine": "into", "Divide": "into"}

_ORD = r"(?: (\d+)(?:nd|rd|th|st))?"

TAKE_RE = re.compile(r"^Take ([a-zA-Z ]+?) from(?: the)? refrigerator$")
PUT_RE = re.compile(rf"^Put(?: the)? ([a-zA-Z ]+?) into(?: the)?{_ORD} mixing bowl$")
FOLD_RE = re.compile(rf"^Fold(?: the)? ([a-zA-Z ]+?) into(?: the)?{_ORD} mixing bowl$")
ARITHMETIC_RE = re.compile(
    rf"^(Add|Remove|Combine|Divide) ([a-zA-Z ]+?)(?: (to|into|from)(?: the)?{_ORD} mixing bowl)?$"
)
ADD_DRY_RE = re.compile(rf"^Add dry ingredients(?: to(?: the)?{_ORD} mixing bowl)?$")
LIQUEFY_BOWL_RE = re.compile(rf"^Liquefy(?: the)? contents of the{_ORD} mixing bowl$")
LIQUEFY_ING_RE = re.compile(r"^Liquefy(?: the)? ([a-zA-Z ]+?)$")
STIR_BOWL_RE = re.compile(rf"^Stir(?: the{_ORD} mixing bowl)? for (\d+) minutes?$")
STIR_ING_RE = re.compile(rf"^Stir ([a-zA-Z ]+?) into the{_ORD} mixing bowl$")
MIX_RE = re.compile(rf"^Mix(?: the{_ORD} mixing bowl)? well$")
CLEAN_RE = re.compile(rf"^Clean(?: the)?{_ORD} mixing bowl$")
POUR_RE = re.compile(rf"^Pour contents of the{_ORD} mixing bowl into the{_ORD} baking dish$")
SERVE_WITH_RE = re.compile(r"^Serve with ([a-zA-Z0-9 ]+)$")
REFRIGERATE_RE = re.compile(r"^Refrigerate(?: for (\d+) hours?)?$")
LOOP_ENDER_RE = re.compile(r"^(?:[a-zA-Z]+?)(?: the)?(?: ([a-zA-Z ]+?))? until ([a-zA-Z]+)$")
LOOP_OPENER_RE = re.compile(r"^([a-zA-Z]+?)(?: the)? ([a-zA-Z ]+)$")

COOKING_TIME_RE = re.compile(r"^Cooking time: \d+ (?:hours?|minutes?)\.$")
OVEN_SETTING_RE = re.compile(r"^Pre-heat oven to \d+ degrees Celsius(?: \(gas mark [\d/]+\))?\.$")
SERVES_RE = re.compile(r"^Serves (\d+)\.$")


class ChefSyntaxError(Exception):
    """
    Malformed syntax inside a single line. Carries no location; the section
    parser converts it into a ParseError pointing at the offending line.
    """
    pass


# (line text, zero-indexed row)
CodeLine = Tuple[str, int]


# =================================================================
# Single-line parsers
# =================================================================

def to_past_tense(verb: str) -> str:
    return verb + "d" if verb.endswith("e") else verb + "ed"


def verbs_match(opener_verb: str, closer_verb: str) -> bool:
    """
    Whether `closer_verb` ("until <verbed>") closes a loop opened by `opener_verb`.
    Accepts the regular past tense as well as irregular forms built on the verb
    ("stir" / "stirred").
    """
    return closer_verb == to_past_tense(opener_verb) or closer_verb.startswith(opener_verb)


def _parse_measure(word: Optional[str]) -> Optional[StackItemType]:
    if word in DRY_MEASURES:
        return 'dry'
    if word in LIQUID_MEASURES:
        return 'liquid'
    if word in UNKNOWN_MEASURES:
        return 'unknown'
    return None


def _parse_ordinal(value: Optional[str]) -> int:
    """Bowl or dish number; an omitted ordinal means the first one."""
    if not value or not value.strip():
        return 1
    try:
        return int(value.strip(), 10)
    except ValueError:
        raise ChefSyntaxError("Invalid dish/bowl identifier")


def _assert_match(line: str, regex: re.Pattern) -> re.Match:
    m = regex.match(line)
    if not m:
        raise ChefSyntaxError("Unknown instruction")
    return m


def parse_ingredient_item(line: str) -> Tuple[str, IngredientItem]:
    """
    Parse one line of the ingredients section:
    `[initial value] [[heaped|level] measure] name`.
    """
    words = line.split()

    quantity = None
    if words and re.fullmatch(r"[+-]?\d+", words[0]):
        quantity = int(words.pop(0))

    has_measure_type = bool(words) and words[0] in MEASURE_TYPES
    if has_measure_type:
        words.pop(0)

    measure = _parse_measure(words[0] if words else None)
    if has_measure_type and measure is None:
        raise ChefSyntaxError("Invalid measure")
    if measure is not None:
        words.pop(0)

    if not words:
        raise ChefSyntaxError("Missing ingredient name")
    return " ".join(words), IngredientItem(type=measure or 'unknown', value=quantity)


def _parse_arithmetic_op(line: str) -> ArithmeticOp:
    m = _assert_match(line, ARITHMETIC_RE)
    verb, ing, preposition, bowl = m.groups()
    if preposition and preposition != ARITHMETIC_PREPOSITIONS[verb]:
        raise ChefSyntaxError("Instruction has incorrect syntax")
    return ArithmeticOp(code=ARITHMETIC_CODES[verb], ing=ing, bowl_id=_parse_ordinal(bowl))


def parse_method_step(line: str) -> ChefOperation:
    """
    Parse a single method statement (text between two periods, trimmed).

    Loop jump addresses are left as placeholders: resolving them needs the
    whole method, which is the caller's job.
    """
    if line.startswith("Take "):
        m = _assert_match(line, TAKE_RE)
        return StdinOp(ing=m.group(1))

    if line.startswith("Put "):
        m = _assert_match(line, PUT_RE)
        return PushOp(ing=m.group(1), bowl_id=_parse_ordinal(m.group(2)))

    if line.startswith("Fold "):
        m = _assert_match(line, FOLD_RE)
        return PopOp(ing=m.group(1), bowl_id=_parse_ordinal(m.group(2)))

    if line.startswith("Add dry ingredients"):
        m = _assert_match(line, ADD_DRY_RE)
        return AddDryOp(bowl_id=_parse_ordinal(m.group(1)))

    if line.split(" ", 1)[0] in ARITHMETIC_CODES:
        return _parse_arithmetic_op(line)

    if line.startswith("Liquefy contents of the ") or line.startswith("Liquefy the contents of the "):
        m = _assert_match(line, LIQUEFY_BOWL_RE)
        return LiquefyBowlOp(bowl_id=_parse_ordinal(m.group(1)))

    if line.startswith("Liquefy "):
        m = _assert_match(line, LIQUEFY_ING_RE)
        return LiquefyIngOp(ing=m.group(1))

    if line.startswith("Stir ") and (line.endswith("minute") or line.endswith("minutes")):
        m = _assert_match(line, STIR_BOWL_RE)
        return RollBowlOp(bowl_id=_parse_ordinal(m.group(1)), num=int(m.group(2)))

    if line.startswith("Stir "):
        m = _assert_match(line, STIR_ING_RE)
        return RollIngOp(ing=m.group(1), bowl_id=_parse_ordinal(m.group(2)))

    if line.startswith("Mix "):
        m = _assert_match(line, MIX_RE)
        return RandomizeOp(bowl_id=_parse_ordinal(m.group(1)))

    if line.startswith("Clean "):
        m = _assert_match(line, CLEAN_RE)
        return ClearOp(bowl_id=_parse_ordinal(m.group(1)))

    if line.startswith("Pour "):
        m = _assert_match(line, POUR_RE)
        return CopyToDishOp(bowl_id=_parse_ordinal(m.group(1)), dish_id=_parse_ordinal(m.group(2)))

    if line == "Set aside":
        return LoopBreakOp()

    if line.startswith("Serve with "):
        m = _assert_match(line, SERVE_WITH_RE)
        return FnCallOp(recipe=m.group(1))

    if line.startswith("Refrigerate"):
        m = _assert_match(line, REFRIGERATE_RE)
        return EndOp(num=int(m.group(1)) if m.group(1) else None)

    if " until " in line:
        m = _assert_match(line, LOOP_ENDER_RE)
        return LoopCloseOp(verb=m.group(2).lower(), ing=m.group(1) or None)

    m = _assert_match(line, LOOP_OPENER_RE)
    return LoopOpenOp(verb=m.group(1).lower(), ing=m.group(2))


# =================================================================
# Section parsers
# =================================================================

class _RecipeReader:
    """Consumes the code stack of a whole program, one recipe section at a time."""

    def __init__(self, code: str):
        lines = code.split("\n")
        self.stack: List[CodeLine] = [(line, row) for row, line in enumerate(lines)][::-1]
        # Errors at the end of input point at the program's last character
        last_col = max(len(lines[-1]) - 1, 0)
        self.last_char_range = DocumentRange.cell(len(lines) - 1, last_col)

    def peek(self) -> Optional[str]:
        """Trimmed text of the next line, None at the end of input."""
        return self.stack[-1][0].strip() if self.stack else None

    def pop(self) -> Tuple[Optional[str], int]:
        """Pop the next line as (trimmed text, row); (None, -1) at the end of input."""
        if not self.stack:
            return None, -1
        line, row = self.stack.pop()
        return line.strip(), row

    def exhaust_empty_lines(self) -> None:
        while self.stack and self.peek() == "":
            self.stack.pop()

    def parse_title(self) -> str:
        line, row = self.pop()
        if line is None:
            raise ParseError("Expected recipe title", self.last_char_range)
        if not line:
            raise ParseError("Expected recipe title", DocumentRange(start_line=row))
        if not line.endswith("."):
            raise ParseError("Recipe title must end with period", DocumentRange(start_line=row))
        return line[:-1]

    def parse_empty_line(self) -> None:
        line, row = self.pop()
        if line is None:
            raise ParseError("Expected blank line", self.last_char_range)
        if line:
            raise ParseError("Expected blank line", DocumentRange(start_line=row))

    def parse_comments(self) -> None:
        while self.stack and self.peek() != "":
            self.stack.pop()

    def parse_header(self, expected: str, message: str) -> None:
        line, row = self.pop()
        if line is None:
            raise ParseError(message, self.last_char_range)
        if line != expected:
            raise ParseError(message, DocumentRange(start_line=row))

    def parse_ingredients(self) -> IngredientBox:
        box: IngredientBox = {}
        while self.stack and self.peek() != "":
            line, row = self.pop()
            try:
                name, item = parse_ingredient_item(line)
            except ChefSyntaxError as e:
                raise ParseError(str(e), DocumentRange(start_line=row))
            box[name] = item
        return box

    def parse_matching_line(self, regex: re.Pattern, message: str) -> re.Match:
        line, row = self.pop()
        m = regex.match(line)
        if not m:
            raise ParseError(message, DocumentRange(start_line=row))
        return m

    def method_segments(self) -> List[Tuple[str, DocumentRange]]:
        """Split the method paragraph into period-terminated statements."""
        segments = []
        while self.stack and self.peek() != "":
            line, row = self.stack.pop()
            start = 0
            for idx, char in enumerate(line):
                if char != ".":
                    continue
                location = DocumentRange(start_line=row, start_col=start, end_col=idx)
                segments.append((line[start:idx].strip(), location))
                start = idx + 1
        return segments

    def parse_method(self) -> List[ChefStep]:
        method: List[ChefStep] = []
        # (opener index, opener verb, pending "Set aside" indices)
        loops: List[Tuple[int, str, List[int]]] = []

        for text, location in self.method_segments():
            try:
                op = parse_method_step(text)
                index = len(method)
                if isinstance(op, LoopOpenOp):
                    loops.append((index, op.verb, []))
                elif isinstance(op, LoopBreakOp):
                    if not loops:
                        raise ChefSyntaxError("Set aside outside of a loop")
                    loops[-1][2].append(index)
                elif isinstance(op, LoopCloseOp):
                    if not loops:
                        raise ChefSyntaxError("Loop closer without a matching loop opener")
                    opener_idx, verb, breaks = loops.pop()
                    if not verbs_match(verb, op.verb):
                        raise ChefSyntaxError(
                            f"Loop verb mismatch: expected '{to_past_tense(verb)}', found '{op.verb}'"
                        )
                    op = replace(op, opener=opener_idx)
                    opener = method[opener_idx]
                    method[opener_idx] = replace(opener, op=replace(opener.op, closer=index))
                    for b in breaks:
                        method[b] = replace(method[b], op=replace(method[b].op, closer=index))
            except ChefSyntaxError as e:
                raise ParseError(str(e), location)
            method.append(ChefStep(op=op, location=location))

        if loops:
            opener = method[loops[-1][0]]
            raise ParseError("Loop is never closed", opener.location)
        return method

    def parse_recipe(self) -> ChefRecipe:
        title = self.parse_title()
        self.parse_empty_line()

        if self.peek() != "Ingredients.":
            self.parse_comments()
            self.parse_empty_line()

        self.parse_header("Ingredients.", "Expected ingredients header")
        ingredients = self.parse_ingredients()
        self.parse_empty_line()

        if (self.peek() or "").startswith("Cooking time: "):
            self.parse_matching_line(COOKING_TIME_RE, "Malformed cooking time statement")
            self.parse_empty_line()

        if (self.peek() or "").startswith("Pre-heat oven "):
            self.parse_matching_line(OVEN_SETTING_RE, "Malformed oven setting")
            self.parse_empty_line()

        self.parse_header("Method.", 'Expected "Method."')
        method = self.parse_method()
        self.exhaust_empty_lines()

        serves = None
        if (self.peek() or "").startswith("Serves "):
            row = self.stack[-1][1]
            m = self.parse_matching_line(SERVES_RE, "Malformed serves statement")
            serves = ChefRecipeServes(line=row, num=int(m.group(1)))

        return ChefRecipe(name=title, ingredients=ingredients, method=method, serves=serves)


def _validate_recipe(recipe: ChefRecipe, auxes: Dict[str, ChefRecipe]) -> None:
    """Check that every ingredient and auxiliary recipe the method names exists."""
    for step in recipe.method:
        ing = getattr(step.op, "ing", None)
        if ing and ing not in recipe.ingredients:
            raise ParseError(f"Invalid ingredient: {ing}", step.location)
        if isinstance(step.op, FnCallOp) and step.op.recipe not in auxes:
            raise ParseError(f"Invalid recipe name: {step.op.recipe}", step.location)


def parse_chef(code: str) -> ChefProgram:
    """Parse a complete Chef program. Raises ParseError."""
    reader = _RecipeReader(code)
    reader.exhaust_empty_lines()

    main = reader.parse_recipe()
    reader.exhaust_empty_lines()

    auxes: Dict[str, ChefRecipe] = {}
    while reader.stack:
        recipe = reader.parse_recipe()
        auxes[recipe.name] = recipe
        reader.exhaust_empty_lines()

    program = ChefProgram(main=main, auxes=auxes)
    _validate_recipe(program.main, program.auxes)
    for aux in program.auxes.values():
        _validate_recipe(aux, program.auxes)
    return program
