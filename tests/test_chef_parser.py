import pytest

from eso.eso_chef_datatypes import (
    AddDryOp, ArithmeticOp, ClearOp, CopyToDishOp, EndOp, FnCallOp, IngredientItem,
    LiquefyBowlOp, LiquefyIngOp, LoopBreakOp, LoopCloseOp, LoopOpenOp, PopOp, PushOp,
    RandomizeOp, RollBowlOp, RollIngOp, StdinOp,
)
from eso.eso_chef_parser import (
    ChefSyntaxError, parse_chef, parse_ingredient_item, parse_method_step, to_past_tense,
    verbs_match,
)
from eso.eso_datatypes import DocumentRange
from eso.eso_errors import ParseError


def recipe(method_lines, ingredients=("3 g counter", "1 g extra", "5 g sugar")):
    """Wrap method lines into a minimal valid recipe."""
    return "\n".join(
        ["Test Recipe.", "", "Ingredients.", *ingredients, "", "Method.", *method_lines]
    )


def assert_loops_consistent(method):
    """Every opener points at a closer that points back, and breaks land on closers."""
    for idx, step in enumerate(method):
        op = step.op
        if isinstance(op, LoopOpenOp):
            closer = method[op.closer].op
            assert isinstance(closer, LoopCloseOp)
            assert closer.opener == idx
        elif isinstance(op, LoopCloseOp):
            opener = method[op.opener].op
            assert isinstance(opener, LoopOpenOp)
            assert opener.closer == idx
        elif isinstance(op, LoopBreakOp):
            assert isinstance(method[op.closer].op, LoopCloseOp)


METHOD_STEP_CASES = [
    ("Take flour from refrigerator", StdinOp(ing="flour")),
    ("Take flour from the refrigerator", StdinOp(ing="flour")),
    ("Put dijon mustard into the mixing bowl", PushOp(ing="dijon mustard", bowl_id=1)),
    ("Put the sugar into the 2nd mixing bowl", PushOp(ing="sugar", bowl_id=2)),
    ("Fold sugar into the 3rd mixing bowl", PopOp(ing="sugar", bowl_id=3)),
    ("Add sugar", ArithmeticOp(code="ADD", ing="sugar", bowl_id=1)),
    ("Add sugar to the mixing bowl", ArithmeticOp(code="ADD", ing="sugar", bowl_id=1)),
    ("Remove sugar from the 2nd mixing bowl", ArithmeticOp(code="SUBTRACT", ing="sugar", bowl_id=2)),
    ("Combine sugar into mixing bowl", ArithmeticOp(code="MULTIPLY", ing="sugar", bowl_id=1)),
    ("Divide sugar into the mixing bowl", ArithmeticOp(code="DIVIDE", ing="sugar", bowl_id=1)),
    ("Add dry ingredients", AddDryOp(bowl_id=1)),
    ("Add dry ingredients to the 2nd mixing bowl", AddDryOp(bowl_id=2)),
    ("Liquefy sugar", LiquefyIngOp(ing="sugar")),
    ("Liquefy contents of the mixing bowl", LiquefyBowlOp(bowl_id=1)),
    ("Liquefy the contents of the 4th mixing bowl", LiquefyBowlOp(bowl_id=4)),
    ("Stir for 2 minutes", RollBowlOp(bowl_id=1, num=2)),
    ("Stir the 2nd mixing bowl for 1 minute", RollBowlOp(bowl_id=2, num=1)),
    ("Stir sugar into the mixing bowl", RollIngOp(bowl_id=1, ing="sugar")),
    ("Mix well", RandomizeOp(bowl_id=1)),
    ("Mix the 3rd mixing bowl well", RandomizeOp(bowl_id=3)),
    ("Clean mixing bowl", ClearOp(bowl_id=1)),
    ("Clean the 2nd mixing bowl", ClearOp(bowl_id=2)),
    ("Pour contents of the mixing bowl into the baking dish", CopyToDishOp(bowl_id=1, dish_id=1)),
    ("Pour contents of the 2nd mixing bowl into the 3rd baking dish", CopyToDishOp(bowl_id=2, dish_id=3)),
    ("Set aside", LoopBreakOp()),
    ("Serve with chocolate sauce", FnCallOp(recipe="chocolate sauce")),
    ("Refrigerate", EndOp(num=None)),
    ("Refrigerate for 2 hours", EndOp(num=2)),
    ("Sift the flour", LoopOpenOp(verb="sift", ing="flour")),
    ("Beat eggs", LoopOpenOp(verb="beat", ing="eggs")),
    ("Sift the flour until sifted", LoopCloseOp(verb="sifted", ing="flour")),
    ("Sift until sifted", LoopCloseOp(verb="sifted", ing=None)),
]


@pytest.mark.parametrize("line, expected", METHOD_STEP_CASES, ids=[c[0] for c in METHOD_STEP_CASES])
def test_parse_method_step(line, expected):
    assert parse_method_step(line) == expected


@pytest.mark.parametrize("line, message", [
    ("Add sugar into the mixing bowl", "Instruction has incorrect syntax"),
    ("Remove sugar to the mixing bowl", "Instruction has incorrect syntax"),
    ("Put sugar in the bowl", "Unknown instruction"),
    ("Pour the bowl", "Unknown instruction"),
    ("Refrigerate now", "Unknown instruction"),
])
def test_parse_method_step_errors(line, message):
    with pytest.raises(ChefSyntaxError) as exc:
        parse_method_step(line)
    assert str(exc.value) == message


@pytest.mark.parametrize("line, name, item", [
    ("72 g haricot beans", "haricot beans", IngredientItem(type='dry', value=72)),
    ("101 eggs", "eggs", IngredientItem(type='unknown', value=101)),
    ("111 cups oil", "oil", IngredientItem(type='unknown', value=111)),
    ("119 ml water", "water", IngredientItem(type='liquid', value=119)),
    ("2 heaped cups sugar", "sugar", IngredientItem(type='unknown', value=2)),
    ("1 level pinch salt", "salt", IngredientItem(type='dry', value=1)),
    ("dash vanilla", "vanilla", IngredientItem(type='liquid', value=None)),
    ("flour", "flour", IngredientItem(type='unknown', value=None)),
])
def test_parse_ingredient_item(line, name, item):
    assert parse_ingredient_item(line) == (name, item)


def test_parse_ingredient_measure_type_needs_measure():
    with pytest.raises(ChefSyntaxError, match="Invalid measure"):
        parse_ingredient_item("3 heaped sugar")


def test_past_tense_and_verb_matching():
    assert to_past_tense("sift") == "sifted"
    assert to_past_tense("bake") == "baked"
    assert verbs_match("sift", "sifted")
    assert verbs_match("stir", "stirred")
    assert not verbs_match("sift", "baked")


def test_parse_full_recipe_sections():
    code = "\n".join([
        "Hello Pie.",
        "",
        "A pie with a comment paragraph",
        "over two lines.",
        "",
        "Ingredients.",
        "72 g flour",
        "1 dash vanilla",
        "",
        "Cooking time: 25 minutes.",
        "",
        "Pre-heat oven to 180 degrees Celsius (gas mark 4).",
        "",
        "Method.",
        "Put flour into the mixing bowl. Liquefy contents of the mixing bowl.",
        "Pour contents of the mixing bowl into the baking dish.",
        "",
        "",
        "Serves 1.",
    ])
    program = parse_chef(code)
    main = program.main
    assert main.name == "Hello Pie"
    assert main.ingredients == {
        "flour": IngredientItem(type='dry', value=72),
        "vanilla": IngredientItem(type='liquid', value=1),
    }
    assert [type(step.op) for step in main.method] == [PushOp, LiquefyBowlOp, CopyToDishOp]
    # Two statements on one line get their own column ranges
    assert main.method[0].location == DocumentRange(start_line=14, start_col=0, end_col=30)
    assert main.method[1].location == DocumentRange(start_line=14, start_col=31, end_col=67)
    assert main.method[2].location.start_line == 15
    assert main.serves.line == 18
    assert main.serves.num == 1
    assert program.auxes == {}


def test_parse_auxiliary_recipes_keyed_by_title():
    code = "\n".join([
        "Main dish.",
        "",
        "Ingredients.",
        "1 g salt",
        "",
        "Method.",
        "Serve with side salad.",
        "",
        "side salad.",
        "",
        "Ingredients.",
        "2 g leaves",
        "",
        "Method.",
        "Put leaves into the mixing bowl.",
    ])
    program = parse_chef(code)
    assert list(program.auxes) == ["side salad"]
    assert program.auxes["side salad"].ingredients["leaves"].value == 2
    assert program.main.method[0].op == FnCallOp(recipe="side salad")


def test_loop_jumps_are_resolved():
    program = parse_chef(recipe([
        "Count the counter.",
        "Put counter into the mixing bowl.",
        "Count the counter until counted.",
    ]))
    method = program.main.method
    assert method[0].op == LoopOpenOp(verb="count", ing="counter", closer=2)
    assert method[2].op == LoopCloseOp(verb="counted", ing="counter", opener=0)
    assert_loops_consistent(method)


def test_loop_breaks_bind_to_innermost_loop():
    program = parse_chef(recipe([
        "Count the counter. Set aside.",
        "Shake the extra. Set aside. Shake the extra until shaken.",
        "Count the counter until counted.",
    ]))
    method = program.main.method
    assert method[1].op.closer == 5
    assert method[3].op.closer == 4
    assert method[2].op.closer == 4
    assert method[0].op.closer == 5
    assert_loops_consistent(method)


@pytest.mark.parametrize("code, message, line", [
    (recipe(["Count the counter.", "Count the counter until sifted."]),
     "Loop verb mismatch: expected 'counted', found 'sifted'", 9),
    (recipe(["Count the counter until counted."]), "Loop closer without a matching loop opener", 8),
    (recipe(["Count the counter."]), "Loop is never closed", 8),
    (recipe(["Set aside."]), "Set aside outside of a loop", 8),
    (recipe(["Put butter into the mixing bowl."]), "Invalid ingredient: butter", 8),
    (recipe(["Serve with gravy."]), "Invalid recipe name: gravy", 8),
    (recipe(["Put sugar in the bowl."]), "Unknown instruction", 8),
])
def test_method_parse_errors(code, message, line):
    with pytest.raises(ParseError) as exc:
        parse_chef(code)
    assert exc.value.message == message
    assert exc.value.range.start_line == line


@pytest.mark.parametrize("code, message, line", [
    ("Missing period\n\nIngredients.\n\nMethod.", "Recipe title must end with period", 0),
    ("Title.\nIngredients.", "Expected blank line", 1),
    ("Title.\n\nIngredients.\n1 g salt\n\nCooking time: soon.\n", "Malformed cooking time statement", 5),
    ("Title.\n\nIngredients.\n1 g salt\n\nPre-heat oven to hot.\n", "Malformed oven setting", 5),
    ("Title.\n\nIngredients.\n1 g salt\n\nRecipe.\n", 'Expected "Method."', 5),
    ("Title.\n\nIngredients.\n3 heaped salt\n", "Invalid measure", 3),
    ("Title.\n\nIngredients.\n1 g salt\n\nMethod.\n\nServes many.", "Malformed serves statement", 7),
])
def test_section_parse_errors(code, message, line):
    with pytest.raises(ParseError) as exc:
        parse_chef(code)
    assert exc.value.message == message
    assert exc.value.range.start_line == line


def test_missing_blank_line_at_end_points_at_last_char():
    with pytest.raises(ParseError) as exc:
        parse_chef("Title.")
    assert exc.value.message == "Expected blank line"
    assert exc.value.range == DocumentRange.cell(0, 5)
