import math
import operator

from symtree.core.atom import AtomType
from symtree.core.evaluate import Evaluator, ForwardFunction
from symtree.core.exceptions import NoEvaluationRuleError
from symtree.core.tree import Tr, Tree
from pytest import raises


Constant = AtomType("Constant", float)
Operator = AtomType("Operator", str)
Variable = AtomType("Variable", str)

one = Tr(Constant(1.0))
two = Tr(Constant(2.0))
cos = Tr(Operator("cos"))
sin = Tr(Operator("sin"))
Pow = Tr(Operator("Pow"))
Add = Tr(Operator("Add"))
x = Tr(Variable("x"))
y = Tr(Variable("y"))


def _make_eval_f64() -> Evaluator[float]:
    eval_f64 = Evaluator[float]()
    eval_f64.add_atom(Constant, float)
    eval_f64.add_operation(cos, math.cos)
    eval_f64.add_operation(sin, math.sin)
    eval_f64.add_operation(Pow, math.pow)
    eval_f64.add_operation(Add, operator.add)
    return eval_f64


def test_Evaluator() -> None:
    """Test defining and using a simple Evaluator."""
    eval_f64 = _make_eval_f64()

    test_cases: list[tuple[Tree, dict[Tree, float], float]] = [
        (sin(cos(one)), {}, 0.5143952585235492),
        (sin(cos(x)), {x: 1.0}, 0.5143952585235492),
        (Add(Pow(sin(one), two), Pow(cos(one), two)), {}, 1.0),
    ]

    # Test __call__ for which vals is optional
    for expr, vals, expected in test_cases:
        assert eval_f64(expr, vals) == expected
        if vals == {}:
            assert eval_f64(expr) == expected

    # Values can be given for atoms that do not appear.
    assert eval_f64(sin(cos(one)), {x: 2.0}) == 0.5143952585235492


def test_Evaluator_generic_rules() -> None:
    """Unknown atoms and heads need generic rules."""
    f = Tr(Operator("f"))
    g = Tr(Operator("g"))
    expr = f(g(x, f(y)), y)

    f2g = Evaluator[Tree]()
    f2g.set_operation_fallback(lambda head, args: g(*args))

    # We need a rule for unknown atoms:
    raises(NoEvaluationRuleError, lambda: f2g(expr))
    f2g.set_atom_fallback(lambda atom: atom)

    assert f2g(expr) == g(g(x, g(y)), y)


def test_Evaluator_compile() -> None:
    """Compile an expression to a ForwardFunction."""
    eval_f64 = _make_eval_f64()

    expr = Add(Pow(sin(x), two), Pow(cos(y), two))
    func = eval_f64.compile(expr, [x, y])
    assert isinstance(func, ForwardFunction)
    assert len(func) == 5
    assert func(1.0, 1.0) == eval_f64(expr, {x: 1.0, y: 1.0})
    assert func(0.5, 2.0) == eval_f64(expr, {x: 0.5, y: 2.0})

    # Params can come in any order and need not all be used.
    func_yx = eval_f64.compile(sin(x), [y, x])
    assert func_yx(100.0, 0.0) == 0.0

    # A constant expression with no params.
    assert eval_f64.compile(cos(one), [])() == math.cos(1.0)

    raises(TypeError, lambda: func(1.0))


def test_Evaluator_compile_errors() -> None:
    """Missing rules are found when compiling."""
    eval_f64 = _make_eval_f64()
    tan = Tr(Operator("tan"))
    raises(NoEvaluationRuleError, lambda: eval_f64.compile(tan(x), [x]))
    # There is no rule for Variable atoms so an unknown variable fails.
    raises(NoEvaluationRuleError, lambda: eval_f64.compile(sin(y), [x]))


def test_Evaluator_compile_fallback() -> None:
    """Fallback rules are resolved per head when compiling."""
    f = Tr(Operator("f"))
    g = Tr(Operator("g"))
    names = Evaluator[str]()
    names.set_atom_fallback(str)
    names.set_operation_fallback(lambda head, args: f"{head}[{','.join(args)}]")
    names.add_operation(g, lambda a: f"<{a}>")

    func = names.compile(f(x, g(y)), [y])
    assert func("z") == "f[x,<z>]"
    assert names(f(x, g(y))) == "f[x,<y>]"
    assert names.operation(g) is names.operations[g]


def test_Evaluator_deep() -> None:
    """Evaluation of very deep expressions does not recurse."""
    eval_f64 = _make_eval_f64()
    expr = x
    for _ in range(5000):
        expr = Add(expr, one)
    assert eval_f64(expr, {x: 0.0}) == 5000.0
