from symtree.core.atom import AtomType
from symtree.core.differentiate import DiffProperties, diff_forward
from symtree.core.exceptions import NoEvaluationRuleError
from symtree.core.tree import SubsFunc, Tr
from pytest import raises


Constant = AtomType("Constant", float)
Operator = AtomType("Operator", str)
Variable = AtomType("Variable", str)

zero = Tr(Constant(0.0))
one = Tr(Constant(1.0))
two = Tr(Constant(2.0))

sin = Tr(Operator("sin"))
cos = Tr(Operator("cos"))
tan = Tr(Operator("tan"))
Vector = Tr(Operator("Vector"))
Add = Tr(Operator("Add"))
Sub = Tr(Operator("Sub"))
Mul = Tr(Operator("Mul"))
Div = Tr(Operator("Div"))
Pow = Tr(Operator("Pow"))
Neg = Tr(Operator("Neg"))

x = Tr(Variable("x"))
y = Tr(Variable("y"))


def _make_prop() -> DiffProperties:
    return DiffProperties(
        zero=zero,
        one=one,
        two=two,
        add=Add,
        sub=Sub,
        mul=Mul,
        div=Div,
        pow=Pow,
        neg=Neg,
    )


def test_core_differentiate() -> None:
    """Test elementary differentiation routines."""
    prop = _make_prop()

    assert diff_forward(zero, x, prop) == zero
    assert diff_forward(x, x, prop) == one
    assert diff_forward(x, y, prop) == zero
    assert diff_forward(Add(x, y), x, prop) == one
    assert diff_forward(Add(x, x), x, prop) == Add(one, one)
    assert diff_forward(Add(y, y), x, prop) == zero
    assert diff_forward(Mul(x, y), y, prop) == Mul(x, one)
    assert diff_forward(Mul(x, y), x, prop) == Mul(one, y)

    prop.add_distributive(Vector)

    assert diff_forward(Vector(x, y), x, prop) == Vector(one, zero)

    prop.add_diff_rule(sin, 0, SubsFunc(cos(x), [x]))
    prop.add_diff_rule(cos, 0, SubsFunc(Neg(sin(x)), [x]))

    assert diff_forward(sin(x), x, prop) == cos(x)
    assert diff_forward(sin(sin(x)), x, prop) == Mul(cos(x), cos(sin(x)))
    assert diff_forward(sin(sin(y)), x, prop) == zero
    assert diff_forward(Add(sin(x), cos(x)), x, prop) == Add(cos(x), Neg(sin(x)))


def test_difference_rule() -> None:
    """Zero terms are dropped from the difference rule."""
    prop = _make_prop()
    assert diff_forward(Sub(x, y), x, prop) == one
    assert diff_forward(Sub(y, x), x, prop) == Neg(one)
    assert diff_forward(Sub(x, x), x, prop) == Sub(one, one)


def test_quotient_rule() -> None:
    """The quotient rule with and without a constant denominator."""
    prop = _make_prop()
    assert diff_forward(Div(x, y), x, prop) == Div(one, y)
    assert diff_forward(Div(y, x), x, prop) == Div(
        Sub(Mul(zero, x), Mul(y, one)), Pow(x, two)
    )


def test_missing_rule() -> None:
    """A head with no rule cannot be differentiated."""
    prop = _make_prop()
    raises(NoEvaluationRuleError, lambda: diff_forward(tan(x), x, prop))
    # But if the argument is constant no rule is needed.
    assert diff_forward(tan(y), x, prop) == zero


def test_negation_rule() -> None:
    """Neg is differentiated without any registered rule."""
    prop = _make_prop()
    assert diff_forward(Neg(x), x, prop) == Neg(one)
    assert diff_forward(Neg(Neg(x)), x, prop) == Neg(Neg(one))
    assert diff_forward(Neg(y), x, prop) == zero

    prop.add_diff_rule(sin, 0, SubsFunc(cos(x), [x]))
    assert diff_forward(Neg(sin(x)), x, prop) == Neg(cos(x))
    assert prop.distributive == set()
