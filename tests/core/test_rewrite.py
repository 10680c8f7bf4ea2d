import logging

from symtree.core.atom import AtomType
from symtree.core.exceptions import TooManySimplificationStepsError
from symtree.core.rewrite import DEFAULT_MAX_STEPS, FixedPointRewriter
from symtree.core.tree import Tr
from pytest import raises

Operator = AtomType("Operator", str)
Variable = AtomType("Variable", str)
Integer = AtomType("Integer", int)

neg = Tr(Operator("Neg"))
sin = Tr(Operator("sin"))
cos = Tr(Operator("cos"))
add = Tr(Operator("Add"))
x = Tr(Variable("x"))
y = Tr(Variable("y"))
zero = Tr(Integer(0))


def _cancel_neg(arg):  # type: ignore
    if arg.children and arg.children[0] == neg:
        return arg.children[1]
    return None


def _add_zero(arg1, arg2):  # type: ignore
    if arg2 == zero:
        return arg1
    elif arg1 == zero:
        return arg2
    return None


def test_FixedPointRewriter() -> None:
    """Rules are applied bottom-up until nothing changes."""
    rewriter = FixedPointRewriter({neg: _cancel_neg, add: _add_zero}, str)
    assert rewriter.max_steps == DEFAULT_MAX_STEPS
    assert rewriter(neg(neg(x))) == x
    assert rewriter(neg(neg(neg(x)))) == neg(x)
    assert rewriter(add(neg(neg(x)), zero)) == x
    assert rewriter(add(zero, add(y, zero))) == y
    assert rewriter(add(x, y)) == add(x, y)
    assert rewriter(sin(add(x, zero))) == sin(x)
    assert rewriter(x) == x


def test_FixedPointRewriter_cache() -> None:
    """Rewritten subexpressions are cached."""
    rewriter = FixedPointRewriter({neg: _cancel_neg}, str)
    expr = add(neg(neg(x)), neg(neg(x)))
    assert rewriter(expr) == add(x, x)
    assert rewriter.cache[neg(neg(x))] == x
    assert rewriter.cache[expr] == add(x, x)
    passes = rewriter.passes
    assert rewriter(expr) == add(x, x)
    assert rewriter.passes == passes


def test_FixedPointRewriter_key() -> None:
    """A rewrite that renders the same is a fixed point."""
    calls = []

    def same(arg):  # type: ignore
        calls.append(arg)
        return sin(arg)

    rewriter = FixedPointRewriter({sin: same}, str)
    assert rewriter(sin(x)) == sin(x)
    assert calls == [x]


def test_FixedPointRewriter_max_steps() -> None:
    """Rules that never converge raise after max_steps."""
    swap = {
        sin: lambda arg: cos(arg),
        cos: lambda arg: sin(arg),
    }
    rewriter = FixedPointRewriter(swap, str, max_steps=50)
    raises(TooManySimplificationStepsError, lambda: rewriter(sin(x)))
    # 50 passes for the root and one for x
    assert rewriter.passes == 51

    raises(ValueError, lambda: FixedPointRewriter(swap, str, max_steps=0))


def test_FixedPointRewriter_logging(caplog) -> None:  # type: ignore
    """Finished rewrites are logged at debug level."""
    rewriter = FixedPointRewriter({neg: _cancel_neg}, str)
    with caplog.at_level(logging.DEBUG, logger="symtree"):
        rewriter(neg(neg(x)))
    assert any("passes" in r.getMessage() for r in caplog.records)


def test_FixedPointRewriter_deep() -> None:
    """Very deep expressions are rewritten without recursion."""
    rewriter = FixedPointRewriter({neg: _cancel_neg, add: _add_zero}, str)

    expr = x
    for _ in range(5000):
        expr = add(expr, zero)
    assert rewriter(expr) == x

    expr = x
    for _ in range(5001):
        expr = neg(expr)
    assert rewriter(expr) == neg(x)

    expr = x
    for _ in range(5000):
        expr = sin(expr)
    assert rewriter(expr) is expr


def test_FixedPointRewriter_new_subexpressions() -> None:
    """Subexpressions made by a rule are rewritten before the next pass."""

    def cos_to_sin(arg):  # type: ignore
        return sin(neg(neg(arg)))

    rewriter = FixedPointRewriter({neg: _cancel_neg, cos: cos_to_sin}, str)
    assert rewriter(cos(x)) == sin(x)
    assert rewriter.cache[neg(neg(x))] == x
