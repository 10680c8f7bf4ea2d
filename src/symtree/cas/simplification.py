"""Table driven simplification.

Each operator has a rule that looks at the (already simplified) arguments of
a node and either returns a simpler expression or ``None``. The rules are
driven to a fixed point by :class:`symtree.core.rewrite.FixedPointRewriter`
using the canonical text of an expression to decide when nothing changes.

>>> from symtree.cas import Variable, exp, log, sin
>>> x = Variable('x')
>>> expr = (x * 1 + 0) * (x - 0) + log(exp(sin(0)))
>>> expr
((((x*1) + 0)*(x - 0)) + log(exp(sin(0))))
>>> expr.simplify()
(x**2)
"""
from __future__ import annotations

import logging
import math
from types import MappingProxyType
from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Callable, Optional

from symtree.core.rewrite import DEFAULT_MAX_STEPS, FixedPointRewriter
from symtree.cas.exceptions import EvaluationDomainError
from symtree.cas.expr import (
    Abs,
    Add,
    Constant,
    Div,
    E,
    Expr,
    Infinity,
    Max,
    Min,
    MinusOne,
    Mul,
    Neg,
    NegInfinity,
    One,
    Pi,
    Pow,
    Sub,
    Two,
    Zero,
    acos,
    asin,
    atan,
    cos,
    eval_f64,
    eval_repr,
    exp,
    log,
    sin,
    sqrt,
    tan,
)


if _TYPE_CHECKING:
    from symtree.core.tree import Tree

    Rule = Callable[..., Optional[Expr]]


__all__ = [
    "DEFAULT_MAX_STEPS",
    "INVERSES",
    "SIMPLIFICATION_RULES",
    "simplify",
]


_log = logging.getLogger(__name__)


HalfPi = Constant(math.pi / 2)
QuarterPi = Constant(math.pi / 4)


INVERSES = MappingProxyType(
    {
        sin: asin,
        asin: sin,
        cos: acos,
        acos: cos,
        tan: atan,
        atan: tan,
        exp: log,
        log: exp,
    }
)
"""Each unary function mapped to the function that undoes it."""


def _is(expr: Expr, head: Expr) -> bool:
    """Test whether ``expr`` is a call of ``head``."""
    return not expr.is_atom and expr.head is head


def _cancel_inverse(head: Expr, x: Expr) -> Optional[Expr]:
    """f(g(x)) -> x when g is the inverse of f."""
    inverse = INVERSES.get(head)
    if inverse is not None and _is(x, inverse):
        return x.args[0]
    return None


def _fold(head: Expr, *args: Expr) -> Optional[Expr]:
    """Evaluate ``head(*args)`` if all args are constants and it is defined."""
    if not all(Constant.contains(arg) for arg in args):
        return None
    try:
        value = eval_f64(head(*args))
    except EvaluationDomainError:
        return None
    if math.isnan(value):
        return None
    return Constant(value)


def _positive_constant(x: Expr) -> bool:
    return Constant.contains(x) and x.value > 0


# ------------------------------------------------------------------------- #
#                                                                           #
#     Binary operations                                                     #
#                                                                           #
# ------------------------------------------------------------------------- #


def simplify_add(x: Expr, y: Expr) -> Optional[Expr]:
    """x + 0 -> x, x + x -> 2*x, x + (-y) -> x - y etc."""
    folded = _fold(Add, x, y)
    if folded is not None:
        return folded
    elif y is Zero:
        return x
    elif x is Zero:
        return y
    elif x is y:
        return Mul(Two, x)
    elif _is(y, Neg):
        return Sub(x, y.args[0])
    elif _is(x, Neg):
        return Sub(y, x.args[0])
    return None


def simplify_sub(x: Expr, y: Expr) -> Optional[Expr]:
    """x - 0 -> x, 0 - x -> -x, x - x -> 0, x - (-y) -> x + y."""
    folded = _fold(Sub, x, y)
    if folded is not None:
        return folded
    elif y is Zero:
        return x
    elif x is Zero:
        return Neg(y)
    elif x is y:
        return Zero
    elif _is(y, Neg):
        return Add(x, y.args[0])
    return None


def simplify_mul(x: Expr, y: Expr) -> Optional[Expr]:
    """x*0 -> 0, x*1 -> x, (-1)*x -> -x, x*x -> x**2 etc."""
    folded = _fold(Mul, x, y)
    if folded is not None:
        return folded
    elif x is Zero or y is Zero:
        return Zero
    elif y is One:
        return x
    elif x is One:
        return y
    elif x is MinusOne:
        return Neg(y)
    elif y is MinusOne:
        return Neg(x)
    elif x is y:
        return Pow(x, Two)
    return None


def simplify_div(x: Expr, y: Expr) -> Optional[Expr]:
    """0/x -> 0, x/1 -> x, x/x -> 1."""
    folded = _fold(Div, x, y)
    if folded is not None:
        return folded
    elif y is One:
        return x
    elif y is Zero:
        # x/0 is left alone
        return None
    elif x is Zero:
        return Zero
    elif x is y:
        return One
    return None


def simplify_pow(x: Expr, y: Expr) -> Optional[Expr]:
    """x**0 -> 1, x**1 -> x, 1**x -> 1, E**x -> exp(x) etc."""
    folded = _fold(Pow, x, y)
    if folded is not None:
        return folded
    elif y is Zero:
        return One
    elif y is One:
        return x
    elif x is One:
        return One
    elif x is Zero and _positive_constant(y):
        return Zero
    elif x is E:
        return exp(y)
    elif y is Two and _is(x, sqrt):
        return x.args[0]
    return None


def simplify_max(x: Expr, y: Expr) -> Optional[Expr]:
    """Max(x, x) -> x."""
    if x is y:
        return x
    return _fold(Max, x, y)


def simplify_min(x: Expr, y: Expr) -> Optional[Expr]:
    """Min(x, x) -> x."""
    if x is y:
        return x
    return _fold(Min, x, y)


# ------------------------------------------------------------------------- #
#                                                                           #
#     Unary operations                                                      #
#                                                                           #
# ------------------------------------------------------------------------- #


def simplify_neg(x: Expr) -> Optional[Expr]:
    """-(-x) -> x and -c -> (-c) for a constant c."""
    if _is(x, Neg):
        return x.args[0]
    return _fold(Neg, x)


def simplify_abs(x: Expr) -> Optional[Expr]:
    """|-x| -> |x| and ||x|| -> |x|."""
    if _is(x, Neg):
        return Abs(x.args[0])
    elif _is(x, Abs):
        return x
    return _fold(Abs, x)


def simplify_sqrt(x: Expr) -> Optional[Expr]:
    """sqrt(0) -> 0, sqrt(1) -> 1, sqrt(x**2) -> |x|."""
    if x is Zero or x is One:
        return x
    elif _is(x, Pow) and x.args[1] is Two:
        return Abs(x.args[0])
    return None


def _special_values(head: Expr, table: dict[Expr, Expr]) -> Rule:
    """Rule from a table of special values plus inverse cancellation."""

    def rule(x: Expr) -> Optional[Expr]:
        special = table.get(x)
        if special is not None:
            return special
        return _cancel_inverse(head, x)

    rule.__name__ = f"simplify_{head.name}"
    rule.__doc__ = f"Special values of {head.name} and {head.name}(inverse(x)) -> x."
    return rule


simplify_exp = _special_values(
    exp, {Zero: One, One: E, NegInfinity: Zero, Infinity: Infinity}
)
simplify_log = _special_values(
    log, {One: Zero, E: One, Zero: NegInfinity, Infinity: Infinity}
)
simplify_sin = _special_values(sin, {Zero: Zero, Pi: Zero})
simplify_cos = _special_values(cos, {Zero: One, Pi: MinusOne})
simplify_tan = _special_values(tan, {Zero: Zero, Pi: Zero})
simplify_asin = _special_values(asin, {Zero: Zero, One: HalfPi})
simplify_acos = _special_values(acos, {Zero: HalfPi, One: Zero})
simplify_atan = _special_values(
    atan, {Zero: Zero, One: QuarterPi, Infinity: HalfPi}
)


SIMPLIFICATION_RULES: MappingProxyType[Expr, Rule] = MappingProxyType(
    {
        Add: simplify_add,
        Sub: simplify_sub,
        Mul: simplify_mul,
        Div: simplify_div,
        Pow: simplify_pow,
        Max: simplify_max,
        Min: simplify_min,
        Neg: simplify_neg,
        Abs: simplify_abs,
        sqrt: simplify_sqrt,
        exp: simplify_exp,
        log: simplify_log,
        sin: simplify_sin,
        cos: simplify_cos,
        tan: simplify_tan,
        asin: simplify_asin,
        acos: simplify_acos,
        atan: simplify_atan,
    }
)
"""The rule for each operator."""


def _tree_rule(rule: Rule) -> Callable[..., Optional[Tree]]:
    """Adapt a rule on :class:`Expr` to work on :class:`Tree`."""

    def tree_rule(*args: Tree) -> Optional[Tree]:
        result = rule(*[Expr(arg) for arg in args])
        if result is None:
            return None
        return result.rep

    return tree_rule


_tree_rules = MappingProxyType(
    {head.rep: _tree_rule(rule) for head, rule in SIMPLIFICATION_RULES.items()}
)


def _render(tree: Tree) -> str:
    return eval_repr(Expr(tree))


def simplify(expr: Expr, max_steps: int = DEFAULT_MAX_STEPS) -> Expr:
    """Simplify ``expr`` to its fixed point under the operator rules.

    The arguments of each node are simplified first and then the rule for
    the node is applied repeatedly until the canonical text of the node no
    longer changes. A node that needs more than ``max_steps`` passes raises
    :class:`TooManySimplificationStepsError`.

    >>> from symtree.cas import Abs, Variable, sqrt
    >>> from symtree.cas.simplification import simplify
    >>> x = Variable('x')
    >>> simplify(sqrt(x**2) - Abs(-x))
    0
    """
    rewriter = FixedPointRewriter(_tree_rules, _render, max_steps)
    result = Expr(rewriter(expr.rep))
    _log.debug(
        "simplified in %d passes (%d subexpressions cached)",
        rewriter.passes,
        len(rewriter.cache),
    )
    return result
