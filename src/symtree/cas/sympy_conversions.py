"""Conversions to and from SymPy expressions.

These are defined in their own module so that SymPy will not imported if it is
not needed.
"""
from __future__ import annotations

import math
from functools import reduce
from typing import Any

import sympy

from symtree.core.sym import PyFunc1, PyOp1, PyOp2
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
    Mul,
    Neg,
    NegInfinity,
    Pi,
    Pow,
    Sub,
    Variable,
    a,
    acos,
    asin,
    atan,
    b,
    cos,
    exp,
    log,
    sin,
    sqrt,
    tan,
)


def _sympy_constant(value: float) -> sympy.Basic:
    if value == math.pi:
        return sympy.pi
    elif value == math.e:
        return sympy.E
    elif value == math.inf:
        return sympy.oo
    elif value == -math.inf:
        return -sympy.oo
    elif value.is_integer():
        return sympy.Integer(int(value))
    return sympy.Float(value)


eval_to_sympy = Expr.new_evaluator("to_sympy", sympy.Basic)

sympy_constant = PyFunc1[float, sympy.Basic](_sympy_constant)
sympy_symbol = PyFunc1[str, sympy.Basic](sympy.Symbol)
sympy_add = PyOp2[sympy.Basic](lambda x, y: sympy.Add(x, y))
sympy_sub = PyOp2[sympy.Basic](lambda x, y: sympy.Add(x, -y))
sympy_mul = PyOp2[sympy.Basic](lambda x, y: sympy.Mul(x, y))
sympy_div = PyOp2[sympy.Basic](lambda x, y: x / y)
sympy_pow = PyOp2[sympy.Basic](sympy.Pow)
sympy_max = PyOp2[sympy.Basic](sympy.Max)
sympy_min = PyOp2[sympy.Basic](sympy.Min)
sympy_neg = PyOp1[sympy.Basic](lambda x: -x)

eval_to_sympy[Constant[a]] = sympy_constant(a)
eval_to_sympy[Variable[a]] = sympy_symbol(a)
eval_to_sympy[Add(a, b)] = sympy_add(a, b)
eval_to_sympy[Sub(a, b)] = sympy_sub(a, b)
eval_to_sympy[Mul(a, b)] = sympy_mul(a, b)
eval_to_sympy[Div(a, b)] = sympy_div(a, b)
eval_to_sympy[Pow(a, b)] = sympy_pow(a, b)
eval_to_sympy[Max(a, b)] = sympy_max(a, b)
eval_to_sympy[Min(a, b)] = sympy_min(a, b)
eval_to_sympy[Neg(a)] = sympy_neg(a)
eval_to_sympy[Abs(a)] = PyOp1[sympy.Basic](sympy.Abs)(a)  # pyright: ignore
eval_to_sympy[sqrt(a)] = PyOp1[sympy.Basic](sympy.sqrt)(a)
eval_to_sympy[exp(a)] = PyOp1[sympy.Basic](sympy.exp)(a)  # pyright: ignore
eval_to_sympy[log(a)] = PyOp1[sympy.Basic](sympy.log)(a)  # pyright: ignore
eval_to_sympy[sin(a)] = PyOp1[sympy.Basic](sympy.sin)(a)  # pyright: ignore
eval_to_sympy[cos(a)] = PyOp1[sympy.Basic](sympy.cos)(a)  # pyright: ignore
eval_to_sympy[tan(a)] = PyOp1[sympy.Basic](sympy.tan)(a)  # pyright: ignore
eval_to_sympy[asin(a)] = PyOp1[sympy.Basic](sympy.asin)(a)  # pyright: ignore
eval_to_sympy[acos(a)] = PyOp1[sympy.Basic](sympy.acos)(a)  # pyright: ignore
eval_to_sympy[atan(a)] = PyOp1[sympy.Basic](sympy.atan)(a)  # pyright: ignore


def to_sympy(expr: Expr) -> Any:
    """Convert ``Expr`` to a SymPy expression."""
    return eval_to_sympy(expr)


def from_sympy(expr: sympy.Basic) -> Expr:
    """Convert a SymPy expression to ``Expr``."""
    return _from_sympy_cache(expr, {})


def _from_sympy_cache(expr: sympy.Basic, cache: dict[sympy.Basic, Expr]) -> Expr:
    ret = cache.get(expr)
    if ret is not None:
        return ret
    elif expr.args:
        ret = _from_sympy_cache_args(expr, cache)
    elif expr is sympy.pi:
        ret = Pi
    elif expr is sympy.E:
        ret = E
    elif expr is sympy.oo:
        ret = Infinity
    elif expr is sympy.S.NegativeInfinity:
        ret = NegInfinity
    elif isinstance(expr, (sympy.Integer, sympy.Rational, sympy.Float)):
        ret = Constant(float(expr))
    elif isinstance(expr, sympy.Symbol):
        ret = Variable(expr.name)  # pyright: ignore
    else:
        raise NotImplementedError("Cannot convert " + type(expr).__name__)
    cache[expr] = ret
    return ret


_unary = {
    sympy.Abs: Abs,
    sympy.exp: exp,
    sympy.log: log,
    sympy.sin: sin,
    sympy.cos: cos,
    sympy.tan: tan,
    sympy.asin: asin,
    sympy.acos: acos,
    sympy.atan: atan,
}


def _from_sympy_cache_args(expr: Any, cache: dict[Any, Expr]) -> Expr:
    args = [_from_sympy_cache(arg, cache) for arg in expr.args]
    if expr.is_Add:
        return reduce(Add, args)
    elif expr.is_Mul:
        return reduce(Mul, args)
    elif expr.is_Pow:
        return Pow(*args)
    elif isinstance(expr, sympy.Max):
        return reduce(Max, args)
    elif isinstance(expr, sympy.Min):
        return reduce(Min, args)
    elif type(expr) in _unary:
        return _unary[type(expr)](*args)
    else:
        raise NotImplementedError("Cannot convert " + type(expr).__name__)
