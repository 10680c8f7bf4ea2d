"""Evaluation and printing rules for the basic functions and operations."""
from __future__ import annotations

import math
import operator
from functools import wraps
from typing import Callable

from symtree.core.sym import AtomFunc, AtomRule, HeadOp, HeadRule, PyFunc1, PyOp1, PyOp2
from symtree.cas.exceptions import EvaluationDomainError, MissingBindingError
from symtree.cas.expr import (
    Abs,
    Add,
    Constant,
    Div,
    Max,
    Min,
    Mul,
    Neg,
    Operator,
    Pow,
    Sub,
    Variable,
    a,
    acos,
    asin,
    atan,
    b,
    cos,
    eval_code,
    eval_f64,
    eval_latex,
    eval_repr,
    exp,
    log,
    sin,
    sqrt,
    tan,
)


__all__ = [
    "format_constant",
    "domain_checked",
]


def domain_checked(name: str, func: Callable[..., float]) -> Callable[..., float]:
    """Wrap ``func`` so that math errors raise :class:`EvaluationDomainError`.

    >>> from symtree.cas.functions import domain_checked
    >>> import math
    >>> checked_log = domain_checked('log', math.log)
    >>> checked_log(1.0)
    0.0
    >>> checked_log(-1.0)  # doctest: +ELLIPSIS
    Traceback (most recent call last):
    ...
    symtree.cas.exceptions.EvaluationDomainError: log(-1.0): ...

    An infinite result from finite arguments is an overflow and raises as
    well, as it does under the numpy backend. Infinite arguments can still
    give infinite results:

    >>> import operator
    >>> checked_mul = domain_checked("Mul", operator.mul)
    >>> checked_mul(1e308, 10.0)
    Traceback (most recent call last):
    ...
    symtree.cas.exceptions.EvaluationDomainError: Mul(1e+308, 10.0): result too large
    >>> checked_mul(math.inf, 10.0)
    inf
    """

    @wraps(func)
    def checked(*args: float) -> float:
        try:
            result = func(*args)
            if _overflowed(result, args):
                raise OverflowError("result too large")
            return result
        except (ValueError, ZeroDivisionError, OverflowError) as err:
            argstr = ", ".join(map(repr, args))
            raise EvaluationDomainError(f"{name}({argstr}): {err}") from err

    return checked


def _overflowed(result: float, args: tuple[float, ...]) -> bool:
    return (
        isinstance(result, float)
        and math.isinf(result)
        and all(map(math.isfinite, args))
    )


def _unbound(name: str) -> float:
    raise MissingBindingError(f"No value given for variable {name!r}")


# ------------------------------------------------------------------------- #
#                                                                           #
#     eval_f64: 64 bit floating point evaluation.                           #
#                                                                           #
# ------------------------------------------------------------------------- #

f64_from_constant = PyFunc1[float, float](float)
f64_from_variable = PyFunc1[str, float](_unbound)
f64_add = PyOp2[float](domain_checked("Add", operator.add))
f64_sub = PyOp2[float](domain_checked("Sub", operator.sub))
f64_mul = PyOp2[float](domain_checked("Mul", operator.mul))
f64_div = PyOp2[float](domain_checked("Div", operator.truediv))
f64_pow = PyOp2[float](domain_checked("Pow", math.pow))
f64_max = PyOp2[float](max)
f64_min = PyOp2[float](min)
f64_neg = PyOp1[float](operator.neg)
f64_abs = PyOp1[float](abs)
f64_sqrt = PyOp1[float](domain_checked("sqrt", math.sqrt))
f64_exp = PyOp1[float](domain_checked("exp", math.exp))
f64_log = PyOp1[float](domain_checked("log", math.log))
f64_sin = PyOp1[float](domain_checked("sin", math.sin))
f64_cos = PyOp1[float](domain_checked("cos", math.cos))
f64_tan = PyOp1[float](domain_checked("tan", math.tan))
f64_asin = PyOp1[float](domain_checked("asin", math.asin))
f64_acos = PyOp1[float](domain_checked("acos", math.acos))
f64_atan = PyOp1[float](math.atan)

eval_f64[Constant[a]] = f64_from_constant(a)
eval_f64[Variable[a]] = f64_from_variable(a)
eval_f64[Add(a, b)] = f64_add(a, b)
eval_f64[Sub(a, b)] = f64_sub(a, b)
eval_f64[Mul(a, b)] = f64_mul(a, b)
eval_f64[Div(a, b)] = f64_div(a, b)
eval_f64[Pow(a, b)] = f64_pow(a, b)
eval_f64[Max(a, b)] = f64_max(a, b)
eval_f64[Min(a, b)] = f64_min(a, b)
eval_f64[Neg(a)] = f64_neg(a)
eval_f64[Abs(a)] = f64_abs(a)
eval_f64[sqrt(a)] = f64_sqrt(a)
eval_f64[exp(a)] = f64_exp(a)
eval_f64[log(a)] = f64_log(a)
eval_f64[sin(a)] = f64_sin(a)
eval_f64[cos(a)] = f64_cos(a)
eval_f64[tan(a)] = f64_tan(a)
eval_f64[asin(a)] = f64_asin(a)
eval_f64[acos(a)] = f64_acos(a)
eval_f64[atan(a)] = f64_atan(a)

# ------------------------------------------------------------------------- #
#                                                                           #
#     eval_repr: Canonical string representation                            #
#                                                                           #
# ------------------------------------------------------------------------- #


def format_constant(value: float) -> str:
    """Text of a constant as used in the canonical representation.

    >>> import math
    >>> from symtree.cas.functions import format_constant
    >>> format_constant(2.0), format_constant(-0.5), format_constant(math.pi)
    ('2', '-0.5', 'π')
    """
    if value == math.pi:
        return "π"
    elif value == math.e:
        return "e"
    elif value == math.inf:
        return "∞"
    elif value == -math.inf:
        return "-∞"
    elif value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


repr_atom = AtomFunc[str](str)
repr_call = HeadOp[str](lambda head, args: f'{head}({", ".join(args)})')
str_from_constant = PyFunc1[float, str](format_constant)
str_from_str = PyFunc1[str, str](str)
repr_add = PyOp2[str](lambda x, y: f"({x} + {y})")
repr_sub = PyOp2[str](lambda x, y: f"({x} - {y})")
repr_mul = PyOp2[str](lambda x, y: f"({x}*{y})")
repr_div = PyOp2[str](lambda x, y: f"({x}/{y})")
repr_pow = PyOp2[str](lambda x, y: f"({x}**{y})")
repr_neg = PyOp1[str](lambda x: f"(-{x})")

eval_repr[HeadRule(a, b)] = repr_call(a, b)
eval_repr[AtomRule[a]] = repr_atom(a)
eval_repr[Constant[a]] = str_from_constant(a)
eval_repr[Variable[a]] = str_from_str(a)
eval_repr[Operator[a]] = str_from_str(a)
eval_repr[Add(a, b)] = repr_add(a, b)
eval_repr[Sub(a, b)] = repr_sub(a, b)
eval_repr[Mul(a, b)] = repr_mul(a, b)
eval_repr[Div(a, b)] = repr_div(a, b)
eval_repr[Pow(a, b)] = repr_pow(a, b)
eval_repr[Neg(a)] = repr_neg(a)

# ------------------------------------------------------------------------- #
#                                                                           #
#     eval_code: Python source code using the math module                   #
#                                                                           #
# ------------------------------------------------------------------------- #


def _code_constant(value: float) -> str:
    if value == math.pi:
        return "math.pi"
    elif value == math.e:
        return "math.e"
    elif value == math.inf:
        return "math.inf"
    elif value == -math.inf:
        return "(-math.inf)"
    elif math.isnan(value):
        return "math.nan"
    elif value < 0:
        return f"({value!r})"
    return repr(value)


def _code_function(name: str) -> PyOp1[str]:
    return PyOp1[str](lambda x: f"math.{name}({x})")


code_from_constant = PyFunc1[float, str](_code_constant)
code_add = PyOp2[str](lambda x, y: f"({x} + {y})")
code_sub = PyOp2[str](lambda x, y: f"({x} - {y})")
code_mul = PyOp2[str](lambda x, y: f"({x} * {y})")
code_div = PyOp2[str](lambda x, y: f"({x} / {y})")
code_pow = PyOp2[str](lambda x, y: f"math.pow({x}, {y})")
code_max = PyOp2[str](lambda x, y: f"max({x}, {y})")
code_min = PyOp2[str](lambda x, y: f"min({x}, {y})")
code_neg = PyOp1[str](lambda x: f"(-{x})")
code_abs = PyOp1[str](lambda x: f"abs({x})")

eval_code[HeadRule(a, b)] = repr_call(a, b)
eval_code[Constant[a]] = code_from_constant(a)
eval_code[Variable[a]] = str_from_str(a)
eval_code[Operator[a]] = str_from_str(a)
eval_code[Add(a, b)] = code_add(a, b)
eval_code[Sub(a, b)] = code_sub(a, b)
eval_code[Mul(a, b)] = code_mul(a, b)
eval_code[Div(a, b)] = code_div(a, b)
eval_code[Pow(a, b)] = code_pow(a, b)
eval_code[Max(a, b)] = code_max(a, b)
eval_code[Min(a, b)] = code_min(a, b)
eval_code[Neg(a)] = code_neg(a)
eval_code[Abs(a)] = code_abs(a)
for _func in [sqrt, exp, log, sin, cos, tan, asin, acos, atan]:
    eval_code[_func(a)] = _code_function(_func.name)(a)

# ------------------------------------------------------------------------- #
#                                                                           #
#     latex: LaTeX string representation                                    #
#                                                                           #
# ------------------------------------------------------------------------- #


def _latex_constant(value: float) -> str:
    if value == math.pi:
        return r"\pi"
    elif value == math.inf:
        return r"\infty"
    elif value == -math.inf:
        return r"-\infty"
    return format_constant(value)


def _latex_function(command: str) -> PyOp1[str]:
    return PyOp1[str](lambda x: rf"{command}\left({x}\right)")


latex_from_constant = PyFunc1[float, str](_latex_constant)
latex_add = PyOp2[str](lambda x, y: f"({x} + {y})")
latex_sub = PyOp2[str](lambda x, y: f"({x} - {y})")
latex_mul = PyOp2[str](lambda x, y: rf"({x} \cdot {y})")
latex_div = PyOp2[str](lambda x, y: rf"\frac{{{x}}}{{{y}}}")
latex_pow = PyOp2[str](lambda x, y: f"{{{x}}}^{{{y}}}")
latex_max = PyOp2[str](lambda x, y: rf"\max\left({x}, {y}\right)")
latex_min = PyOp2[str](lambda x, y: rf"\min\left({x}, {y}\right)")
latex_neg = PyOp1[str](lambda x: f"(-{x})")
latex_abs = PyOp1[str](lambda x: rf"\left|{x}\right|")
latex_sqrt = PyOp1[str](lambda x: rf"\sqrt{{{x}}}")

eval_latex[HeadRule(a, b)] = repr_call(a, b)
eval_latex[Constant[a]] = latex_from_constant(a)
eval_latex[Variable[a]] = str_from_str(a)
eval_latex[Operator[a]] = str_from_str(a)
eval_latex[Add(a, b)] = latex_add(a, b)
eval_latex[Sub(a, b)] = latex_sub(a, b)
eval_latex[Mul(a, b)] = latex_mul(a, b)
eval_latex[Div(a, b)] = latex_div(a, b)
eval_latex[Pow(a, b)] = latex_pow(a, b)
eval_latex[Max(a, b)] = latex_max(a, b)
eval_latex[Min(a, b)] = latex_min(a, b)
eval_latex[Neg(a)] = latex_neg(a)
eval_latex[Abs(a)] = latex_abs(a)
eval_latex[sqrt(a)] = latex_sqrt(a)
eval_latex[exp(a)] = _latex_function(r"\exp")(a)
eval_latex[log(a)] = _latex_function(r"\log")(a)
eval_latex[sin(a)] = _latex_function(r"\sin")(a)
eval_latex[cos(a)] = _latex_function(r"\cos")(a)
eval_latex[tan(a)] = _latex_function(r"\tan")(a)
eval_latex[asin(a)] = _latex_function(r"\arcsin")(a)
eval_latex[acos(a)] = _latex_function(r"\arccos")(a)
eval_latex[atan(a)] = _latex_function(r"\arctan")(a)
