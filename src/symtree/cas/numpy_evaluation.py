"""Evaluation rules using NumPy.

This is kept in its own module so that NumPy is only imported when the numpy
backend is used.
"""
from __future__ import annotations

from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Any, Sequence

import numpy as np

from symtree.core.sym import PyFunc1, PyOp1, PyOp2
from symtree.cas.exceptions import EvaluationDomainError, MissingBindingError
from symtree.cas.expr import (
    Abs,
    Add,
    Constant,
    Div,
    Expr,
    Max,
    Min,
    Mul,
    Neg,
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


if _TYPE_CHECKING:
    from symtree.core.evaluate import ForwardFunction


__all__ = [
    "eval_numpy",
    "call_numpy",
]


def _unbound(name: str) -> Any:
    raise MissingBindingError(f"No value given for variable {name!r}")


eval_numpy = Expr.new_evaluator("eval_numpy", np.ndarray)

eval_numpy[Constant[a]] = PyFunc1[float, Any](np.float64)(a)
eval_numpy[Variable[a]] = PyFunc1[str, Any](_unbound)(a)
eval_numpy[Add(a, b)] = PyOp2[Any](np.add)(a, b)
eval_numpy[Sub(a, b)] = PyOp2[Any](np.subtract)(a, b)
eval_numpy[Mul(a, b)] = PyOp2[Any](np.multiply)(a, b)
eval_numpy[Div(a, b)] = PyOp2[Any](np.divide)(a, b)
eval_numpy[Pow(a, b)] = PyOp2[Any](np.power)(a, b)
eval_numpy[Max(a, b)] = PyOp2[Any](np.maximum)(a, b)
eval_numpy[Min(a, b)] = PyOp2[Any](np.minimum)(a, b)
eval_numpy[Neg(a)] = PyOp1[Any](np.negative)(a)
eval_numpy[Abs(a)] = PyOp1[Any](np.abs)(a)
eval_numpy[sqrt(a)] = PyOp1[Any](np.sqrt)(a)
eval_numpy[exp(a)] = PyOp1[Any](np.exp)(a)
eval_numpy[log(a)] = PyOp1[Any](np.log)(a)
eval_numpy[sin(a)] = PyOp1[Any](np.sin)(a)
eval_numpy[cos(a)] = PyOp1[Any](np.cos)(a)
eval_numpy[tan(a)] = PyOp1[Any](np.tan)(a)
eval_numpy[asin(a)] = PyOp1[Any](np.arcsin)(a)
eval_numpy[acos(a)] = PyOp1[Any](np.arccos)(a)
eval_numpy[atan(a)] = PyOp1[Any](np.arctan)(a)


def call_numpy(func: ForwardFunction[Any], args: Sequence[Any]) -> Any:
    """Call a compiled function with arrays raising on floating point errors.

    >>> import numpy as np
    >>> from symtree.cas import Variable, sqrt
    >>> x = Variable('x')
    >>> f = sqrt(x).compile(x, backend='numpy')
    >>> f(np.array([1.0, 4.0, 9.0]))
    array([1., 2., 3.])
    >>> f(np.array([-1.0]))  # doctest: +ELLIPSIS
    Traceback (most recent call last):
    ...
    symtree.cas.exceptions.EvaluationDomainError: ...
    """
    arrays = [np.asarray(arg, dtype=np.float64) for arg in args]
    with np.errstate(divide="raise", over="raise", invalid="raise", under="ignore"):
        try:
            return func(*arrays)
        except FloatingPointError as err:
            raise EvaluationDomainError(str(err)) from err
