"""Compile expressions to fast numeric functions.

The forward graph of the expression is built once and every node is resolved
to a Python callable from an evaluator's rule table. Calling the compiled
function then only runs those callables in order. No source code is
generated or interpreted.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Any, Callable, Optional, Sequence

from symtree.core.exceptions import NoEvaluationRuleError
from symtree.cas.exceptions import CompilationError, MissingBindingError
from symtree.cas.expr import Expr, Variable, eval_f64


if _TYPE_CHECKING:
    from symtree.core.evaluate import ForwardFunction
    from symtree.core.sym import SymEvaluator
    from symtree.cas.expr import Bindings


__all__ = [
    "BACKENDS",
    "CompiledFunction",
    "lambdify",
]


_log = logging.getLogger(__name__)


BACKENDS = ("math", "numpy")


def _get_backend(backend: str) -> tuple[SymEvaluator[Expr, Any], Callable[..., Any]]:
    """The evaluator for a backend and the function used to call it."""
    if backend == "math":
        return eval_f64, _call_plain
    elif backend == "numpy":
        try:
            from symtree.cas.numpy_evaluation import call_numpy, eval_numpy
        except ImportError:  # pragma: no cover
            msg = "numpy needs to be installed to use the numpy backend."
            raise ImportError(msg) from None
        return eval_numpy, call_numpy
    else:
        msg = f"Unknown backend {backend!r}, expected one of {BACKENDS}"
        raise CompilationError(msg)


def _call_plain(func: ForwardFunction[float], args: Sequence[Any]) -> float:
    return func(*args)


def lambdify(
    params: Optional[Sequence[Expr]], expression: Expr, backend: str = "math"
) -> CompiledFunction:
    """Turn ``expression`` into an efficient callable function of ``params``.

    >>> from symtree.cas import Variable, sin, lambdify
    >>> x = Variable('x')
    >>> f = lambdify([x], sin(x))
    >>> f(1)
    0.8414709848078965
    >>> import math; math.sin(1)
    0.8414709848078965

    If ``params`` is ``None`` the free variables of ``expression`` are used
    in the order they are first seen. Every free variable must be one of the
    params:

    >>> y = Variable('y')
    >>> lambdify([x], sin(x) + y)
    Traceback (most recent call last):
    ...
    symtree.cas.exceptions.CompilationError: Expression depends on variables that are not params: y
    """
    if not isinstance(expression, Expr):
        raise CompilationError(f"Not an expression: {expression!r}")

    if params is None:
        params = expression.free_variables()
    params = list(params)

    for param in params:
        if not Variable.contains(param):
            raise CompilationError(f"Params should be variables: {param!r}")
    if len(set(params)) != len(params):
        raise CompilationError("Params should not contain duplicates")

    missing = [v for v in expression.free_variables() if v not in params]
    if missing:
        names = ", ".join(str(v) for v in missing)
        raise CompilationError(f"Expression depends on variables that are not params: {names}")

    evaluator, caller = _get_backend(backend)
    try:
        func = evaluator.compile(expression, params)
    except NoEvaluationRuleError as err:
        raise CompilationError(str(err)) from err

    _log.debug(
        "compiled %d operations for backend %s with params %s",
        len(func),
        backend,
        params,
    )
    return CompiledFunction(params, expression, backend, func, caller)


class CompiledFunction:
    """Function evaluating an expression for given values of its params.

    This should be created with :func:`lambdify` or :meth:`Expr.compile`.

    >>> from symtree.cas import Variable
    >>> x, y = Variable('x'), Variable('y')
    >>> f = (x / y).compile(x, y)
    >>> f
    CompiledFunction([x, y], (x/y), backend='math')
    >>> f(1.0, 4.0)
    0.25
    >>> f.invoke({'x': 1.0, y: 2.0})
    0.5
    """

    params: list[Expr]
    expression: Expr
    backend: str

    def __init__(
        self,
        params: list[Expr],
        expression: Expr,
        backend: str,
        func: ForwardFunction[Any],
        caller: Callable[..., Any],
    ):
        """Create a new :class:`CompiledFunction`."""
        self.params = params
        self.expression = expression
        self.backend = backend
        self._func = func
        self._caller = caller

    def __repr__(self) -> str:
        """Show the params, expression and backend."""
        return f"CompiledFunction({self.params}, {self.expression}, backend={self.backend!r})"

    def __call__(self, *args: Any) -> Any:
        """Evaluate with one positional argument per param."""
        return self._caller(self._func, args)

    def invoke(self, bindings: Bindings) -> Any:
        """Evaluate with values for the params given by variable or name."""
        args = []
        for param in self.params:
            if param in bindings:
                args.append(bindings[param])
            elif param.name in bindings:
                args.append(bindings[param.name])
            else:
                raise MissingBindingError(f"No value given for variable {param.name!r}")
        return self(*args)
