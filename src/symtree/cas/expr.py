"""The Expr class."""
from __future__ import annotations

import logging
import math
import threading
from collections.abc import Mapping
from functools import wraps
from numbers import Real
from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Any, Callable, Optional, Union

from symtree.core.rewrite import DEFAULT_MAX_STEPS
from symtree.core.sym import Sym, SymAtomType, SymDifferentiator
from symtree.core.tree import SubsFunc, topological_sort
from symtree.cas.exceptions import (
    DuplicateVariableError,
    InvalidOperandError,
    InvalidSubstitutionError,
)


if _TYPE_CHECKING:
    from symtree.core.tree import Tree
    from symtree.cas.lambdification import CompiledFunction

    Expressifiable = Union["Expr", float, int]
    Bindings = Mapping[Union["Expr", str], float]
    ExprBinOp = Callable[["Expr", "Expr"], "Expr"]
    ExpressifyBinOp = Callable[["Expr", Expressifiable], "Expr"]


__all__ = [
    "Expr",
    "expressify",
    "Constant",
    "Variable",
    "Operator",
    "var",
]


_log = logging.getLogger(__name__)


def expressify(obj: Any) -> Expr:
    """Convert a native Python number to an ``Expr``.

    >>> from symtree.cas import expressify, One
    >>> two = expressify(2)
    >>> two
    2
    >>> type(two)
    <class 'symtree.cas.expr.Expr'>
    >>> two.rep
    Tr(Constant(2.0))

    Numbers that have a canonical constant give that constant and it is
    harmless to call :func:`expressify` on an :class:`Expr`:

    >>> expressify(1) is One
    True
    >>> expressify(two) is two
    True

    Anything else raises :class:`InvalidOperandError`.
    """
    if isinstance(obj, Expr):
        return obj
    return Constant(obj)


def expressify_other(method: ExprBinOp) -> ExpressifyBinOp:
    """Call ``expressify`` on operands in ``__add__`` etc."""

    @wraps(method)
    def expressify_method(self: Expr, other: Expressifiable) -> Expr:
        if not isinstance(other, Expr):
            try:
                other = expressify(other)
            except InvalidOperandError:
                return NotImplemented
        return method(self, other)

    return expressify_method


class Expr(Sym):
    """User-facing class for representing expressions.

    To create an :class:`Expr` first import the basic types from
    :mod:`symtree.cas` and then use them to build up some expressions.

    >>> from symtree.cas import Variable, sin
    >>> x = Variable('x')
    >>> y = Variable('y')
    >>> expr = sin(x) + 2*y
    >>> expr
    (sin(x) + (2*y))
    >>> expr.call({x: 0.0, 'y': 1.5})
    3.0

    Expressions are inert and will not change their form implicitly. Every
    binary operation is shown with brackets so the printed form is
    unambiguous:

    >>> x + x + x
    ((x + x) + x)
    >>> x - y
    (x - y)

    Expressions with the same structure are the same object so ``==`` is
    structural equality. The order of the arguments matters:

    >>> x + y == x + y
    True
    >>> x + y == y + x
    False

    Derivatives are built without any simplification which can be applied
    afterwards:

    >>> expr.diff(x)
    cos(x)
    >>> (x**2).diff(x)
    (2*(x**(2 - 1)))
    >>> (x**2).diff(x).simplify()
    (2*x)

    See Also
    --------
    diff
    call
    subs
    simplify
    compile
    """

    def __repr__(self) -> str:
        """Pretty string representation of the expression."""
        return self.render()

    def __str__(self) -> str:
        """Pretty string representation of the expression."""
        return self.render()

    def _repr_latex_(self) -> str:
        """Support IPython's LaTeX hook."""
        return f"${self.eval_latex()}$"

    def _sympy_(self) -> Any:
        """Support SymPy's ``sympify`` function."""
        return self.to_sympy()

    def __call__(self, *args: Expressifiable) -> Expr:
        """Call an operator to make a compound expression.

        >>> from symtree.cas import Add, Variable, sin
        >>> x = Variable('x')
        >>> Add(x, 1)
        (x + 1)
        >>> sin(x)
        sin(x)

        Only operators can be called and only with the right number of
        arguments:

        >>> sin(x, x)
        Traceback (most recent call last):
        ...
        symtree.cas.exceptions.InvalidOperandError: sin takes 1 argument(s) but 2 were given
        """
        arity = _arities.get(self.rep)
        if arity is None:
            raise InvalidOperandError(f"{self} is not an operator")
        if len(args) != arity:
            msg = f"{self} takes {arity} argument(s) but {len(args)} were given"
            raise InvalidOperandError(msg)
        args_rep = [expressify(arg).rep for arg in args]
        return Expr(self.rep(*args_rep))

    @property
    def name(self) -> str:
        """Name of a variable or operator."""
        if Variable.contains(self) or Operator.contains(self):
            return self.rep.value.value
        raise AttributeError(f"{self} has no name")

    @property
    def value(self) -> float:
        """Value of a constant."""
        if Constant.contains(self):
            return self.rep.value.value
        raise AttributeError(f"{self} is not a constant")

    def __pos__(self) -> Expr:
        """+Expr -> Expr."""
        return self

    def __neg__(self) -> Expr:
        """-Expr -> Expr."""
        return Neg(self)

    def __abs__(self) -> Expr:
        """abs(Expr) -> Expr."""
        return Abs(self)

    @expressify_other
    def __add__(self, other: Expr) -> Expr:
        """Expr + Expr -> Expr."""
        return Add(self, other)

    @expressify_other
    def __radd__(self, other: Expr) -> Expr:
        """Expr + Expr -> Expr."""
        return Add(other, self)

    @expressify_other
    def __sub__(self, other: Expr) -> Expr:
        """Expr - Expr -> Expr."""
        return Sub(self, other)

    @expressify_other
    def __rsub__(self, other: Expr) -> Expr:
        """Expr - Expr -> Expr."""
        return Sub(other, self)

    @expressify_other
    def __mul__(self, other: Expr) -> Expr:
        """Expr * Expr -> Expr."""
        return Mul(self, other)

    @expressify_other
    def __rmul__(self, other: Expr) -> Expr:
        """Expr * Expr -> Expr."""
        return Mul(other, self)

    @expressify_other
    def __truediv__(self, other: Expr) -> Expr:
        """Expr / Expr -> Expr."""
        return Div(self, other)

    @expressify_other
    def __rtruediv__(self, other: Expr) -> Expr:
        """Expr / Expr -> Expr."""
        return Div(other, self)

    @expressify_other
    def __pow__(self, other: Expr) -> Expr:
        """Expr ** Expr -> Expr."""
        return Pow(self, other)

    @expressify_other
    def __rpow__(self, other: Expr) -> Expr:
        """Expr ** Expr -> Expr."""
        return Pow(other, self)

    def equals(self, other: Any) -> bool:
        """Structural equality, the same as ``==`` but accepting numbers.

        >>> from symtree.cas import Two
        >>> Two.equals(2)
        True
        >>> Two.equals('2')
        False
        """
        try:
            other = expressify(other)
        except InvalidOperandError:
            return False
        return self is other

    def depends_on(self, v: Expr) -> bool:
        """Test whether ``v`` occurs anywhere in this expression.

        >>> from symtree.cas import Variable, sin
        >>> x, y = Variable('x'), Variable('y')
        >>> sin(x).depends_on(x)
        True
        >>> sin(x).depends_on(y)
        False
        """
        return v.rep in set(topological_sort(self.rep))

    def free_variables(self) -> list[Expr]:
        """Variables in this expression in the order they are first seen.

        >>> from symtree.cas import Variable
        >>> x, y = Variable('x'), Variable('y')
        >>> (y*x + x).free_variables()
        [y, x]
        """
        subexpressions = topological_sort(self.rep)
        return [Expr(e) for e in subexpressions if _is_variable(e)]

    def render(self) -> str:
        """Canonical text of the expression e.g. ``"(cos(x) + 1)"``."""
        return eval_repr(self)

    def to_code(self) -> str:
        """Python source code for evaluating the expression.

        >>> from symtree.cas import Variable, Pi, sin
        >>> x = Variable('x')
        >>> print((sin(x) * Pi).to_code())
        (math.sin(x) * math.pi)
        """
        return eval_code(self)

    def eval_latex(self) -> str:
        r"""Return a LaTeX representaton of the expression.

        >>> from symtree.cas import Variable, sin
        >>> x = Variable('x')
        >>> print(sin(x**2).eval_latex())
        \sin\left({x}^{2}\right)
        """
        return eval_latex(self)

    def to_dot(self) -> str:
        """DOT graph text showing the structure of the expression.

        See Also
        --------
        symtree.cas.export.to_dot
        """
        from symtree.cas.export import to_dot

        return to_dot(self)

    def to_sympy(self) -> Any:
        """Convert to a SymPy expression.

        >>> # xdoctest: +REQUIRES(module:sympy)
        >>> from symtree.cas import Variable, sin
        >>> x = Variable('x')
        >>> expr_sympy = sin(x).to_sympy()
        >>> expr_sympy
        sin(x)
        >>> type(expr_sympy)
        sin

        See Also
        --------
        from_sympy
        """
        from symtree.cas.sympy_conversions import to_sympy

        return to_sympy(self)

    @classmethod
    def from_sympy(cls, expr: Any) -> Expr:
        """Create an ``Expr`` from a SymPy expression.

        >>> # xdoctest: +REQUIRES(module:sympy)
        >>> from sympy import sin, Symbol
        >>> from symtree.cas import Expr
        >>> x = Symbol('x')
        >>> Expr.from_sympy(sin(x) + 1)
        (1 + sin(x))

        See Also
        --------
        to_sympy
        """
        from symtree.cas.sympy_conversions import from_sympy

        return from_sympy(expr)

    def call(self, bindings: Optional[Bindings] = None) -> float:
        """Evaluate the expression as a 64-bit ``float``.

        >>> from symtree.cas import Variable, sin
        >>> x = Variable('x')
        >>> sin(sin(x)).call({x: 1.0})  # doctest: +ELLIPSIS
        0.7456241416655...

        Variables can be given either as instances or by name. A variable
        without a value raises :class:`MissingBindingError` and leaving the
        domain of a function raises :class:`EvaluationDomainError`:

        >>> (1 / x).call({'x': 0.0})  # doctest: +ELLIPSIS
        Traceback (most recent call last):
        ...
        symtree.cas.exceptions.EvaluationDomainError: Div(1.0, 0.0): ...
        """
        return eval_f64(self, bindings_to_values(bindings))

    def subs(self, mapping: Mapping[Expressifiable, Expressifiable]) -> Expr:
        """Replace subexpressions in an :class:`Expr`.

        >>> from symtree.cas import Variable, cos
        >>> x, y = Variable('x'), Variable('y')
        >>> e = cos(x) + x
        >>> e.subs({x: y})
        (cos(y) + y)
        >>> e.subs({cos(x): x, x: 2})
        (x + 2)

        All replacements are made at the same time and a replaced
        subexpression is not searched again.
        """
        if not isinstance(mapping, Mapping):
            raise InvalidSubstitutionError("subs expects a mapping")

        keys: list[Tree] = []
        values: list[Tree] = []
        for key, value in mapping.items():
            key_expr = _subs_operand(key, "key")
            if Operator.contains(key_expr):
                raise InvalidSubstitutionError(f"Cannot substitute operator {key_expr}")
            if key_expr.rep in keys:
                raise InvalidSubstitutionError(f"Duplicate substitution key {key_expr}")
            keys.append(key_expr.rep)
            values.append(_subs_operand(value, "value").rep)

        if not keys:
            return self
        return Expr(SubsFunc(self.rep, keys)(*values))

    def diff(self, sym: Expr, ntimes: int = 1) -> Expr:
        """Differentiate ``expr`` wrt ``sym`` (``ntimes`` times).

        >>> from symtree.cas import Variable, sin
        >>> x = Variable('x')
        >>> sin(x).diff(x)
        cos(x)
        >>> sin(x).diff(x, 2)
        (-sin(x))

        Differentiation is by forward accumulation over the graph of distinct
        subexpressions so large expressions with many repeated parts are
        handled efficiently.

        See Also
        --------
        symtree.core.differentiate.diff_forward
        """
        if not isinstance(sym, Expr) or not Variable.contains(sym):
            raise InvalidOperandError(f"Can only differentiate wrt a variable: {sym!r}")
        if ntimes < 0:
            raise ValueError("ntimes should be nonnegative")
        return diff(self, sym, ntimes)

    def simplify(self, max_steps: int = DEFAULT_MAX_STEPS) -> Expr:
        """Rewrite the expression to its simplified fixed point.

        >>> from symtree.cas import Variable, Zero, sin, asin
        >>> x = Variable('x')
        >>> (sin(asin(x)) * 1 + Zero).simplify()
        x

        See Also
        --------
        symtree.cas.simplification.simplify
        """
        from symtree.cas.simplification import simplify

        return simplify(self, max_steps)

    def compile(self, *params: Expr, backend: str = "math") -> CompiledFunction:
        """Compile the expression to a function of ``params``.

        >>> from symtree.cas import Variable, sin
        >>> x, y = Variable('x'), Variable('y')
        >>> f = (sin(x) * y).compile(x, y)
        >>> f(0.0, 2.0)
        0.0

        If no ``params`` are given the free variables are used in the order
        they are first seen.

        See Also
        --------
        symtree.cas.lambdification.lambdify
        """
        from symtree.cas.lambdification import lambdify

        return lambdify(list(params) if params else None, self, backend=backend)


def _is_variable(tree: Tree) -> bool:
    return tree.is_atom and tree.value.atom_type is Variable.atom_type


def _subs_operand(obj: Any, kind: str) -> Expr:
    try:
        return expressify(obj)
    except InvalidOperandError:
        msg = f"Substitution {kind} should be an expression or number: {obj!r}"
        raise InvalidSubstitutionError(msg) from None


def bindings_to_values(bindings: Optional[Bindings]) -> dict[Expr, Any]:
    """Turn bindings keyed by variable or name into values for evaluators.

    A variable given as an instance takes precedence over the same variable
    given by name. Names that are not registered are ignored.
    """
    values: dict[Expr, Any] = {}
    if bindings is None:
        return values

    by_name = {}
    for key, value in bindings.items():
        if isinstance(key, str):
            by_name[key] = value
        elif isinstance(key, Expr) and Variable.contains(key):
            values[key] = value
        else:
            raise InvalidOperandError(f"Can only bind values to variables: {key!r}")

    for name, value in by_name.items():
        variable = Variable.get(name)
        if variable is not None:
            values.setdefault(variable, value)

    return values


class ConstantType(SymAtomType[Expr, float]):
    """Factory for numeric constants.

    The value is always stored as a ``float`` so constants that compare
    equal as numbers are the same expression:

    >>> from symtree.cas import Constant, Zero, Pi
    >>> import math
    >>> Constant(0) is Constant(0.0) is Zero
    True
    >>> Constant(math.pi) is Pi
    True
    >>> Constant(0.5)
    0.5
    """

    def __call__(self, value: Any) -> Expr:
        """Create (or look up) the constant for ``value``."""
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidOperandError(f"Not a number: {value!r}")
        try:
            fvalue = float(value)
        except OverflowError:
            raise InvalidOperandError(f"Number too large: {value!r}") from None
        return super().__call__(fvalue)

    def contains(self, expr: Sym) -> bool:
        """Test whether ``expr`` is a constant."""
        return isinstance(expr, Expr) and super().contains(expr)


class VariableType(SymAtomType[Expr, str]):
    """Registry of variables.

    Each name refers to exactly one variable for the lifetime of the process.
    Calling :data:`Variable` returns the registered variable or creates it:

    >>> from symtree.cas import Variable
    >>> Variable('x') is Variable('x')
    True
    >>> Variable.exists('x')
    True

    :meth:`define` insists on creating a new variable.
    """

    def __init__(self, name: str, sym: type[Expr], typ: type[str]) -> None:
        """New registry with no variables."""
        super().__init__(name, sym, typ)
        self._registry: dict[str, Expr] = {}
        self._lock = threading.Lock()

    def define(self, name: str) -> Expr:
        """Create and register a new variable.

        Raises :class:`DuplicateVariableError` if ``name`` is already taken.
        """
        _check_name(name)
        with self._lock:
            if name in self._registry:
                raise DuplicateVariableError(f"Variable {name!r} is already defined")
            variable = self._registry[name] = super().__call__(name)
        _log.debug("defined variable %s", name)
        return variable

    def lookup_or_create(self, name: str) -> Expr:
        """Return the variable called ``name`` creating it if needed."""
        _check_name(name)
        with self._lock:
            variable = self._registry.get(name)
            if variable is None:
                variable = self._registry[name] = super().__call__(name)
                _log.debug("defined variable %s", name)
        return variable

    __call__ = lookup_or_create

    def get(self, name: str) -> Optional[Expr]:
        """The variable called ``name`` or ``None`` if there is none."""
        return self._registry.get(name)

    def exists(self, name: str) -> bool:
        """Test whether a variable called ``name`` is registered."""
        return name in self._registry

    def registered(self) -> dict[str, Expr]:
        """Copy of the registry in the order the variables were defined."""
        with self._lock:
            return dict(self._registry)

    def __len__(self) -> int:
        """Number of registered variables."""
        return len(self._registry)

    def contains(self, expr: Sym) -> bool:
        """Test whether ``expr`` is a variable."""
        return isinstance(expr, Expr) and super().contains(expr)


def _check_name(name: Any) -> None:
    if not isinstance(name, str) or not name:
        raise InvalidOperandError(f"Variable names should be nonempty strings: {name!r}")


def var(*names: str) -> Expr | tuple[Expr, ...]:
    """Look up or create variables.

    >>> from symtree.cas import var
    >>> x = var('x')
    >>> x
    x
    >>> var('x', 'y')
    (x, y)
    """
    variables = tuple(Variable.lookup_or_create(name) for name in names)
    if len(variables) == 1:
        return variables[0]
    return variables


Constant = ConstantType("Constant", Expr, float)
Variable = VariableType("Variable", Expr, str)
Operator = Expr.new_atom("Operator", str)

_arities: dict[Tree, int] = {}


def _operator(name: str, arity: int) -> Expr:
    head = Operator(name)
    _arities[head.rep] = arity
    return head


#
# The canonical constants. Holding them here means that any constant created
# with one of these values is the same object.
#
Zero = Constant(0)
One = Constant(1)
Two = Constant(2)
MinusOne = Constant(-1)
Pi = Constant(math.pi)
E = Constant(math.e)
Infinity = Constant(math.inf)
NegInfinity = Constant(-math.inf)

Add = _operator("Add", 2)
Sub = _operator("Sub", 2)
Mul = _operator("Mul", 2)
Div = _operator("Div", 2)
Pow = _operator("Pow", 2)
Max = _operator("Max", 2)
Min = _operator("Min", 2)

Neg = _operator("Neg", 1)
Abs = _operator("Abs", 1)
sqrt = _operator("sqrt", 1)
exp = _operator("exp", 1)
log = _operator("log", 1)
sin = _operator("sin", 1)
cos = _operator("cos", 1)
tan = _operator("tan", 1)
asin = _operator("asin", 1)
acos = _operator("acos", 1)
atan = _operator("atan", 1)

a = Expr.new_wild("a")
b = Expr.new_wild("b")

eval_f64 = Expr.new_evaluator("eval_f64", float)
eval_repr = Expr.new_evaluator("eval_repr", str)
eval_code = Expr.new_evaluator("eval_code", str)
eval_latex = Expr.new_evaluator("eval_latex", str)

diff = SymDifferentiator(
    Expr,
    zero=Zero,
    one=One,
    two=Two,
    add=Add,
    sub=Sub,
    mul=Mul,
    div=Div,
    pow=Pow,
    neg=Neg,
)
