"""The :class:`Sym` class and the rule DSL built on top of it.

This module defines :class:`Sym` which is the superclass of the user-facing
expression class in :mod:`symtree.cas`. A :class:`Sym` wraps a
:class:`Tree` and gives a nicer syntax for writing evaluation and
differentiation rules as patterns:

.. code-block:: python

    eval_f64[sin(a)] = PyOp1(math.sin)(a)
    diff[sin(a), a] = cos(a)

Nothing here knows about any particular operator. The operators and their
rules are all defined in :mod:`symtree.cas`.
"""
from __future__ import annotations

from typing import Any
from typing import Callable
from typing import ClassVar
from typing import Generic
from typing import Optional
from typing import Sequence
from typing import Type
from typing import TypeVar
from weakref import WeakValueDictionary as _WeakDict

from symtree.core.atom import AtomType
from symtree.core.differentiate import diff_forward
from symtree.core.differentiate import DiffProperties
from symtree.core.evaluate import Evaluator
from symtree.core.evaluate import ForwardFunction
from symtree.core.exceptions import BadRuleError
from symtree.core.tree import SubsFunc
from symtree.core.tree import Tr
from symtree.core.tree import Tree


__all__ = [
    "Sym",
    "SymAtomType",
    "SymEvaluator",
    "SymDifferentiator",
    "RulePattern",
    "PyOp1",
    "PyOp2",
    "PyFunc1",
    "AtomFunc",
    "HeadOp",
    "AtomRule",
    "HeadRule",
]


T_sym = TypeVar("T_sym", bound="Sym")
T_val = TypeVar("T_val")
S_val = TypeVar("S_val")


Wild = AtomType("Wild", str)


class Sym:
    """Base class for user-facing symbolic classes.

    This class should not be used directly but rather subclassed to make a
    user-facing symbolic expression type:

    >>> from symtree.core.sym import Sym

    There is only one instance of a given subclass for any given
    :class:`Tree` so that comparing instances is comparing trees. Each
    :class:`Sym` instance holds the :class:`Tree` as its ``rep`` attribute.

    >>> class Node(Sym):
    ...     def __call__(self, *args):
    ...         return Node(self.rep(*[arg.rep for arg in args]))
    ...

    Now we can define some atom types and instances. These are wrappers
    around :class:`AtomType` and :class:`Tree`:

    >>> Constant = Node.new_atom('Constant', float)
    >>> Constant
    Constant
    >>> half = Constant(0.5)
    >>> half
    Node(Tr(Constant(0.5)))
    >>> print(half)
    0.5

    Heads are atoms too and calling them makes compound expressions:

    >>> Operator = Node.new_atom('Operator', str)
    >>> Add = Operator('Add')
    >>> expr = Add(half, half)
    >>> print(expr)
    Add(0.5, 0.5)
    >>> expr.head is Add
    True
    >>> expr.args == (half, half)
    True

    See Also
    ========

    symtree.cas.expr.Expr: The subclass of :class:`Sym` used by the CAS.
    """

    _instances: ClassVar[_WeakDict[Tree, Any]] = _WeakDict()

    rep: Tree

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._instances = _WeakDict()

    def __new__(cls: Type[T_sym], rep: Tree) -> T_sym:
        """Return the instance of ``cls`` wrapping ``rep``."""
        if not isinstance(rep, Tree):
            raise TypeError("First argument to Sym should be Tree")

        obj = cls._instances.get(rep)
        if obj is None:
            obj = super().__new__(cls)
            obj.rep = rep
            obj = cls._instances.setdefault(rep, obj)
        return obj  # type: ignore

    @property
    def head(self: T_sym) -> T_sym:
        """Head of the expression as a Sym."""
        return type(self)(self.rep.head)

    @property
    def args(self: T_sym) -> tuple[T_sym, ...]:
        """Args of the expression as a tuple."""
        cls = type(self)
        return tuple(cls(arg) for arg in self.rep.args)

    @property
    def is_atom(self) -> bool:
        """True for atomic expressions (no head and no args)."""
        return self.rep.is_atom

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.rep!r})"

    def __str__(self) -> str:
        return str(self.rep)

    @classmethod
    def new_atom(
        cls: Type[T_sym], name: str, typ: Type[T_val]
    ) -> SymAtomType[T_sym, T_val]:
        """Create a new atom type for a given :class:`Sym` subclass."""
        return SymAtomType(name, cls, typ)

    @classmethod
    def new_wild(cls: Type[T_sym], name: str) -> T_sym:
        """Create a new wild for a given :class:`Sym` subclass.

        >>> from symtree.core.sym import Sym
        >>> a = Sym.new_wild('a')
        >>> print(a)
        a
        >>> a
        Sym(Tr(Wild('a')))
        """
        return cls(Tr(Wild(name)))

    @classmethod
    def new_evaluator(
        cls: Type[T_sym], name: str, typ: Type[T_val]
    ) -> SymEvaluator[T_sym, T_val]:
        """Create a :class:`SymEvaluator` for a :class:`Sym` subclass.

        >>> from symtree.core.sym import Sym, PyFunc1
        >>> a = Sym.new_wild('a')
        >>> Constant = Sym.new_atom('Constant', float)
        >>> eval_str = Sym.new_evaluator('eval_str', str)
        >>> eval_str
        eval_str
        >>> eval_str[Constant[a]] = PyFunc1(repr)(a)
        >>> eval_str(Constant(2.0))
        '2.0'
        """
        return SymEvaluator(name)


class SymAtomType(Generic[T_sym, T_val]):
    """Wrapper around AtomType to construct atoms as Sym."""

    name: str
    sym: Type[T_sym]
    atom_type: AtomType[T_val]

    def __init__(self, name: str, sym: Type[T_sym], typ: Type[T_val]) -> None:
        self.name = name
        self.sym = sym
        self.atom_type = AtomType(name, typ)

    def __repr__(self) -> str:
        return self.name

    def __call__(self, value: T_val) -> T_sym:
        """Create a new Atom as a Sym."""
        return self.sym(Tr(self.atom_type(value)))

    def __getitem__(self, wild: T_sym) -> RulePattern[T_sym]:
        """Pattern for rules taking the value of atoms of this type."""
        return RulePattern("value", (wild,), self.atom_type)

    def contains(self, expr: Sym) -> bool:
        """Test whether ``expr`` is an atom of this type."""
        rep = expr.rep
        return rep.is_atom and rep.value.atom_type is self.atom_type


class RulePattern(Generic[T_sym]):
    """Left hand side of a rule that is not a plain expression.

    ``kind`` is ``"value"`` for rules on atoms of one type (``Constant[a]``),
    ``"atom"`` for the fallback rule for all other atoms (``AtomRule[a]``)
    and ``"head"`` for the fallback rule for all other heads
    (``HeadRule(a, b)``).
    """

    __slots__ = ("kind", "args", "atom_type")

    def __init__(
        self,
        kind: str,
        args: tuple[T_sym, ...],
        atom_type: Optional[AtomType[Any]] = None,
    ):
        self.kind = kind
        self.args = args
        self.atom_type = atom_type


class _AtomRule:
    __slots__ = ()

    def __getitem__(self, wild: T_sym) -> RulePattern[T_sym]:
        return RulePattern("atom", (wild,))


class _HeadRule:
    __slots__ = ()

    def __call__(self, head: T_sym, args: T_sym) -> RulePattern[T_sym]:
        return RulePattern("head", (head, args))


AtomRule = _AtomRule()
HeadRule = _HeadRule()


class PyFunc:
    """Base class for wrapping Python functions as the right side of rules.

    The subclasses differ in the signature of the wrapped function and so in
    the kind of pattern that they can be used with. Calling a wrapper with
    wilds gives the :class:`WildCall` that is assigned to a pattern.

    See Also
    ========

    PyOp1
    PyOp2
    PyFunc1
    AtomFunc
    HeadOp
    """

    __slots__ = ("func",)

    pattern_kind: ClassVar[str]

    def __init__(self, func: Callable[..., Any]):
        self.func = func

    def __call__(self, *args: T_sym) -> WildCall[T_sym]:
        return WildCall(self, args)


class WildCall(Generic[T_sym]):
    """A :class:`PyFunc` applied to wilds."""

    __slots__ = ("op", "args")

    def __init__(self, op: PyFunc, args: tuple[T_sym, ...]):
        self.op = op
        self.args = args


class PyOp1(PyFunc, Generic[T_val]):
    """Wrapper for an unary func T_val -> T_val."""

    __slots__ = ()
    pattern_kind = "operation"

    def __init__(self, func: Callable[[T_val], T_val]):
        super().__init__(func)


class PyOp2(PyFunc, Generic[T_val]):
    """Wrapper for a binary func (T_val, T_val) -> T_val."""

    __slots__ = ()
    pattern_kind = "operation"

    def __init__(self, func: Callable[[T_val, T_val], T_val]):
        super().__init__(func)


class PyFunc1(PyFunc, Generic[S_val, T_val]):
    """Wrapper for a func S_val -> T_val taking the value of an atom."""

    __slots__ = ()
    pattern_kind = "value"

    def __init__(self, func: Callable[[S_val], T_val]):
        super().__init__(func)


class AtomFunc(PyFunc, Generic[T_val]):
    """Wrapper for a func Tree -> T_val taking a whole atom."""

    __slots__ = ()
    pattern_kind = "atom"

    def __init__(self, func: Callable[[Tree], T_val]):
        super().__init__(func)


class HeadOp(PyFunc, Generic[T_val]):
    """Wrapper for generic head function.

    The wrapped function receives the head as a :class:`Tree` and the values
    of the arguments. It is used for fallback rules such as printing any
    function as ``name(args)``.
    """

    __slots__ = ()
    pattern_kind = "head"

    def __init__(self, func: Callable[[Tree, Sequence[T_val]], T_val]):
        super().__init__(func)


class SymEvaluator(Generic[T_sym, T_val]):
    """Evaluator for a given :class:`Sym` subclass.

    These should not be created directly but rather using the
    :meth:`Sym.new_evaluator` method.

    First create some atom types:

    >>> import math
    >>> from symtree.core.sym import Sym, PyOp1, PyFunc1
    >>> Constant = Sym.new_atom('Constant', float)
    >>> Operator = Sym.new_atom('Operator', str)
    >>> cos = Operator('cos').rep
    >>> a = Sym.new_wild('a')
    >>> one = Constant(1.0).rep

    Now we can make an :class:`Evaluator` and add rules to it:

    >>> eval_f64 = Sym.new_evaluator('eval_f64', float)
    >>> eval_f64[Constant[a]] = PyFunc1(float)(a)
    >>> eval_f64[Sym(cos(a.rep))] = PyOp1(math.cos)(a)

    Now make an expression and evaluate the expression:

    >>> cos_one = Sym(cos(one))
    >>> print(cos_one)
    cos(1.0)
    >>> eval_f64(cos_one) # doctest: +ELLIPSIS
    0.5403023058681...

    The wrapper has to suit the pattern:

    >>> eval_f64[Constant[a]] = PyOp1(math.cos)(a)
    Traceback (most recent call last):
    ...
    symtree.core.exceptions.BadRuleError: PyOp1 cannot be used for an atom value rule

    See Also
    ========

    symtree.core.evaluate.Evaluator
    """

    _kind_names = {
        "operation": "an operation rule",
        "value": "an atom value rule",
        "atom": "the atom fallback rule",
        "head": "the head fallback rule",
    }

    def __init__(self, name: str):
        self.name = name
        self.evaluator = Evaluator[T_val]()

    def __setitem__(
        self, pattern: T_sym | RulePattern[T_sym], call: WildCall[T_sym]
    ) -> None:
        """Add an evaluation rule like ``eval_f64[cos(a)] = f64_cos(a)``."""
        if not isinstance(call, WildCall):
            raise BadRuleError("Rule function should be a symbolic call.")

        if pattern.args != call.args:
            raise BadRuleError("Pattern and rule signatures do not match.")

        if isinstance(pattern, RulePattern):
            kind = pattern.kind
        else:
            kind = "operation"

        op = call.op
        if op.pattern_kind != kind:
            msg = f"{type(op).__name__} cannot be used for {self._kind_names[kind]}"
            raise BadRuleError(msg)

        evaluator = self.evaluator
        if isinstance(pattern, RulePattern):
            if kind == "value":
                assert pattern.atom_type is not None
                evaluator.add_atom(pattern.atom_type, op.func)
            elif kind == "atom":
                evaluator.set_atom_fallback(op.func)
            else:
                evaluator.set_operation_fallback(op.func)
        else:
            evaluator.add_operation(pattern.rep.head, op.func)

    def __repr__(self) -> str:
        return self.name

    def __call__(
        self, expr: T_sym, values: Optional[dict[T_sym, T_val]] = None
    ) -> T_val:
        """Evaluate a given expression using the rules."""
        values_rep = {}
        if values is not None:
            values_rep = {e.rep: v for e, v in values.items()}
        return self.evaluator(expr.rep, values_rep)

    def compile(self, expr: T_sym, params: Sequence[T_sym]) -> ForwardFunction[T_val]:
        """Resolve the rules for ``expr`` once for repeated evaluation."""
        return self.evaluator.compile(expr.rep, [p.rep for p in params])


class SymDifferentiator(Generic[T_sym]):
    """Representation of differentiation rules.

    The differentiator is created with the heads that it needs to recognise
    and build arithmetic and is then given rules for the other functions:

    >>> from symtree.cas.expr import Expr, Variable, Zero, One, Two, a, b
    >>> from symtree.cas.expr import Add, Sub, Mul, Div, Pow, Neg, sin, cos
    >>> from symtree.core.sym import SymDifferentiator
    >>> diff = SymDifferentiator(
    ...     Expr, zero=Zero, one=One, two=Two, add=Add, sub=Sub, mul=Mul,
    ...     div=Div, pow=Pow, neg=Neg)
    >>> diff[sin(a), a] = cos(a)
    >>> x = Variable('x')
    >>> print(diff(sin(sin(x)), x))
    (cos(x)*cos(sin(x)))
    >>> print(diff(-sin(x), x))
    (-cos(x))
    """

    def __init__(
        self,
        new_sym: Type[T_sym],
        *,
        zero: T_sym,
        one: T_sym,
        two: T_sym,
        add: T_sym,
        sub: T_sym,
        mul: T_sym,
        div: T_sym,
        pow: T_sym,
        neg: T_sym,
    ):
        self.new_sym = new_sym
        self.diff_props = DiffProperties(
            zero=zero.rep,
            one=one.rep,
            two=two.rep,
            add=add.rep,
            sub=sub.rep,
            mul=mul.rep,
            div=div.rep,
            pow=pow.rep,
            neg=neg.rep,
        )

    def add_distributive_rule(self, head: T_sym) -> None:
        """Register that differentiation can distribute over ``head``.

        This describes a rule like :math:`f(x, y)' = f(x', y')`.
        """
        self.diff_props.add_distributive(head.rep)

    def __setitem__(self, expr_sym: tuple[T_sym, T_sym], dexpr: T_sym) -> None:
        """Register a function rule like ``diff[sin(a), a] = cos(a)``."""
        if not isinstance(expr_sym, tuple) or len(expr_sym) != 2:
            raise BadRuleError("Pattern should be an expr-sym pair like diff[cos(a), a]")

        expr, sym = expr_sym
        params = expr.rep.args
        if params.count(sym.rep) != 1:
            raise BadRuleError("Wild symbol should appear once in the pattern.")

        rule = SubsFunc(dexpr.rep, params)
        self.diff_props.add_diff_rule(expr.rep.head, params.index(sym.rep), rule)

    def __call__(self, expr: T_sym, sym: T_sym, ntimes: int = 1) -> T_sym:
        """Compute the derivative of ``expr`` wrt ``sym`` ``ntimes``."""
        d_expr = expr.rep
        for _ in range(ntimes):
            d_expr = diff_forward(d_expr, sym.rep, self.diff_props)
        return self.new_sym(d_expr)
