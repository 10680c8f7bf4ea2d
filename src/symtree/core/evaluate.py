"""Define the core evaluation code.

An :class:`Evaluator` maps atoms and heads to Python callables. Evaluating
an expression resolves the callables for each of its nodes once and then
runs them in topological order as a :class:`ForwardFunction`.
"""
from __future__ import annotations

from typing import Callable
from typing import cast
from typing import Generic
from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import TypeVar

from symtree.core.exceptions import NoEvaluationRuleError
from symtree.core.tree import forward_graph
from symtree.core.tree import Tree


if _TYPE_CHECKING:
    from typing import Any, Optional, Sequence
    from symtree.core.atom import AnyValue as _AnyValue
    from symtree.core.atom import AtomType


__all__ = ["Evaluator", "ForwardFunction"]


_T = TypeVar("_T")
_S = TypeVar("_S")


class Evaluator(Generic[_T]):
    """Objects that evaluate expressions.

    Examples
    ========

    First define some atoms and operators:

    >>> import math
    >>> from symtree.core.atom import AtomType
    >>> from symtree.core.tree import Tr
    >>> from symtree.core.evaluate import Evaluator
    >>> Constant = AtomType('Constant', float)
    >>> Variable = AtomType('Variable', str)
    >>> Operator = AtomType('Operator', str)
    >>> sin = Tr(Operator('sin'))
    >>> mul = Tr(Operator('Mul'))
    >>> x = Tr(Variable('x'))
    >>> two = Tr(Constant(2.0))

    Now make an :class:`Evaluator` with rules for these kinds of expression:

    >>> evalf = Evaluator[float]()
    >>> evalf.add_atom(Constant, float)
    >>> evalf.add_operation(sin, math.sin)
    >>> evalf.add_operation(mul, lambda a, b: a * b)

    Values for other atoms (e.g. variables) are supplied when evaluating:

    >>> evalf(mul(two, sin(x)), {x: 1.0})  # doctest: +ELLIPSIS
    1.682941969615...

    Heads and atom types without a rule of their own go to the fallback
    rules if any were set and otherwise raise
    :class:`NoEvaluationRuleError`.
    """

    atoms: dict[AtomType[_AnyValue], Callable[[_AnyValue], _T]]
    operations: dict[Tree, Callable[..., _T]]
    atom_fallback: Optional[Callable[[Tree], _T]]
    operation_fallback: Optional[Callable[[Tree, Sequence[_T]], _T]]

    def __init__(self) -> None:
        self.atoms = {}
        self.operations = {}
        self.atom_fallback = None
        self.operation_fallback = None

    def add_atom(self, atom_type: AtomType[_S], func: Callable[[_S], _T]) -> None:
        """Evaluate atoms of ``atom_type`` by calling ``func`` on the value."""
        atom_type_cast = cast("AtomType[_AnyValue]", atom_type)
        self.atoms[atom_type_cast] = cast("Callable[[_AnyValue], _T]", func)

    def add_operation(self, head: Tree, func: Callable[..., _T]) -> None:
        """Evaluate ``head(*args)`` by calling ``func`` on the values of args."""
        self.operations[head] = func

    def set_atom_fallback(self, func: Callable[[Tree], _T]) -> None:
        """Evaluate atoms of any other type by calling ``func`` on the atom."""
        self.atom_fallback = func

    def set_operation_fallback(
        self, func: Callable[[Tree, Sequence[_T]], _T]
    ) -> None:
        """Evaluate any other head by calling ``func(head, argvals)``."""
        self.operation_fallback = func

    def atom_value(self, atom: Tree) -> _T:
        """Value of an atomic :class:`Tree`."""
        func = self.atoms.get(atom.value.atom_type)
        if func is not None:
            return func(atom.value.value)
        elif self.atom_fallback is not None:
            return self.atom_fallback(atom)
        raise NoEvaluationRuleError(f"No rule for atom: {atom!r}")

    def operation(self, head: Tree) -> Callable[..., _T]:
        """The callable used to evaluate ``head(*args)``."""
        func = self.operations.get(head)
        if func is not None:
            return func

        fallback = self.operation_fallback
        if fallback is None:
            raise NoEvaluationRuleError(f"No rule for head: {head!r}")

        def call_fallback(*argvals: _T) -> _T:
            return fallback(head, argvals)

        return call_fallback

    def compile(self, expr: Tree, params: Sequence[Tree]) -> ForwardFunction[_T]:
        """Resolve every rule for ``expr`` once and return a callable.

        The returned :class:`ForwardFunction` takes one positional argument
        for each of ``params`` and evaluates ``expr`` without looking up any
        rules or walking the expression again.

        >>> import operator
        >>> from symtree.core.atom import AtomType
        >>> from symtree.core.tree import Tr
        >>> from symtree.core.evaluate import Evaluator
        >>> Constant = AtomType('Constant', float)
        >>> Variable = AtomType('Variable', str)
        >>> add = Tr(AtomType('Operator', str)('Add'))
        >>> x, y = Tr(Variable('x')), Tr(Variable('y'))
        >>> evalf = Evaluator[float]()
        >>> evalf.add_atom(Constant, float)
        >>> evalf.add_operation(add, operator.add)
        >>> func = evalf.compile(add(x, add(y, Tr(Constant(1.0)))), [x, y])
        >>> func(1.0, 2.0)
        4.0

        Atoms that are not among ``params`` are evaluated once here so any
        error for them is raised by :meth:`compile` rather than by the call.
        Missing operation rules raise :class:`NoEvaluationRuleError`.
        """
        graph = forward_graph(expr)
        param_index = {param: n for n, param in enumerate(params)}

        template: list[Any] = []
        slots: list[tuple[int, int]] = []
        for n, atom in enumerate(graph.atoms):
            if atom in param_index:
                template.append(None)
                slots.append((n, param_index[atom]))
            else:
                template.append(self.atom_value(atom))

        operations = [
            (self.operation(head), indices) for head, indices in graph.operations
        ]
        return ForwardFunction(len(params), template, slots, operations)

    def __call__(self, expr: Tree, values: Optional[dict[Tree, _T]] = None) -> _T:
        """Evaluate ``expr`` with ``values`` given for some of its atoms."""
        if values is None:
            values = {}
        return self.compile(expr, list(values))(*values.values())


class ForwardFunction(Generic[_T]):
    """Precomputed forward evaluation of an expression.

    This should be created with :meth:`Evaluator.compile`. Calling it fills
    in the parameter values and runs the resolved operations in topological
    order.
    """

    __slots__ = ("nparams", "template", "slots", "operations")

    def __init__(
        self,
        nparams: int,
        template: list[Any],
        slots: list[tuple[int, int]],
        operations: list[tuple[Callable[..., _T], list[int]]],
    ):
        self.nparams = nparams
        self.template = template
        self.slots = slots
        self.operations = operations

    def __len__(self) -> int:
        """Number of operations run for each call."""
        return len(self.operations)

    def __call__(self, *args: Any) -> _T:
        if len(args) != self.nparams:
            msg = f"Expected {self.nparams} arguments but got {len(args)}"
            raise TypeError(msg)

        stack = list(self.template)
        for stack_index, arg_index in self.slots:
            stack[stack_index] = args[arg_index]

        for op_func, indices in self.operations:
            stack.append(op_func(*[stack[i] for i in indices]))

        return stack[-1]  # type: ignore
