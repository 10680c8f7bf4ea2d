"""symtree.core.tree module.

This module defines the :class:`Tree` class for representing expressions in
top-down tree form along with the graph walks that every higher level
operation (evaluation, differentiation, substitution, export) is built on.
None of the walks recurse so expressions of any depth can be handled.
"""
from __future__ import annotations

from typing import Any
from typing import Callable
from typing import NamedTuple
from typing import TYPE_CHECKING as _TYPE_CHECKING
from weakref import WeakValueDictionary as _WeakDict

from symtree.core.atom import Atom


if _TYPE_CHECKING:
    from typing import Container, Optional, Sequence
    from symtree.core.atom import AnyAtom


__all__ = [
    "Tree",
    "Tr",
    "ForwardGraph",
    "SubsFunc",
    "topological_sort",
    "forward_graph",
    "fold",
]


_all_trees: _WeakDict[AnyAtom | tuple[Tree, ...], Tree] = _WeakDict()


class Tree:
    """Base class for tree expressions.

    Every :class:`Tree` is either an atomic :class:`Tree` wrapping an
    :class:`Atom` or a compound :class:`Tree` whose ``children`` are
    themselves :class:`Tree`. The first child of a compound :class:`Tree` is
    its :attr:`head` (the operator) and the remaining children are its
    :attr:`args`.

    >>> from symtree.core.atom import AtomType
    >>> from symtree.core.tree import Tr, Tree
    >>> Operator = AtomType('Operator', str)
    >>> Constant = AtomType('Constant', float)
    >>> Variable = AtomType('Variable', str)
    >>> sin = Tr(Operator('sin'))
    >>> x = Tr(Variable('x'))
    >>> two = Tr(Constant(2.0))
    >>> sin
    Tr(Operator('sin'))
    >>> expr = sin(x)
    >>> expr
    Tree(Tr(Operator('sin')), Tr(Variable('x')))
    >>> print(expr)
    sin(x)
    >>> expr.head is sin and expr.args == (x,)
    True
    >>> x.is_atom, x.value
    (True, Variable('x'))

    Trees are interned so that structurally equal trees are the same object.
    Equality of trees is therefore structural and respects the order of the
    children:

    >>> add = Tr(Operator('Add'))
    >>> add(x, two) is add(x, two)
    True
    >>> add(x, two) == add(two, x)
    False
    """

    __slots__ = (
        "__weakref__",
        "value",
        "children",
    )

    children: tuple[Tree, ...]
    """The head followed by the arguments (empty for atoms)."""  # pragma: no cover

    value: AnyAtom
    """The atom held by an atomic tree."""  # pragma: no cover

    def __new__(cls, *children: Tree) -> Tree:
        """Return the compound Tree with these children."""
        tree = _all_trees.get(children)
        if tree is None:
            if not children:
                raise TypeError("A compound Tree needs at least a head.")
            if not all(isinstance(child, Tree) for child in children):
                raise TypeError("All arguments should be Tree.")
            tree = object.__new__(cls)
            tree.children = children
            tree = _all_trees.setdefault(children, tree)
        return tree

    @classmethod
    def atom(cls, value: AnyAtom) -> Tree:
        """Return the atomic Tree holding ``value``."""
        tree = _all_trees.get(value)
        if tree is None:
            if not isinstance(value, Atom):
                raise TypeError("The value should be an Atom.")
            tree = object.__new__(cls)
            tree.value = value
            tree.children = ()
            tree = _all_trees.setdefault(value, tree)
        return tree

    @property
    def is_atom(self) -> bool:
        return not self.children

    @property
    def head(self) -> Tree:
        """The operator of a compound Tree."""
        return self.children[0]

    @property
    def args(self) -> tuple[Tree, ...]:
        """The arguments of a compound Tree (empty for atoms)."""
        return self.children[1:]

    def __call__(*expressions: Tree) -> Tree:
        """Compound expressions are made by calling Tree instances."""
        return Tree(*expressions)

    def __repr__(self) -> str:
        return fold(
            self,
            lambda atom: f"Tr({atom!r})",
            lambda head, args: f"Tree({', '.join([head, *args])})",
        )

    def __str__(self) -> str:
        return fold(
            self,
            str,
            lambda head, args: f"{head}({', '.join(args)})",
        )


# Convenient shorthand for creating atoms
Tr = Tree.atom


def topological_sort(
    expression: Tree,
    *,
    heads: bool = False,
    exclude: Optional[Container[Tree]] = None,
) -> list[Tree]:
    """List of subexpressions of a :class:`Tree` sorted topologically.

    >>> from symtree.core.atom import AtomType
    >>> from symtree.core.tree import Tr, topological_sort
    >>> Operator = AtomType('Operator', str)
    >>> Variable = AtomType('Variable', str)
    >>> add, sin = Tr(Operator('Add')), Tr(Operator('sin'))
    >>> x, y = Tr(Variable('x')), Tr(Variable('y'))
    >>> expr = add(sin(x), add(y, x))
    >>> for e in topological_sort(expr):
    ...     print(e)
    x
    sin(x)
    y
    Add(y, x)
    Add(sin(x), Add(y, x))

    No expression appears before any of its children and every distinct
    subexpression appears exactly once. Leaves appear in the order in which
    they are first met reading the expression from left to right.

    Heads are not included unless ``heads=True`` is passed:

    >>> topological_sort(sin(x), heads=True) == [sin, x, sin(x)]
    True

    Subexpressions in ``exclude`` are neither listed nor walked into. Any
    container can be used so a cache of finished results can be passed
    without copying it:

    >>> topological_sort(expr, exclude={sin(x)}) == [y, x, add(y, x), expr]
    True
    """
    skip: Container[Tree] = exclude if exclude is not None else ()
    start = 0 if heads else 1

    expressions: list[Tree] = []
    visited: set[Tree] = set()

    # Each entry is a node and whether its children have been pushed yet.
    stack = [(expression, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            expressions.append(node)
        elif node not in visited and node not in skip:
            visited.add(node)
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children[start:]))
    return expressions


def fold(
    expression: Tree,
    on_atom: Callable[[Any], Any],
    on_call: Callable[[Any, list[Any]], Any],
) -> Any:
    """Combine the values of children into a value for each node.

    ``on_atom`` maps the :class:`Atom` of each leaf (heads included) and
    ``on_call`` receives the value for the head and a list of the values for
    the args of each compound node.
    """
    results: dict[Tree, Any] = {}
    for node in topological_sort(expression, heads=True):
        if node.children:
            head, *args = [results[child] for child in node.children]
            results[node] = on_call(head, args)
        else:
            results[node] = on_atom(node.value)
    return results[expression]


class ForwardGraph(NamedTuple):
    """An expression as its atoms and a list of operations on them.

    Each operation is a head and the indices of its arguments in the list
    made of the atoms followed by the results of the preceding operations.
    """

    atoms: list[Tree]
    operations: list[tuple[Tree, list[int]]]


def forward_graph(expr: Tree) -> ForwardGraph:
    """Build a :class:`ForwardGraph` from a :class:`Tree`.

    >>> from symtree.core.atom import AtomType
    >>> from symtree.core.tree import Tr, forward_graph
    >>> Operator = AtomType('Operator', str)
    >>> Variable = AtomType('Variable', str)
    >>> mul, cos = Tr(Operator('Mul')), Tr(Operator('cos'))
    >>> x, y = Tr(Variable('x')), Tr(Variable('y'))
    >>> graph = forward_graph(mul(cos(x), y))
    >>> graph.atoms == [x, y]
    True
    >>> graph.operations == [(cos, [0]), (mul, [2, 1])]
    True

    Running the operations in order rebuilds the expression:

    >>> stack = list(graph.atoms)
    >>> for head, indices in graph.operations:
    ...     stack.append(head(*[stack[i] for i in indices]))
    >>> stack[-1] == mul(cos(x), y)
    True
    """
    subexpressions = topological_sort(expr)
    atoms = [e for e in subexpressions if e.is_atom]
    index = {atom: n for n, atom in enumerate(atoms)}

    operations: list[tuple[Tree, list[int]]] = []
    for subexpr in subexpressions:
        if not subexpr.is_atom:
            index[subexpr] = len(atoms) + len(operations)
            operations.append((subexpr.head, [index[a] for a in subexpr.args]))

    return ForwardGraph(atoms, operations)


class SubsFunc:
    """Callable for performing substitutions into a Tree.

    >>> from symtree.core.atom import AtomType
    >>> from symtree.core.tree import Tr, SubsFunc
    >>> Operator = AtomType('Operator', str)
    >>> Variable = AtomType('Variable', str)
    >>> add, sin = Tr(Operator('Add')), Tr(Operator('sin'))
    >>> x, y, z = [Tr(Variable(n)) for n in 'xyz']
    >>> expr = add(sin(x), add(x, y))
    >>> subs_x = SubsFunc(expr, [x])
    >>> print(subs_x(z))
    Add(sin(z), Add(z, y))

    Compound subexpressions can be replaced as well and all replacements are
    performed simultaneously. A replaced subexpression is not searched for
    further matches:

    >>> subs_two = SubsFunc(expr, [add(x, y), x])
    >>> print(subs_two(sin(x), y))
    Add(sin(y), sin(x))

    The expression itself can be one of the params:

    >>> print(SubsFunc(expr, [expr])(z))
    z

    Building a :class:`SubsFunc` is more expensive than calling it so the
    same instance can be reused for substituting different values.

    :ivar nparams: Number of values expected by each call.
    :ivar constants: Subtrees that substitution leaves unchanged.
    :ivar steps: One tuple of indices for each node that has to be rebuilt
        referring to the list of param values, constants and rebuilt nodes.
    :ivar result: Index of the result in that same list.
    """

    __slots__ = ("nparams", "constants", "steps", "result")

    nparams: int
    constants: list[Tree]
    steps: list[tuple[int, ...]]
    result: int

    def __init__(self, expr: Tree, params: Sequence[Tree]):
        slots: dict[Tree, int] = {}
        for n, param in enumerate(params):
            slots.setdefault(param, n)

        # A node is rebuilt if any of its children is a param or is rebuilt.
        # Params are excluded from the walk so nothing inside them is found.
        rebuilt: list[Tree] = []
        changed = set(slots)
        for node in topological_sort(expr, heads=True, exclude=slots):
            if not changed.isdisjoint(node.children):
                changed.add(node)
                rebuilt.append(node)

        constants: list[Tree] = []
        if expr not in changed:
            constants.append(expr)
        for node in rebuilt:
            for child in node.children:
                if child not in changed and child not in constants:
                    constants.append(child)

        for n, tree in enumerate(constants + rebuilt, len(params)):
            slots[tree] = n

        self.nparams = len(params)
        self.constants = constants
        self.steps = [tuple(slots[c] for c in node.children) for node in rebuilt]
        self.result = slots[expr]

    def __call__(self, *args: Tree) -> Tree:
        if len(args) != self.nparams:
            msg = f"Expected {self.nparams} arguments but got {len(args)}"
            raise TypeError(msg)

        stack = [*args, *self.constants]
        for indices in self.steps:
            stack.append(Tree(*[stack[i] for i in indices]))
        return stack[self.result]
