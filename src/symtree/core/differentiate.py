"""Core routines for differentiating at Tree level.

This module implements the basic forward differentiation algorithm. Higher
level code in the sym module wraps this to make a nicer pattern-matching style
interface for specifying differentiation rules.
"""
from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING as _TYPE_CHECKING

from symtree.core.exceptions import NoEvaluationRuleError
from symtree.core.tree import forward_graph


__all__ = [
    "DiffProperties",
    "diff_forward",
]


if _TYPE_CHECKING:
    from symtree.core.tree import Tree, SubsFunc

    _DiffRules = dict[tuple[Tree, int], SubsFunc]


@dataclass(frozen=True)
class DiffProperties:
    """Collection of properties needed for differentiation.

    The arithmetic heads are needed both to recognise the sum, negation,
    difference, product and quotient rules and to build the derivatives. Any other head
    is differentiated with the chain rule using the partial derivatives that
    were registered with :meth:`add_diff_rule`.
    """

    zero: Tree
    one: Tree
    two: Tree
    add: Tree
    sub: Tree
    mul: Tree
    div: Tree
    pow: Tree
    neg: Tree
    distributive: set[Tree] = field(default_factory=set)
    diff_rules: _DiffRules = field(default_factory=dict)

    def add_distributive(self, head: Tree) -> None:
        """Add a distributive rule :math:`f(x, y)' = f(x', y')`."""
        self.distributive.add(head)

    def add_diff_rule(self, head: Tree, argnum: int, func: SubsFunc) -> None:
        """Add an elementary rule like :math:`sin(x)' = cos(x)`."""
        self.diff_rules[head, argnum] = func


def diff_forward(
    expression: Tree,
    sym: Tree,
    prop: DiffProperties,
) -> Tree:
    """Derivative of expression wrt sym.

    Uses forward accumulation algorithm.
    """
    one = prop.one
    zero = prop.zero

    graph = forward_graph(expression)

    stack = list(graph.atoms)
    diff_stack = [one if expr == sym else zero for expr in stack]

    for func, indices in graph.operations:
        args = [stack[i] for i in indices]
        diff_args = [diff_stack[i] for i in indices]
        expr = func(*args)

        if all(da == zero for da in diff_args):
            # No argument depends on sym so no subtree is built at all.
            derivative = zero
        elif func in prop.distributive:
            derivative = func(*diff_args)
        elif func == prop.add:
            derivative = sum_rule_forward(diff_args, prop)
        elif func == prop.neg:
            derivative = prop.neg(diff_args[0])
        elif func == prop.sub:
            derivative = difference_rule_forward(diff_args, prop)
        elif func == prop.mul:
            derivative = product_rule_forward(args, diff_args, prop)
        elif func == prop.div:
            derivative = quotient_rule_forward(args, diff_args, prop)
        else:
            derivative = chain_rule_forward(func, args, diff_args, prop)

        stack.append(expr)
        diff_stack.append(derivative)

    # At this point stack is a topological sort of expr and diff_stack is the
    # list of derivatives of every subexpression in expr. At the top of the
    # stack is expr and its derivative is at the top of diff_stack.
    return diff_stack[-1]


def _sum_terms(terms: list[Tree], prop: DiffProperties) -> Tree:
    """Add up nonzero terms as a left-nested binary sum."""
    if not terms:
        return prop.zero
    total = terms[0]
    for term in terms[1:]:
        total = prop.add(total, term)
    return total


def sum_rule_forward(diff_args: list[Tree], prop: DiffProperties) -> Tree:
    """Sum rule :math:`(f + g)' = f' + g'`."""
    return _sum_terms([da for da in diff_args if da != prop.zero], prop)


def difference_rule_forward(diff_args: list[Tree], prop: DiffProperties) -> Tree:
    """Difference rule :math:`(f - g)' = f' - g'`."""
    diff_f, diff_g = diff_args
    if diff_g == prop.zero:
        return diff_f
    elif diff_f == prop.zero:
        return prop.neg(diff_g)
    return prop.sub(diff_f, diff_g)


def product_rule_forward(
    args: list[Tree],
    diff_args: list[Tree],
    prop: DiffProperties,
) -> Tree:
    """Product rule :math:`(f g)' = f' g + f g'`."""
    terms: list[Tree] = []
    for n, diff_arg in enumerate(diff_args):
        if diff_arg != prop.zero:
            term = prop.mul(*args[:n], diff_arg, *args[n + 1 :])
            terms.append(term)
    return _sum_terms(terms, prop)


def quotient_rule_forward(
    args: list[Tree],
    diff_args: list[Tree],
    prop: DiffProperties,
) -> Tree:
    """Quotient rule :math:`(f/g)' = (f' g - f g')/g^2`."""
    f, g = args
    diff_f, diff_g = diff_args
    if diff_g == prop.zero:
        return prop.div(diff_f, g)
    numerator = prop.sub(prop.mul(diff_f, g), prop.mul(f, diff_g))
    return prop.div(numerator, prop.pow(g, prop.two))


def chain_rule_forward(
    func: Tree,
    args: list[Tree],
    diff_args: list[Tree],
    prop: DiffProperties,
) -> Tree:
    """Chain rule in forward accumulation.

    Each argument that depends on the differentiation symbol contributes its
    derivative times the partial derivative of ``func`` wrt that argument.
    """
    terms: list[Tree] = []
    for n, diff_arg in enumerate(diff_args):
        if diff_arg != prop.zero:
            pdiff = prop.diff_rules.get((func, n))
            if pdiff is None:
                msg = f"No differentiation rule for argument {n} of {func!r}"
                raise NoEvaluationRuleError(msg)
            diff_term = pdiff(*args)
            if diff_arg != prop.one:
                diff_term = prop.mul(diff_arg, diff_term)
            terms.append(diff_term)
    return _sum_terms(terms, prop)
