"""Fixed-point rewriting of trees.

A :class:`FixedPointRewriter` repeatedly applies per-head rewrite rules to an
expression until its rendered form stops changing. The rules themselves know
nothing about the driver: a rule takes the (already rewritten) arguments of a
node and either returns a replacement tree or ``None`` to leave the node as
it is.
"""
from __future__ import annotations

import logging
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

from symtree.core.exceptions import TooManySimplificationStepsError
from symtree.core.tree import topological_sort
from symtree.core.tree import Tree


__all__ = [
    "DEFAULT_MAX_STEPS",
    "FixedPointRewriter",
    "RewriteRule",
]


_log = logging.getLogger(__name__)


DEFAULT_MAX_STEPS = 10_000
"""Default number of passes allowed for any one node."""

RewriteRule = Callable[..., Optional[Tree]]


class FixedPointRewriter:
    """Rewrite a :class:`Tree` bottom-up until it reaches a fixed point.

    Nodes are finished in topological order. A pass over a node rebuilds it
    from the finished forms of its arguments and applies the rule for its
    head once. If the rendered text of the node is unchanged by the rule the
    node is finished, otherwise the rewritten node gets another pass. Any
    new subexpressions made by a rule are finished before that pass. The
    rendered text (``key``) rather than object identity decides when a node
    has converged.

    >>> from symtree.core.atom import AtomType
    >>> from symtree.core.tree import Tr
    >>> from symtree.core.rewrite import FixedPointRewriter
    >>> Operator = AtomType('Operator', str)
    >>> Variable = AtomType('Variable', str)
    >>> neg = Tr(Operator('Neg'))
    >>> x = Tr(Variable('x'))
    >>> def cancel_neg(arg):
    ...     if not arg.is_atom and arg.head == neg:
    ...         return arg.args[0]
    ...     return None
    >>> rewriter = FixedPointRewriter({neg: cancel_neg}, str)
    >>> print(rewriter(neg(neg(neg(x)))))
    Neg(x)

    The work is kept on an explicit stack so there is no limit on the depth
    of the expressions that can be rewritten.

    Rewrite rules can interact so that they never converge. The number of
    passes made for any one node is limited by ``max_steps`` and
    :class:`TooManySimplificationStepsError` is raised if that is exceeded.
    """

    rules: Mapping[Tree, RewriteRule]
    key: Callable[[Tree], str]
    max_steps: int
    cache: dict[Tree, Tree]
    passes: int

    def __init__(
        self,
        rules: Mapping[Tree, RewriteRule],
        key: Callable[[Tree], str],
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        if max_steps < 1:
            raise ValueError("max_steps should be a positive integer")
        self.rules = rules
        self.key = key
        self.max_steps = max_steps
        self.cache = {}
        self.passes = 0

    def __call__(self, expr: Tree) -> Tree:
        """Rewrite ``expr`` to its fixed point."""
        result = self.fixed_point(expr)
        _log.debug(
            "rewrite finished after %d passes with %d cached subexpressions",
            self.passes,
            len(self.cache),
        )
        return result

    def fixed_point(self, expr: Tree) -> Tree:
        """Rewrite ``expr`` and every subexpression to a fixed point."""
        cache = self.cache

        # Each frame is [original node, current form, passes made].
        frames: list[list[Any]] = []
        self._push_unfinished(frames, expr)

        while frames:
            frame = frames[-1]
            original, current, steps = frame

            if original in cache:
                frames.pop()
                continue

            pending = [arg for arg in current.args if arg not in cache]
            if pending:
                for arg in reversed(pending):
                    self._push_unfinished(frames, arg)
                continue

            if steps == self.max_steps:
                msg = f"No fixed point after {steps} passes for: {original}"
                raise TooManySimplificationStepsError(msg)

            self.passes += 1
            frame[2] = steps + 1

            if current in cache:
                # A rule led to an expression that is already finished.
                cache[original] = cache[current]
                frames.pop()
                continue

            rebuilt, rewritten = self.rewrite_once(current)

            if rewritten is None or self.key(rewritten) == self.key(rebuilt):
                cache[original] = rebuilt
                cache[rebuilt] = rebuilt
                frames.pop()
            else:
                frame[1] = rewritten

        return cache[expr]

    def rewrite_once(self, expr: Tree) -> tuple[Tree, Optional[Tree]]:
        """Apply the rule for the head of ``expr`` to its finished arguments.

        Returns the node rebuilt from the finished arguments together with
        the result of the rule (``None`` if the rule did not apply). Every
        argument of ``expr`` must already be in the cache.
        """
        if expr.is_atom:
            return expr, None

        args = [self.cache[arg] for arg in expr.args]
        rebuilt = expr.head(*args)

        rule = self.rules.get(expr.head)
        if rule is None:
            return rebuilt, None

        return rebuilt, rule(*args)

    def _push_unfinished(self, frames: list[list[Any]], expr: Tree) -> None:
        # Pushed in reverse so that children are popped before parents.
        unfinished = topological_sort(expr, exclude=self.cache)
        frames.extend([node, node, 0] for node in reversed(unfinished))
