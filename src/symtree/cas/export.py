"""Export expressions as Graphviz DOT graphs."""
from __future__ import annotations

from pathlib import Path
from typing import Union

from symtree.core.tree import topological_sort
from symtree.cas.expr import Expr


__all__ = [
    "to_dot",
    "export_dot",
]


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def to_dot(expr: Expr, name: str = "expression") -> str:
    """DOT text for the graph of ``expr``.

    Each distinct subexpression is one node labelled with its operator or,
    for atoms, its text. Edges go from each node to its arguments and are
    labelled with the position of the argument:

    >>> from symtree.cas import Variable, sin
    >>> from symtree.cas.export import to_dot
    >>> x = Variable('x')
    >>> print(to_dot(sin(x) * x))
    digraph expression {
        n0 [label="x"];
        n1 [label="sin"];
        n1 -> n0 [label="0"];
        n2 [label="Mul"];
        n2 -> n1 [label="0"];
        n2 -> n0 [label="1"];
    }

    Shared subexpressions appear only once so the graph can be much smaller
    than the printed expression.
    """
    subexpressions = topological_sort(expr.rep)
    ids = {}

    lines = [f"digraph {_quote(name) if not name.isidentifier() else name} {{"]
    for n, subexpr in enumerate(subexpressions):
        node = ids[subexpr] = f"n{n}"
        label = str(Expr(subexpr if subexpr.is_atom else subexpr.head))
        lines.append(f"    {node} [label={_quote(label)}];")
        for argnum, arg in enumerate(subexpr.args):
            lines.append(f"    {node} -> {ids[arg]} [label=\"{argnum}\"];")
    lines.append("}")

    return "\n".join(lines)


def export_dot(
    path: Union[str, Path], expr: Expr, name: str = "expression"
) -> Path:
    """Write the DOT text for ``expr`` to ``path`` and return the path."""
    path = Path(path)
    path.write_text(to_dot(expr, name) + "\n", encoding="utf-8")
    return path
