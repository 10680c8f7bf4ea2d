"""Benchmarks for the differentiate, simplify and compile pipeline.

The expression used throughout is ``sqrt(x**2 + 2*sin(x) + 3*exp(x))``.
Differentiation is compared with SymPy and SymEngine, simplification of
the unsimplified derivative with SymPy and compiled evaluation of the
derivative with SymPy's ``lambdify``.
"""
import math
from typing import Callable, TypeVar

import pytest
import symengine
import sympy
from symtree import cas

ExprType = TypeVar("ExprType")
Fixture = Callable[..., ExprType]

POINT = 0.7


def _derivative_at(x: float) -> float:
    u = x**2 + 2 * math.sin(x) + 3 * math.exp(x)
    du = 2 * x + 2 * math.cos(x) + 3 * math.exp(x)
    return du / (2 * math.sqrt(u))


EXPECTED = _derivative_at(POINT)


def _symtree_expr() -> tuple[cas.Expr, cas.Expr]:
    x = cas.Variable("x")
    return x, cas.sqrt(x**2 + 2 * cas.sin(x) + 3 * cas.exp(x))


def _sympy_expr() -> tuple[sympy.Symbol, sympy.Expr]:
    x = sympy.Symbol("x")
    return x, sympy.sqrt(x**2 + 2 * sympy.sin(x) + 3 * sympy.exp(x))


@pytest.mark.benchmark(group="differentiate")
class TestDifferentiate:
    """Differentiate the expression w.r.t. ``x`` once."""

    @staticmethod
    def test_symtree(benchmark: Fixture[cas.Expr]) -> None:
        """Differentiate using symtree."""
        x, expr = _symtree_expr()
        result = benchmark(expr.diff, x)
        assert result.call({x: POINT}) == pytest.approx(EXPECTED)

    @staticmethod
    def test_sympy(benchmark: Fixture[sympy.Expr]) -> None:
        """Differentiate using SymPy."""
        x, expr = _sympy_expr()
        result = benchmark(expr.diff, x)
        assert float(result.evalf(subs={x: POINT})) == pytest.approx(EXPECTED)

    @staticmethod
    def test_symengine(benchmark: Fixture[symengine.Expr]) -> None:
        """Differentiate using SymEngine."""
        x = symengine.Symbol("x")
        expr = symengine.sqrt(x**2 + 2 * symengine.sin(x) + 3 * symengine.exp(x))
        result = benchmark(expr.diff, x)
        assert float(result.subs(x, POINT).evalf()) == pytest.approx(EXPECTED)


@pytest.mark.benchmark(group="simplify derivative")
class TestSimplifyDerivative:
    """Simplify the derivative as it comes out of differentiation."""

    @staticmethod
    def test_symtree(benchmark: Fixture[cas.Expr]) -> None:
        """Simplify using symtree."""
        x, expr = _symtree_expr()
        derivative = expr.diff(x)
        result = benchmark(cas.simplify, derivative)
        assert result.call({x: POINT}) == pytest.approx(EXPECTED)

    @staticmethod
    def test_sympy(benchmark: Fixture[sympy.Expr]) -> None:
        """Simplify using SymPy."""
        x, expr = _sympy_expr()
        derivative = expr.diff(x)
        result = benchmark(sympy.simplify, derivative)
        assert float(result.evalf(subs={x: POINT})) == pytest.approx(EXPECTED)


@pytest.mark.benchmark(group="simplify deep expression")
class TestSimplifyDeep:
    """Simplify ``(...((x + 0)*1 + 0)*1...)`` nested a thousand times."""

    @staticmethod
    def test_symtree(benchmark: Fixture[cas.Expr]) -> None:
        """Simplify using symtree."""
        x = cas.Variable("x")
        expr = x
        for _ in range(1000):
            expr = (expr + 0) * 1
        assert benchmark(cas.simplify, expr) is x


@pytest.mark.benchmark(group="compiled evaluation")
class TestCompiledEvaluation:
    """Evaluate the simplified derivative at one point."""

    @staticmethod
    def test_symtree(benchmark: Fixture[float]) -> None:
        """Evaluate with a compiled symtree function."""
        x, expr = _symtree_expr()
        func = expr.diff(x).simplify().compile(x)
        assert benchmark(func, POINT) == pytest.approx(EXPECTED)

    @staticmethod
    def test_symtree_call(benchmark: Fixture[float]) -> None:
        """Evaluate with symtree without compiling first."""
        x, expr = _symtree_expr()
        derivative = expr.diff(x).simplify()
        assert benchmark(derivative.call, {x: POINT}) == pytest.approx(EXPECTED)

    @staticmethod
    def test_sympy(benchmark: Fixture[float]) -> None:
        """Evaluate with a SymPy lambdified function."""
        x, expr = _sympy_expr()
        func = sympy.lambdify([x], expr.diff(x))
        assert benchmark(func, POINT) == pytest.approx(EXPECTED)
