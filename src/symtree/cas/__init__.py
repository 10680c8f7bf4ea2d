"""Symbolic expressions with differentiation, simplification and evaluation."""
from __future__ import annotations

import logging

import symtree.cas.derivatives  # noqa
import symtree.cas.functions  # noqa

from .exceptions import (
    CASError,
    CompilationError,
    DuplicateVariableError,
    EvaluationDomainError,
    InvalidOperandError,
    InvalidSubstitutionError,
    MissingBindingError,
)
from .expr import (
    Abs,
    Add,
    Constant,
    Div,
    E,
    Expr,
    Infinity,
    Max,
    Min,
    MinusOne,
    Mul,
    Neg,
    NegInfinity,
    One,
    Operator,
    Pi,
    Pow,
    Sub,
    Two,
    Variable,
    Zero,
    a,
    acos,
    asin,
    atan,
    b,
    cos,
    diff,
    exp,
    expressify,
    log,
    sin,
    sqrt,
    tan,
    var,
)
from .export import export_dot, to_dot
from .lambdification import CompiledFunction, lambdify
from .simplification import DEFAULT_MAX_STEPS, simplify

logging.getLogger("symtree").addHandler(logging.NullHandler())

__all__ = [
    "expressify",
    "diff",
    "simplify",
    "lambdify",
    "to_dot",
    "export_dot",
    "var",
    "Expr",
    "CompiledFunction",
    "Constant",
    "Variable",
    "Operator",
    "Zero",
    "One",
    "Two",
    "MinusOne",
    "Pi",
    "E",
    "Infinity",
    "NegInfinity",
    "Add",
    "Sub",
    "Mul",
    "Div",
    "Pow",
    "Max",
    "Min",
    "Neg",
    "Abs",
    "sqrt",
    "exp",
    "log",
    "sin",
    "cos",
    "tan",
    "asin",
    "acos",
    "atan",
    "a",
    "b",
    "DEFAULT_MAX_STEPS",
    "CASError",
    "CompilationError",
    "DuplicateVariableError",
    "EvaluationDomainError",
    "InvalidOperandError",
    "InvalidSubstitutionError",
    "MissingBindingError",
]
