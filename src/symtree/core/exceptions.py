"""Module for all symtree exceptions."""


class SymTreeError(Exception):
    """Superclass for all symtree exceptions."""

    pass


class NoEvaluationRuleError(SymTreeError):
    """Raised when an :class:`Evaluator` has no rule for an expression."""

    pass


class BadRuleError(SymTreeError):
    """Raised when an :class:`Evaluator` is given an invalid rule."""

    pass


class TooManySimplificationStepsError(SymTreeError):
    """Raised when a fixed-point rewrite does not converge in time."""

    pass
