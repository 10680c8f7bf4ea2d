"""Exception types raised in symtree.cas."""
from symtree.core.exceptions import SymTreeError


class CASError(SymTreeError):
    """Base class for all exceptions in symtree.cas."""

    pass


class DuplicateVariableError(CASError):
    """Raised when defining a variable whose name is already registered."""

    pass


class MissingBindingError(CASError, KeyError):
    """Raised when evaluating an expression without a value for a variable."""

    def __str__(self) -> str:
        # KeyError would show the message quoted
        return str(self.args[0]) if self.args else ""


class InvalidSubstitutionError(CASError, TypeError):
    """Raised when a substitution key or value cannot be used."""

    pass


class InvalidOperandError(CASError, TypeError):
    """Raised when an object cannot be used as an expression or operator."""

    pass


class EvaluationDomainError(CASError, ArithmeticError):
    """Raised when numeric evaluation leaves the domain of a function."""

    pass


class CompilationError(CASError):
    """Raised when an expression cannot be compiled to a function."""

    pass
