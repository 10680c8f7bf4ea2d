"""symtree.core.atom module.

Atoms are the leaves of every expression tree: constants, variables, the
operator names used as heads and the wilds used in rule patterns. Each kind
of atom is described by an :class:`AtomType` which also owns the store of
its atoms so that there is only ever one :class:`Atom` for a given type and
value.
"""
from __future__ import annotations

from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Generic as _Generic
from typing import Hashable as _Hashable
from typing import TypeVar as _TypeVar
from weakref import WeakValueDictionary as _WeakDict

__all__ = [
    "Atom",
    "AtomType",
]


AnyValue = _Hashable
_T = _TypeVar("_T", bound=AnyValue, covariant=True)


class AtomType(_Generic[_T]):
    """A kind of atom such as ``Constant`` or ``Variable``.

    :ivar name: Name used when printing atoms of this type.
    :ivar typ: The type of :attr:`Atom.value` for atoms of this type.

    >>> from symtree.core.atom import AtomType
    >>> Constant = AtomType('Constant', float)
    >>> Constant
    Constant
    >>> Constant.typ
    <class 'float'>
    >>> Constant(2.5)
    Constant(2.5)

    Two atom types with the same name are still different types and their
    atoms never compare equal.
    """

    __slots__ = (
        "name",
        "typ",
        "_atoms",
    )

    name: str
    typ: type[_T]
    _atoms: _WeakDict[_Hashable, Atom[_T]]

    def __init__(self, name: str, typ: type[_T]):
        self.name = name
        self.typ = typ
        self._atoms = _WeakDict()

    def __repr__(self) -> str:
        return self.name

    def __len__(self) -> int:
        """Number of atoms of this type that are currently alive."""
        return len(self._atoms)

    def __call__(self, value: _T) -> Atom[_T]:  # type: ignore
        """Return the atom of this type holding ``value``."""
        atom = self._atoms.get(value)
        if atom is None:
            atom = object.__new__(Atom)
            atom.atom_type = self
            atom.value = value
            # Another thread may have stored an equal atom since the get.
            atom = self._atoms.setdefault(value, atom)
        return atom


class Atom(_Generic[_T]):
    """An atomic expression: an :class:`AtomType` paired with a value.

    :ivar atom_type: The :class:`AtomType` of this atom.
    :ivar value: The value held by this atom.

    Atoms are made by calling their :class:`AtomType` and are unique so
    comparing atoms is an identity check:

    >>> from symtree.core.atom import AtomType, Atom
    >>> Constant = AtomType('Constant', float)
    >>> half = Constant(0.5)
    >>> print(half)
    0.5
    >>> half.atom_type
    Constant
    >>> type(half) is Atom
    True
    >>> half is Constant(0.5) is Atom(Constant, 0.5)
    True

    Values that compare equal give the same atom so ``1`` and ``1.0`` are
    indistinguishable:

    >>> Constant(1.0) is Constant(1)
    True
    """

    __slots__ = (
        "__weakref__",
        "atom_type",
        "value",
    )

    atom_type: AtomType[_T]
    value: _T

    def __new__(cls, atom_type: AtomType[_T], value: _T) -> Atom[_T]:
        return atom_type(value)

    def __repr__(self) -> str:
        return f"{self.atom_type}({self.value!r})"

    def __str__(self) -> str:
        return str(self.value)


if _TYPE_CHECKING:
    AnyAtom = Atom[_Hashable]
