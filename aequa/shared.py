"""
Shared and copy-on-write expression handles.

An ExprCell is the one physical slot holding an Expression node. Handles
(SharedExpression) point at a cell and keep an explicit holder count on it:
clone_shared() adds a holder, release() removes one. Releasing also happens
when a handle is garbage collected, so the count tracks the live handles the
way a reference-counted pointer would.

    >>> s1 = SharedExpression(Variable("x"))
    >>> s2 = s1.clone_shared()
    >>> s1.ref_count(), s1.is_unique()
    (2, False)
    >>> s2.release()
    >>> s1.ref_count(), s1.is_unique()
    (1, True)

Expression values are immutable. Mutation means replacing the value held by
a cell, which is only allowed through make_mut() (or CowExpression.as_mut()),
and only once the cell is exclusively owned by the caller.
"""

from typing import Any, Optional


class ExprCell:
    """The single storage slot for one expression node.

    Attributes:
        refs: Number of live SharedExpression handles pointing here.
        pooled: True while a MemoryManager indexes this cell. The pool's
            entry is a non-owning reference and is not counted in refs.
        owner: The MemoryManager that created the cell, if any.
    """

    __slots__ = ("_value", "refs", "pooled", "owner", "__weakref__")

    def __init__(self, value, owner=None):
        self._value = value
        self.refs = 0
        self.pooled = False
        self.owner = owner

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, new_value) -> None:
        if self.refs > 1 or self.pooled:
            raise RuntimeError("cannot replace the value of an aliased cell; use make_mut()")
        self._value = new_value

    def __repr__(self) -> str:
        return f"ExprCell({self._value!s}, refs={self.refs})"


class SharedExpression:
    """Reference-counted handle to an expression node.

    Equality is structural: two handles are equal when their expressions
    are, whether or not they share a cell. The check short-circuits on cell
    identity, then on the cached structural hash.
    """

    __slots__ = ("_cell",)

    def __init__(self, expr):
        self._cell: Optional[ExprCell] = None
        self._attach(ExprCell(expr))

    @classmethod
    def from_cell(cls, cell: ExprCell) -> "SharedExpression":
        """New holder for an existing cell."""
        handle = cls.__new__(cls)
        handle._cell = None
        handle._attach(cell)
        return handle

    def _attach(self, cell: ExprCell) -> None:
        cell.refs += 1
        self._cell = cell

    def _live(self) -> ExprCell:
        if self._cell is None:
            raise ReferenceError("SharedExpression used after release()")
        return self._cell

    # Ownership -------------------------------------------------

    def clone_shared(self) -> "SharedExpression":
        """Another handle to the same node. O(1)."""
        return SharedExpression.from_cell(self._live())

    def release(self) -> None:
        """Drop this holder. Safe to call more than once."""
        cell = getattr(self, "_cell", None)
        if cell is not None:
            cell.refs -= 1
            self._cell = None

    def __del__(self):
        self.release()

    def __enter__(self) -> "SharedExpression":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def ref_count(self) -> int:
        return self._live().refs

    def is_unique(self) -> bool:
        return self._live().refs == 1

    def is_released(self) -> bool:
        return self._cell is None

    @property
    def cell(self) -> ExprCell:
        return self._live()

    @property
    def value(self):
        """The referenced Expression (read-only)."""
        return self._live().value

    def get(self):
        return self.value

    def make_mut(self) -> ExprCell:
        """Exclusive access to this handle's cell, cloning it first if aliased.

        A cell indexed by a memory pool counts as aliased. After the call
        this handle is always unique.
        """
        cell = self._live()
        if cell.refs > 1 or cell.pooled:
            clone = ExprCell(cell.value)
            cell.refs -= 1
            if cell.owner is not None:
                cell.owner.record_cow()
            self._cell = None
            self._attach(clone)
            cell = clone
        return cell

    # Comparison ------------------------------------------------

    def ptr_eq(self, other: "SharedExpression") -> bool:
        return self._live() is other._live()

    def structural_hash(self) -> int:
        return hash(self._live().value)

    def fast_eq(self, other: "SharedExpression") -> bool:
        """Cell identity, then hash rejection, then structural comparison."""
        mine, theirs = self._live(), other._live()
        if mine is theirs:
            return True
        if hash(mine.value) != hash(theirs.value):
            return False
        return mine.value == theirs.value

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, SharedExpression):
            return self.fast_eq(other)
        return NotImplemented

    def __hash__(self) -> int:
        return self.structural_hash()

    def __str__(self) -> str:
        return str(self.value)

    def __repr__(self) -> str:
        if self._cell is None:
            return "SharedExpression(<released>)"
        return f"SharedExpression({self._cell.value!s}, refs={self._cell.refs})"


class CowExpression:
    """Copy-on-write façade over a shared expression.

    Reads go straight to the shared node. The first as_mut() while the node
    is still aliased clones it, so other holders never observe the change.
    """

    __slots__ = ("_shared", "_modified")

    def __init__(self, source):
        if isinstance(source, SharedExpression):
            self._shared = source.clone_shared()
        else:
            self._shared = SharedExpression(source)
        self._modified = False

    def as_ref(self):
        """The current expression. Never copies."""
        return self._shared.value

    def as_mut(self) -> ExprCell:
        """Exclusively owned cell for this view; clones on the first aliased write."""
        self._modified = True
        return self._shared.make_mut()

    def set(self, expr) -> None:
        """Replace the viewed expression."""
        self.as_mut().value = expr

    def is_modified(self) -> bool:
        return self._modified

    def to_shared(self) -> SharedExpression:
        """A new holder of the current node."""
        return self._shared.clone_shared()

    def release(self) -> None:
        self._shared.release()

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, CowExpression):
            return self._shared.fast_eq(other._shared)
        return NotImplemented

    def __hash__(self) -> int:
        return self._shared.structural_hash()

    def __str__(self) -> str:
        return str(self.as_ref())

    def __repr__(self) -> str:
        return f"CowExpression({self.as_ref()!s}, modified={self._modified})"
