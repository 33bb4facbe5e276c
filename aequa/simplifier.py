"""
Simplifier: the entry point calculus and formatting layers call.

    from aequa import simplify, E

    simplify(E("(+ (^ (sin x) 2) (^ (cos x) 2))"))   # => 1
    simplify(E("(sin (neg x))"))                     # => -sin(x)

simplify() is total over well-formed expressions and deterministic. Its
output is a fixed point: simplifying it again returns it unchanged.
"""

from typing import Optional, Tuple

from .engine import ExprInput, RewriteTrace, RuleEngine
from .expression import Expression
from .memory import MemoryManager
from .rules import default_engine
from .shared import SharedExpression


class Simplifier:
    """Runs a rule engine (by default the built-in families) to a fixed point."""

    def __init__(self, engine: Optional[RuleEngine] = None, max_passes: Optional[int] = None):
        self.engine = engine or default_engine()
        self.max_passes = max_passes

    def simplify(self, expr: ExprInput) -> Expression:
        """
        Canonical form of an expression.

        Raises:
            Timeout: if the pass budget runs out; `partial` holds the last form
        """
        return self.engine.simplify(expr, max_passes=self.max_passes)

    def simplify_traced(self, expr: ExprInput) -> Tuple[Expression, RewriteTrace]:
        """Canonical form plus the trace of rules that produced it."""
        return self.engine.simplify(expr, trace=True, max_passes=self.max_passes)

    def simplify_shared(self, expr: ExprInput,
                        manager: Optional[MemoryManager] = None) -> SharedExpression:
        """Canonical form as a handle, pooled through `manager` when one is given."""
        result = self.simplify(expr)
        if manager is not None:
            return manager.create_shared(result)
        return SharedExpression(result)

    def __call__(self, expr: ExprInput) -> Expression:
        return self.simplify(expr)

    def __repr__(self) -> str:
        return f"Simplifier({self.engine!r})"


_default_simplifier: Optional[Simplifier] = None


def simplify(expr: ExprInput) -> Expression:
    """Simplify with a shared default Simplifier."""
    global _default_simplifier
    if _default_simplifier is None:
        _default_simplifier = Simplifier()
    return _default_simplifier.simplify(expr)
