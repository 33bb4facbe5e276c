"""
Error taxonomy for AEQUA.

Every failure the core can signal is a ComputeError. Each concrete error
also derives from the closest builtin exception so callers that already
catch ZeroDivisionError, OverflowError and friends keep working.

Arithmetic on NumberValue never raises for division by zero (it yields a
Symbolic value instead); the errors below are reserved for strict APIs,
numeric evaluation and the rewrite pass budget.
"""

from typing import Any, List, Optional


class ComputeError(Exception):
    """Base class for all AEQUA computation errors."""

    def user_friendly_message(self) -> str:
        """Message suitable for showing to an end user."""
        return str(self)

    def suggestions(self) -> List[str]:
        """Hints on how to recover from the error."""
        return []


class DivisionByZero(ComputeError, ZeroDivisionError):
    """Strict division by an exact or approximate zero."""

    def __init__(self, message: str = "division by zero"):
        super().__init__(message)

    def user_friendly_message(self) -> str:
        return "Division by zero: the result is undefined"

    def suggestions(self) -> List[str]:
        return [
            "Check the divisor for values that make it zero",
            "Use '/' instead of checked_div to keep the quotient symbolic",
        ]


class UndefinedVariable(ComputeError, NameError):
    """A variable was evaluated without a binding."""

    def __init__(self, name: str):
        super().__init__(f"undefined variable: {name}")
        self.name = name

    def user_friendly_message(self) -> str:
        return f"Variable '{self.name}' has no value"

    def suggestions(self) -> List[str]:
        return [f"Provide a binding for '{self.name}' and evaluate again"]


class DomainError(ComputeError, ValueError):
    """An operation was applied outside its mathematical domain."""

    def __init__(self, reason: str):
        super().__init__(f"domain error: {reason}")
        self.reason = reason

    def user_friendly_message(self) -> str:
        return f"Value outside the domain of the operation: {self.reason}"

    def suggestions(self) -> List[str]:
        return [
            "Check that arguments lie in the domain of the function",
            "Enable complex results where a real result is impossible",
        ]


class Overflow(ComputeError, OverflowError):
    """A fixed-width float computation overflowed."""

    def __init__(self, message: str = "numeric overflow"):
        super().__init__(message)

    def user_friendly_message(self) -> str:
        return "The result is too large to represent as a float"

    def suggestions(self) -> List[str]:
        return ["Keep the computation exact instead of approximating it"]


class Timeout(ComputeError, TimeoutError):
    """The rewrite engine exhausted its pass budget without reaching a fixed point.

    Attributes:
        passes: Number of passes that were run.
        partial: The last intermediate expression, usable as a best effort.
    """

    def __init__(self, passes: int, partial: Optional[Any] = None):
        super().__init__(f"no fixed point after {passes} rewrite passes")
        self.passes = passes
        self.partial = partial

    def user_friendly_message(self) -> str:
        return "Simplification did not finish within its pass budget"

    def suggestions(self) -> List[str]:
        return [
            "Retry with a larger max_passes",
            "Use the partial result attached to this error",
            "Disable the rule group that keeps rewriting the expression",
        ]


class UnsupportedOperation(ComputeError, TypeError):
    """An operation is not defined for the given operand kinds."""

    def __init__(self, operation: str):
        super().__init__(f"unsupported operation: {operation}")
        self.operation = operation

    def user_friendly_message(self) -> str:
        return f"The operation '{self.operation}' is not supported here"
