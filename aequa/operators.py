"""Operator tags for UnaryOp and BinaryOp nodes."""

from enum import Enum


class BinaryOperator(Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POWER = "^"
    MODULO = "%"

    @property
    def symbol(self) -> str:
        return self.value

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]

    def is_right_associative(self) -> bool:
        return self is BinaryOperator.POWER

    def is_commutative(self) -> bool:
        return self in (BinaryOperator.ADD, BinaryOperator.MULTIPLY)

    @classmethod
    def from_symbol(cls, symbol: str) -> "BinaryOperator":
        return cls(symbol)


_PRECEDENCE = {
    BinaryOperator.ADD: 6,
    BinaryOperator.SUBTRACT: 6,
    BinaryOperator.MULTIPLY: 7,
    BinaryOperator.DIVIDE: 7,
    BinaryOperator.MODULO: 7,
    BinaryOperator.POWER: 9,
}

# Prefix operators bind tighter than * and / but looser than ^
UNARY_PRECEDENCE = 8


class UnaryOperator(Enum):
    NEGATE = "neg"
    PLUS = "pos"
    ABS = "abs"
