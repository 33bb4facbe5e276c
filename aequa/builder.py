"""
Expression builder for AEQUA.

ExpressionBuilder is the construction façade used by parsers and by
algorithms layered on top of the core. It interns common leaves, pools
every node it builds through a MemoryManager, and applies a handful of
unconditional identities while assembling trees:

    x + 0 -> x      0 + x -> x      x + x -> 2 * x
    x - 0 -> x      x - x -> 0
    x * 1 -> x      1 * x -> x      x * 0 -> 0      0 * x -> 0
    (-1) * x -> -x  x / 1 -> x      x ^ 1 -> x      1 ^ x -> 1
    -(-x) -> x      -0 -> 0         +x -> x         |0| -> 0

These are not the rewrite engine; full simplification is Simplifier's job.

Example:
    b = ExpressionBuilder()
    x = b.variable("x")
    expr = b.add(b.sin(x), b.integer(0))   # => sin(x)
"""

from decimal import Decimal
from typing import Any, Dict, Hashable, Optional, Tuple, Union

from . import config
from .constants import MathConstant
from .expression import BinaryOp, Constant, Expression, Function, Number, UnaryOp, Variable
from .memory import MemoryManager, MemoryStats
from .numeric import Integer, NumberValue
from .operators import BinaryOperator, UnaryOperator
from .shared import SharedExpression

Operand = Union[SharedExpression, Expression, NumberValue, int]

PRELOADED_INTEGERS = (0, 1, -1, 2, -2, 10)
PRELOADED_VARIABLES = ("x", "y", "z", "t", "n")
PRELOADED_CONSTANTS = (MathConstant.PI, MathConstant.E, MathConstant.I)


def _number_key(value: NumberValue) -> Tuple[str, Hashable]:
    # Equal values of different variants (1 and 1.0) intern separately
    return ("number", (value.kind, value))


def _literal(expr: Expression) -> Optional[NumberValue]:
    """Exact literal value; Float literals never trigger identities."""
    if isinstance(expr, Number) and expr.value.is_exact():
        return expr.value
    return None


def _is_zero(expr: Expression) -> bool:
    value = _literal(expr)
    return value is not None and value.is_zero()


def _is_one(expr: Expression) -> bool:
    value = _literal(expr)
    return value is not None and value.is_one()


def _is_minus_one(expr: Expression) -> bool:
    value = _literal(expr)
    return value is not None and not value.is_symbolic() and value.neg().is_one()


class ExpressionBuilder:
    """Interning, pooling expression constructor.

    One builder (and its MemoryManager) per session or thread.
    """

    def __init__(self, manager: Optional[MemoryManager] = None):
        self.manager = manager if manager is not None else MemoryManager()
        self._interned: Dict[Tuple[str, Hashable], SharedExpression] = {}
        self._cached_variables = 0
        for n in PRELOADED_INTEGERS:
            self._intern(_number_key(Integer(n)), Number(n))
        for name in PRELOADED_VARIABLES:
            self._intern(("variable", name), Variable(name))
        for constant in PRELOADED_CONSTANTS:
            self._intern(("constant", constant), Constant(constant))

    def _intern(self, key: Tuple[str, Hashable], expr: Expression) -> SharedExpression:
        handle = self.manager.create_shared(expr)
        self._interned[key] = handle
        return handle.clone_shared()

    def _lookup(self, key: Tuple[str, Hashable]) -> Optional[SharedExpression]:
        handle = self._interned.get(key)
        if handle is None:
            return None
        self.manager.record_hit()
        return handle.clone_shared()

    def _make(self, expr: Expression) -> SharedExpression:
        return self.manager.create_shared(expr)

    def _reuse(self, handle: SharedExpression) -> SharedExpression:
        self.manager.record_hit()
        return handle.clone_shared()

    def _wrap(self, operand: Operand) -> SharedExpression:
        if isinstance(operand, SharedExpression):
            return operand
        if isinstance(operand, Expression):
            return self._make(operand)
        return self.number(operand)

    # ============================================================
    # Leaves
    # ============================================================

    def number(self, value: Any) -> SharedExpression:
        """Number literal from a NumberValue or python number."""
        value = NumberValue.from_python(value)
        key = _number_key(value)
        return self._lookup(key) or self._make(Number(value))

    def integer(self, value: int) -> SharedExpression:
        return self.number(Integer(value))

    def rational(self, numerator: int, denominator: int = 1) -> SharedExpression:
        return self.number(NumberValue.rational(numerator, denominator))

    def real(self, value: Union[str, Decimal]) -> SharedExpression:
        return self.number(NumberValue.real(value))

    def float(self, value: float) -> SharedExpression:
        return self.number(NumberValue.float(value))

    def variable(self, name: str) -> SharedExpression:
        key = ("variable", name)
        handle = self._lookup(key)
        if handle is not None:
            return handle
        if self._cached_variables < config.MAX_CACHED_VARIABLES:
            self._cached_variables += 1
            return self._intern(key, Variable(name))
        return self._make(Variable(name))

    def constant(self, constant: Union[MathConstant, str]) -> SharedExpression:
        if not isinstance(constant, MathConstant):
            constant = MathConstant.from_name(constant)
        key = ("constant", constant)
        return self._lookup(key) or self._make(Constant(constant))

    def pi(self) -> SharedExpression:
        return self.constant(MathConstant.PI)

    def e(self) -> SharedExpression:
        return self.constant(MathConstant.E)

    def i(self) -> SharedExpression:
        return self.constant(MathConstant.I)

    # ============================================================
    # Binary operators
    # ============================================================

    def add(self, left: Operand, right: Operand) -> SharedExpression:
        left, right = self._wrap(left), self._wrap(right)
        if _is_zero(right.value):
            return self._reuse(left)
        if _is_zero(left.value):
            return self._reuse(right)
        if left.fast_eq(right):
            return self.multiply(self.integer(2), left)
        return self._make(BinaryOp(BinaryOperator.ADD, left, right))

    def subtract(self, left: Operand, right: Operand) -> SharedExpression:
        left, right = self._wrap(left), self._wrap(right)
        if _is_zero(right.value):
            return self._reuse(left)
        if left.fast_eq(right):
            return self.integer(0)
        return self._make(BinaryOp(BinaryOperator.SUBTRACT, left, right))

    def multiply(self, left: Operand, right: Operand) -> SharedExpression:
        left, right = self._wrap(left), self._wrap(right)
        if _is_zero(left.value) or _is_zero(right.value):
            return self.integer(0)
        if _is_one(right.value):
            return self._reuse(left)
        if _is_one(left.value):
            return self._reuse(right)
        if _is_minus_one(left.value):
            return self.negate(right)
        return self._make(BinaryOp(BinaryOperator.MULTIPLY, left, right))

    def divide(self, left: Operand, right: Operand) -> SharedExpression:
        left, right = self._wrap(left), self._wrap(right)
        if _is_one(right.value):
            return self._reuse(left)
        return self._make(BinaryOp(BinaryOperator.DIVIDE, left, right))

    def power(self, base: Operand, exponent: Operand) -> SharedExpression:
        base, exponent = self._wrap(base), self._wrap(exponent)
        if _is_one(exponent.value):
            return self._reuse(base)
        if _is_one(base.value):
            return self.integer(1)
        return self._make(BinaryOp(BinaryOperator.POWER, base, exponent))

    def modulo(self, left: Operand, right: Operand) -> SharedExpression:
        left, right = self._wrap(left), self._wrap(right)
        return self._make(BinaryOp(BinaryOperator.MODULO, left, right))

    # ============================================================
    # Unary operators and functions
    # ============================================================

    def negate(self, operand: Operand) -> SharedExpression:
        operand = self._wrap(operand)
        expr = operand.value
        if isinstance(expr, UnaryOp) and expr.op is UnaryOperator.NEGATE:
            return self._reuse(expr.operand_shared)
        if _is_zero(expr):
            return self._reuse(operand)
        return self._make(UnaryOp(UnaryOperator.NEGATE, operand))

    def plus(self, operand: Operand) -> SharedExpression:
        return self._reuse(self._wrap(operand))

    def abs(self, operand: Operand) -> SharedExpression:
        operand = self._wrap(operand)
        if _is_zero(operand.value):
            return self._reuse(operand)
        return self._make(UnaryOp(UnaryOperator.ABS, operand))

    def function(self, name: str, *args: Operand) -> SharedExpression:
        return self._make(Function(name, [self._wrap(a) for a in args]))

    def sin(self, arg: Operand) -> SharedExpression:
        return self.function("sin", arg)

    def cos(self, arg: Operand) -> SharedExpression:
        return self.function("cos", arg)

    def tan(self, arg: Operand) -> SharedExpression:
        return self.function("tan", arg)

    def sqrt(self, arg: Operand) -> SharedExpression:
        return self.function("sqrt", arg)

    def ln(self, arg: Operand) -> SharedExpression:
        return self.function("ln", arg)

    def exp(self, arg: Operand) -> SharedExpression:
        return self.function("exp", arg)

    # ============================================================
    # Bookkeeping
    # ============================================================

    def stats(self) -> MemoryStats:
        return self.manager.get_stats()

    def cleanup(self) -> int:
        return self.manager.cleanup()

    def __repr__(self) -> str:
        return f"ExpressionBuilder({self.manager!r})"
