"""
Numeric tower for AEQUA.

NumberValue is a closed set of variants:

    Integer   - arbitrary-size int
    Rational  - exact fraction (fractions.Fraction)
    Real      - arbitrary-precision decimal (decimal.Decimal)
    Complex   - real and imaginary parts, each an Integer/Rational/Real/Float
    Float     - machine float, the only inexact variant
    Symbolic  - an unresolved result, carrying the expression that produced it

Arithmetic between two exact variants promotes to the least specific variant
able to hold both operands (Integer < Rational < Real < Complex). Float only
combines with Float; mixing it with an exact value yields Symbolic instead of
silently losing exactness. Division by zero of any kind yields Symbolic and
never raises.

Examples:
    >>> NumberValue.rational(1, 3) + NumberValue.rational(1, 3) + NumberValue.rational(1, 3)
    Rational(1)
    >>> str(NumberValue.integer(5) / NumberValue.integer(0))
    '5 / 0'
"""

import math
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from fractions import Fraction
from typing import Any, Optional, Tuple, Union

from . import config
from .errors import DomainError, DivisionByZero, Overflow, UnsupportedOperation
from .operators import BinaryOperator, UnaryOperator

PythonNumber = Union[int, Fraction, Decimal, float, complex]

# Promotion ranks of the exact variants
_RANK_INTEGER = 0
_RANK_RATIONAL = 1
_RANK_REAL = 2
_RANK_COMPLEX = 3


# ============================================================
# Helpers
# ============================================================

def _to_decimal(value: Union[int, Fraction, Decimal]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Fraction):
        with localcontext() as ctx:
            ctx.prec = config.REAL_PRECISION
            return Decimal(value.numerator) / Decimal(value.denominator)
    return Decimal(value)


def _symbolic_binary(op: BinaryOperator, left: "NumberValue", right: "NumberValue") -> "Symbolic":
    from .expression import BinaryOp, as_expression
    return Symbolic(BinaryOp(op, as_expression(left), as_expression(right)))


def _symbolic_unary(op: UnaryOperator, operand: "NumberValue") -> "Symbolic":
    from .expression import UnaryOp, as_expression
    return Symbolic(UnaryOp(op, as_expression(operand)))


def _symbolic_function(name: str, *args: "NumberValue") -> "Symbolic":
    from .expression import Function, as_expression
    return Symbolic(Function(name, [as_expression(a) for a in args]))


def _checked_float(value: float, *operands: float) -> "Float":
    if math.isinf(value) and all(math.isfinite(x) for x in operands):
        raise Overflow("float result out of range")
    return Float(value)


def _perfect_sqrt(n: int) -> Optional[int]:
    if n < 0:
        return None
    root = math.isqrt(n)
    return root if root * root == n else None


# ============================================================
# Base class
# ============================================================

class NumberValue:
    """Base class of the numeric tower. Instances are immutable."""

    __slots__ = ()

    kind = "number"

    # Predicates ------------------------------------------------

    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False

    def is_exact(self) -> bool:
        return True

    def is_integer(self) -> bool:
        """True for exact integral values, whatever the variant."""
        return False

    def is_rational(self) -> bool:
        return False

    def is_real(self) -> bool:
        return False

    def is_complex(self) -> bool:
        return False

    def is_symbolic(self) -> bool:
        return False

    def is_negative(self) -> bool:
        return False

    def is_positive(self) -> bool:
        return False

    def is_even(self) -> bool:
        return False

    def is_odd(self) -> bool:
        return False

    def numeric_type(self) -> str:
        return self.kind

    # Conversions -----------------------------------------------

    def to_exact(self) -> "NumberValue":
        return self

    def approximate(self) -> float:
        raise NotImplementedError

    # Arithmetic ------------------------------------------------

    def add(self, other: "NumberValue") -> "NumberValue":
        return _binary(BinaryOperator.ADD, self, other)

    def sub(self, other: "NumberValue") -> "NumberValue":
        return _binary(BinaryOperator.SUBTRACT, self, other)

    def mul(self, other: "NumberValue") -> "NumberValue":
        return _binary(BinaryOperator.MULTIPLY, self, other)

    def div(self, other: "NumberValue") -> "NumberValue":
        return _binary(BinaryOperator.DIVIDE, self, other)

    def mod(self, other: "NumberValue") -> "NumberValue":
        return _binary(BinaryOperator.MODULO, self, other)

    def checked_div(self, other: "NumberValue") -> "NumberValue":
        """Division that raises DivisionByZero instead of returning Symbolic."""
        if other.is_zero():
            raise DivisionByZero(f"{self} / {other}")
        return self.div(other)

    def neg(self) -> "NumberValue":
        raise NotImplementedError

    def abs(self) -> "NumberValue":
        raise NotImplementedError

    def power(self, exponent: "NumberValue") -> "NumberValue":
        return _power(self, exponent)

    def sqrt(self, allow_complex: bool = False) -> "NumberValue":
        """Square root, exact when the argument is a perfect square.

        Args:
            allow_complex: Return an imaginary result for negative arguments
                instead of raising DomainError.

        Returns:
            The exact root, or Symbolic sqrt(n) when no exact root exists.
        """
        return _symbolic_function("sqrt", self)

    # Operator overloads ----------------------------------------

    def __add__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else self.add(other)

    def __radd__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else other.add(self)

    def __sub__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else self.sub(other)

    def __rsub__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else other.sub(self)

    def __mul__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else self.mul(other)

    def __rmul__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else other.mul(self)

    def __truediv__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else self.div(other)

    def __rtruediv__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else other.div(self)

    def __mod__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else self.mod(other)

    def __pow__(self, other: Any) -> "NumberValue":
        other = _coerce(other)
        return NotImplemented if other is None else self.power(other)

    def __neg__(self) -> "NumberValue":
        return self.neg()

    def __abs__(self) -> "NumberValue":
        return self.abs()

    # Constructors ----------------------------------------------
    # Defined last so the names do not shadow builtins in the class body.

    @staticmethod
    def integer(value: int) -> "Integer":
        return Integer(value)

    @staticmethod
    def rational(numerator: int, denominator: int = 1) -> "Rational":
        """Build a Rational; a zero denominator raises DomainError."""
        if denominator == 0:
            raise DomainError("rational with zero denominator")
        return Rational(Fraction(numerator, denominator))

    @staticmethod
    def real(value: Union[str, int, Decimal]) -> "Real":
        return Real(Decimal(value))

    @staticmethod
    def complex(real: Any, imag: Any) -> "Complex":
        return Complex(_coerce_strict(real), _coerce_strict(imag))

    @staticmethod
    def float(value: float) -> "Float":
        return Float(float(value))

    @staticmethod
    def from_python(value: Any) -> "NumberValue":
        """Coerce a python number (or a numeric literal string) into the tower.

        Raises:
            TypeError: for values that are not numbers
        """
        return _coerce_strict(value)


def _coerce(value: Any) -> Optional[NumberValue]:
    if isinstance(value, NumberValue):
        return value
    if isinstance(value, (bool, int)):
        return Integer(int(value))
    if isinstance(value, Fraction):
        return Rational(value)
    if isinstance(value, Decimal):
        return Real(value)
    if isinstance(value, float):
        return Float(value)
    if isinstance(value, complex):
        return Complex(Float(value.real), Float(value.imag))
    return None


def _coerce_strict(value: Any) -> NumberValue:
    if isinstance(value, str):
        return parse_number(value)
    result = _coerce(value)
    if result is None:
        raise TypeError(f"Cannot convert {type(value).__name__} to NumberValue")
    return result


def parse_number(text: str) -> NumberValue:
    """Parse an exact numeric literal: "7", "-3/4" or "2.5".

    Decimal literals become Real, so no precision is lost.

    Raises:
        ValueError: if the text is not a numeric literal
    """
    text = text.strip()
    try:
        if "/" in text:
            num, den = text.split("/", 1)
            return NumberValue.rational(int(num), int(den))
        if any(c in text for c in ".eE"):
            return Real(Decimal(text))
        return Integer(int(text))
    except (ValueError, InvalidOperation):
        raise ValueError(f"Not a numeric literal: {text!r}") from None


# ============================================================
# Exact real variants
# ============================================================

class _ExactReal(NumberValue):
    """Shared behaviour of Integer, Rational and Real."""

    __slots__ = ("value",)

    rank = _RANK_INTEGER

    def __init__(self, value):
        self.value = value

    def is_zero(self) -> bool:
        return self.value == 0

    def is_one(self) -> bool:
        return self.value == 1

    def is_real(self) -> bool:
        return True

    def is_negative(self) -> bool:
        return self.value < 0

    def is_positive(self) -> bool:
        return self.value > 0

    def is_integer(self) -> bool:
        return self.value == int(self.value)

    def is_even(self) -> bool:
        return self.is_integer() and int(self.value) % 2 == 0

    def is_odd(self) -> bool:
        return self.is_integer() and int(self.value) % 2 == 1

    def neg(self) -> NumberValue:
        return type(self)(-self.value)

    def abs(self) -> NumberValue:
        return type(self)(abs(self.value))

    def approximate(self) -> float:
        try:
            result = float(self.value)
        except OverflowError:
            raise Overflow(f"{self} does not fit in a float") from None
        if math.isinf(result):
            raise Overflow(f"{self} does not fit in a float")
        return result

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, _ExactReal):
            return self.value == other.value
        if isinstance(other, Complex):
            return other.imag.is_zero() and other.real == self
        if isinstance(other, NumberValue):
            return False
        if isinstance(other, (int, Fraction, Decimal)):
            return self.value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"


class Integer(_ExactReal):
    """Arbitrary-size integer."""

    __slots__ = ()
    kind = "integer"
    rank = _RANK_INTEGER

    def __init__(self, value: int):
        super().__init__(int(value))

    def is_integer(self) -> bool:
        return True

    def is_rational(self) -> bool:
        return True

    def sqrt(self, allow_complex: bool = False) -> NumberValue:
        if self.value < 0:
            if not allow_complex:
                raise DomainError(f"sqrt of negative number {self}")
            root = _perfect_sqrt(-self.value)
            if root is None:
                return _symbolic_function("sqrt", self)
            return Complex(Integer(0), Integer(root))
        root = _perfect_sqrt(self.value)
        if root is None:
            return _symbolic_function("sqrt", self)
        return Integer(root)

    def __str__(self) -> str:
        return str(self.value)


class Rational(_ExactReal):
    """Exact fraction. A denominator of 1 displays as an integer."""

    __slots__ = ()
    kind = "rational"
    rank = _RANK_RATIONAL

    def __init__(self, value: Union[Fraction, int]):
        super().__init__(Fraction(value))

    @property
    def numerator(self) -> int:
        return self.value.numerator

    @property
    def denominator(self) -> int:
        return self.value.denominator

    def is_integer(self) -> bool:
        return self.value.denominator == 1

    def is_rational(self) -> bool:
        return True

    def to_integer(self) -> Optional[Integer]:
        return Integer(self.value.numerator) if self.is_integer() else None

    def sqrt(self, allow_complex: bool = False) -> NumberValue:
        negative = self.value < 0
        if negative and not allow_complex:
            raise DomainError(f"sqrt of negative number {self}")
        num = _perfect_sqrt(abs(self.value.numerator))
        den = _perfect_sqrt(self.value.denominator)
        if num is None or den is None:
            return _symbolic_function("sqrt", self)
        root = Rational(Fraction(num, den))
        return Complex(Integer(0), root) if negative else root

    def __str__(self) -> str:
        if self.value.denominator == 1:
            return str(self.value.numerator)
        return f"{self.value.numerator}/{self.value.denominator}"


class Real(_ExactReal):
    """Arbitrary-precision decimal. Always finite.

    Sums, differences, products and integer powers are exact; division is
    rounded to config.REAL_PRECISION significant digits.
    """

    __slots__ = ()
    kind = "real"
    rank = _RANK_REAL

    def __init__(self, value: Union[Decimal, int, str]):
        value = Decimal(value)
        if not value.is_finite():
            raise DomainError(f"{value} is not a finite real")
        super().__init__(value)

    def sqrt(self, allow_complex: bool = False) -> NumberValue:
        if self.value < 0:
            if not allow_complex:
                raise DomainError(f"sqrt of negative number {self}")
            root = Real(-self.value).sqrt()
            if isinstance(root, Real):
                return Complex(Integer(0), root)
            return _symbolic_function("sqrt", self)
        with localcontext() as ctx:
            ctx.prec = config.REAL_PRECISION
            root = self.value.sqrt()
            if root * root == self.value:
                return Real(root)
        return _symbolic_function("sqrt", self)

    def __str__(self) -> str:
        return format(self.value, "f")


# ============================================================
# Complex, Float, Symbolic
# ============================================================

class Complex(NumberValue):
    """A complex number real + imag*i with non-complex parts."""

    __slots__ = ("real", "imag")
    kind = "complex"
    rank = _RANK_COMPLEX

    def __init__(self, real: NumberValue, imag: NumberValue):
        if isinstance(real, (Complex, Symbolic)) or isinstance(imag, (Complex, Symbolic)):
            raise TypeError("Complex parts must be real numbers")
        self.real = real
        self.imag = imag

    def is_zero(self) -> bool:
        return self.real.is_zero() and self.imag.is_zero()

    def is_one(self) -> bool:
        return self.real.is_one() and self.imag.is_zero()

    def is_exact(self) -> bool:
        return self.real.is_exact() and self.imag.is_exact()

    def is_complex(self) -> bool:
        return True

    def conjugate(self) -> "Complex":
        return Complex(self.real, self.imag.neg())

    def neg(self) -> NumberValue:
        return Complex(self.real.neg(), self.imag.neg())

    def abs(self) -> NumberValue:
        squared = self.real.mul(self.real).add(self.imag.mul(self.imag))
        if isinstance(squared, Float):
            return Float(math.sqrt(squared.value))
        return squared.sqrt()

    def sqrt(self, allow_complex: bool = False) -> NumberValue:
        return _symbolic_function("sqrt", self)

    def to_exact(self) -> NumberValue:
        return Complex(self.real.to_exact(), self.imag.to_exact())

    def approximate(self) -> float:
        """The modulus |real + imag*i| as a float."""
        return math.hypot(self.real.approximate(), self.imag.approximate())

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Complex):
            return self.real == other.real and self.imag == other.imag
        if isinstance(other, NumberValue):
            return self.imag.is_zero() and self.real == other
        return NotImplemented

    def __hash__(self) -> int:
        if self.imag.is_zero():
            return hash(self.real)
        return hash(("complex", hash(self.real), hash(self.imag)))

    def __str__(self) -> str:
        imag = self.imag
        if imag.is_zero():
            return str(self.real)
        if self.real.is_zero():
            if imag.is_one():
                return "i"
            if imag.neg().is_one():
                return "-i"
            return f"{imag}i"
        if imag.is_one():
            return f"{self.real}+i"
        if imag.neg().is_one():
            return f"{self.real}-i"
        if imag.is_negative():
            return f"{self.real}-{imag.neg()}i"
        return f"{self.real}+{imag}i"

    def __repr__(self) -> str:
        return f"Complex({self})"


class Float(NumberValue):
    """Machine float approximation. The only inexact variant."""

    __slots__ = ("value",)
    kind = "float"

    def __init__(self, value: float):
        self.value = float(value)

    def is_zero(self) -> bool:
        return self.value == 0.0

    def is_one(self) -> bool:
        return self.value == 1.0

    def is_exact(self) -> bool:
        return False

    def is_real(self) -> bool:
        return True

    def is_negative(self) -> bool:
        return self.value < 0

    def is_positive(self) -> bool:
        return self.value > 0

    def neg(self) -> NumberValue:
        return Float(-self.value)

    def abs(self) -> NumberValue:
        return Float(abs(self.value))

    def sqrt(self, allow_complex: bool = False) -> NumberValue:
        if self.value < 0:
            if not allow_complex:
                raise DomainError(f"sqrt of negative number {self}")
            return Complex(Float(0.0), Float(math.sqrt(-self.value)))
        return Float(math.sqrt(self.value))

    def to_exact(self) -> NumberValue:
        """Exact value of the float's shortest decimal spelling (0.1 -> 1/10)."""
        if not math.isfinite(self.value):
            raise DomainError(f"{self.value} has no exact value")
        fraction = Fraction(repr(self.value))
        if fraction.denominator == 1:
            return Integer(fraction.numerator)
        return Rational(fraction)

    def approximate(self) -> float:
        return self.value

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Float):
            return self.value == other.value
        if isinstance(other, NumberValue):
            return False
        if isinstance(other, float):
            return self.value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("float", self.value))

    def __str__(self) -> str:
        return repr(self.value)

    def __repr__(self) -> str:
        return f"Float({self.value!r})"


class Symbolic(NumberValue):
    """An unresolved numeric result, e.g. a division by zero.

    Holds the Expression that produced it so it can be rendered or
    re-examined downstream.
    """

    __slots__ = ("expression",)
    kind = "symbolic"

    def __init__(self, expression):
        self.expression = expression

    def is_symbolic(self) -> bool:
        return True

    def neg(self) -> NumberValue:
        return _symbolic_unary(UnaryOperator.NEGATE, self)

    def abs(self) -> NumberValue:
        return _symbolic_unary(UnaryOperator.ABS, self)

    def approximate(self) -> float:
        value = self.expression.approximate({})
        if isinstance(value, complex):
            return abs(value)
        return value

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Symbolic):
            return self.expression == other.expression
        if isinstance(other, NumberValue):
            return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("symbolic", hash(self.expression)))

    def __str__(self) -> str:
        return str(self.expression)

    def __repr__(self) -> str:
        return f"Symbolic({self})"


# ============================================================
# Promotion and arithmetic
# ============================================================

def promote_types(a: NumberValue, b: NumberValue) -> Tuple[NumberValue, NumberValue]:
    """Lift two values to their common variant.

    Raises:
        UnsupportedOperation: for Float mixed with an exact value, or Symbolic
    """
    if isinstance(a, Symbolic) or isinstance(b, Symbolic):
        raise UnsupportedOperation("promotion of a symbolic value")
    if isinstance(a, Float) != isinstance(b, Float):
        raise UnsupportedOperation("mixing Float with an exact value")
    if isinstance(a, Float):
        return a, b
    return _lift(a, max(a.rank, b.rank)), _lift(b, max(a.rank, b.rank))


def _lift(value: NumberValue, rank: int) -> NumberValue:
    if value.rank == rank:
        return value
    if rank == _RANK_COMPLEX:
        return Complex(value, Integer(0))
    if rank == _RANK_REAL:
        return Real(_to_decimal(value.value))
    return Rational(Fraction(value.value))


def _binary(op: BinaryOperator, a: NumberValue, b: NumberValue) -> NumberValue:
    if isinstance(a, Symbolic) or isinstance(b, Symbolic):
        return _symbolic_binary(op, a, b)

    if isinstance(a, Float) or isinstance(b, Float):
        if isinstance(a, Float) and isinstance(b, Float):
            return _float_binary(op, a, b)
        return _symbolic_binary(op, a, b)

    if op is BinaryOperator.POWER:
        return _power(a, b)

    if op is BinaryOperator.MULTIPLY and (a.is_zero() or b.is_zero()):
        return _zero_like(a, b)

    if op in (BinaryOperator.DIVIDE, BinaryOperator.MODULO) and b.is_zero():
        return _symbolic_binary(op, a, b)

    if a.rank == _RANK_COMPLEX or b.rank == _RANK_COMPLEX:
        return _complex_binary(op, _lift(a, _RANK_COMPLEX), _lift(b, _RANK_COMPLEX))

    rank = max(a.rank, b.rank)
    x, y = _lift(a, rank).value, _lift(b, rank).value

    if rank == _RANK_REAL:
        if op is BinaryOperator.DIVIDE:
            with localcontext() as ctx:
                ctx.prec = config.REAL_PRECISION
                return Real(x / y)
        return Real(_exact_decimal(op, x, y))

    if op is BinaryOperator.DIVIDE:
        quotient = Fraction(x, y)
        if rank == _RANK_INTEGER and quotient.denominator == 1:
            return Integer(quotient.numerator)
        return Rational(quotient)

    result = _apply_python(op, x, y)
    return Integer(result) if rank == _RANK_INTEGER else Rational(result)


def _zero_like(a: NumberValue, b: NumberValue) -> NumberValue:
    rank = max(a.rank, b.rank)
    if rank == _RANK_REAL:
        return Real(0)
    if rank == _RANK_RATIONAL:
        return Rational(0)
    return Integer(0)


def _exact_digits(op: BinaryOperator, x: Decimal, y: Decimal) -> int:
    """Significant digits that hold x op y without rounding."""
    if op is BinaryOperator.MULTIPLY:
        return len(x.as_tuple().digits) + len(y.as_tuple().digits)
    # Sums and remainders span from the highest digit down to the lowest exponent
    high = max(x.adjusted(), y.adjusted())
    low = min(x.as_tuple().exponent, y.as_tuple().exponent)
    return high - low + 2


def _exact_decimal(op: BinaryOperator, x: Decimal, y: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = max(_exact_digits(op, x, y), config.REAL_PRECISION)
        ctx.traps[Inexact] = True
        return _apply_python(op, x, y)


def _apply_python(op: BinaryOperator, x, y):
    if op is BinaryOperator.ADD:
        return x + y
    if op is BinaryOperator.SUBTRACT:
        return x - y
    if op is BinaryOperator.MULTIPLY:
        return x * y
    if op is BinaryOperator.DIVIDE:
        return x / y
    if op is BinaryOperator.MODULO:
        return x % y
    raise UnsupportedOperation(op.symbol)


def _float_binary(op: BinaryOperator, a: "Float", b: "Float") -> NumberValue:
    x, y = a.value, b.value
    if op in (BinaryOperator.DIVIDE, BinaryOperator.MODULO) and y == 0.0:
        return _symbolic_binary(op, a, b)
    if op is BinaryOperator.POWER:
        try:
            result = x ** y
        except OverflowError:
            raise Overflow(f"{a} ^ {b} out of range") from None
        except ZeroDivisionError:
            return _symbolic_binary(op, a, b)
        if isinstance(result, complex):
            return Complex(Float(result.real), Float(result.imag))
        return _checked_float(result, x, y)
    return _checked_float(_apply_python(op, x, y), x, y)


def _complex_binary(op: BinaryOperator, a: Complex, b: Complex) -> NumberValue:
    ar, ai, br, bi = a.real, a.imag, b.real, b.imag
    if op is BinaryOperator.ADD:
        real, imag = ar.add(br), ai.add(bi)
    elif op is BinaryOperator.SUBTRACT:
        real, imag = ar.sub(br), ai.sub(bi)
    elif op is BinaryOperator.MULTIPLY:
        real = ar.mul(br).sub(ai.mul(bi))
        imag = ar.mul(bi).add(ai.mul(br))
    elif op is BinaryOperator.DIVIDE:
        denom = br.mul(br).add(bi.mul(bi))
        if denom.is_zero():
            return _symbolic_binary(op, a, b)
        real = ar.mul(br).add(ai.mul(bi)).div(denom)
        imag = ai.mul(br).sub(ar.mul(bi)).div(denom)
    else:
        return _symbolic_binary(op, a, b)
    return _make_complex(op, a, b, real, imag)


def _make_complex(op, a, b, real: NumberValue, imag: NumberValue) -> NumberValue:
    if isinstance(real, Symbolic) or isinstance(imag, Symbolic):
        return _symbolic_binary(op, a, b)
    if imag.is_zero() and imag.is_exact():
        return real
    return Complex(real, imag)


def _power(base: NumberValue, exponent: NumberValue) -> NumberValue:
    if isinstance(base, Float) and isinstance(exponent, Float):
        return _float_binary(BinaryOperator.POWER, base, exponent)
    if isinstance(base, (Symbolic, Float)) or isinstance(exponent, (Symbolic, Float)):
        return _symbolic_binary(BinaryOperator.POWER, base, exponent)
    if not exponent.is_integer() or isinstance(exponent, Complex):
        return _symbolic_binary(BinaryOperator.POWER, base, exponent)

    n = int(exponent.value)
    if n < 0:
        if base.is_zero():
            return _symbolic_binary(BinaryOperator.POWER, base, exponent)
        return Integer(1).div(_power(base, Integer(-n)))

    if isinstance(base, Integer):
        return Integer(base.value ** n)
    if isinstance(base, Rational):
        return Rational(base.value ** n)
    if isinstance(base, Real):
        with localcontext() as ctx:
            ctx.prec = max(len(base.value.as_tuple().digits) * max(n, 1), config.REAL_PRECISION)
            ctx.traps[Inexact] = True
            return Real(base.value ** n)

    # Complex: square-and-multiply over exact parts
    result: NumberValue = Integer(1)
    square: NumberValue = base
    while n:
        if n & 1:
            result = result.mul(square)
        n >>= 1
        if n:
            square = square.mul(square)
    return result
