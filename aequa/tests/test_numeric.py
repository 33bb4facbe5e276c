"""Tests for the numeric tower."""

from decimal import Decimal
from fractions import Fraction

import pytest
from aequa import (
    NumberValue, Integer, Rational, Real, Complex, Float, Symbolic,
    parse_number, promote_types, DivisionByZero, DomainError, Overflow,
    UnsupportedOperation,
)


class TestExactness:
    """Exact variants never lose information."""

    def test_big_integer_addition(self):
        """2^100 + 2^100 is exactly 2^101."""
        a = Integer(2 ** 100)
        result = a + Integer(2 ** 100)
        assert result == Integer(2 ** 101)
        assert isinstance(result, Integer)

    def test_thirds_sum_to_one(self):
        """1/3 + 1/3 + 1/3 == 1 with no floating drift."""
        third = NumberValue.rational(1, 3)
        assert third + third + third == NumberValue.integer(1)

    def test_integer_division_exact(self):
        """Exact integer quotients stay integers."""
        result = Integer(6) / Integer(3)
        assert isinstance(result, Integer)
        assert result == 2

    def test_integer_division_inexact(self):
        """Inexact integer quotients become rationals."""
        result = Integer(6) / Integer(4)
        assert isinstance(result, Rational)
        assert result == Fraction(3, 2)

    def test_negative_power(self):
        """Negative integer powers produce rationals."""
        assert Integer(2) ** -2 == Rational(Fraction(1, 4))

    def test_rational_power(self):
        assert Rational(Fraction(2, 3)) ** 2 == Rational(Fraction(4, 9))


class TestPromotion:
    """Mixed arithmetic promotes to the least specific common variant."""

    def test_integer_plus_rational(self):
        """i + r and r + i are equal rationals."""
        i = Integer(1)
        r = Rational(Fraction(1, 2))
        assert i + r == r + i
        assert isinstance(i + r, Rational)
        assert isinstance(r + i, Rational)

    def test_rational_plus_real(self):
        result = Rational(Fraction(1, 4)) + Real("0.5")
        assert isinstance(result, Real)
        assert result == Decimal("0.75")

    def test_associativity_mixed(self):
        """(a + b) + c == a + (b + c) for an Integer/Rational/Real triple."""
        a, b, c = Integer(3), Rational(Fraction(1, 4)), Real("0.5")
        assert (a + b) + c == a + (b + c)

    def test_distributivity_mixed(self):
        """a * (b + c) == a*b + a*c for an Integer/Rational/Real triple."""
        a, b, c = Integer(2), Rational(Fraction(1, 4)), Real("1.5")
        assert a * (b + c) == a * b + a * c

    def test_promote_types(self):
        a, b = promote_types(Integer(1), Rational(Fraction(1, 2)))
        assert isinstance(a, Rational)
        assert isinstance(b, Rational)

    def test_promote_float_with_exact(self):
        with pytest.raises(UnsupportedOperation):
            promote_types(Float(1.0), Integer(1))

    def test_float_never_mixes(self):
        """Float combined with an exact value stays symbolic."""
        result = Float(0.5) + Integer(1)
        assert result.is_symbolic()

    def test_float_with_float(self):
        assert Float(0.5) + Float(0.25) == Float(0.75)


class TestRealArithmetic:
    """Real sums and products keep every digit."""

    LONG = "1." + "1" * 59

    def test_tiny_real_survives_addition(self):
        """(a + b) + c == a + (b + c) with a far below the working precision."""
        a, b, c = Real("1e-60"), Integer(1), Integer(-1)
        assert (a + b) + c == a + (b + c)
        assert (a + b) + c == Decimal("1e-60")

    def test_wide_exponent_span(self):
        big, tiny = Real("1e40"), Real("1e-40")
        assert big + tiny - big == tiny

    def test_product_is_exact(self):
        x = Real(self.LONG)
        assert Fraction((x * x).value) == Fraction(Decimal(self.LONG)) ** 2

    def test_power_is_exact(self):
        x = Real(self.LONG)
        assert Fraction((x ** 3).value) == Fraction(Decimal(self.LONG)) ** 3

    def test_remainder(self):
        result = Real("1e30") % Real("7")
        assert result == Decimal(10 ** 30 % 7)

    def test_division_is_rounded(self):
        result = Real("1") / Real("3")
        assert isinstance(result, Real)
        assert len(result.value.as_tuple().digits) == 50

    @pytest.mark.parametrize("text", ["Infinity", "-Infinity", "NaN"])
    def test_non_finite_rejected(self, text):
        with pytest.raises(DomainError):
            NumberValue.real(text)


class TestDivisionByZero:
    """Division by zero yields Symbolic values, never exceptions."""

    @pytest.mark.parametrize("value", [
        Integer(5),
        Rational(Fraction(1, 2)),
        Real("2.5"),
        Complex(Integer(1), Integer(1)),
    ])
    def test_symbolic_result(self, value):
        assert isinstance(value / Integer(0), Symbolic)

    def test_float_division_by_zero(self):
        assert isinstance(Float(1.0) / Float(0.0), Symbolic)

    def test_zero_over_zero(self):
        assert (Integer(0) / Integer(0)).is_symbolic()

    def test_symbolic_display(self):
        assert str(Integer(5) / Integer(0)) == "5 / 0"

    def test_checked_div_raises(self):
        with pytest.raises(DivisionByZero):
            Integer(5).checked_div(Integer(0))

    def test_checked_div_is_zero_division_error(self):
        with pytest.raises(ZeroDivisionError):
            Rational(Fraction(1, 2)).checked_div(Rational(0))


class TestComplex:
    """Complex arithmetic and display."""

    def test_display(self):
        assert str(Complex(Integer(3), Integer(4))) == "3+4i"
        assert str(Complex(Integer(3), Integer(-4))) == "3-4i"
        assert str(Complex(Integer(0), Integer(1))) == "i"
        assert str(Complex(Integer(0), Integer(-1))) == "-i"

    def test_zero_imaginary_display(self):
        assert str(Complex(Integer(0), Integer(0))) == "0"
        assert str(Complex(Integer(3), Integer(0))) == "3"

    def test_division_by_complex_zero_display(self):
        result = Complex(Integer(1), Integer(2)) / Complex(Integer(0), Integer(0))
        assert result.is_symbolic()
        assert str(result) == "(1+2i) / 0"

    def test_product_collapses_to_real(self):
        """(1+i)(1-i) = 2 with the zero imaginary part dropped."""
        result = Complex(Integer(1), Integer(1)) * Complex(Integer(1), Integer(-1))
        assert isinstance(result, Integer)
        assert result == 2

    def test_addition_with_integer(self):
        result = Complex(Integer(1), Integer(2)) + Integer(3)
        assert result == Complex(Integer(4), Integer(2))

    def test_square_of_i(self):
        i = Complex(Integer(0), Integer(1))
        assert i ** 2 == Integer(-1)

    def test_modulus(self):
        assert Complex(Integer(3), Integer(4)).abs() == Integer(5)


class TestSquareRoot:
    """sqrt is exact for perfect squares and symbolic otherwise."""

    def test_perfect_square(self):
        assert Integer(16).sqrt() == Integer(4)

    def test_rational_perfect_square(self):
        assert Rational(Fraction(9, 4)).sqrt() == Rational(Fraction(3, 2))

    def test_non_square_is_symbolic(self):
        root = Integer(2).sqrt()
        assert root.is_symbolic()
        assert str(root) == "sqrt(2)"

    def test_negative_without_complex(self):
        with pytest.raises(DomainError):
            Integer(-4).sqrt()

    def test_negative_with_complex(self):
        assert Integer(-4).sqrt(allow_complex=True) == Complex(Integer(0), Integer(2))


class TestDisplay:
    """Canonical textual forms."""

    def test_rational_with_unit_denominator(self):
        assert str(Rational(Fraction(6, 1))) == "6"

    def test_rational(self):
        assert str(Rational(Fraction(-3, 4))) == "-3/4"

    def test_real(self):
        assert str(Real("2.5")) == "2.5"

    def test_float(self):
        assert str(Float(0.5)) == "0.5"


class TestConstructionAndPredicates:
    """Constructors, parsing and predicates."""

    def test_rational_zero_denominator(self):
        with pytest.raises(DomainError):
            NumberValue.rational(1, 0)

    def test_from_python(self):
        assert isinstance(NumberValue.from_python(3), Integer)
        assert isinstance(NumberValue.from_python(Fraction(1, 3)), Rational)
        assert isinstance(NumberValue.from_python(Decimal("1.5")), Real)
        assert isinstance(NumberValue.from_python(1.5), Float)

    def test_from_python_rejects_objects(self):
        with pytest.raises(TypeError):
            NumberValue.from_python(object())

    def test_parse_number(self):
        assert parse_number("7") == Integer(7)
        assert parse_number("-3/4") == Rational(Fraction(-3, 4))
        assert isinstance(parse_number("2.5"), Real)

    def test_parse_number_rejects_text(self):
        with pytest.raises(ValueError):
            parse_number("abc")

    def test_predicates(self):
        assert Integer(4).is_even()
        assert Integer(3).is_odd()
        assert Integer(-2).is_negative()
        assert not Float(1.0).is_exact()
        assert Rational(Fraction(4, 2)).is_integer()
        assert Integer(0).is_zero()
        assert Integer(1).is_one()

    def test_numeric_type(self):
        assert Integer(1).numeric_type() == "integer"
        assert Float(1.0).numeric_type() == "float"

    def test_cross_variant_equality_and_hash(self):
        """Equal exact values are equal across variants and hash alike."""
        assert Integer(2) == Rational(Fraction(2))
        assert hash(Integer(2)) == hash(Rational(Fraction(2)))
        assert Integer(2) == Real("2")

    def test_float_to_exact(self):
        assert Float(0.1).to_exact() == Rational(Fraction(1, 10))


class TestOverflow:
    """Fixed-width float overflow."""

    def test_float_multiplication_overflow(self):
        with pytest.raises(Overflow):
            Float(1e308) * Float(10.0)

    def test_huge_integer_approximation(self):
        with pytest.raises(Overflow):
            Integer(10 ** 400).approximate()
