"""Tests for the interning expression builder."""

from fractions import Fraction

import pytest
from aequa import ExpressionBuilder, MemoryManager, Number, Variable, Integer, Rational, Real


@pytest.fixture
def builder():
    return ExpressionBuilder()


class TestInterning:
    """Common leaves are preloaded and reused."""

    def test_variables_are_interned(self, builder):
        assert builder.variable("x").ptr_eq(builder.variable("x"))

    def test_new_variables_are_interned_after_first_use(self, builder):
        assert builder.variable("velocity").ptr_eq(builder.variable("velocity"))

    def test_integers_are_interned(self, builder):
        assert builder.integer(2).ptr_eq(builder.integer(2))
        assert builder.integer(0).value == Number(0)

    def test_constants(self, builder):
        assert builder.pi().ptr_eq(builder.constant("pi"))
        assert str(builder.e()) == "e"

    def test_rational(self, builder):
        assert builder.rational(2, 4).value == Number(Rational(Fraction(1, 2)))

    def test_lookup_counts_a_hit(self, builder):
        before = builder.stats().cache_hits
        builder.variable("x")
        assert builder.stats().cache_hits == before + 1

    def test_repeated_construction_is_pooled(self, builder):
        """Building the same compound twice yields one node."""
        x, y = builder.variable("x"), builder.variable("y")
        first = builder.add(x, y)
        second = builder.add(x, y)
        assert first.ptr_eq(second)

    def test_custom_manager(self):
        manager = MemoryManager()
        builder = ExpressionBuilder(manager)
        builder.sin(builder.variable("x"))
        assert len(manager) > 0

    def test_empty_manager_is_used(self):
        """A fresh manager is still the one the builder pools into."""
        manager = MemoryManager()
        builder = ExpressionBuilder(manager)
        assert builder.manager is manager
        builder.variable("x")
        assert manager.get_stats().cache_hits == 1

    def test_variants_intern_separately(self, builder):
        """Real 1.0 and Integer 1 are different literals."""
        assert isinstance(builder.real("1.0").value.value, Real)
        assert isinstance(builder.integer(1).value.value, Integer)

    def test_real_after_equal_rational(self, builder):
        half = builder.rational(1, 2)
        real = builder.real("0.5")
        assert not real.ptr_eq(half)
        assert isinstance(real.value.value, Real)
        assert isinstance(real.value.value * 3, Real)


class TestIdentities:
    """Identities applied while assembling nodes."""

    def test_add_zero_returns_operand(self, builder):
        """x + 0 hands back the very node x."""
        x = builder.variable("x")
        result = builder.add(x, builder.integer(0))
        assert result.ptr_eq(x)

    def test_zero_add(self, builder):
        x = builder.variable("x")
        assert builder.add(0, x).ptr_eq(x)

    def test_add_self_doubles(self, builder):
        x = builder.variable("x")
        assert str(builder.add(x, x)) == "2 * x"

    def test_subtract_self(self, builder):
        x = builder.variable("x")
        assert builder.subtract(x, x).value == Number(0)

    def test_subtract_zero(self, builder):
        x = builder.variable("x")
        assert builder.subtract(x, 0).ptr_eq(x)

    def test_multiply_by_one_and_zero(self, builder):
        x = builder.variable("x")
        assert builder.multiply(x, 1).ptr_eq(x)
        assert builder.multiply(1, x).ptr_eq(x)
        assert builder.multiply(x, 0).value == Number(0)

    def test_float_literals_are_not_identities(self, builder):
        """Only exact 0 and 1 collapse; x * 0.0 stays a product."""
        x = builder.variable("x")
        assert str(builder.multiply(x, 0.0)) == "x * 0.0"
        assert str(builder.add(x, 0.0)) == "x + 0.0"
        assert not builder.power(x, 1.0).ptr_eq(x)

    def test_multiply_by_minus_one(self, builder):
        x = builder.variable("x")
        assert str(builder.multiply(-1, x)) == "-x"

    def test_double_negation(self, builder):
        x = builder.variable("x")
        assert builder.negate(builder.negate(x)).ptr_eq(x)

    def test_divide_by_one(self, builder):
        x = builder.variable("x")
        assert builder.divide(x, 1).ptr_eq(x)

    def test_power_identities(self, builder):
        x = builder.variable("x")
        assert builder.power(x, 1).ptr_eq(x)
        assert builder.power(1, x).value == Number(1)

    def test_plus_and_abs(self, builder):
        x = builder.variable("x")
        assert builder.plus(x).ptr_eq(x)
        assert str(builder.abs(x)) == "|x|"
        assert builder.abs(0).value == Number(0)

    def test_no_identity_keeps_structure(self, builder):
        x = builder.variable("x")
        expr = builder.add(builder.multiply(2, x), builder.sin(x))
        assert str(expr) == "2 * x + sin(x)"
        assert expr.value.variables() == {"x"}

    def test_expressions_are_accepted(self, builder):
        result = builder.add(Variable("q"), 0)
        assert result.value == Variable("q")
