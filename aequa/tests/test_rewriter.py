"""Tests for the structural helpers and procedural rules in rewriter.py."""

from fractions import Fraction

import pytest
from aequa import E, Number, Variable, Integer, Rational, BinaryOperator
from aequa.rewriter import (
    fold_constants, split_product, split_sum, merge_factors, collect_like_terms,
    canonical_product, pi_multiple, trig_special_value, trig_periodicity,
    trig_induction, normalize_radical, divide_coefficient, power_of_negation,
    pythagorean_sum, contains, negated, check_condition, EXACT_PRELUDE,
)


class TestFolding:
    """Exact constant folding."""

    def test_fold_sum(self):
        assert fold_constants(E("(+ 2 3)")) == Number(5)

    def test_fold_rational(self):
        assert fold_constants(E("(* 1/2 2/3)")) == Number(Rational(Fraction(1, 3)))

    def test_no_fold_with_symbol(self):
        assert fold_constants(E("(+ x 3)")) is None

    def test_no_fold_division_by_zero(self):
        assert fold_constants(E("(/ 1 0)")) is None

    def test_no_fold_float_with_exact(self):
        """Mixing a float with an exact literal has no exact result."""
        assert fold_constants(E("(+ 1 x)").with_children([Number(0.5), Number(1)])) is None

    def test_custom_prelude(self):
        prelude = {op: handler for op, handler in EXACT_PRELUDE.items() if op is not BinaryOperator.ADD}
        assert fold_constants(E("(+ 2 3)"), prelude) is None
        assert fold_constants(E("(* 2 3)"), prelude) == Number(6)

    def test_fold_negation(self):
        assert fold_constants(E("(neg 3)")) == Number(-3)


class TestStructure:
    """Flattening sums and products."""

    def test_split_product(self):
        coefficient, factors = split_product(E("(* 2 (* x (neg (* 3 y))))"))
        assert coefficient == Integer(-6)
        assert factors == [Variable("x"), Variable("y")]

    def test_split_sum(self):
        terms = split_sum(E("(- (+ a b) (- c d))"))
        assert terms == [(1, Variable("a")), (1, Variable("b")),
                         (-1, Variable("c")), (1, Variable("d"))]

    def test_merge_factors(self):
        merged = merge_factors([Variable("x"), E("(^ x 2)"), Variable("y")])
        assert merged == [E("(^ x 3)"), Variable("y")]

    def test_canonical_product(self):
        assert str(canonical_product(E("(* x (* 3 x))"))) == "3 * x ^ 2"
        assert canonical_product(E("(* 3 x)")) is None

    def test_collect_like_terms(self):
        assert str(collect_like_terms(E("(+ (+ x y) (* 2 x))"))) == "3 * x + y"
        assert collect_like_terms(E("(+ x y)")) is None

    def test_collect_cancels(self):
        assert collect_like_terms(E("(- (+ x y) x)")) == Variable("y")

    def test_divide_coefficient(self):
        assert str(divide_coefficient(E("(/ (* 4 x) 6)"))) == "2/3 * x"
        assert divide_coefficient(E("(/ x 2)")) is None

    def test_power_of_negation(self):
        assert power_of_negation(E("(^ (neg x) 3)")) == E("(neg (^ x 3))")
        assert power_of_negation(E("(^ (neg x) y)")) is None

    def test_negated(self):
        assert negated(Number(2)) == Number(-2)
        assert negated(E("(neg x)")) == Variable("x")
        assert negated(Variable("x")) == E("(neg x)")

    def test_contains(self):
        assert contains(E("(+ x (sin y))"), Variable("y"))
        assert not contains(E("(+ x (sin y))"), Variable("z"))


class TestPiMultiples:
    """Recognizing literal multiples of π."""

    @pytest.mark.parametrize("text, k", [
        ("pi", Fraction(1)),
        ("(* 2 pi)", Fraction(2)),
        ("(/ pi 6)", Fraction(1, 6)),
        ("(/ (* 3 pi) 4)", Fraction(3, 4)),
        ("(neg pi)", Fraction(-1)),
        ("(+ pi (/ pi 2))", Fraction(3, 2)),
        ("0", Fraction(0)),
    ])
    def test_multiples(self, text, k):
        assert pi_multiple(E(text)) == k

    @pytest.mark.parametrize("text", ["x", "(* x pi)", "(/ pi x)", "3", "(^ pi 2)"])
    def test_not_multiples(self, text):
        assert pi_multiple(E(text)) is None


class TestTrigRules:
    """Procedural trigonometric rules in isolation."""

    def test_special_values(self):
        assert trig_special_value(E("(sin (/ pi 2))")) == Number(1)
        assert trig_special_value(E("(cos (/ (* 2 pi) 3))")) == Number(Rational(Fraction(-1, 2)))
        assert trig_special_value(E("(tan (/ (* 3 pi) 4))")) == Number(-1)

    def test_no_value_for_other_angles(self):
        assert trig_special_value(E("(sin (/ pi 5))")) is None
        assert trig_special_value(E("(tan (/ pi 2))")) is None

    def test_periodicity(self):
        assert trig_periodicity(E("(sin (+ x (* 3 pi)))")) == E("(neg (sin x))")
        assert trig_periodicity(E("(tan (- x (* 3 pi)))")) == E("(tan x)")

    def test_periodicity_leaves_small_shifts(self):
        assert trig_periodicity(E("(sin (+ x pi))")) is None

    def test_induction(self):
        assert trig_induction(E("(sin (+ x pi))")) == E("(neg (sin x))")
        assert trig_induction(E("(tan (+ x (/ pi 2)))")) == E("(neg (/ 1 (tan x)))")

    def test_pythagorean_constant_form(self):
        result = pythagorean_sum(E("(- 3 (* 3 (^ (cos x) 2)))"))
        assert str(result) == "3 * sin(x) ^ 2"


class TestRadicals:
    """normalize_radical in isolation."""

    def test_perfect_square(self):
        assert normalize_radical(E("(sqrt 49)")) == Number(7)

    def test_square_factor(self):
        assert str(normalize_radical(E("(sqrt 50)"))) == "5 * sqrt(2)"

    def test_square_free(self):
        assert normalize_radical(E("(sqrt 30)")) is None

    def test_large_perfect_square(self):
        assert normalize_radical(E(f"(sqrt {2 ** 200})")) == Number(2 ** 100)


class TestConditions:
    """Guard evaluation helper."""

    def test_no_condition(self):
        assert check_condition(None, {})

    def test_instantiates_bindings(self):
        assert check_condition(E("(positive :x)"), {"x": Number(2)})
        assert not check_condition(E("(positive :x)"), {"x": Number(-2)})
