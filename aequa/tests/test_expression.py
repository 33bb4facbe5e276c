"""Tests for expression nodes, display and evaluation."""

import math
from fractions import Fraction

import pytest
from aequa import (
    E, Expression, Number, Variable, Constant, UnaryOp, BinaryOp, Function,
    BinaryOperator, UnaryOperator, MathConstant, SharedExpression,
    Integer, Rational, Real, Complex, fold_expression, iter_postorder,
    UndefinedVariable, DivisionByZero, DomainError, UnsupportedOperation,
)


class TestStructure:
    """Node construction, hashing and equality."""

    def test_equal_trees_have_equal_hashes(self):
        """Independently built trees with the same shape hash alike."""
        a = E("(+ x (* 2 (sin y)))")
        b = BinaryOp(BinaryOperator.ADD, Variable("x"),
                     BinaryOp(BinaryOperator.MULTIPLY, Number(2), Function("sin", [Variable("y")])))
        assert hash(a) == hash(b)
        assert a == b

    def test_different_trees(self):
        assert E("(+ x 1)") != E("(+ 1 x)")
        assert E("(- x y)") != E("(+ x y)")

    def test_number_variants_are_distinct_nodes(self):
        """Equal values of different variants are different literals."""
        assert Number(2) != Number(Rational(Fraction(2)))
        assert Number(Real("0.5")) != Number(Rational(Fraction(1, 2)))
        assert Number(Rational(Fraction(1, 2))) == Number(Rational(Fraction(2, 4)))

    def test_children_accessors(self):
        expr = E("(- x 3)")
        assert expr.left == Variable("x")
        assert expr.right == Number(3)
        assert isinstance(expr.left_shared, SharedExpression)
        assert expr.children() == (Variable("x"), Number(3))

    def test_shared_child_construction(self):
        """Nodes built from handles share the child cell."""
        x = SharedExpression(Variable("x"))
        expr = BinaryOp(BinaryOperator.ADD, x, x)
        assert x.ref_count() == 3
        assert expr.left is expr.right

    def test_with_children_preserves_identity(self):
        expr = E("(sin x)")
        assert expr.with_children(list(expr.children())) is expr

    def test_constant_from_name(self):
        assert Constant("pi") == Constant(MathConstant.PI)
        with pytest.raises(ValueError):
            Constant("tau")


class TestDisplay:
    """Infix text with minimal parentheses."""

    @pytest.mark.parametrize("sexpr, text", [
        ("(+ x 1)", "x + 1"),
        ("(* (+ x 1) y)", "(x + 1) * y"),
        ("(- x (- y z))", "x - (y - z)"),
        ("(- (- x y) z)", "x - y - z"),
        ("(^ x (^ y 2))", "x ^ y ^ 2"),
        ("(^ (^ x y) 2)", "(x ^ y) ^ 2"),
        ("(neg (+ x 1))", "-(x + 1)"),
        ("(neg (sin x))", "-sin(x)"),
        ("(abs x)", "|x|"),
        ("(+ x -3)", "x + (-3)"),
        ("(/ pi 2)", "π / 2"),
        ("(log x 2)", "log(x, 2)"),
        ("(* 1/2 x)", "1/2 * x"),
    ])
    def test_display(self, sexpr, text):
        assert str(E(sexpr)) == text


class TestQueries:
    """Queries and substitution."""

    def test_variables(self):
        assert E("(+ x (* y (sin x)))").variables() == {"x", "y"}

    def test_complexity(self):
        assert E("(+ x 1)").complexity() == 3

    def test_is_constant(self):
        assert E("(* 2 pi)").is_constant()
        assert not E("(* 2 x)").is_constant()

    def test_depth(self):
        assert E("(+ x (* y z))").depth() == 3

    def test_substitute(self):
        assert E("(+ x 1)").substitute({"x": 2}) == E("(+ 2 1)")

    def test_substitute_expression(self):
        assert E("(sin x)").substitute({"x": E("(* 2 y)")}) == E("(sin (* 2 y))")

    def test_postorder(self):
        names = [str(node) for node in iter_postorder(E("(+ x y)"))]
        assert names == ["x", "y", "x + y"]


class TestEvaluation:
    """Exact and approximate evaluation."""

    def test_exact_evaluation(self):
        result = E("(+ x 1/2)").evaluate({"x": 1})
        assert result == Rational(Fraction(3, 2))

    def test_undefined_variable(self):
        with pytest.raises(UndefinedVariable) as exc_info:
            E("(+ x 1)").evaluate()
        assert exc_info.value.name == "x"

    def test_division_by_zero_is_symbolic(self):
        assert E("(/ 1 0)").evaluate().is_symbolic()

    def test_unresolved_function_is_symbolic(self):
        result = E("(sin 1)").evaluate()
        assert result.is_symbolic()
        assert str(result) == "sin(1)"

    def test_exact_function_values(self):
        assert E("(sqrt 9)").evaluate() == Integer(3)
        assert E("(cos 0)").evaluate() == Integer(1)

    def test_imaginary_unit(self):
        assert E("(* i i)").evaluate() == Integer(-1)

    def test_approximate(self):
        assert E("(+ x 1)").approximate({"x": 2}) == 3.0
        assert E("(sin 0)").approximate() == 0.0
        assert math.isclose(E("(* 2 pi)").approximate(), 2 * math.pi)

    def test_approximate_division_by_zero(self):
        with pytest.raises(DivisionByZero):
            E("(/ 1 0)").approximate()

    def test_approximate_domain_error(self):
        with pytest.raises(DomainError):
            E("(ln 0)").approximate()

    def test_approximate_unknown_function(self):
        with pytest.raises(UnsupportedOperation):
            E("(frobnicate 1)").approximate()

    def test_approximate_real_domain(self):
        with pytest.raises(DomainError):
            E("(sqrt -4)").approximate()

    def test_exact_complex_root(self):
        assert E("(sqrt -4)").evaluate() == Complex(Integer(0), Integer(2))


class TestDeepTrees:
    """Traversals do not recurse."""

    DEPTH = 3000

    def build(self) -> Expression:
        expr = Variable("x")
        for _ in range(self.DEPTH):
            expr = BinaryOp(BinaryOperator.ADD, expr, Number(1))
        return expr

    def test_deep_equality_and_hash(self):
        a, b = self.build(), self.build()
        assert hash(a) == hash(b)
        assert a == b

    def test_deep_display(self):
        text = str(self.build())
        assert text.startswith("x + 1 + 1")
        assert text.count("+") == self.DEPTH

    def test_deep_evaluation(self):
        assert self.build().evaluate({"x": 0}) == Integer(self.DEPTH)

    def test_deep_fold(self):
        count = fold_expression(self.build(), lambda node, kids: 1 + sum(kids))
        assert count == 2 * self.DEPTH + 1

    def test_deep_negation_chain(self):
        expr = Variable("x")
        for _ in range(self.DEPTH):
            expr = UnaryOp(UnaryOperator.NEGATE, expr)
        assert expr.depth() == self.DEPTH + 1
