"""Tests for simplification strategies and the pass budget."""

import pytest
from aequa import RuleEngine, E, Variable, Number, BinaryOp, BinaryOperator, Timeout


RULES = '''
@add-zero: (+ ?x 0) => :x
@mul-one: (* ?x 1) => :x
'''

GROWING = "@grow: (g ?x) => (g (h :x))"


@pytest.fixture
def engine():
    return RuleEngine.from_dsl(RULES)


class TestBottomUp:
    """The default strategy runs to a fixed point."""

    def test_nested(self, engine):
        assert engine(E("(+ (* (+ x 0) 1) 0)")) == Variable("x")

    def test_rules_apply_inside_functions(self, engine):
        assert engine(E("(sin (+ x 0))")) == E("(sin x)")

    def test_unchanged_input_is_returned(self, engine):
        expr = E("(+ x 1)")
        assert engine(expr) is expr

    def test_deep_tree(self, engine):
        """Deep trees simplify without recursion."""
        expr = Variable("x")
        for _ in range(3000):
            expr = BinaryOp(BinaryOperator.ADD, expr, Number(0))
        assert engine(expr) == Variable("x")

    def test_string_input(self, engine):
        assert engine("(+ x 0)") == Variable("x")


class TestOnce:
    """strategy='once' applies a single rule."""

    def test_innermost_first(self, engine):
        result = engine.simplify(E("(+ (* x 1) 0)"), strategy="once")
        assert result == E("(+ x 0)")
        assert str(result) == "x + 0"

    def test_once_with_trace(self, engine):
        result, trace = engine.simplify(E("(+ (* x 1) 0)"), strategy="once", trace=True)
        assert trace.rules_applied() == ["mul-one"]

    def test_nothing_to_do(self, engine):
        assert engine.simplify(E("(+ x 1)"), strategy="once") == E("(+ x 1)")

    def test_unknown_strategy(self, engine):
        with pytest.raises(ValueError):
            engine.simplify(E("x"), strategy="sideways")


class TestPassBudget:
    """Non-terminating rule sets run out of passes."""

    def test_timeout(self):
        engine = RuleEngine.from_dsl(GROWING)
        with pytest.raises(Timeout) as exc_info:
            engine.simplify(E("(g a)"), max_passes=3)

        assert exc_info.value.passes == 3
        assert exc_info.value.partial.name == "g"

    def test_timeout_is_timeout_error(self):
        engine = RuleEngine.from_dsl(GROWING, max_passes=2)
        with pytest.raises(TimeoutError):
            engine.simplify(E("(g a)"))

    def test_partial_result(self):
        """The partial result is the form after the last pass."""
        engine = RuleEngine.from_dsl(GROWING, max_passes=1, max_node_rewrites=1)
        with pytest.raises(Timeout) as exc_info:
            engine.simplify(E("(g a)"))

        assert exc_info.value.partial == E("(g (h a))")

    def test_node_rewrite_budget(self):
        """A single node is retried at most max_node_rewrites times per pass."""
        engine = RuleEngine.from_dsl(GROWING, max_passes=1, max_node_rewrites=3)
        with pytest.raises(Timeout) as exc_info:
            engine.simplify(E("(g a)"))

        assert exc_info.value.partial == E("(g (h (h (h a))))")
