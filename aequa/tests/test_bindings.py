"""Tests for pattern matching, Bindings and NoMatch."""

import pytest
from aequa import RuleEngine, E, Bindings, NoMatch, Variable, Number, match, instantiate


@pytest.fixture
def engine():
    return RuleEngine()


class TestMatch:
    """engine.match returns Bindings or NoMatch."""

    def test_successful_match(self, engine):
        bindings = engine.match("(+ ?a ?b)", E("(+ x 1)"))

        assert bindings
        assert isinstance(bindings, Bindings)
        assert bindings["a"] == Variable("x")
        assert bindings["b"] == Number(1)
        assert len(bindings) == 2
        assert "a" in bindings

    def test_failed_match(self, engine):
        bindings = engine.match("(* ?a ?b)", E("(+ x 1)"))

        assert bindings is NoMatch
        assert not bindings
        assert len(bindings) == 0
        assert bindings.get("a", 5) == 5
        assert list(bindings) == []

    def test_no_match_getitem(self):
        with pytest.raises(KeyError):
            NoMatch["a"]

    def test_walrus_usage(self, engine):
        if bindings := engine.match("(sin ?x)", "(sin (* 2 y))"):
            assert bindings["x"] == E("(* 2 y)")
        else:
            pytest.fail("expected a match")

    def test_repeated_variable_must_agree(self, engine):
        assert engine.match("(- ?x ?x)", "(- y y)")
        assert not engine.match("(- ?x ?x)", "(- y z)")

    def test_repeated_variable_compares_structure(self, engine):
        assert engine.match("(- ?x ?x)", "(- (sin y) (sin y))")

    def test_literal_must_match(self, engine):
        assert not engine.match("(+ ?x 0)", "(+ y 1)")

    def test_operator_must_match(self, engine):
        assert not engine.match("(+ ?x ?y)", "(- a b)")


class TestConstraints:
    """?x:const and ?x:var restrict what a variable matches."""

    def test_const(self, engine):
        assert engine.match("(* ?c:const ?x)", "(* 2 y)")["c"] == Number(2)
        assert not engine.match("(* ?c:const ?x)", "(* y 2)")

    def test_var(self, engine):
        assert engine.match("(^ ?x:var 2)", "(^ y 2)")
        assert not engine.match("(^ ?x:var 2)", "(^ (+ y 1) 2)")

    def test_expr_matches_anything(self, engine):
        assert engine.match("(sin ?x:expr)", "(sin (+ y 1))")

    def test_unknown_constraint(self, engine):
        with pytest.raises(ValueError):
            engine.match("?x:weird", "y")


class TestBindingsObject:
    """Dict-like behavior of Bindings."""

    def test_dict_interface(self):
        bindings = Bindings({"x": Variable("y")})
        assert list(bindings.keys()) == ["x"]
        assert list(bindings.values()) == [Variable("y")]
        assert bindings.get("z") is None
        assert bindings.to_dict() == {"x": Variable("y")}

    def test_repr(self):
        assert repr(Bindings({"a": Variable("x"), "b": Number(1)})) == "Bindings(a=x, b=1)"
        assert repr(NoMatch) == "NoMatch"

    def test_equality(self):
        assert Bindings({"x": Variable("y")}) == Bindings({"x": Variable("y")})
        assert Bindings({"x": Variable("y")}) != Bindings({"x": Variable("z")})


class TestInstantiate:
    """Skeleton instantiation."""

    def test_substitutes_bound_variables(self):
        result = instantiate(E("(* 2 :x)"), {"x": E("(sin y)")})
        assert result == E("(* 2 (sin y))")

    def test_unbound_variable(self):
        with pytest.raises(KeyError):
            instantiate(E("(+ :y 1)"), {"x": Variable("x")})

    def test_match_then_instantiate(self):
        bindings = match(E("(+ ?a ?b)"), E("(+ p q)"))
        assert instantiate(E("(+ :b :a)"), bindings) == E("(+ q p)")

    def test_match_extends_bindings(self):
        result = match(E("?x"), E("y"), {"z": Number(1)})
        assert result == {"z": Number(1), "x": Variable("y")}

    def test_match_conflicting_bindings(self):
        assert match(E("?x"), E("y"), {"x": Number(1)}) is None
