"""
Built-in rule families.

Each family is a rule group. Families are tried in priority order at every
node, so earlier families normalize what later ones look for:

    algebra         60   identities, constant folding, like terms, products
    induction       50   parity and shifts by multiples of π/2
    special-values  40   exact values at multiples of π/6 and π/4
    pythagorean     30   sin² + cos² and quotient forms
    periodicity     20   shifts by whole periods
    radicals        10   perfect squares and square factors under sqrt

Pattern rules are written in the rule DSL; the rest are procedural rules
from rewriter.py.
"""

from typing import Dict, List, Tuple

from . import rewriter
from .engine import RuleEngine
from .rewriter import RuleFunction

FAMILY_PRIORITIES: Dict[str, int] = {
    "algebra": 60,
    "induction": 50,
    "special-values": 40,
    "pythagorean": 30,
    "periodicity": 20,
    "radicals": 10,
}

ALGEBRA_RULES = """
[algebra]
@add-zero: (+ ?x 0) => :x
@zero-add: (+ 0 ?x) => :x
@sub-zero: (- ?x 0) => :x
@sub-self "x - x = 0": (- ?x ?x) => 0
@mul-one: (* ?x 1) => :x
@one-mul: (* 1 ?x) => :x
@mul-zero: (* ?x 0) => 0
@zero-mul: (* 0 ?x) => 0
@div-one: (/ ?x 1) => :x
@pow-one: (^ ?x 1) => :x
@pow-zero "Anything nonzero to the zeroth power": (^ ?x 0) => 1 when (nonzero :x)
@one-pow: (^ 1 ?x) => 1
@zero-pow: (^ 0 ?n) => 0 when (positive :n)
@double-neg: (neg (neg ?x)) => :x
@unary-plus: (pos ?x) => :x
@zero-div: (/ 0 ?x) => 0 when (nonzero :x)
@div-self: (/ ?x ?x) => 1 when (nonzero :x)
@add-neg: (+ ?x (neg ?y)) => (- :x :y)
@sub-neg: (- ?x (neg ?y)) => (+ :x :y)
@exp-zero: (exp 0) => 1
@ln-one: (ln 1) => 0
@ln-e: (ln e) => 1
@abs-abs: (abs (abs ?x)) => (abs :x)
@abs-neg: (abs (neg ?x)) => (abs :x)
"""

INDUCTION_RULES = """
[induction]
@sin-neg "sine is odd": (sin (neg ?x)) => (neg (sin :x))
@cos-neg "cosine is even": (cos (neg ?x)) => (cos :x)
@tan-neg "tangent is odd": (tan (neg ?x)) => (neg (tan :x))
@sin-pi-minus: (sin (- pi ?x)) => (sin :x)
@sin-pi-plus: (sin (+ pi ?x)) => (neg (sin :x))
@sin-plus-pi: (sin (+ ?x pi)) => (neg (sin :x))
@cos-pi-minus: (cos (- pi ?x)) => (neg (cos :x))
@cos-pi-plus: (cos (+ pi ?x)) => (neg (cos :x))
@cos-plus-pi: (cos (+ ?x pi)) => (neg (cos :x))
@tan-pi-minus: (tan (- pi ?x)) => (neg (tan :x))
@tan-pi-plus: (tan (+ pi ?x)) => (tan :x)
@tan-plus-pi: (tan (+ ?x pi)) => (tan :x)
@sin-half-pi-minus: (sin (- (/ pi 2) ?x)) => (cos :x)
@sin-half-pi-plus: (sin (+ (/ pi 2) ?x)) => (cos :x)
@cos-half-pi-minus: (cos (- (/ pi 2) ?x)) => (sin :x)
@cos-half-pi-plus: (cos (+ (/ pi 2) ?x)) => (neg (sin :x))
@asin-neg: (asin (neg ?x)) => (neg (asin :x))
@atan-neg: (atan (neg ?x)) => (neg (atan :x))
@acos-neg: (acos (neg ?x)) => (- pi (acos :x))
"""

SPECIAL_VALUE_RULES = """
[special-values]
@asin-zero: (asin 0) => 0
@asin-half: (asin 1/2) => (/ pi 6)
@asin-sqrt2-half: (asin (/ (sqrt 2) 2)) => (/ pi 4)
@asin-sqrt3-half: (asin (/ (sqrt 3) 2)) => (/ pi 3)
@asin-one: (asin 1) => (/ pi 2)
@acos-one: (acos 1) => 0
@acos-sqrt3-half: (acos (/ (sqrt 3) 2)) => (/ pi 6)
@acos-sqrt2-half: (acos (/ (sqrt 2) 2)) => (/ pi 4)
@acos-half: (acos 1/2) => (/ pi 3)
@acos-zero: (acos 0) => (/ pi 2)
@acos-minus-one: (acos -1) => pi
@atan-zero: (atan 0) => 0
@atan-sqrt3-third: (atan (/ (sqrt 3) 3)) => (/ pi 6)
@atan-one: (atan 1) => (/ pi 4)
@atan-sqrt3: (atan (sqrt 3)) => (/ pi 3)
"""

PYTHAGOREAN_RULES = """
[pythagorean]
@pythagorean "sin² + cos² = 1": (+ (^ (sin ?x) 2) (^ (cos ?x) 2)) => 1
@pythagorean-swapped: (+ (^ (cos ?x) 2) (^ (sin ?x) 2)) => 1
@one-minus-sin-sq: (- 1 (^ (sin ?x) 2)) => (^ (cos :x) 2)
@one-minus-cos-sq: (- 1 (^ (cos ?x) 2)) => (^ (sin :x) 2)
@sin-over-cos: (/ (sin ?x) (cos ?x)) => (tan :x)
@cos-over-sin: (/ (cos ?x) (sin ?x)) => (/ 1 (tan :x))
"""

RADICAL_RULES = """
[radicals]
@sqrt-squared: (^ (sqrt ?x) 2) => :x
"""

DSL_FAMILIES: List[Tuple[str, str]] = [
    ("algebra", ALGEBRA_RULES),
    ("induction", INDUCTION_RULES),
    ("special-values", SPECIAL_VALUE_RULES),
    ("pythagorean", PYTHAGOREAN_RULES),
    ("radicals", RADICAL_RULES),
]

PROCEDURAL_RULES: List[Tuple[str, RuleFunction]] = [
    ("algebra", rewriter.fold_constants),
    ("algebra", rewriter.canonical_product),
    ("algebra", rewriter.collect_like_terms),
    ("algebra", rewriter.divide_coefficient),
    ("algebra", rewriter.power_of_negation),
    ("induction", rewriter.trig_parity),
    ("induction", rewriter.trig_induction),
    ("special-values", rewriter.trig_special_value),
    ("pythagorean", rewriter.pythagorean_sum),
    ("periodicity", rewriter.trig_periodicity),
    ("radicals", rewriter.normalize_radical),
]


def register_builtin_rules(engine: RuleEngine) -> RuleEngine:
    """Load every built-in family into an engine."""
    for family, text in DSL_FAMILIES:
        engine.load_dsl(text, priority=FAMILY_PRIORITIES[family])
    for family, func in PROCEDURAL_RULES:
        engine.add_function_rule(func, priority=FAMILY_PRIORITIES[family], tags=[family])
    return engine


def default_engine(**kwargs) -> RuleEngine:
    """A fresh RuleEngine with all built-in families."""
    return register_builtin_rules(RuleEngine(**kwargs))
