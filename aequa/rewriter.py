"""
Pattern matching and rewrite primitives for AEQUA.

AEQUA - Algebraic Expressions, Exact and Unified Arithmetic

This module provides the building blocks the rule engine is made of:

- pattern matching of Expression trees against patterns containing
  pattern variables (?x, ?x:const, ?x:var) and instantiation of skeletons
- predicates usable as rule guards (nonzero, positive, integer, ...)
- the exact constant-folding prelude over the numeric tower
- structural helpers (sum and product flattening, π-multiple recognition)
- procedural rules, each a function Expression -> Optional[Expression]
  that returns None when it does not apply

Every procedural rule only fires when the identity holds unconditionally or
the fact it needs is a literal in the expression.
"""

import math
from fractions import Fraction
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .constants import MathConstant
from .expression import (
    Expression, Number, Variable, Constant, UnaryOp, BinaryOp, Function,
    fold_expression, iter_postorder,
)
from .numeric import NumberValue, Integer, Rational
from .operators import BinaryOperator, UnaryOperator

BindingsDict = Dict[str, Expression]
RuleFunction = Callable[[Expression], Optional[Expression]]

ADD = BinaryOperator.ADD
SUB = BinaryOperator.SUBTRACT
MUL = BinaryOperator.MULTIPLY
DIV = BinaryOperator.DIVIDE
POW = BinaryOperator.POWER
NEG = UnaryOperator.NEGATE


# ============================================================
# Bindings Class - Dict-like interface for match results
# ============================================================

class Bindings:
    """
    Dict-like wrapper for pattern matching bindings.

        if bindings := engine.match("(+ ?a ?b)", expr):
            print(bindings["a"], bindings["b"])

    Bindings objects are truthy when a match succeeded.
    Use NoMatch (which is falsy) to represent failed matches.
    """

    __slots__ = ('_dict',)

    def __init__(self, pairs: BindingsDict):
        self._dict = dict(pairs)

    def __bool__(self) -> bool:
        return True

    def __getitem__(self, key: str) -> Expression:
        return self._dict[key]

    def get(self, key: str, default=None):
        return self._dict.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._dict

    def keys(self):
        return self._dict.keys()

    def values(self):
        return self._dict.values()

    def items(self):
        return self._dict.items()

    def __iter__(self):
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v}" for k, v in self._dict.items())
        return f"Bindings({inner})"

    def __eq__(self, other):
        if isinstance(other, Bindings):
            return self._dict == other._dict
        return False

    def to_dict(self) -> BindingsDict:
        return self._dict.copy()


class _NoMatch:
    """Falsy singleton representing a failed pattern match."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoMatch"

    def __getitem__(self, key: str):
        raise KeyError(f"NoMatch has no binding for '{key}'")

    def get(self, key: str, default=None):
        return default

    def __contains__(self, key: str) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter([])


NoMatch = _NoMatch()


def wrap_bindings(result: Optional[BindingsDict]) -> Union[Bindings, _NoMatch]:
    """Convert an internal match result (dict or None) to Bindings or NoMatch."""
    if result is None:
        return NoMatch
    return Bindings(result)


# ============================================================
# Pattern variables
# ============================================================

def is_pattern_variable(expr: Expression) -> bool:
    """Variables spelled ?x, ?x:const, ?x:var or :x act as pattern variables."""
    return isinstance(expr, Variable) and expr.name[:1] in ("?", ":")


def pattern_variable(expr: Variable) -> Tuple[str, Optional[str]]:
    """Split a pattern variable into (name, constraint)."""
    body = expr.name[1:]
    if ":" in body:
        name, constraint = body.split(":", 1)
        return name, constraint
    return body, None


def _satisfies(constraint: Optional[str], expr: Expression) -> bool:
    if constraint is None or constraint == "expr":
        return True
    if constraint == "const":
        return isinstance(expr, Number)
    if constraint == "var":
        return isinstance(expr, Variable)
    raise ValueError(f"Unknown pattern constraint: {constraint}")


def match(pattern: Expression, expr: Expression,
          bindings: Optional[BindingsDict] = None) -> Optional[BindingsDict]:
    """
    Match an expression against a pattern.

    A pattern variable matches any subexpression satisfying its constraint;
    repeated occurrences must match structurally equal subexpressions.

    Args:
        pattern: Pattern expression
        expr: Expression to match
        bindings: Bindings to extend (not modified)

    Returns:
        The extended bindings, or None if the match failed.

    Examples:
        match(E("(+ ?x 0)"), E("(+ y 0)"))  # => {"x": y}
        match(E("(- ?x ?x)"), E("(- y z)")) # => None
    """
    result = dict(bindings or {})
    stack = [(pattern, expr)]
    while stack:
        pat, node = stack.pop()
        if is_pattern_variable(pat):
            name, constraint = pattern_variable(pat)
            if not _satisfies(constraint, node):
                return None
            if name in result:
                if result[name] != node:
                    return None
            else:
                result[name] = node
            continue
        if type(pat) is not type(node):
            return None
        if isinstance(pat, Number):
            # Literal patterns match by value, so 0 also matches a Rational 0
            if pat.value != node.value:
                return None
        elif pat.payload() != node.payload():
            return None
        pat_children, node_children = pat.children(), node.children()
        if len(pat_children) != len(node_children):
            return None
        stack.extend(zip(reversed(pat_children), reversed(node_children)))
    return result


def instantiate(skeleton: Expression, bindings: BindingsDict) -> Expression:
    """
    Build an expression from a skeleton, substituting bound pattern variables.

    Raises:
        KeyError: if the skeleton references an unbound pattern variable
    """
    def combine(node: Expression, kids: List[Expression]) -> Expression:
        if is_pattern_variable(node):
            name, _ = pattern_variable(node)
            if name not in bindings:
                raise KeyError(f"Unbound pattern variable '{name}' in skeleton")
            return bindings[name]
        return node.with_children(kids)

    return fold_expression(skeleton, combine)


# ============================================================
# Literal inspection
# ============================================================

def literal(expr: Expression) -> Optional[NumberValue]:
    """The numeric value of a Number node, unless it is Symbolic."""
    if isinstance(expr, Number) and not expr.value.is_symbolic():
        return expr.value
    return None


def exact_literal(expr: Expression) -> Optional[NumberValue]:
    value = literal(expr)
    return value if value is not None and value.is_exact() else None


def rational_literal(expr: Expression) -> Optional[Fraction]:
    """The value of an Integer or Rational literal as a Fraction."""
    value = literal(expr)
    if isinstance(value, (Integer, Rational)):
        return Fraction(value.value)
    return None


def is_literal_zero(expr: Expression) -> bool:
    value = exact_literal(expr)
    return value is not None and value.is_zero()


def is_literal_one(expr: Expression) -> bool:
    value = exact_literal(expr)
    return value is not None and value.is_one()


def negated(expr: Expression) -> Expression:
    """-expr, folding literals and double negation."""
    value = literal(expr)
    if value is not None:
        return Number(value.neg())
    if isinstance(expr, UnaryOp) and expr.op is NEG:
        return expr.operand
    return UnaryOp(NEG, expr)


# ============================================================
# Guard predicates
# ============================================================

_POSITIVE_CONSTANTS = (
    MathConstant.PI, MathConstant.E, MathConstant.EULER_GAMMA,
    MathConstant.GOLDEN_RATIO, MathConstant.CATALAN, MathConstant.POSITIVE_INFINITY,
)


def _is_nonzero(expr: Expression) -> bool:
    if isinstance(expr, Constant):
        return expr.constant.is_nonzero()
    value = literal(expr)
    return value is not None and not value.is_zero()


def _is_positive(expr: Expression) -> bool:
    if isinstance(expr, Constant):
        return expr.constant in _POSITIVE_CONSTANTS
    value = literal(expr)
    return value is not None and value.is_positive()


def _literal_predicate(name: str) -> Callable[[Expression], bool]:
    def predicate(expr: Expression) -> bool:
        value = exact_literal(expr)
        return value is not None and getattr(value, name)()
    return predicate


PREDICATES: Dict[str, Callable[[Expression], bool]] = {
    "nonzero": _is_nonzero,
    "positive": _is_positive,
    "nonnegative": lambda e: _is_positive(e) or is_literal_zero(e),
    "negative": _literal_predicate("is_negative"),
    "integer": _literal_predicate("is_integer"),
    "even": _literal_predicate("is_even"),
    "odd": _literal_predicate("is_odd"),
    "exact": lambda e: exact_literal(e) is not None,
    "number": lambda e: literal(e) is not None,
    "variable": lambda e: isinstance(e, Variable),
}


def check_condition(condition: Optional[Expression], bindings: BindingsDict) -> bool:
    """Evaluate a guard such as (nonzero :x) under the given bindings.

    Raises:
        ValueError: if the guard names an unknown predicate
    """
    if condition is None:
        return True
    if isinstance(condition, Function) and condition.name in ("and", "or", "not"):
        results = [check_condition(arg, bindings) for arg in condition.args]
        if condition.name == "and":
            return all(results)
        if condition.name == "or":
            return any(results)
        return not results[0]
    if not isinstance(condition, Function) or condition.name not in PREDICATES:
        raise ValueError(f"Unknown guard predicate: {condition}")
    args = [instantiate(arg, bindings) for arg in condition.args]
    return all(PREDICATES[condition.name](arg) for arg in args)


# ============================================================
# Exact Constant Folding Prelude
# ============================================================

FoldHandler = Callable[..., Optional[NumberValue]]


def exact_only(f: Callable[..., NumberValue]) -> FoldHandler:
    """Wrap a numeric operation so unresolved (Symbolic) results do not fold."""
    def handler(*args: NumberValue) -> Optional[NumberValue]:
        result = f(*args)
        return None if result.is_symbolic() else result
    return handler


def safe_div() -> FoldHandler:
    """Division handler that refuses to fold a zero divisor."""
    def handler(a: NumberValue, b: NumberValue) -> Optional[NumberValue]:
        if b.is_zero():
            return None
        result = a.div(b)
        return None if result.is_symbolic() else result
    return handler


EXACT_PRELUDE: Dict[Any, FoldHandler] = {
    BinaryOperator.ADD: exact_only(lambda a, b: a.add(b)),
    BinaryOperator.SUBTRACT: exact_only(lambda a, b: a.sub(b)),
    BinaryOperator.MULTIPLY: exact_only(lambda a, b: a.mul(b)),
    BinaryOperator.DIVIDE: safe_div(),
    BinaryOperator.POWER: exact_only(lambda a, b: a.power(b)),
    BinaryOperator.MODULO: exact_only(lambda a, b: a.mod(b)),
    UnaryOperator.NEGATE: exact_only(lambda a: a.neg()),
    UnaryOperator.PLUS: exact_only(lambda a: a),
    UnaryOperator.ABS: exact_only(lambda a: a.abs()),
}


def fold_constants(expr: Expression, prelude: Optional[Dict[Any, FoldHandler]] = None) -> Optional[Expression]:
    """Evaluate an operator whose operands are all number literals."""
    prelude = EXACT_PRELUDE if prelude is None else prelude
    if not isinstance(expr, (UnaryOp, BinaryOp)) or expr.op not in prelude:
        return None
    values = [literal(child) for child in expr.children()]
    if any(v is None for v in values):
        return None
    result = prelude[expr.op](*values)
    return None if result is None else Number(result)


# ============================================================
# Products
# ============================================================

def split_product(expr: Expression) -> Optional[Tuple[NumberValue, List[Expression]]]:
    """Flatten a product into (numeric coefficient, other factors).

    Negations and number literals fold into the coefficient. Returns None
    when the literals cannot be multiplied exactly (e.g. a Float times an
    Integer).
    """
    coefficient: NumberValue = Integer(1)
    factors: List[Expression] = []
    stack = [expr]
    while stack:
        node = stack.pop()
        if isinstance(node, BinaryOp) and node.op is MUL:
            stack.append(node.right)
            stack.append(node.left)
        elif isinstance(node, UnaryOp) and node.op is NEG:
            coefficient = coefficient.neg()
            stack.append(node.operand)
        elif literal(node) is not None:
            coefficient = coefficient.mul(literal(node))
            if coefficient.is_symbolic():
                return None
        else:
            factors.append(node)
    return coefficient, factors


def _base_and_exponent(factor: Expression) -> Tuple[Expression, int]:
    if isinstance(factor, BinaryOp) and factor.op is POW:
        exponent = rational_literal(factor.right)
        if exponent is not None and exponent.denominator == 1 and exponent > 0:
            return factor.left, int(exponent)
    return factor, 1


def merge_factors(factors: List[Expression]) -> List[Expression]:
    """Combine equal bases: x * x -> x^2, x^2 * x^3 -> x^5 (positive integer powers)."""
    order: List[Expression] = []
    exponents: Dict[Expression, int] = {}
    for factor in factors:
        base, exponent = _base_and_exponent(factor)
        if base in exponents:
            exponents[base] += exponent
        else:
            exponents[base] = exponent
            order.append(base)
    return [base if exponents[base] == 1 else BinaryOp(POW, base, Number(exponents[base]))
            for base in order]


def build_product(coefficient: NumberValue, factors: List[Expression]) -> Expression:
    """Canonical product: c * (f1 * f2 * ...), with -1 as a negation."""
    if coefficient.is_zero() and coefficient.is_exact():
        return Number(0)
    if not factors:
        return Number(coefficient)
    product = factors[0]
    for factor in factors[1:]:
        product = BinaryOp(MUL, product, factor)
    if coefficient.is_exact():
        if coefficient.is_one():
            return product
        if coefficient.neg().is_one():
            return UnaryOp(NEG, product)
    return BinaryOp(MUL, Number(coefficient), product)


def canonical_product(expr: Expression) -> Optional[Expression]:
    """Coefficient first, negations pulled out, equal factors merged into powers."""
    if not (isinstance(expr, BinaryOp) and expr.op is MUL) and \
            not (isinstance(expr, UnaryOp) and expr.op is NEG):
        return None
    split = split_product(expr)
    if split is None:
        return None
    coefficient, factors = split
    result = build_product(coefficient, merge_factors(factors))
    return None if result == expr else result


# ============================================================
# Sums
# ============================================================

Term = Tuple[NumberValue, List[Expression]]


def split_sum(expr: Expression) -> List[Tuple[int, Expression]]:
    """Flatten nested + and - into signed terms, left to right."""
    terms: List[Tuple[int, Expression]] = []
    stack = [(expr, 1)]
    while stack:
        node, sign = stack.pop()
        if isinstance(node, BinaryOp) and node.op in (ADD, SUB):
            stack.append((node.right, sign if node.op is ADD else -sign))
            stack.append((node.left, sign))
        else:
            terms.append((sign, node))
    return terms


def sum_terms(expr: Expression) -> List[Term]:
    """Signed terms as (coefficient, factors) pairs."""
    result: List[Term] = []
    for sign, node in split_sum(expr):
        split = split_product(node)
        if split is None:
            coefficient, factors = Integer(1), [node]
        else:
            coefficient, factors = split
        result.append((coefficient.neg() if sign < 0 else coefficient, factors))
    return result


def collect_terms(terms: List[Term]) -> List[Term]:
    """Merge terms with equal factor lists; drop exact zero coefficients."""
    collected: List[List] = []
    index: Dict[Tuple[Expression, ...], int] = {}
    for coefficient, factors in terms:
        key = tuple(factors)
        if key in index:
            slot = collected[index[key]]
            merged = slot[0].add(coefficient)
            if not merged.is_symbolic():
                slot[0] = merged
                continue
        else:
            index[key] = len(collected)
        collected.append([coefficient, factors])
    return [(c, f) for c, f in collected if not (c.is_zero() and c.is_exact())]


def build_sum(terms: List[Term]) -> Expression:
    """Left-associated sum; negative coefficients after the first become subtraction."""
    if not terms:
        return Number(0)
    result = build_product(*terms[0])
    for coefficient, factors in terms[1:]:
        if coefficient.is_negative():
            result = BinaryOp(SUB, result, build_product(coefficient.neg(), factors))
        else:
            result = BinaryOp(ADD, result, build_product(coefficient, factors))
    return result


def _is_sum(expr: Expression) -> bool:
    return isinstance(expr, BinaryOp) and expr.op in (ADD, SUB)


def collect_like_terms(expr: Expression) -> Optional[Expression]:
    """x + x -> 2*x, 3*x - x -> 2*x, 1 + x + 2 -> 3 + x, x + (-y) -> x - y."""
    if not _is_sum(expr):
        return None
    result = build_sum(collect_terms(sum_terms(expr)))
    return None if result == expr else result


# ============================================================
# Powers, quotients, functions
# ============================================================

def power_of_negation(expr: Expression) -> Optional[Expression]:
    """(-a)^n -> a^n for even n, -(a^n) for odd n."""
    if not (isinstance(expr, BinaryOp) and expr.op is POW):
        return None
    base = expr.left
    exponent = exact_literal(expr.right)
    if not (isinstance(base, UnaryOp) and base.op is NEG) or exponent is None:
        return None
    if exponent.is_even():
        return BinaryOp(POW, base.operand, expr.right)
    if exponent.is_odd():
        return UnaryOp(NEG, BinaryOp(POW, base.operand, expr.right))
    return None


def divide_coefficient(expr: Expression) -> Optional[Expression]:
    """(c*x)/d -> (c/d)*x for literals c, d with c not ±1."""
    if not (isinstance(expr, BinaryOp) and expr.op is DIV):
        return None
    divisor = exact_literal(expr.right)
    if divisor is None or divisor.is_zero():
        return None
    split = split_product(expr.left)
    if split is None:
        return None
    coefficient, factors = split
    if not factors or coefficient.is_one() or coefficient.neg().is_one():
        return None
    quotient = coefficient.div(divisor)
    if quotient.is_symbolic():
        return None
    return build_product(quotient, factors)


# ============================================================
# Trigonometry
# ============================================================

PI = Constant(MathConstant.PI)

_ODD_FUNCTIONS = ("sin", "tan", "asin", "atan", "sinh", "tanh")
_EVEN_FUNCTIONS = ("cos", "cosh")


def pi_multiple(expr: Expression) -> Optional[Fraction]:
    """k when expr is literally k*π for a rational k (0 counts as 0*π).

    Recognizes π, c*π, π/d, (c*π)/d, -π and sums of such terms.
    """
    if _is_sum(expr):
        total = Fraction(0)
        for sign, term in split_sum(expr):
            k = pi_multiple(term)
            if k is None:
                return None
            total += sign * k
        return total
    if isinstance(expr, BinaryOp) and expr.op is DIV:
        divisor = rational_literal(expr.right)
        k = pi_multiple(expr.left)
        if divisor is None or divisor == 0 or k is None:
            return None
        return k / divisor
    zero = rational_literal(expr)
    if zero is not None:
        return Fraction(0) if zero == 0 else None
    split = split_product(expr)
    if split is None:
        return None
    coefficient, factors = split
    if len(factors) != 1 or factors[0] != PI:
        return None
    if not isinstance(coefficient, (Integer, Rational)):
        return None
    return Fraction(coefficient.value)


def _trig_arg(expr: Expression, names) -> Optional[Expression]:
    if isinstance(expr, Function) and expr.name in names and len(expr.args) == 1:
        return expr.arg
    return None


def trig_parity(expr: Expression) -> Optional[Expression]:
    """sin(-3) -> -sin(3), cos(-2*x) -> cos(2*x): negative literal coefficients."""
    arg = _trig_arg(expr, _ODD_FUNCTIONS + _EVEN_FUNCTIONS)
    if arg is None or _is_sum(arg):
        return None
    split = split_product(arg)
    if split is None or not split[0].is_negative():
        return None
    coefficient, factors = split
    inner = Function(expr.name, [build_product(coefficient.neg(), factors)])
    return inner if expr.name in _EVEN_FUNCTIONS else UnaryOp(NEG, inner)


def _split_pi_shift(arg: Expression) -> Optional[Tuple[Fraction, Expression]]:
    """arg = k*π + rest, with rest free of literal π multiples."""
    if not _is_sum(arg):
        return None
    shift = Fraction(0)
    rest: List[Term] = []
    found = False
    for sign, term in split_sum(arg):
        k = pi_multiple(term)
        if k is not None and not is_literal_zero(term):
            shift += sign * k
            found = True
            continue
        split = split_product(term)
        coefficient, factors = split if split is not None else (Integer(1), [term])
        rest.append((coefficient.neg() if sign < 0 else coefficient, factors))
    if not found or not rest:
        return None
    return shift, build_sum(rest)


def _shifted(name: str, quarter_turns: int, rest: Expression) -> Expression:
    """f(rest + quarter_turns*π/2) for f in sin, cos, tan."""
    r = quarter_turns % 4
    if name == "tan":
        if r % 2 == 0:
            return Function("tan", [rest])
        return UnaryOp(NEG, BinaryOp(DIV, Number(1), Function("tan", [rest])))
    if name == "sin":
        table = {0: ("sin", 1), 1: ("cos", 1), 2: ("sin", -1), 3: ("cos", -1)}
    else:
        table = {0: ("cos", 1), 1: ("sin", -1), 2: ("cos", -1), 3: ("sin", 1)}
    target, sign = table[r]
    result = Function(target, [rest])
    return result if sign > 0 else UnaryOp(NEG, result)


def _trig_shift(expr: Expression, small: bool) -> Optional[Expression]:
    arg = _trig_arg(expr, ("sin", "cos", "tan"))
    if arg is None:
        return None
    split = _split_pi_shift(arg)
    if split is None:
        return None
    shift, rest = split
    if (2 * shift).denominator != 1:
        return None
    quarter_turns = int(2 * shift)
    if quarter_turns == 0 or (abs(quarter_turns) <= 2) != small:
        return None
    return _shifted(expr.name, quarter_turns, rest)


def trig_induction(expr: Expression) -> Optional[Expression]:
    """sin(π - x), cos(x + π/2), tan(π/2 - x), ...: shifts by π/2 and π."""
    return _trig_shift(expr, small=True)


def trig_periodicity(expr: Expression) -> Optional[Expression]:
    """sin(x + 2π) -> sin(x), tan(x - 3π) -> tan(x), sin(x + 3π) -> -sin(x)."""
    return _trig_shift(expr, small=False)


def _sqrt(n: int) -> Expression:
    return Function("sqrt", [Number(n)])


# Values at reference angles kπ, 0 <= k <= 1/2
_SIN_TABLE = {
    Fraction(0): lambda: Number(0),
    Fraction(1, 6): lambda: Number(Rational(Fraction(1, 2))),
    Fraction(1, 4): lambda: BinaryOp(DIV, _sqrt(2), Number(2)),
    Fraction(1, 3): lambda: BinaryOp(DIV, _sqrt(3), Number(2)),
    Fraction(1, 2): lambda: Number(1),
}

_TAN_TABLE = {
    Fraction(0): lambda: Number(0),
    Fraction(1, 6): lambda: BinaryOp(DIV, _sqrt(3), Number(3)),
    Fraction(1, 4): lambda: Number(1),
    Fraction(1, 3): lambda: _sqrt(3),
}


def _sin_of(k: Fraction) -> Optional[Expression]:
    k = k % 2
    sign = 1
    if k >= 1:
        k -= 1
        sign = -1
    reference = k if k <= Fraction(1, 2) else 1 - k
    if reference not in _SIN_TABLE:
        return None
    value = _SIN_TABLE[reference]()
    return value if sign > 0 else negated(value)


def _tan_of(k: Fraction) -> Optional[Expression]:
    k = k % 1
    if k == Fraction(1, 2):
        return None
    if k < Fraction(1, 2):
        builder = _TAN_TABLE.get(k)
        return builder() if builder else None
    builder = _TAN_TABLE.get(1 - k)
    return negated(builder()) if builder else None


def trig_special_value(expr: Expression) -> Optional[Expression]:
    """Exact sin/cos/tan at multiples of π/6 and π/4; tan(π/2) stays unevaluated."""
    arg = _trig_arg(expr, ("sin", "cos", "tan"))
    if arg is None:
        return None
    k = pi_multiple(arg)
    if k is None:
        return None
    if expr.name == "sin":
        return _sin_of(k)
    if expr.name == "cos":
        return _sin_of(k + Fraction(1, 2))
    return _tan_of(k)


def _trig_square(term: Term) -> Optional[Tuple[str, Expression]]:
    """('sin', u) for a term whose only factor is sin(u)^2."""
    _, factors = term
    if len(factors) != 1:
        return None
    factor = factors[0]
    if not (isinstance(factor, BinaryOp) and factor.op is POW):
        return None
    exponent = exact_literal(factor.right)
    if exponent is None or exponent != Integer(2):
        return None
    base = factor.left
    if isinstance(base, Function) and base.name in ("sin", "cos") and len(base.args) == 1:
        return base.name, base.arg
    return None


def pythagorean_sum(expr: Expression) -> Optional[Expression]:
    """c*sin(u)^2 + c*cos(u)^2 -> c and c - c*sin(u)^2 -> c*cos(u)^2 inside longer sums."""
    if not _is_sum(expr):
        return None
    terms = collect_terms(sum_terms(expr))
    squares = [_trig_square(term) for term in terms]

    for i, first in enumerate(squares):
        if first is None or first[0] != "sin":
            continue
        for j, second in enumerate(squares):
            if second is None or second[0] != "cos" or second[1] != first[1]:
                continue
            if terms[i][0] == terms[j][0]:
                coefficient = terms[i][0]
                kept = [t for n, t in enumerate(terms) if n not in (i, j)]
                kept.insert(min(i, j), (coefficient, []))
                return build_sum(collect_terms(kept))

    constants = [n for n, (_, factors) in enumerate(terms) if not factors]
    for n in constants:
        constant = terms[n][0]
        for i, square in enumerate(squares):
            if square is None or terms[i][0] != constant.neg():
                continue
            other = "cos" if square[0] == "sin" else "sin"
            replacement = (constant, [BinaryOp(POW, Function(other, [square[1]]), Number(2))])
            kept = [replacement if m == i else t for m, t in enumerate(terms) if m != n]
            return build_sum(kept)
    return None


# ============================================================
# Radicals
# ============================================================

_TRIAL_DIVISION_LIMIT = 10_000


def _square_factor(n: int) -> int:
    """Largest s with s*s dividing n, using trial division by small factors."""
    s = 1
    p = 2
    while p * p <= n and p <= _TRIAL_DIVISION_LIMIT:
        while n % (p * p) == 0:
            n //= p * p
            s *= p
        if n % p == 0:
            n //= p
        p += 1 if p == 2 else 2
    return s


def normalize_radical(expr: Expression) -> Optional[Expression]:
    """sqrt(16) -> 4, sqrt(9/4) -> 3/2, sqrt(12) -> 2*sqrt(3); otherwise unchanged."""
    if not (isinstance(expr, Function) and expr.name == "sqrt" and len(expr.args) == 1):
        return None
    value = exact_literal(expr.arg)
    if value is None or value.is_negative() or value.is_complex():
        return None
    root = value.sqrt()
    if not root.is_symbolic():
        return Number(root)
    if isinstance(value, Integer):
        s = _square_factor(value.value)
        if s > 1:
            return BinaryOp(MUL, Number(s), Function("sqrt", [Number(value.value // (s * s))]))
    return None


# ============================================================
# Utilities
# ============================================================

def contains(expr: Expression, target: Expression) -> bool:
    """True when target occurs as a subexpression of expr."""
    return any(node == target for node in iter_postorder(expr))
