"""
AEQUA - Algebraic Expressions, Exact and Unified Arithmetic

The core of a computer algebra system: an exact numeric tower, immutable
expression trees with structural sharing and copy-on-write handles, a
hash-consing expression pool, and a rule-based simplifier.

Quick Start:
    from aequa import ExpressionBuilder, simplify, E

    b = ExpressionBuilder()
    x = b.variable("x")
    b.add(x, b.integer(0))            # => handle to x

    simplify(E("(sin (neg x))"))      # => -sin(x)
    simplify(E("(+ (^ (sin x) 2) (^ (cos x) 2))"))  # => 1
    simplify(E("(sqrt 12)"))          # => 2 * sqrt(3)

Numbers:
    Integer(2) ** 100 + Integer(2) ** 100 == Integer(2 ** 101)
    Rational(Fraction(1, 3)) * 3 == Integer(1)
    Integer(5) / Integer(0)           # => Symbolic, never an exception

Custom Rules:
    engine = RuleEngine.from_dsl('''
        [algebra]
        @add-zero: (+ ?x 0) => :x
        @pow-zero: (^ ?x 0) => 1 when (nonzero :x)
    ''')
    engine(E("(+ y 0)"))              # => y
"""

__version__ = "0.1.0"

# Errors
from .errors import (
    ComputeError,
    DivisionByZero,
    UndefinedVariable,
    DomainError,
    Overflow,
    Timeout,
    UnsupportedOperation,
)

# Numeric tower
from .constants import MathConstant
from .operators import BinaryOperator, UnaryOperator
from .numeric import (
    NumberValue,
    Integer,
    Rational,
    Real,
    Complex,
    Float,
    Symbolic,
    parse_number,
    promote_types,
)

# Expressions and sharing
from .shared import ExprCell, SharedExpression, CowExpression
from .expression import (
    Expression,
    Number,
    Variable,
    Constant,
    UnaryOp,
    BinaryOp,
    Function,
    as_expression,
    fold_expression,
    iter_postorder,
    structurally_equal,
)
from .memory import MemoryConfig, MemoryStats, MemoryManager, MemoryMonitor
from .builder import ExpressionBuilder

# Rewriting
from .rewriter import Bindings, NoMatch, match, instantiate, PREDICATES, EXACT_PRELUDE
from .engine import (
    RuleEngine,
    RuleMetadata,
    RewriteStep,
    RewriteTrace,
    E,
    parse_sexpr,
    format_sexpr,
    parse_rule_line,
    load_rules_from_dsl,
)
from .rules import default_engine, FAMILY_PRIORITIES
from .simplifier import Simplifier, simplify

from .logging_config import setup_logging, get_logger

# Public API
__all__ = [
    "__version__",
    # Errors
    "ComputeError",
    "DivisionByZero",
    "UndefinedVariable",
    "DomainError",
    "Overflow",
    "Timeout",
    "UnsupportedOperation",
    # Numeric tower
    "MathConstant",
    "BinaryOperator",
    "UnaryOperator",
    "NumberValue",
    "Integer",
    "Rational",
    "Real",
    "Complex",
    "Float",
    "Symbolic",
    "parse_number",
    "promote_types",
    # Expressions
    "ExprCell",
    "SharedExpression",
    "CowExpression",
    "Expression",
    "Number",
    "Variable",
    "Constant",
    "UnaryOp",
    "BinaryOp",
    "Function",
    "as_expression",
    "fold_expression",
    "iter_postorder",
    "structurally_equal",
    # Memory
    "MemoryConfig",
    "MemoryStats",
    "MemoryManager",
    "MemoryMonitor",
    "ExpressionBuilder",
    # Rewriting
    "Bindings",
    "NoMatch",
    "match",
    "instantiate",
    "PREDICATES",
    "EXACT_PRELUDE",
    "RuleEngine",
    "RuleMetadata",
    "RewriteStep",
    "RewriteTrace",
    "E",
    "parse_sexpr",
    "format_sexpr",
    "parse_rule_line",
    "load_rules_from_dsl",
    "default_engine",
    "FAMILY_PRIORITIES",
    "Simplifier",
    "simplify",
    # Logging
    "setup_logging",
    "get_logger",
]
