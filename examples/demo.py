#!/usr/bin/env python3
"""
AEQUA Feature Demonstration

Walks through the numeric tower, shared expressions, the pooled builder
and the simplifier.
"""

from fractions import Fraction

from aequa import (
    E, Integer, Rational, Real, Complex, Float,
    SharedExpression, CowExpression, Variable,
    ExpressionBuilder, MemoryManager, MemoryMonitor,
    RuleEngine, Simplifier, Timeout, format_sexpr, setup_logging,
)


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_numbers():
    """Exact arithmetic and promotion."""
    section("Numeric Tower")

    examples = [
        ("2^100 + 2^100", Integer(2) ** 100 + Integer(2) ** 100),
        ("1/3 + 1/3 + 1/3", Rational(Fraction(1, 3)) * 3),
        ("1 + 1/2", Integer(1) + Rational(Fraction(1, 2))),
        ("1/4 + 0.5 (Real)", Rational(Fraction(1, 4)) + Real("0.5")),
        ("(1+i)(1-i)", Complex(Integer(1), Integer(1)) * Complex(Integer(1), Integer(-1))),
        ("5 / 0", Integer(5) / Integer(0)),
        ("0.5 (Float) + 1", Float(0.5) + Integer(1)),
        ("sqrt(16)", Integer(16).sqrt()),
        ("sqrt(2)", Integer(2).sqrt()),
    ]

    for desc, value in examples:
        print(f"  {desc:20} => {value}  [{value.numeric_type()}]")


def demo_sharing():
    """Reference-counted handles and copy-on-write."""
    section("Shared Expressions")

    s1 = SharedExpression(E("(+ x (* 2 y))"))
    s2 = s1.clone_shared()
    print(f"  after clone: ref_count={s1.ref_count()} unique={s1.is_unique()}")
    s2.release()
    print(f"  after release: ref_count={s1.ref_count()} unique={s1.is_unique()}")

    base = SharedExpression(Variable("x"))
    view = CowExpression(base)
    view.set(Variable("y"))
    print(f"  copy-on-write: view={view.as_ref()} base={base.value}")


def demo_builder():
    """Pooled construction with build-time identities."""
    section("Expression Builder")

    manager = MemoryManager()
    b = ExpressionBuilder(manager)
    x = b.variable("x")

    examples = [
        ("x + 0", b.add(x, b.integer(0))),
        ("x + x", b.add(x, x)),
        ("x - x", b.subtract(x, x)),
        ("-1 * x", b.multiply(-1, x)),
        ("x ^ 1", b.power(x, 1)),
    ]
    for desc, handle in examples:
        print(f"  {desc:8} => {handle}")

    stats = manager.get_stats()
    print(f"\n  pooled={len(manager)} hits={stats.cache_hits} "
          f"misses={stats.cache_misses} hit rate={stats.hit_rate():.0%}")

    monitor = MemoryMonitor(manager, interval=0)
    checked = monitor.check()
    print(f"  monitor: {checked.active_expressions} active, "
          f"~{checked.estimated_memory_usage} bytes")


def demo_simplifier():
    """The built-in rule families."""
    section("Simplification")

    simplifier = Simplifier()
    examples = [
        "(+ x 0)",
        "(sin (neg x))",
        "(+ (^ (sin x) 2) (^ (cos x) 2))",
        "(sqrt 12)",
        "(cos (/ pi 4))",
        "(sin (+ x (* 2 pi)))",
        "(tan (/ pi 2))",
        "(- (* 3 x) (neg x))",
    ]

    for expr_str in examples:
        result = simplifier(E(expr_str))
        print(f"  {expr_str:36} => {result}")


def demo_tracing():
    """Which rules fired."""
    section("Tracing")

    result, trace = Simplifier().simplify_traced(E("(+ (* (sin (neg x)) 1) 0)"))
    print("  Verbose format (default):")
    for line in repr(trace).split("\n"):
        print(f"    {line}")

    print(f"\n  Compact: {trace.format('compact')}")
    print(f"  Rules: {trace.format('rules')}")
    print(f"  Summary: {trace.summary()}")


def demo_custom_rules():
    """User rules, groups and the pass budget."""
    section("Custom Rules")

    engine = RuleEngine.from_dsl('''
        [algebra]
        @add-zero: (+ ?x 0) => :x
        @pow-zero "Anything nonzero to the zeroth power": (^ ?x 0) => 1 when (nonzero :x)

        [expand]
        @square: (square ?x) => (* :x :x)
    ''')

    for line in engine.list_rules():
        print(f"  {line}")

    expr = E("(+ (square (^ pi 0)) 0)")
    print(f"\n  Expression: {format_sexpr(expr)}")
    print(f"  All groups: {format_sexpr(engine(expr))}")
    print(f"  Only [algebra]: {format_sexpr(engine.simplify(expr, groups=['algebra']))}")

    looping = RuleEngine.from_dsl("@grow: (g ?x) => (g (h :x))", max_passes=2, max_node_rewrites=2)
    try:
        looping(E("(g a)"))
    except Timeout as e:
        print(f"\n  {e}; partial result: {format_sexpr(e.partial)}")


def main():
    """Run all demonstrations."""
    setup_logging()
    print("AEQUA - Algebraic Expressions, Exact and Unified Arithmetic")
    print("Feature Demonstration")

    demo_numbers()
    demo_sharing()
    demo_builder()
    demo_simplifier()
    demo_tracing()
    demo_custom_rules()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60)


if __name__ == "__main__":
    main()
