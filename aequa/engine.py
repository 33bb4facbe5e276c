"""
Rule engine and rule DSL for AEQUA.

This module turns the primitives in rewriter.py into a rewrite engine:

- an S-expression reader and writer for Expression trees
- the rule DSL loader
- RuleMetadata, RewriteStep and RewriteTrace
- RuleEngine, which applies prioritized rules bottom-up to a fixed point

DSL Format:
    # Comment
    [group]
    @rule-name: pattern => skeleton
    @rule-name[priority] "Description text": pattern => skeleton
    @rule-name: pattern => skeleton when (predicate :x)

    Examples:
    [algebra]
    @add-zero: (+ ?x 0) => :x
    @pow-zero "Anything nonzero to the zeroth power": (^ ?x 0) => 1 when (nonzero :x)

Pattern syntax:
    ?x or ?x:expr      - match any expression, bind to x
    ?x:const           - match a number literal only
    ?x:var             - match a variable only

Skeleton syntax:
    :x      - substitute bound value of x
    literal - use as-is

Operators in S-expressions: + - * / ^ % neg pos abs. Any other head is a
function application; pi, e, i, inf and undefined are constants.

Tracing:
    Use RuleEngine.simplify(expr, trace=True) to see which rules are applied.
"""

import re
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from . import config
from .constants import MathConstant
from .errors import Timeout
from .expression import (
    Expression, Number, Variable, Constant, UnaryOp, BinaryOp, Function,
    as_expression, fold_expression,
)
from .logging_config import get_logger
from .numeric import parse_number
from .operators import BinaryOperator, UnaryOperator
from .rewriter import (
    Bindings, RuleFunction, _NoMatch, check_condition, instantiate,
    match as _match_internal, wrap_bindings,
)
from .shared import SharedExpression

logger = get_logger("engine")

ExprInput = Union[Expression, SharedExpression, str]

_BINARY_HEADS = {
    "+": BinaryOperator.ADD,
    "-": BinaryOperator.SUBTRACT,
    "*": BinaryOperator.MULTIPLY,
    "/": BinaryOperator.DIVIDE,
    "^": BinaryOperator.POWER,
    "%": BinaryOperator.MODULO,
}

_UNARY_HEADS = {
    "neg": UnaryOperator.NEGATE,
    "pos": UnaryOperator.PLUS,
    "abs": UnaryOperator.ABS,
}

_CONSTANT_ATOMS = ("pi", "π", "e", "i", "∞", "inf", "undefined", "γ", "φ")

_CONSTANT_NAMES = {
    MathConstant.PI: "pi",
    MathConstant.E: "e",
    MathConstant.I: "i",
    MathConstant.POSITIVE_INFINITY: "inf",
    MathConstant.NEGATIVE_INFINITY: "-inf",
}


# ============================================================
# S-expression reader
# ============================================================

def _tokenize(s: str) -> List[str]:
    return s.replace("(", " ( ").replace(")", " ) ").split()


def parse_atom(token: str) -> Expression:
    """
    Parse a single atom.

    Examples:
        "7" -> Number(7), "1/2" -> Number(1/2), "pi" -> Constant(π)
        "?x" -> pattern variable, "x" -> Variable("x")
    """
    if token in _CONSTANT_ATOMS:
        return Constant(MathConstant.from_name(token))
    if token[:1] in ("?", ":"):
        return Variable(token)
    try:
        return Number(parse_number(token))
    except ValueError:
        return Variable(token)


def build_node(head: str, args: List[Expression]) -> Expression:
    """
    Build the node an S-expression list denotes.

    `+` and `*` take any number (>= 2) of arguments and associate to the
    left; `-` and `+` with one argument are negation and unary plus.

    Raises:
        ValueError: if an operator is given the wrong number of arguments
    """
    if head in ("-", "+") and len(args) == 1:
        op = UnaryOperator.NEGATE if head == "-" else UnaryOperator.PLUS
        return UnaryOp(op, args[0])
    if head in _UNARY_HEADS:
        if len(args) != 1:
            raise ValueError(f"'{head}' takes one argument, got {len(args)}")
        return UnaryOp(_UNARY_HEADS[head], args[0])
    if head in _BINARY_HEADS:
        op = _BINARY_HEADS[head]
        variadic = op in (BinaryOperator.ADD, BinaryOperator.MULTIPLY)
        if len(args) < 2 or (len(args) > 2 and not variadic):
            raise ValueError(f"'{head}' cannot take {len(args)} arguments")
        result = BinaryOp(op, args[0], args[1])
        for arg in args[2:]:
            result = BinaryOp(op, result, arg)
        return result
    return Function(head, args)


def parse_sexpr(s: str) -> Expression:
    """
    Parse an S-expression string into an Expression.

    Examples:
        "(+ x 1)"          -> x + 1
        "(sin (neg x))"    -> sin(-x)
        "(^ (cos x) 2)"    -> cos(x) ^ 2

    Raises:
        ValueError: on empty input, unbalanced parentheses or bad arity
    """
    tokens = _tokenize(s)
    if not tokens:
        raise ValueError("Empty expression")

    # Each frame holds the tokens of one open list: [head, arg, arg, ...]
    stack: List[List[Any]] = [[]]
    for token in tokens:
        if token == "(":
            stack.append([])
        elif token == ")":
            if len(stack) == 1:
                raise ValueError(f"Unbalanced ')' in {s!r}")
            frame = stack.pop()
            if not frame or not isinstance(frame[0], str):
                raise ValueError(f"List without an operator in {s!r}")
            stack[-1].append(build_node(frame[0], frame[1:]))
        elif stack[-1] or len(stack) == 1:
            stack[-1].append(parse_atom(token))
        else:
            stack[-1].append(token)

    if len(stack) != 1:
        raise ValueError(f"Unbalanced '(' in {s!r}")
    if len(stack[0]) != 1:
        raise ValueError(f"Expected one expression in {s!r}")
    return stack[0][0]


def format_sexpr(expr: Expression) -> str:
    """
    Format an expression as an S-expression string.

    Examples:
        x + 1       -> "(+ x 1)"
        -sin(x)     -> "(neg (sin x))"
    """
    unary_names = {op: name for name, op in _UNARY_HEADS.items()}

    def combine(node: Expression, kids: List[str]) -> str:
        if isinstance(node, Number):
            return str(node.value)
        if isinstance(node, Variable):
            return node.name
        if isinstance(node, Constant):
            return _CONSTANT_NAMES.get(node.constant, node.constant.symbol)
        if isinstance(node, UnaryOp):
            return f"({unary_names[node.op]} {kids[0]})"
        if isinstance(node, BinaryOp):
            return f"({node.op.symbol} {kids[0]} {kids[1]})"
        return "(" + " ".join([node.name] + kids) + ")"

    return fold_expression(expr, combine)


def to_expression(expr: ExprInput) -> Expression:
    """Accept an Expression, a SharedExpression or S-expression text."""
    if isinstance(expr, str):
        return parse_sexpr(expr)
    return as_expression(expr)


# ============================================================
# Expression Builder
# ============================================================

class _ExprBuilder:
    """
    Quick expression construction for rules, tests and the REPL.

    Examples:
        from aequa import E

        expr = E("(+ x (* 2 y))")
        expr = E.op("+", "x", E.op("*", 2, "y"))
        x, y = E.vars("x", "y")
        E.op("sin", E.op("-", E.const("pi"), x))
    """

    def __call__(self, s: str) -> Expression:
        """Parse an S-expression string."""
        return parse_sexpr(s)

    def op(self, name: str, *args: Any) -> Expression:
        """
        Build a compound expression from an operator or function name.

        String arguments are read as atoms, numbers become literals.

        Examples:
            E.op("+", "x", 1)       -> x + 1
            E.op("sqrt", 2)         -> sqrt(2)
        """
        return build_node(name, [self._arg(a) for a in args])

    def _arg(self, value: Any) -> Expression:
        if isinstance(value, str):
            return parse_atom(value)
        return as_expression(value)

    def var(self, name: str) -> Variable:
        return Variable(name)

    def vars(self, *names: str) -> Tuple[Variable, ...]:
        """
        Create multiple variables for unpacking.

        Example:
            x, y, z = E.vars("x", "y", "z")
        """
        return tuple(Variable(n) for n in names)

    def const(self, value: Any) -> Expression:
        """A number literal, or a named constant when given a name such as "pi"."""
        if isinstance(value, (str, MathConstant)):
            return Constant(value)
        return Number(value)

    def __repr__(self) -> str:
        return "E (expression builder)"


# Singleton instance
E = _ExprBuilder()


# ============================================================
# Rules and their metadata
# ============================================================

class RuleMetadata:
    """Metadata for a rule including name, description, priority, and condition."""

    def __init__(self, name: Optional[str] = None, description: Optional[str] = None,
                 tags: Optional[List[str]] = None, condition: Optional[Expression] = None,
                 priority: int = 0):
        self.name = name
        self.description = description
        self.tags = tags or []
        self.condition = condition  # Optional guard such as (nonzero :x)
        self.priority = priority  # Higher priority fires first

    def label(self, index: int) -> str:
        return self.name or f"rule[{index}]"

    def __repr__(self) -> str:
        if self.name:
            base = f"@{self.name}[{self.priority}]" if self.priority else f"@{self.name}"
            if self.description:
                base += f" \"{self.description}\""
        else:
            base = "<anonymous>"
        if self.condition is not None:
            base += f" when {format_sexpr(self.condition)}"
        return base


class Rule:
    """A rewrite rule: rewrite(expr) returns the replacement or None."""

    def __init__(self, metadata: RuleMetadata):
        self.metadata = metadata

    def rewrite(self, expr: Expression) -> Optional[Expression]:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError


class PatternRule(Rule):
    """pattern => skeleton, optionally guarded by a predicate."""

    def __init__(self, pattern: Expression, skeleton: Expression, metadata: RuleMetadata):
        super().__init__(metadata)
        self.pattern = pattern
        self.skeleton = skeleton

    def bindings(self, expr: Expression) -> Optional[Dict[str, Expression]]:
        result = _match_internal(self.pattern, expr)
        if result is None or not check_condition(self.metadata.condition, result):
            return None
        return result

    def rewrite(self, expr: Expression) -> Optional[Expression]:
        result = self.bindings(expr)
        if result is None:
            return None
        return instantiate(self.skeleton, result)

    def describe(self) -> str:
        return f"{format_sexpr(self.pattern)} => {format_sexpr(self.skeleton)}"


class FunctionRule(Rule):
    """A procedural rule wrapping a function Expression -> Optional[Expression]."""

    def __init__(self, func: RuleFunction, metadata: RuleMetadata):
        super().__init__(metadata)
        self.func = func

    def rewrite(self, expr: Expression) -> Optional[Expression]:
        return self.func(expr)

    def describe(self) -> str:
        return f"<{getattr(self.func, '__name__', 'function')}>"


# ============================================================
# Rule DSL
# ============================================================

_RULE_HEADER = re.compile(r'@([\w-]+)(?:\[(-?\d+)\])?(?:\s+"([^"]*)")?:\s*(.+)')


def _split_when(rest: str) -> Tuple[str, Optional[str]]:
    """Split 'skeleton when condition' at a top-level 'when'."""
    depth = 0
    for i, c in enumerate(rest):
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
        elif depth == 0 and rest.startswith("when", i) and (i == 0 or rest[i - 1].isspace()):
            after = i + 4
            if after == len(rest) or rest[after].isspace():
                return rest[:i].strip(), rest[after:].strip()
    return rest.strip(), None


def parse_rule_line(line: str, default_priority: int = 0
                    ) -> Optional[Tuple[RuleMetadata, Expression, Expression]]:
    """
    Parse a single rule line.

    Formats:
        @name: pattern => skeleton
        @name[priority] "description": pattern => skeleton
        @name: pattern => skeleton when condition
        pattern => skeleton

    Returns: (metadata, pattern, skeleton) or None if the line holds no rule

    Raises:
        ValueError: if the pattern, skeleton or condition cannot be parsed
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    metadata = RuleMetadata(priority=default_priority)
    if line.startswith("@"):
        header = _RULE_HEADER.match(line)
        if header is None:
            raise ValueError(f"Malformed rule header: {line}")
        metadata.name = header.group(1)
        if header.group(2) is not None:
            metadata.priority = int(header.group(2))
        metadata.description = header.group(3)
        line = header.group(4)

    if "=>" not in line:
        return None

    pattern_str, rest = line.split("=>", 1)
    skeleton_str, condition_str = _split_when(rest)
    if condition_str:
        metadata.condition = parse_sexpr(condition_str)
    return metadata, parse_sexpr(pattern_str), parse_sexpr(skeleton_str)


def load_rules_from_dsl(text: str, default_priority: int = 0
                        ) -> List[Tuple[RuleMetadata, Expression, Expression]]:
    """
    Load rules from DSL text.

    A [groupname] line tags every following rule with that group.

    Example:
        [algebra]
        @add-zero: (+ ?x 0) => :x

        [induction]
        @sin-neg: (sin (neg ?x)) => (neg (sin :x))

    Returns:
        List of (metadata, pattern, skeleton) tuples
    """
    rules = []
    current_group = None
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped.startswith("[") and stripped.endswith("]"):
            current_group = stripped[1:-1].strip()
            continue
        result = parse_rule_line(stripped, default_priority)
        if result:
            metadata, pattern, skeleton = result
            if current_group and current_group not in metadata.tags:
                metadata.tags.append(current_group)
            rules.append(result)
    return rules


# ============================================================
# Tracing
# ============================================================

class RewriteStep:
    """A single step in a rewriting trace."""

    def __init__(self, rule_index: int, metadata: RuleMetadata,
                 before: Expression, after: Expression):
        self.rule_index = rule_index
        self.metadata = metadata
        self.before = before
        self.after = after

    @property
    def rule_name(self) -> str:
        return self.metadata.label(self.rule_index)

    def __repr__(self) -> str:
        return f"{self.rule_name}: {self.before} → {self.after}"

    def to_dict(self) -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "rule_index": self.rule_index,
            "rule_name": self.metadata.name,
            "description": self.metadata.description,
            "before": str(self.before),
            "after": str(self.after),
        }


class RewriteTrace:
    """
    A trace of all rewriting steps applied.

    Provides multiple formatting options:
        - Default repr: verbose multi-line format
        - format("compact"): single line showing rule chain
        - format("rules"): just the rule names applied
        - format("chain"): the expression after every step
        - to_dict(): JSON-serializable dictionary
    """

    def __init__(self):
        self.steps: List[RewriteStep] = []
        self.initial: Optional[Expression] = None
        self.final: Optional[Expression] = None
        self.passes = 0

    def add_step(self, step: RewriteStep):
        self.steps.append(step)

    def format(self, style: str = "verbose") -> str:
        """
        Format the trace in different styles.

        Args:
            style: One of "verbose", "compact", "rules", "chain"
        """
        if style == "compact":
            return f"{self.initial} --[{', '.join(self.rules_applied())}]--> {self.final}"
        if style == "rules":
            rules = self.rules_applied()
            return " -> ".join(rules) if rules else "(no rules applied)"
        if style == "chain":
            parts = [str(self.initial)]
            for step in self.steps:
                parts.append(f"  --({step.rule_name})-->")
                parts.append(str(step.after))
            return "\n".join(parts)
        return repr(self)

    def __repr__(self) -> str:
        lines = [f"Initial: {self.initial}"]
        for i, step in enumerate(self.steps, 1):
            if step.metadata.description:
                lines.append(f"  {i}. {step.metadata} ({step.before} → {step.after})")
            else:
                lines.append(f"  {i}. {step}")
        lines.append(f"Final: {self.final}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[RewriteStep]:
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any rewriting was done."""
        return len(self.steps) > 0

    def to_dict(self) -> Dict:
        """Convert trace to dictionary for JSON serialization."""
        return {
            "initial": str(self.initial),
            "final": str(self.final),
            "steps": [step.to_dict() for step in self.steps],
            "step_count": len(self.steps),
            "passes": self.passes,
        }

    def rule_counts(self) -> Dict[str, int]:
        """Count how many times each rule was applied."""
        counts: Dict[str, int] = {}
        for step in self.steps:
            counts[step.rule_name] = counts.get(step.rule_name, 0) + 1
        return counts

    def rules_applied(self) -> List[str]:
        """Rule names in order of application."""
        return [step.rule_name for step in self.steps]

    def summary(self) -> str:
        """A brief summary of the rewriting."""
        if not self.steps:
            return "No rewriting performed"
        counts = self.rule_counts()
        most_used = max(counts.items(), key=lambda x: x[1])
        return (f"{len(self.steps)} steps using {len(counts)} unique rules. "
                f"Most used: {most_used[0]} ({most_used[1]}x)")


# ============================================================
# Rule Engine
# ============================================================

class RuleEngine:
    """
    A prioritized rewrite engine over Expression trees.

    Rules are tried in descending priority (insertion order among equals).
    simplify() rewrites bottom-up, one pass at a time, until a pass leaves
    the tree unchanged.

    Example:
        engine = RuleEngine.from_dsl('''
            @add-zero "Adding zero has no effect": (+ ?x 0) => :x
            @mul-one: (* ?x 1) => :x
        ''')
        engine(E("(+ (* y 1) 0)"))   # => y
    """

    def __init__(self, max_passes: Optional[int] = None,
                 max_node_rewrites: Optional[int] = None):
        self._rules: List[Rule] = []
        self._rule_names: Dict[str, int] = {}
        self._disabled_groups: set = set()
        self.max_passes = max_passes or config.MAX_REWRITE_PASSES
        self.max_node_rewrites = max_node_rewrites or config.MAX_NODE_REWRITES

    def _sort_by_priority(self) -> None:
        """Stable sort by descending priority; rebuild the name index."""
        self._rules.sort(key=lambda rule: -rule.metadata.priority)
        self._rule_names = {}
        for idx, rule in enumerate(self._rules):
            if rule.metadata.name:
                self._rule_names[rule.metadata.name] = idx

    def _add(self, rule: Rule) -> "RuleEngine":
        self._rules.append(rule)
        self._sort_by_priority()
        return self

    # ------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------

    def load_dsl(self, text: str, priority: int = 0) -> "RuleEngine":
        """Load rules from DSL text. `priority` applies to rules that do not set one."""
        for metadata, pattern, skeleton in load_rules_from_dsl(text, priority):
            self._rules.append(PatternRule(pattern, skeleton, metadata))
        self._sort_by_priority()
        return self

    def add_rule(self, pattern: Union[str, Expression], skeleton: Union[str, Expression],
                 name: Optional[str] = None, description: Optional[str] = None,
                 priority: int = 0, tags: Optional[List[str]] = None,
                 condition: Union[str, Expression, None] = None) -> "RuleEngine":
        """Add a single pattern rule with optional metadata."""
        if isinstance(condition, str):
            condition = parse_sexpr(condition)
        metadata = RuleMetadata(name=name, description=description, tags=list(tags or []),
                                condition=condition, priority=priority)
        return self._add(PatternRule(to_expression(pattern), to_expression(skeleton), metadata))

    def add_function_rule(self, func: RuleFunction, name: Optional[str] = None,
                          description: Optional[str] = None, priority: int = 0,
                          tags: Optional[List[str]] = None) -> "RuleEngine":
        """
        Add a procedural rule.

        The function receives one node and returns its replacement, or None
        when it does not apply.
        """
        metadata = RuleMetadata(name=name or func.__name__.replace("_", "-"),
                                description=description or (func.__doc__ or "").strip().split("\n")[0] or None,
                                tags=list(tags or []), priority=priority)
        return self._add(FunctionRule(func, metadata))

    def get_rule(self, name: str) -> Optional[Rule]:
        if name in self._rule_names:
            return self._rules[self._rule_names[name]]
        return None

    def clear(self) -> "RuleEngine":
        self._rules = []
        self._rule_names = {}
        return self

    # ------------------------------------------------------------
    # Group Management
    # ------------------------------------------------------------

    def disable_group(self, group: str) -> "RuleEngine":
        """Disable all rules in a group."""
        self._disabled_groups.add(group)
        return self

    def enable_group(self, group: str) -> "RuleEngine":
        """Enable all rules in a group."""
        self._disabled_groups.discard(group)
        return self

    def groups(self) -> set:
        """All group names used by rules."""
        all_groups = set()
        for rule in self._rules:
            all_groups.update(rule.metadata.tags)
        return all_groups

    def _is_rule_active(self, metadata: RuleMetadata, groups: Optional[List[str]] = None) -> bool:
        """
        Whether a rule takes part given the group settings.

        With explicit groups only rules in one of them (and untagged rules)
        are active; otherwise every rule outside a disabled group is.
        """
        if not metadata.tags:
            return True
        if groups is not None:
            return any(g in groups for g in metadata.tags)
        return not any(g in self._disabled_groups for g in metadata.tags)

    def _active_rules(self, groups: Optional[List[str]] = None) -> List[Tuple[int, Rule]]:
        return [(idx, rule) for idx, rule in enumerate(self._rules)
                if self._is_rule_active(rule.metadata, groups)]

    # ------------------------------------------------------------
    # Single-node operations
    # ------------------------------------------------------------

    def match(self, pattern: Union[str, Expression], expr: ExprInput) -> Union[Bindings, _NoMatch]:
        """
        Match a pattern against an expression.

        Example:
            if bindings := engine.match("(+ ?a ?b)", expr):
                print(bindings["a"], bindings["b"])
        """
        return wrap_bindings(_match_internal(to_expression(pattern), to_expression(expr)))

    def apply_once(self, expr: ExprInput, groups: Optional[List[str]] = None
                   ) -> Tuple[Expression, Optional[RuleMetadata]]:
        """
        Apply at most one rule at the root of the expression.

        Returns:
            (result, metadata of the applied rule) or (expr, None)
        """
        expr = to_expression(expr)
        for _, rule in self._active_rules(groups):
            result = rule.rewrite(expr)
            if result is not None and result != expr:
                return result, rule.metadata
        return expr, None

    def rules_matching(self, expr: ExprInput, groups: Optional[List[str]] = None
                       ) -> List[Tuple[RuleMetadata, Expression]]:
        """
        Every rule that would rewrite the root of the expression, with its result.

        Useful for understanding why an expression isn't simplifying.
        """
        expr = to_expression(expr)
        matching = []
        for _, rule in self._active_rules(groups):
            result = rule.rewrite(expr)
            if result is not None and result != expr:
                matching.append((rule.metadata, result))
        return matching

    # ------------------------------------------------------------
    # Simplification
    # ------------------------------------------------------------

    def simplify(self, expr: ExprInput, trace: bool = False,
                 max_passes: Optional[int] = None, strategy: str = "bottomup",
                 groups: Optional[List[str]] = None):
        """
        Simplify an expression using all active rules.

        Args:
            expr: Expression, SharedExpression or S-expression text
            trace: If True, return (result, trace)
            max_passes: Pass budget (default: the engine's max_passes)
            strategy:
                - "bottomup": rewrite children before parents, repeat until
                  a pass changes nothing (default)
                - "once": apply at most one rule, at the innermost-leftmost
                  node where one fires
            groups: If specified, only use rules from these groups.

        Raises:
            Timeout: when no fixed point is reached within max_passes; the
                exception carries the last intermediate form as `partial`
            ValueError: for an unknown strategy
        """
        expr = to_expression(expr)
        rules = self._active_rules(groups)
        rewrite_trace = RewriteTrace() if trace else None
        if rewrite_trace is not None:
            rewrite_trace.initial = expr

        if strategy == "bottomup":
            result = self._simplify_bottomup(expr, rules, max_passes or self.max_passes, rewrite_trace)
        elif strategy == "once":
            result = self._simplify_once(expr, rules, rewrite_trace)
        else:
            raise ValueError(f"Unknown strategy: {strategy}")

        if rewrite_trace is not None:
            rewrite_trace.final = result
            return result, rewrite_trace
        return result

    def _try_rules(self, node: Expression, rules: List[Tuple[int, Rule]],
                   trace: Optional[RewriteTrace]) -> Optional[Expression]:
        for idx, rule in rules:
            result = rule.rewrite(node)
            if result is not None and result != node:
                if trace is not None:
                    trace.add_step(RewriteStep(idx, rule.metadata, node, result))
                return result
        return None

    def _rewrite_node(self, node: Expression, rules: List[Tuple[int, Rule]],
                      trace: Optional[RewriteTrace]) -> Expression:
        for _ in range(self.max_node_rewrites):
            result = self._try_rules(node, rules, trace)
            if result is None:
                break
            node = result
        return node

    def _bottomup_pass(self, expr: Expression, rules: List[Tuple[int, Rule]],
                       trace: Optional[RewriteTrace]) -> Expression:
        return fold_expression(
            expr, lambda node, kids: self._rewrite_node(node.with_children(kids), rules, trace))

    def _simplify_bottomup(self, expr: Expression, rules: List[Tuple[int, Rule]],
                           max_passes: int, trace: Optional[RewriteTrace]) -> Expression:
        current = expr
        for passes in range(1, max_passes + 1):
            result = self._bottomup_pass(current, rules, trace)
            if trace is not None:
                trace.passes = passes
            if result is current or result == current:
                logger.debug("fixed point after %d passes", passes)
                return result
            current = result
        logger.debug("no fixed point after %d passes", max_passes)
        raise Timeout(max_passes, partial=current)

    def _simplify_once(self, expr: Expression, rules: List[Tuple[int, Rule]],
                       trace: Optional[RewriteTrace]) -> Expression:
        done = False

        def combine(node: Expression, kids: List[Expression]) -> Expression:
            nonlocal done
            node = node.with_children(kids)
            if done:
                return node
            result = self._try_rules(node, rules, trace)
            if result is None:
                return node
            done = True
            return result

        return fold_expression(expr, combine)

    # ------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------

    def list_rules(self) -> List[str]:
        """All rules in DSL format, in the order they are tried."""
        lines = []
        for rule in self._rules:
            meta = rule.metadata
            name_part = ""
            if meta.name:
                name_part = f"@{meta.name}[{meta.priority}]" if meta.priority else f"@{meta.name}"
                if meta.description:
                    name_part += f" \"{meta.description}\""
                name_part += ": "
            text = f"{name_part}{rule.describe()}"
            if meta.condition is not None:
                text += f" when {format_sexpr(meta.condition)}"
            lines.append(text)
        return lines

    @property
    def rules(self) -> List[Rule]:
        return self._rules.copy()

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleEngine({len(self._rules)} rules)"

    def __call__(self, expr: ExprInput, **kwargs):
        """engine(expr) is shorthand for engine.simplify(expr)."""
        return self.simplify(expr, **kwargs)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __contains__(self, name: str) -> bool:
        """Check if a named rule exists: 'add-zero' in engine."""
        return name in self._rule_names

    def __getitem__(self, name: str) -> Rule:
        """Get rule by name: engine['add-zero']."""
        if name not in self._rule_names:
            raise KeyError(f"No rule named '{name}'")
        return self._rules[self._rule_names[name]]

    @classmethod
    def from_dsl(cls, text: str, **kwargs) -> "RuleEngine":
        """Create engine from DSL text."""
        return cls(**kwargs).load_dsl(text)

    def copy(self) -> "RuleEngine":
        new_engine = RuleEngine(self.max_passes, self.max_node_rewrites)
        new_engine._rules = self._rules.copy()
        new_engine._rule_names = self._rule_names.copy()
        new_engine._disabled_groups = set(self._disabled_groups)
        return new_engine

    def __or__(self, other: "RuleEngine") -> "RuleEngine":
        """Union of two engines: engine1 | engine2."""
        result = self.copy()
        result._rules.extend(other._rules)
        result._sort_by_priority()
        return result
