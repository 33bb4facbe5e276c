"""
Expression graph for AEQUA.

Expressions are immutable tagged variants:

    Number(value)            - a NumberValue literal
    Variable(name)           - a free variable
    Constant(constant)       - a MathConstant such as π or e
    UnaryOp(op, operand)     - negation, unary plus, absolute value
    BinaryOp(op, left, right)
    Function(name, args)     - sin(x), sqrt(2), ...

Children are held through SharedExpression handles, so identical subtrees
can be shared by many parents. Each node computes its structural hash once,
at construction, from its tag, payload and the already-cached hashes of its
children.

Every traversal (display, equality, substitution, evaluation) runs on an
explicit stack, so deep trees do not hit the interpreter's recursion limit.
"""

import cmath
import math
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

from .constants import MathConstant
from .errors import DivisionByZero, DomainError, Overflow, UndefinedVariable, UnsupportedOperation
from .numeric import NumberValue, Complex, Float, Integer, Symbolic
from .operators import BinaryOperator, UnaryOperator, UNARY_PRECEDENCE
from .shared import SharedExpression

ChildType = Union["Expression", SharedExpression, NumberValue, int]

# Display precedence of atoms (never parenthesized)
_ATOM = 100


def _share(child: Any) -> SharedExpression:
    """Handle owned by a parent node for the given child."""
    if isinstance(child, SharedExpression):
        return child.clone_shared()
    if isinstance(child, Expression):
        return SharedExpression(child)
    return SharedExpression(Number(child))


def as_expression(value: Any) -> "Expression":
    """Coerce a NumberValue, python number or handle into an Expression.

    A Symbolic number unwraps to the expression it carries.
    """
    if isinstance(value, Expression):
        return value
    if isinstance(value, SharedExpression):
        return value.value
    if isinstance(value, Symbolic):
        return value.expression
    return Number(value)


# ============================================================
# Node classes
# ============================================================

class Expression:
    """Base class of all expression nodes."""

    __slots__ = ("_hash", "_children")

    tag = "expression"

    def __init__(self, children: Tuple[SharedExpression, ...], payload_hash: Any):
        self._children = children
        self._hash = hash((self.tag, payload_hash) + tuple(hash(c.value) for c in children))

    # Structure -------------------------------------------------

    def children(self) -> Tuple["Expression", ...]:
        """Child expressions, in order."""
        return tuple(c.value for c in self._children)

    def children_shared(self) -> List[SharedExpression]:
        """New holders for each child node."""
        return [c.clone_shared() for c in self._children]

    def with_children(self, children: Sequence["Expression"]) -> "Expression":
        """Same node with its children replaced; returns self when nothing changed."""
        return self

    def payload(self) -> Any:
        """The non-child data that distinguishes nodes of one tag."""
        raise NotImplementedError

    def is_number(self) -> bool:
        return False

    # Identity --------------------------------------------------

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Expression):
            return NotImplemented
        return structurally_equal(self, other)

    def __ne__(self, other: Any) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __str__(self) -> str:
        return to_string(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"

    def estimated_size(self) -> int:
        """Rough byte footprint of this node alone."""
        return 56 + 8 * len(self._children)

    # Queries ---------------------------------------------------

    def variables(self) -> Set[str]:
        """Names of all variables occurring in the expression."""
        return {node.name for node in iter_postorder(self) if isinstance(node, Variable)}

    def complexity(self) -> int:
        """Number of nodes in the expression tree."""
        return sum(1 for _ in iter_postorder(self))

    def is_constant(self) -> bool:
        return not any(isinstance(node, Variable) for node in iter_postorder(self))

    def depth(self) -> int:
        return fold_expression(self, lambda node, kids: 1 + max(kids, default=0))

    # Transformations -------------------------------------------

    def substitute(self, mapping: Mapping[str, Any]) -> "Expression":
        """Replace variables by expressions (or numbers).

        Example:
            E("(+ x 1)").substitute({"x": 2}) -> 2 + 1
        """
        replacements = {name: as_expression(value) for name, value in mapping.items()}

        def combine(node: Expression, kids: List[Expression]) -> Expression:
            if isinstance(node, Variable) and node.name in replacements:
                return replacements[node.name]
            return node.with_children(kids)

        return fold_expression(self, combine)

    def evaluate(self, bindings: Optional[Mapping[str, Any]] = None) -> NumberValue:
        """Evaluate exactly with the numeric tower.

        Parts that have no exact value (sin(1), π, ...) come back Symbolic.

        Raises:
            UndefinedVariable: if a variable has no binding
        """
        env = {name: _coerce_number(value) for name, value in (bindings or {}).items()}
        return fold_expression(self, lambda node, kids: node._evaluate(kids, env))

    def approximate(self, bindings: Optional[Mapping[str, Any]] = None) -> Union[float, complex]:
        """Evaluate numerically with floats (complex where needed).

        Raises:
            UndefinedVariable: if a variable has no binding
            DivisionByZero: on a zero divisor
            DomainError: on math domain violations such as ln(0)
            Overflow: when the float range is exceeded
        """
        env = {name: _to_python(_coerce_number(value), {}) for name, value in (bindings or {}).items()}
        return fold_expression(self, lambda node, kids: node._approximate(kids, env))

    def _evaluate(self, kids: List[NumberValue], env: Dict[str, NumberValue]) -> NumberValue:
        raise NotImplementedError

    def _approximate(self, kids: list, env: Dict[str, Any]):
        raise NotImplementedError

    def _display(self, kids: List[Tuple[str, int]]) -> Tuple[str, int]:
        raise NotImplementedError


class Number(Expression):
    """A numeric literal."""

    __slots__ = ("value",)
    tag = "number"

    def __init__(self, value: Any):
        self.value = _coerce_number(value)
        super().__init__((), self.payload())

    def payload(self) -> Tuple[str, NumberValue]:
        # The variant is part of the identity: Real 1.0 is not Integer 1
        return self.value.kind, self.value

    def is_number(self) -> bool:
        return True

    def estimated_size(self) -> int:
        raw = getattr(self.value, "value", 0)
        if isinstance(raw, int):
            return 48 + raw.bit_length() // 8
        return 64

    def _evaluate(self, kids, env):
        return self.value

    def _approximate(self, kids, env):
        return _to_python(self.value, env)

    def _display(self, kids):
        text = str(self.value)
        value = self.value
        if isinstance(value, Symbolic):
            return f"({text})", _ATOM
        if isinstance(value, Complex) and not value.imag.is_zero():
            if value.real.is_zero():
                return text, UNARY_PRECEDENCE if text.startswith("-") else BinaryOperator.MULTIPLY.precedence
            return text, BinaryOperator.ADD.precedence
        if text.startswith("-"):
            return text, UNARY_PRECEDENCE
        if "/" in text:
            return text, BinaryOperator.DIVIDE.precedence
        return text, _ATOM


class Variable(Expression):
    """A named free variable."""

    __slots__ = ("name",)
    tag = "variable"

    def __init__(self, name: str):
        self.name = name
        super().__init__((), name)

    def payload(self) -> str:
        return self.name

    def estimated_size(self) -> int:
        return 56 + len(self.name)

    def _evaluate(self, kids, env):
        if self.name not in env:
            raise UndefinedVariable(self.name)
        return env[self.name]

    def _approximate(self, kids, env):
        if self.name not in env:
            raise UndefinedVariable(self.name)
        return env[self.name]

    def _display(self, kids):
        return self.name, _ATOM


class Constant(Expression):
    """A named mathematical constant."""

    __slots__ = ("constant",)
    tag = "constant"

    def __init__(self, constant: Union[MathConstant, str]):
        if not isinstance(constant, MathConstant):
            constant = MathConstant.from_name(constant)
        self.constant = constant
        super().__init__((), constant.name)

    def payload(self) -> MathConstant:
        return self.constant

    def estimated_size(self) -> int:
        return 40

    def _evaluate(self, kids, env):
        if self.constant is MathConstant.I:
            return Complex(Integer(0), Integer(1))
        return Symbolic(self)

    def _approximate(self, kids, env):
        if self.constant is MathConstant.I:
            return 1j
        value = self.constant.approximate()
        if value is None:
            raise DomainError("undefined has no numeric value")
        return value

    def _display(self, kids):
        text = self.constant.symbol
        return text, UNARY_PRECEDENCE if text.startswith("-") else _ATOM


class UnaryOp(Expression):
    """Prefix operator applied to one operand."""

    __slots__ = ("op",)
    tag = "unary"

    def __init__(self, op: UnaryOperator, operand: ChildType):
        self.op = op
        super().__init__((_share(operand),), op.name)

    @property
    def operand(self) -> Expression:
        return self._children[0].value

    @property
    def operand_shared(self) -> SharedExpression:
        return self._children[0].clone_shared()

    def payload(self) -> UnaryOperator:
        return self.op

    def with_children(self, children):
        if children[0] is self.operand:
            return self
        return UnaryOp(self.op, children[0])

    def _evaluate(self, kids, env):
        value = kids[0]
        if self.op is UnaryOperator.NEGATE:
            return value.neg()
        if self.op is UnaryOperator.ABS:
            return value.abs()
        return value

    def _approximate(self, kids, env):
        value = kids[0]
        if self.op is UnaryOperator.NEGATE:
            return -value
        if self.op is UnaryOperator.ABS:
            return abs(value)
        return value

    def _display(self, kids):
        text, prec = kids[0]
        if self.op is UnaryOperator.ABS:
            return f"|{text}|", _ATOM
        if prec < BinaryOperator.POWER.precedence:
            text = f"({text})"
        sign = "-" if self.op is UnaryOperator.NEGATE else "+"
        return f"{sign}{text}", UNARY_PRECEDENCE


class BinaryOp(Expression):
    """Infix operator applied to two operands. Operand order is significant."""

    __slots__ = ("op",)
    tag = "binary"

    def __init__(self, op: BinaryOperator, left: ChildType, right: ChildType):
        self.op = op
        super().__init__((_share(left), _share(right)), op.name)

    @property
    def left(self) -> Expression:
        return self._children[0].value

    @property
    def right(self) -> Expression:
        return self._children[1].value

    @property
    def left_shared(self) -> SharedExpression:
        return self._children[0].clone_shared()

    @property
    def right_shared(self) -> SharedExpression:
        return self._children[1].clone_shared()

    def payload(self) -> BinaryOperator:
        return self.op

    def with_children(self, children):
        left, right = children
        if left is self.left and right is self.right:
            return self
        return BinaryOp(self.op, left, right)

    def _evaluate(self, kids, env):
        left, right = kids
        op = self.op
        if op is BinaryOperator.ADD:
            return left.add(right)
        if op is BinaryOperator.SUBTRACT:
            return left.sub(right)
        if op is BinaryOperator.MULTIPLY:
            return left.mul(right)
        if op is BinaryOperator.DIVIDE:
            return left.div(right)
        if op is BinaryOperator.MODULO:
            return left.mod(right)
        return left.power(right)

    def _approximate(self, kids, env):
        left, right = kids
        op = self.op
        try:
            if op is BinaryOperator.ADD:
                result = left + right
            elif op is BinaryOperator.SUBTRACT:
                result = left - right
            elif op is BinaryOperator.MULTIPLY:
                result = left * right
            elif op is BinaryOperator.DIVIDE:
                result = left / right
            elif op is BinaryOperator.MODULO:
                result = left % right
            else:
                result = left ** right
        except ZeroDivisionError:
            raise DivisionByZero(f"{self}") from None
        except OverflowError:
            raise Overflow(f"{self} out of float range") from None
        except TypeError:
            raise DomainError(f"{op.symbol} is undefined for complex operands") from None
        _check_finite(result, left, right)
        return result

    def _display(self, kids):
        (ltext, lprec), (rtext, rprec) = kids
        prec = self.op.precedence
        right_assoc = self.op.is_right_associative()
        if lprec < prec or (lprec == prec and right_assoc):
            ltext = f"({ltext})"
        if rprec < prec or (rprec == prec and not right_assoc) or rtext.startswith("-"):
            rtext = f"({rtext})"
        return f"{ltext} {self.op.symbol} {rtext}", prec


class Function(Expression):
    """Named function application, e.g. sin(x) or sqrt(2)."""

    __slots__ = ("name",)
    tag = "function"

    def __init__(self, name: str, args: Sequence[ChildType]):
        self.name = name
        super().__init__(tuple(_share(a) for a in args), name)

    @property
    def args(self) -> Tuple[Expression, ...]:
        return self.children()

    @property
    def arg(self) -> Expression:
        """The first argument; convenient for unary functions."""
        return self._children[0].value

    def args_shared(self) -> List[SharedExpression]:
        return self.children_shared()

    def payload(self) -> str:
        return self.name

    def estimated_size(self) -> int:
        return 64 + len(self.name) + 8 * len(self._children)

    def with_children(self, children):
        if all(new is old for new, old in zip(children, self.children())):
            return self
        return Function(self.name, children)

    def _evaluate(self, kids, env):
        return _evaluate_function(self.name, kids)

    def _approximate(self, kids, env):
        return _approximate_function(self.name, kids)

    def _display(self, kids):
        return f"{self.name}({', '.join(text for text, _ in kids)})", _ATOM


# ============================================================
# Iterative traversal
# ============================================================

def iter_postorder(expr: Expression) -> Iterator[Expression]:
    """Yield every node, children before parents, without recursion."""
    stack: List[Tuple[Expression, bool]] = [(expr, False)]
    while stack:
        node, expanded = stack.pop()
        children = node.children()
        if expanded or not children:
            yield node
        else:
            stack.append((node, True))
            for child in reversed(children):
                stack.append((child, False))


def fold_expression(expr: Expression, combine: Callable[[Expression, list], Any]) -> Any:
    """Bottom-up fold: combine(node, child_results) for every node.

    Children are combined before their parent, left to right, using an
    explicit stack.
    """
    results: list = []
    stack: List[Tuple[Expression, bool]] = [(expr, False)]
    while stack:
        node, expanded = stack.pop()
        children = node.children()
        if expanded or not children:
            count = len(children)
            if count:
                kids = results[-count:]
                del results[-count:]
            else:
                kids = []
            results.append(combine(node, kids))
        else:
            stack.append((node, True))
            for child in reversed(children):
                stack.append((child, False))
    return results[0]


def structurally_equal(a: Expression, b: Expression) -> bool:
    """Structural comparison using cached hashes to reject early."""
    stack = [(a, b)]
    while stack:
        x, y = stack.pop()
        if x is y:
            continue
        if x._hash != y._hash or type(x) is not type(y):
            return False
        if x.payload() != y.payload() or len(x._children) != len(y._children):
            return False
        for cx, cy in zip(x._children, y._children):
            if cx.cell is not cy.cell:
                stack.append((cx.value, cy.value))
    return True


def to_string(expr: Expression) -> str:
    """Canonical infix text of an expression."""
    return fold_expression(expr, lambda node, kids: node._display(kids))[0]


# ============================================================
# Evaluation helpers
# ============================================================

def _coerce_number(value: Any) -> NumberValue:
    if isinstance(value, NumberValue):
        return value
    if isinstance(value, Number):
        return value.value
    return NumberValue.from_python(value)


def _to_python(value: NumberValue, env) -> Union[float, complex]:
    if isinstance(value, Complex):
        return complex(value.real.approximate(), value.imag.approximate())
    if isinstance(value, Symbolic):
        return value.expression.approximate(env)
    return value.approximate()


def _check_finite(result, *operands) -> None:
    finite_inputs = all(cmath.isfinite(x) for x in operands)
    if finite_inputs and not cmath.isfinite(result):
        raise Overflow("float result out of range")


_EXACT_ZERO_VALUES = {
    "sin": Integer(0), "tan": Integer(0), "cos": Integer(1), "exp": Integer(1),
    "asin": Integer(0), "atan": Integer(0), "sinh": Integer(0), "tanh": Integer(0),
    "cosh": Integer(1),
}


def _evaluate_function(name: str, args: List[NumberValue]) -> NumberValue:
    if len(args) == 1:
        arg = args[0]
        if name == "sqrt":
            return arg.sqrt(allow_complex=True)
        if name == "abs":
            return arg.abs()
        if isinstance(arg, Float):
            return Float(_approximate_function(name, [arg.value]))
        if arg.is_zero() and name in _EXACT_ZERO_VALUES:
            return _EXACT_ZERO_VALUES[name]
        if arg.is_one() and name in ("ln", "log"):
            return Integer(0)
    return Symbolic(Function(name, [as_expression(a) for a in args]))


def _log(x):
    return cmath.log(x) if isinstance(x, complex) else math.log(x)


_REAL_FUNCTIONS: Dict[str, Callable] = {
    "sin": math.sin, "cos": math.cos, "tan": math.tan,
    "asin": math.asin, "acos": math.acos, "atan": math.atan,
    "sinh": math.sinh, "cosh": math.cosh, "tanh": math.tanh,
    "exp": math.exp, "ln": math.log, "log": math.log,
    "log10": math.log10, "log2": math.log2, "sqrt": math.sqrt,
    "abs": abs, "floor": math.floor, "ceil": math.ceil,
    "sec": lambda x: 1 / math.cos(x),
    "csc": lambda x: 1 / math.sin(x),
    "cot": lambda x: 1 / math.tan(x),
}

_COMPLEX_FUNCTIONS: Dict[str, Callable] = {
    "sin": cmath.sin, "cos": cmath.cos, "tan": cmath.tan,
    "asin": cmath.asin, "acos": cmath.acos, "atan": cmath.atan,
    "sinh": cmath.sinh, "cosh": cmath.cosh, "tanh": cmath.tanh,
    "exp": cmath.exp, "ln": _log, "log": _log, "log10": cmath.log10,
    "sqrt": cmath.sqrt, "abs": abs,
}


def _approximate_function(name: str, args: list):
    if len(args) == 2 and name == "log":
        value, base = args
        return _approximate_function("ln", [value]) / _approximate_function("ln", [base])
    if len(args) != 1:
        raise UnsupportedOperation(f"{name} with {len(args)} arguments")
    arg = args[0]
    table = _COMPLEX_FUNCTIONS if isinstance(arg, complex) else _REAL_FUNCTIONS
    if name not in table:
        raise UnsupportedOperation(f"numeric evaluation of {name}")
    try:
        result = table[name](arg)
    except ZeroDivisionError:
        raise DivisionByZero(f"{name}({arg})") from None
    except OverflowError:
        raise Overflow(f"{name}({arg}) out of float range") from None
    except ValueError:
        raise DomainError(f"{name}({arg})") from None
    _check_finite(result, arg)
    return result
