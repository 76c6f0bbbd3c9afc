"""Typed expression and statement trees of a class model.

The parser builds these nodes; the resolver fills in each node's static type
and binds names to the variables and methods they refer to. After resolution
the trees are treated as immutable by the verification engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from modelverify.errors import SourceLocation
from modelverify.types import TypeRef

if TYPE_CHECKING:
    from modelverify.class_model import ClassModel, Method, Variable


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

class ArithmeticOperator(Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"


class UnaryArithmeticOperator(Enum):
    NEGATE = "-"
    PLUS = "+"


class ComparisonOperator(Enum):
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="


class EqualityOperator(Enum):
    EQUAL = "=="
    NOT_EQUAL = "!="


class LogicalOperator(Enum):
    """Non-short-circuit boolean operators (``&`` and ``|``)."""
    AND = "&"
    OR = "|"


class ConditionalOperator(Enum):
    """Short-circuit boolean operators (``&&`` and ``||``)."""
    AND = "&&"
    OR = "||"


class UnaryLogicalOperator(Enum):
    NOT = "!"


class CallKind(Enum):
    INTRA_CLASS = "intra_class"
    INSTANCE = "instance"
    STATIC = "static"


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass
class Expr:
    location: Optional[SourceLocation] = None
    type: Optional[TypeRef] = None


@dataclass
class BoolLiteral(Expr):
    value: bool = False

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass
class IntLiteral(Expr):
    value: int = 0

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class FloatLiteral(Expr):
    value: float = 0.0
    raw: str = ""

    def __str__(self) -> str:
        return self.raw or repr(self.value)


@dataclass
class VariableRef(Expr):
    """A name, possibly reached through object fields: ``X``, ``child.X``.

    ``path`` holds every segment as written. After resolution ``variable``
    is the declaration the last segment names and ``chain`` the object
    fields walked to reach it.
    """
    path: list[str] = field(default_factory=list)
    variable: Optional[Variable] = None
    chain: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.path[-1] if self.path else ""

    def __str__(self) -> str:
        return ".".join(self.path)


@dataclass
class BinaryArithmetic(Expr):
    op: ArithmeticOperator = ArithmeticOperator.ADD
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)

    def __str__(self) -> str:
        return f"{self.left} {self.op.value} {self.right}"


@dataclass
class UnaryArithmetic(Expr):
    op: UnaryArithmeticOperator = UnaryArithmeticOperator.NEGATE
    operand: Expr = field(default_factory=Expr)

    def __str__(self) -> str:
        return f"{self.op.value}{self.operand}"


@dataclass
class Comparison(Expr):
    op: ComparisonOperator = ComparisonOperator.LESS
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)

    def __str__(self) -> str:
        return f"{self.left} {self.op.value} {self.right}"


@dataclass
class Equality(Expr):
    op: EqualityOperator = EqualityOperator.EQUAL
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)

    def __str__(self) -> str:
        return f"{self.left} {self.op.value} {self.right}"


@dataclass
class BinaryLogical(Expr):
    op: LogicalOperator = LogicalOperator.AND
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)

    def __str__(self) -> str:
        return f"{self.left} {self.op.value} {self.right}"


@dataclass
class BinaryConditional(Expr):
    op: ConditionalOperator = ConditionalOperator.AND
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)

    def __str__(self) -> str:
        return f"{self.left} {self.op.value} {self.right}"


@dataclass
class UnaryLogical(Expr):
    op: UnaryLogicalOperator = UnaryLogicalOperator.NOT
    operand: Expr = field(default_factory=Expr)

    def __str__(self) -> str:
        return f"!{self.operand}"


@dataclass
class Parenthesized(Expr):
    inner: Expr = field(default_factory=Expr)

    def __str__(self) -> str:
        return f"({self.inner})"


@dataclass
class FunctionCall(Expr):
    """Call of a method: ``m(a)``, ``child.m(a)`` or ``Math.Sqrt(a)``.

    Resolution fills in the target method, the class that declares it, the
    object fields walked to reach the callee instance, and the call kind.
    """
    target: list[str] = field(default_factory=list)
    args: list[Expr] = field(default_factory=list)
    method: Optional[Method] = None
    callee_class: Optional[ClassModel] = None
    chain: list[str] = field(default_factory=list)
    kind: CallKind = CallKind.INTRA_CLASS

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.args)
        return f"{'.'.join(self.target)}({args})"


@dataclass
class NewObject(Expr):
    """``new T()``; only valid as the initializer of an object field."""
    class_name: str = ""

    def __str__(self) -> str:
        return f"new {self.class_name}()"


def literal_value(expr: Expr) -> Any:
    """Python value of a literal expression, ``None`` for anything else."""
    if isinstance(expr, (BoolLiteral, IntLiteral, FloatLiteral)):
        return expr.value
    if isinstance(expr, UnaryArithmetic) and expr.op == UnaryArithmeticOperator.NEGATE:
        inner = literal_value(expr.operand)
        if isinstance(inner, (int, float)) and not isinstance(inner, bool):
            return -inner
    return None


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass
class Statement:
    location: Optional[SourceLocation] = None


@dataclass
class Assignment(Statement):
    destination: VariableRef = field(default_factory=VariableRef)
    source: Expr = field(default_factory=Expr)


@dataclass
class Conditional(Statement):
    condition: Expr = field(default_factory=Expr)
    true_body: list[Statement] = field(default_factory=list)
    false_body: list[Statement] = field(default_factory=list)


@dataclass
class MethodCallStatement(Statement):
    call: FunctionCall = field(default_factory=FunctionCall)


@dataclass
class Return(Statement):
    value: Optional[Expr] = None


def walk_expression(expr: Optional[Expr]):
    """Yield ``expr`` and every sub-expression, parents first."""
    if expr is None:
        return
    yield expr
    if isinstance(expr, (BinaryArithmetic, Comparison, Equality, BinaryLogical, BinaryConditional)):
        yield from walk_expression(expr.left)
        yield from walk_expression(expr.right)
    elif isinstance(expr, (UnaryArithmetic, UnaryLogical)):
        yield from walk_expression(expr.operand)
    elif isinstance(expr, Parenthesized):
        yield from walk_expression(expr.inner)
    elif isinstance(expr, FunctionCall):
        for arg in expr.args:
            yield from walk_expression(arg)


def walk_statements(statements: list[Statement]):
    """Yield every statement of a body, descending into conditionals."""
    for stmt in statements:
        yield stmt
        if isinstance(stmt, Conditional):
            yield from walk_statements(stmt.true_body)
            yield from walk_statements(stmt.false_body)


def statement_expressions(stmt: Statement) -> list[Expr]:
    """Top-level expressions a single statement evaluates."""
    if isinstance(stmt, Assignment):
        return [stmt.source]
    if isinstance(stmt, Conditional):
        return [stmt.condition]
    if isinstance(stmt, MethodCallStatement):
        return [stmt.call]
    if isinstance(stmt, Return) and stmt.value is not None:
        return [stmt.value]
    return []
